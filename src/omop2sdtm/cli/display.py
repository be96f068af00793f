"""Rich display helpers for terminal output.

Provides formatted display functions for schema tables, codelists,
specification problems and transformation run summaries using Rich
tables and panels.
"""

from __future__ import annotations

from collections.abc import Mapping

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from omop2sdtm.errors import SpecificationError
from omop2sdtm.models.diagnostics import Diagnostic, DiagnosticKind, RunReport
from omop2sdtm.models.mapping import MappingSpecification
from omop2sdtm.models.schema import FieldDefinition, FieldDomain
from omop2sdtm.reference.registry import SchemaRegistry

_KIND_STYLES: dict[DiagnosticKind, str] = {
    DiagnosticKind.MISSING_FIELD: "bold red",
    DiagnosticKind.TYPE_MISMATCH: "yellow",
    DiagnosticKind.UNMAPPED_CODE: "magenta",
}


def display_schema_overview(registry: SchemaRegistry, console: Console) -> None:
    """Print every registered source table and target domain with field counts."""
    table = Table(title="Registered Schemas", show_lines=False)
    table.add_column("Side", style="dim")
    table.add_column("Table", style="bold cyan", no_wrap=True)
    table.add_column("Fields", justify="right")

    for domain in (FieldDomain.SOURCE, FieldDomain.TARGET):
        for name in registry.tables(domain):
            table.add_row(domain.value, name, str(len(registry.fields(domain, name))))

    console.print(table)


def display_table_fields(
    name: str,
    fields: list[FieldDefinition],
    console: Console,
) -> None:
    """Print the fields of one OMOP table or SDTM domain."""
    side = fields[0].domain.value if fields else ""
    table = Table(title=f"{name} ({side})", show_lines=False)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Field", style="bold cyan", no_wrap=True)
    table.add_column("Type")
    table.add_column("Nullable", justify="center")
    table.add_column("Label")

    for idx, f in enumerate(fields, start=1):
        nullable = "[green]Y[/green]" if f.nullable else "[red]N[/red]"
        table.add_row(str(idx), f.name, f.value_type.value, nullable, f.label)

    console.print(table)


def display_codelist_overview(lookups: Mapping[str, Mapping[str, str]], console: Console) -> None:
    """Print every available lookup table with its size."""
    table = Table(title=f"Available Codelists ({len(lookups)})", show_lines=False)
    table.add_column("Codelist", style="bold cyan")
    table.add_column("Codes", justify="right")

    for name in sorted(lookups):
        table.add_row(name, str(len(lookups[name])))

    console.print(table)


def display_codelist(name: str, values: Mapping[str, str], console: Console) -> None:
    """Print the code -> value pairs of one lookup table."""
    table = Table(title=f"Codelist {name}", show_lines=False)
    table.add_column("Code", style="bold cyan", no_wrap=True)
    table.add_column("Value")

    for code, label in values.items():
        table.add_row(code, label)

    console.print(table)


def display_spec_summary(spec: MappingSpecification, console: Console) -> None:
    """Print one line confirming a specification built cleanly."""
    source = f" from {spec.source_table}" if spec.source_table else ""
    console.print(
        f"[green]OK[/green] [bold]{spec.target_domain}[/bold] "
        f"({spec.name}{source}): {len(spec.rules)} rules"
    )


def display_spec_problems(label: str, error: SpecificationError, console: Console) -> None:
    """Print every problem carried by a failed specification build."""
    table = Table(title=f"{label}: {len(error.problems)} problem(s)", show_lines=True)
    table.add_column("Error", style="bold red", no_wrap=True)
    table.add_column("Field", style="cyan")
    table.add_column("Message")

    for problem in error.problems:
        table.add_row(problem.kind, problem.target_field or "", problem.message)

    console.print(table)


def display_run_summary(report: RunReport, console: Console) -> None:
    """Print per-domain record and diagnostic counts for a run."""
    table = Table(title="Transformation Summary", show_lines=True)
    table.add_column("Domain", style="bold cyan", no_wrap=True)
    table.add_column("Records", justify="right", style="green")
    for kind in DiagnosticKind:
        table.add_column(kind.value, justify="right")

    for domain, summary in report.domains.items():
        cells: list[str | Text] = [domain, str(summary.record_count)]
        for kind in DiagnosticKind:
            count = summary.diagnostic_counts.get(kind.value, 0)
            style = _KIND_STYLES[kind] if count else "dim"
            cells.append(Text(str(count), style=style))
        table.add_row(*cells)

    console.print(table)
    console.print(
        f"\n[bold]{report.record_count}[/bold] records produced, "
        f"[bold]{report.diagnostic_count}[/bold] diagnostics"
    )


def display_diagnostics(
    diagnostics: list[Diagnostic],
    console: Console,
    *,
    limit: int = 20,
) -> None:
    """Print the first ``limit`` diagnostics in a panel."""
    if not diagnostics:
        console.print(Panel("[green]No diagnostics[/green]", title="Diagnostics"))
        return

    table = Table(show_lines=False)
    table.add_column("Domain", style="bold cyan")
    table.add_column("Row", justify="right")
    table.add_column("Kind")
    table.add_column("Target")
    table.add_column("Message")

    for diag in diagnostics[:limit]:
        table.add_row(
            diag.domain,
            str(diag.record_index),
            Text(diag.kind.value, style=_KIND_STYLES[diag.kind]),
            diag.target_field,
            diag.message,
        )

    title = f"Diagnostics (showing {min(limit, len(diagnostics))} of {len(diagnostics)})"
    console.print(Panel(table, title=title))
