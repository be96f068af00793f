"""omop2sdtm CLI application entry point.

Provides commands for browsing the registered OMOP/SDTM schemas and lookup
codelists, validating mapping specifications, exporting them for review,
and running them over OMOP CSV extracts.

Usage:
    omop2sdtm schema [TABLE]
    omop2sdtm codelist [NAME]
    omop2sdtm validate [SPEC_PATH]
    omop2sdtm run <input-dir> --output-dir <dir>
    omop2sdtm export-spec <spec> --output <file>
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Annotated

import typer
from loguru import logger
from rich.console import Console

app = typer.Typer(
    name="omop2sdtm",
    help="Map OMOP CDM extracts to CDISC SDTM domains with declarative specifications.",
    no_args_is_help=True,
)

console = Console()


@app.callback()
def main(
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show debug logging on stderr"),
    ] = False,
) -> None:
    """omop2sdtm command line."""
    if verbose:
        logger.remove()
        logger.add(sys.stderr, level="DEBUG")


@app.command()
def version() -> None:
    """Show the current version."""
    from omop2sdtm import __version__

    console.print(f"omop2sdtm {__version__}")


@app.command()
def schema(
    table: Annotated[
        str | None,
        typer.Argument(help="OMOP table (e.g., person) or SDTM domain (e.g., DM); omit to list all"),
    ] = None,
) -> None:
    """Show registered source tables and target domains.

    With a name, lists that table's fields. OMOP tables are matched
    lower-case, SDTM domains upper-case.
    """
    from omop2sdtm.cli.display import display_schema_overview, display_table_fields
    from omop2sdtm.models.schema import FieldDomain
    from omop2sdtm.reference import load_default_registry

    registry = load_default_registry()

    if table is None:
        display_schema_overview(registry, console)
        return

    fields = registry.fields(FieldDomain.SOURCE, table.lower())
    if not fields:
        fields = registry.fields(FieldDomain.TARGET, table.upper())
    if not fields:
        console.print(f"[bold red]Error:[/bold red] Table '{table}' not found.")
        available = registry.tables(FieldDomain.SOURCE) + registry.tables(FieldDomain.TARGET)
        console.print(f"Available tables: {', '.join(available)}")
        raise typer.Exit(code=1)

    display_table_fields(fields[0].table, fields, console)


@app.command()
def codelist(
    name: Annotated[
        str | None,
        typer.Argument(help="Lookup codelist name (e.g., omop_gender) or omit to list all"),
    ] = None,
    lookups_dir: Annotated[
        Path | None,
        typer.Option("--lookups", help="Directory of lookup codelist JSON files"),
    ] = None,
) -> None:
    """Show the lookup codelists used by lookup rules."""
    from omop2sdtm.cli.display import display_codelist, display_codelist_overview
    from omop2sdtm.reference import load_lookup_tables

    try:
        lookups = load_lookup_tables(lookups_dir)
    except FileNotFoundError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(code=1) from e

    if name is None:
        display_codelist_overview(lookups, console)
        return

    if name not in lookups:
        console.print(f"[bold red]Error:[/bold red] Codelist '{name}' not found.")
        console.print(f"Available codelists: {', '.join(sorted(lookups))}")
        raise typer.Exit(code=1)

    display_codelist(name, lookups[name], console)


@app.command()
def validate(
    spec_path: Annotated[
        Path | None,
        typer.Argument(help="Specification JSON file or directory (default: bundled specs)"),
    ] = None,
) -> None:
    """Validate mapping specifications against the schema registry.

    Every document is checked and every problem is reported; exits
    non-zero if any document is malformed.
    """
    from pydantic import ValidationError

    from omop2sdtm.cli.display import display_spec_problems, display_spec_summary
    from omop2sdtm.errors import SpecificationError
    from omop2sdtm.mapping import SpecificationBuilder, load_mapping_documents
    from omop2sdtm.reference import default_specs_dir, load_default_registry

    path = spec_path or default_specs_dir()
    try:
        documents = load_mapping_documents(path)
    except (FileNotFoundError, ValidationError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(code=1) from e

    builder = SpecificationBuilder(load_default_registry())
    failed = 0
    for doc in documents:
        try:
            spec = builder.build_document(doc)
        except SpecificationError as e:
            failed += 1
            display_spec_problems(f"{doc.target_domain} ({doc.name})", e, console)
            continue
        display_spec_summary(spec, console)

    if failed:
        console.print(
            f"\n[bold red]{failed} of {len(documents)} specification(s) failed validation[/bold red]"
        )
        raise typer.Exit(code=1)

    console.print(f"\n[bold green]{len(documents)} specification(s) valid[/bold green]")


@app.command()
def run(
    input_dir: Annotated[
        Path,
        typer.Argument(help="Directory containing OMOP CSV extracts (<table>.csv)"),
    ],
    output_dir: Annotated[
        Path,
        typer.Option("--output-dir", "-o", help="Directory for SDTM CSV output"),
    ],
    spec_path: Annotated[
        Path | None,
        typer.Option("--spec", "-s", help="Specification JSON file or directory (default: bundled)"),
    ] = None,
    domains: Annotated[
        list[str] | None,
        typer.Option("--domain", "-d", help="Only run these target domains (repeatable)"),
    ] = None,
    lookups_dir: Annotated[
        Path | None,
        typer.Option("--lookups", help="Directory of lookup codelist JSON files"),
    ] = None,
    workers: Annotated[
        int,
        typer.Option("--workers", "-w", min=1, help="Worker threads per domain"),
    ] = 1,
    study_id: Annotated[
        str | None,
        typer.Option("--study-id", envvar="OMOP2SDTM_STUDY_ID", help="Value for STUDYID"),
    ] = None,
) -> None:
    """Transform OMOP CSV extracts into SDTM domain CSV files.

    Each specification reads ``<domain>.csv`` from the input directory if
    present, otherwise ``<source_table>.csv``. Output is ``<domain>.csv``
    per domain plus ``diagnostics.json``.
    """
    from pydantic import ValidationError

    from omop2sdtm.cli.display import display_diagnostics, display_run_summary
    from omop2sdtm.errors import SpecificationError
    from omop2sdtm.execution import TransformEngine
    from omop2sdtm.io import read_records_csv, write_domain_csv, write_run_report
    from omop2sdtm.mapping import load_specifications
    from omop2sdtm.models.diagnostics import Diagnostic, RunReport
    from omop2sdtm.reference import default_specs_dir, load_default_registry, load_lookup_tables

    if not input_dir.is_dir():
        console.print(f"[bold red]Error:[/bold red] Directory not found: {input_dir}")
        raise typer.Exit(code=1)

    # Stage 1: Load and validate specifications
    console.print("\n[bold blue][1/3][/bold blue] Loading specifications...")
    try:
        specs = load_specifications(spec_path or default_specs_dir(), load_default_registry())
        lookups = load_lookup_tables(lookups_dir)
    except (FileNotFoundError, ValidationError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(code=1) from e
    except SpecificationError as e:
        console.print(f"[bold red]Invalid specification:[/bold red] {e}")
        raise typer.Exit(code=1) from e

    if domains:
        wanted = {d.upper() for d in domains}
        specs = [s for s in specs if s.target_domain in wanted]
        if not specs:
            console.print(
                f"[bold red]Error:[/bold red] No specification for domain(s) "
                f"{', '.join(sorted(wanted))}"
            )
            raise typer.Exit(code=1)

    if study_id is not None:
        specs = [s.with_constant("STUDYID", study_id) for s in specs]

    # Stage 2: Transform
    console.print(f"[bold blue][2/3][/bold blue] Transforming {len(specs)} domain(s)...")
    engine = TransformEngine(lookups, workers=workers)
    record_counts: dict[str, int] = {}
    all_diagnostics: list[Diagnostic] = []
    for spec in specs:
        candidates = _extract_candidates(input_dir, spec.target_domain, spec.source_table)
        source_file = next((c for c in candidates if c.exists()), None)
        if source_file is None:
            tried = " or ".join(c.name for c in candidates)
            console.print(
                f"  [yellow]Skipping {spec.target_domain}:[/yellow] no {tried} in {input_dir}"
            )
            continue

        try:
            targets, diagnostics = engine.apply(spec, read_records_csv(source_file))
        except SpecificationError as e:
            console.print(f"[bold red]Error in {spec.target_domain}:[/bold red] {e}")
            raise typer.Exit(code=1) from e

        write_domain_csv(
            targets, spec.target_fields(), output_dir / f"{spec.target_domain.lower()}.csv"
        )
        record_counts[spec.target_domain] = len(targets)
        all_diagnostics.extend(diagnostics)
        console.print(f"  {spec.target_domain}: {len(targets)} records from {source_file.name}")

    if not record_counts:
        console.print(f"[bold red]Error:[/bold red] No OMOP extracts found in {input_dir}")
        raise typer.Exit(code=1)

    # Stage 3: Report
    console.print("[bold blue][3/3][/bold blue] Writing diagnostics report...")
    report = RunReport.from_results(record_counts, all_diagnostics, study_id=study_id)
    report_path = write_run_report(report, output_dir / "diagnostics.json")

    console.print()
    display_run_summary(report, console)
    display_diagnostics(all_diagnostics, console)
    console.print(f"\nOutput written to {output_dir} (report: {report_path.name})")


def _extract_candidates(input_dir: Path, domain: str, source_table: str | None) -> list[Path]:
    """CSV extracts that can feed one domain, domain-specific file first."""
    candidates = [input_dir / f"{domain.lower()}.csv"]
    if source_table:
        candidates.append(input_dir / f"{source_table}.csv")
    return candidates


@app.command(name="export-spec")
def export_spec(
    spec_path: Annotated[
        Path,
        typer.Argument(help="Specification JSON file"),
    ],
    output: Annotated[
        Path,
        typer.Option("--output", "-o", help="Output file (.xlsx or .json)"),
    ],
) -> None:
    """Export a validated specification for review.

    The output format follows the file extension: ``.xlsx`` writes an
    Excel workbook, ``.json`` a normalized JSON document.
    """
    from pydantic import ValidationError

    from omop2sdtm.errors import SpecificationError
    from omop2sdtm.mapping import export_spec_to_excel, export_spec_to_json, load_specification
    from omop2sdtm.reference import load_default_registry

    suffix = output.suffix.lower()
    if suffix not in (".xlsx", ".json"):
        console.print(
            f"[bold red]Error:[/bold red] Unsupported output format '{output.suffix}' "
            f"(use .xlsx or .json)"
        )
        raise typer.Exit(code=1)

    try:
        spec = load_specification(spec_path, load_default_registry())
    except (FileNotFoundError, ValidationError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(code=1) from e
    except SpecificationError as e:
        console.print(f"[bold red]Invalid specification:[/bold red] {e}")
        raise typer.Exit(code=1) from e

    if suffix == ".xlsx":
        export_spec_to_excel(spec, output)
    else:
        export_spec_to_json(spec, output)

    console.print(f"[green]Exported {spec.target_domain} specification to {output}[/green]")


if __name__ == "__main__":
    app()
