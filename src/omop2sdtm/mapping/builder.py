"""Build and validate mapping specifications against a schema registry.

Validation is exhaustive: every rule is checked before anything is raised,
so a caller sees every problem in a malformed specification at once. The
raised exception is the first problem found; its ``problems`` attribute
lists all of them in rule order.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from loguru import logger

from omop2sdtm.errors import (
    ArityError,
    DuplicateTargetError,
    InvalidParameterError,
    SchemaViolationError,
    SpecificationError,
)
from omop2sdtm.models.mapping import (
    FieldMappingRule,
    MappingDocument,
    MappingOperation,
    MappingSpecification,
    RuleDefinition,
    arity_matches,
    describe_arity,
)
from omop2sdtm.models.schema import FieldDefinition, FieldDomain
from omop2sdtm.reference.registry import SchemaRegistry
from omop2sdtm.transforms.recoding import normalize_code


class SpecificationBuilder:
    """Resolves rule definitions into a validated MappingSpecification.

    The registry is read only while building; the resulting specification
    carries the resolved FieldDefinitions, so the registry is never needed
    per record.
    """

    def __init__(self, registry: SchemaRegistry) -> None:
        self.registry = registry

    def build(
        self,
        target_domain: str,
        rules: Sequence[RuleDefinition | Mapping[str, Any]],
        *,
        name: str | None = None,
        source_table: str | None = None,
    ) -> MappingSpecification:
        """Validate ``rules`` for ``target_domain`` and build the specification.

        Args:
            target_domain: SDTM domain code (e.g., 'DM'). Case-insensitive.
            rules: Ordered rule definitions (models or plain dicts).
            name: Specification name. Defaults to the domain code.
            source_table: Name of the extract the specification reads.

        Returns:
            The validated, immutable MappingSpecification.

        Raises:
            SchemaViolationError: A rule references an unregistered field,
                a target outside the domain, or a null constant for a
                non-nullable target.
            DuplicateTargetError: Two rules write the same target field.
            ArityError: A rule's source count does not fit its operation.
            InvalidParameterError: A required operation parameter is missing.
        """
        domain = target_domain.strip().upper()
        definitions = [
            r if isinstance(r, RuleDefinition) else RuleDefinition.model_validate(r)
            for r in rules
        ]

        problems: list[SpecificationError] = []
        resolved: list[FieldMappingRule] = []
        seen_targets: dict[str, int] = {}

        for position, rule in enumerate(definitions, start=1):
            label = f"rule {position} ({rule.target})"
            rule_problems: list[SpecificationError] = []

            target = self._resolve_target(domain, rule, label, rule_problems)
            sources = self._resolve_sources(rule, label, rule_problems)

            target_key = rule.target.split(".")[-1].upper()
            if target_key in seen_targets:
                rule_problems.append(
                    DuplicateTargetError(
                        f"{label}: target {domain}.{target_key} is already written by "
                        f"rule {seen_targets[target_key]}",
                        target_field=target_key,
                    )
                )
            else:
                seen_targets[target_key] = position

            if not arity_matches(rule.operation, len(rule.sources)):
                rule_problems.append(
                    ArityError(
                        f"{label}: {rule.operation.value} requires "
                        f"{describe_arity(rule.operation)} source field(s), "
                        f"got {len(rule.sources)}",
                        target_field=target_key,
                    )
                )

            parameters = self._check_parameters(rule, target, label, rule_problems)

            if not rule_problems and target is not None:
                resolved.append(
                    FieldMappingRule(
                        target_field=target,
                        source_fields=tuple(s for s in sources if s is not None),
                        operation=rule.operation,
                        parameters=parameters,
                    )
                )
            problems.extend(rule_problems)

        if problems:
            for problem in problems:
                logger.warning("{} specification problem: {}", domain, problem.message)
            first = problems[0]
            first.problems = problems
            raise first

        spec = MappingSpecification(
            name=name or domain,
            target_domain=domain,
            source_table=source_table,
            rules=tuple(resolved),
        )
        logger.info("Built {} specification '{}' with {} rules", domain, spec.name, len(resolved))
        return spec

    def build_document(self, document: MappingDocument) -> MappingSpecification:
        """Build a specification from a loaded MappingDocument."""
        return self.build(
            document.target_domain,
            document.rules,
            name=document.name,
            source_table=document.source_table,
        )

    def _resolve_target(
        self,
        domain: str,
        rule: RuleDefinition,
        label: str,
        problems: list[SpecificationError],
    ) -> FieldDefinition | None:
        if "." in rule.target:
            table, field_name = rule.target.rsplit(".", 1)
            if table.upper() != domain:
                problems.append(
                    SchemaViolationError(
                        f"{label}: target {rule.target} does not belong to domain {domain}",
                        target_field=rule.target,
                    )
                )
                return None
        else:
            field_name = rule.target

        qualified = f"{domain}.{field_name.upper()}"
        if not self.registry.contains(FieldDomain.TARGET, qualified):
            problems.append(
                SchemaViolationError(
                    f"{label}: {qualified} is not in the target schema for domain {domain}",
                    target_field=qualified,
                )
            )
            return None
        return self.registry.lookup(FieldDomain.TARGET, qualified)

    def _resolve_sources(
        self,
        rule: RuleDefinition,
        label: str,
        problems: list[SpecificationError],
    ) -> list[FieldDefinition | None]:
        sources: list[FieldDefinition | None] = []
        for name in rule.sources:
            if self.registry.contains(FieldDomain.SOURCE, name):
                sources.append(self.registry.lookup(FieldDomain.SOURCE, name))
                continue
            if self.registry.contains(FieldDomain.TARGET, name):
                msg = f"{label}: {name} is a target field and cannot be used as a source"
            else:
                msg = f"{label}: source field {name} is not registered"
            problems.append(SchemaViolationError(msg, target_field=rule.target))
            sources.append(None)
        return sources

    def _check_parameters(
        self,
        rule: RuleDefinition,
        target: FieldDefinition | None,
        label: str,
        problems: list[SpecificationError],
    ) -> dict[str, Any]:
        """Validate operation parameters and return their normalized form."""
        params = dict(rule.parameters)
        op = rule.operation

        if op == MappingOperation.CONSTANT:
            if "value" not in params:
                problems.append(
                    InvalidParameterError(
                        f"{label}: constant rule requires a 'value' parameter",
                        target_field=rule.target,
                    )
                )
            elif params["value"] is None and target is not None and not target.nullable:
                problems.append(
                    SchemaViolationError(
                        f"{label}: null constant assigned to non-nullable "
                        f"{target.qualified_name}",
                        target_field=target.qualified_name,
                    )
                )

        elif op == MappingOperation.CONCAT:
            for key in ("separator", "prefix"):
                if key in params and not isinstance(params[key], str):
                    problems.append(
                        InvalidParameterError(
                            f"{label}: concat '{key}' must be a string",
                            target_field=rule.target,
                        )
                    )
            params.setdefault("separator", "")

        elif op == MappingOperation.LOOKUP:
            codelist = params.get("codelist")
            if not isinstance(codelist, str) or not codelist:
                problems.append(
                    InvalidParameterError(
                        f"{label}: lookup rule requires a 'codelist' parameter",
                        target_field=rule.target,
                    )
                )

        elif op == MappingOperation.COERCE and "values" in params:
            values = params["values"]
            if not isinstance(values, Mapping):
                problems.append(
                    InvalidParameterError(
                        f"{label}: coerce 'values' must be a code -> value mapping",
                        target_field=rule.target,
                    )
                )
            else:
                params["values"] = {normalize_code(k): v for k, v in values.items()}

        return params


def build_specification(
    target_domain: str,
    rules: Sequence[RuleDefinition | Mapping[str, Any]],
    registry: SchemaRegistry,
    *,
    name: str | None = None,
    source_table: str | None = None,
) -> MappingSpecification:
    """Validate ``rules`` against ``registry`` and build a specification.

    Convenience wrapper over SpecificationBuilder.build.
    """
    return SpecificationBuilder(registry).build(
        target_domain, rules, name=name, source_table=source_table
    )
