"""
Configuration Validator (``routing_config.validator``).

Responsibility
--------------
Reviews a ``MappingRuleStore`` built from a routing section and reports
declarations that resolve fine but probably do not do what the operator
meant.

Architecture position
---------------------
**Config layer** -- review step.  Called by the ``routing_config``
facades after the rule store is built and before resolution.

Findings
--------
* Errors (resolution MUST NOT run; raised as ``RuleValidationError``):
  - the same target declared both as an assembly and as a type.
* Warnings:
  - the same target declared more than once (the last type rule wins;
    for assembly rules the later one wins for every type);
  - a type rule declared before an assembly rule (it still takes
    precedence, but the file reads otherwise).
"""

from __future__ import annotations

from dataclasses import dataclass, field

from routing_kernel.exceptions import ConfigurationError
from routing_kernel.rules import MappingRuleStore, RuleKind


class RuleValidationError(ConfigurationError):
    """The rule store has findings that block resolution."""

    code: str = "RULE_VALIDATION_FAILED"

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__(
            "Routing configuration validation failed:\n"
            + "\n".join(f"  - {e}" for e in self.errors)
        )


@dataclass
class SectionValidationResult:
    """
    Result of reviewing a rule store.

    Contract
    --------
    * ``is_valid`` returns ``True`` only when ``errors`` is empty.
    * Warnings never block resolution.
    """

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)


def validate_rules(rules: MappingRuleStore) -> SectionValidationResult:
    """Review ``rules`` and return the findings."""
    result = SectionValidationResult()

    _validate_kind_consistency(rules, result)
    _validate_duplicate_targets(rules, result)
    _validate_declaration_order(rules, result)

    return result


def _validate_kind_consistency(rules: MappingRuleStore, result: SectionValidationResult) -> None:
    """Check that no target is declared as both an assembly and a type."""
    kinds: dict[str, RuleKind] = {}
    for rule in rules:
        seen = kinds.setdefault(rule.target, rule.kind)
        if seen is not rule.kind:
            result.add_error(
                f"'{rule.target}' at position {rule.position} is declared as "
                f"{rule.kind.value} but was declared as {seen.value} earlier"
            )


def _validate_duplicate_targets(rules: MappingRuleStore, result: SectionValidationResult) -> None:
    """Check that each target is declared only once."""
    first_seen: dict[tuple[RuleKind, str], int] = {}
    for rule in rules:
        key = (rule.kind, rule.target)
        if key not in first_seen:
            first_seen[key] = rule.position
            continue
        earlier = rules[first_seen[key]]
        if earlier.endpoint == rule.endpoint:
            result.add_warning(
                f"'{rule.target}' is mapped to '{rule.endpoint}' at positions "
                f"{earlier.position} and {rule.position}"
            )
        else:
            result.add_warning(
                f"'{rule.target}' is mapped to '{earlier.endpoint}' at position "
                f"{earlier.position} and to '{rule.endpoint}' at position "
                f"{rule.position}; the later mapping wins"
            )


def _validate_declaration_order(rules: MappingRuleStore, result: SectionValidationResult) -> None:
    """Flag type rules written before assembly rules."""
    first_type = next((r for r in rules if r.kind is RuleKind.TYPE), None)
    if first_type is None:
        return
    later_assemblies = [
        r for r in rules if r.kind is RuleKind.ASSEMBLY and r.position > first_type.position
    ]
    if later_assemblies:
        result.add_warning(
            f"Type mapping '{first_type.target}' at position {first_type.position} is declared "
            f"before {len(later_assemblies)} assembly mapping(s); explicitly mapped types are "
            f"applied after all assembly mappings regardless of declaration order"
        )
