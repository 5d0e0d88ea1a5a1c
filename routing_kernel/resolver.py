"""
MappingResolver -- turns declared mapping rules into concrete routes.

Responsibility:
    Resolves every rule of a ``MappingRuleStore`` into ``(class,
    endpoint)`` pairs and hands them to a registration sink, typically a
    router's ``map`` method.

Architecture position:
    Kernel -- pure domain logic.  Called by the ``routing_config`` facades
    once at startup.  Knows nothing about configuration files.

Invariants enforced:
    - All assembly rules are processed before all type rules, each group
      in declaration order.  With a last-write-wins sink an explicit type
      mapping therefore always overrides an assembly-wide one.
    - Each type rule produces exactly one sink call; each assembly rule
      produces one sink call per class defined in the assembly.
    - The first failure aborts the whole resolution.

Failure modes:
    - ``AssemblyLoadError`` -- an assembly rule names an assembly that
      cannot be imported (or one of its submodules fails to import).
    - ``TypeResolutionError`` -- a type rule names a type that cannot be
      resolved.
    - In atomic mode (the default) a failure leaves the sink untouched.
      With ``atomic=False`` sink calls made before the failure stay in
      place; nothing is rolled back.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass

from routing_kernel.logging_config import LogContext, get_logger
from routing_kernel.rules import MappingRule, RuleKind
from routing_kernel.type_loader import TypeLoader

logger = get_logger("resolver")

MappingSink = Callable[[type, str], object]


@dataclass(frozen=True)
class ResolvedMapping:
    """One concrete route produced from a rule."""

    message_type: type
    endpoint: str
    rule: MappingRule


@dataclass(frozen=True)
class ResolutionResult:
    """Summary of a successful resolution."""

    assembly_rule_count: int
    type_rule_count: int
    mapping_count: int


def order_rules(rules: Iterable[MappingRule]) -> list[MappingRule]:
    """Stable partition: assembly rules first, then type rules."""
    rules = list(rules)
    return [r for r in rules if r.kind is RuleKind.ASSEMBLY] + [
        r for r in rules if r.kind is RuleKind.TYPE
    ]


class MappingResolver:
    """
    Resolves mapping rules against the running interpreter.

    Args:
        type_loader: Loader used to import assemblies and resolve type
            names.  Defaults to an importlib-backed ``TypeLoader``.
        atomic: When True, resolve everything before calling the sink and
            only call it if every rule resolved.  When False, call the sink
            as each pair is resolved.
    """

    def __init__(self, type_loader: TypeLoader | None = None, *, atomic: bool = True):
        self._loader = type_loader or TypeLoader()
        self._atomic = atomic

    @property
    def atomic(self) -> bool:
        return self._atomic

    def resolve(self, rules: Iterable[MappingRule], sink: MappingSink) -> ResolutionResult:
        """Resolve ``rules`` and register every pair through ``sink``.

        Raises:
            AssemblyLoadError: see module docstring.
            TypeResolutionError: see module docstring.
        """
        ordered = order_rules(rules)
        assembly_count = sum(1 for r in ordered if r.kind is RuleKind.ASSEMBLY)

        if self._atomic:
            pairs: Iterable[ResolvedMapping] = list(self._iter_resolved(ordered))
        else:
            pairs = self._iter_resolved(ordered)

        count = 0
        for pair in pairs:
            sink(pair.message_type, pair.endpoint)
            count += 1

        result = ResolutionResult(
            assembly_rule_count=assembly_count,
            type_rule_count=len(ordered) - assembly_count,
            mapping_count=count,
        )
        logger.info(
            "endpoint_mappings_resolved",
            extra={
                "assembly_rule_count": result.assembly_rule_count,
                "type_rule_count": result.type_rule_count,
                "mapping_count": result.mapping_count,
                "atomic": self._atomic,
            },
        )
        return result

    def plan(self, rules: Iterable[MappingRule]) -> list[ResolvedMapping]:
        """Resolve ``rules`` in application order without registering anything."""
        return list(self._iter_resolved(order_rules(rules)))

    def _iter_resolved(self, ordered: list[MappingRule]) -> Iterator[ResolvedMapping]:
        for rule in ordered:
            # rule_position is bound while resolving only, never across the yield.
            with LogContext.bind(rule_position=rule.position):
                if rule.kind is RuleKind.ASSEMBLY:
                    resolved = self._resolve_assembly(rule)
                else:
                    resolved = [self._resolve_type(rule)]
            yield from resolved

    def _resolve_assembly(self, rule: MappingRule) -> list[ResolvedMapping]:
        assembly = self._loader.load_assembly(rule.target)
        types = self._loader.enumerate_types(assembly)
        logger.debug(
            "assembly_rule_resolved",
            extra={"assembly": rule.target, "endpoint": rule.endpoint, "type_count": len(types)},
        )
        return [ResolvedMapping(t, rule.endpoint, rule) for t in types]

    def _resolve_type(self, rule: MappingRule) -> ResolvedMapping:
        message_type = self._loader.resolve_type(rule.target)
        logger.debug(
            "type_rule_resolved",
            extra={"type_name": rule.target, "endpoint": rule.endpoint},
        )
        return ResolvedMapping(message_type, rule.endpoint, rule)
