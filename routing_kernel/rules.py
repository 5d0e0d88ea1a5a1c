"""
Mapping Rule Store (``routing_kernel.rules``).

Responsibility
--------------
Holds the declared endpoint mapping rules in the order they were
presented and exposes them as a read-only sequence.  Each rule binds
either one message type or every type of an assembly (module/package) to
a destination endpoint.

Invariants enforced
-------------------
* Every rule has a non-blank ``target`` and a non-blank ``endpoint``.
* Every rule has a definite ``kind``.  An explicitly configured kind is
  kept; otherwise the kind comes from ``classify_target``.
* Rules are immutable and the store never changes after construction.

Failure modes
-------------
* ``MalformedRuleError`` -- the first rule that breaks an invariant aborts
  construction; ``position`` identifies it.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass
from enum import Enum, unique
from typing import Any, overload

from routing_kernel.exceptions import MalformedRuleError


@unique
class RuleKind(str, Enum):
    """What a rule's target names."""

    ASSEMBLY = "assembly"
    TYPE = "type"


def classify_target(target: str, endpoint: str | None) -> RuleKind:
    """Classify a rule with the legacy comma heuristic.

    A rule is an assembly rule when its endpoint is non-blank and its target
    contains no comma; anything else is a type rule.  Qualified type names
    carry a comma between the type name and its assembly, bare assembly
    names never do.
    """
    if endpoint and endpoint.strip() and "," not in target:
        return RuleKind.ASSEMBLY
    return RuleKind.TYPE


@dataclass(frozen=True)
class MappingRule:
    """One declared mapping from a target to an endpoint."""

    target: str
    endpoint: str
    kind: RuleKind
    position: int = 0

    @property
    def is_assembly_rule(self) -> bool:
        return self.kind is RuleKind.ASSEMBLY


def build_rule(
    position: int,
    target: Any,
    endpoint: Any,
    kind: Any = None,
) -> MappingRule:
    """
    Validate one raw entry and return it as a ``MappingRule``.

    Preconditions:
        - ``position`` is the zero-based declaration index of the entry.
    Postconditions:
        - Returns a rule with stripped ``target``/``endpoint`` and a
          definite ``kind``.
    Raises:
        MalformedRuleError: if target or endpoint is missing or blank, the
            kind is unknown, or an assembly kind names a qualified type.
    """
    if not isinstance(target, str) or not target.strip():
        raise MalformedRuleError(position, target, endpoint, "the 'messages' value is empty")
    if not isinstance(endpoint, str) or not endpoint.strip():
        raise MalformedRuleError(position, target, endpoint, "the 'endpoint' value is empty")

    if kind is None or (isinstance(kind, str) and not kind.strip()):
        rule_kind = classify_target(target, endpoint)
    else:
        try:
            rule_kind = RuleKind(kind.strip().lower() if isinstance(kind, str) else kind)
        except ValueError:
            raise MalformedRuleError(
                position, target, endpoint,
                f"unknown kind {kind!r}, expected 'assembly' or 'type'",
            ) from None
        if rule_kind is RuleKind.ASSEMBLY and "," in target:
            raise MalformedRuleError(
                position, target, endpoint,
                "an assembly name cannot contain a comma",
            )

    return MappingRule(
        target=target.strip(),
        endpoint=endpoint.strip(),
        kind=rule_kind,
        position=position,
    )


class MappingRuleStore(Sequence[MappingRule]):
    """
    Ordered, read-only collection of mapping rules.

    Contract
    --------
    * Iteration yields rules in declaration order.
    * ``rules[i].position == i`` for every rule.
    """

    def __init__(self, rules: Iterable[MappingRule] = ()):
        self._rules: tuple[MappingRule, ...] = tuple(rules)

    @classmethod
    def from_entries(cls, entries: Iterable[Any]) -> MappingRuleStore:
        """Build a store from raw entries, validating each in order.

        An entry is either a ``(target, endpoint)`` / ``(target, endpoint,
        kind)`` tuple or an object with ``messages``, ``endpoint`` and
        (optionally) ``kind`` attributes.
        """
        rules = []
        for position, entry in enumerate(entries):
            if isinstance(entry, tuple):
                target, endpoint, kind = (entry + (None, None, None))[:3]
            else:
                target = getattr(entry, "messages", None)
                endpoint = getattr(entry, "endpoint", None)
                kind = getattr(entry, "kind", None)
            rules.append(build_rule(position, target, endpoint, kind))
        return cls(rules)

    @property
    def rules(self) -> tuple[MappingRule, ...]:
        return self._rules

    def assembly_rules(self) -> list[MappingRule]:
        return [r for r in self._rules if r.kind is RuleKind.ASSEMBLY]

    def type_rules(self) -> list[MappingRule]:
        return [r for r in self._rules if r.kind is RuleKind.TYPE]

    @overload
    def __getitem__(self, index: int) -> MappingRule: ...

    @overload
    def __getitem__(self, index: slice) -> tuple[MappingRule, ...]: ...

    def __getitem__(self, index):
        return self._rules[index]

    def __iter__(self) -> Iterator[MappingRule]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def __repr__(self) -> str:
        return f"MappingRuleStore({len(self._rules)} rules)"
