"""
Config → Kernel Bridges.

Functions that convert a parsed ``RoutingConfigurationSection`` into
kernel inputs.  These live in routing_config (the producer) because the
kernel must NEVER import routing_config.

Usage:
    from routing_config.bridges import build_rule_store

    section = load_section(path)
    rules = build_rule_store(section)
"""

from __future__ import annotations

from routing_config.schema import RoutingConfigurationSection
from routing_kernel.rules import MappingRuleStore


def build_rule_store(section: RoutingConfigurationSection) -> MappingRuleStore:
    """Build a ``MappingRuleStore`` from the section's mapping elements.

    Raises:
        MalformedRuleError: for the first element with a blank target or
            endpoint or an invalid kind.
    """
    return MappingRuleStore.from_entries(section.mappings)
