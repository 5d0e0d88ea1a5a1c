"""
routing_kernel -- resolves declarative endpoint mappings into routes.

The kernel MUST NEVER import from ``routing_config``; configuration is
turned into kernel inputs by ``routing_config.bridges``.
"""

from routing_kernel.exceptions import (
    AssemblyLoadError,
    ConfigurationError,
    MalformedRuleError,
    ResolutionError,
    RouteNotFoundError,
    RoutingKernelError,
    TypeResolutionError,
)
from routing_kernel.resolver import MappingResolver, ResolutionResult, ResolvedMapping
from routing_kernel.router import RouterConfigurer, TypeBasedRouter, TypeBasedRouterBuilder
from routing_kernel.rules import MappingRule, MappingRuleStore, RuleKind, classify_target

__all__ = [
    "AssemblyLoadError",
    "ConfigurationError",
    "MalformedRuleError",
    "MappingResolver",
    "MappingRule",
    "MappingRuleStore",
    "ResolutionError",
    "ResolutionResult",
    "ResolvedMapping",
    "RouteNotFoundError",
    "RouterConfigurer",
    "RoutingKernelError",
    "RuleKind",
    "TypeBasedRouter",
    "TypeBasedRouterBuilder",
    "TypeResolutionError",
    "classify_target",
]
