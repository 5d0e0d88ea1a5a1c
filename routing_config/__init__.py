"""
routing_config -- declarative endpoint mappings for the type-based router.

Responsibility:
    Public entrypoints that read endpoint mappings from a configuration
    file (or an already parsed section) and register them with the bus's
    type-based routing.  Parsing, validation and resolution are delegated
    to the loader, validator and ``routing_kernel`` resolver.

Architecture position:
    Configuration -- sits above ``routing_kernel``.  The kernel MUST NEVER
    import from ``routing_config``; ``bridges`` translates parsed sections
    into kernel rule stores.

Invariants enforced:
    - Explicit injection: every entrypoint takes the section (or the path
      of the file holding it).  Nothing is looked up from process-wide
      state.
    - Explicitly mapped types always take precedence over assembly-mapped
      types.
    - Every failure is raised as ``StandardConfigurationError`` carrying
      a worked configuration example and the original error as its cause.

Failure modes:
    - ``StandardConfigurationError`` wrapping one of
      ``FileNotFoundError``, ``ConfigurationSectionMissingError``,
      ``ConfigurationSectionMalformedError``, ``MalformedRuleError``,
      ``RuleValidationError``, ``AssemblyLoadError`` or
      ``TypeResolutionError``.

Audit relevance:
    Every successful resolution emits a ``ROUTING_CONFIG_TRACE`` log entry
    with the source file, section, checksum, rule counts and the number of
    mappings registered.
"""

from __future__ import annotations

import logging
from pathlib import Path

from routing_config.bridges import build_rule_store
from routing_config.guidance import StandardConfigurationError, configuration_example
from routing_config.loader import (
    ConfigurationSectionMalformedError,
    ConfigurationSectionMissingError,
    load_section,
    parse_section_text,
)
from routing_config.schema import (
    DEFAULT_SECTION_NAME,
    EndpointMappingElement,
    RoutingConfigurationSection,
)
from routing_config.validator import RuleValidationError, SectionValidationResult, validate_rules
from routing_kernel.logging_config import LogContext
from routing_kernel.resolver import MappingResolver, MappingSink, ResolutionResult
from routing_kernel.router import RouterConfigurer, TypeBasedRouter, TypeBasedRouterBuilder

__all__ = [
    "ConfigurationSectionMalformedError",
    "ConfigurationSectionMissingError",
    "DEFAULT_SECTION_NAME",
    "EndpointMappingElement",
    "RoutingConfigurationSection",
    "RuleValidationError",
    "SectionValidationResult",
    "StandardConfigurationError",
    "add_endpoint_mappings_from_config",
    "add_endpoint_mappings_from_file",
    "configuration_example",
    "load_routing_section",
    "parse_section_text",
    "resolve_section",
    "type_based_routing_from_config",
    "type_based_routing_from_file",
]

_logger = logging.getLogger("routing_kernel.config")

_ATTEMPTED = "configuring the type-based router"


def load_routing_section(
    path: Path | str,
    section_name: str = DEFAULT_SECTION_NAME,
) -> RoutingConfigurationSection:
    """Load and parse the routing section of the file at ``path``.

    Raises:
        StandardConfigurationError: if the file is missing or the section
            is absent or malformed.
    """
    try:
        return load_section(path, section_name)
    except Exception as exc:
        raise StandardConfigurationError(
            f"reading the '{section_name}' section from {path}", exc, section_name
        ) from exc


def resolve_section(
    section: RoutingConfigurationSection,
    sink: MappingSink,
    *,
    atomic: bool = True,
) -> ResolutionResult:
    """Resolve every mapping of ``section`` into ``sink``.

    Unlike the other entrypoints this raises the specific error types
    (``MalformedRuleError``, ``RuleValidationError``, ``AssemblyLoadError``,
    ``TypeResolutionError``) unwrapped.
    """
    source = str(section.source) if section.source is not None else None
    with LogContext.bind(config_source=source, section=section.name):
        rules = build_rule_store(section)

        validation = validate_rules(rules)
        for warning in validation.warnings:
            _logger.warning("routing_config_warning", extra={"warning": warning})
        if not validation.is_valid:
            raise RuleValidationError(validation.errors)

        result = MappingResolver(atomic=atomic).resolve(rules, sink)

        _logger.info(
            "ROUTING_CONFIG_TRACE",
            extra={
                "trace_type": "ROUTING_CONFIG_TRACE",
                "checksum": section.checksum,
                "rule_count": len(rules),
                "assembly_rule_count": result.assembly_rule_count,
                "type_rule_count": result.type_rule_count,
                "mapping_count": result.mapping_count,
                "atomic": atomic,
            },
        )
        return result


def add_endpoint_mappings_from_config(
    builder: TypeBasedRouterBuilder,
    section: RoutingConfigurationSection,
    *,
    atomic: bool = True,
) -> TypeBasedRouterBuilder:
    """Add the section's endpoint mappings to an existing router builder.

    Calls ``builder.map(message_type, endpoint)`` once per resolved
    mapping and returns the builder.

    Raises:
        TypeError: if ``builder`` or ``section`` is None.
        StandardConfigurationError: on any configuration or resolution
            failure.
    """
    if builder is None:
        raise TypeError("builder must not be None")
    if section is None:
        raise TypeError("section must not be None")
    try:
        resolve_section(section, builder.map, atomic=atomic)
    except Exception as exc:
        raise StandardConfigurationError(_ATTEMPTED, exc, section.name) from exc
    return builder


def type_based_routing_from_config(
    configurer: RouterConfigurer,
    section: RoutingConfigurationSection,
    *,
    atomic: bool = True,
) -> None:
    """Register a type-based router populated from ``section``.

    The router is built by the registered factory when the configurer
    first asks for it; resolution failures surface at that point.

    Raises:
        TypeError: if ``configurer`` or ``section`` is None.
        StandardConfigurationError: from the factory, on any configuration
            or resolution failure.
    """
    if configurer is None:
        raise TypeError("configurer must not be None")
    if section is None:
        raise TypeError("section must not be None")

    def _build_router() -> TypeBasedRouter:
        router = TypeBasedRouter()
        try:
            resolve_section(section, router.map, atomic=atomic)
        except Exception as exc:
            raise StandardConfigurationError(_ATTEMPTED, exc, section.name) from exc
        return router

    configurer.register(_build_router)


def add_endpoint_mappings_from_file(
    builder: TypeBasedRouterBuilder,
    path: Path | str,
    section_name: str = DEFAULT_SECTION_NAME,
    *,
    atomic: bool = True,
) -> TypeBasedRouterBuilder:
    """Load the section from ``path`` and add its mappings to ``builder``."""
    section = load_routing_section(path, section_name)
    return add_endpoint_mappings_from_config(builder, section, atomic=atomic)


def type_based_routing_from_file(
    configurer: RouterConfigurer,
    path: Path | str,
    section_name: str = DEFAULT_SECTION_NAME,
    *,
    atomic: bool = True,
) -> None:
    """Load the section from ``path`` and register a router built from it.

    The file is read immediately, so a missing or malformed section fails
    here rather than when the router is first requested.
    """
    section = load_routing_section(path, section_name)
    type_based_routing_from_config(configurer, section, atomic=atomic)
