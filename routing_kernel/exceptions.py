"""
Typed Exception Hierarchy for the Routing Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Routing configuration is read once, at startup, by an operator-owned file.
When it is wrong the process must stop with an error the operator can act
on, and callers (bus bootstrap code, tests) must be able to tell the
failure classes apart without parsing messages:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, log-safe)
  3. Exceptions carry structured DATA (assembly name, type name, rule
     position) rather than only a message string

Example - WRONG way to handle errors:
    try:
        resolver.resolve(rules, router.map)
    except Exception as e:
        if "Could not find" in str(e):
            ...

Example - RIGHT way:
    try:
        resolver.resolve(rules, router.map)
    except TypeResolutionError as e:
        log.error("unknown_message_type", extra={"type_name": e.type_name})

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from RoutingKernelError:

    RoutingKernelError (base)
    |
    +-- ConfigurationError
    |   +-- MalformedRuleError
    |   +-- (routing_config) ConfigurationSectionMissingError
    |   +-- (routing_config) ConfigurationSectionMalformedError
    |   +-- (routing_config) StandardConfigurationError
    |
    +-- ResolutionError
    |   +-- AssemblyLoadError
    |   +-- TypeResolutionError
    |
    +-- RoutingError
        +-- RouteNotFoundError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                            | When Raised
----------------|---------------------------------|---------------------------------------
Configuration   | MALFORMED_RULE                  | Rule with empty target/endpoint/kind
                | CONFIGURATION_SECTION_MISSING   | Section absent from the config file
                | CONFIGURATION_SECTION_MALFORMED | Section present, wrong shape
                | RULE_VALIDATION_FAILED          | Contradictory rules (routing_config)
                | STANDARD_CONFIGURATION_PROBLEM  | Umbrella error raised by the facades
----------------|---------------------------------|---------------------------------------
Resolution      | ASSEMBLY_LOAD_FAILED            | Assembly module cannot be imported
                | TYPE_RESOLUTION_FAILED          | Qualified type name does not resolve
----------------|---------------------------------|---------------------------------------
Routing         | ROUTE_NOT_FOUND                 | No endpoint mapped for a message type

===============================================================================
HANDLING PATTERNS
===============================================================================

1. Configuration and resolution errors are operator mistakes. They are
   never retried; fix the file and restart.

2. The routing_config facades wrap every failure into
   StandardConfigurationError.  The original error is available as
   ``__cause__`` (and ``.cause``) for callers that need the specific type.
"""

from __future__ import annotations


class RoutingKernelError(Exception):
    """
    Base exception for all routing kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "ROUTING_KERNEL_ERROR"


# Configuration-related exceptions


class ConfigurationError(RoutingKernelError):
    """Base exception for configuration errors."""

    code: str = "CONFIGURATION_ERROR"


class MalformedRuleError(ConfigurationError):
    """A declared mapping rule is not well formed.

    Raised by the rule store while it is being built; the first malformed
    rule aborts construction.
    """

    code: str = "MALFORMED_RULE"

    def __init__(self, position: int, target: str | None, endpoint: str | None, reason: str):
        self.position = position
        self.target = target
        self.endpoint = endpoint
        self.reason = reason
        super().__init__(
            f"Malformed endpoint mapping at position {position} "
            f"(messages={target!r}, endpoint={endpoint!r}): {reason}"
        )


# Resolution-related exceptions


class ResolutionError(RoutingKernelError):
    """Base exception for failures turning rules into concrete mappings."""

    code: str = "RESOLUTION_ERROR"


class AssemblyLoadError(ResolutionError):
    """The assembly named by an assembly rule could not be imported."""

    code: str = "ASSEMBLY_LOAD_FAILED"

    def __init__(self, assembly_name: str, underlying_cause: BaseException | str):
        self.assembly_name = assembly_name
        self.underlying_cause = underlying_cause
        path = assembly_name.replace(".", "/")
        super().__init__(
            f"Something went wrong when trying to load message types from assembly {assembly_name}\n"
            f"{_describe(underlying_cause)}\n"
            f"For this to work, the assembly must be importable from the current environment, "
            f"as a file with one of the following names:\n"
            f"    {path}.py\n"
            f"    {path}/__init__.py"
        )


class TypeResolutionError(ResolutionError):
    """A type rule names a type that cannot be resolved to a class."""

    code: str = "TYPE_RESOLUTION_FAILED"

    def __init__(self, type_name: str, underlying_cause: BaseException | str | None = None):
        self.type_name = type_name
        self.underlying_cause = underlying_cause
        message = (
            f"Could not find the message type {type_name}. If you choose to map a specific "
            f"message type, please ensure that the type is available to be loaded. This "
            f"requires that its assembly can be imported from the current environment, that "
            f"the type is defined in it, and that any (optional) version requirement is matched"
        )
        if underlying_cause is not None:
            message += f"\n{_describe(underlying_cause)}"
        super().__init__(message)


# Routing-related exceptions


class RoutingError(RoutingKernelError):
    """Base exception for routing table lookups."""

    code: str = "ROUTING_ERROR"


class RouteNotFoundError(RoutingError):
    """No endpoint is mapped for the message type."""

    code: str = "ROUTE_NOT_FOUND"

    def __init__(self, message_type: type):
        self.message_type = message_type
        super().__init__(
            f"No endpoint mapping found for message type "
            f"{message_type.__module__}.{message_type.__qualname__}"
        )


def _describe(cause: BaseException | str) -> str:
    if isinstance(cause, BaseException):
        return f"{type(cause).__name__}: {cause}"
    return cause
