"""
Operator guidance for routing configuration failures.

Every failure surfaced by the ``routing_config`` facades is wrapped in a
``StandardConfigurationError`` whose message says what was attempted,
shows a worked example of a correct configuration and ends with the
underlying cause.
"""

from __future__ import annotations

from routing_config.schema import DEFAULT_SECTION_NAME
from routing_kernel.exceptions import ConfigurationError


def configuration_example(section_name: str = DEFAULT_SECTION_NAME) -> str:
    """Return the worked configuration example for ``section_name``."""
    return f"""\
    <configSections>
        <section name="{section_name}" type="routing_config.RoutingConfigurationSection, routing_config" />
    </configSections>

and then - further down - you can set up the mappings like this:

    <{section_name}>
        <endpoints>
            <add messages="anothersystem.messages.SomeParticularMessage, anothersystem.messages" endpoint="specialhandling" />

            <add messages="somesystem.messages" endpoint="somesystem" />
            <add messages="anothersystem.messages" endpoint="anothersystem" />
        </endpoints>
    </{section_name}>

in this case mapping all types from the assemblies somesystem.messages and anothersystem.messages to their respective endpoints, while overriding the mapping for SomeParticularMessage to some special handling somewhere else.

Please note that explicitly mapped types will always take precedence over assembly-mapped types."""


class StandardConfigurationError(ConfigurationError):
    """Umbrella error for every routing configuration problem.

    Attributes:
        attempted: What the facade was doing when the failure happened.
        section_name: Name of the configuration section involved.
        cause: The original exception (also chained as ``__cause__``).
    """

    code: str = "STANDARD_CONFIGURATION_PROBLEM"

    def __init__(
        self,
        attempted: str,
        cause: BaseException,
        section_name: str = DEFAULT_SECTION_NAME,
    ):
        self.attempted = attempted
        self.section_name = section_name
        self.cause = cause
        super().__init__(
            f"There was a problem {attempted}. Please ensure that your configuration file "
            f"has the following configuration section defined:\n\n"
            f"{configuration_example(section_name)}\n\n"
            f"The underlying problem was:\n"
            f"    {type(cause).__name__}: {cause}"
        )
