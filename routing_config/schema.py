"""
RoutingConfigurationSection schema.

Defines the parsed, human-authored routing section.  XML and YAML files
are parsed into these types by the loader and turned into a kernel
``MappingRuleStore`` by the bridges.

Key distinction:
  RoutingConfigurationSection = source artifact (what the operator wrote)
  MappingRuleStore            = runtime artifact (validated, classified rules)
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

# Handler type a legacy XML ``<configSections>`` declaration must name.
SECTION_TYPE_NAME = "RoutingConfigurationSection"

DEFAULT_SECTION_NAME = "bus"


@dataclass(frozen=True)
class EndpointMappingElement:
    """One ``<add messages=... endpoint=... />`` entry.

    Values are kept as written; blank or missing values are reported by the
    rule store, not here.
    """

    messages: str | None
    endpoint: str | None
    kind: str | None = None


@dataclass(frozen=True)
class RoutingConfigurationSection:
    """The parsed routing section of a configuration file."""

    name: str
    mappings: tuple[EndpointMappingElement, ...]
    source: Path | None = None
    checksum: str = ""

    def __len__(self) -> int:
        return len(self.mappings)
