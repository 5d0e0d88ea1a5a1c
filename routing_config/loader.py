"""
Configuration Loader (``routing_config.loader``).

Responsibility
--------------
Reads a configuration file and parses its routing section into a
``RoutingConfigurationSection``.  Two file formats are understood:

* XML (``.xml``, ``.config``) -- the legacy format::

      <configuration>
        <configSections>
          <section name="bus" type="routing_config.RoutingConfigurationSection, routing_config" />
        </configSections>
        <bus>
          <endpoints>
            <add messages="SomeSystem.Messages" endpoint="somesystem" />
          </endpoints>
        </bus>
      </configuration>

  The section element may also be the document root.

* YAML (``.yaml``, ``.yml``)::

      bus:
        endpoints:
          - messages: SomeSystem.Messages
            endpoint: somesystem

Both formats accept an optional ``kind`` (``assembly`` or ``type``) per
entry.

Architecture position
---------------------
**Config layer** -- I/O boundary.  Consumed by the ``routing_config``
facades.  Parses shape only; whether targets and endpoints are filled in
is checked by the kernel rule store.

Failure modes
-------------
* Missing file  -> ``FileNotFoundError`` propagates.
* No section with the requested name  -> ``ConfigurationSectionMissingError``.
* Unparsable document, section of the wrong type or shape, unknown entry
  elements or attributes  -> ``ConfigurationSectionMalformedError``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any
from xml.etree.ElementTree import Element, ParseError

import yaml
from defusedxml import DefusedXmlException
from defusedxml import ElementTree as DefusedET

from routing_config.schema import (
    DEFAULT_SECTION_NAME,
    SECTION_TYPE_NAME,
    EndpointMappingElement,
    RoutingConfigurationSection,
)
from routing_kernel.exceptions import ConfigurationError

XML_SUFFIXES = frozenset({".xml", ".config"})
YAML_SUFFIXES = frozenset({".yaml", ".yml"})

_ENTRY_ATTRIBUTES = frozenset({"messages", "endpoint", "kind"})


class ConfigurationSectionMissingError(ConfigurationError):
    """The configuration file has no section with the expected name."""

    code: str = "CONFIGURATION_SECTION_MISSING"

    def __init__(self, section_name: str, source: Path | str | None = None):
        self.section_name = section_name
        self.source = source
        where = f" in {source}" if source is not None else ""
        super().__init__(f"Could not find '{section_name}' configuration section{where}")


class ConfigurationSectionMalformedError(ConfigurationError):
    """The section exists but does not have the expected shape."""

    code: str = "CONFIGURATION_SECTION_MALFORMED"

    def __init__(self, section_name: str, reason: str, source: Path | str | None = None):
        self.section_name = section_name
        self.reason = reason
        self.source = source
        where = f" in {source}" if source is not None else ""
        super().__init__(f"The configuration section '{section_name}'{where} is malformed: {reason}")


# ---------------------------------------------------------------------------
# File loading
# ---------------------------------------------------------------------------


def load_yaml_file(path: Path) -> Any:
    """
    Load a single YAML file and return its contents.

    Postconditions:
        - Returns the parsed document, or ``{}`` for an empty file.
    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def load_xml_file(path: Path) -> Element:
    """
    Load a single XML file and return its root element.

    Raises:
        FileNotFoundError: if the file does not exist.
        xml.etree.ElementTree.ParseError: if the file is not well formed.
        defusedxml.DefusedXmlException: if the file uses forbidden
            constructs (entity declarations, external references).
    """
    return DefusedET.parse(path).getroot()


def load_section(
    path: Path | str,
    section_name: str = DEFAULT_SECTION_NAME,
) -> RoutingConfigurationSection:
    """
    Load the routing section from a configuration file.

    The format is chosen from the file suffix.

    Raises:
        FileNotFoundError: if the file does not exist.
        ConfigurationSectionMissingError: if the section is absent.
        ConfigurationSectionMalformedError: if the file cannot be parsed or
            the section has the wrong shape.
    """
    path = Path(path)
    suffix = path.suffix.lower()

    if suffix in XML_SUFFIXES:
        try:
            root = load_xml_file(path)
        except (ParseError, DefusedXmlException) as exc:
            raise ConfigurationSectionMalformedError(
                section_name, f"invalid XML ({exc})", path
            ) from exc
        return parse_xml_section(root, section_name, source=path)

    if suffix in YAML_SUFFIXES:
        try:
            data = load_yaml_file(path)
        except yaml.YAMLError as exc:
            raise ConfigurationSectionMalformedError(
                section_name, f"invalid YAML ({exc})", path
            ) from exc
        return parse_yaml_section(data, section_name, source=path)

    raise ConfigurationSectionMalformedError(
        section_name,
        f"unsupported configuration file type {suffix or '(none)'!r}, "
        f"expected one of {sorted(XML_SUFFIXES | YAML_SUFFIXES)}",
        path,
    )


def parse_section_text(
    text: str,
    fmt: str = "xml",
    section_name: str = DEFAULT_SECTION_NAME,
) -> RoutingConfigurationSection:
    """Parse a routing section from an in-memory XML or YAML document."""
    if fmt == "xml":
        try:
            root = DefusedET.fromstring(text)
        except (ParseError, DefusedXmlException) as exc:
            raise ConfigurationSectionMalformedError(section_name, f"invalid XML ({exc})") from exc
        return parse_xml_section(root, section_name)
    if fmt == "yaml":
        try:
            data = yaml.safe_load(text) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationSectionMalformedError(section_name, f"invalid YAML ({exc})") from exc
        return parse_yaml_section(data, section_name)
    raise ValueError(f"Unknown configuration format {fmt!r}, expected 'xml' or 'yaml'")


# ---------------------------------------------------------------------------
# XML
# ---------------------------------------------------------------------------


def parse_xml_section(
    root: Element,
    section_name: str = DEFAULT_SECTION_NAME,
    source: Path | None = None,
) -> RoutingConfigurationSection:
    """
    Parse the routing section out of an XML document.

    Preconditions:
        - ``root`` is the document element (``<configuration>``) or the
          section element itself.
    Postconditions:
        - Returns a section whose ``mappings`` follow document order.
    Raises:
        ConfigurationSectionMissingError: if no ``<section_name>`` element
            exists at the top level.
        ConfigurationSectionMalformedError: if ``configSections`` declares
            the section with another handler type, ``<endpoints>`` is
            missing, or an entry is not a well-formed ``<add>``.
    """
    if _local_name(root.tag) == section_name:
        section = root
    else:
        _check_section_declaration(root, section_name, source)
        section = _child(root, section_name)
    if section is None:
        raise ConfigurationSectionMissingError(section_name, source)

    endpoints = _child(section, "endpoints")
    if endpoints is None:
        raise ConfigurationSectionMalformedError(
            section_name, "the <endpoints> element is missing", source
        )

    mappings = []
    for index, element in enumerate(endpoints):
        tag = _local_name(element.tag)
        if tag != "add":
            raise ConfigurationSectionMalformedError(
                section_name,
                f"unexpected <{tag}> element at position {index}, only <add> is allowed",
                source,
            )
        unknown = set(element.attrib) - _ENTRY_ATTRIBUTES
        if unknown:
            raise ConfigurationSectionMalformedError(
                section_name,
                f"unrecognized attribute(s) {sorted(unknown)} on <add> at position {index}",
                source,
            )
        mappings.append(
            EndpointMappingElement(
                messages=element.get("messages"),
                endpoint=element.get("endpoint"),
                kind=element.get("kind"),
            )
        )

    return _build_section(section_name, mappings, source)


def _local_name(tag: str) -> str:
    """Strip a ``{namespace}`` prefix from an element tag."""
    return tag.rsplit("}", 1)[-1]


def _child(element: Element, name: str) -> Element | None:
    """First direct child whose tag, ignoring any namespace, is ``name``."""
    for child in element:
        if _local_name(child.tag) == name:
            return child
    return None


def _check_section_declaration(root: Element, section_name: str, source: Path | None) -> None:
    declarations = _child(root, "configSections")
    if declarations is None:
        return
    for declaration in declarations.iter():
        if _local_name(declaration.tag) != "section":
            continue
        if declaration.get("name") != section_name:
            continue
        declared_type = declaration.get("type") or ""
        type_name = declared_type.split(",")[0].strip()
        if type_name.rsplit(".", 1)[-1] != SECTION_TYPE_NAME:
            raise ConfigurationSectionMalformedError(
                section_name,
                f"the section is declared as {declared_type or '(no type)'!r}, "
                f"not as a {SECTION_TYPE_NAME}",
                source,
            )


# ---------------------------------------------------------------------------
# YAML
# ---------------------------------------------------------------------------


def parse_yaml_section(
    data: Any,
    section_name: str = DEFAULT_SECTION_NAME,
    source: Path | None = None,
) -> RoutingConfigurationSection:
    """
    Parse the routing section out of a loaded YAML document.

    Raises:
        ConfigurationSectionMissingError: if the document has no
            ``section_name`` key.
        ConfigurationSectionMalformedError: if the document is not a
            mapping, the section has no ``endpoints`` list, or an entry is
            not a mapping of string values.
    """
    if not isinstance(data, dict):
        raise ConfigurationSectionMalformedError(
            section_name, f"the document is a {type(data).__name__}, expected a mapping", source
        )
    if section_name not in data:
        raise ConfigurationSectionMissingError(section_name, source)

    section = data[section_name]
    if not isinstance(section, dict):
        raise ConfigurationSectionMalformedError(
            section_name, f"the section is a {type(section).__name__}, expected a mapping", source
        )
    endpoints = section.get("endpoints")
    if not isinstance(endpoints, list):
        raise ConfigurationSectionMalformedError(
            section_name, "the 'endpoints' list is missing", source
        )

    mappings = []
    for index, entry in enumerate(endpoints):
        if not isinstance(entry, dict):
            raise ConfigurationSectionMalformedError(
                section_name, f"entry {index} is a {type(entry).__name__}, expected a mapping", source
            )
        unknown = set(entry) - _ENTRY_ATTRIBUTES
        if unknown:
            raise ConfigurationSectionMalformedError(
                section_name, f"unrecognized key(s) {sorted(map(str, unknown))} in entry {index}", source
            )
        for key, value in entry.items():
            if value is not None and not isinstance(value, str):
                raise ConfigurationSectionMalformedError(
                    section_name,
                    f"'{key}' in entry {index} must be a string, got {type(value).__name__}",
                    source,
                )
        mappings.append(
            EndpointMappingElement(
                messages=entry.get("messages"),
                endpoint=entry.get("endpoint"),
                kind=entry.get("kind"),
            )
        )

    return _build_section(section_name, mappings, source)


# ---------------------------------------------------------------------------
# Shared
# ---------------------------------------------------------------------------


def _build_section(
    section_name: str,
    mappings: list[EndpointMappingElement],
    source: Path | None,
) -> RoutingConfigurationSection:
    checksum = compute_checksum(
        {
            "section": section_name,
            "mappings": [[m.messages, m.endpoint, m.kind] for m in mappings],
        }
    )
    return RoutingConfigurationSection(
        name=section_name,
        mappings=tuple(mappings),
        source=source,
        checksum=checksum,
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Postconditions:
        - Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
