"""
Type loader -- turns assembly and type names into live classes.

An *assembly* is an importable module or package, named by its dotted
import path.  A *qualified type name* has the form::

    pkg.module.ClassName, pkg.module, Version=1.2.0

i.e. the dotted type name, then optionally the assembly it lives in and
``Key=Value`` attributes.  ``+`` separates nested types
(``pkg.module.Outer+Inner``) and is read as ``.``.

Only ``Version`` is checked (against the assembly's ``__version__``);
other attributes such as ``Culture`` or ``PublicKeyToken`` are accepted
and ignored.
"""

from __future__ import annotations

import functools
import importlib
import pkgutil
import sys
from dataclasses import dataclass
from types import ModuleType

from routing_kernel.exceptions import AssemblyLoadError, TypeResolutionError
from routing_kernel.logging_config import get_logger

logger = get_logger("type_loader")


@dataclass(frozen=True)
class QualifiedTypeName:
    """A parsed qualified type name."""

    raw: str
    type_name: str
    assembly: str | None = None
    attributes: tuple[tuple[str, str], ...] = ()

    @property
    def version(self) -> str | None:
        for key, value in self.attributes:
            if key.lower() == "version":
                return value
        return None


def parse_qualified_type_name(raw: str) -> QualifiedTypeName:
    """
    Split a qualified type name into its parts.

    Raises:
        ValueError: if the type name or assembly is empty or contains empty
            dotted segments, or an attribute is not ``Key=Value``.
    """
    parts = [p.strip() for p in raw.split(",")]
    type_name = parts[0].replace("+", ".")
    _check_dotted(type_name, "type name")

    assembly = None
    if len(parts) > 1:
        assembly = parts[1]
        _check_dotted(assembly, "assembly name")

    attributes = []
    for part in parts[2:]:
        key, sep, value = part.partition("=")
        if not sep or not key.strip():
            raise ValueError(f"Expected Key=Value after the assembly name, got {part!r}")
        attributes.append((key.strip(), value.strip()))

    return QualifiedTypeName(
        raw=raw,
        type_name=type_name,
        assembly=assembly,
        attributes=tuple(attributes),
    )


def _check_dotted(name: str, what: str) -> None:
    if not name:
        raise ValueError(f"The {what} is empty")
    if any(not segment for segment in name.split(".")):
        raise ValueError(f"The {what} {name!r} contains an empty segment")


def _belongs_to(module_name: str, assembly_name: str) -> bool:
    return module_name == assembly_name or module_name.startswith(f"{assembly_name}.")


class TypeLoader:
    """Imports assemblies, enumerates their classes and resolves type names."""

    def load_assembly(self, assembly_name: str) -> ModuleType:
        """Import the assembly module.

        Raises:
            AssemblyLoadError: on any import failure.
        """
        try:
            return importlib.import_module(assembly_name)
        except Exception as exc:
            raise AssemblyLoadError(assembly_name, exc) from exc

    def enumerate_types(self, assembly: ModuleType) -> list[type]:
        """Return every class defined in the assembly.

        For a package this includes all submodules, recursively.  Modules
        are visited in dotted-name order and classes in definition order,
        each nested class directly after its enclosing class.  Classes that
        a module merely imports are skipped, and so are ``__main__``
        submodules, which are never imported.

        Raises:
            AssemblyLoadError: if a submodule fails to import.
        """
        modules = [assembly]
        for name in self._submodule_names(assembly):
            try:
                modules.append(importlib.import_module(name))
            except Exception as exc:
                raise AssemblyLoadError(assembly.__name__, exc) from exc

        types: list[type] = []
        seen: set[int] = set()
        for module in modules:
            self._collect_classes(module, module, "", types, seen)

        logger.debug(
            "assembly_enumerated",
            extra={
                "assembly": assembly.__name__,
                "module_count": len(modules),
                "type_count": len(types),
            },
        )
        return types

    def resolve_type(self, qualified_name: str) -> type:
        """Resolve a qualified type name to a class.

        Raises:
            TypeResolutionError: naming ``qualified_name`` exactly, whenever
                the name is unparsable, the assembly cannot be imported, the
                version does not match, the type is absent or not a class,
                or the class lives outside the named assembly.
        """
        try:
            parsed = parse_qualified_type_name(qualified_name)
        except ValueError as exc:
            raise TypeResolutionError(qualified_name, exc) from exc

        assembly = None
        if parsed.assembly is not None:
            try:
                assembly = importlib.import_module(parsed.assembly)
            except Exception as exc:
                raise TypeResolutionError(qualified_name, exc) from exc
            self._check_version(parsed, assembly)

        try:
            found = self._locate(parsed.type_name)
            if found is None and assembly is not None:
                found = self._getattr_path(assembly, parsed.type_name.split("."))
        except Exception as exc:
            raise TypeResolutionError(qualified_name, exc) from exc

        if found is None:
            raise TypeResolutionError(qualified_name)
        if not isinstance(found, type):
            raise TypeResolutionError(
                qualified_name, f"{parsed.type_name} is a {type(found).__name__}, not a class"
            )
        if parsed.assembly is not None and not _belongs_to(found.__module__, parsed.assembly):
            raise TypeResolutionError(
                qualified_name,
                f"{parsed.type_name} is defined in {found.__module__}, "
                f"outside assembly {parsed.assembly}",
            )
        return found

    # ------------------------------------------------------------------

    def _submodule_names(self, assembly: ModuleType) -> list[str]:
        path = getattr(assembly, "__path__", None)
        if path is None:
            return []

        def _onerror(name: str) -> None:
            exc = sys.exc_info()[1]
            raise AssemblyLoadError(assembly.__name__, exc or f"cannot import {name}")

        names = {
            info.name
            for info in pkgutil.walk_packages(path, prefix=f"{assembly.__name__}.", onerror=_onerror)
            # __main__ modules run a program on import
            if info.name.rsplit(".", 1)[-1] != "__main__"
        }
        return sorted(names)

    def _collect_classes(
        self,
        module: ModuleType,
        namespace: object,
        qualprefix: str,
        out: list[type],
        seen: set[int],
    ) -> None:
        for value in list(vars(namespace).values()):
            if not isinstance(value, type) or id(value) in seen:
                continue
            if value.__module__ != module.__name__:
                continue
            if value.__qualname__ != f"{qualprefix}{value.__name__}":
                continue
            seen.add(id(value))
            out.append(value)
            self._collect_classes(module, value, f"{value.__qualname__}.", out, seen)

    def _locate(self, dotted: str) -> object | None:
        parts = dotted.split(".")
        for i in range(len(parts), 0, -1):
            module_name = ".".join(parts[:i])
            try:
                module = importlib.import_module(module_name)
            except ModuleNotFoundError as exc:
                # A missing dependency inside an existing module is a real failure.
                if exc.name is not None and not _belongs_to(module_name, exc.name):
                    raise
                continue
            return self._getattr_path(module, parts[i:])
        return None

    @staticmethod
    def _getattr_path(obj: object, path: list[str]) -> object | None:
        try:
            return functools.reduce(getattr, path, obj)
        except AttributeError:
            return None

    @staticmethod
    def _check_version(parsed: QualifiedTypeName, assembly: ModuleType) -> None:
        required = parsed.version
        if required is None:
            return
        actual = getattr(assembly, "__version__", None)
        if actual is None or str(actual) != required:
            raise TypeResolutionError(
                parsed.raw,
                f"assembly {parsed.assembly} has version {actual!r}, "
                f"version {required!r} was requested",
            )
