"""
Pytest fixtures for the routing test suite.

Provides:
- A generated set of message modules on a temporary ``sys.path`` entry,
  used as the assemblies the resolver imports and enumerates
- Logging state reset between tests
- Helpers to write configuration files
"""

import sys
import textwrap
from pathlib import Path

import pytest

from routing_kernel.logging_config import LogContext, reset_logging

# Modules written by the ``message_modules`` fixture.
MESSAGE_SOURCES: dict[str, str] = {
    "shipping_messages/__init__.py": '''
        __version__ = "1.2.0"


        class ShipmentRequested:
            pass


        class ShipmentCancelled:
            class Reason:
                pass
    ''',
    "shipping_messages/orders.py": '''
        from shipping_messages import ShipmentRequested

        DEFAULT_PRIORITY = 3


        class OrderPlaced:
            pass


        class OrderCancelled:
            pass


        def make_order():
            return OrderPlaced()
    ''',
    "shipping_messages/special.py": '''
        class SpecialType:
            pass


        special_instance = SpecialType()
    ''',
    "billing_messages.py": '''
        class InvoiceIssued:
            pass


        class InvoicePaid:
            pass
    ''',
    "broken_messages/__init__.py": '''
        class Fine:
            pass
    ''',
    "broken_messages/bad.py": '''
        import routing_tests_missing_dependency


        class NeverLoaded:
            pass
    ''',
    "cli_messages/__init__.py": '''
        class CommandIssued:
            pass
    ''',
    "cli_messages/__main__.py": '''
        import sys


        class NeverRegistered:
            pass


        sys.exit(2)
    ''',
}

SHIPPING_QUALNAMES = [
    "ShipmentRequested",
    "ShipmentCancelled",
    "ShipmentCancelled.Reason",
    "OrderPlaced",
    "OrderCancelled",
    "SpecialType",
]

_TOP_LEVEL = ("shipping_messages", "billing_messages", "broken_messages", "cli_messages")


def _purge_message_modules() -> None:
    for name in list(sys.modules):
        if name.split(".")[0] in _TOP_LEVEL:
            del sys.modules[name]


@pytest.fixture(autouse=True)
def _clean_logging():
    """Reset logging state between tests."""
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()


@pytest.fixture
def message_modules(tmp_path, monkeypatch) -> Path:
    """Write the message modules and make them importable."""
    root = tmp_path / "messages"
    for relative, source in MESSAGE_SOURCES.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(textwrap.dedent(source).lstrip())
    _purge_message_modules()
    monkeypatch.syspath_prepend(str(root))
    yield root
    _purge_message_modules()


@pytest.fixture
def write_config(tmp_path):
    """Write a configuration file and return its path."""

    def _write(name: str, content: str) -> Path:
        path = tmp_path / name
        path.write_text(textwrap.dedent(content).lstrip())
        return path

    return _write


class RecordingSink:
    """Sink that records every registration in call order."""

    def __init__(self, fail_on: str | None = None):
        self.calls: list[tuple[type, str]] = []
        self._fail_on = fail_on

    def __call__(self, message_type: type, endpoint: str) -> None:
        if self._fail_on is not None and message_type.__qualname__ == self._fail_on:
            raise RuntimeError(f"sink refused {message_type.__qualname__}")
        self.calls.append((message_type, endpoint))

    @property
    def table(self) -> dict[str, str]:
        """Last-write-wins view keyed by qualname."""
        out: dict[str, str] = {}
        for message_type, endpoint in self.calls:
            out[message_type.__qualname__] = endpoint
        return out


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def make_sink():
    """Build a ``RecordingSink``, optionally failing on one qualname."""
    return RecordingSink


@pytest.fixture
def shipping_qualnames() -> list[str]:
    return list(SHIPPING_QUALNAMES)
