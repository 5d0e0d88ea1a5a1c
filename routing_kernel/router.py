"""
Type-based routing table.

Minimal rendition of the bus's type-based router: a table from message
class to endpoint name, filled through ``map`` and queried by the
dispatch layer.  ``TypeBasedRouterBuilder`` is the builder-style
registration surface and ``RouterConfigurer`` accepts a router factory,
the way the bus registers components.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from types import MappingProxyType

from routing_kernel.exceptions import RouteNotFoundError
from routing_kernel.logging_config import get_logger

logger = get_logger("router")


class TypeBasedRouter:
    """
    Routes messages by their exact class.

    Registering the same class twice keeps the last endpoint.
    """

    def __init__(self):
        self._endpoints: dict[type, str] = {}

    def map(self, message_type: type, endpoint: str) -> None:
        """Route ``message_type`` to ``endpoint``, replacing any earlier mapping."""
        previous = self._endpoints.get(message_type)
        self._endpoints[message_type] = endpoint
        if previous is not None and previous != endpoint:
            logger.debug(
                "endpoint_mapping_replaced",
                extra={"message_type": message_type, "previous": previous, "endpoint": endpoint},
            )

    def get_destination_address(self, message: object) -> str:
        """Return the endpoint for ``message``.

        Raises:
            RouteNotFoundError: if no endpoint is mapped for its class.
        """
        message_type = type(message)
        try:
            return self._endpoints[message_type]
        except KeyError:
            raise RouteNotFoundError(message_type) from None

    @property
    def mappings(self) -> Mapping[type, str]:
        return MappingProxyType(self._endpoints)

    def __len__(self) -> int:
        return len(self._endpoints)


class TypeBasedRouterBuilder:
    """Builder-style registration of explicit routes on a router."""

    def __init__(self, router: TypeBasedRouter | None = None):
        self._router = router if router is not None else TypeBasedRouter()

    def map(self, message_type: type, endpoint: str) -> TypeBasedRouterBuilder:
        self._router.map(message_type, endpoint)
        return self

    @property
    def router(self) -> TypeBasedRouter:
        return self._router


RouterFactory = Callable[[], TypeBasedRouter]


class RouterConfigurer:
    """Holds the factory that builds the bus's router.

    The factory runs on the first ``get_router()`` call and the router is
    reused afterwards.  Registering again replaces the factory.
    """

    def __init__(self):
        self._factory: RouterFactory | None = None
        self._router: TypeBasedRouter | None = None

    def register(self, factory: RouterFactory) -> None:
        self._factory = factory
        self._router = None

    @property
    def is_registered(self) -> bool:
        return self._factory is not None

    def get_router(self) -> TypeBasedRouter:
        if self._factory is None:
            raise LookupError("No router factory has been registered")
        if self._router is None:
            self._router = self._factory()
        return self._router
