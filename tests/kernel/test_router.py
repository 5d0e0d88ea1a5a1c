"""Tests for the type-based routing table (routing_kernel/router.py)."""

import pytest

from routing_kernel.exceptions import RouteNotFoundError
from routing_kernel.router import RouterConfigurer, TypeBasedRouter, TypeBasedRouterBuilder


class OrderPlaced:
    pass


class OrderShipped:
    pass


class TestTypeBasedRouter:
    def test_routes_by_exact_class(self):
        router = TypeBasedRouter()
        router.map(OrderPlaced, "orders")
        assert router.get_destination_address(OrderPlaced()) == "orders"
        assert len(router) == 1

    def test_last_write_wins(self):
        router = TypeBasedRouter()
        router.map(OrderPlaced, "orders")
        router.map(OrderPlaced, "special")
        assert router.get_destination_address(OrderPlaced()) == "special"
        assert len(router) == 1

    def test_unmapped_type(self):
        with pytest.raises(RouteNotFoundError) as exc_info:
            TypeBasedRouter().get_destination_address(OrderShipped())
        assert exc_info.value.code == "ROUTE_NOT_FOUND"
        assert exc_info.value.message_type is OrderShipped
        assert "OrderShipped" in str(exc_info.value)

    def test_mappings_view_is_read_only(self):
        router = TypeBasedRouter()
        router.map(OrderPlaced, "orders")
        with pytest.raises(TypeError):
            router.mappings[OrderShipped] = "x"


class TestBuilder:
    def test_map_is_chainable(self):
        builder = TypeBasedRouterBuilder()
        assert builder.map(OrderPlaced, "orders").map(OrderShipped, "shipping") is builder
        assert dict(builder.router.mappings) == {OrderPlaced: "orders", OrderShipped: "shipping"}

    def test_wraps_existing_router(self):
        router = TypeBasedRouter()
        TypeBasedRouterBuilder(router).map(OrderPlaced, "orders")
        assert router.get_destination_address(OrderPlaced()) == "orders"


class TestRouterConfigurer:
    def test_factory_runs_once(self):
        calls = []

        def factory():
            calls.append(1)
            return TypeBasedRouter()

        configurer = RouterConfigurer()
        configurer.register(factory)
        assert configurer.is_registered
        assert calls == []
        first = configurer.get_router()
        assert configurer.get_router() is first
        assert calls == [1]

    def test_nothing_registered(self):
        with pytest.raises(LookupError):
            RouterConfigurer().get_router()
