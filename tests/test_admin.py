from decimal import Decimal

import pytest
import pytest_asyncio

from storefront.admin import ALL, OrderAdminConsole, full_address, offered_transitions
from storefront.schemas import OrderStatus
from storefront.state import ADMIN_LOGIN, Level


@pytest.fixture
def seeded(backend):
    backend.add_order(id=1, status="PENDING", created_at="2024-05-01T10:00:00", totalAmount=100.0,
                      customerName="Ravi Kumar", customerEmail="ravi@example.com")
    backend.add_order(id=2, status="CONFIRMED", created_at="2024-05-03T10:00:00", totalAmount=200.0)
    backend.add_order(id=3, status="SHIPPED", created_at="2024-05-02T10:00:00", totalAmount=300.0)
    backend.add_order(id=4, status="DELIVERED", created_at="2024-05-05T10:00:00", totalAmount=400.0)
    backend.add_order(id=5, status="CANCELLED", created_at="2024-05-04T10:00:00", totalAmount=500.0)
    backend.add_order(id=6, status="FAILED", created_at="2024-05-06T10:00:00", totalAmount=600.0)
    backend.add_order(id=7, status="PENDING", created_at="2024-05-07T10:00:00", totalAmount=700.0,
                      orderNumber="ORD-SPECIAL")
    return backend


@pytest_asyncio.fixture
async def console(state, client, admin_token, seeded):
    console = OrderAdminConsole(state, client)
    await console.refresh()
    return console


async def test_refresh_sorts_most_recent_first(console):
    assert [o.id for o in console.orders] == [7, 6, 4, 5, 2, 3, 1]


async def test_all_filter_returns_full_snapshot(console):
    assert console.list(ALL) == console.orders


async def test_status_filter_returns_exact_subset_in_order(console):
    pending = console.list(OrderStatus.PENDING)

    assert [o.id for o in pending] == [7, 1]
    assert all(o.status == OrderStatus.PENDING for o in pending)
    assert [o.id for o in console.list("CONFIRMED")] == [2]


async def test_search_matches_number_name_or_email(console):
    assert [o.id for o in console.list(search_text="ord-special")] == [7]
    assert [o.id for o in console.list(search_text="RAVI")] == [1]
    assert [o.id for o in console.list(search_text="ravi@EXAMPLE")] == [1]
    assert console.list(OrderStatus.SHIPPED, "ravi") == []


async def test_revenue_counts_confirmed_shipped_delivered_only(console):
    stats = console.stats()

    assert stats.total == 7
    assert stats.pending == 2
    assert stats.confirmed == 1
    assert stats.shipped == 1
    assert stats.delivered == 1
    assert stats.revenue == Decimal("900")


async def test_recent_defaults_to_five(console):
    assert [o.id for o in console.recent()] == [7, 6, 4, 5, 2]
    assert [o.id for o in console.recent(2)] == [7, 6]


def test_offered_transitions_table():
    assert offered_transitions(OrderStatus.PENDING) == (OrderStatus.CONFIRMED, OrderStatus.CANCELLED)
    assert offered_transitions(OrderStatus.CONFIRMED) == (OrderStatus.SHIPPED, OrderStatus.CANCELLED)
    assert offered_transitions(OrderStatus.SHIPPED) == (OrderStatus.DELIVERED,)
    assert offered_transitions(OrderStatus.DELIVERED) == ()
    assert offered_transitions(OrderStatus.CANCELLED) == ()
    assert offered_transitions(OrderStatus.FAILED) == (OrderStatus.PENDING,)


async def test_update_status_sends_and_refetches(console, backend, state):
    backend.orders[3]["status"] = "DELIVERED"  # changed elsewhere meanwhile

    assert await console.update_status(1, "CONFIRMED") is True

    assert backend.status_updates == [(1, "CONFIRMED")]
    by_id = {o.id: o for o in console.orders}
    assert by_id[1].status == OrderStatus.CONFIRMED
    assert by_id[3].status == OrderStatus.DELIVERED
    assert state.notifier.last.message == "Order status updated to CONFIRMED"


async def test_update_status_does_not_police_transitions(console, backend):
    assert await console.update_status(4, OrderStatus.PENDING) is True
    assert backend.status_updates == [(4, "PENDING")]


async def test_update_status_failure_keeps_snapshot(console, backend, state):
    backend.fail("order-status", 500)

    assert await console.update_status(1, "CONFIRMED") is False

    assert {o.id: o for o in console.orders}[1].status == OrderStatus.PENDING
    assert state.notifier.last.level == Level.ERROR
    assert state.notifier.last.message == "Failed to update order status"


async def test_delete_requires_confirmation(console, backend):
    prompts = []

    def decline(message):
        prompts.append(message)
        return False

    assert await console.delete_order(2, "ORD-0002", decline) is False
    assert 2 in backend.orders
    assert "ORD-0002" in prompts[0]


async def test_delete_removes_and_refetches(console, backend, state):
    assert await console.delete_order(2, "ORD-0002", lambda _: True) is True

    assert 2 not in backend.orders
    assert 2 not in [o.id for o in console.orders]
    assert state.notifier.last.message == "Order ORD-0002 deleted successfully"


async def test_refresh_without_token_redirects_to_login(state, client, seeded):
    console = OrderAdminConsole(state, client)

    await console.refresh()

    assert console.orders == []
    assert state.navigator.location == ADMIN_LOGIN


async def test_rejected_token_is_discarded(state, client, seeded):
    state.set_token("not-a-real-token")
    console = OrderAdminConsole(state, client)

    await console.refresh()

    assert state.token is None
    assert state.navigator.location == ADMIN_LOGIN


async def test_refresh_failure_is_reported(state, client, admin_token, backend):
    backend.fail("orders", 503, {"error": "Database offline"})
    console = OrderAdminConsole(state, client)

    await console.refresh()

    assert state.notifier.last.message == "Database offline"


async def test_full_address(console):
    order = console.orders[0]
    assert full_address(order) == "12 MG Road, Mumbai, Maharashtra, 400001, India"

    bare = order.model_copy(update={
        "shipping_address": None, "shipping_city": None, "shipping_state": None,
        "shipping_pincode": None, "shipping_country": None,
    })
    assert full_address(bare) == "Address not available"
