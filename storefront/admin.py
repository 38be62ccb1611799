import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Dict, List, Optional, Tuple, Union

from storefront.client import BackendClient
from storefront.schemas import Order, OrderStatus
from storefront.state import AppState
from storefront.utils import AppException, UnauthorizedException, describe_error

logger = logging.getLogger(__name__)

ALL = "ALL"

# Transitions the console offers per status. The backend decides what is valid.
NEXT_STATUSES: Dict[OrderStatus, Tuple[OrderStatus, ...]] = {
    OrderStatus.PENDING: (OrderStatus.CONFIRMED, OrderStatus.CANCELLED),
    OrderStatus.CONFIRMED: (OrderStatus.SHIPPED, OrderStatus.CANCELLED),
    OrderStatus.SHIPPED: (OrderStatus.DELIVERED,),
    OrderStatus.DELIVERED: (),
    OrderStatus.CANCELLED: (),
    OrderStatus.FAILED: (OrderStatus.PENDING,),
}

REVENUE_STATUSES = {OrderStatus.CONFIRMED, OrderStatus.SHIPPED, OrderStatus.DELIVERED}


@dataclass(frozen=True)
class OrderStats:
    total: int
    pending: int
    confirmed: int
    shipped: int
    delivered: int
    revenue: Decimal


def offered_transitions(status: OrderStatus) -> Tuple[OrderStatus, ...]:
    return NEXT_STATUSES.get(status, ())


def full_address(order: Order) -> str:
    parts = [
        order.shipping_address,
        order.shipping_city,
        order.shipping_state,
        order.shipping_pincode,
        order.shipping_country,
    ]
    parts = [p for p in parts if p]
    return ", ".join(parts) if parts else "Address not available"


def compute_stats(orders: List[Order]) -> OrderStats:
    def count(status):
        return sum(1 for o in orders if o.status == status)

    revenue = sum((o.total_amount for o in orders if o.status in REVENUE_STATUSES), Decimal(0))
    return OrderStats(
        total=len(orders),
        pending=count(OrderStatus.PENDING),
        confirmed=count(OrderStatus.CONFIRMED),
        shipped=count(OrderStatus.SHIPPED),
        delivered=count(OrderStatus.DELIVERED),
        revenue=revenue,
    )


class OrderAdminConsole:
    """
    Order list for store operators.

    Works on the last fetched snapshot; every change is sent to the backend
    and followed by a full refetch rather than an optimistic update.
    """

    def __init__(self, state: AppState, client: BackendClient):
        self.state = state
        self.client = client
        self.orders: List[Order] = []
        self.loading = False

    async def refresh(self) -> List[Order]:
        self.loading = True
        try:
            orders = await self.client.get_orders()
            self.orders = sorted(orders, key=lambda o: o.created_at, reverse=True)
        except UnauthorizedException:
            # Token already dropped and login route set by the client
            logger.warning("Admin session rejected while fetching orders")
        except AppException as exc:
            logger.error("Error fetching orders", exc_info=True)
            self.state.notifier.error(describe_error(exc, "Error loading orders. Please try again."))
        finally:
            self.loading = False
        return self.orders

    def list(self, filter: Union[str, OrderStatus] = ALL, search_text: str = "") -> List[Order]:
        query = search_text.lower()

        def matches(order: Order) -> bool:
            if filter != ALL and order.status != filter:
                return False
            if not query:
                return True
            return any(
                query in (value or "").lower()
                for value in (order.order_number, order.customer_name, order.customer_email)
            )

        return [o for o in self.orders if matches(o)]

    def stats(self) -> OrderStats:
        return compute_stats(self.orders)

    def recent(self, limit: Optional[int] = None) -> List[Order]:
        return self.orders[: limit or self.state.settings.RECENT_ORDERS_LIMIT]

    async def update_status(self, order_id: int, new_status: Union[str, OrderStatus]) -> bool:
        new_status = OrderStatus(new_status)
        try:
            await self.client.update_order_status(order_id, new_status)
        except AppException as exc:
            logger.error("Error updating order %s", order_id, exc_info=True)
            self.state.notifier.error(describe_error(exc, "Failed to update order status"))
            return False

        await self.refresh()
        self.state.notifier.success(f"Order status updated to {new_status.value}")
        return True

    async def delete_order(self, order_id: int, order_number: str, confirm: Callable[[str], bool]) -> bool:
        prompt = (
            f"Are you sure you want to permanently delete order {order_number}?\n\n"
            "This action cannot be undone!"
        )
        if not confirm(prompt):
            return False
        try:
            await self.client.delete_order(order_id)
        except AppException as exc:
            logger.error("Error deleting order %s", order_id, exc_info=True)
            self.state.notifier.error(describe_error(exc, "Failed to delete order. Please try again."))
            return False

        self.state.notifier.success(f"Order {order_number} deleted successfully")
        await self.refresh()
        return True
