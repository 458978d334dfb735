"""
store.py — Order Store Interface and In-Memory Implementation

The Order Store owns every order record. Two interchangeable implementations
exist and one of them is chosen once at startup (see `main.create_store`):

    • InMemoryOrderStore — a lock-guarded list, used when no database is configured
    • SqlOrderStore (sql_store.py) — a relational table accessed through SQLAlchemy

Both enforce the same status state machine:

    PENDING ──────────────► COMPLETED
    PENDING ──────────────► CANCEL_REQUESTED
    PENDING | CANCEL_REQUESTED ──► CANCELLED

COMPLETED and CANCELLED are terminal.
"""

import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from .errors import InvalidTransition, OrderNotFound
from .logging_config import get_logger
from .models import Order, OrderStatus

log = get_logger(__name__)


ALLOWED_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.COMPLETED, OrderStatus.CANCEL_REQUESTED, OrderStatus.CANCELLED},
    OrderStatus.CANCEL_REQUESTED: {OrderStatus.CANCELLED},
    OrderStatus.COMPLETED: set(),
    OrderStatus.CANCELLED: set(),
}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def check_transition(order_id: int, current: OrderStatus, target: OrderStatus):
    """Raises `InvalidTransition` unless `current -> target` is an edge of the state machine."""
    if target not in ALLOWED_TRANSITIONS[current]:
        raise InvalidTransition(order_id, current, target)


def status_changes(new_status: OrderStatus, tracking_number: Optional[str] = None,
                   carrier: Optional[str] = None, reason: Optional[str] = None) -> Dict[str, object]:
    """
    Builds the field updates of a status change, keyed by `Order` field name.

    Tracking details only apply to completion and the reason only to
    cancellation; extras given as None leave the stored value untouched.
    """
    changes: Dict[str, object] = {"status": new_status}
    if new_status == OrderStatus.COMPLETED:
        if tracking_number is not None:
            changes["trackingNumber"] = tracking_number
        if carrier is not None:
            changes["trackingCarrier"] = carrier
    elif new_status in (OrderStatus.CANCEL_REQUESTED, OrderStatus.CANCELLED):
        if reason is not None:
            changes["cancellationReason"] = reason
    return changes


class OrderStore(ABC):
    """Capability set shared by the relational and the in-memory store."""

    kind = "abstract"

    @abstractmethod
    def create(self, quantity: int, buyer_name: str, phone: str, address: str,
               total_amount: str) -> Order:
        """Persists a new PENDING order and returns it with its assigned id."""

    @abstractmethod
    def list_all(self) -> List[Order]:
        """Returns every order, newest first."""

    @abstractmethod
    def set_status(self, order_id: int, new_status: OrderStatus, *,
                   tracking_number: Optional[str] = None, carrier: Optional[str] = None,
                   reason: Optional[str] = None) -> Order:
        """
        Moves an order to `new_status` and returns the updated record.

        Raises:
            OrderNotFound: If no order has this id.
            InvalidTransition: If the state machine forbids the change.
        """

    @abstractmethod
    def delete_one(self, order_id: int) -> None:
        """Raises `OrderNotFound` if no order has this id."""

    @abstractmethod
    def delete_all(self) -> None:
        """Removes every order; the next created order gets id 1."""

    def close(self) -> None:
        pass


class InMemoryOrderStore(OrderStore):
    """
    Keeps orders in a list owned by the instance.

    All reads and writes hold `_lock`, so ids are never handed out twice and
    no update is lost when requests run on several threads.
    """

    kind = "memory"

    def __init__(self, product_name: str, clock: Callable[[], datetime] = utcnow):
        self.product_name = product_name
        self._clock = clock
        self._orders: List[Order] = []
        self._next_id = 1
        self._lock = threading.Lock()

    def _find(self, order_id: int) -> int:
        for index, order in enumerate(self._orders):
            if order.id == order_id:
                return index
        raise OrderNotFound(order_id)

    def create(self, quantity, buyer_name, phone, address, total_amount):
        with self._lock:
            order = Order(
                id=self._next_id,
                productName=self.product_name,
                quantity=quantity,
                buyerName=buyer_name,
                phone=phone,
                address=address,
                totalAmount=total_amount,
                status=OrderStatus.PENDING,
                orderDate=self._clock(),
            )
            self._next_id += 1
            self._orders.append(order)
        log.debug(f"[Order: {order.id}] Stored in memory.")
        return order.model_copy()

    def list_all(self):
        with self._lock:
            orders = [order.model_copy() for order in self._orders]
        return sorted(orders, key=lambda o: (o.orderDate, o.id), reverse=True)

    def set_status(self, order_id, new_status, *, tracking_number=None, carrier=None, reason=None):
        with self._lock:
            index = self._find(order_id)
            current = self._orders[index]
            check_transition(order_id, current.status, new_status)
            updated = current.model_copy(
                update=status_changes(new_status, tracking_number, carrier, reason)
            )
            self._orders[index] = updated
        return updated.model_copy()

    def delete_one(self, order_id):
        with self._lock:
            del self._orders[self._find(order_id)]

    def delete_all(self):
        with self._lock:
            self._orders.clear()
            self._next_id = 1
