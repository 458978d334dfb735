"""
sql_store.py — Relational Order Store

Persists orders in a single `orders` table through SQLAlchemy. Every store
call runs in its own short transaction; connection handling is left to the
engine's pool. Any SQLAlchemy error is logged and re-raised as `StorageError`
without retrying.
"""

from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, Integer, String, Text, create_engine, delete, func, select, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, sessionmaker

from .errors import OrderNotFound, StorageError
from .logging_config import get_logger
from .models import Order, OrderStatus
from .store import OrderStore, check_transition, status_changes, utcnow

log = get_logger(__name__)


class Base(DeclarativeBase):
    pass


class OrderRow(Base):
    __tablename__ = "orders"
    # ids of deleted rows must not come back on SQLite
    __table_args__ = {"sqlite_autoincrement": True}

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    product_name: Mapped[str] = mapped_column(String(200))
    quantity: Mapped[int] = mapped_column(Integer)
    buyer_name: Mapped[str] = mapped_column(String(100))
    phone: Mapped[str] = mapped_column(String(50))
    address: Mapped[str] = mapped_column(Text)
    total_amount: Mapped[str] = mapped_column(String(50))
    status: Mapped[str] = mapped_column(String(20), server_default=OrderStatus.PENDING.value)
    tracking_number: Mapped[Optional[str]] = mapped_column(String(100))
    tracking_carrier: Mapped[Optional[str]] = mapped_column(String(100))
    cancellation_reason: Mapped[Optional[str]] = mapped_column(Text)
    order_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    def to_order(self) -> Order:
        order_date = self.order_date
        # SQLite drops the offset; stored values are always UTC
        if order_date is not None and order_date.tzinfo is None:
            order_date = order_date.replace(tzinfo=timezone.utc)
        return Order(
            id=self.id,
            productName=self.product_name,
            quantity=self.quantity,
            buyerName=self.buyer_name,
            phone=self.phone,
            address=self.address,
            totalAmount=self.total_amount,
            status=OrderStatus(self.status),
            trackingNumber=self.tracking_number,
            trackingCarrier=self.tracking_carrier,
            cancellationReason=self.cancellation_reason,
            orderDate=order_date,
        )


# Order field name -> OrderRow attribute
COLUMNS = {
    "status": "status",
    "trackingNumber": "tracking_number",
    "trackingCarrier": "tracking_carrier",
    "cancellationReason": "cancellation_reason",
}


class SqlOrderStore(OrderStore):
    """
    Order Store backed by a relational database.

    Args:
        database_url (str): SQLAlchemy URL, ignored when `engine` is given.
        product_name (str): Product name stamped on new orders.
        engine (Engine, optional): A ready engine, mainly for tests.

    Raises:
        StorageError: If the database cannot be reached or the table cannot be created.
    """

    kind = "sql"

    def __init__(self, database_url: Optional[str], product_name: str, engine: Optional[Engine] = None):
        self.product_name = product_name
        try:
            self.engine = engine if engine is not None else create_engine(database_url, pool_pre_ping=True)
            Base.metadata.create_all(self.engine)
        except SQLAlchemyError as e:
            log.critical(f"Database initialization failed: {e}")
            raise StorageError(str(e)) from e
        self._sessions = sessionmaker(bind=self.engine, expire_on_commit=False)
        log.info(f"Order table ready ({self.engine.dialect.name}).")

    @contextmanager
    def _transaction(self):
        try:
            with self._sessions.begin() as session:
                yield session
        except SQLAlchemyError as e:
            log.error(f"Database error: {e}")
            raise StorageError(str(e)) from e

    def _get(self, session, order_id: int) -> OrderRow:
        row = session.get(OrderRow, order_id)
        if row is None:
            raise OrderNotFound(order_id)
        return row

    def create(self, quantity, buyer_name, phone, address, total_amount):
        with self._transaction() as session:
            row = OrderRow(
                product_name=self.product_name,
                quantity=quantity,
                buyer_name=buyer_name,
                phone=phone,
                address=address,
                total_amount=total_amount,
                status=OrderStatus.PENDING.value,
                order_date=utcnow(),
            )
            session.add(row)
            session.flush()
            order = row.to_order()
        log.debug(f"[Order: {order.id}] Inserted into orders table.")
        return order

    def list_all(self):
        with self._transaction() as session:
            rows = session.scalars(
                select(OrderRow).order_by(OrderRow.order_date.desc(), OrderRow.id.desc())
            ).all()
            return [row.to_order() for row in rows]

    def set_status(self, order_id, new_status, *, tracking_number=None, carrier=None, reason=None):
        with self._transaction() as session:
            row = self._get(session, order_id)
            check_transition(order_id, OrderStatus(row.status), new_status)
            for field, value in status_changes(new_status, tracking_number, carrier, reason).items():
                if isinstance(value, OrderStatus):
                    value = value.value
                setattr(row, COLUMNS[field], value)
            session.flush()
            return row.to_order()

    def delete_one(self, order_id):
        with self._transaction() as session:
            session.delete(self._get(session, order_id))

    def delete_all(self):
        dialect = self.engine.dialect.name
        with self._transaction() as session:
            if dialect == "postgresql":
                session.execute(text("TRUNCATE TABLE orders RESTART IDENTITY"))
                return
            session.execute(delete(OrderRow))
            if dialect == "sqlite":
                session.execute(text("DELETE FROM sqlite_sequence WHERE name = 'orders'"))
            elif dialect in ("mysql", "mariadb"):
                session.execute(text("ALTER TABLE orders AUTO_INCREMENT = 1"))

    def close(self):
        self.engine.dispose()
