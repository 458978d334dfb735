"""
main.py — FastAPI Entry Point for the Order Intake Service

This module provides the REST API behind the order form and the admin page.

Responsibilities:
    • Accept order submissions and validate the presence of required fields
    • List orders and move them through their lifecycle (complete, cancel-request, cancel)
    • Delete single orders or all of them
    • Choose the Order Store once at startup and hand it to every request
    • Serve the static order form and admin page
"""

from pathlib import Path
from typing import List, Optional

import uvicorn
from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from .config import Settings, load_settings
from .errors import InvalidRequest, OrderIntakeError, OrderNotFound, StorageError, ValidationError
from .logging_config import get_logger, setup_logging
from .models import CancelOrderRequest, CompleteOrderRequest, NewOrderRequest, Order, OrderStatus
from .sql_store import SqlOrderStore
from .store import InMemoryOrderStore, OrderStore

log = get_logger(__name__)

PUBLIC_DIR = Path(__file__).parent / "public"

router = APIRouter()


def create_store(settings: Settings) -> OrderStore:
    """
    Selects the Order Store for the lifetime of the process.

    Without DATABASE_URL the in-memory store is used. If the database cannot
    be initialized, startup aborts with `StorageError` unless
    STORAGE_FALLBACK_TO_MEMORY is enabled.
    """
    if not settings.database_url:
        log.info("DATABASE_URL not set. Orders are kept in memory only.")
        return InMemoryOrderStore(settings.product_name)

    try:
        return SqlOrderStore(settings.database_url, settings.product_name)
    except StorageError:
        if not settings.storage_fallback_to_memory:
            raise
        log.warning("Database unavailable. Falling back to the in-memory order store.")
        return InMemoryOrderStore(settings.product_name)


def get_store(request: Request) -> OrderStore:
    return request.app.state.store


def _change_status(store: OrderStore, order_id: int, status: OrderStatus, **extras) -> Order:
    order = store.set_status(order_id, status, **extras)
    log.info(f"[Order: {order_id}] Status changed to {order.status.value}.")
    return order


# API Endpoints: order form / admin page → Order Store
@router.post("/api/orders", status_code=201, response_model=Order)
def submit_order(payload: NewOrderRequest, store: OrderStore = Depends(get_store)):
    """
    Receives a new order from the order form.

    Returns:
        Order: The stored order with id, PENDING status and order date.

    Raises:
        ValidationError (400): If quantity, name, phone, address or totalAmount is missing.
        StorageError (500): If the order could not be stored.
    """
    missing = payload.missing_fields()
    if missing:
        log.warning(f"Order submission rejected. Missing fields: {', '.join(missing)}")
        raise ValidationError()

    order = store.create(
        quantity=payload.quantity,
        buyer_name=payload.name,
        phone=payload.phone,
        address=payload.address,
        total_amount=payload.totalAmount,
    )
    log.info(f"[Order: {order.id}] New order received ({order.quantity} x {order.productName}).")
    return order


@router.get("/api/orders", response_model=List[Order])
def list_orders(store: OrderStore = Depends(get_store)):
    """Returns all orders, newest first."""
    orders = store.list_all()
    log.info(f"Listing {len(orders)} orders.")
    return orders


@router.patch("/api/orders/{order_id}/complete", response_model=Order)
def complete_order(order_id: int, payload: Optional[CompleteOrderRequest] = None,
                   store: OrderStore = Depends(get_store)):
    """Marks an order as shipped, optionally recording tracking number and carrier."""
    payload = payload or CompleteOrderRequest()
    return _change_status(store, order_id, OrderStatus.COMPLETED,
                          tracking_number=payload.trackingNumber, carrier=payload.carrier)


@router.patch("/api/orders/{order_id}/cancel-request", response_model=Order)
def request_cancellation(order_id: int, payload: Optional[CancelOrderRequest] = None,
                         store: OrderStore = Depends(get_store)):
    """The buyer asks for cancellation; an operator confirms it via /cancel."""
    payload = payload or CancelOrderRequest()
    return _change_status(store, order_id, OrderStatus.CANCEL_REQUESTED, reason=payload.reason)


@router.patch("/api/orders/{order_id}/cancel", response_model=Order)
def cancel_order(order_id: int, payload: Optional[CancelOrderRequest] = None,
                 store: OrderStore = Depends(get_store)):
    """Cancels an order directly, with or without a prior cancellation request."""
    payload = payload or CancelOrderRequest()
    return _change_status(store, order_id, OrderStatus.CANCELLED, reason=payload.reason)


# Registered before /{order_id} so that "all" is never parsed as an id
@router.delete("/api/orders/all")
def delete_all_orders(store: OrderStore = Depends(get_store)):
    store.delete_all()
    log.warning("All orders deleted.")
    return {"message": "All orders deleted."}


@router.delete("/api/orders/{order_id}")
def delete_order(order_id: int, store: OrderStore = Depends(get_store)):
    store.delete_one(order_id)
    log.info(f"[Order: {order_id}] Deleted.")
    return {"message": "Order deleted.", "id": order_id}


# Health Check Endpoint
@router.get("/health")
def health_check(store: OrderStore = Depends(get_store)):
    return {"status": "ok", "storage": store.kind}


def create_app(store: Optional[OrderStore] = None, settings: Optional[Settings] = None) -> FastAPI:
    """
    Builds the application around one Order Store.

    Args:
        store (OrderStore, optional): Store to use. Built from `settings` when omitted.
        settings (Settings, optional): Defaults to `load_settings()`.

    Raises:
        StorageError: If the configured database cannot be initialized and
            falling back to memory is disabled.
    """
    settings = settings or load_settings()
    app = FastAPI(title="Order Intake Service")
    app.state.settings = settings
    app.state.store = store if store is not None else create_store(settings)

    @app.exception_handler(OrderIntakeError)
    async def handle_order_error(request: Request, exc: OrderIntakeError):
        message = exc.message
        if isinstance(exc, StorageError):
            log.critical(f"Storage failure on {request.method} {request.url.path}: {exc.detail}")
            if settings.expose_error_details:
                message = f"{message} {exc.detail}"
        else:
            log.warning(f"{request.method} {request.url.path} failed: {str(exc) or exc.message}")
        return JSONResponse(status_code=exc.status_code, content={"message": message})

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        log.warning(f"{request.method} {request.url.path} rejected: {errors}")
        if any(tuple(error["loc"][:1]) == ("path",) for error in errors):
            # an id that is not a number matches no order
            error_class = OrderNotFound
        elif request.method == "POST":
            error_class = ValidationError
        else:
            error_class = InvalidRequest
        return JSONResponse(status_code=error_class.status_code,
                            content={"message": error_class.message})

    @app.on_event("startup")
    def on_startup():
        log.info(f"Order intake service starting (storage: {app.state.store.kind}).")

    @app.on_event("shutdown")
    def on_shutdown():
        app.state.store.close()
        log.info("Order intake service stopped.")

    app.include_router(router)
    # Mounted last so the API routes take precedence
    app.mount("/", StaticFiles(directory=PUBLIC_DIR, html=True), name="public")
    return app


def main():
    settings = load_settings()
    setup_logging(settings.log_level, settings.log_file)
    app = create_app(settings=settings)
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
