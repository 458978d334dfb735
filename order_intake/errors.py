"""
errors.py — Error Taxonomy of the Order Intake Service

Each error carries the HTTP status code it is surfaced with. The FastAPI
exception handlers in `main.py` turn them into `{"message": ...}` responses.
"""


class OrderIntakeError(Exception):
    """Base class for all errors raised by the service."""
    status_code = 500
    message = "Internal server error."


class ValidationError(OrderIntakeError):
    """A required field of an order submission is missing or empty."""
    status_code = 400
    message = "Required fields are missing."


class InvalidRequest(OrderIntakeError):
    """A status-change body has fields of the wrong type."""
    status_code = 400
    message = "Invalid request body."


class OrderNotFound(OrderIntakeError):
    status_code = 404
    message = "Order not found."

    def __init__(self, order_id: int):
        super().__init__(f"Order {order_id} not found")
        self.order_id = order_id


class InvalidTransition(OrderIntakeError):
    """The requested status change is not allowed from the current status."""
    status_code = 409

    def __init__(self, order_id: int, current, target):
        super().__init__(f"Order {order_id} cannot move from {current.value} to {target.value}")
        self.order_id = order_id
        self.current = current
        self.target = target
        self.message = f"Order cannot move from {current.value} to {target.value}."


class StorageError(OrderIntakeError):
    """
    The backing store is unreachable or a query failed.

    The driver-level detail is kept in `detail` and only echoed to callers
    when diagnostic mode is enabled.
    """
    status_code = 500

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail
