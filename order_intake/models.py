"""
models.py — Data Models for Order Intake

Pydantic models for the order record and the request payloads of the API.
Field names are camelCase because they are the JSON contract with the web
form and the admin page.

Models:
    - OrderStatus: Lifecycle states of an order.
    - Order: A persisted order as returned by the API.
    - NewOrderRequest: Payload of an order submission.
    - CompleteOrderRequest / CancelOrderRequest: Optional payloads of status changes.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    CANCEL_REQUESTED = "CANCEL_REQUESTED"
    CANCELLED = "CANCELLED"


class Order(BaseModel):
    """
    A single customer purchase request.

    Attributes:
        id (int): Unique, monotonically assigned identifier.
        productName (str): Name of the product sold by this deployment.
        quantity (int): Number of items ordered.
        buyerName (str): Name of the buyer.
        phone (str): Contact phone number.
        address (str): Delivery address.
        totalAmount (str): Order total as a decimal string.
        status (OrderStatus): Current lifecycle state.
        trackingNumber (str, optional): Parcel tracking number, set on completion.
        trackingCarrier (str, optional): Parcel carrier, set on completion.
        cancellationReason (str, optional): Reason given on cancellation.
        orderDate (datetime): Creation time, never changed afterwards.
    """
    id: int
    productName: str
    quantity: int
    buyerName: str
    phone: str
    address: str
    totalAmount: str
    status: OrderStatus = OrderStatus.PENDING
    trackingNumber: Optional[str] = None
    trackingCarrier: Optional[str] = None
    cancellationReason: Optional[str] = None
    orderDate: datetime


class NewOrderRequest(BaseModel):
    """
    Order submission from the web form.

    Every field is optional at the schema level so that a missing field is
    reported by `missing_fields()` with the service's own 400 message.
    """
    quantity: Optional[int] = Field(None, gt=0)
    name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    totalAmount: Optional[str] = None

    @field_validator("totalAmount", mode="before")
    @classmethod
    def amount_as_text(cls, value):
        # The form posts the total as a number
        if value and isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    def missing_fields(self) -> List[str]:
        return [field for field in ("quantity", "name", "phone", "address", "totalAmount")
                if not getattr(self, field)]


class CompleteOrderRequest(BaseModel):
    trackingNumber: Optional[str] = None
    carrier: Optional[str] = None


class CancelOrderRequest(BaseModel):
    reason: Optional[str] = None
