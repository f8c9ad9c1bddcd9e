"""
Pydantic models for request/response validation.
"""
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import List, Optional, Union
from datetime import datetime

from domain.enums import OrderStatus


class OrderBase(BaseModel):
    """Shared base: allows construction by Python name or camelCase alias."""
    model_config = ConfigDict(populate_by_name=True, from_attributes=True)


# ── Order Building Blocks ───────────────────────────────────────────

class LineItem(OrderBase):
    """One cart line. Extra storefront fields (id, image, ...) are kept as-is."""
    model_config = ConfigDict(populate_by_name=True, from_attributes=True, extra="allow")

    name: str = Field(..., min_length=1, description="Menu item name")
    price: float = Field(..., ge=0, description="Unit price")
    quantity: int = Field(default=1, ge=1, description="Units ordered")

    @field_validator("quantity", mode="before")
    @classmethod
    def _default_quantity(cls, value):
        # Carts omit or null the quantity for single units
        return 1 if value is None else value


class DeliveryAddress(OrderBase):
    """Structured delivery address; free-text addresses are plain strings."""
    model_config = ConfigDict(populate_by_name=True, from_attributes=True, extra="allow")

    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = Field(default=None, alias="postalCode")

    def is_blank(self) -> bool:
        values = [self.street, self.city, self.state, self.postal_code]
        values.extend((self.model_extra or {}).values())
        return not any(str(v).strip() for v in values if v is not None)


class Driver(OrderBase):
    """Delivery partner recorded on assignment."""
    id: Optional[str] = None
    name: str


# ── Requests ────────────────────────────────────────────────────────

class CreateOrderRequest(OrderBase):
    """
    Body of POST /api/orders.

    Required fields are typed as optional here so that missing values reach
    the store's validation and come back as a field-error list.
    """
    items: List[LineItem] = Field(default_factory=list)
    delivery_address: Optional[Union[str, DeliveryAddress]] = Field(default=None, alias="deliveryAddress")
    payment_method: Optional[str] = Field(default=None, alias="paymentMethod")
    delivery_instructions: Optional[str] = Field(default=None, alias="deliveryInstructions")
    restaurant_id: Optional[Union[str, int]] = Field(default=None, alias="restaurantId")
    customer_name: Optional[str] = Field(default=None, alias="customerName")
    customer_phone: Optional[str] = Field(default=None, alias="customerPhone")
    restaurant_name: Optional[str] = Field(default=None, alias="restaurantName")
    pickup_address: Optional[str] = Field(default=None, alias="pickupAddress")


class OrderDraft(CreateOrderRequest):
    """A create request resolved against the caller, as handed to the store."""
    customer_id: Optional[str] = Field(default=None, alias="customerId")


class StatusUpdateRequest(OrderBase):
    """Body of PUT /api/orders/{id}/status."""
    status: str = Field(..., description="One of: " + ", ".join(OrderStatus.values()))


# ── Order ───────────────────────────────────────────────────────────

class Order(OrderBase):
    """Full order representation, as returned by the API and pushed as event payload."""
    id: str
    customer_id: Optional[str] = Field(default=None, alias="customerId")
    restaurant_id: Optional[Union[str, int]] = Field(default=None, alias="restaurantId")
    customer_name: str = Field(..., alias="customerName")
    customer_phone: str = Field(..., alias="customerPhone")
    items: List[LineItem]
    delivery_address: Union[str, DeliveryAddress] = Field(..., alias="deliveryAddress")
    delivery_instructions: str = Field(default="", alias="deliveryInstructions")
    payment_method: str = Field(..., alias="paymentMethod")
    created_at: datetime = Field(..., alias="createdAt")
    status: OrderStatus = OrderStatus.PENDING
    payout_amount: int = Field(..., alias="payoutAmount")
    restaurant_name: str = Field(..., alias="restaurantName")
    pickup_address: str = Field(..., alias="pickupAddress")
    drop_address: str = Field(..., alias="dropAddress")
    payment_type: str = Field(..., alias="paymentType")
    assigned_driver: Optional[Driver] = Field(default=None, alias="assignedDriver")

    def to_payload(self) -> dict:
        """JSON-ready camelCase dict (API responses and event payloads)."""
        return self.model_dump(by_alias=True, mode="json")
