"""Pydantic API schemas for the storefront HTTP surface.

These are the external API contracts, kept separate from the aggregates and
service signatures. Routes translate between the two.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------
class OrderLineRequest(BaseModel):
    product_id: str
    variant_id: str | None = None
    quantity: int
    unit_price: int
    option_surcharge: int = 0
    product_name: str | None = None
    product_image: str | None = None
    option_name: str | None = None
    option_value: str | None = None


class ShippingRequest(BaseModel):
    recipient_name: str
    phone: str
    address: str
    detail_address: str | None = None
    memo: str | None = None


class CreateOrderRequest(BaseModel):
    items: list[OrderLineRequest]
    shipping: ShippingRequest
    declared_total: int | None = None
    payment_method: str | None = None


class ConfirmPaymentRequest(BaseModel):
    transaction_key: str
    amount: int


class CancelOrderRequest(BaseModel):
    reason: str | None = None


class RegisterShipmentRequest(BaseModel):
    carrier_id: str
    tracking_number: str


class TrackingWebhookRequest(BaseModel):
    """Payload the carrier pushes; it names the parcel, not its status."""

    model_config = ConfigDict(populate_by_name=True)

    carrier_id: str = Field(alias="carrierId")
    tracking_number: str = Field(alias="trackingNumber")


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------
class OrderCreatedResponse(BaseModel):
    order_id: str
    order_number: str
    status: str
    total_amount: int


class ReceiptResponse(BaseModel):
    order_id: str
    order_number: str
    transaction_key: str | None = None
    amount: int
    outcome: str
    method: str | None = None
    gateway_status: str | None = None
    approved_at: datetime | None = None
    alerts: list[str] = []
    needs_attention: bool = False


class OrderStatusResponse(BaseModel):
    order_id: str
    status: str


class ShipmentResponse(BaseModel):
    shipment_id: str
    order_id: str
    carrier_id: str
    carrier_name: str | None = None
    tracking_number: str
    status_code: str | None = None
    status_name: str | None = None
    order_status: str
    tracking_available: bool
    webhook_registered: bool
    last_event_at: datetime | None = None


class PollSummaryResponse(BaseModel):
    checked: int
    updated: int
    failed: int
    skipped: int


class StatusResponse(BaseModel):
    status: str
