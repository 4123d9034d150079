"""FastAPI routes for the storefront workflow."""

from fastapi import APIRouter, Depends

from storefront.api.dependencies import get_caller, get_services, require_admin
from storefront.api.schemas import (
    CancelOrderRequest,
    ConfirmPaymentRequest,
    CreateOrderRequest,
    OrderCreatedResponse,
    OrderStatusResponse,
    PollSummaryResponse,
    ReceiptResponse,
    RegisterShipmentRequest,
    ShipmentResponse,
    StatusResponse,
    TrackingWebhookRequest,
)
from storefront.container import Services
from storefront.fulfillment.tracking import ShipmentInfo
from storefront.identity.port import Caller
from storefront.ordering.intake import CartSelection


def _shipment_response(info: ShipmentInfo) -> ShipmentResponse:
    return ShipmentResponse(
        shipment_id=info.shipment_id,
        order_id=info.order_id,
        carrier_id=info.carrier_id,
        carrier_name=info.carrier_name,
        tracking_number=info.tracking_number,
        status_code=info.status_code,
        status_name=info.status_name,
        order_status=info.order_status,
        tracking_available=info.tracking_available,
        webhook_registered=info.webhook_registered,
        last_event_at=info.last_event_at,
    )


# ---------------------------------------------------------------------------
# Shopper routes
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=OrderCreatedResponse)
def create_order(
    body: CreateOrderRequest,
    caller: Caller = Depends(get_caller),
    services: Services = Depends(get_services),
) -> OrderCreatedResponse:
    """Create a pending order from cart selections and reserve its stock."""
    order = services.intake.create_order(
        owner_id=caller.subject,
        selections=[CartSelection(**item.model_dump()) for item in body.items],
        shipping=body.shipping.model_dump(),
        declared_total=body.declared_total,
        payment_method=body.payment_method,
    )
    return OrderCreatedResponse(
        order_id=str(order.id),
        order_number=order.order_number,
        status=order.status,
        total_amount=order.total_amount,
    )


@order_router.post("/{order_id}/payment", response_model=ReceiptResponse)
def confirm_payment(
    order_id: str,
    body: ConfirmPaymentRequest,
    caller: Caller = Depends(get_caller),
    services: Services = Depends(get_services),
) -> ReceiptResponse:
    """Confirm payment with the gateway. Safe to retry."""
    receipt = services.payments.confirm_payment(caller, order_id, body.transaction_key, body.amount)
    return ReceiptResponse(
        order_id=receipt.order_id,
        order_number=receipt.order_number,
        transaction_key=receipt.transaction_key,
        amount=receipt.amount,
        outcome=receipt.outcome.value,
        method=receipt.method,
        gateway_status=receipt.gateway_status,
        approved_at=receipt.approved_at,
        alerts=list(receipt.alerts),
        needs_attention=receipt.needs_attention,
    )


@order_router.post("/{order_id}/cancel", response_model=OrderStatusResponse)
def cancel_order(
    order_id: str,
    body: CancelOrderRequest | None = None,
    caller: Caller = Depends(get_caller),
    services: Services = Depends(get_services),
) -> OrderStatusResponse:
    order = services.lifecycle.cancel_order(caller, order_id, reason=body.reason if body else None)
    return OrderStatusResponse(order_id=str(order.id), status=order.status)


# ---------------------------------------------------------------------------
# Admin routes
# ---------------------------------------------------------------------------
admin_router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


@admin_router.put("/orders/{order_id}/shipment", response_model=ShipmentResponse)
def register_shipment(
    order_id: str,
    body: RegisterShipmentRequest,
    services: Services = Depends(get_services),
) -> ShipmentResponse:
    """Attach or correct carrier tracking for an order."""
    info = services.tracking.register_shipment(order_id, body.carrier_id, body.tracking_number)
    return _shipment_response(info)


@admin_router.delete("/orders/{order_id}/shipments/{shipment_id}", response_model=StatusResponse)
def remove_shipment(
    order_id: str,
    shipment_id: str,
    services: Services = Depends(get_services),
) -> StatusResponse:
    services.tracking.remove_shipment(order_id, shipment_id)
    return StatusResponse(status="removed")


@admin_router.post("/orders/{order_id}/shipment/refresh", response_model=ShipmentResponse)
def refresh_tracking(order_id: str, services: Services = Depends(get_services)) -> ShipmentResponse:
    return _shipment_response(services.tracking.refresh_tracking(order_id))


@admin_router.post("/orders/{order_id}/refund", response_model=OrderStatusResponse)
def mark_refunded(
    order_id: str,
    caller: Caller = Depends(require_admin),
    services: Services = Depends(get_services),
) -> OrderStatusResponse:
    order = services.lifecycle.mark_refunded(caller, order_id)
    return OrderStatusResponse(order_id=str(order.id), status=order.status)


@admin_router.post("/shipments/poll", response_model=PollSummaryResponse)
def poll_shipments(services: Services = Depends(get_services)) -> PollSummaryResponse:
    summary = services.tracking.poll_active_shipments()
    return PollSummaryResponse(**summary.__dict__)


# ---------------------------------------------------------------------------
# Carrier webhook
# ---------------------------------------------------------------------------
webhook_router = APIRouter(prefix="/webhooks", tags=["webhooks"])


@webhook_router.post("/delivery-tracker", response_model=ShipmentResponse)
def delivery_tracker_webhook(
    body: TrackingWebhookRequest,
    services: Services = Depends(get_services),
) -> ShipmentResponse:
    """Carrier push: the parcel's status changed; fetch and apply it."""
    info = services.tracking.handle_tracking_webhook(body.carrier_id, body.tracking_number)
    return _shipment_response(info)
