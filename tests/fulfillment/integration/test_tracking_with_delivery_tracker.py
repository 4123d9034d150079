"""Shipment tracking wired to DeliveryTrackerCarrier over a mocked transport."""

import json

import httpx
import pytest
from storefront.fulfillment.carrier.delivery_tracker import AUTH_URL, DeliveryTrackerCarrier
from storefront.ordering.order import OrderStatus


def _graphql(request: httpx.Request) -> dict:
    return json.loads(request.content)


class CarrierApi:
    """Delivery Tracker double: status per carrier-side parcel, webhooks always accepted."""

    def __init__(self):
        self.statuses: dict[tuple[str, str], str] = {}
        self.webhook_inputs: list[dict] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if str(request.url) == AUTH_URL:
            return httpx.Response(200, json={"access_token": "token"})

        body = _graphql(request)
        if "registerTrackWebhook" in body["query"]:
            self.webhook_inputs.append(body["variables"]["input"])
            return httpx.Response(200, json={"data": {"registerTrackWebhook": True}})

        variables = body["variables"]
        code = self.statuses.get((variables["carrierId"], variables["trackingNumber"]), "INFORMATION_RECEIVED")
        return httpx.Response(
            200,
            json={"data": {"track": {"lastEvent": {"time": None, "status": {"code": code, "name": code}}}}},
        )


@pytest.fixture()
def carrier_api():
    return CarrierApi()


@pytest.fixture()
def carrier(carrier_api):
    return DeliveryTrackerCarrier("client-id", "client-secret", transport=httpx.MockTransport(carrier_api))


class TestWebhookCarrierIds:
    def test_push_with_tracker_carrier_id_finds_shipment(self, services, carrier_api, paid_order):
        order = paid_order()
        services.tracking.register_shipment(str(order.id), "cj", "111")

        registered = carrier_api.webhook_inputs[0]
        assert registered["carrierId"] == "kr.cjlogistics"

        carrier_api.statuses[("kr.cjlogistics", "111")] = "DELIVERED"
        info = services.tracking.handle_tracking_webhook(registered["carrierId"], registered["trackingNumber"])

        assert info.carrier_id == "cj"
        assert info.order_status == OrderStatus.DELIVERED.value
        assert services.orders.get(order.id).status == OrderStatus.DELIVERED.value

    def test_unmapped_carrier_id_is_matched_as_pushed(self, services, carrier_api, paid_order):
        order = paid_order()
        services.tracking.register_shipment(str(order.id), "kr.daesin", "222")

        assert carrier_api.webhook_inputs[0]["carrierId"] == "kr.daesin"

        carrier_api.statuses[("kr.daesin", "222")] = "IN_TRANSIT"
        info = services.tracking.handle_tracking_webhook("kr.daesin", "222")

        assert info.order_status == OrderStatus.SHIPPING.value

    def test_local_carrier_id_translation(self, carrier):
        assert carrier.local_carrier_id("kr.cjlogistics") == "cj"
        assert carrier.local_carrier_id("kr.epost.ems") == "epost"
        assert carrier.local_carrier_id("kr.daesin") == "kr.daesin"
