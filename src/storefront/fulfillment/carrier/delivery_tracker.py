"""Delivery Tracker adapter — GraphQL carrier tracking API.

Requests are authorised with an OAuth2 client-credentials token obtained from
the auth server and cached on the adapter. When the API answers
``UNAUTHENTICATED`` the token is fetched again and the request is retried
once.
"""

import threading
from datetime import datetime

import httpx
import structlog

from storefront.exceptions import CarrierError
from storefront.fulfillment.carrier.port import CarrierPort, TrackingSnapshot

logger = structlog.get_logger(__name__)

API_URL = "https://apis.tracker.delivery/graphql"
AUTH_URL = "https://auth.tracker.delivery/oauth2/token"

# Storefront carrier ids → Delivery Tracker carrier ids. Ids not listed are
# passed through, so fully-qualified ids ("kr.cjlogistics") work as well.
TRACKER_CARRIER_IDS = {
    "cj": "kr.cjlogistics",
    "lotte": "kr.lotte",
    "hanjin": "kr.hanjin",
    "post": "kr.epost",
    "logen": "kr.logen",
    "epost": "kr.epost.ems",
}

# Webhook pushes carry the Delivery Tracker id; shipments are stored under ours.
STOREFRONT_CARRIER_IDS = {tracker_id: carrier_id for carrier_id, tracker_id in TRACKER_CARRIER_IDS.items()}

TRACK_QUERY = """
query Track($carrierId: ID!, $trackingNumber: String!) {
  track(carrierId: $carrierId, trackingNumber: $trackingNumber) {
    lastEvent {
      time
      status {
        code
        name
      }
      description
    }
  }
}
"""

REGISTER_WEBHOOK_MUTATION = """
mutation RegisterTrackWebhook($input: RegisterTrackWebhookInput!) {
  registerTrackWebhook(input: $input)
}
"""


def _first_error(errors: list) -> dict:
    return errors[0] if errors and isinstance(errors[0], dict) else {}


def _error_code(error: dict) -> str | None:
    extensions = error.get("extensions") or {}
    return extensions.get("code")


def _parse_time(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None


class DeliveryTrackerCarrier(CarrierPort):
    def __init__(
        self,
        client_id: str,
        client_secret: str,
        timeout: float = 10.0,
        api_url: str = API_URL,
        auth_url: str = AUTH_URL,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        if not client_id or not client_secret:
            raise ValueError("DeliveryTrackerCarrier requires client credentials")
        self.api_url = api_url
        self.auth_url = auth_url
        self._credentials = (client_id, client_secret)
        self._client = httpx.Client(
            timeout=httpx.Timeout(timeout),
            headers={"Accept": "application/json"},
            transport=transport,
        )
        self._token: str | None = None
        self._token_lock = threading.Lock()

    def close(self) -> None:
        self._client.close()

    # -------------------------------------------------------------------
    # OAuth2
    # -------------------------------------------------------------------
    def _access_token(self, refresh: bool = False) -> str:
        with self._token_lock:
            if self._token is None or refresh:
                self._token = self._fetch_token()
            return self._token

    def _fetch_token(self) -> str:
        try:
            response = self._client.post(
                self.auth_url,
                auth=self._credentials,
                data={"grant_type": "client_credentials"},
            )
        except httpx.TimeoutException as exc:
            raise CarrierError("Carrier auth server timed out", timed_out=True) from exc
        except httpx.HTTPError as exc:
            raise CarrierError(f"Carrier auth server unreachable: {exc}") from exc

        if response.status_code >= 400:
            raise CarrierError(
                "Carrier authentication failed",
                error_code="AUTH_FAILED",
                status_code=response.status_code,
            )
        try:
            token = response.json().get("access_token")
        except ValueError:
            token = None
        if not isinstance(token, str):
            raise CarrierError("Carrier auth response has no access_token", error_code="AUTH_FAILED")
        return token

    # -------------------------------------------------------------------
    # GraphQL
    # -------------------------------------------------------------------
    def _post(self, payload: dict, token: str) -> tuple[httpx.Response, dict]:
        try:
            response = self._client.post(
                self.api_url,
                json=payload,
                headers={"Authorization": f"Bearer {token}"},
            )
        except httpx.TimeoutException as exc:
            raise CarrierError("Carrier tracking timed out", timed_out=True) from exc
        except httpx.HTTPError as exc:
            raise CarrierError(f"Carrier tracking unreachable: {exc}") from exc

        try:
            body = response.json()
        except ValueError:
            body = {}
        return response, body if isinstance(body, dict) else {}

    def _execute(self, query: str, variables: dict) -> dict:
        payload = {"query": query, "variables": variables}
        response, body = self._post(payload, self._access_token())

        errors = body.get("errors") or []
        if any(_error_code(e) == "UNAUTHENTICATED" for e in errors if isinstance(e, dict)):
            logger.info("Carrier token rejected, refreshing")
            response, body = self._post(payload, self._access_token(refresh=True))
            errors = body.get("errors") or []

        if errors:
            error = _first_error(errors)
            raise CarrierError(
                error.get("message") or "Carrier tracking request failed",
                error_code=_error_code(error),
                payload=errors,
                status_code=response.status_code,
            )
        if not response.is_success:
            raise CarrierError(
                f"Carrier tracking request failed with HTTP {response.status_code}",
                status_code=response.status_code,
            )
        return body.get("data") or {}

    # -------------------------------------------------------------------
    # CarrierPort
    # -------------------------------------------------------------------
    def query(self, carrier_id: str, tracking_number: str) -> TrackingSnapshot:
        data = self._execute(
            TRACK_QUERY,
            {
                "carrierId": TRACKER_CARRIER_IDS.get(carrier_id, carrier_id),
                "trackingNumber": tracking_number,
            },
        )
        last_event = (data.get("track") or {}).get("lastEvent")
        if not last_event:
            return TrackingSnapshot(status_code="UNKNOWN")

        status = last_event.get("status") or {}
        return TrackingSnapshot(
            status_code=status.get("code") or "UNKNOWN",
            status_name=status.get("name"),
            last_event_at=_parse_time(last_event.get("time")),
            description=last_event.get("description"),
        )

    def register_webhook(
        self,
        carrier_id: str,
        tracking_number: str,
        callback_url: str,
        expires_at: datetime,
    ) -> None:
        data = self._execute(
            REGISTER_WEBHOOK_MUTATION,
            {
                "input": {
                    "carrierId": TRACKER_CARRIER_IDS.get(carrier_id, carrier_id),
                    "trackingNumber": tracking_number,
                    "callbackUrl": callback_url,
                    "expirationTime": expires_at.isoformat(),
                }
            },
        )
        if data.get("registerTrackWebhook") is False:
            raise CarrierError("Carrier declined webhook registration", carrier_id=carrier_id)

    def local_carrier_id(self, carrier_id: str) -> str:
        return STOREFRONT_CARRIER_IDS.get(carrier_id, carrier_id)
