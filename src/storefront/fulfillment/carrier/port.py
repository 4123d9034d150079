"""Carrier tracking port — abstract interface for carrier tracking services.

The tracking service offers a pull interface (``query``) and a push interface
(``register_webhook``). Adapters report every failure as ``CarrierError``;
the caller decides which failures are benign.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class TrackingSnapshot:
    """The carrier's latest event for a tracking number."""

    status_code: str
    status_name: str | None = None
    last_event_at: datetime | None = None
    description: str | None = None


class CarrierPort(ABC):
    """Abstract interface for carrier tracking adapters."""

    @abstractmethod
    def query(self, carrier_id: str, tracking_number: str) -> TrackingSnapshot:
        """Fetch the current tracking status.

        Raises:
            CarrierError: the carrier rejected the request, errored or timed out.
        """
        ...

    @abstractmethod
    def register_webhook(
        self,
        carrier_id: str,
        tracking_number: str,
        callback_url: str,
        expires_at: datetime,
    ) -> None:
        """Ask the carrier to push status changes to ``callback_url`` until ``expires_at``.

        Raises:
            CarrierError: the registration was not accepted.
        """
        ...

    def local_carrier_id(self, carrier_id: str) -> str:
        """Translate a carrier id as the tracking service reports it back to ours."""
        return carrier_id
