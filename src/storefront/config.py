"""Runtime settings read from environment variables.

Every value has a development default, so the application boots against the
fake adapters without any configuration.
"""

import os
from dataclasses import dataclass


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    return int(raw) if raw else default


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    return float(raw) if raw else default


@dataclass(frozen=True)
class Settings:
    environment: str = "development"

    payment_gateway: str = "fake"
    toss_secret_key: str = ""
    toss_api_base: str = "https://api.tosspayments.com"

    carrier_adapter: str = "fake"
    delivery_tracker_client_id: str = ""
    delivery_tracker_client_secret: str = ""
    tracking_webhook_url: str = "http://localhost:8000/webhooks/delivery-tracker"
    tracking_webhook_ttl_hours: int = 48

    inventory_ledger: str = "memory"
    inventory_database_uri: str = "sqlite:///inventory.db"

    external_timeout_seconds: float = 10.0
    payment_status_retry_attempts: int = 3
    payment_status_retry_delay: float = 0.2

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            environment=os.environ.get("PROTEAN_ENV", "development"),
            payment_gateway=os.environ.get("PAYMENT_GATEWAY", "fake"),
            toss_secret_key=os.environ.get("TOSS_PAYMENTS_SECRET_KEY", ""),
            toss_api_base=os.environ.get("TOSS_PAYMENTS_API_BASE", cls.toss_api_base),
            carrier_adapter=os.environ.get("CARRIER_ADAPTER", "fake"),
            delivery_tracker_client_id=os.environ.get("DELIVERY_TRACKER_CLIENT_ID", ""),
            delivery_tracker_client_secret=os.environ.get("DELIVERY_TRACKER_CLIENT_SECRET", ""),
            tracking_webhook_url=os.environ.get("TRACKING_WEBHOOK_URL", cls.tracking_webhook_url),
            tracking_webhook_ttl_hours=_env_int("TRACKING_WEBHOOK_TTL_HOURS", 48),
            inventory_ledger=os.environ.get("INVENTORY_LEDGER", "memory"),
            inventory_database_uri=os.environ.get("INVENTORY_DATABASE_URI", cls.inventory_database_uri),
            external_timeout_seconds=_env_float("EXTERNAL_TIMEOUT_SECONDS", 10.0),
            payment_status_retry_attempts=_env_int("PAYMENT_STATUS_RETRY_ATTEMPTS", 3),
            payment_status_retry_delay=_env_float("PAYMENT_STATUS_RETRY_DELAY", 0.2),
        )
