"""Storefront FastAPI application.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV selects protean's config overlay; adapters are chosen by the
# variables documented in storefront.config.
from storefront.config import Settings
from storefront.container import build_services
from storefront.domain import storefront
from storefront.utils.logging import configure_logging

storefront.init()

settings = Settings.from_env()
configure_logging(production=settings.is_production)

from storefront.api.app import create_app  # noqa: E402

app = create_app(build_services(settings))
