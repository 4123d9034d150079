"""FastAPI application factory.

Each request runs inside the storefront domain context, pushed by middleware
the same way for every route.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from storefront.api.errors import register_error_handlers
from storefront.api.routes import admin_router, order_router, webhook_router
from storefront.container import Services, build_services
from storefront.domain import storefront


def create_app(services: Services | None = None) -> FastAPI:
    app = FastAPI(
        title="Storefront API",
        description="Order, payment and shipment reconciliation workflow",
    )
    app.state.services = services or build_services()

    @app.middleware("http")
    async def domain_context_middleware(request: Request, call_next):
        """Push the storefront domain context for each request."""
        with storefront.domain_context():
            response = await call_next(request)
        return response

    app.include_router(order_router)
    app.include_router(admin_router)
    app.include_router(webhook_router)
    register_error_handlers(app)

    @app.get("/health")
    async def health():
        settings = app.state.services.settings
        return JSONResponse(
            content={
                "status": "ok",
                "domain": storefront.name,
                "adapters": {
                    "payment_gateway": settings.payment_gateway,
                    "carrier": settings.carrier_adapter,
                    "inventory_ledger": settings.inventory_ledger,
                },
            }
        )

    return app
