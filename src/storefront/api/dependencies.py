"""FastAPI dependency providers: wired services and the calling identity."""

from fastapi import Depends, Header, Request

from storefront.container import Services
from storefront.exceptions import AuthenticationError, PermissionDenied
from storefront.identity.port import Caller


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_caller(
    authorization: str | None = Header(default=None),
    services: Services = Depends(get_services),
) -> Caller:
    """Resolve ``Authorization: Bearer <token>`` through the identity provider."""
    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthenticationError("Missing bearer token")
    return services.identity.resolve(token.strip())


def require_admin(caller: Caller = Depends(get_caller)) -> Caller:
    if not caller.is_admin:
        raise PermissionDenied("Admin role required", subject=caller.subject)
    return caller
