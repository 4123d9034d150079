from storefront.identity.port import ADMIN_ROLE, Caller, IdentityProvider

__all__ = ["ADMIN_ROLE", "Caller", "IdentityProvider"]
