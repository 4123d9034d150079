"""In-memory identity provider for development and testing."""

from storefront.exceptions import AuthenticationError
from storefront.identity.port import Caller, IdentityProvider


class FakeIdentityProvider(IdentityProvider):
    def __init__(self) -> None:
        self._callers: dict[str, Caller] = {}

    def register(self, token: str, subject: str, role: str | None = None) -> Caller:
        caller = Caller(subject=subject, role=role)
        self._callers[token] = caller
        return caller

    def resolve(self, token: str) -> Caller:
        caller = self._callers.get(token)
        if caller is None:
            raise AuthenticationError("Invalid or expired credentials")
        return caller
