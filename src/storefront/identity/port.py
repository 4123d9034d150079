"""Identity port — resolves a bearer credential to a caller.

Session and credential issuance happen elsewhere; the storefront only needs
an opaque subject identifier and a role claim for each request.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

ADMIN_ROLE = "admin"


@dataclass(frozen=True)
class Caller:
    subject: str
    role: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE

    def can_act_for(self, owner_id) -> bool:
        return self.is_admin or str(owner_id) == self.subject


class IdentityProvider(ABC):
    @abstractmethod
    def resolve(self, token: str) -> Caller:
        """Return the caller behind ``token``.

        Raises:
            AuthenticationError: the token is unknown, expired or malformed.
        """
        ...
