"""Error taxonomy for the storefront workflow.

Input problems are reported with protean's own ``ValidationError`` (the type
aggregates raise) and unknown ids with ``ObjectNotFoundError``. Everything
else a caller has to tell apart lives here:

    ConflictError         state the caller must re-fetch; never retried
    ExternalServiceError  payment gateway / carrier call failed or timed out
    PersistenceError      datastore operation failed; safe to retry
    AuthenticationError   no usable caller identity
    PermissionDenied      caller identity lacks the required claim
"""


class StorefrontError(Exception):
    """Base class; ``details`` carries structured context for logs and API bodies."""

    code = "storefront_error"
    retryable = False

    def __init__(self, message: str, **details) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        return {
            "error": self.message,
            "code": self.code,
            "retryable": self.retryable,
            "details": self.details,
        }


# ---------------------------------------------------------------------------
# Conflicts
# ---------------------------------------------------------------------------
class ConflictError(StorefrontError):
    code = "conflict"


class InsufficientStock(ConflictError):
    code = "insufficient_stock"


class AmountMismatch(ConflictError):
    code = "amount_mismatch"


class IncompatibleOrderStatus(ConflictError):
    code = "incompatible_order_status"


# ---------------------------------------------------------------------------
# External collaborators
# ---------------------------------------------------------------------------
class ExternalServiceError(StorefrontError):
    code = "external_service_error"

    def __init__(self, message: str, *, timed_out: bool = False, **details) -> None:
        super().__init__(message, **details)
        self.timed_out = timed_out


class GatewayError(ExternalServiceError):
    """The payment gateway did not confirm the transaction."""

    code = "payment_gateway_error"


class CarrierError(ExternalServiceError):
    """The carrier tracking API rejected or failed a request.

    ``error_code`` and ``payload`` hold whatever the carrier returned so the
    caller can recognise benign "not trackable yet" answers.
    """

    code = "carrier_error"

    def __init__(
        self,
        message: str,
        *,
        error_code: str | None = None,
        payload=None,
        timed_out: bool = False,
        **details,
    ) -> None:
        super().__init__(message, timed_out=timed_out, **details)
        self.error_code = error_code
        self.payload = payload


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------
class PersistenceError(StorefrontError):
    code = "persistence_error"
    retryable = True


# ---------------------------------------------------------------------------
# Identity boundary
# ---------------------------------------------------------------------------
class AuthenticationError(StorefrontError):
    code = "unauthenticated"


class PermissionDenied(StorefrontError):
    code = "forbidden"
