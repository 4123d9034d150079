"""Translation of datastore failures into ``PersistenceError``.

Repository calls can fail with whatever the configured protean provider
raises. Domain outcomes (protean's ``ValidationError`` and
``ObjectNotFoundError``, and our own ``StorefrontError`` family) pass through
untouched; anything else is reported as a retryable ``PersistenceError``.
"""

from contextlib import contextmanager

from protean.exceptions import ObjectNotFoundError, ValidationError

from storefront.exceptions import PersistenceError, StorefrontError

_PASSTHROUGH = (ValidationError, ObjectNotFoundError, StorefrontError)


@contextmanager
def persistence_errors(operation: str, **context):
    try:
        yield
    except _PASSTHROUGH:
        raise
    except Exception as exc:
        raise PersistenceError(f"Failed to {operation}", operation=operation, **context) from exc
