"""Error taxonomy for the reconciliation engine."""


class EngineError(Exception):
    """Base error for plan composition and order generation."""

    kind = "engine_error"


class InvalidArgument(EngineError):  # noqa: N818
    """Raised when caller input violates the operation contract."""

    kind = "invalid_argument"


class NotFound(EngineError):  # noqa: N818
    """Raised when a referenced plan, dog or recipe does not exist."""

    kind = "not_found"


class PricingUnresolved(EngineError):  # noqa: N818
    """Raised when no price source yields a usable total."""

    kind = "pricing_unresolved"

    def __init__(self, message: str = "could not determine plan pricing") -> None:
        super().__init__(message)


class PersistenceError(EngineError):
    """Raised when a datastore write fails."""

    kind = "persistence_error"


class DuplicateOrder(PersistenceError):  # noqa: N818
    """Raised when a subscription order already exists for the delivery day."""

    kind = "duplicate_order"


class ExternalServiceError(EngineError):
    """Raised when the payment-subscription service lookup fails.

    ``retryable`` is false for errors a repeated call cannot fix, such as an
    unknown subscription or a rejected key.
    """

    kind = "external_service_error"

    def __init__(self, message: str, retryable: bool = True) -> None:
        super().__init__(message)
        self.retryable = retryable
