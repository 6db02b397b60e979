"""Custom domain exceptions for the application."""

# Stable, machine-readable error codes for API consumers.
NOT_FOUND = "NOT_FOUND"
INVALID_TRANSITION = "INVALID_TRANSITION"
CONFLICT = "CONFLICT"
ALREADY_EXISTS = "ALREADY_EXISTS"
VALIDATION_ERROR = "VALIDATION_ERROR"
FORBIDDEN = "FORBIDDEN"
UNAUTHORIZED = "UNAUTHORIZED"


class DomainError(Exception):
    """Base exception for domain/business logic errors."""

    pass


class NotFoundError(DomainError):
    """Raised when a requested entity does not exist."""

    pass


class InvalidTransitionError(DomainError):
    """Raised when a transition is not legal from the entity's current status.

    The stored entity is guaranteed unchanged when this is raised.
    """

    def __init__(self, message: str, *, current_status: str | None = None, transition: str | None = None):
        super().__init__(message)
        self.current_status = current_status
        self.transition = transition


class ConflictError(DomainError):
    """Raised when a conditional write lost a race against a concurrent writer.

    Callers must re-read the entity before deciding whether to retry.
    """

    pass


class AlreadyExistsError(DomainError):
    """Raised when an idempotency guard trips (e.g. a Quote already has its Shipment)."""

    def __init__(self, message: str, *, existing_id: str | None = None):
        super().__init__(message)
        self.existing_id = existing_id


class DomainValidationError(DomainError):
    """Raised when business rules or payload validation fail (e.g. unknown field, bad months)."""

    pass


class ForbiddenError(DomainError):
    """Raised when the actor is not allowed to perform the requested transition."""

    pass


class UnauthorizedError(DomainError):
    """Raised when the caller could not be authenticated."""

    pass
