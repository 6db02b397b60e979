"""Global exception handlers that map domain exceptions to HTTP responses."""

from fastapi import Request, status
from fastapi.responses import JSONResponse

from shipflow.errors import (
    ALREADY_EXISTS,
    CONFLICT,
    FORBIDDEN,
    INVALID_TRANSITION,
    NOT_FOUND,
    UNAUTHORIZED,
    VALIDATION_ERROR,
    AlreadyExistsError,
    ConflictError,
    DomainValidationError,
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
    UnauthorizedError,
)
from shipflow.schemas.error import ErrorResponse


def _error_response(
    status_code: int, detail: str, code: str, headers: dict[str, str] | None = None
) -> JSONResponse:
    """Return a standardized error response with detail and machine-readable code."""
    body = ErrorResponse(detail=detail, code=code)
    return JSONResponse(status_code=status_code, content=body.model_dump(), headers=headers)


def not_found_error_handler(_request: Request, exc: NotFoundError) -> JSONResponse:
    return _error_response(status.HTTP_404_NOT_FOUND, str(exc), NOT_FOUND)


def invalid_transition_error_handler(
    _request: Request, exc: InvalidTransitionError
) -> JSONResponse:
    return _error_response(status.HTTP_400_BAD_REQUEST, str(exc), INVALID_TRANSITION)


def conflict_error_handler(_request: Request, exc: ConflictError) -> JSONResponse:
    return _error_response(status.HTTP_409_CONFLICT, str(exc), CONFLICT)


def already_exists_error_handler(
    _request: Request, exc: AlreadyExistsError
) -> JSONResponse:
    return _error_response(status.HTTP_409_CONFLICT, str(exc), ALREADY_EXISTS)


def domain_validation_error_handler(
    _request: Request, exc: DomainValidationError
) -> JSONResponse:
    return _error_response(status.HTTP_400_BAD_REQUEST, str(exc), VALIDATION_ERROR)


def forbidden_error_handler(_request: Request, exc: ForbiddenError) -> JSONResponse:
    return _error_response(status.HTTP_403_FORBIDDEN, str(exc), FORBIDDEN)


def unauthorized_error_handler(_request: Request, exc: UnauthorizedError) -> JSONResponse:
    return _error_response(
        status.HTTP_401_UNAUTHORIZED,
        str(exc),
        UNAUTHORIZED,
        headers={"WWW-Authenticate": "Bearer"},
    )


def register_exception_handlers(app):
    """Register domain exception handlers on the FastAPI app."""
    app.add_exception_handler(NotFoundError, not_found_error_handler)
    app.add_exception_handler(InvalidTransitionError, invalid_transition_error_handler)
    app.add_exception_handler(ConflictError, conflict_error_handler)
    app.add_exception_handler(AlreadyExistsError, already_exists_error_handler)
    app.add_exception_handler(DomainValidationError, domain_validation_error_handler)
    app.add_exception_handler(ForbiddenError, forbidden_error_handler)
    app.add_exception_handler(UnauthorizedError, unauthorized_error_handler)
