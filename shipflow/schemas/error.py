"""Error body returned for every domain exception."""

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Body for 4xx responses raised from the workflow layer."""

    detail: str = Field(..., description="Human-readable error message")
    code: str = Field(
        ...,
        description="Machine-readable code, e.g. INVALID_TRANSITION, CONFLICT, ALREADY_EXISTS",
    )
