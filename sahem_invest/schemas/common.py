"""
Shared schema pieces: the error envelopes documented in OpenAPI and the
``Money`` / ``Ratio`` field types.

Decimal values are kept exact in Python and emitted as JSON numbers, since
clients of the API expect ``6480.0`` rather than the string ``"6480.00"``
that pydantic produces for ``Decimal`` by default.
"""

from decimal import Decimal
from typing import Annotated, List

from pydantic import BaseModel, Field, PlainSerializer

Money = Annotated[
    Decimal,
    PlainSerializer(lambda v: float(v), return_type=float, when_used="json"),
]
Ratio = Money


class ErrorResponse(BaseModel):
    """Error envelope returned by all non-validation error handlers."""

    error: bool = Field(default=True, description="Always ``true`` for errors")
    message: str = Field(
        ..., description="Human-readable error description", examples=["Deal not found"]
    )


class ValidationErrorDetail(BaseModel):
    """Single field-level validation failure."""

    field: str = Field(
        ...,
        description="Path to the invalid field",
        examples=["body -> total_amount"],
    )
    message: str = Field(
        ...,
        description="Explanation of the validation failure",
        examples=["Input should be greater than 0"],
    )


class ValidationErrorResponse(BaseModel):
    """Response body for 422 Unprocessable Entity."""

    error: bool = Field(default=True, description="Always ``true`` for errors")
    message: str = Field(default="Validation failed", description="Summary message")
    details: List[ValidationErrorDetail] = Field(..., description="Per-field failures")
