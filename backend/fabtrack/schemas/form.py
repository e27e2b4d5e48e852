"""
Fabtrack Backend — Pydantic Request/Response Schemas
=====================================================

What:  Pydantic models defining the API contract between frontend and backend.
Why:   Input validation, camelCase serialization, and OpenAPI doc generation.
How:   The JSON field names are camelCase (`areticalNo`, `warpDetails`, ...);
       Python attributes stay snake_case through an alias generator.
Who:   Used by FormService to validate bodies and by routes as response models.

Validation rules differ per write path:
    FormCreate     required header/detail fields, text must be non-empty
    FormReplace    all eight full-update fields present; values may be empty
    RatesUpdate    only warpRate / weftRate, both optional
"""

import uuid
from datetime import datetime, timezone
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

# Keys a full update must carry (JSON names). Order is the order reported
# back in `missingFields`.
FULL_UPDATE_FIELDS = (
    "areticalNo",
    "name",
    "date",
    "warpDetails",
    "weftDetails",
    "dyingMillName",
    "fabricsShortage",
    "code",
)


class CamelModel(BaseModel):
    """Base model: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class _FormInput(CamelModel):
    # Numbers sent for text fields are stored as strings; unknown keys
    # (including a client-supplied id) are dropped
    model_config = ConfigDict(coerce_numbers_to_str=True, extra="ignore")

    @field_validator("dying_mill_name", "fabrics_shortage", mode="before", check_fields=False)
    @classmethod
    def null_to_empty(cls, v: Any) -> Any:
        return "" if v is None else v


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class FormCreate(_FormInput):
    """
    Body of POST /submit-form.

    `code` and `id` are never taken from the client: the id is allocated by
    the service and the code is generated from it.
    """
    aretical_no: str = Field(min_length=1)
    name: str = Field(min_length=1)
    date: str = Field(min_length=1)
    warp_details: List[Any]
    weft_details: List[Any]
    dying_mill_name: str = ""
    fabrics_shortage: str = ""


class FormReplace(_FormInput):
    """
    Body of PUT /forms/{id} after the presence check.

    Key presence is checked separately (to report every missing name at
    once); this model only checks that present values have the right type.
    """
    aretical_no: str
    name: str
    date: str
    warp_details: List[Any]
    weft_details: List[Any]
    dying_mill_name: str
    fabrics_shortage: str
    code: str


class RatesUpdate(_FormInput):
    """
    Body of PUT /edit/{id}.

    Only the keys the client actually sent are applied, so `null` clears a
    rate while an absent key leaves it alone.
    """
    warp_rate: Optional[str] = None
    weft_rate: Optional[str] = None


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class FormResponse(CamelModel):
    """Full representation of a stored form."""
    id: uuid.UUID
    aretical_no: str
    name: str
    date: str
    warp_details: List[Any]
    weft_details: List[Any]
    dying_mill_name: str
    fabrics_shortage: str
    code: str = Field(description="data:image/png;base64 QR code linking to the form")
    weft_rate: Optional[str] = None
    warp_rate: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @field_validator("created_at", "updated_at")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        # SQLite hands back naive datetimes; stored values are always UTC
        return v.replace(tzinfo=timezone.utc) if v.tzinfo is None else v


class FormCreatedResponse(CamelModel):
    """Returned by POST /submit-form with HTTP 201."""
    message: str = "Form data saved successfully!"
    form: FormResponse


class FormDataResponse(CamelModel):
    """Message plus the form, used by GET /form/{id} and both update paths."""
    message: str
    data: FormResponse


class FormListResponse(CamelModel):
    """
    One page of the history listing.

    Pagination is offset-based with a fixed page size of 30, newest first.
    `total_pages` is 0 when there are no forms.
    """
    forms: List[FormResponse]
    page: int
    total_pages: int


class MessageResponse(BaseModel):
    message: str


class ErrorResponse(CamelModel):
    """
    Error body for every failed request.

    Fields:
        message: Human-readable description for display to users
        error: Text of the underlying failure (create and 500 responses)
        missing_fields: Absent keys (full update only)
    """
    message: str
    error: Optional[str] = None
    missing_fields: Optional[List[str]] = None


class HealthResponse(BaseModel):
    """Health check response showing service and database status."""
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
