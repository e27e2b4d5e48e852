"""
Fabtrack Backend — Form Service (Business Rules)
=================================================

What:  Create, list, fetch, update and delete production forms.
Why:   Keeps every rule about forms out of the route handlers.
How:   Each method takes the request's AsyncSession, talks to the store and
       returns a response schema, or raises an application exception that
       the global handlers render.
Who:   Called by the handlers in routes/forms.py.

Create Flow (POST /submit-form):
    ┌──────────┐    ┌─────────────┐    ┌──────────────┐    ┌──────────┐
    │ Validate │───▶│ Allocate id │───▶│ QR code for  │───▶│  INSERT  │
    │ (schema) │    │  (uuid4)    │    │  the id      │    │ one row  │
    └──────────┘    └─────────────┘    └──────────────┘    └──────────┘

    Any failure before the INSERT leaves nothing behind; a failure during it
    is rolled back by the session dependency. Every failure is a 400.

Update Paths:
    update_form   PUT /forms/{id}  all eight fields must be present, replaces them
    update_rates  PUT /edit/{id}   only warpRate / weftRate, whichever were sent
    The two paths keep their own validation rules.
"""

import logging
import math
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as SchemaValidationError
from sqlalchemy import delete, desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from fabtrack.exceptions import (
    CodeGenerationError,
    InternalError,
    NotFoundError,
    ValidationError,
)
from fabtrack.models.form import Form
from fabtrack.schemas.form import (
    FULL_UPDATE_FIELDS,
    FormCreate,
    FormCreatedResponse,
    FormDataResponse,
    FormListResponse,
    FormReplace,
    FormResponse,
    RatesUpdate,
)
from fabtrack.services.code_service import CodeService, code_service

logger = logging.getLogger(__name__)

PAGE_SIZE = 30

# Keeps OFFSET inside a signed 64-bit integer on every backend
MAX_PAGE = 1_000_000_000

# Client-supplied identifiers are never written
_IMMUTABLE_KEYS = ("id", "_id")


def parse_form_id(raw_id: str) -> uuid.UUID:
    """
    Convert a path id to a UUID.

    A string that is not a UUID can never match a stored form, so it is
    reported as not found instead of a validation error.
    """
    try:
        return uuid.UUID(str(raw_id))
    except (TypeError, ValueError):
        raise NotFoundError(resource="Form", resource_id=str(raw_id)) from None


def parse_page(raw_page: Optional[str]) -> int:
    """
    Page number from the query string; missing, malformed or < 1 means 1.

    Pages past MAX_PAGE are clamped to it (an empty page for any real store).
    """
    try:
        page = int(raw_page) if raw_page is not None else 1
    except (TypeError, ValueError):
        return 1
    if page < 1:
        return 1
    return min(page, MAX_PAGE)


def _schema_error_text(error: SchemaValidationError) -> str:
    """One line per failing field: `areticalNo: Field required`."""
    parts = []
    for item in error.errors():
        location = ".".join(str(part) for part in item.get("loc", ()))
        parts.append(f"{location}: {item.get('msg')}" if location else str(item.get("msg")))
    return "; ".join(parts)


class FormService:
    """
    Business logic layer for form operations.

    Error Handling Strategy:
        Store exceptions are wrapped in InternalError carrying the original
        error text (500). Application exceptions (NotFoundError,
        ValidationError) propagate unchanged. Create is the exception: any
        failure there becomes a 400.
    """

    def __init__(self, codes: CodeService | None = None):
        self.codes = codes or code_service

    # ── Create ────────────────────────────────────────────────────────────

    async def create_form(self, db: AsyncSession, payload: Any) -> FormCreatedResponse:
        """
        Validate a submission, attach its QR code and store it.

        Steps:
            1. Validate the body against FormCreate
            2. Allocate the id in Python (the QR code needs it)
            3. Generate the QR code for that id
            4. Insert the complete row in one write

        Raises:
            ValidationError: invalid body, QR generation failure or store
            failure; `error` carries the reason.
        """
        try:
            data = FormCreate.model_validate(payload)
            form_id = uuid.uuid4()
            code = await self.codes.generate_for(form_id)

            form = Form(id=form_id, code=code, **data.model_dump())
            db.add(form)
            await db.flush()
            logger.info("Form %s created (areticalNo=%s)", form.id, form.aretical_no)

            return FormCreatedResponse(form=FormResponse.model_validate(form))

        except SchemaValidationError as e:
            error_text = _schema_error_text(e)
            logger.info("Rejected form submission: %s", error_text)
            raise ValidationError(message="Error saving form data", error=error_text)
        except CodeGenerationError as e:
            logger.warning("QR code generation failed: %s", e.message)
            raise ValidationError(message="Error saving form data", error=e.message)
        except Exception as e:
            logger.error("Error saving form: %s", str(e), exc_info=True)
            raise ValidationError(message="Error saving form data", error=str(e) or type(e).__name__)

    # ── Read ──────────────────────────────────────────────────────────────

    async def list_forms(self, db: AsyncSession, page: int = 1) -> FormListResponse:
        """
        One page of forms, newest first.

        Offset pagination with a fixed page size:
            SELECT ... ORDER BY created_at DESC OFFSET (page-1)*30 LIMIT 30
            SELECT count(*) FROM forms
        """
        try:
            query = (
                select(Form)
                .order_by(desc(Form.created_at), desc(Form.id))
                .offset((page - 1) * PAGE_SIZE)
                .limit(PAGE_SIZE)
            )
            result = await db.execute(query)
            forms = list(result.scalars().all())

            count_result = await db.execute(select(func.count(Form.id)))
            total = count_result.scalar() or 0

            return FormListResponse(
                forms=[FormResponse.model_validate(form) for form in forms],
                page=page,
                total_pages=math.ceil(total / PAGE_SIZE),
            )

        except Exception as e:
            logger.error("Database error listing forms: %s", str(e), exc_info=True)
            raise InternalError(message="Error fetching form history", error=str(e))

    async def get_form(
        self,
        db: AsyncSession,
        raw_id: str,
        error_message: str = "Error fetching form details",
    ) -> FormResponse:
        """
        Fetch one form by id.

        `error_message` lets the two read endpoints keep their own 500 text.

        Raises:
            NotFoundError: unknown or malformed id (→ 404)
            InternalError: the query failed (→ 500)
        """
        form_id = parse_form_id(raw_id)
        form = await self._load(db, form_id, error_message)
        return FormResponse.model_validate(form)

    # ── Update ────────────────────────────────────────────────────────────

    async def update_form(self, db: AsyncSession, raw_id: str, payload: Dict[str, Any]) -> FormDataResponse:
        """
        Replace the header, detail, mill and code fields of a form.

        Every key in FULL_UPDATE_FIELDS must be present; values may be empty.
        `id` / `_id` in the body are ignored. The rates are not touched.

        Raises:
            ValidationError: absent keys (listed in `missing_fields`) or
            values of the wrong type
            NotFoundError: unknown or malformed id
            InternalError: the store failed
        """
        update_data = {k: v for k, v in payload.items() if k not in _IMMUTABLE_KEYS}

        missing_fields = _missing_keys(update_data, FULL_UPDATE_FIELDS)
        if missing_fields:
            raise ValidationError(message="Missing required fields", missing_fields=missing_fields)

        try:
            values = FormReplace.model_validate(update_data)
        except SchemaValidationError as e:
            raise ValidationError(message="Invalid field values", error=_schema_error_text(e))

        form_id = parse_form_id(raw_id)
        form = await self._load(db, form_id, "Error updating form")
        try:
            for attr, value in values.model_dump().items():
                setattr(form, attr, value)
            # Always a write, even when every value is unchanged
            form.updated_at = datetime.now(timezone.utc)
            await db.flush()
        except Exception as e:
            logger.error("Database error updating form %s: %s", form_id, str(e), exc_info=True)
            raise InternalError(message="Error updating form", error=str(e))

        logger.info("Form %s updated", form_id)
        return FormDataResponse(
            message="Form updated successfully",
            data=FormResponse.model_validate(form),
        )

    async def update_rates(self, db: AsyncSession, raw_id: str, payload: Dict[str, Any]) -> FormDataResponse:
        """
        Set warpRate and/or weftRate, leaving every other field alone.

        The body is checked before the id: a request with neither rate is a
        400 even for an unknown form.
        """
        try:
            rates = RatesUpdate.model_validate(payload)
        except SchemaValidationError as e:
            raise ValidationError(message="Invalid field values", error=_schema_error_text(e))

        update_fields = rates.model_dump(exclude_unset=True)
        if not update_fields:
            raise ValidationError(message="No valid fields to update")

        form_id = parse_form_id(raw_id)
        form = await self._load(db, form_id, "Error updating form rates")
        try:
            for attr, value in update_fields.items():
                setattr(form, attr, value)
            form.updated_at = datetime.now(timezone.utc)
            await db.flush()
        except Exception as e:
            logger.error("Database error updating rates of form %s: %s", form_id, str(e), exc_info=True)
            raise InternalError(message="Error updating form rates", error=str(e))

        logger.info("Form %s rates updated: %s", form_id, ", ".join(sorted(update_fields)))
        return FormDataResponse(
            message="Form updated successfully",
            data=FormResponse.model_validate(form),
        )

    # ── Delete ────────────────────────────────────────────────────────────

    async def delete_form(self, db: AsyncSession, raw_id: str) -> None:
        """
        Permanently remove a form.

        Raises:
            NotFoundError: nothing was deleted (unknown, malformed or already
            deleted id)
            InternalError: the store failed
        """
        form_id = parse_form_id(raw_id)
        try:
            result = await db.execute(delete(Form).where(Form.id == form_id))
        except Exception as e:
            logger.error("Database error deleting form %s: %s", form_id, str(e), exc_info=True)
            raise InternalError(message="Error deleting form", error=str(e))

        if result.rowcount == 0:
            raise NotFoundError(resource="Form", resource_id=str(form_id))
        logger.info("Form %s deleted", form_id)

    # ── Helpers ───────────────────────────────────────────────────────────

    async def _load(self, db: AsyncSession, form_id: uuid.UUID, error_message: str) -> Form:
        try:
            result = await db.execute(select(Form).where(Form.id == form_id))
            form = result.scalar_one_or_none()
        except Exception as e:
            logger.error("Database error fetching form %s: %s", form_id, str(e), exc_info=True)
            raise InternalError(message=error_message, error=str(e))

        if form is None:
            raise NotFoundError(resource="Form", resource_id=str(form_id))
        return form


def _missing_keys(data: Dict[str, Any], required: tuple) -> List[str]:
    # Presence only: "" / 0 / [] / null all count as present
    return [field for field in required if field not in data]


# ── Singleton Instance ────────────────────────────────────────────────────
form_service = FormService()
