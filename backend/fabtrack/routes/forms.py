"""
Fabtrack Backend — Form Route Handlers
=======================================

What:  The /api/v1 endpoints for production forms.
Why:   Entry point for the frontend's submit, history, detail and edit pages.
How:   Each handler pulls the session from `get_db_session`, delegates to
       FormService and returns a response model. Errors are raised as
       application exceptions and rendered by the global handlers in main.py.

Route Inventory:
    POST   /api/v1/submit-form   create (201)
    GET    /api/v1/forms         paginated history, 30 per page
    GET    /api/v1/forms/{id}    the bare form
    GET    /api/v1/form/{id}     {message, data}
    PUT    /api/v1/forms/{id}    full update
    PUT    /api/v1/edit/{id}     rates update
    DELETE /api/v1/forms/{id}    delete

Path ids are plain strings: malformed ids must become 404s, not FastAPI's 422.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from fabtrack.database import get_db_session
from fabtrack.schemas.form import (
    ErrorResponse,
    FormCreatedResponse,
    FormDataResponse,
    FormListResponse,
    FormResponse,
    MessageResponse,
)
from fabtrack.services.form_service import form_service, parse_page

router = APIRouter(prefix="/api/v1", tags=["Forms"])

_NOT_FOUND = {"description": "Form not found", "model": ErrorResponse}
_SERVER_ERROR = {"description": "Store error", "model": ErrorResponse}


@router.post(
    "/submit-form",
    status_code=201,
    response_model=FormCreatedResponse,
    responses={400: {"description": "Invalid form or save failure", "model": ErrorResponse}},
    summary="Submit a new production form",
    description=(
        "Stores a new form and attaches a QR code (PNG data URI) that links to "
        "`<FRONTEND_URL>/form-details/<id>?qr=true`."
    ),
)
async def submit_form(
    payload: Any = Body(default=None),
    db: AsyncSession = Depends(get_db_session),
) -> FormCreatedResponse:
    return await form_service.create_form(db=db, payload=payload or {})


@router.get(
    "/forms",
    response_model=FormListResponse,
    responses={500: _SERVER_ERROR},
    summary="List forms, newest first",
)
async def list_forms(
    page: Optional[str] = Query(default=None, description="Page number (1-based, 30 forms per page)"),
    db: AsyncSession = Depends(get_db_session),
) -> FormListResponse:
    """
    Offset pagination over all forms.

    Why page is a string: `?page=abc` falls back to page 1 instead of failing.
    """
    return await form_service.list_forms(db=db, page=parse_page(page))


@router.get(
    "/forms/{form_id}",
    response_model=FormResponse,
    responses={404: _NOT_FOUND, 500: _SERVER_ERROR},
    summary="Get a form by id",
)
async def get_form(
    form_id: str,
    db: AsyncSession = Depends(get_db_session),
) -> FormResponse:
    return await form_service.get_form(db=db, raw_id=form_id)


@router.get(
    "/form/{form_id}",
    response_model=FormDataResponse,
    responses={404: _NOT_FOUND, 500: _SERVER_ERROR},
    summary="Get a form by id, wrapped with a message",
)
async def get_form_wrapped(
    form_id: str,
    db: AsyncSession = Depends(get_db_session),
) -> FormDataResponse:
    form = await form_service.get_form(db=db, raw_id=form_id, error_message="Error fetching form")
    return FormDataResponse(message="Form retrieved successfully", data=form)


@router.put(
    "/forms/{form_id}",
    response_model=FormDataResponse,
    responses={
        400: {"description": "Missing or invalid fields", "model": ErrorResponse},
        404: _NOT_FOUND,
        500: _SERVER_ERROR,
    },
    summary="Replace a form's fields",
    description=(
        "All of areticalNo, name, date, warpDetails, weftDetails, dyingMillName, "
        "fabricsShortage and code must be present (empty values are allowed)."
    ),
)
async def update_form(
    form_id: str,
    payload: Optional[Dict[str, Any]] = Body(default=None),
    db: AsyncSession = Depends(get_db_session),
) -> FormDataResponse:
    return await form_service.update_form(db=db, raw_id=form_id, payload=payload or {})


@router.put(
    "/edit/{form_id}",
    response_model=FormDataResponse,
    responses={
        400: {"description": "Neither warpRate nor weftRate supplied", "model": ErrorResponse},
        404: _NOT_FOUND,
        500: _SERVER_ERROR,
    },
    summary="Set a form's warp/weft rates",
)
async def update_rates(
    form_id: str,
    payload: Optional[Dict[str, Any]] = Body(default=None),
    db: AsyncSession = Depends(get_db_session),
) -> FormDataResponse:
    return await form_service.update_rates(db=db, raw_id=form_id, payload=payload or {})


@router.delete(
    "/forms/{form_id}",
    response_model=MessageResponse,
    responses={404: _NOT_FOUND, 500: _SERVER_ERROR},
    summary="Delete a form",
)
async def delete_form(
    form_id: str,
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await form_service.delete_form(db=db, raw_id=form_id)
    return MessageResponse(message="Form deleted successfully")
