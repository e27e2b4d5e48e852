"""
Fabtrack Backend — QR Code Service
===================================

What:  Turns a form id into a scannable QR code that deep-links to the form.
Why:   Printed forms carry the code; scanning it opens the detail page.
How:   Builds `<FRONTEND_URL>/form-details/<id>?qr=true`, encodes it with the
       `qrcode` library and returns the PNG as a data URI so it can travel
       inside JSON and be used directly as an <img> src.
Who:   Called by FormService once per form, before the row is written.

Symbol settings:
    error correction M, 2px per module, 4-module quiet zone.
    Encoding is deterministic: the same URL always yields the same PNG.
"""

import asyncio
import base64
import io
import logging
import uuid

import qrcode
from qrcode.constants import ERROR_CORRECT_M
from qrcode.exceptions import DataOverflowError

from fabtrack.config import settings
from fabtrack.exceptions import CodeGenerationError

logger = logging.getLogger(__name__)

DATA_URI_PREFIX = "data:image/png;base64,"


class CodeService:
    """
    Stateless QR code builder.

    Args:
        frontend_url: Base URL of the frontend; defaults to settings.frontend_url
        box_size: Pixels per QR module
        border: Quiet zone width in modules
    """

    def __init__(
        self,
        frontend_url: str | None = None,
        box_size: int = 2,
        border: int = 4,
    ):
        self.frontend_url = (frontend_url or settings.frontend_url).rstrip("/")
        self.box_size = box_size
        self.border = border

    def build_redirect_url(self, form_id: uuid.UUID | str) -> str:
        """URL the QR code points at: the form's detail page, flagged as a scan."""
        return f"{self.frontend_url}/form-details/{form_id}?qr=true"

    def encode(self, url: str) -> str:
        """
        Encode `url` as a PNG QR symbol and return it as a data URI.

        Raises:
            CodeGenerationError: the URL does not fit in a QR symbol, or the
            image could not be rendered.
        """
        qr = qrcode.QRCode(
            error_correction=ERROR_CORRECT_M,
            box_size=self.box_size,
            border=self.border,
        )
        # Overflow surfaces as DataOverflowError on qrcode 7.x and as
        # ValueError("Invalid version ...") from fit=True on 8.x
        try:
            qr.add_data(url)
            qr.make(fit=True)
        except (DataOverflowError, ValueError) as e:
            raise CodeGenerationError(
                message="URL is too long to encode as a QR code",
                context={"url_length": len(url), "error_type": type(e).__name__},
            ) from e

        try:
            image = qr.make_image()
            buffer = io.BytesIO()
            image.save(buffer)
        except (ValueError, OSError) as e:
            raise CodeGenerationError(
                message=f"Could not generate QR code: {e}",
                context={"error_type": type(e).__name__},
            ) from e

        return DATA_URI_PREFIX + base64.b64encode(buffer.getvalue()).decode("ascii")

    async def generate_for(self, form_id: uuid.UUID) -> str:
        """
        QR code data URI for the given form id.

        Rendering is CPU work, so it runs in a worker thread to keep the
        event loop free for other requests.
        """
        url = self.build_redirect_url(form_id)
        code = await asyncio.to_thread(self.encode, url)
        logger.debug("Generated QR code for form %s (%d chars)", form_id, len(code))
        return code


# ── Singleton Instance ────────────────────────────────────────────────────
code_service = CodeService()
