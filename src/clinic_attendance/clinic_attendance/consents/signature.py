from __future__ import annotations

import base64
import binascii
import io
import re

from PIL import Image, UnidentifiedImageError

from ..core.exceptions import ValidationError

_DATA_URL = re.compile(r"^data:(?P<mime>image/[a-z0-9.+-]+);base64,(?P<data>.+)$", re.IGNORECASE | re.DOTALL)
_ALLOWED_FORMATS = {"PNG": "image/png", "JPEG": "image/jpeg", "WEBP": "image/webp"}
MAX_SIGNATURE_BYTES = 2 * 1024 * 1024


def normalize_signature(payload: str) -> str:
    """Validate a signature image and return it as a ``data:`` URL handle.

    Accepts a data URL (what a canvas ``toDataURL`` produces) or bare base64.
    """

    text = (payload or "").strip()
    if not text:
        raise ValidationError("Signature is required")

    match = _DATA_URL.match(text)
    encoded = match.group("data") if match else text

    try:
        raw = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError):
        raise ValidationError("Signature is not valid base64 image data")

    if not raw:
        raise ValidationError("Signature is empty")
    if len(raw) > MAX_SIGNATURE_BYTES:
        raise ValidationError("Signature image is too large")

    try:
        with Image.open(io.BytesIO(raw)) as img:
            fmt = img.format
            img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError):
        raise ValidationError("Signature is not a readable image")

    mime = _ALLOWED_FORMATS.get(fmt or "")
    if not mime:
        raise ValidationError(f"Unsupported signature image format: {fmt}")

    return f"data:{mime};base64,{base64.b64encode(raw).decode('ascii')}"
