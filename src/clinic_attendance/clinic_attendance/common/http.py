from __future__ import annotations

import logging
from dataclasses import asdict, is_dataclass
from datetime import date, datetime
from enum import Enum
from functools import wraps
from typing import Any, Dict

from flask import jsonify, request

from ..core.exceptions import (
    AuthenticationError,
    ConfigurationError,
    ConsentRequiredError,
    DomainError,
    InvalidTransitionError,
    NotFoundError,
    NotReadyError,
    SessionNotActiveError,
    TransientStoreError,
    ValidationError,
)

logger = logging.getLogger(__name__)

# Most specific first.
_STATUS_BY_ERROR: tuple[tuple[type[Exception], int], ...] = (
    (NotFoundError, 404),
    (InvalidTransitionError, 422),
    (ValidationError, 400),
    (AuthenticationError, 401),
    (SessionNotActiveError, 409),
    (ConsentRequiredError, 409),
    (NotReadyError, 409),
    (ConfigurationError, 500),
)


def status_for(exc: Exception) -> int:
    for kind, status in _STATUS_BY_ERROR:
        if isinstance(exc, kind):
            return status
    return 500


def error_response(exc: Exception):
    if isinstance(exc, DomainError):
        return jsonify({"success": False, "error": exc.code, "message": str(exc)}), status_for(exc)
    if isinstance(exc, TransientStoreError):
        return (
            jsonify({"success": False, "error": "store_unavailable", "message": "Storage is temporarily unavailable; try again"}),
            503,
        )
    return jsonify({"success": False, "error": "internal_error", "message": "Unexpected server error"}), 500


def api_view(view):
    """Wrap a JSON view so domain errors become ``{"success": false, ...}`` responses."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        try:
            return view(*args, **kwargs)
        except DomainError as e:
            if isinstance(e, (AuthenticationError, ConfigurationError)):
                logger.warning("%s on %s: %s", e.code, request.path, e)
            return error_response(e)
        except TransientStoreError as e:
            logger.error("Store unavailable on %s: %s", request.path, e)
            return error_response(e)
        except Exception as e:
            logger.exception("Unhandled error on %s", request.path)
            return error_response(e)

    return wrapper


def json_body() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    if data is None:
        data = request.form.to_dict()
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def to_json(value: Any) -> Any:
    """Dataclasses, enums and datetimes to JSON-safe primitives."""

    if is_dataclass(value) and not isinstance(value, type):
        return {k: to_json(v) for k, v in asdict(value).items()}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: to_json(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_json(v) for v in value]
    return value
