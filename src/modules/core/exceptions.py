"""Standardised API error responses.

Every error leaving the API has the same envelope::

    {"type": "validation_error", "errors": [{"code": ..., "detail": ..., "attr": ...}]}

Views that translate domain exceptions build the same envelope through
``error_response`` so clients only ever parse one shape.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import structlog
from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = structlog.get_logger(__name__)


class ExternalCollaboratorError(Exception):
    """An external system (courier API, catalog feed) failed or refused a request."""


def _flatten(detail: Any, attr: Optional[str] = None) -> List[Dict[str, Any]]:
    if isinstance(detail, dict):
        errors: List[Dict[str, Any]] = []
        for key, value in detail.items():
            nested = key if attr is None else f"{attr}.{key}"
            if key == "non_field_errors":
                nested = attr
            errors.extend(_flatten(value, nested))
        return errors
    if isinstance(detail, list):
        errors = []
        for value in detail:
            errors.extend(_flatten(value, attr))
        return errors
    code = getattr(detail, "code", "error")
    return [{"code": code, "detail": str(detail), "attr": attr}]


def _error_type(exc: Exception) -> str:
    if isinstance(exc, exceptions.ValidationError):
        return "validation_error"
    if isinstance(exc, (exceptions.NotAuthenticated, exceptions.AuthenticationFailed)):
        return "authentication_error"
    if isinstance(exc, exceptions.ParseError):
        return "validation_error"
    return "client_error"


def standard_exception_handler(exc: Exception, context: Dict[str, Any]) -> Optional[Response]:
    """DRF ``EXCEPTION_HANDLER`` producing the standard error envelope."""
    response = exception_handler(exc, context)
    if response is None:
        return None

    data = response.data
    if isinstance(data, dict) and set(data) == {"detail"}:
        data = data["detail"]
    response.data = {
        "type": _error_type(exc),
        "errors": _flatten(data),
    }
    return response


def error_response(
    detail: str,
    code: str,
    http_status: int = status.HTTP_400_BAD_REQUEST,
    error_type: str = "business_error",
    **extra: Any,
) -> Response:
    """Build a standard error envelope for a translated domain exception."""
    error: Dict[str, Any] = {"code": code, "detail": detail, "attr": None}
    error.update(extra)
    logger.info("api.domain_error", code=code, status_code=http_status)
    return Response({"type": error_type, "errors": [error]}, status=http_status)
