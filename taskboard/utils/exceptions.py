"""Error taxonomy and the DRF exception handler that renders it as an envelope."""

from __future__ import annotations

import logging
from typing import Any

from django.utils.translation import gettext_lazy as _
from rest_framework import exceptions
from rest_framework import status
from rest_framework.views import exception_handler

from .envelope import envelope

logger = logging.getLogger(__name__)


class Conflict(exceptions.APIException):
    """A unique field (e.g. email) is already taken.

    Reported as 400 so existing clients treat it like any other rejected input.
    """

    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = _("Resource already exists.")
    default_code = "conflict"


def _flatten_errors(detail: Any, prefix: str = "") -> list[dict[str, Any]]:
    """Turn DRF's nested error detail into ``[{field, message}]``."""

    if isinstance(detail, dict):
        errors: list[dict[str, Any]] = []
        for key, value in detail.items():
            field = key if not prefix else f"{prefix}.{key}"
            if key == "non_field_errors":
                field = prefix or None
            errors.extend(_flatten_errors(value, field or ""))
        return errors
    if isinstance(detail, list):
        errors = []
        for index, item in enumerate(detail):
            if isinstance(item, (dict, list)):
                errors.extend(_flatten_errors(item, f"{prefix}.{index}" if prefix else str(index)))
            else:
                errors.extend(_flatten_errors(item, prefix))
        return errors
    return [{"field": prefix or None, "message": str(detail)}]


def _message_for(exc: exceptions.APIException) -> str:
    if isinstance(exc, exceptions.ValidationError):
        return "Validation failed"
    detail = exc.detail
    if isinstance(detail, dict):
        detail = detail.get("detail", detail)
    if isinstance(detail, list) and detail:
        detail = detail[0]
    return str(detail)


def envelope_exception_handler(exc, context):
    """Render every API failure as ``{success: false, message, errors?}``.

    Unknown exceptions become a generic 500; the traceback goes to the log only.
    """

    response = exception_handler(exc, context)
    if response is None:
        view = context.get("view")
        logger.exception(
            "Unhandled error in %s",
            view.__class__.__name__ if view is not None else "view",
        )
        return envelope(
            success=False,
            message="Server error",
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    errors = None
    if isinstance(exc, exceptions.ValidationError):
        errors = _flatten_errors(exc.detail)

    headers = {
        key: value
        for key, value in response.items()
        if key in ("WWW-Authenticate", "Retry-After", "Allow")
    }
    return envelope(
        success=False,
        message=_message_for(exc),
        errors=errors,
        status=response.status_code,
        headers=headers or None,
    )
