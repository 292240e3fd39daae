from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from django.http import QueryDict


def normalize_payload(data: Any, aliases: Mapping[str, str]) -> dict[str, Any]:
    """Accept the browser client's camelCase keys and map them to serializer fields.

    A snake_case key already present wins over its alias.
    """
    # Flatten QueryDict (form/multipart) to simple dict with scalar values
    out = data.dict() if isinstance(data, QueryDict) else dict(data or {})
    for alias, field in aliases.items():
        if alias in out and field not in out:
            out[field] = out.pop(alias)
    return out
