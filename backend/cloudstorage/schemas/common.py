"""Common Marshmallow schemas shared across resources."""

from __future__ import annotations

import json
from typing import Any

from marshmallow import ValidationError, fields


class JSONList(fields.List):
    """List field that also accepts a JSON-encoded array (multipart forms)."""

    def _deserialize(self, value: Any, attr: str | None, data: Any, **kwargs: Any) -> list[Any]:
        if isinstance(value, str):
            try:
                value = json.loads(value) if value.strip() else []
            except ValueError as exc:
                raise ValidationError("Must be a JSON array.") from exc
        return super()._deserialize(value, attr, data, **kwargs)


class TrimmedString(fields.String):
    """String field that strips surrounding whitespace before validation."""

    def _deserialize(self, value: Any, attr: str | None, data: Any, **kwargs: Any) -> str:
        return super()._deserialize(value, attr, data, **kwargs).strip()


def build_pagination(result: Any) -> dict[str, Any]:
    """Return a ``pagination`` mapping from any page-like object."""

    return {
        "page": int(result.page),
        "pages": int(result.pages),
        "total": int(result.total),
        "has_next": bool(result.has_next),
        "has_prev": bool(result.has_prev),
    }
