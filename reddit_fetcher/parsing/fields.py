"""Typed accessors for the JSON payload of an envelope."""

import math
from typing import Any, List, Mapping, Optional, Tuple

from reddit_fetcher.errors import DecodeError
from reddit_fetcher.models.things import NOT_EDITED, Edited

_MISSING = object()


def json_type_name(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if isinstance(value, Mapping):
        return "object"
    return type(value).__name__


class FieldReader:
    """
    Reads typed fields out of one decoded payload object.

    Every type mismatch raises ``DecodeError`` naming the kind and field. A JSON
    ``null`` is treated the same as an absent field.

    Args:
        kind: Envelope kind, used in error messages
        data: Decoded ``data`` member of the envelope
    """

    def __init__(self, kind: str, data: Any):
        if not isinstance(data, Mapping):
            raise DecodeError(f"expected object, got {json_type_name(data)}", kind=kind, field="data")
        self.kind = kind
        self.data = data

    def error(self, name: str, message: str) -> DecodeError:
        return DecodeError(message, kind=self.kind, field=name)

    def has(self, name: str) -> bool:
        return self.data.get(name) is not None

    def _get(self, name: str, required: bool) -> Any:
        value = self.data.get(name)
        if value is None:
            if required:
                raise self.error(name, "missing required field")
            return _MISSING
        return value

    def _mismatch(self, name: str, expected: str, value: Any) -> DecodeError:
        return self.error(name, f"expected {expected}, got {json_type_name(value)}")

    def string(self, name: str, default: str = "", required: bool = False) -> str:
        value = self._get(name, required)
        if value is _MISSING:
            return default
        if not isinstance(value, str):
            raise self._mismatch(name, "string", value)
        return value

    def optional_string(self, name: str) -> Optional[str]:
        value = self._get(name, False)
        if value is _MISSING:
            return None
        if not isinstance(value, str):
            raise self._mismatch(name, "string", value)
        return value

    def integer(self, name: str, default: int = 0, minimum: Optional[int] = None) -> int:
        value = self._get(name, False)
        if value is _MISSING:
            return default
        if isinstance(value, bool) or not isinstance(value, int):
            raise self._mismatch(name, "integer", value)
        if minimum is not None and value < minimum:
            raise self.error(name, f"must be >= {minimum}, got {value}")
        return value

    def optional_integer(self, name: str) -> Optional[int]:
        if not self.has(name):
            return None
        return self.integer(name)

    def number(self, name: str, default: Optional[float] = 0.0) -> Optional[float]:
        value = self._get(name, False)
        if value is _MISSING:
            return default
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise self._mismatch(name, "number", value)
        if not math.isfinite(value):
            raise self.error(name, "number must be finite")
        return float(value)

    def boolean(self, name: str, default: bool = False) -> bool:
        value = self._get(name, False)
        if value is _MISSING:
            return default
        if not isinstance(value, bool):
            raise self._mismatch(name, "boolean", value)
        return value

    def optional_boolean(self, name: str) -> Optional[bool]:
        if not self.has(name):
            return None
        return self.boolean(name)

    def string_list(self, name: str) -> List[str]:
        value = self._get(name, False)
        if value is _MISSING:
            return []
        if not isinstance(value, list):
            raise self._mismatch(name, "array", value)
        for i, item in enumerate(value):
            if not isinstance(item, str):
                raise self.error(f"{name}[{i}]", f"expected string, got {json_type_name(item)}")
        return list(value)

    def edited(self) -> Edited:
        """Normalise ``edited``: ``false``/absent, ``true`` or a numeric timestamp."""
        value = self._get("edited", False)
        if value is _MISSING or value is False:
            return NOT_EDITED
        if value is True:
            return Edited(is_edited=True)
        if isinstance(value, (int, float)) and math.isfinite(value):
            return Edited(is_edited=True, timestamp=float(value))
        raise self._mismatch("edited", "boolean or timestamp", value)

    def timestamps(self) -> Tuple[Optional[float], Optional[float]]:
        """Return ``(created, created_utc)``, filling one from the other when only one is set."""
        created = self.number("created", default=None)
        created_utc = self.number("created_utc", default=None)
        if created is None:
            created = created_utc
        elif created_utc is None:
            created_utc = created
        return created, created_utc

    def votes(self) -> Tuple[int, int, int, Optional[bool]]:
        """Return ``(score, ups, downs, likes)``; whichever of ``score``/``ups`` is missing mirrors the other."""
        ups = self.optional_integer("ups")
        score = self.integer("score", default=ups or 0)
        if ups is None:
            ups = score
        downs = self.integer("downs")
        likes = self.optional_boolean("likes")
        return score, ups, downs, likes
