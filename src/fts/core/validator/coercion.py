# fts/core/validator/coercion.py
"""
Type coercion between wire values and native Python values.

Two layers live here:

* Named coercions (``Buffer``, ``Date``) for types JSON cannot carry. A
  schema opts in with ``coerceTo: <name>``; ``decode`` turns the wire
  string into the native value and ``encode`` turns it back.
* ``coerce_value`` for ordinary JSON types, so that query-string and form
  values (always strings) satisfy ``number``/``boolean``/... schemas.
"""
from __future__ import annotations

import base64
import binascii
import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Mapping, Sequence

from fts.core.errors import CoercionError, UnknownCoercionError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Coercion:
    """A named, symmetric wire <-> native conversion.

    Attributes:
        name: Name referenced by ``coerceTo`` / ``coerceFrom`` schema keywords.
        decode: Wire string -> native value. May raise on malformed input.
        encode: Native value -> wire string.
        native_types: Types accepted by ``encode``.
    """

    name: str
    decode: Callable[[str], Any]
    encode: Callable[[Any], str]
    native_types: tuple[type, ...] = (object,)

    def is_native(self, value: Any) -> bool:
        return isinstance(value, self.native_types)


class CoercionRegistry:
    """Named registry of coercions. Read-only once validators are compiled."""

    def __init__(self, coercions: Iterable[Coercion] = ()) -> None:
        self._coercions: dict[str, Coercion] = {}
        for coercion in coercions:
            self.add(coercion)

    def register(
        self,
        name: str,
        decode: Callable[[str], Any],
        encode: Callable[[Any], str],
        native_types: tuple[type, ...] = (object,),
    ) -> Coercion:
        coercion = Coercion(
            name=name, decode=decode, encode=encode, native_types=native_types
        )
        self.add(coercion)
        return coercion

    def add(self, coercion: Coercion) -> None:
        if coercion.name in self._coercions:
            raise ValueError(f"Coercion '{coercion.name}' already registered")
        self._coercions[coercion.name] = coercion
        logger.debug("Registered coercion: %s", coercion.name)

    def get(self, name: str) -> Coercion:
        try:
            return self._coercions[name]
        except KeyError:
            raise UnknownCoercionError(name, self.names()) from None

    def has(self, name: str) -> bool:
        return name in self._coercions

    def names(self) -> list[str]:
        return list(self._coercions)

    def __len__(self) -> int:
        return len(self._coercions)


# -- built-in coercions ---------------------------------------------------------


def decode_buffer(data: str) -> bytes:
    """Decode base64 leniently: whitespace, unpadded and URL-safe input are accepted."""
    text = "".join(data.split()).replace("-", "+").replace("_", "/").rstrip("=")
    try:
        decoded = base64.b64decode(text + "=" * (-len(text) % 4))
    except (binascii.Error, ValueError) as exc:
        raise CoercionError(data, "Buffer", "invalid base64") from exc
    if text and not decoded:
        raise CoercionError(data, "Buffer", "invalid base64")
    return decoded


def encode_buffer(data: bytes | bytearray | memoryview) -> str:
    return base64.b64encode(bytes(data)).decode("ascii")


def decode_date(data: str) -> datetime:
    text = data.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError as exc:
        raise CoercionError(data, "Date", f'Invalid Date "{data}"') from exc


def encode_date(data: datetime) -> str:
    """ISO-8601 string; aware values are normalized to UTC with a ``Z`` suffix."""
    timespec = "milliseconds" if data.microsecond % 1000 == 0 else "microseconds"
    if data.tzinfo is None:
        return data.isoformat(timespec=timespec)
    utc = data.astimezone(timezone.utc).replace(tzinfo=None)
    return utc.isoformat(timespec=timespec) + "Z"


BUFFER = Coercion(
    name="Buffer",
    decode=decode_buffer,
    encode=encode_buffer,
    native_types=(bytes, bytearray, memoryview),
)

DATE = Coercion(
    name="Date",
    decode=decode_date,
    encode=encode_date,
    native_types=(datetime,),
)

default_registry = CoercionRegistry([BUFFER, DATE])


# -- JSON type coercion -----------------------------------------------------------

_TRUE_STRINGS = ("true", "1", "yes")
_FALSE_STRINGS = ("false", "0", "no")
_NULL_STRINGS = ("", "null")


def json_type_matches(value: Any, schema_type: str) -> bool:
    """Whether ``value`` is an instance of the JSON Schema ``schema_type``."""
    if schema_type == "string":
        return isinstance(value, str)
    if schema_type == "boolean":
        return isinstance(value, bool)
    if schema_type == "integer":
        if isinstance(value, bool):
            return False
        return isinstance(value, int) or (
            isinstance(value, float) and value.is_integer()
        )
    if schema_type == "number":
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if schema_type == "null":
        return value is None
    if schema_type == "array":
        return isinstance(value, (list, tuple))
    if schema_type == "object":
        return isinstance(value, Mapping)
    return True


def _to_number(value: Any, schema_type: str) -> int | float:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, str):
        text = value.strip()
        try:
            number = float(text)
        except ValueError as exc:
            raise CoercionError(value, schema_type, str(exc)) from exc
        if not math.isfinite(number):
            raise CoercionError(value, schema_type, "not a finite number")
        if schema_type == "integer":
            if not number.is_integer():
                raise CoercionError(value, schema_type, "not an integer")
            return int(number)
        return number
    raise CoercionError(value, schema_type)


def _to_single_type(value: Any, schema_type: str, items: Mapping[str, Any] | None) -> Any:
    if schema_type == "string":
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, (int, float)):
            return str(value)
        if value is None:
            return ""
        raise CoercionError(value, "string")

    if schema_type in ("integer", "number"):
        return _to_number(value, schema_type)

    if schema_type == "boolean":
        if isinstance(value, str):
            lower = value.strip().lower()
            if lower in _TRUE_STRINGS:
                return True
            if lower in _FALSE_STRINGS:
                return False
            raise CoercionError(value, "boolean", f"expected true/false, got '{value}'")
        if value in (0, 1) and not isinstance(value, bool):
            return bool(value)
        if value is None:
            return False
        raise CoercionError(value, "boolean")

    if schema_type == "null":
        if isinstance(value, str) and value.strip().lower() in _NULL_STRINGS:
            return None
        if value is False or (value == 0 and not isinstance(value, str)):
            return None
        raise CoercionError(value, "null", f"expected empty or 'null', got {value!r}")

    if schema_type == "array":
        items_schema = items if isinstance(items, Mapping) else {}
        if isinstance(value, str):
            parts = value.split(",") if value else []
            return [coerce_value(p.strip(), items_schema) for p in parts]
        if isinstance(value, Mapping):
            raise CoercionError(value, "array")
        return [value]

    raise CoercionError(value, schema_type, "unsupported coercion")


def coerce_value(value: Any, schema: Mapping[str, Any]) -> Any:
    """
    Coerce ``value`` to one of the JSON types declared in ``schema["type"]``.

    Values that already have a declared type are returned unchanged. For
    union types (``["string", "null"]``) each type is tried in order.

    Supports:
        - string: numbers and booleans are stringified, null -> ''
        - integer / number: numeric strings and booleans
        - boolean: 'true'/'1'/'yes' -> True, 'false'/'0'/'no' -> False
        - null: ''/'null' -> None
        - array: comma-separated strings, items coerced recursively;
          other scalars are wrapped

    Raises:
        CoercionError: If no declared type accepts the value.
    """
    declared = schema.get("type")
    if declared is None:
        return value
    types: Sequence[str] = [declared] if isinstance(declared, str) else list(declared)

    if any(json_type_matches(value, t) for t in types):
        return value

    # Prefer null for empty query strings when the type is nullable
    if "null" in types and isinstance(value, str) and value.strip().lower() in _NULL_STRINGS:
        return None

    last_error: CoercionError | None = None
    for schema_type in types:
        try:
            return _to_single_type(value, schema_type, schema.get("items"))
        except CoercionError as exc:
            last_error = exc

    if last_error is None:
        raise CoercionError(value, "/".join(types) or "<no type>")
    raise last_error
