# tests/core/validator/test_coercion.py
from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from fts.core.errors import CoercionError, UnknownCoercionError
from fts.core.validator import BUFFER, DATE, CoercionRegistry, coerce_value, default_registry


class TestRegistry:
    def test_default_registry_has_builtins(self):
        assert default_registry.names() == ["Buffer", "Date"]
        assert default_registry.get("Date") is DATE

    def test_unknown_coercion(self):
        with pytest.raises(UnknownCoercionError, match="Unknown coercion type 'Money'"):
            default_registry.get("Money")

    def test_unknown_coercion_is_key_error(self):
        with pytest.raises(KeyError):
            default_registry.get("Money")

    def test_register_custom(self):
        registry = CoercionRegistry([BUFFER])
        upper = registry.register("Upper", str.upper, str.lower, native_types=(str,))

        assert registry.has("Upper")
        assert len(registry) == 2
        assert registry.get("Upper").decode("abc") == "ABC"
        assert upper.is_native("x")

    def test_duplicate_registration(self):
        registry = CoercionRegistry([DATE])
        with pytest.raises(ValueError, match="already registered"):
            registry.add(DATE)


class TestDate:
    def test_decode_utc(self):
        value = DATE.decode("2021-03-04T05:06:07.123Z")
        assert value == datetime(2021, 3, 4, 5, 6, 7, 123000, tzinfo=timezone.utc)

    def test_decode_offset(self):
        value = DATE.decode("2021-03-04T07:06:07+02:00")
        assert value.utcoffset() == timedelta(hours=2)

    def test_decode_invalid(self):
        with pytest.raises(CoercionError, match='Invalid Date "not-a-date"'):
            DATE.decode("not-a-date")

    def test_encode_aware_as_utc(self):
        value = datetime(2021, 3, 4, 7, 6, 7, tzinfo=timezone(timedelta(hours=2)))
        assert DATE.encode(value) == "2021-03-04T05:06:07.000Z"

    def test_encode_keeps_microseconds(self):
        value = datetime(2021, 3, 4, 5, 6, 7, 123456, tzinfo=timezone.utc)
        assert DATE.encode(value) == "2021-03-04T05:06:07.123456Z"

    def test_encode_naive(self):
        assert DATE.encode(datetime(2021, 3, 4, 5, 6, 7)) == "2021-03-04T05:06:07.000"

    def test_round_trip(self):
        value = datetime(2024, 2, 29, 23, 59, 59, 999000, tzinfo=timezone.utc)
        assert DATE.decode(DATE.encode(value)) == value


class TestBuffer:
    def test_decode(self):
        assert BUFFER.decode("aGVsbG8=") == b"hello"

    @pytest.mark.parametrize(
        "wire, expected",
        [
            ("aGVsbG8", b"hello"),
            ("aGVs\nbG8=\n", b"hello"),
            ("-_8", b"\xfb\xff"),
            ("", b""),
        ],
    )
    def test_decode_lenient(self, wire, expected):
        assert BUFFER.decode(wire) == expected

    @pytest.mark.parametrize("wire", ["***", "a"])
    def test_decode_invalid(self, wire):
        with pytest.raises(CoercionError, match="invalid base64"):
            BUFFER.decode(wire)

    def test_encode_accepts_bytes_like(self):
        assert BUFFER.encode(b"hello") == "aGVsbG8="
        assert BUFFER.encode(bytearray(b"hello")) == "aGVsbG8="
        assert BUFFER.encode(memoryview(b"hello")) == "aGVsbG8="

    def test_is_native(self):
        assert BUFFER.is_native(b"x")
        assert not BUFFER.is_native("x")


class TestCoerceValue:
    def test_no_type_passthrough(self):
        assert coerce_value("42", {}) == "42"

    def test_matching_type_unchanged(self):
        assert coerce_value(3, {"type": "number"}) == 3

    @pytest.mark.parametrize(
        "value,schema_type,expected",
        [
            ("42", "number", 42.0),
            ("42", "integer", 42),
            ("-1.5", "number", -1.5),
            (True, "integer", 1),
            (5, "string", "5"),
            (False, "string", "false"),
            ("yes", "boolean", True),
            ("FALSE", "boolean", False),
            (0, "boolean", False),
            ("null", "null", None),
        ],
    )
    def test_scalar_coercion(self, value, schema_type, expected):
        assert coerce_value(value, {"type": schema_type}) == expected

    def test_integer_rejects_fraction(self):
        with pytest.raises(CoercionError, match="not an integer"):
            coerce_value("4.5", {"type": "integer"})

    def test_number_rejects_nan(self):
        with pytest.raises(CoercionError, match="finite"):
            coerce_value("nan", {"type": "number"})

    def test_boolean_rejects_garbage(self):
        with pytest.raises(CoercionError):
            coerce_value("maybe", {"type": "boolean"})

    def test_nullable_empty_string(self):
        assert coerce_value("", {"type": ["integer", "null"]}) is None

    def test_union_tries_each_type(self):
        assert coerce_value("7", {"type": ["boolean", "integer"]}) == 7

    def test_array_from_comma_string(self):
        schema = {"type": "array", "items": {"type": "integer"}}
        assert coerce_value("1, 2,3", schema) == [1, 2, 3]

    def test_array_wraps_scalar(self):
        assert coerce_value(5, {"type": "array"}) == [5]

    def test_array_rejects_mapping(self):
        with pytest.raises(CoercionError):
            coerce_value({"a": 1}, {"type": "array"})
