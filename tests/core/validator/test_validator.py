# tests/core/validator/test_validator.py
from __future__ import annotations

import copy
from datetime import datetime, timezone

import pytest

from fts.core.errors import ContractValidationError, DefinitionError, UnknownCoercionError
from fts.core.validator import CoercionRegistry, SchemaValidator, create_validator
from fts.core.validator.validator import format_path, rewrite_annotations


WHEN = datetime(2021, 3, 4, 5, 6, 7, tzinfo=timezone.utc)

PARAMS = {
    "type": "object",
    "properties": {
        "when": {"type": "string", "format": "date-time", "coerceTo": "Date"},
        "days": {"type": "integer", "default": 1},
        "tags": {"type": "array", "items": {"type": "string"}, "default": []},
    },
    "required": ["when"],
}


@pytest.fixture
def validator() -> SchemaValidator:
    return create_validator()


class TestRewriteAnnotations:
    def test_decoder_and_encoder_views(self):
        schema = {"properties": {"a": {"type": ["object", "null"], "coerceTo": "Buffer"}}}

        encoder_view = rewrite_annotations(schema, "coerceTo", "coerceFrom")
        assert encoder_view["properties"]["a"] == {"type": ["string", "null"], "coerceFrom": "Buffer"}
        # Source schema untouched
        assert schema["properties"]["a"]["coerceTo"] == "Buffer"

    def test_drops_format(self):
        view = rewrite_annotations(PARAMS, "coerceFrom", "coerceTo")
        assert "format" not in view["properties"]["when"]

    def test_format_path(self):
        assert format_path(["items", 0, "name"]) == "data.items[0].name"
        assert format_path([]) == "data"


class TestDecoder:
    def test_decodes_dates_and_applies_defaults(self, validator):
        decoder = validator.decoder(PARAMS)

        result = decoder.validate({"when": "2021-03-04T05:06:07Z"})

        assert result.valid
        assert result.value == {"when": WHEN, "days": 1, "tags": []}

    def test_coerces_query_strings(self, validator):
        decoder = validator.decoder(PARAMS)

        result = decoder.validate({"when": "2021-03-04T05:06:07Z", "days": "42", "tags": "a,b"})

        assert result.value["days"] == 42
        assert result.value["tags"] == ["a", "b"]

    def test_invalid_date_is_reported_and_not_mutated(self, validator):
        decoder = validator.decoder(PARAMS)
        data = {"when": "not-a-date"}

        result = decoder.validate(data)

        assert not result.valid
        assert result.errors
        assert result.errors[0].startswith("data.when should be a valid Date")
        assert "(schema path: #/properties/when/coerceTo)" in result.errors[0]
        assert data == {"when": "not-a-date"}
        assert result.value["when"] == "not-a-date"

    def test_missing_required(self, validator):
        result = validator.decoder(PARAMS).validate({})
        assert not result.valid
        assert "'when' is a required property" in result.message

    def test_errors_are_listed_and_joined_in_message(self, validator):
        result = validator.decoder(PARAMS).validate({"when": "not-a-date", "days": "x"})

        assert len(result.errors) == 2
        assert result.errors[0].startswith("data.days ")
        assert result.errors[1].startswith("data.when ")
        assert result.message == ", ".join(result.errors)

    def test_defaults_are_copied(self, validator):
        decoder = validator.decoder(PARAMS)

        first = decoder.validate({"when": "2021-03-04T05:06:07Z"}).value
        first["tags"].append("x")
        second = decoder.validate({"when": "2021-03-04T05:06:07Z"}).value

        assert second["tags"] == []

    def test_call_raises_on_invalid(self, validator):
        decoder = validator.decoder(PARAMS)
        with pytest.raises(ContractValidationError) as exc_info:
            decoder({"when": 5})
        assert exc_info.value.status_code == 400
        assert exc_info.value.errors

    def test_nested_buffers(self, validator):
        schema = {
            "type": "object",
            "properties": {
                "files": {"type": "array", "items": {"type": "string", "coerceTo": "Buffer"}}
            },
        }
        result = validator.decoder(schema).validate({"files": ["aGk=", "eW8="]})
        assert result.value == {"files": [b"hi", b"yo"]}

    def test_top_level_coercion(self, validator):
        decoder = validator.decoder({"type": "string", "coerceTo": "Date"})
        assert decoder("2021-03-04T05:06:07Z") == WHEN

    def test_nullable_union(self, validator):
        schema = {
            "type": "object",
            "properties": {
                "at": {"anyOf": [{"type": "string", "coerceTo": "Date"}, {"type": "null"}]}
            },
        }
        decoder = validator.decoder(schema)

        assert decoder({"at": None}) == {"at": None}
        assert decoder({"at": "2021-03-04T05:06:07Z"}) == {"at": WHEN}

    def test_local_ref(self, validator):
        schema = {
            "type": "object",
            "definitions": {"stamp": {"type": "string", "coerceTo": "Date"}},
            "properties": {"at": {"$ref": "#/definitions/stamp"}},
        }
        assert validator.decoder(schema)({"at": "2021-03-04T05:06:07Z"}) == {"at": WHEN}

    def test_recursive_ref(self, validator):
        schema = {
            "type": "object",
            "properties": {
                "at": {"type": "string", "coerceTo": "Date"},
                "children": {"type": "array", "items": {"$ref": "#"}},
            },
        }
        value = validator.decoder(schema)(
            {"at": "2021-03-04T05:06:07Z", "children": [{"at": "2021-03-04T05:06:07Z"}]}
        )
        assert value["children"][0]["at"] == WHEN


class TestEncoder:
    def test_encodes_native_values(self, validator):
        encoder = validator.encoder(PARAMS)
        data = {"when": WHEN, "days": 3}
        original = copy.deepcopy(data)

        result = encoder.validate(data)

        assert result.valid
        assert result.value == {"when": "2021-03-04T05:06:07.000Z", "days": 3, "tags": []}
        assert data == original

    def test_encoded_value_is_stable(self, validator):
        encoder = validator.encoder(PARAMS)

        once = encoder({"when": WHEN})
        twice = encoder(once)

        assert twice == once

    def test_rejects_non_encodable(self, validator):
        result = validator.encoder(PARAMS).validate({"when": 5})

        assert not result.valid
        assert any("not encodable as Date" in error for error in result.errors)

    def test_rejects_undecodable_string(self, validator):
        result = validator.encoder(PARAMS).validate({"when": "yesterday"})
        assert not result.valid

    def test_result_wrapper(self, validator):
        returns = {"type": "object", "properties": {"result": {"type": "string", "coerceTo": "Buffer"}}}
        assert validator.encoder(returns)({"result": b"hello"}) == {"result": "aGVsbG8="}


class TestCompilation:
    def test_invalid_schema(self, validator):
        with pytest.raises(DefinitionError, match="Invalid JSON schema"):
            validator.decoder({"type": 5})

    def test_unknown_coercion(self, validator):
        with pytest.raises(UnknownCoercionError):
            validator.decoder({"type": "string", "coerceTo": "Money"})

    def test_remote_ref_rejected(self, validator):
        with pytest.raises(DefinitionError, match="local"):
            validator.decoder({"$ref": "http://example.com/schema.json"})

    def test_custom_registry(self):
        registry = CoercionRegistry()
        registry.register("Upper", str.upper, str.lower, native_types=(str,))
        validator = SchemaValidator(registry)

        assert validator.decoder({"type": "string", "coerceTo": "Upper"})("abc") == "ABC"
