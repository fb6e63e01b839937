# tests/contracts/test_definition.py
from __future__ import annotations

import pytest

from fts.contracts import Definition, HttpResponse, ParamsSpec
from fts.core.errors import DefinitionError

from tests.helpers.definitions import make_definition


WIRE = {
    "title": "add",
    "version": "2.1.0",
    "description": "Adds two numbers",
    "config": {"language": "python", "defaultExport": False, "namedExport": "add"},
    "params": {
        "schema": {
            "type": "object",
            "properties": {"a": {"type": "number"}, "b": {"type": "number", "default": 0}},
            "required": ["a", "b"],
        },
        "order": ["a", "b"],
        "http": False,
        "context": True,
    },
    "returns": {
        "schema": {"type": "object", "properties": {"result": {"type": "number"}}},
        "async": True,
        "http": False,
    },
}


class TestFromDict:
    def test_parses_wire_shape(self):
        definition = Definition.from_dict(WIRE)

        assert definition.title == "add"
        assert definition.params.order == ("a", "b")
        assert definition.params.context is True
        assert definition.returns.is_async is True
        assert definition.config.named_export == "add"
        assert definition.config.default_export is False

    def test_to_dict_returns_wire_shape(self):
        assert Definition.from_dict(WIRE).to_dict() == WIRE

    def test_rejects_non_mapping(self):
        with pytest.raises(DefinitionError, match="must be an object"):
            Definition.from_dict(["not", "a", "definition"])

    def test_rejects_string_order(self):
        data = {**WIRE, "params": {**WIRE["params"], "order": "a"}}
        with pytest.raises(DefinitionError, match="list of names"):
            Definition.from_dict(data)

    def test_missing_sections_use_defaults(self):
        definition = Definition.from_dict({"title": "noop"})

        assert definition.params.order == ()
        assert definition.params.schema == {"type": "object"}
        assert definition.returns.http is False


class TestInvariants:
    def test_missing_title(self):
        with pytest.raises(DefinitionError, match="title"):
            Definition(title="")

    def test_duplicate_order(self):
        with pytest.raises(DefinitionError, match="duplicate"):
            Definition(
                title="dup",
                params=ParamsSpec(
                    schema={"type": "object", "properties": {"a": {}}},
                    order=("a", "a"),
                ),
            )

    def test_context_not_in_order(self):
        with pytest.raises(DefinitionError, match="context"):
            make_definition(properties={"context": {}}, order=["context"], context=True)

    def test_order_must_be_declared(self):
        with pytest.raises(DefinitionError, match="not declared"):
            make_definition(properties={"a": {}}, order=["a", "b"])

    def test_declared_params_must_be_ordered(self):
        with pytest.raises(DefinitionError, match=r"\['b'\] are missing from the parameter order"):
            make_definition(properties={"a": {}, "b": {}}, order=["a"])

    def test_context_property_need_not_be_ordered(self):
        definition = make_definition(properties={"a": {}, "context": {}}, order=["a"], context=True)
        assert definition.params.order == ("a",)

    def test_http_params_single_body(self):
        with pytest.raises(DefinitionError, match="single body"):
            make_definition(properties={}, order=["a", "b"], http_params=True)

    def test_http_params_skip_schema_check(self):
        definition = make_definition(properties={}, order=["body"], http_params=True)
        assert definition.params.order == ("body",)


class TestDerivedViews:
    def test_required_params_excludes_defaults(self):
        definition = Definition.from_dict(WIRE)
        assert definition.required_params == ["a"]

    def test_allows_extra_params(self):
        assert make_definition(properties={}, additional=True).allows_extra_params
        assert not make_definition(properties={}, additional=False).allows_extra_params
        assert not make_definition(properties={}).allows_extra_params


class TestHttpResponse:
    def test_coerce_mapping(self):
        raw = HttpResponse.coerce({"statusCode": 201, "headers": {"x-a": "1"}, "body": "hi"})
        assert raw == HttpResponse(status_code=201, headers={"x-a": "1"}, body="hi")

    def test_coerce_instance_passthrough(self):
        raw = HttpResponse(status_code=204)
        assert HttpResponse.coerce(raw) is raw

    def test_coerce_rejects_other_values(self):
        with pytest.raises(TypeError, match="statusCode"):
            HttpResponse.coerce("hello")
