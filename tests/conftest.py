# tests/conftest.py
from __future__ import annotations

import pytest

from fts.contracts import Definition
from fts.core.config import Settings

from tests.helpers.definitions import make_definition


@pytest.fixture
def hello_definition() -> Definition:
    return make_definition(
        title="hello",
        properties={"name": {"type": "string", "default": "World"}},
        required=["name"],
        result={"type": "string"},
    )


@pytest.fixture
def hello_func():
    def hello(name):
        return f"Hello {name}!"

    return hello


@pytest.fixture
def date_definition() -> Definition:
    return make_definition(
        title="shift",
        properties={
            "when": {"type": "string", "format": "date-time", "coerceTo": "Date"},
            "days": {"type": "integer", "default": 1},
        },
        required=["when"],
        result={"type": "string", "coerceTo": "Date"},
    )


@pytest.fixture
def test_settings() -> Settings:
    return Settings(debug=False, log_level="DEBUG")
