# tests/test_fastapi_app.py
from fastapi.testclient import TestClient

from fts.core.config import Settings
from fts.main import create_app


def test_health_endpoint(hello_definition, hello_func):
    app = create_app(hello_definition, hello_func, settings=Settings(), configure_logs=False)
    client = TestClient(app)

    r = client.get("/health")

    assert r.status_code == 200
    assert r.json()["status"] == "healthy"
    assert r.json()["function"] == "hello"


def test_definition_endpoint(hello_definition, hello_func):
    app = create_app(hello_definition, hello_func, settings=Settings(), configure_logs=False)

    with TestClient(app) as client:
        r = client.get("/definition")

    assert r.status_code == 200
    assert r.json() == hello_definition.to_dict()


def test_cors_preflight(hello_definition, hello_func):
    settings = Settings(cors_allow_origins=["http://example.com"])
    client = TestClient(create_app(hello_definition, hello_func, settings=settings, configure_logs=False))

    r = client.options(
        "/",
        headers={
            "Origin": "http://example.com",
            "Access-Control-Request-Method": "POST",
        },
    )

    assert r.status_code == 200
    assert r.headers["access-control-allow-origin"] == "http://example.com"
    assert "POST" in r.headers["access-control-allow-methods"]


def test_state_exposes_handler(hello_definition, hello_func):
    app = create_app(hello_definition, hello_func, settings=Settings(), configure_logs=False)

    assert app.state.definition is hello_definition
    assert app.state.handler.definition is hello_definition
