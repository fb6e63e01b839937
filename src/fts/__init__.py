"""Definition-driven HTTP marshalling for functions."""
from fts._version import __version__
from fts.contracts import Definition, HttpResponse
from fts.core.errors import (
    ContractValidationError,
    DefinitionError,
    FTSError,
    HttpError,
    RemoteCallError,
)
from fts.core.loader import load_definition, resolve_handler
from fts.core.validator import CoercionRegistry, SchemaValidator, create_validator
from fts.http import HttpClient, HttpContext, HttpHandler, create_http_client, create_http_handler
from fts.main import create_app

__all__ = [
    "__version__",
    "Definition", "HttpResponse",
    "FTSError", "DefinitionError", "ContractValidationError", "HttpError", "RemoteCallError",
    "load_definition", "resolve_handler",
    "CoercionRegistry", "SchemaValidator", "create_validator",
    "HttpClient", "HttpContext", "HttpHandler", "create_http_client", "create_http_handler",
    "create_app",
]
