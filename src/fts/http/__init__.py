"""HTTP transport: server handler, client, request context."""
from fts.http.client import BagCall, HttpClient, PositionalCall, classify_call, create_http_client
from fts.http.context import HttpContext
from fts.http.handler import HttpHandler, create_http_handler

__all__ = [
    "HttpClient", "create_http_client", "BagCall", "PositionalCall", "classify_call",
    "HttpContext",
    "HttpHandler", "create_http_handler",
]
