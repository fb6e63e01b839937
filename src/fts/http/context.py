# fts/http/context.py
"""
HttpContext – per-request context handed to functions that declare a
trailing ``context`` parameter.

Carries request metadata, content negotiation helpers, and response
controls (status code, extra headers) that the handler applies when it
writes the response.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from email.message import Message
from typing import Any

from fastapi import Request
from starlette.datastructures import MutableHeaders

from fts._version import __version__

logger = logging.getLogger(__name__)

# Shorthand names accepted by ``accepts`` / ``is_``
MIME_SHORTHANDS = {
    "json": "application/json",
    "text": "text/plain",
    "html": "text/html",
    "xml": "application/xml",
    "urlencoded": "application/x-www-form-urlencoded",
    "multipart": "multipart/*",
    "bin": "application/octet-stream",
}


def parse_content_type(value: str | None) -> tuple[str, dict[str, str]]:
    """Split a Content-Type header into ``(mime, params)``; empty on missing."""
    if not value:
        return "", {}
    msg = Message()
    msg["content-type"] = value
    params = {k.lower(): v for k, v in msg.get_params(failobj=[])[1:]}
    return msg.get_content_type(), params


def _expand(mime: str) -> str:
    return MIME_SHORTHANDS.get(mime, mime) if "/" not in mime else mime


def _mime_matches(pattern: str, mime: str) -> bool:
    p_type, _, p_sub = pattern.partition("/")
    m_type, _, m_sub = mime.partition("/")
    return p_type in ("*", m_type) and p_sub in ("*", m_sub)


@dataclass(frozen=True)
class _AcceptEntry:
    mime: str
    q: float
    index: int


def parse_accept(header: str | None) -> list[_AcceptEntry]:
    entries = []
    for index, raw in enumerate((header or "").split(",")):
        raw = raw.strip()
        if not raw:
            continue
        mime, _, rest = raw.partition(";")
        q = 1.0
        for param in rest.split(";"):
            key, _, value = param.strip().partition("=")
            if key.lower() == "q":
                try:
                    q = float(value)
                except ValueError:
                    q = 0.0
        entries.append(_AcceptEntry(mime.strip().lower(), q, index))
    return entries


def negotiate(accept_header: str | None, offered: list[str]) -> str | None:
    """Pick the offered type the client prefers, or ``None``.

    Ranking follows the usual rules: quality first, then how specifically the
    Accept entry names the type, then the Accept header's order, then the
    order of ``offered``. Without an Accept header the first offer wins.
    """
    if not offered:
        return None
    entries = parse_accept(accept_header)
    if not entries:
        return offered[0]

    ranked = []
    for position, offer in enumerate(offered):
        mime = _expand(offer)
        best: tuple[int, float, int] | None = None
        for entry in entries:
            if not (_mime_matches(entry.mime, mime) or _mime_matches(mime, entry.mime)):
                continue
            e_type, _, e_sub = entry.mime.partition("/")
            specificity = (4 if e_type != "*" else 0) + (2 if e_sub != "*" else 0)
            candidate = (specificity, entry.q, -entry.index)
            if best is None or candidate > best:
                best = candidate
        if best is not None and best[1] > 0:
            specificity, q, neg_index = best
            ranked.append((-q, -specificity, -neg_index, position, offer))

    if not ranked:
        return None
    return min(ranked)[-1]


class HttpContext:
    """Request/response context for one invocation.

    Attributes:
        request: The underlying Starlette request.
        request_id: Unique identifier for this invocation.
        now: Request timestamp (UTC).
        version: Version of the handler invoking the function.
        status_code: Response status chosen by the function (``None`` keeps
            the handler's default).
        response_headers: Extra headers applied to the response.
    """

    def __init__(self, request: Request) -> None:
        self.request = request
        self.request_id = str(uuid.uuid4())
        self.now = datetime.now(timezone.utc)
        self.version = __version__
        self.status_code: int | None = None
        self.response_headers = MutableHeaders()

    # -- request metadata -----------------------------------------------------

    @property
    def method(self) -> str:
        return self.request.method

    @property
    def headers(self) -> Any:
        return self.request.headers

    @property
    def url(self) -> str:
        url = self.request.url
        return url.path + (f"?{url.query}" if url.query else "")

    @property
    def href(self) -> str:
        return str(self.request.url)

    @property
    def path(self) -> str:
        return self.request.url.path

    @property
    def querystring(self) -> str:
        return self.request.url.query

    @property
    def query(self) -> dict[str, Any]:
        """Query parameters; repeated keys become lists."""
        qp = self.request.query_params
        out: dict[str, Any] = {}
        for key in qp.keys():
            values = qp.getlist(key)
            out[key] = values[0] if len(values) == 1 else values
        return out

    @property
    def protocol(self) -> str:
        return self.request.url.scheme or "http"

    @property
    def secure(self) -> bool:
        return self.protocol in ("https", "wss")

    @property
    def host(self) -> str:
        host = self.get(":authority") or self.get("Host")
        return host.split(",", 1)[0].strip() if host else ""

    @property
    def hostname(self) -> str:
        host = self.host
        if host.startswith("["):
            # IPv6 literal
            return host[1:].split("]", 1)[0]
        return host.split(":", 1)[0]

    @property
    def origin(self) -> str:
        return f"{self.protocol}://{self.host}"

    @property
    def ip(self) -> str | None:
        client = self.request.client
        return client.host if client else None

    @property
    def content_type(self) -> str:
        return parse_content_type(self.get("Content-Type"))[0]

    @property
    def charset(self) -> str:
        return parse_content_type(self.get("Content-Type"))[1].get("charset", "")

    @property
    def length(self) -> int | None:
        value = self.get("Content-Length")
        try:
            return int(value) if value else None
        except ValueError:
            return None

    def get(self, field: str) -> str:
        """Request header value, ``''`` when absent."""
        name = field.lower()
        if name in ("referer", "referrer"):
            return self.request.headers.get("referrer") or self.request.headers.get("referer") or ""
        return self.request.headers.get(name, "")

    # -- negotiation ----------------------------------------------------------

    def accepts(self, *types: str) -> str | None:
        """Return the first of ``types`` the client prefers (``'json'``, ``'text/plain'``...)."""
        return negotiate(self.get("Accept"), list(types))

    def is_(self, *types: str) -> str | None:
        """Return the matching type if the request body has one of ``types``."""
        mime = self.content_type
        if not mime:
            return None
        for candidate in types:
            if _mime_matches(_expand(candidate), mime):
                return candidate
        return None

    # -- response controls ----------------------------------------------------

    def set(self, field: str, value: str | list[str]) -> None:
        """Set a response header; lists become repeated headers."""
        if isinstance(value, (list, tuple)):
            del self.response_headers[field]
            for item in value:
                self.response_headers.append(field, str(item))
        else:
            self.response_headers[field] = str(value)

    def __repr__(self) -> str:
        return f"HttpContext(method={self.method!r}, path={self.path!r}, id={self.request_id})"
