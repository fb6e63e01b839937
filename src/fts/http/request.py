# fts/http/request.py
"""
Parameter extraction from incoming requests.

GET parameters come from the query string; POST parameters come from a
multipart form, an urlencoded form, or a JSON body. Raw-http functions get
the body bytes untouched.
"""
from __future__ import annotations

import json
import logging
import mimetypes
import zlib
from typing import Any

import filetype
from starlette.datastructures import UploadFile
from starlette.exceptions import HTTPException

from fts.contracts.definition import Definition
from fts.core.errors import (
    ClientInputError,
    PayloadTooLargeError,
    UnsupportedEncodingError,
    UnsupportedMethodError,
)
from fts.http.context import HttpContext, parse_content_type

logger = logging.getLogger(__name__)

MULTIPART = "multipart/form-data"
URLENCODED = "application/x-www-form-urlencoded"


def _charset_for_mime(mime: str) -> str | None:
    """Charset implied by a MIME type, if any."""
    if mime.startswith("text/"):
        return "utf-8"
    if mime in ("application/json", "application/javascript", "application/xml") or mime.endswith("+json"):
        return "utf-8"
    return None


def decode_upload(data: bytes, content_type: str | None, filename: str | None) -> str | bytes:
    """Decode an uploaded file to text when its charset can be determined.

    Preference: the part's declared charset, then the charset implied by the
    MIME type sniffed from the content, the declared MIME type, or a guess
    from the filename. Otherwise the raw bytes are returned.
    """
    declared, params = parse_content_type(content_type)
    charset = params.get("charset")

    mime = filetype.guess_mime(data) or declared
    if not mime and filename:
        mime = mimetypes.guess_type(filename)[0] or ""
    if not charset and mime:
        charset = _charset_for_mime(mime)

    if not charset:
        return data
    try:
        return data.decode(charset)
    except (LookupError, UnicodeDecodeError):
        logger.debug("Upload %r is not valid %s, keeping raw bytes", filename, charset)
        return data


def _collapse(values: list[Any]) -> Any:
    return values[0] if len(values) == 1 else values


def _decompress(body: bytes, wbits: int, limit: int | None) -> bytes:
    inflater = zlib.decompressobj(wbits)
    data = inflater.decompress(body, 0 if limit is None else limit + 1)
    if limit is not None and len(data) > limit:
        raise PayloadTooLargeError(f"Request body too large (> {limit} bytes inflated)")
    if not inflater.eof:
        raise zlib.error("incomplete or truncated stream")
    return data


def _inflate(body: bytes, encoding: str, limit: int | None = None) -> bytes:
    """Undo ``Content-Encoding``, never inflating past ``limit`` bytes."""
    encoding = encoding.strip().lower()
    if encoding in ("", "identity"):
        return body
    if encoding not in ("gzip", "x-gzip", "deflate"):
        raise UnsupportedEncodingError(f'Unsupported content encoding "{encoding}"')
    try:
        if encoding != "deflate":
            return _decompress(body, 16 + zlib.MAX_WBITS, limit)
        try:
            return _decompress(body, zlib.MAX_WBITS, limit)
        except zlib.error:
            # Raw deflate stream without zlib header
            return _decompress(body, -zlib.MAX_WBITS, limit)
    except zlib.error as exc:
        raise ClientInputError(f"Invalid {encoding} request body") from exc


async def read_body(context: HttpContext, *, limit: int) -> bytes:
    """Buffer the request body, enforcing ``limit`` and inflating gzip/deflate.

    Raises:
        PayloadTooLargeError: The body exceeds ``limit`` bytes.
        UnsupportedEncodingError: Unknown ``Content-Encoding``.
    """
    declared = context.length
    if declared is not None and declared > limit:
        raise PayloadTooLargeError(f"Request body too large ({declared} > {limit} bytes)")

    chunks: list[bytes] = []
    received = 0
    async for chunk in context.request.stream():
        received += len(chunk)
        if received > limit:
            raise PayloadTooLargeError(f"Request body too large (> {limit} bytes)")
        chunks.append(chunk)

    return _inflate(b"".join(chunks), context.get("Content-Encoding"), limit=limit)


async def read_form(context: HttpContext) -> dict[str, Any]:
    """Parse a multipart or urlencoded form into a parameter bag."""
    params: dict[str, Any] = {}
    try:
        form = await context.request.form()
    except HTTPException as exc:
        raise ClientInputError(f"Invalid form body: {exc.detail}", status_code=exc.status_code) from exc

    try:
        for key in form.keys():
            values: list[Any] = []
            for value in form.getlist(key):
                if isinstance(value, UploadFile):
                    data = await value.read()
                    values.append(decode_upload(data, value.content_type, value.filename))
                else:
                    values.append(value)
            params[key] = _collapse(values)
    finally:
        await form.close()
    return params


def parse_json_body(body: bytes) -> Any:
    if not body.strip():
        return {}
    try:
        return json.loads(body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ClientInputError(f"Invalid JSON body: {exc}") from exc


async def get_params(
    context: HttpContext,
    definition: Definition,
    *,
    body_size_limit: int,
    debug: bool = False,
) -> Any:
    """Extract raw (not yet validated) parameters from the request.

    For raw-http definitions this returns the body bytes (or ``None`` when
    the function takes no ordinary parameter).

    Raises:
        ClientInputError: Malformed body or non-object parameters.
        UnsupportedMethodError: Method other than GET/POST.
    """
    if definition.params.http:
        if not definition.params.order:
            return None
        if debug:
            logger.debug("Raw http request headers: %s", dict(context.headers))
        return await read_body(context, limit=body_size_limit)

    method = context.method
    if method == "GET":
        params: Any = context.query
    elif method == "POST":
        if context.is_(MULTIPART, URLENCODED):
            declared = context.length
            if declared is not None and declared > body_size_limit:
                raise PayloadTooLargeError(
                    f"Request body too large ({declared} > {body_size_limit} bytes)"
                )
            params = await read_form(context)
        else:
            params = parse_json_body(await read_body(context, limit=body_size_limit))
    else:
        raise UnsupportedMethodError("Not implemented")

    if not isinstance(params, dict):
        raise ClientInputError("Invalid parameters")
    return params
