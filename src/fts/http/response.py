# fts/http/response.py
"""
Response serialization by value kind.

* bytes-like  -> ``application/octet-stream`` with an explicit length
* streams     -> streamed with the same content type
* objects, numbers, booleans -> JSON
* strings     -> JSON when the client prefers it over text, else text
  with a trailing newline
"""
from __future__ import annotations

import inspect
import io
import json
import logging
import traceback
from typing import Any, AsyncIterator, Iterator

from fastapi.responses import Response, StreamingResponse
from starlette.datastructures import MutableHeaders

from fts.core.errors import FTSError, InternalError
from fts.http.context import HttpContext

logger = logging.getLogger(__name__)

JSON_TYPE = "application/json; charset=utf-8"
TEXT_TYPE = "text/plain; charset=utf-8"
BINARY_TYPE = "application/octet-stream"

_STREAM_CHUNK = 64 * 1024


def is_stream(value: Any) -> bool:
    if isinstance(value, (str, bytes, bytearray, memoryview)):
        return False
    if isinstance(value, io.IOBase) or callable(getattr(value, "read", None)):
        return True
    return inspect.isgenerator(value) or inspect.isasyncgen(value) or hasattr(value, "__aiter__")


async def _iter_stream(value: Any) -> AsyncIterator[bytes]:
    if hasattr(value, "__aiter__"):
        async for chunk in value:
            yield chunk.encode("utf-8") if isinstance(chunk, str) else bytes(chunk)
        return

    if callable(getattr(value, "read", None)):
        try:
            while True:
                chunk = value.read(_STREAM_CHUNK)
                if inspect.isawaitable(chunk):
                    chunk = await chunk
                if not chunk:
                    break
                yield chunk.encode("utf-8") if isinstance(chunk, str) else bytes(chunk)
        finally:
            close = getattr(value, "close", None)
            if callable(close):
                result = close()
                if inspect.isawaitable(result):
                    await result
        return

    iterator: Iterator[Any] = value
    for chunk in iterator:
        yield chunk.encode("utf-8") if isinstance(chunk, str) else bytes(chunk)


def _headers(context: HttpContext, default_type: str | None = None) -> MutableHeaders:
    headers = MutableHeaders(raw=list(context.response_headers.raw))
    if default_type is not None:
        headers.setdefault("content-type", default_type)
    return headers


def dump_json(value: Any, *, pretty: bool = False) -> str:
    """JSON text for a response body.

    Raises:
        InternalError: ``value`` holds something JSON cannot represent.
    """
    try:
        if pretty:
            return json.dumps(value, indent=2, ensure_ascii=False, allow_nan=False)
        return json.dumps(value, ensure_ascii=False, separators=(",", ":"), allow_nan=False)
    except (TypeError, ValueError) as exc:
        raise InternalError(f"Unexpected return type: {exc}") from exc


def build_response(
    context: HttpContext,
    status_code: int,
    value: Any = None,
    *,
    pretty: bool = False,
) -> Response:
    """Serialize ``value`` into a response according to its kind.

    Raises:
        InternalError: The value kind cannot be sent.
    """
    if value is None:
        return Response(status_code=status_code, headers=_headers(context))

    if isinstance(value, (bytes, bytearray, memoryview)):
        return Response(
            content=bytes(value),
            status_code=status_code,
            headers=_headers(context, BINARY_TYPE),
        )

    if is_stream(value):
        return StreamingResponse(
            _iter_stream(value),
            status_code=status_code,
            headers=_headers(context, BINARY_TYPE),
        )

    if isinstance(value, str):
        jsonify = context.accepts("text", "json") == "json"
    elif isinstance(value, (dict, list, tuple, int, float, bool)):
        jsonify = True
    else:
        raise InternalError(f"Unexpected return type {type(value).__name__}")

    if jsonify:
        # Serialize before touching headers so a failure still yields a clean 500
        body = dump_json(value, pretty=pretty)
        return Response(
            content=body.encode("utf-8"),
            status_code=status_code,
            headers=_headers(context, JSON_TYPE),
        )

    text = value
    if "content-type" not in context.response_headers and not text.endswith("\n"):
        text += "\n"
    return Response(
        content=text.encode("utf-8"),
        status_code=status_code,
        headers=_headers(context, TEXT_TYPE),
    )


def error_response(
    context: HttpContext,
    error: Exception,
    status_code: int | None = None,
    *,
    debug: bool = False,
) -> Response:
    """Uniform ``{statusCode, message}`` error response.

    ``status_code`` wins when given; otherwise the error's own status is used
    (500 for exceptions outside the package taxonomy).
    """
    if status_code is None:
        status_code = error.status_code if isinstance(error, FTSError) else 500

    message = str(error) or type(error).__name__
    payload: dict[str, Any] = {"statusCode": status_code, "message": message}
    if debug:
        payload["stack"] = "".join(
            traceback.format_exception(type(error), error, error.__traceback__)
        )

    body = json.dumps(payload, indent=2 if debug else None, default=str)
    return Response(
        content=body.encode("utf-8"),
        status_code=status_code,
        headers={"content-type": JSON_TYPE},
    )
