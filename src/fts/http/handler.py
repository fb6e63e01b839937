# fts/http/handler.py
"""
HTTP handler for a single function.

For each request the handler:

1. answers ``OPTIONS`` with ``200 ok``;
2. extracts parameters (query string, form, JSON body, or raw body);
3. decodes and validates them against ``params.schema``;
4. assembles positional arguments in ``params.order`` (plus the context
   object and any extra properties);
5. invokes the function, awaiting it when it returns an awaitable;
6. encodes and validates the result against ``returns.schema`` (skipped for
   raw http responses) and serializes it.

Every failure becomes a ``{statusCode, message}`` response.
"""
from __future__ import annotations

import inspect
import logging
from typing import Any, Callable

from fastapi import Request
from fastapi.responses import Response
from starlette.types import Receive, Scope, Send

from fts.contracts.definition import Definition
from fts.contracts.http import HttpResponse
from fts.core.config import Settings, settings as default_settings
from fts.core.errors import (
    ApplicationError,
    ContractValidationError,
    FTSError,
    HttpError,
    InternalError,
)
from fts.core.validator import Codec, SchemaValidator
from fts.http.context import HttpContext
from fts.http.request import get_params
from fts.http.response import build_response, error_response

logger = logging.getLogger(__name__)


class HttpHandler:
    """ASGI application serving one function described by ``definition``.

    Codecs are compiled once here and shared by all requests.

    Args:
        definition: Contract of the function.
        func: The callable to invoke; sync or async.
        validator: Validator factory (custom coercions); defaults to the
            built-in registry.
        settings: Runtime settings; defaults to the environment-driven ones.
    """

    def __init__(
        self,
        definition: Definition,
        func: Callable[..., Any],
        *,
        validator: SchemaValidator | None = None,
        settings: Settings | None = None,
    ) -> None:
        if not callable(func):
            raise TypeError(f"Handler for '{definition.title}' must be callable")

        self.definition = definition
        self.settings = settings or default_settings
        self._func = func

        validator = validator or SchemaValidator()
        self._params_decoder: Codec | None = (
            None if definition.params.http else validator.decoder(definition.params.schema)
        )
        self._returns_encoder: Codec | None = (
            None if definition.returns.http else validator.encoder(definition.returns.schema)
        )
        logger.info(
            "Handler ready for '%s' (params=%s, http params=%s, http returns=%s)",
            definition.title,
            list(definition.params.order),
            definition.params.http,
            definition.returns.http,
        )

    # -- ASGI -----------------------------------------------------------------

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            raise RuntimeError(f"Unsupported ASGI scope type '{scope['type']}'")

        request = Request(scope, receive)
        response = await self.handle(request)

        if await request.is_disconnected():
            logger.info(
                "Client disconnected before the response for '%s' was sent",
                self.definition.title,
            )
            return
        await response(scope, receive, send)

    # -- pipeline -------------------------------------------------------------

    async def handle(self, request: Request) -> Response:
        """Run the full request pipeline and return the response to send."""
        context = HttpContext(request)

        if context.method == "OPTIONS":
            return build_response(context, 200, "ok")

        try:
            args = await self._build_args(context)
        except Exception as exc:
            return self._fail(context, exc)

        try:
            result = self._func(*args)
            if inspect.isawaitable(result):
                result = await result
        except Exception as exc:
            return self._fail(context, exc, application=True)

        try:
            return self._respond(context, result)
        except Exception as exc:
            return self._fail(context, exc)

    async def _build_args(self, context: HttpContext) -> list[Any]:
        definition = self.definition
        raw = await get_params(
            context,
            definition,
            body_size_limit=self.settings.body_size_limit,
            debug=self.settings.debug,
        )

        if definition.params.http:
            args: list[Any] = [raw] if definition.params.order else []
            if definition.params.context:
                args.append(context)
            return args

        assert self._params_decoder is not None
        result = self._params_decoder.validate(raw)
        if not result.valid:
            logger.warning(
                "Invalid parameters for '%s': %s", definition.title, result.message
            )
            raise ContractValidationError(result.message, errors=result.errors)
        params = result.value

        args = [params.get(name) for name in definition.params.order]
        if definition.params.context:
            args.append(context)

        # Extra properties become trailing (name, value) pairs for rest parameters
        if definition.allows_extra_params:
            ordered = set(definition.params.order)
            args.extend([name, value] for name, value in params.items() if name not in ordered)
        return args

    def _respond(self, context: HttpContext, result: Any) -> Response:
        definition = self.definition
        pretty = self.settings.debug

        if definition.returns.http:
            try:
                raw = HttpResponse.coerce(result)
            except TypeError as exc:
                raise InternalError(str(exc)) from exc
            for key, value in raw.headers.items():
                context.set(key, value)
            return build_response(context, raw.status_code, raw.body, pretty=pretty)

        assert self._returns_encoder is not None
        encoded = self._returns_encoder.validate({"result": result})
        if not encoded.valid:
            logger.error(
                "Return value of '%s' violates its contract: %s",
                definition.title,
                encoded.message,
            )
            raise ContractValidationError(encoded.message, errors=encoded.errors, status_code=502)

        value = encoded.value.get("result")
        # JSON type coercion must not turn a missing result into a body
        if result is None or value is None:
            return build_response(context, context.status_code or 204, None)
        return build_response(context, context.status_code or 200, value, pretty=pretty)

    def _fail(self, context: HttpContext, exc: Exception, *, application: bool = False) -> Response:
        title = self.definition.title
        if application and not isinstance(exc, HttpError):
            logger.warning("Function '%s' raised: %s", title, exc)
            logger.debug("Function '%s' traceback", title, exc_info=exc)
            error: Exception = ApplicationError(
                str(exc) or type(exc).__name__,
                status_code=self.settings.application_error_status,
            )
            error.__cause__ = exc
            error.__traceback__ = exc.__traceback__
        elif not isinstance(exc, FTSError):
            logger.exception("Unexpected error handling '%s'", title)
            error = InternalError(str(exc) or type(exc).__name__)
            error.__traceback__ = exc.__traceback__
        else:
            if exc.status_code >= 500:
                logger.error("Request for '%s' failed: %s", title, exc)
            error = exc
        return error_response(context, error, debug=self.settings.debug)


def create_http_handler(
    definition: Definition,
    func: Callable[..., Any],
    **kwargs: Any,
) -> HttpHandler:
    return HttpHandler(definition, func, **kwargs)
