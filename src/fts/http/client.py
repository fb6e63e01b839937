# fts/http/client.py
"""
Async HTTP client for a remote function.

Turns a local call ``fn(*args, **kwargs)`` into ``POST url`` with a JSON
parameter bag built from the Definition, and decodes the JSON answer back
into native values.

Contract::

    POST <url>
    Accept: application/json
    body: { <param>: <wire value>, ... }
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping

import httpx

from fts.contracts.definition import Definition
from fts.contracts.http import HttpResponse
from fts.core.config import settings
from fts.core.errors import ArgumentError, ContractValidationError, RemoteCallError
from fts.core.validator import Codec, SchemaValidator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BagCall:
    """The call passed the whole parameter bag as one mapping."""

    params: dict[str, Any]


@dataclass(frozen=True)
class PositionalCall:
    """The call passed parameters positionally, in ``params.order``."""

    values: tuple[Any, ...]


def classify_call(
    definition: Definition,
    args: tuple[Any, ...],
    kwargs: Mapping[str, Any] | None = None,
) -> BagCall | PositionalCall:
    """Decide whether a call site passed a parameter bag or positional values.

    A single plain mapping argument is the bag when it carries every
    required parameter (keyword arguments count towards them); otherwise
    it is the value of the first parameter.
    Functions without declared parameters always use positional assembly.

    Raises:
        ArgumentError: More positional arguments than declared parameters.
    """
    order = definition.params.order
    if len(args) > len(order):
        raise ArgumentError(
            f"Too many arguments for '{definition.title}': "
            f"expected at most {len(order)}, got {len(args)}"
        )

    if len(args) == 1 and order and isinstance(args[0], Mapping):
        candidate = args[0]
        supplied = kwargs or {}
        if all(name in candidate or name in supplied for name in definition.required_params):
            return BagCall(dict(candidate))

    return PositionalCall(tuple(args))


def assemble_params(
    definition: Definition,
    call: BagCall | PositionalCall,
    kwargs: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    """Build the parameter bag for ``call``, merging keyword arguments.

    Raises:
        ArgumentError: A keyword duplicates a value already supplied.
    """
    if isinstance(call, BagCall):
        params = dict(call.params)
    else:
        params = {name: value for name, value in zip(definition.params.order, call.values)}

    for name, value in (kwargs or {}).items():
        if name in params:
            raise ArgumentError(
                f"'{definition.title}' got multiple values for argument '{name}'"
            )
        params[name] = value
    return params


class HttpClient:
    """Callable proxy for a function served over HTTP.

    Args:
        definition: Contract of the remote function.
        url: Endpoint the function is served at.
        timeout: Request timeout in seconds (defaults to settings).
        validator: Validator factory (custom coercions).
    """

    def __init__(
        self,
        definition: Definition,
        url: str,
        *,
        timeout: float | None = None,
        validator: SchemaValidator | None = None,
    ) -> None:
        self.definition = definition
        self.url = url
        self._timeout = timeout if timeout is not None else settings.client_timeout

        validator = validator or SchemaValidator()
        self._params_encoder: Codec | None = (
            None if definition.params.http else validator.encoder(definition.params.schema)
        )
        self._returns_decoder: Codec | None = (
            None if definition.returns.http else validator.decoder(definition.returns.schema)
        )

    async def __call__(self, *args: Any, **kwargs: Any) -> Any:
        request_kwargs = self._prepare(args, kwargs)

        async with httpx.AsyncClient(timeout=self._timeout) as client:
            try:
                resp = await client.post(self.url, **request_kwargs)
            except httpx.HTTPError as exc:
                logger.warning("Call to '%s' at %s failed: %s", self.definition.title, self.url, exc)
                raise

        if not resp.is_success:
            logger.warning(
                "Call to '%s' failed status=%s reason=%s",
                self.definition.title,
                resp.status_code,
                resp.content,
            )
            raise RemoteCallError(resp.status_code, resp.reason_phrase, resp.text)

        return self._decode(resp)

    def _prepare(self, args: tuple[Any, ...], kwargs: dict[str, Any]) -> dict[str, Any]:
        definition = self.definition

        if definition.params.http:
            if len(args) > len(definition.params.order) or kwargs:
                raise ArgumentError(
                    f"Raw http function '{definition.title}' takes at most "
                    f"{len(definition.params.order)} positional argument(s)"
                )
            body = args[0] if args else None
            headers = {"Accept": "application/json"}
            if body is None:
                return {"headers": headers}
            if isinstance(body, (bytes, bytearray, memoryview, str)):
                headers["Content-Type"] = "application/octet-stream"
                content = body.encode("utf-8") if isinstance(body, str) else bytes(body)
                return {"content": content, "headers": headers}
            return {"json": body, "headers": headers}

        call = classify_call(definition, args, kwargs)
        params = assemble_params(definition, call, kwargs)

        assert self._params_encoder is not None
        encoded = self._params_encoder.validate(params)
        if not encoded.valid:
            raise ContractValidationError(
                f"Invalid parameters: {encoded.message}", errors=encoded.errors
            )
        return {
            "json": encoded.value,
            "headers": {"Accept": "application/json", "Content-Type": "application/json"},
        }

    def _decode(self, resp: httpx.Response) -> Any:
        definition = self.definition

        if definition.returns.http:
            return HttpResponse(
                status_code=resp.status_code,
                headers=dict(resp.headers),
                body=resp.content,
            )

        if resp.status_code == 204 or not resp.content:
            value = None
        else:
            try:
                value = resp.json()
            except ValueError as exc:
                raise ContractValidationError(
                    f"Invalid result: response of '{definition.title}' is not JSON",
                    status_code=502,
                ) from exc

        assert self._returns_decoder is not None
        decoded = self._returns_decoder.validate({"result": value})
        if not decoded.valid:
            raise ContractValidationError(
                f"Invalid result: {decoded.message}", errors=decoded.errors, status_code=502
            )
        return None if value is None else decoded.value.get("result")

    def __repr__(self) -> str:
        return f"HttpClient({self.definition.title!r}, url={self.url!r})"


def create_http_client(definition: Definition, url: str, **kwargs: Any) -> HttpClient:
    return HttpClient(definition, url, **kwargs)
