# fts/core/errors.py
"""
Error taxonomy shared by the server handler and the HTTP client.

Every error raised while serving a request maps to an HTTP status code via
``status_code``. The handler normalizes them to ``{statusCode, message}``.
"""
from __future__ import annotations

from typing import Any


class FTSError(Exception):
    """Base class for all errors raised by this package."""

    status_code: int = 500

    def __init__(self, message: str = "", *, status_code: int | None = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {"statusCode": self.status_code, "message": self.message}

    def __str__(self) -> str:
        return self.message


class DefinitionError(FTSError):
    """Raised when a Definition (or its schemas) is malformed."""


class UnknownCoercionError(DefinitionError, KeyError):
    """Raised when a schema references a coercion that is not registered."""

    def __init__(self, name: str, available: list[str] | None = None):
        self.name = name
        msg = f"Unknown coercion type '{name}'"
        if available is not None:
            msg += f". Available: {available}"
        super().__init__(msg)


class CoercionError(FTSError, ValueError):
    """Raised when a value cannot be coerced to the expected type."""

    status_code = 400

    def __init__(self, value: Any, expected_type: str, reason: str = ""):
        self.value = value
        self.expected_type = expected_type
        self.reason = reason
        msg = f"Cannot coerce value {value!r} to {expected_type}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class ContractValidationError(FTSError, ValueError):
    """Raised when data does not satisfy a Definition's schema."""

    status_code = 400

    def __init__(
        self,
        message: str,
        errors: list[str] | None = None,
        *,
        status_code: int | None = None,
    ):
        self.errors = errors or []
        super().__init__(message, status_code=status_code)

    def to_dict(self) -> dict[str, Any]:
        return {
            "statusCode": self.status_code,
            "message": self.message,
            "errors": self.errors,
        }


class ClientInputError(FTSError):
    """Malformed request shape (bad JSON, non-object parameters, ...)."""

    status_code = 400


class UnsupportedMethodError(ClientInputError):
    status_code = 501


class PayloadTooLargeError(ClientInputError):
    status_code = 413


class UnsupportedEncodingError(ClientInputError):
    status_code = 415


class ApplicationError(FTSError):
    """The target function raised or its awaitable failed."""

    status_code = 403


class HttpError(FTSError):
    """Raised by target functions to answer with an explicit status."""

    def __init__(self, status_code: int, message: str = ""):
        super().__init__(message, status_code=status_code)


class InternalError(FTSError):
    status_code = 500


class ArgumentError(FTSError, TypeError):
    """Invalid call-site arguments on the client side."""

    status_code = 400


class RemoteCallError(FTSError):
    """A remote invocation answered with a non-success HTTP status."""

    def __init__(self, status_code: int, reason: str, body: str = ""):
        self.reason = reason
        self.body = body
        super().__init__(reason, status_code=status_code)
