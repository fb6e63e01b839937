# fts/contracts/http.py
"""
Raw HTTP response contract.

Functions whose Definition sets ``returns.http`` return an ``HttpResponse``
(or a mapping with ``statusCode``/``headers``/``body``); it is applied to
the response verbatim without return-value validation.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping


@dataclass(frozen=True)
class HttpResponse:
    status_code: int = 200
    headers: dict[str, str] = field(default_factory=dict)
    body: Any = None

    @classmethod
    def coerce(cls, value: Any) -> HttpResponse:
        """Accept an ``HttpResponse`` or its wire-shaped mapping.

        Raises:
            TypeError: If ``value`` has neither shape.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, Mapping) and "statusCode" in value:
            return cls(
                status_code=int(value["statusCode"]),
                headers=dict(value.get("headers") or {}),
                body=value.get("body"),
            )
        raise TypeError(
            f"Expected an HttpResponse with statusCode, headers and body, "
            f"got {type(value).__name__}"
        )
