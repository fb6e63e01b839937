# fts/contracts/definition.py
"""
Function definition contracts.

A Definition is the immutable contract for exactly one callable: how its
parameters are named, ordered and typed, what it returns, and whether
either side bypasses validation for raw HTTP access. Definitions are
produced once by an external compiler (as JSON) and shared by every
server handler and client built on them.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from fts.core.errors import DefinitionError

# Name of the optional trailing parameter that receives the request context
CONTEXT_PARAM = "context"


@dataclass(frozen=True)
class ParamsSpec:
    """Parameter side of a Definition.

    Attributes:
        schema: JSON Schema (object) describing all ordinary parameters.
        order: Parameter names in call order. Excludes the context parameter.
        http: Bypass parameter validation; the raw request body is passed
            through as the only ordinary argument.
        context: The function takes a trailing context parameter.
    """

    schema: dict[str, Any] = field(default_factory=lambda: {"type": "object"})
    order: tuple[str, ...] = ()
    http: bool = False
    context: bool = False


@dataclass(frozen=True)
class ReturnsSpec:
    """Return side of a Definition.

    ``schema`` describes an object with a single ``result`` property; the
    return value is validated wrapped as ``{"result": value}``.
    """

    schema: dict[str, Any] = field(default_factory=lambda: {"type": "object"})
    is_async: bool = False
    http: bool = False


@dataclass(frozen=True)
class DefinitionConfig:
    """How to locate the callable inside its module."""

    language: str = "python"
    default_export: bool = True
    named_export: str | None = None


@dataclass(frozen=True)
class Definition:
    title: str
    params: ParamsSpec = field(default_factory=ParamsSpec)
    returns: ReturnsSpec = field(default_factory=ReturnsSpec)
    config: DefinitionConfig = field(default_factory=DefinitionConfig)
    version: str = ""
    description: str | None = None

    def __post_init__(self) -> None:
        if not self.title:
            raise DefinitionError("Definition requires a non-empty title")

        order = self.params.order
        if len(set(order)) != len(order):
            dupes = sorted({name for name in order if order.count(name) > 1})
            raise DefinitionError(
                f"Definition '{self.title}': duplicate parameters in order {dupes}"
            )

        if self.params.context and CONTEXT_PARAM in order:
            raise DefinitionError(
                f"Definition '{self.title}': parameter '{CONTEXT_PARAM}' must be the "
                "last parameter and is not part of the ordered parameters"
            )

        if self.params.http:
            if len(order) > 1:
                raise DefinitionError(
                    f"Definition '{self.title}': raw http parameters accept a single "
                    f"body parameter, got {list(order)}"
                )
            return

        properties = self.params.schema.get("properties") or {}
        missing = [name for name in order if name not in properties]
        if missing:
            raise DefinitionError(
                f"Definition '{self.title}': ordered parameters {missing} "
                "are not declared in the params schema"
            )

        unordered = [
            name
            for name in properties
            if name not in order and not (self.params.context and name == CONTEXT_PARAM)
        ]
        if unordered:
            raise DefinitionError(
                f"Definition '{self.title}': declared parameters {unordered} "
                "are missing from the parameter order"
            )

    # -- derived views --------------------------------------------------------

    @property
    def required_params(self) -> list[str]:
        """Ordered parameters that are required and have no default."""
        schema = self.params.schema
        required = set(schema.get("required") or [])
        properties = schema.get("properties") or {}
        return [
            name
            for name in self.params.order
            if name in required and "default" not in (properties.get(name) or {})
        ]

    @property
    def allows_extra_params(self) -> bool:
        return bool(self.params.schema.get("additionalProperties"))

    # -- wire format ----------------------------------------------------------

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Definition:
        """Build a Definition from its JSON wire shape.

        Raises:
            DefinitionError: If required keys are missing or invariants fail.
        """
        if not isinstance(data, Mapping):
            raise DefinitionError(
                f"Definition must be an object, got {type(data).__name__}"
            )

        params = data.get("params") or {}
        returns = data.get("returns") or {}
        config = data.get("config") or {}

        order = params.get("order") or []
        if isinstance(order, str) or not all(isinstance(n, str) for n in order):
            raise DefinitionError(
                f"Definition '{data.get('title')}': params.order must be a list of names"
            )

        return cls(
            title=data.get("title") or "",
            description=data.get("description"),
            version=str(data.get("version") or ""),
            params=ParamsSpec(
                schema=dict(params.get("schema") or {"type": "object"}),
                order=tuple(order),
                http=bool(params.get("http", False)),
                context=bool(params.get("context", False)),
            ),
            returns=ReturnsSpec(
                schema=dict(returns.get("schema") or {"type": "object"}),
                is_async=bool(returns.get("async", False)),
                http=bool(returns.get("http", False)),
            ),
            config=DefinitionConfig(
                language=config.get("language", "python"),
                default_export=bool(config.get("defaultExport", True)),
                named_export=config.get("namedExport"),
            ),
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "title": self.title,
            "version": self.version,
            "config": {
                "language": self.config.language,
                "defaultExport": self.config.default_export,
            },
            "params": {
                "schema": self.params.schema,
                "order": list(self.params.order),
                "http": self.params.http,
                "context": self.params.context,
            },
            "returns": {
                "schema": self.returns.schema,
                "async": self.returns.is_async,
                "http": self.returns.http,
            },
        }
        if self.description is not None:
            out["description"] = self.description
        if self.config.named_export is not None:
            out["config"]["namedExport"] = self.config.named_export
        return out
