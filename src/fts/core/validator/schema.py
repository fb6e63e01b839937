# fts/core/validator/schema.py
"""
Typed schema tree.

A raw JSON Schema is compiled once into a tree of nodes that knows where
defaults live, which leaves carry a named coercion, and how to walk nested
objects and arrays. Requests then only walk the tree; the raw schema is
never re-inspected per call.

Every transform returns a new value; inputs are never mutated.
"""
from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Mapping

from fts.core.errors import CoercionError, DefinitionError
from fts.core.validator.coercion import (
    Coercion,
    CoercionRegistry,
    coerce_value,
    json_type_matches,
)

logger = logging.getLogger(__name__)

COERCE_TO = "coerceTo"
COERCE_FROM = "coerceFrom"

_MISSING: Any = object()


@dataclass(eq=False)
class SchemaNode:
    """Unconstrained node: values pass through untouched."""

    types: tuple[str, ...] = ()
    default: Any = _MISSING

    @property
    def has_default(self) -> bool:
        return self.default is not _MISSING

    def make_default(self) -> Any:
        return copy.deepcopy(self.default)

    def matches(self, value: Any, *, encode: bool) -> bool:
        if not self.types:
            return True
        return any(json_type_matches(value, t) for t in self.types)

    def _coerce_json(self, value: Any) -> Any:
        """Best-effort JSON type coercion; leaves the value for the validator."""
        if not self.types:
            return value
        try:
            return coerce_value(value, {"type": list(self.types)})
        except CoercionError:
            return value

    def normalize(self, value: Any, *, encode: bool) -> Any:
        return self._coerce_json(value)

    def decode(self, value: Any) -> Any:
        return value


@dataclass(eq=False)
class ScalarNode(SchemaNode):
    """Leaf node, optionally annotated with a named coercion."""

    coercion: Coercion | None = None

    def matches(self, value: Any, *, encode: bool) -> bool:
        if self.coercion is None:
            return super().matches(value, encode=encode)
        if encode and self.coercion.is_native(value):
            return True
        return isinstance(value, str)

    def normalize(self, value: Any, *, encode: bool) -> Any:
        if self.coercion is None:
            return self._coerce_json(value)
        if encode and self.coercion.is_native(value) and not isinstance(value, str):
            return self.coercion.encode(value)
        # Wire strings (and already-encoded strings) are left for the validator
        return value

    def decode(self, value: Any) -> Any:
        if self.coercion is not None and isinstance(value, str):
            return self.coercion.decode(value)
        return value


@dataclass(eq=False)
class ObjectNode(SchemaNode):
    properties: dict[str, SchemaNode] = field(default_factory=dict)
    additional: SchemaNode | None = None

    def _child(self, key: str) -> SchemaNode | None:
        node = self.properties.get(key)
        return node if node is not None else self.additional

    def matches(self, value: Any, *, encode: bool) -> bool:
        return isinstance(value, Mapping) or (value is None and "null" in self.types)

    def normalize(self, value: Any, *, encode: bool) -> Any:
        if not isinstance(value, Mapping):
            return self._coerce_json(value)

        out: dict[str, Any] = {}
        for key, item in value.items():
            child = self._child(key)
            out[key] = child.normalize(item, encode=encode) if child else item

        for name, child in self.properties.items():
            if name not in out and child.has_default:
                out[name] = child.make_default()
        return out

    def decode(self, value: Any) -> Any:
        if not isinstance(value, Mapping):
            return value
        out: dict[str, Any] = {}
        for key, item in value.items():
            child = self._child(key)
            out[key] = child.decode(item) if child else item
        return out


@dataclass(eq=False)
class ArrayNode(SchemaNode):
    items: SchemaNode | None = None
    prefix_items: tuple[SchemaNode, ...] = ()
    items_schema: Mapping[str, Any] | None = None

    def _child(self, index: int) -> SchemaNode | None:
        if index < len(self.prefix_items):
            return self.prefix_items[index]
        return self.items

    def matches(self, value: Any, *, encode: bool) -> bool:
        return isinstance(value, (list, tuple)) or (value is None and "null" in self.types)

    def normalize(self, value: Any, *, encode: bool) -> Any:
        if not isinstance(value, (list, tuple)):
            if isinstance(value, str) and "array" in self.types:
                try:
                    value = coerce_value(value, {"type": "array", "items": self.items_schema or {}})
                except CoercionError:
                    return value
            else:
                return self._coerce_json(value)

        out = []
        for index, item in enumerate(value):
            child = self._child(index)
            out.append(child.normalize(item, encode=encode) if child else item)
        return out

    def decode(self, value: Any) -> Any:
        if not isinstance(value, (list, tuple)):
            return value
        out = []
        for index, item in enumerate(value):
            child = self._child(index)
            out.append(child.decode(item) if child else item)
        return out


@dataclass(eq=False)
class UnionNode(SchemaNode):
    """``anyOf`` / ``oneOf``: the first option whose shape matches wins."""

    options: tuple[SchemaNode, ...] = ()

    def _pick(self, value: Any, *, encode: bool) -> SchemaNode | None:
        for option in self.options:
            if option.matches(value, encode=encode):
                return option
        return None

    def matches(self, value: Any, *, encode: bool) -> bool:
        return self._pick(value, encode=encode) is not None

    def normalize(self, value: Any, *, encode: bool) -> Any:
        option = self._pick(value, encode=encode)
        if option is None:
            # Nothing matches as-is; allow JSON coercion through the first option
            return self.options[0].normalize(value, encode=encode) if self.options else value
        return option.normalize(value, encode=encode)

    def decode(self, value: Any) -> Any:
        option = self._pick(value, encode=False)
        return option.decode(value) if option else value


@dataclass(eq=False)
class AllOfNode(SchemaNode):
    parts: tuple[SchemaNode, ...] = ()

    def matches(self, value: Any, *, encode: bool) -> bool:
        return all(part.matches(value, encode=encode) for part in self.parts)

    def normalize(self, value: Any, *, encode: bool) -> Any:
        for part in self.parts:
            value = part.normalize(value, encode=encode)
        return value

    def decode(self, value: Any) -> Any:
        for part in self.parts:
            value = part.decode(value)
        return value


@dataclass(eq=False)
class RefNode(SchemaNode):
    """Local ``$ref``; resolved through the compiler's table on use."""

    ref: str = ""
    table: dict[str, SchemaNode] = field(default_factory=dict, repr=False)

    @property
    def target(self) -> SchemaNode:
        return self.table[self.ref]

    @property
    def has_default(self) -> bool:
        return self.default is not _MISSING or self.target.has_default

    def make_default(self) -> Any:
        if self.default is not _MISSING:
            return copy.deepcopy(self.default)
        return self.target.make_default()

    def matches(self, value: Any, *, encode: bool) -> bool:
        return self.target.matches(value, encode=encode)

    def normalize(self, value: Any, *, encode: bool) -> Any:
        return self.target.normalize(value, encode=encode)

    def decode(self, value: Any) -> Any:
        return self.target.decode(value)


class SchemaCompiler:
    """Compiles one root JSON Schema into a :class:`SchemaNode` tree.

    Args:
        root: The root schema; ``$ref`` pointers resolve against it.
        registry: Coercions available to ``coerceTo``/``coerceFrom``.

    Raises:
        UnknownCoercionError: A schema names an unregistered coercion.
        DefinitionError: A ``$ref`` cannot be resolved.
    """

    def __init__(self, root: Mapping[str, Any], registry: CoercionRegistry) -> None:
        self._root = root
        self._registry = registry
        self._refs: dict[str, SchemaNode] = {}

    def compile(self) -> SchemaNode:
        return self._compile(self._root)

    def _compile(self, schema: Any) -> SchemaNode:
        if schema is True or not isinstance(schema, Mapping):
            return SchemaNode()

        default = schema.get("default", _MISSING)
        declared = schema.get("type")
        if declared is None:
            types: tuple[str, ...] = ()
        elif isinstance(declared, str):
            types = (declared,)
        else:
            types = tuple(declared)

        if "$ref" in schema:
            return self._compile_ref(schema["$ref"], default)

        coercion_name = schema.get(COERCE_TO) or schema.get(COERCE_FROM)
        if coercion_name:
            return ScalarNode(
                types=types,
                default=default,
                coercion=self._registry.get(coercion_name),
            )

        for keyword in ("anyOf", "oneOf"):
            if keyword in schema:
                return UnionNode(
                    types=types,
                    default=default,
                    options=tuple(self._compile(s) for s in schema[keyword]),
                )

        if "allOf" in schema:
            return AllOfNode(
                types=types,
                default=default,
                parts=tuple(self._compile(s) for s in schema["allOf"]),
            )

        if "properties" in schema or "object" in types:
            additional = schema.get("additionalProperties")
            return ObjectNode(
                types=types,
                default=default,
                properties={
                    name: self._compile(sub)
                    for name, sub in (schema.get("properties") or {}).items()
                },
                additional=self._compile(additional) if isinstance(additional, Mapping) else None,
            )

        if "items" in schema or "array" in types:
            items = schema.get("items")
            if isinstance(items, list):
                return ArrayNode(
                    types=types,
                    default=default,
                    prefix_items=tuple(self._compile(s) for s in items),
                    items=self._compile(schema.get("additionalItems", True)),
                )
            return ArrayNode(
                types=types,
                default=default,
                items=self._compile(items) if items is not None else None,
                items_schema=items if isinstance(items, Mapping) else None,
            )

        return ScalarNode(types=types, default=default)

    def _compile_ref(self, ref: str, default: Any) -> RefNode:
        node = RefNode(default=default, ref=ref, table=self._refs)
        if ref in self._refs:
            return node

        target = self._resolve_pointer(ref)
        # Placeholder first so recursive references terminate
        self._refs[ref] = SchemaNode()
        self._refs[ref] = self._compile(target)
        return node

    def _resolve_pointer(self, ref: str) -> Any:
        if not ref.startswith("#"):
            raise DefinitionError(f"Only local $ref pointers are supported, got '{ref}'")

        target: Any = self._root
        for raw in ref[1:].lstrip("/").split("/"):
            if raw == "":
                continue
            part = raw.replace("~1", "/").replace("~0", "~")
            try:
                target = target[int(part)] if isinstance(target, list) else target[part]
            except (KeyError, IndexError, ValueError, TypeError):
                raise DefinitionError(f"Unresolvable $ref '{ref}'") from None
        return target


def compile_schema(schema: Mapping[str, Any], registry: CoercionRegistry) -> SchemaNode:
    return SchemaCompiler(schema, registry).compile()
