# fts/core/validator/validator.py
"""
Schema validator with ``coerceTo`` / ``coerceFrom`` keywords.

``SchemaValidator.decoder(schema)`` and ``.encoder(schema)`` compile a
:class:`Codec` once per schema. A codec runs three steps per value:

1. normalize the wire-side value through the compiled schema tree
   (defaults, JSON type coercion, and native -> wire encoding when
   encoding);
2. validate the wire value with a Draft-7 ``jsonschema`` validator extended
   with the two coercion keywords;
3. when decoding, turn annotated leaves into native values.

The same logical schema drives both directions: the decoder sees every
annotation as ``coerceTo`` and the encoder sees it as ``coerceFrom``.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator, Mapping

from jsonschema import Draft7Validator, validators
from jsonschema.exceptions import SchemaError, ValidationError

from fts.core.errors import ContractValidationError, DefinitionError
from fts.core.validator.coercion import CoercionRegistry, default_registry
from fts.core.validator.schema import COERCE_FROM, COERCE_TO, SchemaNode, compile_schema

logger = logging.getLogger(__name__)

_COERCION_KEYWORDS = (COERCE_TO, COERCE_FROM)


@dataclass
class ValidationResult:
    """Outcome of running a codec over one value."""

    valid: bool
    value: Any
    errors: list[str] = field(default_factory=list)

    @property
    def message(self) -> str:
        return ", ".join(self.errors)

    def __bool__(self) -> bool:
        return self.valid


def rewrite_annotations(schema: Any, source: str, target: str) -> Any:
    """Return a copy of ``schema`` with every ``source`` keyword renamed to ``target``.

    Annotated nodes are pinned to ``type: string`` since the wire form of
    every coercion is a string; ``format`` is dropped because the coercion
    keyword performs the format check itself.
    """
    if isinstance(schema, list):
        return [rewrite_annotations(item, source, target) for item in schema]
    if not isinstance(schema, Mapping):
        return schema

    out = {key: rewrite_annotations(value, source, target) for key, value in schema.items()}
    if source in out:
        out[target] = out.pop(source)
    if target in out:
        out["type"] = _wire_type(out.get("type"))
        out.pop("format", None)
    return out


def _wire_type(declared: Any) -> Any:
    if isinstance(declared, list):
        kept = [t for t in declared if t in ("string", "null")]
        return kept if "string" in kept else ["string", *kept]
    return "string"


def format_path(path: Iterable[Any]) -> str:
    out = "data"
    for part in path:
        out += f"[{part}]" if isinstance(part, int) else f".{part}"
    return out


def errors_text(errors: Iterable[ValidationError]) -> list[str]:
    """Render jsonschema errors as ``data.path message`` strings."""
    messages = []
    for error in errors:
        text = f"{format_path(error.absolute_path)} {error.message}"
        if error.validator in _COERCION_KEYWORDS:
            schema_path = "/".join(str(p) for p in error.absolute_schema_path)
            text += f" (schema path: #/{schema_path})"
        messages.append(text)
    return messages


class Codec:
    """Compiled decoder or encoder for one schema. Safe to share across requests."""

    def __init__(self, *, node: SchemaNode, validator: Draft7Validator, encode: bool) -> None:
        self._node = node
        self._validator = validator
        self._encode = encode

    @property
    def is_encoder(self) -> bool:
        return self._encode

    @property
    def schema(self) -> Mapping[str, Any]:
        return self._validator.schema

    def validate(self, value: Any) -> ValidationResult:
        """Transform and validate ``value`` without raising on invalid data."""
        try:
            wire = self._node.normalize(value, encode=self._encode)
        except Exception as exc:
            # encode() of a native value failed
            return ValidationResult(False, value, [f"data could not be encoded: {exc}"])

        errors = sorted(
            self._validator.iter_errors(wire),
            key=lambda e: [str(p) for p in e.absolute_path],
        )
        if errors:
            return ValidationResult(False, value, errors_text(errors))

        if self._encode:
            return ValidationResult(True, wire)

        try:
            native = self._node.decode(wire)
        except Exception as exc:
            return ValidationResult(False, value, [f"data could not be decoded: {exc}"])
        return ValidationResult(True, native)

    def __call__(self, value: Any) -> Any:
        """Return the transformed value.

        Raises:
            ContractValidationError: If the value does not satisfy the schema.
        """
        result = self.validate(value)
        if not result.valid:
            raise ContractValidationError(result.message, errors=result.errors)
        return result.value


class SchemaValidator:
    """Factory for decoders/encoders sharing one coercion registry.

    Args:
        registry: Coercions used by ``coerceTo`` / ``coerceFrom``. Defaults to
            the built-in ``Buffer`` and ``Date`` coercions.
    """

    def __init__(self, registry: CoercionRegistry | None = None) -> None:
        self.registry = registry if registry is not None else default_registry
        self._validator_cls = validators.extend(
            Draft7Validator,
            {
                COERCE_TO: self._coerce_to_keyword,
                COERCE_FROM: self._coerce_from_keyword,
            },
        )

    # -- keywords -------------------------------------------------------------

    def _coerce_to_keyword(
        self, validator: Any, name: str, instance: Any, schema: Mapping[str, Any]
    ) -> Iterator[ValidationError]:
        if not isinstance(instance, str):
            # The ``type`` keyword reports the mismatch
            return
        try:
            self.registry.get(name).decode(instance)
        except Exception as exc:
            yield ValidationError(f"should be a valid {name}: {exc}")

    def _coerce_from_keyword(
        self, validator: Any, name: str, instance: Any, schema: Mapping[str, Any]
    ) -> Iterator[ValidationError]:
        if instance is None:
            return
        if not isinstance(instance, str):
            yield ValidationError(f"{instance!r} is not encodable as {name}")
            return
        try:
            self.registry.get(name).decode(instance)
        except Exception as exc:
            yield ValidationError(f"is not a valid encoded {name}: {exc}")

    # -- factories ------------------------------------------------------------

    def decoder(self, schema: Mapping[str, Any]) -> Codec:
        """Codec turning wire values into native values."""
        return self._compile(rewrite_annotations(schema, COERCE_FROM, COERCE_TO), encode=False)

    def encoder(self, schema: Mapping[str, Any]) -> Codec:
        """Codec turning native values into wire-safe values."""
        return self._compile(rewrite_annotations(schema, COERCE_TO, COERCE_FROM), encode=True)

    def _compile(self, schema: Mapping[str, Any], *, encode: bool) -> Codec:
        try:
            self._validator_cls.check_schema(schema)
        except SchemaError as exc:
            raise DefinitionError(f"Invalid JSON schema: {exc.message}") from exc

        node = compile_schema(schema, self.registry)
        validator = self._validator_cls(schema)
        logger.debug(
            "Compiled %s for schema with %d top-level properties",
            "encoder" if encode else "decoder",
            len(schema.get("properties") or {}),
        )
        return Codec(node=node, validator=validator, encode=encode)


def create_validator(registry: CoercionRegistry | None = None) -> SchemaValidator:
    return SchemaValidator(registry)


__all__ = [
    "Codec",
    "SchemaValidator",
    "ValidationResult",
    "create_validator",
    "errors_text",
    "format_path",
    "rewrite_annotations",
]
