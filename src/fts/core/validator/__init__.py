"""Validation subsystem: coercion registry, typed schema tree, codecs."""
from fts.core.validator.coercion import (
    BUFFER,
    DATE,
    Coercion,
    CoercionRegistry,
    coerce_value,
    default_registry,
)
from fts.core.validator.schema import SchemaNode, compile_schema
from fts.core.validator.validator import (
    Codec,
    SchemaValidator,
    ValidationResult,
    create_validator,
    errors_text,
)

__all__ = [
    "BUFFER", "DATE", "Coercion", "CoercionRegistry", "coerce_value", "default_registry",
    "SchemaNode", "compile_schema",
    "Codec", "SchemaValidator", "ValidationResult", "create_validator", "errors_text",
]
