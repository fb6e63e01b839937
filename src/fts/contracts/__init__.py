"""Public contracts for function definitions."""
from fts.contracts.definition import (
    CONTEXT_PARAM,
    Definition,
    DefinitionConfig,
    ParamsSpec,
    ReturnsSpec,
)
from fts.contracts.http import HttpResponse

__all__ = [
    "CONTEXT_PARAM",
    "Definition", "DefinitionConfig", "ParamsSpec", "ReturnsSpec",
    "HttpResponse",
]
