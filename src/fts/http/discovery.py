# fts/http/discovery.py
"""
Discovery and health endpoints.
"""
from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request

from fts._version import __version__

router = APIRouter()


@router.get("/health")
async def health(request: Request) -> dict:
    definition = getattr(request.app.state, "definition", None)
    return {
        "status": "healthy",
        "function": definition.title if definition else None,
        "version": __version__,
    }


@router.get("/definition")
async def get_definition(request: Request) -> dict:
    """The served function's Definition in its wire shape."""
    definition = getattr(request.app.state, "definition", None)
    if definition is None:
        raise HTTPException(status_code=404, detail="No function mounted")
    return definition.to_dict()
