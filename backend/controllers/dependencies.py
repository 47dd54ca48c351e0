"""Shared FastAPI dependency providers for controller layer."""

from __future__ import annotations

from fastapi import HTTPException, Request, status

from backend.services.allocation_engine import AllocationEngine


def get_allocation_engine(request: Request) -> AllocationEngine:
    """Return the engine provisioned at startup; 503 until startup has finished."""
    engine = getattr(request.app.state, "allocation_engine", None)
    if engine is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Allocation engine is not initialized",
        )
    return engine
