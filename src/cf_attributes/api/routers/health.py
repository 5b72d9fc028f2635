"""
cf_attributes.api.routers.health

Liveness and readiness probes.

Responsibilities:
- `/healthz`: the process serves HTTP.
- `/readyz`: the processor has started, i.e. the platform client authenticated and the
  metadata cache is running.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from starlette.status import HTTP_503_SERVICE_UNAVAILABLE

from cf_attributes.api.deps import processor_dep
from cf_attributes.services.processor import AttributesProcessor

router = APIRouter()


@router.get("/healthz")
async def healthz() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/readyz")
async def readyz(processor: AttributesProcessor = Depends(processor_dep)) -> dict[str, Any]:
    if not processor.started:
        raise HTTPException(status_code=HTTP_503_SERVICE_UNAVAILABLE, detail="processor not started")
    stats = processor.cache_stats()
    return {"status": "ready", "cache_entries": stats.entries if stats is not None else 0}
