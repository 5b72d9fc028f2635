from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException
from starlette.status import HTTP_503_SERVICE_UNAVAILABLE

from cf_attributes.api.deps import processor_dep
from cf_attributes.services.processor import AttributesProcessor

router = APIRouter(prefix="/v1/cache", tags=["cache"])


@router.get("/stats")
async def cache_stats(processor: AttributesProcessor = Depends(processor_dep)) -> dict[str, int]:
    stats = processor.cache_stats()
    if stats is None:
        raise HTTPException(status_code=HTTP_503_SERVICE_UNAVAILABLE, detail="cache not initialized")
    return asdict(stats)
