"""
cf_attributes.api.routers.enrich

Batch enrichment endpoint.

Responsibilities:
- Accept a batch of resources (attribute maps) and return them enriched.
- Map engine errors onto HTTP status codes (platform failures -> 502).
"""

from __future__ import annotations

from typing import Any, Literal

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from starlette.status import HTTP_502_BAD_GATEWAY, HTTP_503_SERVICE_UNAVAILABLE

from cf_attributes.api.deps import processor_dep
from cf_attributes.enrichment.resource import TelemetryResource
from cf_attributes.errors import FetchError
from cf_attributes.services.processor import AttributesProcessor, ProcessorNotStarted

router = APIRouter(prefix="/v1", tags=["enrich"])


class ResourceModel(BaseModel):
    attributes: dict[str, Any] = Field(default_factory=dict)


class EnrichRequest(BaseModel):
    resources: list[ResourceModel] = Field(default_factory=list)
    # Overrides the configured failure granularity for this batch only.
    failure_mode: Literal["batch", "resource"] | None = None


class FailureModel(BaseModel):
    index: int
    error: str
    kind: str | None = None
    object_id: str | None = None


class EnrichResponse(BaseModel):
    resources: list[ResourceModel]
    enriched: int
    skipped: int
    failed: int
    failures: list[FailureModel] = Field(default_factory=list)


@router.post("/enrich", response_model=EnrichResponse)
async def enrich(
    body: EnrichRequest,
    processor: AttributesProcessor = Depends(processor_dep),
) -> EnrichResponse:
    batch = [TelemetryResource(attributes=dict(r.attributes)) for r in body.resources]
    try:
        result = await processor.process(batch, failure_mode=body.failure_mode)
    except ProcessorNotStarted as e:
        raise HTTPException(status_code=HTTP_503_SERVICE_UNAVAILABLE, detail=str(e)) from e
    except FetchError as e:
        raise HTTPException(
            status_code=HTTP_502_BAD_GATEWAY,
            detail={"error": str(e), "kind": e.kind, "object_id": e.object_id},
        ) from e

    return EnrichResponse(
        resources=[ResourceModel(attributes=r.attributes) for r in batch],
        enriched=result.enriched,
        skipped=result.skipped,
        failed=result.failed,
        failures=[
            FailureModel(index=f.index, error=f.error, kind=f.kind, object_id=f.object_id)
            for f in result.failures
        ],
    )


# --- Module Notes -----------------------------------------------------------
# In batch failure mode the whole request fails with 502, mirroring how a pipeline would
# drop the batch; callers wanting partial results send failure_mode="resource".
