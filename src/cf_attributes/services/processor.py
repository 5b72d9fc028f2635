"""
cf_attributes.services.processor

Engine lifecycle owner and per-batch processing.

Responsibilities:
- Create the platform client and metadata cache at start, release them at stop.
- Enrich every resource of a batch with bounded parallelism.
- Apply the configured failure granularity (fail the batch vs. degrade one resource).
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Literal

from cf_attributes.cache.metadata_cache import CacheStats, MetadataCache
from cf_attributes.enrichment.enricher import ResourceEnricher
from cf_attributes.enrichment.resolver import ObjectResolver
from cf_attributes.enrichment.resource import Resource
from cf_attributes.errors import CfAttributesError
from cf_attributes.observability.logging import get_logger
from cf_attributes.platform.client import PlatformClient
from cf_attributes.policy import ExtractionPolicy
from cf_attributes.settings import Settings

log = get_logger(__name__)

FailureMode = Literal["batch", "resource"]


@dataclass(frozen=True, slots=True)
class ResourceFailure:
    index: int
    error: str
    kind: str | None = None
    object_id: str | None = None


@dataclass(frozen=True, slots=True)
class BatchResult:
    total: int
    enriched: int
    failures: tuple[ResourceFailure, ...] = ()

    @property
    def failed(self) -> int:
        return len(self.failures)

    @property
    def skipped(self) -> int:
        # Resources without an identity attribute (or space-only with space metadata off).
        return self.total - self.enriched - self.failed


class ProcessorNotStarted(CfAttributesError):
    pass


class AttributesProcessor:
    """
    One instance per pipeline component. Owns the only shared mutable state (the cache);
    `process` may be called concurrently for several batches.
    """

    def __init__(
        self,
        *,
        settings: Settings,
        client: PlatformClient | None = None,
        cache: MetadataCache | None = None,
    ) -> None:
        self._settings = settings
        self._policy = ExtractionPolicy.from_settings(settings)
        self._client = client
        self._owns_client = client is None
        self._cache = cache
        self._enricher: ResourceEnricher | None = None

    @property
    def policy(self) -> ExtractionPolicy:
        return self._policy

    @property
    def started(self) -> bool:
        return self._enricher is not None

    def cache_stats(self) -> CacheStats | None:
        return self._cache.stats() if self._cache is not None else None

    async def __aenter__(self) -> AttributesProcessor:
        await self.start()
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.stop()

    async def start(self) -> None:
        if self.started:
            return
        s = self._settings
        # ConfigurationError here is fatal: the component must not start.
        if self._client is None or (self._owns_client and self._client.closed):
            self._client = PlatformClient(config=s.cloud_foundry)
            self._owns_client = True
        elif self._client.closed:
            raise ProcessorNotStarted("the supplied platform client is closed")
        if self._cache is None:
            self._cache = MetadataCache(
                ttl=s.cache_ttl,
                clean_interval=s.cache_clean_interval,
                shards=s.cache_shards,
            )

        self._cache.start()
        try:
            if not self._client.authenticated:
                await self._client.authenticate()
        except BaseException:
            await self._cache.stop()
            await self._client.aclose()
            raise

        resolver = ObjectResolver(client=self._client, cache=self._cache)
        self._enricher = ResourceEnricher(
            resolver=resolver,
            app_id_attribute=s.appid_attribute_association,
            space_id_attribute=s.spaceid_attribute_association,
        )
        log.info(
            "processor_started",
            auth_type=self._client.auth_type,
            cache_ttl_seconds=s.cache_ttl.total_seconds(),
            failure_mode=s.failure_mode,
        )

    async def stop(self) -> None:
        self._enricher = None
        if self._cache is not None:
            await self._cache.stop()
            self._cache.clear()
        if self._client is not None:
            await self._client.aclose()
            if self._owns_client:
                # A later start() builds and authenticates a fresh client.
                self._client = None
        log.info("processor_stopped")

    async def enrich(self, resource: Resource) -> bool:
        return await self._require_enricher().enrich(resource, self._policy)

    async def process(
        self,
        resources: Sequence[Resource],
        *,
        failure_mode: FailureMode | None = None,
    ) -> BatchResult:
        enricher = self._require_enricher()
        mode = failure_mode or self._settings.failure_mode
        limit = asyncio.Semaphore(self._settings.enrich_concurrency)

        async def _one(resource: Resource) -> bool:
            async with limit:
                return await enricher.enrich(resource, self._policy)

        results = await asyncio.gather(*(_one(r) for r in resources), return_exceptions=True)

        enriched = 0
        errors: list[tuple[int, Exception]] = []
        for i, res in enumerate(results):
            if isinstance(res, Exception):
                errors.append((i, res))
            elif isinstance(res, BaseException):
                # Cancellation/shutdown is never degraded into a per-resource failure.
                raise res
            elif res:
                enriched += 1

        if errors and mode == "batch":
            index, first = errors[0]
            log.error(
                "batch_enrich_failed",
                index=index,
                failed=len(errors),
                total=len(resources),
                error=str(first),
            )
            raise first

        failures = tuple(_failure(i, e) for i, e in errors)
        for f in failures:
            log.warning(
                "resource_enrich_failed",
                index=f.index,
                kind=f.kind,
                object_id=f.object_id,
                error=f.error,
            )
        return BatchResult(total=len(resources), enriched=enriched, failures=failures)

    def _require_enricher(self) -> ResourceEnricher:
        if self._enricher is None:
            raise ProcessorNotStarted("processor has not been started")
        return self._enricher


def _failure(index: int, error: Exception) -> ResourceFailure:
    return ResourceFailure(
        index=index,
        error=str(error),
        kind=str(getattr(error, "kind", None) or "") or None,
        object_id=getattr(error, "object_id", None),
    )


# --- Module Notes -----------------------------------------------------------
# failure_mode="batch" matches how a collector processor reports errors (one failed lookup
# fails the whole batch). "resource" leaves failed resources unenriched and lets the batch through.
