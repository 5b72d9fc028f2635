"""
cf_attributes.enrichment.resolver

Cache-aside resolution of platform objects.

Responsibilities:
- Serve `(kind, id)` lookups from the metadata cache when fresh.
- Fall back to the platform client on a miss and populate the cache (best effort).
- Treat undecodable cache entries as misses instead of failing the lookup.
"""

from __future__ import annotations

from typing import Protocol

from cf_attributes.cache.metadata_cache import MetadataCache
from cf_attributes.errors import EncodingError
from cf_attributes.observability.logging import get_logger
from cf_attributes.platform.models import (
    MODEL_BY_KIND,
    Application,
    ObjectKind,
    Organization,
    PlatformObject,
    Space,
    cache_key,
    decode,
    encode,
)

log = get_logger(__name__)


class ObjectFetcher(Protocol):
    async def fetch(self, kind: ObjectKind, object_id: str) -> PlatformObject: ...


class ObjectResolver:
    def __init__(self, *, client: ObjectFetcher, cache: MetadataCache) -> None:
        self._client = client
        self._cache = cache

    async def resolve(self, kind: ObjectKind | str, object_id: str) -> PlatformObject:
        kind = ObjectKind(kind)
        key = cache_key(kind, object_id)

        cached = self._lookup(kind, key)
        if cached is not None:
            return cached

        # FetchError/Canceled propagate; the caller owns degrade-vs-fail.
        obj = await self._client.fetch(kind, object_id)

        try:
            self._cache.put(key, encode(obj))
        except EncodingError as e:
            log.warning("cache_encode_failed", key=key, error=str(e))
        return obj

    async def application(self, app_id: str) -> Application:
        return await self.resolve(ObjectKind.app, app_id)  # type: ignore[return-value]

    async def space(self, space_id: str) -> Space:
        return await self.resolve(ObjectKind.space, space_id)  # type: ignore[return-value]

    async def organization(self, org_id: str) -> Organization:
        return await self.resolve(ObjectKind.org, org_id)  # type: ignore[return-value]

    def _lookup(self, kind: ObjectKind, key: str) -> PlatformObject | None:
        data = self._cache.get(key)
        if data is None:
            return None
        try:
            obj = decode(data)
            if not isinstance(obj, MODEL_BY_KIND[kind]):
                raise EncodingError(f"cached {key} holds a {obj.kind} object")
        except EncodingError as e:
            # Drop the entry so the refetch below replaces it.
            log.warning("cache_decode_failed", key=key, error=str(e))
            self._cache.delete(key)
            return None
        log.debug("cache_hit", key=key)
        return obj


# --- Module Notes -----------------------------------------------------------
# Concurrent misses for the same key may each call the platform; the last put wins, and
# every put carries the same upstream data, so the cache converges either way.
