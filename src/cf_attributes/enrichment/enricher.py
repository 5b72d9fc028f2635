"""
cf_attributes.enrichment.enricher

Per-resource enrichment: identity attribute -> app/space/org -> `cloudfoundry.*` attributes.

Responsibilities:
- Pick the identity path (application id first, space id only when no app id is present).
- Resolve the object chain through the resolver, honoring the extraction policy.
- Upsert attributes so enriching the same resource twice yields the same attribute set.
"""

from __future__ import annotations

from collections.abc import MutableMapping
from typing import Any

from cf_attributes.enrichment import attributes as attr
from cf_attributes.enrichment.resolver import ObjectResolver
from cf_attributes.enrichment.resource import Resource
from cf_attributes.observability.logging import get_logger
from cf_attributes.platform.models import Application, Organization, Space
from cf_attributes.policy import ExtractionPolicy

log = get_logger(__name__)

Attributes = MutableMapping[str, Any]


class ResourceEnricher:
    def __init__(
        self,
        *,
        resolver: ObjectResolver,
        app_id_attribute: str = "app_id",
        space_id_attribute: str = "space_id",
    ) -> None:
        self._resolver = resolver
        self._app_id_attribute = app_id_attribute
        self._space_id_attribute = space_id_attribute

    async def enrich(self, resource: Resource, policy: ExtractionPolicy) -> bool:
        """
        Enrich one resource in place. Returns False when no identity path applied.
        Resolution errors propagate and leave the resource partially enriched at most
        with attributes of objects resolved before the failure.
        """

        attrs = resource.attributes

        app_id = _identity(attrs, self._app_id_attribute)
        if app_id:
            app = await self._resolver.application(app_id)
            _write_app(attrs, app, policy)
            if policy.include_space_metadata:
                await self._space_step(attrs, app.space_id, policy)
            return True

        space_id = _identity(attrs, self._space_id_attribute)
        if space_id and policy.include_space_metadata:
            await self._space_step(attrs, space_id, policy)
            return True

        return False

    async def _space_step(self, attrs: Attributes, space_id: str, policy: ExtractionPolicy) -> None:
        if not space_id:
            log.debug("space_relationship_missing")
            return
        space = await self._resolver.space(space_id)
        _write_space(attrs, space)
        if policy.cascades_to_org and space.org_id:
            org = await self._resolver.organization(space.org_id)
            _write_org(attrs, org)


def _identity(attrs: Attributes, key: str) -> str:
    value = attrs.get(key)
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def _write_app(attrs: Attributes, app: Application, policy: ExtractionPolicy) -> None:
    attrs[attr.APP_NAME] = app.name

    if policy.include_app_metadata:
        _write_metadata(attrs, app.labels, attr.APP_LABELS)
        _write_metadata(attrs, app.annotations, attr.APP_ANNOTATIONS)

    if policy.include_app_lifecycle:
        attrs[attr.APP_STATE] = app.state
        attrs[attr.APP_LIFECYCLE_TYPE] = app.lifecycle_type
        attrs[attr.APP_LIFECYCLE_STACK] = app.stack
        for i, buildpack in enumerate(app.buildpacks):
            attrs[attr.keyed(attr.APP_LIFECYCLE_BUILDPACKS, i)] = buildpack

    if policy.include_app_dates:
        if app.created_at is not None:
            attrs[attr.APP_CREATED] = str(app.created_at)
        if app.updated_at is not None:
            attrs[attr.APP_UPDATED] = str(app.updated_at)


def _write_space(attrs: Attributes, space: Space) -> None:
    attrs[attr.SPACE_NAME] = space.name
    _write_metadata(attrs, space.labels, attr.SPACE_LABELS)
    _write_metadata(attrs, space.annotations, attr.SPACE_ANNOTATIONS)


def _write_org(attrs: Attributes, org: Organization) -> None:
    attrs[attr.ORG_NAME] = org.name
    _write_metadata(attrs, org.labels, attr.ORG_LABELS)
    _write_metadata(attrs, org.annotations, attr.ORG_ANNOTATIONS)


def _write_metadata(attrs: Attributes, values: dict[str, str], prefix: str) -> None:
    for k, v in values.items():
        attrs[attr.keyed(prefix, k)] = v
