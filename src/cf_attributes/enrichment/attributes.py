"""
cf_attributes.enrichment.attributes

Attribute keys written by the enricher (all under the `cloudfoundry.` namespace).
"""

from __future__ import annotations

NAMESPACE = "cloudfoundry"

APP_NAME = "cloudfoundry.app.name"
APP_LABELS = "cloudfoundry.app.labels"
APP_ANNOTATIONS = "cloudfoundry.app.annotations"
APP_STATE = "cloudfoundry.app.state"
APP_LIFECYCLE_TYPE = "cloudfoundry.app.lifecycle.type"
APP_LIFECYCLE_STACK = "cloudfoundry.app.lifecycle.stack"
APP_LIFECYCLE_BUILDPACKS = "cloudfoundry.app.lifecycle.buildpacks"
APP_CREATED = "cloudfoundry.app.created"
APP_UPDATED = "cloudfoundry.app.updated"

SPACE_NAME = "cloudfoundry.space.name"
SPACE_LABELS = "cloudfoundry.space.labels"
SPACE_ANNOTATIONS = "cloudfoundry.space.annotations"

ORG_NAME = "cloudfoundry.org.name"
ORG_LABELS = "cloudfoundry.org.labels"
ORG_ANNOTATIONS = "cloudfoundry.org.annotations"


def keyed(prefix: str, suffix: str | int) -> str:
    # "cloudfoundry.app.labels" + "team" -> "cloudfoundry.app.labels.team"
    return f"{prefix}.{suffix}"
