"""
cf_attributes.enrichment.resource

Minimal resource shape the enricher works on.

Responsibilities:
- Describe what the enricher needs from a pipeline resource (a mutable attribute map).
- Provide a concrete resource type for the HTTP surface and tests.
"""

from __future__ import annotations

from collections.abc import MutableMapping
from dataclasses import dataclass, field
from typing import Any, Protocol


class Resource(Protocol):
    @property
    def attributes(self) -> MutableMapping[str, Any]: ...


@dataclass(slots=True)
class TelemetryResource:
    attributes: dict[str, Any] = field(default_factory=dict)


# --- Module Notes -----------------------------------------------------------
# Pipeline frameworks bring their own resource type; anything exposing `attributes`
# as a mutable mapping satisfies `Resource`.
