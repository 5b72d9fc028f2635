"""
cf_attributes.policy

Extraction policy: which classes of platform metadata get written onto a resource.

Responsibilities:
- Hold the enrichment toggles as an immutable value.
- Build a policy from `Settings` (option names differ slightly from field names).
"""

from __future__ import annotations

from dataclasses import dataclass

from cf_attributes.observability.logging import get_logger
from cf_attributes.settings import Settings

log = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class ExtractionPolicy:
    include_app_metadata: bool = True
    include_space_metadata: bool = False
    # Only reachable through the space cascade.
    include_org_metadata: bool = False
    include_app_lifecycle: bool = False
    include_app_dates: bool = False

    def __post_init__(self) -> None:
        if self.include_org_metadata and not self.include_space_metadata:
            log.warning(
                "org_metadata_requires_space_metadata",
                detail="include_org_metadata has no effect while include_space_metadata is false",
            )

    @property
    def cascades_to_org(self) -> bool:
        return self.include_space_metadata and self.include_org_metadata

    @classmethod
    def from_settings(cls, settings: Settings) -> ExtractionPolicy:
        return cls(
            include_app_metadata=settings.include_app_metadata,
            include_space_metadata=settings.include_space_metadata,
            include_org_metadata=settings.include_org_metadata,
            include_app_lifecycle=settings.app_state_lifecycle,
            include_app_dates=settings.app_dates,
        )
