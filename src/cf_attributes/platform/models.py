"""
cf_attributes.platform.models

Platform object schema (Cloud Foundry v3 resources reduced to what enrichment needs).

Responsibilities:
- Define the immutable `Application` / `Space` / `Organization` tagged variant.
- Parse Cloud Foundry v3 API payloads into that variant.
- Provide the deterministic byte codec used by the metadata cache.
"""

from __future__ import annotations

import enum
from datetime import datetime
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError
from pydantic_core import PydanticSerializationError

from cf_attributes.errors import EncodingError


class ObjectKind(enum.StrEnum):
    # Values double as cache key prefixes ("app:<guid>").
    app = "app"
    space = "space"
    org = "org"


class _PlatformObject(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    name: str = ""
    labels: dict[str, str] = Field(default_factory=dict)
    annotations: dict[str, str] = Field(default_factory=dict)

    @property
    def cache_key(self) -> str:
        return cache_key(self.kind, self.id)  # type: ignore[attr-defined]


class Application(_PlatformObject):
    kind: Literal["app"] = "app"
    state: str = ""
    lifecycle_type: str = ""
    buildpacks: tuple[str, ...] = ()
    stack: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None
    space_id: str = ""

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> Application:
        lifecycle = payload.get("lifecycle") or {}
        lifecycle_data = lifecycle.get("data") or {}
        labels, annotations = _metadata(payload)
        return cls(
            id=payload["guid"],
            name=payload.get("name") or "",
            labels=labels,
            annotations=annotations,
            state=payload.get("state") or "",
            lifecycle_type=lifecycle.get("type") or "",
            # docker/cnb lifecycles carry no buildpacks; keep API order for the rest.
            buildpacks=tuple(str(b) for b in lifecycle_data.get("buildpacks") or ()),
            stack=lifecycle_data.get("stack") or "",
            created_at=payload.get("created_at"),
            updated_at=payload.get("updated_at"),
            space_id=_relationship_guid(payload, "space"),
        )


class Space(_PlatformObject):
    kind: Literal["space"] = "space"
    org_id: str = ""

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> Space:
        labels, annotations = _metadata(payload)
        return cls(
            id=payload["guid"],
            name=payload.get("name") or "",
            labels=labels,
            annotations=annotations,
            org_id=_relationship_guid(payload, "organization"),
        )


class Organization(_PlatformObject):
    kind: Literal["org"] = "org"

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> Organization:
        labels, annotations = _metadata(payload)
        return cls(
            id=payload["guid"],
            name=payload.get("name") or "",
            labels=labels,
            annotations=annotations,
        )


PlatformObject = Annotated[Union[Application, Space, Organization], Field(discriminator="kind")]

MODEL_BY_KIND: dict[ObjectKind, type[_PlatformObject]] = {
    ObjectKind.app: Application,
    ObjectKind.space: Space,
    ObjectKind.org: Organization,
}

_codec: TypeAdapter[Application | Space | Organization] = TypeAdapter(PlatformObject)


def cache_key(kind: str, object_id: str) -> str:
    return f"{kind}:{object_id}"


def encode(obj: Application | Space | Organization) -> bytes:
    try:
        return _codec.dump_json(obj)
    except PydanticSerializationError as e:
        raise EncodingError(f"could not encode {obj.kind} {obj.id}: {e}") from e


def decode(data: bytes) -> Application | Space | Organization:
    try:
        return _codec.validate_json(data)
    except ValidationError as e:
        raise EncodingError(f"could not decode cached platform object: {e}") from e


def _metadata(payload: dict[str, Any]) -> tuple[dict[str, str], dict[str, str]]:
    # CF returns null for label values that were unset; those are not real labels.
    meta = payload.get("metadata") or {}
    labels = {str(k): str(v) for k, v in (meta.get("labels") or {}).items() if v is not None}
    annotations = {
        str(k): str(v) for k, v in (meta.get("annotations") or {}).items() if v is not None
    }
    return labels, annotations


def _relationship_guid(payload: dict[str, Any], name: str) -> str:
    rel = (payload.get("relationships") or {}).get(name) or {}
    data = rel.get("data") or {}
    return str(data.get("guid") or "")


# --- Module Notes -----------------------------------------------------------
# JSON is the cache encoding: it is deterministic for this schema (pydantic emits fields in
# declaration order and dict insertion order) and round-trips datetimes with their offset.
