"""
cf_attributes.settings

Central configuration model (Pydantic Settings).

Responsibilities:
- Provide strongly-typed, env-driven settings for the client, cache and enricher.
- Hide secrets from repr/logging (passwords, client secrets, tokens).
- Validate the Cloud Foundry auth block into a `ConfigurationError`.
- Offer a cached settings instance for dependency injection.
"""

from __future__ import annotations

import re
from datetime import timedelta
from functools import lru_cache
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from cf_attributes.errors import ConfigurationError

AuthType = Literal["user_pass", "client_credentials", "token"]

AUTH_TYPES: tuple[str, ...] = ("user_pass", "client_credentials", "token")

# Required fields per auth type, checked in order so the first missing one is reported.
_REQUIRED_AUTH_FIELDS: dict[str, tuple[str, str]] = {
    "user_pass": ("username", "password"),
    "client_credentials": ("client_id", "client_secret"),
    "token": ("access_token", "refresh_token"),
}

_GO_DURATION = re.compile(r"(\d+(?:\.\d+)?)(ms|h|m|s)")
_GO_UNITS = {"h": 3600.0, "m": 60.0, "s": 1.0, "ms": 0.001}


def parse_duration(value: Any) -> Any:
    """
    Accept Go-style duration strings ("10m", "1h30m", "500ms") in addition to
    what pydantic already understands (seconds, ISO-8601, timedelta).
    """

    if not isinstance(value, str):
        return value
    raw = value.strip()
    if not raw or raw.startswith("P"):
        return raw
    if raw.replace(".", "", 1).isdigit():
        return timedelta(seconds=float(raw))
    pos = 0
    total = 0.0
    for m in _GO_DURATION.finditer(raw):
        if m.start() != pos:
            raise ValueError(f"invalid duration: {value!r}")
        total += float(m.group(1)) * _GO_UNITS[m.group(2)]
        pos = m.end()
    if pos != len(raw):
        raise ValueError(f"invalid duration: {value!r}")
    return timedelta(seconds=total)


class CfAuthConfig(BaseModel):
    # One of: user_pass, client_credentials, token. Left as plain str so an unknown value
    # surfaces as ConfigurationError at startup instead of a settings parse error.
    type: str = ""

    username: str = ""
    password: str = Field(default="", repr=False)

    client_id: str = ""
    client_secret: str = Field(default="", repr=False)

    access_token: str = Field(default="", repr=False)
    refresh_token: str = Field(default="", repr=False)

    def validate_scheme(self) -> AuthType:
        if not self.type:
            raise ConfigurationError("cloud_foundry.auth.type must be specified")
        if self.type not in _REQUIRED_AUTH_FIELDS:
            raise ConfigurationError(
                "configuration option `auth.type` must be set to one of the following values: "
                f"[{', '.join(AUTH_TYPES)}]. Specified value: {self.type}"
            )
        for field_name in _REQUIRED_AUTH_FIELDS[self.type]:
            if not getattr(self, field_name):
                raise ConfigurationError(f"{field_name} is required when using auth_type: {self.type}")
        return self.type  # type: ignore[return-value]


class CloudFoundryConfig(BaseModel):
    # Base URL of the Cloud Foundry API (e.g. https://api.sys.example.com).
    endpoint: str = ""
    auth: CfAuthConfig = Field(default_factory=CfAuthConfig)
    skip_tls_verify: bool = False
    # None: no client-side timeout; calls are bounded by caller cancellation only.
    request_timeout: float | None = None

    def validate_config(self) -> AuthType:
        if not self.endpoint:
            raise ConfigurationError("cloud_foundry.endpoint must be specified")
        return self.auth.validate_scheme()


class Settings(BaseSettings):
    """
    Engine configuration.
    Nested values come from env vars using `__`, e.g.
    CFATTR_CLOUD_FOUNDRY__AUTH__TYPE=client_credentials.
    """

    model_config = SettingsConfigDict(
        env_prefix="CFATTR_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    env: Literal["dev", "test", "prod"] = "dev"
    service_name: str = "cf-attributes"
    log_level: str = "INFO"
    log_format: Literal["json", "console"] = "json"

    api_host: str = "0.0.0.0"
    api_port: int = 8080

    cloud_foundry: CloudFoundryConfig = Field(default_factory=CloudFoundryConfig)

    # Extraction policy
    include_app_metadata: bool = True
    include_space_metadata: bool = False
    include_org_metadata: bool = False
    app_state_lifecycle: bool = False
    app_dates: bool = False

    # Identity attribute keys on incoming resources
    appid_attribute_association: str = "app_id"
    spaceid_attribute_association: str = "space_id"

    # Cache
    cache_ttl: timedelta = timedelta(minutes=10)
    cache_clean_interval: timedelta = timedelta(minutes=1)
    cache_shards: int = 1024

    # Batch processing
    failure_mode: Literal["batch", "resource"] = "batch"
    enrich_concurrency: int = Field(default=16, ge=1)

    @field_validator("cache_ttl", "cache_clean_interval", mode="before")
    @classmethod
    def _durations(cls, v: Any) -> Any:
        return parse_duration(v)

    @field_validator("cache_shards")
    @classmethod
    def _shards_power_of_two(cls, v: int) -> int:
        if v < 1 or v & (v - 1):
            raise ValueError("cache_shards must be a power of two")
        return v


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    # Cache avoids re-parsing env vars for each request dependency.
    return Settings()


# --- Module Notes -----------------------------------------------------------
# Auth validation is deliberately not a pydantic validator: loading config is plumbing,
# while rejecting a bad auth block is the processor's startup decision.
