"""
cf_attributes.platform.client

HTTP client boundary used by the resolver to read platform objects.

Responsibilities:
- Validate the auth block at construction (exactly one scheme, all its fields).
- Authenticate once at startup against the UAA endpoint advertised by the API root.
- Fetch applications, spaces and organizations from the Cloud Foundry v3 API.
- Surface every failure as `FetchError` (with kind + id) and cancellation as `Canceled`.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from typing import Any

import httpx

from cf_attributes.errors import Canceled, FetchError
from cf_attributes.observability.logging import get_logger
from cf_attributes.platform.auth import TokenSource
from cf_attributes.platform.models import (
    Application,
    ObjectKind,
    Organization,
    PlatformObject,
    Space,
)
from cf_attributes.settings import CloudFoundryConfig

log = get_logger(__name__)

_ROUTES: dict[ObjectKind, tuple[str, Callable[[dict[str, Any]], PlatformObject]]] = {
    ObjectKind.app: ("/v3/apps/{guid}", Application.from_api),
    ObjectKind.space: ("/v3/spaces/{guid}", Space.from_api),
    ObjectKind.org: ("/v3/organizations/{guid}", Organization.from_api),
}


class PlatformClient:
    """
    Authenticated façade over the Cloud Foundry API.
    No retries: a failed call fails; retry policy belongs to the caller.
    """

    def __init__(
        self,
        *,
        config: CloudFoundryConfig,
        http: httpx.AsyncClient | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        # Raises ConfigurationError before any connection is opened.
        auth_type = config.validate_config()
        self._config = config
        self._owns_http = http is None
        self._http = http or httpx.AsyncClient(
            base_url=config.endpoint.rstrip("/"),
            verify=not config.skip_tls_verify,
            timeout=config.request_timeout,
        )
        self._tokens = TokenSource(
            auth=config.auth, auth_type=auth_type, http=self._http, clock=clock
        )
        self._inflight: set[asyncio.Task[Any]] = set()
        self._closed = False

    @property
    def auth_type(self) -> str:
        return self._config.auth.type

    @property
    def authenticated(self) -> bool:
        return self._tokens.token is not None

    @property
    def closed(self) -> bool:
        return self._closed

    async def __aenter__(self) -> PlatformClient:
        await self.authenticate()
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()

    async def authenticate(self) -> None:
        # The API root advertises the login/UAA servers; either issues tokens.
        try:
            root = await self._get_json("/", authenticated=False)
        except (httpx.HTTPError, ValueError) as e:
            raise FetchError(f"could not read Cloud Foundry API root at {self._config.endpoint}") from e
        links = root.get("links") or {}
        login = links.get("login") or links.get("uaa") or {}
        await self._tokens.login(login.get("href"))

    async def fetch(self, kind: ObjectKind | str, object_id: str) -> PlatformObject:
        kind = ObjectKind(kind)
        if self._closed:
            raise Canceled("platform client is closed", kind=kind, object_id=object_id)

        path, parse = _ROUTES[kind]
        task = asyncio.current_task()
        if task is not None:
            self._inflight.add(task)
        log.debug("platform_fetch", kind=str(kind), id=object_id)
        try:
            payload = await self._get_json(path.format(guid=object_id))
            return parse(payload)
        except asyncio.CancelledError as e:
            raise Canceled(
                f"fetch of {kind} {object_id} canceled", kind=kind, object_id=object_id
            ) from e
        except FetchError as e:
            # Token refresh failed mid-call; re-attribute to the object being fetched.
            raise FetchError(
                f"could not retrieve {kind} with guid {object_id} from Cloud Foundry API",
                kind=kind,
                object_id=object_id,
            ) from e
        except (httpx.HTTPError, ValueError, KeyError, TypeError) as e:
            raise FetchError(
                f"could not retrieve {kind} with guid {object_id} from Cloud Foundry API",
                kind=kind,
                object_id=object_id,
            ) from e
        finally:
            if task is not None:
                self._inflight.discard(task)

    async def get_application(self, app_id: str) -> Application:
        return await self.fetch(ObjectKind.app, app_id)  # type: ignore[return-value]

    async def get_space(self, space_id: str) -> Space:
        return await self.fetch(ObjectKind.space, space_id)  # type: ignore[return-value]

    async def get_organization(self, org_id: str) -> Organization:
        return await self.fetch(ObjectKind.org, org_id)  # type: ignore[return-value]

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        # Shutdown aborts whatever is still waiting on the network.
        for task in list(self._inflight):
            if task is not asyncio.current_task():
                task.cancel()
        self._inflight.clear()
        if self._owns_http:
            await self._http.aclose()

    async def _get_json(self, path: str, *, authenticated: bool = True) -> dict[str, Any]:
        headers = {"Accept": "application/json"}
        sent = None
        if authenticated:
            headers["Authorization"] = f"bearer {await self._tokens.access_token()}"
            sent = self._tokens.token
        r = await self._http.get(path, headers=headers)
        if authenticated and r.status_code == httpx.codes.UNAUTHORIZED:
            headers["Authorization"] = f"bearer {await self._tokens.refresh(stale=sent)}"
            r = await self._http.get(path, headers=headers)
        r.raise_for_status()
        body = r.json()
        if not isinstance(body, dict):
            raise ValueError(f"unexpected response body for {path}: {type(body).__name__}")
        return body


# --- Module Notes -----------------------------------------------------------
# The client is created once per processor (see `services.processor`) and shared by every
# concurrent enrichment; httpx.AsyncClient pools connections across those calls.
