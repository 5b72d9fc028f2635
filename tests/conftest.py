"""
tests.conftest

Shared fixtures: sample platform objects, an in-memory platform client, a controllable
clock, and a fake Cloud Foundry API (FastAPI app) served through httpx.ASGITransport.
"""

from __future__ import annotations

import base64
import time
from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Any
from urllib.parse import parse_qs

import httpx
import jwt
import pytest
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from cf_attributes.errors import FetchError
from cf_attributes.platform.models import Application, ObjectKind, Organization, Space
from cf_attributes.settings import Settings

CF_BASE_URL = "http://cf.test"


class FakeClock:
    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakePlatformClient:
    """
    In-memory stand-in for PlatformClient that records every fetch.
    """

    auth_type = "token"

    def __init__(
        self,
        objects: Iterable[Application | Space | Organization] = (),
        *,
        failures: dict[tuple[str, str], BaseException] | None = None,
    ) -> None:
        self.objects = {(str(o.kind), o.id): o for o in objects}
        self.failures = dict(failures or {})
        self.calls: list[tuple[str, str]] = []
        self.authenticated = False
        self.closed = False

    async def authenticate(self) -> None:
        self.authenticated = True

    async def aclose(self) -> None:
        self.closed = True

    async def fetch(self, kind: ObjectKind | str, object_id: str):
        key = (str(ObjectKind(kind)), object_id)
        self.calls.append(key)
        if key in self.failures:
            raise self.failures[key]
        obj = self.objects.get(key)
        if obj is None:
            raise FetchError(f"{key[0]} {object_id} not found", kind=key[0], object_id=object_id)
        return obj

    def count(self, kind: str) -> int:
        return sum(1 for k, _ in self.calls if k == kind)


@pytest.fixture
def app_obj() -> Application:
    return Application(
        id="A1",
        name="svc",
        labels={"team": "x"},
        annotations={"owner": "ops"},
        state="STARTED",
        lifecycle_type="buildpack",
        buildpacks=("java_buildpack", "nodejs_buildpack"),
        stack="cflinuxfs4",
        created_at=datetime(2024, 1, 2, 3, 4, 5, tzinfo=UTC),
        updated_at=datetime(2024, 2, 3, 4, 5, 6, tzinfo=UTC),
        space_id="S1",
    )


@pytest.fixture
def space_obj() -> Space:
    return Space(id="S1", name="dev", labels={"env": "dev"}, annotations={"note": "n"}, org_id="O1")


@pytest.fixture
def org_obj() -> Organization:
    return Organization(
        id="O1", name="acme", labels={"cost-center": "42"}, annotations={"contact": "ops@acme"}
    )


@pytest.fixture
def fake_client(app_obj, space_obj, org_obj) -> FakePlatformClient:
    return FakePlatformClient([app_obj, space_obj, org_obj])


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


def make_settings(**overrides: Any) -> Settings:
    values: dict[str, Any] = {
        "env": "test",
        "cloud_foundry": {
            "endpoint": CF_BASE_URL,
            "auth": {"type": "token", "access_token": "at", "refresh_token": "rt"},
        },
    }
    values.update(overrides)
    return Settings(**values)


# --- Fake Cloud Foundry API --------------------------------------------------


def issue_jwt(*, ttl: float = 600.0, subject: str = "tester", jti: str = "0") -> str:
    now = time.time()
    return jwt.encode(
        {"sub": subject, "iat": int(now), "exp": int(now + ttl), "jti": jti},
        "fake-uaa-signing-key-0123456789abcdef",
        algorithm="HS256",
    )


def app_payload(
    guid: str,
    *,
    name: str,
    space_guid: str,
    labels: dict[str, Any] | None = None,
    annotations: dict[str, Any] | None = None,
) -> dict[str, Any]:
    return {
        "guid": guid,
        "name": name,
        "state": "STARTED",
        "created_at": "2024-01-02T03:04:05Z",
        "updated_at": "2024-02-03T04:05:06Z",
        "lifecycle": {
            "type": "buildpack",
            "data": {"buildpacks": ["java_buildpack", "go_buildpack"], "stack": "cflinuxfs4"},
        },
        "relationships": {"space": {"data": {"guid": space_guid}}},
        "metadata": {"labels": labels or {}, "annotations": annotations or {}},
        "links": {"self": {"href": f"{CF_BASE_URL}/v3/apps/{guid}"}},
    }


def space_payload(guid: str, *, name: str, org_guid: str) -> dict[str, Any]:
    return {
        "guid": guid,
        "name": name,
        "created_at": "2023-01-01T00:00:00Z",
        "updated_at": "2023-01-01T00:00:00Z",
        "relationships": {"organization": {"data": {"guid": org_guid}}},
        "metadata": {"labels": {"env": "dev"}, "annotations": {}},
    }


def org_payload(guid: str, *, name: str) -> dict[str, Any]:
    return {
        "guid": guid,
        "name": name,
        "suspended": False,
        "metadata": {"labels": {"cost-center": "42"}, "annotations": {}},
    }


class FakeCloudFoundry:
    """
    Just enough of the CF v3 API + UAA token endpoint to exercise PlatformClient.
    """

    users = {"admin": "secret"}
    clients = {"svc-client": "svc-secret"}

    def __init__(self) -> None:
        self.apps: dict[str, dict[str, Any]] = {}
        self.spaces: dict[str, dict[str, Any]] = {}
        self.orgs: dict[str, dict[str, Any]] = {}
        self.valid_tokens: set[str] = set()
        self.refresh_tokens: set[str] = {"rt"}
        self.grants: list[str] = []
        self.requests: list[str] = []
        self.app = self._build()

    def http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.ASGITransport(app=self.app), base_url=CF_BASE_URL)

    def _issue(self) -> dict[str, Any]:
        access = issue_jwt(jti=str(len(self.grants)))
        refresh = f"refresh-{len(self.grants)}"
        self.valid_tokens.add(access)
        self.refresh_tokens.add(refresh)
        return {"access_token": access, "refresh_token": refresh, "token_type": "bearer"}

    def _build(self) -> FastAPI:
        api = FastAPI()

        @api.get("/")
        async def root() -> dict[str, Any]:
            return {
                "links": {
                    "self": {"href": CF_BASE_URL},
                    "login": {"href": f"{CF_BASE_URL}/login"},
                    "uaa": {"href": f"{CF_BASE_URL}/uaa"},
                }
            }

        @api.post("/login/oauth/token")
        async def token(request: Request) -> JSONResponse:
            form = {k: v[0] for k, v in parse_qs((await request.body()).decode()).items()}
            client_id, _, client_secret = (
                base64.b64decode(request.headers["authorization"].split(" ", 1)[1])
                .decode()
                .partition(":")
            )
            grant = form.get("grant_type", "")
            self.grants.append(grant)
            if grant == "password":
                ok = client_id == "cf" and self.users.get(form.get("username", "")) == form.get(
                    "password"
                )
            elif grant == "client_credentials":
                ok = self.clients.get(client_id) == client_secret
            elif grant == "refresh_token":
                ok = form.get("refresh_token") in self.refresh_tokens
            else:
                ok = False
            if not ok:
                return JSONResponse({"error": "unauthorized"}, status_code=401)
            body = self._issue()
            if grant == "client_credentials":
                body.pop("refresh_token")
            return JSONResponse(body)

        def _authorized(request: Request) -> bool:
            header = request.headers.get("authorization", "")
            return header.startswith("bearer ") and header[len("bearer ") :] in self.valid_tokens

        def _serve(request: Request, store: dict[str, dict[str, Any]], guid: str) -> JSONResponse:
            self.requests.append(request.url.path)
            if not _authorized(request):
                return JSONResponse({"errors": [{"title": "CF-InvalidAuthToken"}]}, status_code=401)
            if guid not in store:
                return JSONResponse({"errors": [{"title": "CF-ResourceNotFound"}]}, status_code=404)
            return JSONResponse(store[guid])

        @api.get("/v3/apps/{guid}")
        async def get_app(guid: str, request: Request) -> JSONResponse:
            return _serve(request, self.apps, guid)

        @api.get("/v3/spaces/{guid}")
        async def get_space(guid: str, request: Request) -> JSONResponse:
            return _serve(request, self.spaces, guid)

        @api.get("/v3/organizations/{guid}")
        async def get_org(guid: str, request: Request) -> JSONResponse:
            return _serve(request, self.orgs, guid)

        return api


@pytest.fixture
def fake_cf() -> FakeCloudFoundry:
    cf = FakeCloudFoundry()
    cf.apps["A1"] = app_payload("A1", name="svc", space_guid="S1", labels={"team": "x"})
    cf.spaces["S1"] = space_payload("S1", name="dev", org_guid="O1")
    cf.orgs["O1"] = org_payload("O1", name="acme")
    return cf
