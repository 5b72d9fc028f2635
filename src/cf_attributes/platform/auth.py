"""
cf_attributes.platform.auth

UAA bearer-token handling for the Cloud Foundry API.

Responsibilities:
- Obtain a token for the configured scheme (user_pass, client_credentials, token).
- Track token expiry from the JWT `exp` claim and refresh shortly before it.
- Serialize concurrent refreshes so a burst of fetches triggers one token request.

Note:
- The token signature is not verified here; the CF API does that. We only read `exp`.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import httpx
import jwt
from jwt import InvalidTokenError

from cf_attributes.errors import AuthenticationError
from cf_attributes.observability.logging import get_logger
from cf_attributes.settings import AuthType, CfAuthConfig

log = get_logger(__name__)

# The public CF CLI client; UAA accepts it with an empty secret for password/refresh grants.
CF_CLI_CLIENT_ID = "cf"

# Refresh this many seconds before the token actually expires.
EXPIRY_MARGIN_SECONDS = 10.0


@dataclass(frozen=True, slots=True)
class Token:
    access_token: str
    refresh_token: str = ""
    # Epoch seconds; None when the token is opaque (not a JWT) and expiry is unknown.
    expires_at: float | None = None

    def expired(self, now: float) -> bool:
        if self.expires_at is None:
            return False
        return now >= self.expires_at - EXPIRY_MARGIN_SECONDS


def token_expiry(access_token: str) -> float | None:
    try:
        claims = jwt.decode(access_token, options={"verify_signature": False})
    except InvalidTokenError:
        return None
    exp = claims.get("exp")
    return float(exp) if isinstance(exp, (int, float)) else None


class TokenSource:
    def __init__(
        self,
        *,
        auth: CfAuthConfig,
        auth_type: AuthType,
        http: httpx.AsyncClient,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._auth = auth
        self._auth_type = auth_type
        self._http = http
        self._clock = clock
        self._token_url: str | None = None
        self._token: Token | None = None
        self._lock = asyncio.Lock()

    @property
    def token(self) -> Token | None:
        return self._token

    async def login(self, token_endpoint: str | None) -> None:
        if token_endpoint:
            self._token_url = token_endpoint.rstrip("/") + "/oauth/token"

        if self._auth_type == "token":
            # Supplied tokens are used as-is; the token endpoint is only needed to refresh.
            self._token = Token(
                access_token=self._auth.access_token,
                refresh_token=self._auth.refresh_token,
                expires_at=token_expiry(self._auth.access_token),
            )
        elif self._auth_type == "user_pass":
            self._token = await self._grant(
                {
                    "grant_type": "password",
                    "username": self._auth.username,
                    "password": self._auth.password,
                },
                client=(CF_CLI_CLIENT_ID, ""),
            )
        else:
            self._token = await self._grant(
                {"grant_type": "client_credentials"},
                client=(self._auth.client_id, self._auth.client_secret),
            )
        log.info("platform_authenticated", auth_type=self._auth_type)

    async def access_token(self) -> str:
        token = self._token
        if token is None:
            raise AuthenticationError("platform client is not authenticated")
        if token.expired(self._clock()):
            return await self.refresh(stale=token)
        return token.access_token

    async def refresh(self, *, stale: Token | None = None) -> str:
        async with self._lock:
            # Another task may have refreshed while we waited on the lock.
            current = self._token
            if current is not None and stale is not None and current is not stale:
                return current.access_token
            self._token = await self._refreshed(current)
            log.info("platform_token_refreshed", auth_type=self._auth_type)
            return self._token.access_token

    async def _refreshed(self, current: Token | None) -> Token:
        if current is not None and current.refresh_token:
            client = (CF_CLI_CLIENT_ID, "")
            if self._auth_type == "client_credentials":
                client = (self._auth.client_id, self._auth.client_secret)
            token = await self._grant(
                {"grant_type": "refresh_token", "refresh_token": current.refresh_token},
                client=client,
            )
            if not token.refresh_token:
                token = Token(token.access_token, current.refresh_token, token.expires_at)
            return token
        if self._auth_type == "client_credentials":
            # client_credentials grants carry no refresh token; just ask again.
            return await self._grant(
                {"grant_type": "client_credentials"},
                client=(self._auth.client_id, self._auth.client_secret),
            )
        raise AuthenticationError("access token expired and no refresh token is available")

    async def _grant(self, form: dict[str, str], *, client: tuple[str, str]) -> Token:
        if not self._token_url:
            raise AuthenticationError("no token endpoint advertised by the Cloud Foundry API")
        try:
            r = await self._http.post(
                self._token_url,
                data=form,
                auth=client,
                headers={"Accept": "application/json"},
            )
            r.raise_for_status()
            body: dict[str, Any] = r.json()
        except (httpx.HTTPError, ValueError) as e:
            raise AuthenticationError(
                f"could not obtain token ({form['grant_type']} grant) from {self._token_url}"
            ) from e

        access = body.get("access_token")
        if not access:
            raise AuthenticationError("token response did not contain an access_token")
        expires_at = token_expiry(access)
        if expires_at is None and isinstance(body.get("expires_in"), (int, float)):
            expires_at = self._clock() + float(body["expires_in"])
        return Token(
            access_token=str(access),
            refresh_token=str(body.get("refresh_token") or ""),
            expires_at=expires_at,
        )


# --- Module Notes -----------------------------------------------------------
# Refreshing a token is not a retry of the failed call: the client re-sends a request at
# most once, and only after a 401 that a fresh token can plausibly fix.
