# =============================================================================
# core/credentials.py  -  Credential Store
# =============================================================================
#
# WHAT THIS MODULE DOES:
#   Hands each upstream client a usable Authorization value and, for the
#   insurance system, replaces it when it expires.
#
# TWO KINDS OF UPSTREAM:
#   - TokenCredentialStore (insurance system): short-lived bearer tokens.
#       * seeded from NOWCERTS_ACCESS_TOKEN if present (no known expiry,
#         used until the API answers 401)
#       * refreshed with NOWCERTS_REFRESH_TOKEN  -> POST {base}/auth/refresh
#         or, failing that, client credentials   -> POST /oauth/token
#       * cached until expires_in minus the safety margin (60s by default)
#   - BasicCredentialStore (CRM): a static API key sent as
#       Basic base64("<key>:").  Nothing to refresh.
#
# SHARED STATE:
#   One store instance per upstream, owned by AgencyClients and injected
#   into the client.  Concurrent tool calls share it.  Refreshes go through
#   an asyncio.Lock, and refresh(stale=...) skips the network call when
#   another task already replaced the stale token.
# =============================================================================

import asyncio
import base64
import logging
import time
from typing import Callable, Optional

import httpx

from core.errors import CredentialError
from core.models import Credential, CredentialKind

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_LIFETIME_SECONDS = 3600


class TokenCredentialStore:
    """Bearer-token cache with refresh-token and client-credentials grants."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        upstream: str = "NowCerts",
        access_token: str = "",
        refresh_token: str = "",
        refresh_url: str = "",
        client_id: str = "",
        client_secret: str = "",
        oauth_url: str = "",
        expiry_margin_seconds: int = 60,
        clock: Callable[[], float] = time.time,
    ):
        self.http = http
        self.upstream = upstream
        self.refresh_url = refresh_url
        self.oauth_url = oauth_url
        self.expiry_margin_seconds = expiry_margin_seconds
        self._refresh_token = refresh_token
        self._client_id = client_id
        self._client_secret = client_secret
        self._clock = clock
        self._lock = asyncio.Lock()
        self._credential: Optional[Credential] = None
        if access_token:
            self._credential = Credential(CredentialKind.BEARER, access_token)

    @property
    def can_refresh(self) -> bool:
        has_refresh_token = bool(self._refresh_token and self.refresh_url)
        has_client = bool(self._client_id and self._client_secret and self.oauth_url)
        return has_refresh_token or has_client

    @property
    def refresh_token(self) -> str:
        return self._refresh_token

    async def get_valid_credential(self) -> Credential:
        """Return the cached token while it is valid, otherwise fetch a new one."""
        cached = self._credential
        if cached is not None and cached.is_valid(self._clock()):
            return cached

        async with self._lock:
            cached = self._credential
            if cached is not None and cached.is_valid(self._clock()):
                return cached
            if not self.can_refresh:
                raise CredentialError(
                    f"{self.upstream} access token not configured",
                    upstream=self.upstream,
                    hint="set NOWCERTS_ACCESS_TOKEN, NOWCERTS_REFRESH_TOKEN "
                         "or NOWCERTS_CLIENT_ID/NOWCERTS_CLIENT_SECRET",
                )
            return await self._fetch_token()

    async def refresh(self, stale: Optional[Credential] = None) -> Credential:
        """Force a new token.

        If stale is given and the cache already holds a different, valid
        token, some other task refreshed first and that token is returned.
        """
        async with self._lock:
            current = self._credential
            if (
                stale is not None
                and current is not None
                and current.value != stale.value
                and current.is_valid(self._clock())
            ):
                return current
            if not self.can_refresh:
                raise CredentialError(
                    f"{self.upstream} has no refresh credential",
                    upstream=self.upstream,
                    hint="set NOWCERTS_REFRESH_TOKEN or NOWCERTS_CLIENT_ID/NOWCERTS_CLIENT_SECRET",
                )
            return await self._fetch_token()

    async def _fetch_token(self) -> Credential:
        if self._refresh_token and self.refresh_url:
            url = self.refresh_url
            request = self.http.post(
                url,
                json={"refresh_token": self._refresh_token},
                headers={"Accept": "application/json"},
            )
        else:
            url = self.oauth_url
            request = self.http.post(
                url,
                data={
                    "grant_type": "client_credentials",
                    "client_id": self._client_id,
                    "client_secret": self._client_secret,
                },
                headers={"Accept": "application/json"},
            )

        logger.info("Requesting new %s access token from %s", self.upstream, url)
        try:
            response = await request
        except httpx.HTTPError as exc:
            raise CredentialError(
                f"{self.upstream} token endpoint unreachable: {exc!r}",
                upstream=self.upstream,
            ) from exc

        if not response.is_success:
            raise CredentialError(
                f"{self.upstream} token endpoint refused credentials: "
                f"{response.status_code} {response.reason_phrase}",
                upstream=self.upstream,
                issuer_status=response.status_code,
            )

        try:
            payload = response.json()
            access_token = payload["access_token"]
            lifetime = float(payload.get("expires_in") or DEFAULT_TOKEN_LIFETIME_SECONDS)
        except (ValueError, KeyError, TypeError) as exc:
            raise CredentialError(
                f"{self.upstream} token endpoint returned an unusable token response",
                upstream=self.upstream,
                issuer_status=response.status_code,
            ) from exc

        expires_at = self._clock() + lifetime - self.expiry_margin_seconds
        self._credential = Credential(CredentialKind.BEARER, access_token, expires_at)

        rotated = payload.get("refresh_token")
        if rotated and rotated != self._refresh_token:
            self._refresh_token = rotated
            logger.warning(
                "%s rotated its refresh token; update NOWCERTS_REFRESH_TOKEN "
                "before the next restart", self.upstream,
            )
        return self._credential


class BasicCredentialStore:
    """Static API key rendered as HTTP Basic credentials (key as username)."""

    def __init__(self, api_key: str, upstream: str = "Close CRM"):
        self.upstream = upstream
        self._api_key = api_key

    @property
    def can_refresh(self) -> bool:
        return False

    async def get_valid_credential(self) -> Credential:
        if not self._api_key:
            raise CredentialError(
                f"{self.upstream} API key not configured",
                upstream=self.upstream,
                hint="set CLOSE_API_KEY",
            )
        encoded = base64.b64encode(f"{self._api_key}:".encode()).decode()
        return Credential(CredentialKind.BASIC, encoded)

    async def refresh(self, stale: Optional[Credential] = None) -> Credential:
        raise CredentialError(
            f"{self.upstream} API keys cannot be refreshed",
            upstream=self.upstream,
            hint="check CLOSE_API_KEY",
        )
