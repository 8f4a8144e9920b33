# =============================================================================
# core/upstream.py  -  Authenticated Upstream Clients
# =============================================================================
#
# WHAT THIS MODULE DOES:
#   UpstreamClient.get(endpoint, params) is the only way the core talks to
#   the outside world.  Every call:
#     1. gets a credential from the client's credential store
#     2. builds the URL (core/query.py drops unset params)
#     3. sends a GET with the Authorization header
#     4. on a 401, if the store can refresh: refresh once and retry once
#     5. turns any other non-2xx, transport failure or bad JSON into an
#        UpstreamError
#     6. normalises the JSON into an UpstreamResult (data is always a list)
#
#   Only one retry, ever.  A second 401 is a CredentialExpiredError.
#
# AgencyClients bundles the two upstreams the tools need and owns the
# shared httpx.AsyncClient:
#   nowcerts  ->  GET {NOWCERTS_BASE_URL}/{endpoint}?{query}     (Bearer)
#   close     ->  GET {CLOSE_BASE_URL}/{endpoint}/?{query}       (Basic)
# =============================================================================

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Protocol

import httpx

from core.config import Settings
from core.credentials import BasicCredentialStore, TokenCredentialStore
from core.errors import CredentialError, CredentialExpiredError, UpstreamError
from core.models import Credential, UpstreamResult
from core.query import build_url

logger = logging.getLogger(__name__)

USER_AGENT = "insurance-agency-mcp/1.0"


class CredentialSource(Protocol):
    @property
    def can_refresh(self) -> bool: ...

    async def get_valid_credential(self) -> Credential: ...

    async def refresh(self, stale: Optional[Credential] = None) -> Credential: ...


class UpstreamClient:
    """GET-only JSON client for one upstream API."""

    def __init__(
        self,
        name: str,
        base_url: str,
        credentials: CredentialSource,
        http: httpx.AsyncClient,
        trailing_slash: bool = False,
    ):
        self.name = name
        self.base_url = base_url
        self.credentials = credentials
        self.http = http
        self.trailing_slash = trailing_slash

    async def get(self, endpoint: str, params: Optional[Mapping[str, Any]] = None) -> UpstreamResult:
        credential = await self.credentials.get_valid_credential()
        url = build_url(self.base_url, endpoint, params, self.trailing_slash)
        logger.debug("%s GET %s", self.name, url)

        response = await self._send(url, credential)

        if response.status_code == 401 and self.credentials.can_refresh:
            logger.info("%s rejected the access token, attempting refresh", self.name)
            try:
                credential = await self.credentials.refresh(stale=credential)
            except CredentialError as exc:
                raise CredentialExpiredError(
                    f"{self.name} token expired and refresh failed",
                    upstream=self.name,
                    issuer_status=exc.issuer_status,
                ) from exc
            response = await self._send(url, credential)
            if response.status_code == 401:
                raise CredentialExpiredError(
                    f"{self.name} still rejected the credential after refresh",
                    upstream=self.name,
                    issuer_status=401,
                )

        if not response.is_success:
            raise UpstreamError(self.name, response.status_code, response.reason_phrase, response.text)

        try:
            payload = response.json()
        except ValueError as exc:
            raise UpstreamError(
                self.name,
                response.status_code,
                response.reason_phrase,
                response.text,
                reason=f"unparsable JSON body from {endpoint}",
            ) from exc
        return UpstreamResult.from_payload(payload)

    async def _send(self, url: str, credential: Credential) -> httpx.Response:
        headers = {
            "Authorization": credential.header,
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        try:
            return await self.http.get(url, headers=headers)
        except httpx.HTTPError as exc:
            raise UpstreamError(
                self.name, None, "", reason=f"request failed ({type(exc).__name__}: {exc})"
            ) from exc


@dataclass
class AgencyClients:
    """The two upstream clients plus the HTTP connection pool they share."""

    nowcerts: UpstreamClient
    close: UpstreamClient
    http: httpx.AsyncClient

    @classmethod
    def from_settings(cls, settings: Settings, http: Optional[httpx.AsyncClient] = None) -> "AgencyClients":
        if http is None:
            http = httpx.AsyncClient(
                timeout=settings.upstream_timeout_seconds,
                headers={"User-Agent": USER_AGENT},
            )
        token_store = TokenCredentialStore(
            http,
            upstream="NowCerts",
            access_token=settings.nowcerts_access_token,
            refresh_token=settings.nowcerts_refresh_token,
            refresh_url=settings.refresh_url,
            client_id=settings.nowcerts_client_id,
            client_secret=settings.nowcerts_client_secret,
            oauth_url=settings.nowcerts_oauth_url,
            expiry_margin_seconds=settings.token_expiry_margin_seconds,
        )
        nowcerts = UpstreamClient("NowCerts", settings.nowcerts_base_url, token_store, http)
        close = UpstreamClient(
            "Close CRM",
            settings.close_base_url,
            BasicCredentialStore(settings.close_api_key),
            http,
            trailing_slash=True,
        )
        return cls(nowcerts=nowcerts, close=close, http=http)

    async def aclose(self) -> None:
        await self.http.aclose()
