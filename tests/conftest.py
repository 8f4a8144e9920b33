"""
Shared fixtures: an in-process fake of both upstream APIs.

FakeUpstream routes httpx requests by (method, path).  A route holds a queue
of responses; each request pops the next one and the last one repeats.  A
response may be an httpx.Response, an exception to raise, or a callable
taking the request and returning either.
"""

import httpx
import pytest
import pytest_asyncio

from core.config import Settings
from core.upstream import AgencyClients

NOWCERTS = "https://nowcerts.test/v1"
CLOSE = "https://close.test/api/v1"


def ok(data=None, **extra) -> httpx.Response:
    payload = {"data": data if data is not None else []}
    payload.update(extra)
    return httpx.Response(200, json=payload)


class FakeUpstream:
    def __init__(self):
        self.routes: dict[tuple[str, str], list] = {}
        self.requests: list[httpx.Request] = []

    def add(self, method: str, path: str, *responses) -> None:
        self.routes[(method, path)] = list(responses)

    def get(self, path: str, *responses) -> None:
        self.add("GET", path, *responses)

    def calls(self, path: str, method: str = "GET") -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == path]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self.routes.get((request.method, request.url.path))
        if not queue:
            return httpx.Response(404, json={"error": "no route"})
        response = queue.pop(0) if len(queue) > 1 else queue[0]
        if callable(response) and not isinstance(response, httpx.Response):
            response = response(request)
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def fake() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        nowcerts_base_url=NOWCERTS,
        nowcerts_access_token="seed-token",
        nowcerts_refresh_token="refresh-1",
        close_base_url=CLOSE,
        close_api_key="close-key",
    )


@pytest_asyncio.fixture
async def http(fake: FakeUpstream):
    client = httpx.AsyncClient(transport=httpx.MockTransport(fake.handler))
    yield client
    await client.aclose()


@pytest.fixture
def clients(settings: Settings, http: httpx.AsyncClient) -> AgencyClients:
    return AgencyClients.from_settings(settings, http=http)
