"""Claims dashboard."""

import httpx
import pytest

from core.claims import get_claims_dashboard, resolve_date_range
from core.errors import UpstreamError
from core.models import DateRange
from tests.conftest import ok


class TestClaimsDashboard:
    async def test_empty_dashboard(self, fake, clients):
        fake.get("/v1/claims", ok([]))

        dashboard = await get_claims_dashboard(clients.nowcerts, DateRange("2026-01-01", "2026-06-30"))

        assert dashboard["summary"]["total_claims"] == 0
        assert dashboard["summary"]["avg_amount"] == 0
        assert dashboard["by_status"] == {}
        assert dashboard["action_items"] == []
        assert dashboard["date_range"] == {"from": "2026-01-01", "to": "2026-06-30"}

    async def test_breakdowns(self, fake, clients):
        fake.get("/v1/claims", ok([
            {"status": "open", "type": "auto", "amount": 1000, "date_created": "2020-01-01"},
            {"status": "closed", "type": "auto", "amount": 500},
            {"status": "denied", "amount": 250},
        ]))

        dashboard = await get_claims_dashboard(clients.nowcerts)

        assert dashboard["summary"]["total_amount"] == 1750
        assert dashboard["by_type"]["auto"] == {"count": 2, "total_amount": 1500}
        assert dashboard["by_type"]["unknown"] == {"count": 1, "total_amount": 250}
        assert dashboard["by_status"]["denied"]["count"] == 1
        assert dashboard["action_items"][0]["count"] == 1

    async def test_status_filter_joined_and_limit_capped(self, fake, clients):
        fake.get("/v1/claims", ok([]))

        await get_claims_dashboard(
            clients.nowcerts,
            DateRange("2026-01-01", "2026-06-30"),
            status_filter=["open", "pending"],
            limit=1000,
        )

        params = fake.calls("/v1/claims")[0].url.params
        assert params["status"] == "open,pending"
        assert params["limit"] == "200"
        assert params["date_from"] == "2026-01-01"
        assert params["date_to"] == "2026-06-30"

    async def test_no_status_param_without_filter(self, fake, clients):
        fake.get("/v1/claims", ok([]))

        await get_claims_dashboard(clients.nowcerts)

        assert "status" not in fake.calls("/v1/claims")[0].url.params

    async def test_claim_type_filter_is_local(self, fake, clients):
        fake.get("/v1/claims", ok([{"type": "auto", "amount": 1}, {"type": "home", "amount": 2}]))

        dashboard = await get_claims_dashboard(clients.nowcerts, claim_types=["home"])

        assert dashboard["summary"]["total_claims"] == 1
        assert list(dashboard["by_type"]) == ["home"]
        assert "type" not in fake.calls("/v1/claims")[0].url.params

    async def test_fetch_failure_is_fatal(self, fake, clients):
        fake.get("/v1/claims", httpx.Response(502, text="bad gateway"))

        with pytest.raises(UpstreamError):
            await get_claims_dashboard(clients.nowcerts)


def test_partial_date_range_is_completed():
    window = resolve_date_range(DateRange(start="2026-02-01", end=None))

    assert window.start == "2026-02-01"
    assert len(window.end) == 10
