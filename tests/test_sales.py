"""Sales pipeline and lead lookup against the CRM."""

import httpx
import pytest

from core.errors import UpstreamError
from core.models import DateRange
from core.sales import get_sales_pipeline, list_leads
from tests.conftest import ok

LEADS = [
    {"id": "L1", "status_label": "Quoted", "contacts": [{"id": 1}, {"id": 2}]},
    {"id": "L2", "status_label": "New", "contacts": [{"id": 3}]},
]

OPPORTUNITIES = [
    {"id": "O1", "lead_id": "L1", "value": 6000},
    {"id": "O2", "lead_id": "L1", "value": 5000},
    {"id": "O3", "value": 99999},
]


class TestSalesPipeline:
    async def test_join_and_analytics(self, fake, clients):
        fake.get("/api/v1/lead/", ok(LEADS))
        fake.get("/api/v1/opportunity/", ok(OPPORTUNITIES))

        result = await get_sales_pipeline(clients.close)

        first, second = result["pipeline"]
        assert [o["id"] for o in first["opportunities"]] == ["O1", "O2"]
        assert first["total_opportunity_value"] == 11000
        assert first["lead_score"] == 8
        assert second["opportunities"] == []
        assert second["total_opportunity_value"] == 0
        assert second["lead_score"] == 5
        assert result["analytics"] == {
            "total_leads": 2,
            "total_pipeline_value": 11000,
            "avg_deal_size": 5500,
            "high_value_leads": 1,
        }

    async def test_crm_query_parameters(self, fake, clients):
        fake.get("/api/v1/lead/", ok([]))
        fake.get("/api/v1/opportunity/", ok([]))

        result = await get_sales_pipeline(
            clients.close, date_range=DateRange("2026-01-01", "2026-03-31"), limit=500
        )

        lead_params = fake.calls("/api/v1/lead/")[0].url.params
        assert lead_params["_limit"] == "100"
        assert lead_params["date_created__gte"] == "2026-01-01"
        assert lead_params["date_created__lte"] == "2026-03-31"
        assert fake.calls("/api/v1/opportunity/")[0].url.params["_limit"] == "100"
        assert result["analytics"]["avg_deal_size"] == 0

    async def test_stage_filter_matches_status_label(self, fake, clients):
        fake.get("/api/v1/lead/", ok(LEADS))
        fake.get("/api/v1/opportunity/", ok(OPPORTUNITIES))

        result = await get_sales_pipeline(clients.close, stage="quoted")

        assert [lead["id"] for lead in result["pipeline"]] == ["L1"]

    async def test_at_most_25_leads_and_scoring_optional(self, fake, clients):
        fake.get("/api/v1/lead/", ok([{"id": f"L{i}"} for i in range(40)]))
        fake.get("/api/v1/opportunity/", ok([]))

        result = await get_sales_pipeline(clients.close, include_lead_scoring=False)

        assert result["analytics"]["total_leads"] == 25
        assert all(lead["lead_score"] is None for lead in result["pipeline"])

    async def test_opportunity_failure_is_fatal(self, fake, clients):
        fake.get("/api/v1/lead/", ok(LEADS))
        fake.get("/api/v1/opportunity/", httpx.Response(500, text="error"))

        with pytest.raises(UpstreamError):
            await get_sales_pipeline(clients.close)


class TestListLeads:
    async def test_single_lead_returns_raw_object(self, fake, clients):
        lead = {"id": "lead_abc", "display_name": "Acme Roofing"}
        fake.get("/api/v1/lead/lead_abc/", httpx.Response(200, json=lead))

        assert await list_leads(clients.close, lead_id="lead_abc") == lead

    async def test_listing_params(self, fake, clients):
        fake.get("/api/v1/lead/", ok([{"id": "L1"}]))

        leads = await list_leads(clients.close, status="active", limit=99)

        assert leads == [{"id": "L1"}]
        params = fake.calls("/api/v1/lead/")[0].url.params
        assert params["_limit"] == "50"
        assert params["status_label"] == "active"

    async def test_default_limit_and_no_status(self, fake, clients):
        fake.get("/api/v1/lead/", ok([]))

        await list_leads(clients.close)

        assert dict(fake.calls("/api/v1/lead/")[0].url.params) == {"_limit": "25"}
