# =============================================================================
# core/sales.py  -  Sales Pipeline & Lead Lookup (CRM)
# =============================================================================
#
# WHAT THIS MODULE DOES:
#   get_sales_pipeline  leads + opportunities joined on lead_id, scored
#   list_leads          one lead by id, or a filtered lead listing
#
# CRM QUERY CONVENTIONS:
#   The CRM uses its own parameter names: _limit instead of limit,
#   status_label for the lead status, date_created__gte/__lte for date
#   bounds.  They are spelled out here, not translated anywhere else.
#
# PIPELINE STAGE:
#   The CRM lead listing has no stage parameter, so a stage other than
#   "all" is matched locally against each lead's status_label
#   (case-insensitive) before the 25-lead cut.
# =============================================================================

from typing import Any, Optional

from core.models import DateRange
from core.scoring import HIGH_VALUE_LEAD_THRESHOLD, average, calculate_lead_score, sum_field
from core.upstream import UpstreamClient

PIPELINE_DEFAULT_LIMIT = 50
PIPELINE_MAX_LIMIT = 100
PIPELINE_OPPORTUNITY_LIMIT = 100
PIPELINE_LEAD_COUNT = 25

LEADS_DEFAULT_LIMIT = 25
LEADS_MAX_LIMIT = 50


def _matches_stage(lead: dict, stage: Optional[str]) -> bool:
    if not stage or stage == "all":
        return True
    return str(lead.get("status_label") or "").lower() == stage.lower()


async def get_sales_pipeline(
    close: UpstreamClient,
    stage: Optional[str] = None,
    date_range: Optional[DateRange] = None,
    include_lead_scoring: bool = True,
    limit: int = PIPELINE_DEFAULT_LIMIT,
) -> dict:
    """Join leads with their opportunities and compute pipeline analytics."""
    lead_params: dict[str, Any] = {"_limit": min(limit, PIPELINE_MAX_LIMIT)}
    if date_range:
        lead_params["date_created__gte"] = date_range.start
        lead_params["date_created__lte"] = date_range.end

    leads = (await close.get("lead", lead_params)).data
    opportunities = (await close.get("opportunity", {"_limit": PIPELINE_OPPORTUNITY_LIMIT})).data

    by_lead: dict[Any, list[dict]] = {}
    for opportunity in opportunities:
        if opportunity.get("lead_id") is None:
            continue
        by_lead.setdefault(opportunity.get("lead_id"), []).append(opportunity)

    pipeline = []
    staged = [lead for lead in leads if _matches_stage(lead, stage)]
    for lead in staged[:PIPELINE_LEAD_COUNT]:
        lead_opportunities = by_lead.get(lead.get("id"), [])
        pipeline.append({
            **lead,
            "opportunities": lead_opportunities,
            "total_opportunity_value": sum_field(lead_opportunities, "value"),
            "lead_score": calculate_lead_score(lead, lead_opportunities) if include_lead_scoring else None,
        })

    total_value = sum(lead["total_opportunity_value"] for lead in pipeline)
    analytics = {
        "total_leads": len(pipeline),
        "total_pipeline_value": total_value,
        "avg_deal_size": average(total_value, len(pipeline)),
        "high_value_leads": sum(
            1 for lead in pipeline if lead["total_opportunity_value"] > HIGH_VALUE_LEAD_THRESHOLD
        ),
    }
    return {"analytics": analytics, "pipeline": pipeline}


async def list_leads(
    close: UpstreamClient,
    lead_id: Optional[str] = None,
    status: Optional[str] = None,
    limit: Optional[int] = None,
) -> Any:
    """Return the raw lead object for lead_id, else the filtered lead list."""
    if lead_id:
        return (await close.get(f"lead/{lead_id}")).raw

    result = await close.get("lead", {
        "_limit": min(LEADS_DEFAULT_LIMIT if limit is None else limit, LEADS_MAX_LIMIT),
        "status_label": status,
    })
    return result.data
