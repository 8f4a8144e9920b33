# =============================================================================
# core/claims.py  -  Claims Dashboard
# =============================================================================
#
# One claims fetch, then everything else is local arithmetic:
#   summary       totals, average, open/closed counts
#   by_status     {status: {count, total_amount}}
#   by_type       {type:   {count, total_amount}}
#   action_items  "Review old open claims" when open claims are > 30 days old
#
# The status filter goes to the upstream (comma-joined); the claim type
# filter is applied here because the upstream has no such parameter.
# =============================================================================

from typing import Optional

from core.models import DateRange
from core.scoring import (
    claims_action_items,
    group_claims_by,
    months_ago,
    summarize_claims,
    today_iso,
)
from core.upstream import UpstreamClient

DASHBOARD_DEFAULT_LIMIT = 100
DASHBOARD_MAX_LIMIT = 200
DASHBOARD_DEFAULT_MONTHS = 6


def resolve_date_range(date_range: Optional[DateRange]) -> DateRange:
    """Fill in whichever end is missing: last 6 months up to today."""
    start = date_range.start if date_range and date_range.start else months_ago(DASHBOARD_DEFAULT_MONTHS)
    end = date_range.end if date_range and date_range.end else today_iso()
    return DateRange(start=start, end=end)


async def get_claims_dashboard(
    nowcerts: UpstreamClient,
    date_range: Optional[DateRange] = None,
    status_filter: Optional[list[str]] = None,
    claim_types: Optional[list[str]] = None,
    limit: int = DASHBOARD_DEFAULT_LIMIT,
) -> dict:
    window = resolve_date_range(date_range)
    result = await nowcerts.get("claims", {
        "date_from": window.start,
        "date_to": window.end,
        "limit": min(limit, DASHBOARD_MAX_LIMIT),
        "status": ",".join(status_filter) if status_filter else None,
    })

    claims = result.data
    if claim_types:
        claims = [c for c in claims if c.get("type") in claim_types]

    return {
        "summary": summarize_claims(claims),
        "by_status": group_claims_by(claims, "status"),
        "by_type": group_claims_by(claims, "type"),
        "action_items": claims_action_items(claims),
        "date_range": window.to_dict(),
    }
