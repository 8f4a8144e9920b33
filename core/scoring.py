# =============================================================================
# core/scoring.py  -  Derived Metrics
# =============================================================================
#
# WHAT THIS MODULE DOES:
#   Every number or verdict the reports add on top of upstream data:
#     - risk score and lifetime value          (customer profile)
#     - renewal recommendation                 (renewals report)
#     - claims summary, group-bys, action items (claims dashboard)
#     - lead score                             (sales pipeline)
#   plus the date helpers the reports use to bound their queries.
#
# All functions are pure: records in, numbers out.  The aggregation modules
# do the fetching and call these afterwards, so the formulas can be tested
# without an HTTP fake.
#
# DATES:
#   Everything is UTC and formatted YYYY-MM-DD.  months_ago() rolls over
#   when the day does not exist in the target month: 2026-03-31 minus one
#   month is "2026-02-31", which becomes 2026-03-03.
# =============================================================================

from datetime import date, datetime, timedelta, timezone
from typing import Iterable, Optional

from core.models import RenewalRecommendation

STALE_OPEN_CLAIM_DAYS = 30
HIGH_VALUE_LEAD_THRESHOLD = 10000
RETENTION_YEARS = 5


# -----------------------------------------------------------------------------
# Dates
# -----------------------------------------------------------------------------
def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def today_iso() -> str:
    return utc_today().isoformat()


def months_ago(months: int, today: Optional[date] = None) -> str:
    """Return today minus N calendar months as YYYY-MM-DD (roll-over policy)."""
    today = today or utc_today()
    month_index = today.year * 12 + (today.month - 1) - months
    year, month = divmod(month_index, 12)
    first_of_month = date(year, month + 1, 1)
    return (first_of_month + timedelta(days=today.day - 1)).isoformat()


def parse_timestamp(value) -> Optional[datetime]:
    """Parse an upstream date or datetime string as UTC; None if unusable."""
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


# -----------------------------------------------------------------------------
# Generic helpers
# -----------------------------------------------------------------------------
def sum_field(records: Iterable[dict], field_name: str) -> float:
    """Sum a numeric field, treating missing or non-numeric values as 0."""
    total = 0.0
    for record in records:
        value = record.get(field_name)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            total += value
    return total


def average(total: float, count: int) -> float:
    return total / count if count else 0


def _clamp(score: float, low: float = 1, high: float = 10) -> float:
    return min(max(score, low), high)


# -----------------------------------------------------------------------------
# Customer profile
# -----------------------------------------------------------------------------
def calculate_risk_score(claims: list[dict]) -> float:
    """Base 5, plus half a point per claim up to +3, clamped to [1, 10]."""
    score = 5 + min(len(claims) * 0.5, 3)
    return _clamp(score)


def calculate_lifetime_value(policies: list[dict]) -> float:
    """Annual premium across policies times the assumed retention in years."""
    return sum_field(policies, "premium_amount") * RETENTION_YEARS


# -----------------------------------------------------------------------------
# Renewals
# -----------------------------------------------------------------------------
def recommend_renewal(claims: list[dict]) -> RenewalRecommendation:
    if len(claims) > 2:
        return RenewalRecommendation(
            action="review", confidence=0.65, reasons=["High claims frequency"]
        )
    return RenewalRecommendation(
        action="retain", confidence=0.85, reasons=["Good claims history"]
    )


# -----------------------------------------------------------------------------
# Claims dashboard
# -----------------------------------------------------------------------------
def summarize_claims(claims: list[dict]) -> dict:
    total_amount = sum_field(claims, "amount")
    return {
        "total_claims": len(claims),
        "total_amount": total_amount,
        "avg_amount": average(total_amount, len(claims)),
        "open_claims": sum(1 for c in claims if c.get("status") == "open"),
        "closed_claims": sum(1 for c in claims if c.get("status") == "closed"),
    }


def group_claims_by(claims: list[dict], field_name: str) -> dict[str, dict]:
    """Bucket claims by a field into {count, total_amount}; blanks go to "unknown"."""
    groups: dict[str, dict] = {}
    for claim in claims:
        key = claim.get(field_name) or "unknown"
        bucket = groups.setdefault(str(key), {"count": 0, "total_amount": 0.0})
        bucket["count"] += 1
        bucket["total_amount"] += sum_field([claim], "amount")
    return groups


def claims_action_items(claims: list[dict], now: Optional[datetime] = None) -> list[dict]:
    now = now or datetime.now(timezone.utc)
    cutoff = now - timedelta(days=STALE_OPEN_CLAIM_DAYS)

    stale_open = 0
    for claim in claims:
        if claim.get("status") != "open":
            continue
        created = parse_timestamp(claim.get("date_created"))
        if created is not None and created < cutoff:
            stale_open += 1

    if not stale_open:
        return []
    return [{"priority": "high", "action": "Review old open claims", "count": stale_open}]


# -----------------------------------------------------------------------------
# Sales pipeline
# -----------------------------------------------------------------------------
def calculate_lead_score(lead: dict, opportunities: list[dict]) -> float:
    """Base 5, +2 with any opportunity, +1 with more than one contact."""
    score = 5
    if opportunities:
        score += 2
    contacts = lead.get("contacts") or []
    if len(contacts) > 1:
        score += 1
    return _clamp(score)
