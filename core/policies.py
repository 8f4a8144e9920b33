# =============================================================================
# core/policies.py  -  Policy Details, Renewals Report, Policy Listing
# =============================================================================
#
# WHAT THIS MODULE DOES:
#   get_policy_details   one policy + coverage / billing / claims sections
#   get_renewals_report  active policies expiring in a window, each with its
#                        customer, recent claims and a retain/review verdict
#   list_policies        thin filtered listing
#
# COMPLIANCE STATUS:
#   get_policy_details attaches compliance_status = {compliant: True, ...}.
#   No compliance rules are evaluated yet; the field exists so clients can
#   rely on its shape.
# =============================================================================

import asyncio
from dataclasses import asdict
from datetime import datetime, timezone
from typing import Optional

from core.customers import fetch_customer
from core.errors import UpstreamError, ValidationError
from core.models import DateRange, UpstreamResult
from core.outcome import attempt, fetch_section, skipped
from core.scoring import average, months_ago, recommend_renewal, sum_field
from core.upstream import UpstreamClient

BILLING_HISTORY_LIMIT = 12
POLICY_CLAIMS_LIMIT = 10

RENEWALS_DEFAULT_LIMIT = 50
RENEWALS_MAX_LIMIT = 100
RENEWALS_ENRICH_COUNT = 20
RENEWAL_CLAIMS_LIMIT = 5
RENEWAL_CLAIMS_MONTHS = 24

LIST_DEFAULT_LIMIT = 10
LIST_MAX_LIMIT = 50


def compliance_placeholder() -> dict:
    return {
        "compliant": True,
        "issues": [],
        "checked_at": datetime.now(timezone.utc).isoformat(),
    }


# =============================================================================
# PolicyDetails
# =============================================================================
async def get_policy_details(
    nowcerts: UpstreamClient,
    policy_id: Optional[str] = None,
    policy_number: Optional[str] = None,
    include_coverage_details: bool = True,
    include_billing_history: bool = False,
    include_claims: bool = True,
) -> dict:
    """Look a policy up by id (preferred) or number and attach its sections."""
    if not policy_id and not policy_number:
        raise ValidationError("Either policy_id or policy_number is required", field="policy_id")

    lookup = {"policy_id": policy_id} if policy_id else {"policy_number": policy_number}
    result = await nowcerts.get("policies", lookup)
    policy = result.first()
    if policy is None:
        raise UpstreamError(
            nowcerts.name, 404, "Not Found",
            reason=f"policy {policy_id or policy_number} not found",
        )

    actual_id = policy.get("id") or policy_id
    coverage, billing, claims = await asyncio.gather(
        fetch_section(nowcerts, f"policies/{actual_id}/coverage", {}, f"coverage for policy {actual_id}")
        if include_coverage_details and actual_id else skipped(),
        fetch_section(
            nowcerts, f"policies/{actual_id}/billing", {"limit": BILLING_HISTORY_LIMIT},
            f"billing history for policy {actual_id}",
        ) if include_billing_history and actual_id else skipped(),
        fetch_section(
            nowcerts, "claims", {"policy_id": actual_id, "limit": POLICY_CLAIMS_LIMIT},
            f"claims for policy {actual_id}",
        ) if include_claims and actual_id else skipped(),
    )

    return {
        "policy": policy,
        "coverage_details": coverage or [],
        "billing_history": billing or [],
        "claims": claims or [],
        "compliance_status": compliance_placeholder(),
    }


# =============================================================================
# RenewalsReport
# =============================================================================
async def _enrich_renewal(nowcerts: UpstreamClient, policy: dict, include_recommendations: bool) -> dict:
    policy_id = policy.get("id")
    customer_id = policy.get("customer_id")

    customer_outcome, claims_outcome = await asyncio.gather(
        attempt(
            f"customer for policy {policy_id}",
            fetch_customer(nowcerts, customer_id) if customer_id else skipped(),
        ),
        attempt(
            f"claims history for policy {policy_id}",
            nowcerts.get("claims", {
                "policy_id": policy_id,
                "date_from": months_ago(RENEWAL_CLAIMS_MONTHS),
                "limit": RENEWAL_CLAIMS_LIMIT,
            }),
        ),
    )

    claims_history = claims_outcome.unwrap_or(UpstreamResult()).data
    recommendation = None
    # without a claims history there is nothing to base a verdict on
    if include_recommendations and claims_outcome.ok:
        recommendation = asdict(recommend_renewal(claims_history))

    return {
        **policy,
        "customer_info": customer_outcome.unwrap_or(None),
        "claims_history": claims_history,
        "renewal_recommendation": recommendation,
    }


async def get_renewals_report(
    nowcerts: UpstreamClient,
    date_range: DateRange,
    policy_types: Optional[list[str]] = None,
    limit: int = RENEWALS_DEFAULT_LIMIT,
    include_recommendations: bool = True,
) -> dict:
    """Active policies expiring inside date_range, with renewal verdicts.

    The first 20 matching policies are enriched concurrently; the summary
    covers exactly those enriched policies.
    """
    result = await nowcerts.get("policies", {
        "expiration_date_from": date_range.start,
        "expiration_date_to": date_range.end,
        "status": "active",
        "limit": min(limit, RENEWALS_MAX_LIMIT),
    })

    policies = result.data
    if policy_types:
        policies = [p for p in policies if p.get("type") in policy_types]

    enhanced = list(await asyncio.gather(
        *(_enrich_renewal(nowcerts, p, include_recommendations) for p in policies[:RENEWALS_ENRICH_COUNT])
    ))

    total_premium = sum_field(enhanced, "premium_amount")
    summary = {
        "total_policies": len(enhanced),
        "total_premium": total_premium,
        "avg_premium": average(total_premium, len(enhanced)),
        "retention_recommendations": sum(
            1 for p in enhanced
            if (p["renewal_recommendation"] or {}).get("action") == "retain"
        ),
    }
    return {
        "date_range": date_range.to_dict(),
        "summary": summary,
        "enhanced_policies": enhanced,
    }


# =============================================================================
# Policy listing
# =============================================================================
async def list_policies(
    nowcerts: UpstreamClient,
    customer_id: Optional[str] = None,
    policy_number: Optional[str] = None,
    status: Optional[str] = None,
    limit: Optional[int] = None,
) -> list[dict]:
    result = await nowcerts.get("policies", {
        "customer_id": customer_id,
        "policy_number": policy_number,
        "status": status,
        "limit": min(LIST_DEFAULT_LIMIT if limit is None else limit, LIST_MAX_LIMIT),
    })
    return result.data
