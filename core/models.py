# =============================================================================
# core/models.py  -  Data Models (the "nouns" of the gateway)
# =============================================================================
#
# These dataclasses define the shape of the few things the gateway owns:
# credentials, normalised upstream results, and the typed request structs
# that feed the upstream query strings.
#
# WHAT IS NOT HERE:
#   Customer, policy, claim, lead and opportunity records.  Those belong to
#   the upstream systems and stay plain dicts.  The core only reads the
#   handful of fields it needs (id, status, amount, premium_amount,
#   expiration_date, type, date_created, value, lead_id, contacts) and
#   passes everything else through untouched.
#
# TYPED REQUEST STRUCTS:
#   SearchCriteria / SearchFilters list exactly the fields the customer
#   search understands.  to_params() drops the unset ones, so a caller can
#   never smuggle in a key that collides with a filter the engine adds
#   itself (limit, customer_id, date_from, ...).
# =============================================================================

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Optional


class CredentialKind(str, Enum):
    BEARER = "Bearer"
    BASIC = "Basic"


# -----------------------------------------------------------------------------
# Credential - one cached auth value for one upstream
# -----------------------------------------------------------------------------
@dataclass
class Credential:
    """An Authorization header value and when it stops being usable.

    expires_at is an epoch timestamp that already has the safety margin
    subtracted.  None means "no known expiry": the credential is used
    until the upstream rejects it with a 401.
    """

    kind: CredentialKind
    value: str
    expires_at: Optional[float] = None

    def is_valid(self, now: float) -> bool:
        return self.expires_at is None or now < self.expires_at

    @property
    def header(self) -> str:
        return f"{self.kind.value} {self.value}"


# -----------------------------------------------------------------------------
# UpstreamResult - what every upstream GET returns
# -----------------------------------------------------------------------------
@dataclass
class UpstreamResult:
    """Normalised upstream payload.

    data is always a list (possibly empty), never None.  raw keeps the
    original JSON for callers that need envelope fields or single-object
    responses such as a CRM lead fetched by id.
    """

    data: list[dict] = field(default_factory=list)
    raw: Any = None

    def first(self) -> Optional[dict]:
        return self.data[0] if self.data else None

    @classmethod
    def from_payload(cls, payload: Any) -> "UpstreamResult":
        if isinstance(payload, list):
            return cls(data=[r for r in payload if isinstance(r, dict)], raw=payload)
        if isinstance(payload, dict):
            data = payload.get("data")
            if isinstance(data, list):
                return cls(data=[r for r in data if isinstance(r, dict)], raw=payload)
            if isinstance(data, dict):
                return cls(data=[data], raw=payload)
        return cls(data=[], raw=payload)


@dataclass
class DateRange:
    """Inclusive date range, both ends formatted YYYY-MM-DD."""

    start: str
    end: str

    def to_dict(self) -> dict[str, str]:
        return {"from": self.start, "to": self.end}


# -----------------------------------------------------------------------------
# Customer search request structs
# -----------------------------------------------------------------------------
def _present(obj: Any) -> dict[str, Any]:
    return {k: v for k, v in asdict(obj).items() if v is not None}


@dataclass
class SearchCriteria:
    """What the customer looks like."""

    name: Optional[str] = None         # partial match
    email: Optional[str] = None
    phone: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip: Optional[str] = None
    policy_type: Optional[str] = None  # auto | home | life | commercial | umbrella
    carrier: Optional[str] = None

    def to_params(self) -> dict[str, Any]:
        return _present(self)


@dataclass
class SearchFilters:
    """Narrowing filters applied on top of the criteria."""

    active_policies_only: Optional[bool] = None
    min_premium: Optional[float] = None
    max_premium: Optional[float] = None
    has_claims: Optional[bool] = None
    renewal_within_days: Optional[int] = None

    def to_params(self) -> dict[str, Any]:
        return _present(self)


# -----------------------------------------------------------------------------
# RenewalRecommendation - the per-policy verdict in a renewals report
# -----------------------------------------------------------------------------
@dataclass
class RenewalRecommendation:
    action: str                        # "retain" or "review"
    confidence: float                  # 0.85 retain, 0.65 review
    reasons: list[str] = field(default_factory=list)
    suggested_adjustments: list[str] = field(default_factory=list)
