# =============================================================================
# core/outcome.py  -  Enrichment Outcomes
# =============================================================================
#
# Reports make one base call (fatal if it fails) and several enrichment
# calls (never fatal).  attempt() runs an enrichment call and captures the
# result or the failure in an Outcome; the report then decides the default
# with unwrap_or().  No enrichment exception ever reaches the report code.
#
#     claims = (await attempt("claims for C100", fetch_claims())).unwrap_or([])
# =============================================================================

import logging
from dataclasses import dataclass
from typing import Awaitable, Generic, Optional, TypeVar

from core.errors import PartialDataWarning
from core.models import UpstreamResult

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class Outcome(Generic[T]):
    value: Optional[T] = None
    warning: Optional[PartialDataWarning] = None

    @property
    def ok(self) -> bool:
        return self.warning is None

    def unwrap_or(self, default: T) -> T:
        if self.warning is not None or self.value is None:
            return default
        return self.value


async def attempt(section: str, awaitable: Awaitable[T]) -> Outcome[T]:
    """Await an enrichment call, converting any failure into a logged warning."""
    try:
        return Outcome(value=await awaitable)
    except Exception as exc:
        warning = PartialDataWarning(section, exc)
        logger.warning("Partial data: %s", warning)
        return Outcome(warning=warning)


async def skipped() -> None:
    """Stand-in for a disabled section so gather() keeps its positions."""
    return None


async def fetch_section(client, endpoint: str, params: dict, section: str) -> list[dict]:
    """GET an enrichment collection; any failure yields an empty list."""
    outcome = await attempt(section, client.get(endpoint, params))
    return outcome.unwrap_or(UpstreamResult()).data
