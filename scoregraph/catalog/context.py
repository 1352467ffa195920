"""Business-intake parameters consumed by the formula suite."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

# Industries with heavy licensing or approval regimes
REGULATED_INDUSTRIES = frozenset({"finance", "healthcare", "pharma", "energy", "defense"})

_STABILITY = {"low": 70.0, "medium": 55.0, "high": 40.0}
_DEAL_SCALE = {"small": 30.0, "medium": 50.0, "large": 70.0, "enterprise": 90.0}
_TIMELINE = {"immediate": 40.0, "6-12 months": 60.0, "12-24 months": 75.0, "24+ months": 65.0}


def _capped(value: float) -> float:
    return max(0.0, min(100.0, value))


class BusinessContext(BaseModel):
    """Structured intake data for one report.

    Only the fields the formulas read are modelled; anything else the intake
    form collects is ignored.
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    organization_name: str = ""
    organization_type: str | None = None
    country: str | None = None
    industry: list[str] = Field(default_factory=list)
    risk_tolerance: Literal["low", "medium", "high"] = "medium"
    deal_size: Literal["small", "medium", "large", "enterprise"] = "medium"
    headcount_band: str | None = None  # e.g. "11-100", "100-1000", "1000+"
    expansion_timeline: str | None = None
    stakeholder_alignment: list[str] = Field(default_factory=list)
    target_counterpart_type: list[str] = Field(default_factory=list)

    def _cost_efficiency(self) -> float:
        band = self.headcount_band or ""
        if "1000" in band:
            return 40.0
        if "100" in band:
            return 60.0
        return 75.0

    def signals(self) -> dict[str, float]:
        """Normalized 0-100 signals derived from the intake fields."""
        regulated = any(i.lower() in REGULATED_INDUSTRIES for i in self.industry)
        return {
            "stability": _STABILITY[self.risk_tolerance],
            "regulatory_clarity": 35.0 if regulated else 70.0,
            "market_presence": _capped((60.0 if self.country else 40.0) + 5.0 * len(self.industry)),
            "barrier_headroom": _capped(
                100.0 - 8.0 * max(len(self.industry), 1) - 5.0 * len(self.target_counterpart_type)
            ),
            "cost_efficiency": self._cost_efficiency(),
            "stakeholder_support": _capped(20.0 * len(self.stakeholder_alignment)),
            "deal_scale": _DEAL_SCALE[self.deal_size],
            "network_reach": _capped(15.0 * len(self.target_counterpart_type)),
            "organizational_readiness": 70.0 if self.organization_type else 40.0,
            "timeline_realism": _TIMELINE.get(self.expansion_timeline or "", 55.0),
        }


SIGNAL_NAMES = frozenset(BusinessContext().signals())
