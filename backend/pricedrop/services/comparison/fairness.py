"""The 40% fairness rule.

Show the commission-generating partner offer unless the competitor saves the
user more than 40% of what the partner already saves them.
"""

import math
from dataclasses import dataclass

from pricedrop.services.comparison.config import comparison_config

PARTNER_EXPLANATION = "Gap is small - showing profitable partner link"
COMPETITOR_EXPLANATION = "Gap is significant - showing fair competitor link"


@dataclass(frozen=True)
class FairnessDecision:
    partner_savings: float
    competitor_savings: float
    savings_gap: float
    threshold: int
    show_partner: bool
    explanation: str

    @property
    def winner(self) -> str:
        return "partner" if self.show_partner else "competitor"


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def decide(
    original_price: float,
    partner_price: float,
    competitor_price: float,
    ratio: float = comparison_config.fairness.threshold_ratio,
) -> FairnessDecision:
    """Compare both offers against the original price.

    Assumes at least one offer beats the original; the orchestrator handles
    the no-savings case before calling this.
    """
    partner_savings = original_price - partner_price
    competitor_savings = original_price - competitor_price
    savings_gap = competitor_savings - partner_savings
    threshold = _round_half_up(partner_savings * ratio)
    show_partner = savings_gap <= threshold

    return FairnessDecision(
        partner_savings=partner_savings,
        competitor_savings=competitor_savings,
        savings_gap=savings_gap,
        threshold=threshold,
        show_partner=show_partner,
        explanation=PARTNER_EXPLANATION if show_partner else COMPETITOR_EXPLANATION,
    )
