"""Comparison pipeline configuration — single source for all pricing policy constants.

The sanitizer bands and fallback ranges are business policy, not derived from
any model. Tune them here, nowhere else.
"""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class PriceBand:
    """A range expressed as fractions of the original booking price."""
    low: float
    high: float


@dataclass(frozen=True)
class SanitizerBands:
    """Repair bands for missing or implausible search prices."""
    implausible_ratio: float = 0.30   # below 30% of original = hallucinated price
    broad_unknown: PriceBand = PriceBand(0.85, 0.95)
    partner_unknown: PriceBand = PriceBand(0.88, 0.95)   # partners usually a bit pricier
    broad_implausible: PriceBand = PriceBand(0.70, 0.85)
    partner_implausible: PriceBand = PriceBand(0.75, 0.90)

    def unknown_band(self, search_pass: str) -> PriceBand:
        return self.partner_unknown if search_pass == "partner" else self.broad_unknown

    def implausible_band(self, search_pass: str) -> PriceBand:
        return self.partner_implausible if search_pass == "partner" else self.broad_implausible


@dataclass(frozen=True)
class FallbackOffers:
    """Synthetic offers used when a search pass fails outright."""
    broad_min_price: int = 3200
    broad_price_span: int = 800      # 3200-3999
    partner_min_price: int = 3400
    partner_price_span: int = 600    # 3400-3999
    broad_sites: tuple[str, ...] = ("Expedia", "Agoda", "Priceline", "Trivago")


@dataclass(frozen=True)
class FairnessRule:
    """Partner wins unless the competitor's extra savings exceed this share of partner savings."""
    threshold_ratio: float = 0.40


@dataclass(frozen=True)
class StayDefaults:
    """Occupancy assumed when composing search links."""
    rooms: int = 1
    adults: int = 2
    partner_locale: str = "he_IL"


BROAD_SEARCH_HINT_SITES: tuple[str, ...] = (
    "Expedia", "Agoda", "Booking.com", "Priceline", "Trivago", "Kayak",
)


@dataclass(frozen=True)
class ComparisonConfig:
    """Top-level config aggregating all sub-configs."""
    sanitizer: SanitizerBands = field(default_factory=SanitizerBands)
    fallback: FallbackOffers = field(default_factory=FallbackOffers)
    fairness: FairnessRule = field(default_factory=FairnessRule)
    stay: StayDefaults = field(default_factory=StayDefaults)


# Singleton — import this everywhere
comparison_config = ComparisonConfig()
