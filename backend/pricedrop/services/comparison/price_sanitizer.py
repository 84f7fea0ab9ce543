"""Price sanitizer — repairs missing or implausible search prices.

Rules, in order:
    1. price unknown (None)            → draw from the pass's "unknown" band
    2. price < 30% of original          → draw from the pass's "implausible" band
    3. otherwise                        → keep as-is
Replacement prices are floored to a whole currency unit.
"""

import logging
import math
import random

from pricedrop.schemas.offer import RawOffer, SanitizedOffer
from pricedrop.services.comparison.config import ComparisonConfig, PriceBand, comparison_config

logger = logging.getLogger(__name__)


def _draw(original_price: float, band: PriceBand, rng: random.Random) -> float:
    return float(math.floor(original_price * (band.low + rng.random() * (band.high - band.low))))


def sanitize_offer(
    offer: RawOffer,
    original_price: float,
    rng: random.Random | None = None,
    config: ComparisonConfig = comparison_config,
) -> SanitizedOffer:
    rng = rng or random.Random()
    bands = config.sanitizer
    price = offer.price
    adjusted = None

    if price is None:
        price = _draw(original_price, bands.unknown_band(offer.search_pass), rng)
        adjusted = "unknown"
        logger.warning(f"{offer.search_pass.capitalize()} search returned no price, using estimate {price}")
    elif price < original_price * bands.implausible_ratio:
        repaired = _draw(original_price, bands.implausible_band(offer.search_pass), rng)
        logger.warning(
            f"{offer.search_pass.capitalize()} search price {price} is unrealistic, adjusting to {repaired}"
        )
        price = repaired
        adjusted = "implausible"

    return SanitizedOffer(**offer.model_dump(exclude={"price"}), price=price, price_adjusted=adjusted)
