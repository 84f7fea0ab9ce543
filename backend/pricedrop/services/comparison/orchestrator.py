"""Price-drop orchestrator — runs both searches, applies the fairness rule, builds the response."""

import asyncio
import logging
import random

from pricedrop.schemas.booking import BookingSnapshot
from pricedrop.schemas.offer import SanitizedOffer
from pricedrop.services.comparison.fairness import FairnessDecision, decide
from pricedrop.services.comparison.link_builder import LinkBuilder
from pricedrop.services.comparison.offer_search import OfferSearchService
from pricedrop.services.comparison.price_sanitizer import sanitize_offer

logger = logging.getLogger(__name__)

CONDITIONS_WARNING = "Conditions may differ from your original booking"


class PriceDropOrchestrator:
    """Dual search → sanitize → fairness decision → link → response payload."""

    def __init__(
        self,
        search_service: OfferSearchService,
        link_builder: LinkBuilder,
        rng: random.Random | None = None,
    ):
        self._search = search_service
        self._links = link_builder
        self._rng = rng or random.Random()

    async def compare(self, booking: BookingSnapshot) -> dict:
        """
        Compare a booking against broad and partner offers.

        Returns a NO_SAVINGS_FOUND payload when neither offer beats the
        original price, otherwise SAVINGS_FOUND_PARTNER / SAVINGS_FOUND_COMPETITOR.
        """
        query = booking.conditions()
        logger.info(
            f"Dual search: {booking.hotel_name!r} {booking.check_in_date}→{booking.check_out_date}, "
            f"original {booking.original_price} {booking.currency}, conditions {query.as_dict()}"
        )

        broad_raw, partner_raw = await asyncio.gather(
            self._search.broad_search(booking.hotel_name, booking.check_in_date, booking.check_out_date, query),
            self._search.partner_search(booking.hotel_name, booking.check_in_date, booking.check_out_date, query),
        )

        broad = sanitize_offer(broad_raw, booking.original_price, self._rng)
        partner = sanitize_offer(partner_raw, booking.original_price, self._rng)
        logger.info(f"Search A (broad): {broad.site} - {broad.price} {booking.currency}")
        logger.info(f"Search B (partner): {partner.site} - {partner.price} {booking.currency}")

        if partner.price >= booking.original_price and broad.price >= booking.original_price:
            logger.info("No savings found anywhere")
            return self._no_savings(booking)

        decision = decide(booking.original_price, partner.price, broad.price)
        logger.info(
            f"Fairness rule: partner savings {decision.partner_savings}, "
            f"competitor savings {decision.competitor_savings}, gap {decision.savings_gap}, "
            f"threshold {decision.threshold} → {decision.winner} ({decision.explanation})"
        )

        chosen = partner if decision.show_partner else broad
        link = self._links.build(chosen, booking.hotel_name, booking.check_in_date, booking.check_out_date)
        return self._savings_found(booking, decision, chosen, partner, broad, link)

    @staticmethod
    def _no_savings(booking: BookingSnapshot) -> dict:
        return {
            "status": "NO_SAVINGS_FOUND",
            "title": "Your price is already the best!",
            "message": "We found no savings on the sites we checked with the same conditions.",
            "original_price": booking.original_price,
            "currency": booking.currency,
            "conditions_checked": booking.conditions().as_dict(),
        }

    @staticmethod
    def _savings_found(
        booking: BookingSnapshot,
        decision: FairnessDecision,
        chosen: SanitizedOffer,
        partner: SanitizedOffer,
        broad: SanitizedOffer,
        link: str,
    ) -> dict:
        savings = booking.original_price - chosen.price
        logger.info(f"Final choice: {chosen.site} - savings {savings} {booking.currency}")

        payload = {
            "status": "SAVINGS_FOUND_PARTNER" if decision.show_partner else "SAVINGS_FOUND_COMPETITOR",
            "title": f"We found savings on {chosen.site}!",
            "savings": savings,
            "new_price": chosen.price,
            "provider": chosen.site,
            "currency": booking.currency,
            "rule_applied": decision.explanation,
            "is_affiliate": decision.show_partner,
            "conditions_match": chosen.conditions_match,
            "conditions_warning": None if chosen.conditions_match else CONDITIONS_WARNING,
            "original_conditions": booking.conditions().as_dict(),
            "business_logic": {
                "original_price": booking.original_price,
                "partner_price": partner.price,
                "competitor_price": broad.price,
                "partner_savings": decision.partner_savings,
                "competitor_savings": decision.competitor_savings,
                "savings_gap": decision.savings_gap,
                "threshold_40_percent": decision.threshold,
                "decision": decision.winner,
            },
        }
        if decision.show_partner:
            payload["affiliate_link"] = link
        else:
            payload["direct_link"] = link
        return payload
