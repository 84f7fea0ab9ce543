"""Link builder — turns the chosen offer into a bookable URL.

Partner offers get a CJ commission-tracked link; competitor offers get a plain
deep link. Unknown partners and unknown sites degrade to a generic search URL,
so ``build`` always returns something clickable.
"""

import logging
import re
from collections.abc import Mapping
from datetime import date, timedelta
from urllib.parse import quote

from pricedrop.data.partners import APPROVED_PARTNERS, ApprovedPartner
from pricedrop.schemas.offer import SanitizedOffer
from pricedrop.services.comparison.config import StayDefaults, comparison_config

logger = logging.getLogger(__name__)

# Characters encodeURIComponent leaves alone
_URI_COMPONENT_SAFE = "-_.!~*'()"

PARTNER_TARGETS: dict[str, str] = {
    "hotels_com": (
        "https://www.hotels.com/search.do?destination={hotel}"
        "&startDate={check_in}&endDate={check_out}&locale={locale}"
    ),
    "address_hotels": (
        "https://www.addresshotels.com/hotels?destination={hotel}"
        "&checkin={check_in}&checkout={check_out}"
    ),
    "mytrip": (
        "https://www.mytrip.com/hotels?destination={hotel}"
        "&checkin={check_in}&checkout={check_out}"
    ),
}

# Keyed by lowercased site name. Expedia wants YYYY/MM/DD ({check_in_slash}).
DIRECT_SITE_TEMPLATES: dict[str, str] = {
    "expedia": (
        "https://www.expedia.com/Hotel-Search?destination={hotel}"
        "&startDate={check_in_slash}&endDate={check_out_slash}&rooms={rooms}&adults={adults}"
    ),
    "agoda": (
        "https://www.agoda.com/search?city={hotel}"
        "&checkIn={check_in}&checkOut={check_out}&rooms={rooms}&adults={adults}"
    ),
    "priceline": "https://www.priceline.com/relax/at/{hotel}/{check_in}/{check_out}/{rooms}-rooms-{adults}-adults",
    "booking.com": (
        "https://www.booking.com/searchresults.html?ss={hotel}"
        "&checkin={check_in}&checkout={check_out}&no_rooms={rooms}&group_adults={adults}"
    ),
    "trivago": (
        "https://www.trivago.com/search?query={hotel}"
        "&checkin={check_in}&checkout={check_out}&adults={adults}&rooms={rooms}"
    ),
    "kayak": "https://www.kayak.com/hotels/{hotel}/{check_in}/{check_out}/{adults}adults",
    "hotels.com": (
        "https://www.hotels.com/search.do?q-destination={hotel}"
        "&q-check-in={check_in}&q-check-out={check_out}"
        "&q-rooms={rooms}&q-room-0-adults={adults}&q-room-0-children=0"
    ),
}
DIRECT_SITE_TEMPLATES["booking"] = DIRECT_SITE_TEMPLATES["booking.com"]

GENERIC_SEARCH_URL = "https://www.google.com/search?q=%22{hotel}%22+hotel+booking+{check_in}+{check_out}"


def encode_component(value: str) -> str:
    return quote(value, safe=_URI_COMPONENT_SAFE)


class LinkBuilder:
    """Builds affiliate and direct booking links for a chosen offer."""

    def __init__(
        self,
        partners: Mapping[str, ApprovedPartner] = APPROVED_PARTNERS,
        stay: StayDefaults = comparison_config.stay,
    ):
        self._partners = partners
        self._stay = stay

    def build(
        self,
        offer: SanitizedOffer,
        hotel_name: str | None,
        check_in: date | None,
        check_out: date | None,
    ) -> str:
        """Return the best link for ``offer``.

        A condition-matching direct link from the search wins over anything we
        could synthesize.
        """
        if offer.direct_link and offer.conditions_match:
            logger.info("Using direct link from search results")
            return offer.direct_link

        logger.info("Generating fallback link")
        if offer.search_pass == "partner":
            return self.affiliate_link(offer, hotel_name, check_in, check_out)
        return self.direct_link(offer, hotel_name, check_in, check_out)

    def affiliate_link(
        self,
        offer: SanitizedOffer,
        hotel_name: str | None,
        check_in: date | None,
        check_out: date | None,
    ) -> str:
        partner = self._partners.get(offer.partner_id or "")
        template = PARTNER_TARGETS.get(offer.partner_id or "")
        if partner is None or template is None:
            logger.info(f"Unknown partner {offer.partner_id!r}, falling back to direct link")
            return self.direct_link(offer, hotel_name, check_in, check_out)

        target = template.format(locale=self._stay.partner_locale, **self._params(hotel_name, check_in, check_out))
        return f"{partner.base_url}?url={encode_component(target)}"

    def direct_link(
        self,
        offer: SanitizedOffer,
        hotel_name: str | None,
        check_in: date | None,
        check_out: date | None,
    ) -> str:
        params = self._params(hotel_name, check_in, check_out)
        site = (offer.site or "").strip().lower()

        template = DIRECT_SITE_TEMPLATES.get(site)
        if template:
            return template.format(**params)

        logger.info(f"No link template for site {offer.site!r}, using generic search")
        url = GENERIC_SEARCH_URL.format(**params)
        domain = re.sub(r"[^a-z]", "", site)
        if domain:
            url += f"+site:{domain}.com"
        return url

    def _params(self, hotel_name: str | None, check_in: date | None, check_out: date | None) -> dict:
        today = date.today()
        check_in = check_in or today + timedelta(days=1)
        check_out = check_out or check_in + timedelta(days=1)
        return {
            "hotel": encode_component(hotel_name or "hotel"),
            "check_in": check_in.isoformat(),
            "check_out": check_out.isoformat(),
            "check_in_slash": check_in.strftime("%Y/%m/%d"),
            "check_out_slash": check_out.strftime("%Y/%m/%d"),
            "rooms": self._stay.rooms,
            "adults": self._stay.adults,
        }
