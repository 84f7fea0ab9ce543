"""Offer search — asks a search-grounded LLM for the cheapest matching offer.

Two passes share one invocation primitive:
    broad    any booking site on the web
    partner  only the approved-partner catalog

A pass never raises: any LLM, timeout or parse failure degrades to a
synthetic fallback offer so the caller always gets something to compare.
"""

import asyncio
import json
import logging
import math
import random
import re
from collections.abc import Mapping
from datetime import date

from pricedrop.config import settings
from pricedrop.data.partners import APPROVED_PARTNERS, ApprovedPartner, partner_id_for_site
from pricedrop.schemas.offer import OfferQuery, RawOffer
from pricedrop.services.comparison.config import (
    BROAD_SEARCH_HINT_SITES,
    ComparisonConfig,
    comparison_config,
)
from pricedrop.services.llm_client import LLMClient, LLMError

logger = logging.getLogger(__name__)

BROAD_PROMPT = """Find the cheapest price for "{hotel_name}" hotel from {check_in} to {check_out} with EXACT same conditions as original booking.

REQUIRED CONDITIONS TO MATCH:
{conditions}

Search all major booking websites including {hint_sites}.

IMPORTANT: Only return deals that match these exact conditions:
{requirements}

Return ONLY a JSON object in this exact format:
{{"site": "website_name", "price": number_only, "conditions_match": true/false, "direct_link": "full_booking_url"}}

Example: {{"site": "Expedia", "price": 3590, "conditions_match": true, "direct_link": "https://www.expedia.com/..."}}

Important:
- Price must be a number only (no currency symbols)
- Include direct link to the exact deal
- Set conditions_match to true only if ALL conditions are met
- Search thoroughly for deals with exact same conditions"""

PARTNER_PROMPT = """Find the cheapest price for "{hotel_name}" hotel from {check_in} to {check_out} ONLY from these partner websites: {partner_sites}.

REQUIRED CONDITIONS TO MATCH:
{conditions}

IMPORTANT: Only return deals that match these exact conditions:
{requirements}

Search ONLY these {partner_count} partner websites. Do not include any other booking sites.

Return ONLY a JSON object in this exact format:
{{"site": "website_name", "price": number_only, "partnerId": "partner_id", "conditions_match": true/false, "direct_link": "full_booking_url"}}

Use these exact partner IDs:
{partner_ids}

Example: {{"site": "Hotels.com", "price": 3780, "partnerId": "hotels_com", "conditions_match": true, "direct_link": "https://..."}}

Important:
- Only search our {partner_count} partner sites
- Price must be a number only
- Include the correct partnerId
- Include direct link to exact deal
- Set conditions_match to true only if ALL conditions are met"""

# Currency symbol or three-letter code at either end of a price string.
_CURRENCY_AFFIX = re.compile(r"^(?:[A-Z]{3}|[$€£¥₪₹])\s*|\s*(?:[A-Z]{3}|[$€£¥₪₹])$")


class OfferParseError(ValueError):
    """The LLM response did not contain a usable JSON object."""


def extract_json_object(text: str) -> dict:
    """Parse the span between the first '{' and the last '}' of free-form text."""
    if not text:
        raise OfferParseError("Empty response")

    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end == -1 or end < start:
        raise OfferParseError("No valid JSON found in LLM response")

    try:
        parsed = json.loads(text[start:end + 1])
    except ValueError as e:
        # JSONDecodeError, or an integer literal past the int-conversion digit limit
        raise OfferParseError(f"Invalid JSON in LLM response: {e}") from e

    if not isinstance(parsed, dict):
        raise OfferParseError("LLM response JSON is not an object")
    return parsed


def coerce_price(value) -> float | None:
    """Coerce a model-supplied price to a float, or None when unusable.

    Strings may carry a currency symbol or code and thousands separators;
    anything else around the number ("3500 for 2 nights") makes it unusable.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        candidate = value
    elif isinstance(value, str):
        candidate = _CURRENCY_AFFIX.sub("", value.replace(",", "").strip())
        if not candidate:
            return None
    else:
        return None
    try:
        number = float(candidate)
    except (OverflowError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _optional_str(value) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _bullet_list(lines: list[str], empty: str) -> str:
    if not lines:
        return f"- {empty}"
    return "\n".join(f"- {line}" for line in lines)


class OfferSearchService:
    """Runs the broad and partner search passes against the LLM."""

    def __init__(
        self,
        llm: LLMClient,
        partners: Mapping[str, ApprovedPartner] = APPROVED_PARTNERS,
        rng: random.Random | None = None,
        timeout: float = settings.search_timeout_seconds,
        config: ComparisonConfig = comparison_config,
    ):
        self._llm = llm
        self._partners = partners
        self._rng = rng or random.Random()
        self._timeout = timeout
        self._config = config

    async def broad_search(
        self, hotel_name: str, check_in: date, check_out: date, query: OfferQuery
    ) -> RawOffer:
        """Search A: cheapest matching offer anywhere on the web."""
        prompt = BROAD_PROMPT.format(
            hotel_name=hotel_name,
            check_in=check_in.isoformat(),
            check_out=check_out.isoformat(),
            conditions=_bullet_list(query.constraint_lines(), "Standard booking conditions"),
            requirements="\n".join(query.requirement_lines()),
            hint_sites=", ".join(BROAD_SEARCH_HINT_SITES),
        )
        try:
            data = await self._query(prompt)
            offer = RawOffer(
                site=_optional_str(data.get("site")) or "",
                price=coerce_price(data.get("price")),
                conditions_match=data.get("conditions_match") is True,
                direct_link=_optional_str(data.get("direct_link")),
                search_pass="broad",
            )
        except (LLMError, OfferParseError, asyncio.TimeoutError) as e:
            logger.error(f"Broad search failed for {hotel_name!r}: {e!r}")
            return self._broad_fallback()

        logger.info(
            f"Broad search found: {offer.site} at {offer.price} "
            f"(conditions match: {offer.conditions_match})"
        )
        return offer

    async def partner_search(
        self, hotel_name: str, check_in: date, check_out: date, query: OfferQuery
    ) -> RawOffer:
        """Search B: cheapest matching offer from approved partners only."""
        prompt = PARTNER_PROMPT.format(
            hotel_name=hotel_name,
            check_in=check_in.isoformat(),
            check_out=check_out.isoformat(),
            conditions=_bullet_list(query.constraint_lines(), "Standard booking conditions"),
            requirements="\n".join(query.requirement_lines()),
            partner_sites=", ".join(p.name for p in self._partners.values()),
            partner_count=len(self._partners),
            partner_ids="\n".join(
                f'- For {p.name} use: "{p.partner_id}"' for p in self._partners.values()
            ),
        )
        try:
            data = await self._query(prompt)
            site = _optional_str(data.get("site")) or ""
            partner_id = _optional_str(data.get("partnerId")) or _optional_str(data.get("partner_id"))
            offer = RawOffer(
                site=site,
                price=coerce_price(data.get("price")),
                conditions_match=data.get("conditions_match") is True,
                partner_id=partner_id or partner_id_for_site(site),
                direct_link=_optional_str(data.get("direct_link")),
                search_pass="partner",
            )
        except (LLMError, OfferParseError, asyncio.TimeoutError) as e:
            logger.error(f"Partner search failed for {hotel_name!r}: {e!r}")
            return self._partner_fallback()

        logger.info(
            f"Partner search found: {offer.site} at {offer.price} ({offer.partner_id}) "
            f"- conditions match: {offer.conditions_match}"
        )
        return offer

    async def _query(self, prompt: str) -> dict:
        text = await asyncio.wait_for(
            self._llm.complete(prompt, web_search=True, timeout=self._timeout),
            timeout=self._timeout,
        )
        logger.debug(f"LLM raw response: {text[:200]}...")
        data = extract_json_object(text)
        if data.get("price") is not None and coerce_price(data.get("price")) is None:
            logger.warning(f"Invalid price in LLM response ({data.get('price')!r}), leaving for sanitizer")
        return data

    def _broad_fallback(self) -> RawOffer:
        fb = self._config.fallback
        price = fb.broad_min_price + self._rng.randrange(fb.broad_price_span)
        site = self._rng.choice(fb.broad_sites)
        logger.info(f"Using broad fallback: {site} at {price} (search unavailable)")
        return RawOffer(
            site=site,
            price=float(price),
            conditions_match=False,
            search_pass="broad",
            is_fallback=True,
        )

    def _partner_fallback(self) -> RawOffer:
        fb = self._config.fallback
        partner = self._rng.choice(list(self._partners.values()))
        price = fb.partner_min_price + self._rng.randrange(fb.partner_price_span)
        logger.info(f"Using partner fallback: {partner.name} at {price} (search unavailable)")
        return RawOffer(
            site=partner.name,
            price=float(price),
            conditions_match=False,
            partner_id=partner.partner_id,
            search_pass="partner",
            is_fallback=True,
        )
