"""End-to-end tests for the comparison pipeline with a faked LLM."""

import asyncio
import random

import pytest

from pricedrop.services.comparison import orchestrator as orchestrator_module
from pricedrop.services.comparison.link_builder import LinkBuilder
from pricedrop.services.comparison.offer_search import OfferSearchService
from pricedrop.services.comparison.orchestrator import CONDITIONS_WARNING, PriceDropOrchestrator


def _orchestrator(llm, seed=99, timeout=45.0, link_builder=None):
    return PriceDropOrchestrator(
        search_service=OfferSearchService(llm, rng=random.Random(seed), timeout=timeout),
        link_builder=link_builder or LinkBuilder(),
        rng=random.Random(seed),
    )


async def test_much_cheaper_competitor_wins(fake_llm_factory, booking):
    llm = fake_llm_factory(
        broad={"site": "Expedia", "price": 2000, "conditions_match": False},
        partner={"site": "Hotels.com", "price": None, "partnerId": "hotels_com", "conditions_match": True},
    )

    result = await _orchestrator(llm).compare(booking)

    logic = result["business_logic"]
    assert 3520 <= logic["partner_price"] <= 3800
    assert logic["competitor_price"] == 2000
    assert logic["competitor_savings"] == 2000
    assert logic["savings_gap"] > logic["threshold_40_percent"]
    assert logic["threshold_40_percent"] == round(0.4 * (4000 - logic["partner_price"]))
    assert logic["decision"] == "competitor"

    assert result["status"] == "SAVINGS_FOUND_COMPETITOR"
    assert result["is_affiliate"] is False
    assert result["provider"] == "Expedia"
    assert result["new_price"] == 2000
    assert result["savings"] == 2000
    assert result["direct_link"].startswith("https://www.expedia.com/Hotel-Search")
    assert "affiliate_link" not in result
    assert "anrdoezrs" not in result["direct_link"]
    assert result["conditions_warning"] == CONDITIONS_WARNING


async def test_partner_direct_link_used_when_conditions_match(fake_llm_factory, booking):
    llm = fake_llm_factory(
        broad={"site": "Agoda", "price": 3900, "conditions_match": True},
        partner={
            "site": "Hotels.com", "price": 3800, "partnerId": "hotels_com",
            "conditions_match": True, "direct_link": "https://www.hotels.com/ho555",
        },
    )

    result = await _orchestrator(llm).compare(booking)

    assert result["status"] == "SAVINGS_FOUND_PARTNER"
    assert result["business_logic"] == {
        "original_price": 4000,
        "partner_price": 3800,
        "competitor_price": 3900,
        "partner_savings": 200,
        "competitor_savings": 100,
        "savings_gap": -100,
        "threshold_40_percent": 80,
        "decision": "partner",
    }
    assert result["affiliate_link"] == "https://www.hotels.com/ho555"
    assert result["is_affiliate"] is True
    assert result["conditions_warning"] is None
    assert result["original_conditions"] == {
        "free_cancellation": True, "breakfast_included": True, "room_type": "Deluxe Sea View",
    }


async def test_partner_without_direct_link_gets_affiliate_link(fake_llm_factory, booking):
    llm = fake_llm_factory(
        broad={"site": "Agoda", "price": 3700},
        partner={"site": "MyTrip", "price": 3600, "partnerId": "mytrip", "conditions_match": False},
    )

    result = await _orchestrator(llm).compare(booking)

    assert result["status"] == "SAVINGS_FOUND_PARTNER"
    assert result["affiliate_link"].startswith("https://www.anrdoezrs.net/click-7122258-15042852?url=")
    assert result["conditions_warning"] == CONDITIONS_WARNING


async def test_no_savings_skips_decision_and_links(fake_llm_factory, booking, monkeypatch):
    def _fail(*args, **kwargs):
        raise AssertionError("should not be called")

    class ExplodingLinks(LinkBuilder):
        def build(self, *args, **kwargs):
            _fail()

    monkeypatch.setattr(orchestrator_module, "decide", _fail)
    llm = fake_llm_factory(
        broad={"site": "Agoda", "price": 4100},
        partner={"site": "Hotels.com", "price": 4000, "partnerId": "hotels_com"},
    )

    result = await _orchestrator(llm, link_builder=ExplodingLinks()).compare(booking)

    assert result["status"] == "NO_SAVINGS_FOUND"
    assert result["original_price"] == 4000
    assert result["currency"] == "ILS"
    assert result["conditions_checked"] == {
        "free_cancellation": True, "breakfast_included": True, "room_type": "Deluxe Sea View",
    }


async def test_total_llm_outage_still_recommends(fake_llm_factory, booking):
    result = await _orchestrator(fake_llm_factory()).compare(booking)

    assert result["status"] in {"SAVINGS_FOUND_PARTNER", "SAVINGS_FOUND_COMPETITOR", "NO_SAVINGS_FOUND"}
    if result["status"] != "NO_SAVINGS_FOUND":
        assert result["conditions_match"] is False
        assert result["conditions_warning"] == CONDITIONS_WARNING


async def test_searches_run_concurrently(booking):
    class BarrierLLM:
        """Answers only once both passes are waiting."""

        def __init__(self):
            self.waiting = 0
            self.both_waiting = asyncio.Event()

        async def complete(self, prompt, **kwargs):
            self.waiting += 1
            if self.waiting == 2:
                self.both_waiting.set()
            await self.both_waiting.wait()
            if "partner websites" in prompt:
                return '{"site": "Hotels.com", "price": 3500, "partnerId": "hotels_com"}'
            return '{"site": "Agoda", "price": 3600}'

    result = await _orchestrator(BarrierLLM(), timeout=2.0).compare(booking)

    assert result["business_logic"]["partner_price"] == 3500
    assert result["business_logic"]["competitor_price"] == 3600


@pytest.mark.parametrize("raw_price", [100, "n/a"])
async def test_bad_competitor_price_is_repaired(fake_llm_factory, booking, raw_price):
    llm = fake_llm_factory(
        broad={"site": "Kayak", "price": raw_price},
        partner={"site": "Hotels.com", "price": 3950, "partnerId": "hotels_com"},
    )

    result = await _orchestrator(llm).compare(booking)

    assert 2800 <= result["business_logic"]["competitor_price"] <= 3800
