"""Pytest configuration and shared fixtures."""

import os

# Must be set before pricedrop.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("GEMINI_API_KEY", "")
os.environ.setdefault("OPENAI_API_KEY", "")
os.environ.setdefault("ANTHROPIC_API_KEY", "")

import json
import random
from datetime import date

import pytest

from pricedrop.schemas.booking import BookingSnapshot
from pricedrop.services.llm_client import LLMError


class FakeLLM:
    """In-memory stand-in for LLMClient.

    ``broad`` / ``partner`` are either a response string, a dict (serialised
    as JSON inside some prose) or an exception instance to raise.
    """

    def __init__(self, broad=None, partner=None, analysis=None):
        self.broad = broad
        self.partner = partner
        self.analysis = analysis
        self.calls: list[dict] = []

    async def complete(self, prompt, *, attachment=None, web_search=False, timeout=45.0, max_tokens=1000):
        self.calls.append({"prompt": prompt, "attachment": attachment, "web_search": web_search, "timeout": timeout})
        if not web_search:
            response = self.analysis
        elif "ONLY from these partner websites" in prompt:
            response = self.partner
        else:
            response = self.broad

        if isinstance(response, Exception):
            raise response
        if response is None:
            raise LLMError("No response configured")
        if isinstance(response, dict):
            return f"Here is the best deal I found:\n```json\n{json.dumps(response)}\n```\nGood luck!"
        return response


@pytest.fixture
def fake_llm_factory():
    return FakeLLM


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def booking():
    return BookingSnapshot(
        hotel_name="Dan Eilat",
        check_in_date=date(2025, 8, 10),
        check_out_date=date(2025, 8, 13),
        original_price=4000,
        currency="ILS",
        room_type="Deluxe Sea View",
        free_cancellation=True,
        breakfast_included=True,
    )
