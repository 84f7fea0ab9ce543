"""HTTP tests for the FastAPI app with dependency overrides."""

import random
from datetime import datetime

import httpx
import pytest
from jose import jwt
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from pricedrop.config import settings
from pricedrop.database import Base, get_db
from pricedrop.dependencies import get_booking_parser, get_orchestrator
from pricedrop.main import app
from pricedrop.services.booking_parser import BookingParser
from pricedrop.services.comparison.link_builder import LinkBuilder
from pricedrop.services.comparison.offer_search import OfferSearchService
from pricedrop.services.comparison.orchestrator import PriceDropOrchestrator
from pricedrop.services.llm_client import LLMError

BOOKING = {
    "hotel_name": "Dan Eilat",
    "check_in_date": "2025-08-10",
    "check_out_date": "2025-08-13",
    "original_price": 4000,
    "currency": "ILS",
    "room_type": None,
    "free_cancellation": True,
    "breakfast_included": False,
    "adults": 2,
}


@pytest.fixture
async def client():
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
async def db_session_factory():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    from pricedrop import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async def _get_db():
        async with factory() as session:
            yield session

    app.dependency_overrides[get_db] = _get_db
    yield factory
    await engine.dispose()


def _auth(user_id="user-1"):
    token = jwt.encode({"sub": user_id}, settings.secret_key, algorithm=settings.algorithm)
    return {"Authorization": f"Bearer {token}"}


def _use_llm(llm):
    app.dependency_overrides[get_orchestrator] = lambda: PriceDropOrchestrator(
        OfferSearchService(llm, rng=random.Random(5)), LinkBuilder(), rng=random.Random(5)
    )
    app.dependency_overrides[get_booking_parser] = lambda: BookingParser(llm)


# =============================================================================
# Health
# =============================================================================

async def test_health_endpoints(client):
    assert (await client.get("/")).json()["status"] == "OK"
    assert (await client.get("/ping")).json()["status"] == "SUCCESS"
    health = (await client.get("/api/health")).json()
    assert health["status"] == "ok"
    assert health["service"] == "pricedrop"
    assert datetime.fromisoformat(health["timestamp"]).tzinfo is not None


# =============================================================================
# Search
# =============================================================================

async def test_search_returns_competitor_payload(client, fake_llm_factory):
    _use_llm(fake_llm_factory(
        broad={"site": "Booking.com", "price": 2500, "conditions_match": False},
        partner={"site": "Hotels.com", "price": 3900, "partnerId": "hotels_com"},
    ))

    resp = await client.post("/api/search", json={"bookingData": BOOKING})

    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "SAVINGS_FOUND_COMPETITOR"
    assert body["direct_link"].startswith("https://www.booking.com/searchresults.html?ss=Dan%20Eilat")
    assert body["business_logic"]["threshold_40_percent"] == 40


async def test_search_rejects_inverted_dates(client, fake_llm_factory):
    _use_llm(fake_llm_factory())
    booking = {**BOOKING, "check_out_date": "2025-08-09"}

    resp = await client.post("/api/search", json={"bookingData": booking})

    assert resp.status_code == 422


async def test_search_rejects_missing_booking(client, fake_llm_factory):
    _use_llm(fake_llm_factory())
    resp = await client.post("/api/search", json={})
    assert resp.status_code == 422


async def test_search_orchestration_failure_is_500(client):
    class BrokenOrchestrator:
        async def compare(self, booking):
            raise RuntimeError("assembly failed")

    app.dependency_overrides[get_orchestrator] = lambda: BrokenOrchestrator()

    resp = await client.post("/api/search", json={"bookingData": BOOKING})

    assert resp.status_code == 500
    assert resp.json()["status"] == "ERROR"
    assert resp.json()["error"] == "assembly failed"


# =============================================================================
# File analysis
# =============================================================================

async def test_analyze_file(client, fake_llm_factory):
    _use_llm(fake_llm_factory(analysis='{"hotel_name": "Dan Eilat", "original_price": 4000}'))

    resp = await client.post("/api/analyze-file", json={"content": "booking text", "contentType": "application/pdf"})

    assert resp.status_code == 200
    assert resp.json()["hotel_name"] == "Dan Eilat"
    assert resp.json()["status"] == "extracted_from_pdf"


async def test_analyze_file_failure(client, fake_llm_factory):
    _use_llm(fake_llm_factory(analysis=LLMError("bad request", status_code=400)))

    resp = await client.post("/api/analyze-file", json={"content": "x", "contentType": "text/plain"})

    assert resp.status_code == 500
    assert "details" in resp.json()


# =============================================================================
# Tracking
# =============================================================================

async def test_track_requires_auth(client, db_session_factory):
    resp = await client.post("/api/track", json={"bookingData": BOOKING})
    assert resp.status_code == 401


async def test_invalid_token_is_rejected(client, db_session_factory):
    resp = await client.get("/api/my-bookings", headers={"Authorization": "Bearer not-a-jwt"})
    assert resp.status_code == 401


async def test_track_and_list_bookings(client, db_session_factory):
    resp = await client.post("/api/track", json={"bookingData": BOOKING}, headers=_auth("user-1"))
    assert resp.status_code == 200
    assert resp.json()["success"] is True
    tracking_id = resp.json()["tracking_id"]

    await client.post("/api/track", json={"bookingData": {**BOOKING, "hotel_name": "Other"}}, headers=_auth("user-2"))

    resp = await client.get("/api/my-bookings", headers=_auth("user-1"))
    assert resp.status_code == 200
    bookings = resp.json()["bookings"]
    assert len(bookings) == 1
    assert bookings[0]["id"] == tracking_id
    assert bookings[0]["hotel_name"] == "Dan Eilat"
    assert bookings[0]["user_id"] == "user-1"
