"""Tracking router — save bookings for price tracking and list them."""

import logging
from datetime import date
from decimal import Decimal, InvalidOperation

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from pricedrop.database import get_db
from pricedrop.dependencies import require_user_id
from pricedrop.models.tracked_booking import TrackedBooking
from pricedrop.schemas.booking import TrackRequest

logger = logging.getLogger(__name__)

router = APIRouter()


def _parse_date(value) -> date | None:
    if not isinstance(value, str):
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def _parse_price(value) -> Decimal | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        price = Decimal(str(value))
    except InvalidOperation:
        return None
    return price if price.is_finite() else None


@router.post("/track")
async def track_booking(
    req: TrackRequest,
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(require_user_id),
):
    """Save a booking for the signed-in user."""
    data = req.booking_data
    tracked = TrackedBooking(
        user_id=user_id,
        hotel_name=data.get("hotel_name"),
        check_in_date=_parse_date(data.get("check_in_date")),
        check_out_date=_parse_date(data.get("check_out_date")),
        original_price=_parse_price(data.get("original_price")),
        currency=(data.get("currency") or None),
        booking_data=data,
    )
    try:
        db.add(tracked)
        await db.commit()
        await db.refresh(tracked)
    except Exception as e:
        logger.error(f"Tracking error for user {user_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to save tracking data")

    return {"success": True, "tracking_id": str(tracked.id)}


@router.get("/my-bookings")
async def my_bookings(
    db: AsyncSession = Depends(get_db),
    user_id: str = Depends(require_user_id),
):
    """List the signed-in user's tracked bookings, newest first."""
    try:
        result = await db.execute(
            select(TrackedBooking)
            .where(TrackedBooking.user_id == user_id)
            .order_by(TrackedBooking.created_at.desc())
        )
    except Exception as e:
        logger.error(f"Error fetching bookings for user {user_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch bookings")

    return {"bookings": [b.to_dict() for b in result.scalars().all()]}
