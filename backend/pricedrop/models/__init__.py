from pricedrop.models.tracked_booking import TrackedBooking

__all__ = [
    "TrackedBooking",
]
