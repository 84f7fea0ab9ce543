from datetime import date

from pydantic import BaseModel, Field, model_validator

from pricedrop.schemas.offer import OfferQuery


class BookingSnapshot(BaseModel):
    """The user's existing booking, the reference point for every comparison."""

    hotel_name: str = Field(min_length=1)
    check_in_date: date
    check_out_date: date
    original_price: float = Field(ge=0, allow_inf_nan=False)
    currency: str = "ILS"
    room_type: str | None = None
    free_cancellation: bool | None = None
    breakfast_included: bool | None = None

    model_config = {"frozen": True, "extra": "ignore"}

    @model_validator(mode="after")
    def _check_dates(self) -> "BookingSnapshot":
        if self.check_out_date <= self.check_in_date:
            raise ValueError("check_out_date must be after check_in_date")
        return self

    def conditions(self) -> OfferQuery:
        return OfferQuery(
            room_type=self.room_type,
            free_cancellation=self.free_cancellation,
            breakfast_included=self.breakfast_included,
        )


class SearchRequest(BaseModel):
    booking_data: BookingSnapshot = Field(alias="bookingData")

    model_config = {"populate_by_name": True}


class FileAnalysisRequest(BaseModel):
    content: str
    content_type: str = Field(default="text/plain", alias="contentType")

    model_config = {"populate_by_name": True}


class TrackRequest(BaseModel):
    booking_data: dict = Field(alias="bookingData")

    model_config = {"populate_by_name": True}
