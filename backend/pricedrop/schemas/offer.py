from typing import Literal

from pydantic import BaseModel, Field

SearchPass = Literal["broad", "partner"]


class OfferQuery(BaseModel):
    """Conditions a candidate offer must match, derived from the booking."""

    room_type: str | None = None
    free_cancellation: bool | None = None
    breakfast_included: bool | None = None

    model_config = {"frozen": True}

    def constraint_lines(self) -> list[str]:
        lines = []
        if self.free_cancellation:
            lines.append("free cancellation")
        if self.breakfast_included:
            lines.append("breakfast included")
        if self.room_type:
            lines.append(f"room type: {self.room_type}")
        return lines

    def requirement_lines(self) -> list[str]:
        lines = []
        if self.free_cancellation:
            lines.append("- Must have FREE CANCELLATION")
        if self.breakfast_included:
            lines.append("- Must include BREAKFAST")
        if self.room_type:
            lines.append(f'- Must be same room type: "{self.room_type}"')
        return lines

    def as_dict(self) -> dict:
        return {
            "free_cancellation": self.free_cancellation,
            "breakfast_included": self.breakfast_included,
            "room_type": self.room_type,
        }


class RawOffer(BaseModel):
    """Untrusted offer as returned by an acquisition pass.

    ``price`` is None when the source value was missing or not numeric.
    """

    site: str = ""
    price: float | None = None
    conditions_match: bool = False
    partner_id: str | None = None
    direct_link: str | None = None
    search_pass: SearchPass = "broad"
    is_fallback: bool = False


class SanitizedOffer(RawOffer):
    price: float = Field(ge=0, allow_inf_nan=False)
    price_adjusted: Literal["unknown", "implausible"] | None = None
