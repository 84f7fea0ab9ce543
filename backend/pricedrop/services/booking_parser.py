"""Booking parser service — extracts booking fields from an uploaded confirmation (PDF text or image)."""

import logging
from datetime import date, timedelta

from pricedrop.config import settings
from pricedrop.services.comparison.offer_search import OfferParseError, extract_json_object
from pricedrop.services.llm_client import Attachment, LLMClient, LLMError

logger = logging.getLogger(__name__)

EXTRACTION_PROMPT = """You are an expert hotel booking parser. Extract structured data from this document, ignoring email headers or irrelevant text. Focus on the core reservation details AND booking conditions. Return ONLY valid JSON. If a value isn't found, use null.

The JSON structure must be:
{
  "hotel_name": "...",
  "check_in_date": "YYYY-MM-DD",
  "check_out_date": "YYYY-MM-DD",
  "original_price": 0,
  "currency": "...",
  "room_type": "...",
  "num_rooms": 1,
  "adults": 2,
  "children": 0,
  "free_cancellation": true/false,
  "breakfast_included": true/false,
  "cancellation_policy": "...",
  "meal_plan": "..."
}

IMPORTANT:
- Look for cancellation terms: "free cancellation", "fully refundable", "cancel without penalty"
- Look for breakfast terms: "breakfast included", "breakfast buffet", "with breakfast", "BB", "bed & breakfast"
- Extract the exact room type name
- Note any special conditions or policies"""


class BookingParseError(RuntimeError):
    """Booking extraction failed and no fallback applies."""


class BookingParser:
    """Extracts booking fields from document content via the LLM."""

    def __init__(self, llm: LLMClient, timeout: float = settings.analysis_timeout_seconds):
        self._llm = llm
        self._timeout = timeout

    async def analyze(self, content: str, content_type: str) -> dict:
        """
        Extract booking fields from ``content``.

        Images are sent inline (``content`` is base64); anything else is
        treated as document text and appended to the prompt. When the LLM is
        temporarily unavailable a default booking is returned so the user can
        correct it by hand.
        """
        if content_type.startswith("image/"):
            prompt = EXTRACTION_PROMPT
            attachment = Attachment(mime_type=content_type, data=content)
        else:
            prompt = f"{EXTRACTION_PROMPT}\n\nAnalyze this content:\n{content}"
            attachment = None

        try:
            raw = await self._llm.complete(prompt, attachment=attachment, timeout=self._timeout)
            result = extract_json_object(raw)
        except LLMError as e:
            if e.unavailable:
                logger.warning(f"LLM temporarily unavailable ({e}), using fallback booking")
                return self._fallback_response()
            logger.error(f"Booking analysis failed: {e}")
            raise BookingParseError(f"Failed to analyze file: {e}") from e
        except OfferParseError as e:
            logger.error(f"Booking analysis returned no JSON: {e}")
            raise BookingParseError(f"Failed to analyze file: {e}") from e

        result["status"] = "extracted_from_pdf"
        return result

    @staticmethod
    def _fallback_response() -> dict:
        today = date.today()
        return {
            "hotel_name": "Hotel (name could not be extracted)",
            "check_in_date": (today + timedelta(days=1)).isoformat(),
            "check_out_date": (today + timedelta(days=2)).isoformat(),
            "original_price": 4000,
            "currency": "ILS",
            "room_type": "Standard room",
            "num_rooms": 1,
            "adults": 2,
            "children": 0,
            "free_cancellation": None,
            "breakfast_included": None,
            "cancellation_policy": None,
            "meal_plan": None,
            "status": "fallback_due_to_api_error",
        }
