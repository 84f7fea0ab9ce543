"""File analysis router — extract booking details from an uploaded confirmation."""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from pricedrop.dependencies import get_booking_parser
from pricedrop.schemas.booking import FileAnalysisRequest
from pricedrop.services.booking_parser import BookingParseError, BookingParser

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/analyze-file")
async def analyze_file(
    req: FileAnalysisRequest,
    parser: BookingParser = Depends(get_booking_parser),
):
    """Analyze a booking document (text or base64 image)."""
    logger.info(f"Analyzing file ({req.content_type})")
    try:
        result = await parser.analyze(req.content, req.content_type)
    except BookingParseError as e:
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to analyze the file", "details": str(e)},
        )

    logger.info(f"Analysis completed: {result.get('hotel_name')!r} ({result.get('status')})")
    return result
