"""Price search router — dual search with the 40% fairness rule."""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from pricedrop.dependencies import get_orchestrator
from pricedrop.schemas.booking import SearchRequest
from pricedrop.services.comparison.orchestrator import PriceDropOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/search")
async def search_prices(
    req: SearchRequest,
    orchestrator: PriceDropOrchestrator = Depends(get_orchestrator),
):
    """Compare the booking against broad and partner offers."""
    try:
        return await orchestrator.compare(req.booking_data)
    except Exception as e:
        logger.exception(f"Search failed for {req.booking_data.hotel_name!r}: {e}")
        return JSONResponse(
            status_code=500,
            content={"status": "ERROR", "message": "Price search failed", "error": str(e)},
        )
