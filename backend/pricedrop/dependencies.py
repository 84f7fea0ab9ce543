"""Request dependencies — bearer-token identity and service wiring."""

import logging
from functools import lru_cache

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from pricedrop.config import settings
from pricedrop.services.booking_parser import BookingParser
from pricedrop.services.comparison.link_builder import LinkBuilder
from pricedrop.services.comparison.offer_search import OfferSearchService
from pricedrop.services.comparison.orchestrator import PriceDropOrchestrator
from pricedrop.services.llm_client import llm_client

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def verify_token(token: str) -> str:
    """Return the token's subject, or raise JWTError."""
    payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    subject = payload.get("sub")
    if not subject:
        raise JWTError("Token has no subject")
    return str(subject)


async def get_optional_user_id(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> str | None:
    """Authenticated subject id, or None for anonymous / invalid tokens."""
    if credentials is None:
        return None
    try:
        return verify_token(credentials.credentials)
    except JWTError as e:
        logger.info(f"Rejected bearer token: {e}")
        return None


async def require_user_id(user_id: str | None = Depends(get_optional_user_id)) -> str:
    if user_id is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    return user_id


@lru_cache
def get_orchestrator() -> PriceDropOrchestrator:
    return PriceDropOrchestrator(
        search_service=OfferSearchService(llm_client, timeout=settings.search_timeout_seconds),
        link_builder=LinkBuilder(),
    )


@lru_cache
def get_booking_parser() -> BookingParser:
    return BookingParser(llm_client, timeout=settings.analysis_timeout_seconds)
