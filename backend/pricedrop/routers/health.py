from datetime import datetime, timezone

from fastapi import APIRouter

router = APIRouter()


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("/")
async def root():
    return {"status": "OK", "message": "PriceDrop server is running", "timestamp": _now()}


@router.get("/ping")
async def ping():
    return {"status": "SUCCESS", "message": "Server is working!", "timestamp": _now()}


@router.get("/api/health")
async def health_check():
    return {"status": "ok", "service": "pricedrop", "timestamp": _now()}
