from fastapi import APIRouter

router = APIRouter(prefix="", tags=["system"])


@router.get("/health")
async def health_check() -> dict:
    """Liveness check; requires no token."""
    return {"status": "ok", "message": "Clinical API is running"}
