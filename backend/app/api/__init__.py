from fastapi import APIRouter
from app.api import calls
from app.api import sos

router = APIRouter()


@router.get("/health")
async def health():
    return {"status": "ok"}


# Include calls, sos routers
router.include_router(calls.router)
router.include_router(sos.router)
