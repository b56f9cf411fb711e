from fastapi import APIRouter

from fixmyroad.models import now_iso

router = APIRouter()


@router.get("")
async def health():
    return {"ok": True, "time": now_iso()}
