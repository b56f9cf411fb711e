from fastapi import APIRouter, Depends

from fixmyroad.deps import get_store
from fixmyroad.store import ReportStore

router = APIRouter()


@router.get("", summary="Report counts by status")
async def stats(store: ReportStore = Depends(get_store)):
    counts = await store.stats()
    return {"ok": True, **counts}
