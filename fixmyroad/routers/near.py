from typing import Optional

from fastapi import APIRouter, Depends, Query

from fixmyroad.deps import get_store
from fixmyroad.errors import ValidationError
from fixmyroad.models import serialize_doc
from fixmyroad.store import ReportStore

router = APIRouter()


@router.get("", summary="Reports within radius meters of a point, nearest first")
async def near(
    lat: Optional[float] = Query(None, ge=-90, le=90, allow_inf_nan=False),
    lng: Optional[float] = Query(None, ge=-180, le=180, allow_inf_nan=False),
    radius: float = Query(200, ge=0, allow_inf_nan=False),
    store: ReportStore = Depends(get_store),
):
    if lat is None or lng is None:
        raise ValidationError("lat and lng are required")
    docs = await store.near(lng, lat, radius)
    return {"ok": True, "total": len(docs), "reports": serialize_doc(docs)}
