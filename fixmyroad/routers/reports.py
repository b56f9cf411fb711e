import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile

from fixmyroad.deps import get_store, get_uploads
from fixmyroad.errors import NotFound
from fixmyroad.models import ReportCreate, ReportUpdate, build_update, new_report_doc, serialize_doc
from fixmyroad.store import ReportStore
from fixmyroad.uploads import UploadStorage

logger = logging.getLogger(__name__)

router = APIRouter()

DEFAULT_LIMIT = 50
MAX_LIMIT = 100


@router.post("", status_code=201, summary="Submit a new report")
async def create_report(
    lat: Optional[str] = Form(None),
    lng: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    severity: Optional[str] = Form(None),
    reporter: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    store: ReportStore = Depends(get_store),
    uploads: UploadStorage = Depends(get_uploads),
):
    payload = ReportCreate.from_form(lat, lng, description, severity, reporter)

    image_path = await uploads.save(image)
    try:
        doc = await store.create(new_report_doc(payload, image_path))
    except Exception:
        # The record never made it; don't leave an orphaned photo behind
        uploads.remove(image_path)
        raise

    logger.info("Created report %s at [%s, %s]", doc["id"], payload.lng, payload.lat)
    return {"ok": True, "report": serialize_doc(doc)}


@router.get("", summary="List reports, newest first")
async def list_reports(
    page: int = 1,
    limit: int = DEFAULT_LIMIT,
    store: ReportStore = Depends(get_store),
):
    page = max(1, page)
    limit = max(1, min(MAX_LIMIT, limit))
    total = await store.count()
    reports = await store.list_page(page, limit)
    return {
        "ok": True,
        "total": total,
        "page": page,
        "limit": limit,
        "reports": serialize_doc(reports),
    }


@router.get("/{report_id}", summary="Get a report by id")
async def get_report(report_id: str, store: ReportStore = Depends(get_store)):
    doc = await store.get(report_id)
    if not doc:
        raise NotFound()
    return {"ok": True, "report": serialize_doc(doc)}


@router.put("/{report_id}", summary="Update status/severity or add a comment")
async def update_report(
    report_id: str,
    payload: Optional[ReportUpdate] = None,
    store: ReportStore = Depends(get_store),
):
    doc = await store.update(report_id, build_update(payload or ReportUpdate()))
    if not doc:
        raise NotFound()
    return {"ok": True, "report": serialize_doc(doc)}


@router.delete("/{report_id}", summary="Delete a report and its photo")
async def delete_report(
    report_id: str,
    store: ReportStore = Depends(get_store),
    uploads: UploadStorage = Depends(get_uploads),
):
    doc = await store.delete(report_id)
    if not doc:
        raise NotFound()

    if doc.get("image"):
        uploads.remove(doc["image"])
    logger.info("Deleted report %s", report_id)
    return {"ok": True}
