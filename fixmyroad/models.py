from __future__ import annotations

import secrets
import string
from datetime import datetime, timezone
from typing import Any, List, Literal, Optional

from bson import ObjectId
from pydantic import BaseModel, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from fixmyroad.errors import ValidationError

ID_ALPHABET = string.ascii_letters + string.digits + "_-"
REPORT_ID_SIZE = 10

STATUS_OPEN = "open"
STATUS_IN_PROGRESS = "in_progress"
STATUS_FIXED = "fixed"

RANGE_ERRORS = {"greater_than_equal", "less_than_equal"}


def generate_id(size: int = REPORT_ID_SIZE) -> str:
    """URL-safe random identifier."""
    return "".join(secrets.choice(ID_ALPHABET) for _ in range(size))


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def now_iso() -> str:
    return utcnow().isoformat(timespec="milliseconds").replace("+00:00", "Z")


class GeoPoint(BaseModel):
    """GeoJSON point helper that ensures [lng, lat] ordering."""

    type: Literal["Point"] = "Point"
    coordinates: List[float] = Field(..., min_length=2, max_length=2)

    @classmethod
    def from_lat_lng(cls, lat: float, lng: float) -> "GeoPoint":
        return cls(coordinates=[lng, lat])


class Comment(BaseModel):
    text: str
    at: datetime = Field(default_factory=utcnow)


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


class ReportCreate(BaseModel):
    lat: float = Field(..., ge=-90, le=90, allow_inf_nan=False)
    lng: float = Field(..., ge=-180, le=180, allow_inf_nan=False)
    description: str = ""
    severity: Optional[float] = Field(None, allow_inf_nan=False)
    reporter: str = ""

    @field_validator("severity", mode="before")
    @classmethod
    def empty_severity_is_null(cls, value: Any) -> Any:
        return _blank_to_none(value)

    @field_validator("description", "reporter", mode="before")
    @classmethod
    def missing_text_is_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @classmethod
    def from_form(
        cls,
        lat: Optional[str],
        lng: Optional[str],
        description: Optional[str] = None,
        severity: Optional[str] = None,
        reporter: Optional[str] = None,
    ) -> "ReportCreate":
        """Single validation stage for the multipart create form."""
        lat, lng = _blank_to_none(lat), _blank_to_none(lng)
        if lat is None or lng is None:
            raise ValidationError("lat and lng are required")
        try:
            return cls(
                lat=lat,
                lng=lng,
                description=description,
                severity=severity,
                reporter=reporter,
            )
        except PydanticValidationError as exc:
            errors = exc.errors()
            fields = {err["loc"][0] for err in errors if err["loc"]}
            coord_errors = {err["type"] for err in errors if err["loc"] and err["loc"][0] in ("lat", "lng")}
            if coord_errors and coord_errors <= RANGE_ERRORS:
                raise ValidationError("lat must be within [-90, 90] and lng within [-180, 180]")
            if coord_errors:
                raise ValidationError("lat and lng must be numbers")
            raise ValidationError(f"invalid {', '.join(sorted(map(str, fields)))}")


class ReportUpdate(BaseModel):
    status: Optional[str] = None
    severity: Optional[float] = Field(None, allow_inf_nan=False)
    comment: Optional[str] = None


def new_report_doc(payload: ReportCreate, image: Optional[str] = None) -> dict:
    now = utcnow()
    return {
        "id": generate_id(),
        "description": payload.description,
        "severity": payload.severity,
        "reporter": payload.reporter,
        "image": image,
        "status": STATUS_OPEN,
        "comments": [],
        "location": GeoPoint.from_lat_lng(payload.lat, payload.lng).model_dump(),
        "createdAt": now,
        "updatedAt": now,
    }


def build_update(payload: ReportUpdate) -> dict:
    """
    Translate an update request into a MongoDB update document.
    Omitted fields stay untouched; comments are only ever appended.
    """
    now = utcnow()
    fields = {"updatedAt": now}
    if payload.status:
        fields["status"] = payload.status
    if "severity" in payload.model_fields_set:
        fields["severity"] = payload.severity

    update = {"$set": fields}
    if payload.comment:
        update["$push"] = {"comments": Comment(text=payload.comment, at=now).model_dump()}
    return update


def _stringify(val):
    """Convert MongoDB types to JSON-serializable types."""
    if isinstance(val, ObjectId):
        return str(val)
    elif isinstance(val, datetime):
        return val.isoformat()
    return val


def serialize_doc(doc: Any) -> Any:
    """Convert Mongo ObjectIds and datetimes, including nested ones, to JSON-friendly values."""
    if isinstance(doc, dict):
        return {key: serialize_doc(value) for key, value in doc.items()}
    if isinstance(doc, list):
        return [serialize_doc(item) for item in doc]
    return _stringify(doc)
