from __future__ import annotations

import copy
import itertools
import math
from pathlib import Path
from typing import List, Optional

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

from fixmyroad.config import Settings
from fixmyroad.main import create_app
from fixmyroad.models import STATUS_FIXED, STATUS_IN_PROGRESS, STATUS_OPEN
from fixmyroad.uploads import UploadStorage

# MongoDB's spherical distance uses this radius (meters)
EARTH_RADIUS_M = 6378100.0


def haversine_m(a, b) -> float:
    lng1, lat1 = map(math.radians, a)
    lng2, lat2 = map(math.radians, b)
    h = math.sin((lat2 - lat1) / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin((lng2 - lng1) / 2) ** 2
    return 2 * EARTH_RADIUS_M * math.asin(math.sqrt(h))


class InMemoryReportStore:
    """Stand-in for ReportStore with the same async surface."""

    def __init__(self):
        self.docs: List[dict] = []
        self._seq = itertools.count()

    async def ensure_indexes(self) -> None:
        pass

    def _find(self, report_id: str) -> Optional[dict]:
        return next((d for d in self.docs if d["id"] == report_id), None)

    async def create(self, doc: dict) -> dict:
        stored = {**copy.deepcopy(doc), "_id": ObjectId(), "_seq": next(self._seq)}
        self.docs.append(stored)
        return self._public(stored)

    async def get(self, report_id: str) -> Optional[dict]:
        return self._public(self._find(report_id))

    async def count(self, query: Optional[dict] = None) -> int:
        query = query or {}
        return sum(all(d.get(k) == v for k, v in query.items()) for d in self.docs)

    async def list_page(self, page: int, limit: int) -> List[dict]:
        ordered = sorted(self.docs, key=lambda d: (d["createdAt"], d["_seq"]), reverse=True)
        start = (page - 1) * limit
        return [self._public(d) for d in ordered[start:start + limit]]

    async def update(self, report_id: str, update: dict) -> Optional[dict]:
        doc = self._find(report_id)
        if doc is None:
            return None
        doc.update(copy.deepcopy(update.get("$set", {})))
        for field, value in update.get("$push", {}).items():
            doc.setdefault(field, []).append(copy.deepcopy(value))
        return self._public(doc)

    async def delete(self, report_id: str) -> Optional[dict]:
        doc = self._find(report_id)
        if doc is None:
            return None
        self.docs.remove(doc)
        return self._public(doc)

    async def near(self, lng: float, lat: float, radius: float) -> List[dict]:
        hits = []
        for d in self.docs:
            dist = haversine_m((lng, lat), d["location"]["coordinates"])
            if dist <= radius:
                hits.append((dist, d))
        hits.sort(key=lambda pair: pair[0])
        return [self._public(d) for _, d in hits]

    async def stats(self) -> dict:
        return {
            "total": await self.count(),
            "open": await self.count({"status": STATUS_OPEN}),
            "inProgress": await self.count({"status": STATUS_IN_PROGRESS}),
            "fixed": await self.count({"status": STATUS_FIXED}),
        }

    @staticmethod
    def _public(doc: Optional[dict]) -> Optional[dict]:
        if doc is None:
            return None
        out = copy.deepcopy(doc)
        out.pop("_seq", None)
        return out


@pytest.fixture
def uploads_dir(tmp_path: Path) -> Path:
    return tmp_path / "uploads"


@pytest.fixture
def settings(tmp_path: Path, uploads_dir: Path) -> Settings:
    return Settings(
        mongodb_uri=None,
        uploads_dir=uploads_dir,
        public_dir=tmp_path / "public",
    )


@pytest.fixture
def store() -> InMemoryReportStore:
    return InMemoryReportStore()


@pytest.fixture
def app(settings: Settings, store: InMemoryReportStore):
    return create_app(settings, store=store)


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture
def make_report(client: TestClient):
    def _make(lat=12.9, lng=77.6, **fields):
        data = {"lat": str(lat), "lng": str(lng), **{k: str(v) for k, v in fields.items()}}
        res = client.post("/reports", data=data)
        assert res.status_code == 201, res.text
        return res.json()["report"]

    return _make


@pytest.fixture
def storage(uploads_dir: Path) -> UploadStorage:
    s = UploadStorage(uploads_dir)
    s.ensure_dir()
    return s
