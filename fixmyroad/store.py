import asyncio
from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo import ASCENDING, DESCENDING, GEOSPHERE, ReturnDocument

from fixmyroad.models import STATUS_FIXED, STATUS_IN_PROGRESS, STATUS_OPEN


class ReportStore:
    """Persistence for reports, backed by a single MongoDB collection."""

    def __init__(self, collection: AsyncIOMotorCollection):
        self.collection = collection

    async def ensure_indexes(self) -> None:
        await self.collection.create_index([("location", GEOSPHERE)])
        await self.collection.create_index([("id", ASCENDING)], unique=True)
        await self.collection.create_index([("createdAt", DESCENDING)])

    async def create(self, doc: dict) -> dict:
        res = await self.collection.insert_one(doc)
        return {**doc, "_id": res.inserted_id}

    async def get(self, report_id: str) -> Optional[dict]:
        return await self.collection.find_one({"id": report_id})

    async def count(self, query: Optional[dict] = None) -> int:
        return await self.collection.count_documents(query or {})

    async def list_page(self, page: int, limit: int) -> List[dict]:
        cursor = (
            self.collection.find({})
            .sort("createdAt", DESCENDING)
            .skip((page - 1) * limit)
            .limit(limit)
        )
        return [doc async for doc in cursor]

    async def update(self, report_id: str, update: dict) -> Optional[dict]:
        return await self.collection.find_one_and_update(
            {"id": report_id},
            update,
            return_document=ReturnDocument.AFTER,
        )

    async def delete(self, report_id: str) -> Optional[dict]:
        return await self.collection.find_one_and_delete({"id": report_id})

    async def near(self, lng: float, lat: float, radius: float) -> List[dict]:
        # GeoJSON is [lng, lat]; $near sorts by distance, nearest first
        q = {
            "location": {
                "$near": {
                    "$geometry": {"type": "Point", "coordinates": [lng, lat]},
                    "$maxDistance": radius,
                }
            }
        }
        return [doc async for doc in self.collection.find(q)]

    async def stats(self) -> dict:
        total, open_, in_progress, fixed = await asyncio.gather(
            self.count(),
            self.count({"status": STATUS_OPEN}),
            self.count({"status": STATUS_IN_PROGRESS}),
            self.count({"status": STATUS_FIXED}),
        )
        return {"total": total, "open": open_, "inProgress": in_progress, "fixed": fixed}
