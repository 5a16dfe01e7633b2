# wastemap/repos/mongo.py
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError

from wastemap.core.errors import Conflict
from wastemap.repos import new_id


def _to_filter(query: Optional[dict]) -> dict:
    out = {}
    for key, want in (query or {}).items():
        out[key] = {"$in": list(want)} if isinstance(want, (list, tuple, set)) else want
    return out


class MongoRepo:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db

    # Users
    async def create_user(self, doc: dict) -> dict:
        doc = {**doc, "email": doc["email"].lower()}
        doc.setdefault("_id", new_id())
        try:
            await self.db.users.insert_one(doc)
        except DuplicateKeyError:
            raise Conflict("Email already registered")
        return doc

    async def get_user(self, user_id: str) -> Optional[dict]:
        return await self.db.users.find_one({"_id": user_id})

    async def find_user_by_email(self, email: str) -> Optional[dict]:
        return await self.db.users.find_one({"email": (email or "").lower()})

    async def get_users_by_ids(self, ids: Iterable[str]) -> Dict[str, dict]:
        ids = list(set(ids))
        if not ids:
            return {}
        return {u["_id"]: u async for u in self.db.users.find({"_id": {"$in": ids}})}

    async def list_users(self, role: Optional[str] = None) -> List[dict]:
        query = {"role": role} if role else {}
        cur = self.db.users.find(query).sort("created_at", DESCENDING)
        return [u async for u in cur]

    async def update_user(self, user_id: str, fields: dict) -> Optional[dict]:
        return await self.db.users.find_one_and_update(
            {"_id": user_id}, {"$set": fields}, return_document=ReturnDocument.AFTER
        )

    async def count_users(self, role: Optional[str] = None) -> int:
        return await self.db.users.count_documents({"role": role} if role else {})

    # Pickups
    async def insert_pickup(self, doc: dict) -> dict:
        doc = dict(doc)
        doc.setdefault("_id", new_id())
        await self.db.pickups.insert_one(doc)
        return doc

    async def get_pickup(self, pickup_id: str) -> Optional[dict]:
        return await self.db.pickups.find_one({"_id": pickup_id})

    async def list_pickups(self, query: Optional[dict] = None, skip: int = 0, limit: Optional[int] = None) -> List[dict]:
        cur = self.db.pickups.find(_to_filter(query)).sort("created_at", DESCENDING).skip(skip)
        if limit:
            cur = cur.limit(limit)
        return [p async for p in cur]

    async def count_pickups(self, query: Optional[dict] = None) -> int:
        return await self.db.pickups.count_documents(_to_filter(query))

    async def update_pickup_if(self, pickup_id: str, expected: dict, fields: dict,
                               event: Optional[dict] = None) -> Optional[dict]:
        upd = {"$set": fields, "$inc": {"version": 1}}
        if event:
            upd["$push"] = {"history": event}
        return await self.db.pickups.find_one_and_update(
            {"_id": pickup_id, **expected},
            upd,
            return_document=ReturnDocument.AFTER,
        )

    async def count_by_status(self) -> Dict[str, int]:
        agg = self.db.pickups.aggregate([{"$group": {"_id": "$status", "cnt": {"$sum": 1}}}])
        return {row["_id"]: row["cnt"] async for row in agg}

    async def recent_pickups(self, since: datetime, limit: int = 10) -> List[dict]:
        cur = self.db.pickups.find({"created_at": {"$gte": since}}).sort("created_at", DESCENDING).limit(limit)
        return [p async for p in cur]
