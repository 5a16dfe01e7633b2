# wastemap/repos/inmemory.py
import copy
from collections import Counter
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from wastemap.core.errors import Conflict
from wastemap.repos import new_id


def _matches(doc: dict, query: dict) -> bool:
    for key, want in query.items():
        have = doc.get(key)
        if isinstance(want, (list, tuple, set)):
            if have not in want:
                return False
        elif have != want:
            return False
    return True


class InMemoryRepo:
    """Process-local store with the same contract as MongoRepo.

    None of the methods await, so every call (including the conditional
    update) runs to completion without yielding to the event loop.
    """

    def __init__(self):
        self.users: Dict[str, dict] = {}
        self.users_by_email: Dict[str, str] = {}
        self.pickups: Dict[str, dict] = {}

    # Users
    async def create_user(self, doc: dict) -> dict:
        email = doc["email"].lower()
        if email in self.users_by_email:
            raise Conflict("Email already registered")
        doc = {**doc, "email": email}
        doc.setdefault("_id", new_id())
        self.users[doc["_id"]] = copy.deepcopy(doc)
        self.users_by_email[email] = doc["_id"]
        return copy.deepcopy(doc)

    async def get_user(self, user_id: str) -> Optional[dict]:
        doc = self.users.get(user_id)
        return copy.deepcopy(doc) if doc else None

    async def find_user_by_email(self, email: str) -> Optional[dict]:
        uid = self.users_by_email.get((email or "").lower())
        return await self.get_user(uid) if uid else None

    async def get_users_by_ids(self, ids: Iterable[str]) -> Dict[str, dict]:
        return {i: copy.deepcopy(self.users[i]) for i in set(ids) if i in self.users}

    async def list_users(self, role: Optional[str] = None) -> List[dict]:
        docs = [u for u in self.users.values() if role is None or u.get("role") == role]
        docs.sort(key=lambda u: u.get("created_at") or datetime.min, reverse=True)
        return copy.deepcopy(docs)

    async def update_user(self, user_id: str, fields: dict) -> Optional[dict]:
        if user_id not in self.users:
            return None
        self.users[user_id].update(copy.deepcopy(fields))
        return await self.get_user(user_id)

    async def count_users(self, role: Optional[str] = None) -> int:
        return sum(1 for u in self.users.values() if role is None or u.get("role") == role)

    # Pickups
    async def insert_pickup(self, doc: dict) -> dict:
        doc = copy.deepcopy(doc)
        doc.setdefault("_id", new_id())
        self.pickups[doc["_id"]] = doc
        return copy.deepcopy(doc)

    async def get_pickup(self, pickup_id: str) -> Optional[dict]:
        doc = self.pickups.get(pickup_id)
        return copy.deepcopy(doc) if doc else None

    def _find(self, query: dict) -> List[dict]:
        docs = [p for p in self.pickups.values() if _matches(p, query)]
        docs.sort(key=lambda p: p["created_at"], reverse=True)
        return docs

    async def list_pickups(self, query: Optional[dict] = None, skip: int = 0, limit: Optional[int] = None) -> List[dict]:
        docs = self._find(query or {})
        end = None if limit is None else skip + limit
        return copy.deepcopy(docs[skip:end])

    async def count_pickups(self, query: Optional[dict] = None) -> int:
        return len(self._find(query or {}))

    async def update_pickup_if(self, pickup_id: str, expected: dict, fields: dict,
                               event: Optional[dict] = None) -> Optional[dict]:
        """Apply `fields` only if the stored pickup still matches `expected`.

        Returns the updated pickup, or None when the filter no longer matches.
        """
        doc = self.pickups.get(pickup_id)
        if doc is None or not _matches(doc, expected):
            return None
        doc.update(copy.deepcopy(fields))
        doc["version"] = doc.get("version", 0) + 1
        if event:
            doc.setdefault("history", []).append(copy.deepcopy(event))
        return copy.deepcopy(doc)

    async def count_by_status(self) -> Dict[str, int]:
        return dict(Counter(p["status"] for p in self.pickups.values()))

    async def recent_pickups(self, since: datetime, limit: int = 10) -> List[dict]:
        docs = [p for p in self._find({}) if p["created_at"] >= since]
        return copy.deepcopy(docs[:limit])
