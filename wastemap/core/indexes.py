# wastemap/core/indexes.py
from pymongo import ASCENDING, DESCENDING

async def ensure_indexes(db):
    # Users
    await db.users.create_index("email", unique=True, name="email_unique")
    await db.users.create_index("role")
    # Pickups: listing filters
    await db.pickups.create_index([("owner_id", ASCENDING), ("created_at", DESCENDING)])
    await db.pickups.create_index([("status", ASCENDING), ("created_at", DESCENDING)])
    await db.pickups.create_index("assigned_collector_id", sparse=True)
