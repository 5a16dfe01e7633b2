import asyncio
import os
from datetime import datetime, timezone

from wastemap.core.db import get_client, get_db
from wastemap.core.indexes import ensure_indexes
from wastemap.core.policy import Role
from wastemap.core.security import hash_password
from wastemap.repos.mongo import MongoRepo

ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@wastemap.com")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "admin123")

async def main():
    db = get_db()
    await ensure_indexes(db)
    repo = MongoRepo(db)

    existing = await repo.find_user_by_email(ADMIN_EMAIL)
    if existing:
        print("Admin user already exists:", existing["email"])
        return

    user = await repo.create_user({
        "name": "WasteMap Admin",
        "email": ADMIN_EMAIL,
        "password_hash": hash_password(ADMIN_PASSWORD),
        "role": Role.ADMIN.value,
        "phone": os.getenv("ADMIN_PHONE"),
        "address": None,
        "created_at": datetime.now(timezone.utc),
    })
    print("Admin user created:", user["email"])

if __name__ == "__main__":
    try:
        asyncio.run(main())
    finally:
        get_client().close()
