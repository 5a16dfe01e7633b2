from fastapi import Depends

from wastemap.core.config import settings
from wastemap.services.lifecycle import PickupLifecycle

if settings.use_mongo:
    from wastemap.core.db import get_db
    from wastemap.repos.mongo import MongoRepo
    _repo_singleton = MongoRepo(get_db())
else:
    from wastemap.repos.inmemory import InMemoryRepo
    _repo_singleton = InMemoryRepo()

def get_repo():
    return _repo_singleton

def get_lifecycle(repo=Depends(get_repo)) -> PickupLifecycle:
    return PickupLifecycle(repo, geocode=settings.geocode_on_create)
