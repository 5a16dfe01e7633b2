from bson import ObjectId


def new_id() -> str:
    return str(ObjectId())
