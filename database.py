import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

import config
from errors import BadRequestError

USERS = "users"
COURSES = "courses"

logger = logging.getLogger(__name__)

_client: Optional[AsyncIOMotorClient] = None
_db: Optional[AsyncIOMotorDatabase] = None


def get_db() -> AsyncIOMotorDatabase:
    global _client, _db
    if _db is None:
        _client = AsyncIOMotorClient(config.DATABASE_URL)
        _db = _client[config.DATABASE_NAME]
    return _db


def close_client() -> None:
    global _client, _db
    if _client is not None:
        _client.close()
        logger.info("MongoDB client closed")
    _client = None
    _db = None


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def to_object_id(value: str, field: str = "id") -> ObjectId:
    if not isinstance(value, str) or not ObjectId.is_valid(value):
        raise BadRequestError(f"'{value}' is not a valid {field}")
    return ObjectId(value)


def _stringify(value: Any) -> Any:
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, list):
        return [_stringify(item) for item in value]
    return value


def normalize(doc: Dict[str, Any]) -> Dict[str, Any]:
    """Turn a raw Mongo document into something JSON can carry: ``_id`` becomes ``id``."""
    out = {key: _stringify(value) for key, value in doc.items() if key != "_id"}
    if "_id" in doc:
        out["id"] = str(doc["_id"])
    return out


async def ensure_indexes() -> None:
    # Unique email for users
    await get_db()[USERS].create_index("email", unique=True)
    await get_db()[COURSES].create_index([("courseMaker", 1)])


async def ping() -> None:
    await get_db().command("ping")


async def create_document(collection_name: str, data: Dict[str, Any]) -> Dict[str, Any]:
    now = _now()
    data_to_insert = {**data, "createdAt": now, "updatedAt": now}
    result = await get_db()[collection_name].insert_one(data_to_insert)
    inserted = await get_db()[collection_name].find_one({"_id": result.inserted_id})
    return normalize(inserted) if inserted else {}


async def get_document(collection_name: str, filter_dict: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    doc = await get_db()[collection_name].find_one(filter_dict)
    return normalize(doc) if doc else None


async def get_raw_document(collection_name: str, filter_dict: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    return await get_db()[collection_name].find_one(filter_dict)


async def get_documents(
    collection_name: str,
    filter_dict: Optional[Dict[str, Any]] = None,
    skip: int = 0,
    limit: int = 50,
) -> List[Dict[str, Any]]:
    filter_dict = filter_dict or {}
    cursor = get_db()[collection_name].find(filter_dict).skip(skip).limit(limit)
    docs: List[Dict[str, Any]] = []
    async for doc in cursor:
        docs.append(normalize(doc))
    return docs


async def update_document(
    collection_name: str, filter_dict: Dict[str, Any], updates: Dict[str, Any]
) -> Optional[Dict[str, Any]]:
    updates = {**updates, "updatedAt": _now()}
    result = await get_db()[collection_name].update_one(filter_dict, {"$set": updates})
    if result.matched_count == 0:
        return None
    return await get_document(collection_name, filter_dict)


async def add_to_set(collection_name: str, filter_dict: Dict[str, Any], field: str, value: Any) -> bool:
    """Append ``value`` to the array ``field`` unless already present. True when it was added."""
    result = await get_db()[collection_name].update_one(
        {**filter_dict, field: {"$ne": value}},
        {"$addToSet": {field: value}, "$set": {"updatedAt": _now()}},
    )
    return result.matched_count > 0


async def delete_document(collection_name: str, filter_dict: Dict[str, Any]) -> bool:
    result = await get_db()[collection_name].delete_one(filter_dict)
    return result.deleted_count > 0
