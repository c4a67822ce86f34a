from datetime import datetime, timezone
from typing import Optional

from bson import ObjectId
from fastapi import HTTPException
from pymongo import ASCENDING, DESCENDING, MongoClient

from config import get_settings
from logger import get_logger

log = get_logger(__name__)

settings = get_settings()

client = None
db = None

if settings.MONGODB_URI:
    # MongoClient connects lazily; nothing touches the network until the first query
    client = MongoClient(settings.MONGODB_URI, serverSelectionTimeoutMS=5000)
    db = client[settings.DATABASE_NAME]
else:
    log.warning("MONGODB_URI not set, database is disabled")


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def to_oid(val):
    try:
        return ObjectId(str(val))
    except Exception:
        return None


def parse_object_id(val: str, label: str) -> ObjectId:
    """Return ``val`` as an ObjectId or raise a 400 naming the resource."""
    if not ObjectId.is_valid(val):
        raise HTTPException(status_code=400, detail=f"Invalid {label} ID")
    return ObjectId(val)


def get_collection(name: str):
    if db is None:
        raise HTTPException(status_code=500, detail="Database not configured")
    return db[name]


def insert_with_id(collection: str, doc: dict) -> dict:
    oid = ObjectId()
    now = now_utc()
    doc = {**doc, "_id": oid, "id": str(oid)}
    doc.setdefault("createdAt", now)
    doc.setdefault("updatedAt", now)
    get_collection(collection).insert_one(doc)
    return doc


def get_by_id(collection: str, id_str: str):
    oid = to_oid(id_str)
    q = {"$or": ([{"_id": oid}] if oid else []) + [{"id": id_str}]}
    return get_collection(collection).find_one(q)


def list_many(collection: str, query: dict = None, sort: Optional[list] = None, limit: Optional[int] = None):
    cursor = get_collection(collection).find(query or {})
    if sort:
        cursor = cursor.sort(sort)
    if limit:
        cursor = cursor.limit(limit)
    res = []
    for d in cursor:
        d["id"] = str(d.get("_id")) if not d.get("id") else d["id"]
        res.append(d)
    return res


def _clean(value):
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime) and value.tzinfo is None:
        # Mongo stores UTC without an offset
        return value.replace(tzinfo=timezone.utc)
    if isinstance(value, list):
        return [_clean(v) for v in value]
    if isinstance(value, dict):
        return {k: _clean(v) for k, v in value.items()}
    return value


def serialize(doc: Optional[dict]) -> Optional[dict]:
    """Shape a stored document for a JSON response.

    ``_id`` is folded into the string ``id`` and password hashes never leave
    the service.
    """
    if doc is None:
        return None
    out = dict(doc)
    oid = out.pop("_id", None)
    if not out.get("id") and oid is not None:
        out["id"] = str(oid)
    out.pop("passwordHash", None)
    return _clean(out)


def ensure_indexes():
    get_collection("user").create_index([("email", ASCENDING)], unique=True)
    get_collection("farm").create_index([("owner", ASCENDING)])
    get_collection("product").create_index([("seller", ASCENDING), ("status", ASCENDING)])
    get_collection("product").create_index([("createdAt", DESCENDING)])
    get_collection("yieldprediction").create_index([("farm", ASCENDING)])
    get_collection("analytics").create_index([("accessRights.restrictedTo", ASCENDING)])
    log.info("Mongo indexes ensured")


def ping():
    if db is None:
        raise RuntimeError("Database not configured")
    db.command("ping")
