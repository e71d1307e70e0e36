"""
MongoDB access for the menu API.

A single MongoClient is shared per connection URL. Stores never reach for a
global handle: they are given the Database returned by get_database().
"""
from functools import lru_cache
from typing import Any, Dict, Optional

from bson import ObjectId
from pymongo import MongoClient
from pymongo.database import Database

from config import get_settings
from errors import StoreError


@lru_cache(maxsize=None)
def get_client(database_url: str) -> MongoClient:
    return MongoClient(database_url)


def get_database() -> Database:
    settings = get_settings()
    if not settings.has_database:
        raise StoreError("Database not configured")
    return get_client(settings.database_url)[settings.database_name]


# -----------------------------
# Id helpers
# -----------------------------

def oid(obj: Optional[str]) -> Optional[ObjectId]:
    if obj is None:
        return None
    if isinstance(obj, ObjectId):
        return obj
    if not ObjectId.is_valid(obj):
        return None
    return ObjectId(obj)


def _stringify(value: Any) -> Any:
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, list):
        return [_stringify(v) for v in value]
    return value


def to_str_id(doc: Dict[str, Any]) -> Dict[str, Any]:
    if not doc:
        return doc
    d = {**doc}
    if "_id" in d:
        d["id"] = str(d.pop("_id"))
    # normalize ObjectId refs (and id lists) to strings
    for k, v in list(d.items()):
        d[k] = _stringify(v)
    return d
