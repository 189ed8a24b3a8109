"""
MongoDB access for the portfolio API.

A single module-level ``db`` handle is created from the environment at import.
When ``DATABASE_URL`` is not set the handle stays ``None`` and every helper
raises ``StoreUnavailable``, which the API turns into a 500.
"""

import logging
import os
from typing import Any, Dict, List, Optional, Union

from bson import ObjectId
from bson.errors import InvalidId
from dotenv import load_dotenv
from pydantic import BaseModel
from pymongo import MongoClient, ReturnDocument
from pymongo.errors import PyMongoError

load_dotenv()

logger = logging.getLogger(__name__)

DATABASE_URL = os.getenv("DATABASE_URL")
DATABASE_NAME = os.getenv("DATABASE_NAME", "portfolio")

db = None

if DATABASE_URL:
    _client = MongoClient(DATABASE_URL, serverSelectionTimeoutMS=5000)
    db = _client[DATABASE_NAME]


class StoreUnavailable(PyMongoError):
    """Raised when no database handle is configured."""


def to_oid(id_str: str) -> Optional[ObjectId]:
    try:
        return ObjectId(id_str)
    except (InvalidId, TypeError):
        return None


def get_collection(collection_name: str):
    if db is None:
        raise StoreUnavailable("Database not available")
    return db[collection_name]


def _as_dict(data: Union[BaseModel, Dict[str, Any]]) -> Dict[str, Any]:
    if isinstance(data, BaseModel):
        return data.model_dump()
    return dict(data)


def create_document(collection_name: str, data: Union[BaseModel, Dict[str, Any]]) -> str:
    result = get_collection(collection_name).insert_one(_as_dict(data))
    return str(result.inserted_id)


def get_document(collection_name: str, id_str: str) -> Optional[Dict[str, Any]]:
    oid = to_oid(id_str)
    if oid is None:
        return None
    return get_collection(collection_name).find_one({"_id": oid})


def get_documents(collection_name: str) -> List[Dict[str, Any]]:
    return list(get_collection(collection_name).find())


def latest_document(collection_name: str) -> Optional[Dict[str, Any]]:
    # ObjectIds are time-ordered, so the highest _id is the newest insert
    return get_collection(collection_name).find_one(sort=[("_id", -1)])


def replace_fields(collection_name: str, id_str: str,
                   data: Union[BaseModel, Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Overwrite every field of ``data`` on the record; fields left out of the
    request body arrive here as their model default, so this is a full replace."""
    oid = to_oid(id_str)
    if oid is None:
        return None
    return get_collection(collection_name).find_one_and_update(
        {"_id": oid},
        {"$set": _as_dict(data)},
        return_document=ReturnDocument.AFTER,
    )


def delete_document(collection_name: str, id_str: str) -> bool:
    oid = to_oid(id_str)
    if oid is None:
        return False
    res = get_collection(collection_name).delete_one({"_id": oid})
    return res.deleted_count > 0


def save_singleton(collection_name: str, data: Union[BaseModel, Dict[str, Any]]) -> Dict[str, Any]:
    """Update the newest record of a single-record collection in place,
    inserting the first one when the collection is empty."""
    coll = get_collection(collection_name)
    fields = _as_dict(data)
    current = latest_document(collection_name)
    if current is None:
        result = coll.insert_one(fields)
        return coll.find_one({"_id": result.inserted_id})
    return coll.find_one_and_update(
        {"_id": current["_id"]},
        {"$set": fields},
        return_document=ReturnDocument.AFTER,
    )


def ping() -> bool:
    if db is None:
        return False
    try:
        db.command("ping")
        return True
    except PyMongoError as e:
        logger.warning("Database ping failed: %s", e)
        return False
