"""
Document store adapter.

One MongoClient per service process, opened at startup and held for the
life of the process. If the first ping fails the process exits; there is
no reconnect logic beyond what the driver does on its own.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict

from bson import ObjectId
from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import PyMongoError

from config import Settings

logger = logging.getLogger(__name__)

# Service name -> collection name
COLLECTIONS: Dict[str, str] = {
    "users": "users",
    "videos": "videos",
    "comments": "comments",
    "playlists": "playlists",
    "subscriptions": "subscriptions",
}


@dataclass(frozen=True)
class Store:
    client: MongoClient
    db: Database

    def collection(self, name: str) -> Collection:
        return self.db[name]

    def close(self) -> None:
        self.client.close()


def connect(settings: Settings) -> Store:
    """Open the store connection or terminate the process."""
    client = MongoClient(
        settings.MONGO_URL,
        serverSelectionTimeoutMS=settings.MONGO_SERVER_SELECTION_TIMEOUT_MS,
    )
    try:
        client.admin.command("ping")
    except PyMongoError as e:
        logger.critical("Error connecting to MongoDB at %s: %s", settings.MONGO_URL, e)
        client.close()
        raise SystemExit(1)
    logger.info("Connected to MongoDB, database %r", settings.DATABASE_NAME)
    return Store(client=client, db=client[settings.DATABASE_NAME])


def ping(store: Store) -> Dict[str, Any]:
    info: Dict[str, Any] = {"database_connected": False, "collections": []}
    try:
        info["collections"] = store.db.list_collection_names()
        info["database_connected"] = True
    except PyMongoError as e:
        info["error"] = str(e)
    return info


def serialize_document(value: Any) -> Any:
    """Make a stored document JSON friendly.

    ObjectIds become strings and datetimes ISO-8601 strings, at any
    depth. The internal identifier stays under ``_id``.
    """
    if isinstance(value, dict):
        return {k: serialize_document(v) for k, v in value.items()}
    if isinstance(value, list):
        return [serialize_document(v) for v in value]
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    return value
