"""
Resource mutation layer.

Each collection class wraps one pymongo collection and applies the
create / replace / merge / delete rules to documents addressed by their
business key (``userId``, ``videoId``, ...), never by ``_id``. The store
assigns ``_id``; any ``_id`` in a request body is dropped.

Outcomes that are not plain successes are raised as ``ResourceError``
subclasses and mapped to HTTP statuses by ``errors``.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from bson import ObjectId
from pymongo import ASCENDING, ReturnDocument
from pymongo.collection import Collection

from errors import ResourceConflict, ResourceNotFound, ValidationFailed
from schemas import Subscription

logger = logging.getLogger(__name__)

Document = Dict[str, Any]


def _without_id(document: Optional[Document]) -> Document:
    return {k: v for k, v in (document or {}).items() if k != "_id"}


def _store_now() -> datetime:
    # BSON dates are naive UTC with millisecond precision
    now = datetime.now(timezone.utc).replace(tzinfo=None)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


class ResourceCollection:
    """Generic CRUD over one collection keyed by a business key."""

    def __init__(self, collection: Collection, key_field: str, label: str):
        self.collection = collection
        self.key_field = key_field
        self.label = label

    def _not_found(self) -> ResourceNotFound:
        return ResourceNotFound(f"{self.label} not found")

    def list_all(self) -> List[Document]:
        return list(self.collection.find())

    def get(self, key: str) -> Document:
        document = self.collection.find_one({self.key_field: key})
        if document is None:
            raise self._not_found()
        return document

    def create(self, document: Document) -> ObjectId:
        """Insert the body as-is; the key is neither required nor checked for uniqueness."""
        result = self.collection.insert_one(_without_id(document))
        logger.info("Created %s %s (_id=%s)", self.label, document.get(self.key_field), result.inserted_id)
        return result.inserted_id

    def replace(self, key: str, document: Document) -> int:
        """Overwrite the whole document. Returns the modified count (0 or 1)."""
        result = self.collection.replace_one({self.key_field: key}, _without_id(document))
        if result.matched_count == 0:
            raise self._not_found()
        logger.info("Replaced %s %s (modified=%d)", self.label, key, result.modified_count)
        return result.modified_count

    def merge(self, key: str, updates: Document) -> int:
        """Overwrite only the given fields. Returns the modified count (0 or 1)."""
        updates = _without_id(updates)
        if not updates:
            # $set with no fields is rejected by the server
            if self.collection.count_documents({self.key_field: key}, limit=1) == 0:
                raise self._not_found()
            return 0
        result = self.collection.update_one({self.key_field: key}, {"$set": updates})
        if result.matched_count == 0:
            raise self._not_found()
        logger.info("Merged %s into %s %s (modified=%d)", sorted(updates), self.label, key, result.modified_count)
        return result.modified_count

    def delete(self, key: str) -> int:
        """Remove the document. Returns the deleted count; zero is not an error."""
        result = self.collection.delete_one({self.key_field: key})
        logger.info("Deleted %s %s (deleted=%d)", self.label, key, result.deleted_count)
        return result.deleted_count

    def ensure_indexes(self) -> None:
        """Hook for collections that rely on store-level constraints."""


class CounterCollection(ResourceCollection):
    """Collection whose documents carry an integer counter (videos, comments)."""

    counter_field = "likes"

    def increment(self, key: str) -> int:
        """Atomically add one to the counter and return the new value.

        A missing counter field starts from zero.
        """
        document = self.collection.find_one_and_update(
            {self.key_field: key},
            {"$inc": {self.counter_field: 1}},
            projection={self.counter_field: True},
            return_document=ReturnDocument.AFTER,
        )
        if document is None:
            raise self._not_found()
        value = document[self.counter_field]
        logger.info("Incremented %s on %s %s to %s", self.counter_field, self.label, key, value)
        return value


class PlaylistCollection(ResourceCollection):
    def __init__(self, collection: Collection, key_field: str, label: str, merge_attempts: int = 3):
        super().__init__(collection, key_field, label)
        self.merge_attempts = max(merge_attempts, 1)

    def list_for_owner(self, user_id: str) -> List[Document]:
        playlists = list(self.collection.find({"userId": user_id}))
        if not playlists:
            raise ResourceNotFound("No playlists found for this user")
        return playlists

    def merge_and_append_video(self, key: str, updates: Optional[Document], video_id: Any) -> int:
        """Merge ``updates`` into the playlist and append ``video_id`` once.

        The merged document replaces the stored one only if ``videos``
        still holds what was read; otherwise the playlist is re-read and
        the merge recomputed. Returns the modified count.
        """
        updates = _without_id(updates)
        for attempt in range(1, self.merge_attempts + 1):
            playlist = self.collection.find_one({self.key_field: key})
            if playlist is None:
                raise self._not_found()

            current_videos = playlist.get("videos")
            merged = {**_without_id(playlist), **updates}
            if video_id:
                videos = list(current_videos or [])
                if video_id not in videos:
                    videos.append(video_id)
                merged["videos"] = videos

            result = self.collection.replace_one(
                {"_id": playlist["_id"], "videos": current_videos},
                merged,
            )
            if result.matched_count:
                logger.info(
                    "Merged playlist %s with video %s (modified=%d)", key, video_id, result.modified_count
                )
                return result.modified_count
            logger.warning("Playlist %s changed during merge (attempt %d/%d)", key, attempt, self.merge_attempts)

        raise ResourceConflict("Playlist was modified concurrently, try again")

    def add_video(self, key: str, video_id: Any) -> int:
        result = self.collection.update_one({self.key_field: key}, {"$addToSet": {"videos": video_id}})
        if result.matched_count == 0:
            raise self._not_found()
        logger.info("Added video %s to playlist %s (modified=%d)", video_id, key, result.modified_count)
        return result.modified_count

    def remove_video(self, key: str, video_id: Any) -> int:
        result = self.collection.update_one({self.key_field: key}, {"$pull": {"videos": video_id}})
        if result.matched_count == 0:
            raise self._not_found()
        logger.info("Removed video %s from playlist %s (modified=%d)", video_id, key, result.modified_count)
        return result.modified_count


class SubscriptionCollection(ResourceCollection):
    def ensure_indexes(self) -> None:
        # Backstop for concurrent identical subscribe calls.
        self.collection.create_index(
            [("subscriber", ASCENDING), ("channel", ASCENDING)],
            unique=True,
            name="subscriber_channel_unique",
            partialFilterExpression={"subscriber": {"$type": "string"}, "channel": {"$type": "string"}},
        )

    def for_participant(self, user_id: str) -> List[Document]:
        subscriptions = list(self.collection.find({"$or": [{"subscriber": user_id}, {"channel": user_id}]}))
        if not subscriptions:
            raise ResourceNotFound("No subscriptions found for this user")
        return subscriptions

    def subscribe(self, subscriber: Optional[str], channel: Optional[str]) -> Document:
        if not subscriber or not channel:
            raise ValidationFailed("Both 'subscriber' and 'channel' are required")

        if self.collection.find_one({"subscriber": subscriber, "channel": channel}) is not None:
            raise ResourceConflict("Subscription already exists")

        subscription = Subscription(
            subscriptionId=f"s{ObjectId()}",
            subscriber=subscriber,
            channel=channel,
            subscribedAt=_store_now(),
        )
        document = subscription.model_dump()
        self.collection.insert_one(document)
        logger.info("Created subscription %s: %s -> %s", subscription.subscriptionId, subscriber, channel)
        return document
