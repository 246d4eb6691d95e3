"""
HTTP routes for the five resource services.

Every service gets the same CRUD surface under ``/{name}``; videos and
comments, playlists and subscriptions add their own operations on top.
Handlers are plain ``def`` functions: pymongo is blocking, so FastAPI
runs them in its worker threadpool.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Type

from fastapi import APIRouter, Body, Depends, Request, status

from database import serialize_document
from mutations import (
    CounterCollection,
    PlaylistCollection,
    ResourceCollection,
    SubscriptionCollection,
)
from schemas import MessageResponse, PlaylistVideosRequest, SubscriptionRequest, VideoIdRequest


@dataclass(frozen=True)
class ServiceSpec:
    name: str
    key_field: str
    label: str
    collection_class: Type[ResourceCollection]


SERVICES: Dict[str, ServiceSpec] = {
    "users": ServiceSpec("users", "userId", "User", ResourceCollection),
    "videos": ServiceSpec("videos", "videoId", "Video", CounterCollection),
    "comments": ServiceSpec("comments", "commentId", "Comment", CounterCollection),
    "playlists": ServiceSpec("playlists", "playlistId", "Playlist", PlaylistCollection),
    "subscriptions": ServiceSpec("subscriptions", "subscriptionId", "Subscription", SubscriptionCollection),
}

MESSAGE = {"response_model": MessageResponse, "response_model_exclude_none": True}


def get_resource(request: Request) -> ResourceCollection:
    """Mutation object of the service, taken from the app's immutable context."""
    return request.app.state.context.resource


def _updated(count: int) -> MessageResponse:
    return MessageResponse(message=f"{count} document(s) updated", modified=count)


def build_router(spec: ServiceSpec) -> APIRouter:
    router = APIRouter(prefix=f"/{spec.name}", tags=[spec.name])

    @router.get("")
    def list_documents(resource: ResourceCollection = Depends(get_resource)) -> List[Dict[str, Any]]:
        return serialize_document(resource.list_all())

    # Subscriptions are read by participant and created through subscribe().
    if not issubclass(spec.collection_class, SubscriptionCollection):

        @router.get("/{key}")
        def get_document(key: str, resource: ResourceCollection = Depends(get_resource)) -> Dict[str, Any]:
            return serialize_document(resource.get(key))

        @router.post("", status_code=status.HTTP_201_CREATED, **MESSAGE)
        def create_document(
            document: Dict[str, Any] = Body(...),
            resource: ResourceCollection = Depends(get_resource),
        ):
            inserted_id = str(resource.create(document))
            return MessageResponse(message=f"{spec.label} added with ID: {inserted_id}", id=inserted_id)

    @router.put("/{key}", **MESSAGE)
    def replace_document(
        key: str,
        document: Dict[str, Any] = Body(...),
        resource: ResourceCollection = Depends(get_resource),
    ):
        return _updated(resource.replace(key, document))

    @router.patch("/{key}", **MESSAGE)
    def merge_document(
        key: str,
        updates: Dict[str, Any] = Body(...),
        resource: ResourceCollection = Depends(get_resource),
    ):
        return _updated(resource.merge(key, updates))

    @router.delete("/{key}", **MESSAGE)
    def delete_document(key: str, resource: ResourceCollection = Depends(get_resource)):
        deleted = resource.delete(key)
        return MessageResponse(message=f"{deleted} document(s) deleted", deleted=deleted)

    if issubclass(spec.collection_class, CounterCollection):
        _add_counter_routes(router, spec)
    if issubclass(spec.collection_class, PlaylistCollection):
        _add_playlist_routes(router)
    if issubclass(spec.collection_class, SubscriptionCollection):
        _add_subscription_routes(router)
    return router


def _add_counter_routes(router: APIRouter, spec: ServiceSpec) -> None:
    @router.patch("/{key}/likes", **MESSAGE)
    def increment_likes(key: str, resource: CounterCollection = Depends(get_resource)):
        likes = resource.increment(key)
        return MessageResponse(message=f"{spec.label} likes incremented", likes=likes)


def _add_playlist_routes(router: APIRouter) -> None:
    @router.get("/by-user/{user_id}")
    def list_user_playlists(
        user_id: str, resource: PlaylistCollection = Depends(get_resource)
    ) -> List[Dict[str, Any]]:
        return serialize_document(resource.list_for_owner(user_id))

    @router.put("/{key}/videos", **MESSAGE)
    def merge_and_append_video(
        key: str,
        payload: PlaylistVideosRequest,
        resource: PlaylistCollection = Depends(get_resource),
    ):
        modified = resource.merge_and_append_video(key, payload.updates, payload.videoId)
        return MessageResponse(message=f"{modified} playlist(s) updated and video added.", modified=modified)

    @router.patch("/{key}/add-video", **MESSAGE)
    def add_video(key: str, payload: VideoIdRequest, resource: PlaylistCollection = Depends(get_resource)):
        modified = resource.add_video(key, payload.videoId)
        return MessageResponse(message=f"{modified} playlist(s) updated with added video.", modified=modified)

    @router.patch("/{key}/remove-video", **MESSAGE)
    def remove_video(key: str, payload: VideoIdRequest, resource: PlaylistCollection = Depends(get_resource)):
        modified = resource.remove_video(key, payload.videoId)
        return MessageResponse(message=f"{modified} playlist(s) updated with removed video.", modified=modified)


def _add_subscription_routes(router: APIRouter) -> None:
    @router.get("/{user_id}")
    def list_user_subscriptions(
        user_id: str, resource: SubscriptionCollection = Depends(get_resource)
    ) -> List[Dict[str, Any]]:
        return serialize_document(resource.for_participant(user_id))

    @router.post("", status_code=status.HTTP_201_CREATED)
    def create_subscription(
        payload: SubscriptionRequest, resource: SubscriptionCollection = Depends(get_resource)
    ) -> Dict[str, Any]:
        subscription = resource.subscribe(payload.subscriber, payload.channel)
        return {
            "message": "Subscription created successfully",
            "subscription": serialize_document(subscription),
        }
