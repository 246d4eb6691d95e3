import argparse
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import List, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import Settings, load_settings
from database import COLLECTIONS, Store, connect, ping
from errors import register_exception_handlers
from logging_config import setup_logging
from mutations import PlaylistCollection, ResourceCollection
from routes import SERVICES, build_router

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ServiceContext:
    """Everything a request handler needs, built once per process."""

    service: str
    settings: Settings
    store: Store
    resource: ResourceCollection


def build_context(service: str, settings: Settings, store: Store) -> ServiceContext:
    spec = SERVICES[service]
    collection = store.collection(COLLECTIONS[service])
    if issubclass(spec.collection_class, PlaylistCollection):
        resource = spec.collection_class(
            collection, spec.key_field, spec.label, merge_attempts=settings.PLAYLIST_MERGE_ATTEMPTS
        )
    else:
        resource = spec.collection_class(collection, spec.key_field, spec.label)
    return ServiceContext(service=service, settings=settings, store=store, resource=resource)


def create_app(service: str, settings: Settings, store: Store) -> FastAPI:
    """Build the app for one resource service on an already-open store."""
    context = build_context(service, settings, store)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        context.resource.ensure_indexes()
        logger.info("%s service ready", service)
        yield
        store.close()
        logger.info("%s service stopped", service)

    app = FastAPI(title=f"{service.capitalize()} Service", lifespan=lifespan)
    app.state.context = context

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    # -------------------- Basic Routes --------------------
    @app.get("/")
    def read_root():
        return {"service": service, "message": f"{service} service is running"}

    @app.get("/health")
    def health():
        info = {"backend": "running", "service": service}
        info.update(ping(store))
        return info

    app.include_router(build_router(SERVICES[service]))
    return app


def main(argv: Optional[List[str]] = None) -> None:
    import uvicorn

    parser = argparse.ArgumentParser(description="Run one resource service.")
    parser.add_argument("service", choices=sorted(SERVICES))
    args = parser.parse_args(argv)

    settings = load_settings()
    setup_logging(settings.LOG_LEVEL, settings.LOG_FILE)
    store = connect(settings)
    app = create_app(args.service, settings, store)

    port = settings.port_for(args.service)
    logger.info("Starting %s service on %s:%d", args.service, settings.API_HOST, port)
    uvicorn.run(app, host=settings.API_HOST, port=port, log_level=settings.LOG_LEVEL.lower())


if __name__ == "__main__":
    main()
