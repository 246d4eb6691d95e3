"""
Error kinds raised by the mutation layer and their HTTP mapping.

Not-found, validation and conflict outcomes carry a plain message and
map to 404, 400 and 409. Every other failure becomes a 500 whose body
carries the underlying error text.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pymongo.errors import DuplicateKeyError, PyMongoError

logger = logging.getLogger(__name__)


class ResourceError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ResourceNotFound(ResourceError):
    status_code = 404


class ValidationFailed(ResourceError):
    status_code = 400


class ResourceConflict(ResourceError):
    status_code = 409


def _internal_error(request: Request, exc: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=500,
        content={"detail": f"Error {request.method} {request.url.path}: {exc}"},
    )


async def resource_error_handler(request: Request, exc: ResourceError) -> JSONResponse:
    logger.info("%s %s -> %s: %s", request.method, request.url.path, exc.status_code, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


async def duplicate_key_handler(request: Request, exc: DuplicateKeyError) -> JSONResponse:
    logger.warning("%s %s -> duplicate key: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=409, content={"detail": "Document already exists"})


async def store_error_handler(request: Request, exc: PyMongoError) -> JSONResponse:
    logger.exception("Store error on %s %s", request.method, request.url.path, exc_info=exc)
    return _internal_error(request, exc)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    # Bodies that are not JSON at all are treated like any other failure.
    if any(err.get("type") == "json_invalid" for err in errors):
        return _internal_error(request, Exception("malformed JSON body"))
    fields = []
    for err in errors:
        loc = [str(part) for part in err.get("loc", ()) if part != "body"]
        fields.append(".".join(loc) or "body")
    return JSONResponse(status_code=400, content={"detail": f"Invalid request: {', '.join(fields)}"})


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return _internal_error(request, exc)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ResourceError, resource_error_handler)
    app.add_exception_handler(DuplicateKeyError, duplicate_key_handler)
    app.add_exception_handler(PyMongoError, store_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
