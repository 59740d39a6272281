"""
Translate exceptions raised by routes into the JSON error envelope.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from civic.db import DuplicateRecordError, RecordNotFoundError

logger = logging.getLogger(__name__)

_VALUE_ERROR_PREFIX = "Value error, "


def error_body(message: str, errors: list[dict] | None = None) -> dict:
    body: dict = {"status": "error", "message": message}
    if errors is not None:
        body["errors"] = errors
    return body


def _field_errors(exc: RequestValidationError) -> list[dict]:
    errors = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ())]
        location = loc[0] if loc else None
        field = ".".join(loc[1:]) or location or "request"
        message = err.get("msg", "Invalid value")
        if message.startswith(_VALUE_ERROR_PREFIX):
            message = message[len(_VALUE_ERROR_PREFIX) :]
        errors.append({"field": field, "message": message, "location": location})
    return errors


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content=error_body("Validation failed", _field_errors(exc)),
    )


async def duplicate_record_handler(
    request: Request, exc: DuplicateRecordError
) -> JSONResponse:
    logger.info("Duplicate write on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=409, content=error_body("Resource already exists"))


async def record_not_found_handler(
    request: Request, exc: RecordNotFoundError
) -> JSONResponse:
    return JSONResponse(status_code=404, content=error_body("Resource not found"))


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content=error_body("Internal server error"))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(DuplicateRecordError, duplicate_record_handler)
    app.add_exception_handler(RecordNotFoundError, record_not_found_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
