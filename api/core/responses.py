"""
Response encoding shared by all routes.

Success bodies are JSON (FastAPI's encoder handles Decimal/datetime), raw
bytes for images, or empty for 204. Every failure uses one shape:
`{"error": "<short message>"}`.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .errors import CatalogError, InternalError

logger = logging.getLogger(__name__)


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def binary_response(data: bytes, mimetype: str) -> Response:
    return Response(content=data, media_type=mimetype)


def no_content() -> Response:
    return Response(status_code=204)


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"

    first = errors[0]
    # loc looks like ("path", "product_id") or ("body", "price").
    field = ".".join(str(part) for part in first.get("loc", ())[1:])
    msg = str(first.get("msg") or "Invalid value")
    return f"{field}: {msg}" if field else msg


async def catalog_error_handler(_request: Request, exc: CatalogError) -> JSONResponse:
    return error_response(exc.status_code, exc.message)


async def request_validation_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
    return error_response(400, _validation_message(exc))


async def http_exception_handler(_request: Request, exc: StarletteHTTPException) -> Response:
    if exc.status_code == 204 or exc.status_code < 200:
        return Response(status_code=exc.status_code, headers=exc.headers)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=exc.headers,
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled exception on %s %s", request.method, request.url.path, exc_info=exc)
    return error_response(500, InternalError.default_message)


def install_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(CatalogError, catalog_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
