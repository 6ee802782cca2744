"""
Exception handlers. Every error response body is ``{"error": "<message>"}``.
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from core.exceptions import APIError, IntegrationError
import logging

logger = logging.getLogger(__name__)


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "-")


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path"))
    message = first.get("msg", "Invalid request")
    return f"{location}: {message}" if location else message


async def api_error_handler(request: Request, exc: APIError):
    if exc.status_code >= 500:
        logger.error(f"[{_request_id(request)}] {exc}", extra={"error_context": exc.to_dict()})
    else:
        logger.info(f"[{_request_id(request)}] {exc.status_code} {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def validation_error_handler(request: Request, exc: RequestValidationError):
    message = _validation_message(exc)
    logger.info(f"[{_request_id(request)}] 400 {message}")
    return JSONResponse(status_code=400, content={"error": message})


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)}, headers=exc.headers)


async def integration_error_handler(request: Request, exc: IntegrationError):
    logger.error(f"[{_request_id(request)}] {exc}", extra={"error_context": exc.to_dict()})
    return JSONResponse(status_code=502, content={"error": exc.message})


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"[{_request_id(request)}] Unhandled error: {exc}")
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


def register_exception_handlers(app: FastAPI):
    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(IntegrationError, integration_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
