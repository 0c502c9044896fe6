"""Render every failure as {"error": {message, code, details?, timestamp}}."""

from datetime import datetime, timezone
from typing import Any

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from shared.errors.AppErrors import AppError

_HTTP_CODES = {
    401: "UNAUTHORIZED",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
}


def error_response(status_code: int, message: str, code: str, details: Any = None) -> JSONResponse:
    error: dict[str, Any] = {
        "message": message,
        "code": code,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    if details is not None:
        error["details"] = jsonable_encoder(details)
    return JSONResponse(status_code=status_code, content={"error": error})


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def handle_app_error(request: Request, exc: AppError) -> JSONResponse:
        logger = request.app.state.logging
        if exc.status_code >= 500:
            logger.error("%s %s failed with %s: %s", request.method, request.url.path, exc.code, exc.message)
        else:
            logger.warning("%s %s rejected with %s: %s", request.method, request.url.path, exc.code, exc.message)
        return error_response(exc.status_code, exc.message, exc.code, exc.details)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        request.app.state.logging.warning("%s %s rejected: invalid request body", request.method, request.url.path)
        return error_response(400, "Request validation failed", "VALIDATION_ERROR", exc.errors())

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code == 404 and exc.detail == "Not Found":
            message = f"Route {request.method} {request.url.path} not found"
        else:
            message = str(exc.detail)
        return error_response(exc.status_code, message, _HTTP_CODES.get(exc.status_code, "HTTP_ERROR"))

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        request.app.state.logging.exception("Unhandled error on %s %s", request.method, request.url.path)
        return error_response(500, str(exc) or exc.__class__.__name__, "INTERNAL_ERROR")
