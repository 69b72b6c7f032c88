import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.orm.exc import StaleDataError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

STATUS_CODES = {
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
}


class AppError(HTTPException):
    """HTTPException carrying a machine-readable error code."""

    def __init__(self, message: str, status_code: int = 400, code: str = "ERROR"):
        super().__init__(status_code=status_code, detail=message)
        self.code = code
        self.message = message


class NotFoundError(AppError):
    def __init__(self, message: str = "Not found", code: str = "NOT_FOUND"):
        super().__init__(message, 404, code)


def error_body(code: str, message: str) -> dict:
    return {"success": False, "error": {"code": code, "message": message}}


async def app_error_handler(request: Request, exc: AppError):
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.code, exc.message))


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404 and exc.detail == "Not Found":
        message = "Route not found"
    else:
        message = str(exc.detail)
    code = STATUS_CODES.get(exc.status_code, "ERROR")
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(code, message),
        headers=getattr(exc, "headers", None),
    )


async def validation_error_handler(request: Request, exc: RequestValidationError):
    parts = []
    for err in exc.errors():
        field = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{field}: {err.get('msg')}" if field else err.get("msg"))
    return JSONResponse(status_code=400, content=error_body("VALIDATION_ERROR", "; ".join(parts)))


async def stale_data_handler(request: Request, exc: StaleDataError):
    logger.warning(f"Concurrent update rejected on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=409,
        content=error_body("CONFLICT", "The record was modified by another request, reload and retry"),
    )


async def unexpected_error_handler(request: Request, exc: Exception):
    logger.error(f"Unexpected error on {request.method} {request.url.path}", exc_info=exc)
    return JSONResponse(
        status_code=500,
        content=error_body("INTERNAL_SERVER_ERROR", "Something went wrong"),
    )


def register_error_handlers(app: FastAPI):
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StaleDataError, stale_data_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)
