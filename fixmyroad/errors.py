import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)


class ApiError(Exception):
    status_code = 500
    message = "internal"

    def __init__(self, message=None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class ValidationError(ApiError):
    status_code = 400
    message = "invalid_request"


class NotFound(ApiError):
    status_code = 404
    message = "not_found"


class UploadTooLarge(ApiError):
    status_code = 413
    message = "file_too_large"


class StartupError(Exception):
    """Missing configuration or an unrecoverable connect/bind failure."""


async def api_error_handler(request: Request, exc: ApiError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def request_validation_handler(request: Request, exc: RequestValidationError):
    # The rejected input itself is left out; it may not be JSON-encodable (NaN, inf)
    details = [{"loc": err["loc"], "msg": err["msg"], "type": err["type"]} for err in exc.errors()]
    return JSONResponse(
        status_code=400,
        content={"error": "invalid_request", "details": jsonable_encoder(details)},
    )


async def unhandled_error_handler(request: Request, exc: Exception):
    """Log unhandled exceptions server-side; the client only sees a generic 500."""
    logger.exception("Unhandled %s on %s %s", type(exc).__name__, request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "internal"})


async def catch_unhandled_errors(request: Request, call_next):
    try:
        return await call_next(request)
    except Exception as exc:
        return await unhandled_error_handler(request, exc)


def register_error_handlers(app: FastAPI) -> None:
    """
    Must run before CORSMiddleware is added, so the catch-all sits inside it
    and 500 responses still carry CORS headers.
    """
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_middleware(BaseHTTPMiddleware, dispatch=catch_unhandled_errors)
