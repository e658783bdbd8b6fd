import logging
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.logging import REQUEST_ID_HEADER, request_id_ctx

logger = logging.getLogger("app.errors")


class ApiError(Exception):
    """
    Base for every error the API reports on purpose.
    Raised where the problem is detected, turned into the error envelope at the boundary.
    """

    status_code = 500
    default_message = "Something went wrong"

    def __init__(self, message: str | None = None, errors: list[Any] | None = None):
        self.message = message or self.default_message
        self.errors = errors or []
        super().__init__(self.message)


class ValidationError(ApiError):
    status_code = 400
    default_message = "Invalid request"


class UploadError(ApiError):
    status_code = 400
    default_message = "File upload failed"


class AuthError(ApiError):
    status_code = 401
    default_message = "Unauthorized request"

    # machine-readable cause: Unauthorized, InvalidCredentials, InvalidToken, TokenExpiredOrReused
    def __init__(self, message: str | None = None, reason: str = "Unauthorized"):
        super().__init__(message, errors=[reason])
        self.reason = reason


class NotFoundError(ApiError):
    status_code = 404
    default_message = "Resource not found"


class ConflictError(ApiError):
    status_code = 409
    default_message = "Resource already exists"


class InternalError(ApiError):
    status_code = 500
    default_message = "Something went wrong"


def error_envelope(status_code: int, message: str, errors: list[Any] | None = None) -> dict:
    return {
        "statusCode": status_code,
        "message": message,
        "success": False,
        "errors": errors or [],
    }


def api_error_handler(request: Request, exc: ApiError):
    if exc.status_code >= 500:
        logger.error("%s path=%s: %s", type(exc).__name__, request.url.path, exc.message)
    else:
        logger.info(
            "%s %s path=%s", type(exc).__name__, exc.status_code, request.url.path
        )
    return JSONResponse(
        status_code=exc.status_code,
        content=error_envelope(exc.status_code, exc.message, exc.errors),
    )


def http_exception_handler(request: Request, exc: StarletteHTTPException):
    logger.info("HTTPException %s path=%s", exc.status_code, request.url.path)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_envelope(exc.status_code, str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.info("RequestValidationError path=%s", request.url.path)
    errors = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ())[1:]),
            "message": err.get("msg", ""),
        }
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400, content=error_envelope(400, "Invalid request", errors)
    )


def unhandled_exception_handler(request: Request, exc: Exception):
    # full trace stays in the server log only
    logger.exception("UnhandledException path=%s", request.url.path)
    rid = getattr(request.state, "request_id", None) or request_id_ctx.get()
    return JSONResponse(
        status_code=500,
        content=error_envelope(500, "Internal Server Error"),
        headers={REQUEST_ID_HEADER: rid},
    )
