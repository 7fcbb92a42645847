import logging
import uuid
from enum import Enum

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class CabinetError(Exception):
    """Base for every failure the service reports to a client."""

    status_code = 500
    code = "internal_error"

    def __init__(self, message: str, *, code: str | None = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code


class ConflictError(CabinetError):
    status_code = 409
    code = "conflict"


class BusyError(ConflictError):
    code = "busy"

    def __init__(self, message: str = "The record is being updated by another request, retry shortly"):
        super().__init__(message)


class PhoneTakenError(ConflictError):
    # Registration conflicts keep the historical 400 status.
    status_code = 400
    code = "phone_taken"

    def __init__(self, message: str = "A tutor with this phone number is already registered"):
        super().__init__(message)


class AuthFailure(str, Enum):
    MISSING_TOKEN = "missing_token"
    INVALID_TOKEN = "invalid_token"
    EXPIRED_TOKEN = "expired_token"
    UNKNOWN_PHONE = "unknown_phone"
    BAD_CREDENTIAL = "bad_credential"


class UnauthorizedError(CabinetError):
    status_code = 401
    code = "unauthorized"

    def __init__(self, reason: AuthFailure, message: str, *, code: str | None = None):
        super().__init__(message, code=code or reason.value)
        self.reason = reason


class SessionExpiredError(UnauthorizedError):
    def __init__(self, message: str = "Session has expired"):
        super().__init__(AuthFailure.EXPIRED_TOKEN, message)


class NotFoundError(CabinetError):
    status_code = 404
    code = "not_found"


class InvalidInputError(CabinetError):
    status_code = 400
    code = "invalid_input"


class StoreError(CabinetError):
    status_code = 500
    code = "store_error"


def get_request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "unknown")


def error_response(*, code: str, message: str, status_code: int) -> JSONResponse:
    payload = {
        "success": False,
        "error": message,
        "code": code,
    }
    return JSONResponse(status_code=status_code, content=payload)


async def cabinet_exception_handler(request: Request, exc: CabinetError):
    if exc.status_code >= 500:
        logger.error(
            "Request failed | request_id=%s | code=%s | %s",
            get_request_id(request),
            exc.code,
            exc.message,
            exc_info=exc.__cause__ or exc,
        )
        # Store details never leave the process.
        return error_response(code=exc.code, message="Internal server error", status_code=exc.status_code)
    return error_response(code=exc.code, message=exc.message, status_code=exc.status_code)


async def http_exception_handler(request: Request, exc: HTTPException):
    return error_response(
        code="http_error",
        message=str(exc.detail),
        status_code=exc.status_code,
    )


def _describe_validation_error(errors: list[dict]) -> str:
    if not errors:
        return "Request validation failed"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = str(first.get("msg") or "invalid value")
    return f"{location}: {message}" if location else message


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return error_response(
        code="validation_error",
        message=_describe_validation_error(list(exc.errors())),
        status_code=400,
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception | request_id=%s", get_request_id(request), exc_info=exc)
    return error_response(
        code="internal_error",
        message="Internal server error",
        status_code=500,
    )


async def request_id_middleware(request: Request, call_next):
    incoming = request.headers.get("x-request-id")
    request.state.request_id = incoming or str(uuid.uuid4())
    response = await call_next(request)
    response.headers["x-request-id"] = request.state.request_id
    return response
