import logging

from fastapi import HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import IntegrityError

from coaching.core.responses import ErrorResponse

logger = logging.getLogger(__name__)

ERROR_CODES = {
    status.HTTP_400_BAD_REQUEST: "BAD_REQUEST",
    status.HTTP_401_UNAUTHORIZED: "UNAUTHORIZED",
    status.HTTP_403_FORBIDDEN: "FORBIDDEN",
    status.HTTP_404_NOT_FOUND: "NOT_FOUND",
    status.HTTP_409_CONFLICT: "CONFLICT",
    status.HTTP_422_UNPROCESSABLE_ENTITY: "VALIDATION_ERROR",
    status.HTTP_500_INTERNAL_SERVER_ERROR: "INTERNAL",
}


def _error(request: Request, status_code: int, detail: object, headers: dict | None = None) -> JSONResponse:
    body = ErrorResponse(
        detail=detail,
        code=ERROR_CODES.get(status_code, "ERROR"),
        request_id=getattr(request.state, "request_id", None),
    )
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body), headers=headers)


async def http_exception_handler(request: Request, exc: HTTPException):
    return _error(request, exc.status_code, exc.detail, headers=getattr(exc, "headers", None))

async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return _error(request, status.HTTP_422_UNPROCESSABLE_ENTITY, jsonable_encoder(exc.errors()))

async def integrity_exception_handler(request: Request, exc: IntegrityError):
    logger.warning("Integrity error on %s %s: %s", request.method, request.url.path, exc.orig)
    return _error(
        request,
        status.HTTP_409_CONFLICT,
        "Database conflict. A record with this identifier likely already exists.",
    )

async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(
        "Unhandled error on %s %s (request_id=%s)",
        request.method,
        request.url.path,
        getattr(request.state, "request_id", None),
    )
    return _error(request, status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")
