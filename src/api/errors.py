"""
Exception handlers - Map domain errors to HTTP responses.

Route-specific failures (unknown token, delivery failures) are handled
in the routes themselves; the handlers here cover errors that mean the
same thing wherever they are raised.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, RedirectResponse

from src.domain.exceptions import StorageError, Unauthenticated, ValidationError

logger = logging.getLogger(__name__)

LOGIN_PATH = "/login"


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed request bodies, forms and query strings are client errors (400)."""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": jsonable_encoder(exc.errors())},
    )


async def domain_validation_handler(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": str(exc)},
    )


async def unauthenticated_handler(request: Request, exc: Unauthenticated) -> RedirectResponse:
    """Browser pages redirect to the login form instead of sending a 401 challenge."""
    return RedirectResponse(LOGIN_PATH, status_code=status.HTTP_303_SEE_OTHER)


async def storage_error_handler(request: Request, exc: StorageError) -> JSONResponse:
    """Persistence failures are fatal to the request and never leak details."""
    logger.error("Storage failure on %s %s: %r", request.method, request.url.path, exc.__cause__)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


def install_exception_handlers(app: FastAPI) -> None:
    """Register the domain exception handlers on an application."""
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(ValidationError, domain_validation_handler)
    app.add_exception_handler(Unauthenticated, unauthenticated_handler)
    app.add_exception_handler(StorageError, storage_error_handler)
