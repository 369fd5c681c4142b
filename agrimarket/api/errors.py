# agrimarket/api/errors.py
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from agrimarket.domain.errors import (
    AgrimarketError,
    ConflictError,
    ForbiddenError,
    InvalidArgumentError,
    InvalidStateError,
    NotFoundError,
    TokenExpiredError,
)
from agrimarket.utils.logging import get_logger

logger = get_logger(__name__)

ERROR_STATUS_CODES = {
    NotFoundError: 404,
    InvalidArgumentError: 400,
    InvalidStateError: 409,
    ConflictError: 409,
    TokenExpiredError: 401,
    ForbiddenError: 403,
}


async def agrimarket_error_handler(request: Request, exc: AgrimarketError) -> JSONResponse:
    """Map AgrimarketError subclasses to appropriate HTTP responses."""
    status_code = ERROR_STATUS_CODES.get(type(exc), 500)
    return JSONResponse(
        status_code=status_code,
        content={"detail": str(exc), "error_type": type(exc).__name__},
    )


async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error(f"Database error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AgrimarketError, agrimarket_error_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)
