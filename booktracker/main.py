"""
FastAPI application for the Book Tracker API.
"""

import time
from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from booktracker.config import config
from booktracker.database import MongoConnection
from booktracker.errors import (
    BookTrackerError, InternalError, RouteNotFoundError, ValidationError
)
from booktracker.models import ErrorResponse
from booktracker.routes import router
from utilities.logger import RequestLogger

# Setup logging
logger = structlog.get_logger(__name__)
request_logger = RequestLogger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    # Startup
    logger.info("Starting Book Tracker API")

    mongo = MongoConnection(
        uri=config.mongo_uri,
        database_name=config.mongodb_database,
        timeout_ms=config.mongo_timeout_ms,
    )
    try:
        await mongo.connect()
    except Exception as e:
        logger.error("Failed to connect to database", error=str(e))
        raise

    app.state.mongo = mongo

    yield

    # Shutdown
    logger.info("Shutting down Book Tracker API")
    await mongo.disconnect()


# Create FastAPI application
app = FastAPI(
    title=config.api_title,
    description=config.api_description,
    version=config.api_version,
    license_info={
        "name": "MIT",
        "url": "https://opensource.org/licenses/MIT",
    },
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.cors_origins,
    allow_credentials=config.cors_allow_credentials,
    allow_methods=config.cors_allow_methods,
    allow_headers=config.cors_allow_headers,
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log method, path, status and duration of every request."""
    started = time.perf_counter()
    response = await call_next(request)
    request_logger.log_request(
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=(time.perf_counter() - started) * 1000,
    )
    return response


def error_response(
    request: Request,
    error: BookTrackerError,
    detail: Optional[str] = None,
    exc: Optional[BaseException] = None,
) -> JSONResponse:
    """Log a failure and render it as the uniform error body."""
    request_logger.log_failure(
        method=request.method,
        path=request.url.path,
        status_code=error.status_code,
        error=error.message,
        kind=error.kind.value,
        exc=exc,
    )
    return JSONResponse(
        status_code=error.status_code,
        content=ErrorResponse(
            error=error.message,
            detail=detail,
            status_code=error.status_code
        ).model_dump(exclude_none=True)
    )


# Exception handlers
@app.exception_handler(BookTrackerError)
async def book_tracker_exception_handler(request: Request, exc: BookTrackerError):
    """Handle errors raised by the repository."""
    return error_response(request, exc, exc=exc)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Unmatched routes and methods become a uniform 404."""
    if exc.status_code in (404, 405):
        return error_response(request, RouteNotFoundError())
    message = str(exc.detail)
    request_logger.log_failure(
        method=request.method,
        path=request.url.path,
        status_code=exc.status_code,
        error=message,
        kind="http",
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error=message, status_code=exc.status_code).model_dump(exclude_none=True),
        headers=getattr(exc, "headers", None)
    )


@app.exception_handler(RequestValidationError)
async def request_validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed request bodies are validation failures."""
    messages = [error.get("msg", "invalid value") for error in exc.errors()]
    return error_response(request, ValidationError("; ".join(messages) or None))


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle general exceptions."""
    return error_response(
        request,
        InternalError(),
        detail=str(exc) if config.debug else None,
        exc=exc
    )


app.include_router(router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "booktracker.main:app",
        host=config.host,
        port=config.port,
        reload=config.debug,
        log_level=config.log_level.lower()
    )
