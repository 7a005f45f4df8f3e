"""FastAPI application assembly: routers, error mapping and store lifecycle."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from relaychat.domain.errors import (
    BackendError,
    DomainError,
    InvalidArgumentError,
    NotFoundError,
    PersistenceError,
)
from relaychat.infrastructure.app_factory import AppFactory
from relaychat.routes.chat_routes import router as chat_router
from relaychat.routes.conversation_routes import router as conversation_router
from relaychat.routes.env_routes import router as env_router
from relaychat.routes.health_routes import router as health_router
from relaychat.routes.title_routes import router as title_router
from relaychat.version import VERSION

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the conversation store on startup and close it on shutdown."""
    factory: AppFactory = app.state.app_factory
    logger.info("Starting RelayChat backend")
    factory.open()
    try:
        yield
    finally:
        logger.info("Shutting down RelayChat backend")
        factory.close()


def _error_response(status_code: int, exc: DomainError) -> JSONResponse:
    content = {"detail": exc.message}
    if exc.code:
        content["code"] = exc.code
    return JSONResponse(status_code=status_code, content=content)


async def _not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    return _error_response(404, exc)


async def _invalid_argument_handler(request: Request, exc: InvalidArgumentError) -> JSONResponse:
    return _error_response(400, exc)


async def _backend_error_handler(request: Request, exc: BackendError) -> JSONResponse:
    logger.error(
        "Backend error on %s %s: %s (backend=%s, upstream status=%s)",
        request.method,
        request.url.path,
        exc.message,
        exc.backend,
        exc.status_code,
    )
    return _error_response(500, exc)


async def _persistence_error_handler(request: Request, exc: PersistenceError) -> JSONResponse:
    logger.error("Persistence error on %s %s: %s", request.method, request.url.path, exc.message)
    return _error_response(500, exc)


async def _domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    logger.error("Unhandled domain error on %s %s: %s", request.method, request.url.path, exc.message)
    return _error_response(500, exc)


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        problems.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return JSONResponse(status_code=400, content={"detail": "; ".join(problems) or "Invalid request"})


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled error on %s %s: %s", request.method, request.url.path, exc, exc_info=True)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


def create_app(app_factory: Optional[AppFactory] = None) -> FastAPI:
    """Build the ASGI app around an AppFactory (a fresh one when omitted)."""
    factory = app_factory or AppFactory()

    app = FastAPI(
        title="RelayChat Backend",
        description="Conversation store and LLM relay for the RelayChat front-end",
        version=VERSION,
        lifespan=lifespan,
    )
    app.state.app_factory = factory

    app.add_exception_handler(NotFoundError, _not_found_handler)
    app.add_exception_handler(InvalidArgumentError, _invalid_argument_handler)
    app.add_exception_handler(BackendError, _backend_error_handler)
    app.add_exception_handler(PersistenceError, _persistence_error_handler)
    app.add_exception_handler(DomainError, _domain_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)

    app.include_router(health_router)
    app.include_router(conversation_router)
    app.include_router(title_router)
    app.include_router(chat_router)
    app.include_router(env_router)

    return app
