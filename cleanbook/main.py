# cleanbook/main.py
from __future__ import annotations

# Load .env early so settings and the Firebase SDK see it
from dotenv import load_dotenv
load_dotenv()

from contextlib import asynccontextmanager
from typing import Callable, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from cleanbook.api.routes.appointments import router as appointments_router
from cleanbook.api.routes.health import router as health_router
from cleanbook.api.routes.payments import router as payments_router
from cleanbook.api.routes.users import router as users_router
from cleanbook.core.config import Settings, get_settings
from cleanbook.core.errors import NotFound, StoreUnavailable, UniquenessViolation, ValidationFailure
from cleanbook.core.logging import LoggingMiddleware, get_logger, setup_logging
from cleanbook.services.context import StoreContext

logger = get_logger(__name__)


def _error_response(status_code: int, exc) -> JSONResponse:
    return JSONResponse({"status": "error", **exc.to_dict()}, status_code=status_code)


def create_app(
    settings: Optional[Settings] = None,
    context_factory: Callable[[Settings], StoreContext] = StoreContext.from_settings,
) -> FastAPI:
    settings = settings or get_settings()
    setup_logging(
        debug=settings.is_development,
        max_log_length=settings.MAX_LOG_LENGTH,
        level=settings.LOG_LEVEL,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.stores = context_factory(settings)
        try:
            yield
        finally:
            await app.state.stores.aclose()

    app = FastAPI(
        title="CleanBook",
        description="Cleaning-service bookings and payments over Firestore and Postgres",
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.middleware("http")(LoggingMiddleware(
        log_requests=settings.LOG_REQUESTS,
        log_responses=settings.LOG_RESPONSES,
    ))
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(StoreUnavailable)
    async def store_unavailable(request: Request, exc: StoreUnavailable):
        logger.error("store_unavailable", path=request.url.path, operation=exc.operation)
        return _error_response(503, exc)

    @app.exception_handler(UniquenessViolation)
    async def uniqueness_violation(request: Request, exc: UniquenessViolation):
        return _error_response(409, exc)

    @app.exception_handler(ValidationFailure)
    async def validation_failure(request: Request, exc: ValidationFailure):
        return _error_response(422, exc)

    @app.exception_handler(NotFound)
    async def not_found(request: Request, exc: NotFound):
        return _error_response(404, exc)

    app.include_router(health_router)
    app.include_router(users_router)
    app.include_router(appointments_router)
    app.include_router(payments_router)
    return app


app = create_app()
