import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from retainly.config import settings
from retainly.db import CardStore, build_store
from retainly.errors import (
    ConcurrencyConflict,
    NotFound,
    RetainlyError,
    SessionStateError,
    StoreError,
    ValidationError,
)
from retainly.services.session_registry import SessionNotFound, SessionRegistry

logger = logging.getLogger(__name__)

_ERROR_STATUS = {
    ValidationError: 422,
    NotFound: 404,
    SessionNotFound: 404,
    ConcurrencyConflict: 409,
    SessionStateError: 409,
    StoreError: 503,
}


def _status_for(exc: RetainlyError) -> int:
    for exc_type, status_code in _ERROR_STATUS.items():
        if isinstance(exc, exc_type):
            return status_code
    return 500


async def _handle_domain_error(request: Request, exc: RetainlyError) -> JSONResponse:
    return JSONResponse(status_code=_status_for(exc), content={"detail": str(exc)})


@asynccontextmanager
async def lifespan(app: FastAPI):
    store: CardStore = app.state.store
    await store.open()
    logger.info("Retainly backend started with %s", type(store).__name__)
    yield
    await store.close()


def create_app(store: CardStore | None = None) -> FastAPI:
    application = FastAPI(
        title="Retainly Backend", version="0.1.0", lifespan=lifespan
    )
    application.state.store = store if store is not None else build_store(
        settings.store_backend, settings.data_dir, settings.sqlite_filename
    )
    application.state.sessions = SessionRegistry(max_sessions=settings.max_sessions)

    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    application.add_exception_handler(RetainlyError, _handle_domain_error)

    from retainly.routers import cards, health, review

    application.include_router(health.router)
    application.include_router(cards.router, prefix="/cards", tags=["cards"])
    application.include_router(review.router, prefix="/review", tags=["review"])

    return application


app = create_app()
