"""Main FastAPI application."""

import logging
from contextlib import asynccontextmanager

from fastapi import APIRouter, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ..core.errors import ConfigError, ModelLoadError, PilotError, ServiceUnavailableError
from ..session import WorkspaceSession
from .routes import completion, indexing

logger = logging.getLogger(__name__)


def _status_for(error: PilotError) -> int:
    if isinstance(error, ConfigError):
        return 400
    if isinstance(error, (ServiceUnavailableError, ModelLoadError)):
        return 503
    return 502


def create_app(session: WorkspaceSession, open_workspace: bool = False) -> FastAPI:
    """Build the HTTP surface around a workspace session.

    With ``open_workspace`` the persisted index is loaded and refreshed on
    startup, as if the host had sent ``workspace_opened``.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if open_workspace:
            from ..core.events import WorkspaceOpened
            try:
                await session.handle(WorkspaceOpened())
            except PilotError as e:
                logger.error(f"Initial indexing failed: {e}")
        yield
        await session.close()

    app = FastAPI(title="Pilot Backend", lifespan=lifespan)
    app.state.session = session

    # Setup CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(PilotError)
    async def pilot_error_handler(request: Request, exc: PilotError):
        return JSONResponse(status_code=_status_for(exc), content=exc.to_dict())

    api_router = APIRouter(prefix="/api")
    api_router.include_router(indexing.router)
    api_router.include_router(completion.router)
    app.include_router(api_router)

    return app
