"""FastAPI application setup."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ..app import Application
from .routes import (
    create_control_router,
    create_conversations_router,
    create_profiles_router,
)
from .routes.control import IScenario


def create_fastapi_app(
    application: Application,
    sim: IScenario | None = None,
) -> FastAPI:
    """Create and configure FastAPI application around ``application``."""

    @asynccontextmanager
    async def lifespan(fastapi_app: FastAPI):
        await application.start()
        yield
        if sim is not None:
            await sim.stop()
        await application.stop()

    fastapi_app = FastAPI(
        title="Inbox API",
        description="Conversation list API for the inbox sidebar",
        version="0.1.0",
        lifespan=lifespan,
    )

    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:5173", "http://localhost:5174"],  # Vite default
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    fastapi_app.include_router(create_conversations_router(application))
    fastapi_app.include_router(create_profiles_router(application))
    fastapi_app.include_router(create_control_router(application, sim))

    return fastapi_app
