from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from studyvault.config import Settings, settings
from studyvault.db import init_all_databases


@asynccontextmanager
async def lifespan(app: FastAPI):
    config: Settings = app.state.settings
    await init_all_databases(config.data_dir, config.sqlite_filename)
    yield


def create_app(config: Settings | None = None) -> FastAPI:
    """Build the API. `config` replaces the environment-derived settings."""
    config = config or settings
    application = FastAPI(
        title="StudyVault Backend", version="0.1.0", lifespan=lifespan
    )
    application.state.settings = config

    application.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    from studyvault.routers import flashcards, health

    application.include_router(health.router)
    application.include_router(
        flashcards.router, prefix="/knowledge/flashcards", tags=["flashcards"]
    )

    return application


app = create_app()
