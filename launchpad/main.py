"""FastAPI application entry point."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from launchpad.config import settings
from launchpad.database import create_db_and_tables
from launchpad.utils.logging import setup_logging
from launchpad.api import credentials, pools, system


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    setup_logging()
    create_db_and_tables()
    settings.keypairs_dir.mkdir(parents=True, exist_ok=True)

    from launchpad.engine.scheduler import start_scheduler, stop_scheduler
    start_scheduler()

    yield

    stop_scheduler()
    from launchpad.api.deps import close_clients
    await close_clients()


app = FastAPI(
    title="Launchpad Service",
    description="Bonding-curve token pool creation with co-signing pool keypairs",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Mount routers
app.include_router(credentials.router)
app.include_router(pools.router)
app.include_router(system.router)
