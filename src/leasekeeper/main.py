"""LeaseKeeper main application."""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from leasekeeper import __version__
from leasekeeper.api import router
from leasekeeper.config import settings
from leasekeeper.db.base import close_db, init_db
from leasekeeper.tasks.sweep import start_lease_sweep, stop_lease_sweep

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger("leasekeeper")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    logger.info("Starting LeaseKeeper server...")
    logger.info(f"Environment: {settings.env.value}")
    logger.info(
        f"Lease TTL: {settings.lease_ttl_seconds}s (max {settings.max_lease_ttl_seconds}s)"
    )

    await init_db()
    logger.info("Database initialized")

    if settings.lease_sweep_enabled:
        await start_lease_sweep()
        logger.info("Lease sweep task started")
    else:
        logger.info("Lease sweep disabled; relying on lazy expiry")

    yield

    logger.info("Shutting down LeaseKeeper server...")
    await stop_lease_sweep()
    await close_db()
    logger.info("Shutdown complete")


app = FastAPI(
    title="LeaseKeeper",
    description="Exclusive operation leases with atomic ledgered redemption",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allowed_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allowed_methods,
    allow_headers=settings.cors_allowed_headers,
)

app.include_router(router)


def main():
    """Entry point for the application."""
    uvicorn.run(
        "leasekeeper.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
