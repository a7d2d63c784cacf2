"""API dependencies."""

import logging
from typing import AsyncGenerator

from fastapi import Header, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from leasekeeper.db import base
from leasekeeper.engine.errors import LeaseKeeperError

logger = logging.getLogger(__name__)


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Get a request-scoped database session.

    Domain errors (and the HTTP errors the router maps them to) are raised
    only after their savepoint has rolled back, so the session is still
    committed: this keeps lazy expiry flips made while rejecting the request.
    Any other exception rolls back.
    """
    async with base.async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except (LeaseKeeperError, HTTPException):
            await session.commit()
            raise
        except Exception:
            await session.rollback()
            raise


async def get_holder(
    x_actor_id: str | None = Header(None, alias="X-Actor-ID"),
) -> str:
    """
    Holder identity for the request.

    Authentication happens upstream; the gateway forwards the authenticated
    actor in ``X-Actor-ID``.
    """
    if not x_actor_id or not x_actor_id.strip():
        raise HTTPException(
            status_code=401,
            detail={"code": "MISSING_ACTOR", "message": "Missing X-Actor-ID header"},
        )
    return x_actor_id.strip()
