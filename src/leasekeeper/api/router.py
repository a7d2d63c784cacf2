"""REST API router."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from leasekeeper import __version__
from leasekeeper.api.deps import get_db_session, get_holder
from leasekeeper.api.schemas import (
    HealthResponse,
    LeaseGrantResponse,
    LeaseRequest,
    LeaseResponse,
    LedgerEntryResponse,
    MutationResponse,
    OkResponse,
    RedeemRequest,
)
from leasekeeper.config import settings
from leasekeeper.engine import LeaseKeeperError, LeaseManager, MutationExecutor
from leasekeeper.models import ResourceType
from leasekeeper.observability.metrics import metrics

router = APIRouter(prefix="/v1")


def _http_error(e: LeaseKeeperError) -> HTTPException:
    return HTTPException(
        status_code=e.http_status,
        detail={"code": e.code, "message": e.message},
    )


# ============================================================================
# Health & Metrics
# ============================================================================


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return HealthResponse(status="healthy", version=__version__, environment=settings.env.value)


@router.get("/metrics")
async def get_metrics():
    """In-process counters and timings."""
    return metrics.snapshot()


# ============================================================================
# Leases
# ============================================================================


@router.post(
    "/leases",
    response_model=LeaseGrantResponse,
    status_code=status.HTTP_201_CREATED,
)
async def request_lease(
    request: LeaseRequest,
    holder: str = Depends(get_holder),
    session: AsyncSession = Depends(get_db_session),
):
    """
    Acquire an exclusive lease on a resource for one operation.

    Fails fast with 409 if the resource is already leased; callers retry.
    """
    manager = LeaseManager(session, ttl_seconds=request.ttl_seconds)
    try:
        lease = await manager.request(
            resource_type=request.resource_type,
            resource_id=request.resource_id,
            holder=holder,
            operation=request.operation,
            details=request.details,
        )
    except LeaseKeeperError as e:
        raise _http_error(e) from e

    return LeaseGrantResponse(
        token=lease.token,
        expires_at=lease.expires_at,
        operation=lease.operation,
        details=lease.details,
        resource_type=lease.resource_type,
        resource_id=lease.resource_id,
    )


@router.post("/leases/{token}/release", response_model=OkResponse)
async def release_lease(
    token: str,
    holder: str = Depends(get_holder),
    session: AsyncSession = Depends(get_db_session),
):
    """Give up a lease without applying its mutation."""
    try:
        await LeaseManager(session).release(token, holder)
    except LeaseKeeperError as e:
        raise _http_error(e) from e
    return OkResponse()


@router.post("/leases/{token}/cancel", response_model=OkResponse)
async def cancel_lease(
    token: str,
    holder: str = Depends(get_holder),
    session: AsyncSession = Depends(get_db_session),
):
    """Abandon a lease."""
    try:
        await LeaseManager(session).cancel(token, holder)
    except LeaseKeeperError as e:
        raise _http_error(e) from e
    return OkResponse()


@router.get("/leases/active/{resource_type}/{resource_id}", response_model=LeaseResponse)
async def get_active_lease(
    resource_type: ResourceType,
    resource_id: UUID,
    session: AsyncSession = Depends(get_db_session),
):
    """Current live lease on a resource."""
    try:
        lease = await LeaseManager(session).get_active(resource_type, resource_id)
    except LeaseKeeperError as e:
        raise _http_error(e) from e
    return LeaseResponse.from_lease(lease)


@router.post("/leases/{token}/redeem", response_model=MutationResponse)
async def redeem_lease(
    token: str,
    request: RedeemRequest,
    holder: str = Depends(get_holder),
    session: AsyncSession = Depends(get_db_session),
):
    """Apply the leased mutation and complete the lease."""
    executor = MutationExecutor(session)
    try:
        result = await executor.redeem(token, holder, request.model_dump())
    except LeaseKeeperError as e:
        raise _http_error(e) from e

    return MutationResponse(
        lease=LeaseResponse.from_lease(result.lease),
        ledger_entries=[
            LedgerEntryResponse.model_validate(entry.model_dump(mode="json"))
            for entry in result.ledger_entries
        ],
        resource=result.resource,
    )
