"""Resource strategy base - per-kind preconditions and mutations."""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from datetime import datetime
from decimal import Decimal
from typing import Any, ClassVar
from uuid import UUID

from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel
from sqlalchemy.ext.asyncio import AsyncSession

from leasekeeper.db.repositories import LedgerRepository
from leasekeeper.engine.errors import MismatchedOperation, PreconditionFailed
from leasekeeper.models import Lease, LedgerEntry, LedgerEntryType, ResourceType

CENT = Decimal("0.01")


class OperationDetails(BaseModel):
    """
    Validated details of one leased operation.

    Accepts camelCase (wire) or snake_case keys. ``match_fields`` lists the
    camelCase keys a redemption payload must repeat exactly.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    match_fields: ClassVar[tuple[str, ...]] = ()

    def normalized(self) -> dict[str, Any]:
        """JSON-safe details as stored on the lease (decimals as strings)."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


def describe_validation_error(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"]) or "details"
        parts.append(f"{location}: {error['msg']}")
    return "; ".join(parts)


class ResourceStrategy(ABC):
    """
    Everything the engine needs to know about one guarded resource kind.

    Strategies are stateless; the session is passed per call so one
    registry can serve every request.
    """

    resource_type: ClassVar[ResourceType]
    details_models: ClassVar[dict[str, type[OperationDetails]]]

    @property
    def operations(self) -> frozenset[str]:
        return frozenset(self.details_models)

    def parse_details(self, operation: str, details: Mapping[str, Any] | None) -> OperationDetails:
        """Validate raw details for ``operation``."""
        model = self.details_models.get(operation)
        if model is None:
            allowed = ", ".join(sorted(self.operations))
            raise PreconditionFailed(
                f"Unknown operation '{operation}' for {self.resource_type.value} "
                f"(expected one of: {allowed})"
            )
        try:
            return model.model_validate(dict(details or {}))
        except ValidationError as e:
            raise PreconditionFailed(
                f"Invalid details for {operation}: {describe_validation_error(e)}"
            ) from e

    def redemption_details(self, lease: Lease, payload: Mapping[str, Any]) -> OperationDetails:
        """
        Resolve the details a redemption will apply.

        The leased details are authoritative. Payload fields listed in
        ``match_fields`` must equal what was leased; fields the lease did not
        record may be supplied by the payload.
        """
        fields = {_wire_key(key): value for key, value in payload.items() if key != "operation"}
        details = self.parse_details(lease.operation, {**fields, **lease.details})

        for key in type(details).match_fields:
            if key not in lease.details:
                continue
            if key not in fields:
                raise MismatchedOperation(
                    f"Redemption of {lease.operation} must state {key} "
                    f"(leased: {lease.details[key]})"
                )
            offered = self.parse_details(
                lease.operation, {**lease.details, key: fields[key]}
            ).normalized().get(key)
            if offered != lease.details[key]:
                raise MismatchedOperation(
                    f"{key} {offered} does not match leased {key} {lease.details[key]}"
                )
        return details

    @abstractmethod
    async def load(self, session: AsyncSession, resource_id: UUID) -> BaseModel | None:
        """Load the guarded record, or None if it does not exist."""

    @abstractmethod
    async def check_precondition(
        self,
        session: AsyncSession,
        resource: BaseModel,
        operation: str,
        details: OperationDetails,
    ) -> None:
        """Raise PreconditionFailed if ``operation`` may not run against ``resource``."""

    @abstractmethod
    async def apply(
        self,
        session: AsyncSession,
        lease: Lease,
        resource: BaseModel,
        details: OperationDetails,
        now: datetime,
    ) -> list[LedgerEntry]:
        """
        Write pending ledger entries and update the aggregate.

        Runs inside the redemption savepoint; raising rolls everything back.
        """

    async def snapshot(self, session: AsyncSession, resource_id: UUID) -> dict[str, Any]:
        resource = await self.load(session, resource_id)
        return resource.model_dump(mode="json") if resource else {}

    async def record(
        self,
        session: AsyncSession,
        lease: Lease,
        entry_type: LedgerEntryType,
        now: datetime,
        **fields: Any,
    ) -> LedgerEntry:
        """Create a pending ledger entry attributed to the lease holder."""
        return await LedgerRepository(session).create(
            resource_type=lease.resource_type,
            resource_id=lease.resource_id,
            entry_type=entry_type,
            created_by=lease.holder,
            lease_id=lease.lease_id,
            now=now,
            **fields,
        )


def _wire_key(key: str) -> str:
    return to_camel(key) if "_" in key else key
