"""Employee strategy - status changes, asset assignment and leave approval."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import Field, model_validator
from sqlalchemy.ext.asyncio import AsyncSession

from leasekeeper.db.repositories import EmployeeRepository
from leasekeeper.engine.errors import PreconditionFailed
from leasekeeper.engine.resources.base import OperationDetails, ResourceStrategy
from leasekeeper.models import (
    Employee,
    EmployeeOperation,
    EmployeeStatus,
    Lease,
    LedgerEntry,
    LedgerEntryType,
    ResourceType,
)


class StatusChangeDetails(OperationDetails):
    new_status: EmployeeStatus
    reason: Optional[str] = None

    @model_validator(mode="after")
    def require_reason(self) -> "StatusChangeDetails":
        if self.new_status in EmployeeStatus.requiring_reason() and not self.reason:
            raise ValueError(f"reason is required when status becomes {self.new_status.value}")
        return self


class AssetAssignmentDetails(OperationDetails):
    asset_id: str = Field(..., min_length=1)


class LeaveApprovalDetails(OperationDetails):
    leave_request_id: str = Field(..., min_length=1)


class EmployeeStrategy(ResourceStrategy):
    resource_type = ResourceType.EMPLOYEE
    details_models = {
        EmployeeOperation.STATUS_CHANGE.value: StatusChangeDetails,
        EmployeeOperation.ASSET_ASSIGNMENT.value: AssetAssignmentDetails,
        EmployeeOperation.LEAVE_APPROVAL.value: LeaveApprovalDetails,
    }

    async def load(self, session: AsyncSession, resource_id: UUID) -> Employee | None:
        return await EmployeeRepository(session).get(resource_id)

    async def check_precondition(
        self,
        session: AsyncSession,
        resource: Employee,
        operation: str,
        details: OperationDetails,
    ) -> None:
        # Field-level rules are enforced by the details models
        return None

    async def apply(
        self,
        session: AsyncSession,
        lease: Lease,
        resource: Employee,
        details: OperationDetails,
        now: datetime,
    ) -> list[LedgerEntry]:
        employees = EmployeeRepository(session)

        if lease.operation == EmployeeOperation.STATUS_CHANGE:
            entry = await self.record(
                session,
                lease,
                LedgerEntryType.STATUS_CHANGE,
                now,
                source=resource.status.value,
                destination=details.new_status.value,
                details={"reason": details.reason} if details.reason else None,
            )
            values = {"status": details.new_status, "status_reason": details.reason}

        elif lease.operation == EmployeeOperation.ASSET_ASSIGNMENT:
            if details.asset_id in resource.assets:
                raise PreconditionFailed(
                    f"Asset {details.asset_id} is already assigned to {resource.name}"
                )
            entry = await self.record(
                session,
                lease,
                LedgerEntryType.STATUS_CHANGE,
                now,
                details={"assetId": details.asset_id},
            )
            values = {"assets": [*resource.assets, details.asset_id]}

        else:
            if details.leave_request_id in resource.approved_leave_requests:
                raise PreconditionFailed(
                    f"Leave request {details.leave_request_id} is already approved"
                )
            entry = await self.record(
                session,
                lease,
                LedgerEntryType.STATUS_CHANGE,
                now,
                details={"leaveRequestId": details.leave_request_id},
            )
            values = {
                "approved_leave_requests": [
                    *resource.approved_leave_requests,
                    details.leave_request_id,
                ]
            }

        if not await employees.update_from(resource, **values):
            raise PreconditionFailed(f"Employee {resource.name} changed since it was read")
        return [entry]
