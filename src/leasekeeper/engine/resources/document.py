"""Financial document strategy - payments, cancellation and approval."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import Field, field_validator
from sqlalchemy.ext.asyncio import AsyncSession

from leasekeeper.db.repositories import FinancialDocumentRepository
from leasekeeper.engine.errors import PreconditionFailed
from leasekeeper.engine.resources.base import CENT, OperationDetails, ResourceStrategy
from leasekeeper.models import (
    DocumentOperation,
    DocumentStatus,
    FinancialDocument,
    Lease,
    LedgerEntry,
    LedgerEntryType,
    PaymentMethod,
    ResourceType,
)


class PaymentDetails(OperationDetails):
    match_fields = ("amount",)

    amount: Decimal = Field(..., gt=0)
    payment_method: PaymentMethod

    @field_validator("amount")
    @classmethod
    def quantize_amount(cls, v: Decimal) -> Decimal:
        v = v.quantize(CENT)
        if v <= 0:
            raise ValueError("amount must be at least 0.01")
        return v


class CancellationDetails(OperationDetails):
    reason: str = Field(..., min_length=1)


class ApprovalDetails(OperationDetails):
    pass


# Documents in these states accept no further payments
_CLOSED_TO_PAYMENT = {DocumentStatus.CANCELLED, DocumentStatus.VOID, DocumentStatus.REFUNDED}


class FinancialDocumentStrategy(ResourceStrategy):
    resource_type = ResourceType.DOCUMENT
    details_models = {
        DocumentOperation.PAYMENT.value: PaymentDetails,
        DocumentOperation.CANCELLATION.value: CancellationDetails,
        DocumentOperation.APPROVAL.value: ApprovalDetails,
    }

    async def load(self, session: AsyncSession, resource_id: UUID) -> FinancialDocument | None:
        return await FinancialDocumentRepository(session).get(resource_id)

    async def check_precondition(
        self,
        session: AsyncSession,
        resource: FinancialDocument,
        operation: str,
        details: OperationDetails,
    ) -> None:
        if operation == DocumentOperation.PAYMENT:
            if resource.status == DocumentStatus.PAID:
                raise PreconditionFailed(f"Document {resource.number} is already paid")
            if resource.status in _CLOSED_TO_PAYMENT:
                raise PreconditionFailed(
                    f"Document {resource.number} is {resource.status.value} and cannot be paid"
                )

        elif operation == DocumentOperation.CANCELLATION:
            if resource.status in (DocumentStatus.PAID, DocumentStatus.CANCELLED):
                raise PreconditionFailed(
                    f"Document {resource.number} is {resource.status.value} "
                    "and cannot be cancelled"
                )

        elif operation == DocumentOperation.APPROVAL:
            if resource.status != DocumentStatus.PENDING:
                raise PreconditionFailed(
                    f"Document {resource.number} must be pending to be approved "
                    f"(current status: {resource.status.value})"
                )

    async def apply(
        self,
        session: AsyncSession,
        lease: Lease,
        resource: FinancialDocument,
        details: OperationDetails,
        now: datetime,
    ) -> list[LedgerEntry]:
        documents = FinancialDocumentRepository(session)

        if lease.operation == DocumentOperation.PAYMENT:
            if details.amount > resource.balance_due:
                raise PreconditionFailed(
                    f"Payment of {details.amount} exceeds balance due {resource.balance_due} "
                    f"on document {resource.number}"
                )
            amount_paid = resource.amount_paid + details.amount
            status = (
                DocumentStatus.PAID
                if amount_paid >= resource.total
                else DocumentStatus.PARTIALLY_PAID
            )
            entry = await self.record(
                session,
                lease,
                LedgerEntryType.PAYMENT,
                now,
                amount=details.amount,
                source=resource.status.value,
                destination=status.value,
                details={"paymentMethod": details.payment_method.value},
            )
            values = {
                "amount_paid": amount_paid,
                "status": status,
                "payment_method": details.payment_method.value,
            }
            if status == DocumentStatus.PAID:
                values["paid_at"] = now

        elif lease.operation == DocumentOperation.CANCELLATION:
            entry = await self._status_entry(
                session, lease, resource, DocumentStatus.CANCELLED, now, reason=details.reason
            )
            values = {"status": DocumentStatus.CANCELLED, "cancellation_reason": details.reason}

        else:
            entry = await self._status_entry(session, lease, resource, DocumentStatus.APPROVED, now)
            values = {
                "status": DocumentStatus.APPROVED,
                "approved_by": lease.holder,
                "approved_at": now,
            }

        if not await documents.update_from(resource, **values):
            raise PreconditionFailed(f"Document {resource.number} changed since it was read")
        return [entry]

    async def _status_entry(
        self,
        session: AsyncSession,
        lease: Lease,
        document: FinancialDocument,
        new_status: DocumentStatus,
        now: datetime,
        reason: str | None = None,
    ) -> LedgerEntry:
        return await self.record(
            session,
            lease,
            LedgerEntryType.STATUS_CHANGE,
            now,
            source=document.status.value,
            destination=new_status.value,
            details={"reason": reason} if reason else None,
        )
