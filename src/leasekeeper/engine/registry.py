"""Resource registry - maps resource kinds to their strategies."""

import logging
from collections.abc import Iterable, Mapping
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from leasekeeper.engine.errors import PreconditionFailed, ResourceNotFound
from leasekeeper.engine.resources import (
    EmployeeStrategy,
    FinancialDocumentStrategy,
    PurchaseOrderStrategy,
    ResourceStrategy,
    StockItemStrategy,
)
from leasekeeper.models import ResourceType

logger = logging.getLogger(__name__)


class ResourceRegistry:
    """Pluggable set of resource strategies, one per resource kind."""

    def __init__(self, strategies: Iterable[ResourceStrategy] = ()):
        self._strategies: dict[ResourceType, ResourceStrategy] = {}
        for strategy in strategies:
            self.register(strategy)

    def register(self, strategy: ResourceStrategy) -> None:
        """Register (or replace) the strategy for its resource kind."""
        if strategy.resource_type in self._strategies:
            logger.info(f"Replacing strategy for {strategy.resource_type.value}")
        self._strategies[strategy.resource_type] = strategy

    @property
    def resource_types(self) -> list[ResourceType]:
        return list(self._strategies)

    def get(self, resource_type: ResourceType | str) -> ResourceStrategy:
        try:
            return self._strategies[ResourceType(resource_type)]
        except (KeyError, ValueError):
            raise PreconditionFailed(f"Unsupported resource type: {resource_type}") from None

    async def check_precondition(
        self,
        session: AsyncSession,
        resource_type: ResourceType | str,
        resource_id: UUID,
        operation: str,
        details: Mapping[str, Any] | None = None,
    ) -> dict[str, Any]:
        """
        Validate that ``operation`` may be leased on the resource.

        Returns the normalized details to store on the lease.

        Raises:
            ResourceNotFound: The resource does not exist
            PreconditionFailed: Unknown operation, malformed details, or a
                business rule rejects the operation
        """
        strategy = self.get(resource_type)
        resource = await strategy.load(session, resource_id)
        if resource is None:
            raise ResourceNotFound(strategy.resource_type.value, str(resource_id))

        parsed = strategy.parse_details(operation, details)
        await strategy.check_precondition(session, resource, operation, parsed)
        return parsed.normalized()


def default_registry() -> ResourceRegistry:
    """Registry with the four built-in resource kinds."""
    return ResourceRegistry(
        [
            FinancialDocumentStrategy(),
            EmployeeStrategy(),
            StockItemStrategy(),
            PurchaseOrderStrategy(),
        ]
    )
