"""LeaseKeeper engine errors."""


class LeaseKeeperError(Exception):
    """Base error for LeaseKeeper operations."""

    http_status = 500

    def __init__(self, message: str, code: str = "LEASEKEEPER_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class NotFoundError(LeaseKeeperError):
    """Something addressed by the caller does not exist."""

    http_status = 404


class ResourceNotFound(NotFoundError):
    """Guarded resource does not exist."""

    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(
            f"{resource_type} not found: {resource_id}",
            "RESOURCE_NOT_FOUND",
        )
        self.resource_type = resource_type
        self.resource_id = resource_id


class LeaseNotFound(NotFoundError):
    """No active lease for the given token or resource."""

    def __init__(self, message: str = "No active lease found"):
        super().__init__(message, "LEASE_NOT_FOUND")


class LeaseConflict(LeaseKeeperError):
    """Resource already has an active lease."""

    http_status = 409

    def __init__(self, resource_type: str, resource_id: str, operation: str | None = None):
        message = f"{resource_type} {resource_id} is already leased"
        if operation:
            message = f"{message} for {operation}"
        super().__init__(message, "LEASE_CONFLICT")
        self.resource_type = resource_type
        self.resource_id = resource_id
        self.operation = operation


class PreconditionFailed(LeaseKeeperError):
    """Business rule rejected the operation."""

    http_status = 422

    def __init__(self, message: str):
        super().__init__(message, "PRECONDITION_FAILED")


class Forbidden(LeaseKeeperError):
    """Caller is not the lease holder."""

    http_status = 403

    def __init__(self, message: str = "Only the lease holder may perform this action"):
        super().__init__(message, "FORBIDDEN")


class LeaseExpired(LeaseKeeperError):
    """Lease is no longer redeemable."""

    http_status = 410

    def __init__(self, token: str = "", status: str = "expired"):
        super().__init__(f"Lease is {status} and cannot be redeemed", "LEASE_EXPIRED")
        self.token = token
        self.status = status


class MismatchedOperation(LeaseKeeperError):
    """Redemption payload does not match what was leased."""

    http_status = 400

    def __init__(self, message: str):
        super().__init__(message, "MISMATCHED_OPERATION")
