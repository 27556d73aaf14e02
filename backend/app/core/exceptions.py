class AppError(Exception):
    """Base class for all application exceptions."""
    def __init__(self, message: str, status_code: int = 500, details: dict = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

class PermissionDeniedError(AppError):
    """Raised when the caller lacks a capability or reaches into another company."""
    def __init__(self, message: str = "Insufficient permissions", details: dict = None):
        super().__init__(message, status_code=403, details=details)

class ResourceNotFoundError(AppError):
    """Raised when a requested resource is not found."""
    def __init__(self, resource_type: str, resource_id: int | str):
        super().__init__(
            f"{resource_type} with id {resource_id} not found",
            status_code=404,
            details={"resource_type": resource_type, "resource_id": resource_id},
        )
