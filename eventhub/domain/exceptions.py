from eventhub.core.utils.serialization import normalize_ctx


class AppError(Exception):
    code = "APPLICATION_ERROR"
    default_message = "Application error"

    def __init__(self, message: str = "", *, ctx: dict | None = None, field: str | None = None) -> None:
        super().__init__(message or self.default_message)
        self.ctx = normalize_ctx(ctx or {})
        self.field = field


class InvalidInput(AppError):
    code = "INVALID_INPUT"
    default_message = "The provided input is invalid"


class Unauthorized(AppError):
    code = "UNAUTHORIZED"
    default_message = "Authentication required"


class Forbidden(AppError):
    code = "FORBIDDEN"
    default_message = "You are not allowed to perform this operation"


class ForbiddenRole(Forbidden):
    code = "FORBIDDEN_ROLE"
    default_message = "You do not have the required role to access this resource"


class NotFound(AppError):
    code = "RESOURCE_NOT_FOUND"
    default_message = "The requested resource could not be found"


class Conflict(AppError):
    code = "RESOURCE_CONFLICT"
    default_message = "The request conflicts with the current state of the resource"


class InsufficientStock(AppError):
    code = "INSUFFICIENT_STOCK"
    default_message = "Insufficient quantity available for the requested item"

    def __init__(self, *, requested: int, available: int, item_id: int, title: str, item_type: str) -> None:
        super().__init__(
            ctx={"requested": requested, "available": available, "id": item_id, "title": title, "type": item_type}
        )
        self.requested = requested
        self.available = available
        self.item_id = item_id


class UpstreamServiceError(AppError):
    code = "EXTERNAL_SERVICE_ERROR"
    default_message = "External service is temporarily unavailable"


class InternalError(AppError):
    code = "INTERNAL_SERVER_ERROR"
    default_message = "An unexpected error occurred"
