"""
Application Errors
==================

HTTP-status-shaped error hierarchy shared by every module, plus the
structural errors raised by the module kit and the SSE hub.
"""

from typing import Any, Dict, Optional


class AppError(Exception):
    """Base application error carrying an HTTP status and a stable error code."""

    status_code: int = 500
    code: str = "INTERNAL_SERVER_ERROR"

    def __init__(
        self,
        message: str,
        cause: Optional[BaseException] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.cause = cause
        self.details = details

    def __str__(self) -> str:
        if self.cause is not None:
            return f"{self.code}: {self.message} (caused by: {self.cause})"
        return f"{self.code}: {self.message}"


class BadRequestError(AppError):
    status_code = 400
    code = "BAD_REQUEST"


class ValidationError(AppError):
    status_code = 400
    code = "VALIDATION_ERROR"


class UnauthorizedError(AppError):
    status_code = 401
    code = "UNAUTHORIZED"


class ForbiddenError(AppError):
    status_code = 403
    code = "FORBIDDEN"


class NotFoundError(AppError):
    status_code = 404
    code = "NOT_FOUND"


class ConflictError(AppError):
    status_code = 409
    code = "CONFLICT"


class InternalError(AppError):
    status_code = 500
    code = "INTERNAL_SERVER_ERROR"


class ServiceUnavailableError(AppError):
    status_code = 503
    code = "SERVICE_UNAVAILABLE"


# Module kit errors


class KitError(InternalError):
    """Structural error raised while registering or mounting modules."""

    code = "KIT_ERROR"


class AlreadyMountedError(KitError):
    code = "ALREADY_MOUNTED"

    def __init__(self, message: str = "kit already mounted"):
        super().__init__(message)


class DuplicateModuleError(KitError):
    code = "DUPLICATE_MODULE"

    def __init__(self, module: str):
        super().__init__(f"module {module} already registered")
        self.module = module


class UnresolvedDependencyError(KitError):
    code = "UNRESOLVED_DEPENDENCY"

    def __init__(self, module: str, dependency: str):
        super().__init__(f"module {module} depends on {dependency} which is not registered")
        self.module = module
        self.dependency = dependency


class CircularDependencyError(KitError):
    code = "CIRCULAR_DEPENDENCY"

    def __init__(self, module: str):
        super().__init__(f"circular dependency detected involving module {module}")
        self.module = module


class ModuleInitError(KitError):
    code = "MODULE_INIT_FAILED"

    def __init__(self, module: str, cause: BaseException):
        super().__init__(f"failed to initialize module {module}", cause=cause)
        self.module = module


class UnsupportedMethodError(KitError):
    code = "UNSUPPORTED_METHOD"

    def __init__(self, method: str, path: str):
        super().__init__(f"unsupported method {method} for route {path}")
        self.method = method
        self.path = path


# SSE hub errors


class MaxClientsReachedError(BadRequestError):
    code = "MAX_CLIENTS_REACHED"

    def __init__(self, message: str = "maximum number of clients reached"):
        super().__init__(message)


class RegistrationQueueFullError(InternalError):
    code = "REGISTRATION_QUEUE_FULL"

    def __init__(self, message: str = "failed to register client: channel full"):
        super().__init__(message)


class UnregistrationQueueFullError(InternalError):
    code = "UNREGISTRATION_QUEUE_FULL"

    def __init__(self, message: str = "failed to unregister client: channel full"):
        super().__init__(message)


class BroadcastQueueFullError(InternalError):
    code = "BROADCAST_QUEUE_FULL"

    def __init__(self, message: str = "failed to broadcast message"):
        super().__init__(message)


class SSEServiceNotRunningError(ServiceUnavailableError):
    code = "SSE_SERVICE_NOT_RUNNING"

    def __init__(self, message: str = "SSE service is not running"):
        super().__init__(message)


class SSEServiceAlreadyRunningError(BadRequestError):
    code = "SSE_SERVICE_ALREADY_RUNNING"

    def __init__(self, message: str = "SSE service is already running"):
        super().__init__(message)


class SSEUnauthorizedError(UnauthorizedError):
    def __init__(self, message: str = "unauthorized: user authentication required"):
        super().__init__(message)


class ClientNotFoundError(NotFoundError):
    def __init__(self, client_id: str):
        super().__init__("client not found", details={"client_id": client_id})
        self.client_id = client_id
