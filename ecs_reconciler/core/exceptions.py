__all__ = [
    "BaseError",
    "BadRequestError",
    "NotFoundError",
    "NotSupportedError",
    "DeploymentError",
    "MissingConfigurationError",
    "InvalidSpecFileError",
    "MissingBuildContextError",
    "AmbiguousPortError",
    "PlatformError",
    "ServiceNotStableError",
    "StabilityTimeoutError",
    "DeploymentCancelledError",
]

from typing import Any


class BaseError(Exception):
    status_code: int = 500


class BadRequestError(BaseError):
    status_code = 400


class NotFoundError(BaseError):
    status_code = 404


class NotSupportedError(BaseError):
    status_code = 415


class DeploymentError(BaseError):
    status_code = 500


class MissingConfigurationError(DeploymentError):
    status_code = 400

    def __init__(self, keys: list[str]):
        self.keys = keys
        super().__init__(
            "Missing required configuration value(s): " + ", ".join(keys)
        )


class InvalidSpecFileError(DeploymentError):
    status_code = 400

    def __init__(self, path: str, error: str):
        self.path = path
        self.error = error
        super().__init__(f"Failed to parse {path}: {error}")


class MissingBuildContextError(DeploymentError):
    status_code = 400


class AmbiguousPortError(DeploymentError):
    status_code = 400


class PlatformError(DeploymentError):
    """A platform call failed. The platform's message is kept verbatim."""

    status_code = 502

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        code: str | None = None,
    ):
        self.operation = operation
        self.code = code
        super().__init__(message)

    @classmethod
    def from_client_error(cls, error: Any, operation: str) -> "PlatformError":
        response = getattr(error, "response", None) or {}
        err = response.get("Error", {})
        return cls(
            message=err.get("Message") or str(error),
            operation=operation,
            code=err.get("Code"),
        )


class ServiceNotStableError(DeploymentError):
    status_code = 502


class StabilityTimeoutError(DeploymentError):
    status_code = 504

    def __init__(self, service_name: str, timeout: float):
        self.service_name = service_name
        self.timeout = timeout
        super().__init__(
            f"Service {service_name} did not become stable within "
            f"{timeout:g} seconds."
        )


class DeploymentCancelledError(DeploymentError):
    status_code = 499
