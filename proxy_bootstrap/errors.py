from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .types import HealthReport


class BootstrapError(RuntimeError):
    """Base class for failures raised while bootstrapping the sidecar."""

    retryable = False


class ConfigurationError(BootstrapError):
    """Raised when operator action is required before bootstrap can succeed."""

    retryable = False

    def __init__(self, message: str, *, remediation: str | None = None) -> None:
        super().__init__(message)
        self.remediation = remediation


class ToolError(BootstrapError):
    """Raised for runtime failures a caller may choose to retry."""

    retryable = True


class ResourceExhausted(ToolError):
    """Raised when no port in the scan window could be bound."""

    def __init__(self, preferred: int, window: int) -> None:
        super().__init__(
            f"No free port found in range {preferred}-{preferred + window}."
        )
        self.preferred = preferred
        self.window = window


class StartupTimeout(ToolError):
    """Raised when the sidecar never answered its health endpoint."""

    def __init__(self, port: int, timeout: float, report: "HealthReport") -> None:
        super().__init__(
            f"Sidecar on port {port} did not respond within {timeout:.1f}s "
            f"({report.attempts} attempt(s))."
        )
        self.port = port
        self.timeout = timeout
        self.report = report
