"""
Bootstrap helpers for running a local model proxy sidecar.

The package checks the sidecar's credentials, picks a free port, launches the
sidecar detached from the caller, waits for its health endpoint, and returns
the endpoint that request routing should use.
"""

from __future__ import annotations

from .bootstrap import SidecarBootstrapper, bootstrap_sidecar
from .config import BootstrapConfig
from .errors import (
    BootstrapError,
    ConfigurationError,
    ResourceExhausted,
    StartupTimeout,
    ToolError,
)
from .types import BootstrapResult

__all__ = [
    "BootstrapConfig",
    "BootstrapError",
    "BootstrapResult",
    "ConfigurationError",
    "ResourceExhausted",
    "SidecarBootstrapper",
    "StartupTimeout",
    "ToolError",
    "bootstrap_sidecar",
]
