from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping

DEFAULT_EXECUTABLE = Path("node_modules/.bin/antigravity-claude-proxy")
DEFAULT_PREFERRED_PORT = 8080
DEFAULT_PORT_WINDOW = 100
DEFAULT_HEALTH_TIMEOUT = 10.0
DEFAULT_HEALTH_INTERVAL = 0.5
DEFAULT_BIND_HOST = "127.0.0.1"
DEFAULT_HEALTH_HOST = "localhost"
DEFAULT_PORT_ENV_VAR = "PORT"
DEFAULT_PROVIDER = "gemini"
DEFAULT_LOG_DIR = Path("logs/sidecar")
DEFAULT_INSTALL_COMMAND = "npm install antigravity-claude-proxy"

BASE_URL_ENV_VAR = "ANTHROPIC_BASE_URL"
PROVIDER_ENV_VAR = "SHANNON_MODEL_PROVIDER"

MAX_PORT = 65535


@dataclass(frozen=True)
class BootstrapConfig:
    """Immutable inputs for a single sidecar bootstrap attempt."""

    executable: Path = DEFAULT_EXECUTABLE
    preferred_port: int = DEFAULT_PREFERRED_PORT
    port_window: int = DEFAULT_PORT_WINDOW
    health_timeout: float = DEFAULT_HEALTH_TIMEOUT
    health_interval: float = DEFAULT_HEALTH_INTERVAL
    bind_host: str = DEFAULT_BIND_HOST
    health_host: str = DEFAULT_HEALTH_HOST
    port_env_var: str = DEFAULT_PORT_ENV_VAR
    provider: str = DEFAULT_PROVIDER
    log_dir: Path | None = DEFAULT_LOG_DIR
    install_command: str = DEFAULT_INSTALL_COMMAND
    accounts_timeout: float | None = None
    env: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not 1 <= self.preferred_port <= MAX_PORT:
            raise ValueError(
                f"Preferred port must be between 1 and {MAX_PORT}, got {self.preferred_port}."
            )
        if self.port_window < 1:
            raise ValueError("Port window must be at least 1.")
        if self.health_timeout <= 0:
            raise ValueError("Health timeout must be positive.")
        if self.health_interval <= 0:
            raise ValueError("Health retry interval must be positive.")
        if self.health_interval > self.health_timeout:
            raise ValueError("Health retry interval cannot exceed the health timeout.")
        if self.accounts_timeout is not None and self.accounts_timeout <= 0:
            raise ValueError("Accounts check timeout must be positive when set.")


@dataclass(frozen=True)
class BootstrapCLIArgs:
    """Typed representation of CLI arguments used to run a bootstrap."""

    config: BootstrapConfig
    output_format: str = "json"
    verbose: bool = False
