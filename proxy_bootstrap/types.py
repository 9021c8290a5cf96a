from __future__ import annotations

import enum
import os
import subprocess
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, MutableMapping, Optional

from pydantic import BaseModel

from .config import BASE_URL_ENV_VAR, PROVIDER_ENV_VAR


class AccountsState(str, enum.Enum):
    CONFIGURED = "configured"
    UNCONFIGURED = "unconfigured"
    INCONCLUSIVE = "inconclusive"


@dataclass(frozen=True)
class AccountsStatus:
    """Outcome of asking the sidecar which accounts it can use."""

    state: AccountsState
    output: str = ""
    returncode: Optional[int] = None

    @property
    def configured(self) -> bool:
        return self.state is AccountsState.CONFIGURED


@dataclass
class SidecarProcess:
    """Handle for a launched sidecar; the process outlives the bootstrap call."""

    executable: Path
    port: int
    process: subprocess.Popen[bytes]
    log_path: Optional[Path] = None
    started_at: float = field(default_factory=time.monotonic)

    @property
    def pid(self) -> int:
        return self.process.pid

    def is_alive(self) -> bool:
        return self.process.poll() is None


class HealthState(str, enum.Enum):
    POLLING = "polling"
    READY = "ready"
    TIMED_OUT = "timed_out"


@dataclass(frozen=True)
class HealthReport:
    state: HealthState
    attempts: int
    elapsed: float
    status_code: Optional[int] = None

    @property
    def ready(self) -> bool:
        return self.state is HealthState.READY


class BootstrapResult(BaseModel):
    """Endpoint published to downstream request routing."""

    base_url: str
    provider: str
    ready: bool
    port: int
    pid: int | None = None
    reused: bool = False

    def as_env(self) -> Dict[str, str]:
        return {
            BASE_URL_ENV_VAR: self.base_url,
            PROVIDER_ENV_VAR: self.provider,
        }

    def apply_to_environ(
        self, environ: MutableMapping[str, str] | None = None
    ) -> None:
        """Export the endpoint for consumers that still read process environment."""

        target = os.environ if environ is None else environ
        target.update(self.as_env())
