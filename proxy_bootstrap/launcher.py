from __future__ import annotations

import logging
import os
import subprocess
from pathlib import Path
from typing import IO, Any, Mapping

from .config import DEFAULT_LOG_DIR, DEFAULT_PORT_ENV_VAR
from .errors import ConfigurationError
from .types import SidecarProcess

LOGGER = logging.getLogger("ProxyBootstrap.Launcher")


def _open_log(log_dir: Path | None, port: int) -> tuple[IO[bytes] | int, Path | None]:
    if log_dir is None:
        return subprocess.DEVNULL, None
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / f"sidecar-{port}.log"
    return log_path.open("ab"), log_path


def _detach_kwargs() -> dict[str, Any]:
    if os.name == "nt":
        return {
            "creationflags": subprocess.DETACHED_PROCESS
            | subprocess.CREATE_NEW_PROCESS_GROUP
        }
    return {"start_new_session": True}


def launch_sidecar(
    executable: Path,
    port: int,
    env: Mapping[str, str],
    *,
    port_env_var: str = DEFAULT_PORT_ENV_VAR,
    log_dir: Path | None = DEFAULT_LOG_DIR,
) -> SidecarProcess:
    """Start ``<executable> start`` bound to ``port`` and detach from it.

    The child runs in its own session with output appended to a per-port log
    file. Nothing here waits on the child or notices if it dies early; the
    health check is the only readiness gate.
    """

    if not executable.exists():
        raise ConfigurationError(f"Sidecar executable not found: {executable}")

    env_vars = os.environ.copy()
    env_vars.update(env)
    env_vars[port_env_var] = str(port)

    try:
        log_target, log_path = _open_log(log_dir, port)
    except OSError as exc:
        raise ConfigurationError(
            f"Sidecar log directory is not writable: {exc}",
            remediation=f"Make {log_dir} writable or pass --log-dir '' to discard output",
        ) from exc

    try:
        process = subprocess.Popen(
            [str(executable), "start"],
            stdin=subprocess.DEVNULL,
            stdout=log_target,
            stderr=log_target,
            env=env_vars,
            close_fds=True,
            **_detach_kwargs(),
        )
    except PermissionError as exc:
        raise ConfigurationError(
            f"Sidecar executable is not runnable: {exc}",
            remediation=f"chmod +x {executable}",
        ) from exc
    finally:
        if not isinstance(log_target, int):
            log_target.close()

    LOGGER.info(
        "Launched sidecar PID=%s on port %s (%s=%s)%s",
        process.pid,
        port,
        port_env_var,
        port,
        f"; logging to {log_path}" if log_path else "",
    )

    return SidecarProcess(
        executable=executable,
        port=port,
        process=process,
        log_path=log_path,
    )
