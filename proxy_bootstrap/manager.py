from __future__ import annotations

import logging
import subprocess
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import List

from .types import BootstrapResult, SidecarProcess

LOGGER = logging.getLogger("ProxyBootstrap.SidecarRegistry")

_SHUTDOWN_TIMEOUT = 10.0


@dataclass
class RegisteredSidecar:
    sidecar: SidecarProcess
    result: BootstrapResult | None = None


class SidecarRegistry:
    """Track launched sidecars by port.

    Bootstrap only ever adds entries; stopping a sidecar is left to callers
    that explicitly ask for it via ``terminate``.
    """

    def __init__(self) -> None:
        self._entries: dict[int, RegisteredSidecar] = {}
        self._lock = threading.Lock()

    def register(
        self, sidecar: SidecarProcess, result: BootstrapResult | None = None
    ) -> RegisteredSidecar:
        with self._lock:
            entry = RegisteredSidecar(sidecar=sidecar, result=result)
            previous = self._entries.get(sidecar.port)
            if previous is not None and previous.sidecar is not sidecar:
                LOGGER.warning(
                    "Replacing registry entry for port %s (PID=%s) with PID=%s.",
                    sidecar.port,
                    previous.sidecar.pid,
                    sidecar.pid,
                )
            self._entries[sidecar.port] = entry
            return entry

    def record_result(self, port: int, result: BootstrapResult) -> None:
        with self._lock:
            entry = self._entries.get(port)
            if entry is None:
                raise KeyError(f"No sidecar registered on port {port}")
            entry.result = result

    def get(self, port: int) -> RegisteredSidecar | None:
        with self._lock:
            return self._entries.get(port)

    def find_live(self, executable: Path) -> RegisteredSidecar | None:
        """Return a running, previously published sidecar for ``executable``."""

        with self._lock:
            for port, entry in sorted(self._entries.items()):
                if entry.sidecar.executable != executable:
                    continue
                if not entry.sidecar.is_alive():
                    LOGGER.info(
                        "Sidecar PID=%s on port %s has exited; dropping it.",
                        entry.sidecar.pid,
                        port,
                    )
                    del self._entries[port]
                    continue
                if entry.result is not None:
                    return entry
        return None

    def ports(self) -> List[int]:
        with self._lock:
            return sorted(self._entries)

    def release(self, port: int) -> SidecarProcess | None:
        """Forget a sidecar without stopping it."""

        with self._lock:
            entry = self._entries.pop(port, None)
        return entry.sidecar if entry else None

    def terminate(self, port: int, timeout: float = _SHUTDOWN_TIMEOUT) -> bool:
        """Stop the sidecar on ``port``; returns False if none was registered."""

        sidecar = self.release(port)
        if sidecar is None:
            return False

        process = sidecar.process
        if process.poll() is None:
            LOGGER.info("Terminating sidecar PID=%s on port %s.", sidecar.pid, port)
            process.terminate()
            try:
                process.wait(timeout=timeout)
            except subprocess.TimeoutExpired:
                LOGGER.warning(
                    "Sidecar PID=%s did not exit within %.1fs; forcing kill.",
                    sidecar.pid,
                    timeout,
                )
                process.kill()
                process.wait()
        return True

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
