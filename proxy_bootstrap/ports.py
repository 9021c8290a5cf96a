from __future__ import annotations

import logging
import socket

from .config import DEFAULT_BIND_HOST, DEFAULT_PORT_WINDOW, MAX_PORT
from .errors import ResourceExhausted

LOGGER = logging.getLogger("ProxyBootstrap.Ports")


def is_port_free(port: int, host: str = DEFAULT_BIND_HOST) -> bool:
    """Return True if a fresh TCP socket can bind ``host:port`` right now."""

    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        sock.bind((host, port))
    except OSError as exc:
        LOGGER.debug("Port %s on %s is unavailable: %s", port, host, exc)
        return False
    finally:
        sock.close()
    return True


def find_free_port(
    preferred: int,
    window: int = DEFAULT_PORT_WINDOW,
    host: str = DEFAULT_BIND_HOST,
) -> int:
    """Return the lowest bindable port in ``[preferred, preferred + window]``.

    The result is a point-in-time observation: no socket is held open once the
    probe succeeds, so another process may still claim the port before the
    sidecar binds it.
    """

    if not 1 <= preferred <= MAX_PORT:
        raise ValueError(f"Preferred port out of range: {preferred}")
    if window < 0:
        raise ValueError("Port window must be non-negative.")

    last = min(preferred + window, MAX_PORT)
    for port in range(preferred, last + 1):
        if is_port_free(port, host):
            if port != preferred:
                LOGGER.info(
                    "Preferred port %s is busy; using %s instead.", preferred, port
                )
            return port

    raise ResourceExhausted(preferred, window)
