from __future__ import annotations

import asyncio
import logging
import time

import httpx

from .config import DEFAULT_HEALTH_HOST
from .errors import StartupTimeout
from .types import HealthReport, HealthState

LOGGER = logging.getLogger("ProxyBootstrap.Health")

_MAX_REQUEST_TIMEOUT = 5.0
_MIN_REQUEST_TIMEOUT = 0.05


def health_url(port: int, host: str = DEFAULT_HEALTH_HOST) -> str:
    return f"http://{host}:{port}/health"


async def probe_health(
    client: httpx.AsyncClient, url: str, *, timeout: float = _MAX_REQUEST_TIMEOUT
) -> int | None:
    """Issue one GET; any HTTP response counts as alive."""

    try:
        response = await client.get(url, timeout=timeout)
    except httpx.HTTPError as exc:
        LOGGER.debug("Health probe %s failed: %s", url, exc)
        return None
    return response.status_code


async def wait_for_ready(
    port: int,
    *,
    timeout: float,
    interval: float,
    host: str = DEFAULT_HEALTH_HOST,
    transport: httpx.AsyncBaseTransport | None = None,
) -> HealthReport:
    """Poll ``/health`` until the sidecar answers or ``timeout`` elapses.

    Raises ``StartupTimeout`` when the deadline passes. The sidecar process is
    never touched here, so a slow starter keeps running after a timeout.
    """

    url = health_url(port, host)
    started = time.monotonic()
    deadline = started + max(timeout, 0.0)
    attempt = 0
    state = HealthState.POLLING

    async with httpx.AsyncClient(transport=transport) as client:
        while state is HealthState.POLLING:
            attempt += 1
            remaining = deadline - time.monotonic()
            request_timeout = min(
                max(remaining, _MIN_REQUEST_TIMEOUT), _MAX_REQUEST_TIMEOUT
            )
            status_code = await probe_health(client, url, timeout=request_timeout)
            if status_code is not None:
                elapsed = time.monotonic() - started
                LOGGER.info(
                    "Sidecar on port %s answered with %s after %s attempt(s) in %.2fs.",
                    port,
                    status_code,
                    attempt,
                    elapsed,
                )
                return HealthReport(HealthState.READY, attempt, elapsed, status_code)

            remaining = deadline - time.monotonic()
            if remaining <= 0:
                state = HealthState.TIMED_OUT
                break
            await asyncio.sleep(min(interval, remaining))

    report = HealthReport(state, attempt, time.monotonic() - started)
    LOGGER.warning(
        "Timed out waiting for sidecar on port %s after %s attempt(s).",
        port,
        attempt,
    )
    raise StartupTimeout(port, timeout, report)
