"""Account precondition check for the sidecar.

The sidecar can only proxy traffic once it holds upstream credentials, which an
operator adds out-of-band. ``accounts list`` tells us whether that happened.
A clear "nothing configured" answer is fatal; anything murkier (the binary
crashed, exited non-zero, or hung past an optional timeout) is reported as
inconclusive so the health check can make the final call.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from .types import AccountsState, AccountsStatus

LOGGER = logging.getLogger("ProxyBootstrap.Accounts")

NO_ACCOUNTS_SENTINEL = "No accounts configured"


def remediation_command(executable: Path | str) -> str:
    """Command an operator runs to add credentials to the sidecar."""

    return f"{executable} accounts add"


def classify_accounts_output(
    stdout: str, returncode: int | None, stderr: str = ""
) -> AccountsStatus:
    """Classify on stdout; stderr only contributes the sentinel and diagnostics."""

    output = stdout + stderr
    if NO_ACCOUNTS_SENTINEL in output:
        return AccountsStatus(AccountsState.UNCONFIGURED, output, returncode)
    if returncode != 0:
        return AccountsStatus(AccountsState.INCONCLUSIVE, output, returncode)
    if not stdout.strip():
        return AccountsStatus(AccountsState.UNCONFIGURED, output, returncode)
    return AccountsStatus(AccountsState.CONFIGURED, output, returncode)


async def check_accounts(
    executable: Path | str,
    *,
    timeout: float | None = None,
) -> AccountsStatus:
    """Run ``<executable> accounts list`` and classify the answer."""

    try:
        process = await asyncio.create_subprocess_exec(
            str(executable),
            "accounts",
            "list",
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as exc:
        LOGGER.debug("Could not run accounts check for %s: %s", executable, exc)
        return AccountsStatus(AccountsState.INCONCLUSIVE, str(exc), None)

    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        LOGGER.debug("Accounts check timed out after %.1fs.", timeout)
        return AccountsStatus(
            AccountsState.INCONCLUSIVE, f"timed out after {timeout}s", None
        )

    status = classify_accounts_output(
        stdout.decode("utf-8", errors="replace"),
        process.returncode,
        stderr.decode("utf-8", errors="replace"),
    )
    LOGGER.debug(
        "Accounts check exited with %s and was classified %s.",
        process.returncode,
        status.state.value,
    )
    return status
