from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Awaitable, Callable

from .accounts import check_accounts, remediation_command
from .config import BootstrapConfig
from .errors import ConfigurationError, StartupTimeout, ToolError
from .health import wait_for_ready
from .launcher import launch_sidecar
from .manager import SidecarRegistry
from .ports import find_free_port
from .types import AccountsState, BootstrapResult, HealthReport, SidecarProcess

LOGGER = logging.getLogger("ProxyBootstrap")

AccountsCheckFunc = Callable[..., Awaitable[Any]]
PortFinderFunc = Callable[[int, int, str], int]
LaunchSidecarFunc = Callable[..., SidecarProcess]
HealthCheckFunc = Callable[..., Awaitable[HealthReport]]


def base_url_for(port: int) -> str:
    return f"http://localhost:{port}"


class SidecarBootstrapper:
    """Start the sidecar proxy and publish its endpoint.

    Stages run strictly in order (accounts, port, launch, health) and the
    first failure aborts the rest. A launched sidecar is never stopped here,
    even when a later stage fails.
    """

    def __init__(
        self,
        config: BootstrapConfig,
        *,
        registry: SidecarRegistry | None = None,
        accounts_check: AccountsCheckFunc = check_accounts,
        port_finder: PortFinderFunc = find_free_port,
        launch_fn: LaunchSidecarFunc = launch_sidecar,
        health_check: HealthCheckFunc = wait_for_ready,
    ) -> None:
        self._config = config
        self._registry = registry if registry is not None else SidecarRegistry()
        self._accounts_check = accounts_check
        self._find_port = port_finder
        self._launch = launch_fn
        self._health_check = health_check

    @property
    def registry(self) -> SidecarRegistry:
        return self._registry

    async def bootstrap(self) -> BootstrapResult:
        config = self._config
        executable = config.executable
        LOGGER.info(
            "Setting up %s provider via sidecar proxy %s.", config.provider, executable
        )

        if not executable.exists():
            LOGGER.error("Sidecar executable not found at %s.", executable)
            raise ConfigurationError(
                f"Sidecar executable not found: {executable}",
                remediation=config.install_command,
            )

        existing = await self._reuse_existing(executable)
        if existing is not None:
            return existing

        await self._verify_accounts(executable)

        port = await asyncio.to_thread(
            self._find_port, config.preferred_port, config.port_window, config.bind_host
        )
        LOGGER.info("Starting sidecar proxy on port %s.", port)

        try:
            sidecar = self._launch(
                executable,
                port,
                config.env,
                port_env_var=config.port_env_var,
                log_dir=config.log_dir,
            )
        except OSError as exc:
            raise ToolError(f"Failed to launch sidecar: {exc}") from exc
        self._registry.register(sidecar)

        report = await self._health_check(
            port,
            timeout=config.health_timeout,
            interval=config.health_interval,
            host=config.health_host,
        )

        result = BootstrapResult(
            base_url=base_url_for(port),
            provider=config.provider,
            ready=report.ready,
            port=port,
            pid=sidecar.pid,
        )
        self._registry.record_result(port, result)
        LOGGER.info(
            "%s mode enabled; requests will be routed through %s.",
            config.provider,
            result.base_url,
        )
        return result

    async def _reuse_existing(self, executable: Path) -> BootstrapResult | None:
        entry = self._registry.find_live(executable)
        if entry is None or entry.result is None:
            return None

        port = entry.sidecar.port
        try:
            await self._health_check(
                port,
                timeout=self._config.health_interval,
                interval=self._config.health_interval,
                host=self._config.health_host,
            )
        except StartupTimeout:
            LOGGER.warning(
                "Registered sidecar on port %s is not answering; starting a new one.",
                port,
            )
            self._registry.release(port)
            return None

        LOGGER.info("Sidecar proxy is already running on port %s.", port)
        return entry.result.model_copy(update={"reused": True})

    async def _verify_accounts(self, executable: Path) -> None:
        status = await self._accounts_check(
            executable, timeout=self._config.accounts_timeout
        )
        if status.state is AccountsState.UNCONFIGURED:
            command = remediation_command(executable)
            LOGGER.warning("No upstream accounts configured for the sidecar proxy.")
            LOGGER.warning("Run the following command to authenticate: %s", command)
            raise ConfigurationError(
                "Sidecar proxy is not authenticated.", remediation=command
            )
        if status.state is AccountsState.INCONCLUSIVE:
            LOGGER.warning(
                "Failed to check sidecar accounts (%s); continuing anyway.",
                status.output.strip() or f"exit code {status.returncode}",
            )


async def bootstrap_sidecar(config: BootstrapConfig, **kwargs: Any) -> BootstrapResult:
    """Run a single bootstrap with a throwaway ``SidecarBootstrapper``."""

    return await SidecarBootstrapper(config, **kwargs).bootstrap()
