from __future__ import annotations

import argparse
import asyncio
import logging
import os
import shlex
import sys
from pathlib import Path
from typing import Sequence

from .bootstrap import bootstrap_sidecar
from .config import (
    DEFAULT_EXECUTABLE,
    DEFAULT_HEALTH_INTERVAL,
    DEFAULT_HEALTH_TIMEOUT,
    DEFAULT_LOG_DIR,
    DEFAULT_PORT_WINDOW,
    DEFAULT_PREFERRED_PORT,
    DEFAULT_PROVIDER,
    BootstrapCLIArgs,
    BootstrapConfig,
)
from .errors import ConfigurationError, ToolError
from .types import BootstrapResult

LOGGER = logging.getLogger("ProxyBootstrap.CLI")

EXIT_OK = 0
EXIT_TOOL_ERROR = 1
EXIT_CONFIG_ERROR = 2


def _env_default(name: str, fallback: object) -> str:
    return os.environ.get(name, str(fallback))


def parse_args(argv: Sequence[str] | None = None) -> BootstrapCLIArgs:
    parser = argparse.ArgumentParser(
        description="Start the sidecar proxy and print the endpoint to route through."
    )
    parser.add_argument(
        "--executable",
        type=Path,
        default=_env_default("SIDECAR_EXECUTABLE", DEFAULT_EXECUTABLE),
        help="Path to the sidecar executable. Defaults to SIDECAR_EXECUTABLE.",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=_env_default("SIDECAR_PORT", DEFAULT_PREFERRED_PORT),
        help="Preferred port; the next free port in the window is used if busy.",
    )
    parser.add_argument(
        "--port-window",
        type=int,
        default=_env_default("SIDECAR_PORT_WINDOW", DEFAULT_PORT_WINDOW),
        help="Number of ports above --port to scan.",
    )
    parser.add_argument(
        "--health-timeout",
        type=float,
        default=_env_default("SIDECAR_HEALTH_TIMEOUT", DEFAULT_HEALTH_TIMEOUT),
        help="Seconds to wait for the sidecar /health endpoint.",
    )
    parser.add_argument(
        "--health-interval",
        type=float,
        default=_env_default("SIDECAR_HEALTH_INTERVAL", DEFAULT_HEALTH_INTERVAL),
        help="Seconds between health probes.",
    )
    parser.add_argument(
        "--log-dir",
        default=_env_default("SIDECAR_LOG_DIR", DEFAULT_LOG_DIR),
        help="Directory for sidecar output. Pass an empty string to discard it.",
    )
    parser.add_argument(
        "--provider",
        default=_env_default("SIDECAR_PROVIDER", DEFAULT_PROVIDER),
        help="Provider marker published alongside the base URL.",
    )
    parser.add_argument(
        "--format",
        dest="output_format",
        choices=("json", "env"),
        default="json",
        help="Print the result as JSON or as shell export lines.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )

    args = parser.parse_args(argv)
    log_dir = Path(args.log_dir).expanduser().resolve() if args.log_dir else None
    try:
        config = BootstrapConfig(
            executable=args.executable.expanduser().resolve(),
            preferred_port=args.port,
            port_window=args.port_window,
            health_timeout=args.health_timeout,
            health_interval=args.health_interval,
            provider=args.provider,
            log_dir=log_dir,
        )
    except ValueError as exc:
        parser.error(str(exc))
    return BootstrapCLIArgs(
        config=config,
        output_format=args.output_format,
        verbose=args.verbose,
    )


def format_result(result: BootstrapResult, output_format: str) -> str:
    if output_format == "env":
        return "\n".join(
            f"export {key}={shlex.quote(value)}" for key, value in result.as_env().items()
        )
    return result.model_dump_json()


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
    )

    try:
        result = asyncio.run(bootstrap_sidecar(args.config))
    except ConfigurationError as exc:
        LOGGER.error("Bootstrap aborted: %s", exc)
        if exc.remediation:
            print(f"   {exc.remediation}", file=sys.stderr)
        return EXIT_CONFIG_ERROR
    except ToolError as exc:
        LOGGER.error("Bootstrap failed: %s", exc)
        return EXIT_TOOL_ERROR
    except KeyboardInterrupt:
        LOGGER.info("Bootstrap interrupted.")
        return EXIT_TOOL_ERROR

    print(format_result(result, args.output_format))
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
