from __future__ import annotations

import os
import stat
from pathlib import Path

import pytest

from proxy_bootstrap.accounts import (
    NO_ACCOUNTS_SENTINEL,
    check_accounts,
    classify_accounts_output,
    remediation_command,
)
from proxy_bootstrap.types import AccountsState

posix_only = pytest.mark.skipif(os.name == "nt", reason="uses /bin/sh scripts")


def write_script(tmp_path: Path, body: str, name: str = "proxy") -> Path:
    path = tmp_path / name
    path.write_text("#!/bin/sh\n" + body + "\n", encoding="utf-8")
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.mark.parametrize(
    ("output", "returncode", "expected"),
    [
        ("alice@example.com (active)\n", 0, AccountsState.CONFIGURED),
        (f"{NO_ACCOUNTS_SENTINEL}.\n", 0, AccountsState.UNCONFIGURED),
        ("", 0, AccountsState.UNCONFIGURED),
        ("   \n", 0, AccountsState.UNCONFIGURED),
        ("Segmentation fault\n", 139, AccountsState.INCONCLUSIVE),
        ("", 1, AccountsState.INCONCLUSIVE),
        (f"{NO_ACCOUNTS_SENTINEL}\n", 1, AccountsState.UNCONFIGURED),
    ],
)
def test_classify_accounts_output(
    output: str, returncode: int, expected: AccountsState
) -> None:
    status = classify_accounts_output(output, returncode)
    assert status.state is expected
    assert status.configured is (expected is AccountsState.CONFIGURED)
    assert status.output == output


def test_remediation_command_names_executable() -> None:
    assert (
        remediation_command(Path("/opt/bin/proxy"))
        == "/opt/bin/proxy accounts add"
    )


@posix_only
@pytest.mark.anyio
async def test_check_passes_accounts_list_arguments(tmp_path: Path) -> None:
    script = write_script(tmp_path, 'echo "args: $@"')

    status = await check_accounts(script)

    assert status.state is AccountsState.CONFIGURED
    assert status.output.strip() == "args: accounts list"
    assert status.returncode == 0


@posix_only
@pytest.mark.anyio
async def test_check_reports_sentinel(tmp_path: Path) -> None:
    script = write_script(tmp_path, f'echo "{NO_ACCOUNTS_SENTINEL}"')

    status = await check_accounts(script)

    assert status.state is AccountsState.UNCONFIGURED


@posix_only
@pytest.mark.anyio
async def test_check_treats_empty_output_as_unconfigured(tmp_path: Path) -> None:
    script = write_script(tmp_path, "exit 0")

    status = await check_accounts(script)

    assert status.state is AccountsState.UNCONFIGURED


@posix_only
@pytest.mark.anyio
async def test_check_failure_is_inconclusive(tmp_path: Path) -> None:
    script = write_script(tmp_path, "echo boom >&2\nexit 3")

    status = await check_accounts(script)

    assert status.state is AccountsState.INCONCLUSIVE
    assert status.returncode == 3
    assert "boom" in status.output


@pytest.mark.anyio
async def test_check_missing_binary_is_inconclusive(tmp_path: Path) -> None:
    status = await check_accounts(tmp_path / "does-not-exist")

    assert status.state is AccountsState.INCONCLUSIVE
    assert status.returncode is None


@posix_only
@pytest.mark.anyio
async def test_check_timeout_is_inconclusive(tmp_path: Path) -> None:
    script = write_script(tmp_path, "exec sleep 5")

    status = await check_accounts(script, timeout=0.2)

    assert status.state is AccountsState.INCONCLUSIVE
    assert "timed out" in status.output


@posix_only
@pytest.mark.anyio
async def test_check_without_execute_permission_is_inconclusive(tmp_path: Path) -> None:
    script = tmp_path / "proxy"
    script.write_text("#!/bin/sh\necho hi\n", encoding="utf-8")
    script.chmod(0o644)

    status = await check_accounts(script)

    assert status.state is AccountsState.INCONCLUSIVE


def test_classify_ignores_stderr_noise_for_empty_output() -> None:
    status = classify_accounts_output(
        "", 0, "(node:1) [DEP0040] DeprecationWarning: punycode\n"
    )

    assert status.state is AccountsState.UNCONFIGURED
    assert "DeprecationWarning" in status.output


def test_classify_finds_sentinel_on_stderr() -> None:
    status = classify_accounts_output("", 0, f"{NO_ACCOUNTS_SENTINEL}\n")

    assert status.state is AccountsState.UNCONFIGURED


@posix_only
@pytest.mark.anyio
async def test_check_empty_stdout_with_stderr_warning_is_unconfigured(
    tmp_path: Path,
) -> None:
    script = write_script(
        tmp_path,
        "echo '(node:1) [DEP0040] DeprecationWarning: punycode' >&2\nexit 0",
    )

    status = await check_accounts(script)

    assert status.state is AccountsState.UNCONFIGURED
    assert "DeprecationWarning" in status.output


@posix_only
@pytest.mark.anyio
async def test_check_configured_despite_stderr_warning(tmp_path: Path) -> None:
    script = write_script(
        tmp_path,
        "echo '(node:1) [DEP0040] DeprecationWarning: punycode' >&2\n"
        "echo 'alice@example.com (active)'",
    )

    status = await check_accounts(script)

    assert status.state is AccountsState.CONFIGURED
