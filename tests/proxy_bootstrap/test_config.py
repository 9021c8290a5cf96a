import os
from pathlib import Path

import pytest

from proxy_bootstrap.config import BootstrapConfig
from proxy_bootstrap.types import BootstrapResult


def test_defaults_are_valid() -> None:
    config = BootstrapConfig()

    assert config.preferred_port == 8080
    assert config.port_window == 100
    assert config.health_interval <= config.health_timeout


@pytest.mark.parametrize(
    "overrides",
    [
        {"port_window": 0},
        {"health_timeout": 0},
        {"health_interval": 0},
        {"health_interval": 2.0, "health_timeout": 1.0},
        {"preferred_port": 0},
        {"preferred_port": 70000},
        {"accounts_timeout": -1.0},
    ],
)
def test_invalid_config_rejected(overrides: dict) -> None:
    with pytest.raises(ValueError):
        BootstrapConfig(executable=Path("/bin/true"), **overrides)


def test_interval_may_equal_timeout() -> None:
    config = BootstrapConfig(health_timeout=1.0, health_interval=1.0)
    assert config.health_interval == config.health_timeout


def test_result_env_does_not_touch_process_environment(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.delenv("ANTHROPIC_BASE_URL", raising=False)
    result = BootstrapResult(
        base_url="http://localhost:8081", provider="gemini", ready=True, port=8081
    )

    assert result.as_env() == {
        "ANTHROPIC_BASE_URL": "http://localhost:8081",
        "SHANNON_MODEL_PROVIDER": "gemini",
    }

    target: dict[str, str] = {}
    result.apply_to_environ(target)
    assert target["ANTHROPIC_BASE_URL"] == "http://localhost:8081"

    assert "ANTHROPIC_BASE_URL" not in os.environ
