"""Pytest configuration and fixtures.

Provides environment isolation, backoff recording, logging configuration and
marker registration. Fixtures here are autouse unless noted.
"""

from __future__ import annotations

import logging
import os

import pytest

from serdekit.retry import raise_if_cancelled

# =============================================================================
# Environment Isolation (Autouse)
# =============================================================================


@pytest.fixture(autouse=True)
def block_dotenv(request, monkeypatch):
    """Prevent python-dotenv from loading project .env files during tests.

    Opt-out: @pytest.mark.allow_dotenv
    """
    if request.node.get_closest_marker("allow_dotenv"):
        return
    monkeypatch.setattr(
        "serdekit.config.load_dotenv", lambda *_args, **_kwargs: False
    )


@pytest.fixture(autouse=True)
def isolate_serdekit_env(request, monkeypatch):
    """Clear SERDEKIT_* variables so configuration tests start from defaults.

    Opt-out: @pytest.mark.allow_env_pollution
    """
    if request.node.get_closest_marker("allow_env_pollution"):
        return
    for key in list(os.environ.keys()):
        if key.startswith("SERDEKIT_"):
            monkeypatch.delenv(key, raising=False)


# =============================================================================
# Retry Backoff (Autouse)
# =============================================================================


@pytest.fixture(autouse=True)
def backoff_delays(request, monkeypatch) -> list[float]:
    """Record retry backoff delays instead of sleeping through them.

    Opt-out: @pytest.mark.real_backoff
    """
    delays: list[float] = []
    if request.node.get_closest_marker("real_backoff"):
        return delays

    async def _record(delay: float, cancel) -> None:
        raise_if_cancelled(cancel, stage="retry backoff")
        delays.append(delay)

    monkeypatch.setattr("serdekit.retry._wait_backoff", _record)
    return delays


# =============================================================================
# Logging
# =============================================================================


@pytest.fixture(scope="session", autouse=True)
def quiet_noisy_libraries():
    """Keep library debug chatter out of failure reports."""
    logging.getLogger("asyncio").setLevel(logging.WARNING)


# =============================================================================
# Pytest Hooks
# =============================================================================


def pytest_configure(config):
    for marker in (
        "allow_dotenv: let python-dotenv read real .env files",
        "allow_env_pollution: keep SERDEKIT_* variables from the outer environment",
        "real_backoff: sleep through retry backoff instead of recording it",
    ):
        config.addinivalue_line("markers", marker)
