"""Shared pytest fixtures for the backend-studio test suite.

Provides reusable fixtures for:
- Settings that never prompt and never run npm/pip
- Ready-made configurations for both frameworks
- A generator, and a bootstrap skeleton written to a temporary directory
- Mock subprocess helpers
"""

from __future__ import annotations

from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from backend_studio.config import (
    BootstrapConfig,
    ConfigModel,
    StudioSettings,
    validate_config,
)
from backend_studio.scaffolder import FileSpecGenerator, ProjectWriter


# ---------------------------------------------------------------------------
# Settings & environment
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep developer machines' BACKEND_STUDIO_* variables out of the tests."""
    for name in (
        "BACKEND_STUDIO_NPM",
        "BACKEND_STUDIO_PYTHON",
        "BACKEND_STUDIO_INSTALL_TIMEOUT",
        "BACKEND_STUDIO_SKIP_INSTALL",
        "BACKEND_STUDIO_NO_INPUT",
        "BACKEND_STUDIO_ANSWERS",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def settings() -> StudioSettings:
    """Settings with fixed commands, no prompts and no installs."""
    return StudioSettings(
        npm_command="npm",
        python_command="python3",
        skip_install=True,
        no_input=True,
    )


@pytest.fixture
def tmp_project_dir(tmp_path: Path) -> Path:
    """Path for a generated project (not created)."""
    return tmp_path / "demo"


# ---------------------------------------------------------------------------
# Configurations
# ---------------------------------------------------------------------------

def make_config(**overrides: Any) -> ConfigModel:
    """Build a validated config; defaults to a typed Express project."""
    answers: dict[str, Any] = {
        "project_name": "demo",
        "framework": "express",
        "port": 3000,
        "database": "none",
        "features": [],
    }
    answers.update(overrides)
    return validate_config(answers)


@pytest.fixture
def config_factory():
    """``make_config`` as a fixture, for tests that need many variants."""
    return make_config


@pytest.fixture
def express_config() -> ConfigModel:
    """Express, JavaScript, in-memory store, CORS on, port 3000."""
    return make_config(language_mode="untyped", features=["cors"])


@pytest.fixture
def typed_express_config() -> ConfigModel:
    return make_config(language_mode="typed", features=["cors", "auto_reload"])


@pytest.fixture
def flask_config() -> ConfigModel:
    return make_config(framework="flask", port=5000, features=["cors", "venv"])


@pytest.fixture
def postgres_credentials() -> dict[str, Any]:
    return {
        "host": "db.internal",
        "user": "api",
        "password": "s3cret",
        "database_name": "users",
    }


# ---------------------------------------------------------------------------
# Generator & writer
# ---------------------------------------------------------------------------

@pytest.fixture
def generator(settings: StudioSettings) -> FileSpecGenerator:
    return FileSpecGenerator(settings)


@pytest.fixture
def skeleton_dir(tmp_path: Path, generator: FileSpecGenerator):
    """Factory that writes a stage-1 skeleton and returns its directory."""

    async def factory(framework: str = "express", name: str = "demo") -> Path:
        config = BootstrapConfig(project_name=name, framework=framework)
        target = tmp_path / name
        await ProjectWriter(target).write(generator.bootstrap(config), rollback=True)
        return target

    return factory


# ---------------------------------------------------------------------------
# Subprocess mocks
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_subprocess():
    """Mock asyncio subprocess for testing command execution.

    Returns a factory that creates mock subprocess instances with configurable
    stdout, stderr, and return codes.

    Usage:
        def test_command(mock_subprocess):
            proc = mock_subprocess(stdout="output", returncode=0)
            with patch("asyncio.create_subprocess_exec", return_value=proc):
                ...
    """
    def factory(
        stdout: str = "",
        stderr: str = "",
        returncode: int = 0,
    ) -> AsyncMock:
        mock_proc = AsyncMock()
        mock_proc.communicate = AsyncMock(
            return_value=(stdout.encode("utf-8"), stderr.encode("utf-8"))
        )
        mock_proc.returncode = returncode
        mock_proc.pid = 99999
        mock_proc.kill = MagicMock()
        mock_proc.wait = AsyncMock(return_value=returncode)
        return mock_proc

    return factory
