"""Pytest configuration and fixtures for davy tests.

This module ensures the davy package is importable during tests
without requiring installation, and isolates tests from the host's
davy/docker environment variables and home directory.
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Add src directory to path for development testing
src_path = Path(__file__).parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

HOST_ENV_VARS = (
    "DAVY_IMAGE",
    "DAVY_DOCKERFILE",
    "DAVY_DOCKER_SOCK",
    "DAVY_CLAUDE_AUTH_VOLUME",
    "DAVY_SSH_AUTHORIZED_KEYS_FILE",
    "DAVY_DEBUG",
    "DOCKER_HOST",
)


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Strip host settings that would change resolution results."""
    for var in HOST_ENV_VARS:
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Empty home directory set as $HOME."""
    home_dir = tmp_path / "home"
    home_dir.mkdir()
    monkeypatch.setenv("HOME", str(home_dir))
    return home_dir


@pytest.fixture
def project(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Project directory that is also the current working directory."""
    project_dir = tmp_path / "proj"
    project_dir.mkdir()
    monkeypatch.chdir(project_dir)
    return project_dir


@pytest.fixture
def config_dockerfile(home: Path) -> Path:
    """~/.config/davy/rocky.Dockerfile."""
    config_dir = home / ".config" / "davy"
    config_dir.mkdir(parents=True)
    dockerfile = config_dir / "rocky.Dockerfile"
    dockerfile.write_text("FROM rockylinux:9\n")
    return dockerfile
