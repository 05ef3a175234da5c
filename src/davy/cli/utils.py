"""CLI utilities for davy."""

from __future__ import annotations

from rich.console import Console

from .. import docker
from ..errors import DavyError, DockerNotRunningError

console = Console(stderr=True, highlight=False)

ERR_DOCKER_NOT_RUNNING = "Docker is not running. Start Docker and try again."


def check_docker() -> None:
    """Fail fast if the Docker daemon does not answer.

    Raises:
        DockerNotRunningError: If `docker info` fails or docker is missing.
    """
    if not docker.check_docker_status():
        raise DockerNotRunningError(ERR_DOCKER_NOT_RUNNING)


def report_error(error: DavyError) -> None:
    """Print a davy error the way every command does."""
    console.print(f"[red]davy: {error}[/red]")
