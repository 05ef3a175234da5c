"""Run operations for davy.

The main workflow: resolve config, make sure the image and auth volume are
ready, wrap the command and run the container. Each step is a blocking
subprocess and a failure stops the remaining steps.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Console

from .. import docker
from ..config import SandboxConfig, build_sandbox_config
from ..constants import CONTAINER_SSH_PORT, CONTAINER_USER
from ..invocation import get_docker_run_cmd
from ..logging import get_logger
from ..pipeline import build_command
from ..volume import ensure_volume
from .build import ensure_image_ready
from .utils import check_docker

if TYPE_CHECKING:
    from ..run_config import RunOptions

console = Console(stderr=True, highlight=False)
logger = get_logger(__name__)


def diagnose_container_failure(returncode: int, container_name: str) -> None:
    """Print a hint for well-known exit codes."""
    if returncode == 125:
        console.print("[yellow]docker run itself failed (see the error above)[/yellow]")
        console.print(f"[dim]Check the image and any --docker-arg values for {container_name}[/dim]")
        return
    if returncode in (126, 127):
        console.print("[yellow]Command could not be run inside the container[/yellow]")
        return
    if returncode == 137:
        console.print("[yellow]Container was killed (OOM or manual stop)[/yellow]")
        return
    logger.debug("Container %s exited with code %d", container_name, returncode)


def print_notices(config: SandboxConfig) -> None:
    """Tell the user about host integrations before handing over the terminal."""
    if config.docker_sock is not None:
        console.print(
            f"[yellow]davy: docker socket mounted from {config.docker_sock}. "
            "Container can control host Docker.[/yellow]"
        )
        if config.docker_sock_gid is not None:
            console.print(
                f"[dim]davy: adding supplementary group {config.docker_sock_gid} "
                "for docker socket access.[/dim]"
            )
    if config.ssh is not None:
        console.print(
            f"[dim]davy: exposing host port {config.ssh.port} to container port "
            f"{CONTAINER_SSH_PORT}.[/dim]"
        )
        console.print(f"[dim]davy: SSH login user is '{CONTAINER_USER}' (key auth only).[/dim]")
    if config.claude_volume is not None:
        console.print(
            f"[dim]davy: Claude auth volume mounted at {config.claude_volume.target} "
            f"({config.claude_volume.name}).[/dim]"
        )
        console.print("[dim]davy: first use requires running 'claude login' in-container.[/dim]")


def execute_container(config: SandboxConfig) -> int:
    """Wrap the command, run the container and return its exit code."""
    command = build_command(
        config.command,
        claude_auth=config.claude_volume is not None,
        expose_ssh=config.ssh is not None,
    )
    cmd = get_docker_run_cmd(config, command)

    print_notices(config)
    returncode = docker.run_foreground(cmd)
    if returncode not in (0, 130):  # 130 = Ctrl+C
        diagnose_container_failure(returncode, config.container_name)
    return returncode


def run(options: RunOptions) -> int:
    """Run a sandbox for the given options.

    Returns:
        The container's exit code.

    Raises:
        DavyError: Configuration errors before any docker call, or a docker
            step failing (DockerCommandError carries the child's code).
    """
    config = build_sandbox_config(options)
    logger.info("Starting run workflow: project=%s image=%s", config.project_dir, config.image)

    check_docker()
    ensure_image_ready(config)

    if config.claude_volume is not None:
        ensure_volume(
            config.claude_volume,
            image=config.image,
            uid=config.host_uid,
            gid=config.host_gid,
        )

    return execute_container(config)
