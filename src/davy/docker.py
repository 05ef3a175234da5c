"""Docker operations for davy.

Thin wrappers over the docker CLI. Every call is a blocking subprocess;
nothing here runs concurrently.
"""

from __future__ import annotations

import signal
import subprocess
from typing import TYPE_CHECKING

from .constants import DOCKER_COMMAND_TIMEOUT
from .errors import DockerCommandError, DockerNotFoundError, DockerTimeoutError
from .logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

logger = get_logger(__name__)

__all__ = [
    "safe_docker_run",
    "run_checked",
    "run_foreground",
    "check_docker_status",
    "image_exists",
    "volume_exists",
    "create_volume",
    "remove_volume",
    "normalize_returncode",
]


def _describe(cmd: Sequence[str]) -> str:
    return " ".join(cmd[:4]) + ("..." if len(cmd) > 4 else "")


def normalize_returncode(returncode: int) -> int:
    """Map a subprocess return code to a shell-style exit status.

    Python reports death-by-signal as ``-N``; shells report ``128 + N``.
    """
    if returncode < 0:
        return 128 + abs(returncode)
    return returncode


def safe_docker_run(
    cmd: Sequence[str],
    *,
    timeout: int | None = DOCKER_COMMAND_TIMEOUT,
    capture_output: bool = True,
    check: bool = False,
    env: Mapping[str, str] | None = None,
) -> subprocess.CompletedProcess[str]:
    """Run a Docker command with consistent error handling.

    Args:
        cmd: Command to run (should start with 'docker').
        timeout: Command timeout in seconds, None to wait indefinitely.
        capture_output: Capture stdout/stderr if True.
        check: Raise CalledProcessError on non-zero exit.
        env: Environment for the child, inherited if None.

    Returns:
        CompletedProcess with command result.

    Raises:
        DockerNotFoundError: If docker command is not found.
        DockerTimeoutError: If command times out.
        subprocess.CalledProcessError: If check=True and command fails.
    """
    cmd_str = _describe(cmd)
    logger.debug("Running Docker command: %s", cmd_str)
    try:
        result = subprocess.run(
            list(cmd),
            capture_output=capture_output,
            text=True,
            check=check,
            timeout=timeout,
            env=dict(env) if env is not None else None,
        )
        logger.debug("Docker command completed: exit=%d", result.returncode)
        return result
    except FileNotFoundError as e:
        logger.error("Docker not found in PATH: %s", cmd_str)
        raise DockerNotFoundError(f"Docker not found in PATH. Command: {cmd_str}") from e
    except subprocess.TimeoutExpired as e:
        logger.error("Docker command timed out after %ss: %s", timeout, cmd_str)
        raise DockerTimeoutError(
            f"Docker command timed out after {timeout}s. Command: {cmd_str}"
        ) from e


def run_checked(
    cmd: Sequence[str],
    description: str,
    *,
    timeout: int | None = DOCKER_COMMAND_TIMEOUT,
    capture_output: bool = True,
    env: Mapping[str, str] | None = None,
) -> subprocess.CompletedProcess[str]:
    """Run a docker command and raise DockerCommandError on non-zero exit."""
    result = safe_docker_run(
        cmd, timeout=timeout, capture_output=capture_output, env=env
    )
    if result.returncode != 0:
        if capture_output and result.stderr:
            logger.debug("%s stderr: %s", description, result.stderr.strip())
        raise DockerCommandError(description, normalize_returncode(result.returncode))
    return result


def run_foreground(cmd: Sequence[str]) -> int:
    """Run a long-lived docker command attached to the terminal.

    The caller's stdin/stdout/stderr are inherited and there is no timeout.

    Returns:
        The child's exit status. Ctrl+C maps to 130, death by signal to 128+N.
    """
    cmd_str = _describe(cmd)
    logger.debug("Running foreground command: %s", cmd_str)
    try:
        result = subprocess.run(list(cmd), check=False)
    except FileNotFoundError as e:
        raise DockerNotFoundError(f"Docker not found in PATH. Command: {cmd_str}") from e
    except KeyboardInterrupt:
        return 128 + signal.SIGINT
    returncode = normalize_returncode(result.returncode)
    logger.debug("Foreground command completed: exit=%d", returncode)
    return returncode


def check_docker_status() -> bool:
    """Check if Docker daemon is responsive.

    Returns:
        True if Docker is running and responsive, False otherwise.
    """
    try:
        result = safe_docker_run(["docker", "info"])
        return result.returncode == 0
    except (DockerNotFoundError, DockerTimeoutError):
        return False


def image_exists(image: str) -> bool:
    """Check if an image is present in the local image store."""
    result = safe_docker_run(["docker", "image", "inspect", image])
    return result.returncode == 0


def volume_exists(name: str) -> bool:
    """Check if a named volume exists."""
    result = safe_docker_run(["docker", "volume", "inspect", name])
    return result.returncode == 0


def create_volume(name: str) -> None:
    """Create a named volume (no-op in docker if it already exists)."""
    run_checked(["docker", "volume", "create", name], "docker volume create")


def remove_volume(name: str) -> None:
    """Remove a named volume."""
    run_checked(["docker", "volume", "rm", "-f", name], "docker volume rm")
