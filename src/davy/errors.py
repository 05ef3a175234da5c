"""Unified exception hierarchy for davy.

All custom exceptions inherit from DavyError for consistent error handling.
The CLI catches DavyError, prints the message and exits with ``exit_code``.
Pre-flight failures each carry their own small exit code so scripts can tell
a configuration problem apart from a failure inside the container.

Dependency direction:
    This module has NO internal dependencies (leaf module).
    It may be imported by: all other davy modules.
    It should NOT import from any other davy modules.
"""

from __future__ import annotations


class DavyError(Exception):
    """Base exception for all davy errors."""

    exit_code = 1


class ConfigError(DavyError):
    """Configuration-related errors.

    Raised before any docker invocation. Examples:
        - Malformed --env assignment
        - Both --rebuild and --no-build given
    """

    exit_code = 2


class ProjectDirNotFoundError(ConfigError):
    """Raised when the project directory does not exist."""

    exit_code = 3


class DockerfileNotFoundError(ConfigError):
    """Raised when no Dockerfile can be resolved."""

    exit_code = 4


class ImageNotFoundError(ConfigError):
    """Raised when the image is missing and building is disabled."""

    exit_code = 5


class InvalidSSHPortError(ConfigError):
    """Raised when the requested SSH host port is not in 1..65535."""

    exit_code = 6


class SSHKeysError(ConfigError):
    """Authorized-keys errors.

    Examples:
        - Override file missing or unreadable
        - No public keys found on the host
    """

    exit_code = 7


class DockerSocketError(ConfigError):
    """Docker socket resolution errors.

    Examples:
        - DOCKER_HOST points at a non-unix endpoint
        - Socket path missing or not a socket
    """

    exit_code = 8


class AuthMountError(ConfigError):
    """Raised when an explicitly requested credential mount cannot be satisfied."""

    exit_code = 9


class DockerError(DavyError):
    """Docker operation errors.

    Base class for all Docker-related exceptions.
    """


class DockerNotFoundError(DockerError):
    """Raised when Docker is not installed or not in PATH."""


class DockerTimeoutError(DockerError):
    """Raised when a Docker operation times out."""


class DockerNotRunningError(DockerError):
    """Raised when Docker daemon is not running."""


class DockerCommandError(DockerError):
    """Raised when a docker subprocess exits non-zero.

    The exit code is the child's own status so it propagates verbatim.
    """

    def __init__(self, description: str, returncode: int) -> None:
        self.description = description
        self.returncode = returncode
        super().__init__(f"{description} exited with status code {returncode}")

    @property
    def exit_code(self) -> int:  # type: ignore[override]
        return self.returncode if self.returncode > 0 else 1
