"""Host resource resolution for davy.

Each ambiguous host resource is resolved from a precedence chain of
explicit flag -> environment variable -> convention -> default, stopping
at the first match.
"""

from __future__ import annotations

import os
import stat
from datetime import datetime
from pathlib import Path

from .constants import (
    CONFIG_DIR,
    CONTAINER_NAME_TIME_FORMAT,
    CONTAINER_PREFIX,
    DEFAULT_DOCKER_SOCK,
    DOCKERFILE_CANDIDATES,
    ENV_DOCKER_HOST,
    ENV_DOCKER_SOCK,
    ENV_DOCKERFILE,
)
from .errors import DockerfileNotFoundError, DockerSocketError, ProjectDirNotFoundError
from .logging import get_logger

logger = get_logger(__name__)

UNIX_SCHEME = "unix://"


def get_config_dir() -> Path:
    """Get the davy configuration directory (holds the default Dockerfiles)."""
    return Path(os.path.expanduser(CONFIG_DIR))


def get_host_ids() -> tuple[int, int]:
    """Get the caller's numeric uid and gid.

    Falls back to 1000:1000 on platforms without os.getuid (Windows).
    """
    getuid = getattr(os, "getuid", None)
    getgid = getattr(os, "getgid", None)
    uid = getuid() if getuid else 1000
    gid = getgid() if getgid else 1000
    return uid, gid


def validate_project_dir(path: str | Path | None) -> Path:
    """Resolve the project directory to an absolute path.

    Args:
        path: Directory given by the user, or None for the current directory.

    Raises:
        ProjectDirNotFoundError: If the path is not an existing directory.
    """
    project = Path(path) if path is not None else Path.cwd()
    if not project.is_dir():
        raise ProjectDirNotFoundError(f"project dir not found: {project}")
    return project.resolve()


def _first_existing(directory: Path) -> Path | None:
    for name in DOCKERFILE_CANDIDATES:
        candidate = directory / name
        if candidate.is_file():
            return candidate
    return None


def resolve_dockerfile(explicit: str | Path | None = None, *, local: bool = False) -> Path:
    """Resolve the Dockerfile to build.

    Precedence:
        1. ``explicit`` (--dockerfile)
        2. DAVY_DOCKERFILE
        3. With ``local``: ./rocky.Dockerfile, then ./debian.Dockerfile
        4. Otherwise: ~/.config/davy/rocky.Dockerfile, then debian.Dockerfile

    Raises:
        DockerfileNotFoundError: If an explicit path is not a file, or no
            candidate exists.
    """
    requested = explicit or os.environ.get(ENV_DOCKERFILE) or None
    if requested:
        dockerfile = Path(requested)
        if not dockerfile.is_file():
            raise DockerfileNotFoundError(f"Dockerfile not found at: {dockerfile}")
        logger.debug("Dockerfile from flag/env: %s", dockerfile)
        return dockerfile

    directory = Path.cwd() if local else get_config_dir()
    found = _first_existing(directory)
    if found is not None:
        logger.debug("Dockerfile by convention: %s", found)
        return found

    looked = " and ".join(str(directory / name) for name in DOCKERFILE_CANDIDATES)
    if local:
        raise DockerfileNotFoundError(
            f"no Dockerfile found in current directory (looked for {looked})"
        )
    raise DockerfileNotFoundError(
        f"no Dockerfile found (looked for {looked}); "
        f"use --dockerfile, --local-dockerfile, or {ENV_DOCKERFILE}"
    )


def parse_unix_socket_from_docker_host(docker_host: str) -> Path | None:
    """Extract the socket path from a ``unix://`` DOCKER_HOST value.

    >>> parse_unix_socket_from_docker_host("unix:///run/user/1000/docker.sock")
    PosixPath('/run/user/1000/docker.sock')
    >>> parse_unix_socket_from_docker_host("tcp://127.0.0.1:2375") is None
    True
    """
    if not docker_host.startswith(UNIX_SCHEME):
        return None
    path = docker_host[len(UNIX_SCHEME) :]
    return Path(path) if path else None


def resolve_docker_socket(explicit: str | Path | None = None) -> Path:
    """Resolve the host docker socket to mount into the container.

    Precedence:
        1. ``explicit`` (--docker-sock)
        2. DAVY_DOCKER_SOCK
        3. DOCKER_HOST when it uses the unix:// scheme
        4. /var/run/docker.sock

    Raises:
        DockerSocketError: If DOCKER_HOST names a non-local daemon and no
            explicit path was given, or the path is not a unix socket.
    """
    requested = explicit or os.environ.get(ENV_DOCKER_SOCK) or None
    docker_host = os.environ.get(ENV_DOCKER_HOST, "")

    if requested:
        socket = Path(requested)
    elif docker_host:
        parsed = parse_unix_socket_from_docker_host(docker_host)
        if parsed is None:
            raise DockerSocketError(
                f"{ENV_DOCKER_HOST} is set to '{docker_host}', but --docker needs a local "
                f"unix socket. Set --docker-sock or {ENV_DOCKER_SOCK}, or drop --docker and "
                f"forward the daemon with --pass-env {ENV_DOCKER_HOST}."
            )
        socket = parsed
    else:
        socket = Path(DEFAULT_DOCKER_SOCK)

    try:
        mode = socket.stat().st_mode
    except OSError as e:
        raise DockerSocketError(f"docker socket not found: {socket}") from e
    if not stat.S_ISSOCK(mode):
        raise DockerSocketError(f"docker socket path is not a unix socket: {socket}")

    logger.debug("Docker socket resolved: %s", socket)
    return socket


def docker_socket_gid(socket: Path) -> int:
    """Group owning the socket, added to the container user for access."""
    return socket.stat().st_gid


def default_container_name(project_dir: Path, now: datetime | None = None) -> str:
    """Generate ``davy-<project-basename>-<timestamp>``."""
    base = project_dir.name or "project"
    timestamp = (now or datetime.now()).strftime(CONTAINER_NAME_TIME_FORMAT)
    return f"{CONTAINER_PREFIX}-{base}-{timestamp}"
