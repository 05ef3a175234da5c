"""Persistent Claude login volume management.

The volume keeps `claude login` state across container runs. Its default name
is derived from the host uid so unrelated users on one machine never share it.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from rich.console import Console

from . import docker
from .constants import (
    CLAUDE_VOLUME_PREFIX,
    CLAUDE_VOLUME_VERSION,
    CONTAINER_CLAUDE_AUTH_DIR,
    ENV_CLAUDE_AUTH_VOLUME,
    VOLUME_INIT_TIMEOUT,
)
from .errors import DockerCommandError
from .logging import get_logger

console = Console(stderr=True, highlight=False)
logger = get_logger(__name__)

# Mount point used only by the one-shot init container
INIT_MOUNT = "/auth"


@dataclass(frozen=True)
class VolumeRef:
    """A named docker volume and where it is mounted in the sandbox."""

    name: str
    target: str = CONTAINER_CLAUDE_AUTH_DIR


def claude_volume_name(
    uid: int,
    prefix: str = CLAUDE_VOLUME_PREFIX,
    version: str = CLAUDE_VOLUME_VERSION,
) -> str:
    """Derive the default volume name, e.g. ``davy-claude-auth-1000-v1``."""
    return f"{prefix}-{uid}-{version}"


def resolve_claude_volume(uid: int) -> VolumeRef:
    """Volume for this host user, honouring DAVY_CLAUDE_AUTH_VOLUME."""
    name = os.environ.get(ENV_CLAUDE_AUTH_VOLUME) or claude_volume_name(uid)
    return VolumeRef(name)


def init_script(uid: int, gid: int) -> str:
    """Shell run as root inside the init container.

    Every step is safe to repeat, so two racing first runs end up identical.
    """
    return (
        f"mkdir -p {INIT_MOUNT}/.claude && touch {INIT_MOUNT}/.claude.json "
        f"&& chown -R {uid}:{gid} {INIT_MOUNT}"
    )


def check_script(uid: int, gid: int) -> str:
    """Shell that exits 0 only if the init script completed for this uid:gid."""
    return (
        f"test -d {INIT_MOUNT}/.claude "
        f'&& test "$(stat -c %u:%g {INIT_MOUNT}/.claude.json 2>/dev/null)" = "{uid}:{gid}"'
    )


def _init_container_cmd(volume: VolumeRef, image: str, script: str) -> list[str]:
    return [
        "docker",
        "run",
        "--rm",
        "--user",
        "0:0",
        "-v",
        f"{volume.name}:{INIT_MOUNT}",
        image,
        "bash",
        "-lc",
        script,
    ]


def volume_initialized(volume: VolumeRef, *, image: str, uid: int, gid: int) -> bool:
    """Check an existing volume for a completed init.

    An earlier init that failed part way leaves the volume behind without
    the expected layout or ownership.
    """
    result = docker.safe_docker_run(_init_container_cmd(volume, image, check_script(uid, gid)))
    return result.returncode == 0


def initialize_volume(volume: VolumeRef, *, image: str, uid: int, gid: int) -> None:
    """Create the expected layout and hand ownership to the host user.

    A fresh volume is root-owned, so this runs as 0:0.

    Raises:
        DockerCommandError: If the init container fails.
    """
    cmd = _init_container_cmd(volume, image, init_script(uid, gid))
    try:
        docker.run_checked(
            cmd, "docker run (initialize Claude auth volume)", timeout=VOLUME_INIT_TIMEOUT
        )
    except DockerCommandError:
        console.print(
            f"[yellow]Volume '{volume.name}' was created but not initialized. "
            "The next run retries; 'davy auth claude reset' starts over.[/yellow]"
        )
        raise


def ensure_volume(volume: VolumeRef, *, image: str, uid: int, gid: int) -> bool:
    """Create the volume if absent and initialize it.

    Freshness comes from an inspect probe taken before the create call;
    ``docker volume create`` succeeds either way and says nothing about it.
    An existing volume is initialized again if an earlier init did not
    complete.

    Returns:
        True if init ran.
    """
    fresh = not docker.volume_exists(volume.name)
    docker.create_volume(volume.name)
    if not fresh:
        if volume_initialized(volume, image=image, uid=uid, gid=gid):
            logger.debug("Volume %s already initialized", volume.name)
            return False
        console.print(f"[yellow]davy: retrying init of Claude auth volume '{volume.name}'[/yellow]")
    else:
        logger.info("Initializing fresh volume %s", volume.name)

    initialize_volume(volume, image=image, uid=uid, gid=gid)
    return True


def reset_volume(volume: VolumeRef) -> bool:
    """Delete the volume if present.

    Returns:
        True if a volume was removed, False if there was nothing to remove.
    """
    if not docker.volume_exists(volume.name):
        console.print(f"[dim]davy: Claude auth volume '{volume.name}' does not exist[/dim]")
        return False

    docker.remove_volume(volume.name)
    console.print(f"[green]davy: removed Claude auth volume '{volume.name}'[/green]")
    return True
