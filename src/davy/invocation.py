"""Docker command generation for davy."""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING

from .constants import CONTAINER_DOCKER_SOCK, CONTAINER_PROJECT_DIR

if TYPE_CHECKING:
    from collections.abc import Sequence

    from .config import SandboxConfig


def get_docker_build_cmd(
    config: SandboxConfig,
    *,
    pull: bool = False,
    no_cache: bool = False,
) -> list[str]:
    """Generate the docker build command.

    The host uid/gid are passed as build args so the in-container user owns
    files on mounted volumes the same way the host user does.
    """
    cmd = ["docker", "build"]
    if pull:
        cmd.append("--pull")
    if no_cache:
        cmd.append("--no-cache")
    cmd.extend(
        [
            "--build-arg",
            f"USER_UID={config.host_uid}",
            "--build-arg",
            f"USER_GID={config.host_gid}",
            "-f",
            str(config.dockerfile),
            "-t",
            config.image,
            str(config.context_dir),
        ]
    )
    return cmd


def _build_mount_args(config: SandboxConfig) -> list[str]:
    """Project, auth/volume and docker socket mounts."""
    args = [
        "-v",
        f"{config.project_dir}:{CONTAINER_PROJECT_DIR}",
        "-w",
        CONTAINER_PROJECT_DIR,
    ]

    for mount in config.mounts:
        args.extend(mount.to_args())

    if config.docker_sock is not None:
        args.extend(["-v", f"{config.docker_sock}:{CONTAINER_DOCKER_SOCK}"])
        if config.docker_sock_gid is not None:
            args.extend(["--group-add", str(config.docker_sock_gid)])

    return args


def _build_env_args(config: SandboxConfig) -> list[str]:
    args: list[str] = []
    for assignment in config.env:
        args.extend(["-e", assignment])
    return args


def get_docker_run_cmd(config: SandboxConfig, command: Sequence[str]) -> list[str]:
    """Generate the docker run command.

    Args:
        config: Resolved launch plan.
        command: Final in-container command (already wrapped by the pipeline).
    """
    cmd = ["docker", "run"]

    # -t without a terminal makes docker refuse to start
    cmd.append("-it" if sys.stdin.isatty() else "-i")

    if not config.keep:
        cmd.append("--rm")

    cmd.extend(["--name", config.container_name])
    cmd.extend(_build_mount_args(config))

    if config.ssh is not None:
        cmd.extend(["-p", config.ssh.publish_arg])

    cmd.extend(_build_env_args(config))
    cmd.extend(config.docker_args)
    cmd.append(config.image)
    cmd.extend(command)
    return cmd
