"""Resolved launch plan for davy.

build_sandbox_config turns RunOptions plus the environment and host
filesystem into an immutable SandboxConfig. Every configuration error is
raised here, before anything talks to docker.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path

from .auth import AuthPlan, MountSpec, build_auth_requests, plan_auth_mounts
from .constants import DEFAULT_SHELL
from .errors import ConfigError
from .logging import get_logger
from .paths import (
    default_container_name,
    docker_socket_gid,
    get_host_ids,
    resolve_docker_socket,
    resolve_dockerfile,
    validate_project_dir,
)
from .run_config import RunOptions
from .ssh import SSHProvisionSpec, provision_ssh
from .volume import VolumeRef, resolve_claude_volume

logger = get_logger(__name__)


class BuildPolicy(str, Enum):
    """When to (re)build the image."""

    REBUILD = "rebuild"  # Always build, pulling the base image
    IF_MISSING = "if-missing"  # Build only if absent locally (default)
    NEVER = "never"  # Fail if absent


def build_policy_from_flags(rebuild: bool, no_build: bool) -> BuildPolicy:
    """Map --rebuild/--no-build to a policy.

    Raises:
        ConfigError: If both flags are given.
    """
    if rebuild and no_build:
        raise ConfigError("--rebuild and --no-build are mutually exclusive")
    if rebuild:
        return BuildPolicy.REBUILD
    if no_build:
        return BuildPolicy.NEVER
    return BuildPolicy.IF_MISSING


@dataclass(frozen=True)
class SandboxConfig:
    """Immutable launch plan consumed read-only by every component."""

    project_dir: Path
    image: str
    dockerfile: Path
    context_dir: Path
    container_name: str
    host_uid: int
    host_gid: int
    keep: bool = False
    build_policy: BuildPolicy = BuildPolicy.IF_MISSING
    docker_sock: Path | None = None
    docker_sock_gid: int | None = None
    ssh: SSHProvisionSpec | None = None
    claude_volume: VolumeRef | None = None
    mounts: tuple[MountSpec, ...] = ()
    env: tuple[str, ...] = ()
    docker_args: tuple[str, ...] = ()
    command: tuple[str, ...] = (DEFAULT_SHELL,)


def parse_env_assignments(assignments: tuple[str, ...]) -> tuple[str, ...]:
    """Validate literal ``KEY=VALUE`` assignments.

    Raises:
        ConfigError: If an assignment has no '=' or an empty key.
    """
    for assignment in assignments:
        key, sep, _ = assignment.partition("=")
        if not sep or not key:
            raise ConfigError(f"invalid --env '{assignment}': expected KEY=VALUE")
    return assignments


def forward_host_env(keys: tuple[str, ...]) -> tuple[str, ...]:
    """Turn --pass-env names into assignments from the host environment.

    Unset variables are forwarded as empty.
    """
    forwarded = []
    for key in keys:
        if key not in os.environ:
            logger.warning("--pass-env %s: not set on host, forwarding empty value", key)
        forwarded.append(f"{key}={os.environ.get(key, '')}")
    return tuple(forwarded)


def build_sandbox_config(options: RunOptions, *, now: datetime | None = None) -> SandboxConfig:
    """Resolve options into a SandboxConfig.

    Order of checks: build flags, project dir, Dockerfile, env assignments,
    auth mounts, docker socket, SSH.

    Raises:
        ConfigError: (or a subclass) for any invalid configuration.
    """
    build_policy = build_policy_from_flags(options.rebuild, options.no_build)
    project_dir = validate_project_dir(options.project)

    dockerfile = resolve_dockerfile(options.dockerfile, local=options.local_dockerfile)
    context_dir = dockerfile.parent

    host_uid, host_gid = get_host_ids()

    user_env = parse_env_assignments(options.env) + forward_host_env(options.pass_env)

    requests = build_auth_requests(options.auth_providers, options.auth_all)
    claude_volume = (
        resolve_claude_volume(host_uid)
        if any(r.provider.host_path is None for r in requests)
        else None
    )
    plan: AuthPlan = plan_auth_mounts(requests, home=Path.home(), claude_volume=claude_volume)

    docker_sock = None
    sock_gid = None
    if options.docker:
        docker_sock = resolve_docker_socket(options.docker_sock)
        sock_gid = docker_socket_gid(docker_sock)

    ssh = provision_ssh(options.expose_ssh) if options.expose_ssh is not None else None

    env = user_env + plan.env
    if ssh is not None:
        env += (ssh.env_assignment,)

    config = SandboxConfig(
        project_dir=project_dir,
        image=options.image,
        dockerfile=dockerfile,
        context_dir=context_dir,
        container_name=options.name or default_container_name(project_dir, now),
        host_uid=host_uid,
        host_gid=host_gid,
        keep=options.keep,
        build_policy=build_policy,
        docker_sock=docker_sock,
        docker_sock_gid=sock_gid,
        ssh=ssh,
        claude_volume=plan.claude_volume,
        mounts=plan.mounts,
        env=env,
        docker_args=options.docker_args,
        command=options.command or (DEFAULT_SHELL,),
    )
    logger.debug(
        "Sandbox config: image=%s dockerfile=%s name=%s policy=%s",
        config.image,
        config.dockerfile,
        config.container_name,
        config.build_policy.value,
    )
    return config
