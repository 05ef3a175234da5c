"""Run options dataclass for davy.

Bundles CLI arguments into a single object for cleaner function signatures
and easier testing. Values are raw: resolution and validation happen in
davy.config.build_sandbox_config.
"""

from __future__ import annotations

from dataclasses import dataclass

from .constants import DEFAULT_IMAGE


@dataclass(frozen=True)
class RunOptions:
    """Raw options for a davy run.

    Immutable so it can be shared between the resolver steps.
    """

    # Project and container
    project: str | None = None
    name: str | None = None
    keep: bool = False
    image: str = DEFAULT_IMAGE

    # Image build
    dockerfile: str | None = None
    local_dockerfile: bool = False
    rebuild: bool = False
    no_build: bool = False

    # Docker socket
    docker: bool = False
    docker_sock: str | None = None

    # Auth
    auth_providers: tuple[str, ...] = ()
    auth_all: bool = False

    # SSH (raw value, validated later)
    expose_ssh: str | None = None

    # Passthrough
    env: tuple[str, ...] = ()
    pass_env: tuple[str, ...] = ()
    docker_args: tuple[str, ...] = ()
    command: tuple[str, ...] = ()

    @classmethod
    def from_cli(
        cls,
        *,
        project: str | None = None,
        name: str | None = None,
        keep: bool = False,
        image: str = DEFAULT_IMAGE,
        dockerfile: str | None = None,
        local_dockerfile: bool = False,
        rebuild: bool = False,
        no_build: bool = False,
        docker: bool = False,
        docker_sock: str | None = None,
        auth_pi: bool = False,
        auth_codex: bool = False,
        auth_gemini: bool = False,
        auth_claude: bool = False,
        auth_all: bool = False,
        expose_ssh: str | None = None,
        env: tuple[str, ...] = (),
        pass_env: tuple[str, ...] = (),
        docker_args: tuple[str, ...] = (),
        command: tuple[str, ...] = (),
    ) -> RunOptions:
        """Create RunOptions from CLI arguments.

        Handles argument transformation (per-provider flags -> provider names).
        """
        flags = {
            "pi": auth_pi,
            "codex": auth_codex,
            "gemini": auth_gemini,
            "claude": auth_claude,
        }
        return cls(
            project=project,
            name=name,
            keep=keep,
            image=image,
            dockerfile=dockerfile,
            local_dockerfile=local_dockerfile,
            rebuild=rebuild,
            no_build=no_build,
            docker=docker,
            docker_sock=docker_sock,
            auth_providers=tuple(p for p, enabled in flags.items() if enabled),
            auth_all=auth_all,
            expose_ssh=expose_ssh,
            env=tuple(env),
            pass_env=tuple(pass_env),
            docker_args=tuple(docker_args),
            command=tuple(command),
        )
