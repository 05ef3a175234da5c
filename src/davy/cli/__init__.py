"""CLI package for davy.

This package contains the CLI commands and supporting modules:
- run: Main sandbox workflow
- build: Image build decision and docker build
- auth: `davy auth claude reset`
- utils: Docker checks and error reporting

Lazy Import Strategy:
    The run workflow is only imported when a sandbox is actually launched,
    keeping --help/--version and the subcommands fast.
"""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

from .. import __version__, docker
from ..constants import DEFAULT_IMAGE, DEFAULT_SSH_PORT, ENV_IMAGE, PROG_NAME
from ..errors import DavyError, DockerfileNotFoundError, SSHKeysError
from ..logging import set_debug
from ..paths import get_host_ids, resolve_dockerfile
from ..run_config import RunOptions
from ..ssh import collect_authorized_keys
from ..volume import resolve_claude_volume
from .auth import auth
from .utils import report_error

console = Console(stderr=True, highlight=False)

# ctx.meta key holding the tokens after `--`
COMMAND_META_KEY = "davy.command"

__all__ = ["cli", "SandboxGroup", "COMMAND_META_KEY"]


class SandboxGroup(click.Group):
    """Group that treats everything after the first ``--`` as the container command.

    Without this, the first trailing token would be looked up as a subcommand.
    """

    def parse_args(self, ctx: click.Context, args: list[str]) -> list[str]:
        if "--" in args:
            split = args.index("--")
            ctx.meta[COMMAND_META_KEY] = tuple(args[split + 1 :])
            args = args[:split]
        return super().parse_args(ctx, args)


@click.group(
    cls=SandboxGroup,
    invoke_without_command=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)
@click.option(
    "--project",
    "-p",
    type=click.Path(),
    help="Mount DIR at /project (default: current directory)",
)
@click.option("--name", "-n", help="Container name (default: davy-<folder>-<timestamp>)")
@click.option("--docker", "with_docker_sock", is_flag=True, help="Also mount host docker socket")
@click.option(
    "--docker-sock",
    type=click.Path(),
    help="Docker socket to mount (default: DAVY_DOCKER_SOCK, DOCKER_HOST unix://, "
    "then /var/run/docker.sock)",
)
@click.option("--rebuild", is_flag=True, help="Force rebuild of the image (pull + no cache)")
@click.option("--no-build", is_flag=True, help="Do not build; fail if image is missing")
@click.option("--keep", is_flag=True, help="Do not remove the container on exit")
@click.option(
    "--expose-ssh",
    "-s",
    is_flag=False,
    flag_value=str(DEFAULT_SSH_PORT),
    default=None,
    metavar="[PORT]",
    help="Publish host PORT to container port 22 (default: 222)",
)
@click.option(
    "--env", "-e", "env", multiple=True, metavar="KEY=VALUE", help="Extra env var (repeatable)"
)
@click.option(
    "--pass-env", multiple=True, metavar="KEY", help="Forward host env var by name (repeatable)"
)
@click.option("--auth-pi", "--pi-auth", "auth_pi", is_flag=True, help="Mount host Pi auth")
@click.option(
    "--auth-codex", "--codex-auth", "auth_codex", is_flag=True, help="Mount host Codex auth"
)
@click.option(
    "--auth-gemini", "--gemini-auth", "auth_gemini", is_flag=True, help="Mount host Gemini auth"
)
@click.option(
    "--auth-claude",
    "--claude-auth",
    "auth_claude",
    is_flag=True,
    help="Mount persistent Claude auth volume",
)
@click.option(
    "--auth-all",
    "-a",
    is_flag=True,
    help="Enable all auth mounts (pi, codex, gemini, claude); missing ones are skipped",
)
@click.option(
    "--image", envvar=ENV_IMAGE, default=DEFAULT_IMAGE, show_default=True, help="Docker image tag"
)
@click.option(
    "--dockerfile",
    type=click.Path(),
    help="Dockerfile to build (default: DAVY_DOCKERFILE, then ~/.config/davy/"
    "{rocky,debian}.Dockerfile)",
)
@click.option(
    "--local-dockerfile",
    is_flag=True,
    help="Use rocky.Dockerfile/debian.Dockerfile from the current directory",
)
@click.option(
    "--docker-arg",
    "-x",
    "docker_args",
    multiple=True,
    metavar="ARG",
    help="Extra docker run argument (repeatable, e.g. -x=--privileged)",
)
@click.option("--debug", is_flag=True, help="Enable debug logging (or DAVY_DEBUG=1)")
@click.version_option(version=__version__, prog_name=PROG_NAME)
@click.pass_context
def cli(
    ctx: click.Context,
    project: str | None,
    name: str | None,
    with_docker_sock: bool,
    docker_sock: str | None,
    rebuild: bool,
    no_build: bool,
    keep: bool,
    expose_ssh: str | None,
    env: tuple[str, ...],
    pass_env: tuple[str, ...],
    auth_pi: bool,
    auth_codex: bool,
    auth_gemini: bool,
    auth_claude: bool,
    auth_all: bool,
    image: str,
    dockerfile: str | None,
    local_dockerfile: bool,
    docker_args: tuple[str, ...],
    debug: bool,
) -> None:
    """davy - Docker-based sandbox runner for agent CLIs.

    Run 'davy' in a project directory for a shell, or 'davy -- CMD...' to run
    a command.
    """
    if debug:
        set_debug(True)

    if ctx.invoked_subcommand is not None:
        return

    options = RunOptions.from_cli(
        project=project,
        name=name,
        keep=keep,
        image=image,
        dockerfile=dockerfile,
        local_dockerfile=local_dockerfile,
        rebuild=rebuild,
        no_build=no_build,
        docker=with_docker_sock,
        docker_sock=docker_sock,
        auth_pi=auth_pi,
        auth_codex=auth_codex,
        auth_gemini=auth_gemini,
        auth_claude=auth_claude,
        auth_all=auth_all,
        expose_ssh=expose_ssh,
        env=env,
        pass_env=pass_env,
        docker_args=docker_args,
        command=ctx.meta.get(COMMAND_META_KEY, ()),
    )

    # Lazy import: the run workflow pulls in every component
    from .run import run as _run

    try:
        returncode = _run(options)
    except DavyError as e:
        report_error(e)
        ctx.exit(e.exit_code)
    ctx.exit(returncode)


cli.add_command(auth)


@cli.command()
@click.option("--dockerfile", type=click.Path(), help="Dockerfile override")
@click.option("--local-dockerfile", is_flag=True, help="Look in the current directory")
@click.option("--image", envvar=ENV_IMAGE, default=DEFAULT_IMAGE, help="Docker image tag")
def doctor(dockerfile: str | None, local_dockerfile: bool, image: str) -> None:
    """Check system status and resolved sandbox settings."""
    checks: list[tuple[str, str, str]] = []

    docker_ok = docker.check_docker_status()
    checks.append(("Docker running", "ok" if docker_ok else "fail", "Start Docker"))

    try:
        resolved = resolve_dockerfile(dockerfile, local=local_dockerfile)
        checks.append((f"Dockerfile ({resolved})", "ok", ""))
    except DockerfileNotFoundError as e:
        checks.append(("Dockerfile", "fail", str(e)))

    uid, _ = get_host_ids()
    volume = resolve_claude_volume(uid)
    if docker_ok:
        image_ok = docker.image_exists(image)
        checks.append((f"Image {image}", "ok" if image_ok else "info", "Built on first run"))
        volume_ok = docker.volume_exists(volume.name)
        checks.append(
            (f"Claude volume {volume.name}", "ok" if volume_ok else "info", "Created by --auth-claude")
        )

    try:
        key_count = len(collect_authorized_keys())
        checks.append(
            (f"SSH public keys ({key_count})", "ok" if key_count else "info", "Needed for -s")
        )
    except SSHKeysError as e:
        report_error(e)
        checks.append(("SSH public keys", "fail", "Fix DAVY_SSH_AUTHORIZED_KEYS_FILE"))

    table = Table(title="davy Doctor")
    table.add_column("Check")
    table.add_column("Status")
    table.add_column("Action", style="dim")

    styles = {"ok": "[green]OK[/green]", "info": "[yellow]MISSING[/yellow]", "fail": "[red]FAIL[/red]"}
    for label, status, action in checks:
        table.add_row(label, styles[status], "" if status == "ok" else action)

    console.print(table)


if __name__ == "__main__":  # pragma: no cover
    cli()
