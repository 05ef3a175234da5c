"""Credential mount planning.

Decides, per auth provider, whether and how host state is mounted into the
sandbox. Explicitly requested providers must be present on the host;
providers enabled through --auth-all are best-effort and skipped with a
warning when missing.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from rich.console import Console

from .constants import CONTAINER_HOME
from .errors import AuthMountError
from .logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path

    from .volume import VolumeRef

console = Console(stderr=True, highlight=False)
logger = get_logger(__name__)


class AuthMode(str, Enum):
    """How a provider was requested."""

    EXPLICIT = "explicit"  # --auth-<provider>: fail if missing
    BULK = "bulk"  # --auth-all: warn and skip if missing


@dataclass(frozen=True)
class MountSpec:
    """One host -> container mount."""

    source: str
    target: str
    kind: str = "bind"  # bind | volume

    def to_args(self) -> list[str]:
        """Render as docker run arguments."""
        if self.kind == "volume":
            return ["--mount", f"type=volume,src={self.source},dst={self.target}"]
        return ["-v", f"{self.source}:{self.target}"]


@dataclass(frozen=True)
class AuthProvider:
    """A category of host credential state that can be mounted.

    ``host_path`` is relative to $HOME; None means the provider is backed by
    the persistent Claude volume instead of a host directory.
    """

    name: str
    label: str
    host_path: str | None
    target: str
    env: tuple[str, ...] = ()


@dataclass(frozen=True)
class AuthRequest:
    provider: AuthProvider
    mode: AuthMode


@dataclass(frozen=True)
class AuthPlan:
    """Result of planning: what to mount and export."""

    mounts: tuple[MountSpec, ...] = ()
    env: tuple[str, ...] = ()
    skipped: tuple[str, ...] = ()
    claude_volume: VolumeRef | None = None


# Fixed provider order; mounts are emitted in this order.
AUTH_PROVIDERS: dict[str, AuthProvider] = {
    "pi": AuthProvider("pi", "Pi auth", ".pi/agent", f"{CONTAINER_HOME}/.pi/agent"),
    "codex": AuthProvider(
        "codex",
        "Codex auth",
        ".codex",
        f"{CONTAINER_HOME}/.codex",
        env=(f"CODEX_HOME={CONTAINER_HOME}/.codex",),
    ),
    "gemini": AuthProvider("gemini", "Gemini auth", ".gemini", f"{CONTAINER_HOME}/.gemini"),
    "claude": AuthProvider("claude", "Claude auth", None, f"{CONTAINER_HOME}/.claude-auth"),
}

# Mounted whenever present, regardless of flags
SKILLS_PROVIDER = AuthProvider(
    "skills", "agents skills", ".agents/skills", f"{CONTAINER_HOME}/.agents/skills"
)


def build_auth_requests(selected: Iterable[str], auth_all: bool = False) -> list[AuthRequest]:
    """Turn provider flags into requests.

    A provider named explicitly keeps explicit mode even when --auth-all is
    also given.

    Raises:
        AuthMountError: If a provider name is unknown.
    """
    explicit = set(selected)
    unknown = explicit - AUTH_PROVIDERS.keys()
    if unknown:
        raise AuthMountError(f"unknown auth provider(s): {', '.join(sorted(unknown))}")

    requests = []
    for name, provider in AUTH_PROVIDERS.items():
        if name in explicit:
            requests.append(AuthRequest(provider, AuthMode.EXPLICIT))
        elif auth_all:
            requests.append(AuthRequest(provider, AuthMode.BULK))
    return requests


def _host_dir_ready(provider: AuthProvider, source: Path, mode: AuthMode) -> bool:
    """Check a provider's host directory.

    Returns:
        True to mount, False to skip (bulk mode only).

    Raises:
        AuthMountError: If the source is not a directory, or is missing in
            explicit mode.
    """
    if source.is_dir():
        return True
    if source.exists():
        raise AuthMountError(f"{provider.label} mount source is not a directory: {source}")
    if mode is AuthMode.BULK:
        console.print(
            f"[yellow]davy: warning: {provider.label} mount source not found at "
            f"{source}; skipping.[/yellow]"
        )
        return False
    raise AuthMountError(f"{provider.label} mount source not found: {source}")


def plan_auth_mounts(
    requests: Iterable[AuthRequest],
    *,
    home: Path,
    claude_volume: VolumeRef | None = None,
) -> AuthPlan:
    """Plan mounts and env for the requested providers.

    Args:
        requests: Requests from build_auth_requests.
        home: Host home directory.
        claude_volume: Volume backing the claude provider, required if it
            is requested.
    """
    mounts: list[MountSpec] = []
    env: list[str] = []
    skipped: list[str] = []
    volume: VolumeRef | None = None

    for request in requests:
        provider = request.provider
        if provider.host_path is None:
            if claude_volume is None:
                raise AuthMountError(f"{provider.label} requested but no volume configured")
            volume = claude_volume
            mounts.append(MountSpec(claude_volume.name, claude_volume.target, kind="volume"))
            continue

        source = home / provider.host_path
        if not _host_dir_ready(provider, source, request.mode):
            skipped.append(provider.name)
            continue
        logger.debug("Mounting %s from %s", provider.name, source)
        mounts.append(MountSpec(str(source), provider.target))
        env.extend(provider.env)

    skills = home / str(SKILLS_PROVIDER.host_path)
    if skills.is_dir():
        mounts.append(MountSpec(str(skills), SKILLS_PROVIDER.target))
    else:
        logger.debug("No host skills directory at %s", skills)

    return AuthPlan(
        mounts=tuple(mounts),
        env=tuple(env),
        skipped=tuple(skipped),
        claude_volume=volume,
    )
