"""SSH key provisioning for --expose-ssh.

Host public keys are aggregated, deduplicated and base64-encoded into a single
environment variable, which the in-container bootstrap stage decodes into
~/.ssh/authorized_keys.
"""

from __future__ import annotations

import base64
import os
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from .constants import (
    CONTAINER_SSH_PORT,
    ENV_SSH_AUTH_KEYS_B64,
    ENV_SSH_AUTHORIZED_KEYS_FILE,
    SSH_DIR,
)
from .errors import InvalidSSHPortError, SSHKeysError
from .logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Iterable

logger = get_logger(__name__)

MIN_PORT = 1
MAX_PORT = 65535


@dataclass(frozen=True)
class SSHProvisionSpec:
    """Validated port plus the key payload to inject."""

    port: int
    keys: tuple[str, ...]
    payload: str

    @property
    def env_assignment(self) -> str:
        return f"{ENV_SSH_AUTH_KEYS_B64}={self.payload}"

    @property
    def publish_arg(self) -> str:
        return f"{self.port}:{CONTAINER_SSH_PORT}"


def validate_ssh_port(value: int | str) -> int:
    """Validate a host port for SSH publishing.

    Raises:
        InvalidSSHPortError: Unless value is an integer in 1..65535.
    """
    if isinstance(value, bool):
        raise InvalidSSHPortError(f"invalid SSH port {value!r}: expected an integer")
    if isinstance(value, int):
        port = value
    else:
        text = str(value).strip()
        if not (text.isascii() and text.isdigit()):
            raise InvalidSSHPortError(f"invalid SSH port '{value}': expected an integer")
        port = int(text)
    if not MIN_PORT <= port <= MAX_PORT:
        raise InvalidSSHPortError(
            f"invalid SSH port {port}: must be between {MIN_PORT} and {MAX_PORT}"
        )
    return port


def dedupe_key_lines(lines: Iterable[str]) -> list[str]:
    """Strip, drop blanks and remove duplicates, keeping first-seen order."""
    seen: set[str] = set()
    unique: list[str] = []
    for raw in lines:
        line = raw.strip()
        if not line or line in seen:
            continue
        seen.add(line)
        unique.append(line)
    return unique


def _read_key_lines(path: Path) -> list[str]:
    try:
        return path.read_text(encoding="utf-8").splitlines()
    except (OSError, UnicodeDecodeError) as e:
        raise SSHKeysError(f"failed to read SSH keys from {path}: {e}") from e


def collect_authorized_keys(
    override: str | Path | None = None,
    ssh_dir: Path | None = None,
) -> list[str]:
    """Collect the public keys allowed to log in to the sandbox.

    With an override file (argument or DAVY_SSH_AUTHORIZED_KEYS_FILE) only that
    file is read. Otherwise ~/.ssh/authorized_keys and every ~/.ssh/*.pub are
    merged, .pub files in name order.

    Raises:
        SSHKeysError: If the override file is missing or unreadable.
    """
    override = override or os.environ.get(ENV_SSH_AUTHORIZED_KEYS_FILE) or None
    if override:
        key_path = Path(override)
        if not key_path.is_file():
            raise SSHKeysError(f"{ENV_SSH_AUTHORIZED_KEYS_FILE} not found: {override}")
        return dedupe_key_lines(_read_key_lines(key_path))

    ssh_dir = ssh_dir or Path(os.path.expanduser(SSH_DIR))
    lines: list[str] = []
    authorized_keys = ssh_dir / "authorized_keys"
    if authorized_keys.is_file():
        lines.extend(_read_key_lines(authorized_keys))

    if ssh_dir.is_dir():
        for pub in sorted(ssh_dir.glob("*.pub")):
            if pub.is_file():
                lines.extend(_read_key_lines(pub))

    return dedupe_key_lines(lines)


def encode_authorized_keys(lines: Iterable[str]) -> str:
    """Base64-encode key lines for transport in one env var."""
    content = "\n".join(lines) + "\n"
    return base64.b64encode(content.encode("utf-8")).decode("ascii")


def provision_ssh(port: int | str, override: str | Path | None = None) -> SSHProvisionSpec:
    """Validate the port and build the authorized-keys payload.

    Raises:
        InvalidSSHPortError: For a bad port, checked before reading keys.
        SSHKeysError: If no keys were found.
    """
    valid_port = validate_ssh_port(port)
    keys = collect_authorized_keys(override)
    if not keys:
        raise SSHKeysError(
            f"no SSH public keys found. Add ~/.ssh/*.pub or set {ENV_SSH_AUTHORIZED_KEYS_FILE}"
        )
    logger.debug("Collected %d SSH key(s) for port %d", len(keys), valid_port)
    return SSHProvisionSpec(valid_port, tuple(keys), encode_authorized_keys(keys))
