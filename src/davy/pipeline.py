"""In-container command pipeline.

Setup stages wrap the user's command. Each stage is a bash script run as
``bash -lc SCRIPT -- CMD...`` that does its setup and then ``exec "$@"``, so
control passes to the next stage without leaving a wrapper process behind.
Stages are applied outer-to-inner: the first stage in the list runs first.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import reduce
from typing import TYPE_CHECKING

from .constants import DEFAULT_SHELL

if TYPE_CHECKING:
    from collections.abc import Sequence

CLAUDE_LINK_SCRIPT = r"""set -e
mkdir -p /home/dev/.claude-auth/.claude
touch /home/dev/.claude-auth/.claude.json

if [ -e /home/dev/.claude ] && [ ! -L /home/dev/.claude ]; then
  rm -rf /home/dev/.claude
fi
if [ -e /home/dev/.claude.json ] && [ ! -L /home/dev/.claude.json ]; then
  rm -f /home/dev/.claude.json
fi

ln -sfn /home/dev/.claude-auth/.claude /home/dev/.claude
ln -sfn /home/dev/.claude-auth/.claude.json /home/dev/.claude.json
export CLAUDE_CONFIG_DIR=/home/dev/.claude

exec "$@"
"""

SSH_BOOTSTRAP_SCRIPT = r"""set -e
for tool in sshd ps flock; do
  if ! command -v "$tool" >/dev/null 2>&1; then
    echo "davy: '$tool' is not installed in image. Rebuild with the latest rocky.Dockerfile." >&2
    exit 1
  fi
done

if [ -z "${DAVY_SSH_AUTH_KEYS_B64:-}" ]; then
  echo "davy: DAVY_SSH_AUTH_KEYS_B64 is missing." >&2
  exit 1
fi

mkdir -p /home/dev/.ssh
chmod 700 /home/dev/.ssh
if ! printf "%s" "$DAVY_SSH_AUTH_KEYS_B64" | base64 -d >/home/dev/.ssh/authorized_keys 2>/dev/null; then
  printf "%s" "$DAVY_SSH_AUTH_KEYS_B64" | base64 --decode >/home/dev/.ssh/authorized_keys
fi
if [ ! -s /home/dev/.ssh/authorized_keys ]; then
  echo "davy: decoded authorized_keys is empty." >&2
  exit 1
fi
chmod 600 /home/dev/.ssh/authorized_keys

sudo mkdir -p /run/sshd
if ! ls /etc/ssh/ssh_host_*_key >/dev/null 2>&1; then
  sudo ssh-keygen -A >/dev/null
fi

sudo "$(command -v sshd)" \
  -o PermitRootLogin=no \
  -o PasswordAuthentication=no \
  -o KbdInteractiveAuthentication=no \
  -o ChallengeResponseAuthentication=no \
  -o PubkeyAuthentication=yes \
  -o AuthorizedKeysFile=.ssh/authorized_keys \
  -o PidFile=/tmp/davy-sshd.pid

exec "$@"
"""


def wrap_bash_script(script: str, command: Sequence[str]) -> list[str]:
    """Wrap ``command`` so it runs after ``script`` via exec.

    ``--`` becomes $0 inside the script and ``command`` becomes "$@".
    """
    return ["bash", "-lc", script, "--", *command]


@dataclass(frozen=True)
class CommandStage:
    """A named setup step that hands off to the wrapped command."""

    name: str
    script: str

    def wrap(self, command: Sequence[str]) -> list[str]:
        return wrap_bash_script(self.script, command)


CLAUDE_AUTH_STAGE = CommandStage("claude-auth", CLAUDE_LINK_SCRIPT)
SSH_BOOTSTRAP_STAGE = CommandStage("ssh-bootstrap", SSH_BOOTSTRAP_SCRIPT)


def pipeline_stages(*, claude_auth: bool = False, expose_ssh: bool = False) -> list[CommandStage]:
    """Enabled stages, outermost first. The order is fixed."""
    stages = []
    if claude_auth:
        stages.append(CLAUDE_AUTH_STAGE)
    if expose_ssh:
        stages.append(SSH_BOOTSTRAP_STAGE)
    return stages


def compose(stages: Sequence[CommandStage], command: Sequence[str]) -> list[str]:
    """Apply stages so that ``stages[0]`` ends up outermost."""
    return reduce(lambda cmd, stage: stage.wrap(cmd), reversed(stages), list(command))


def build_command(
    command: Sequence[str],
    *,
    claude_auth: bool = False,
    expose_ssh: bool = False,
) -> list[str]:
    """Build the final in-container command vector.

    An empty command falls back to an interactive shell.
    """
    base = list(command) or [DEFAULT_SHELL]
    return compose(pipeline_stages(claude_auth=claude_auth, expose_ssh=expose_ssh), base)
