"""Tests for in-container command composition."""

from __future__ import annotations

from davy.pipeline import (
    CLAUDE_AUTH_STAGE,
    CLAUDE_LINK_SCRIPT,
    SSH_BOOTSTRAP_SCRIPT,
    SSH_BOOTSTRAP_STAGE,
    CommandStage,
    build_command,
    compose,
    pipeline_stages,
    wrap_bash_script,
)


class TestWrapBashScript:
    """Tests for wrap_bash_script."""

    def test_prefixes_command(self) -> None:
        assert wrap_bash_script("echo hi", ["bash"]) == ["bash", "-lc", "echo hi", "--", "bash"]

    def test_keeps_arguments(self) -> None:
        wrapped = wrap_bash_script("true", ["npm", "test", "--", "-x"])
        assert wrapped[4:] == ["npm", "test", "--", "-x"]


class TestScripts:
    """Every stage hands off with exec and fails fast."""

    def test_stages_exec_handoff(self) -> None:
        for script in (CLAUDE_LINK_SCRIPT, SSH_BOOTSTRAP_SCRIPT):
            assert script.startswith("set -e")
            assert script.rstrip().endswith('exec "$@"')

    def test_claude_only_replaces_non_symlinks(self) -> None:
        assert "[ ! -L /home/dev/.claude ]" in CLAUDE_LINK_SCRIPT
        assert "ln -sfn /home/dev/.claude-auth/.claude /home/dev/.claude" in CLAUDE_LINK_SCRIPT
        assert "export CLAUDE_CONFIG_DIR=/home/dev/.claude" in CLAUDE_LINK_SCRIPT

    def test_ssh_checks_binary_and_payload(self) -> None:
        assert "sshd ps flock" in SSH_BOOTSTRAP_SCRIPT
        assert "Rebuild" in SSH_BOOTSTRAP_SCRIPT
        assert "DAVY_SSH_AUTH_KEYS_B64 is missing" in SSH_BOOTSTRAP_SCRIPT
        assert "chmod 600 /home/dev/.ssh/authorized_keys" in SSH_BOOTSTRAP_SCRIPT
        assert "ssh-keygen -A" in SSH_BOOTSTRAP_SCRIPT


class TestComposition:
    """Stages apply outer-to-inner in a fixed order."""

    def test_no_stages(self) -> None:
        assert build_command(["echo", "ok"]) == ["echo", "ok"]

    def test_default_shell(self) -> None:
        assert build_command([]) == ["bash"]

    def test_stage_order(self) -> None:
        assert pipeline_stages(claude_auth=True, expose_ssh=True) == [
            CLAUDE_AUTH_STAGE,
            SSH_BOOTSTRAP_STAGE,
        ]
        assert pipeline_stages(expose_ssh=True) == [SSH_BOOTSTRAP_STAGE]
        assert pipeline_stages() == []

    def test_ssh_nested_inside_claude(self) -> None:
        cmd = build_command(["claude"], claude_auth=True, expose_ssh=True)
        assert cmd[:4] == ["bash", "-lc", CLAUDE_LINK_SCRIPT, "--"]
        inner = cmd[4:]
        assert inner == ["bash", "-lc", SSH_BOOTSTRAP_SCRIPT, "--", "claude"]

    def test_single_stage(self) -> None:
        cmd = build_command([], expose_ssh=True)
        assert cmd == ["bash", "-lc", SSH_BOOTSTRAP_SCRIPT, "--", "bash"]

    def test_compose_is_associative(self) -> None:
        a = CommandStage("a", "A")
        b = CommandStage("b", "B")
        c = CommandStage("c", "C")
        base = ["run"]
        assert compose([a, b, c], base) == compose([a], compose([b, c], base))
        assert compose([a, b, c], base) == compose([a, b], compose([c], base))

    def test_compose_does_not_mutate_input(self) -> None:
        base = ["run"]
        compose([CLAUDE_AUTH_STAGE], base)
        assert base == ["run"]
