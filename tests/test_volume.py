"""Tests for the persistent Claude auth volume."""

from __future__ import annotations

from unittest.mock import MagicMock, call, patch

import pytest

from davy.errors import DockerCommandError
from davy.volume import (
    VolumeRef,
    check_script,
    claude_volume_name,
    ensure_volume,
    init_script,
    reset_volume,
    resolve_claude_volume,
)


class TestVolumeName:
    """Volume name is a pure function of (prefix, uid, version)."""

    def test_default(self) -> None:
        assert claude_volume_name(1000) == "davy-claude-auth-1000-v1"

    def test_stable(self) -> None:
        assert claude_volume_name(501, "p", "v2") == claude_volume_name(501, "p", "v2")

    def test_uid_changes_name(self) -> None:
        assert claude_volume_name(1000) != claude_volume_name(1001)

    def test_version_changes_name(self) -> None:
        assert claude_volume_name(1000, version="v1") != claude_volume_name(1000, version="v2")

    def test_env_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DAVY_CLAUDE_AUTH_VOLUME", "my-volume")
        assert resolve_claude_volume(1000) == VolumeRef("my-volume")

    def test_default_target(self) -> None:
        assert resolve_claude_volume(1000).target == "/home/dev/.claude-auth"


class TestEnsureVolume:
    """Init runs for a fresh volume or one whose earlier init did not complete."""

    def test_fresh_volume_is_initialized(self) -> None:
        volume = VolumeRef("vol")
        with (
            patch("davy.volume.docker.volume_exists", return_value=False) as mock_exists,
            patch("davy.volume.docker.create_volume") as mock_create,
            patch("davy.volume.docker.run_checked") as mock_run,
        ):
            assert ensure_volume(volume, image="img", uid=1000, gid=1001) is True

        mock_exists.assert_called_once_with("vol")
        mock_create.assert_called_once_with("vol")
        cmd = mock_run.call_args[0][0]
        assert cmd[:6] == ["docker", "run", "--rm", "--user", "0:0", "-v"]
        assert "vol:/auth" in cmd
        assert "img" in cmd
        assert cmd[-1] == init_script(1000, 1001)

    def test_existing_volume_is_not_reinitialized(self) -> None:
        with (
            patch("davy.volume.docker.volume_exists", return_value=True),
            patch("davy.volume.docker.create_volume") as mock_create,
            patch(
                "davy.volume.docker.safe_docker_run", return_value=MagicMock(returncode=0)
            ) as mock_check,
            patch("davy.volume.docker.run_checked") as mock_run,
        ):
            assert ensure_volume(VolumeRef("vol"), image="img", uid=1000, gid=1000) is False

        mock_create.assert_called_once_with("vol")
        mock_check.assert_called_once()
        assert mock_check.call_args[0][0][-1] == check_script(1000, 1000)
        mock_run.assert_not_called()

    def test_incomplete_volume_is_initialized_again(
        self, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """A volume left behind by a failed init gets a second init."""
        with (
            patch("davy.volume.docker.volume_exists", return_value=True),
            patch("davy.volume.docker.create_volume"),
            patch("davy.volume.docker.safe_docker_run", return_value=MagicMock(returncode=1)),
            patch("davy.volume.docker.run_checked") as mock_run,
        ):
            assert ensure_volume(VolumeRef("vol"), image="img", uid=1000, gid=1000) is True

        assert mock_run.call_args[0][0][-1] == init_script(1000, 1000)
        assert "retrying init" in capsys.readouterr().err

    def test_fresh_volume_skips_completion_check(self) -> None:
        with (
            patch("davy.volume.docker.volume_exists", return_value=False),
            patch("davy.volume.docker.create_volume"),
            patch("davy.volume.docker.safe_docker_run") as mock_check,
            patch("davy.volume.docker.run_checked"),
        ):
            ensure_volume(VolumeRef("vol"), image="img", uid=1, gid=1)
        mock_check.assert_not_called()

    def test_inspect_happens_before_create(self) -> None:
        order: list[str] = []
        with (
            patch(
                "davy.volume.docker.volume_exists",
                side_effect=lambda name: order.append("inspect") or False,
            ),
            patch(
                "davy.volume.docker.create_volume",
                side_effect=lambda name: order.append("create"),
            ),
            patch("davy.volume.docker.run_checked", side_effect=lambda *a, **k: order.append("init")),
        ):
            ensure_volume(VolumeRef("vol"), image="img", uid=1, gid=1)
        assert order == ["inspect", "create", "init"]

    def test_init_failure_propagates(self, capsys: pytest.CaptureFixture[str]) -> None:
        with (
            patch("davy.volume.docker.volume_exists", return_value=False),
            patch("davy.volume.docker.create_volume"),
            patch(
                "davy.volume.docker.run_checked",
                side_effect=DockerCommandError("docker run", 3),
            ),
            pytest.raises(DockerCommandError) as exc_info,
        ):
            ensure_volume(VolumeRef("vol"), image="img", uid=1, gid=1)
        assert exc_info.value.exit_code == 3
        assert "davy auth claude reset" in capsys.readouterr().err

    def test_check_script_matches_init_ownership(self) -> None:
        script = check_script(1000, 1001)
        assert "test -d /auth/.claude" in script
        assert "stat -c %u:%g /auth/.claude.json" in script
        assert '"1000:1001"' in script

    def test_init_script_is_repeatable(self) -> None:
        script = init_script(1000, 1000)
        assert "mkdir -p /auth/.claude" in script
        assert "touch /auth/.claude.json" in script
        assert "chown -R 1000:1000 /auth" in script


class TestResetVolume:
    """Tests for reset_volume."""

    def test_missing_volume_is_not_an_error(self, capsys: pytest.CaptureFixture[str]) -> None:
        with (
            patch("davy.volume.docker.volume_exists", return_value=False),
            patch("davy.volume.docker.remove_volume") as mock_remove,
        ):
            assert reset_volume(VolumeRef("vol")) is False
        mock_remove.assert_not_called()
        assert "does not exist" in capsys.readouterr().err

    def test_existing_volume_is_removed(self) -> None:
        with (
            patch("davy.volume.docker.volume_exists", return_value=True),
            patch("davy.volume.docker.remove_volume") as mock_remove,
        ):
            assert reset_volume(VolumeRef("vol")) is True
        assert mock_remove.call_args_list == [call("vol")]
