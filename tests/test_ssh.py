"""Tests for SSH key provisioning."""

from __future__ import annotations

import base64
from pathlib import Path

import pytest

from davy.errors import InvalidSSHPortError, SSHKeysError
from davy.ssh import (
    collect_authorized_keys,
    dedupe_key_lines,
    encode_authorized_keys,
    provision_ssh,
    validate_ssh_port,
)

KEY_A = "ssh-ed25519 AAAAC3NzaC1lZDI1NTE5AAAAIA a@host"
KEY_B = "ssh-rsa AAAAB3NzaC1yc2EAAAADAQABAAABAQ b@host"
KEY_C = "ecdsa-sha2-nistp256 AAAAE2VjZHNh c@host"


@pytest.fixture
def ssh_dir(home: Path) -> Path:
    path = home / ".ssh"
    path.mkdir()
    return path


class TestValidatePort:
    """Accepts exactly 1..65535."""

    @pytest.mark.parametrize("value", [1, 22, 222, 2200, 65535, "1", "65535", " 2200 "])
    def test_valid(self, value: int | str) -> None:
        assert validate_ssh_port(value) == int(str(value).strip())

    @pytest.mark.parametrize("value", [0, 65536, -1, "0", "65536", "-22"])
    def test_out_of_range(self, value: int | str) -> None:
        with pytest.raises(InvalidSSHPortError) as exc_info:
            validate_ssh_port(value)
        assert exc_info.value.exit_code == 6

    @pytest.mark.parametrize("value", ["ssh", "", "22.5", "0x16", "²", "①", "２２", True])
    def test_non_numeric(self, value: object) -> None:
        with pytest.raises(InvalidSSHPortError):
            validate_ssh_port(value)  # type: ignore[arg-type]


class TestDedupe:
    """Tests for dedupe_key_lines."""

    def test_first_seen_order(self) -> None:
        assert dedupe_key_lines([KEY_B, KEY_A, KEY_B, KEY_C, KEY_A]) == [KEY_B, KEY_A, KEY_C]

    def test_strips_and_drops_blank(self) -> None:
        assert dedupe_key_lines(["", f"  {KEY_A}  ", "   ", KEY_A]) == [KEY_A]

    def test_idempotent(self) -> None:
        once = dedupe_key_lines([KEY_A, KEY_B, KEY_A, KEY_C, KEY_B])
        assert dedupe_key_lines(once) == once
        assert dedupe_key_lines(once + once) == once


class TestCollectAuthorizedKeys:
    """Tests for collect_authorized_keys."""

    def test_authorized_keys_then_pub_files(self, ssh_dir: Path) -> None:
        (ssh_dir / "authorized_keys").write_text(f"{KEY_C}\n{KEY_A}\n")
        (ssh_dir / "id_rsa.pub").write_text(f"{KEY_B}\n")
        (ssh_dir / "id_ed25519.pub").write_text(f"{KEY_A}\n")
        (ssh_dir / "id_rsa").write_text("PRIVATE")
        assert collect_authorized_keys() == [KEY_C, KEY_A, KEY_B]

    def test_pub_files_sorted_by_name(self, ssh_dir: Path) -> None:
        (ssh_dir / "b.pub").write_text(KEY_B)
        (ssh_dir / "a.pub").write_text(KEY_A)
        assert collect_authorized_keys() == [KEY_A, KEY_B]

    def test_no_ssh_dir(self, home: Path) -> None:
        assert collect_authorized_keys() == []

    def test_override_file_only(
        self, ssh_dir: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        (ssh_dir / "id.pub").write_text(KEY_A)
        override = tmp_path / "keys"
        override.write_text(f"{KEY_B}\n{KEY_B}\n")
        monkeypatch.setenv("DAVY_SSH_AUTHORIZED_KEYS_FILE", str(override))
        assert collect_authorized_keys() == [KEY_B]

    def test_override_argument(self, ssh_dir: Path, tmp_path: Path) -> None:
        override = tmp_path / "keys"
        override.write_text(KEY_C)
        assert collect_authorized_keys(override) == [KEY_C]

    def test_override_missing(self, home: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DAVY_SSH_AUTHORIZED_KEYS_FILE", "/nonexistent/keys")
        with pytest.raises(SSHKeysError, match="not found"):
            collect_authorized_keys()


class TestEncode:
    """Tests for encode_authorized_keys."""

    def test_payload_decodes_to_lines(self) -> None:
        payload = encode_authorized_keys([KEY_A, KEY_B])
        assert base64.b64decode(payload).decode() == f"{KEY_A}\n{KEY_B}\n"

    def test_payload_is_single_line(self) -> None:
        payload = encode_authorized_keys([KEY_A, KEY_B, KEY_C])
        assert "\n" not in payload


class TestProvisionSsh:
    """Tests for provision_ssh."""

    def test_spec(self, ssh_dir: Path) -> None:
        (ssh_dir / "id.pub").write_text(KEY_A)
        spec = provision_ssh("2200")
        assert spec.port == 2200
        assert spec.keys == (KEY_A,)
        assert spec.publish_arg == "2200:22"
        assert spec.env_assignment == f"DAVY_SSH_AUTH_KEYS_B64={encode_authorized_keys([KEY_A])}"

    def test_no_keys(self, home: Path) -> None:
        with pytest.raises(SSHKeysError, match="no SSH public keys found") as exc_info:
            provision_ssh(2200)
        assert exc_info.value.exit_code == 7

    def test_port_checked_before_keys(self, home: Path) -> None:
        with pytest.raises(InvalidSSHPortError):
            provision_ssh("0")
