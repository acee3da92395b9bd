"""Tests for the mcpack-deploy command."""

from __future__ import annotations

from typing import TYPE_CHECKING
from unittest.mock import MagicMock, patch

import pytest

from cli.deploy import main
from tests.conftest import DisconnectedSession, FakeSession

if TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture
def cli_env(project_dir: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Project with a built server mods directory and FTP settings in the environment."""
    monkeypatch.chdir(project_dir)
    monkeypatch.setenv("FTP_HOST", "ftp.example.net")
    monkeypatch.setenv("FTP_USER", "deploy")
    monkeypatch.setenv("FTP_PASSWORD", "secret")
    monkeypatch.setenv("REMOTE_ROOT", "/srv")
    monkeypatch.setenv("UPLOAD_DELAY_SECONDS", "0")
    mods = project_dir / "build" / "server" / "mods"
    mods.mkdir(parents=True)
    (mods / "lithium.jar").write_bytes(b"abc")
    (mods / "sodium.jar").write_bytes(b"12345")
    return project_dir


def _run(argv: list[str], session: FakeSession) -> None:
    with patch("cli.deploy.FTPTransferSession") as session_cls:
        ctx = MagicMock()
        ctx.__enter__.return_value = session
        session_cls.from_settings.return_value = ctx
        main(argv)


class TestDeployCommand:
    def test_status_does_not_mutate(
        self, cli_env: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        session = FakeSession({"/srv/mods": {"lithium.jar": 3, "old.jar": 9}})
        _run(["--dir", str(cli_env), "status"], session)
        out = capsys.readouterr().out
        assert "mods -> /srv/mods" in out
        assert "    + sodium.jar" in out
        assert "    - old.jar" in out
        assert session.mutations() == []

    def test_sync_uploads_and_prunes(
        self, cli_env: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        session = FakeSession({"/srv/mods": {"lithium.jar": 3, "old.jar": 9}})
        _run(["--dir", str(cli_env), "sync"], session)
        assert session.mutations() == [
            ("delete", "/srv/mods/old.jar"),
            ("upload", "/srv/mods/sodium.jar"),
        ]
        out = capsys.readouterr().out
        assert "1 uploaded, 1 deleted, 1 unchanged, 0 failed" in out

    def test_failed_item_exits_nonzero(
        self, cli_env: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        session = FakeSession({"/srv/mods": {}})
        session.fail_uploads.add("sodium.jar")
        with pytest.raises(SystemExit) as exc_info:
            _run(["--dir", str(cli_env), "sync"], session)
        assert exc_info.value.code == 1
        out = capsys.readouterr().out
        assert "! sodium.jar (uploaded failed" in out
        assert "/srv/mods/sodium.jar: 552 upload of sodium.jar refused" in out
        assert ("upload", "/srv/mods/lithium.jar") in session.mutations()

    def test_lost_connection_is_fatal(
        self, cli_env: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        with pytest.raises(SystemExit) as exc_info:
            _run(["--dir", str(cli_env), "sync"], DisconnectedSession())
        assert exc_info.value.code == 1
        assert "Error: connection reset" in capsys.readouterr().out

    def test_missing_credentials(
        self,
        cli_env: Path,
        monkeypatch: pytest.MonkeyPatch,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        monkeypatch.delenv("FTP_PASSWORD")
        with pytest.raises(SystemExit):
            _run(["--dir", str(cli_env), "sync"], FakeSession())
        assert "Error: Missing FTP credentials: FTP_PASSWORD" in capsys.readouterr().out

    def test_missing_build(
        self, cli_env: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        (cli_env / "build" / "server" / "mods" / "lithium.jar").unlink()
        (cli_env / "build" / "server" / "mods" / "sodium.jar").unlink()
        (cli_env / "build" / "server" / "mods").rmdir()
        with pytest.raises(SystemExit):
            _run(["--dir", str(cli_env), "sync"], FakeSession())
        assert "Run 'mcpack-build packs' first" in capsys.readouterr().out

    def test_no_command_prints_help(self, capsys: pytest.CaptureFixture[str]) -> None:
        main([])
        assert "usage: mcpack-deploy" in capsys.readouterr().out
