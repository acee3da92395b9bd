"""Shared test fixtures for mcpack."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

import pytest

from mcpack.config import Settings
from mcpack.exceptions import RemoteDirectoryMissing, TransferConnectionError, TransferError
from mcpack.transfer.base import EntryType, RemoteEntry

if TYPE_CHECKING:
    from pathlib import Path


class FakeSession:
    """In-memory transfer session recording every call.

    ``dirs`` maps a remote directory to ``{name: size}``; directories absent
    from the mapping behave as missing on the server.
    """

    def __init__(self, dirs: dict[str, dict[str, int]] | None = None) -> None:
        self.dirs: dict[str, dict[str, int]] = {k: dict(v) for k, v in (dirs or {}).items()}
        self.subdirs: dict[str, set[str]] = {}
        self.fail_uploads: set[str] = set()
        self.fail_deletes: set[str] = set()
        self.list_error: Exception | None = None
        self.calls: list[tuple[str, str]] = []
        self.connected = False

    @staticmethod
    def _split(remote_path: str) -> tuple[str, str]:
        directory, _, name = remote_path.rpartition("/")
        return directory, name

    def connect(self) -> None:
        self.connected = True

    def list(self, path: str) -> list[RemoteEntry]:
        self.calls.append(("list", path))
        if self.list_error is not None:
            raise self.list_error
        if path not in self.dirs:
            raise RemoteDirectoryMissing(path)
        entries = [RemoteEntry(name, size) for name, size in sorted(self.dirs[path].items())]
        entries.extend(
            RemoteEntry(name, 0, EntryType.DIRECTORY) for name in sorted(self.subdirs.get(path, ()))
        )
        return entries

    def upload(self, local_path: Path, remote_path: str) -> None:
        self.calls.append(("upload", remote_path))
        directory, name = self._split(remote_path)
        if name in self.fail_uploads:
            raise TransferError(f"552 upload of {name} refused")
        self.dirs.setdefault(directory, {})[name] = local_path.stat().st_size

    def delete(self, remote_path: str) -> None:
        self.calls.append(("delete", remote_path))
        directory, name = self._split(remote_path)
        if name in self.fail_deletes:
            raise TransferError(f"550 cannot delete {name}")
        self.dirs.get(directory, {}).pop(name, None)

    def ensure_dir(self, path: str) -> None:
        self.calls.append(("ensure_dir", path))
        self.dirs.setdefault(path, {})

    def close(self) -> None:
        self.connected = False

    def mutations(self) -> list[tuple[str, str]]:
        return [call for call in self.calls if call[0] in ("upload", "delete")]


class DisconnectedSession(FakeSession):
    def list(self, path: str) -> list[RemoteEntry]:
        raise TransferConnectionError("connection reset")


@pytest.fixture
def fake_session() -> FakeSession:
    return FakeSession()


def write_json(path: Path, data: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data), encoding="utf-8")


PACK_INFO = {
    "name": "Test Pack",
    "version": "1.2.0",
    "minecraft": "1.20.1",
    "fabric": "0.15.7",
    "description": {"client": "Client side", "server": "Server side"},
    "serverAddress": "play.example.net",
    "serverName": "Example Server",
}


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """A project tree with pack-info.json and empty mod lists."""
    config = tmp_path / "config"
    write_json(config / "pack-info.json", PACK_INFO)
    write_json(config / "mods-client.json", {"mods": []})
    write_json(config / "mods-server.json", {"mods": []})
    return tmp_path


@pytest.fixture
def test_settings(project_dir: Path) -> Settings:
    return Settings(
        _env_file=None,
        project_dir=project_dir,
        ftp_host="ftp.example.net",
        ftp_user="deploy",
        ftp_password="secret",
        remote_root="/srv",
        upload_delay_seconds=1.0,
        registry_delay_seconds=0.0,
    )
