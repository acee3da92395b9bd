"""FTP transfer session built on ftplib."""

from __future__ import annotations

import ftplib
import logging
from typing import TYPE_CHECKING

from mcpack.exceptions import RemoteDirectoryMissing, TransferConnectionError, TransferError
from mcpack.transfer.base import EntryType, RemoteEntry

if TYPE_CHECKING:
    from pathlib import Path

    from mcpack.config import Settings

logger = logging.getLogger(__name__)

_MLSD_TYPES = {
    "file": EntryType.FILE,
    "dir": EntryType.DIRECTORY,
    "cdir": EntryType.DIRECTORY,
    "pdir": EntryType.DIRECTORY,
}

_EXISTS_CODES = frozenset({"550", "521"})


def _reply_code(exc: BaseException) -> str:
    return str(exc)[:3]


def parse_list_line(line: str) -> RemoteEntry | None:
    """Parse one line of a Unix-style ``LIST`` response.

    Returns None for lines that do not describe an entry (totals, blanks,
    ``.`` and ``..``).
    """
    parts = line.split(maxsplit=8)
    if len(parts) < 9 or not parts[4].isdigit():
        return None
    name = parts[8]
    if parts[0].startswith("l") and " -> " in name:
        name = name.split(" -> ", 1)[0]
    if name in (".", ".."):
        return None
    kind = parts[0][0]
    if kind == "-":
        entry_type = EntryType.FILE
    elif kind == "d":
        entry_type = EntryType.DIRECTORY
    else:
        entry_type = EntryType.OTHER
    return RemoteEntry(name=name, size=int(parts[4]), type=entry_type)


class FTPTransferSession:
    """Transfer session over plain FTP (or explicit FTPS when ``secure``)."""

    def __init__(
        self,
        host: str,
        user: str,
        password: str,
        port: int = 21,
        *,
        timeout: float = 30.0,
        secure: bool = False,
    ) -> None:
        self.host = host
        self.user = user
        self.password = password
        self.port = port
        self.timeout = timeout
        self.secure = secure
        self._ftp: ftplib.FTP | None = None
        self._use_mlsd = True

    @classmethod
    def from_settings(cls, settings: Settings) -> FTPTransferSession:
        return cls(
            settings.ftp_host,
            settings.ftp_user,
            settings.ftp_password,
            settings.ftp_port,
            timeout=settings.ftp_timeout_seconds,
            secure=settings.ftp_secure,
        )

    def __enter__(self) -> FTPTransferSession:
        self.connect()
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    @property
    def ftp(self) -> ftplib.FTP:
        if self._ftp is None:
            raise TransferConnectionError("FTP session is not connected")
        return self._ftp

    def connect(self) -> None:
        """Connect, log in and switch to binary transfer mode."""
        ftp: ftplib.FTP = ftplib.FTP_TLS() if self.secure else ftplib.FTP()
        try:
            ftp.connect(self.host, self.port, timeout=self.timeout)
            ftp.login(self.user, self.password)
            if isinstance(ftp, ftplib.FTP_TLS):
                ftp.prot_p()
            ftp.voidcmd("TYPE I")
        except ftplib.all_errors as exc:
            ftp.close()
            raise TransferConnectionError(
                f"Failed to connect to {self.host}:{self.port}: {exc}"
            ) from exc
        self._ftp = ftp
        logger.info("Connected to FTP server %s:%d as %s", self.host, self.port, self.user)

    def list(self, path: str) -> list[RemoteEntry]:
        """List a remote directory, preferring MLSD and falling back to LIST."""
        if self._use_mlsd:
            try:
                return self._list_mlsd(path)
            except ftplib.error_perm as exc:
                if _reply_code(exc) not in ("500", "501", "502"):
                    raise self._listing_error(path, exc) from exc
                logger.debug("Server does not support MLSD (%s); using LIST", exc)
                self._use_mlsd = False
            except ftplib.all_errors as exc:
                raise self._listing_error(path, exc) from exc
        try:
            return self._list_unix(path)
        except ftplib.all_errors as exc:
            raise self._listing_error(path, exc) from exc

    def _list_mlsd(self, path: str) -> list[RemoteEntry]:
        entries: list[RemoteEntry] = []
        for name, facts in self.ftp.mlsd(path, facts=["type", "size"]):
            fact_type = facts.get("type", "").lower()
            if fact_type in ("cdir", "pdir") or name in (".", ".."):
                continue
            entry_type = _MLSD_TYPES.get(fact_type, EntryType.OTHER)
            entries.append(RemoteEntry(name=name, size=int(facts.get("size", 0)), type=entry_type))
        return entries

    def _list_unix(self, path: str) -> list[RemoteEntry]:
        lines: list[str] = []
        self.ftp.retrlines(f"LIST {path}", lines.append)
        return [entry for entry in map(parse_list_line, lines) if entry is not None]

    def _listing_error(self, path: str, exc: BaseException) -> Exception:
        if isinstance(exc, ftplib.error_perm) and _reply_code(exc) == "550":
            return RemoteDirectoryMissing(f"Remote directory not found: {path}")
        return TransferConnectionError(f"Failed to list {path}: {exc}")

    def upload(self, local_path: Path, remote_path: str) -> None:
        try:
            with open(local_path, "rb") as f:
                self.ftp.storbinary(f"STOR {remote_path}", f)
        except ftplib.all_errors as exc:
            raise TransferError(f"Upload of {local_path.name} failed: {exc}") from exc

    def delete(self, remote_path: str) -> None:
        try:
            self.ftp.delete(remote_path)
        except ftplib.all_errors as exc:
            raise TransferError(f"Delete of {remote_path} failed: {exc}") from exc

    def ensure_dir(self, path: str) -> None:
        prefix = "/" if path.startswith("/") else ""
        current = ""
        for part in (p for p in path.split("/") if p):
            current = f"{current}/{part}" if current else f"{prefix}{part}"
            try:
                self.ftp.mkd(current)
                logger.debug("Created remote directory %s", current)
            except ftplib.error_perm as exc:
                # 550 and 521 mean the directory already exists
                if _reply_code(exc) in _EXISTS_CODES:
                    continue
                raise TransferConnectionError(f"Cannot create {current}: {exc}") from exc
            except ftplib.all_errors as exc:
                raise TransferConnectionError(f"Failed to create {current}: {exc}") from exc

    def close(self) -> None:
        if self._ftp is None:
            return
        ftp, self._ftp = self._ftp, None
        try:
            ftp.quit()
        except ftplib.all_errors as exc:
            logger.debug("FTP QUIT failed (%s); closing socket", exc)
            ftp.close()
