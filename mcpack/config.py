"""Tool configuration loaded from environment variables."""

from __future__ import annotations

from enum import StrEnum
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class CompareMode(StrEnum):
    """How the reconciler decides that a remote artifact is unchanged."""

    SIZE = "size"
    HASH = "hash"


class Settings(BaseSettings):
    """mcpack settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    debug: bool = False

    # FTP deployment target
    ftp_host: str = ""
    ftp_user: str = ""
    ftp_password: str = ""
    ftp_port: int = Field(default=21, ge=1, le=65535)
    ftp_timeout_seconds: float = Field(default=30.0, gt=0)
    ftp_secure: bool = False

    # Modrinth
    modrinth_token: str = ""
    modrinth_api_url: str = "https://api.modrinth.com/v2"
    user_agent: str = "mcpack/0.1.0"
    registry_delay_seconds: float = Field(default=1.0, ge=0)

    # Paths
    project_dir: Path = Path(".")
    build_dir: Path = Path("build")
    config_dir: Path = Path("config")
    shared_config_dir: Path = Path("src/shared/config")
    assets_dir: Path = Path("assets")

    # Sync
    remote_root: str = "/default"
    artifact_suffix: str = ".jar"
    upload_delay_seconds: float = Field(default=1.0, ge=0)
    compare_mode: CompareMode = CompareMode.SIZE

    def resolve(self, path: Path) -> Path:
        """Resolve a configured path against ``project_dir``."""
        if path.is_absolute():
            return path
        return self.project_dir / path

    @property
    def build_path(self) -> Path:
        return self.resolve(self.build_dir)

    @property
    def config_path(self) -> Path:
        return self.resolve(self.config_dir)

    @property
    def server_mods_path(self) -> Path:
        return self.build_path / "server" / "mods"

    @property
    def server_config_path(self) -> Path:
        return self.build_path / "server-config"

    @property
    def remote_mods_dir(self) -> str:
        return f"{self.remote_root.rstrip('/')}/mods"

    @property
    def remote_config_dir(self) -> str:
        return f"{self.remote_root.rstrip('/')}/config"

    def validate_ftp(self) -> None:
        """Validate that FTP credentials are configured."""
        missing = [
            name.upper()
            for name in ("ftp_host", "ftp_user", "ftp_password")
            if not getattr(self, name)
        ]
        if missing:
            joined = ", ".join(missing)
            raise ValueError(f"Missing FTP credentials: {joined}")

    def validate_registry_token(self) -> None:
        """Validate that a Modrinth token is configured for write operations."""
        if not self.modrinth_token:
            raise ValueError("MODRINTH_TOKEN is required for this operation")
