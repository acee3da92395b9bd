"""Pack configuration schemas for the JSON files under ``config/``."""

from __future__ import annotations

import json
import re
from typing import TYPE_CHECKING, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from mcpack.exceptions import PackConfigError

if TYPE_CHECKING:
    from pathlib import Path

Side = Literal["client", "server", "both"]
PackType = Literal["client", "server"]

_WHITESPACE_RE = re.compile(r"\s+")

_M = TypeVar("_M", bound=BaseModel)


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class PackDescription(_CamelModel):
    client: str = ""
    server: str = ""


class PackInfo(_CamelModel):
    """Pack identity from ``pack-info.json``."""

    name: str = Field(min_length=1)
    version: str = Field(min_length=1)
    minecraft: str = Field(min_length=1)
    fabric: str = Field(min_length=1)
    description: PackDescription = Field(default_factory=PackDescription)
    server_address: str = Field(default="", alias="serverAddress")
    server_name: str = Field(default="", alias="serverName")

    @property
    def slug(self) -> str:
        """Lowercase, dash-separated pack name used in file names."""
        return _WHITESPACE_RE.sub("-", self.name.strip().lower())

    def summary_for(self, pack_type: PackType) -> str:
        return getattr(self.description, pack_type)


class ModEntry(_CamelModel):
    """A pinned mod in ``mods-client.json`` / ``mods-server.json``."""

    name: str = Field(min_length=1)
    project_id: str = Field(default="", alias="projectId")
    file_id: str = Field(default="", alias="fileId")
    filename: str = Field(min_length=1)
    side: Side = "both"
    manual: bool = False

    def runs_on(self, pack_type: PackType) -> bool:
        return self.side in (pack_type, "both")


class ModList(_CamelModel):
    mods: list[ModEntry] = Field(default_factory=list)


class UploadConfig(_CamelModel):
    """Publishing settings from ``upload-config.json``."""

    projects: dict[str, str] = Field(default_factory=dict)
    changelog: str = ""
    version_type: Literal["release", "beta", "alpha"] = Field(
        default="release", alias="versionType"
    )


class ProjectDef(_CamelModel):
    """A Modrinth project definition from ``modrinth-projects.json``."""

    name: str = Field(min_length=1)
    slug: str = Field(min_length=1)
    description: str = ""
    body: str = ""
    pack_type: PackType = Field(alias="packType")
    variant: str = ""


class ProjectMetadata(_CamelModel):
    categories: list[str] = Field(default_factory=list)
    license: str = "MIT"


class ProjectsConfig(_CamelModel):
    projects: dict[str, ProjectDef] = Field(default_factory=dict)
    metadata: ProjectMetadata = Field(default_factory=ProjectMetadata)


def pack_file_name(pack_info: PackInfo, pack_type: PackType, variant: str = "") -> str:
    """Return the ``.mrpack`` file name for a pack type and optional variant."""
    suffix = f"-{variant}" if variant else ""
    return f"{pack_info.slug}-{pack_type}-{pack_info.version}{suffix}.mrpack"


def load_model(path: Path, model: type[_M]) -> _M:
    """Load and validate a JSON config file.

    Raises PackConfigError if the file is missing, is not valid JSON, or
    does not match the schema.
    """
    if not path.is_file():
        raise PackConfigError(f"Config file not found: {path}")
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise PackConfigError(f"Failed to read {path}: {exc}") from exc
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise PackConfigError(f"Invalid config in {path}: {exc}") from exc


def save_model(path: Path, value: BaseModel) -> None:
    """Write a config model back to disk using its JSON aliases."""
    data = value.model_dump(by_alias=True, exclude_defaults=False)
    path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")


def load_pack_info(config_dir: Path) -> PackInfo:
    return load_model(config_dir / "pack-info.json", PackInfo)


def load_mod_list(config_dir: Path, pack_type: PackType, variant: str = "") -> ModList:
    suffix = f"-{variant}" if variant else ""
    return load_model(config_dir / f"mods-{pack_type}{suffix}.json", ModList)


def load_upload_config(config_dir: Path) -> UploadConfig:
    return load_model(config_dir / "upload-config.json", UploadConfig)


def load_projects_config(config_dir: Path) -> ProjectsConfig:
    return load_model(config_dir / "modrinth-projects.json", ProjectsConfig)
