"""Modrinth API response schemas.

Only the fields the tools read are modeled; everything else is ignored.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class VersionFile(BaseModel):
    """A file attached to a Modrinth version."""

    model_config = ConfigDict(extra="ignore")

    url: str
    filename: str
    primary: bool = False
    size: int = 0
    hashes: dict[str, str] = Field(default_factory=dict)


class Version(BaseModel):
    """A Modrinth project version."""

    model_config = ConfigDict(extra="ignore")

    id: str
    project_id: str = ""
    name: str = ""
    version_number: str = ""
    version_type: str = "release"
    date_published: str = ""
    changelog: str | None = None
    game_versions: list[str] = Field(default_factory=list)
    loaders: list[str] = Field(default_factory=list)
    files: list[VersionFile] = Field(default_factory=list)

    @property
    def primary_file(self) -> VersionFile | None:
        """The file flagged primary, else the first file, else None."""
        for file in self.files:
            if file.primary:
                return file
        return self.files[0] if self.files else None


class Project(BaseModel):
    """A Modrinth project."""

    model_config = ConfigDict(extra="ignore")

    id: str
    slug: str = ""
    title: str = ""
    description: str = ""
    body: str = ""
    icon_url: str | None = None
