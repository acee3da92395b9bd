"""Publisher: upload pack versions and manage Modrinth projects."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from mcpack.exceptions import PackConfigError, RegistryError
from mcpack.schemas.pack import (
    load_mod_list,
    load_pack_info,
    load_projects_config,
    load_upload_config,
    pack_file_name,
    save_model,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable
    from pathlib import Path

    from mcpack.config import Settings
    from mcpack.schemas.pack import PackInfo, ProjectDef, ProjectsConfig, UploadConfig
    from mcpack.services.modrinth_service import ModrinthClient

logger = logging.getLogger(__name__)

UPLOAD_DELAY_SECONDS = 2.0
ICON_DELAY_SECONDS = 1.0
MAX_ICON_BYTES = 256 * 1024


@dataclass
class PublishResult:
    """Per-project outcome of a publish run."""

    succeeded: dict[str, str] = field(default_factory=dict)
    failed: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed


def pack_path_for(settings: Settings, pack_info: PackInfo, project: ProjectDef) -> Path:
    return settings.build_path / pack_file_name(pack_info, project.pack_type, project.variant)


def version_data(
    pack_info: PackInfo,
    upload_config: UploadConfig,
    project: ProjectDef,
    project_id: str | None = None,
) -> dict[str, Any]:
    """Build the ``data`` part of a version upload.

    Variant packs get the variant appended to the version number and are not
    featured.
    """
    version_number = pack_info.version
    name = pack_info.version
    if project.variant:
        version_number = f"{pack_info.version}-{project.variant}"
        name = f"{pack_info.version} {project.variant.capitalize()} ({project.pack_type})"
    data: dict[str, Any] = {
        "name": name,
        "version_number": version_number,
        "changelog": upload_config.changelog or f"Release {pack_info.version}",
        "dependencies": [],
        "game_versions": [pack_info.minecraft],
        "version_type": upload_config.version_type,
        "loaders": ["fabric"],
        "featured": not project.variant,
        "status": "listed",
        "requested_status": "listed",
        "file_parts": ["file"],
        "primary_file": "file",
    }
    if project_id is not None:
        data["project_id"] = project_id
    return data


def project_data(
    project: ProjectDef, projects_config: ProjectsConfig, initial_version: dict[str, Any]
) -> dict[str, Any]:
    """Build the ``data`` part of a project creation request."""
    body = project.body or f"# {project.name}\n\n{project.description}\n"
    return {
        "title": project.name,
        "slug": project.slug,
        "description": project.description,
        "body": body,
        "categories": projects_config.metadata.categories,
        "client_side": "required" if project.pack_type == "client" else "optional",
        "server_side": "required" if project.pack_type == "server" else "optional",
        "license_id": projects_config.metadata.license,
        "project_type": "modpack",
        "initial_versions": [initial_version],
    }


def _select_keys(available: Iterable[str], requested: list[str] | None) -> list[str]:
    keys = list(available)
    if not requested:
        return keys
    unknown = [k for k in requested if k not in keys]
    if unknown:
        raise PackConfigError(
            f"Unknown project key(s): {', '.join(unknown)}. Available: {', '.join(keys)}"
        )
    return requested


def _paced(
    keys: list[str], delay: float, sleep: Callable[[float], None]
) -> Iterable[str]:
    for i, key in enumerate(keys):
        if i > 0 and delay > 0:
            sleep(delay)
        yield key


def upload_versions(
    settings: Settings,
    client: ModrinthClient,
    keys: list[str] | None = None,
    *,
    delay: float = UPLOAD_DELAY_SECONDS,
    sleep: Callable[[float], None] = time.sleep,
) -> PublishResult:
    """Upload the built pack of each selected project as a new version."""
    pack_info = load_pack_info(settings.config_path)
    upload_config = load_upload_config(settings.config_path)
    projects_config = load_projects_config(settings.config_path)
    if not upload_config.projects:
        raise PackConfigError(
            "No project ids in upload-config.json. Run 'mcpack-publish create-projects' first."
        )

    result = PublishResult()
    for key in _paced(_select_keys(upload_config.projects, keys), delay, sleep):
        project = projects_config.projects.get(key)
        if project is None:
            result.failed[key] = "no project definition in modrinth-projects.json"
            continue
        project_id = upload_config.projects[key]
        path = pack_path_for(settings, pack_info, project)
        if not path.is_file():
            result.failed[key] = f"pack file not found: {path.name}"
            continue
        logger.info("Uploading %s to %s (%s)", path.name, project.name, project_id)
        try:
            version = client.create_version(
                version_data(pack_info, upload_config, project, project_id), path
            )
        except RegistryError as exc:
            logger.error("Upload to %s failed: %s", key, exc)
            result.failed[key] = str(exc)
            continue
        result.succeeded[key] = version.id
    return result


def create_projects(
    settings: Settings,
    client: ModrinthClient,
    keys: list[str] | None = None,
    *,
    delay: float = UPLOAD_DELAY_SECONDS,
    sleep: Callable[[float], None] = time.sleep,
) -> PublishResult:
    """Create a Modrinth project per definition and record the new ids.

    All selected pack files must exist before any project is created. New
    ids are written back to ``upload-config.json`` even if a later project
    fails.
    """
    pack_info = load_pack_info(settings.config_path)
    upload_config = load_upload_config(settings.config_path)
    projects_config = load_projects_config(settings.config_path)
    selected = _select_keys(projects_config.projects, keys)

    paths = {k: pack_path_for(settings, pack_info, projects_config.projects[k]) for k in selected}
    missing = [path.name for path in paths.values() if not path.is_file()]
    if missing:
        raise PackConfigError(
            f"Missing pack files: {', '.join(missing)}. Run 'mcpack-build packs' first."
        )

    result = PublishResult()
    for key in _paced(selected, delay, sleep):
        project = projects_config.projects[key]
        path = paths[key]
        initial = version_data(pack_info, upload_config, project)
        logger.info("Creating project %s", project.name)
        try:
            created = client.create_project(project_data(project, projects_config, initial), path)
        except RegistryError as exc:
            logger.error("Creating %s failed: %s", key, exc)
            result.failed[key] = str(exc)
            continue
        result.succeeded[key] = created.id
        upload_config.projects[key] = created.id

    if result.succeeded:
        save_model(settings.config_path / "upload-config.json", upload_config)
        logger.info("Recorded %d project ids", len(result.succeeded))
    return result


def describe_body(project: ProjectDef, pack_info: PackInfo, mod_count: int) -> str:
    """Render a project page body with the current pack details."""
    intro = project.body or f"# {project.name}\n\n{project.description}\n"
    return (
        f"{intro.rstrip()}\n\n"
        "## Technical Details\n"
        f"- **Minecraft Version:** {pack_info.minecraft}\n"
        f"- **Fabric Loader:** {pack_info.fabric}\n"
        f"- **Total Mods:** {mod_count}\n"
    )


def _mod_count(settings: Settings, project: ProjectDef) -> int:
    """Count the mods shipped in a project's pack, using its variant list if any."""
    mod_list = load_mod_list(settings.config_path, project.pack_type, project.variant)
    return len([m for m in mod_list.mods if m.runs_on(project.pack_type)])


def update_descriptions(
    settings: Settings,
    client: ModrinthClient,
    keys: list[str] | None = None,
    *,
    delay: float = UPLOAD_DELAY_SECONDS,
    sleep: Callable[[float], None] = time.sleep,
) -> PublishResult:
    """Refresh the summary and body of each published project."""
    pack_info = load_pack_info(settings.config_path)
    upload_config = load_upload_config(settings.config_path)
    projects_config = load_projects_config(settings.config_path)
    selected = _select_keys(upload_config.projects, keys)
    mod_counts = {
        key: _mod_count(settings, projects_config.projects[key])
        for key in selected
        if key in projects_config.projects
    }

    result = PublishResult()
    for key in _paced(selected, delay, sleep):
        project = projects_config.projects.get(key)
        if project is None:
            result.failed[key] = "no project definition in modrinth-projects.json"
            continue
        project_id = upload_config.projects[key]
        fields = {
            "description": project.description,
            "body": describe_body(project, pack_info, mod_counts[key]),
        }
        try:
            client.modify_project(project_id, fields)
        except RegistryError as exc:
            logger.error("Updating %s failed: %s", key, exc)
            result.failed[key] = str(exc)
            continue
        result.succeeded[key] = project_id
    return result


def update_icons(
    settings: Settings,
    client: ModrinthClient,
    keys: list[str] | None = None,
    *,
    icon: Path | None = None,
    delay: float = ICON_DELAY_SECONDS,
    sleep: Callable[[float], None] = time.sleep,
) -> PublishResult:
    """Upload the pack icon (``assets/icon.png`` by default) to each published project.

    The icon is checked before any request is made.
    """
    upload_config = load_upload_config(settings.config_path)
    icon_path = icon or settings.resolve(settings.assets_dir) / "icon.png"
    if not icon_path.is_file():
        raise PackConfigError(f"Icon file not found: {icon_path}")
    size = icon_path.stat().st_size
    if size > MAX_ICON_BYTES:
        raise PackConfigError(
            f"Icon {icon_path.name} is {size} bytes; the maximum is {MAX_ICON_BYTES // 1024} KiB"
        )

    result = PublishResult()
    for key in _paced(_select_keys(upload_config.projects, keys), delay, sleep):
        project_id = upload_config.projects[key]
        logger.info("Updating icon for %s (%s)", key, project_id)
        try:
            client.set_project_icon(project_id, icon_path)
        except RegistryError as exc:
            logger.error("Updating icon for %s failed: %s", key, exc)
            result.failed[key] = str(exc)
            continue
        result.succeeded[key] = project_id
    return result
