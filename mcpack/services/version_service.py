"""Mod version checker: compare pinned versions with the registry."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from mcpack.exceptions import RegistryError
from mcpack.schemas.pack import load_mod_list, load_pack_info, save_model
from mcpack.services.datetime_service import format_date, parse_datetime

if TYPE_CHECKING:
    from collections.abc import Callable

    from mcpack.config import Settings
    from mcpack.schemas.pack import ModEntry, ModList, PackType
    from mcpack.schemas.registry import Version
    from mcpack.services.modrinth_service import ModrinthClient

logger = logging.getLogger(__name__)

_RELEASE_ORDER = {"release": 3, "beta": 2, "alpha": 1}


@dataclass
class ModUpdate:
    """An available update for one pinned mod."""

    name: str
    project_id: str
    current_file_id: str
    latest_file_id: str
    current_filename: str
    latest_filename: str
    version_number: str
    release_date: str

    @property
    def release_day(self) -> str:
        return format_date(self.release_date)


@dataclass
class VersionCheckResult:
    pack_type: PackType
    updates: list[ModUpdate] = field(default_factory=list)
    up_to_date: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    unavailable: list[str] = field(default_factory=list)


def best_version(versions: list[Version]) -> Version | None:
    """Pick the newest version, preferring releases over beta and alpha."""
    if not versions:
        return None
    return max(
        versions,
        key=lambda v: (
            _RELEASE_ORDER.get(v.version_type, 0),
            parse_datetime(v.date_published or "1970-01-01"),
        ),
    )


def _update_for(mod: ModEntry, latest: Version) -> ModUpdate | None:
    """Return an update record when ``latest`` differs from the pinned file id."""
    if latest.id == mod.file_id:
        return None
    primary = latest.primary_file
    return ModUpdate(
        name=mod.name,
        project_id=mod.project_id,
        current_file_id=mod.file_id,
        latest_file_id=latest.id,
        current_filename=mod.filename,
        latest_filename=primary.filename if primary else mod.filename,
        version_number=latest.version_number,
        release_date=latest.date_published,
    )


def check_mod_list(
    client: ModrinthClient,
    mod_list: ModList,
    pack_type: PackType,
    game_version: str,
    *,
    prefer_release: bool = False,
    delay: float = 0.0,
    sleep: Callable[[float], None] = time.sleep,
) -> VersionCheckResult:
    """Check every non-manual mod against its latest compatible version.

    With ``prefer_release`` the newest release is preferred over newer beta
    or alpha builds; otherwise the registry's newest version wins.
    """
    result = VersionCheckResult(pack_type=pack_type)
    first_request = True
    for mod in mod_list.mods:
        if mod.manual or not mod.project_id:
            logger.info("%s: manual mod, skipping version check", mod.name)
            result.skipped.append(mod.name)
            continue

        if not first_request and delay > 0:
            sleep(delay)
        first_request = False
        try:
            versions = client.list_versions(
                mod.project_id, game_version=game_version, loader="fabric"
            )
        except RegistryError as exc:
            logger.warning("Failed to check version for %s: %s", mod.name, exc)
            result.unavailable.append(mod.name)
            continue

        latest = best_version(versions) if prefer_release else (versions[0] if versions else None)
        if latest is None:
            logger.info("%s: no versions for %s", mod.name, game_version)
            result.unavailable.append(mod.name)
            continue

        update = _update_for(mod, latest)
        if update is None:
            result.up_to_date.append(mod.name)
        else:
            logger.info("%s: update available %s", mod.name, latest.version_number)
            result.updates.append(update)
    return result


def apply_updates(mod_list: ModList, updates: list[ModUpdate]) -> int:
    """Rewrite pinned file ids and filenames in place; return the count changed."""
    by_name = {u.name: u for u in updates}
    changed = 0
    for mod in mod_list.mods:
        update = by_name.get(mod.name)
        if update is None:
            continue
        mod.file_id = update.latest_file_id
        mod.filename = update.latest_filename
        changed += 1
    return changed


def check_versions(
    settings: Settings,
    client: ModrinthClient,
    *,
    update: bool = False,
    sleep: Callable[[float], None] = time.sleep,
) -> list[VersionCheckResult]:
    """Check both mod lists; with ``update`` write newer pins back to disk."""
    pack_info = load_pack_info(settings.config_path)
    results = []
    for pack_type in ("client", "server"):
        mod_list = load_mod_list(settings.config_path, pack_type)
        result = check_mod_list(
            client,
            mod_list,
            pack_type,
            pack_info.minecraft,
            prefer_release=update,
            delay=settings.registry_delay_seconds,
            sleep=sleep,
        )
        if update and result.updates:
            apply_updates(mod_list, result.updates)
            path = settings.config_path / f"mods-{pack_type}.json"
            save_model(path, mod_list)
            logger.info("Updated %d mods in %s", len(result.updates), path)
        results.append(result)
    return results
