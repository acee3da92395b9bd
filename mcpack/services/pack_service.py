"""Pack builder: mod downloads, Modrinth index, .mrpack and Prism archives."""

from __future__ import annotations

import hashlib
import json
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any
from zipfile import ZIP_DEFLATED, ZipFile

from mcpack.exceptions import RegistryError
from mcpack.filesystem.nbt import servers_dat
from mcpack.schemas.pack import (
    PackInfo,
    load_mod_list,
    load_pack_info,
    pack_file_name,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from mcpack.config import Settings
    from mcpack.schemas.pack import ModEntry, PackType
    from mcpack.services.modrinth_service import ModrinthClient

logger = logging.getLogger(__name__)

_ICON_CANDIDATES = ("icon-64.png", "icon-128.png", "icon.png")

CLIENT_JVM_ARGS = (
    "-XX:+UnlockExperimentalVMOptions -XX:+UseG1GC -XX:G1NewSizePercent=20 "
    "-XX:G1ReservePercent=20 -XX:MaxGCPauseMillis=50 -XX:G1HeapRegionSize=32M"
)


@dataclass
class ResolvedMod:
    """A mod entry with its local file and registry download URL (if any)."""

    entry: ModEntry
    path: Path
    url: str | None = None


@dataclass
class BuildResult:
    pack_type: PackType
    variant: str
    mrpack_path: Path
    prism_path: Path
    mods: list[ResolvedMod] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)

    @property
    def manual_mods(self) -> list[str]:
        return [m.entry.name for m in self.mods if m.url is None]


def file_hashes(path: Path) -> dict[str, str]:
    """Compute the sha1 and sha512 digests used by modrinth.index.json."""
    sha1 = hashlib.sha1()
    sha512 = hashlib.sha512()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(65536), b""):
            sha1.update(chunk)
            sha512.update(chunk)
    return {"sha1": sha1.hexdigest(), "sha512": sha512.hexdigest()}


def env_for_side(side: str) -> dict[str, str]:
    return {
        "client": "required" if side in ("client", "both") else "unsupported",
        "server": "required" if side in ("server", "both") else "unsupported",
    }


def resolve_mods(
    client: ModrinthClient,
    mods: list[ModEntry],
    dest_dir: Path,
    *,
    delay: float = 0.0,
    sleep: Callable[[float], None] = time.sleep,
) -> tuple[list[ResolvedMod], list[str]]:
    """Download every mod into ``dest_dir`` and resolve its download URL.

    Manual mods are never downloaded; they must already be present in
    ``dest_dir``. Returns the resolved mods and the names of mods that could
    not be made available. A registry failure skips that mod only.
    """
    dest_dir.mkdir(parents=True, exist_ok=True)
    resolved: list[ResolvedMod] = []
    missing: list[str] = []
    first_request = True

    for mod in mods:
        dest = dest_dir / mod.filename
        if mod.manual:
            if dest.is_file():
                resolved.append(ResolvedMod(entry=mod, path=dest))
            else:
                logger.warning("Manual mod %s: add %s to %s", mod.name, mod.filename, dest_dir)
                missing.append(mod.name)
            continue

        if not first_request and delay > 0:
            sleep(delay)
        first_request = False
        try:
            version = client.get_version(mod.file_id)
            primary = version.primary_file
            if primary is None:
                raise RegistryError(f"Version {mod.file_id} has no files")
            if dest.is_file():
                logger.info("%s already downloaded", mod.name)
            else:
                logger.info("Downloading %s", mod.name)
                client.download(primary.url, dest)
        except RegistryError as exc:
            logger.error("Failed to download %s: %s", mod.name, exc)
            missing.append(mod.name)
            continue
        resolved.append(ResolvedMod(entry=mod, path=dest, url=primary.url))

    return resolved, missing


def build_index(
    pack_info: PackInfo, pack_type: PackType, mods: list[ResolvedMod], variant: str = ""
) -> dict[str, Any]:
    """Build modrinth.index.json for the registry-hosted mods.

    Mods without a download URL are shipped as overrides instead.
    """
    files = []
    for mod in mods:
        if mod.url is None:
            continue
        files.append(
            {
                "path": f"mods/{mod.entry.filename}",
                "hashes": file_hashes(mod.path),
                "env": env_for_side(mod.entry.side),
                "downloads": [mod.url],
                "fileSize": mod.path.stat().st_size,
            }
        )

    suffix = f"-{variant}" if variant else ""
    label = pack_type.capitalize() + (f" {variant.capitalize()}" if variant else "")
    return {
        "formatVersion": 1,
        "game": "minecraft",
        "versionId": f"{pack_info.slug}-{pack_info.version}-{pack_type}{suffix}",
        "name": f"{pack_info.name} {label}",
        "summary": pack_info.summary_for(pack_type),
        "files": files,
        "dependencies": {
            "minecraft": pack_info.minecraft,
            "fabric-loader": pack_info.fabric,
        },
    }


def client_extras(pack_info: PackInfo) -> dict[str, bytes]:
    """Files placed in the client game directory: server info, options, server list."""
    if not pack_info.server_address:
        return {}
    address = pack_info.server_address
    server_name = pack_info.server_name or f"{pack_info.name} Server"
    info = (
        f"{server_name} Information:\n\n"
        f"Server Address: {address}\n"
        f"Server Name: {server_name}\n\n"
        "To connect:\n"
        "1. Open Minecraft and go to Multiplayer\n"
        '2. Click "Add Server"\n'
        f'3. Enter "{server_name}" as the name\n'
        f'4. Enter "{address}" as the address\n'
        "5. Click Done and join!\n"
    )
    options = f"lastServer:{address}\n"
    return {
        "SERVER_INFO.txt": info.encode("utf-8"),
        "options.txt": options.encode("utf-8"),
        "servers.dat": servers_dat([(server_name, address)]),
    }


def readme_text(pack_info: PackInfo, pack_type: PackType) -> str:
    return (
        f"{pack_info.name} - {pack_type.capitalize()} Pack\n"
        f"Version: {pack_info.version}\n"
        f"Minecraft: {pack_info.minecraft}\n"
        f"Fabric Loader: {pack_info.fabric}\n\n"
        f"{pack_info.summary_for(pack_type)}\n"
    )


def find_icon(assets_dir: Path) -> Path | None:
    for name in _ICON_CANDIDATES:
        candidate = assets_dir / name
        if candidate.is_file():
            return candidate
    return None


def write_mrpack(
    output_path: Path,
    index: dict[str, Any],
    overrides: dict[str, bytes],
    icon: Path | None = None,
) -> None:
    """Write a .mrpack archive: the index plus an ``overrides/`` tree."""
    with ZipFile(output_path, "w", compression=ZIP_DEFLATED) as zf:
        zf.writestr("modrinth.index.json", json.dumps(index, indent=2) + "\n")
        for rel_path, data in sorted(overrides.items()):
            zf.writestr(f"overrides/{rel_path}", data)
        if icon is not None:
            zf.write(icon, "icon.png")


def instance_cfg(pack_info: PackInfo, pack_type: PackType) -> str:
    return (
        "InstanceType=OneSix\n"
        f"name={pack_info.name} {pack_type.capitalize()}\n"
        "iconKey=icon\n"
        "JavaVersion=17\n"
        "MinMemAlloc=512\n"
        "MaxMemAlloc=4096\n"
        f"JvmArgs={CLIENT_JVM_ARGS}\n"
    )


def mmc_pack(pack_info: PackInfo) -> dict[str, Any]:
    return {
        "components": [
            {"uid": "net.minecraft", "version": pack_info.minecraft},
            {"uid": "net.fabricmc.fabric-loader", "version": pack_info.fabric},
        ],
        "formatVersion": 1,
    }


def write_prism_pack(
    output_path: Path,
    pack_info: PackInfo,
    pack_type: PackType,
    mods: list[ResolvedMod],
    extras: dict[str, bytes],
    icon: Path | None = None,
) -> None:
    """Write a Prism Launcher instance archive with every mod bundled."""
    with ZipFile(output_path, "w", compression=ZIP_DEFLATED) as zf:
        zf.writestr("mmc-pack.json", json.dumps(mmc_pack(pack_info), indent=2) + "\n")
        zf.writestr("instance.cfg", instance_cfg(pack_info, pack_type))
        for mod in mods:
            zf.write(mod.path, f".minecraft/mods/{mod.entry.filename}")
        for rel_path, data in sorted(extras.items()):
            zf.writestr(f".minecraft/{rel_path}", data)
        if icon is not None:
            zf.write(icon, "icon.png")


def build_pack(
    settings: Settings,
    client: ModrinthClient,
    pack_info: PackInfo,
    pack_type: PackType,
    variant: str = "",
    *,
    sleep: Callable[[float], None] = time.sleep,
) -> BuildResult:
    """Download one pack's mods and write its .mrpack and Prism archives."""
    mod_list = load_mod_list(settings.config_path, pack_type, variant)
    mods = [m for m in mod_list.mods if m.runs_on(pack_type)]
    build_dir = settings.build_path
    pack_dir = pack_type if not variant else f"{pack_type}-{variant}"

    resolved, missing = resolve_mods(
        client,
        mods,
        build_dir / pack_dir / "mods",
        delay=settings.registry_delay_seconds,
        sleep=sleep,
    )

    extras = client_extras(pack_info) if pack_type == "client" else {}
    overrides = dict(extras)
    for mod in resolved:
        if mod.url is None:
            overrides[f"mods/{mod.entry.filename}"] = mod.path.read_bytes()

    icon = find_icon(settings.resolve(settings.assets_dir))
    index = build_index(pack_info, pack_type, resolved, variant)
    mrpack_path = build_dir / pack_file_name(pack_info, pack_type, variant)
    write_mrpack(mrpack_path, index, overrides, icon)
    (build_dir / pack_dir / "README.txt").write_text(
        readme_text(pack_info, pack_type), encoding="utf-8"
    )
    logger.info("Created %s (%d mods)", mrpack_path, len(resolved))

    prism_path = mrpack_path.with_name(mrpack_path.stem + "-prism.zip")
    write_prism_pack(prism_path, pack_info, pack_type, resolved, extras, icon)
    logger.info("Created %s", prism_path)

    return BuildResult(
        pack_type=pack_type,
        variant=variant,
        mrpack_path=mrpack_path,
        prism_path=prism_path,
        mods=resolved,
        missing=missing,
    )


def build_all(
    settings: Settings,
    client: ModrinthClient,
    *,
    variants: dict[PackType, list[str]] | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> list[BuildResult]:
    """Build the client and server packs plus any configured variants."""
    pack_info = load_pack_info(settings.config_path)
    results: list[BuildResult] = []
    for pack_type in ("client", "server"):
        results.append(build_pack(settings, client, pack_info, pack_type, sleep=sleep))
        for variant in (variants or {}).get(pack_type, []):
            results.append(build_pack(settings, client, pack_info, pack_type, variant, sleep=sleep))
    return results


def discover_variants(config_dir: Path) -> dict[PackType, list[str]]:
    """Find variant mod lists named ``mods-<type>-<variant>.json``."""
    variants: dict[PackType, list[str]] = {"client": [], "server": []}
    for pack_type in ("client", "server"):
        prefix = f"mods-{pack_type}-"
        for path in sorted(Path(config_dir).glob(f"{prefix}*.json")):
            variants[pack_type].append(path.stem[len(prefix) :])
    return variants
