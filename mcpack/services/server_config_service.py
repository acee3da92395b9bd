"""Server configuration generator: properties, start script, hosting notes."""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from mcpack.schemas.pack import load_pack_info

if TYPE_CHECKING:
    from pathlib import Path

    from mcpack.config import Settings
    from mcpack.schemas.pack import PackInfo

logger = logging.getLogger(__name__)

PropertyValue = str | int | bool

START_SCRIPT = "start-server.sh"
SETUP_NOTES = "HOSTING_SETUP.md"


def default_properties(pack_info: PackInfo) -> dict[str, PropertyValue]:
    """Baseline ``server.properties`` values for a Fabric server."""
    return {
        "server-name": pack_info.server_name or f"{pack_info.name} Server",
        "server-port": 25565,
        "gamemode": "survival",
        "difficulty": "normal",
        "max-players": 20,
        "motd": f"{pack_info.name} v{pack_info.version} - Fabric {pack_info.minecraft}",
        "level-name": "world",
        "level-type": "minecraft:normal",
        "generate-structures": True,
        "spawn-protection": 16,
        "allow-nether": True,
        "spawn-npcs": True,
        "spawn-animals": True,
        "spawn-monsters": True,
        "view-distance": 10,
        "simulation-distance": 10,
        "entity-broadcast-range-percentage": 100,
        "network-compression-threshold": 256,
        "online-mode": True,
        "enable-whitelist": False,
        "enforce-whitelist": False,
        "pvp": True,
        "enable-command-block": True,
        "op-permission-level": 4,
        "enable-rcon": False,
        "resource-pack": "",
        "resource-pack-sha1": "",
        "require-resource-pack": False,
        "sync-chunk-writes": True,
        "use-native-transport": True,
        "enable-jmx-monitoring": False,
        "enable-status": True,
        "max-tick-time": 60000,
        "hide-online-players": False,
        "max-world-size": 29999984,
    }


def _format_value(value: PropertyValue) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def render_properties(pack_info: PackInfo, properties: dict[str, PropertyValue]) -> str:
    lines = [
        "# server.properties",
        f"# Generated for {pack_info.name} v{pack_info.version}",
        f"# Minecraft {pack_info.minecraft} with Fabric {pack_info.fabric}",
        "",
    ]
    lines.extend(f"{key}={_format_value(value)}" for key, value in properties.items())
    return "\n".join(lines) + "\n"


def parse_properties(text: str) -> dict[str, str]:
    """Parse ``key=value`` lines, ignoring comments and blank lines."""
    result: dict[str, str] = {}
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith(("#", "!")):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            continue
        result[key.strip()] = value.strip()
    return result


def render_start_script(pack_info: PackInfo) -> str:
    jar = f"fabric-server-mc.{pack_info.minecraft}-loader.{pack_info.fabric}.jar"
    jvm_flags = [
        "-Xms2G -Xmx4G",
        "-XX:+UseG1GC",
        "-XX:+ParallelRefProcEnabled",
        "-XX:MaxGCPauseMillis=200",
        "-XX:+UnlockExperimentalVMOptions",
        "-XX:+DisableExplicitGC",
        "-XX:+AlwaysPreTouch",
        "-XX:G1NewSizePercent=30",
        "-XX:G1MaxNewSizePercent=40",
        "-XX:G1HeapRegionSize=8M",
        "-XX:G1ReservePercent=20",
        "-XX:G1HeapWastePercent=5",
        "-XX:G1MixedGCCountTarget=4",
        "-XX:InitiatingHeapOccupancyPercent=15",
        "-XX:G1MixedGCLiveThresholdPercent=90",
        "-XX:G1RSetUpdatingPauseTimePercent=5",
        "-XX:SurvivorRatio=32",
        "-XX:+PerfDisableSharedMem",
        "-XX:MaxTenuringThreshold=1",
    ]
    fabric_flags = [
        "-Dfabric.systemLibraries",
        "-Dfabric.skipMcProvider=true",
        "-Djava.awt.headless=true",
    ]
    continuation = " \\\n  "
    return (
        "#!/bin/bash\n"
        f"# {pack_info.name} server startup script\n"
        f"# Fabric {pack_info.minecraft} with Fabric Loader {pack_info.fabric}\n\n"
        f'JVM_ARGS="{continuation.join(jvm_flags)}"\n\n'
        f'FABRIC_ARGS="{continuation.join(fabric_flags)}"\n\n'
        f'echo "Starting {pack_info.name} v{pack_info.version}"\n'
        f'echo "Minecraft {pack_info.minecraft} with Fabric {pack_info.fabric}"\n\n'
        f"java $JVM_ARGS $FABRIC_ARGS -jar {jar} nogui\n"
    )


def render_setup_notes(pack_info: PackInfo) -> str:
    return (
        f"# {pack_info.name} Server Configuration Notes\n\n"
        "## Recommended plan\n"
        "- **Minimum**: 4GB RAM\n"
        "- **Recommended**: 6GB+ RAM for 10+ players\n"
        "- **CPU**: high single-thread frequency preferred\n\n"
        "## Installing\n"
        f"1. Install Fabric Loader {pack_info.fabric} for Minecraft {pack_info.minecraft}.\n"
        "2. Upload the server mods to `mods/` (`mcpack-deploy sync`).\n"
        "3. Upload `server.properties` and the `config/` directory.\n"
        f"4. Start the server with `{START_SCRIPT}`.\n\n"
        "## Recommended server.properties tweaks\n"
        "```\n"
        "view-distance=10\n"
        "simulation-distance=10\n"
        "network-compression-threshold=256\n"
        "max-players=20\n"
        "```\n"
    )


@dataclass
class ServerConfigResult:
    output_dir: Path
    files: list[Path] = field(default_factory=list)
    copied_configs: list[Path] = field(default_factory=list)


def copy_shared_configs(source_dir: Path, dest_dir: Path) -> list[Path]:
    """Copy the shared mod config tree into ``dest_dir/config``.

    Returns the copied file paths. A missing source directory copies nothing.
    """
    if not source_dir.is_dir():
        logger.info("No shared config directory at %s", source_dir)
        return []
    target = dest_dir / "config"
    shutil.copytree(source_dir, target, dirs_exist_ok=True)
    copied = sorted(p for p in target.rglob("*") if p.is_file())
    logger.info("Copied %d shared config files", len(copied))
    return copied


def generate_server_config(
    settings: Settings, overrides: dict[str, PropertyValue] | None = None
) -> ServerConfigResult:
    """Write the server configuration bundle under ``build/server-config``."""
    pack_info = load_pack_info(settings.config_path)
    output_dir = settings.server_config_path
    output_dir.mkdir(parents=True, exist_ok=True)

    properties = default_properties(pack_info)
    if overrides:
        properties.update(overrides)

    result = ServerConfigResult(output_dir=output_dir)

    props_path = output_dir / "server.properties"
    props_path.write_text(render_properties(pack_info, properties), encoding="utf-8")
    result.files.append(props_path)

    script_path = output_dir / START_SCRIPT
    script_path.write_text(render_start_script(pack_info), encoding="utf-8")
    script_path.chmod(0o755)
    result.files.append(script_path)

    notes_path = output_dir / SETUP_NOTES
    notes_path.write_text(render_setup_notes(pack_info), encoding="utf-8")
    result.files.append(notes_path)

    result.copied_configs = copy_shared_configs(
        settings.resolve(settings.shared_config_dir), output_dir
    )
    logger.info("Server configuration written to %s", output_dir)
    return result
