"""mcpack-build: build pack archives and server configuration."""

from __future__ import annotations

import argparse
import sys

from cli.common import add_common_arguments, fail, load_settings
from mcpack.exceptions import McpackError
from mcpack.services.modrinth_service import ModrinthClient
from mcpack.services.pack_service import build_all, discover_variants
from mcpack.services.server_config_service import generate_server_config


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="mcpack-build",
        description="Build .mrpack and Prism archives and the server configuration",
    )
    add_common_arguments(parser)
    parser.add_argument(
        "--no-variants",
        action="store_true",
        help="Skip variant packs (mods-<type>-<variant>.json)",
    )

    subparsers = parser.add_subparsers(dest="command")
    subparsers.add_parser("packs", help="Download mods and build the pack archives")
    subparsers.add_parser("server-config", help="Generate server configuration files")
    subparsers.add_parser("all", help="Build packs and server configuration")

    args = parser.parse_args(argv)
    if args.command not in ("packs", "server-config", "all"):
        parser.print_help()
        return

    settings = load_settings(args)
    missing: list[str] = []
    try:
        if args.command in ("packs", "all"):
            settings.build_path.mkdir(parents=True, exist_ok=True)
            variants = None if args.no_variants else discover_variants(settings.config_path)
            with ModrinthClient.from_settings(settings) as client:
                results = build_all(settings, client, variants=variants)
            for result in results:
                label = result.pack_type + (f" ({result.variant})" if result.variant else "")
                print(f"Built {label} pack: {result.mrpack_path.name}, {result.prism_path.name}")
                print(f"  Mods: {len(result.mods)} ({len(result.manual_mods)} bundled manually)")
                missing.extend(f"{label}: {name}" for name in result.missing)

        if args.command in ("server-config", "all"):
            config = generate_server_config(settings)
            print(f"Server configuration written to {config.output_dir}")
            for path in config.files:
                print(f"  {path.name}")
            if config.copied_configs:
                print(f"  {len(config.copied_configs)} shared config file(s) copied")
    except McpackError as exc:
        fail(exc)

    if missing:
        print("Mods not included (download failed or manual file missing):")
        for entry in missing:
            print(f"  {entry}")
        sys.exit(1)


if __name__ == "__main__":
    main()
