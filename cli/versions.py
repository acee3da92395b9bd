"""mcpack-versions: check pinned mods against the registry."""

from __future__ import annotations

import argparse

from cli.common import add_common_arguments, fail, load_settings
from mcpack.exceptions import McpackError
from mcpack.services.modrinth_service import ModrinthClient
from mcpack.services.version_service import check_versions


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="mcpack-versions",
        description="Check pinned mod versions against Modrinth",
    )
    add_common_arguments(parser)

    subparsers = parser.add_subparsers(dest="command")
    subparsers.add_parser("check", help="Report available updates")
    subparsers.add_parser("update", help="Pin the newest release of every mod")

    args = parser.parse_args(argv)
    if args.command not in ("check", "update"):
        parser.print_help()
        return

    settings = load_settings(args)
    update = args.command == "update"
    try:
        with ModrinthClient.from_settings(settings) as client:
            results = check_versions(settings, client, update=update)
    except McpackError as exc:
        fail(exc)

    for result in results:
        print(f"{result.pack_type.capitalize()} mods:")
        for mod_update in result.updates:
            print(f"  {mod_update.name}: {mod_update.version_number} ({mod_update.release_day})")
            print(f"    Current: {mod_update.current_filename}")
            print(f"    Latest:  {mod_update.latest_filename}")
        print(
            f"  {len(result.updates)} update(s), {len(result.up_to_date)} up to date, "
            f"{len(result.skipped)} manual, {len(result.unavailable)} unavailable"
        )
    total = sum(len(r.updates) for r in results)
    if update:
        print(f"Updated {total} pinned mod(s).")
    elif total:
        print("Run 'mcpack-versions update' to pin the newest versions.")
    else:
        print("All mods are up to date.")


if __name__ == "__main__":
    main()
