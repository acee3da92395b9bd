"""mcpack-publish: Modrinth publishing and redirect generation."""

from __future__ import annotations

import argparse
import sys

from cli.common import add_common_arguments, fail, load_settings
from mcpack.exceptions import McpackError
from mcpack.services.modrinth_service import ModrinthClient
from mcpack.services.publish_service import (
    create_projects,
    update_descriptions,
    update_icons,
    upload_versions,
)
from mcpack.services.redirect_service import generate_redirects

_ACTIONS = {
    "upload": upload_versions,
    "create-projects": create_projects,
    "describe": update_descriptions,
    "icons": update_icons,
}


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="mcpack-publish",
        description="Publish packs to Modrinth",
    )
    add_common_arguments(parser)

    subparsers = parser.add_subparsers(dest="command")
    for name, help_text in (
        ("upload", "Upload built packs as new versions"),
        ("create-projects", "Create Modrinth projects and record their ids"),
        ("describe", "Update project descriptions"),
        ("icons", "Upload assets/icon.png as the project icon"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("keys", nargs="*", help="Project keys (default: all)")
    subparsers.add_parser("nginx", help="Generate nginx redirects to the latest packs")

    args = parser.parse_args(argv)
    if args.command not in (*_ACTIONS, "nginx"):
        parser.print_help()
        return

    settings = load_settings(args)
    try:
        if args.command == "nginx":
            with ModrinthClient.from_settings(settings) as client:
                rules = generate_redirects(settings, client)
            for rule in rules:
                print(f"  {rule.path} -> {rule.url}")
            return

        settings.validate_registry_token()
        with ModrinthClient.from_settings(settings) as client:
            result = _ACTIONS[args.command](settings, client, args.keys or None)
    except (McpackError, ValueError) as exc:
        fail(exc)

    for key, ident in result.succeeded.items():
        print(f"  {key}: {ident}")
    if result.failed:
        print("Failed:")
        for key, reason in result.failed.items():
            print(f"  {key}: {reason}")
        sys.exit(1)


if __name__ == "__main__":
    main()
