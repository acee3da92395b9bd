"""mcpack-deploy: incremental deployment of the server build over FTP."""

from __future__ import annotations

import argparse
import sys
from typing import TYPE_CHECKING

from cli.common import add_common_arguments, fail, load_settings
from mcpack.config import CompareMode
from mcpack.exceptions import McpackError
from mcpack.services.deploy_service import deploy
from mcpack.services.sync_service import SyncStatus
from mcpack.transfer.ftp import FTPTransferSession

if TYPE_CHECKING:
    from mcpack.services.deploy_service import DeployResult, DeployTarget
    from mcpack.services.sync_service import SyncOutcome, SyncPlan

_ACTION_MARKS = {"uploaded": "+", "deleted": "-", "skipped": "="}


def print_plan(target: DeployTarget, plan: SyncPlan) -> None:
    print(f"{target.label} -> {target.remote_dir}")
    print(f"  To upload:  {len(plan.to_upload)}")
    print(f"  To delete:  {len(plan.to_delete) if target.prune else 0}")
    print(f"  Unchanged:  {len(plan.unchanged)}")
    for name in sorted(plan.to_upload):
        print(f"    + {name}")
    if target.prune:
        for name in sorted(plan.to_delete):
            print(f"    - {name}")


def print_outcome(target: DeployTarget, outcome: SyncOutcome) -> None:
    mark = _ACTION_MARKS[outcome.action]
    if outcome.status == SyncStatus.FAILED:
        print(f"  ! {outcome.name} ({outcome.action} failed: {outcome.error_detail})")
    else:
        print(f"  {mark} {outcome.name}")


def print_summary(result: DeployResult) -> None:
    print(
        f"Deploy complete. {result.uploaded} uploaded, {result.deleted} deleted, "
        f"{result.unchanged} unchanged, {len(result.failures)} failed."
    )
    for target, report in result.reports:
        verification = report.verification
        if verification is not None and not verification.matched:
            missing = ", ".join(sorted(verification.missing)) or "none"
            unexpected = ", ".join(sorted(verification.unexpected)) or "none"
            print(
                f"  Warning: {target.remote_dir} verification mismatch "
                f"(missing: {missing}; unexpected: {unexpected})"
            )
    if result.failures:
        print("Failed items (re-run to retry):")
        for target, outcome in result.failures:
            print(f"  {target.remote_dir}/{outcome.name}: {outcome.error_detail}")


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="mcpack-deploy",
        description="Incrementally deploy the server build over FTP",
    )
    add_common_arguments(parser)
    parser.add_argument(
        "--compare",
        choices=[m.value for m in CompareMode],
        default=None,
        help="How unchanged files are detected (default: COMPARE_MODE or size)",
    )
    parser.add_argument(
        "--no-verify", action="store_true", help="Skip re-listing the remote after sync"
    )

    subparsers = parser.add_subparsers(dest="command")
    subparsers.add_parser("status", help="Show what would change")
    subparsers.add_parser("sync", help="Upload changed files and delete stale mods")

    args = parser.parse_args(argv)
    if args.command not in ("status", "sync"):
        parser.print_help()
        return

    settings = load_settings(args)
    try:
        settings.validate_ftp()
    except ValueError as exc:
        fail(exc)

    mode = CompareMode(args.compare) if args.compare else None
    dry_run = args.command == "status"
    try:
        with FTPTransferSession.from_settings(settings) as session:
            result = deploy(
                settings,
                session,
                mode=mode,
                verify=not args.no_verify,
                dry_run=dry_run,
                on_plan=print_plan,
                on_outcome=None if dry_run else print_outcome,
            )
    except McpackError as exc:
        fail(exc)

    if not dry_run:
        print_summary(result)
        if not result.ok:
            sys.exit(1)


if __name__ == "__main__":
    main()
