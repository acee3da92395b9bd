"""Deploy service: incremental server deployment over a transfer session."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from mcpack.exceptions import DirectoryNotFoundError
from mcpack.services.sync_service import SyncReport, suffix_filter, sync_directory

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator
    from pathlib import Path

    from mcpack.config import CompareMode, Settings
    from mcpack.services.sync_service import SyncOutcome, SyncPlan
    from mcpack.transfer.base import TransferSession

logger = logging.getLogger(__name__)

SERVER_PROPERTIES = "server.properties"


@dataclass(frozen=True)
class DeployTarget:
    """One local directory mirrored to one remote directory."""

    label: str
    local_dir: Path
    remote_dir: str
    predicate: Callable[[str], bool] | None = None
    prune: bool = True


@dataclass
class DeployResult:
    """Sync reports for every deployed target, in deployment order."""

    reports: list[tuple[DeployTarget, SyncReport]] = field(default_factory=list)

    @property
    def failures(self) -> list[tuple[DeployTarget, SyncOutcome]]:
        return [
            (target, outcome) for target, report in self.reports for outcome in report.failures
        ]

    @property
    def ok(self) -> bool:
        return not self.failures

    @property
    def uploaded(self) -> int:
        return sum(report.uploaded for _, report in self.reports)

    @property
    def deleted(self) -> int:
        return sum(report.deleted for _, report in self.reports)

    @property
    def unchanged(self) -> int:
        return sum(len(report.plan.unchanged) for _, report in self.reports)


def _config_targets(local_dir: Path, remote_dir: str) -> Iterator[DeployTarget]:
    """Yield a non-pruning target for a config directory and each subdirectory."""
    yield DeployTarget(
        label=f"config:{remote_dir}",
        local_dir=local_dir,
        remote_dir=remote_dir,
        prune=False,
    )
    for child in sorted(local_dir.iterdir()):
        if child.is_dir() and not child.name.startswith("."):
            yield from _config_targets(child, f"{remote_dir}/{child.name}")


def build_targets(settings: Settings) -> list[DeployTarget]:
    """Return the deployment targets for the server build, mods first."""
    targets = [
        DeployTarget(
            label="mods",
            local_dir=settings.server_mods_path,
            remote_dir=settings.remote_mods_dir,
            predicate=suffix_filter(settings.artifact_suffix),
        )
    ]
    server_config = settings.server_config_path
    if (server_config / SERVER_PROPERTIES).is_file():
        targets.append(
            DeployTarget(
                label=SERVER_PROPERTIES,
                local_dir=server_config,
                remote_dir=settings.remote_root,
                predicate=lambda name: name == SERVER_PROPERTIES,
                prune=False,
            )
        )
    config_dir = server_config / "config"
    if config_dir.is_dir():
        targets.extend(_config_targets(config_dir, settings.remote_config_dir))
    return targets


def deploy(
    settings: Settings,
    session: TransferSession,
    *,
    mode: CompareMode | None = None,
    verify: bool = True,
    dry_run: bool = False,
    sleep: Callable[[float], None] = time.sleep,
    on_plan: Callable[[DeployTarget, SyncPlan], None] | None = None,
    on_outcome: Callable[[DeployTarget, SyncOutcome], None] | None = None,
) -> DeployResult:
    """Sync every deployment target over an already connected session.

    The mods directory must exist locally; server.properties and the config
    tree are optional and never pruned on the remote side.
    """
    if not settings.server_mods_path.is_dir():
        raise DirectoryNotFoundError(
            f"Server mods not found: {settings.server_mods_path}. Run 'mcpack-build packs' first."
        )
    targets = build_targets(settings)
    compare_mode = mode or settings.compare_mode
    result = DeployResult()

    if not dry_run:
        for target in targets:
            session.ensure_dir(target.remote_dir)

    for target in targets:
        logger.info("Syncing %s -> %s", target.local_dir, target.remote_dir)
        report = sync_directory(
            session,
            target.local_dir,
            target.remote_dir,
            predicate=target.predicate,
            mode=compare_mode,
            upload_delay=settings.upload_delay_seconds,
            prune=target.prune,
            verify=verify,
            dry_run=dry_run,
            sleep=sleep,
            on_plan=(lambda plan, t=target: on_plan(t, plan)) if on_plan else None,
            on_outcome=(lambda outcome, t=target: on_outcome(t, outcome)) if on_outcome else None,
        )
        result.reports.append((target, report))
    return result
