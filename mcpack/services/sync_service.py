"""Sync service: inventory scanning, reconciliation, and plan execution.

The pipeline is strictly sequential: scan the local directory, list the
remote directory, reconcile the two snapshots into a ``SyncPlan``, then
execute deletes followed by uploads over a single transfer session.
Re-running the pipeline is the retry mechanism; it is idempotent because
both sides are re-scanned.
"""

from __future__ import annotations

import hashlib
import json
import logging
import time
from dataclasses import asdict, dataclass, field
from enum import StrEnum
from types import MappingProxyType
from typing import TYPE_CHECKING

from mcpack.config import CompareMode
from mcpack.exceptions import (
    DirectoryNotFoundError,
    RemoteDirectoryMissing,
    TransferConnectionError,
    TransferError,
)
from mcpack.transfer.base import EntryType

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Iterator, Mapping
    from pathlib import Path

    from mcpack.transfer.base import TransferSession

logger = logging.getLogger(__name__)

MANIFEST_FILE = ".mcpack-manifest.json"


class Origin(StrEnum):
    """Which side of the sync produced a record."""

    LOCAL = "local"
    REMOTE = "remote"


class SyncAction(StrEnum):
    UPLOADED = "uploaded"
    DELETED = "deleted"
    SKIPPED = "skipped"


class SyncStatus(StrEnum):
    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True)
class ArtifactRecord:
    """One file known to either side of a sync."""

    name: str
    size: int
    origin: Origin
    content_hash: str | None = None

    def __post_init__(self) -> None:
        if self.size < 0:
            msg = f"Artifact size must be non-negative, got {self.size} for {self.name}"
            raise ValueError(msg)


@dataclass(frozen=True)
class Inventory:
    """Immutable snapshot of artifact records keyed by name."""

    records: Mapping[str, ArtifactRecord] = field(default_factory=dict)

    def __post_init__(self) -> None:
        for name, record in self.records.items():
            if name != record.name:
                msg = f"Inventory key {name!r} does not match record name {record.name!r}"
                raise ValueError(msg)
        object.__setattr__(self, "records", MappingProxyType(dict(self.records)))

    @classmethod
    def from_records(cls, records: Iterable[ArtifactRecord]) -> Inventory:
        """Build an inventory, rejecting duplicate names."""
        by_name: dict[str, ArtifactRecord] = {}
        for record in records:
            if record.name in by_name:
                msg = f"Duplicate artifact name in inventory: {record.name}"
                raise ValueError(msg)
            by_name[record.name] = record
        return cls(by_name)

    @property
    def names(self) -> frozenset[str]:
        return frozenset(self.records)

    def get(self, name: str) -> ArtifactRecord | None:
        return self.records.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self.records

    def __iter__(self) -> Iterator[ArtifactRecord]:
        return iter(self.records.values())

    def __len__(self) -> int:
        return len(self.records)


@dataclass(frozen=True)
class SyncPlan:
    """The computed sync plan: a partition of the local and remote names."""

    to_upload: frozenset[str] = frozenset()
    to_delete: frozenset[str] = frozenset()
    unchanged: frozenset[str] = frozenset()

    @property
    def has_changes(self) -> bool:
        return bool(self.to_upload or self.to_delete)


@dataclass(frozen=True)
class SyncOutcome:
    """Result of one upload, delete, or skipped delete."""

    name: str
    action: SyncAction
    status: SyncStatus
    error_detail: str | None = None

    @property
    def failed(self) -> bool:
        return self.status == SyncStatus.FAILED


@dataclass(frozen=True)
class VerificationResult:
    """Comparison of the remote listing after a sync against the expected names."""

    expected: frozenset[str]
    actual: frozenset[str]
    strict: bool = True

    @property
    def missing(self) -> frozenset[str]:
        return self.expected - self.actual

    @property
    def unexpected(self) -> frozenset[str]:
        return self.actual - self.expected

    @property
    def matched(self) -> bool:
        if self.missing:
            return False
        return not (self.strict and self.unexpected)


@dataclass
class SyncReport:
    """Everything one sync run produced."""

    plan: SyncPlan
    outcomes: list[SyncOutcome] = field(default_factory=list)
    verification: VerificationResult | None = None

    def _count(self, action: SyncAction) -> int:
        return sum(1 for o in self.outcomes if o.action == action and not o.failed)

    @property
    def uploaded(self) -> int:
        return self._count(SyncAction.UPLOADED)

    @property
    def deleted(self) -> int:
        return self._count(SyncAction.DELETED)

    @property
    def skipped(self) -> int:
        return self._count(SyncAction.SKIPPED)

    @property
    def failures(self) -> list[SyncOutcome]:
        return [o for o in self.outcomes if o.failed]

    @property
    def ok(self) -> bool:
        """True when no item failed. Verification mismatches do not count."""
        return not self.failures


@dataclass
class ManifestEntry:
    """Size and content hash of an artifact as it was last uploaded."""

    size: int
    content_hash: str


def suffix_filter(suffix: str) -> Callable[[str], bool]:
    """Return a filename predicate matching names that end with ``suffix``."""

    def _matches(name: str) -> bool:
        return name.endswith(suffix) and not name.startswith(".")

    return _matches


def _match_all(name: str) -> bool:
    return not name.startswith(".")


def hash_file(file_path: Path) -> str:
    """Compute SHA-256 hash of a file."""
    sha = hashlib.sha256()
    with open(file_path, "rb") as f:
        for chunk in iter(lambda: f.read(8192), b""):
            sha.update(chunk)
    return sha.hexdigest()


def scan_local_inventory(
    directory: Path,
    predicate: Callable[[str], bool] | None = None,
    *,
    with_hashes: bool = False,
) -> Inventory:
    """Scan the regular files directly inside ``directory``.

    Raises DirectoryNotFoundError if the directory does not exist. Entries
    that cannot be stat'ed or hashed are skipped with a warning.
    """
    if not directory.is_dir():
        raise DirectoryNotFoundError(f"Local directory not found: {directory}")
    matches = predicate or _match_all

    records: list[ArtifactRecord] = []
    for path in sorted(directory.iterdir()):
        if not matches(path.name):
            continue
        try:
            if not path.is_file():
                continue
            size = path.stat().st_size
            content_hash = hash_file(path) if with_hashes else None
        except OSError as exc:
            logger.warning("Skipping %s: %s", path, exc)
            continue
        records.append(
            ArtifactRecord(
                name=path.name, size=size, origin=Origin.LOCAL, content_hash=content_hash
            )
        )
    return Inventory.from_records(records)


def fetch_remote_inventory(
    session: TransferSession,
    remote_dir: str,
    predicate: Callable[[str], bool] | None = None,
) -> Inventory:
    """List ``remote_dir`` over an authenticated session.

    A missing remote directory yields an empty inventory (clean install).
    Any other failure raises TransferConnectionError; a partial remote
    listing is never returned.
    """
    matches = predicate or _match_all
    try:
        entries = session.list(remote_dir)
    except RemoteDirectoryMissing:
        logger.info("Remote directory %s does not exist; treating as empty", remote_dir)
        return Inventory()

    return Inventory.from_records(
        ArtifactRecord(name=entry.name, size=entry.size, origin=Origin.REMOTE)
        for entry in entries
        if entry.type == EntryType.FILE and matches(entry.name)
    )


def _differs(local: ArtifactRecord, remote: ArtifactRecord, mode: CompareMode) -> bool:
    if local.size != remote.size:
        return True
    if mode == CompareMode.HASH and local.content_hash and remote.content_hash is not None:
        # An empty remote hash marks an upload that did not complete.
        return local.content_hash != remote.content_hash
    return False


def reconcile(
    local: Inventory,
    remote: Inventory,
    mode: CompareMode = CompareMode.SIZE,
) -> SyncPlan:
    """Compute which artifacts to upload, delete, or leave alone.

    In SIZE mode two records with the same name and size are unchanged even
    if their contents differ. HASH mode additionally uploads when both
    records carry a content hash and the hashes differ; records without a
    hash fall back to size comparison. A remote record whose hash is the
    empty string is always uploaded.
    """
    to_upload: set[str] = set()
    unchanged: set[str] = set()

    for record in local:
        remote_record = remote.get(record.name)
        if remote_record is None or _differs(record, remote_record, mode):
            to_upload.add(record.name)
        else:
            unchanged.add(record.name)

    to_delete = remote.names - local.names

    return SyncPlan(
        to_upload=frozenset(to_upload),
        to_delete=frozenset(to_delete),
        unchanged=frozenset(unchanged),
    )


def _remote_path(remote_dir: str, name: str) -> str:
    return f"{remote_dir.rstrip('/')}/{name}"


def execute_plan(
    session: TransferSession,
    plan: SyncPlan,
    local_path_for: Callable[[str], Path],
    remote_dir: str,
    *,
    upload_delay: float = 1.0,
    prune: bool = True,
    sleep: Callable[[float], None] = time.sleep,
    on_outcome: Callable[[SyncOutcome], None] | None = None,
) -> list[SyncOutcome]:
    """Apply a sync plan: deletes first, then uploads, both in name order.

    Every item is attempted independently; a failed transfer is recorded
    and the batch continues. ``upload_delay`` seconds are slept between
    consecutive uploads. With ``prune=False`` remote-only names are recorded
    as skipped instead of deleted.
    """
    outcomes: list[SyncOutcome] = []

    def _record(outcome: SyncOutcome) -> None:
        outcomes.append(outcome)
        if on_outcome is not None:
            on_outcome(outcome)

    for name in sorted(plan.to_delete):
        if not prune:
            _record(SyncOutcome(name=name, action=SyncAction.SKIPPED, status=SyncStatus.SUCCESS))
            continue
        try:
            session.delete(_remote_path(remote_dir, name))
        except (TransferError, TransferConnectionError) as exc:
            logger.warning("Failed to delete %s: %s", name, exc)
            _record(
                SyncOutcome(
                    name=name,
                    action=SyncAction.DELETED,
                    status=SyncStatus.FAILED,
                    error_detail=str(exc),
                )
            )
            continue
        logger.debug("Deleted %s", name)
        _record(SyncOutcome(name=name, action=SyncAction.DELETED, status=SyncStatus.SUCCESS))

    for index, name in enumerate(sorted(plan.to_upload)):
        if index > 0 and upload_delay > 0:
            sleep(upload_delay)
        try:
            session.upload(local_path_for(name), _remote_path(remote_dir, name))
        except (TransferError, TransferConnectionError) as exc:
            logger.warning("Failed to upload %s: %s", name, exc)
            _record(
                SyncOutcome(
                    name=name,
                    action=SyncAction.UPLOADED,
                    status=SyncStatus.FAILED,
                    error_detail=str(exc),
                )
            )
            continue
        logger.debug("Uploaded %s", name)
        _record(SyncOutcome(name=name, action=SyncAction.UPLOADED, status=SyncStatus.SUCCESS))

    return outcomes


def verify_remote(
    session: TransferSession,
    remote_dir: str,
    expected: Iterable[str],
    predicate: Callable[[str], bool] | None = None,
    *,
    strict: bool = True,
) -> VerificationResult:
    """Re-list the remote directory and compare it with the expected names."""
    actual = fetch_remote_inventory(session, remote_dir, predicate).names
    result = VerificationResult(expected=frozenset(expected), actual=actual, strict=strict)
    if not result.matched:
        logger.warning(
            "Verification mismatch in %s: %d missing, %d unexpected",
            remote_dir,
            len(result.missing),
            len(result.unexpected) if strict else 0,
        )
    return result


def load_manifest(directory: Path) -> dict[str, ManifestEntry]:
    """Load the deploy manifest stored next to the local artifacts."""
    manifest_path = directory / MANIFEST_FILE
    if not manifest_path.exists():
        return {}
    try:
        data = json.loads(manifest_path.read_text(encoding="utf-8"))
        return {k: ManifestEntry(**v) for k, v in data.items()}
    except (ValueError, TypeError) as exc:
        logger.warning("Ignoring unreadable manifest %s: %s", manifest_path, exc)
        return {}


def save_manifest(directory: Path, entries: Mapping[str, ManifestEntry]) -> None:
    """Save the deploy manifest next to the local artifacts."""
    manifest_path = directory / MANIFEST_FILE
    data = {k: asdict(v) for k, v in sorted(entries.items())}
    manifest_path.write_text(json.dumps(data, indent=2), encoding="utf-8")


def attach_remote_hashes(remote: Inventory, manifest: Mapping[str, ManifestEntry]) -> Inventory:
    """Copy manifest hashes onto remote records whose size still matches."""
    records: list[ArtifactRecord] = []
    for record in remote:
        entry = manifest.get(record.name)
        if entry is not None and entry.size == record.size:
            record = ArtifactRecord(
                name=record.name,
                size=record.size,
                origin=record.origin,
                content_hash=entry.content_hash,
            )
        records.append(record)
    return Inventory.from_records(records)


def updated_manifest(
    local: Inventory,
    outcomes: Iterable[SyncOutcome],
) -> dict[str, ManifestEntry]:
    """Return the manifest describing the remote side after a sync.

    Unchanged names and successful uploads take the local size and hash.
    A failed upload gets the local size with an empty hash, so the next run
    uploads it again even when the remote file already has that size.
    """
    by_name = {outcome.name: outcome for outcome in outcomes}
    manifest: dict[str, ManifestEntry] = {}
    for record in local:
        if record.content_hash is None:
            continue
        outcome = by_name.get(record.name)
        content_hash = "" if outcome is not None and outcome.failed else record.content_hash
        manifest[record.name] = ManifestEntry(size=record.size, content_hash=content_hash)
    return manifest


def sync_directory(
    session: TransferSession,
    local_dir: Path,
    remote_dir: str,
    *,
    predicate: Callable[[str], bool] | None = None,
    mode: CompareMode = CompareMode.SIZE,
    upload_delay: float = 1.0,
    prune: bool = True,
    verify: bool = True,
    dry_run: bool = False,
    sleep: Callable[[float], None] = time.sleep,
    on_plan: Callable[[SyncPlan], None] | None = None,
    on_outcome: Callable[[SyncOutcome], None] | None = None,
) -> SyncReport:
    """Run the full scan -> reconcile -> execute -> verify pipeline for one directory."""
    use_hashes = mode == CompareMode.HASH
    local = scan_local_inventory(local_dir, predicate, with_hashes=use_hashes)
    remote = fetch_remote_inventory(session, remote_dir, predicate)
    if use_hashes:
        remote = attach_remote_hashes(remote, load_manifest(local_dir))

    plan = reconcile(local, remote, mode)
    logger.info(
        "Sync plan for %s: %d to upload, %d to delete, %d unchanged",
        remote_dir,
        len(plan.to_upload),
        len(plan.to_delete),
        len(plan.unchanged),
    )
    if on_plan is not None:
        on_plan(plan)

    report = SyncReport(plan=plan)
    if dry_run:
        return report

    if plan.has_changes:
        report.outcomes = execute_plan(
            session,
            plan,
            lambda name: local_dir / name,
            remote_dir,
            upload_delay=upload_delay,
            prune=prune,
            sleep=sleep,
            on_outcome=on_outcome,
        )

    if use_hashes:
        save_manifest(local_dir, updated_manifest(local, report.outcomes))

    if verify and plan.has_changes:
        report.verification = verify_remote(
            session, remote_dir, local.names, predicate, strict=prune
        )
    return report
