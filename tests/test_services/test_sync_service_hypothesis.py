"""Property-based tests for reconciliation and execution invariants."""

from __future__ import annotations

import string
import tempfile
from pathlib import Path

from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from mcpack.services.sync_service import (
    ArtifactRecord,
    Inventory,
    Origin,
    SyncAction,
    SyncPlan,
    execute_plan,
    fetch_remote_inventory,
    reconcile,
    scan_local_inventory,
)
from tests.conftest import FakeSession

PROPERTY_SETTINGS = settings(
    max_examples=250,
    deadline=None,
    suppress_health_check=[HealthCheck.too_slow],
)

_NAME = st.builds(
    lambda stem: f"{stem}.jar",
    st.text(alphabet=string.ascii_lowercase + string.digits, min_size=1, max_size=8),
)
_SIZES = st.dictionaries(keys=_NAME, values=st.integers(min_value=0, max_value=64), max_size=12)


def _inventory(sizes: dict[str, int], origin: Origin) -> Inventory:
    return Inventory.from_records(ArtifactRecord(n, s, origin) for n, s in sizes.items())


class TestReconcileProperties:
    @PROPERTY_SETTINGS
    @given(local=_SIZES, remote=_SIZES)
    def test_local_names_split_into_upload_and_unchanged(
        self, local: dict[str, int], remote: dict[str, int]
    ) -> None:
        plan = reconcile(_inventory(local, Origin.LOCAL), _inventory(remote, Origin.REMOTE))
        assert plan.to_upload | plan.unchanged == set(local)
        assert not plan.to_upload & plan.unchanged

    @PROPERTY_SETTINGS
    @given(local=_SIZES, remote=_SIZES)
    def test_remote_names_are_deleted_kept_or_replaced(
        self, local: dict[str, int], remote: dict[str, int]
    ) -> None:
        plan = reconcile(_inventory(local, Origin.LOCAL), _inventory(remote, Origin.REMOTE))
        remote_names = set(remote)
        replaced = plan.to_upload & remote_names
        assert plan.to_delete | (plan.unchanged & remote_names) | replaced == remote_names
        assert plan.to_delete == remote_names - set(local)
        assert not plan.to_delete & plan.unchanged
        for name in replaced:
            assert local[name] != remote[name]

    @PROPERTY_SETTINGS
    @given(local=_SIZES, remote=_SIZES)
    def test_sets_are_disjoint_and_cover_the_union(
        self, local: dict[str, int], remote: dict[str, int]
    ) -> None:
        plan = reconcile(_inventory(local, Origin.LOCAL), _inventory(remote, Origin.REMOTE))
        assert plan.to_upload | plan.to_delete | plan.unchanged == set(local) | set(remote)
        assert not plan.to_upload & plan.to_delete

    @PROPERTY_SETTINGS
    @given(remote=_SIZES)
    def test_empty_local(self, remote: dict[str, int]) -> None:
        plan = reconcile(Inventory(), _inventory(remote, Origin.REMOTE))
        assert plan.to_delete == set(remote)
        assert plan.to_upload == frozenset()

    @PROPERTY_SETTINGS
    @given(local=_SIZES)
    def test_empty_remote(self, local: dict[str, int]) -> None:
        plan = reconcile(_inventory(local, Origin.LOCAL), Inventory())
        assert plan.to_upload == set(local)
        assert plan.to_delete == frozenset()

    @PROPERTY_SETTINGS
    @given(local=_SIZES, remote=_SIZES)
    def test_unchanged_means_same_size(self, local: dict[str, int], remote: dict[str, int]) -> None:
        plan = reconcile(_inventory(local, Origin.LOCAL), _inventory(remote, Origin.REMOTE))
        for name in plan.unchanged:
            assert local[name] == remote[name]


class TestExecutionProperties:
    @PROPERTY_SETTINGS
    @given(local=_SIZES, remote=_SIZES)
    def test_sync_is_idempotent(self, local: dict[str, int], remote: dict[str, int]) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            for name, size in local.items():
                (root / name).write_bytes(b"x" * size)
            session = FakeSession({"/m": remote})

            plan = reconcile(scan_local_inventory(root), fetch_remote_inventory(session, "/m"))
            outcomes = execute_plan(session, plan, lambda n: root / n, "/m", sleep=lambda _: None)
            assert not any(o.failed for o in outcomes)

            again = reconcile(scan_local_inventory(root), fetch_remote_inventory(session, "/m"))
            assert again.to_upload == frozenset()
            assert again.to_delete == frozenset()
            assert again.unchanged == set(local)

    @PROPERTY_SETTINGS
    @given(
        names=st.sets(_NAME, min_size=1, max_size=10),
        stale=st.sets(_NAME, max_size=5),
        data=st.data(),
    )
    def test_failures_are_isolated(
        self, names: set[str], stale: set[str], data: st.DataObject
    ) -> None:
        stale = stale - names
        failing = data.draw(st.sets(st.sampled_from(sorted(names))))
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            for name in names:
                (root / name).write_bytes(b"jar")
            session = FakeSession({"/m": dict.fromkeys(stale, 1)})
            session.fail_uploads = set(failing)
            delays: list[float] = []

            outcomes = execute_plan(
                session,
                SyncPlan(to_upload=frozenset(names), to_delete=frozenset(stale)),
                lambda n: root / n,
                "/m",
                upload_delay=1.0,
                sleep=delays.append,
            )

        assert len(outcomes) == len(names) + len(stale)
        assert {o.name for o in outcomes if o.failed} == failing
        actions = [o.action for o in outcomes]
        assert actions == [SyncAction.DELETED] * len(stale) + [SyncAction.UPLOADED] * len(names)
        assert len(delays) == len(names) - 1
