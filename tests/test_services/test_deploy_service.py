"""Tests for the deploy service."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from mcpack.config import CompareMode
from mcpack.exceptions import DirectoryNotFoundError
from mcpack.services.deploy_service import build_targets, deploy
from mcpack.services.sync_service import SyncAction
from tests.conftest import FakeSession

if TYPE_CHECKING:
    from pathlib import Path

    from mcpack.config import Settings


def _server_build(settings: Settings, mods: dict[str, bytes]) -> Path:
    mods_dir = settings.server_mods_path
    mods_dir.mkdir(parents=True)
    for name, data in mods.items():
        (mods_dir / name).write_bytes(data)
    return mods_dir


def _server_config(settings: Settings) -> Path:
    config_root = settings.server_config_path
    (config_root / "config" / "bluemap").mkdir(parents=True)
    (config_root / "server.properties").write_text("motd=hi\n", encoding="utf-8")
    (config_root / "start-server.sh").write_text("#!/bin/bash\n", encoding="utf-8")
    (config_root / "config" / "autoswitch.json").write_text("{}", encoding="utf-8")
    (config_root / "config" / "bluemap" / "core.conf").write_text("a=1", encoding="utf-8")
    return config_root


class TestBuildTargets:
    def test_mods_only(self, test_settings: Settings) -> None:
        targets = build_targets(test_settings)
        assert [t.remote_dir for t in targets] == ["/srv/mods"]
        assert targets[0].prune

    def test_includes_properties_and_config_tree(self, test_settings: Settings) -> None:
        _server_config(test_settings)
        targets = build_targets(test_settings)
        assert [t.remote_dir for t in targets] == [
            "/srv/mods",
            "/srv",
            "/srv/config",
            "/srv/config/bluemap",
        ]
        assert [t.prune for t in targets] == [True, False, False, False]
        properties = targets[1]
        assert properties.predicate is not None
        assert properties.predicate("server.properties")
        assert not properties.predicate("start-server.sh")


class TestDeploy:
    def test_missing_mods_is_fatal_before_any_remote_call(self, test_settings: Settings) -> None:
        session = FakeSession()
        with pytest.raises(DirectoryNotFoundError, match="mcpack-build packs"):
            deploy(test_settings, session)
        assert session.calls == []

    def test_syncs_mods_and_config(self, test_settings: Settings) -> None:
        _server_build(test_settings, {"a.jar": b"aaaa", "b.jar": b"bb", "notes.txt": b"x"})
        _server_config(test_settings)
        session = FakeSession(
            {
                "/srv/mods": {"b.jar": 2, "old.jar": 7},
                "/srv": {"server.properties": 3, "world.zip": 100},
                "/srv/config": {"server-only.json": 5},
            }
        )

        result = deploy(test_settings, session, sleep=lambda _: None)

        assert result.ok
        assert session.dirs["/srv/mods"] == {"a.jar": 4, "b.jar": 2}
        assert session.dirs["/srv"]["server.properties"] == len("motd=hi\n")
        assert session.dirs["/srv"]["world.zip"] == 100
        assert session.dirs["/srv/config"] == {"server-only.json": 5, "autoswitch.json": 2}
        assert session.dirs["/srv/config/bluemap"] == {"core.conf": 3}
        assert ("delete", "/srv/mods/old.jar") in session.calls
        assert not any(c == ("delete", "/srv/config/server-only.json") for c in session.calls)
        assert result.uploaded == 4
        assert result.deleted == 1

        config_report = result.reports[2][1]
        assert [(o.name, o.action) for o in config_report.outcomes] == [
            ("server-only.json", SyncAction.SKIPPED),
            ("autoswitch.json", SyncAction.UPLOADED),
        ]
        assert config_report.verification is not None
        assert config_report.verification.matched

    def test_dry_run_creates_nothing(self, test_settings: Settings) -> None:
        _server_build(test_settings, {"a.jar": b"a"})
        session = FakeSession()
        plans = []
        result = deploy(
            test_settings, session, dry_run=True, on_plan=lambda t, p: plans.append((t.label, p))
        )
        assert session.mutations() == []
        assert not any(c[0] == "ensure_dir" for c in session.calls)
        assert plans[0][0] == "mods"
        assert plans[0][1].to_upload == {"a.jar"}
        assert result.uploaded == 0

    def test_failures_are_reported_per_target(self, test_settings: Settings) -> None:
        _server_build(test_settings, {"a.jar": b"a", "b.jar": b"b"})
        session = FakeSession()
        session.fail_uploads = {"a.jar"}
        seen = []
        result = deploy(
            test_settings,
            session,
            sleep=lambda _: None,
            on_outcome=lambda t, o: seen.append((t.label, o.name, o.failed)),
        )
        assert not result.ok
        assert [(t.label, o.name) for t, o in result.failures] == [("mods", "a.jar")]
        assert seen == [("mods", "a.jar", True), ("mods", "b.jar", False)]
        report = result.reports[0][1]
        assert report.verification is not None
        assert report.verification.missing == {"a.jar"}

    def test_compare_mode_override(self, test_settings: Settings) -> None:
        _server_build(test_settings, {"a.jar": b"a"})
        session = FakeSession({"/srv/mods": {"a.jar": 1}})
        result = deploy(test_settings, session, mode=CompareMode.HASH)
        assert result.reports[0][1].plan.unchanged == {"a.jar"}
        assert (test_settings.server_mods_path / ".mcpack-manifest.json").is_file()
