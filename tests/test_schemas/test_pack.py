"""Tests for pack configuration schemas."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest

from mcpack.exceptions import PackConfigError
from mcpack.schemas.pack import (
    ModEntry,
    PackInfo,
    UploadConfig,
    load_mod_list,
    load_model,
    pack_file_name,
    save_model,
)
from tests.conftest import PACK_INFO

if TYPE_CHECKING:
    from pathlib import Path


class TestPackInfo:
    def test_aliases(self) -> None:
        info = PackInfo.model_validate(PACK_INFO)
        assert info.server_address == "play.example.net"
        assert info.summary_for("server") == "Server side"

    def test_slug(self) -> None:
        info = PackInfo.model_validate({**PACK_INFO, "name": "  My  Cool Pack "})
        assert info.slug == "my-cool-pack"

    def test_pack_file_name(self) -> None:
        info = PackInfo.model_validate(PACK_INFO)
        assert pack_file_name(info, "client") == "test-pack-client-1.2.0.mrpack"
        assert pack_file_name(info, "server", "lite") == "test-pack-server-1.2.0-lite.mrpack"


class TestModEntry:
    def test_runs_on(self) -> None:
        mod = ModEntry.model_validate({"name": "Sodium", "filename": "s.jar", "side": "client"})
        assert mod.runs_on("client")
        assert not mod.runs_on("server")
        both = ModEntry.model_validate({"name": "Lithium", "filename": "l.jar"})
        assert both.runs_on("server")

    def test_rejects_unknown_side(self) -> None:
        with pytest.raises(ValueError):
            ModEntry.model_validate({"name": "X", "filename": "x.jar", "side": "neither"})


class TestLoadModel:
    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(PackConfigError, match="not found"):
            load_model(tmp_path / "pack-info.json", PackInfo)

    def test_invalid_json(self, tmp_path: Path) -> None:
        path = tmp_path / "pack-info.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(PackConfigError, match="Failed to read"):
            load_model(path, PackInfo)

    def test_schema_mismatch(self, tmp_path: Path) -> None:
        path = tmp_path / "pack-info.json"
        path.write_text(json.dumps({"name": "x"}), encoding="utf-8")
        with pytest.raises(PackConfigError, match="Invalid config"):
            load_model(path, PackInfo)

    def test_save_keeps_aliases(self, tmp_path: Path) -> None:
        path = tmp_path / "upload-config.json"
        save_model(path, UploadConfig(projects={"client-base": "abc"}, version_type="beta"))
        raw = json.loads(path.read_text(encoding="utf-8"))
        assert raw["versionType"] == "beta"
        assert load_model(path, UploadConfig).projects == {"client-base": "abc"}

    def test_load_mod_list(self, tmp_path: Path) -> None:
        entry = {"name": "Lithium", "projectId": "gvQqBUqZ", "filename": "l.jar"}
        (tmp_path / "mods-server.json").write_text(
            json.dumps({"mods": [entry]}), encoding="utf-8"
        )
        mods = load_mod_list(tmp_path, "server").mods
        assert mods[0].project_id == "gvQqBUqZ"
        assert not mods[0].manual
