"""Tests for the on-disk grammar package store."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest

from sitterkit.config.constants import MODULE_EXTENSION
from sitterkit.core.errors import ConfigError, ErrorCode, PackageError
from sitterkit.grammars.store import GrammarStore


class TestPresence:
    def test_available_requires_config_document(
        self, grammar_root: Path, make_package: Any
    ) -> None:
        store = GrammarStore(grammar_root)
        make_package("json", {f"tree-sitter-json{MODULE_EXTENSION}": b"m"}, config={})
        make_package("broken", {f"tree-sitter-broken{MODULE_EXTENSION}": b"m"})

        assert store.is_available("json") is True
        assert store.exists("broken") is True
        assert store.is_available("broken") is False
        assert store.is_available("missing") is False

    def test_list_languages_only_directories(self, grammar_root: Path, make_package: Any) -> None:
        store = GrammarStore(grammar_root)
        make_package("python", {}, config={})
        make_package("json", {}, config={})
        store.ensure_root()

        assert store.list_languages() == ["json", "python"]

    def test_list_languages_without_root(self, tmp_path: Path) -> None:
        assert GrammarStore(tmp_path / "absent").list_languages() == []

    @pytest.mark.parametrize("identifier", ["", "..", "a/b", "a\\b"])
    def test_rejects_path_like_identifiers(self, tmp_path: Path, identifier: str) -> None:
        with pytest.raises(ValueError):
            GrammarStore(tmp_path).package_path(identifier)


class TestMutation:
    def test_ensure_root_creates_config(self, tmp_path: Path) -> None:
        store = GrammarStore(tmp_path / "tree-sitter")

        assert store.ensure_root() is True
        assert store.ensure_root() is False
        assert json.loads(store.config_path.read_text()) == {}

    def test_delete_returns_false_when_absent(self, tmp_path: Path) -> None:
        assert GrammarStore(tmp_path).delete("json") is False

    def test_delete_failure_raises_store_io(self, grammar_root: Path, make_package: Any) -> None:
        store = GrammarStore(grammar_root)
        make_package("json", {}, config={})

        with patch("sitterkit.grammars.store.shutil.rmtree", side_effect=PermissionError("ro")):
            with pytest.raises(PackageError) as exc_info:
                store.delete("json")

        assert exc_info.value.code == ErrorCode.STORE_IO_ERROR
        assert store.exists("json")

    def test_purge_removes_everything(self, grammar_root: Path, make_package: Any) -> None:
        store = GrammarStore(grammar_root)
        make_package("json", {}, config={})

        assert store.purge() is True
        assert not grammar_root.exists()
        assert store.purge() is False


class TestConfigDocument:
    def test_missing_config_is_empty(self, tmp_path: Path) -> None:
        assert GrammarStore(tmp_path).read_config() == {}

    def test_round_trip(self, tmp_path: Path) -> None:
        store = GrammarStore(tmp_path / "tree-sitter")
        store.write_config({"theme": "dark"})

        assert store.read_config() == {"theme": "dark"}

    def test_invalid_json_raises_config_error(self, tmp_path: Path) -> None:
        store = GrammarStore(tmp_path)
        store.config_path.write_text("{nope")

        with pytest.raises(ConfigError):
            store.read_config()


class TestReadPackage:
    @pytest.mark.asyncio
    async def test_missing_package_returns_none(self, grammar_root: Path, fake_engine: Any) -> None:
        assert await GrammarStore(grammar_root).read_package("json", fake_engine) is None

    @pytest.mark.asyncio
    async def test_reads_config_modules_and_queries(
        self, grammar_root: Path, make_package: Any, fake_engine: Any
    ) -> None:
        make_package(
            "typescript",
            {
                f"tree-sitter-typescript{MODULE_EXTENSION}": b"ts",
                f"tree-sitter-tsx{MODULE_EXTENSION}": b"tsx",
            },
            config={"grammars": [{"name": "typescript"}]},
            queries={"highlights.scm": "(identifier) @variable", "locals.scm": ""},
        )
        (grammar_root / "typescript" / "README.md").write_text("ignored")

        handle = await GrammarStore(grammar_root).read_package("typescript", fake_engine)

        assert handle is not None
        assert handle.config == {"grammars": [{"name": "typescript"}]}
        assert handle.module == b"ts"
        assert list(handle.extensions or {}) == ["tsx"]
        assert handle.get_query("highlights") == "(identifier) @variable"
        assert handle.get_query("locals") == ""

    @pytest.mark.asyncio
    async def test_missing_config_raises(
        self, grammar_root: Path, make_package: Any, fake_engine: Any
    ) -> None:
        make_package("json", {f"tree-sitter-json{MODULE_EXTENSION}": b"m"})

        with pytest.raises(PackageError) as exc_info:
            await GrammarStore(grammar_root).read_package("json", fake_engine)

        assert exc_info.value.code == ErrorCode.PACKAGE_CONFIG_MISSING

    @pytest.mark.asyncio
    async def test_query_scan_failure_yields_empty_mapping(
        self, grammar_root: Path, make_package: Any, fake_engine: Any
    ) -> None:
        make_package(
            "json",
            {f"tree-sitter-json{MODULE_EXTENSION}": b"m"},
            config={},
            queries={"highlights.scm": "x"},
        )

        with patch.object(Path, "rglob", side_effect=PermissionError("denied")):
            handle = await GrammarStore(grammar_root).read_package("json", fake_engine)

        assert handle is not None
        assert handle.queries == {}
        assert handle.module == b"m"
