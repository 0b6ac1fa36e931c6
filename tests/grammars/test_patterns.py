"""Tests for wanted-file pattern matching."""

import pytest

from sitterkit.core.errors import ErrorCode, InstallError
from sitterkit.grammars.patterns import is_directory_pattern, matches


class TestMatches:
    @pytest.mark.parametrize(
        ("path", "pattern", "expected"),
        [
            # Directory prefix, any depth
            ("queries/highlights.scm", "queries/", True),
            ("queries/nested/locals.scm", "queries/", True),
            ("queries.scm", "queries/", False),
            ("src/queries/highlights.scm", "queries/", False),
            # Single-segment glob
            ("b.wasm", "*.wasm", True),
            ("tree-sitter-json.wasm", "*.wasm", True),
            ("a/b.wasm", "*.wasm", False),
            ("b.wasm.map", "*.wasm", False),
            ("bindings/node.wasm", "bindings/*.wasm", True),
            # Exact
            ("tree-sitter.json", "tree-sitter.json", True),
            ("tree-sitter.json2", "tree-sitter.json", False),
            ("sub/tree-sitter.json", "tree-sitter.json", False),
        ],
    )
    def test_truth_table(self, path: str, pattern: str, expected: bool) -> None:
        assert matches(path, pattern) is expected

    def test_glob_is_case_sensitive(self) -> None:
        assert matches("GRAMMAR.WASM", "*.wasm") is False

    @pytest.mark.parametrize("pattern", ["", "/", "/abs.json", "queries/**", "**/*.scm", "q*/"])
    def test_malformed_patterns_raise(self, pattern: str) -> None:
        with pytest.raises(InstallError) as exc_info:
            matches("queries/highlights.scm", pattern)

        assert exc_info.value.code == ErrorCode.PATTERN_MALFORMED


def test_is_directory_pattern() -> None:
    assert is_directory_pattern("queries/")
    assert not is_directory_pattern("*.wasm")
