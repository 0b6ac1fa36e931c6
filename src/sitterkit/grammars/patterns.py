"""Wanted-file pattern matching against registry manifest paths.

Three pattern forms are supported:

- ``queries/``          directory prefix, matches every file below it at any depth
- ``*.so``              glob within a single path segment (``*`` never crosses ``/``)
- ``tree-sitter.json``  exact relative path
"""

from __future__ import annotations

from fnmatch import fnmatchcase

from sitterkit.core.errors import InstallError

SEPARATOR = "/"


def is_directory_pattern(pattern: str) -> bool:
    return pattern.endswith(SEPARATOR)


def is_glob_pattern(pattern: str) -> bool:
    return "*" in pattern or "?" in pattern or "[" in pattern


def validate_pattern(pattern: str) -> None:
    """Raise InstallError if *pattern* is not one of the supported forms."""
    if not pattern or pattern == SEPARATOR:
        raise InstallError.malformed_pattern(pattern, "pattern is empty")
    if pattern.startswith(SEPARATOR):
        raise InstallError.malformed_pattern(pattern, "pattern must be relative")
    if "**" in pattern:
        raise InstallError.malformed_pattern(pattern, "recursive globs are not supported")
    if is_directory_pattern(pattern) and is_glob_pattern(pattern):
        raise InstallError.malformed_pattern(pattern, "directory patterns cannot contain globs")


def matches(relative_path: str, pattern: str) -> bool:
    """Return True if *relative_path* is selected by *pattern*."""
    validate_pattern(pattern)

    if is_directory_pattern(pattern):
        return relative_path.startswith(pattern)

    if is_glob_pattern(pattern):
        path_parts = relative_path.split(SEPARATOR)
        pattern_parts = pattern.split(SEPARATOR)
        if len(path_parts) != len(pattern_parts):
            return False
        return all(fnmatchcase(p, pat) for p, pat in zip(path_parts, pattern_parts))

    return relative_path == pattern
