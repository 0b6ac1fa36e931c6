"""Configuration constants.

Values here are layout and protocol facts, not user settings.
For configurable values, see models.py.
"""

import sys

TREE_SITTER_DIRNAME = "tree-sitter"
"""Directory under the storage root that holds every grammar package."""

CONFIG_FILENAME = "config.json"
"""Process-wide configuration document inside the tree-sitter directory."""

PACKAGE_CONFIG_FILENAME = "tree-sitter.json"
"""Required per-package configuration document."""

QUERIES_DIRNAME = "queries"

if sys.platform.startswith("win"):
    MODULE_EXTENSION = ".dll"
elif sys.platform == "darwin":
    MODULE_EXTENSION = ".dylib"
else:
    MODULE_EXTENSION = ".so"
"""Suffix of compiled grammar modules: native shared libraries for this platform."""

LIBRARY_CACHE_DIRNAME = "lib-cache"
"""Directory under the storage root where modules are materialized for dlopen."""

LANGUAGE_SYMBOL_PREFIX = "tree_sitter_"
"""Exported factory symbol of a grammar library: tree_sitter_<name>."""

MODULE_PREFIX = "tree-sitter-"
"""Prefix stripped from module filenames to derive a language name."""

DEFAULT_REGISTRY_URL = "https://unpkg.com/"

DEFAULT_DOWNLOAD_TIMEOUT_SEC = 30.0

DEFAULT_WANTED_PATTERNS: tuple[str, ...] = (
    PACKAGE_CONFIG_FILENAME,
    "*" + MODULE_EXTENSION,
    QUERIES_DIRNAME + "/",
)
