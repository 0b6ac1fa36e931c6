"""sitterkit - install, cache and serve tree-sitter grammars."""

from sitterkit.service import GrammarService, InitState

__version__ = "0.1.0"

__all__ = ["GrammarService", "InitState", "__version__"]
