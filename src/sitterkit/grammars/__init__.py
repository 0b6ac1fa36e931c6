"""Grammar packages: registry, installer, store and language handles."""

from sitterkit.grammars.engine import GrammarEngine, TreeSitterEngine
from sitterkit.grammars.installer import Installer, WantedItem, default_wanted_items
from sitterkit.grammars.language import (
    ContainerModules,
    ExtensionModule,
    LanguageHandle,
    name_from_filename,
)
from sitterkit.grammars.patterns import matches
from sitterkit.grammars.registry import Manifest, ManifestEntry, RegistryClient
from sitterkit.grammars.store import GrammarStore

__all__ = [
    "ContainerModules",
    "ExtensionModule",
    "GrammarEngine",
    "GrammarStore",
    "Installer",
    "LanguageHandle",
    "Manifest",
    "ManifestEntry",
    "RegistryClient",
    "TreeSitterEngine",
    "WantedItem",
    "default_wanted_items",
    "matches",
    "name_from_filename",
]
