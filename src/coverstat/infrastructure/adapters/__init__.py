"""Infrastructure adapters for external interfaces."""

from coverstat.infrastructure.adapters.ast_parser import AstStructureParser
from coverstat.infrastructure.adapters.cached_parser import CachedStructureParser

__all__ = [
    "AstStructureParser",
    "CachedStructureParser",
]
