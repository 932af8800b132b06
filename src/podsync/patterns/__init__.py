"""Template language for paths, file names and identifiers."""

from podsync.patterns.engine import (
    ALL_SOURCES,
    DataSources,
    Pattern,
    SourceType,
    compile_pattern,
)

__all__ = [
    "ALL_SOURCES",
    "DataSources",
    "Pattern",
    "SourceType",
    "compile_pattern",
]
