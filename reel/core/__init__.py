"""Core domain models and exceptions for Reel."""

from reel.core.exceptions import (
    CacheCorruptError,
    DatasetConfigError,
    IndexOutOfRangeError,
    MalformedChunkError,
    MissingColumnError,
    MissingDependencyError,
    NormalizationError,
    ReelError,
)
from reel.core.models import (
    EPSILON,
    Chunk,
    ChunkIndex,
    ColumnKind,
    ColumnValue,
    DatasetMetadata,
    DiscoveredFile,
    EpisodeBoundaries,
    FileKind,
    NormalizationStats,
    Sample,
)

__all__ = [
    # Models
    "EPSILON",
    "Chunk",
    "ChunkIndex",
    "ColumnKind",
    "ColumnValue",
    "DatasetMetadata",
    "DiscoveredFile",
    "EpisodeBoundaries",
    "FileKind",
    "NormalizationStats",
    "Sample",
    # Exceptions
    "CacheCorruptError",
    "DatasetConfigError",
    "IndexOutOfRangeError",
    "MalformedChunkError",
    "MissingColumnError",
    "MissingDependencyError",
    "NormalizationError",
    "ReelError",
]
