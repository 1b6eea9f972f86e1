"""Custom exceptions for Reel.

All Reel-specific exceptions inherit from ReelError, allowing users
to catch all Reel errors with a single except clause if desired.
"""

from __future__ import annotations

from pathlib import Path


class ReelError(Exception):
    """Base exception for all Reel errors."""

    pass


class DatasetConfigError(ReelError):
    """Raised when a dataset cannot be constructed from its root or config.

    Attributes:
        path: Dataset root (if known).
        reason: Specific reason for failure.
    """

    def __init__(self, reason: str, path: Path | str | None = None):
        self.path = Path(path) if path is not None else None
        self.reason = reason

        if self.path is not None:
            super().__init__(f"Invalid dataset at '{self.path}': {reason}")
        else:
            super().__init__(f"Invalid dataset configuration: {reason}")


class MalformedChunkError(ReelError):
    """Raised when a discovered chunk file cannot be parsed.

    Attributes:
        path: Path to the chunk file.
        reason: Underlying parse error.
    """

    def __init__(self, path: Path | str, reason: str):
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"Failed to load chunk '{self.path}': {reason}")


class MissingColumnError(ReelError):
    """Raised in strict mode when a row has no value for a required column.

    Attributes:
        column: Column name.
        index: Global frame index that was being read.
    """

    def __init__(self, column: str, index: int):
        self.column = column
        self.index = index
        super().__init__(f"Column '{column}' has no value at frame {index}")


class IndexOutOfRangeError(ReelError, IndexError):
    """Raised when a frame index falls outside the dataset.

    Attributes:
        index: The requested index.
        size: Total number of frames.
    """

    def __init__(self, index: int, size: int):
        self.index = index
        self.size = size
        super().__init__(f"Frame index {index} out of range for dataset of {size} frames")


class NormalizationError(ReelError):
    """Raised when normalization statistics cannot be computed.

    Attributes:
        reason: Specific reason for failure.
    """

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Cannot compute normalization stats: {reason}")


class CacheCorruptError(ReelError):
    """Raised when a normalization cache exists but cannot be trusted.

    Attributes:
        path: Path to the cache file.
        reason: What failed validation.
    """

    def __init__(self, path: Path | str, reason: str):
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"Corrupt normalization cache '{self.path}': {reason}")


class MissingDependencyError(ReelError):
    """Raised when an optional dependency is not installed.

    Attributes:
        dependency: Name of the missing dependency.
        feature: Feature that requires the dependency.
        install_hint: pip install command hint.
    """

    def __init__(
        self,
        dependency: str,
        feature: str,
        install_hint: str | None = None,
    ):
        self.dependency = dependency
        self.feature = feature
        self.install_hint = install_hint or f"pip install {dependency}"

        super().__init__(
            f"Missing dependency '{dependency}' for {feature}. Install with: {self.install_hint}"
        )
