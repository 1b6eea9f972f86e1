"""Normalization statistics for Reel."""

from reel.stats.normalization import (
    NormalizationEngine,
    RunningMoments,
    default_cache_path,
)

__all__ = ["NormalizationEngine", "RunningMoments", "default_cache_path"]
