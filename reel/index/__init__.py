"""Frame indexing for Reel: global index mapping and episode boundaries."""

from reel.index.episodes import detect_episode_boundaries
from reel.index.mapper import GlobalIndexMapper

__all__ = ["GlobalIndexMapper", "detect_episode_boundaries"]
