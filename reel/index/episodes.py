"""Episode boundary detection across chunks."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import numpy as np

from reel.core.models import EpisodeBoundaries
from reel.store.chunk_store import ChunkStore

if TYPE_CHECKING:
    from numpy.typing import NDArray

logger = logging.getLogger(__name__)


def _changes(ids: NDArray[Any], nulls: NDArray[np.bool_]) -> NDArray[np.bool_]:
    """Mark rows whose id differs from the row before; null equals null."""
    both_null = nulls[1:] & nulls[:-1]
    differs = (ids[1:] != ids[:-1]) | (nulls[1:] != nulls[:-1])
    return differs & ~both_null


def detect_episode_boundaries(store: ChunkStore, episode_key: str = "episode_index") -> EpisodeBoundaries:
    """Scan the episode-id column of every chunk in load order.

    A boundary is recorded wherever a row's id differs from the row right
    before it, including the last row of the previous chunk. Frame 0 is
    always a boundary. A chunk without the id column starts a new episode.
    Consecutive null ids count as the same episode.

    Args:
        store: Loaded chunk store.
        episode_key: Name of the episode-id column.

    Returns:
        EpisodeBoundaries covering every frame of the store.
    """
    starts: list[int] = []
    # (id, is_null) of the last row seen, None when there is no usable row
    previous: tuple[Any, bool] | None = None
    offsets = store.index.offsets

    for chunk_id in range(len(store)):
        chunk_rows = store.index.row_counts[chunk_id]
        if chunk_rows == 0:
            continue

        offset = offsets[chunk_id]
        ids = store.episode_ids(chunk_id, episode_key)

        if ids is None:
            logger.warning(
                "Chunk %s has no '%s' column; treating it as one episode",
                store.chunk(chunk_id).path,
                episode_key,
            )
            starts.append(offset)
            previous = None
            continue

        nulls = store.null_mask(chunk_id, episode_key)
        if nulls.any():
            logger.warning(
                "Chunk %s has %d null '%s' values",
                store.chunk(chunk_id).path,
                int(nulls.sum()),
                episode_key,
            )

        first_null = bool(nulls[0])
        if previous is None:
            starts.append(offset)
        else:
            previous_id, previous_null = previous
            if previous_null != first_null or (not first_null and ids[0] != previous_id):
                starts.append(offset)

        changes = np.flatnonzero(_changes(ids, nulls)) + 1
        starts.extend(int(offset + c) for c in changes)
        previous = (ids[-1], bool(nulls[-1]))

    return EpisodeBoundaries(starts=tuple(sorted(set(starts))), total_frames=store.total_frames)
