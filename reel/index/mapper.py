"""Global frame index -> (chunk, row) translation."""

from __future__ import annotations

import bisect

from reel.core.exceptions import IndexOutOfRangeError
from reel.core.models import ChunkIndex


class GlobalIndexMapper:
    """Maps flat frame indices onto chunks using cumulative row counts.

    The mapper is a pure function of an immutable ChunkIndex, so it can be
    shared between readers without locking.
    """

    def __init__(self, chunk_index: ChunkIndex):
        self._index = chunk_index
        self._offsets = chunk_index.offsets

    @property
    def total_frames(self) -> int:
        return self._index.total_frames

    def locate(self, global_index: int) -> tuple[int, int]:
        """Find the chunk and local row holding a frame.

        Args:
            global_index: Frame index in ``[0, total_frames)``.

        Returns:
            ``(chunk_id, local_row)``.

        Raises:
            IndexOutOfRangeError: If the index is negative or past the end.
        """
        total = self._index.total_frames
        if global_index < 0 or global_index >= total:
            raise IndexOutOfRangeError(global_index, total)

        # Empty chunks share an offset with their successor; bisect_right
        # skips past them to the chunk that actually holds the row.
        chunk_id = bisect.bisect_right(self._offsets, global_index) - 1
        return chunk_id, global_index - self._offsets[chunk_id]

    def global_index(self, chunk_id: int, local_row: int) -> int:
        """Inverse of ``locate``."""
        if chunk_id < 0 or chunk_id >= len(self._index):
            raise IndexError(f"Chunk {chunk_id} out of range")
        if local_row < 0 or local_row >= self._index.row_counts[chunk_id]:
            raise IndexError(f"Row {local_row} out of range for chunk {chunk_id}")
        return self._offsets[chunk_id] + local_row
