"""Chunk store: loads every parquet chunk of a dataset into memory.

Chunks are read once with PyArrow at construction and never mutated. The
store also remembers which video files were recorded alongside each chunk
(matching discovery keys), so that samplers can resolve a camera path per
chunk.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

import numpy as np

from reel.core.exceptions import (
    DatasetConfigError,
    MalformedChunkError,
    MissingDependencyError,
)
from reel.core.models import (
    Chunk,
    ChunkIndex,
    ColumnKind,
    ColumnValue,
    DiscoveredFile,
    FileKind,
)
from reel.store.discovery import discover

if TYPE_CHECKING:
    from numpy.typing import NDArray

logger = logging.getLogger(__name__)


def _check_pyarrow() -> None:
    """Check if PyArrow is available."""
    try:
        import pyarrow  # noqa: F401
    except ImportError:
        raise MissingDependencyError(
            dependency="pyarrow",
            feature="parquet chunk loading",
            install_hint="pip install reel-robotics",
        )


class ChunkStore:
    """Discovers and loads the tabular chunks of a dataset.

    Example:
        >>> store = ChunkStore("data/pusht")
        >>> store.total_frames
        25650
        >>> store.read_column(0, 10, "observation.state").value
        array([222., 97.], dtype=float32)
    """

    def __init__(self, root: str | Path):
        """Discover and load all chunks under ``root/data``.

        Args:
            root: Dataset root directory.

        Raises:
            DatasetConfigError: If the root or its data directory is missing,
                or no chunk files exist.
            MalformedChunkError: If any chunk cannot be parsed.
        """
        _check_pyarrow()

        self._root = Path(root)
        if not self._root.is_dir():
            raise DatasetConfigError("dataset root does not exist", self._root)
        if not (self._root / "data").is_dir():
            raise DatasetConfigError("missing data/ directory", self._root)

        files = discover(self._root)
        chunk_files = [f for f in files if f.kind is FileKind.CHUNK]
        self._video_files = [f for f in files if f.kind is FileKind.VIDEO]

        if not chunk_files:
            raise DatasetConfigError("no chunk files found under data/", self._root)

        videos_by_key: dict[str, dict[str, Path]] = {}
        for video in self._video_files:
            videos_by_key.setdefault(video.key, {})[video.camera] = video.path

        chunks = [self._load_chunk(f, videos_by_key.get(f.key, {})) for f in chunk_files]
        self._index = ChunkIndex(chunks)

        logger.info(
            "Loaded %d chunks (%d frames) and %d video files from %s",
            len(self._index),
            self._index.total_frames,
            len(self._video_files),
            self._root,
        )

    def _load_chunk(self, entry: DiscoveredFile, video_paths: dict[str, Path]) -> Chunk:
        """Read one parquet file into a Chunk."""
        import pyarrow as pa
        import pyarrow.parquet as pq

        try:
            table = pq.read_table(entry.path)
        except (pa.ArrowException, OSError, ValueError) as e:
            raise MalformedChunkError(entry.path, str(e))

        return Chunk(table=table, path=entry.path, key=entry.key, video_paths=dict(video_paths))

    # ------------------------------------------------------------
    # Layout
    # ------------------------------------------------------------

    @property
    def root(self) -> Path:
        return self._root

    @property
    def index(self) -> ChunkIndex:
        return self._index

    @property
    def total_frames(self) -> int:
        return self._index.total_frames

    @property
    def video_files(self) -> list[DiscoveredFile]:
        return list(self._video_files)

    @property
    def cameras(self) -> list[str]:
        """Camera names in discovery order."""
        return list(dict.fromkeys(v.camera for v in self._video_files if v.camera))

    @property
    def first_video_path(self) -> Path | None:
        """First video discovered at load time, used as a fallback source."""
        return self._video_files[0].path if self._video_files else None

    def __len__(self) -> int:
        return len(self._index)

    def chunk(self, chunk_id: int) -> Chunk:
        return self._index[chunk_id]

    def column_names(self) -> list[str]:
        """Union of column names across chunks, in first-seen order."""
        names: dict[str, None] = {}
        for chunk in self._index.chunks:
            for name in chunk.table.column_names:
                names.setdefault(name, None)
        return list(names)

    # ------------------------------------------------------------
    # Column access
    # ------------------------------------------------------------

    def has_column(self, chunk_id: int, name: str) -> bool:
        return name in self._index[chunk_id].table.column_names

    def read_column(self, chunk_id: int, row: int, name: str) -> ColumnValue:
        """Read one cell as a tagged value.

        A missing column, a row outside the chunk, a null cell and a
        non-numeric value all come back as ``ColumnKind.ABSENT``.

        Args:
            chunk_id: Chunk position in load order.
            row: Row within the chunk.
            name: Column name.

        Returns:
            ColumnValue holding a float32 vector, a float64 scalar, or nothing.
        """
        table = self._index[chunk_id].table
        if name not in table.column_names or row < 0 or row >= table.num_rows:
            return ColumnValue.absent()

        cell = table.column(name)[row]
        if not cell.is_valid:
            return ColumnValue.absent()

        return _to_column_value(cell.as_py())

    def column_array(self, chunk_id: int, name: str) -> NDArray[Any] | None:
        """Return a whole column of one chunk as a numpy array, or None."""
        table = self._index[chunk_id].table
        if name not in table.column_names:
            return None
        return table.column(name).to_numpy()

    def episode_ids(self, chunk_id: int, episode_key: str = "episode_index") -> NDArray[Any] | None:
        """Episode-id column of one chunk, or None if the chunk lacks it.

        Null ids come back as NaN (numeric columns) or None; use
        ``null_mask`` to tell them apart from real values.
        """
        return self.column_array(chunk_id, episode_key)

    def null_mask(self, chunk_id: int, name: str) -> NDArray[np.bool_] | None:
        """Boolean mask of null cells in a column, or None if it is missing."""
        import pyarrow.compute as pc

        table = self._index[chunk_id].table
        if name not in table.column_names:
            return None
        return pc.is_null(table.column(name)).to_numpy(zero_copy_only=False).astype(bool)

    def video_paths_for(self, camera: str) -> list[Path]:
        """Video files of one camera, in key order."""
        return [v.path for v in self._video_files if v.camera == camera]


def _to_column_value(value: Any) -> ColumnValue:
    if isinstance(value, (list, tuple)):
        try:
            return ColumnValue(ColumnKind.VECTOR, np.array(value, dtype=np.float32))
        except (TypeError, ValueError):
            return ColumnValue.absent()
    if isinstance(value, (bool, int, float, np.number)):
        return ColumnValue(ColumnKind.SCALAR, np.float64(value))
    return ColumnValue.absent()
