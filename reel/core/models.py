"""Core domain models for Reel.

This module defines the in-memory representations shared by the chunk
store, the index, the video synchronizer and the dataset facade.
"""

from __future__ import annotations

import bisect
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any

import numpy as np

if TYPE_CHECKING:
    import pyarrow as pa
    from numpy.typing import NDArray

# Lower bound applied to every standard deviation
EPSILON = 1e-6


class FileKind(Enum):
    """Kinds of files found during dataset discovery."""

    CHUNK = "chunk"
    VIDEO = "video"


@dataclass(frozen=True)
class DiscoveredFile:
    """A single file found under a dataset root.

    Attributes:
        path: Absolute path to the file.
        kind: Chunk or video.
        key: Path relative to ``data/`` (chunks) or ``videos/<camera>/``
            (videos) without suffix, in POSIX form, e.g. ``chunk-000/file-000``.
        camera: Camera directory name for videos, None for chunks.
    """

    path: Path
    kind: FileKind
    key: str
    camera: str | None = None


# ============================================================
# Chunks
# ============================================================


@dataclass(frozen=True, eq=False)
class Chunk:
    """One loaded parquet file covering a contiguous range of frames.

    Attributes:
        table: The whole file as an Arrow table.
        path: Source file.
        key: Discovery key shared with the chunk's video files.
        video_paths: Camera name -> video file recorded alongside this chunk.
    """

    table: pa.Table
    path: Path
    key: str
    video_paths: dict[str, Path] = field(default_factory=dict)

    @property
    def row_count(self) -> int:
        return self.table.num_rows


class ChunkIndex:
    """Ordered chunks with their row counts and cumulative offsets.

    ``offsets[i]`` is the global index of the first row of chunk ``i``;
    ``offsets[-1]`` equals the total frame count.
    """

    def __init__(self, chunks: list[Chunk]):
        self._chunks = tuple(chunks)
        self._row_counts = tuple(c.row_count for c in self._chunks)
        offsets = [0]
        for count in self._row_counts:
            offsets.append(offsets[-1] + count)
        self._offsets = tuple(offsets)

    @property
    def chunks(self) -> tuple[Chunk, ...]:
        return self._chunks

    @property
    def row_counts(self) -> tuple[int, ...]:
        return self._row_counts

    @property
    def offsets(self) -> tuple[int, ...]:
        return self._offsets

    @property
    def total_frames(self) -> int:
        return self._offsets[-1]

    def __len__(self) -> int:
        return len(self._chunks)

    def __getitem__(self, chunk_id: int) -> Chunk:
        return self._chunks[chunk_id]


@dataclass(frozen=True)
class EpisodeBoundaries:
    """Sorted global indices where episodes begin.

    Attributes:
        starts: Strictly increasing start indices, first element 0.
        total_frames: Number of frames covered by the boundaries.
    """

    starts: tuple[int, ...]
    total_frames: int

    def __post_init__(self) -> None:
        if self.total_frames > 0 and (not self.starts or self.starts[0] != 0):
            raise ValueError("First episode must start at frame 0")
        if any(b <= a for a, b in zip(self.starts, self.starts[1:])):
            raise ValueError("Episode starts must be strictly increasing")

    def __len__(self) -> int:
        return len(self.starts)

    def __iter__(self):
        return iter(self.starts)

    def episode_of(self, index: int) -> int:
        """Return the episode number containing a global frame index."""
        if index < 0 or index >= self.total_frames:
            raise IndexError(f"Frame index {index} out of range")
        return bisect.bisect_right(self.starts, index) - 1

    def episode_range(self, episode: int) -> tuple[int, int]:
        """Return ``(start, stop)`` global indices for an episode."""
        if episode < 0 or episode >= len(self.starts):
            raise IndexError(f"Episode {episode} out of range")
        start = self.starts[episode]
        if episode + 1 < len(self.starts):
            return start, self.starts[episode + 1]
        return start, self.total_frames


# ============================================================
# Column access
# ============================================================


class ColumnKind(Enum):
    """Shape class of a value read from a chunk column."""

    VECTOR = "vector"
    SCALAR = "scalar"
    ABSENT = "absent"


@dataclass(frozen=True)
class ColumnValue:
    """Tagged result of reading one cell.

    ``ABSENT`` covers a missing column, a row outside the chunk and a
    null cell; ``value`` is None only in that case.
    """

    kind: ColumnKind
    value: NDArray[Any] | None = None

    @classmethod
    def absent(cls) -> ColumnValue:
        return cls(ColumnKind.ABSENT)

    @property
    def is_absent(self) -> bool:
        return self.kind is ColumnKind.ABSENT

    def as_vector(self, dim: int) -> NDArray[np.float32]:
        """Return the value as a float32 vector, zero-filled when absent."""
        if self.value is None:
            return np.zeros(dim, dtype=np.float32)
        return np.atleast_1d(self.value).astype(np.float32, copy=False)


# ============================================================
# Metadata
# ============================================================


@dataclass
class DatasetMetadata:
    """Recognized keys of ``meta/info.json``.

    Attributes:
        fps: Frames per second for every video in the dataset.
        robot_type: Optional robot identifier.
        codebase_version: Format version string, if recorded.
        total_frames: Frame count claimed by the metadata.
        total_episodes: Episode count claimed by the metadata.
        extra: All other keys, untouched.
    """

    fps: float = 30.0
    robot_type: str | None = None
    codebase_version: str | None = None
    total_frames: int | None = None
    total_episodes: int | None = None
    extra: dict[str, Any] = field(default_factory=dict)


# ============================================================
# Normalization
# ============================================================


@dataclass(frozen=True, eq=False)
class NormalizationStats:
    """Per-feature mean/std vectors for state and action columns.

    Standard deviations are floored to ``EPSILON`` on construction.
    """

    state_mean: NDArray[np.float32]
    state_std: NDArray[np.float32]
    action_mean: NDArray[np.float32]
    action_std: NDArray[np.float32]

    REQUIRED_KEYS = ("state_mean", "state_std", "action_mean", "action_std")

    def __post_init__(self) -> None:
        for name in self.REQUIRED_KEYS:
            arr = np.array(getattr(self, name), dtype=np.float32).reshape(-1)
            if name.endswith("_std"):
                arr = np.maximum(arr, np.float32(EPSILON))
            arr.setflags(write=False)
            object.__setattr__(self, name, arr)

        if len(self.state_mean) != len(self.state_std):
            raise ValueError("state_mean and state_std lengths differ")
        if len(self.action_mean) != len(self.action_std):
            raise ValueError("action_mean and action_std lengths differ")

    @property
    def state_dim(self) -> int:
        return len(self.state_mean)

    @property
    def action_dim(self) -> int:
        return len(self.action_mean)

    def normalize_state(self, state: NDArray[Any], eps: float = 1e-5) -> NDArray[np.float32]:
        return ((state - self.state_mean) / (self.state_std + eps)).astype(np.float32)

    def normalize_action(self, action: NDArray[Any], eps: float = 1e-5) -> NDArray[np.float32]:
        return ((action - self.action_mean) / (self.action_std + eps)).astype(np.float32)

    def unnormalize_action(self, action: NDArray[Any], eps: float = 1e-5) -> NDArray[np.float32]:
        """Map a normalized action (e.g. a policy output) back to raw units."""
        return (action * (self.action_std + eps) + self.action_mean).astype(np.float32)

    def to_dict(self) -> dict[str, list[float]]:
        return {name: [float(v) for v in getattr(self, name)] for name in self.REQUIRED_KEYS}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> NormalizationStats:
        """Build stats from a mapping holding the four required vectors.

        Raises:
            KeyError: If a required key is missing.
            ValueError: If a vector is not numeric or lengths disagree.
        """
        return cls(**{name: np.asarray(data[name], dtype=np.float32) for name in cls.REQUIRED_KEYS})


# ============================================================
# Sample - unit returned by the dataset
# ============================================================


@dataclass
class Sample:
    """One frame of a dataset with its synchronized imagery.

    State and action are raw (not normalized).

    Attributes:
        index: Global frame index.
        timestamp: Frame timestamp in seconds.
        state: Raw state vector.
        action: Raw action vector.
        images: Time offset (seconds) -> decoded HxWx3 uint8 RGB image.
            Sparse: offsets whose target time is negative or whose frame
            could not be decoded are missing.
        episode_index: Episode number containing this frame.
    """

    index: int
    timestamp: float
    state: NDArray[np.float32]
    action: NDArray[np.float32]
    images: dict[float, NDArray[np.uint8]] = field(default_factory=dict)
    episode_index: int | None = None

    def image_or_placeholder(
        self,
        offset: float,
        shape: tuple[int, int, int] = (96, 96, 3),
        fill: int = 128,
    ) -> NDArray[np.uint8]:
        """Return the image at ``offset`` or a uniform placeholder."""
        image = self.images.get(offset)
        if image is not None:
            return image
        return np.full(shape, fill, dtype=np.uint8)
