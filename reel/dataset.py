"""Episode dataset facade.

Composes the chunk store, index mapper, episode boundaries, normalization
engine and video sampler behind a single ``get(index) -> Sample``.

Example:
    >>> from reel import EpisodeDataset
    >>> with EpisodeDataset(
    ...     "data/pusht",
    ...     delta_timestamps={"observation.image": [-0.1, 0.0]},
    ... ) as ds:
    ...     sample = ds[100]
    ...     stats = ds.normalization_stats()
    ...     state = stats.normalize_state(sample.state)
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

import numpy as np

from reel.config.models import DatasetConfig
from reel.core.exceptions import IndexOutOfRangeError, MissingColumnError
from reel.core.models import (
    ColumnValue,
    DatasetMetadata,
    EpisodeBoundaries,
    NormalizationStats,
    Sample,
)
from reel.hub.download import resolve_path
from reel.index.episodes import detect_episode_boundaries
from reel.index.mapper import GlobalIndexMapper
from reel.stats.normalization import NormalizationEngine
from reel.store.chunk_store import ChunkStore
from reel.store.metadata import load_metadata
from reel.video.decoder import VideoFrameSynchronizer
from reel.video.sampler import DeltaTimestampSampler

logger = logging.getLogger(__name__)


class EpisodeDataset:
    """Indexed, synchronized access to a chunked episode dataset.

    Samples are returned raw; normalize them with ``normalization_stats()``.
    Sized and indexable, so it can be handed to any loader that expects
    ``__len__``/``__getitem__``.
    """

    def __init__(
        self,
        root: str | Path,
        delta_timestamps: Mapping[str, Sequence[float]] | None = None,
        state_key: str = "observation.state",
        action_key: str = "action",
        image_loading: bool = True,
        *,
        config: DatasetConfig | None = None,
    ):
        """Load a dataset.

        Args:
            root: Dataset root directory or Hugging Face dataset URL.
            delta_timestamps: Modality -> time offsets (seconds) to sample
                images at. Empty disables image sampling.
            state_key: State feature column.
            action_key: Action feature column.
            image_loading: Whether ``get`` decodes video frames.
            config: Full configuration; overrides the other arguments.

        Raises:
            DatasetConfigError: Root, data directory or metadata unusable.
            MalformedChunkError: A chunk file cannot be parsed.
            NormalizationError: Stats cannot be computed.
        """
        if config is None:
            config = DatasetConfig(
                root=root,
                delta_timestamps={k: list(v) for k, v in (delta_timestamps or {}).items()},
                state_key=state_key,
                action_key=action_key,
                image_loading=image_loading,
            )
        self.config = config
        self._image_loading = config.image_loading
        self._warned_columns: set[str] = set()
        self._synchronizer: VideoFrameSynchronizer | None = None

        try:
            self._load(config)
        except BaseException:
            self.close()
            raise

    @classmethod
    def from_config(cls, config: DatasetConfig) -> EpisodeDataset:
        return cls(config.root, config=config)

    def _load(self, config: DatasetConfig) -> None:
        self.root = resolve_path(config.root)
        self.metadata: DatasetMetadata = load_metadata(self.root)
        self.fps = config.fps if config.fps is not None else self.metadata.fps

        self._store = ChunkStore(self.root)
        self._mapper = GlobalIndexMapper(self._store.index)
        self._boundaries = detect_episode_boundaries(self._store, config.episode_key)
        self._check_metadata_counts()

        self._stats_engine = NormalizationEngine(
            self._store,
            state_key=config.state_key,
            action_key=config.action_key,
            cache_path=config.stats_cache_path,
        )
        self._stats = self._stats_engine.compute_or_load()

        self._synchronizer = VideoFrameSynchronizer(self.fps)
        self._sampler = DeltaTimestampSampler(
            self._synchronizer,
            config.delta_timestamps,
            fallback_path=self._store.first_video_path,
        )
        if config.preopen_videos:
            self._synchronizer.preopen(v.path for v in self._store.video_files)

        logger.info(
            "Dataset %s: %d frames, %d episodes, fps %.2f",
            self.root,
            self.size(),
            self.episode_count(),
            self.fps,
        )

    def _check_metadata_counts(self) -> None:
        claimed = self.metadata.total_frames
        if claimed is not None and claimed != self._store.total_frames:
            logger.warning(
                "meta/info.json claims %s frames but %d were loaded",
                claimed,
                self._store.total_frames,
            )
        claimed = self.metadata.total_episodes
        if claimed is not None and claimed != len(self._boundaries):
            logger.warning(
                "meta/info.json claims %s episodes but %d were detected",
                claimed,
                len(self._boundaries),
            )

    # ------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------

    def close(self) -> None:
        """Release every video handle. Safe to call more than once."""
        if self._synchronizer is not None:
            self._synchronizer.close()

    def __enter__(self) -> EpisodeDataset:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def __del__(self) -> None:
        if getattr(self, "_synchronizer", None) is not None:
            self._synchronizer.close()

    # ------------------------------------------------------------
    # Sizes and structure
    # ------------------------------------------------------------

    def size(self) -> int:
        return self._store.total_frames

    def __len__(self) -> int:
        return self.size()

    def episode_count(self) -> int:
        return len(self._boundaries)

    def episode_boundaries(self) -> list[int]:
        """Global index of the first frame of each episode."""
        return list(self._boundaries.starts)

    @property
    def boundaries(self) -> EpisodeBoundaries:
        return self._boundaries

    def normalization_stats(self) -> NormalizationStats:
        return self._stats

    @property
    def stats_from_cache(self) -> bool:
        """True if normalization stats were read from the cache."""
        return self._stats_engine.loaded_from_cache

    @property
    def cameras(self) -> list[str]:
        return self._store.cameras

    @property
    def video_synchronizer(self) -> VideoFrameSynchronizer:
        return self._synchronizer

    def column_names(self) -> list[str]:
        return self._store.column_names()

    def locate(self, index: int) -> tuple[int, int]:
        return self._mapper.locate(index)

    @property
    def image_loading(self) -> bool:
        return self._image_loading

    def set_image_loading(self, enabled: bool) -> None:
        self._image_loading = bool(enabled)

    # ------------------------------------------------------------
    # Access
    # ------------------------------------------------------------

    def __getitem__(self, index: int) -> Sample:
        return self.get(index)

    def get(self, index: int) -> Sample:
        """Return the raw sample at a global frame index.

        Raises:
            IndexOutOfRangeError: If ``index`` is outside ``[0, size())``.
            MissingColumnError: In strict mode, if state, action or
                timestamp has no value for this row.
        """
        if isinstance(index, (bool, np.bool_)) or not isinstance(index, (int, np.integer)):
            raise TypeError(f"Frame index must be an integer, got {type(index).__name__}")
        index = int(index)
        if index < 0 or index >= self.size():
            raise IndexOutOfRangeError(index, self.size())

        chunk_id, row = self._mapper.locate(index)
        cfg = self.config

        state = self._read(chunk_id, row, cfg.state_key, index).as_vector(self._stats.state_dim)
        action = self._read(chunk_id, row, cfg.action_key, index).as_vector(self._stats.action_dim)

        ts_value = self._read(chunk_id, row, cfg.timestamp_key, index)
        timestamp = 0.0 if ts_value.value is None else float(np.ravel(ts_value.value)[0])

        images: dict[float, Any] = {}
        if self._image_loading:
            images = self._sampler.sample(timestamp, self._store.chunk(chunk_id))

        return Sample(
            index=index,
            timestamp=timestamp,
            state=state,
            action=action,
            images=images,
            episode_index=self._boundaries.episode_of(index),
        )

    def _read(self, chunk_id: int, row: int, column: str, index: int) -> ColumnValue:
        value = self._store.read_column(chunk_id, row, column)
        if not value.is_absent:
            return value

        if self.config.strict_columns:
            raise MissingColumnError(column, index)

        if column not in self._warned_columns:
            self._warned_columns.add(column)
            logger.warning("No value for '%s' at frame %d; substituting zeros", column, index)
        else:
            logger.debug("No value for '%s' at frame %d; substituting zeros", column, index)
        return value
