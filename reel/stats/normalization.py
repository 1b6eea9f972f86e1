"""Normalization statistics for state and action columns.

Statistics are computed in one streaming pass over every record batch of
every chunk (running sum and sum of squares per feature) and cached as
JSON so later runs can skip the scan:

    {
      "version": 1,
      "state_mean": [...], "state_std": [...],
      "action_mean": [...], "action_std": [...]
    }

A cache that fails validation is never trusted; it is recomputed and
overwritten.
"""

from __future__ import annotations

import hashlib
import json
import logging
import math
import os
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING, Any

import numpy as np

from reel.core.exceptions import CacheCorruptError, NormalizationError
from reel.core.models import EPSILON, NormalizationStats
from reel.store.chunk_store import ChunkStore

if TYPE_CHECKING:
    from numpy.typing import NDArray

logger = logging.getLogger(__name__)

CACHE_VERSION = 1


def default_cache_path(root: Path, state_key: str, action_key: str) -> Path:
    """Per-dataset cache file in the system temp directory."""
    ident = f"{Path(root).resolve()}|{state_key}|{action_key}"
    digest = hashlib.sha1(ident.encode("utf-8")).hexdigest()[:16]
    return Path(tempfile.gettempdir()) / "reel" / f"norm_stats_{digest}.json"


class RunningMoments:
    """Accumulates per-feature sum and sum of squares."""

    def __init__(self, name: str):
        self.name = name
        self.dim: int | None = None
        self.count = 0
        self._sum: NDArray[np.float64] | None = None
        self._sum_sq: NDArray[np.float64] | None = None

    def update(self, values: NDArray[np.float64]) -> None:
        """Add a ``(rows, dim)`` block of feature vectors."""
        if values.shape[0] == 0:
            return
        if self.dim is None:
            self.dim = values.shape[1]
            self._sum = np.zeros(self.dim, dtype=np.float64)
            self._sum_sq = np.zeros(self.dim, dtype=np.float64)
        elif values.shape[1] != self.dim:
            raise NormalizationError(
                f"column '{self.name}' changes dimensionality from {self.dim} to {values.shape[1]}"
            )

        self._sum += values.sum(axis=0)
        self._sum_sq += np.square(values).sum(axis=0)
        self.count += values.shape[0]

    def finalize(self) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
        """Return ``(mean, std)`` with std floored to EPSILON."""
        if self.count == 0 or self.dim is None:
            raise NormalizationError(f"no valid rows for column '{self.name}'")

        mean = self._sum / self.count
        variance = self._sum_sq / self.count - np.square(mean)
        std = np.sqrt(np.maximum(variance, 0.0))
        return mean, np.maximum(std, EPSILON)


def _to_matrix(array: Any, name: str) -> NDArray[np.float64]:
    """Convert an Arrow array of vectors (or scalars) to a 2-D float array."""
    import pyarrow as pa
    import pyarrow.compute as pc

    arrow_type = array.type
    rows = len(array)

    if pa.types.is_fixed_size_list(arrow_type):
        dim = arrow_type.list_size
    elif pa.types.is_list(arrow_type) or pa.types.is_large_list(arrow_type):
        lengths = pc.list_value_length(array).to_numpy(zero_copy_only=False)
        dim = int(lengths[0]) if rows else 0
        if np.any(lengths != dim):
            raise NormalizationError(f"column '{name}' holds vectors of different lengths")
    elif (
        pa.types.is_integer(arrow_type)
        or pa.types.is_floating(arrow_type)
        or pa.types.is_boolean(arrow_type)
    ):
        # Legacy scalar column: one feature
        values = array.to_numpy(zero_copy_only=False)
        return np.asarray(values, dtype=np.float64).reshape(rows, 1)
    else:
        raise NormalizationError(f"column '{name}' has unsupported type {arrow_type}")

    if dim <= 0:
        raise NormalizationError(f"cannot determine dimensionality of column '{name}'")

    values = array.flatten().to_numpy(zero_copy_only=False)
    return np.asarray(values, dtype=np.float64).reshape(rows, dim)


class NormalizationEngine:
    """Computes or loads cached mean/std vectors for state and action.

    Attributes:
        cache_path: JSON cache location.
        loaded_from_cache: True once ``compute_or_load`` returned cached stats.
    """

    def __init__(
        self,
        store: ChunkStore,
        state_key: str = "observation.state",
        action_key: str = "action",
        cache_path: Path | None = None,
    ):
        self.store = store
        self.state_key = state_key
        self.action_key = action_key
        self.cache_path = Path(cache_path) if cache_path else default_cache_path(
            store.root, state_key, action_key
        )
        self.loaded_from_cache = False

    def compute_or_load(self) -> NormalizationStats:
        """Return cached stats if valid, otherwise recompute and cache them.

        Raises:
            NormalizationError: If the data has no valid rows or no usable
                feature dimensionality.
        """
        try:
            cached = self.load_cache()
            if cached is not None:
                self.check_dimensions(cached)
        except CacheCorruptError as e:
            logger.warning("%s; recomputing", e)
            cached = None

        if cached is not None:
            logger.info("Loaded normalization stats from %s", self.cache_path)
            self.loaded_from_cache = True
            return cached

        logger.info("Recomputing normalization stats over %d frames", self.store.total_frames)
        self.loaded_from_cache = False
        stats = self.compute()
        self.save_cache(stats)
        return stats

    def compute(self) -> NormalizationStats:
        """Scan every chunk and record batch; never touches the cache."""
        state = RunningMoments(self.state_key)
        action = RunningMoments(self.action_key)

        for chunk_id in range(len(self.store)):
            self._accumulate_chunk(chunk_id, state, action)

        state_mean, state_std = state.finalize()
        action_mean, action_std = action.finalize()
        logger.info(
            "Computed normalization stats from %d rows (state dim %d, action dim %d)",
            state.count,
            state.dim,
            action.dim,
        )
        return NormalizationStats(
            state_mean=state_mean,
            state_std=state_std,
            action_mean=action_mean,
            action_std=action_std,
        )

    def _accumulate_chunk(self, chunk_id: int, state: RunningMoments, action: RunningMoments) -> None:
        import pyarrow.compute as pc

        chunk = self.store.chunk(chunk_id)
        missing = [k for k in (self.state_key, self.action_key) if k not in chunk.table.column_names]
        if missing:
            logger.warning("Chunk %s lacks column(s) %s; skipping", chunk.path, ", ".join(missing))
            return

        table = chunk.table.select([self.state_key, self.action_key])
        for batch in table.to_batches():
            state_col = batch.column(0)
            action_col = batch.column(1)

            # Skip rows null in either column
            valid = pc.and_(pc.is_valid(state_col), pc.is_valid(action_col))
            if not pc.any(valid).as_py():
                continue

            state.update(_to_matrix(pc.filter(state_col, valid), self.state_key))
            action.update(_to_matrix(pc.filter(action_col, valid), self.action_key))

    # ------------------------------------------------------------
    # Cache
    # ------------------------------------------------------------

    def load_cache(self) -> NormalizationStats | None:
        """Read and validate the cache.

        Returns:
            Cached stats, or None if no cache file exists.

        Raises:
            CacheCorruptError: If the file exists but is malformed or incomplete.
        """
        if not self.cache_path.exists():
            return None

        try:
            with open(self.cache_path) as f:
                data = json.load(f)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise CacheCorruptError(self.cache_path, f"unreadable JSON ({e})")

        if not isinstance(data, dict):
            raise CacheCorruptError(self.cache_path, "not a JSON object")

        version = data.get("version", CACHE_VERSION)
        if version != CACHE_VERSION:
            raise CacheCorruptError(self.cache_path, f"unsupported version {version!r}")

        for key in NormalizationStats.REQUIRED_KEYS:
            if key not in data:
                raise CacheCorruptError(self.cache_path, f"missing key '{key}'")
            values = data[key]
            if not isinstance(values, list) or not values:
                raise CacheCorruptError(self.cache_path, f"'{key}' is not a non-empty array")
            for v in values:
                if isinstance(v, bool) or not isinstance(v, (int, float)) or not math.isfinite(v):
                    raise CacheCorruptError(self.cache_path, f"'{key}' holds non-numeric value {v!r}")

        try:
            return NormalizationStats.from_dict(data)
        except ValueError as e:
            raise CacheCorruptError(self.cache_path, str(e))

    def check_dimensions(self, stats: NormalizationStats) -> None:
        """Reject stats whose widths differ from the data's feature widths.

        Raises:
            CacheCorruptError: If a cached vector length does not match the
                width of the first non-null value of its column.
        """
        for key, cached_dim in ((self.state_key, stats.state_dim), (self.action_key, stats.action_dim)):
            expected = self._first_value_dim(key)
            if expected is not None and expected != cached_dim:
                raise CacheCorruptError(
                    self.cache_path,
                    f"'{key}' has {expected} features but the cache holds {cached_dim}",
                )

    def _first_value_dim(self, name: str) -> int | None:
        """Feature width of the first non-null value of a column, or None."""
        import pyarrow as pa
        import pyarrow.compute as pc

        for chunk in self.store.index.chunks:
            if name not in chunk.table.column_names:
                continue
            column = chunk.table.column(name)
            valid = column.filter(pc.is_valid(column))
            if len(valid) == 0:
                continue
            first = pa.concat_arrays(valid.slice(0, 1).chunks)
            return _to_matrix(first, name).shape[1]
        return None

    def save_cache(self, stats: NormalizationStats) -> None:
        """Write stats to the cache, replacing any previous file.

        Write failures are logged; the stats stay usable for this run.
        """
        payload = {"version": CACHE_VERSION, **stats.to_dict()}
        try:
            self.cache_path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.cache_path.parent, prefix=".norm_stats_", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w") as f:
                    json.dump(payload, f, indent=2)
                os.replace(tmp_name, self.cache_path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            logger.warning("Could not write normalization cache %s: %s", self.cache_path, e)
            return

        logger.info("Saved normalization stats to %s", self.cache_path)
