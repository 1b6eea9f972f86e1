"""Reel - indexed, video-synchronized access to robot demonstration episodes.

Reel loads datasets laid out as chunked Parquet tables plus per-camera MP4
streams, maps flat frame indices onto chunks, detects episode boundaries,
decodes the video frames that go with each row, and computes (and caches)
the mean/std statistics used to normalize states and actions.

Key Characteristics:
- Synchronous, single pass loading; no background work
- One persistent decode handle per camera file
- Raw samples; normalization is left to the caller

Example:
    >>> import reel
    >>> ds = reel.load_dataset("./pusht", delta_timestamps={"observation.image": [-0.1, 0.0]})
    >>> len(ds), ds.episode_count()
    >>> sample = ds[100]
    >>> sample.images.keys()
"""

from reel.config.models import DatasetConfig
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
    ColumnKind,
    ColumnValue,
    DatasetMetadata,
    EpisodeBoundaries,
    NormalizationStats,
    Sample,
)
from reel.dataset import EpisodeDataset

__version__ = "0.1.0"

__all__ = [
    # Version
    "__version__",
    # Core models
    "EPSILON",
    "ColumnKind",
    "ColumnValue",
    "DatasetMetadata",
    "EpisodeBoundaries",
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
    # Dataset
    "DatasetConfig",
    "EpisodeDataset",
    # Module-level functions
    "load_dataset",
]


def load_dataset(root: str, **options) -> EpisodeDataset:
    """Load a dataset from a local root or Hugging Face URL.

    Args:
        root: Dataset root directory or ``hf://org/name`` URL.
        **options: DatasetConfig fields.

    Returns:
        A ready EpisodeDataset.

    Example:
        >>> ds = reel.load_dataset("hf://lerobot/pusht", image_loading=False)
    """
    config = DatasetConfig(root=root, **options)
    return EpisodeDataset.from_config(config)
