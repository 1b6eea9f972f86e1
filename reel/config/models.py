"""Configuration models for Reel.

Defines the configuration dataclass accepted by the dataset facade.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from reel.core.exceptions import DatasetConfigError


@dataclass
class DatasetConfig:
    """Configuration for loading an episode dataset.

    Attributes:
        root: Dataset root directory or Hugging Face dataset URL.
        delta_timestamps: Modality name -> ordered time offsets (seconds)
            at which to sample extra frames. Empty means no image sampling.
        state_key: Column holding the state feature vector.
        action_key: Column holding the action feature vector.
        episode_key: Column holding the integer episode id.
        timestamp_key: Column holding the frame timestamp in seconds.
        image_loading: Whether ``get`` decodes video frames.
        fps: Overrides ``fps`` from ``meta/info.json`` when set.
        stats_cache_path: Where normalization stats are cached. Defaults to
            a per-dataset file in the system temp directory.
        strict_columns: Raise instead of zero-filling missing values.
        preopen_videos: Open every discovered video at load time.
    """

    root: str | Path
    delta_timestamps: dict[str, list[float]] = field(default_factory=dict)

    # Column names
    state_key: str = "observation.state"
    action_key: str = "action"
    episode_key: str = "episode_index"
    timestamp_key: str = "timestamp"

    # Behavior
    image_loading: bool = True
    fps: float | None = None
    stats_cache_path: Path | None = None
    strict_columns: bool = False
    preopen_videos: bool = False

    def __post_init__(self) -> None:
        if self.stats_cache_path is not None:
            self.stats_cache_path = Path(self.stats_cache_path)
        self.validate()

    def validate(self) -> None:
        """Validate field values.

        Raises:
            DatasetConfigError: If an offset is not a finite number or fps
                is not positive, or a flag is not a boolean.
        """
        if not isinstance(self.delta_timestamps, dict):
            raise DatasetConfigError("delta_timestamps must be a mapping")

        for modality, offsets in self.delta_timestamps.items():
            for offset in offsets:
                if isinstance(offset, bool) or not isinstance(offset, (int, float)):
                    raise DatasetConfigError(
                        f"delta offset {offset!r} for '{modality}' is not a number"
                    )
                if not math.isfinite(offset):
                    raise DatasetConfigError(
                        f"delta offset {offset!r} for '{modality}' is not finite"
                    )

        if self.fps is not None and self.fps <= 0:
            raise DatasetConfigError(f"fps must be positive, got {self.fps}")

        for name in ("image_loading", "strict_columns", "preopen_videos"):
            value = getattr(self, name)
            if not isinstance(value, bool):
                raise DatasetConfigError(f"{name} must be true or false, got {value!r}")

    @classmethod
    def from_yaml(cls, path: Path | str) -> "DatasetConfig":
        """Load configuration from a YAML file.

        Example YAML:
            root: data/pusht
            delta_timestamps:
              observation.image: [-0.1, 0.0]

            columns:
              state: observation.state
              action: action

            image_loading: true

        Args:
            path: Path to YAML config file.

        Returns:
            DatasetConfig instance.
        """
        path = Path(path)
        with open(path) as f:
            data = yaml.safe_load(f)

        if not isinstance(data, dict):
            raise DatasetConfigError("config file must contain a mapping", path)

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DatasetConfig":
        """Create config from a dictionary.

        Args:
            data: Configuration dictionary.

        Returns:
            DatasetConfig instance.
        """
        if "root" not in data:
            raise DatasetConfigError("missing required key 'root'")

        deltas = data.get("delta_timestamps") or {}
        if not isinstance(deltas, dict):
            raise DatasetConfigError("delta_timestamps must be a mapping")

        # Column names may be grouped under "columns" or given flat
        columns = data.get("columns", {})
        if not isinstance(columns, dict):
            columns = {}

        return cls(
            root=data["root"],
            delta_timestamps={
                str(k): list(v) if isinstance(v, (list, tuple)) else [v]
                for k, v in deltas.items()
            },
            state_key=columns.get("state", data.get("state_key", "observation.state")),
            action_key=columns.get("action", data.get("action_key", "action")),
            episode_key=columns.get("episode", data.get("episode_key", "episode_index")),
            timestamp_key=columns.get("timestamp", data.get("timestamp_key", "timestamp")),
            image_loading=data.get("image_loading", True),
            fps=data.get("fps"),
            stats_cache_path=data.get("stats_cache_path"),
            strict_columns=data.get("strict_columns", False),
            preopen_videos=data.get("preopen_videos", False),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert config to a dictionary for serialization."""
        result: dict[str, Any] = {"root": str(self.root)}

        if self.delta_timestamps:
            result["delta_timestamps"] = {k: list(v) for k, v in self.delta_timestamps.items()}

        result["columns"] = {
            "state": self.state_key,
            "action": self.action_key,
            "episode": self.episode_key,
            "timestamp": self.timestamp_key,
        }

        if not self.image_loading:
            result["image_loading"] = False
        if self.fps is not None:
            result["fps"] = self.fps
        if self.stats_cache_path is not None:
            result["stats_cache_path"] = str(self.stats_cache_path)
        if self.strict_columns:
            result["strict_columns"] = True
        if self.preopen_videos:
            result["preopen_videos"] = True

        return result

    def to_yaml(self, path: Path | str) -> None:
        """Save configuration to a YAML file.

        Args:
            path: Path to output YAML file.
        """
        path = Path(path)
        with open(path, "w") as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)
