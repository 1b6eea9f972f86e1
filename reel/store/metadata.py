"""Loader for ``meta/info.json``."""

from __future__ import annotations

import json
from pathlib import Path

from reel.core.exceptions import DatasetConfigError
from reel.core.models import DatasetMetadata

DEFAULT_FPS = 30.0


def load_metadata(root: Path) -> DatasetMetadata:
    """Read the optional metadata file of a dataset.

    A missing file yields defaults (fps 30). A file that exists but is not
    a JSON object is a configuration error.

    Args:
        root: Dataset root directory.

    Returns:
        Parsed metadata.

    Raises:
        DatasetConfigError: If info.json is unreadable or malformed.
    """
    info_path = Path(root) / "meta" / "info.json"
    if not info_path.exists():
        return DatasetMetadata()

    try:
        with open(info_path) as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise DatasetConfigError(f"Failed to parse meta/info.json: {e}", root)

    if not isinstance(data, dict):
        raise DatasetConfigError("meta/info.json must contain a JSON object", root)

    fps = data.get("fps", DEFAULT_FPS)
    try:
        fps = float(fps)
    except (TypeError, ValueError):
        raise DatasetConfigError(f"Invalid fps in meta/info.json: {fps!r}", root)
    if fps <= 0:
        raise DatasetConfigError(f"fps must be positive, got {fps}", root)

    version = data.get("codebase_version")

    known = ("fps", "robot_type", "codebase_version", "total_frames", "total_episodes")
    return DatasetMetadata(
        fps=fps,
        robot_type=data.get("robot_type"),
        codebase_version=str(version).lstrip("v") if version is not None else None,
        total_frames=data.get("total_frames"),
        total_episodes=data.get("total_episodes"),
        extra={k: v for k, v in data.items() if k not in known},
    )
