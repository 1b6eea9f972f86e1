"""Pytest configuration and fixtures for Reel tests."""

import json
from collections.abc import Callable
from pathlib import Path

import numpy as np
import pyarrow as pa
import pyarrow.parquet as pq
import pytest


def write_chunk(
    root: Path,
    key: str,
    states: list,
    actions: list,
    episode_ids: list[int] | None,
    timestamps: list[float] | None = None,
    vector_type: pa.DataType | None = None,
) -> Path:
    """Write one parquet chunk at ``root/data/<key>.parquet``."""
    path = root / "data" / f"{key}.parquet"
    path.parent.mkdir(parents=True, exist_ok=True)

    vector_type = vector_type or pa.list_(pa.float32())
    columns = {
        "observation.state": pa.array(states, type=vector_type),
        "action": pa.array(actions, type=vector_type),
    }
    if episode_ids is not None:
        columns["episode_index"] = pa.array(episode_ids, type=pa.int64())
    if timestamps is None:
        timestamps = [i / 10.0 for i in range(len(states))]
    columns["timestamp"] = pa.array(timestamps, type=pa.float32())

    pq.write_table(pa.table(columns), path)
    return path


def write_info(root: Path, **info) -> Path:
    """Write ``root/meta/info.json``."""
    path = root / "meta" / "info.json"
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        json.dump(info, f)
    return path


def write_video(path: Path, num_frames: int, fps: int = 10, size: int = 64) -> Path:
    """Encode a video whose frame ``i`` is a uniform gray of level ``7 * i``."""
    av = pytest.importorskip("av")

    path.parent.mkdir(parents=True, exist_ok=True)
    container = av.open(str(path), mode="w")
    try:
        stream = container.add_stream("libx264", rate=fps)
        stream.width = size
        stream.height = size
        stream.pix_fmt = "yuv420p"
        stream.options = {"crf": "0", "preset": "ultrafast"}
        stream.gop_size = 12

        for i in range(num_frames):
            img = np.full((size, size, 3), gray_level(i), dtype=np.uint8)
            frame = av.VideoFrame.from_ndarray(img, format="rgb24")
            for packet in stream.encode(frame):
                container.mux(packet)

        for packet in stream.encode():
            container.mux(packet)
    finally:
        container.close()
    return path


def gray_level(frame_index: int) -> int:
    return (7 * frame_index) % 256


@pytest.fixture
def stats_cache(tmp_path: Path) -> Path:
    """Isolated normalization cache location."""
    return tmp_path / "cache" / "norm_stats.json"


@pytest.fixture
def make_dataset(tmp_path: Path) -> Callable[..., Path]:
    """Factory writing a dataset from per-chunk episode ids.

    State rows are ``[global_index, 2.0]``, action rows are
    ``[-global_index, 0.5 * global_index]``.
    """

    def factory(chunk_episode_ids: list[list[int]], name: str = "dataset") -> Path:
        root = tmp_path / name
        offset = 0
        for i, ids in enumerate(chunk_episode_ids):
            rows = range(offset, offset + len(ids))
            write_chunk(
                root,
                f"chunk-000/file-{i:03d}",
                states=[[float(g), 2.0] for g in rows],
                actions=[[-float(g), 0.5 * g] for g in rows],
                episode_ids=ids,
                timestamps=[(g - offset) / 10.0 for g in rows],
            )
            offset += len(ids)
        return root

    return factory


@pytest.fixture
def two_chunk_dataset(make_dataset) -> Path:
    """Two chunks of 3 and 2 rows; episode ids [0, 0, 1 | 1, 1]."""
    return make_dataset([[0, 0, 1], [1, 1]])


@pytest.fixture
def video_dataset(tmp_path: Path) -> Path:
    """One 30-row chunk at 10 fps with a matching 30-frame camera video."""
    root = tmp_path / "video_dataset"
    write_info(root, fps=10, codebase_version="v3.0", total_frames=30, total_episodes=1)
    write_chunk(
        root,
        "chunk-000/file-000",
        states=[[float(i), 0.0] for i in range(30)],
        actions=[[float(i)] for i in range(30)],
        episode_ids=[0] * 30,
        timestamps=[i / 10.0 for i in range(30)],
    )
    write_video(root / "videos" / "observation.image" / "chunk-000" / "file-000.mp4", 30)
    return root
