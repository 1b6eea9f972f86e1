"""Directory discovery for episode datasets.

Structure:
    dataset/
    ├── meta/
    │   └── info.json
    ├── data/
    │   └── chunk-000/
    │       ├── file-000.parquet
    │       └── ...
    └── videos/
        └── observation.image/
            └── chunk-000/
                ├── file-000.mp4
                └── ...

A single pass lists every chunk and video file as a DiscoveredFile. The
result is sorted by key so the order chunks are loaded in (and therefore
the global frame numbering) never depends on filesystem iteration order.
"""

from __future__ import annotations

from pathlib import Path

from reel.core.models import DiscoveredFile, FileKind

CHUNK_SUFFIXES = (".parquet",)
VIDEO_SUFFIXES = (".mp4", ".mkv", ".mov", ".avi")


def _key(path: Path, base: Path) -> str:
    return path.relative_to(base).with_suffix("").as_posix()


def discover(root: Path) -> list[DiscoveredFile]:
    """List chunk and video files under a dataset root.

    Chunks come first (sorted by key), followed by videos (sorted by camera,
    then key). Hidden files are skipped.

    Args:
        root: Dataset root directory.

    Returns:
        Ordered list of discovered files.
    """
    root = Path(root)
    chunks: list[DiscoveredFile] = []
    videos: list[DiscoveredFile] = []

    data_dir = root / "data"
    if data_dir.is_dir():
        for path in data_dir.rglob("*"):
            if path.suffix in CHUNK_SUFFIXES and path.is_file() and not path.name.startswith("."):
                chunks.append(DiscoveredFile(path=path, kind=FileKind.CHUNK, key=_key(path, data_dir)))

    videos_dir = root / "videos"
    if videos_dir.is_dir():
        for cam_dir in videos_dir.iterdir():
            if not cam_dir.is_dir():
                continue
            for path in cam_dir.rglob("*"):
                if path.suffix in VIDEO_SUFFIXES and path.is_file() and not path.name.startswith("."):
                    videos.append(
                        DiscoveredFile(
                            path=path,
                            kind=FileKind.VIDEO,
                            key=_key(path, cam_dir),
                            camera=cam_dir.name,
                        )
                    )

    chunks.sort(key=lambda f: f.key)
    videos.sort(key=lambda f: (f.camera, f.key))
    return chunks + videos
