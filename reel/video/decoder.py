"""Timestamp-synchronized video frame decoding using PyAV.

Each camera file gets one persistent decode handle. Handles keep the
container open and continue decoding sequentially for nearby forward
reads, seeking only when the target is behind the current position or
far ahead of it.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable
from pathlib import Path
from threading import Lock
from typing import TYPE_CHECKING, Any

from reel.core.exceptions import MissingDependencyError

if TYPE_CHECKING:
    from numpy.typing import NDArray

logger = logging.getLogger(__name__)

# Forward distance (in frames) that is decoded through instead of seeking
SEEK_THRESHOLD = 30

# Absorbs float error in timestamp * fps (float32 0.7 * 10 = 6.9999998)
FRAME_TOLERANCE = 1e-4

# Lazy import av to handle optional dependency
_av = None


def _get_av():
    """Lazy import PyAV."""
    global _av
    if _av is None:
        try:
            import av

            _av = av
        except ImportError:
            raise MissingDependencyError(
                dependency="av",
                feature="video decoding",
                install_hint="pip install reel-robotics",
            )
    return _av


def frame_offset(timestamp: float, fps: float) -> int:
    """Convert a timestamp in seconds to a zero-based frame offset."""
    return math.floor(timestamp * fps + FRAME_TOLERANCE)


class CameraHandle:
    """A reusable decode handle for one video file.

    Not safe for concurrent use: callers must hold ``lock`` around
    ``read``. The synchronizer does this for every decode.
    """

    def __init__(self, path: Path, fps: float):
        self.path = Path(path)
        self.lock = Lock()
        self._fps = fps
        self._container = None
        self._stream = None
        self._frames: Iterable[Any] | None = None
        self._position = -1
        self._last_image: NDArray[Any] | None = None
        self._failed = False

    @property
    def is_open(self) -> bool:
        return self._container is not None

    @property
    def frame_count(self) -> int:
        """Number of frames in the stream, 0 when unknown."""
        if not self.open():
            return 0
        return int(self._stream.frames or 0)

    def open(self) -> bool:
        """Open the container if needed. Returns False if it cannot be opened."""
        if self._container is not None:
            return True
        if self._failed:
            return False

        av = _get_av()
        try:
            self._container = av.open(str(self.path))
            self._stream = self._container.streams.video[0]
        except (av.error.FFmpegError, OSError, IndexError) as e:
            logger.warning("Cannot open video %s: %s", self.path, e)
            self._failed = True
            self.close()
            return False
        return True

    def read(self, offset: int) -> NDArray[Any] | None:
        """Decode the frame at ``offset``.

        Returns:
            HxWx3 uint8 RGB image, or None if the frame is unavailable.
        """
        if offset < 0 or not self.open():
            return None

        total = self._stream.frames
        if total and offset >= total:
            return None

        if offset == self._position and self._last_image is not None:
            return self._last_image

        av = _get_av()
        try:
            if (
                self._frames is None
                or offset < self._position
                or offset > self._position + SEEK_THRESHOLD
            ):
                self._seek(offset)

            for frame in self._frames:
                self._position = self._frame_index(frame)
                if self._position >= offset:
                    self._last_image = frame.to_ndarray(format="rgb24")
                    return self._last_image
        except (av.error.FFmpegError, ValueError) as e:
            logger.debug("Decode failed for %s at frame %d: %s", self.path, offset, e)

        # End of stream or decode error: next read seeks again
        self._frames = None
        self._position = -1
        self._last_image = None
        return None

    def _seek(self, offset: int) -> None:
        stream = self._stream
        start = stream.start_time or 0
        target_pts = start + int(offset / self._fps / stream.time_base)
        self._container.seek(target_pts, stream=stream, backward=True, any_frame=False)
        self._frames = self._container.decode(stream)
        self._position = -1
        self._last_image = None

    def _frame_index(self, frame: Any) -> int:
        if frame.pts is None:
            return self._position + 1
        start = self._stream.start_time or 0
        seconds = float((frame.pts - start) * self._stream.time_base)
        return int(round(seconds * self._fps))

    def close(self) -> None:
        """Close the video container."""
        if self._container is not None:
            self._container.close()
        self._container = None
        self._stream = None
        self._frames = None
        self._position = -1
        self._last_image = None


class VideoFrameSynchronizer:
    """Owns one decode handle per camera file and maps timestamps to frames.

    Handles are created behind a single acquisition point (``handle``) and
    released together by ``close``.

    Example:
        >>> with VideoFrameSynchronizer(fps=10.0) as sync:
        ...     image = sync.decode(Path("videos/cam/chunk-000/file-000.mp4"), 1.5)
    """

    def __init__(self, fps: float = 30.0):
        if fps <= 0:
            raise ValueError(f"fps must be positive, got {fps}")
        self.fps = fps
        self._handles: dict[Path, CameraHandle] = {}
        self._lock = Lock()

    def __enter__(self) -> VideoFrameSynchronizer:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    @property
    def open_paths(self) -> list[Path]:
        """Paths with an open decode handle."""
        with self._lock:
            return [p for p, h in self._handles.items() if h.is_open]

    def handle(self, path: Path) -> CameraHandle:
        """Get or create the handle for a video path."""
        key = Path(path)
        with self._lock:
            handle = self._handles.get(key)
            if handle is None:
                handle = CameraHandle(key, self.fps)
                self._handles[key] = handle
            return handle

    def preopen(self, paths: Iterable[Path]) -> None:
        """Open handles for every path now instead of on first decode."""
        for path in paths:
            handle = self.handle(path)
            with handle.lock:
                handle.open()

    def frame_offset(self, timestamp: float) -> int:
        return frame_offset(timestamp, self.fps)

    def frame_count(self, path: Path) -> int:
        handle = self.handle(path)
        with handle.lock:
            return handle.frame_count

    def decode(self, path: Path, timestamp: float) -> NDArray[Any] | None:
        """Decode the frame shown at ``timestamp`` seconds.

        Args:
            path: Video file.
            timestamp: Time in seconds from the start of the file.

        Returns:
            HxWx3 uint8 RGB image, or None if the handle cannot be opened,
            the offset is out of range, or decoding fails.
        """
        offset = self.frame_offset(timestamp)
        if offset < 0:
            return None

        handle = self.handle(path)
        with handle.lock:
            image = handle.read(offset)

        if image is None:
            logger.debug("No frame %d (t=%.4fs) in %s", offset, timestamp, path)
        return image

    def close(self) -> None:
        """Release every decode handle."""
        with self._lock:
            handles = list(self._handles.values())
            self._handles.clear()
        for handle in handles:
            with handle.lock:
                handle.close()
