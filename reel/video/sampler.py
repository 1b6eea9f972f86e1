"""Delta-timestamp image sampling.

For a base frame, decode one image per configured time offset of the
observation-image modality, e.g. ``{"observation.image": [-0.1, 0.0]}``
yields the frame 0.1s in the past and the current frame.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import TYPE_CHECKING, Any

from reel.core.models import Chunk

if TYPE_CHECKING:
    from numpy.typing import NDArray

    from reel.video.decoder import VideoFrameSynchronizer

logger = logging.getLogger(__name__)

IMAGE_MODALITY_PREFIX = "observation.image"


def select_image_modality(delta_timestamps: Mapping[str, Sequence[float]]) -> str | None:
    """Return the first configured key naming observation imagery."""
    for key in delta_timestamps:
        if key.startswith(IMAGE_MODALITY_PREFIX):
            return key
    return None


class DeltaTimestampSampler:
    """Decodes images at signed time offsets around a frame."""

    def __init__(
        self,
        synchronizer: VideoFrameSynchronizer,
        delta_timestamps: Mapping[str, Sequence[float]] | None = None,
        fallback_path: Path | None = None,
    ):
        """Initialize the sampler.

        Args:
            synchronizer: Decoder owning the camera handles.
            delta_timestamps: Modality name -> ordered offsets in seconds.
            fallback_path: Video used when a chunk has none of its own
                (normally the first video discovered at load time).
        """
        self.synchronizer = synchronizer
        self.delta_timestamps = {k: list(v) for k, v in (delta_timestamps or {}).items()}
        self.fallback_path = fallback_path
        self.modality = select_image_modality(self.delta_timestamps)

        ignored = [k for k in self.delta_timestamps if k != self.modality]
        if ignored:
            logger.debug("Ignoring non-image delta modalities: %s", ", ".join(ignored))

    @property
    def offsets(self) -> list[float]:
        if self.modality is None:
            return []
        return self.delta_timestamps[self.modality]

    def resolve_path(self, chunk: Chunk | None) -> Path | None:
        """Pick the video to decode from for a chunk.

        Preference: the chunk's video for the camera named like the
        modality, then the chunk's first video, then the fallback path.
        """
        if chunk is not None and chunk.video_paths:
            if self.modality in chunk.video_paths:
                return chunk.video_paths[self.modality]
            return chunk.video_paths[sorted(chunk.video_paths)[0]]
        return self.fallback_path

    def sample(self, base_timestamp: float, chunk: Chunk | None = None) -> dict[float, NDArray[Any]]:
        """Decode one image per offset.

        Offsets whose target time is negative, or whose frame cannot be
        decoded, are left out of the result.

        Args:
            base_timestamp: Timestamp of the base frame in seconds.
            chunk: Chunk holding the base frame, used to pick its video.

        Returns:
            Offset -> HxWx3 uint8 RGB image.
        """
        images: dict[float, NDArray[Any]] = {}
        offsets = self.offsets
        if not offsets:
            return images

        path = self.resolve_path(chunk)
        if path is None:
            return images

        for offset in offsets:
            target = base_timestamp + offset
            if target < 0:
                continue
            image = self.synchronizer.decode(path, target)
            if image is not None:
                images[offset] = image

        return images
