"""Video decoding module for Reel.

Provides PyAV-based, timestamp-synchronized frame decoding and
delta-timestamp image sampling.
"""

from reel.video.decoder import CameraHandle, VideoFrameSynchronizer, frame_offset
from reel.video.sampler import DeltaTimestampSampler, select_image_modality

__all__ = [
    "CameraHandle",
    "DeltaTimestampSampler",
    "VideoFrameSynchronizer",
    "frame_offset",
    "select_image_modality",
]
