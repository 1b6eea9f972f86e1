"""Hugging Face Hub integration for Reel.

Usage:
    from reel.hub import download_dataset, parse_hf_url

    repo = parse_hf_url("hf://lerobot/pusht")
    local_path = download_dataset("lerobot/pusht")
"""

from reel.hub.download import download_dataset, get_cache_dir, resolve_path
from reel.hub.url import HFDatasetRef, is_hf_url, parse_hf_url

__all__ = [
    "HFDatasetRef",
    "download_dataset",
    "get_cache_dir",
    "is_hf_url",
    "parse_hf_url",
    "resolve_path",
]
