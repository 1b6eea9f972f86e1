"""URL parsing utilities for Hugging Face Hub datasets.

Supports various URL formats:
    hf://lerobot/pusht
    hf://lerobot/pusht@v3.0
    huggingface://lerobot/pusht
    https://huggingface.co/datasets/lerobot/pusht
"""

from __future__ import annotations

import re
from dataclasses import dataclass


@dataclass
class HFDatasetRef:
    """Reference to a Hugging Face dataset."""

    repo_id: str  # e.g., "lerobot/pusht"
    revision: str | None = None  # Branch/tag/commit


def is_hf_url(path: object) -> bool:
    """Check if the path is a Hugging Face URL.

    Args:
        path: Path or URL to check.

    Returns:
        True if this is a Hugging Face URL.
    """
    if not isinstance(path, str):
        return False

    if path.startswith(("hf://", "huggingface://")):
        return True

    return "huggingface.co/datasets/" in path


def parse_hf_url(url: str) -> HFDatasetRef:
    """Parse a Hugging Face dataset URL into components.

    Supported formats:
        hf://org/dataset
        hf://org/dataset@revision
        huggingface://org/dataset
        https://huggingface.co/datasets/org/dataset

    Args:
        url: Hugging Face dataset URL.

    Returns:
        HFDatasetRef with parsed components.

    Raises:
        ValueError: If URL format is invalid.
    """
    original_url = url

    if "huggingface.co/datasets/" in url:
        match = re.search(r"huggingface\.co/datasets/([^/]+/[^/?#]+)", url)
        if match:
            return HFDatasetRef(repo_id=match.group(1).rstrip("/"))
        raise ValueError(f"Invalid Hugging Face URL: {original_url}")

    if url.startswith("hf://"):
        url = url[5:]
    elif url.startswith("huggingface://"):
        url = url[14:]
    else:
        raise ValueError(f"Invalid Hugging Face URL scheme: {original_url}")

    revision = None
    if "@" in url:
        url, revision = url.rsplit("@", 1)

    repo_id = url.strip("/")
    if repo_id.count("/") != 1:
        raise ValueError(f"Invalid repo_id format: {repo_id}. Expected 'org/dataset' format.")

    return HFDatasetRef(repo_id=repo_id, revision=revision or None)
