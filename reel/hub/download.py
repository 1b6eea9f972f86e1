"""Resolve dataset roots hosted on the Hugging Face Hub.

A root given as an ``hf://`` (or huggingface.co) URL is downloaded with
``huggingface_hub.snapshot_download`` and the local snapshot directory is
used as the dataset root.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from reel.core.exceptions import DatasetConfigError, MissingDependencyError
from reel.hub.url import HFDatasetRef, is_hf_url, parse_hf_url

logger = logging.getLogger(__name__)


def _check_huggingface_hub() -> None:
    """Check if huggingface_hub is available."""
    try:
        import huggingface_hub  # noqa: F401
    except ImportError:
        raise MissingDependencyError(
            dependency="huggingface_hub",
            feature="Hugging Face Hub datasets",
            install_hint="pip install huggingface_hub",
        )


def get_cache_dir() -> Path:
    """Get the cache directory for downloaded datasets.

    Uses REEL_CACHE_DIR environment variable if set,
    otherwise falls back to ~/.cache/reel/datasets.
    """
    cache_dir = os.environ.get("REEL_CACHE_DIR")
    if cache_dir:
        return Path(cache_dir) / "datasets"

    return Path.home() / ".cache" / "reel" / "datasets"


def download_dataset(
    source: str | HFDatasetRef,
    *,
    revision: str | None = None,
    cache_dir: Path | str | None = None,
) -> Path:
    """Download a dataset snapshot from the Hub.

    Args:
        source: Repo id (``"lerobot/pusht"``), HFDatasetRef or hf:// URL.
        revision: Git revision overriding the one in ``source``.
        cache_dir: Where to cache files. Defaults to ``get_cache_dir()``.

    Returns:
        Path to the local snapshot directory.

    Raises:
        MissingDependencyError: If huggingface_hub is not installed.
        DatasetConfigError: If the repository is missing or gated.
    """
    _check_huggingface_hub()
    from huggingface_hub import snapshot_download
    from huggingface_hub.utils import GatedRepoError, RepositoryNotFoundError

    if isinstance(source, HFDatasetRef):
        ref = source
    elif is_hf_url(source):
        ref = parse_hf_url(source)
    else:
        ref = HFDatasetRef(repo_id=source)

    if revision:
        ref = HFDatasetRef(repo_id=ref.repo_id, revision=revision)

    cache_dir = Path(cache_dir) if cache_dir is not None else get_cache_dir()
    cache_dir.mkdir(parents=True, exist_ok=True)

    logger.info("Fetching dataset %s (revision %s)", ref.repo_id, ref.revision or "default")
    try:
        local_dir = snapshot_download(
            repo_id=ref.repo_id,
            repo_type="dataset",
            revision=ref.revision,
            cache_dir=str(cache_dir),
        )
    except GatedRepoError:
        raise DatasetConfigError(
            f"dataset '{ref.repo_id}' requires authentication; run `huggingface-cli login`"
        )
    except RepositoryNotFoundError:
        raise DatasetConfigError(
            f"dataset not found: https://huggingface.co/datasets/{ref.repo_id}"
        )

    return Path(local_dir)


def resolve_path(path: str | Path) -> Path:
    """Return a local path for a dataset root, downloading Hub URLs first."""
    if is_hf_url(path):
        return download_dataset(str(path))

    return Path(path)
