"""Chunk discovery and loading for Reel."""

from reel.store.chunk_store import ChunkStore
from reel.store.discovery import discover
from reel.store.metadata import load_metadata

__all__ = ["ChunkStore", "discover", "load_metadata"]
