"""Configuration module for Reel.

Provides the dataset configuration model and its YAML loader.
"""

from reel.config.models import DatasetConfig

__all__ = ["DatasetConfig"]
