"""Tests for DatasetConfig."""

from pathlib import Path

import pytest

from reel.config.models import DatasetConfig
from reel.core.exceptions import DatasetConfigError


class TestDatasetConfig:
    """Tests for DatasetConfig construction and validation."""

    def test_defaults(self):
        """Test default column names and behavior flags."""
        config = DatasetConfig(root="data/pusht")
        assert config.delta_timestamps == {}
        assert config.state_key == "observation.state"
        assert config.action_key == "action"
        assert config.episode_key == "episode_index"
        assert config.timestamp_key == "timestamp"
        assert config.image_loading is True
        assert config.fps is None
        assert config.stats_cache_path is None
        assert config.strict_columns is False

    def test_cache_path_becomes_path(self):
        """Test that a string cache path is converted."""
        config = DatasetConfig(root="x", stats_cache_path="/tmp/stats.json")
        assert config.stats_cache_path == Path("/tmp/stats.json")

    def test_non_finite_offset_rejected(self):
        """Test that NaN and infinite offsets are rejected."""
        with pytest.raises(DatasetConfigError, match="not finite"):
            DatasetConfig(root="x", delta_timestamps={"observation.image": [float("nan")]})
        with pytest.raises(DatasetConfigError, match="not finite"):
            DatasetConfig(root="x", delta_timestamps={"observation.image": [float("inf")]})

    def test_non_numeric_offset_rejected(self):
        """Test that string offsets are rejected."""
        with pytest.raises(DatasetConfigError, match="not a number"):
            DatasetConfig(root="x", delta_timestamps={"observation.image": ["-0.1"]})

    def test_non_positive_fps_rejected(self):
        """Test that fps must be positive."""
        with pytest.raises(DatasetConfigError, match="fps"):
            DatasetConfig(root="x", fps=0)

    def test_non_bool_flags_rejected(self):
        """Test that behavior flags must be real booleans."""
        for name in ("image_loading", "strict_columns", "preopen_videos"):
            with pytest.raises(DatasetConfigError, match=name):
                DatasetConfig(root="x", **{name: "false"})


class TestDatasetConfigSerialization:
    """Tests for dict and YAML conversion."""

    def test_from_dict_grouped_columns(self):
        """Test column names given under a 'columns' mapping."""
        config = DatasetConfig.from_dict(
            {
                "root": "data/aloha",
                "columns": {"state": "obs.qpos", "action": "act"},
                "delta_timestamps": {"observation.image": [-0.033, 0.0]},
            }
        )
        assert config.state_key == "obs.qpos"
        assert config.action_key == "act"
        assert config.episode_key == "episode_index"
        assert config.delta_timestamps == {"observation.image": [-0.033, 0.0]}

    def test_from_dict_flat_keys_and_scalar_delta(self):
        """Test flat column keys and a single offset given as a scalar."""
        config = DatasetConfig.from_dict(
            {
                "root": "data/aloha",
                "state_key": "obs.qpos",
                "delta_timestamps": {"observation.image": 0.0},
            }
        )
        assert config.state_key == "obs.qpos"
        assert config.delta_timestamps == {"observation.image": [0.0]}

    def test_from_dict_requires_root(self):
        """Test that 'root' is required."""
        with pytest.raises(DatasetConfigError, match="root"):
            DatasetConfig.from_dict({"fps": 10})

    def test_yaml_round_trip(self, tmp_path: Path):
        """Test saving and loading a YAML config."""
        config = DatasetConfig(
            root="data/pusht",
            delta_timestamps={"observation.image": [-0.1, 0.0]},
            image_loading=False,
            fps=15.0,
            stats_cache_path=tmp_path / "stats.json",
            strict_columns=True,
        )
        path = tmp_path / "config.yaml"
        config.to_yaml(path)

        loaded = DatasetConfig.from_yaml(path)
        assert loaded.to_dict() == config.to_dict()
        assert loaded.image_loading is False
        assert loaded.fps == 15.0
        assert loaded.strict_columns is True

    def test_yaml_must_be_mapping(self, tmp_path: Path):
        """Test that a YAML list is rejected."""
        path = tmp_path / "config.yaml"
        path.write_text("- just\n- a list\n")
        with pytest.raises(DatasetConfigError, match="mapping"):
            DatasetConfig.from_yaml(path)

    def test_yaml_quoted_bool_rejected(self, tmp_path: Path):
        """Test that a quoted "false" in YAML is not read as a truthy string."""
        path = tmp_path / "config.yaml"
        path.write_text('root: data/pusht\nimage_loading: "false"\n')
        with pytest.raises(DatasetConfigError, match="image_loading must be true or false"):
            DatasetConfig.from_yaml(path)

        path.write_text("root: data/pusht\nimage_loading: false\nstrict_columns: yes\n")
        config = DatasetConfig.from_yaml(path)
        assert config.image_loading is False
        assert config.strict_columns is True
