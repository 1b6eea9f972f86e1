"""Tests for core data models."""

import numpy as np
import pyarrow as pa
import pytest

from reel.core.models import (
    EPSILON,
    Chunk,
    ChunkIndex,
    ColumnKind,
    ColumnValue,
    EpisodeBoundaries,
    NormalizationStats,
    Sample,
)


def _chunk(rows: int) -> Chunk:
    table = pa.table({"x": pa.array(range(rows), type=pa.int64())})
    return Chunk(table=table, path=None, key=f"file-{rows}")


class TestChunkIndex:
    """Tests for ChunkIndex offsets."""

    def test_offsets_are_prefix_sums(self):
        """Test that offsets start at 0 and end at the total."""
        index = ChunkIndex([_chunk(3), _chunk(0), _chunk(2)])
        assert index.row_counts == (3, 0, 2)
        assert index.offsets == (0, 3, 3, 5)
        assert index.total_frames == 5
        assert len(index) == 3

    def test_empty_index(self):
        """Test an index with no chunks."""
        index = ChunkIndex([])
        assert index.total_frames == 0
        assert index.offsets == (0,)


class TestEpisodeBoundaries:
    """Tests for EpisodeBoundaries."""

    def test_episode_of(self):
        """Test mapping frames to episode numbers."""
        boundaries = EpisodeBoundaries(starts=(0, 2, 7), total_frames=10)
        assert len(boundaries) == 3
        assert [boundaries.episode_of(i) for i in (0, 1, 2, 6, 7, 9)] == [0, 0, 1, 1, 2, 2]

    def test_episode_range(self):
        """Test start/stop of each episode."""
        boundaries = EpisodeBoundaries(starts=(0, 2, 7), total_frames=10)
        assert boundaries.episode_range(0) == (0, 2)
        assert boundaries.episode_range(1) == (2, 7)
        assert boundaries.episode_range(2) == (7, 10)

        with pytest.raises(IndexError):
            boundaries.episode_range(3)

    def test_episode_of_out_of_range(self):
        """Test that frames outside the dataset are rejected."""
        boundaries = EpisodeBoundaries(starts=(0,), total_frames=4)
        with pytest.raises(IndexError):
            boundaries.episode_of(4)
        with pytest.raises(IndexError):
            boundaries.episode_of(-1)

    def test_must_start_at_zero(self):
        """Test that the first boundary must be frame 0."""
        with pytest.raises(ValueError, match="frame 0"):
            EpisodeBoundaries(starts=(1, 3), total_frames=5)

    def test_must_strictly_increase(self):
        """Test that duplicate or decreasing starts are rejected."""
        with pytest.raises(ValueError, match="strictly increasing"):
            EpisodeBoundaries(starts=(0, 3, 3), total_frames=5)

    def test_iterates_starts(self):
        """Test iteration yields the start indices."""
        assert list(EpisodeBoundaries(starts=(0, 4), total_frames=6)) == [0, 4]


class TestColumnValue:
    """Tests for ColumnValue."""

    def test_absent(self):
        """Test the absent value zero-fills."""
        value = ColumnValue.absent()
        assert value.is_absent
        assert value.kind is ColumnKind.ABSENT
        np.testing.assert_array_equal(value.as_vector(3), np.zeros(3, dtype=np.float32))
        assert value.as_vector(3).dtype == np.float32

    def test_vector(self):
        """Test a vector value is returned as float32."""
        value = ColumnValue(ColumnKind.VECTOR, np.array([1.5, 2.5], dtype=np.float64))
        assert not value.is_absent
        result = value.as_vector(2)
        assert result.dtype == np.float32
        np.testing.assert_array_equal(result, [1.5, 2.5])

    def test_scalar_becomes_one_element_vector(self):
        """Test a scalar value is promoted to a 1-element vector."""
        value = ColumnValue(ColumnKind.SCALAR, np.float64(4.0))
        np.testing.assert_array_equal(value.as_vector(1), [4.0])


class TestNormalizationStats:
    """Tests for NormalizationStats."""

    def test_std_is_floored(self):
        """Test that zero standard deviations are raised to EPSILON."""
        stats = NormalizationStats(
            state_mean=[1.0, 2.0],
            state_std=[0.0, 3.0],
            action_mean=[0.0],
            action_std=[1e-9],
        )
        assert stats.state_std[0] == np.float32(EPSILON)
        assert stats.state_std[1] == 3.0
        assert stats.action_std[0] == np.float32(EPSILON)
        assert stats.state_dim == 2
        assert stats.action_dim == 1

    def test_vectors_are_read_only_copies(self):
        """Test that stats neither share nor expose writable arrays."""
        source = np.array([1.0, 2.0], dtype=np.float32)
        stats = NormalizationStats(
            state_mean=source, state_std=[1.0, 1.0], action_mean=[0.0], action_std=[1.0]
        )
        source[0] = 99.0
        assert stats.state_mean[0] == 1.0
        with pytest.raises(ValueError):
            stats.state_mean[0] = 5.0

    def test_length_mismatch(self):
        """Test that mean/std length mismatches are rejected."""
        with pytest.raises(ValueError, match="state_mean"):
            NormalizationStats(
                state_mean=[0.0, 0.0], state_std=[1.0], action_mean=[0.0], action_std=[1.0]
            )

    def test_normalize_and_unnormalize(self):
        """Test the caller-side normalization helpers."""
        stats = NormalizationStats(
            state_mean=[1.0, 2.0],
            state_std=[2.0, 4.0],
            action_mean=[10.0],
            action_std=[5.0],
        )
        np.testing.assert_allclose(
            stats.normalize_state(np.array([3.0, 2.0]), eps=0.0), [1.0, 0.0]
        )
        normalized = stats.normalize_action(np.array([20.0]))
        np.testing.assert_allclose(normalized, [10.0 / (5.0 + 1e-5)], rtol=1e-6)
        np.testing.assert_allclose(stats.unnormalize_action(normalized), [20.0], rtol=1e-6)

    def test_dict_round_trip(self):
        """Test conversion to and from plain dictionaries."""
        stats = NormalizationStats(
            state_mean=[0.5, -1.0],
            state_std=[1.0, 2.0],
            action_mean=[3.0],
            action_std=[0.25],
        )
        data = stats.to_dict()
        assert set(data) == set(NormalizationStats.REQUIRED_KEYS)
        assert data["action_std"] == [0.25]

        restored = NormalizationStats.from_dict(data)
        for key in NormalizationStats.REQUIRED_KEYS:
            np.testing.assert_array_equal(getattr(restored, key), getattr(stats, key))

    def test_from_dict_missing_key(self):
        """Test from_dict with an incomplete mapping."""
        with pytest.raises(KeyError):
            NormalizationStats.from_dict({"state_mean": [0.0], "state_std": [1.0]})


class TestSample:
    """Tests for Sample."""

    def test_image_or_placeholder(self):
        """Test missing images are replaced by a gray frame."""
        image = np.zeros((4, 4, 3), dtype=np.uint8)
        sample = Sample(
            index=0,
            timestamp=0.0,
            state=np.zeros(2, dtype=np.float32),
            action=np.zeros(1, dtype=np.float32),
            images={0.0: image},
        )
        assert sample.image_or_placeholder(0.0) is image

        placeholder = sample.image_or_placeholder(-0.1)
        assert placeholder.shape == (96, 96, 3)
        assert placeholder.dtype == np.uint8
        assert (placeholder == 128).all()
