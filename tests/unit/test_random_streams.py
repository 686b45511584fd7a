"""
Tests for counter-based block random streams.

[T1] The increment sequence of simulation i depends only on
(seed, i, n_steps, paths_per_block).
"""

import numpy as np
import pytest

from exotic_pricing.options.simulation.random_streams import (
    BlockSpec,
    block_generator,
    block_normals,
    iter_row_chunks,
    partition_simulations,
    path_increments,
)


class TestPartition:
    """Tests for partition_simulations."""

    def test_even_split(self):
        blocks = partition_simulations(12, 4)
        assert [b.n_paths for b in blocks] == [4, 4, 4]
        assert [b.index for b in blocks] == [0, 1, 2]

    def test_remainder_block(self):
        blocks = partition_simulations(10, 4)
        assert [(b.start, b.stop) for b in blocks] == [(0, 4), (4, 8), (8, 10)]

    def test_block_larger_than_run(self):
        blocks = partition_simulations(3, 4096)
        assert blocks == [BlockSpec(index=0, start=0, n_paths=3)]

    def test_covers_every_simulation_once(self):
        blocks = partition_simulations(10_001, 4096)
        assert sum(b.n_paths for b in blocks) == 10_001
        assert all(a.stop == b.start for a, b in zip(blocks, blocks[1:]))

    @pytest.mark.parametrize("n_sims,paths_per_block", [(0, 4), (10, 0)])
    def test_invalid(self, n_sims, paths_per_block):
        with pytest.raises(ValueError, match="must be > 0"):
            partition_simulations(n_sims, paths_per_block)


class TestBlockNormals:
    """Tests for per-block sub-streams."""

    def test_shape_and_dtype(self):
        block = BlockSpec(index=0, start=0, n_paths=5)
        z = block_normals(1234, block, n_steps=7)
        assert z.shape == (5, 7)
        assert z.dtype == np.float64

    def test_reproducible(self):
        block = BlockSpec(index=3, start=12, n_paths=4)
        np.testing.assert_array_equal(
            block_normals(1234, block, 10), block_normals(1234, block, 10)
        )

    def test_blocks_are_independent_streams(self):
        a = block_normals(1234, BlockSpec(0, 0, 4), 10)
        b = block_normals(1234, BlockSpec(1, 4, 4), 10)
        assert not np.allclose(a, b)

    def test_seed_changes_stream(self):
        block = BlockSpec(0, 0, 4)
        assert not np.allclose(block_normals(1, block, 10), block_normals(2, block, 10))

    def test_single_precision_uses_same_draws(self):
        """Single precision is the float64 draw cast down, not a different draw."""
        block = BlockSpec(2, 8, 4)
        double = block_normals(1234, block, 10, np.float64)
        single = block_normals(1234, block, 10, np.float32)
        assert single.dtype == np.float32
        np.testing.assert_array_equal(single, double.astype(np.float32))

    def test_standard_normal_moments(self):
        z = block_normals(1234, BlockSpec(0, 0, 20_000), 5)
        assert abs(z.mean()) < 0.01
        assert z.std() == pytest.approx(1.0, abs=0.01)

    def test_negative_seed_rejected(self):
        with pytest.raises(ValueError, match="seed must be >= 0"):
            block_generator(-1, 0)


class TestStreaming:
    """Chunked and per-simulation views of the same draws."""

    @pytest.mark.parametrize("chunk_rows", [1, 4, 6, 50])
    def test_row_chunks_match_block(self, chunk_rows):
        block = BlockSpec(1, 6, 6)
        chunks = list(iter_row_chunks(1234, block, 8, chunk_rows))
        assert all(chunk.shape[0] <= chunk_rows for chunk in chunks)
        assert sum(chunk.shape[0] for chunk in chunks) == 6
        np.testing.assert_array_equal(np.vstack(chunks), block_normals(1234, block, 8))

    def test_row_chunks_cast_to_working_precision(self):
        block = BlockSpec(0, 0, 10)
        chunks = list(iter_row_chunks(1234, block, 3, 4, dtype=np.float32))
        assert all(chunk.dtype == np.float32 for chunk in chunks)
        np.testing.assert_array_equal(
            np.vstack(chunks), block_normals(1234, block, 3, dtype=np.float32)
        )

    def test_row_chunks_invalid_size(self):
        with pytest.raises(ValueError, match="chunk_rows"):
            next(iter_row_chunks(1234, BlockSpec(0, 0, 4), 3, 0))

    def test_path_increments_independent_of_run_size(self):
        """Simulation 9 draws the same increments whether N is 10 or 100."""
        small_run = partition_simulations(10, 4)[2]
        large_run = partition_simulations(100, 4)[2]
        from_small = block_normals(1234, small_run, 12)[1]
        from_large = block_normals(1234, large_run, 12)[1]
        np.testing.assert_array_equal(from_small, from_large)
        np.testing.assert_array_equal(path_increments(1234, 9, 12, 4), from_small)

    def test_path_increments_invalid_index(self):
        with pytest.raises(ValueError, match="sim_index"):
            path_increments(1234, -1, 12, 4)
