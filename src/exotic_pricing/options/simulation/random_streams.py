"""
Counter-based random streams partitioned by block of simulation indices.

Simulations are grouped into blocks of ``paths_per_block`` consecutive indices.
Block ``b`` owns the Philox sub-stream whose counter starts at ``b << 64``, keyed by
the seed, so concurrent tasks never consume overlapping draws and no generator is
shared between tasks.

[T1] Row ``i % paths_per_block`` of block ``i // paths_per_block`` is the increment
sequence of simulation ``i``. It depends only on (seed, i, n_steps, paths_per_block),
never on the number of simulations or on the strategy consuming it.

See: Salmon et al. (2011) "Parallel random numbers: as easy as 1, 2, 3"
"""

from dataclasses import dataclass
from typing import Iterator

import numpy as np

#: Counter words reserved per block. Philox advances the low 64-bit word.
_BLOCK_COUNTER_SHIFT = 64


@dataclass(frozen=True)
class BlockSpec:
    """
    One unit of parallel work: a contiguous range of simulation indices.

    Attributes
    ----------
    index : int
        Block index (selects the random sub-stream)
    start : int
        First simulation index in the block
    n_paths : int
        Number of paths in the block
    """

    index: int
    start: int
    n_paths: int

    @property
    def stop(self) -> int:
        """One past the last simulation index."""
        return self.start + self.n_paths


def partition_simulations(n_sims: int, paths_per_block: int) -> list[BlockSpec]:
    """
    Split ``n_sims`` simulations into blocks of ``paths_per_block``.

    The final block holds the remainder.

    Examples
    --------
    >>> [b.n_paths for b in partition_simulations(10, 4)]
    [4, 4, 2]
    """
    if n_sims <= 0:
        raise ValueError(f"CRITICAL: n_sims must be > 0, got {n_sims}")
    if paths_per_block <= 0:
        raise ValueError(f"CRITICAL: paths_per_block must be > 0, got {paths_per_block}")

    return [
        BlockSpec(index=index, start=start, n_paths=min(paths_per_block, n_sims - start))
        for index, start in enumerate(range(0, n_sims, paths_per_block))
    ]


def block_generator(seed: int, block_index: int) -> np.random.Generator:
    """
    Generator for one block's sub-stream.

    Parameters
    ----------
    seed : int
        Non-negative run seed (Philox key)
    block_index : int
        Block index (Philox counter offset)

    Returns
    -------
    np.random.Generator
        Generator positioned at the start of the block's sub-stream
    """
    if seed < 0:
        raise ValueError(f"CRITICAL: seed must be >= 0, got {seed}")
    if block_index < 0:
        raise ValueError(f"CRITICAL: block_index must be >= 0, got {block_index}")
    bit_generator = np.random.Philox(key=seed, counter=block_index << _BLOCK_COUNTER_SHIFT)
    return np.random.Generator(bit_generator)


def block_normals(
    seed: int,
    block: BlockSpec,
    n_steps: int,
    dtype: type = np.float64,
) -> np.ndarray:
    """
    Standard-normal increments for every path of a block.

    Draws are made in float64 and cast explicitly to ``dtype`` so that single and
    double precision runs consume identical draws.

    Returns
    -------
    np.ndarray
        Shape (block.n_paths, n_steps)
    """
    rng = block_generator(seed, block.index)
    z = rng.standard_normal((block.n_paths, n_steps))
    return z.astype(dtype, copy=False)


def iter_row_chunks(
    seed: int,
    block: BlockSpec,
    n_steps: int,
    chunk_rows: int,
    dtype: type = np.float64,
) -> Iterator[np.ndarray]:
    """
    Yield the block's increments in chunks of at most ``chunk_rows`` paths.

    One generator is advanced over consecutive rows, so stacking the chunks gives
    exactly ``block_normals``. Only one chunk of draws is alive at a time.

    Yields
    ------
    np.ndarray
        Shape (rows, n_steps) with rows <= chunk_rows
    """
    if chunk_rows <= 0:
        raise ValueError(f"CRITICAL: chunk_rows must be > 0, got {chunk_rows}")
    rng = block_generator(seed, block.index)
    for start in range(0, block.n_paths, chunk_rows):
        rows = min(chunk_rows, block.n_paths - start)
        yield rng.standard_normal((rows, n_steps)).astype(dtype, copy=False)


def path_increments(
    seed: int,
    sim_index: int,
    n_steps: int,
    paths_per_block: int,
    dtype: type = np.float64,
) -> np.ndarray:
    """
    Increment sequence of a single simulation.

    Parameters
    ----------
    seed : int
        Run seed
    sim_index : int
        Simulation index
    n_steps : int
        Number of increments
    paths_per_block : int
        Block size used to partition the run
    dtype : type
        Working precision

    Returns
    -------
    np.ndarray
        Shape (n_steps,)
    """
    if sim_index < 0:
        raise ValueError(f"CRITICAL: sim_index must be >= 0, got {sim_index}")
    block_index, row = divmod(sim_index, paths_per_block)
    # Draws are consumed row-major, so generating up to the row is enough.
    block = BlockSpec(index=block_index, start=block_index * paths_per_block, n_paths=row + 1)
    return block_normals(seed, block, n_steps, dtype)[row]
