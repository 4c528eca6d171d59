import threading

import numpy as np
import pytest

from modeinterp.parallel import ScratchPool, run_chunks, split_range


def test_split_range():
    """Test that chunks are contiguous, non-empty and cover the range."""
    chunks = split_range(10, 3)
    assert len(chunks) == 3
    assert [i for chunk in chunks for i in chunk] == list(range(10))

    assert split_range(2, 5) == [range(0, 1), range(1, 2)]
    assert split_range(0, 4) == []


def test_run_chunks_order():
    """Test that chunk results are returned in order, serially and in parallel."""
    assert run_chunks(sum, 10) == [45]
    results = run_chunks(sum, 10, workers=4)
    assert len(results) == 4
    assert sum(results) == 45
    assert results == [sum(chunk) for chunk in split_range(10, 4)]


def test_run_chunks_propagates_errors():
    def fail(chunk):
        raise KeyError(chunk.start)

    with pytest.raises(KeyError):
        run_chunks(fail, 8, workers=2)
    with pytest.raises(ValueError, match="must be positive"):
        run_chunks(sum, 8, workers=0)


def test_scratch_pool():
    """Test that a slot is returned to the pool even when the block raises."""
    pool = ScratchPool(1, (2, 3), np.complex128)
    assert len(pool) == 1

    with pytest.raises(RuntimeError):
        with pool.acquire() as scratch:
            assert scratch.shape == (2, 3)
            assert scratch.dtype == np.complex128
            raise RuntimeError

    # would block forever if the slot had not been released
    with pool.acquire():
        pass

    with pytest.raises(ValueError, match="at least one slot"):
        ScratchPool(0, (1,), float)


def test_scratch_pool_exclusive():
    """Test that no two workers hold the same buffer at the same time."""
    pool = ScratchPool(2, (1,), float)
    held = set()
    lock = threading.Lock()

    def work(chunk):
        with pool.acquire() as scratch:
            with lock:
                assert id(scratch) not in held
                held.add(id(scratch))
            for i in chunk:
                scratch[0] = i
            with lock:
                held.remove(id(scratch))
        return True

    assert all(run_chunks(work, 100, workers=2))
