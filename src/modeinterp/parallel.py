# Copyright 2023 Euratom
# Copyright 2023 United Kingdom Atomic Energy Authority
# Copyright 2023 Centro de Investigaciones Energéticas, Medioambientales y Tecnológicas
#
# Licensed under the EUPL, Version 1.1 or – as soon they will be approved by the
# European Commission - subsequent versions of the EUPL (the "Licence");
# You may not use this work except in compliance with the Licence.
# You may obtain a copy of the Licence at:
#
# https://joinup.ec.europa.eu/software/page/eupl5
#
# Unless required by applicable law or agreed to in writing, software distributed
# under the Licence is distributed on an "AS IS" basis, WITHOUT WARRANTIES OR
# CONDITIONS OF ANY KIND, either express or implied.
#
# See the Licence for the specific language governing permissions and limitations
# under the Licence.
"""Worker dispatch with per-worker scratch buffers.

Work is split into contiguous chunks of independent items. Each chunk acquires one scratch
buffer from a `ScratchPool` for its whole duration and releases it on every exit path, so no
two workers ever share temporary storage.
"""

from __future__ import annotations

import logging
import queue
from collections.abc import Callable, Iterator
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from typing import TypeVar

import numpy as np
from numpy.typing import DTypeLike, NDArray

__all__ = ["ScratchPool", "split_range", "run_chunks"]

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ScratchPool:
    """Fixed number of equally shaped scratch arrays handed out one per worker.

    Parameters
    ----------
    slots
        Number of scratch arrays, normally the number of workers.
    shape
        Shape of each scratch array.
    dtype
        Data type of each scratch array.
    """

    def __init__(self, slots: int, shape: tuple[int, ...], dtype: DTypeLike):
        slots = int(slots)
        if slots < 1:
            raise ValueError(f"A scratch pool needs at least one slot, got {slots}.")
        self._buffers: list[NDArray] = [np.empty(shape, dtype=dtype) for _ in range(slots)]
        self._free: queue.SimpleQueue[int] = queue.SimpleQueue()
        for slot in range(slots):
            self._free.put(slot)

    def __len__(self) -> int:
        return len(self._buffers)

    @contextmanager
    def acquire(self) -> Iterator[NDArray]:
        """Borrow a scratch array for the duration of a ``with`` block.

        Blocks until a slot is free.
        """
        slot = self._free.get()
        try:
            yield self._buffers[slot]
        finally:
            self._free.put(slot)


def split_range(n: int, chunks: int) -> list[range]:
    """Split ``range(n)`` into at most `chunks` contiguous, non-empty ranges."""
    chunks = max(1, min(int(chunks), n))
    bounds = np.linspace(0, n, chunks + 1).astype(int)
    return [range(start, stop) for start, stop in zip(bounds[:-1], bounds[1:]) if stop > start]


def run_chunks(func: Callable[[range], T], n: int, workers: int = 1) -> list[T]:
    """Apply `func` to contiguous chunks of ``range(n)``, in parallel if ``workers > 1``.

    Returns
    -------
    list
        Results of `func` for every chunk, in order. Exceptions raised by `func` propagate
        to the caller.
    """
    workers = int(workers)
    if workers < 1:
        raise ValueError(f"The number of workers must be positive, got {workers}.")
    chunks = split_range(n, workers)
    if len(chunks) <= 1:
        return [func(chunk) for chunk in chunks]

    logger.debug("Dispatching %d items to %d workers.", n, len(chunks))
    with ThreadPoolExecutor(max_workers=len(chunks)) as executor:
        return list(executor.map(func, chunks))
