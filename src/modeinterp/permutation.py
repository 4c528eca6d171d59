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
"""Module restoring a consistent mode ordering between two mesh vertices.

Eigen-solvers sort their output, typically by eigenvalue, so the same physical mode may be
stored at different indices at neighbouring vertices. The permutation mapping the modes of a
reference vertex onto those of another is the solution of the assignment problem on the
``(B, B)`` matrix of mode dissimilarities.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from typing import Protocol

import numpy as np
from numpy.typing import ArrayLike, NDArray
from scipy.optimize import linear_sum_assignment

from .math import approx_scalar, approx_vector

__all__ = [
    "EqualModeSearch",
    "any_equal_modes",
    "find_permutation",
    "resolve_permutation",
    "PermutationTable",
]

logger = logging.getLogger(__name__)


class CostSource(Protocol):
    """An object holding modes at mesh vertices which can compare them."""

    def branches(self) -> int: ...

    def add_cost(self, i0: int, i1: int, cost: NDArray[np.float64]) -> None: ...

    def mode_blocks(self, index: int) -> NDArray: ...


@dataclass(frozen=True)
class EqualModeSearch:
    """Order and extent of the search for numerically equal modes at one vertex.

    Eigen-solvers emit near-degenerate modes next to each other, so pairs are visited by
    increasing index offset: ``(0, 1), (1, 2), ..., (0, 2), (1, 3), ...``.

    Parameters
    ----------
    max_offset
        Largest index offset compared. By default None: all pairs are compared.
    """

    max_offset: int | None = None

    def __post_init__(self):
        if self.max_offset is not None and self.max_offset < 1:
            raise ValueError(f"The maximum offset must be positive, got {self.max_offset}.")

    def pairs(self, num: int) -> Iterator[tuple[int, int]]:
        """Yield the mode index pairs ``(i, j)``, ``i < j``, to compare among `num` modes."""
        last = num if self.max_offset is None else min(num, self.max_offset + 1)
        for offset in range(1, last):
            for i in range(num - offset):
                yield i, i + offset


def any_equal_modes(blocks: Sequence[NDArray], search: EqualModeSearch | None = None) -> bool:
    """Whether two modes at one vertex are numerically indistinguishable.

    Parameters
    ----------
    blocks
        One ``(B, ...)`` array per interpolated quantity. A pair of modes counts as equal
        only if it is equal in every quantity.
    search
        Pair search strategy, by default `EqualModeSearch()`.
    """
    search = search or EqualModeSearch()
    if not len(blocks):
        return False
    num = len(blocks[0])
    for i, j in search.pairs(num):
        if all(approx_vector(block[i], block[j]) for block in blocks):
            return True
    return False


def find_permutation(cost: ArrayLike) -> NDArray[np.intp]:
    """Solve the assignment problem for a square cost matrix.

    Parameters
    ----------
    cost
        ``(B, B)`` array, ``cost[i, j]`` being the dissimilarity between mode ``i`` of the
        reference vertex and mode ``j`` of the other vertex.

    Returns
    -------
    NDArray
        ``(B,)`` array, the index at the other vertex of every reference mode. The identity
        is preferred whenever it is as cheap as the optimum.
    """
    cost = np.asarray(cost, dtype=np.float64)
    if cost.ndim != 2 or cost.shape[0] != cost.shape[1]:
        raise ValueError(f"The cost matrix must be square. The shape of 'cost' is {cost.shape}.")
    rows, cols = linear_sum_assignment(cost)
    optimum = cost[rows, cols].sum()
    if approx_scalar(float(np.trace(cost)), float(optimum)):
        return np.arange(len(cost))
    permutation = np.empty(len(rows), dtype=np.intp)
    permutation[rows] = cols
    return permutation


def resolve_permutation(
    sources: Sequence[CostSource],
    reference: int,
    other: int,
    search: EqualModeSearch | None = None,
) -> NDArray[np.intp]:
    """Find the modes at vertex `other` corresponding to the modes at vertex `reference`.

    If either vertex holds numerically equal modes any assignment between them is equally
    valid, and the identity is returned.

    Parameters
    ----------
    sources
        Interpolated quantities sharing the same number of modes. Their costs are summed.
    reference
        Index of the reference vertex.
    other
        Index of the vertex whose modes are matched to the reference.
    search
        Strategy of the degeneracy check, by default `EqualModeSearch()`.

    Returns
    -------
    NDArray
        ``(B,)`` permutation, see `find_permutation`.
    """
    num = sources[0].branches()
    if any(source.branches() != num for source in sources):
        raise ValueError("All interpolated quantities must hold the same number of modes.")
    if reference == other:
        return np.arange(num)

    for vertex in (reference, other):
        if any_equal_modes([source.mode_blocks(vertex) for source in sources], search):
            logger.debug("Vertex %d holds equal modes, keeping the identity permutation.", vertex)
            return np.arange(num)

    cost = np.zeros((num, num), dtype=np.float64)
    for source in sources:
        source.add_cost(reference, other, cost)
    return find_permutation(cost)


class PermutationTable:
    """Cache of resolved permutations between pairs of vertices.

    Only the permutation for ``i < j`` is stored; the permutation from ``j`` to ``i`` is its
    inverse.

    Parameters
    ----------
    size
        Number of vertices.
    branches
        Number of modes per vertex.
    """

    def __init__(self, size: int, branches: int):
        self._size: int = int(size)
        self._branches: int = int(branches)
        self._table: dict[tuple[int, int], NDArray[np.intp]] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._table)

    def __contains__(self, key: tuple[int, int]) -> bool:
        i, j = key
        return i == j or (min(i, j), max(i, j)) in self._table

    @property
    def size(self) -> int:
        """Number of vertices."""
        return self._size

    @property
    def branches(self) -> int:
        """Number of modes per vertex."""
        return self._branches

    def _check(self, i: int, j: int) -> None:
        if not (0 <= i < self._size and 0 <= j < self._size):
            raise IndexError(f"Vertex pair ({i}, {j}) is out of range for {self._size} vertices.")

    def get(self, i: int, j: int) -> NDArray[np.intp] | None:
        """Return the cached permutation from vertex `i` to vertex `j`, None if unknown."""
        self._check(i, j)
        if i == j:
            return np.arange(self._branches)
        permutation = self._table.get((min(i, j), max(i, j)))
        if permutation is None or i < j:
            return permutation
        return np.argsort(permutation)

    def set(self, i: int, j: int, permutation: ArrayLike) -> None:
        """Store the permutation from vertex `i` to vertex `j`."""
        self._check(i, j)
        if i == j:
            return
        permutation = np.array(permutation, dtype=np.intp)
        if not np.array_equal(np.sort(permutation), np.arange(self._branches)):
            raise ValueError(
                f"Expected a permutation of {self._branches} modes, "
                + f"got {np.array2string(permutation)}."
            )
        if i > j:
            i, j = j, i
            permutation = np.argsort(permutation)
        permutation.setflags(write=False)
        with self._lock:
            self._table[(i, j)] = permutation

    def clear(self) -> None:
        """Forget all cached permutations, e.g. after the data is replaced."""
        with self._lock:
            self._table.clear()
