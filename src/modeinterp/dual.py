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
"""Module pairing eigenvalue-like and eigenvector-like data sharing one mode ordering."""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np
from numpy.typing import ArrayLike, NDArray

from .interpolator import Interpolator, resolve_permutations, split_pairs
from .parallel import run_chunks
from .permutation import EqualModeSearch, PermutationTable, any_equal_modes
from .symmetry import GammaTable, PointSymmetry

__all__ = ["DualInterpolator"]


class DualInterpolator:
    """Two interpolated quantities describing the same modes at the same vertices.

    Typically `values` holds eigenvalues (phonon energies) and `vectors` the matching
    eigenvectors. A single permutation per vertex, resolved from the summed costs of both
    quantities, is applied to both, so the interpolated eigenvalue and eigenvector of a mode
    always stay together.

    Parameters
    ----------
    values
        Interpolator of the first quantity.
    vectors
        Interpolator of the second quantity.
    search
        Strategy of the degeneracy check, by default `EqualModeSearch()`.
    """

    def __init__(
        self,
        values: Interpolator,
        vectors: Interpolator,
        search: EqualModeSearch | None = None,
    ):
        self._values: Interpolator = values
        self._vectors: Interpolator = vectors
        self._search: EqualModeSearch = search or EqualModeSearch()
        self._check()
        self._table: PermutationTable = PermutationTable(values.size(), values.branches())

    def _check(self) -> None:
        if self._values.size() != self._vectors.size():
            raise ValueError(
                f"Values ({self._values.size()} points) and vectors "
                + f"({self._vectors.size()} points) must be defined on the same vertices."
            )
        if self._values.branches() != self._vectors.branches():
            raise ValueError(
                f"Values ({self._values.branches()} modes) and vectors "
                + f"({self._vectors.branches()} modes) must describe the same modes."
            )

    def __str__(self) -> str:
        return f"values {self._values.to_string()}; vectors {self._vectors.to_string()}"

    @property
    def values(self) -> Interpolator:
        """Interpolator of the eigenvalue-like quantity."""
        return self._values

    @property
    def vectors(self) -> Interpolator:
        """Interpolator of the eigenvector-like quantity."""
        return self._vectors

    @property
    def table(self) -> PermutationTable:
        """Cache of the permutations resolved so far."""
        return self._table

    def size(self) -> int:
        """Number of stored vertices."""
        return self._values.size()

    def branches(self) -> int:
        """Number of modes per vertex."""
        return self._values.branches()

    def bytes_per_point(self) -> int:
        """Number of bytes stored per vertex for both quantities."""
        return self._values.bytes_per_point() + self._vectors.bytes_per_point()

    def replace_data(
        self,
        values: ArrayLike | None = None,
        vectors: ArrayLike | None = None,
        value_elements: Sequence[int] | None = None,
        vector_elements: Sequence[int] | None = None,
    ) -> None:
        """Replace the data of one or both quantities, keeping their transformation rules.

        The element layouts default to the current ones. The cached permutations are
        discarded.

        Raises
        ------
        ValueError
            If the new data is invalid or the two quantities no longer describe the same
            modes at the same vertices. Both quantities are then left unchanged.
        """
        saved = [(q, q.data, q.elements) for q in (self._values, self._vectors)]
        try:
            if values is not None:
                elements = self._values.elements if value_elements is None else value_elements
                self._values.replace_data(values, elements, self._values.rotates_like)
            if vectors is not None:
                elements = self._vectors.elements if vector_elements is None else vector_elements
                self._vectors.replace_data(vectors, elements, self._vectors.rotates_like)
            self._check()
        except ValueError:
            for quantity, data, elements in saved:
                quantity.replace_data(data, elements, quantity.rotates_like)
            raise
        self._table = PermutationTable(self.size(), self.branches())

    def any_equal_modes(self, index: int) -> bool:
        """Whether two modes at vertex `index` are equal in both quantities."""
        blocks = [self._values.mode_blocks(index), self._vectors.mode_blocks(index)]
        return any_equal_modes(blocks, self._search)

    def permutations(self, indices: Sequence[int]) -> list[NDArray[np.intp]]:
        """Permutations matching the modes of every vertex in `indices` to those of the first."""
        return resolve_permutations(
            [self._values, self._vectors], indices, self._table, self._search
        )

    def expand(
        self,
        symmetry: PointSymmetry,
        forward_map: ArrayLike,
        inverse_map: ArrayLike,
        gamma: GammaTable | None = None,
        workers: int = 1,
    ) -> bool:
        """Rotate both quantities onto every symmetry-equivalent vertex.

        Both quantities are rotated into copies first; the stored data is only replaced once
        both rotations succeeded.

        Returns
        -------
        bool
            True if either quantity changed.
        """
        rotated = []
        for quantity in (self._values, self._vectors):
            x = np.array(quantity.data)
            if quantity.rotate_in_place(x, symmetry, forward_map, inverse_map, gamma, workers):
                rotated.append((quantity, x))

        for quantity, x in rotated:
            quantity.replace_data(x, quantity.elements, quantity.rotates_like)
        if rotated:
            self._table.clear()
        return bool(rotated)

    def interpolate_at(
        self,
        indices: Sequence[int] | Sequence[tuple[int, float]],
        weights: Sequence[float] | None = None,
    ) -> tuple[NDArray, NDArray]:
        """Interpolate both quantities at one point.

        Returns
        -------
        values
            ``(1, ...)`` interpolated values.
        vectors
            ``(1, ...)`` interpolated vectors.
        """
        indices, weights = split_pairs(indices, weights)
        permutations = self.permutations(indices)
        values = self._values.interpolate_at(indices, weights, permutations=permutations)
        vectors = self._vectors.interpolate_at(
            indices,
            weights,
            permutations=permutations,
            arbitrary_phase_allowed=np.iscomplexobj(self._vectors.data),
        )
        return values, vectors

    def interpolate_many(
        self,
        indices: Sequence[Sequence[int]],
        weights: Sequence[Sequence[float]],
        workers: int = 1,
    ) -> tuple[NDArray, NDArray]:
        """Interpolate both quantities at a batch of points.

        Returns
        -------
        values
            ``(Q, ...)`` interpolated values.
        vectors
            ``(Q, ...)`` interpolated vectors.
        """
        if len(indices) != len(weights):
            raise ValueError(
                f"The number of index lists ({len(indices)}) and weight lists "
                + f"({len(weights)}) differ."
            )
        permutations = [None] * len(indices)

        def work(chunk: range) -> None:
            for q in chunk:
                permutations[q] = self.permutations(split_pairs(indices[q], weights[q])[0])

        run_chunks(work, len(indices), workers)

        values = self._values.interpolate_many(
            indices, weights, permutations=permutations, workers=workers
        )
        vectors = self._vectors.interpolate_many(
            indices,
            weights,
            permutations=permutations,
            arbitrary_phase_allowed=np.iscomplexobj(self._vectors.data),
            workers=workers,
        )
        return values, vectors
