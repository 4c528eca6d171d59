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
"""Module defining the mode-aware interpolator of data stored at mesh vertices."""

from __future__ import annotations

import warnings
from collections.abc import Sequence

import numpy as np
from numpy.typing import ArrayLike, NDArray

from .cost import CostSpec, matrix_distance
from .layout import ModeLayout, branches, check_elements, only_vector_or_matrix
from .parallel import ScratchPool, run_chunks
from .permutation import EqualModeSearch, PermutationTable, any_equal_modes, resolve_permutation
from .symmetry import GammaTable, PointSymmetry, RotationKind
from .symmetry import rotate_in_place as _rotate_in_place

__all__ = ["Interpolator", "as_layout", "split_pairs", "resolve_permutations"]

_ELEMENT_NAMES = ("scalar", "vector", "matrix")


def as_layout(elements: ModeLayout | Sequence[int]) -> ModeLayout:
    """Convert a raw ``(S, 3V, 9M)`` element triple to a `ModeLayout`."""
    if isinstance(elements, ModeLayout):
        return elements
    elements = tuple(elements)
    if len(elements) != 3:
        raise ValueError(
            "Elements must be given as (scalars, vector elements, matrix elements), "
            + f"got {elements}."
        )
    return ModeLayout(*elements)


def split_pairs(
    indices: Sequence[int] | Sequence[tuple[int, float]], weights: Sequence[float] | None
) -> tuple[NDArray[np.intp], NDArray[np.float64]]:
    """Normalise the two accepted forms of a query to index and weight arrays.

    Either `indices` holds ``(vertex, weight)`` pairs and `weights` is None, or both are
    equally long sequences.
    """
    if weights is None:
        pairs = list(indices)
        try:
            indices = [int(vertex) for vertex, _ in pairs]
            weights = [float(weight) for _, weight in pairs]
        except (TypeError, ValueError) as err:
            raise ValueError(
                "Without weights the vertices must be given as (vertex, weight) pairs, "
                + f"got {pairs}."
            ) from err
    indices = np.asarray(indices, dtype=np.intp).ravel()
    weights = np.asarray(weights, dtype=np.float64).ravel()
    if indices.size != weights.size:
        raise ValueError(
            f"The number of vertex indices ({indices.size}) and weights ({weights.size}) differ."
        )
    if not indices.size:
        raise ValueError("At least one vertex is required to interpolate.")
    return indices, weights


def resolve_permutations(
    sources: Sequence[Interpolator],
    indices: Sequence[int],
    table: PermutationTable | None = None,
    search: EqualModeSearch | None = None,
) -> list[NDArray[np.intp]]:
    """Permutations matching the modes of every vertex in `indices` to those of the first.

    Resolved permutations are read from and stored in `table` when one is given.
    """
    reference = int(indices[0])
    permutations = []
    for vertex in indices:
        vertex = int(vertex)
        permutation = None if table is None else table.get(reference, vertex)
        if permutation is None:
            permutation = resolve_permutation(sources, reference, vertex, search)
            if table is not None:
                table.set(reference, vertex, permutation)
        permutations.append(permutation)
    return permutations


class Interpolator:
    """Per-mode data stored at mesh vertices, interpolated without mixing unrelated modes.

    Parameters
    ----------
    data
        Array-like of shape ``(P,)``, ``(P, X)``, ``(P, B, Y)``, ``(P, B, V, 3)`` or
        ``(P, B, M, 3, 3)`` for ``P`` vertices and ``B`` modes. By default None: an empty
        ``(0, 0)`` array.
    elements
        Number of raw scalar, vector and matrix elements per mode. By default all zero,
        the layout is then inferred from the shape of `data`.
    rotates_like
        How the stored quantity transforms under symmetry operations,
        by default `RotationKind.REAL`.
    cost
        Formulas and weights used to compare modes, by default `CostSpec()`.
    """

    def __init__(
        self,
        data: ArrayLike | None = None,
        elements: ModeLayout | Sequence[int] = (0, 0, 0),
        rotates_like: RotationKind | str = RotationKind.REAL,
        cost: CostSpec | None = None,
    ):
        self._data: NDArray = np.empty((0, 0))
        self._layout: ModeLayout = ModeLayout()
        self._rotates_like: RotationKind = RotationKind.REAL
        self._cost: CostSpec = cost or CostSpec()

        if data is None:
            data = np.zeros((0, 0))
        self.replace_data(data, elements, rotates_like)

    def __str__(self) -> str:
        return self.to_string()

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}: {self.to_string()}>"

    @property
    def data(self) -> NDArray:
        """Read-only stored data."""
        return self._data

    @property
    def elements(self) -> ModeLayout:
        """Layout of the raw elements of each mode."""
        return self._layout

    @property
    def rotates_like(self) -> RotationKind:
        """How the stored quantity transforms under symmetry operations."""
        return self._rotates_like

    @rotates_like.setter
    def rotates_like(self, value: RotationKind | str):
        self._rotates_like = RotationKind(value)

    @property
    def cost_spec(self) -> CostSpec:
        """Formulas and weights used to compare modes."""
        return self._cost

    @cost_spec.setter
    def cost_spec(self, value: CostSpec):
        if not isinstance(value, CostSpec):
            raise TypeError(f"Expected a CostSpec, but got {type(value)}.")
        self._cost = value

    def set_cost_info(
        self, scalar: int = 0, vector: int = 0, weights: Sequence[float] | None = None
    ) -> None:
        """Select the cost formulas by integer code, optionally changing the weights."""
        weights = self._cost.weights if weights is None else weights
        self._cost = CostSpec.from_codes(scalar, vector, weights)

    def size(self) -> int:
        """Number of stored vertices."""
        return self._data.shape[0]

    def branches(self) -> int:
        """Number of modes per vertex."""
        return branches(self._data.shape, self._layout)

    def branch_span(self) -> int:
        """Number of raw elements per mode."""
        return self._layout.span

    def count_scalars_vectors_matrices(self) -> tuple[int, int, int]:
        """Number of scalars, 3-vectors and (3, 3) matrices per mode."""
        return self._layout.counts

    def only_vector_or_matrix(self) -> bool:
        """Whether the stored data has a pure ``(P, B, V, 3)`` or ``(P, B, M, 3, 3)`` shape."""
        return only_vector_or_matrix(self._data.shape)

    def bytes_per_point(self) -> int:
        """Number of bytes stored per vertex."""
        if not self._data.shape[0]:
            return 0
        return self._data.size // self._data.shape[0] * self._data.itemsize

    def to_string(self) -> str:
        """Human readable summary of the stored data."""
        text = "{ " + " ".join(str(s) for s in self._data.shape) + " } data"
        b = self.branches()
        if b:
            text += f" with {b} mode" + ("s" if b > 1 else "")
        parts = [
            f"{count} {name}"
            for count, name in zip(self._layout.counts, _ELEMENT_NAMES)
            if count
        ]
        if parts:
            if len(parts) > 1:
                listed = ", ".join(parts[:-1]) + " and " + parts[-1]
            else:
                listed = parts[0]
            text += " of " + listed + " element" + ("s" if self.branch_span() > 1 else "")
        return text

    def setup_fake(self, size: int, branches: int) -> None:
        """Replace the data by zeros for `size` vertices with `branches` scalar modes."""
        self._data = np.zeros((int(size), int(branches)))
        self._data.setflags(write=False)
        self._layout = ModeLayout(1, 0, 0)

    def replace_data(
        self,
        data: ArrayLike,
        elements: ModeLayout | Sequence[int] = (0, 0, 0),
        rotates_like: RotationKind | str = RotationKind.REAL,
    ) -> None:
        """Replace the stored data, its element layout and transformation rule.

        Parameters
        ----------
        data
            New data, see the class description for the accepted shapes.
        elements
            Raw element counts, all zero to infer them from the shape of `data`.
        rotates_like
            Transformation rule of the new data, by default `RotationKind.REAL`.

        Raises
        ------
        ValueError
            If the layout is invalid or incompatible with the shape of `data`. The previously
            stored data is then kept.
        """
        layout = as_layout(elements)
        rotates_like = RotationKind(rotates_like)
        data = np.array(data)
        if np.iscomplexobj(data):
            data = data.astype(np.complex128, copy=False)
        else:
            data = data.astype(np.float64, copy=False)
        layout = check_elements(data.shape, layout)

        data.setflags(write=False)
        self._data = data
        self._layout = layout
        self._rotates_like = rotates_like

    def _mode_view(self, data: NDArray) -> tuple[NDArray, slice]:
        """View `data` as ``(P, B, span)`` and select the elements carrying a complex phase."""
        if not data.flags.c_contiguous:
            raise ValueError("Interpolated data arrays must be C-contiguous.")
        view = data.reshape(data.shape[0], self.branches(), self.branch_span())
        if self.only_vector_or_matrix():
            return view, slice(None)
        return view, slice(self._layout.scalars, None)

    def mode_blocks(self, index: int) -> NDArray:
        """The ``(B, span)`` raw elements of every mode at vertex `index`."""
        view, _ = self._mode_view(self._data)
        return view[index]

    def new_output(self, num: int) -> NDArray:
        """Zeroed array able to hold interpolated data for `num` points."""
        return np.zeros((int(num),) + self._data.shape[1:], dtype=self._data.dtype)

    def add_cost(self, i0: int, i1: int, cost: NDArray[np.float64]) -> None:
        """Add the cost of matching each mode at vertex `i0` to each mode at vertex `i1`.

        Parameters
        ----------
        i0, i1
            Vertex indices.
        cost
            ``(B, B)`` array, modified in place. ``cost[i, j]`` is increased by the weighted
            dissimilarity of mode ``i`` at `i0` and mode ``j`` at `i1`.
        """
        b = self.branches()
        if cost.shape != (b, b):
            raise ValueError(f"The cost array must have shape ({b}, {b}), got {cost.shape}.")
        x0 = self.mode_blocks(i0)
        x1 = self.mode_blocks(i1)

        spec = self._cost
        if self.only_vector_or_matrix():
            if self._data.ndim == 4:
                weight, distance = spec.weights[1], spec.vector.function
            else:
                weight, distance = spec.weights[2], matrix_distance
            for i in range(b):
                for j in range(b):
                    cost[i, j] += weight * distance(x0[i], x1[j])
            return

        counts = self._layout.as_tuple()
        for i in range(b):
            for j in range(b):
                cost[i, j] += spec.cost(x0[i], x1[j], counts)

    def any_equal_modes(self, index: int, search: EqualModeSearch | None = None) -> bool:
        """Whether two modes at vertex `index` are numerically indistinguishable."""
        return any_equal_modes([self.mode_blocks(int(index))], search)

    def permutations(
        self,
        indices: Sequence[int],
        table: PermutationTable | None = None,
        search: EqualModeSearch | None = None,
    ) -> list[NDArray[np.intp]]:
        """Permutations matching the modes of every vertex in `indices` to those of the first."""
        return resolve_permutations([self], indices, table, search)

    def rotate_in_place(
        self,
        x: NDArray,
        symmetry: PointSymmetry,
        forward_map: ArrayLike,
        inverse_map: ArrayLike,
        gamma: GammaTable | None = None,
        workers: int = 1,
    ) -> bool:
        """Transform the representative data in `x` onto every symmetry-equivalent vertex.

        `x` must have the same per-vertex shape as the stored data. See
        `modeinterp.symmetry.rotate_in_place` for the meaning of the arguments.

        Returns
        -------
        bool
            True if the data of any vertex changed.
        """
        if x.shape[1:] != self._data.shape[1:]:
            raise ValueError(
                f"Data of shape {x.shape} does not match the stored shape {self._data.shape}."
            )
        return _rotate_in_place(
            x,
            self._layout,
            self._rotates_like,
            symmetry,
            forward_map,
            inverse_map,
            gamma=gamma,
            workers=workers,
        )

    def expand(
        self,
        symmetry: PointSymmetry,
        forward_map: ArrayLike,
        inverse_map: ArrayLike,
        gamma: GammaTable | None = None,
        workers: int = 1,
    ) -> bool:
        """Rotate the stored data onto every symmetry-equivalent vertex.

        Returns
        -------
        bool
            True if the stored data changed.
        """
        x = np.array(self._data)
        changed = self.rotate_in_place(x, symmetry, forward_map, inverse_map, gamma, workers)
        if changed:
            x.setflags(write=False)
            self._data = x
        return changed

    def interpolate_at(
        self,
        indices: Sequence[int] | Sequence[tuple[int, float]],
        weights: Sequence[float] | None = None,
        out: NDArray | None = None,
        to: int = 0,
        permutations: Sequence[ArrayLike] | None = None,
        arbitrary_phase_allowed: bool = False,
        table: PermutationTable | None = None,
        search: EqualModeSearch | None = None,
        scratch: NDArray | None = None,
    ) -> NDArray:
        """Blend the data of several vertices into one output point.

        ``out[to][b] = sum_v weights[v] * data[indices[v]][permutations[v][b]]``

        Parameters
        ----------
        indices
            Contributing vertex indices, or ``(vertex, weight)`` pairs if `weights` is None.
        weights
            Weight of every contributing vertex, expected to sum to one.
        out
            Output array of shape ``(N, ...)``. By default None: a new single-point array.
        to
            Index of the output point within `out`, by default 0.
        permutations
            Mode permutation of every contributing vertex relative to the first. By default
            None: resolved from the data, using `table` as a cache if given.
        arbitrary_phase_allowed
            Align the global complex phase of every mode to the first vertex before blending.
            Only meaningful for complex data.
        table
            Cache of resolved permutations.
        search
            Strategy of the degeneracy check used when resolving permutations.
        scratch
            ``(B, span)`` buffer of the data type, owned by the caller for this call.

        Returns
        -------
        NDArray
            The output array.
        """
        indices, weights = split_pairs(indices, weights)
        if out is None:
            out = self.new_output(1)
        if arbitrary_phase_allowed and not np.iscomplexobj(self._data):
            warnings.warn(
                "Arbitrary phase alignment requested for real valued data; it is ignored.",
                stacklevel=2,
            )
            arbitrary_phase_allowed = False

        data_view, phased = self._mode_view(self._data)
        out_view, _ = self._mode_view(out)
        target = out_view[to]

        if indices.size == 1 and weights[0] == 1.0:
            target[...] = data_view[indices[0]]
            return out

        if permutations is None:
            permutations = self.permutations(indices, table, search)
        elif len(permutations) != indices.size:
            raise ValueError(
                f"Expected {indices.size} permutations, one per vertex, got {len(permutations)}."
            )
        if scratch is None:
            scratch = np.empty(data_view.shape[1:], dtype=self._data.dtype)

        target[...] = 0
        reference = None
        for vertex, weight, permutation in zip(indices, weights, permutations):
            np.take(data_view[vertex], permutation, axis=0, out=scratch)
            if arbitrary_phase_allowed:
                if reference is None:
                    reference = scratch.copy()
                else:
                    _align_phase(scratch, reference, phased)
            target += weight * scratch
        return out

    def interpolate_many(
        self,
        indices: Sequence[Sequence[int]],
        weights: Sequence[Sequence[float]],
        permutations: Sequence[Sequence[ArrayLike]] | None = None,
        arbitrary_phase_allowed: bool = False,
        table: PermutationTable | None = None,
        search: EqualModeSearch | None = None,
        workers: int = 1,
    ) -> NDArray:
        """Interpolate a batch of independent query points.

        Parameters
        ----------
        indices
            Contributing vertex indices of every query point.
        weights
            Vertex weights of every query point.
        permutations
            Per-query permutations, see `interpolate_at`. By default None: resolved.
        arbitrary_phase_allowed
            See `interpolate_at`.
        table
            Shared cache of resolved permutations.
        search
            Strategy of the degeneracy check.
        workers
            Number of threads, by default 1.

        Returns
        -------
        NDArray
            ``(Q, ...)`` array of interpolated data.
        """
        if len(indices) != len(weights):
            raise ValueError(
                f"The number of index lists ({len(indices)}) and weight lists "
                + f"({len(weights)}) differ."
            )
        if permutations is not None and len(permutations) != len(indices):
            raise ValueError("One list of permutations per query point is required.")
        if arbitrary_phase_allowed and not np.iscomplexobj(self._data):
            warnings.warn(
                "Arbitrary phase alignment requested for real valued data; it is ignored.",
                stacklevel=2,
            )
            arbitrary_phase_allowed = False

        out = self.new_output(len(indices))
        view, _ = self._mode_view(self._data)
        pool = ScratchPool(workers, view.shape[1:], self._data.dtype)

        def work(chunk: range) -> None:
            with pool.acquire() as scratch:
                for q in chunk:
                    self.interpolate_at(
                        indices[q],
                        weights[q],
                        out=out,
                        to=q,
                        permutations=None if permutations is None else permutations[q],
                        arbitrary_phase_allowed=arbitrary_phase_allowed,
                        table=table,
                        search=search,
                        scratch=scratch,
                    )

        run_chunks(work, len(indices), workers)
        return out


def _align_phase(block: NDArray, reference: NDArray, phased: slice) -> None:
    """Multiply every mode of `block` by the phase removing its offset from `reference`."""
    product = np.einsum("bi,bi->b", reference[:, phased].conj(), block[:, phased])
    magnitude = np.abs(product)
    factor = np.ones_like(product)
    nonzero = magnitude > 0
    factor[nonzero] = product[nonzero].conj() / magnitude[nonzero]
    block[:, phased] *= factor[:, np.newaxis]
