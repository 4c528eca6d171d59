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
"""Module applying point-group operations to stored per-mode tensors.

Every interpolated quantity declares how it transforms under a symmetry operation ``R``:

* `RotationKind.REAL`: polar vectors ``R v`` and tensors ``R M R^T``.
* `RotationKind.RECIPROCAL`: as above with the reciprocal-space operation ``inv(R)^T``.
* `RotationKind.AXIAL`: pseudovectors ``det(R) R v`` and pseudotensors ``det(R) R M R^T``.
* `RotationKind.GAMMA`: complex per-atom vectors, rotated, relabelled and phase shifted
  following a `GammaTable`.

Scalars are invariant under every rule.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass
from enum import Enum

if sys.version_info >= (3, 12):
    from typing import override
else:
    from typing_extensions import override  # pyright: ignore[reportUnreachable]
import numpy as np
from numpy.typing import ArrayLike, NDArray

from ..layout import ModeLayout, branches, only_vector_or_matrix
from ..parallel import ScratchPool, run_chunks
from .gamma import GammaTable
from .point import PointSymmetry

__all__ = [
    "RotationKind",
    "RotationContext",
    "RotationRule",
    "RealRule",
    "ReciprocalRule",
    "AxialRule",
    "GammaRule",
    "rule_for",
    "rotate_in_place",
]


class RotationKind(Enum):
    """How the elements of an interpolated quantity transform under a point operation."""

    REAL = "real"
    RECIPROCAL = "reciprocal"
    AXIAL = "axial"
    GAMMA = "gamma"


@dataclass(frozen=True)
class RotationContext:
    """Everything a rule may need to transform the data of one vertex."""

    symmetry: PointSymmetry
    operation: int
    vertex: int
    gamma: GammaTable | None = None


class RotationRule:
    """Transformation of vector and matrix elements under a single point operation.

    Subclasses choose the matrix acting on the elements; the loops over the pure-vector,
    pure-matrix and mixed layouts are shared.
    """

    kind: RotationKind

    def matrix(self, context: RotationContext) -> NDArray[np.float64]:
        """Matrix acting on a 3-vector for the operation in `context`."""
        raise NotImplementedError("To be defined in subclass.")

    def sign(self, context: RotationContext) -> float:
        """Extra factor multiplying the transformed elements."""
        return 1.0

    def check(self, data: NDArray, gamma: GammaTable | None) -> None:
        """Raise if this rule can not be applied to `data`."""

    def rotate_vectors(self, src: NDArray, out: NDArray, context: RotationContext) -> None:
        """Transform a ``(B, V, 3)`` block of vectors into `out`."""
        r = self.sign(context) * self.matrix(context)
        np.einsum("ij,bvj->bvi", r, src, out=out, casting="same_kind")

    def rotate_matrices(self, src: NDArray, out: NDArray, context: RotationContext) -> None:
        """Transform a ``(B, M, 3, 3)`` block of matrices into `out`."""
        r = self.matrix(context)
        np.matmul(r @ src, r.T, out=out)
        if self.sign(context) != 1.0:
            out *= self.sign(context)

    def rotate_mixed(
        self, src: NDArray, out: NDArray, context: RotationContext, layout: ModeLayout
    ) -> None:
        """Transform a ``(B, span)`` block of mixed scalar, vector and matrix elements."""
        ns, nv, nm = layout.as_tuple()
        b = src.shape[0]
        out[:, :ns] = src[:, :ns]
        if nv:
            vec = np.empty((b, nv // 3, 3), dtype=out.dtype)
            self.rotate_vectors(src[:, ns : ns + nv].reshape(b, -1, 3), vec, context)
            out[:, ns : ns + nv] = vec.reshape(b, nv)
        if nm:
            mat = np.empty((b, nm // 9, 3, 3), dtype=out.dtype)
            self.rotate_matrices(src[:, ns + nv :].reshape(b, -1, 3, 3), mat, context)
            out[:, ns + nv :] = mat.reshape(b, nm)


class RealRule(RotationRule):
    """Ordinary (polar) vectors and tensors."""

    kind = RotationKind.REAL

    @override
    def matrix(self, context: RotationContext) -> NDArray[np.float64]:
        return context.symmetry[context.operation]


class ReciprocalRule(RotationRule):
    """Reciprocal-space vectors and tensors, transformed by ``inv(R)^T``."""

    kind = RotationKind.RECIPROCAL

    @override
    def matrix(self, context: RotationContext) -> NDArray[np.float64]:
        return context.symmetry.reciprocal[context.operation]


class AxialRule(RotationRule):
    """Pseudovectors and pseudotensors, which change sign under improper operations."""

    kind = RotationKind.AXIAL

    @override
    def matrix(self, context: RotationContext) -> NDArray[np.float64]:
        return context.symmetry[context.operation]

    @override
    def sign(self, context: RotationContext) -> float:
        return float(context.symmetry.determinants[context.operation])


class GammaRule(RotationRule):
    """Complex per-atom vectors and tensors at the zone centre.

    Element ``k`` of every mode is rotated, multiplied by the phase of the `GammaTable` for
    the ``(vertex, operation)`` pair and moved to element ``atom_map[k]``.
    """

    kind = RotationKind.GAMMA

    @override
    def matrix(self, context: RotationContext) -> NDArray[np.float64]:
        return context.symmetry[context.operation]

    @override
    def check(self, data: NDArray, gamma: GammaTable | None) -> None:
        if not np.iscomplexobj(data):
            raise TypeError("RotatesLike == Gamma requires complex valued data!")
        if gamma is None:
            raise ValueError("RotatesLike == Gamma requires a GammaTable.")

    def _relabel(self, rotated: NDArray, out: NDArray, context: RotationContext) -> None:
        num = rotated.shape[1]
        phase = context.gamma.phase(context.vertex, context.operation, num)
        atom_map = context.gamma.atom_map(context.operation, num)
        extra = (np.newaxis,) * (rotated.ndim - 2)
        out[:, atom_map] = phase[(np.newaxis, slice(None)) + extra] * rotated

    @override
    def rotate_vectors(self, src: NDArray, out: NDArray, context: RotationContext) -> None:
        r = self.matrix(context)
        self._relabel(np.einsum("ij,bvj->bvi", r, src), out, context)

    @override
    def rotate_matrices(self, src: NDArray, out: NDArray, context: RotationContext) -> None:
        r = self.matrix(context)
        self._relabel(r @ src @ r.T, out, context)


_RULES: dict[RotationKind, RotationRule] = {
    RotationKind.REAL: RealRule(),
    RotationKind.RECIPROCAL: ReciprocalRule(),
    RotationKind.AXIAL: AxialRule(),
    RotationKind.GAMMA: GammaRule(),
}


def rule_for(kind: RotationKind) -> RotationRule:
    """Return the rule implementing `kind`.

    Raises
    ------
    RuntimeError
        If `kind` is not a known `RotationKind`.
    """
    try:
        return _RULES[kind]
    except (KeyError, TypeError) as err:
        raise RuntimeError(f"Impossible RotationKind value {kind!r}!") from err


def rotate_in_place(
    x: NDArray,
    layout: ModeLayout,
    kind: RotationKind,
    symmetry: PointSymmetry,
    forward_map: ArrayLike,
    inverse_map: ArrayLike,
    gamma: GammaTable | None = None,
    workers: int = 1,
) -> bool:
    """Overwrite the data of every vertex with the transformed data of its representative.

    Vertex ``v`` receives the data of vertex ``forward_map[v]`` transformed by operation
    ``inverse_map[v]``. The representatives are read from a snapshot taken before any vertex
    is written, so the result does not depend on processing order and vertices can be
    processed concurrently.

    Parameters
    ----------
    x
        C-contiguous data array of shape ``(P, ...)``, modified in place.
    layout
        Layout of the elements of each mode.
    kind
        Transformation rule of the stored quantity.
    symmetry
        Point-group operations indexed by `inverse_map`.
    forward_map
        ``(P,)`` index of the symmetry-irreducible representative of every vertex.
    inverse_map
        ``(P,)`` index of the operation taking the representative to every vertex.
    gamma
        Table of phases and atom maps, required for `RotationKind.GAMMA`.
    workers
        Number of threads, by default 1.

    Returns
    -------
    bool
        True if the data of any vertex changed.

    Raises
    ------
    ValueError
        If the maps do not match the number of vertices or `x` is not C-contiguous.
    TypeError
        If `kind` is `RotationKind.GAMMA` and `x` is not complex.
    """
    rule = rule_for(kind)
    rule.check(x, gamma)

    num = x.shape[0]
    forward_map = np.asarray(forward_map, dtype=np.intp)
    inverse_map = np.asarray(inverse_map, dtype=np.intp)
    if forward_map.shape != (num,) or inverse_map.shape != (num,):
        raise ValueError(
            f"Symmetry maps must have shape ({num},). "
            + f"The shapes are {forward_map.shape} and {inverse_map.shape}."
        )
    if num and (forward_map.min() < 0 or forward_map.max() >= num):
        raise ValueError("The forward map refers to vertices outside of the data.")
    if num and (inverse_map.min() < 0 or inverse_map.max() >= len(symmetry)):
        raise ValueError("The inverse map refers to unknown symmetry operations.")
    if not x.flags.c_contiguous:
        raise ValueError("Data rotated in place must be C-contiguous.")

    if only_vector_or_matrix(x.shape):
        view = x
        if x.ndim == 4:
            apply = rule.rotate_vectors
        else:
            apply = rule.rotate_matrices
    else:
        view = x.reshape(num, branches(x.shape, layout), layout.span)

        def apply(src, out, context):
            rule.rotate_mixed(src, out, context, layout)

    representatives = np.unique(forward_map)
    source = view[representatives]
    source.setflags(write=False)
    where = np.searchsorted(representatives, forward_map)

    pool = ScratchPool(workers, view.shape[1:], view.dtype)

    def work(chunk: range) -> bool:
        changed = False
        with pool.acquire() as scratch:
            for v in chunk:
                context = RotationContext(symmetry, int(inverse_map[v]), v, gamma)
                apply(source[where[v]], scratch, context)
                if not np.array_equal(scratch, view[v]):
                    view[v] = scratch
                    changed = True
        return changed

    return any(run_chunks(work, num, workers))
