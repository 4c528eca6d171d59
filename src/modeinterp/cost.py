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
"""Module defining the dissimilarity cost between modes stored at two points."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from enum import Enum

import numpy as np
from numpy.typing import NDArray

from .math import vectors

__all__ = ["ScalarCost", "VectorCost", "CostSpec", "matrix_distance"]

logger = logging.getLogger(__name__)


class ScalarCost(Enum):
    """Formula used to compare the scalar elements of two modes."""

    MAGNITUDE = 0
    EUCLIDEAN = 1

    @property
    def function(self) -> Callable[[NDArray, NDArray], float]:
        return _SCALAR_FUNCTIONS[self]

    @classmethod
    def from_code(cls, code: int) -> ScalarCost:
        """Select a formula by its integer code."""
        try:
            return cls(int(code))
        except ValueError as err:
            raise ValueError(
                f"Unknown scalar cost function code {code}. "
                + f"Valid codes are {[member.value for member in cls]}."
            ) from err


class VectorCost(Enum):
    """Formula used to compare the flattened vector elements of two modes.

    The default, `SIN2_HERMITIAN_ANGLE`, scores collinear vectors close to zero regardless of a
    global complex phase.
    """

    SIN2_HERMITIAN_ANGLE = 0
    DISTANCE = 1
    PRODUCT = 2
    ANGLE = 3
    HERMITIAN_ANGLE = 4

    @property
    def function(self) -> Callable[[NDArray, NDArray], float]:
        return _VECTOR_FUNCTIONS[self]

    @classmethod
    def from_code(cls, code: int) -> VectorCost:
        """Select a formula by its integer code."""
        try:
            return cls(int(code))
        except ValueError as err:
            raise ValueError(
                f"Unknown vector cost function code {code}. "
                + f"Valid codes are {[member.value for member in cls]}."
            ) from err


def _one_minus_product(a: NDArray, b: NDArray) -> float:
    return 1.0 - vectors.vector_product(a, b)


def matrix_distance(a: NDArray, b: NDArray) -> float:
    """Sum over matrices of the Frobenius norm of their difference.

    Parameters
    ----------
    a, b
        Flattened blocks of ``9 * M`` matrix elements.
    """
    diff = np.reshape(a - b, (-1, 9))
    return float(np.sum(np.linalg.norm(diff, axis=1)))


_SCALAR_FUNCTIONS = {
    ScalarCost.MAGNITUDE: vectors.magnitude_sum,
    ScalarCost.EUCLIDEAN: vectors.euclidean_distance,
}

_VECTOR_FUNCTIONS = {
    VectorCost.SIN2_HERMITIAN_ANGLE: vectors.sin2_hermitian_angle,
    VectorCost.DISTANCE: vectors.vector_distance,
    VectorCost.PRODUCT: _one_minus_product,
    VectorCost.ANGLE: vectors.vector_angle,
    VectorCost.HERMITIAN_ANGLE: vectors.hermitian_angle,
}


@dataclass(frozen=True)
class CostSpec:
    """Selection of the cost formulas and the relative weight of each element type.

    Parameters
    ----------
    scalar
        Formula comparing scalar elements, by default `ScalarCost.MAGNITUDE`.
    vector
        Formula comparing vector elements, by default `VectorCost.SIN2_HERMITIAN_ANGLE`.
    weights
        Multiplicative weights of the scalar, vector and matrix contributions,
        by default ``(1, 1, 1)``.
    """

    scalar: ScalarCost = ScalarCost.MAGNITUDE
    vector: VectorCost = VectorCost.SIN2_HERMITIAN_ANGLE
    weights: tuple[float, float, float] = field(default=(1.0, 1.0, 1.0))

    def __post_init__(self):
        if not isinstance(self.scalar, ScalarCost):
            raise TypeError(f"Expected a ScalarCost, but got {type(self.scalar)}.")
        if not isinstance(self.vector, VectorCost):
            raise TypeError(f"Expected a VectorCost, but got {type(self.vector)}.")
        weights = tuple(float(w) for w in self.weights)
        if len(weights) != 3:
            raise ValueError(
                "Exactly three weights (scalar, vector, matrix) are required, "
                + f"got {len(weights)}."
            )
        if any(w < 0 for w in weights):
            raise ValueError(f"Cost weights must be non-negative, got {weights}.")
        object.__setattr__(self, "weights", weights)
        logger.debug("Selected %s scalar and %s vector cost.", self.scalar.name, self.vector.name)

    @classmethod
    def from_codes(
        cls, scalar: int = 0, vector: int = 0, weights: Sequence[float] = (1.0, 1.0, 1.0)
    ) -> CostSpec:
        """Create a `CostSpec` from integer formula codes."""
        return cls(ScalarCost.from_code(scalar), VectorCost.from_code(vector), tuple(weights))

    def cost(self, a: NDArray, b: NDArray, counts: tuple[int, int, int]) -> float:
        """Return the weighted dissimilarity between two flattened mode blocks.

        Parameters
        ----------
        a, b
            Raw elements of one mode each, ordered scalars, vectors then matrices.
        counts
            Number of raw scalar, vector and matrix elements in the blocks.
        """
        ns, nv, nm = counts
        total = 0.0
        if ns:
            total += self.weights[0] * self.scalar.function(a[:ns], b[:ns])
        if nv:
            total += self.weights[1] * self.vector.function(a[ns : ns + nv], b[ns : ns + nv])
        if nm:
            total += self.weights[2] * matrix_distance(a[ns + nv :], b[ns + nv :])
        return total
