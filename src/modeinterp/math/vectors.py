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
"""Distance measures between flattened blocks of (possibly complex) vector elements.

All functions accept two equally-sized 1D arrays and return a non-negative float. The
Hermitian family uses the conjugate-symmetric inner product so that two vectors differing only
by a global complex phase are considered parallel.
"""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray

__all__ = [
    "hermitian_product",
    "vector_distance",
    "vector_product",
    "vector_angle",
    "hermitian_angle",
    "sin2_hermitian_angle",
    "magnitude_sum",
    "euclidean_distance",
]


def hermitian_product(a: NDArray, b: NDArray) -> complex:
    """Return the Hermitian inner product ``<a|b> = sum(conj(a) * b)``."""
    return np.vdot(a, b)


def _norms(a: NDArray, b: NDArray) -> tuple[float, float]:
    return float(np.linalg.norm(a)), float(np.linalg.norm(b))


def magnitude_sum(a: NDArray, b: NDArray) -> float:
    """Sum of the magnitudes of the component-wise differences."""
    return float(np.sum(np.abs(a - b)))


def euclidean_distance(a: NDArray, b: NDArray) -> float:
    """Euclidean norm of the difference."""
    return float(np.linalg.norm(a - b))


def vector_distance(a: NDArray, b: NDArray) -> float:
    """Norm of the difference normalised by the sum of the norms.

    The result lies in ``[0, 1]``; two zero vectors are at zero distance.
    """
    na, nb = _norms(a, b)
    if na + nb == 0:
        return 0.0
    return float(np.linalg.norm(a - b)) / (na + nb)


def vector_product(a: NDArray, b: NDArray) -> float:
    """Real part of the normalised inner product ``Re<a|b> / (|a| |b|)``.

    Two zero vectors are parallel and yield 1; a single zero vector yields 0.
    """
    na, nb = _norms(a, b)
    if na == 0 and nb == 0:
        return 1.0
    if na == 0 or nb == 0:
        return 0.0
    return float(np.real(hermitian_product(a, b))) / (na * nb)


def vector_angle(a: NDArray, b: NDArray) -> float:
    """Angle between two vectors, in ``[0, pi]``."""
    return float(np.arccos(np.clip(vector_product(a, b), -1.0, 1.0)))


def _cos_hermitian_angle(a: NDArray, b: NDArray) -> float:
    na, nb = _norms(a, b)
    if na == 0 and nb == 0:
        return 1.0
    if na == 0 or nb == 0:
        return 0.0
    return min(1.0, float(np.abs(hermitian_product(a, b))) / (na * nb))


def hermitian_angle(a: NDArray, b: NDArray) -> float:
    """Hermitian angle ``arccos(|<a|b>| / (|a| |b|))``, in ``[0, pi/2]``.

    Invariant under multiplication of either vector by a global phase.
    """
    return float(np.arccos(_cos_hermitian_angle(a, b)))


def sin2_hermitian_angle(a: NDArray, b: NDArray) -> float:
    """Squared sine of the Hermitian angle, ``1 - cos**2``.

    Evaluated without the inverse cosine so that nearly collinear vectors score close to zero
    without loss of precision.
    """
    c = _cos_hermitian_angle(a, b)
    return max(0.0, 1.0 - c * c)
