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
"""Approximate equality predicates with a fixed relative tolerance."""

from __future__ import annotations

import numpy as np
from numpy.typing import ArrayLike

__all__ = ["RELATIVE_TOLERANCE", "ABSOLUTE_TOLERANCE", "approx_scalar", "approx_vector"]

RELATIVE_TOLERANCE = 100 * np.finfo(np.float64).eps
ABSOLUTE_TOLERANCE = 100 * np.finfo(np.float64).eps


def approx_scalar(
    a: complex, b: complex, rtol: float = RELATIVE_TOLERANCE, atol: float = ABSOLUTE_TOLERANCE
) -> bool:
    """Check whether two scalars are equal within tolerance.

    The difference is compared against ``rtol * |a + b|`` unless both values are
    themselves close to zero, in which case ``atol`` is used.

    Parameters
    ----------
    a, b
        Real or complex scalars.
    rtol
        Relative tolerance, by default `RELATIVE_TOLERANCE`.
    atol
        Absolute tolerance used close to zero, by default `ABSOLUTE_TOLERANCE`.
    """
    if abs(a) <= atol and abs(b) <= atol:
        return bool(abs(a - b) <= atol)
    return bool(abs(a - b) <= rtol * abs(a + b))


def approx_vector(
    a: ArrayLike, b: ArrayLike, rtol: float = RELATIVE_TOLERANCE, atol: float = ABSOLUTE_TOLERANCE
) -> bool:
    """Check element-wise whether two equally-sized arrays are equal within tolerance.

    Parameters
    ----------
    a, b
        Arrays of any (matching) shape, real or complex.
    rtol
        Relative tolerance, by default `RELATIVE_TOLERANCE`.
    atol
        Absolute tolerance used for elements close to zero, by default `ABSOLUTE_TOLERANCE`.

    Returns
    -------
    bool
        True if every pair of elements is approximately equal.

    Raises
    ------
    ValueError
        If the arrays differ in size.
    """
    a = np.ravel(a)
    b = np.ravel(b)
    if a.size != b.size:
        raise ValueError(f"Can not compare arrays of size {a.size} and {b.size}.")

    diff = np.abs(a - b)
    small = (np.abs(a) <= atol) & (np.abs(b) <= atol)
    limit = np.where(small, atol, rtol * np.abs(a + b))
    return bool(np.all(diff <= limit))
