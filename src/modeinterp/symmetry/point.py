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
"""Module defining an ordered set of point-group operations."""

from __future__ import annotations

import numpy as np
from numpy.typing import ArrayLike, NDArray

__all__ = ["PointSymmetry"]


class PointSymmetry:
    """Ordered collection of 3x3 point-group rotation matrices.

    The operations may be proper (``det R = +1``) or improper (``det R = -1``). Their order is
    significant: the operation index is what a symmetry map refers to.

    Parameters
    ----------
    rotations
        Array-like of shape ``(N, 3, 3)``.
    """

    def __init__(self, rotations: ArrayLike):
        rotations = np.array(rotations, dtype=np.float64)
        if rotations.ndim == 2:
            rotations = rotations[np.newaxis]

        if rotations.ndim != 3 or rotations.shape[1:] != (3, 3):
            raise ValueError(
                "Attribute 'rotations' must be a (N, 3, 3) array-like. "
                + f"The shape of 'rotations' is {rotations.shape}."
            )
        if not len(rotations):
            raise ValueError("At least one symmetry operation is required.")

        determinants = np.linalg.det(rotations)
        if np.any(np.isclose(determinants, 0)):
            raise ValueError("Symmetry operations must be invertible.")

        self._rotations: NDArray[np.float64] = rotations
        self._rotations.setflags(write=False)
        self._determinants: NDArray[np.float64] = np.sign(determinants)
        self._determinants.setflags(write=False)
        self._reciprocal: NDArray[np.float64] = np.transpose(np.linalg.inv(rotations), (0, 2, 1))
        self._reciprocal.setflags(write=False)

    def __len__(self) -> int:
        return len(self._rotations)

    def __getitem__(self, index: int) -> NDArray[np.float64]:
        return self._rotations[index]

    @property
    def rotations(self) -> NDArray[np.float64]:
        """Rotation matrices as ``(N, 3, 3)`` array."""
        return self._rotations

    @property
    def determinants(self) -> NDArray[np.float64]:
        """Determinant, +1 or -1, of every operation as ``(N,)`` array."""
        return self._determinants

    @property
    def reciprocal(self) -> NDArray[np.float64]:
        """Operations acting on reciprocal-space vectors, ``inv(R).T``, as ``(N, 3, 3)`` array.

        For orthogonal Cartesian operations these equal `rotations`.
        """
        return self._reciprocal

    def is_proper(self, index: int) -> bool:
        """Whether operation `index` is a pure rotation."""
        return bool(self._determinants[index] > 0)

    def find(self, matrix: ArrayLike, atol: float = 1e-10) -> int:
        """Return the index of the operation equal to `matrix`.

        Raises
        ------
        ValueError
            If no stored operation matches.
        """
        matrix = np.asarray(matrix, dtype=np.float64)
        matches = np.flatnonzero(
            np.all(np.isclose(self._rotations, matrix, rtol=0, atol=atol), axis=(1, 2))
        )
        if not matches.size:
            raise ValueError(f"Operation {np.array2string(matrix)} is not in the point group.")
        return int(matches[0])

    def identity_index(self) -> int:
        """Index of the identity operation."""
        return self.find(np.identity(3))

    def inverse_index(self, index: int) -> int:
        """Index of the inverse of operation `index`."""
        return self.find(np.linalg.inv(self._rotations[index]))

    def compose_index(self, first: int, second: int) -> int:
        """Index of the operation applying `first` and then `second`, ``R[second] @ R[first]``."""
        return self.find(self._rotations[second] @ self._rotations[first])
