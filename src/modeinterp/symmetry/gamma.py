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
"""Module defining the phase and atom-relabelling table needed at the zone centre."""

from __future__ import annotations

import numpy as np
from numpy.typing import ArrayLike, NDArray

__all__ = ["GammaTable"]


class GammaTable:
    """Phase factors and atom relabelling of every point-group operation.

    Phonon eigenvectors carry one 3-vector per atom. A symmetry operation moves atom ``k`` onto
    atom ``atom_maps[op, k]`` and multiplies its displacement by a wavevector-dependent phase.
    The table is a lookup keyed by ``(vertex, operation)``; its construction is left to the caller.

    Parameters
    ----------
    phases
        Complex phase factors broadcastable to ``(P, N, A)`` for ``P`` vertices, ``N``
        operations and ``A`` atoms. A scalar, ``(N, A)``- or ``(P, N)``-shaped input is
        accepted as long as NumPy broadcasting can expand it; ``(P, N)`` must be given as
        ``(P, N, 1)``.
    atom_maps
        Integer array of shape ``(N, A)``. Each row must be a permutation of ``range(A)``.
        By default None: atoms are not relabelled.
    """

    def __init__(self, phases: ArrayLike = 1.0, atom_maps: ArrayLike | None = None):
        phases = np.array(phases, dtype=np.complex128)
        if phases.ndim > 3:
            raise ValueError(
                "Attribute 'phases' must be broadcastable to (P, N, A). "
                + f"The shape of 'phases' is {phases.shape}."
            )
        while phases.ndim < 3:
            phases = phases[np.newaxis]
        phases.setflags(write=False)

        if atom_maps is not None:
            atom_maps = np.array(atom_maps, dtype=np.intp)
            if atom_maps.ndim != 2:
                raise ValueError(
                    "Attribute 'atom_maps' must be a (N, A) array-like. "
                    + f"The shape of 'atom_maps' is {atom_maps.shape}."
                )
            expected = np.arange(atom_maps.shape[1])
            for op, row in enumerate(atom_maps):
                if not np.array_equal(np.sort(row), expected):
                    raise ValueError(f"Atom map of operation {op} is not a permutation.")
            atom_maps.setflags(write=False)

        self._phases: NDArray[np.complex128] = phases
        self._atom_maps: NDArray[np.intp] | None = atom_maps

    @property
    def num_atoms(self) -> int | None:
        """Number of atoms described by the atom maps, None without maps."""
        return None if self._atom_maps is None else self._atom_maps.shape[1]

    def phase(self, vertex: int, operation: int, num_atoms: int) -> NDArray[np.complex128]:
        """Phase factor of every atom for `operation` applied at `vertex` as ``(A,)`` array."""
        p = self._phases[
            vertex if self._phases.shape[0] > 1 else 0,
            operation if self._phases.shape[1] > 1 else 0,
        ]
        return np.broadcast_to(p, (num_atoms,))

    def atom_map(self, operation: int, num_atoms: int) -> NDArray[np.intp]:
        """Destination index of every atom under `operation` as ``(A,)`` array.

        Raises
        ------
        ValueError
            If the table was built for a different number of atoms.
        """
        if self._atom_maps is None:
            return np.arange(num_atoms)
        if self._atom_maps.shape[1] != num_atoms:
            raise ValueError(
                f"The Gamma table describes {self._atom_maps.shape[1]} atoms "
                + f"but the data holds {num_atoms} elements per mode."
            )
        return self._atom_maps[operation]
