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
"""Module describing how the per-vertex data of an interpolator is split into modes.

The stored array may be anywhere from one- to five-dimensional:

======================  ================================================================
Shape                   Meaning
======================  ================================================================
``(P,)``                one mode with one scalar per point
``(P, X)``              ``X // span`` modes with ``span`` raw elements each
``(P, B, Y)``           ``B`` modes with ``Y == span`` raw elements each
``(P, B, V, 3)``        ``B`` modes with ``V`` 3-vectors each
``(P, B, M, 3, 3)``     ``B`` modes with ``M`` (3, 3) matrices each
======================  ================================================================

where ``span = S + 3V + 9M`` counts the raw elements of a single mode.
"""

from __future__ import annotations

from dataclasses import dataclass

__all__ = ["ModeLayout", "check_elements", "branches", "only_vector_or_matrix"]


@dataclass(frozen=True)
class ModeLayout:
    """Number of raw scalar elements per mode, split by element type.

    Parameters
    ----------
    scalars
        Number of scalar elements per mode.
    vectors
        Number of raw vector elements per mode, a multiple of 3.
    matrices
        Number of raw matrix elements per mode, a multiple of 9.
    """

    scalars: int = 0
    vectors: int = 0
    matrices: int = 0

    def __post_init__(self):
        for name in ("scalars", "vectors", "matrices"):
            value = getattr(self, name)
            if int(value) != value or value < 0:
                raise ValueError(
                    f"The number of {name} must be a non-negative integer, got {value}."
                )
            object.__setattr__(self, name, int(value))
        if self.vectors % 3:
            raise ValueError("Vectors must have 3N elements per branch.")
        if self.matrices % 9:
            raise ValueError("Matrices must have 9N elements per branch.")

    @classmethod
    def from_counts(cls, scalars: int = 0, vectors: int = 0, matrices: int = 0) -> ModeLayout:
        """Create a layout from the number of scalars, 3-vectors and (3, 3) matrices."""
        return cls(scalars, 3 * vectors, 9 * matrices)

    @property
    def span(self) -> int:
        """Total number of raw elements per mode."""
        return self.scalars + self.vectors + self.matrices

    @property
    def counts(self) -> tuple[int, int, int]:
        """Number of scalars, 3-vectors and (3, 3) matrices per mode."""
        return self.scalars, self.vectors // 3, self.matrices // 9

    def is_unset(self) -> bool:
        """True if no element has been specified and the layout must be inferred."""
        return self.span == 0

    def as_tuple(self) -> tuple[int, int, int]:
        return self.scalars, self.vectors, self.matrices


def check_elements(shape: tuple[int, ...], layout: ModeLayout) -> ModeLayout:
    """Validate a data shape against a layout, inferring the layout if it is unset.

    Parameters
    ----------
    shape
        Shape of the stored data array.
    layout
        Requested layout. An all-zero layout is inferred from `shape`.

    Returns
    -------
    ModeLayout
        The layout consistent with `shape`.

    Raises
    ------
    ValueError
        If `shape` is incompatible with `layout` or its dimensionality is not supported.
    """
    span = layout.span
    ndim = len(shape)
    if ndim == 1:
        if span == 0:
            return ModeLayout(1, 0, 0)
        if span > 1:
            raise ValueError("1-D data must represent one scalar per point.")
        return layout
    if ndim == 2:
        if span == 0:
            return ModeLayout(shape[1], 0, 0)
        if shape[1] % span:
            raise ValueError(
                "2-D data requires an integer number of branches. "
                + f"{shape[1]} elements per point can not be split into modes of {span} elements."
            )
        return layout
    if ndim == 3:
        if span == 0:
            return ModeLayout(shape[2], 0, 0)
        if shape[2] != span:
            raise ValueError(
                "3-D data requires that the last dimension matches the specified number "
                + f"of elements, {shape[2]} != {span}."
            )
        return layout
    if ndim == 4:
        if shape[3] != 3:
            raise ValueError("4-D data can only be 3-vectors.")
        if span == 0:
            return ModeLayout(0, 3 * shape[2], 0)
        if layout != ModeLayout(0, 3 * shape[2], 0):
            raise ValueError(
                "4-D data requires that the last two dimensions match the specified number "
                + f"of vector elements, {3 * shape[2]} != {layout.vectors}."
            )
        return layout
    if ndim == 5:
        if shape[3] != 3 or shape[4] != 3:
            raise ValueError("5-D data can only be matrices.")
        if span == 0:
            return ModeLayout(0, 0, 9 * shape[2])
        if layout != ModeLayout(0, 0, 9 * shape[2]):
            raise ValueError(
                "5-D data requires the last three dimensions match the specified number "
                + f"of matrix elements, {9 * shape[2]} != {layout.matrices}."
            )
        return layout
    raise ValueError(f"Interpolator data is expected to be 1- to 5-D, got {ndim}-D data.")


def branches(shape: tuple[int, ...], layout: ModeLayout) -> int:
    """Return the number of modes stored per point.

    Only the two-dimensional shape is ambiguous: ``X = B * span`` counts both the modes and
    the elements per mode.
    """
    b = shape[1] if len(shape) > 1 else 1
    if len(shape) == 2 and layout.span > 0:
        b //= layout.span
    return b


def only_vector_or_matrix(shape: tuple[int, ...]) -> bool:
    """Whether the data holds only 3-vectors ``(P, B, V, 3)`` or matrices ``(P, B, M, 3, 3)``.

    Scalar and mixed data, with shapes ``(P,)``, ``(P, X)`` or ``(P, B, Y)``, return False.

    Raises
    ------
    RuntimeError
        For any other shape.
    """
    ndim = len(shape)
    if ndim == 5 and shape[3] == 3 and shape[4] == 3:
        return True
    if ndim == 4 and shape[3] == 3:
        return True
    if ndim < 4:
        return False
    raise RuntimeError(f"Interpolator can not handle a {shape} data array.")
