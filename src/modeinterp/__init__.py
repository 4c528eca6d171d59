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
"""Symmetry-aware interpolation of per-mode quantities defined on mesh vertices.

Quantities such as phonon frequencies and eigenvectors are stored per mode at every vertex of
a mesh. Interpolating them at an arbitrary point requires matching the modes of neighbouring
vertices, which eigen-solvers may emit in any order, and expanding data known only at
symmetry-irreducible vertices to the whole mesh.
"""

from .cost import CostSpec, ScalarCost, VectorCost
from .dual import DualInterpolator
from .interpolator import Interpolator
from .layout import ModeLayout
from .permutation import EqualModeSearch, PermutationTable, find_permutation, resolve_permutation
from .symmetry import GammaTable, PointSymmetry, RotationKind

__version__ = "0.1.0"

__all__ = [
    "CostSpec",
    "DualInterpolator",
    "EqualModeSearch",
    "GammaTable",
    "Interpolator",
    "ModeLayout",
    "PermutationTable",
    "PointSymmetry",
    "RotationKind",
    "ScalarCost",
    "VectorCost",
    "find_permutation",
    "resolve_permutation",
    "__version__",
]
