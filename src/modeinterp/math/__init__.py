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
"""Numeric helpers: approximate comparisons and vector distance measures."""

from .approx import ABSOLUTE_TOLERANCE, RELATIVE_TOLERANCE, approx_scalar, approx_vector
from .vectors import (
    euclidean_distance,
    hermitian_angle,
    hermitian_product,
    magnitude_sum,
    sin2_hermitian_angle,
    vector_angle,
    vector_distance,
    vector_product,
)

__all__ = [
    "ABSOLUTE_TOLERANCE",
    "RELATIVE_TOLERANCE",
    "approx_scalar",
    "approx_vector",
    "euclidean_distance",
    "hermitian_angle",
    "hermitian_product",
    "magnitude_sum",
    "sin2_hermitian_angle",
    "vector_angle",
    "vector_distance",
    "vector_product",
]
