import numpy as np
import pytest

from modeinterp import PointSymmetry


def _close_group(generators: list[np.ndarray]) -> list[np.ndarray]:
    """Return all products of the generators, starting with the identity."""
    group = [np.identity(3)]
    frontier = list(generators)
    while frontier:
        candidate = frontier.pop()
        if any(np.allclose(candidate, g) for g in group):
            continue
        group.append(candidate)
        frontier.extend(candidate @ g for g in group)
        frontier.extend(g @ candidate for g in group)
    return group


@pytest.fixture(scope="session")
def c4z() -> np.ndarray:
    """Four-fold rotation about z."""
    return np.array([[0.0, -1.0, 0.0], [1.0, 0.0, 0.0], [0.0, 0.0, 1.0]])


@pytest.fixture(scope="session")
def point_group(c4z) -> PointSymmetry:
    """The 8 operations of the point group 4/m, identity first."""
    return PointSymmetry(_close_group([c4z, -np.identity(3)]))


@pytest.fixture(scope="session")
def hexagonal_group() -> PointSymmetry:
    """The six-fold rotations about c, expressed in the fractional basis of a hexagonal lattice."""
    c6 = np.array([[1.0, -1.0, 0.0], [1.0, 0.0, 0.0], [0.0, 0.0, 1.0]])
    return PointSymmetry(_close_group([c6]))


@pytest.fixture
def rng() -> np.random.Generator:
    """Seeded random number generator."""
    return np.random.default_rng(20190101)
