import numpy as np
import pytest

from modeinterp import GammaTable


def test_default_table():
    """Test that an empty table neither relabels nor shifts the phase."""
    table = GammaTable()
    assert table.num_atoms is None
    np.testing.assert_array_equal(table.phase(3, 1, 2), [1.0, 1.0])
    np.testing.assert_array_equal(table.atom_map(1, 4), [0, 1, 2, 3])


def test_phase_lookup():
    """Test phases keyed by vertex, operation and atom."""
    phases = np.arange(2 * 3 * 2).reshape(2, 3, 2) * 1j
    table = GammaTable(phases)
    np.testing.assert_array_equal(table.phase(1, 2, 2), phases[1, 2])

    # phases shared by all vertices
    table = GammaTable(phases[0])
    np.testing.assert_array_equal(table.phase(5, 1, 2), phases[0, 1])

    # one phase per vertex and operation, shared by all atoms
    table = GammaTable(phases[..., :1])
    np.testing.assert_array_equal(table.phase(1, 2, 4), np.full(4, phases[1, 2, 0]))


def test_atom_maps():
    table = GammaTable(atom_maps=[[0, 1, 2], [2, 0, 1]])
    assert table.num_atoms == 3
    np.testing.assert_array_equal(table.atom_map(1, 3), [2, 0, 1])

    with pytest.raises(ValueError, match="describes 3 atoms"):
        table.atom_map(1, 2)


@pytest.mark.parametrize(
    "kwargs, message",
    [
        ({"phases": np.ones((1, 1, 1, 1))}, "broadcastable"),
        ({"atom_maps": [0, 1]}, "must be a \\(N, A\\)"),
        ({"atom_maps": [[0, 1], [1, 1]]}, "operation 1 is not a permutation"),
    ],
)
def test_invalid_table(kwargs, message):
    with pytest.raises(ValueError, match=message):
        GammaTable(**kwargs)
