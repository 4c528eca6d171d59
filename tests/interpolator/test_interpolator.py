import numpy as np
import pytest

from modeinterp import (
    CostSpec,
    Interpolator,
    ModeLayout,
    PermutationTable,
    RotationKind,
    ScalarCost,
    VectorCost,
)


@pytest.fixture
def scalars() -> Interpolator:
    """Two scalar modes at four vertices, pairwise equal."""
    return Interpolator(np.array([[1, 2], [1, 2], [5, 6], [5, 6]]), (1, 0, 0))


def test_interpolate_midpoint(scalars: Interpolator):
    """Test blending two vertices with equal weights."""
    np.testing.assert_array_equal(scalars.interpolate_at([(0, 0.5), (2, 0.5)]), [[3.0, 4.0]])
    np.testing.assert_array_equal(scalars.interpolate_at([0, 2], [0.5, 0.5]), [[3.0, 4.0]])


def test_interpolate_single_vertex(rng):
    """Test that a single vertex of weight one is copied exactly."""
    data = rng.normal(size=(3, 4, 2, 3))
    interpolator = Interpolator(data)
    np.testing.assert_array_equal(interpolator.interpolate_at([(1, 1.0)])[0], data[1])


@pytest.mark.parametrize("weight", [0.0, 0.3, 0.5, 0.9])
def test_interpolate_identical_vertices(weight, rng):
    """Test that blending identical data returns it unchanged."""
    block = rng.normal(size=(3, 7))
    interpolator = Interpolator(np.stack([block, block]), (1, 6, 0))
    result = interpolator.interpolate_at([0, 1], [weight, 1 - weight])
    np.testing.assert_allclose(result[0], block, rtol=1e-14, atol=1e-15)


def test_interpolate_reordered_modes():
    """Test that modes stored in a different order are matched before blending."""
    interpolator = Interpolator(np.array([[1.0, 2.0, 3.0], [3.1, 1.1, 2.1]]), (1, 0, 0))
    result = interpolator.interpolate_at([0, 1], [0.5, 0.5])
    np.testing.assert_allclose(result, [[1.05, 2.05, 3.05]])


def test_interpolate_into_output(scalars: Interpolator):
    """Test writing one point of a larger output array."""
    out = scalars.new_output(3)
    assert out.shape == (3, 2)
    scalars.interpolate_at([0, 2], [0.5, 0.5], out=out, to=2)
    np.testing.assert_array_equal(out, [[0, 0], [0, 0], [3, 4]])


def test_interpolate_explicit_permutations(scalars: Interpolator):
    """Test that given permutations are applied without resolving them."""
    result = scalars.interpolate_at([0, 2], [0.5, 0.5], permutations=[[0, 1], [1, 0]])
    np.testing.assert_array_equal(result, [[3.5, 3.5]])

    with pytest.raises(ValueError, match="Expected 2 permutations"):
        scalars.interpolate_at([0, 2], [0.5, 0.5], permutations=[[0, 1]])


def test_interpolate_invalid_query(scalars: Interpolator):
    """Test that malformed queries are rejected."""
    with pytest.raises(ValueError, match="differ"):
        scalars.interpolate_at([0, 1, 2], [0.5, 0.5])
    with pytest.raises(ValueError, match="At least one vertex"):
        scalars.interpolate_at([], [])


def test_interpolate_uses_table(scalars: Interpolator):
    """Test that resolved permutations are cached in the table."""
    table = PermutationTable(scalars.size(), scalars.branches())
    scalars.interpolate_at([2, 0, 1], [0.2, 0.5, 0.3], table=table)
    assert (2, 0) in table
    assert (2, 1) in table
    assert (0, 1) not in table


def test_phase_alignment():
    """Test that a global phase difference between vertices is removed before blending."""
    modes = np.array([[[1.0, 0.0, 0.0]], [[0.0, 1.0, 1.0]]], dtype=complex)
    data = np.stack([modes, np.exp(2.0j) * modes])
    interpolator = Interpolator(data)

    aligned = interpolator.interpolate_at([0, 1], [0.5, 0.5], arbitrary_phase_allowed=True)
    np.testing.assert_allclose(aligned[0], modes, atol=1e-12)

    plain = interpolator.interpolate_at([0, 1], [0.5, 0.5])
    assert np.linalg.norm(plain[0]) < np.linalg.norm(modes)


def test_phase_alignment_real_data(scalars: Interpolator):
    """Test that phase alignment of real data is ignored with a warning."""
    with pytest.warns(UserWarning, match="real valued data"):
        result = scalars.interpolate_at([0, 2], [0.5, 0.5], arbitrary_phase_allowed=True)
    np.testing.assert_array_equal(result, [[3.0, 4.0]])


def test_interpolate_many(scalars: Interpolator):
    """Test a batch of query points, serially and in parallel."""
    indices = [[0, 2], [1], [3, 0]]
    weights = [[0.5, 0.5], [1.0], [0.25, 0.75]]
    expected = [[3.0, 4.0], [1.0, 2.0], [2.0, 3.0]]

    np.testing.assert_array_equal(scalars.interpolate_many(indices, weights), expected)
    np.testing.assert_array_equal(scalars.interpolate_many(indices, weights, workers=2), expected)

    with pytest.raises(ValueError, match="differ"):
        scalars.interpolate_many(indices, weights[:2])


def test_interpolate_many_matches_single(rng):
    """Test that batched interpolation equals point by point interpolation."""
    data = rng.normal(size=(6, 4, 1, 3)) + 1j * rng.normal(size=(6, 4, 1, 3))
    interpolator = Interpolator(data, rotates_like="gamma")
    indices = [[0, 1, 2], [3, 4, 5], [5, 0, 2], [1, 4, 3]]
    weights = [[0.2, 0.3, 0.5], [0.6, 0.2, 0.2], [1 / 3, 1 / 3, 1 / 3], [0.1, 0.1, 0.8]]

    batch = interpolator.interpolate_many(
        indices, weights, arbitrary_phase_allowed=True, workers=3
    )
    assert batch.shape == (4, 4, 1, 3)
    for q in range(4):
        single = interpolator.interpolate_at(indices[q], weights[q], arbitrary_phase_allowed=True)
        np.testing.assert_array_equal(batch[q], single[0])


def test_properties(rng):
    """Test the descriptive properties of a mixed layout."""
    data = rng.normal(size=(5, 3, 1 + 3 + 9))
    interpolator = Interpolator(data, ModeLayout(1, 3, 9), rotates_like="axial")
    assert interpolator.size() == 5
    assert interpolator.branches() == 3
    assert interpolator.branch_span() == 13
    assert interpolator.count_scalars_vectors_matrices() == (1, 1, 1)
    assert not interpolator.only_vector_or_matrix()
    assert interpolator.bytes_per_point() == 3 * 13 * 8
    assert interpolator.rotates_like is RotationKind.AXIAL
    assert not interpolator.data.flags.writeable
    assert str(interpolator) == (
        "{ 5 3 13 } data with 3 modes of 1 scalar, 1 vector and 1 matrix elements"
    )

    vectors = Interpolator(np.zeros((2, 4, 2, 3), dtype=complex))
    assert vectors.only_vector_or_matrix()
    assert vectors.elements == ModeLayout(0, 6, 0)
    assert vectors.bytes_per_point() == 4 * 6 * 16


def test_to_string(scalars: Interpolator):
    assert scalars.to_string() == "{ 4 2 } data with 2 modes of 1 scalar element"
    assert repr(scalars) == "<Interpolator: { 4 2 } data with 2 modes of 1 scalar element>"
    assert Interpolator().to_string() == "{ 0 0 } data"


def test_setup_fake():
    interpolator = Interpolator()
    interpolator.setup_fake(5, 3)
    assert interpolator.size() == 5
    assert interpolator.branches() == 3
    np.testing.assert_array_equal(interpolator.data, np.zeros((5, 3)))


def test_replace_data(scalars: Interpolator):
    """Test that a failed replacement keeps the previous state."""
    with pytest.raises(ValueError, match="integer number of branches"):
        scalars.replace_data(np.zeros((4, 7)), (0, 3, 0))
    assert scalars.data.shape == (4, 2)
    assert scalars.elements == ModeLayout(1, 0, 0)

    scalars.replace_data(np.zeros((4, 6)), (0, 3, 0), "reciprocal")
    assert scalars.branches() == 2
    assert scalars.rotates_like is RotationKind.RECIPROCAL

    with pytest.raises(ValueError):
        scalars.replace_data(np.zeros(4), rotates_like="spin")


def test_cost_info(scalars: Interpolator):
    """Test selecting the cost formulas."""
    scalars.cost_spec = CostSpec(weights=(2.0, 1.0, 1.0))
    scalars.set_cost_info(1, 2)
    assert scalars.cost_spec.scalar is ScalarCost.EUCLIDEAN
    assert scalars.cost_spec.vector is VectorCost.PRODUCT
    assert scalars.cost_spec.weights == (2.0, 1.0, 1.0)

    with pytest.raises(TypeError, match="CostSpec"):
        scalars.cost_spec = (0, 0)


def test_add_cost_pure_matrices():
    """Test the cost of pure matrix data."""
    data = np.zeros((2, 2, 1, 3, 3))
    data[1, 1, 0, 0, 0] = 3.0
    interpolator = Interpolator(data, cost=CostSpec(weights=(1.0, 1.0, 2.0)))
    cost = np.zeros((2, 2))
    interpolator.add_cost(0, 1, cost)
    np.testing.assert_allclose(cost, [[0.0, 6.0], [0.0, 6.0]])

    with pytest.raises(ValueError, match="must have shape"):
        interpolator.add_cost(0, 1, np.zeros((3, 3)))


def test_any_equal_modes(scalars: Interpolator):
    assert not scalars.any_equal_modes(0)
    interpolator = Interpolator(np.array([[1.0, 1.0]]), (1, 0, 0))
    assert interpolator.any_equal_modes(0)


def test_expand(point_group, c4z, rng):
    """Test expanding representative data onto symmetry-equivalent vertices."""
    c4 = point_group.find(c4z)
    data = np.zeros((2, 2, 1, 3))
    data[0] = rng.normal(size=(2, 1, 3))
    interpolator = Interpolator(data)

    assert interpolator.expand(point_group, [0, 0], [0, c4])
    np.testing.assert_allclose(interpolator.data[1], data[0] @ c4z.T)
    assert not interpolator.data.flags.writeable

    # already expanded
    assert not interpolator.expand(point_group, [0, 0], [0, c4])


def test_expand_gamma_real_data(point_group):
    interpolator = Interpolator(np.zeros((2, 1, 1, 3)), rotates_like=RotationKind.GAMMA)
    with pytest.raises(TypeError, match="complex valued"):
        interpolator.expand(point_group, [0, 0], [0, 1])


def test_rotate_in_place_shape_mismatch(point_group, scalars: Interpolator):
    with pytest.raises(ValueError, match="does not match"):
        scalars.rotate_in_place(np.zeros((4, 3)), point_group, np.zeros(4), np.zeros(4))


def test_interpolate_pairs_required(scalars: Interpolator):
    """Test that plain vertex indices without weights are rejected."""
    with pytest.raises(ValueError, match="vertex, weight"):
        scalars.interpolate_at([0, 2])
