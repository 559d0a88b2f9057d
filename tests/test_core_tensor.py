"""
Tests for CoreTensor (one TT site).

These tests verify:
1. Flat and paired-mode indexing
2. Scaling (pure and in place) and deep copies
3. Dimension resynchronization after matrix replacement
4. Left, right and matrix-mode unfoldings
"""

import numpy as np
import pytest
from numpy.testing import assert_allclose, assert_array_equal

from ttctmc.tt import CoreTensor


def _random_core(mode_length, rows, cols, seed=0):
    rng = np.random.default_rng(seed)
    return CoreTensor.from_array(rng.standard_normal((rows, mode_length, cols)))


class TestCoreTensorIndexing:
    """Test mode indexing."""

    def test_zero_initialized(self):
        """New core should hold zero matrices of the given shape."""
        core = CoreTensor(3, 2, 4)

        assert len(core.data) == 3
        for mat in core.data:
            assert mat.shape == (2, 4)
            assert_array_equal(mat, 0.0)

    def test_flat_index_roundtrip(self):
        """core[i] = M then core[i] should return M."""
        core = CoreTensor(2, 1, 2)
        core[1] = np.array([[3.0, 4.0]])

        assert_array_equal(core[1], [[3.0, 4.0]])
        assert_array_equal(core.get(0), [[0.0, 0.0]])

    def test_pair_index_maps_to_flat(self):
        """Pair (i, j) should address flat mode i*N + j."""
        core = CoreTensor(9, 1, 1)
        core[1, 2] = np.array([[7.0]])

        assert core[5][0, 0] == 7.0
        assert core.get_pair(1, 2)[0, 0] == 7.0
        assert core.mode_side == 3

    def test_pair_index_non_square_fails(self):
        """Pair indexing on a non-square mode length should raise ValueError."""
        core = CoreTensor(3, 1, 1)

        with pytest.raises(ValueError, match="perfect square"):
            core[0, 1]
        with pytest.raises(ValueError, match="perfect square"):
            core[0, 1] = np.zeros((1, 1))

    def test_pair_index_out_of_range(self):
        """Row or column mode beyond N should raise IndexError."""
        core = CoreTensor(4, 1, 1)

        with pytest.raises(IndexError):
            core.get_pair(2, 0)

    def test_data_shape_checked(self):
        """Explicit data must match (rows, cols)."""
        with pytest.raises(ValueError, match="shape"):
            CoreTensor(2, 1, 2, [np.zeros((1, 2)), np.zeros((2, 1))])

    def test_array_conversion(self):
        """from_array / to_array should use (r_left, n, r_right)."""
        arr = np.arange(12.0).reshape(2, 3, 2)
        core = CoreTensor.from_array(arr)

        assert (core.mode_length, core.rows, core.cols) == (3, 2, 2)
        assert_array_equal(core[1], arr[:, 1, :])
        assert_array_equal(core.to_array(), arr)


class TestCoreTensorScaling:
    """Test scaling and copying."""

    def test_scale_pure(self):
        """scale() should return a new core and leave the original intact."""
        core = _random_core(3, 2, 2)
        original = core.copy()
        scaled = core.scale(2.5)

        for i in range(3):
            assert_allclose(scaled[i], 2.5 * original[i])
            assert_array_equal(core[i], original[i])

    def test_scale_in_place(self):
        """scale_in_place() and *= should mutate the core."""
        core = _random_core(2, 1, 3)
        original = core.copy()
        core.scale_in_place(-1.0)
        core *= 3.0

        for i in range(2):
            assert_allclose(core[i], -3.0 * original[i])

    def test_rmul(self):
        """d * core should equal core.scale(d)."""
        core = _random_core(2, 2, 2)
        assert_allclose((0.5 * core)[1], core.scale(0.5)[1])

    def test_copy_is_deep(self):
        """Mutating a copy should not affect the original."""
        core = _random_core(2, 2, 2)
        clone = core.copy()
        clone[0][0, 0] = 1e6

        assert core[0][0, 0] != 1e6

    def test_update_dimensions(self):
        """update_dimensions() should resync rows/cols after replacement."""
        core = CoreTensor(2, 2, 2)
        core.data = [np.ones((3, 5)), np.zeros((3, 5))]
        core.update_dimensions()

        assert (core.rows, core.cols) == (3, 5)

    def test_transpose(self):
        """transpose() should swap bond dimensions of every mode matrix."""
        core = _random_core(3, 2, 4)
        t = core.transpose()

        assert (t.rows, t.cols) == (4, 2)
        assert_array_equal(t[2], core[2].T)


class TestCoreTensorUnfoldings:
    """Test the three unfolding views."""

    def test_left_unfolding(self):
        """Left unfolding stacks mode matrices vertically."""
        core = _random_core(3, 2, 4)
        L = core.left_unfolding()

        assert L.shape == (6, 4)
        assert_array_equal(L[2:4, :], core[1])

    def test_right_unfolding(self):
        """Right unfolding stacks mode matrices horizontally."""
        core = _random_core(3, 2, 4)
        R = core.right_unfolding()

        assert R.shape == (2, 12)
        assert_array_equal(R[:, 8:12], core[2])

    def test_matrix_mode_unfolding(self):
        """Block (i, j) should be the matrix at mode pair (i, j)."""
        core = _random_core(4, 2, 3)
        M = core.matrix_mode_unfolding()

        assert M.shape == (4, 6)
        assert_array_equal(M[0:2, 3:6], core[0, 1])
        assert_array_equal(M[2:4, 0:3], core[1, 0])

    def test_matrix_mode_unfolding_scalar_sites(self):
        """With 1x1 matrices the unfolding is the local operator itself."""
        core = CoreTensor.from_array(np.array([1.0, 2.0, 3.0, 4.0]).reshape(1, 4, 1))

        assert_array_equal(core.matrix_mode_unfolding(), [[1.0, 2.0], [3.0, 4.0]])

    def test_matrix_mode_unfolding_non_square(self):
        """Non-square mode length should raise ValueError."""
        with pytest.raises(ValueError, match="square"):
            CoreTensor(2, 1, 1).matrix_mode_unfolding()
