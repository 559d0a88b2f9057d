"""
Tests for Tensor-Train (TT) primitives.

These tests verify:
1. TT chain validation and representation
2. Element access and full-tensor materialization
3. Exact algebra: addition, scaling, subtraction, Hadamard product
4. Inner product, Frobenius norm and mirroring
5. Debug text dump
"""

import numpy as np
import pytest
from numpy.testing import assert_allclose

from ttctmc.tt import CoreTensor, TensorTrain, validate_chain
from ttctmc.models import unit_vector


def random_train(modes, ranks, seed=0):
    """Random train with mode lengths ``modes`` and rank profile ``ranks``."""
    rng = np.random.default_rng(seed)
    return TensorTrain.from_cores(
        [rng.standard_normal((ranks[k], n, ranks[k + 1])) for k, n in enumerate(modes)]
    )


class TestTensorTrainValidation:
    """Test TT representation and validation."""

    def test_valid_train_creation(self):
        """Valid cores should create a TensorTrain."""
        tt = random_train([4, 4, 4], [1, 2, 3, 1])

        assert tt.num_sites == 3
        assert len(tt) == 3
        assert tt.mode_lengths == [4, 4, 4]
        assert tt.ranks() == [1, 2, 3, 1]

    def test_single_core(self):
        """Single core (vector) should work."""
        tt = random_train([10], [1, 1])

        assert tt.mode_lengths == [10]
        assert tt.ranks() == [1, 1]

    def test_invalid_boundary_left(self):
        """First core must have rows=1."""
        with pytest.raises(ValueError, match="rows=1"):
            TensorTrain([CoreTensor(2, 2, 1)])

    def test_invalid_boundary_right(self):
        """Last core must have cols=1."""
        with pytest.raises(ValueError, match="cols=1"):
            TensorTrain([CoreTensor(2, 1, 2), CoreTensor(2, 2, 3)])

    def test_rank_mismatch(self):
        """Adjacent cores must have compatible ranks."""
        with pytest.raises(ValueError, match="Rank mismatch"):
            TensorTrain([CoreTensor(2, 1, 2), CoreTensor(2, 3, 1)])

    def test_stale_dimensions_detected(self):
        """Replaced matrices without update_dimensions() should be reported."""
        core = CoreTensor(2, 1, 1)
        core.data = [np.zeros((1, 2)), np.zeros((1, 2))]

        with pytest.raises(ValueError, match="recorded dimensions"):
            validate_chain([core])

    def test_empty_cores_from_arrays(self):
        """Empty core list should raise error."""
        with pytest.raises(ValueError, match="cannot be empty"):
            TensorTrain.from_cores([])

    def test_repr(self):
        """String representation should show modes and ranks."""
        tt = random_train([3, 3], [1, 2, 1])
        repr_str = repr(tt)

        assert "modes=(3, 3)" in repr_str
        assert "ranks=(1, 2, 1)" in repr_str


class TestElementAccess:
    """Test get() and to_full()."""

    def test_get_matches_full(self):
        """get() should agree with the materialized tensor everywhere."""
        tt = random_train([2, 3, 2], [1, 2, 2, 1])
        full = tt.to_full()

        for idx in np.ndindex(*full.shape):
            assert_allclose(tt.get(*idx), full[idx], rtol=1e-12, atol=1e-12)
            assert_allclose(tt[idx], full[idx], rtol=1e-12, atol=1e-12)

    def test_get_wrong_arity(self):
        """Number of indices must equal number of sites."""
        tt = random_train([2, 2, 2], [1, 2, 2, 1])

        with pytest.raises(ValueError, match="one per site"):
            tt.get(0, 1)

    def test_get_on_empty_train(self):
        """Indexing a train without sites should raise ValueError."""
        with pytest.raises(ValueError, match="empty tensor train"):
            TensorTrain().get()

    def test_rank_one_full_tensor(self):
        """Rank-1 TT should give the outer product."""
        a = np.array([1.0, 2.0, 3.0])
        b = np.array([0.5, 1.0])
        tt = TensorTrain.from_cores([a.reshape(1, 3, 1), b.reshape(1, 2, 1)])

        assert_allclose(tt.to_full(), np.outer(a, b), rtol=1e-12)

    def test_to_full_all_ones(self):
        """All-ones cores with rank 2 should give an all-2s tensor."""
        tt = TensorTrain.from_cores([np.ones((1, 3, 2)), np.ones((2, 3, 1))])

        assert_allclose(tt.to_full(), 2.0 * np.ones((3, 3)))

    def test_cores_roundtrip(self):
        """to_cores() should return the arrays given to from_cores()."""
        rng = np.random.default_rng(3)
        arrays = [rng.standard_normal((1, 2, 3)), rng.standard_normal((3, 4, 1))]
        tt = TensorTrain.from_cores(arrays)

        for got, expected in zip(tt.to_cores(), arrays):
            assert_allclose(got, expected)


class TestAddition:
    """Test exact TT addition."""

    def test_add_matches_dense(self):
        """A + B should equal the dense sum."""
        A = random_train([2, 3, 2, 2], [1, 2, 3, 2, 1], seed=1)
        B = random_train([2, 3, 2, 2], [1, 1, 2, 2, 1], seed=2)
        C = A + B

        assert_allclose(C.to_full(), A.to_full() + B.to_full(), rtol=1e-12, atol=1e-12)

    def test_add_ranks_are_summed(self):
        """Internal ranks should add up, boundaries stay 1."""
        A = random_train([2, 2, 2], [1, 2, 2, 1], seed=1)
        B = random_train([2, 2, 2], [1, 1, 2, 1], seed=2)

        assert A.add(B).ranks() == [1, 3, 4, 1]

    def test_add_does_not_mutate(self):
        """Pure addition should leave operands unchanged."""
        A = random_train([2, 2], [1, 2, 1], seed=1)
        B = random_train([2, 2], [1, 2, 1], seed=2)
        full_a = A.to_full()
        A.add(B)

        assert_allclose(A.to_full(), full_a)
        assert A.ranks() == [1, 2, 1]

    def test_add_in_place(self):
        """A += B should mutate A into the sum."""
        A = random_train([3, 2, 3], [1, 2, 2, 1], seed=1)
        B = random_train([3, 2, 3], [1, 3, 2, 1], seed=2)
        expected = A.to_full() + B.to_full()
        alias = A
        A += B

        assert A is alias
        assert A.ranks() == [1, 5, 4, 1]
        assert_allclose(A.to_full(), expected, rtol=1e-12, atol=1e-12)
        validate_chain(A.cores)

    def test_add_single_site(self):
        """Single-site trains should add their matrices directly."""
        A = random_train([4], [1, 1], seed=1)
        B = random_train([4], [1, 1], seed=2)

        C = A + B
        assert C.ranks() == [1, 1]
        assert_allclose(C.to_full(), A.to_full() + B.to_full())

        A.add_in_place(B)
        assert_allclose(A.to_full(), C.to_full())

    def test_add_site_count_mismatch(self):
        """Trains with different numbers of sites cannot be added."""
        A = random_train([2, 2], [1, 1, 1])
        B = random_train([2, 2, 2], [1, 1, 1, 1])

        with pytest.raises(ValueError, match="different number of sites"):
            A + B

    def test_add_mode_mismatch(self):
        """Trains with different mode lengths cannot be added."""
        A = random_train([2, 2], [1, 1, 1])
        B = random_train([2, 3], [1, 1, 1])

        with pytest.raises(ValueError, match="mode lengths"):
            A.add_in_place(B)


class TestScalingAndSubtraction:
    """Test scalar multiplication and subtraction."""

    def test_scale_only_first_core(self):
        """Scaling should touch only the first site."""
        A = random_train([2, 2, 2], [1, 2, 2, 1])
        B = A.scale(3.0)

        assert_allclose(B.cores[0][1], 3.0 * A.cores[0][1])
        assert_allclose(B.cores[1][0], A.cores[1][0])
        assert_allclose(B.to_full(), 3.0 * A.to_full(), rtol=1e-12)

    def test_scale_operators(self):
        """d * T, T * d and -T should agree with the dense tensor."""
        A = random_train([2, 3], [1, 2, 1])
        full = A.to_full()

        assert_allclose((2.0 * A).to_full(), 2.0 * full)
        assert_allclose((A * 0.5).to_full(), 0.5 * full)
        assert_allclose((-A).to_full(), -full)
        assert_allclose(A.to_full(), full)

    def test_scale_in_place(self):
        """T *= d should mutate T."""
        A = random_train([2, 3], [1, 2, 1])
        full = A.to_full()
        A *= -4.0

        assert_allclose(A.to_full(), -4.0 * full)

    def test_subtract(self):
        """A - B should equal the dense difference, A -= B as well."""
        A = random_train([2, 2, 3], [1, 2, 2, 1], seed=4)
        B = random_train([2, 2, 3], [1, 2, 3, 1], seed=5)
        expected = A.to_full() - B.to_full()

        assert_allclose((A - B).to_full(), expected, rtol=1e-12, atol=1e-12)
        A -= B
        assert_allclose(A.to_full(), expected, rtol=1e-12, atol=1e-12)

    def test_self_difference_is_zero(self):
        """A - A should represent zero (with doubled ranks)."""
        A = random_train([2, 2, 2], [1, 2, 2, 1])
        D = A - A

        assert D.ranks() == [1, 4, 4, 1]
        assert_allclose(D.to_full(), 0.0, atol=1e-12)


class TestHadamardProduct:
    """Test elementwise products."""

    def test_hadamard_matches_dense(self):
        """Hadamard product should multiply entries."""
        A = random_train([2, 3, 2], [1, 2, 2, 1], seed=1)
        B = random_train([2, 3, 2], [1, 3, 2, 1], seed=2)
        C = A.hadamard(B)

        assert C.ranks() == [1, 6, 4, 1]
        assert_allclose(C.to_full(), A.to_full() * B.to_full(), rtol=1e-12, atol=1e-12)

    def test_hadamard_length_mismatch(self):
        """Different chain lengths should raise ValueError."""
        A = random_train([2, 2], [1, 1, 1])
        B = random_train([2, 2, 2], [1, 1, 1, 1])

        with pytest.raises(ValueError):
            A.hadamard(B)

    def test_hadamard_disjoint_indicators(self):
        """Indicators of different coordinates should multiply to zero."""
        e_101 = unit_vector([2, 2, 2], (1, 0, 1))
        e_110 = unit_vector([2, 2, 2], (1, 1, 0))

        assert_allclose(e_101.hadamard(e_110).to_full(), 0.0)

    def test_hadamard_same_indicator(self):
        """An indicator times itself is the same indicator."""
        e_101 = unit_vector([2, 2, 2], (1, 0, 1))

        assert_allclose(e_101.hadamard(e_101).to_full(), e_101.to_full())


class TestInnerProduct:
    """Test inner products, norms and mirroring."""

    def test_inner_product_matches_dense(self):
        """Inner product should equal the dense sum of products."""
        A = random_train([3, 2, 4], [1, 3, 2, 1], seed=1)
        B = random_train([3, 2, 4], [1, 2, 4, 1], seed=2)

        expected = np.sum(A.to_full() * B.to_full())
        assert_allclose(A.inner_product(B), expected, rtol=1e-10)
        assert_allclose(B.scalar_product(A), expected, rtol=1e-10)

    def test_inner_product_single_site(self):
        """Single-site inner product is a dot product."""
        A = random_train([5], [1, 1], seed=1)
        B = random_train([5], [1, 1], seed=2)

        assert_allclose(A.inner_product(B), np.dot(A.to_full(), B.to_full()), rtol=1e-12)

    def test_inner_product_mode_mismatch(self):
        """Per-site mode lengths must match."""
        A = random_train([2, 3], [1, 1, 1])
        B = random_train([3, 2], [1, 1, 1])

        with pytest.raises(ValueError, match="mode lengths"):
            A.inner_product(B)

    def test_frobenius_matches_dense(self):
        """Frobenius norm should equal the dense norm."""
        A = random_train([2, 3, 2, 3], [1, 2, 3, 2, 1], seed=7)

        assert_allclose(A.frobenius_norm(), np.linalg.norm(A.to_full()), rtol=1e-10)

    def test_frobenius_of_zero_difference(self):
        """Norm of A - A should be a small non-negative number, never NaN."""
        A = random_train([2, 2, 2], [1, 2, 2, 1], seed=7)
        norm = (A - A).frobenius_norm()

        assert not np.isnan(norm)
        assert norm < 1e-5

    def test_mirror_reverses_axes(self):
        """Mirror should reverse the site order of the represented tensor."""
        A = random_train([2, 3, 4], [1, 2, 3, 1], seed=2)
        M = A.mirror()

        assert M.mode_lengths == [4, 3, 2]
        assert M.ranks() == [1, 3, 2, 1]
        assert_allclose(M.to_full(), np.transpose(A.to_full()), rtol=1e-12)


class TestDataDump:
    """Test the debug text dump."""

    def test_dump_format(self):
        """Dump should list modes, ranks, then one line per mode matrix."""
        e_101 = unit_vector([2, 2, 2], (1, 0, 1))
        lines = e_101.data_as_string().splitlines()

        assert lines[0] == "[2, 2, 2]"
        assert lines[1] == "[1, 1, 1, 1]"
        assert lines[2:] == ["0.0", "1.0", "1.0", "0.0", "0.0", "1.0"]

    def test_dump_row_major(self):
        """Matrix entries should be listed in row-major order."""
        tt = TensorTrain.from_cores(
            [np.array([1.0, 2.0]).reshape(1, 1, 2), np.array([3.0, 4.0]).reshape(2, 1, 1)]
        )
        lines = tt.data_as_string().splitlines()

        assert lines[1] == "[1, 2, 1]"
        assert lines[2] == "1.0 2.0"
        assert lines[3] == "3.0 4.0"
