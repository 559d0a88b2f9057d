"""
Constructors for TT vectors over product state spaces.

A TT vector with modes (n_0, ..., n_{K-1}) stores one value per global state
(s_0, ..., s_{K-1}). Distributions of independent components are rank-1
(product form); sums of such vectors grow the rank additively.
"""

from collections.abc import Sequence

import numpy as np

from ttctmc.tt import CoreTensor, TensorTrain, truncated_svd
from ttctmc.utils.shapes import validate_indices


def product_vector(local_vectors: Sequence[np.ndarray]) -> TensorTrain:
    """
    Rank-1 train representing the outer product of per-site vectors.

    Parameters
    ----------
    local_vectors : Sequence[np.ndarray]
        One 1D array per site

    Examples
    --------
    >>> v = product_vector([np.array([0.5, 0.5]), np.array([1.0, 0.0])])
    >>> v.get(1, 0)
    0.5
    """
    if len(local_vectors) == 0:
        raise ValueError("At least one local vector is required")
    cores = []
    for k, vec in enumerate(local_vectors):
        vec = np.asarray(vec, dtype=float)
        if vec.ndim != 1 or vec.size == 0:
            raise ValueError(f"Local vector {k} must be a non-empty 1D array, got shape {vec.shape}")
        cores.append(CoreTensor(vec.size, 1, 1, [np.array([[x]]) for x in vec]))
    return TensorTrain(cores)


def ones(modes: Sequence[int]) -> TensorTrain:
    """Rank-1 all-ones vector."""
    return product_vector([np.ones(n) for n in modes])


def unit_vector(modes: Sequence[int], indices: Sequence[int]) -> TensorTrain:
    """
    Rank-1 canonical basis vector: 1 at ``indices``, 0 elsewhere.

    Raises
    ------
    ValueError
        If ``indices`` doesn't have one entry per site
    """
    validate_indices(indices, modes)
    local = []
    for n, idx in zip(modes, indices):
        vec = np.zeros(n)
        vec[idx] = 1.0
        local.append(vec)
    return product_vector(local)


def from_full(array: np.ndarray, tolerance: float = 0.0) -> TensorTrain:
    """
    TT-SVD of a dense array.

    Sequential SVDs of the unfoldings, each truncated with the absolute
    budget ``tolerance / sqrt(K - 1)``. Exact for ``tolerance == 0``.

    WARNING: the input is dense. Only for testing and small models.
    """
    array = np.asarray(array, dtype=float)
    if array.ndim == 0:
        raise ValueError("Cannot decompose a 0-dimensional array")
    modes = array.shape
    K = len(modes)
    delta = tolerance / np.sqrt(max(K - 1, 1))

    cores = []
    rank = 1
    remainder = array.reshape(1, -1)
    for n_k in modes[:-1]:
        remainder = remainder.reshape(rank * n_k, -1)
        U, S, Vt, _ = truncated_svd(remainder, delta)
        new_rank = S.size
        # U rows are ordered (r_left, n_k); CoreTensor wants mode-major blocks
        cores.append(CoreTensor.from_array(U.reshape(rank, n_k, new_rank)))
        remainder = S[:, np.newaxis] * Vt
        rank = new_rank
    cores.append(CoreTensor.from_array(remainder.reshape(rank, modes[-1], 1)))
    return TensorTrain(cores)


def total_sum(vector: TensorTrain) -> float:
    """Sum of all entries (inner product with the all-ones vector)."""
    return vector.inner_product(ones(vector.mode_lengths))
