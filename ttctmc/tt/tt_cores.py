"""
TT core utilities for orthogonalization and rank truncation.

This module provides low-level utilities working on a mutable list of
``CoreTensor`` sites:
- Site orthogonalization (QR based, left and right)
- Orthogonalization sweeps
- Singular-value truncation rules for rounding
- The inner-product contraction sweep

All functions mutate the cores they are given; callers that need the
original train keep a deep copy.

References:
- Oseledets (2011), "Tensor-Train Decomposition", SIAM J. Sci. Comput.
- Holtz et al. (2012), "The alternating linear scheme for tensor optimization"
"""

import numpy as np
from scipy import linalg

from ttctmc.tt.core_tensor import CoreTensor


def _check_site_index(cores: list[CoreTensor], idx: int) -> None:
    if idx < 0:
        raise IndexError(f"Site index cannot be negative, got {idx}")
    if idx >= len(cores):
        raise IndexError(f"Site index {idx} out of range for train with {len(cores)} sites")


def left_orthogonalize_core(cores: list[CoreTensor], idx: int) -> None:
    """
    Left-orthogonalize site ``idx`` and push the remainder into site ``idx + 1``.

    Parameters
    ----------
    cores : list[CoreTensor]
        TT cores, modified in place
    idx : int
        Site to orthogonalize

    Raises
    ------
    IndexError
        If ``idx`` is out of range or addresses the last site

    Notes
    -----
    1. Left unfolding: (n * r_left, r_right)
    2. QR decomposition: unfolding = Q @ R
    3. Row blocks of Q replace the mode matrices of site idx
    4. R left-multiplies every mode matrix of site idx + 1
    """
    _check_site_index(cores, idx)
    if idx == len(cores) - 1:
        raise IndexError("The last core cannot be left orthogonalized")

    core = cores[idx]
    rows = core.rows
    Q, R = linalg.qr(core.left_unfolding(), mode="economic")

    next_core = cores[idx + 1]
    next_core.data = [R @ mat for mat in next_core.data]
    next_core.update_dimensions()

    core.data = [Q[m * rows:(m + 1) * rows, :].copy() for m in range(core.mode_length)]
    core.update_dimensions()


def right_orthogonalize_core(cores: list[CoreTensor], idx: int) -> None:
    """
    Right-orthogonalize site ``idx`` and push the remainder into site ``idx - 1``.

    Raises
    ------
    IndexError
        If ``idx`` is out of range or addresses the first site

    Notes
    -----
    1. Right unfolding: (r_left, n * r_right)
    2. QR on transpose: unfolding.T = Q @ R, so unfolding = R.T @ Q.T
    3. Column blocks of Q.T replace the mode matrices of site idx
    4. R.T right-multiplies every mode matrix of site idx - 1
    """
    _check_site_index(cores, idx)
    if idx == 0:
        raise IndexError("The first core cannot be right orthogonalized")

    core = cores[idx]
    cols = core.cols
    Q, R = linalg.qr(core.right_unfolding().T, mode="economic")
    Qt = Q.T  # (r_new, n * r_right)
    Rt = R.T  # (r_left, r_new)

    prev_core = cores[idx - 1]
    prev_core.data = [mat @ Rt for mat in prev_core.data]
    prev_core.update_dimensions()

    core.data = [Qt[:, m * cols:(m + 1) * cols].copy() for m in range(core.mode_length)]
    core.update_dimensions()


def left_to_right_sweep(cores: list[CoreTensor]) -> None:
    """Left-orthogonalize sites 0 .. K-2; the norm ends up in the last site."""
    for idx in range(len(cores) - 1):
        left_orthogonalize_core(cores, idx)


def right_to_left_sweep(cores: list[CoreTensor]) -> None:
    """Right-orthogonalize sites K-1 .. 1; the norm ends up in the first site."""
    for idx in range(len(cores) - 1, 0, -1):
        right_orthogonalize_core(cores, idx)


def truncation_rank(singular_values: np.ndarray, delta: float) -> tuple[int, float]:
    """
    Number of singular values to keep under an absolute error budget.

    Starting from the smallest value, singular values are discarded while the
    running sum of their squares stays strictly below ``delta**2``. The
    largest singular value is never discarded.

    Parameters
    ----------
    singular_values : np.ndarray
        Singular values in non-increasing order
    delta : float
        Absolute error budget for this boundary

    Returns
    -------
    rank : int
        Number of leading singular values to keep (at least 1)
    error : float
        Frobenius norm of the discarded part

    Examples
    --------
    >>> truncation_rank(np.array([3.0, 1.0, 0.1]), delta=0.5)
    (2, 0.1)
    """
    max_idx = len(singular_values) - 1
    sigma2_sum = 0.0
    delta2 = delta * delta
    for i in range(len(singular_values) - 1, 0, -1):
        sigma2 = float(singular_values[i]) ** 2
        if sigma2_sum + sigma2 < delta2:
            max_idx -= 1
            sigma2_sum += sigma2
        else:
            break
    return max(0, max_idx) + 1, float(np.sqrt(sigma2_sum))


def truncated_svd(
    mat: np.ndarray, delta: float
) -> tuple[np.ndarray, np.ndarray, np.ndarray, float]:
    """
    Exact SVD of ``mat`` truncated to the budget ``delta``.

    Returns
    -------
    U : np.ndarray
        Left singular vectors, shape (m, r)
    S : np.ndarray
        Kept singular values, shape (r,)
    Vt : np.ndarray
        Right singular vectors, shape (r, n)
    error : float
        Frobenius norm of the discarded part
    """
    try:
        U, S, Vt = linalg.svd(mat, full_matrices=False)
    except linalg.LinAlgError:
        # gesdd occasionally fails to converge, the QR-iteration driver is slower but robust
        U, S, Vt = linalg.svd(mat, full_matrices=False, lapack_driver="gesvd")

    rank, error = truncation_rank(S, delta)
    return U[:, :rank], S[:rank], Vt[:rank, :], error


def truncated_svd_gram(
    mat: np.ndarray, delta: float
) -> tuple[np.ndarray, np.ndarray, np.ndarray, float]:
    """
    Approximate truncated SVD through the eigenvectors of the Gram matrix.

    The symmetric eigenproblem is solved on the smaller of ``mat.T @ mat``
    and ``mat @ mat.T``, which is cheap when one bond dimension is much
    smaller than the unfolding. Squaring the matrix halves the attainable
    precision, so singular values below ``sqrt(eps) * sigma_max`` are treated
    as zero and discarded in addition to the budget rule.

    Returns
    -------
    Same as :func:`truncated_svd`.
    """
    m, n = mat.shape
    use_right = n <= m
    gram = mat.T @ mat if use_right else mat @ mat.T

    eigvals, eigvecs = linalg.eigh(gram)
    order = np.argsort(eigvals)[::-1]
    eigvals = eigvals[order]
    eigvecs = eigvecs[:, order]
    S = np.sqrt(np.clip(eigvals, 0.0, None))

    rank, _ = truncation_rank(S, delta)
    cutoff = np.sqrt(np.finfo(float).eps) * (S[0] if len(S) > 0 else 0.0)
    rank = min(rank, int(np.sum(S > cutoff)))

    if rank == 0:
        # Zero matrix: keep a single zero-weighted component to preserve shapes
        U = np.zeros((m, 1))
        U[0, 0] = 1.0
        return U, np.zeros(1), np.zeros((1, n)), float(np.linalg.norm(S))

    error = float(np.linalg.norm(S[rank:]))
    S = S[:rank]
    if use_right:
        V = eigvecs[:, :rank]
        U = (mat @ V) / S[np.newaxis, :]
        Vt = V.T
    else:
        U = eigvecs[:, :rank]
        Vt = (U.T @ mat) / S[:, np.newaxis]

    return U, S, Vt, error


def contract_inner(left: list[CoreTensor], right: list[CoreTensor]) -> float:
    """
    Inner product of two trains by a left-to-right contraction sweep.

    The accumulator W has shape (r_left_A, r_left_B) at each boundary and is
    updated as ``W <- sum_i A[i].T @ W @ B[i]``. Starting from W = [[1]]
    the first update reduces to the mode-summed Kronecker combination of the
    first sites; the final accumulator is 1 x 1.

    Shapes are assumed to have been validated by the caller.
    """
    W = np.ones((1, 1))
    for core_a, core_b in zip(left, right):
        A = np.stack(core_a.data)  # (n, r_a, c_a)
        B = np.stack(core_b.data)  # (n, r_b, c_b)
        W = np.einsum("nac,ab,nbd->cd", A, W, B)
    return float(W[0, 0])
