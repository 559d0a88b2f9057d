"""
Mode-profile validation for Tensor-Train vectors and operators.

Conventions
-----------
A TT vector over a product state space has one site per component; site k
carries ``n_k`` modes (the local states of component k).

A TT operator (square matrix) over the same space carries ``n_k**2`` modes
at site k. The flattened mode index of the pair (row state i, column state j)
is ``i * n_k + j``.

This module provides utilities to:
1. Check that two trains can be combined site by site
2. Recover the per-site state counts of an operator
3. Validate coordinate tuples against a mode profile
"""

import math
from collections.abc import Sequence


def square_root_mode(mode_length: int) -> int | None:
    """
    Return N when ``mode_length == N**2``, otherwise None.

    Examples
    --------
    >>> square_root_mode(4)
    2
    >>> square_root_mode(3) is None
    True
    """
    if mode_length < 0:
        return None
    root = math.isqrt(mode_length)
    if root * root != mode_length:
        return None
    return root


def validate_mode_profiles(
    left: Sequence[int],
    right: Sequence[int],
    operation: str = "combine",
) -> None:
    """
    Check that two trains have the same number of sites and matching modes.

    Parameters
    ----------
    left, right : Sequence[int]
        Per-site mode lengths of the two operands
    operation : str
        Name of the operation, used in the error message

    Raises
    ------
    ValueError
        If the site counts or any per-site mode length differ
    """
    if len(left) != len(right):
        raise ValueError(
            f"Cannot {operation} trains with different number of sites: "
            f"{len(left)} vs {len(right)}"
        )
    for k, (n_left, n_right) in enumerate(zip(left, right)):
        if n_left != n_right:
            raise ValueError(
                f"Cannot {operation}: mode lengths of site {k} don't match "
                f"(left: {n_left}, right: {n_right})"
            )


def operator_modes(mode_lengths: Sequence[int]) -> list[int]:
    """
    Per-site state counts of an operator train.

    Raises
    ------
    ValueError
        If some site's mode length is not a perfect square

    Examples
    --------
    >>> operator_modes([4, 9, 4])
    [2, 3, 2]
    """
    modes = []
    for k, mode_length in enumerate(mode_lengths):
        root = square_root_mode(mode_length)
        if root is None:
            raise ValueError(
                f"Site {k} has mode length {mode_length}, which is not a perfect square"
            )
        modes.append(root)
    return modes


def validate_indices(indices: Sequence[int], mode_lengths: Sequence[int]) -> None:
    """
    Check that a coordinate tuple addresses one entry of the train.

    Raises
    ------
    ValueError
        If the tuple length differs from the number of sites
    IndexError
        If a coordinate is out of range for its site
    """
    if len(indices) != len(mode_lengths):
        raise ValueError(
            f"Expected {len(mode_lengths)} indices (one per site), got {len(indices)}"
        )
    for k, (idx, n_k) in enumerate(zip(indices, mode_lengths)):
        if not 0 <= idx < n_k:
            raise IndexError(f"Index {idx} out of range for site {k} with {n_k} modes")
