"""
SVD-based Tensor-Train rounding (rank truncation).

Rounding compresses a train whose ranks have grown (typically after
additions) back to near-minimal ranks for a given accuracy:

1. Right-to-left QR sweep: every site except the first becomes
   right-orthogonal, so the first site carries the whole norm.
2. Left-to-right SVD sweep: at each boundary the left unfolding is
   decomposed, the smallest singular values are discarded within the error
   budget, U replaces the site and S @ Vt is absorbed by the next site.

The budget ``delta`` is applied unchanged at every boundary, so the total
error is bounded by ``sqrt(K - 1) * delta`` in the worst case.
``round_relative`` scales the budget by ``1 / sqrt(K - 1)`` to compensate.

References:
- Oseledets (2011), "Tensor-Train Decomposition", Algorithm 2 (TT-rounding)
"""

import math
import warnings
from dataclasses import dataclass
from enum import Enum

from ttctmc.tt.core_tensor import CoreTensor
from ttctmc.tt.tt_cores import (
    contract_inner,
    right_to_left_sweep,
    truncated_svd,
    truncated_svd_gram,
)


class BudgetMode(Enum):
    """
    Distribution of the error budget across boundaries.

    Only ``NONE`` (single budget reused at every boundary) is implemented.
    ``UNIFORM`` and ``NEIGHBOR_SHARE`` are reserved for per-site budget
    allocation and currently behave like ``NONE``.
    """

    NONE = "none"
    UNIFORM = "uniform"
    NEIGHBOR_SHARE = "neighbor_share"


def _coerce_budget_mode(budget_mode) -> BudgetMode:
    if isinstance(budget_mode, BudgetMode):
        return budget_mode
    if isinstance(budget_mode, str):
        try:
            return BudgetMode[budget_mode.upper()]
        except KeyError:
            pass
    raise ValueError(
        f"budget_mode must be one of {[m.name for m in BudgetMode]}, got {budget_mode!r}"
    )


def _check_tolerance(tolerance: float) -> None:
    if not math.isfinite(tolerance) or tolerance < 0.0:
        raise ValueError(f"Tolerance must be a finite non-negative number, got {tolerance}")


@dataclass
class RoundingConfig:
    """
    Configuration for TT rounding.

    Parameters
    ----------
    tolerance : float, default=0.0
        Error budget (absolute, or relative to the Frobenius norm)
    relative : bool, default=False
        Interpret ``tolerance`` relative to the norm of the train
    use_iterative : bool, default=False
        Use the Gram-matrix eigensolver instead of a full SVD at each boundary
    budget_mode : BudgetMode, default=BudgetMode.NONE
        Budget distribution across boundaries (only NONE is implemented; the
        others warn when rounding and fall back to NONE)
    verbose : bool, default=False
        Print the kept rank and truncation error at each boundary
    """

    tolerance: float = 0.0
    relative: bool = False
    use_iterative: bool = False
    budget_mode: BudgetMode = BudgetMode.NONE
    verbose: bool = False

    def __post_init__(self):
        """Validate configuration."""
        _check_tolerance(self.tolerance)
        self.budget_mode = _coerce_budget_mode(self.budget_mode)


def round_absolute(
    cores: list[CoreTensor],
    tolerance: float,
    use_iterative: bool = False,
    budget_mode: BudgetMode = BudgetMode.NONE,
    verbose: bool = False,
) -> list[float]:
    """
    Round TT cores in place with an absolute error budget.

    Parameters
    ----------
    cores : list[CoreTensor]
        TT cores, modified in place
    tolerance : float
        Absolute budget ``delta`` applied at every boundary
    use_iterative : bool, default=False
        Use :func:`truncated_svd_gram` instead of an exact SVD
    budget_mode : BudgetMode, default=BudgetMode.NONE
        Only NONE is implemented; other modes fall back to it
    verbose : bool, default=False
        Print per-boundary progress

    Returns
    -------
    errors : list[float]
        Frobenius norm of the discarded part at each boundary

    Raises
    ------
    ValueError
        If ``tolerance`` is negative or not finite
    """
    _check_tolerance(tolerance)
    budget_mode = _coerce_budget_mode(budget_mode)
    if budget_mode is not BudgetMode.NONE:
        warnings.warn(
            f"Budget mode {budget_mode.name} is not implemented, "
            "using a single budget at every boundary",
            UserWarning,
            stacklevel=2,
        )

    if len(cores) <= 1:
        return []

    right_to_left_sweep(cores)

    delta = tolerance
    svd = truncated_svd_gram if use_iterative else truncated_svd
    errors = []

    for k in range(len(cores) - 1):
        core = cores[k]
        mat = core.left_unfolding()
        full_rank = min(mat.shape)
        U, S, Vt, error = svd(mat, delta)

        rows = core.rows
        core.data = [U[m * rows:(m + 1) * rows, :].copy() for m in range(core.mode_length)]
        core.update_dimensions()

        modifier = S[:, None] * Vt  # diag(S) @ Vt
        next_core = cores[k + 1]
        next_core.data = [modifier @ m for m in next_core.data]
        next_core.update_dimensions()

        errors.append(error)
        if verbose:
            print(f"Boundary {k}: kept rank {len(S)}/{full_rank}, truncation error={error:.3e}")

    return errors


def round_relative(
    cores: list[CoreTensor],
    tolerance: float,
    use_iterative: bool = False,
    budget_mode: BudgetMode = BudgetMode.NONE,
    verbose: bool = False,
) -> list[float]:
    """
    Round TT cores in place with a budget relative to their Frobenius norm.

    The absolute budget is ``tolerance / sqrt(K - 1) * ||T||_F``, with K the
    number of sites (K = 1 is treated as K = 2).
    """
    _check_tolerance(tolerance)
    if tolerance == 0.0:
        delta = 0.0
    else:
        norm = math.sqrt(abs(contract_inner(cores, cores)))
        delta = tolerance / math.sqrt(max(len(cores) - 1, 1)) * norm
    return round_absolute(cores, delta, use_iterative, budget_mode, verbose)


def round_cores(cores: list[CoreTensor], config: RoundingConfig) -> list[float]:
    """Round TT cores in place according to ``config``."""
    round_fn = round_relative if config.relative else round_absolute
    return round_fn(
        cores,
        config.tolerance,
        use_iterative=config.use_iterative,
        budget_mode=config.budget_mode,
        verbose=config.verbose,
    )
