"""
Kronecker-sum construction of CTMC generators in TT format.

For K independent components with local (off-diagonal) rate matrices
Q_0, ..., Q_{K-1}, the rate matrix of the product system is the Kronecker sum

    R = Q_0 (+) Q_1 (+) ... (+) Q_{K-1}
      = sum_k I (x) ... (x) Q_k (x) ... (x) I

and the generator is ``R - diag(R @ 1)``. Neither is ever formed densely.

Each component contributes one core per site (its own position in the
chain). The rank-2 layout

    first:  [Q | I]      middle: [[I, 0],     last: [I ; Q]
                                  [Q, I]]

contracts to the Kronecker sum exactly: the second bond state means "the
rate factor has not been placed yet", the first means "already placed".

Typical usage:
--------------
    from ttctmc.models import RepairableComponent, build_generator

    events = [
        RepairableComponent("pump", failure_rate=1e-3, repair_rate=1e-1),
        RepairableComponent("valve", failure_rate=5e-4),
    ]
    Q = build_generator(events)
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass, field

import numpy as np

from ttctmc.models.tt_operators import TTSquareMatrix
from ttctmc.models.tt_vectors import ones, product_vector
from ttctmc.tt import CoreTensor, RoundingConfig, TensorTrain


@dataclass
class KronsumConfig:
    """
    Configuration for the addition-based generator builder.

    Parameters
    ----------
    rounding : RoundingConfig, default=relative 1e-12
        Rounding applied to the running sum. A zero budget keeps numerically
        zero singular values, so the default drops them with a tiny relative one.
    round_every : int, default=1
        Round after this many accumulated local terms (and once at the end)
    include_diagonal : bool, default=True
        Subtract the row sums so the result is a proper generator
    """

    rounding: RoundingConfig = field(
        default_factory=lambda: RoundingConfig(tolerance=1e-12, relative=True)
    )
    round_every: int = 1
    include_diagonal: bool = True

    def __post_init__(self):
        """Validate configuration."""
        if self.round_every < 1:
            raise ValueError(f"round_every must be >= 1, got {self.round_every}")


def kronsum_core(local_rates: np.ndarray, prev_rank: int, is_last: bool) -> CoreTensor:
    """
    Per-site core of the rank-2 Kronecker-sum layout.

    Parameters
    ----------
    local_rates : np.ndarray
        Square (n, n) local rate matrix Q
    prev_rank : int
        Rank of the boundary to the left (1 for the first site)
    is_last : bool
        Whether this is the last site of the chain

    Returns
    -------
    CoreTensor
        ``n**2`` modes; mode ``i*n + j`` carries the (i, j) entries of the
        block layout. A chain of one site yields the 1 x 1 core holding Q.

    Raises
    ------
    ValueError
        If ``local_rates`` is not a square matrix
    """
    Q = np.asarray(local_rates, dtype=float)
    if Q.ndim != 2 or Q.shape[0] != Q.shape[1]:
        raise ValueError(f"Local rate matrix must be square, got shape {Q.shape}")
    n = Q.shape[0]
    I = np.eye(n)

    if prev_rank == 1 and is_last:
        rows, cols = 1, 1
    elif prev_rank == 1:
        rows, cols = 1, 2
    elif is_last:
        rows, cols = 2, 1
    else:
        rows, cols = 2, 2

    core = CoreTensor(n * n, rows, cols)
    for i in range(n):
        for j in range(n):
            if rows == 1 and cols == 1:
                block = [[Q[i, j]]]
            elif rows == 1:
                block = [[Q[i, j], I[i, j]]]
            elif cols == 1:
                block = [[I[i, j]], [Q[i, j]]]
            else:
                block = [[I[i, j], 0.0], [Q[i, j], I[i, j]]]
            core[i, j] = np.array(block)
    return core


class KronsumContributor(ABC):
    """
    A component contributing one site to a Kronecker-sum generator.

    Subclasses provide the local off-diagonal rate matrix; the per-site core
    follows from the component's position in the chain.
    """

    def __init__(self, name: str):
        self.name = name

    @property
    def num_states(self) -> int:
        return self.local_rates().shape[0]

    @abstractmethod
    def local_rates(self) -> np.ndarray:
        """Off-diagonal (n, n) rate matrix of this component."""

    def base_core(self, prev_rank: int, is_last: bool) -> CoreTensor:
        return kronsum_core(self.local_rates(), prev_rank, is_last)

    def steady_state_vector(self) -> np.ndarray:
        """Stationary distribution of the component in isolation."""
        raise NotImplementedError(
            f"{type(self).__name__} does not provide a stationary distribution"
        )

    def local_generator(self) -> np.ndarray:
        """Local generator: rates with the negated row sums on the diagonal."""
        Q = self.local_rates()
        return Q - np.diag(Q.sum(axis=1))

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, num_states={self.num_states})"


class RepairableComponent(KronsumContributor):
    """
    Two-state basic event: state 0 operational, state 1 failed.

    Parameters
    ----------
    name : str
        Component name
    failure_rate : float
        Rate of the 0 -> 1 transition
    repair_rate : float, default=0.0
        Rate of the 1 -> 0 transition (0 for non-repairable components)

    Examples
    --------
    >>> be = RepairableComponent("pump", failure_rate=0.1, repair_rate=0.9)
    >>> be.steady_state_vector()
    array([0.9, 0.1])
    """

    def __init__(self, name: str, failure_rate: float, repair_rate: float = 0.0):
        super().__init__(name)
        if failure_rate < 0.0 or repair_rate < 0.0:
            raise ValueError(
                f"Rates of {name!r} must be non-negative, got "
                f"failure_rate={failure_rate}, repair_rate={repair_rate}"
            )
        self.failure_rate = float(failure_rate)
        self.repair_rate = float(repair_rate)

    @property
    def repairable(self) -> bool:
        return self.repair_rate > 0.0

    def local_rates(self) -> np.ndarray:
        return np.array([[0.0, self.failure_rate], [self.repair_rate, 0.0]])

    def steady_state_vector(self) -> np.ndarray:
        """
        Stationary distribution [mu / (lambda + mu), lambda / (lambda + mu)].

        Raises
        ------
        ValueError
            If both rates are zero (every distribution is stationary)
        """
        total = self.failure_rate + self.repair_rate
        if total == 0.0:
            raise ValueError(f"Component {self.name!r} has no transitions")
        return np.array([self.repair_rate / total, self.failure_rate / total])


def _check_contributors(contributors: Sequence[KronsumContributor]) -> None:
    if len(contributors) == 0:
        raise ValueError("At least one contributor is required")


def kronsum_offdiagonal(contributors: Sequence[KronsumContributor]) -> TTSquareMatrix:
    """
    Rank-2 train of the Kronecker sum of the local rate matrices.

    Built site by site from ``base_core`` calls.
    """
    _check_contributors(contributors)
    cores = []
    prev_rank = 1
    last = len(contributors) - 1
    for k, contributor in enumerate(contributors):
        core = contributor.base_core(prev_rank, k == last)
        cores.append(core)
        prev_rank = core.cols
    return TTSquareMatrix(TensorTrain(cores))


def local_term(contributors: Sequence[KronsumContributor], idx: int) -> TTSquareMatrix:
    """Rank-1 operator ``I (x) ... (x) Q_idx (x) ... (x) I``."""
    _check_contributors(contributors)
    local = [np.eye(c.num_states) for c in contributors]
    local[idx] = contributors[idx].local_rates()
    return TTSquareMatrix.from_local(local)


def build_generator(
    contributors: Sequence[KronsumContributor],
    config: KronsumConfig | None = None,
) -> TTSquareMatrix:
    """
    Generator of the product CTMC by accumulating local terms.

    The local terms are summed with in-place TT addition, rounding the
    running sum every ``config.round_every`` terms. With
    ``config.include_diagonal`` the row sums ``R @ 1`` are subtracted on the
    diagonal, giving a generator whose rows sum to zero.

    Parameters
    ----------
    contributors : Sequence[KronsumContributor]
        Components in chain order
    config : KronsumConfig, optional
        Builder configuration

    Returns
    -------
    TTSquareMatrix
        Generator (or off-diagonal rate operator) in TT format
    """
    if config is None:
        config = KronsumConfig()
    _check_contributors(contributors)

    total = local_term(contributors, 0).tt
    for k in range(1, len(contributors)):
        total.add_in_place(local_term(contributors, k).tt)
        if k % config.round_every == 0:
            total.round(config.rounding)
    total.round(config.rounding)

    rates = TTSquareMatrix(total)
    if not config.include_diagonal:
        return rates

    row_sums = rates.matvec(ones(rates.modes)).round(config.rounding)
    generator = rates.subtract(TTSquareMatrix.diag(row_sums))
    return generator.round(config.rounding)


def product_steady_state(contributors: Sequence[KronsumContributor]) -> TensorTrain:
    """
    Stationary distribution of independent components (rank-1 product form).

    Every contributor must provide ``steady_state_vector()``.
    """
    _check_contributors(contributors)
    return product_vector([c.steady_state_vector() for c in contributors])
