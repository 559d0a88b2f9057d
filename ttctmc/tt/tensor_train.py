"""
Tensor-Train (TT) representation and algebra.

The TT format represents a K-dimensional tensor as a product of K cores:
    A[i_0, i_1, ..., i_{K-1}] = G_0[i_0] @ G_1[i_1] @ ... @ G_{K-1}[i_{K-1}]

Each core G_k holds n_k matrices of shape (r_k, r_{k+1}), where:
- n_k is the number of modes at site k (local states of one component)
- r_k is the TT rank between cores k-1 and k
- r_0 = r_K = 1 (boundary conditions)

For CTMC models built from independent components:
- K = number of components (basic events, places)
- vectors (distributions) have n_k = local state count
- operators (generators) have n_k = local state count squared

Algebra grows ranks: addition adds them, the Hadamard product multiplies
them. Call one of the rounding methods after accumulating sums.

References:
- Oseledets (2011), "Tensor-Train Decomposition", SIAM J. Sci. Comput.
- Buchholz, Dayar, Kriege, Orhan (2017), "On the Convergence of a Class of
  Multilevel Methods for Large Sparse Markov Chains" (TT for CTMCs)
"""

import math

import numpy as np

from ttctmc.tt.core_tensor import CoreTensor
from ttctmc.tt.rounding import (
    BudgetMode,
    RoundingConfig,
    round_absolute,
    round_cores,
    round_relative,
)
from ttctmc.tt.tt_cores import (
    contract_inner,
    left_orthogonalize_core,
    right_orthogonalize_core,
)
from ttctmc.utils.shapes import validate_indices, validate_mode_profiles


def validate_chain(cores: list[CoreTensor]) -> None:
    """
    Validate that TT cores form a consistent chain.

    Checks:
    1. Every mode matrix of a core has shape (rows, cols)
    2. Boundary conditions: first rows = 1 and last cols = 1
    3. Rank compatibility: cores[k].cols == cores[k+1].rows

    Raises
    ------
    ValueError
        If cores are inconsistent
    """
    for k, core in enumerate(cores):
        for i, mat in enumerate(core.data):
            if mat.shape != (core.rows, core.cols):
                raise ValueError(
                    f"Core {k}, mode {i}: matrix shape {mat.shape} doesn't match "
                    f"recorded dimensions {(core.rows, core.cols)}"
                )
        if k < len(cores) - 1 and core.cols != cores[k + 1].rows:
            raise ValueError(
                f"Rank mismatch between cores {k} and {k+1}: "
                f"core[{k}].cols={core.cols}, core[{k+1}].rows={cores[k + 1].rows}"
            )

    if cores:
        if cores[0].rows != 1:
            raise ValueError(f"First core must have rows=1, got {cores[0].rows}")
        if cores[-1].cols != 1:
            raise ValueError(f"Last core must have cols=1, got {cores[-1].cols}")


class TensorTrain:
    """
    Tensor-Train vector or operator.

    Attributes
    ----------
    cores : list[CoreTensor]
        K cores, owned exclusively by this train

    Notes
    -----
    Pure operations (``add``, ``scale``, ``hadamard``, ``mirror``, ``copy``)
    return new trains. ``add_in_place``, ``scale_in_place``, the
    orthogonalization methods and the rounding methods mutate this train.
    None of them is safe to call concurrently on the same train.

    Examples
    --------
    >>> e1 = TensorTrain.from_cores([np.array([[[0.0], [1.0]]])])
    >>> e1.get(1)
    1.0
    """

    def __init__(self, cores: list[CoreTensor] | None = None, validate: bool = True):
        self.cores = list(cores) if cores is not None else []
        if validate:
            validate_chain(self.cores)

    @classmethod
    def from_cores(cls, arrays: list[np.ndarray]) -> "TensorTrain":
        """Build a train from 3D arrays of shape (r_left, n, r_right)."""
        if len(arrays) == 0:
            raise ValueError("TT cores list cannot be empty")
        return cls([CoreTensor.from_array(a) for a in arrays])

    def to_cores(self) -> list[np.ndarray]:
        """Return the cores as 3D arrays of shape (r_left, n, r_right)."""
        return [core.to_array() for core in self.cores]

    @property
    def num_sites(self) -> int:
        return len(self.cores)

    def __len__(self) -> int:
        return len(self.cores)

    @property
    def mode_lengths(self) -> list[int]:
        return [core.mode_length for core in self.cores]

    def ranks(self) -> list[int]:
        """Rank profile [r_0, r_1, ..., r_{K-1}, 1]."""
        return [core.rows for core in self.cores] + [1]

    def set_core(self, idx: int, core: CoreTensor) -> None:
        self.cores[idx] = core

    def get(self, *indices: int) -> float:
        """
        Value at a full coordinate tuple.

        Raises
        ------
        ValueError
            If the number of indices differs from the number of sites
            or the train is empty
        """
        if not self.cores:
            raise ValueError("Cannot index an empty tensor train")
        validate_indices(indices, self.mode_lengths)
        res = self.cores[0][indices[0]]
        for core, idx in zip(self.cores[1:], indices[1:]):
            res = res @ core[idx]
        return float(res[0, 0])

    def __getitem__(self, indices) -> float:
        if not isinstance(indices, tuple):
            indices = (indices,)
        return self.get(*indices)

    def to_full(self) -> np.ndarray:
        """
        Materialize the full tensor.

        WARNING: allocates prod(n_k) entries. Only for debugging and
        validation on small models.
        """
        cores = self.to_cores()
        A = cores[0][0, :, :]  # (n_0, r_1)
        for core_k in cores[1:]:
            r_left, n_k, r_right = core_k.shape
            A_shape = A.shape
            A = A.reshape(-1, r_left) @ core_k.reshape(r_left, n_k * r_right)
            A = A.reshape(*A_shape[:-1], n_k, r_right)
        return A[..., 0]

    def copy(self) -> "TensorTrain":
        """Deep copy of the train."""
        return TensorTrain([core.copy() for core in self.cores], validate=False)

    def data_as_string(self) -> str:
        """
        Debug text dump.

        Line 1: mode lengths, line 2: rank profile, then one line per mode
        matrix (site by site) with its entries in row-major order.
        """
        lines = [str(self.mode_lengths), str(self.ranks())]
        for core in self.cores:
            for mat in core.data:
                lines.append(" ".join(str(float(x)) for x in mat.ravel()))
        return "\n".join(lines) + "\n"

    # ------------------------------------------------------------------
    # Algebra
    # ------------------------------------------------------------------

    def add(self, other: "TensorTrain") -> "TensorTrain":
        """
        Exact sum of two trains; internal ranks add up.

        First site: [A_i | B_i], last site: [A_i ; B_i], middle sites:
        block-diagonal. No compression is performed.

        Raises
        ------
        ValueError
            If site counts or per-site mode lengths differ
        """
        validate_mode_profiles(self.mode_lengths, other.mode_lengths, "add")
        if not self.cores:
            return TensorTrain()

        if len(self.cores) == 1:
            a, b = self.cores[0], other.cores[0]
            return TensorTrain(
                [CoreTensor(a.mode_length, 1, 1, [x + y for x, y in zip(a.data, b.data)])]
            )

        res = []
        last = len(self.cores) - 1
        for k, (a, b) in enumerate(zip(self.cores, other.cores)):
            data = [_place_blocks(x, y, k, last) for x, y in zip(a.data, b.data)]
            rows, cols = data[0].shape
            res.append(CoreTensor(a.mode_length, rows, cols, data))
        return TensorTrain(res, validate=False)

    def add_in_place(self, other: "TensorTrain") -> "TensorTrain":
        """In-place variant of :meth:`add`; mutates this train."""
        validate_mode_profiles(self.mode_lengths, other.mode_lengths, "add")
        if not self.cores:
            return self

        if len(self.cores) == 1:
            a, b = self.cores[0], other.cores[0]
            a.data = [x + y for x, y in zip(a.data, b.data)]
            return self

        last = len(self.cores) - 1
        for k, (a, b) in enumerate(zip(self.cores, other.cores)):
            a.data = [_place_blocks(x, y, k, last) for x, y in zip(a.data, b.data)]
            a.update_dimensions()
        return self

    def scale(self, d: float) -> "TensorTrain":
        """Return ``d * self``; only the first site is scaled."""
        return self.copy().scale_in_place(d)

    def scale_in_place(self, d: float) -> "TensorTrain":
        if self.cores:
            self.cores[0].scale_in_place(d)
        return self

    def subtract(self, other: "TensorTrain") -> "TensorTrain":
        return self.add(other.scale(-1.0))

    def subtract_in_place(self, other: "TensorTrain") -> "TensorTrain":
        return self.add_in_place(other.scale(-1.0))

    def __add__(self, other: "TensorTrain") -> "TensorTrain":
        return self.add(other)

    def __iadd__(self, other: "TensorTrain") -> "TensorTrain":
        return self.add_in_place(other)

    def __sub__(self, other: "TensorTrain") -> "TensorTrain":
        return self.subtract(other)

    def __isub__(self, other: "TensorTrain") -> "TensorTrain":
        return self.subtract_in_place(other)

    def __mul__(self, d: float) -> "TensorTrain":
        return self.scale(d)

    __rmul__ = __mul__

    def __imul__(self, d: float) -> "TensorTrain":
        return self.scale_in_place(d)

    def __neg__(self) -> "TensorTrain":
        return self.scale(-1.0)

    def hadamard(self, other: "TensorTrain") -> "TensorTrain":
        """
        Elementwise product; ranks multiply.

        Each mode matrix of the result is the Kronecker product of the
        operands' matrices for that mode.
        """
        validate_mode_profiles(self.mode_lengths, other.mode_lengths, "multiply")
        res = []
        for a, b in zip(self.cores, other.cores):
            data = [np.kron(x, y) for x, y in zip(a.data, b.data)]
            res.append(CoreTensor(a.mode_length, a.rows * b.rows, a.cols * b.cols, data))
        return TensorTrain(res, validate=False)

    def inner_product(self, other: "TensorTrain") -> float:
        """
        Sum of elementwise products of two trains.

        Raises
        ------
        ValueError
            If site counts or per-site mode lengths differ
        """
        validate_mode_profiles(self.mode_lengths, other.mode_lengths, "take inner product of")
        if not self.cores:
            return 0.0
        return contract_inner(self.cores, other.cores)

    scalar_product = inner_product

    def frobenius_norm(self) -> float:
        # abs() guards against tiny negative values from cancellation
        return math.sqrt(abs(self.inner_product(self)))

    def mirror(self) -> "TensorTrain":
        """Reverse the site order and transpose every mode matrix."""
        return TensorTrain([core.transpose() for core in reversed(self.cores)], validate=False)

    # ------------------------------------------------------------------
    # Orthogonalization and rounding
    # ------------------------------------------------------------------

    def left_orthogonalize(self, idx: int) -> None:
        """QR-orthogonalize site ``idx`` and absorb R into site ``idx + 1``."""
        left_orthogonalize_core(self.cores, idx)

    def right_orthogonalize(self, idx: int) -> None:
        """QR-orthogonalize site ``idx`` from the right and absorb R into site ``idx - 1``."""
        right_orthogonalize_core(self.cores, idx)

    def round_absolute(
        self,
        tolerance: float,
        use_iterative: bool = False,
        budget_mode: BudgetMode = BudgetMode.NONE,
        verbose: bool = False,
    ) -> "TensorTrain":
        """Round in place with absolute budget ``tolerance``; returns self."""
        round_absolute(self.cores, tolerance, use_iterative, budget_mode, verbose)
        return self

    def round_relative(
        self,
        tolerance: float,
        use_iterative: bool = False,
        budget_mode: BudgetMode = BudgetMode.NONE,
        verbose: bool = False,
    ) -> "TensorTrain":
        """Round in place with budget ``tolerance`` relative to the norm; returns self."""
        round_relative(self.cores, tolerance, use_iterative, budget_mode, verbose)
        return self

    def round(self, config: RoundingConfig | None = None) -> "TensorTrain":
        """Round in place according to ``config``; returns self."""
        if config is None:
            config = RoundingConfig()
        round_cores(self.cores, config)
        return self

    def __repr__(self) -> str:
        """String representation showing mode lengths and ranks."""
        return f"TensorTrain(modes={tuple(self.mode_lengths)}, ranks={tuple(self.ranks())})"


def _place_blocks(a: np.ndarray, b: np.ndarray, site: int, last: int) -> np.ndarray:
    """Combine two mode matrices according to the site position in the chain."""
    if site == 0:
        return np.hstack([a, b])
    if site == last:
        return np.vstack([a, b])
    return np.block(
        [
            [a, np.zeros((a.shape[0], b.shape[1]))],
            [np.zeros((b.shape[0], a.shape[1])), b],
        ]
    )
