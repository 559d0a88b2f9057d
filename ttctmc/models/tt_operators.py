"""
TT square matrices: operators over product state spaces.

An operator over states (s_0, ..., s_{K-1}) with n_k local states per site is
stored as a TensorTrain whose site k has n_k**2 modes. The mode for the
(row state i, column state j) pair is ``i * n_k + j``, so

    A[(i_0..i_{K-1}), (j_0..j_{K-1})] = G_0[i_0, j_0] @ ... @ G_{K-1}[i_{K-1}, j_{K-1}]

CTMC generators use the row-to-column convention: entry (s, s') is the rate
of the transition from s to s'.
"""

from collections.abc import Sequence

import numpy as np

from ttctmc.tt import CoreTensor, RoundingConfig, TensorTrain
from ttctmc.utils.shapes import operator_modes, validate_mode_profiles


class TTSquareMatrix:
    """
    Square operator in TT format.

    Attributes
    ----------
    tt : TensorTrain
        Underlying train with ``modes[k]**2`` modes at site k
    modes : list[int]
        Local state counts per site

    Examples
    --------
    >>> eye = TTSquareMatrix.identity([2, 3])
    >>> eye.to_dense().shape
    (6, 6)
    """

    def __init__(self, tt: TensorTrain, modes: Sequence[int] | None = None):
        inferred = operator_modes(tt.mode_lengths)
        if modes is not None and list(modes) != inferred:
            raise ValueError(
                f"Modes {list(modes)} don't match train mode lengths {tt.mode_lengths}"
            )
        self.tt = tt
        self.modes = inferred

    @classmethod
    def identity(cls, modes: Sequence[int]) -> "TTSquareMatrix":
        """Rank-1 identity operator."""
        cores = []
        for n in modes:
            core = CoreTensor(n * n, 1, 1)
            for i in range(n):
                core[i, i] = np.ones((1, 1))
            cores.append(core)
        return cls(TensorTrain(cores), modes)

    @classmethod
    def diag(cls, vector: TensorTrain) -> "TTSquareMatrix":
        """
        Diagonal operator with ``vector`` on its diagonal.

        Site k places the vector's mode-m matrix at the (m, m) mode pair;
        ranks are those of ``vector``.
        """
        cores = []
        for core in vector.cores:
            n = core.mode_length
            mat_core = CoreTensor(n * n, core.rows, core.cols)
            for m in range(n):
                mat_core[m, m] = core[m].copy()
            cores.append(mat_core)
        return cls(TensorTrain(cores, validate=False), vector.mode_lengths)

    @classmethod
    def from_local(cls, local_matrices: Sequence[np.ndarray]) -> "TTSquareMatrix":
        """Rank-1 operator: Kronecker product of per-site square matrices."""
        cores = []
        for k, mat in enumerate(local_matrices):
            mat = np.asarray(mat, dtype=float)
            if mat.ndim != 2 or mat.shape[0] != mat.shape[1]:
                raise ValueError(f"Local matrix {k} must be square, got shape {mat.shape}")
            cores.append(CoreTensor(mat.size, 1, 1, [np.array([[x]]) for x in mat.ravel()]))
        return cls(TensorTrain(cores))

    @property
    def num_sites(self) -> int:
        return self.tt.num_sites

    def ranks(self) -> list[int]:
        return self.tt.ranks()

    def get(self, row_states: Sequence[int], col_states: Sequence[int]) -> float:
        """Entry for a (row state tuple, column state tuple) pair."""
        if len(row_states) != self.num_sites or len(col_states) != self.num_sites:
            raise ValueError(
                f"Expected {self.num_sites} row and column states, "
                f"got {len(row_states)} and {len(col_states)}"
            )
        flat = []
        for k, (i, j, n) in enumerate(zip(row_states, col_states, self.modes)):
            if not (0 <= i < n and 0 <= j < n):
                raise IndexError(
                    f"State pair ({i}, {j}) out of range for site {k} with {n} states"
                )
            flat.append(i * n + j)
        return self.tt.get(*flat)

    def matvec(self, vector: TensorTrain) -> TensorTrain:
        """
        Operator-vector product ``A @ x``; ranks multiply.

        Site k of the result: y[i] = sum_j kron(A[i, j], x[j]).
        """
        validate_mode_profiles(self.modes, vector.mode_lengths, "apply operator to")
        cores = []
        for op_core, vec_core, n in zip(self.tt.cores, vector.cores, self.modes):
            data = [
                sum(np.kron(op_core[i, j], vec_core[j]) for j in range(n))
                for i in range(n)
            ]
            cores.append(
                CoreTensor(n, op_core.rows * vec_core.rows, op_core.cols * vec_core.cols, data)
            )
        return TensorTrain(cores, validate=False)

    def rmatvec(self, vector: TensorTrain) -> TensorTrain:
        """
        Vector-operator product ``x @ A`` (CTMC forward direction, pi Q).

        Site k of the result: y[j] = sum_i kron(A[i, j], x[i]).
        """
        return self.transpose().matvec(vector)

    def transpose(self) -> "TTSquareMatrix":
        """Swap row and column modes at every site."""
        cores = []
        for core, n in zip(self.tt.cores, self.modes):
            t_core = CoreTensor(core.mode_length, core.rows, core.cols)
            for i in range(n):
                for j in range(n):
                    t_core[j, i] = core[i, j].copy()
            cores.append(t_core)
        return TTSquareMatrix(TensorTrain(cores, validate=False), self.modes)

    def to_dense(self) -> np.ndarray:
        """
        Materialize the operator as a (prod n_k) x (prod n_k) matrix.

        WARNING: dense. Only for debugging and validation on small models.
        """
        full = self.tt.to_full()  # (n_0**2, ..., n_{K-1}**2)
        K = self.num_sites
        paired = full.reshape([d for n in self.modes for d in (n, n)])
        # (i_0, j_0, i_1, j_1, ...) -> (i_0, i_1, ..., j_0, j_1, ...)
        axes = list(range(0, 2 * K, 2)) + list(range(1, 2 * K, 2))
        size = int(np.prod(self.modes))
        return paired.transpose(axes).reshape(size, size)

    def copy(self) -> "TTSquareMatrix":
        return TTSquareMatrix(self.tt.copy(), self.modes)

    def add(self, other: "TTSquareMatrix") -> "TTSquareMatrix":
        return TTSquareMatrix(self.tt.add(other.tt), self.modes)

    def subtract(self, other: "TTSquareMatrix") -> "TTSquareMatrix":
        return TTSquareMatrix(self.tt.subtract(other.tt), self.modes)

    def scale(self, d: float) -> "TTSquareMatrix":
        return TTSquareMatrix(self.tt.scale(d), self.modes)

    def __add__(self, other: "TTSquareMatrix") -> "TTSquareMatrix":
        return self.add(other)

    def __sub__(self, other: "TTSquareMatrix") -> "TTSquareMatrix":
        return self.subtract(other)

    def __mul__(self, d: float) -> "TTSquareMatrix":
        return self.scale(d)

    __rmul__ = __mul__

    def frobenius_norm(self) -> float:
        return self.tt.frobenius_norm()

    def round(self, config: RoundingConfig | None = None) -> "TTSquareMatrix":
        """Round the underlying train in place; returns self."""
        self.tt.round(config)
        return self

    def __repr__(self) -> str:
        return f"TTSquareMatrix(modes={tuple(self.modes)}, ranks={tuple(self.ranks())})"
