"""
Core tensor: one site of a Tensor-Train.

A core holds ``mode_length`` matrices of identical shape ``rows x cols``:

    G[i] in R^{rows x cols},  i = 0, ..., mode_length - 1

where ``rows``/``cols`` are the left/right bond dimensions of the site. The
value of a train at a coordinate tuple is the product of the selected
matrices, one per site.

When ``mode_length == N**2`` the core may also be read as an operator site:
the matrix for the (row state i, column state j) pair is stored at the
flattened mode ``i * N + j``.

Storage note: ``data`` is a plain list of 2D arrays. Code that replaces the
matrices with differently shaped ones (decompositions, block placement) must
call ``update_dimensions()`` afterwards.
"""

import numpy as np

from ttctmc.utils.shapes import square_root_mode


class CoreTensor:
    """
    One site of a Tensor-Train.

    Attributes
    ----------
    mode_length : int
        Number of local mode values at this site
    rows : int
        Left bond dimension
    cols : int
        Right bond dimension
    data : list[np.ndarray]
        ``mode_length`` matrices, each of shape (rows, cols)

    Examples
    --------
    >>> core = CoreTensor(2, 1, 1)
    >>> core[1] = np.array([[1.0]])
    >>> core.left_unfolding().shape
    (2, 1)
    """

    def __init__(self, mode_length: int, rows: int, cols: int, data=None):
        if mode_length <= 0:
            raise ValueError(f"mode_length must be positive, got {mode_length}")
        self.mode_length = mode_length
        self.rows = rows
        self.cols = cols
        if data is None:
            self.data = [np.zeros((rows, cols)) for _ in range(mode_length)]
        else:
            if len(data) != mode_length:
                raise ValueError(
                    f"Expected {mode_length} mode matrices, got {len(data)}"
                )
            self.data = [np.asarray(mat, dtype=float) for mat in data]
            for i, mat in enumerate(self.data):
                if mat.shape != (rows, cols):
                    raise ValueError(
                        f"Mode matrix {i} has shape {mat.shape}, expected {(rows, cols)}"
                    )

    @classmethod
    def from_array(cls, array: np.ndarray) -> "CoreTensor":
        """Build a core from a 3D array of shape (r_left, n, r_right)."""
        array = np.asarray(array, dtype=float)
        if array.ndim != 3:
            raise ValueError(f"Core array must be 3D, got shape {array.shape}")
        r_left, n, r_right = array.shape
        return cls(n, r_left, r_right, [array[:, i, :].copy() for i in range(n)])

    def to_array(self) -> np.ndarray:
        """Return the core as a 3D array of shape (rows, mode_length, cols)."""
        return np.stack(self.data, axis=1)

    @property
    def mode_side(self) -> int | None:
        """N if ``mode_length == N**2``, otherwise None."""
        return square_root_mode(self.mode_length)

    def _pair_index(self, row_mode: int, col_mode: int) -> int:
        side = self.mode_side
        if side is None:
            raise ValueError(
                f"Cannot index core with mode length {self.mode_length} by a "
                "(row, col) mode pair: mode length is not a perfect square"
            )
        if not (0 <= row_mode < side and 0 <= col_mode < side):
            raise IndexError(
                f"Mode pair ({row_mode}, {col_mode}) out of range for {side}x{side} modes"
            )
        return row_mode * side + col_mode

    def get(self, mode: int) -> np.ndarray:
        return self.data[mode]

    def set(self, mode: int, matrix) -> None:
        self.data[mode] = np.asarray(matrix, dtype=float)

    def get_pair(self, row_mode: int, col_mode: int) -> np.ndarray:
        return self.data[self._pair_index(row_mode, col_mode)]

    def set_pair(self, row_mode: int, col_mode: int, matrix) -> None:
        self.data[self._pair_index(row_mode, col_mode)] = np.asarray(matrix, dtype=float)

    def __getitem__(self, key):
        if isinstance(key, tuple):
            return self.get_pair(*key)
        return self.get(key)

    def __setitem__(self, key, matrix):
        if isinstance(key, tuple):
            self.set_pair(*key, matrix)
        else:
            self.set(key, matrix)

    def scale(self, d: float) -> "CoreTensor":
        """Return a new core with every mode matrix multiplied by ``d``."""
        return CoreTensor(self.mode_length, self.rows, self.cols, [mat * d for mat in self.data])

    def scale_in_place(self, d: float) -> None:
        """Multiply every mode matrix by ``d``."""
        for i in range(self.mode_length):
            self.data[i] = self.data[i] * d

    def __mul__(self, d: float) -> "CoreTensor":
        return self.scale(d)

    __rmul__ = __mul__

    def __imul__(self, d: float) -> "CoreTensor":
        self.scale_in_place(d)
        return self

    def copy(self) -> "CoreTensor":
        """Deep copy of the core."""
        return CoreTensor(self.mode_length, self.rows, self.cols, [mat.copy() for mat in self.data])

    def transpose(self) -> "CoreTensor":
        """Return a core with every mode matrix transposed (bond roles swapped)."""
        return CoreTensor(
            self.mode_length, self.cols, self.rows, [mat.T.copy() for mat in self.data]
        )

    def update_dimensions(self) -> None:
        """Resynchronize ``rows``/``cols`` from the first mode matrix."""
        self.rows, self.cols = self.data[0].shape

    def left_unfolding(self) -> np.ndarray:
        """
        Stack the mode matrices vertically.

        Returns
        -------
        np.ndarray
            Shape (mode_length * rows, cols); rows ``i*rows:(i+1)*rows`` hold mode i
        """
        return np.vstack(self.data)

    def right_unfolding(self) -> np.ndarray:
        """
        Stack the mode matrices horizontally.

        Returns
        -------
        np.ndarray
            Shape (rows, mode_length * cols); columns ``i*cols:(i+1)*cols`` hold mode i
        """
        return np.hstack(self.data)

    def matrix_mode_unfolding(self) -> np.ndarray:
        """
        Lay out an operator core as an N x N block matrix.

        Block (i, j) is the matrix addressed by row mode i and column mode j.

        Returns
        -------
        np.ndarray
            Shape (N * rows, N * cols)

        Raises
        ------
        ValueError
            If ``mode_length`` is not a perfect square
        """
        side = self.mode_side
        if side is None:
            raise ValueError(
                f"Matrix-mode unfolding needs a square mode length, got {self.mode_length}"
            )
        return np.block(
            [[self.data[i * side + j] for j in range(side)] for i in range(side)]
        )

    def __repr__(self) -> str:
        return f"CoreTensor(mode_length={self.mode_length}, rows={self.rows}, cols={self.cols})"
