"""
Tensor-Train (TT) engine for compressed CTMC vectors and operators.

This module provides the compressed linear algebra used by the model layer:
- Core tensors (one site: a sequence of equally shaped matrices)
- TT representation with exact addition, scaling, Hadamard and inner products
- Core utilities (QR orthogonalization, truncation rules)
- SVD-based rounding under an absolute or relative error budget

The TT format avoids materializing the product state space by representing
a tensor with prod(n_k) entries using O(K * n * r^2) parameters, where r is
the TT rank.
"""

from ttctmc.tt.core_tensor import CoreTensor

from ttctmc.tt.tensor_train import (
    TensorTrain,
    validate_chain,
)

from ttctmc.tt.tt_cores import (
    contract_inner,
    left_orthogonalize_core,
    left_to_right_sweep,
    right_orthogonalize_core,
    right_to_left_sweep,
    truncated_svd,
    truncated_svd_gram,
    truncation_rank,
)

from ttctmc.tt.rounding import (
    BudgetMode,
    RoundingConfig,
    round_absolute,
    round_cores,
    round_relative,
)

__all__ = [
    # Core tensor
    "CoreTensor",
    # TT basics
    "TensorTrain",
    "validate_chain",
    # Core utilities
    "contract_inner",
    "left_orthogonalize_core",
    "left_to_right_sweep",
    "right_orthogonalize_core",
    "right_to_left_sweep",
    "truncated_svd",
    "truncated_svd_gram",
    "truncation_rank",
    # Rounding
    "BudgetMode",
    "RoundingConfig",
    "round_absolute",
    "round_cores",
    "round_relative",
]
