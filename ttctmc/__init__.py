"""
Tensor-Train engine for dependability models.

This package provides compressed vectors and operators for continuous-time
Markov chains whose state space is the product of many independent
component state spaces (basic events, places).

Features:
---------
- Tensor-Train vectors and operators with exact addition, scaling,
  Hadamard and inner products
- QR orthogonalization and SVD-based rounding under absolute or
  relative error budgets
- Kronecker-sum generator construction without forming the product space

Typical usage:
--------------
    from ttctmc import RepairableComponent, build_generator, product_steady_state

    events = [RepairableComponent(f"be{k}", 1e-3, 1e-1) for k in range(20)]
    Q = build_generator(events)
    pi = product_steady_state(events)
    residual = Q.rmatvec(pi).round_absolute(1e-12).frobenius_norm()
"""

from ttctmc.tt import (
    BudgetMode,
    CoreTensor,
    RoundingConfig,
    TensorTrain,
)
from ttctmc.models import (
    KronsumConfig,
    KronsumContributor,
    RepairableComponent,
    TTSquareMatrix,
    build_generator,
    from_full,
    kronsum_offdiagonal,
    ones,
    product_steady_state,
    product_vector,
    unit_vector,
)

__version__ = "0.1.0"

__all__ = [
    # Engine
    "BudgetMode",
    "CoreTensor",
    "RoundingConfig",
    "TensorTrain",
    # Models
    "KronsumConfig",
    "KronsumContributor",
    "RepairableComponent",
    "TTSquareMatrix",
    "build_generator",
    "from_full",
    "kronsum_offdiagonal",
    "ones",
    "product_steady_state",
    "product_vector",
    "unit_vector",
]
