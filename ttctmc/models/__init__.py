"""
CTMC objects in Tensor-Train format.

This module provides the model-facing layer built on the TT engine:
- TT vectors: product-form, unit and all-ones vectors, TT-SVD of dense arrays
- TTSquareMatrix: operators with paired (row, column) modes per site
- Kronecker-sum generator construction from independent components
"""

from ttctmc.models.tt_vectors import (
    from_full,
    ones,
    product_vector,
    total_sum,
    unit_vector,
)
from ttctmc.models.tt_operators import TTSquareMatrix
from ttctmc.models.kronsum import (
    KronsumConfig,
    KronsumContributor,
    RepairableComponent,
    build_generator,
    kronsum_core,
    kronsum_offdiagonal,
    local_term,
    product_steady_state,
)

__all__ = [
    "KronsumConfig",
    "KronsumContributor",
    "RepairableComponent",
    "TTSquareMatrix",
    "build_generator",
    "from_full",
    "kronsum_core",
    "kronsum_offdiagonal",
    "local_term",
    "ones",
    "product_steady_state",
    "product_vector",
    "total_sum",
    "unit_vector",
]
