"""
Utility functions for Tensor-Train processing.

This module provides helper functions for:
- Mode-profile validation between trains
- Operator (paired-mode) shape recovery
- Coordinate validation
"""

from ttctmc.utils.shapes import (
    operator_modes,
    square_root_mode,
    validate_indices,
    validate_mode_profiles,
)

__all__ = [
    "operator_modes",
    "square_root_mode",
    "validate_indices",
    "validate_mode_profiles",
]
