"""
Configuration and data structures shared by the residual models.
"""

from .data_structures import (
    Observation,
    RelativePoseConstraint,
    ResidualBlock,
    Transform
)

__all__ = [
    'Observation',
    'RelativePoseConstraint',
    'ResidualBlock',
    'Transform'
]
