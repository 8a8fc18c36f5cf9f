"""
Prediction models and relative pose constraints with their Jacobians.
"""

from .prediction import (
    AbstractPrediction,
    SE2AbstractPoint,
    SE3AbstractPoint
)
from .observation_models import SE2XY, SE3XYZ, SE3UVQ, build_observation_model
from .constraints import (
    AbstractConstraint,
    SE3Constraint,
    SO3xR3Constraint,
    SE3ConstraintSO3xR3,
    Sim3Constraint
)
from .camera_model import LinearCamera

__all__ = [
    'AbstractPrediction',
    'SE2AbstractPoint',
    'SE3AbstractPoint',
    'SE2XY',
    'SE3XYZ',
    'SE3UVQ',
    'build_observation_model',
    'AbstractConstraint',
    'SE3Constraint',
    'SO3xR3Constraint',
    'SE3ConstraintSO3xR3',
    'Sim3Constraint',
    'LinearCamera'
]
