"""
Randomised self-checks of the analytic Jacobians.
"""

from .jacobian_check import (
    JacobianCheckResult,
    check_prediction_model,
    check_se3_constraint,
    run_jacobian_checks
)

__all__ = [
    'JacobianCheckResult',
    'check_prediction_model',
    'check_se3_constraint',
    'run_jacobian_checks'
]
