"""
Relative pose constraints between two absolute transformations.

The residual of a constraint C between T1 and T2 is the tangent vector of
D = C * T1 * T2^-1, which is the identity when the constraint is met exactly
(C = T2 * T1^-1).
"""

from abc import ABC, abstractmethod
from typing import Any, Optional, Tuple

import numpy as np

from rv_geometry.common.data_structures import RelativePoseConstraint, ResidualBlock
from rv_geometry.estimation import log_map
from rv_geometry.estimation.numerical import numerical_jacobian
from rv_geometry.estimation.perturbation import dD_dT1, dD_dT2, dexp_x_T_ddelta
from rv_geometry.utils.lie_groups import SE3, Sim3
from rv_geometry.utils.math_utils import so3_exp


def relative_transform(T1: Any, C: Any, T2: Any) -> Any:
    """D = C * T1 * T2^-1."""
    return (C * T1) * T2.inverse()


class AbstractConstraint(ABC):
    """
    Abstract class for relative pose constraints.

    TRANS_DOF: DoF of the transformation (6 for SE3, 7 for Sim3)
    """

    TRANS_DOF: int

    def __init__(self, diff_step: Optional[float] = None):
        self.diff_step = diff_step

    @abstractmethod
    def diff(self, T1: Any, C: Any, T2: Any) -> np.ndarray:
        """Difference between T1, T2 and the relative constraint C (the residual)."""

    @abstractmethod
    def add(self, T: Any, delta: np.ndarray) -> Any:
        """Incremental update delta of transformation T."""

    def d_diff_dT1(self, T1: Any, C: Any, T2: Any) -> np.ndarray:
        """Jacobian wrt. T1, numerical by default."""
        return self.numerical_d_diff_dT1(T1, C, T2)

    def d_diff_dT2(self, T1: Any, C: Any, T2: Any) -> np.ndarray:
        """Jacobian wrt. T2, numerical by default."""
        return self.numerical_d_diff_dT2(T1, C, T2)

    def numerical_d_diff_dT1(self, T1: Any, C: Any, T2: Any,
                             step: Optional[float] = None,
                             central: bool = False) -> np.ndarray:
        return numerical_jacobian(
            lambda T: self.diff(T, C, T2), T1, self.add, self.TRANS_DOF,
            step=step if step is not None else self.diff_step, central=central,
        )

    def numerical_d_diff_dT2(self, T1: Any, C: Any, T2: Any,
                             step: Optional[float] = None,
                             central: bool = False) -> np.ndarray:
        return numerical_jacobian(
            lambda T: self.diff(T1, C, T), T2, self.add, self.TRANS_DOF,
            step=step if step is not None else self.diff_step, central=central,
        )

    # ------------------------------------------------------------------
    # Optimizer-facing interface
    # ------------------------------------------------------------------

    def residual(self, T1: Any, C: Any, T2: Any) -> np.ndarray:
        return self.diff(T1, C, T2)

    def jacobians(self, T1: Any, C: Any, T2: Any) -> Tuple[np.ndarray, np.ndarray]:
        """Jacobians of the residual wrt. T1 and T2."""
        return self.d_diff_dT1(T1, C, T2), self.d_diff_dT2(T1, C, T2)

    def evaluate(self, T1: Any, T2: Any, edge: RelativePoseConstraint) -> ResidualBlock:
        """Residual, Jacobians and weighted squared error of one pose-graph edge."""
        if edge.constraint.DOF != self.TRANS_DOF:
            raise ValueError(
                f"{type(self).__name__} expects {self.TRANS_DOF}-DoF constraints, "
                f"got {edge.constraint.DOF}"
            )
        C = edge.constraint
        J1, J2 = self.jacobians(T1, C, T2)
        return ResidualBlock.build(self.residual(T1, C, T2), J1, J2, edge.weight())


class SE3Constraint(AbstractConstraint):
    """Rigid transformation SE3 constraint with analytic Jacobians."""

    TRANS_DOF = 6

    def diff(self, T1: SE3, C: SE3, T2: SE3) -> np.ndarray:
        return log_map.ln(relative_transform(T1, C, T2))

    def d_diff_dT1(self, T1: SE3, C: SE3, T2: SE3) -> np.ndarray:
        D = relative_transform(T1, C, T2)
        return log_map.dlnT_dT(D) @ dD_dT1(C, T2) @ dexp_x_T_ddelta(T1)

    def d_diff_dT2(self, T1: SE3, C: SE3, T2: SE3) -> np.ndarray:
        D = relative_transform(T1, C, T2)
        return log_map.dlnT_dT(D) @ dD_dT2(T1, C, T2) @ dexp_x_T_ddelta(T2)

    def add(self, T: SE3, delta: np.ndarray) -> SE3:
        return SE3.exp(delta) * T


class SO3xR3Constraint(AbstractConstraint):
    """
    Pseudo rigid transformation <SO3, R3> constraint.

    Rotation and translation are updated separately:
    R' = exp(omega) R, t' = t + upsilon.
    """

    TRANS_DOF = 6

    def diff(self, T1: SE3, C: SE3, T2: SE3) -> np.ndarray:
        return log_map.ln_so3xr3(relative_transform(T1, C, T2))

    def add(self, T: SE3, delta: np.ndarray) -> SE3:
        delta = np.asarray(delta, dtype=float)
        return SE3(so3_exp(delta[:3]) @ T.rotation, T.translation + delta[3:])


class SE3ConstraintSO3xR3(AbstractConstraint):
    """Rigid transformation SE3 constraint using <SO3, R3> as residual."""

    TRANS_DOF = 6

    def diff(self, T1: SE3, C: SE3, T2: SE3) -> np.ndarray:
        return log_map.ln_so3xr3(relative_transform(T1, C, T2))

    def add(self, T: SE3, delta: np.ndarray) -> SE3:
        return SE3.exp(delta) * T


class Sim3Constraint(AbstractConstraint):
    """Similarity transformation Sim3 constraint."""

    TRANS_DOF = 7

    def diff(self, T1: Sim3, C: Sim3, T2: Sim3) -> np.ndarray:
        return relative_transform(T1, C, T2).log()

    def add(self, T: Sim3, delta: np.ndarray) -> Sim3:
        return Sim3.exp(delta) * T
