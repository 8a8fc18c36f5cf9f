"""
Jacobians of left perturbations and of the relative-pose map.

Transforms are flattened as [vec(R); t] (column-major vec), tangent vectors
are ordered [omega; upsilon].
"""

import numpy as np

from rv_geometry.utils.lie_groups import SE3
from rv_geometry.utils.math_utils import skew


def dexp_x_T_ddelta(T: SE3) -> np.ndarray:
    """
    Jacobian (12x6) of the incremental update exp(delta) * T wrt. delta at 0.
    """
    R = T.rotation
    J = np.zeros((12, 6))
    J[0:3, 0:3] = -skew(R[:, 0])
    J[3:6, 0:3] = -skew(R[:, 1])
    J[6:9, 0:3] = -skew(R[:, 2])
    J[9:12, 0:3] = -skew(T.translation)
    J[9:12, 3:6] = np.eye(3)
    return J


def dD_dT1(C: SE3, T2: SE3) -> np.ndarray:
    """
    Jacobian (12x12) of D = C * T1 * T2^-1 wrt. the flattened T1.

    R_D = Rc R1 R2^T and t_D = Rc R1 (-R2^T t2) + Rc t1 + tc.
    """
    Rc = C.rotation
    R2 = T2.rotation
    t2 = T2.translation

    J = np.zeros((12, 12))
    J[0:9, 0:9] = np.kron(R2, Rc)
    J[9:12, 0:9] = np.kron(-(R2.T @ t2)[np.newaxis, :], Rc)
    J[9:12, 9:12] = Rc
    return J


def dD_dT2(T1: SE3, C: SE3, T2: SE3) -> np.ndarray:
    """
    Jacobian (12x12) of D = C * T1 * T2^-1 wrt. the flattened T2.

    With M = Rc R1: R_D = M R2^T and t_D = -M R2^T t2 + Rc t1 + tc.
    """
    M = C.rotation @ T1.rotation
    R2 = T2.rotation
    t2 = T2.translation

    J = np.zeros((12, 12))
    for k in range(3):
        m_k = M[:, k][:, np.newaxis]
        J[0:9, 3 * k:3 * k + 3] = np.kron(np.eye(3), m_k)
        J[9:12, 3 * k:3 * k + 3] = np.kron(-t2[np.newaxis, :], m_k)
    J[9:12, 9:12] = -M @ R2.T
    return J


def flatten_transform(T: SE3) -> np.ndarray:
    """12-vector [vec(R); t] matching the row layout of the Jacobians above."""
    return np.concatenate([T.rotation.flatten(order="F"), T.translation])
