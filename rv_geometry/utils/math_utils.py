"""
Mathematical utilities for Lie-group residuals.
Uses scipy.spatial.transform.Rotation for robust SO3 exp/log.
"""

import numpy as np
from scipy.spatial.transform import Rotation


# ============================================================================
# Elementary matrix algebra
# ============================================================================

def skew(v: np.ndarray) -> np.ndarray:
    """
    Convert 3D vector to skew-symmetric matrix (hat operator).

    Args:
        v: 3x1 vector

    Returns:
        3x3 skew-symmetric matrix such that skew(a) @ b == cross(a, b)
    """
    v = np.asarray(v, dtype=float).flatten()
    return np.array([
        [0, -v[2], v[1]],
        [v[2], 0, -v[0]],
        [-v[1], v[0], 0]
    ])


def vee(M: np.ndarray) -> np.ndarray:
    """
    Convert skew-symmetric matrix to vector (vee operator).

    Args:
        M: 3x3 skew-symmetric matrix

    Returns:
        3x1 vector
    """
    return np.array([M[2, 1], M[0, 2], M[1, 0]])


def delta_r(R: np.ndarray) -> np.ndarray:
    """
    Off-diagonal differences of a 3x3 matrix, i.e. vee(R - R^T).

    For a rotation by angle theta about unit axis a this equals
    2 sin(theta) a.
    """
    R = np.asarray(R, dtype=float)
    return np.array([
        R[2, 1] - R[1, 2],
        R[0, 2] - R[2, 0],
        R[1, 0] - R[0, 1]
    ])


def project(v: np.ndarray) -> np.ndarray:
    """
    Dehomogenise a vector: divide all but the last entry by the last one.

    project([x, y, z]) == [x/z, y/z] and project([x, y]) == [x/y].
    """
    v = np.asarray(v, dtype=float).flatten()
    return v[:-1] / v[-1]


def unproject(v: np.ndarray) -> np.ndarray:
    """Append a homogeneous 1 to a vector."""
    v = np.asarray(v, dtype=float).flatten()
    return np.append(v, 1.0)


def vec(M: np.ndarray) -> np.ndarray:
    """Column-major flattening, the convention used by all 9/12-vector Jacobians."""
    return np.asarray(M, dtype=float).flatten(order="F")


# ============================================================================
# SO3 Operations (3D Rotations) - Using scipy.spatial.transform.Rotation
# ============================================================================

def so3_exp(omega: np.ndarray) -> np.ndarray:
    """
    Exponential map from so3 to SO3.
    Converts axis-angle vector to rotation matrix.

    Args:
        omega: 3x1 axis-angle vector (rotation vector)

    Returns:
        3x3 rotation matrix
    """
    omega = np.asarray(omega, dtype=float).flatten()
    return Rotation.from_rotvec(omega).as_matrix()


def so3_log(R: np.ndarray) -> np.ndarray:
    """
    Logarithmic map from SO3 to so3.
    Converts rotation matrix to axis-angle vector.

    Args:
        R: 3x3 rotation matrix

    Returns:
        3x1 axis-angle vector
    """
    R = np.asarray(R, dtype=float)

    # Project to nearest rotation matrix if numerical drift crept in
    if not is_rotation_matrix(R):
        R = project_to_so3(R)

    return Rotation.from_matrix(R).as_rotvec()


def is_rotation_matrix(R: np.ndarray, tol: float = 1e-6) -> bool:
    """
    Check if matrix is a valid rotation matrix (orthogonal with det=1).

    Args:
        R: Matrix to check
        tol: Tolerance for numerical errors

    Returns:
        True if R is a valid rotation matrix
    """
    R = np.asarray(R)
    if R.shape != (3, 3):
        return False

    if not np.allclose(R @ R.T, np.eye(3), atol=tol):
        return False

    return bool(np.isclose(np.linalg.det(R), 1.0, atol=tol))


def project_to_so3(R: np.ndarray) -> np.ndarray:
    """
    Project a matrix to the SO3 manifold using SVD.

    Args:
        R: 3x3 matrix (possibly not orthogonal)

    Returns:
        3x3 rotation matrix on SO3 manifold
    """
    R = np.asarray(R, dtype=float).reshape(3, 3)

    U, _, Vt = np.linalg.svd(R)
    R_projected = U @ Vt

    # Ensure determinant is +1 (not -1)
    if np.linalg.det(R_projected) < 0:
        Vt[-1, :] *= -1
        R_projected = U @ Vt

    return R_projected


def so2_matrix(theta: float) -> np.ndarray:
    """2x2 rotation matrix for angle theta."""
    c, s = np.cos(theta), np.sin(theta)
    return np.array([[c, -s], [s, c]])


def rotation_angle(R: np.ndarray) -> float:
    """Rotation angle of a 3x3 rotation matrix in [0, pi]."""
    return float(np.linalg.norm(so3_log(R)))


def rotation_from_axis_angle(axis: np.ndarray, angle: float) -> np.ndarray:
    """Rotation about a (not necessarily unit) axis by the given angle."""
    axis = np.asarray(axis, dtype=float).flatten()
    return so3_exp(axis / np.linalg.norm(axis) * angle)
