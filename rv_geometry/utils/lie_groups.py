"""
Rigid and similarity transformation groups (SE2, SE3, Sim3).

Group elements are immutable value types. Tangent vectors are ordered
rotation first:

    SE2:  [theta, upsilon_x, upsilon_y]
    SE3:  [omega (3), upsilon (3)]
    Sim3: [omega (3), upsilon (3), sigma]   with scale = exp(sigma)

exp(delta) builds the element whose logarithm is delta, so a left
perturbation of T is exp(delta) * T.
"""

from dataclasses import dataclass, field
from typing import Tuple

import numpy as np

from rv_geometry.utils.math_utils import skew, so2_matrix, so3_exp, so3_log


# Below this angle (radians) the series expansions of the V/W matrices are used.
SMALL_ANGLE = 1e-8
# Below this |log(scale)| the scale-free limits of the Sim3 W matrix are used.
SMALL_SCALE = 1e-10


def _as_rotation(R: np.ndarray, dim: int) -> np.ndarray:
    R = np.asarray(R, dtype=float)
    if R.shape != (dim, dim):
        raise ValueError(f"Rotation must be {dim}x{dim}, got {R.shape}")
    return R


def _as_vector(v: np.ndarray, dim: int, name: str) -> np.ndarray:
    v = np.asarray(v, dtype=float).flatten()
    if len(v) != dim:
        raise ValueError(f"{name} must be {dim}D, got {len(v)}")
    return v


# ============================================================================
# SE2 (2D rigid transformations)
# ============================================================================

def _se2_v(theta: float) -> np.ndarray:
    """V matrix of the SE2 exponential map, t = V @ upsilon."""
    if abs(theta) < SMALL_ANGLE:
        return np.array([[1.0, -0.5 * theta], [0.5 * theta, 1.0]])
    a = np.sin(theta) / theta
    b = (1.0 - np.cos(theta)) / theta
    return np.array([[a, -b], [b, a]])


@dataclass(frozen=True, eq=False)
class SE2:
    """2D rigid transformation x -> R x + t."""
    rotation: np.ndarray = field(default_factory=lambda: np.eye(2))
    translation: np.ndarray = field(default_factory=lambda: np.zeros(2))

    DOF = 3

    def __post_init__(self):
        object.__setattr__(self, "rotation", _as_rotation(self.rotation, 2))
        object.__setattr__(self, "translation", _as_vector(self.translation, 2, "Translation"))

    @classmethod
    def identity(cls) -> "SE2":
        return cls()

    @classmethod
    def exp(cls, delta: np.ndarray) -> "SE2":
        """Exponential map from [theta, upsilon] to SE2."""
        delta = _as_vector(delta, 3, "SE2 tangent")
        theta = delta[0]
        return cls(so2_matrix(theta), _se2_v(theta) @ delta[1:])

    def log(self) -> np.ndarray:
        """Logarithmic map from SE2 to [theta, upsilon]."""
        theta = float(np.arctan2(self.rotation[1, 0], self.rotation[0, 0]))
        upsilon = np.linalg.solve(_se2_v(theta), self.translation)
        return np.concatenate([[theta], upsilon])

    @property
    def angle(self) -> float:
        return float(np.arctan2(self.rotation[1, 0], self.rotation[0, 0]))

    def inverse(self) -> "SE2":
        R_inv = self.rotation.T
        return SE2(R_inv, -R_inv @ self.translation)

    def transform(self, x: np.ndarray) -> np.ndarray:
        """Apply the transformation to a 2D point."""
        return self.rotation @ np.asarray(x, dtype=float) + self.translation

    def matrix(self) -> np.ndarray:
        """3x3 homogeneous matrix."""
        T = np.eye(3)
        T[:2, :2] = self.rotation
        T[:2, 2] = self.translation
        return T

    def __mul__(self, other: "SE2") -> "SE2":
        if not isinstance(other, SE2):
            return NotImplemented
        return SE2(self.rotation @ other.rotation,
                   self.rotation @ other.translation + self.translation)


# ============================================================================
# SE3 (3D rigid transformations)
# ============================================================================

def _se3_v(omega: np.ndarray) -> np.ndarray:
    """V matrix (left Jacobian of SO3), t = V @ upsilon."""
    theta = np.linalg.norm(omega)
    Omega = skew(omega)
    if theta < SMALL_ANGLE:
        return np.eye(3) + 0.5 * Omega + (Omega @ Omega) / 6.0
    return (np.eye(3)
            + ((1 - np.cos(theta)) / theta ** 2) * Omega
            + ((theta - np.sin(theta)) / theta ** 3) * (Omega @ Omega))


@dataclass(frozen=True, eq=False)
class SE3:
    """3D rigid transformation x -> R x + t."""
    rotation: np.ndarray = field(default_factory=lambda: np.eye(3))
    translation: np.ndarray = field(default_factory=lambda: np.zeros(3))

    DOF = 6

    def __post_init__(self):
        object.__setattr__(self, "rotation", _as_rotation(self.rotation, 3))
        object.__setattr__(self, "translation", _as_vector(self.translation, 3, "Translation"))

    @classmethod
    def identity(cls) -> "SE3":
        return cls()

    @classmethod
    def exp(cls, delta: np.ndarray) -> "SE3":
        """
        Exponential map from se3 to SE3.

        Args:
            delta: 6x1 twist vector [angular; linear]

        Returns:
            SE3 element
        """
        delta = _as_vector(delta, 6, "SE3 tangent")
        omega = delta[:3]
        return cls(so3_exp(omega), _se3_v(omega) @ delta[3:])

    @classmethod
    def from_matrix(cls, T: np.ndarray) -> "SE3":
        T = np.asarray(T, dtype=float)
        if T.shape != (4, 4):
            raise ValueError(f"Homogeneous matrix must be 4x4, got {T.shape}")
        return cls(T[:3, :3], T[:3, 3])

    def inverse(self) -> "SE3":
        R_inv = self.rotation.T
        return SE3(R_inv, -R_inv @ self.translation)

    def transform(self, x: np.ndarray) -> np.ndarray:
        """Apply the transformation to a 3D point."""
        return self.rotation @ np.asarray(x, dtype=float) + self.translation

    def matrix(self) -> np.ndarray:
        """4x4 homogeneous matrix."""
        T = np.eye(4)
        T[:3, :3] = self.rotation
        T[:3, 3] = self.translation
        return T

    def __mul__(self, other: "SE3") -> "SE3":
        if not isinstance(other, SE3):
            return NotImplemented
        return SE3(self.rotation @ other.rotation,
                   self.rotation @ other.translation + self.translation)


# ============================================================================
# Sim3 (3D similarity transformations)
# ============================================================================

def _sim3_w_coefficients(theta: float, sigma: float) -> Tuple[float, float, float]:
    """
    Coefficients (A, B, C) of W = A Omega + B Omega^2 + C I, t = W @ upsilon.

    Same closed forms as Sophus' Sim3 exp, with the limits taken when the
    rotation angle or the log-scale vanishes.
    """
    scale = np.exp(sigma)
    if abs(sigma) < SMALL_SCALE:
        C = 1.0
        if theta < SMALL_ANGLE:
            A = 0.5
            B = 1.0 / 6.0
        else:
            theta_sq = theta * theta
            A = (1 - np.cos(theta)) / theta_sq
            B = (theta - np.sin(theta)) / (theta_sq * theta)
    else:
        C = np.expm1(sigma) / sigma
        if theta < SMALL_ANGLE:
            sigma_sq = sigma * sigma
            A = ((sigma - 1) * scale + 1) / sigma_sq
            B = (scale * 0.5 * sigma_sq + scale - 1 - sigma * scale) / (sigma_sq * sigma)
        else:
            theta_sq = theta * theta
            a = scale * np.sin(theta)
            b = scale * np.cos(theta)
            c = theta_sq + sigma * sigma
            A = (a * sigma + (1 - b) * theta) / (theta * c)
            B = (C - ((b - 1) * sigma + a * theta) / c) / theta_sq
    return A, B, C


def _sim3_w(omega: np.ndarray, sigma: float) -> np.ndarray:
    A, B, C = _sim3_w_coefficients(float(np.linalg.norm(omega)), sigma)
    Omega = skew(omega)
    return A * Omega + B * (Omega @ Omega) + C * np.eye(3)


@dataclass(frozen=True, eq=False)
class Sim3:
    """3D similarity transformation x -> s R x + t."""
    rotation: np.ndarray = field(default_factory=lambda: np.eye(3))
    translation: np.ndarray = field(default_factory=lambda: np.zeros(3))
    scale: float = 1.0

    DOF = 7

    def __post_init__(self):
        object.__setattr__(self, "rotation", _as_rotation(self.rotation, 3))
        object.__setattr__(self, "translation", _as_vector(self.translation, 3, "Translation"))
        if not self.scale > 0:
            raise ValueError(f"Scale must be positive, got {self.scale}")
        object.__setattr__(self, "scale", float(self.scale))

    @classmethod
    def identity(cls) -> "Sim3":
        return cls()

    @classmethod
    def exp(cls, delta: np.ndarray) -> "Sim3":
        """Exponential map from [omega, upsilon, sigma] to Sim3."""
        delta = _as_vector(delta, 7, "Sim3 tangent")
        omega = delta[:3]
        sigma = float(delta[6])
        return cls(so3_exp(omega), _sim3_w(omega, sigma) @ delta[3:6], np.exp(sigma))

    def log(self) -> np.ndarray:
        """Logarithmic map from Sim3 to [omega, upsilon, sigma]."""
        omega = so3_log(self.rotation)
        sigma = float(np.log(self.scale))
        upsilon = np.linalg.solve(_sim3_w(omega, sigma), self.translation)
        return np.concatenate([omega, upsilon, [sigma]])

    def inverse(self) -> "Sim3":
        R_inv = self.rotation.T
        s_inv = 1.0 / self.scale
        return Sim3(R_inv, -s_inv * (R_inv @ self.translation), s_inv)

    def transform(self, x: np.ndarray) -> np.ndarray:
        """Apply the transformation to a 3D point."""
        return self.scale * (self.rotation @ np.asarray(x, dtype=float)) + self.translation

    def matrix(self) -> np.ndarray:
        """4x4 homogeneous matrix with the scaled rotation block."""
        T = np.eye(4)
        T[:3, :3] = self.scale * self.rotation
        T[:3, 3] = self.translation
        return T

    def __mul__(self, other: "Sim3") -> "Sim3":
        if not isinstance(other, Sim3):
            return NotImplemented
        return Sim3(self.rotation @ other.rotation,
                    self.scale * (self.rotation @ other.translation) + self.translation,
                    self.scale * other.scale)


def transform_point(T, x: np.ndarray) -> np.ndarray:
    """Transform a point by any group element (SE2, SE3 or Sim3)."""
    return T.transform(x)
