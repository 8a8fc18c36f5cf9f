"""
Random group elements and points for randomised checks.
"""

from typing import Optional

import numpy as np

from rv_geometry.utils.lie_groups import SE2, SE3, Sim3
from rv_geometry.utils.math_utils import so3_exp


def random_rotation_vector(rng: np.random.Generator, max_angle: float,
                           min_angle: float = 0.0) -> np.ndarray:
    """Rotation vector with uniformly random axis and angle in [min_angle, max_angle]."""
    axis = rng.normal(size=3)
    axis /= np.linalg.norm(axis)
    return axis * rng.uniform(min_angle, max_angle)


def random_se3(rng: np.random.Generator, max_angle: float = 1.0,
               max_translation: float = 2.0, min_angle: float = 0.0) -> SE3:
    omega = random_rotation_vector(rng, max_angle, min_angle)
    t = rng.uniform(-max_translation, max_translation, size=3)
    return SE3(so3_exp(omega), t)


def random_se2(rng: np.random.Generator, max_angle: float = 1.0,
               max_translation: float = 2.0) -> SE2:
    delta = np.concatenate([[rng.uniform(-max_angle, max_angle)],
                            rng.uniform(-max_translation, max_translation, size=2)])
    return SE2.exp(delta)


def random_sim3(rng: np.random.Generator, max_angle: float = 1.0,
                max_translation: float = 2.0, max_log_scale: float = 0.5) -> Sim3:
    omega = random_rotation_vector(rng, max_angle)
    t = rng.uniform(-max_translation, max_translation, size=3)
    return Sim3(so3_exp(omega), t, np.exp(rng.uniform(-max_log_scale, max_log_scale)))


def random_camera_point(rng: np.random.Generator, min_depth: float = 2.0,
                        max_depth: float = 8.0, half_width: float = 0.5) -> np.ndarray:
    """Point in the camera frame in front of the camera."""
    z = rng.uniform(min_depth, max_depth)
    xy = rng.uniform(-half_width, half_width, size=2) * z
    return np.array([xy[0], xy[1], z])


def random_visible_point(rng: np.random.Generator, frame: SE3,
                         min_depth: float = 2.0, max_depth: float = 8.0) -> np.ndarray:
    """World point that frame maps in front of the camera."""
    return frame.inverse().transform(random_camera_point(rng, min_depth, max_depth))


def random_relative_constraint(rng: np.random.Generator, T1: SE3, T2: SE3,
                               max_angle: float = 1.0, max_translation: float = 1.0,
                               min_angle: float = 0.05) -> SE3:
    """
    Constraint C with C * T1 * T2^-1 = exp(xi) for a random xi.

    Keeping the rotation angle of xi within [min_angle, max_angle] keeps the
    residual away from both singular branches of the logarithm.
    """
    xi = random_se3(rng, max_angle, max_translation, min_angle)
    return xi * T2 * T1.inverse()


def make_rng(seed: Optional[int] = None) -> np.random.Generator:
    return np.random.default_rng(seed)
