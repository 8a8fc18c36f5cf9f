"""
Concrete observation models for bundle adjustment.

    SE2XY:  2D Euclidean point seen by a 1D bearing sensor (numerical Jacobians)
    SE3XYZ: 3D Euclidean point seen by a pinhole camera
    SE3UVQ: 3D inverse-depth point (u, v, q) seen by a pinhole camera

The projective Jacobians follow Ethan Eade's derivation for a transformed
point p = (x, y, z); a left perturbation [omega; upsilon] moves p by
-skew(p) omega + upsilon.
"""

import logging
from typing import Optional

import numpy as np

from rv_geometry.common.config import GeometryConfig, PointParameterization
from rv_geometry.estimation.camera_model import LinearCamera
from rv_geometry.estimation.prediction import SE2AbstractPoint, SE3AbstractPoint
from rv_geometry.utils.lie_groups import SE2, SE3
from rv_geometry.utils.math_utils import project

logger = logging.getLogger(__name__)


# Depth below which a projection is reported as degenerate.
MIN_DEPTH_WARNING = 1e-9


def _warn_if_degenerate(z: float, model: str) -> None:
    if abs(z) < MIN_DEPTH_WARNING:
        logger.warning(f"{model}: point at depth {z:.3e}, projection is ill-conditioned")


def _projection_frame_jacobian(p: np.ndarray) -> np.ndarray:
    """2x6 Jacobian of project(p) wrt. a left perturbation [omega; upsilon]."""
    x, y, z = p
    z_2 = z * z
    return np.array([
        [-x * y / z_2, 1 + x * x / z_2, -y / z, 1 / z, 0, -x / z_2],
        [-(1 + y * y / z_2), x * y / z_2, x / z, 0, 1 / z, -y / z_2],
    ])


def _projection_point_jacobian(p: np.ndarray) -> np.ndarray:
    """2x3 Jacobian of project(p) wrt. p, without the 1/z factor."""
    x, y, z = p
    return np.array([
        [1, 0, -x / z],
        [0, 1, -y / z],
    ])


class SE2XY(SE2AbstractPoint):
    """
    2D bearing-only prediction.

    The sensor looks along its y axis; an observation is the 1D image
    coordinate x/y of the point in the sensor frame.
    """

    POINT_PAR_NUM = 2
    POINT_DOF = 2
    OBS_DIM = 1

    def map(self, frame: SE2, point: np.ndarray) -> np.ndarray:
        return project(frame.transform(point))

    def add_point(self, point: np.ndarray, delta: np.ndarray) -> np.ndarray:
        return np.asarray(point, dtype=float) + delta


class SE3XYZ(SE3AbstractPoint):
    """3D Euclidean point observed by a pinhole camera."""

    POINT_PAR_NUM = 3
    POINT_DOF = 3
    OBS_DIM = 2

    def __init__(self, camera: Optional[LinearCamera] = None,
                 diff_step: Optional[float] = None):
        super().__init__(diff_step)
        self.camera = camera or LinearCamera()

    def map(self, frame: SE3, point: np.ndarray) -> np.ndarray:
        return self.camera.map(project(frame.transform(point)))

    def check_point(self, frame: SE3, point: np.ndarray) -> None:
        _warn_if_degenerate(frame.transform(point)[2], "SE3XYZ")

    def frame_jac(self, frame: SE3, point: np.ndarray) -> np.ndarray:
        p = frame.transform(point)
        return self.camera.jacobian() @ _projection_frame_jacobian(p)

    def point_jac(self, frame: SE3, point: np.ndarray) -> np.ndarray:
        p = frame.transform(point)
        J_x = (1.0 / p[2]) * _projection_point_jacobian(p) @ frame.rotation
        return self.camera.jacobian() @ J_x

    def add_point(self, point: np.ndarray, delta: np.ndarray) -> np.ndarray:
        return np.asarray(point, dtype=float) + delta


class SE3UVQ(SE3AbstractPoint):
    """
    3D inverse-depth point (u, v, q), i.e. the Euclidean point (u, v, 1) / q.
    """

    POINT_PAR_NUM = 3
    POINT_DOF = 3
    OBS_DIM = 2

    def __init__(self, camera: Optional[LinearCamera] = None,
                 diff_step: Optional[float] = None):
        super().__init__(diff_step)
        self.camera = camera or LinearCamera()

    @staticmethod
    def to_euclidean(uvq: np.ndarray) -> np.ndarray:
        uvq = np.asarray(uvq, dtype=float)
        return np.array([uvq[0], uvq[1], 1.0]) / uvq[2]

    @staticmethod
    def from_euclidean(xyz: np.ndarray) -> np.ndarray:
        xyz = np.asarray(xyz, dtype=float)
        return np.array([xyz[0] / xyz[2], xyz[1] / xyz[2], 1.0 / xyz[2]])

    def map(self, frame: SE3, point: np.ndarray) -> np.ndarray:
        return self.camera.map(project(frame.transform(self.to_euclidean(point))))

    def check_point(self, frame: SE3, point: np.ndarray) -> None:
        _warn_if_degenerate(frame.transform(self.to_euclidean(point))[2], "SE3UVQ")

    def frame_jac(self, frame: SE3, point: np.ndarray) -> np.ndarray:
        p = frame.transform(self.to_euclidean(point))
        return self.camera.jacobian() @ _projection_frame_jacobian(p)

    def point_jac(self, frame: SE3, point: np.ndarray) -> np.ndarray:
        R = frame.rotation
        p = frame.transform(self.to_euclidean(point))

        # d p / d(u, v, q) projected: the q column reduces to t / q since
        # the projection Jacobian annihilates p itself.
        R12t = np.column_stack([R[:, 0], R[:, 1], frame.translation])
        J_x = (1.0 / (p[2] * point[2])) * _projection_point_jacobian(p) @ R12t
        return self.camera.jacobian() @ J_x

    def add_point(self, point: np.ndarray, delta: np.ndarray) -> np.ndarray:
        return np.asarray(point, dtype=float) + delta


def build_observation_model(config: GeometryConfig) -> SE3AbstractPoint:
    """Projective model for the configured camera, point encoding and difference step."""
    camera = LinearCamera.from_config(config.camera)
    if config.point_parameterization == PointParameterization.UVQ:
        return SE3UVQ(camera, diff_step=config.numerics.diff_step)
    return SE3XYZ(camera, diff_step=config.numerics.diff_step)
