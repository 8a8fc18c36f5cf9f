"""
Camera projection model injected into the projective observation models.
"""

from dataclasses import dataclass

import numpy as np

from rv_geometry.common.config import LinearCameraConfig


@dataclass(frozen=True)
class LinearCamera:
    """
    Pinhole camera without distortion.

    Maps a normalised image coordinate (x/z, y/z) to pixels
    u = fx x + cx, v = fy y + cy. Immutable, so one instance can be shared
    by any number of concurrent residual evaluations.
    """
    fx: float = 1.0
    fy: float = 1.0
    cx: float = 0.0
    cy: float = 0.0

    def __post_init__(self):
        if self.fx <= 0 or self.fy <= 0:
            raise ValueError(f"Focal lengths must be positive, got fx={self.fx}, fy={self.fy}")

    @classmethod
    def from_config(cls, config: LinearCameraConfig) -> "LinearCamera":
        return cls(fx=config.fx, fy=config.fy, cx=config.cx, cy=config.cy)

    @property
    def K(self) -> np.ndarray:
        """3x3 intrinsic matrix."""
        return np.array([
            [self.fx, 0, self.cx],
            [0, self.fy, self.cy],
            [0, 0, 1]
        ])

    def map(self, ray: np.ndarray) -> np.ndarray:
        """Normalised image coordinate -> pixel."""
        ray = np.asarray(ray, dtype=float)
        return np.array([self.fx * ray[0] + self.cx, self.fy * ray[1] + self.cy])

    def unmap(self, pixel: np.ndarray) -> np.ndarray:
        """Pixel -> normalised image coordinate."""
        pixel = np.asarray(pixel, dtype=float)
        return np.array([(pixel[0] - self.cx) / self.fx, (pixel[1] - self.cy) / self.fy])

    def jacobian(self) -> np.ndarray:
        """Constant 2x2 Jacobian of map()."""
        return np.diag([self.fx, self.fy])
