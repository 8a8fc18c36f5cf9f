"""
Abstract prediction models: map a point into a frame and create an observation.

A model is parameterised by

    FRAME_DOF:      DoF of the frame/pose (6 for SE3)
    POINT_PAR_NUM:  number of parameters representing a point
    POINT_DOF:      DoF of a point
    OBS_DIM:        dimension of an observation (2 for a (u, v) image point)

Jacobians default to forward differences along the local perturbations
add_frame() / add_point(); concrete models override them with analytic forms.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional, Tuple

import numpy as np

from rv_geometry.common.data_structures import Observation, ResidualBlock
from rv_geometry.estimation.numerical import default_diff_step, numerical_jacobian
from rv_geometry.utils.lie_groups import SE2, SE3


class AbstractPrediction(ABC):
    """Abstract prediction class."""

    FRAME_DOF: int
    POINT_PAR_NUM: int
    POINT_DOF: int
    OBS_DIM: int

    def __init__(self, diff_step: Optional[float] = None):
        """
        Args:
            diff_step: Step of the numerical Jacobians (None: 1e-12 for doubles)
        """
        self.diff_step = diff_step

    @abstractmethod
    def map(self, frame: Any, point: np.ndarray) -> np.ndarray:
        """Map a world point into the sensor frame and create an observation."""

    @abstractmethod
    def add_frame(self, frame: Any, delta: np.ndarray) -> Any:
        """Add an incremental update delta to the frame."""

    @abstractmethod
    def add_point(self, point: np.ndarray, delta: np.ndarray) -> np.ndarray:
        """Add an incremental update delta to the point."""

    @abstractmethod
    def first_rot_id(self) -> int: ...

    @abstractmethod
    def num_rot_pars(self) -> int: ...

    @abstractmethod
    def first_trans_id(self) -> int: ...

    @abstractmethod
    def num_trans_pars(self) -> int: ...

    def check_point(self, frame: Any, point: np.ndarray) -> None:
        """Report ill-conditioned inputs; called once per residual, never from map()."""

    def frame_jac(self, frame: Any, point: np.ndarray) -> np.ndarray:
        """Jacobian (OBS_DIM x FRAME_DOF) wrt. the frame, numerical by default."""
        return self.numerical_frame_jac(frame, point)

    def point_jac(self, frame: Any, point: np.ndarray) -> np.ndarray:
        """Jacobian (OBS_DIM x POINT_DOF) wrt. the point, numerical by default."""
        return self.numerical_point_jac(frame, point)

    def numerical_frame_jac(self, frame: Any, point: np.ndarray,
                            step: Optional[float] = None,
                            central: bool = False) -> np.ndarray:
        return numerical_jacobian(
            lambda T: self.map(T, point), frame, self.add_frame, self.FRAME_DOF,
            step=self._step(step, point), central=central,
        )

    def numerical_point_jac(self, frame: Any, point: np.ndarray,
                            step: Optional[float] = None,
                            central: bool = False) -> np.ndarray:
        return numerical_jacobian(
            lambda x: self.map(frame, x), point, self.add_point, self.POINT_DOF,
            step=self._step(step, point), central=central,
        )

    def _step(self, step: Optional[float], point: np.ndarray) -> Optional[float]:
        if step is not None:
            return step
        if self.diff_step is not None:
            return self.diff_step
        dtype = np.asarray(point).dtype
        return default_diff_step(dtype) if np.issubdtype(dtype, np.floating) else None

    # ------------------------------------------------------------------
    # Optimizer-facing interface
    # ------------------------------------------------------------------

    def residual(self, frame: Any, point: np.ndarray, measurement: np.ndarray) -> np.ndarray:
        """Prediction minus measurement."""
        self.check_point(frame, point)
        return self.map(frame, point) - np.asarray(measurement, dtype=float)

    def jacobians(self, frame: Any, point: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """Jacobians of the residual wrt. the frame and the point."""
        return self.frame_jac(frame, point), self.point_jac(frame, point)

    def evaluate(self, frame: Any, point: np.ndarray, observation: Observation) -> ResidualBlock:
        """Residual, Jacobians and weighted squared error of one observation."""
        if observation.dim != self.OBS_DIM:
            raise ValueError(
                f"{type(self).__name__} expects {self.OBS_DIM}D observations, got {observation.dim}D"
            )
        J_frame, J_point = self.jacobians(frame, point)
        return ResidualBlock.build(
            self.residual(frame, point, observation.measurement),
            J_frame, J_point, observation.weight(),
        )


class SE3AbstractPoint(AbstractPrediction):
    """Abstract prediction class depending on 3D rigid body transformations SE3."""

    FRAME_DOF = 6

    def add_frame(self, frame: SE3, delta: np.ndarray) -> SE3:
        return SE3.exp(delta) * frame

    def first_rot_id(self) -> int:
        return 0

    def num_rot_pars(self) -> int:
        return 3

    def first_trans_id(self) -> int:
        return 3

    def num_trans_pars(self) -> int:
        return 3


class SE2AbstractPoint(AbstractPrediction):
    """Abstract prediction class depending on 2D rigid body transformations SE2."""

    FRAME_DOF = 3

    def add_frame(self, frame: SE2, delta: np.ndarray) -> SE2:
        return SE2.exp(delta) * frame

    def first_rot_id(self) -> int:
        return 0

    def num_rot_pars(self) -> int:
        return 1

    def first_trans_id(self) -> int:
        return 1

    def num_trans_pars(self) -> int:
        return 2
