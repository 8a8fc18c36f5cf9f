"""
Core data structures exchanged with the optimizer.
Observations and constraints are immutable; models never modify them.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

import numpy as np

from rv_geometry.utils.lie_groups import SE2, SE3, Sim3


Transform = Union[SE2, SE3, Sim3]


def _validate_information(information: Optional[np.ndarray], dim: int) -> Optional[np.ndarray]:
    """Check that an information matrix is square, of size dim and symmetric."""
    if information is None:
        return None
    information = np.asarray(information, dtype=float)
    if information.shape != (dim, dim):
        raise ValueError(
            f"Information matrix must be {dim}x{dim}, got {information.shape}"
        )
    if not np.allclose(information, information.T):
        raise ValueError("Information matrix must be symmetric")
    return information


# ============================================================================
# Observations
# ============================================================================

@dataclass(frozen=True, eq=False)
class Observation:
    """
    Measurement of a point seen from a frame.

    Attributes:
        point_id: ID of the observed point
        frame_id: ID of the observing frame
        measurement: Observed vector (e.g. 2D pixel)
        information: Optional inverse covariance of the measurement
    """
    point_id: int
    frame_id: int
    measurement: np.ndarray
    information: Optional[np.ndarray] = None

    def __post_init__(self):
        measurement = np.atleast_1d(np.asarray(self.measurement, dtype=float).flatten())
        object.__setattr__(self, "measurement", measurement)
        object.__setattr__(
            self, "information", _validate_information(self.information, len(measurement))
        )

    @property
    def dim(self) -> int:
        return len(self.measurement)

    def weight(self) -> np.ndarray:
        """Information matrix, identity when none was given."""
        if self.information is None:
            return np.eye(self.dim)
        return self.information

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        data = {
            "point_id": self.point_id,
            "frame_id": self.frame_id,
            "measurement": self.measurement.tolist(),
        }
        if self.information is not None:
            data["information"] = self.information.tolist()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Observation":
        """Create from dictionary."""
        information = data.get("information")
        return cls(
            point_id=data["point_id"],
            frame_id=data["frame_id"],
            measurement=np.array(data["measurement"]),
            information=np.array(information) if information is not None else None,
        )


# ============================================================================
# Relative pose constraints
# ============================================================================

@dataclass(frozen=True, eq=False)
class RelativePoseConstraint:
    """
    Measured relative transformation between two absolute frames.

    Attributes:
        frame_id_1: ID of the first frame (T1)
        frame_id_2: ID of the second frame (T2)
        constraint: Measured relative transformation C
        information: Optional inverse covariance in the residual's tangent space
    """
    frame_id_1: int
    frame_id_2: int
    constraint: Transform
    information: Optional[np.ndarray] = None

    def __post_init__(self):
        if not isinstance(self.constraint, (SE2, SE3, Sim3)):
            raise ValueError(
                f"Constraint must be an SE2, SE3 or Sim3 element, got {type(self.constraint).__name__}"
            )
        object.__setattr__(
            self, "information", _validate_information(self.information, self.constraint.DOF)
        )

    def weight(self) -> np.ndarray:
        """Information matrix, identity when none was given."""
        if self.information is None:
            return np.eye(self.constraint.DOF)
        return self.information


# ============================================================================
# Residual evaluation
# ============================================================================

@dataclass
class ResidualBlock:
    """
    Residual of a single edge together with its Jacobians.

    Attributes:
        residual: Prediction minus measurement (or constraint difference)
        jacobian_1: Jacobian w.r.t. the first endpoint (frame, or T1)
        jacobian_2: Jacobian w.r.t. the second endpoint (point, or T2)
        squared_error: r^T Lambda r with the edge's information matrix
    """
    residual: np.ndarray
    jacobian_1: np.ndarray
    jacobian_2: np.ndarray
    squared_error: float

    @classmethod
    def build(cls, residual: np.ndarray, jacobian_1: np.ndarray,
              jacobian_2: np.ndarray, information: np.ndarray) -> "ResidualBlock":
        residual = np.atleast_1d(np.asarray(residual, dtype=float))
        return cls(
            residual=residual,
            jacobian_1=jacobian_1,
            jacobian_2=jacobian_2,
            squared_error=float(residual @ information @ residual),
        )
