"""
Randomised comparison of analytic Jacobians against the numerical fallback.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

import numpy as np
from tqdm import tqdm

from rv_geometry.common.config import GeometryConfig, JacobianCheckConfig
from rv_geometry.estimation.constraints import SE3Constraint
from rv_geometry.estimation.numerical import relative_error
from rv_geometry.estimation.observation_models import SE3UVQ, build_observation_model
from rv_geometry.estimation.prediction import AbstractPrediction
from rv_geometry.evaluation.sampling import (
    make_rng, random_relative_constraint, random_se3, random_visible_point
)

logger = logging.getLogger(__name__)


@dataclass
class JacobianCheckResult:
    """
    Outcome of checking one Jacobian block of one model.

    Attributes:
        model: Model class name
        block: Jacobian name (frame_jac, point_jac, d_diff_dT1, d_diff_dT2)
        trials: Number of random inputs
        max_relative_error: Worst ||A - N|| / max(||N||, 1) over the trials
        tolerance: Acceptance threshold
    """
    model: str
    block: str
    trials: int
    max_relative_error: float
    tolerance: float

    @property
    def passed(self) -> bool:
        return bool(np.isfinite(self.max_relative_error)
                    and self.max_relative_error <= self.tolerance)

    def to_dict(self) -> Dict[str, object]:
        return {
            "model": self.model,
            "block": self.block,
            "trials": self.trials,
            "max_relative_error": self.max_relative_error,
            "tolerance": self.tolerance,
            "passed": self.passed,
        }


def _progress(iterable, show_progress: bool, desc: str):
    return tqdm(iterable, desc=desc, leave=False) if show_progress else iterable


def check_prediction_model(
    model: AbstractPrediction,
    config: JacobianCheckConfig,
    to_parameters: Callable[[np.ndarray], np.ndarray] = lambda x: x,
    rng: Optional[np.random.Generator] = None,
    show_progress: bool = False,
) -> List[JacobianCheckResult]:
    """
    Compare frame_jac/point_jac of a projective SE3 model with its numerical fallback.

    Args:
        model: Observation model with analytic Jacobians
        config: Check settings
        to_parameters: Converts a Euclidean world point to the model's point parameters
        rng: Random generator (defaults to one seeded from config.seed)
        show_progress: Show a tqdm progress bar

    Returns:
        One result per Jacobian block
    """
    rng = rng if rng is not None else make_rng(config.seed)
    name = type(model).__name__
    worst = {"frame_jac": 0.0, "point_jac": 0.0}

    for _ in _progress(range(config.trials), show_progress, name):
        frame = random_se3(rng, config.max_rotation_angle, config.max_translation)
        point = to_parameters(
            random_visible_point(rng, frame, config.min_depth, config.max_depth)
        )
        J_frame = model.numerical_frame_jac(frame, point, config.step, config.central)
        J_point = model.numerical_point_jac(frame, point, config.step, config.central)
        worst["frame_jac"] = max(worst["frame_jac"],
                                 relative_error(model.frame_jac(frame, point), J_frame))
        worst["point_jac"] = max(worst["point_jac"],
                                 relative_error(model.point_jac(frame, point), J_point))

    return [JacobianCheckResult(name, block, config.trials, err, config.tolerance)
            for block, err in worst.items()]


def check_se3_constraint(
    config: JacobianCheckConfig,
    rng: Optional[np.random.Generator] = None,
    show_progress: bool = False,
    model: Optional[SE3Constraint] = None,
) -> List[JacobianCheckResult]:
    """Compare the analytic SE3Constraint Jacobians with the numerical fallback."""
    rng = rng if rng is not None else make_rng(config.seed)
    model = model or SE3Constraint()
    worst = {"d_diff_dT1": 0.0, "d_diff_dT2": 0.0}

    for _ in _progress(range(config.trials), show_progress, "SE3Constraint"):
        T1 = random_se3(rng, config.max_rotation_angle, config.max_translation)
        T2 = random_se3(rng, config.max_rotation_angle, config.max_translation)
        C = random_relative_constraint(rng, T1, T2, max_angle=config.max_rotation_angle)
        J1 = model.numerical_d_diff_dT1(T1, C, T2, config.step, config.central)
        J2 = model.numerical_d_diff_dT2(T1, C, T2, config.step, config.central)
        worst["d_diff_dT1"] = max(worst["d_diff_dT1"],
                                  relative_error(model.d_diff_dT1(T1, C, T2), J1))
        worst["d_diff_dT2"] = max(worst["d_diff_dT2"],
                                  relative_error(model.d_diff_dT2(T1, C, T2), J2))

    return [JacobianCheckResult("SE3Constraint", block, config.trials, err, config.tolerance)
            for block, err in worst.items()]


def run_jacobian_checks(config: Optional[GeometryConfig] = None,
                        show_progress: bool = False) -> List[JacobianCheckResult]:
    """
    Check the configured projective model and SE3Constraint.

    The point encoding, camera and numerical step come from the config.

    Returns:
        Results for the observation model (SE3XYZ or SE3UVQ) and SE3Constraint
    """
    config = config or GeometryConfig()
    check = config.jacobian_check
    rng = make_rng(check.seed)
    model = build_observation_model(config)
    to_parameters = model.from_euclidean if isinstance(model, SE3UVQ) else (lambda x: x)

    logger.info(f"Checking analytic Jacobians on {check.trials} random inputs per model")
    results = []
    results += check_prediction_model(model, check, to_parameters, rng=rng,
                                      show_progress=show_progress)
    results += check_se3_constraint(check, rng=rng, show_progress=show_progress,
                                    model=SE3Constraint(diff_step=config.numerics.diff_step))

    for result in results:
        level = logging.INFO if result.passed else logging.WARNING
        logger.log(level, f"{result.model}.{result.block}: max relative error "
                          f"{result.max_relative_error:.3e} (tolerance {result.tolerance:.1e})")
    return results
