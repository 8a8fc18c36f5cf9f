"""
Configuration models using Pydantic for type safety and validation.
"""

import logging
from enum import Enum
from pathlib import Path
from typing import Optional, Union

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


logger = logging.getLogger(__name__)


class PointParameterization(str, Enum):
    """Point encodings of the projective observation models."""
    XYZ = "xyz"
    UVQ = "uvq"


class LinearCameraConfig(BaseModel):
    """Pinhole (linear) camera intrinsics."""
    fx: float = Field(500.0, gt=0, description="Focal length in x (pixels)")
    fy: float = Field(500.0, gt=0, description="Focal length in y (pixels)")
    cx: float = Field(320.0, description="Principal point x (pixels)")
    cy: float = Field(240.0, description="Principal point y (pixels)")


class NumericsConfig(BaseModel):
    """Numerical differentiation settings of the fallback Jacobians."""
    diff_step: Optional[float] = Field(
        None,
        gt=0,
        lt=1.0,
        description="Forward-difference step (None selects it from the dtype)"
    )


class JacobianCheckConfig(BaseModel):
    """Randomised comparison of analytic and numerical Jacobians."""
    trials: int = Field(100, ge=1, description="Random inputs per model")
    tolerance: float = Field(1e-4, gt=0, description="Maximum relative error")
    step: float = Field(1e-6, gt=0, lt=1.0, description="Reference difference step")
    central: bool = Field(True, description="Use central differences for the reference")
    max_rotation_angle: float = Field(
        1.0,
        gt=0,
        le=3.0,
        description="Maximum rotation angle of sampled transforms (radians)"
    )
    max_translation: float = Field(2.0, gt=0, description="Maximum sampled translation (m)")
    min_depth: float = Field(2.0, gt=0, description="Minimum depth of sampled points (m)")
    max_depth: float = Field(8.0, gt=0, description="Maximum depth of sampled points (m)")
    seed: Optional[int] = Field(None, description="Random seed for reproducibility")

    @model_validator(mode='after')
    def validate_depth_range(self):
        """Ensure the depth interval is not empty."""
        if self.max_depth <= self.min_depth:
            raise ValueError("max_depth must be greater than min_depth")
        return self


class GeometryConfig(BaseModel):
    """Complete configuration of the residual models."""
    camera: LinearCameraConfig = Field(default_factory=LinearCameraConfig)
    point_parameterization: PointParameterization = Field(
        default=PointParameterization.XYZ,
        description="Point encoding of projective observations"
    )
    numerics: NumericsConfig = Field(default_factory=NumericsConfig)
    jacobian_check: JacobianCheckConfig = Field(default_factory=JacobianCheckConfig)
    log_level: str = Field("INFO", description="Logging level of the command line tools")

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        v = v.upper()
        if v not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return v


class GeometrySettings(BaseSettings):
    """Environment overrides, e.g. RV_GEOMETRY_CONFIG=geometry.yaml."""
    model_config = SettingsConfigDict(env_prefix="RV_GEOMETRY_")

    config: Optional[Path] = None
    log_level: Optional[str] = None


def load_geometry_config(path: Union[str, Path]) -> GeometryConfig:
    """Load geometry configuration from YAML file."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    with open(path, 'r') as f:
        data = yaml.safe_load(f) or {}
    logger.info(f"Loaded geometry configuration from {path}")
    return GeometryConfig(**data)


def resolve_geometry_config(path: Optional[Union[str, Path]] = None) -> GeometryConfig:
    """
    Configuration from an explicit path, else from RV_GEOMETRY_CONFIG, else defaults.

    RV_GEOMETRY_LOG_LEVEL overrides the level stored in the file.
    """
    settings = GeometrySettings()
    path = path or settings.config
    config = load_geometry_config(path) if path else GeometryConfig()
    if settings.log_level:
        config = GeometryConfig.model_validate(
            {**config.model_dump(), "log_level": settings.log_level}
        )
    return config


def save_config(config: BaseModel, path: Union[str, Path]) -> None:
    """Save configuration to YAML file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    # Convert to dict and handle enums
    data = config.model_dump(mode='json')

    with open(path, 'w') as f:
        yaml.dump(data, f, default_flow_style=False, sort_keys=False)
