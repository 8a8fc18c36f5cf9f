"""
Unit tests for configuration models and validation.
"""

import pytest
import yaml
from pathlib import Path
import tempfile

from rv_geometry.common.config import (
    GeometryConfig,
    LinearCameraConfig,
    NumericsConfig,
    JacobianCheckConfig,
    PointParameterization,
    load_geometry_config,
    resolve_geometry_config,
    save_config
)
from rv_geometry.estimation.camera_model import LinearCamera


class TestLinearCameraConfig:
    """Test camera intrinsics validation."""

    def test_defaults(self):
        config = LinearCameraConfig()
        assert config.fx == 500.0
        assert config.cx == 320.0

    def test_invalid_focal_length(self):
        """Test that negative focal length raises error."""
        with pytest.raises(ValueError):
            LinearCameraConfig(fx=-500.0)

    def test_camera_from_config(self):
        camera = LinearCamera.from_config(LinearCameraConfig(fx=400.0, fy=410.0, cx=1.0, cy=2.0))
        assert camera.fx == 400.0
        assert camera.fy == 410.0
        assert camera.cy == 2.0


class TestNumericsConfig:
    """Test numerical differentiation settings."""

    def test_default_step_is_automatic(self):
        assert NumericsConfig().diff_step is None

    def test_invalid_step(self):
        with pytest.raises(ValueError):
            NumericsConfig(diff_step=0.0)
        with pytest.raises(ValueError):
            NumericsConfig(diff_step=2.0)


class TestJacobianCheckConfig:
    """Test Jacobian check settings."""

    def test_defaults(self):
        config = JacobianCheckConfig()
        assert config.trials == 100
        assert config.tolerance == 1e-4
        assert config.central

    def test_depth_range(self):
        """Test that max_depth must exceed min_depth."""
        with pytest.raises(ValueError):
            JacobianCheckConfig(min_depth=5.0, max_depth=2.0)

    def test_trials_positive(self):
        with pytest.raises(ValueError):
            JacobianCheckConfig(trials=0)


class TestGeometryConfig:
    """Test the complete configuration."""

    def test_defaults(self):
        config = GeometryConfig()
        assert config.point_parameterization == PointParameterization.XYZ
        assert config.log_level == "INFO"

    def test_log_level_normalised(self):
        assert GeometryConfig(log_level="debug").log_level == "DEBUG"

    def test_invalid_log_level(self):
        with pytest.raises(ValueError):
            GeometryConfig(log_level="verbose")


class TestConfigIO:
    """Test configuration loading and saving."""

    def test_save_and_load(self):
        """Test round trip through YAML."""
        config = GeometryConfig(
            camera=LinearCameraConfig(fx=450.0, fy=455.0),
            point_parameterization=PointParameterization.UVQ,
            jacobian_check=JacobianCheckConfig(trials=20, seed=7),
        )
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "config" / "geometry.yaml"
            save_config(config, path)
            assert path.exists()

            with open(path) as f:
                data = yaml.safe_load(f)
            assert data["point_parameterization"] == "uvq"

            loaded = load_geometry_config(path)
            assert loaded.camera.fx == 450.0
            assert loaded.point_parameterization == PointParameterization.UVQ
            assert loaded.jacobian_check.trials == 20
            assert loaded.jacobian_check.seed == 7

    def test_load_partial_file(self):
        """Test that missing sections fall back to defaults."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "geometry.yaml"
            path.write_text("camera:\n  fx: 300.0\n")
            config = load_geometry_config(path)
            assert config.camera.fx == 300.0
            assert config.camera.fy == 500.0
            assert config.jacobian_check.trials == 100

    def test_load_empty_file(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "geometry.yaml"
            path.write_text("")
            assert load_geometry_config(path).log_level == "INFO"

    def test_missing_file(self):
        with pytest.raises(FileNotFoundError):
            load_geometry_config("/nonexistent/geometry.yaml")

    def test_invalid_values_in_file(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "geometry.yaml"
            path.write_text("camera:\n  fx: -1.0\n")
            with pytest.raises(ValueError):
                load_geometry_config(path)


class TestEnvironmentOverrides:
    """Test RV_GEOMETRY_* environment variables."""

    def test_defaults_without_environment(self, monkeypatch):
        monkeypatch.delenv("RV_GEOMETRY_CONFIG", raising=False)
        monkeypatch.delenv("RV_GEOMETRY_LOG_LEVEL", raising=False)
        assert resolve_geometry_config().camera.fx == 500.0

    def test_config_path_from_environment(self, monkeypatch):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "geometry.yaml"
            path.write_text("camera:\n  fx: 250.0\n")
            monkeypatch.setenv("RV_GEOMETRY_CONFIG", str(path))
            monkeypatch.delenv("RV_GEOMETRY_LOG_LEVEL", raising=False)
            assert resolve_geometry_config().camera.fx == 250.0

    def test_explicit_path_wins(self, monkeypatch):
        with tempfile.TemporaryDirectory() as tmpdir:
            env_path = Path(tmpdir) / "env.yaml"
            env_path.write_text("camera:\n  fx: 250.0\n")
            path = Path(tmpdir) / "explicit.yaml"
            path.write_text("camera:\n  fx: 350.0\n")
            monkeypatch.setenv("RV_GEOMETRY_CONFIG", str(env_path))
            assert resolve_geometry_config(path).camera.fx == 350.0

    def test_log_level_override(self, monkeypatch):
        monkeypatch.delenv("RV_GEOMETRY_CONFIG", raising=False)
        monkeypatch.setenv("RV_GEOMETRY_LOG_LEVEL", "warning")
        assert resolve_geometry_config().log_level == "WARNING"

    def test_invalid_log_level_override(self, monkeypatch):
        """Test that the environment override goes through validation."""
        monkeypatch.delenv("RV_GEOMETRY_CONFIG", raising=False)
        monkeypatch.setenv("RV_GEOMETRY_LOG_LEVEL", "bogus")
        with pytest.raises(ValueError):
            resolve_geometry_config()
