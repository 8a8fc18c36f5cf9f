"""
Unit tests for the projective and bearing observation models.
"""

import logging

import numpy as np
import pytest
from numpy.testing import assert_array_almost_equal

from rv_geometry.common.config import (
    GeometryConfig, LinearCameraConfig, NumericsConfig, PointParameterization
)
from rv_geometry.common.data_structures import Observation
from rv_geometry.estimation.camera_model import LinearCamera
from rv_geometry.estimation.numerical import relative_error
from rv_geometry.estimation.observation_models import (
    SE2XY, SE3UVQ, SE3XYZ, build_observation_model
)
from rv_geometry.utils.lie_groups import SE2, SE3


def random_frame(rng, max_angle=0.3, max_translation=0.5):
    omega = rng.normal(size=3)
    omega *= rng.uniform(0, max_angle) / np.linalg.norm(omega)
    return SE3.exp(np.concatenate([omega, rng.uniform(-max_translation, max_translation, size=3)]))


def random_world_point(rng):
    """Point in front of any frame produced by random_frame()."""
    return np.array([rng.uniform(-1, 1), rng.uniform(-1, 1), rng.uniform(3, 8)])


class TestLinearCamera:
    """Test the pinhole camera collaborator."""

    def test_map_unmap(self):
        camera = LinearCamera(500.0, 400.0, 320.0, 240.0)
        pixel = camera.map(np.array([0.1, -0.2]))
        assert_array_almost_equal(pixel, [370.0, 160.0])
        assert_array_almost_equal(camera.unmap(pixel), [0.1, -0.2])

    def test_jacobian(self):
        camera = LinearCamera(500.0, 400.0, 320.0, 240.0)
        assert_array_almost_equal(camera.jacobian(), np.diag([500.0, 400.0]))
        assert_array_almost_equal(camera.K[:2, :2], np.diag([500.0, 400.0]))

    def test_invalid_focal_length(self):
        with pytest.raises(ValueError):
            LinearCamera(fx=-1.0)


class TestSE3XYZ:
    """Test the Euclidean point model."""

    @pytest.fixture
    def model(self):
        return SE3XYZ(LinearCamera(fx=500.0, fy=500.0, cx=320.0, cy=240.0))

    def test_point_on_axis(self):
        """Test a point on the optical axis maps to the principal point."""
        model = SE3XYZ()
        point = np.array([0.0, 0.0, 5.0])
        assert_array_almost_equal(model.map(SE3.identity(), point), [0.0, 0.0])

    def test_point_shift_scenario(self):
        """Test shifting the point by eps along x moves the observation by eps/5."""
        model = SE3XYZ()
        point = np.array([0.0, 0.0, 5.0])
        eps = 1e-4
        shifted = model.map(SE3.identity(), model.add_point(point, np.array([eps, 0.0, 0.0])))
        assert shifted[0] == pytest.approx(eps / 5.0)
        J = model.point_jac(SE3.identity(), point)
        assert_array_almost_equal(J, [[0.2, 0.0, 0.0], [0.0, 0.2, 0.0]])
        assert J[0, 0] * eps == pytest.approx(shifted[0])

    def test_map_matches_intrinsics(self, model):
        frame = SE3.exp(np.array([0.1, -0.1, 0.05, 0.2, 0.1, -0.3]))
        point = np.array([0.3, -0.2, 4.0])
        p = frame.transform(point)
        expected = (model.camera.K @ p)[:2] / p[2]
        assert_array_almost_equal(model.map(frame, point), expected)

    def test_metadata(self, model):
        assert model.FRAME_DOF == 6
        assert model.POINT_PAR_NUM == 3
        assert model.POINT_DOF == 3
        assert model.OBS_DIM == 2
        assert model.first_rot_id() == 0
        assert model.num_rot_pars() == 3
        assert model.first_trans_id() == 3
        assert model.num_trans_pars() == 3

    def test_analytic_jacobians_match_numerical(self, model):
        """Test frame_jac and point_jac on 100 random inputs."""
        rng = np.random.default_rng(42)
        for _ in range(100):
            frame = random_frame(rng)
            point = random_world_point(rng)
            J_frame = model.numerical_frame_jac(frame, point, step=1e-6, central=True)
            J_point = model.numerical_point_jac(frame, point, step=1e-6, central=True)
            assert relative_error(model.frame_jac(frame, point), J_frame) < 1e-4
            assert relative_error(model.point_jac(frame, point), J_point) < 1e-4

    def test_translation_block(self, model):
        """Test that a pure translation perturbation matches the point Jacobian."""
        frame = SE3.identity()
        point = np.array([0.5, -0.3, 4.0])
        J_frame = model.frame_jac(frame, point)
        J_point = model.point_jac(frame, point)
        assert_array_almost_equal(J_frame[:, 3:6], J_point)

    def test_default_jacobians_are_forward_differences(self):
        """Test the numerical fallback with the default step on an SE2 model."""
        model = SE2XY()
        frame = SE2.exp(np.array([0.1, 0.2, -0.1]))
        point = np.array([0.3, 3.0])
        J_default = model.frame_jac(frame, point)
        J_central = model.numerical_frame_jac(frame, point, step=1e-6, central=True)
        assert relative_error(J_default, J_central) < 1e-2

    def test_degenerate_depth_warns_once_per_residual(self, model, caplog):
        """Test that a near-zero-depth point is reported once by evaluate()."""
        point = np.array([1.0, 0.0, 1e-12])
        observation = Observation(point_id=1, frame_id=0, measurement=np.array([0.0, 0.0]))
        with caplog.at_level(logging.WARNING):
            model.evaluate(SE3.identity(), point, observation)
        warnings = [r for r in caplog.records if "ill-conditioned" in r.getMessage()]
        assert len(warnings) == 1

    def test_numerical_jacobian_does_not_warn(self, model, caplog):
        """Test that map() stays silent while differentiating at a degenerate point."""
        point = np.array([1.0, 0.0, 1e-12])
        with caplog.at_level(logging.WARNING):
            model.numerical_frame_jac(SE3.identity(), point, step=1e-6, central=True)
        assert "ill-conditioned" not in caplog.text


class TestSE3UVQ:
    """Test the inverse-depth point model."""

    @pytest.fixture
    def model(self):
        return SE3UVQ(LinearCamera(fx=500.0, fy=500.0, cx=320.0, cy=240.0))

    def test_parameter_conversion(self):
        xyz = np.array([1.0, -2.0, 4.0])
        uvq = SE3UVQ.from_euclidean(xyz)
        assert_array_almost_equal(uvq, [0.25, -0.5, 0.25])
        assert_array_almost_equal(SE3UVQ.to_euclidean(uvq), xyz)

    def test_agrees_with_xyz_model(self, model):
        """Test both parameterisations predict the same observation."""
        xyz_model = SE3XYZ(model.camera)
        rng = np.random.default_rng(3)
        for _ in range(10):
            frame = random_frame(rng)
            point = random_world_point(rng)
            assert_array_almost_equal(model.map(frame, SE3UVQ.from_euclidean(point)),
                                      xyz_model.map(frame, point))
            assert_array_almost_equal(model.frame_jac(frame, SE3UVQ.from_euclidean(point)),
                                      xyz_model.frame_jac(frame, point))

    def test_analytic_jacobians_match_numerical(self, model):
        """Test frame_jac and point_jac on 100 random inputs."""
        rng = np.random.default_rng(42)
        for _ in range(100):
            frame = random_frame(rng)
            point = SE3UVQ.from_euclidean(random_world_point(rng))
            J_frame = model.numerical_frame_jac(frame, point, step=1e-6, central=True)
            J_point = model.numerical_point_jac(frame, point, step=1e-6, central=True)
            assert relative_error(model.frame_jac(frame, point), J_frame) < 1e-4
            assert relative_error(model.point_jac(frame, point), J_point) < 1e-4

    def test_metadata(self, model):
        assert model.FRAME_DOF == 6
        assert model.POINT_PAR_NUM == 3
        assert model.POINT_DOF == 3
        assert model.OBS_DIM == 2


class TestSE2XY:
    """Test the 2D bearing model."""

    def test_map(self):
        """Test the 1D image coordinate x/y."""
        model = SE2XY()
        assert_array_almost_equal(model.map(SE2.identity(), np.array([1.0, 4.0])), [0.25])

    def test_metadata(self):
        model = SE2XY()
        assert model.FRAME_DOF == 3
        assert model.POINT_DOF == 2
        assert model.OBS_DIM == 1
        assert model.first_rot_id() == 0
        assert model.num_rot_pars() == 1
        assert model.first_trans_id() == 1
        assert model.num_trans_pars() == 2

    def test_numerical_jacobians(self):
        """Test the numerical Jacobians against the closed form at identity."""
        model = SE2XY()
        point = np.array([1.0, 4.0])
        J_point = model.numerical_point_jac(SE2.identity(), point, step=1e-6, central=True)
        # d(x/y) = [1/y, -x/y^2]
        assert_array_almost_equal(J_point, [[0.25, -1.0 / 16.0]])
        J_frame = model.numerical_frame_jac(SE2.identity(), point, step=1e-6, central=True)
        # Rotation moves (x, y) by theta (-y, x); translation adds (ux, uy)
        assert_array_almost_equal(J_frame, [[-4.0 * 0.25 - 1.0 / 16.0, 0.25, -1.0 / 16.0]])


class TestEvaluate:
    """Test the optimizer-facing residual evaluation."""

    def test_residual_block(self):
        model = SE3XYZ(LinearCamera(fx=500.0, fy=500.0, cx=320.0, cy=240.0))
        frame = SE3.identity()
        point = np.array([0.0, 0.0, 5.0])
        observation = Observation(point_id=1, frame_id=0, measurement=np.array([321.0, 238.0]),
                                  information=np.diag([4.0, 1.0]))
        block = model.evaluate(frame, point, observation)
        assert_array_almost_equal(block.residual, [-1.0, 2.0])
        assert block.squared_error == pytest.approx(4.0 * 1.0 + 1.0 * 4.0)
        assert block.jacobian_1.shape == (2, 6)
        assert block.jacobian_2.shape == (2, 3)

    def test_residual_is_prediction_minus_measurement(self):
        model = SE3XYZ()
        point = np.array([0.5, 0.5, 2.0])
        assert_array_almost_equal(model.residual(SE3.identity(), point, [0.25, 0.25]), [0.0, 0.0])

    def test_dimension_mismatch(self):
        model = SE3XYZ()
        observation = Observation(point_id=1, frame_id=0, measurement=np.array([1.0]))
        with pytest.raises(ValueError):
            model.evaluate(SE3.identity(), np.array([0.0, 0.0, 5.0]), observation)


class TestBuildObservationModel:
    """Test construction of the projective model from the configuration."""

    def test_default_is_xyz(self):
        model = build_observation_model(GeometryConfig())
        assert isinstance(model, SE3XYZ)
        assert model.diff_step is None
        assert model.camera.fx == 500.0

    def test_uvq_with_step_and_camera(self):
        config = GeometryConfig(
            camera=LinearCameraConfig(fx=400.0, fy=410.0, cx=1.0, cy=2.0),
            point_parameterization=PointParameterization.UVQ,
            numerics=NumericsConfig(diff_step=1e-7),
        )
        model = build_observation_model(config)
        assert isinstance(model, SE3UVQ)
        assert model.diff_step == 1e-7
        assert model.camera.fy == 410.0
