"""
Tests for the vehicle geometry model.
"""
import math

import numpy as np
import pytest

from thrust_commander.errors import ConfigurationError
from thrust_commander.geometry import VehicleGeometry
from thrust_commander.vehicle_config import Thruster

S45 = math.sin(math.radians(45.0))


class TestWrenchMatrix:
    """Test the derived wrench matrix."""

    def test_shape(self, reference_geometry):
        assert reference_geometry.num_thrusters == 8
        assert reference_geometry.wrench_matrix.shape == (8, 6)
        assert reference_geometry.rank == 6

    def test_rows_are_direction_and_torque(self, reference_geometry):
        W = reference_geometry.wrench_matrix
        assert np.allclose(W[:, :3], reference_geometry.directions)
        assert np.allclose(W[:, 3:], reference_geometry.torques)

    def test_torques_about_mass_center(self, reference_config, reference_geometry):
        mass_center = np.array(reference_config.mass_center)
        position = np.array(reference_config.thrusters[0].position)
        expected = np.cross(position - mass_center, [0.0, 0.0, 1.0])
        assert np.allclose(reference_geometry.torques[0], expected)
        assert np.allclose(reference_geometry.moment_arms[0], position - mass_center)

    def test_vertical_thrusters_produce_no_yaw(self, reference_geometry):
        assert np.allclose(reference_geometry.torques[:4, 2], 0.0)

    def test_directions_normalized(self, reference_config):
        thrusters = list(reference_config.thrusters)
        thrusters[0] = Thruster(0, thrusters[0].position, (0.0, 0.0, 3.0))
        thrusters[4] = Thruster(4, thrusters[4].position, (-1.0, -1.0, 0.0))
        geometry = VehicleGeometry(reference_config.with_changes(thrusters=tuple(thrusters)))

        assert np.allclose(geometry.directions[0], [0.0, 0.0, 1.0])
        assert np.allclose(geometry.directions[4], [-S45, -S45, 0.0])
        assert np.allclose(np.linalg.norm(geometry.directions, axis=1), 1.0)

    def test_arrays_are_read_only(self, reference_geometry):
        with pytest.raises(ValueError):
            reference_geometry.wrench_matrix[0, 0] = 2.0
        with pytest.raises(ValueError):
            reference_geometry.directions[0, 0] = 2.0


class TestDegenerateGeometry:
    """Test geometry validation."""

    def test_no_thrusters(self, reference_config):
        with pytest.raises(ConfigurationError, match="at least one thruster"):
            VehicleGeometry(reference_config.with_changes(thrusters=()))

    def test_zero_direction(self, reference_config):
        thrusters = list(reference_config.thrusters)
        thrusters[3] = Thruster(3, thrusters[3].position, (0.0, 0.0, 0.0))
        with pytest.raises(ConfigurationError, match=r"\[3\]"):
            VehicleGeometry(reference_config.with_changes(thrusters=tuple(thrusters)))

    def test_rank_deficient_geometry_builds(self, reference_config):
        """Fewer thrusters than wrench components is allowed; rank reports it."""
        geometry = VehicleGeometry(reference_config.with_changes(thrusters=reference_config.thrusters[:4]))
        assert geometry.wrench_matrix.shape == (4, 6)
        assert geometry.rank == 3


class TestDescribe:
    """Test the geometry summary."""

    def test_describe_keys(self, reference_geometry):
        info = reference_geometry.describe()
        for key in ('mass_center', 'volume_center', 'positions', 'directions',
                    'moment_arms', 'torques', 'wrench_matrix', 'rank'):
            assert key in info
        assert len(info['wrench_matrix']) == 8
        assert info['rank'] == 6
