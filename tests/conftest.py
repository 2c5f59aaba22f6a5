"""
Shared fixtures: the reference vehicle, a fore/aft symmetric vehicle, a
six-thruster vehicle and a calibration table with a zero-force deadband.
"""
import math

import pytest

from thrust_commander.curve_mapper import CalibrationTable, ForceCommandMapper
from thrust_commander.geometry import VehicleGeometry
from thrust_commander.thrust_allocator import ThrustAllocator
from thrust_commander.vehicle_config import Thruster, VehicleConfig, reference_vehicle_config

S45 = math.sin(math.radians(45.0))

CALIBRATION_ROWS = [
    (-3.5, 1100.0),
    (-2.0, 1250.0),
    (-0.5, 1400.0),
    (0.0, 1460.0),
    (0.0, 1500.0),
    (0.0, 1540.0),
    (0.5, 1600.0),
    (2.0, 1750.0),
    (4.5, 1900.0),
]


def symmetric_vehicle_config() -> VehicleConfig:
    """Reference thruster layout mirrored fore/aft and port/starboard about the mass center."""
    positions = [
        (0.25, -0.2, 0.0), (0.25, 0.2, 0.0), (-0.25, -0.2, 0.0), (-0.25, 0.2, 0.0),
        (0.2, -0.15, 0.0), (0.2, 0.15, 0.0), (-0.2, -0.15, 0.0), (-0.2, 0.15, 0.0),
    ]
    directions = [
        (0.0, 0.0, 1.0), (0.0, 0.0, 1.0), (0.0, 0.0, 1.0), (0.0, 0.0, 1.0),
        (-S45, -S45, 0.0), (-S45, S45, 0.0), (-S45, S45, 0.0), (-S45, -S45, 0.0),
    ]
    return VehicleConfig(
        thrusters=tuple(Thruster(i, p, d) for i, (p, d) in enumerate(zip(positions, directions))),
        mass=5.0,
        volume=0.005,
        mass_center=(0.0, 0.0, 0.0),
        volume_center=(0.0, 0.0, 0.05),
    )


def six_thruster_config() -> VehicleConfig:
    """Minimal full-rank layout: two surge, one sway and three vertical thrusters."""
    layout = [
        ((0.0, -0.2, 0.0), (1.0, 0.0, 0.0)),
        ((0.0, 0.2, 0.0), (1.0, 0.0, 0.0)),
        ((0.2, 0.0, 0.0), (0.0, 1.0, 0.0)),
        ((0.2, 0.0, 0.0), (0.0, 0.0, 1.0)),
        ((-0.2, 0.2, 0.0), (0.0, 0.0, 1.0)),
        ((-0.2, -0.2, 0.0), (0.0, 0.0, 1.0)),
    ]
    return VehicleConfig(
        thrusters=tuple(Thruster(i, p, d) for i, (p, d) in enumerate(layout)),
        mass=4.0,
        volume=0.004,
        mass_center=(0.0, 0.0, 0.0),
        volume_center=(0.0, 0.0, 0.05),
    )


@pytest.fixture
def reference_config():
    return reference_vehicle_config()


@pytest.fixture
def reference_geometry(reference_config):
    return VehicleGeometry(reference_config)


@pytest.fixture
def reference_allocator(reference_geometry):
    return ThrustAllocator(reference_geometry)


@pytest.fixture
def symmetric_config():
    return symmetric_vehicle_config()


@pytest.fixture
def symmetric_allocator(symmetric_config):
    return ThrustAllocator(VehicleGeometry(symmetric_config))


@pytest.fixture
def six_config():
    return six_thruster_config()


@pytest.fixture
def six_thruster_geometry(six_config):
    return VehicleGeometry(six_config)


@pytest.fixture
def calibration_table():
    return CalibrationTable.from_rows(CALIBRATION_ROWS)


@pytest.fixture
def mapper(calibration_table):
    return ForceCommandMapper(calibration_table, num_thrusters=8)
