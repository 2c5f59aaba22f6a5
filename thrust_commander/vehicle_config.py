"""
Vehicle configuration: thruster layout, mass properties and limits.

A VehicleConfig is an immutable snapshot. Changing a value means building a
new config (see VehicleConfig.with_changes) and swapping the reference held by
the caller, never mutating the one in use.
"""
import dataclasses
import math
from dataclasses import dataclass, field
from typing import Optional, Sequence, Tuple

import numpy as np
import yaml

from thrust_commander.errors import ConfigurationError

INCH = 0.0254
AXES = ('fx', 'fy', 'fz', 'mx', 'my', 'mz')

_LENGTH_UNITS = {'meters': 1.0, 'inches': INCH}
_VOLUME_UNITS = {'cubic_meters': 1.0, 'cubic_inches': INCH ** 3}


def _vector3(value, name: str) -> Tuple[float, float, float]:
    vec = tuple(float(v) for v in value)
    if len(vec) != 3:
        raise ConfigurationError(f"{name} must have 3 components, got {len(vec)}")
    if not all(math.isfinite(v) for v in vec):
        raise ConfigurationError(f"{name} must be finite")
    return vec


def _check_positive(value: float, name: str):
    if not (math.isfinite(value) and value > 0.0):
        raise ConfigurationError(f"{name} must be positive and finite, got {value}")


@dataclass(frozen=True)
class Thruster:
    """
    One fixed-direction thruster.

    Attributes:
        index: Position in the thruster ordering (0..N-1)
        position: Thruster location relative to the vehicle origin [m]
        direction: Force direction when commanded positive
        min_force: Optional override of the vehicle-wide reverse limit [N]
        max_force: Optional override of the vehicle-wide forward limit [N]
    """
    index: int
    position: Tuple[float, float, float]
    direction: Tuple[float, float, float]
    min_force: Optional[float] = None
    max_force: Optional[float] = None

    def __post_init__(self):
        object.__setattr__(self, 'position', _vector3(self.position, f"thruster {self.index} position"))
        object.__setattr__(self, 'direction', _vector3(self.direction, f"thruster {self.index} direction"))


@dataclass(frozen=True)
class VehicleConfig:
    """
    Static description of the vehicle.

    Sign convention: z axis up, so gravity is negative and the weight
    magnitude (mass * gravity) points down while the buoyant magnitude
    (-rho * gravity * volume) points up.
    """
    thrusters: Tuple[Thruster, ...]
    mass: float
    volume: float
    mass_center: Tuple[float, float, float]
    volume_center: Tuple[float, float, float]
    gravity: float = -9.81
    rho_water: float = 1025.0
    drag_coefficients: Tuple[float, ...] = field(default=(0.041, 0.05, 0.125, 0.005, 0.005, 0.005))
    min_thruster_force: float = -3.5
    max_thruster_force: float = 4.5
    command_limit: float = 0.9

    def __post_init__(self):
        object.__setattr__(self, 'thrusters', tuple(self.thrusters))
        object.__setattr__(self, 'mass_center', _vector3(self.mass_center, "mass_center"))
        object.__setattr__(self, 'volume_center', _vector3(self.volume_center, "volume_center"))
        object.__setattr__(self, 'drag_coefficients', tuple(float(c) for c in self.drag_coefficients))

        _check_positive(self.mass, "mass")
        _check_positive(self.volume, "volume")
        _check_positive(self.rho_water, "rho_water")
        if self.gravity == 0.0 or not math.isfinite(self.gravity):
            raise ConfigurationError("gravity must be finite and non-zero")
        if len(self.drag_coefficients) != 6:
            raise ConfigurationError("drag_coefficients must have 6 values (surge, sway, heave, roll, pitch, yaw)")
        if not all(math.isfinite(c) and c >= 0.0 for c in self.drag_coefficients):
            raise ConfigurationError("drag_coefficients must be finite and non-negative")
        if not (0.0 < self.command_limit <= 1.0):
            raise ConfigurationError("command_limit must be in (0, 1]")

        for i, thruster in enumerate(self.thrusters):
            if thruster.index != i:
                raise ConfigurationError(
                    f"thruster at position {i} has index {thruster.index}; indices must be 0..N-1 in order"
                )
        limits = self.force_limits
        if not np.all(np.isfinite(limits)):
            raise ConfigurationError("thruster force limits must be finite")
        if np.any(limits[:, 0] >= limits[:, 1]):
            raise ConfigurationError("minimum thruster force must be below maximum thruster force")

    @property
    def num_thrusters(self) -> int:
        return len(self.thrusters)

    @property
    def weight_magnitude(self) -> float:
        """Weight along the world z axis [N] (negative with z up)."""
        return self.mass * self.gravity

    @property
    def buoyant_magnitude(self) -> float:
        """Buoyant force along the world z axis [N] (positive with z up)."""
        return -self.rho_water * self.gravity * self.volume

    @property
    def combined_drag_coefficients(self) -> np.ndarray:
        """Per-axis quadratic drag multipliers rho * c_inf."""
        return self.rho_water * np.array(self.drag_coefficients, dtype=float)

    @property
    def force_limits(self) -> np.ndarray:
        """N x 2 array of [min_force, max_force] per thruster [N]."""
        limits = np.empty((self.num_thrusters, 2), dtype=float)
        for i, thruster in enumerate(self.thrusters):
            limits[i, 0] = self.min_thruster_force if thruster.min_force is None else thruster.min_force
            limits[i, 1] = self.max_thruster_force if thruster.max_force is None else thruster.max_force
        return limits

    def with_changes(self, **changes) -> 'VehicleConfig':
        """Return a new validated config with the given fields replaced."""
        return dataclasses.replace(self, **changes)


def reference_vehicle_config() -> VehicleConfig:
    """
    The 8-thruster reference vehicle.

    Thrusters 0-3 are vertical (front left top, front right top, rear left
    top, rear right top); thrusters 4-7 are horizontal and angled at 45
    degrees (front left, front right, rear left, rear right bottom).
    """
    s45 = math.sin(math.radians(45.0))

    positions = [
        (0.2535, -0.2035, 0.042),
        (0.2535, 0.2035, 0.042),
        (-0.2545, -0.2035, 0.042),
        (-0.2545, 0.2035, 0.042),
        (0.167, -0.1375, -0.049),
        (0.167, 0.1375, -0.049),
        (-0.1975, -0.1165, -0.049),
        (-0.1975, 0.1165, -0.049),
    ]
    directions = [
        (0.0, 0.0, 1.0),
        (0.0, 0.0, 1.0),
        (0.0, 0.0, 1.0),
        (0.0, 0.0, 1.0),
        (-s45, -s45, 0.0),
        (-s45, s45, 0.0),
        (-s45, s45, 0.0),
        (-s45, -s45, 0.0),
    ]
    thrusters = tuple(
        Thruster(index=i, position=p, direction=d)
        for i, (p, d) in enumerate(zip(positions, directions))
    )

    mass_center = (0.466 * INCH, 0.0, 1.561 * INCH)
    # Volume center is an estimate: 0.1 m above the mass center
    volume_center = (mass_center[0], mass_center[1], mass_center[2] + 0.1)

    return VehicleConfig(
        thrusters=thrusters,
        mass=5.51,
        volume=449.157 * INCH ** 3,
        mass_center=mass_center,
        volume_center=volume_center,
        gravity=-9.81,
        rho_water=1025.0,
        drag_coefficients=(0.041, 0.05, 0.125, 0.005, 0.005, 0.005),
        min_thruster_force=-3.5,
        max_thruster_force=4.5,
        command_limit=0.9,
    )


def _require(section: dict, key: str, where: str):
    if key not in section:
        raise ConfigurationError(f"Missing required key '{key}' in {where}")
    return section[key]


def _scaled(vec: Sequence[float], scale: float, name: str) -> Tuple[float, float, float]:
    return tuple(v * scale for v in _vector3(vec, name))


def vehicle_config_from_dict(data: dict) -> VehicleConfig:
    """
    Build a VehicleConfig from a parsed configuration mapping.

    Expected layout (see config/reference_vehicle.yaml):
        vehicle: mass, volume, mass_center, volume_center,
                 length_units (meters|inches), volume_units (cubic_meters|cubic_inches)
        environment: gravity, rho_water
        drag_coefficients: [surge, sway, heave, roll, pitch, yaw]
        thruster_limits: min_force, max_force, command_limit
        thrusters: list of {position, direction, [min_force], [max_force]}
    """
    if not isinstance(data, dict):
        raise ConfigurationError("Vehicle configuration must be a mapping")

    vehicle = _require(data, 'vehicle', 'configuration')
    length_units = vehicle.get('length_units', 'meters')
    volume_units = vehicle.get('volume_units', 'cubic_meters')
    if length_units not in _LENGTH_UNITS:
        raise ConfigurationError(f"Unknown length_units: {length_units}")
    if volume_units not in _VOLUME_UNITS:
        raise ConfigurationError(f"Unknown volume_units: {volume_units}")
    length_scale = _LENGTH_UNITS[length_units]

    environment = data.get('environment', {})
    limits = data.get('thruster_limits', {})

    thruster_entries = _require(data, 'thrusters', 'configuration') or []
    thrusters = []
    for i, entry in enumerate(thruster_entries):
        where = f"thruster {i}"
        thrusters.append(Thruster(
            index=i,
            position=_scaled(_require(entry, 'position', where), length_scale, f"{where} position"),
            direction=_require(entry, 'direction', where),
            min_force=entry.get('min_force'),
            max_force=entry.get('max_force'),
        ))

    kwargs = {}
    if 'gravity' in environment:
        kwargs['gravity'] = float(environment['gravity'])
    if 'rho_water' in environment:
        kwargs['rho_water'] = float(environment['rho_water'])
    if 'drag_coefficients' in data:
        kwargs['drag_coefficients'] = tuple(data['drag_coefficients'])
    if 'min_force' in limits:
        kwargs['min_thruster_force'] = float(limits['min_force'])
    if 'max_force' in limits:
        kwargs['max_thruster_force'] = float(limits['max_force'])
    if 'command_limit' in limits:
        kwargs['command_limit'] = float(limits['command_limit'])

    return VehicleConfig(
        thrusters=tuple(thrusters),
        mass=float(_require(vehicle, 'mass', 'vehicle')),
        volume=float(_require(vehicle, 'volume', 'vehicle')) * _VOLUME_UNITS[volume_units],
        mass_center=_scaled(_require(vehicle, 'mass_center', 'vehicle'), length_scale, "mass_center"),
        volume_center=_scaled(_require(vehicle, 'volume_center', 'vehicle'), length_scale, "volume_center"),
        **kwargs,
    )


def load_vehicle_config(yaml_path: str) -> VehicleConfig:
    """
    Load a vehicle configuration from a YAML file.

    Args:
        yaml_path: Path to YAML configuration file

    Returns:
        VehicleConfig snapshot
    """
    with open(yaml_path, 'r') as f:
        data = yaml.safe_load(f)

    if not data:
        raise ConfigurationError(f"No vehicle configuration found in {yaml_path}")

    return vehicle_config_from_dict(data)
