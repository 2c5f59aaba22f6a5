"""
Vehicle geometry model.
Derives per-thruster moment arms, torques and the wrench matrix from a
VehicleConfig.
"""
import numpy as np

from thrust_commander.errors import ConfigurationError
from thrust_commander.vehicle_config import VehicleConfig

_MIN_DIRECTION_NORM = 1e-9


def _read_only(array: np.ndarray) -> np.ndarray:
    array.setflags(write=False)
    return array


class VehicleGeometry:
    """
    Static thruster geometry and the derived wrench matrix.

    Row i of the N x 6 wrench matrix is [direction_i, torque_i], with
    torque_i = (position_i - mass_center) x direction_i. Its transpose maps
    N thruster forces to the net body-frame wrench (Fx, Fy, Fz, Mx, My, Mz).
    """

    def __init__(self, config: VehicleConfig):
        """
        Args:
            config: Vehicle configuration snapshot

        Raises:
            ConfigurationError: If there are no thrusters or a direction
                vector has near-zero magnitude
        """
        if config.num_thrusters == 0:
            raise ConfigurationError("Vehicle must have at least one thruster")

        self.config = config

        positions = np.array([t.position for t in config.thrusters], dtype=float)
        directions = np.array([t.direction for t in config.thrusters], dtype=float)

        norms = np.linalg.norm(directions, axis=1)
        degenerate = np.flatnonzero(norms < _MIN_DIRECTION_NORM)
        if degenerate.size > 0:
            raise ConfigurationError(
                f"Thruster direction has near-zero magnitude for thrusters {degenerate.tolist()}"
            )
        directions = directions / norms[:, None]

        mass_center = np.array(config.mass_center, dtype=float)
        moment_arms = positions - mass_center
        torques = np.cross(moment_arms, directions)

        self.positions = _read_only(positions)
        self.directions = _read_only(directions)
        self.moment_arms = _read_only(moment_arms)
        self.torques = _read_only(torques)
        self.wrench_matrix = _read_only(np.hstack([directions, torques]))

    @property
    def num_thrusters(self) -> int:
        return self.wrench_matrix.shape[0]

    @property
    def rank(self) -> int:
        """Number of independently controllable wrench components."""
        return int(np.linalg.matrix_rank(self.wrench_matrix))

    def describe(self) -> dict:
        """Derived geometry as plain lists, for logging and debugging."""
        return {
            'mass_center': list(self.config.mass_center),
            'volume_center': list(self.config.volume_center),
            'positions': self.positions.tolist(),
            'directions': self.directions.tolist(),
            'moment_arms': self.moment_arms.tolist(),
            'torques': self.torques.tolist(),
            'wrench_matrix': self.wrench_matrix.tolist(),
            'rank': self.rank,
        }
