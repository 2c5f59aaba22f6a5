"""
Environmental force model: weight, buoyancy and drag acting on the vehicle.

All wrenches are 6-vectors (Fx, Fy, Fz, Mx, My, Mz) in the body frame.
Orientation is (roll, pitch, yaw) in radians, applied as extrinsic
rotations about X, then Y, then Z.

The model computes in float64, so importing it enables 64-bit mode in jax.
"""
import jax
import jax.numpy as jnp
import numpy as np

from thrust_commander.vehicle_config import VehicleConfig

jax.config.update("jax_enable_x64", True)


def rotation_matrix(orientation) -> jnp.ndarray:
    """
    Body-to-world rotation R = Rz(yaw) @ Ry(pitch) @ Rx(roll).

    Args:
        orientation: (roll, pitch, yaw) in radians

    Returns:
        3x3 rotation matrix
    """
    att = jnp.asarray(orientation, dtype=jnp.float64).reshape(-1)
    if att.shape[0] != 3:
        raise ValueError("orientation must be a length-3 vector (roll, pitch, yaw)")

    cr, sr = jnp.cos(att[0]), jnp.sin(att[0])
    cp, sp = jnp.cos(att[1]), jnp.sin(att[1])
    cy, sy = jnp.cos(att[2]), jnp.sin(att[2])

    R_x = jnp.array([[1.0, 0.0, 0.0],
                     [0.0, cr, -sr],
                     [0.0, sr, cr]], dtype=jnp.float64)
    R_y = jnp.array([[cp, 0.0, sp],
                     [0.0, 1.0, 0.0],
                     [-sp, 0.0, cp]], dtype=jnp.float64)
    R_z = jnp.array([[cy, -sy, 0.0],
                     [sy, cy, 0.0],
                     [0.0, 0.0, 1.0]], dtype=jnp.float64)

    return R_z @ R_y @ R_x


class EnvironmentModel:
    """
    Weight, buoyancy and quadratic drag for a VehicleConfig.

    The model holds only the (immutable) configuration; every method is a
    pure function of its arguments.
    """

    def __init__(self, config: VehicleConfig):
        self.config = config
        self._lever = jnp.asarray(
            np.subtract(config.volume_center, config.mass_center), dtype=jnp.float64
        )
        self._drag = jnp.asarray(config.combined_drag_coefficients, dtype=jnp.float64)

    def _world_vertical_in_body(self, magnitude: float, orientation) -> jnp.ndarray:
        # World-frame vertical vector expressed in body axes: R^T @ v
        R = rotation_matrix(orientation)
        return R.T @ jnp.array([0.0, 0.0, magnitude], dtype=jnp.float64)

    def weight_wrench(self, orientation) -> np.ndarray:
        """
        Weight in the body frame. Acts through the mass center, so no torque.

        Args:
            orientation: (roll, pitch, yaw) in radians

        Returns:
            6-vector wrench [N, N·m]
        """
        force = self._world_vertical_in_body(self.config.weight_magnitude, orientation)
        wrench = jnp.concatenate([force, jnp.zeros(3, dtype=jnp.float64)])
        return np.asarray(wrench, dtype=float)

    def buoyant_wrench(self, orientation) -> np.ndarray:
        """
        Buoyancy in the body frame, with the moment it produces about the
        mass center: (volume_center - mass_center) x F_buoyant.

        Args:
            orientation: (roll, pitch, yaw) in radians

        Returns:
            6-vector wrench [N, N·m]
        """
        force = self._world_vertical_in_body(self.config.buoyant_magnitude, orientation)
        torque = jnp.cross(self._lever, force)
        return np.asarray(jnp.concatenate([force, torque]), dtype=float)

    def gravitational_wrench(self, orientation) -> np.ndarray:
        """Weight plus buoyancy."""
        return self.weight_wrench(orientation) + self.buoyant_wrench(orientation)

    def drag_wrench(self, velocity) -> np.ndarray:
        """
        Quadratic drag opposing the body-frame velocity, per axis:
        -sign(v) * rho * c_inf * v^2

        Args:
            velocity: (surge, sway, heave, roll, pitch, yaw) rates [m/s, rad/s]

        Returns:
            6-vector wrench [N, N·m]
        """
        vel = jnp.asarray(velocity, dtype=jnp.float64).reshape(-1)
        if vel.shape[0] != 6:
            raise ValueError("velocity must be a length-6 vector")

        drag = -self._drag * vel * jnp.abs(vel)
        return np.asarray(drag, dtype=float)

    def net_environmental_wrench(self, velocity, orientation) -> np.ndarray:
        """Drag plus weight plus buoyancy."""
        return self.drag_wrench(velocity) + self.gravitational_wrench(orientation)
