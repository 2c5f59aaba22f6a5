"""
Single-axis kinematics under constant drive and quadratic drag.

Motion along one body axis obeys
    m * dv/dt = F - cd * v * |v|
with constant driving force F, combined drag coefficient cd and mass m.
The closed forms below follow from separating variables. With
a = sqrt(|F| / cd) the terminal speed and u = sign(F) * v the velocity
measured along the force:
    u < 0      (moving against F):  t = m / sqrt(|F| cd) * atan(u / a)
    0 <= u < a (speeding up):       t = m / sqrt(|F| cd) * atanh(u / a)
    u > a      (slowing down to a): t = m / sqrt(|F| cd) * acoth(u / a)
"""
import math
from typing import Optional, Sequence

import numpy as np
from scipy.integrate import solve_ivp

from thrust_commander.errors import PhysicallyInfeasibleError
from thrust_commander.thrust_allocator import ThrustAllocator
from thrust_commander.vehicle_config import AXES

LINEAR_AXES = ('fx', 'fy', 'fz')


def _check_model(cd: float, mass: float = None):
    if not (cd > 0.0):
        raise PhysicallyInfeasibleError(f"Drag coefficient must be positive, got {cd}")
    if mass is not None and not (mass > 0.0):
        raise PhysicallyInfeasibleError(f"Mass must be positive, got {mass}")


def top_speed(force: float, cd: float) -> float:
    """
    Terminal speed where drive balances drag: v = sqrt(F / cd), signed like F.

    Args:
        force: Driving force [N]
        cd: Combined drag coefficient [N·s²/m²]

    Returns:
        Terminal velocity [m/s]
    """
    _check_model(cd)
    return math.copysign(math.sqrt(abs(force) / cd), force)


def _phase(u: float, a: float) -> float:
    """Dimensionless time coordinate of velocity u (see module docstring)."""
    x = u / a
    if x < 0.0:
        return math.atan(x)
    if x < 1.0:
        return math.atanh(x)
    return math.atanh(1.0 / x)


def accel_time(v_start: float, v_end: float, cd: float, mass: float, force: float) -> float:
    """
    Time to change velocity from v_start to v_end under constant drive.

    Args:
        v_start: Initial velocity [m/s]
        v_end: Target velocity [m/s]
        cd: Combined drag coefficient [N·s²/m²]
        mass: Mass (or inertia) along the axis [kg]
        force: Constant driving force [N]

    Returns:
        Time [s]

    Raises:
        PhysicallyInfeasibleError: If the target cannot be reached, e.g. the
            force opposes the requested change or the target is at or beyond
            terminal speed
    """
    _check_model(cd, mass)
    if v_start == v_end:
        return 0.0

    if force == 0.0:
        # Coasting: drag alone slows the vehicle towards rest
        if v_start * v_end <= 0.0 or abs(v_end) >= abs(v_start):
            raise PhysicallyInfeasibleError(
                f"Without drive the vehicle only slows down; cannot go from {v_start} to {v_end} m/s"
            )
        return mass / cd * (1.0 / abs(v_end) - 1.0 / abs(v_start))

    sign = math.copysign(1.0, force)
    a = math.sqrt(abs(force) / cd)
    u0, u1 = sign * v_start, sign * v_end

    if u0 < a:
        if u1 < u0:
            raise PhysicallyInfeasibleError(
                f"Driving force {force} N opposes the change from {v_start} to {v_end} m/s"
            )
        if u1 >= a:
            raise PhysicallyInfeasibleError(
                f"Target {v_end} m/s is at or beyond terminal speed {sign * a:.4g} m/s for {force} N"
            )
        scale = mass / math.sqrt(abs(force) * cd)
        return scale * (_phase(u1, a) - _phase(u0, a))

    if u0 == a or not (a < u1 < u0):
        raise PhysicallyInfeasibleError(
            f"Starting at or above terminal speed {sign * a:.4g} m/s, "
            f"the vehicle cannot reach {v_end} m/s with {force} N"
        )
    scale = mass / math.sqrt(abs(force) * cd)
    return scale * (_phase(u1, a) - _phase(u0, a))


def _displacement_potential(u: float, a: float, cd: float, mass: float, force: float) -> float:
    # Antiderivative of u * m / (|F| - cd * u * |u|) with respect to u
    f = abs(force)
    if u < 0.0:
        return mass / (2.0 * cd) * math.log((f + cd * u * u) / f)
    if u < a:
        return mass / (2.0 * cd) * math.log(f / (f - cd * u * u))
    return -mass / (2.0 * cd) * math.log(cd * u * u - f)


def accel_distance(v_start: float, v_end: float, cd: float, mass: float, force: float) -> float:
    """
    Signed distance covered while changing velocity from v_start to v_end.

    Same arguments and failure cases as accel_time.

    Returns:
        Displacement along the axis [m]
    """
    accel_time(v_start, v_end, cd, mass, force)
    if v_start == v_end:
        return 0.0

    if force == 0.0:
        return math.copysign(mass / cd * math.log(abs(v_start) / abs(v_end)), v_start)

    sign = math.copysign(1.0, force)
    a = math.sqrt(abs(force) / cd)
    u0, u1 = sign * v_start, sign * v_end
    distance = (_displacement_potential(u1, a, cd, mass, force)
                - _displacement_potential(u0, a, cd, mass, force))
    return sign * distance


def velocity_at_time(v_start: float, duration: float, cd: float, mass: float, force: float) -> float:
    """
    Velocity after applying a constant drive for a given time.

    Args:
        v_start: Initial velocity [m/s]
        duration: Time the drive is applied [s]
        cd: Combined drag coefficient [N·s²/m²]
        mass: Mass along the axis [kg]
        force: Constant driving force [N]

    Returns:
        Velocity [m/s]
    """
    _check_model(cd, mass)
    if duration < 0.0:
        raise ValueError("duration must be non-negative")

    if force == 0.0:
        return v_start / (1.0 + cd * abs(v_start) * duration / mass)

    sign = math.copysign(1.0, force)
    a = math.sqrt(abs(force) / cd)
    k = math.sqrt(abs(force) * cd) / mass
    u0 = sign * v_start

    if u0 < 0.0:
        t_zero = -math.atan(u0 / a) / k
        if duration <= t_zero:
            return sign * a * math.tan(math.atan(u0 / a) + k * duration)
        return sign * a * math.tanh(k * (duration - t_zero))
    if u0 < a:
        return sign * a * math.tanh(math.atanh(u0 / a) + k * duration)
    if u0 == a:
        return sign * a
    return sign * a / math.tanh(math.atanh(a / u0) + k * duration)


def velocity_profile(
    v_start: float,
    times: Sequence[float],
    cd: float,
    mass: float,
    force: float
) -> np.ndarray:
    """
    Velocity samples obtained by numerically integrating the axis model.

    Used to check the closed forms and to plot speed-up curves.

    Args:
        v_start: Initial velocity [m/s]
        times: Non-decreasing sample times starting at or after 0 [s]
        cd: Combined drag coefficient, may be zero [N·s²/m²]
        mass: Mass along the axis [kg]
        force: Constant driving force [N]

    Returns:
        Velocity at each sample time [m/s]
    """
    if not (mass > 0.0):
        raise PhysicallyInfeasibleError(f"Mass must be positive, got {mass}")
    if cd < 0.0:
        raise PhysicallyInfeasibleError(f"Drag coefficient must be non-negative, got {cd}")

    times = np.asarray(times, dtype=float).reshape(-1)
    if times.size == 0:
        return np.zeros(0)
    if times[0] < 0.0 or np.any(np.diff(times) < 0.0):
        raise ValueError("times must be non-negative and non-decreasing")
    if times[-1] == 0.0:
        return np.full(times.shape, float(v_start))

    def dynamics(_t, v):
        return (force - cd * v * np.abs(v)) / mass

    sol = solve_ivp(dynamics, (0.0, times[-1]), [float(v_start)], t_eval=times, rtol=1e-9, atol=1e-12)
    if not sol.success:
        raise RuntimeError(f"Velocity integration failed: {sol.message}")
    return sol.y[0]


def axis_driving_force(
    allocator: ThrustAllocator,
    axis: str = 'fx',
    forward: bool = True,
    command_limit: Optional[float] = None
) -> float:
    """
    Largest force (or moment) the thrusters produce along one axis.

    The axis's single-component actuation pattern is scaled up until the
    first thruster reaches its limit, with limits scaled by command_limit.

    Args:
        allocator: Allocator with a pattern driving only `axis`
        axis: Wrench component, e.g. 'fx'
        forward: Positive (True) or negative (False) direction
        command_limit: Fraction of the thruster limits usable, in (0, 1];
            defaults to the vehicle's configured command_limit

    Returns:
        Signed axis force [N] or moment [N·m]
    """
    if command_limit is None:
        command_limit = allocator.geometry.config.command_limit
    if not (0.0 < command_limit <= 1.0):
        raise ValueError("command_limit must be in (0, 1]")
    pattern = allocator.patterns.match([axis])
    if pattern is None:
        raise ValueError(f"No single-axis actuation pattern drives {axis}")

    direction = pattern.unit[:, 0] * (1.0 if forward else -1.0)
    max_force = allocator.max_force * command_limit
    min_force = allocator.min_force * command_limit

    scales = []
    for d, lo, hi in zip(direction, min_force, max_force):
        if d > 0.0:
            scales.append(hi / d)
        elif d < 0.0:
            scales.append(lo / d)
    if not scales:
        return 0.0

    forces = min(scales) * direction
    return float(allocator.predict_wrench(forces)[AXES.index(axis)])


def axis_top_speed(
    allocator: ThrustAllocator,
    axis: str = 'fx',
    forward: bool = True,
    command_limit: Optional[float] = None
) -> float:
    """Terminal speed along a body axis at full usable thrust, see axis_driving_force."""
    force = axis_driving_force(allocator, axis, forward, command_limit)
    cd = allocator.geometry.config.combined_drag_coefficients[AXES.index(axis)]
    return top_speed(force, cd)


def axis_accel_time(
    allocator: ThrustAllocator,
    v_start: float,
    v_end: float,
    axis: str = 'fx',
    command_limit: Optional[float] = None
) -> float:
    """
    Time to go from v_start to v_end along a linear body axis, driving at
    full usable thrust towards v_end.
    """
    if axis not in LINEAR_AXES:
        raise ValueError(f"axis must be one of {LINEAR_AXES}")
    config = allocator.geometry.config
    force = axis_driving_force(allocator, axis, v_end > v_start, command_limit)
    cd = config.combined_drag_coefficients[AXES.index(axis)]
    return accel_time(v_start, v_end, cd, config.mass, force)
