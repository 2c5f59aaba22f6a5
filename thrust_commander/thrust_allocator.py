"""
Thrust allocator for a vehicle with N fixed-direction thrusters.
Maps a desired body-frame wrench to per-thruster forces and back.
"""
import logging
from typing import Iterable, Optional

import numpy as np

from thrust_commander.actuation_patterns import (
    SIMPLE_AXES,
    ActuationPattern,
    BoundPattern,
    PatternRegistry,
    patterns_for,
)
from thrust_commander.errors import ThrustCommanderError
from thrust_commander.geometry import VehicleGeometry
from thrust_commander.vehicle_config import AXES


class ThrustAllocator:
    """
    Allocates a 6-DOF wrench to N thrusters.

    The wrench produced by thruster forces f is
        tau = W^T @ f
    where W is the N x 6 wrench matrix. The general solution is the
    minimum-norm least-squares one:
        f = pinv(W^T) @ tau
    Reduced requests can instead go through a registered actuation pattern.

    Allocation never clips. Use is_feasible to check limits and saturate to
    clip explicitly.
    """

    def __init__(
        self,
        geometry: VehicleGeometry,
        min_force: Optional[float] = None,
        max_force: Optional[float] = None,
        patterns: Optional[Iterable[ActuationPattern]] = None,
        tolerance: float = 1e-4,
        logger: logging.Logger = None
    ):
        """
        Initialize thrust allocator.

        Args:
            geometry: Vehicle geometry providing the wrench matrix
            min_force: Reverse limit for every thruster [N]; defaults to the
                per-thruster limits of the geometry's config
            max_force: Forward limit for every thruster [N]; same default
            patterns: Actuation patterns to register; defaults to
                patterns_for(geometry)
            tolerance: Allowed mismatch between a pattern's output and the
                request [N, N·m]
            logger: Optional logger for debugging

        Raises:
            ValueError: If the limits or tolerance are invalid
            ConfigurationMismatchError: If a pattern does not match the geometry
        """
        if tolerance <= 0.0:
            raise ValueError("Tolerance must be positive")

        self.geometry = geometry
        self.logger = logger or logging.getLogger(__name__)
        self.tolerance = float(tolerance)

        limits = geometry.config.force_limits.copy()
        if min_force is not None:
            limits[:, 0] = float(min_force)
        if max_force is not None:
            limits[:, 1] = float(max_force)
        if np.any(limits[:, 0] >= limits[:, 1]):
            raise ValueError("Minimum thruster force must be below maximum thruster force")
        limits.setflags(write=False)
        self.force_limits = limits

        # Depends only on geometry, so computed once
        self._W_T = geometry.wrench_matrix.T
        self._W_T_pinv = np.linalg.pinv(self._W_T)
        self._W_T_pinv.setflags(write=False)

        if patterns is None:
            patterns = patterns_for(geometry, tolerance)
        self.patterns = PatternRegistry(geometry, patterns, tolerance)
        self.logger.debug(
            f"Thrust allocator ready: {self.num_thrusters} thrusters, rank {geometry.rank}, "
            f"patterns {list(self.patterns.names())}"
        )

    @property
    def num_thrusters(self) -> int:
        return self.geometry.num_thrusters

    @property
    def min_force(self) -> np.ndarray:
        return self.force_limits[:, 0]

    @property
    def max_force(self) -> np.ndarray:
        return self.force_limits[:, 1]

    @property
    def is_full_rank(self) -> bool:
        """True when all six wrench components can be controlled independently."""
        return self.geometry.rank == 6

    def _as_forces(self, forces) -> np.ndarray:
        f = np.asarray(forces, dtype=float).reshape(-1)
        if f.shape[0] != self.num_thrusters:
            raise ValueError(f"Expected {self.num_thrusters} thruster forces, got {f.shape[0]}")
        return f

    @staticmethod
    def _as_wrench(wrench) -> np.ndarray:
        w = np.asarray(wrench, dtype=float).reshape(-1)
        if w.shape[0] != 6:
            raise ValueError("wrench must be a length-6 vector (Fx, Fy, Fz, Mx, My, Mz)")
        return w

    def predict_wrench(self, forces) -> np.ndarray:
        """
        Net wrench produced by a set of thruster forces.

        Args:
            forces: N thruster forces [N]

        Returns:
            6-vector (Fx, Fy, Fz, Mx, My, Mz) [N, N·m]
        """
        return self._W_T @ self._as_forces(forces)

    def solve_general(self, wrench) -> np.ndarray:
        """
        Minimum-norm least-squares thruster forces for a 6-DOF wrench.

        When the wrench cannot be reached exactly the least-squares
        approximation is returned; limits are not applied.

        Args:
            wrench: Desired (Fx, Fy, Fz, Mx, My, Mz) [N, N·m]

        Returns:
            N thruster forces [N]
        """
        return self._W_T_pinv @ self._as_wrench(wrench)

    def residual(self, wrench) -> float:
        """Norm of the wrench error left by solve_general."""
        w = self._as_wrench(wrench)
        return float(np.linalg.norm(self.predict_wrench(self.solve_general(w)) - w))

    def solve_pattern(self, name: str, **components: float) -> np.ndarray:
        """
        Thruster forces from a registered actuation pattern.

        Args:
            name: Pattern name, e.g. 'heave' or 'surge_yaw'
            **components: Driven component values, e.g. fz=8.0

        Returns:
            N thruster forces [N]

        Raises:
            KeyError: If no pattern has that name
            ConfigurationMismatchError: If the result does not reproduce the request
        """
        return self.patterns.get(name).solve(components)

    def thrust_compute_fz(self, z_force: float) -> np.ndarray:
        """Pure heave: fx, fy and mz held at zero."""
        return self.solve_pattern('heave', fz=z_force)

    def thrust_compute_fx(self, x_force: float) -> np.ndarray:
        """Pure surge: fy, fz and mz held at zero."""
        return self.solve_pattern('surge', fx=x_force)

    def thrust_compute_fy(self, y_force: float) -> np.ndarray:
        """Pure sway: fx, fz and mz held at zero."""
        return self.solve_pattern('sway', fy=y_force)

    def _simple_pattern_for(self, w: np.ndarray) -> Optional[BoundPattern]:
        drives = [a for a in SIMPLE_AXES if w[AXES.index(a)] != 0.0]
        return self.patterns.match(drives)

    def allocate(self, wrench, simple: bool = True) -> np.ndarray:
        """
        Thruster forces for a wrench.

        With simple=True the roll and pitch moments are neglected and the
        actuation pattern driving exactly the non-zero components among
        (Fx, Fy, Fz, Mz) is used. Without a matching pattern, or with
        simple=False, the general pseudoinverse solution is returned.

        Args:
            wrench: Desired (Fx, Fy, Fz, Mx, My, Mz) [N, N·m]
            simple: Neglect Mx and My

        Returns:
            N thruster forces [N]
        """
        w = self._as_wrench(wrench)
        if not simple:
            return self.solve_general(w)

        w = w.copy()
        w[AXES.index('mx')] = 0.0
        w[AXES.index('my')] = 0.0
        if not np.any(w):
            return np.zeros(self.num_thrusters)

        pattern = self._simple_pattern_for(w)
        if pattern is None:
            self.logger.debug("No actuation pattern for request, using general solution")
            return self.solve_general(w)

        self.logger.debug(f"Allocating with pattern '{pattern.name}'")
        components = {a: float(w[AXES.index(a)]) for a in pattern.pattern.drives}
        return pattern.solve(components)

    def within_limits(self, forces) -> bool:
        """True when every force lies inside its thruster's limits."""
        f = self._as_forces(forces)
        eps = 1e-9
        return bool(np.all(f >= self.min_force - eps) and np.all(f <= self.max_force + eps))

    def is_feasible(self, wrench, simple: bool = False) -> bool:
        """
        Whether the allocation for a wrench respects every thruster's limits.

        Never raises: malformed requests and pattern mismatches count as
        infeasible.

        Args:
            wrench: Desired (Fx, Fy, Fz, Mx, My, Mz) [N, N·m]
            simple: Neglect Mx and My and use the matching actuation pattern

        Returns:
            True if all thruster forces are within limits
        """
        try:
            w = self._as_wrench(wrench)
            if not np.all(np.isfinite(w)):
                return False
            forces = self.allocate(w, simple=simple)
        except (ThrustCommanderError, ValueError, TypeError) as exc:
            self.logger.debug(f"Wrench {wrench!r} not feasible: {exc}")
            return False
        return self.within_limits(forces)

    def saturate(self, forces) -> np.ndarray:
        """Clip thruster forces to their limits."""
        return np.clip(self._as_forces(forces), self.min_force, self.max_force)
