"""
Actuation patterns: closed-form force distributions for reduced wrench requests.

A pattern drives some wrench components, holds others at exactly zero and
leaves the rest (typically roll and pitch moments) unconstrained. Each
pattern reduces to a fixed N x k matrix of "forces per unit request", either
written by hand for a known geometry or derived from the pseudoinverse of the
constrained rows of the wrench matrix. Every pattern is checked against the
wrench matrix when it is bound to a geometry, so a hand-written distribution
that no longer matches the installed thrusters is rejected up front.
"""
import itertools
import math
from dataclasses import dataclass
from typing import Dict, Iterable, Mapping, Optional, Sequence, Tuple

import numpy as np

from thrust_commander.errors import ConfigurationMismatchError
from thrust_commander.geometry import VehicleGeometry
from thrust_commander.vehicle_config import AXES

# Components considered by "simple" requests; roll and pitch are assumed
# small enough for the vehicle to stay stable.
SIMPLE_AXES = ('fx', 'fy', 'fz', 'mz')
AXIS_NAMES = {'fx': 'surge', 'fy': 'sway', 'fz': 'heave', 'mz': 'yaw'}


@dataclass(frozen=True)
class ActuationPattern:
    """
    Declarative description of a reduced allocation.

    Attributes:
        name: Registry key, e.g. 'heave' or 'surge_yaw'
        drives: Wrench components set by the request
        holds_zero: Wrench components that must come out exactly zero
        distribution: Optional closed form, mapping each driven component to
            the N thruster forces produced per unit request. Derived from the
            wrench matrix when omitted.
    """
    name: str
    drives: Tuple[str, ...]
    holds_zero: Tuple[str, ...] = ()
    distribution: Optional[Mapping[str, Sequence[float]]] = None

    def __post_init__(self):
        object.__setattr__(self, 'drives', tuple(self.drives))
        object.__setattr__(self, 'holds_zero', tuple(self.holds_zero))

        if not self.drives:
            raise ValueError(f"Pattern '{self.name}' must drive at least one component")
        unknown = [a for a in self.drives + self.holds_zero if a not in AXES]
        if unknown:
            raise ValueError(f"Pattern '{self.name}' has unknown components {unknown}")
        if set(self.drives) & set(self.holds_zero):
            raise ValueError(f"Pattern '{self.name}' both drives and zeroes the same component")
        if self.distribution is not None and set(self.distribution) != set(self.drives):
            raise ValueError(f"Pattern '{self.name}' distribution must cover exactly {self.drives}")

    @property
    def constrained(self) -> Tuple[str, ...]:
        return self.drives + self.holds_zero


class BoundPattern:
    """An ActuationPattern validated against a specific geometry."""

    def __init__(self, pattern: ActuationPattern, geometry: VehicleGeometry, tolerance: float = 1e-4):
        self.pattern = pattern
        self.tolerance = tolerance
        self._W_T = geometry.wrench_matrix.T
        self._rows = [AXES.index(a) for a in pattern.constrained]

        n = geometry.num_thrusters
        if pattern.distribution is None:
            A = self._W_T[self._rows, :]
            unit = np.linalg.pinv(A)[:, :len(pattern.drives)]
        else:
            unit = np.column_stack([
                np.asarray(pattern.distribution[a], dtype=float) for a in pattern.drives
            ])
            if unit.shape[0] != n:
                raise ConfigurationMismatchError(
                    f"Pattern '{pattern.name}' distributes over {unit.shape[0]} thrusters, "
                    f"geometry has {n}"
                )
        unit.setflags(write=False)
        self.unit = unit

        # Each unit column must produce exactly its own component and nothing
        # else among the constrained ones.
        produced = self._W_T[self._rows, :] @ unit
        expected = np.eye(len(self._rows), len(pattern.drives))
        error = np.abs(produced - expected)
        if np.max(error) > tolerance:
            row, col = np.unravel_index(np.argmax(error), error.shape)
            raise ConfigurationMismatchError(
                f"Pattern '{pattern.name}' does not match the geometry: a unit "
                f"{pattern.drives[col]} request yields {produced[row, col]:.6g} "
                f"on {pattern.constrained[row]} (expected {expected[row, col]:.6g})"
            )

    @property
    def name(self) -> str:
        return self.pattern.name

    def solve(self, components: Mapping[str, float]) -> np.ndarray:
        """
        Thruster forces for the driven components.

        Args:
            components: Value per driven component; missing components are zero

        Returns:
            N thruster forces [N]

        Raises:
            ConfigurationMismatchError: If the produced wrench differs from
                the request on any constrained component
        """
        extra = set(components) - set(self.pattern.drives)
        if extra:
            raise ValueError(f"Pattern '{self.name}' does not drive {sorted(extra)}")

        values = np.array([float(components.get(a, 0.0)) for a in self.pattern.drives])
        forces = self.unit @ values

        produced = self._W_T[self._rows, :] @ forces
        requested = np.concatenate([values, np.zeros(len(self.pattern.holds_zero))])
        if not np.allclose(produced, requested, rtol=1e-9, atol=self.tolerance):
            raise ConfigurationMismatchError(
                f"Pattern '{self.name}' produced {produced.tolist()} on "
                f"{list(self.pattern.constrained)}, requested {requested.tolist()}"
            )
        return forces


class PatternRegistry:
    """Actuation patterns bound to one geometry, looked up by name or by driven set."""

    def __init__(self, geometry: VehicleGeometry, patterns: Iterable[ActuationPattern], tolerance: float = 1e-4):
        self._patterns: Dict[str, BoundPattern] = {}
        for pattern in patterns:
            if pattern.name in self._patterns:
                raise ValueError(f"Duplicate actuation pattern '{pattern.name}'")
            self._patterns[pattern.name] = BoundPattern(pattern, geometry, tolerance)

    def __contains__(self, name: str) -> bool:
        return name in self._patterns

    def __len__(self) -> int:
        return len(self._patterns)

    def names(self) -> Tuple[str, ...]:
        return tuple(self._patterns)

    def get(self, name: str) -> BoundPattern:
        try:
            return self._patterns[name]
        except KeyError:
            raise KeyError(f"No actuation pattern named '{name}'") from None

    def match(self, drives: Iterable[str]) -> Optional[BoundPattern]:
        """First pattern whose driven components are exactly `drives`."""
        wanted = set(drives)
        for bound in self._patterns.values():
            if set(bound.pattern.drives) == wanted:
                return bound
        return None


def simple_pattern(drives: Sequence[str], distribution=None) -> ActuationPattern:
    """Pattern over the simple components: every undriven one is held at zero."""
    name = '_'.join(AXIS_NAMES[a] for a in SIMPLE_AXES if a in drives)
    holds_zero = tuple(a for a in SIMPLE_AXES if a not in drives)
    ordered = tuple(a for a in SIMPLE_AXES if a in drives)
    return ActuationPattern(name, ordered, holds_zero, distribution)


def reference_patterns() -> Tuple[ActuationPattern, ...]:
    """
    Patterns for the reference 8-thruster vehicle.

    Heave and surge use hand-derived closed forms: heave splits equally over
    the four vertical thrusters (0-3), surge splits equally over the four
    angled thrusters (4-7, installed facing aft at 45 degrees, so a forward
    request commands them negative). Every other combination of surge, sway,
    heave and yaw is derived. Sway in particular is derived because the
    angled thrusters sit at different distances fore and aft of the mass
    center, so an equal split leaves a yaw moment.
    """
    per_angled = 1.0 / (4.0 * math.sin(math.radians(45.0)))
    closed_forms = {
        ('fz',): {'fz': [0.25, 0.25, 0.25, 0.25, 0.0, 0.0, 0.0, 0.0]},
        ('fx',): {'fx': [0.0, 0.0, 0.0, 0.0, -per_angled, -per_angled, -per_angled, -per_angled]},
    }

    patterns = []
    for k in range(1, len(SIMPLE_AXES) + 1):
        for drives in itertools.combinations(SIMPLE_AXES, k):
            patterns.append(simple_pattern(drives, closed_forms.get(drives)))
    return tuple(patterns)


def derived_patterns() -> Tuple[ActuationPattern, ...]:
    """Every combination of surge, sway, heave and yaw, all derived from the geometry."""
    return tuple(
        simple_pattern(drives)
        for k in range(1, len(SIMPLE_AXES) + 1)
        for drives in itertools.combinations(SIMPLE_AXES, k)
    )


def patterns_for(geometry: VehicleGeometry, tolerance: float = 1e-4) -> Tuple[ActuationPattern, ...]:
    """
    Default patterns for a geometry.

    The reference closed forms are used where they match the geometry;
    otherwise the pattern is derived. Combinations whose constrained rows of
    the wrench matrix are rank deficient cannot be produced and are left out,
    so such requests fall back to the general solution.

    Args:
        geometry: Vehicle geometry to allocate for
        tolerance: Allowed mismatch when checking closed forms [N, N·m]

    Returns:
        Patterns that all bind to `geometry`
    """
    W_T = geometry.wrench_matrix.T
    chosen = []
    for pattern in reference_patterns():
        if pattern.distribution is not None:
            try:
                BoundPattern(pattern, geometry, tolerance)
            except ConfigurationMismatchError:
                pattern = simple_pattern(pattern.drives)
            else:
                chosen.append(pattern)
                continue

        rows = [AXES.index(a) for a in pattern.constrained]
        if np.linalg.matrix_rank(W_T[rows, :]) == len(rows):
            chosen.append(pattern)
    return tuple(chosen)
