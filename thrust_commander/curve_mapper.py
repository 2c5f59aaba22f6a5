"""
Force-command curve mapping.

A calibration table pairs measured thrust with the hardware command (PWM
pulse width) that produced it. Forces are mapped to commands by piecewise
linear interpolation over the table, and commands back to forces by the same
algorithm with the columns swapped. Values outside the table are rejected,
never extrapolated.

Zero-force deadband: thrusters produce no thrust over a band of commands
around neutral, so a table usually holds a run of rows with the same (zero)
force. Only the two edges of such a run are kept. Interpolating from below
uses the lower edge, from above the upper edge, and a request exactly on the
repeated value returns the midpoint of the two edges (the neutral command).
"""
import math
from typing import Dict, Mapping, Sequence, Tuple, Union

import numpy as np
from scipy import interpolate

from thrust_commander.errors import ConfigurationError, OutOfRangeError


def _collapse_runs(x: np.ndarray, y: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Keep only the first and last row of every run of equal x values."""
    keep = np.ones(len(x), dtype=bool)
    same_as_prev = np.zeros(len(x), dtype=bool)
    same_as_prev[1:] = x[1:] == x[:-1]
    same_as_next = np.zeros(len(x), dtype=bool)
    same_as_next[:-1] = x[:-1] == x[1:]
    keep[same_as_prev & same_as_next] = False
    return x[keep], y[keep]


def _linear_curve(x: np.ndarray, y: np.ndarray) -> interpolate.interp1d:
    return interpolate.interp1d(x, y, kind='linear', assume_sorted=True, bounds_error=True)


def _interpolate(curve: interpolate.interp1d, x: np.ndarray, y: np.ndarray, value: float, what: str) -> float:
    """
    Piecewise linear y(value) over ascending x, which may repeat a value at
    most twice (the edges of a collapsed run).
    """
    value = float(value)
    if not math.isfinite(value) or value < x[0] or value > x[-1]:
        raise OutOfRangeError(
            f"{what} {value} outside calibration range [{x[0]}, {x[-1]}]; no extrapolation"
        )

    lo = int(np.searchsorted(x, value, side='left'))
    hi = int(np.searchsorted(x, value, side='right'))
    if lo < hi:
        # Exactly on a tabulated row (or a run of them)
        return float((y[lo] + y[hi - 1]) / 2.0)

    # Strictly between rows, so the bracket never spans a repeated value
    return float(curve(value))


class CalibrationTable:
    """
    Immutable force/command correlation for one thruster and supply voltage.

    Rows must arrive sorted by force (ascending); commands must be monotonic
    in force. Redundant interior rows of repeated forces or commands are
    dropped at construction.
    """

    def __init__(self, forces: Sequence[float], commands: Sequence[float]):
        """
        Args:
            forces: Thrust per row, ascending [N]
            commands: Hardware command per row

        Raises:
            ConfigurationError: If the table is too short, not finite, not
                sorted by force, or not monotonic in command
        """
        forces = np.asarray(forces, dtype=float).reshape(-1)
        commands = np.asarray(commands, dtype=float).reshape(-1)

        if forces.shape != commands.shape:
            raise ConfigurationError("Calibration forces and commands must have the same length")
        if forces.shape[0] < 2:
            raise ConfigurationError("Calibration table needs at least 2 rows")
        if not (np.all(np.isfinite(forces)) and np.all(np.isfinite(commands))):
            raise ConfigurationError("Calibration table contains non-finite values")
        if np.any(np.diff(forces) < 0):
            raise ConfigurationError("Calibration table must be sorted by ascending force")

        d_cmd = np.diff(commands)
        if not (np.all(d_cmd >= 0) or np.all(d_cmd <= 0)):
            raise ConfigurationError("Calibration commands must be monotonic in force")

        f_forces, f_commands = _collapse_runs(forces, commands)

        order = np.argsort(commands, kind='stable')
        c_commands, c_forces = _collapse_runs(commands[order], forces[order])

        if f_forces[0] == f_forces[-1] or c_commands[0] == c_commands[-1]:
            raise ConfigurationError("Calibration table spans a single force or command value")

        for arr in (f_forces, f_commands, c_commands, c_forces):
            arr.setflags(write=False)
        self._forces = f_forces
        self._commands = f_commands
        self._inv_commands = c_commands
        self._inv_forces = c_forces
        self._force_curve = _linear_curve(f_forces, f_commands)
        self._command_curve = _linear_curve(c_commands, c_forces)

    @classmethod
    def from_rows(cls, rows: Sequence[Sequence[float]]) -> 'CalibrationTable':
        """Build from (force, command) pairs."""
        rows = np.asarray(rows, dtype=float)
        if rows.ndim != 2 or rows.shape[1] != 2:
            raise ConfigurationError("Calibration rows must be (force, command) pairs")
        return cls(rows[:, 0], rows[:, 1])

    def __len__(self) -> int:
        return len(self._forces)

    @property
    def forces(self) -> np.ndarray:
        return self._forces

    @property
    def commands(self) -> np.ndarray:
        return self._commands

    @property
    def force_range(self) -> Tuple[float, float]:
        return float(self._forces[0]), float(self._forces[-1])

    @property
    def command_range(self) -> Tuple[float, float]:
        return float(self._inv_commands[0]), float(self._inv_commands[-1])

    def force_to_command(self, force: float) -> float:
        """
        Hardware command producing a thrust.

        Raises:
            OutOfRangeError: If force is outside the table
        """
        return _interpolate(self._force_curve, self._forces, self._commands, force, "Force")

    def command_to_force(self, command: float) -> float:
        """
        Thrust produced by a hardware command.

        Raises:
            OutOfRangeError: If command is outside the table
        """
        return _interpolate(self._command_curve, self._inv_commands, self._inv_forces, command, "Command")


def load_calibration_csv(
    csv_path: str,
    force_column: int = 0,
    command_column: int = 5
) -> CalibrationTable:
    """
    Load a calibration table from a thrust-stand CSV file.

    The file has one header row followed by comma-separated numeric rows.
    Rows are sorted by force before building the table.

    Args:
        csv_path: Path to the CSV file
        force_column: Column holding thrust [N]
        command_column: Column holding the PWM command

    Returns:
        CalibrationTable
    """
    data = np.genfromtxt(
        csv_path, delimiter=',', skip_header=1,
        usecols=(force_column, command_column), ndmin=2
    )
    if data.size == 0:
        raise ConfigurationError(f"No calibration rows found in {csv_path}")

    order = np.argsort(data[:, 0], kind='stable')
    return CalibrationTable(data[order, 0], data[order, 1])


class ForceCommandMapper:
    """
    Maps thruster force sets to command sets using one table per thruster.
    """

    def __init__(
        self,
        tables: Union[CalibrationTable, Mapping[int, CalibrationTable]],
        num_thrusters: int = None
    ):
        """
        Args:
            tables: Table per thruster index, or a single table shared by all
            num_thrusters: Required when a single shared table is given
        """
        if isinstance(tables, CalibrationTable):
            if num_thrusters is None or num_thrusters <= 0:
                raise ValueError("num_thrusters must be positive when sharing one table")
            tables = {i: tables for i in range(num_thrusters)}

        self.tables: Dict[int, CalibrationTable] = dict(tables)
        if not self.tables:
            raise ValueError("At least one calibration table is required")

        expected = set(range(len(self.tables)))
        if set(self.tables) != expected:
            raise ValueError(f"Calibration tables must cover thrusters 0..{len(self.tables) - 1}")

    @property
    def num_thrusters(self) -> int:
        return len(self.tables)

    def table(self, thruster_id: int) -> CalibrationTable:
        try:
            return self.tables[thruster_id]
        except KeyError:
            raise KeyError(f"No calibration table for thruster {thruster_id}") from None

    def force_to_command(self, thruster_id: int, force: float) -> float:
        return self.table(thruster_id).force_to_command(force)

    def command_to_force(self, thruster_id: int, command: float) -> float:
        return self.table(thruster_id).command_to_force(command)

    def forces_to_commands(self, forces: Sequence[float]) -> np.ndarray:
        """
        Commands for a full thruster force set, in thruster order.

        Raises:
            ValueError: If the number of forces does not match the thrusters
            OutOfRangeError: If any force is outside its table
        """
        forces = np.asarray(forces, dtype=float).reshape(-1)
        if forces.shape[0] != self.num_thrusters:
            raise ValueError(f"Expected {self.num_thrusters} thruster forces, got {forces.shape[0]}")
        return np.array([self.force_to_command(i, f) for i, f in enumerate(forces)])

    def commands_to_forces(self, commands: Sequence[float]) -> np.ndarray:
        """Thrust estimate for a full command set, in thruster order."""
        commands = np.asarray(commands, dtype=float).reshape(-1)
        if commands.shape[0] != self.num_thrusters:
            raise ValueError(f"Expected {self.num_thrusters} thruster commands, got {commands.shape[0]}")
        return np.array([self.command_to_force(i, c) for i, c in enumerate(commands)])
