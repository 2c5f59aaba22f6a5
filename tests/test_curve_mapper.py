"""
Tests for calibration tables and the force/command mapper.
"""
import os
import tempfile

import numpy as np
import pytest

from thrust_commander.curve_mapper import CalibrationTable, ForceCommandMapper, load_calibration_csv
from thrust_commander.errors import ConfigurationError, OutOfRangeError


class TestCalibrationTable:
    """Test table construction."""

    def test_deadband_collapsed_to_edges(self, calibration_table):
        assert len(calibration_table) == 8
        assert list(calibration_table.forces) == [-3.5, -2.0, -0.5, 0.0, 0.0, 0.5, 2.0, 4.5]
        assert list(calibration_table.commands) == [1100, 1250, 1400, 1460, 1540, 1600, 1750, 1900]

    def test_ranges(self, calibration_table):
        assert calibration_table.force_range == (-3.5, 4.5)
        assert calibration_table.command_range == (1100.0, 1900.0)

    def test_arrays_are_read_only(self, calibration_table):
        with pytest.raises(ValueError):
            calibration_table.forces[0] = 0.0

    @pytest.mark.parametrize("rows, message", [
        ([(0.0, 1500.0)], "at least 2 rows"),
        ([(1.0, 1600.0), (0.0, 1500.0)], "sorted"),
        ([(-1.0, 1400.0), (0.0, 1600.0), (1.0, 1500.0)], "monotonic"),
        ([(0.0, 1400.0), (0.0, 1600.0)], "single"),
        ([(0.0, 1400.0), (float('nan'), 1600.0)], "non-finite"),
    ])
    def test_invalid_tables(self, rows, message):
        with pytest.raises(ConfigurationError, match=message):
            CalibrationTable.from_rows(rows)

    def test_mismatched_lengths(self):
        with pytest.raises(ConfigurationError, match="same length"):
            CalibrationTable([0.0, 1.0], [1500.0])

    def test_rows_must_be_pairs(self):
        with pytest.raises(ConfigurationError, match="pairs"):
            CalibrationTable.from_rows([(0.0, 1.0, 2.0), (1.0, 2.0, 3.0)])


class TestForceToCommand:
    """Test forward interpolation."""

    def test_zero_force_is_neutral(self, calibration_table):
        assert calibration_table.force_to_command(0.0) == 1500.0

    @pytest.mark.parametrize("force, command", [
        (-3.5, 1100.0),
        (-0.25, 1430.0),
        (0.25, 1570.0),
        (1.0, 1650.0),
        (2.0, 1750.0),
        (4.5, 1900.0),
    ])
    def test_interpolation(self, calibration_table, force, command):
        assert np.isclose(calibration_table.force_to_command(force), command)

    def test_deadband_edges_bracket_zero(self, calibration_table):
        """Just below zero uses the lower edge, just above the upper edge."""
        assert calibration_table.force_to_command(-1e-6) < 1460.0 + 1e-3
        assert calibration_table.force_to_command(1e-6) > 1540.0 - 1e-3

    @pytest.mark.parametrize("force", [-3.6, 4.6, float('nan'), float('inf')])
    def test_out_of_range(self, calibration_table, force):
        with pytest.raises(OutOfRangeError):
            calibration_table.force_to_command(force)

    def test_out_of_range_is_value_error(self, calibration_table):
        with pytest.raises(ValueError, match="no extrapolation"):
            calibration_table.force_to_command(10.0)


class TestCommandToForce:
    """Test inverse interpolation."""

    @pytest.mark.parametrize("command, force", [
        (1100.0, -3.5),
        (1430.0, -0.25),
        (1480.0, 0.0),
        (1500.0, 0.0),
        (1520.0, 0.0),
        (1650.0, 1.0),
        (1900.0, 4.5),
    ])
    def test_interpolation(self, calibration_table, command, force):
        assert np.isclose(calibration_table.command_to_force(command), force)

    @pytest.mark.parametrize("command", [1099.0, 1901.0])
    def test_out_of_range(self, calibration_table, command):
        with pytest.raises(OutOfRangeError):
            calibration_table.command_to_force(command)

    def test_force_round_trip(self, calibration_table):
        for force in np.linspace(-3.5, 4.5, 41):
            command = calibration_table.force_to_command(force)
            assert np.isclose(calibration_table.command_to_force(command), force)

    def test_command_round_trip_outside_deadband(self, calibration_table):
        for command in (1100.0, 1300.0, 1455.0, 1545.0, 1700.0, 1900.0):
            force = calibration_table.command_to_force(command)
            assert np.isclose(calibration_table.force_to_command(force), command)

    def test_command_in_deadband_maps_to_neutral(self, calibration_table):
        force = calibration_table.command_to_force(1470.0)
        assert calibration_table.force_to_command(force) == 1500.0

    def test_decreasing_commands(self):
        """A reversed thruster: commands fall as force rises."""
        table = CalibrationTable.from_rows([(-1.0, 1900.0), (0.0, 1500.0), (1.0, 1100.0)])
        assert table.command_range == (1100.0, 1900.0)
        assert np.isclose(table.force_to_command(0.5), 1300.0)
        assert np.isclose(table.command_to_force(1300.0), 0.5)


class TestCalibrationCsv:
    """Test loading thrust-stand CSV files."""

    def write_csv(self, rows) -> str:
        with tempfile.NamedTemporaryFile(mode='w', suffix='.csv', delete=False) as f:
            f.write("force,current,voltage,power,efficiency,pwm\n")
            for force, pwm in rows:
                f.write(f"{force},0.1,16.0,1.6,1.0,{pwm}\n")
            return f.name

    def test_load_sorts_by_force(self):
        path = self.write_csv([(2.0, 1750), (-2.0, 1250), (0.0, 1500), (4.5, 1900), (-3.5, 1100)])
        try:
            table = load_calibration_csv(path)
        finally:
            os.unlink(path)

        assert list(table.forces) == [-3.5, -2.0, 0.0, 2.0, 4.5]
        assert np.isclose(table.force_to_command(1.0), 1625.0)

    def test_custom_columns(self):
        with tempfile.NamedTemporaryFile(mode='w', suffix='.csv', delete=False) as f:
            f.write("pwm,force\n1400,-1.0\n1600,1.0\n")
            path = f.name
        try:
            table = load_calibration_csv(path, force_column=1, command_column=0)
        finally:
            os.unlink(path)

        assert table.force_range == (-1.0, 1.0)
        assert table.force_to_command(0.0) == 1500.0


class TestForceCommandMapper:
    """Test the per-thruster mapper."""

    def test_shared_table(self, mapper):
        assert mapper.num_thrusters == 8
        commands = mapper.forces_to_commands([0.0, 1.0, -0.25, 0.25, 0.0, 0.0, 4.5, -3.5])
        assert np.allclose(commands, [1500, 1650, 1430, 1570, 1500, 1500, 1900, 1100])

    def test_commands_to_forces(self, mapper):
        forces = mapper.commands_to_forces([1500, 1650, 1430, 1570, 1500, 1500, 1900, 1100])
        assert np.allclose(forces, [0.0, 1.0, -0.25, 0.25, 0.0, 0.0, 4.5, -3.5])

    def test_per_thruster_tables(self, calibration_table):
        reversed_table = CalibrationTable.from_rows([(-1.0, 1900.0), (0.0, 1500.0), (1.0, 1100.0)])
        mapper = ForceCommandMapper({0: calibration_table, 1: reversed_table})
        assert mapper.num_thrusters == 2
        assert np.allclose(mapper.forces_to_commands([1.0, 1.0]), [1650.0, 1100.0])
        assert mapper.table(1) is reversed_table

    def test_wrong_force_count(self, mapper):
        with pytest.raises(ValueError, match="Expected 8"):
            mapper.forces_to_commands([0.0] * 7)
        with pytest.raises(ValueError, match="Expected 8"):
            mapper.commands_to_forces([1500.0] * 9)

    def test_out_of_range_force(self, mapper):
        with pytest.raises(OutOfRangeError):
            mapper.forces_to_commands([0.0] * 7 + [5.0])

    def test_missing_table(self, mapper):
        with pytest.raises(KeyError, match="thruster 8"):
            mapper.table(8)

    def test_tables_must_cover_indices(self, calibration_table):
        with pytest.raises(ValueError, match="cover"):
            ForceCommandMapper({0: calibration_table, 2: calibration_table})

    def test_shared_table_needs_count(self, calibration_table):
        with pytest.raises(ValueError, match="num_thrusters"):
            ForceCommandMapper(calibration_table)

    def test_empty(self):
        with pytest.raises(ValueError, match="At least one"):
            ForceCommandMapper({})
