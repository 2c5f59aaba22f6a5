"""
Thruster commander: turns wrench requests into hardware commands.

Holds one immutable snapshot of the vehicle configuration together with
everything derived from it. Reloading builds a complete new snapshot and then
replaces the reference in a single assignment, so a request in progress
always sees one consistent configuration.
"""
import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Protocol

import numpy as np

from thrust_commander.actuation_patterns import ActuationPattern
from thrust_commander.curve_mapper import ForceCommandMapper
from thrust_commander.environment import EnvironmentModel
from thrust_commander.geometry import VehicleGeometry
from thrust_commander.thrust_allocator import ThrustAllocator
from thrust_commander.vehicle_config import VehicleConfig


class ThrusterCommandSink(Protocol):
    """Actuator output, e.g. the PWM driver for the thruster ESCs."""

    def set_thruster_command(self, index: int, command: float) -> None:
        ...


@dataclass(frozen=True)
class CommanderSnapshot:
    """Configuration plus every model derived from it."""
    config: VehicleConfig
    geometry: VehicleGeometry
    allocator: ThrustAllocator
    environment: EnvironmentModel

    @classmethod
    def build(
        cls,
        config: VehicleConfig,
        patterns: Optional[Iterable[ActuationPattern]] = None,
        logger: logging.Logger = None
    ) -> 'CommanderSnapshot':
        geometry = VehicleGeometry(config)
        allocator = ThrustAllocator(geometry, patterns=patterns, logger=logger)
        return cls(config, geometry, allocator, EnvironmentModel(config))


class ThrusterCommander:
    """
    Allocates wrenches, maps the forces to commands and hands them to the
    actuator sink.
    """

    def __init__(
        self,
        config: VehicleConfig,
        mapper: ForceCommandMapper,
        sink: ThrusterCommandSink = None,
        patterns: Optional[Iterable[ActuationPattern]] = None,
        logger: logging.Logger = None
    ):
        """
        Args:
            config: Vehicle configuration
            mapper: Force-to-command curves, one per thruster
            sink: Optional actuator output
            patterns: Actuation patterns; defaults to patterns_for(geometry)
            logger: Optional logger for debugging

        Raises:
            ConfigurationError: If the geometry is degenerate
            ConfigurationMismatchError: If a pattern does not match the geometry
            ValueError: If the mapper and config disagree on thruster count
        """
        self.logger = logger or logging.getLogger(__name__)
        self.mapper = mapper
        self.sink = sink
        self._patterns = None if patterns is None else tuple(patterns)
        self._snapshot = self._build(config)

    def _build(self, config: VehicleConfig) -> CommanderSnapshot:
        if config.num_thrusters != self.mapper.num_thrusters:
            raise ValueError(
                f"Config has {config.num_thrusters} thrusters but calibration covers "
                f"{self.mapper.num_thrusters}"
            )
        return CommanderSnapshot.build(config, self._patterns, self.logger)

    @property
    def snapshot(self) -> CommanderSnapshot:
        return self._snapshot

    @property
    def config(self) -> VehicleConfig:
        return self._snapshot.config

    def reload(self, config: VehicleConfig) -> CommanderSnapshot:
        """
        Replace the configuration. The old snapshot stays in use if the new
        one fails to build.
        """
        snapshot = self._build(config)
        self._snapshot = snapshot
        self.logger.info(f"Vehicle configuration reloaded ({config.num_thrusters} thrusters)")
        return snapshot

    def describe(self) -> dict:
        """Log and return the derived geometry."""
        info = self._snapshot.geometry.describe()
        for key, value in info.items():
            self.logger.info(f"{key}: {value}")
        return info

    def allocate(self, wrench, simple: bool = True) -> np.ndarray:
        """Thruster forces for a wrench (see ThrustAllocator.allocate)."""
        return self._snapshot.allocator.allocate(wrench, simple=simple)

    def commands_for(self, wrench, simple: bool = True) -> np.ndarray:
        """
        Hardware commands for a wrench, in thruster order.

        Raises:
            OutOfRangeError: If an allocated force falls outside its calibration table
        """
        forces = self.allocate(wrench, simple=simple)
        return self.mapper.forces_to_commands(forces)

    def command_wrench(self, wrench, simple: bool = True) -> np.ndarray:
        """
        Allocate a wrench and send the commands to the sink.

        Returns:
            The commands sent
        """
        if self.sink is None:
            raise RuntimeError("No thruster command sink configured")

        snapshot = self._snapshot
        forces = snapshot.allocator.allocate(wrench, simple=simple)
        if not snapshot.allocator.within_limits(forces):
            self.logger.warning(f"Allocation for {list(np.ravel(wrench))} exceeds thruster limits")
        commands = self.mapper.forces_to_commands(forces)

        for index, command in enumerate(commands):
            self.sink.set_thruster_command(index, float(command))
        self.logger.debug(f"Sent commands {commands.tolist()}")
        return commands

    def predicted_net_wrench(self, forces, velocity, orientation) -> np.ndarray:
        """Thruster wrench plus environmental wrench at the given state."""
        snapshot = self._snapshot
        return (snapshot.allocator.predict_wrench(forces)
                + snapshot.environment.net_environmental_wrench(velocity, orientation))

    def predict_net_force_from_commands(self, commands) -> np.ndarray:
        """Thruster wrench implied by a set of hardware commands."""
        forces = self.mapper.commands_to_forces(commands)
        return self._snapshot.allocator.predict_wrench(forces)
