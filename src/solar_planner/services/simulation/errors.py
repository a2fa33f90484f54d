"""Simulation error taxonomy."""

from __future__ import annotations


class SimulationError(Exception):
    """Base class for itinerary simulation failures."""


class InvalidParametersError(SimulationError, ValueError):
    """Raised before the simulation loop when the run parameters are unusable."""

    def __init__(self, problems: list[str]):
        self.problems = list(problems)
        super().__init__("Invalid simulation parameters: " + "; ".join(self.problems))


class OracleUnavailableError(SimulationError):
    """An external estimate (solar production, terrain) could not be obtained."""


class SimulationCancelledError(SimulationError):
    """The run was cancelled through its cancellation token."""
