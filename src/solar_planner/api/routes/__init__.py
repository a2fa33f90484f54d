"""Route group exports."""

from . import health, simulation

__all__ = ["simulation", "health"]
