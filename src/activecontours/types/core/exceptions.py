"""
Exception classes raised by snake energies and optimizers.
"""


class SnakeError(Exception):
    """Base exception for snake segmentation operations."""

    pass


class EnergyInitError(SnakeError):
    """Exception raised when an energy cannot be initialized."""

    pass


class EnergyUpdateError(SnakeError):
    """Exception raised when an energy fails to update its status."""

    pass


class OptimizerError(SnakeError):
    """Exception raised when an optimizer iteration or session fails."""

    pass
