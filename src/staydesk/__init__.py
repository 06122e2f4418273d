"""StayDesk booking admission and pricing engine."""

__version__ = "0.1.0"
