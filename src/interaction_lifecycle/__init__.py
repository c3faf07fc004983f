"""Response lifecycle control for platform interactions."""

__version__ = "0.1.0"
