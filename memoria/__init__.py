"""Partitions, process tables and packet protocol for a simulated OS's memory module."""

__version__ = "0.1.0"
__all__ = ["__version__"]