"""Hiliner: layered keyboard action configuration for a terminal file viewer."""

__version__ = "0.1.0"
