"""Composable SQL query building, row binding onto dataclasses and eager loading."""

__version__ = "0.1.0"