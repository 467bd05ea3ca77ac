"""Command-line entry points."""

from .optimize import main

__all__ = ["main"]
