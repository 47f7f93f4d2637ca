"""Operator console and application entry points."""

from .terminal import ClusterConsole
from .main import main, run

__all__ = [
    "ClusterConsole",
    "main",
    "run",
]
