"""
Utilities package - Helper functions and classes.

Contains implementations for:
- Metrics collection
- Logging utilities
"""

from .metrics import MetricsCollector
from .logger import SimulationLogger, LogLevel

__all__ = [
    'MetricsCollector',
    'SimulationLogger',
    'LogLevel'
]
