"""
Simulation package - Network emulator and batch runner.

Contains:
- Event-driven emulator providing channel, timers and application layers
- Per-endpoint timer facility
- Batch runner for loss/corruption sweeps
"""

from .simulator import Simulator, SimulatorConfig, Endpoint
from .timer import EndpointTimer, TimerState
from .runner import BatchRunner
