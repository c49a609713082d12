"""
Endpoint Timers for the Emulator

Each endpoint owns a single logical timer. Starting or stopping a timer
bumps its generation so that interrupt events scheduled for an earlier
arming can be recognised as stale and dropped.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class TimerState(Enum):
    """Timer state enumeration."""
    STOPPED = 0
    RUNNING = 1
    EXPIRED = 2


@dataclass
class EndpointTimer:
    """
    Single per-endpoint timer.

    Attributes:
        name: Owning endpoint name (for log messages)
        timeout: Duration of the current arming
        start_time: Time when timer was started
        state: Current timer state
        generation: Incremented on every start and stop
    """
    name: str
    timeout: float = 0.0
    start_time: float = 0.0
    state: TimerState = TimerState.STOPPED
    generation: int = 0

    @property
    def is_running(self) -> bool:
        return self.state == TimerState.RUNNING

    def start(self, current_time: float, timeout: float) -> int:
        """
        Arm the timer.

        Args:
            current_time: Current simulation time
            timeout: Duration until the interrupt

        Returns:
            Generation the interrupt event must carry
        """
        self.timeout = timeout
        self.start_time = current_time
        self.state = TimerState.RUNNING
        self.generation += 1
        return self.generation

    def stop(self):
        """Disarm the timer."""
        self.state = TimerState.STOPPED
        self.generation += 1

    def fire(self, generation: int) -> bool:
        """
        Consume an interrupt event.

        Args:
            generation: Generation carried by the event

        Returns:
            True if the event belongs to the current arming
        """
        if not self.is_running or generation != self.generation:
            return False
        self.state = TimerState.EXPIRED
        return True

    def get_expiry_time(self) -> Optional[float]:
        """Get the absolute expiry time, or None when not running."""
        if not self.is_running:
            return None
        return self.start_time + self.timeout
