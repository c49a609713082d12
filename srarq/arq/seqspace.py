"""
Modular sequence number space shared by sender and receiver.
"""

from dataclasses import dataclass

from config import validate_sequence_space


@dataclass(frozen=True)
class SequenceSpace:
    """
    Sequence numbers 0..size-1 with wraparound.

    Attributes:
        size: Number of distinct sequence numbers (N)
        window_size: Window size the space is used with (W); N >= 2W
    """
    size: int
    window_size: int

    def __post_init__(self):
        validate_sequence_space(self.window_size, self.size)

    def contains(self, seq_num: int) -> bool:
        """Check if a value is a valid sequence number."""
        return 0 <= seq_num < self.size

    def distance(self, seq_num: int, base: int) -> int:
        """Number of steps forward from base to seq_num."""
        return (seq_num - base) % self.size

    def advance(self, seq_num: int, steps: int = 1) -> int:
        """Sequence number `steps` positions after seq_num."""
        return (seq_num + steps) % self.size

    def in_window(self, seq_num: int, base: int, width: int) -> bool:
        """Check if seq_num lies in [base, base + width) modulo the space."""
        return self.contains(seq_num) and self.distance(seq_num, base) < width
