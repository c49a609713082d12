"""
Channel package - Unreliable channel model.

Contains implementations for:
- Lossy, corrupting, order-preserving channel
"""

from .lossy_channel import UnreliableChannel, Direction

__all__ = [
    'UnreliableChannel',
    'Direction'
]
