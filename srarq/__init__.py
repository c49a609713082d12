"""
srarq - Selective Repeat ARQ over an unreliable simulated link.

Contains:
- arq: packet, sequence space, sender and receiver
- channel: lossy/corrupting channel model
- utils: logging and metrics
"""
