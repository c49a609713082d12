"""
ARQ package - Selective Repeat ARQ protocol components.

Contains implementations for:
- Packet structure and checksum
- Modular sequence number space
- Sender with window management
- Receiver with out-of-order buffering
"""

from .packet import Packet, Message, compute_checksum, is_corrupted
from .seqspace import SequenceSpace
from .sender import SRSender, AckStatus
from .receiver import SRReceiver

__all__ = [
    'Packet',
    'Message',
    'compute_checksum',
    'is_corrupted',
    'SequenceSpace',
    'SRSender',
    'AckStatus',
    'SRReceiver'
]
