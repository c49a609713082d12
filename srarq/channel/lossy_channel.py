"""
Unreliable Channel Model

This module implements the channel between the two endpoints. Packets can
be lost or corrupted according to fixed probabilities and are delayed by a
random amount, but the channel never reorders packets travelling in the
same direction.
"""

from dataclasses import replace
from enum import Enum
from typing import Optional, Tuple

import numpy as np

from config import (
    LOSS_PROB, CORRUPT_PROB, MIN_CHANNEL_DELAY, CHANNEL_DELAY_SPREAD,
    CORRUPT_BYTE, CORRUPT_HEADER_VALUE
)
from ..arq.packet import Packet


class Direction(Enum):
    """Direction of travel through the channel."""
    A_TO_B = 0
    B_TO_A = 1


class UnreliableChannel:
    """
    Lossy, corrupting, order-preserving channel.

    Attributes:
        loss_prob: Probability that a packet is dropped
        corrupt_prob: Probability that a surviving packet is corrupted
        rng: Random number generator
    """

    def __init__(
        self,
        loss_prob: float = LOSS_PROB,
        corrupt_prob: float = CORRUPT_PROB,
        seed: Optional[int] = None
    ):
        """
        Initialize the channel.

        Args:
            loss_prob: Loss probability in [0, 1)
            corrupt_prob: Corruption probability in [0, 1)
            seed: Random seed for reproducibility
        """
        for name, value in (('loss_prob', loss_prob), ('corrupt_prob', corrupt_prob)):
            if not 0.0 <= value < 1.0:
                raise ValueError(f"{name} must be in [0, 1), got {value}")

        self.loss_prob = loss_prob
        self.corrupt_prob = corrupt_prob
        self.rng = np.random.default_rng(seed)

        self._reset_state()

    def _reset_state(self):
        # Latest scheduled arrival per direction, keeps delivery in order
        self.last_arrival = {direction: 0.0 for direction in Direction}

        # Statistics
        self.packets_offered = {direction: 0 for direction in Direction}
        self.packets_lost = {direction: 0 for direction in Direction}
        self.packets_corrupted = {direction: 0 for direction in Direction}

    def corrupt(self, packet: Packet) -> Packet:
        """
        Return a corrupted copy of a packet.

        The stored checksum is left untouched so the receiver can detect
        the damage.
        """
        x = self.rng.random()
        if x < 0.75:
            payload = bytes([CORRUPT_BYTE]) + packet.payload[1:]
            return replace(packet, payload=payload)
        if x < 0.875:
            return replace(packet, seqnum=CORRUPT_HEADER_VALUE)
        return replace(packet, acknum=CORRUPT_HEADER_VALUE)

    def transmit(
        self,
        packet: Packet,
        direction: Direction,
        current_time: float
    ) -> Optional[Tuple[float, Packet]]:
        """
        Send a packet through the channel.

        Args:
            packet: Packet handed down by an endpoint
            direction: Direction of travel
            current_time: Current simulation time

        Returns:
            (arrival_time, packet as delivered), or None if the packet was lost
        """
        self.packets_offered[direction] += 1

        if self.rng.random() < self.loss_prob:
            self.packets_lost[direction] += 1
            return None

        if self.rng.random() < self.corrupt_prob:
            self.packets_corrupted[direction] += 1
            packet = self.corrupt(packet)

        last = max(current_time, self.last_arrival[direction])
        arrival_time = last + MIN_CHANNEL_DELAY + CHANNEL_DELAY_SPREAD * self.rng.random()
        self.last_arrival[direction] = arrival_time

        return arrival_time, packet

    def reset(self, seed: Optional[int] = None):
        """
        Reset channel state and statistics.

        Args:
            seed: New random seed (optional)
        """
        if seed is not None:
            self.rng = np.random.default_rng(seed)
        self._reset_state()

    def get_statistics(self) -> dict:
        """Get channel statistics."""
        stats = {}
        for direction in Direction:
            key = direction.name.lower()
            stats[f'{key}_offered'] = self.packets_offered[direction]
            stats[f'{key}_lost'] = self.packets_lost[direction]
            stats[f'{key}_corrupted'] = self.packets_corrupted[direction]
        stats['packets_lost'] = sum(self.packets_lost.values())
        stats['packets_corrupted'] = sum(self.packets_corrupted.values())
        return stats
