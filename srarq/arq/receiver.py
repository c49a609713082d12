"""
Selective Repeat ARQ Receiver

This module implements the receiver side of the Selective Repeat ARQ protocol,
including out-of-order buffering, in-order delivery and per-packet ACKs.
"""

from typing import Optional, List, Callable

from config import WINDOW_SIZE, SEQ_SPACE
from .packet import Packet
from .seqspace import SequenceSpace
from ..utils.logger import SimulationLogger, get_logger


class SRReceiver:
    """
    Selective Repeat ARQ Receiver.

    Every uncorrupted packet is acknowledged individually, including
    duplicates of packets already delivered, so the sender can clear each
    one from its window. Corrupted packets are answered with silence.

    Attributes:
        window_size: Size of the receive window
        seq_space: Sequence number space
        recv_base: Next sequence number the application has not received
        buffer: Out-of-order packets, indexed from base_slot
        received: Per-sequence-number received flags
    """

    def __init__(
        self,
        window_size: int = WINDOW_SIZE,
        seq_space: int = SEQ_SPACE,
        transmit: Optional[Callable[[Packet], None]] = None,
        deliver: Optional[Callable[[bytes], None]] = None,
        logger: Optional[SimulationLogger] = None
    ):
        """
        Initialize SR receiver.

        Args:
            window_size: Receive window size
            seq_space: Size of the sequence number space (>= 2 * window_size)
            transmit: Hands an ACK packet to the channel
            deliver: Hands an in-order payload to the application
            logger: Logger for protocol events
        """
        self.window_size = window_size
        self.seq_space = SequenceSpace(size=seq_space, window_size=window_size)

        # Collaborator callbacks
        self.transmit = transmit
        self.deliver = deliver

        self.logger = logger or get_logger()

        self.initialize()

    def initialize(self):
        """Reset receiver to initial state."""
        self.recv_base = 0
        self.base_slot = 0
        self.buffer: List[Optional[Packet]] = [None] * self.window_size
        self.received = [False] * self.seq_space.size
        self.ack_seqnum = 1

        # Statistics
        self.packets_received = 0
        self.corrupted_packets = 0
        self.duplicate_packets = 0
        self.out_of_order_packets = 0
        self.packets_delivered = 0
        self.acks_sent = 0

    def on_packet_arrival(self, packet: Packet) -> Optional[Packet]:
        """
        Process a data packet arriving from the sender.

        Args:
            packet: Received packet

        Returns:
            ACK packet sent in reply, or None for a corrupted packet
        """
        if packet.is_corrupted:
            self.corrupted_packets += 1
            self.logger.corrupted("packet")
            return None

        self.packets_received += 1
        self.logger.packet_received(packet.seqnum)

        seq_num = packet.seqnum
        if self.seq_space.in_window(seq_num, self.recv_base, self.window_size):
            self._buffer(packet)
        else:
            # Already delivered; re-ACK so the sender can slide
            self.duplicate_packets += 1

        return self._send_ack(seq_num)

    def _buffer(self, packet: Packet):
        seq_num = packet.seqnum
        offset = self.seq_space.distance(seq_num, self.recv_base)

        if self.received[seq_num]:
            self.duplicate_packets += 1
            return

        self.received[seq_num] = True
        self.buffer[(self.base_slot + offset) % self.window_size] = packet

        if offset != 0:
            self.out_of_order_packets += 1
            return

        self._deliver_in_order()

    def _deliver_in_order(self):
        """Deliver buffered packets from recv_base onward."""
        while self.received[self.recv_base]:
            packet = self.buffer[self.base_slot]

            if self.deliver:
                self.deliver(packet.payload)
            self.packets_delivered += 1
            self.logger.delivered(packet.seqnum)

            self.received[self.recv_base] = False
            self.buffer[self.base_slot] = None
            self.base_slot = (self.base_slot + 1) % self.window_size
            self.recv_base = self.seq_space.advance(self.recv_base)

    def _send_ack(self, ack_num: int) -> Packet:
        ack = Packet.create_ack_packet(self.ack_seqnum, ack_num)
        self.ack_seqnum = (self.ack_seqnum + 1) % 2

        if self.transmit:
            self.transmit(ack)
        self.acks_sent += 1
        return ack

    def get_window_state(self) -> dict:
        """Get current window state."""
        return {
            'base': self.recv_base,
            'size': self.window_size,
            'buffered': [
                seq for seq in range(self.seq_space.size) if self.received[seq]
            ]
        }

    def get_statistics(self) -> dict:
        """Get receiver statistics."""
        return {
            'packets_received': self.packets_received,
            'corrupted_packets': self.corrupted_packets,
            'duplicate_packets': self.duplicate_packets,
            'out_of_order_packets': self.out_of_order_packets,
            'packets_delivered': self.packets_delivered,
            'acks_sent': self.acks_sent
        }
