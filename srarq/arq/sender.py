"""
Selective Repeat ARQ Sender

This module implements the sender side of the Selective Repeat ARQ protocol,
including sliding window management, per-packet acknowledgment tracking,
and timeout-driven retransmission of the oldest unacknowledged packet.
"""

from typing import Optional, List, Callable
from dataclasses import dataclass
from enum import Enum

from config import WINDOW_SIZE, SEQ_SPACE, RTT
from .packet import Packet, Message
from .seqspace import SequenceSpace
from ..utils.logger import SimulationLogger, get_logger


class AckStatus(Enum):
    """Acknowledgment status of an in-flight packet."""
    UNACKED = 0
    ACKED = 1


@dataclass
class WindowSlot:
    """A buffered packet and its acknowledgment status."""
    packet: Packet
    status: AckStatus = AckStatus.UNACKED


class SendWindow:
    """
    Circular buffer of in-flight packets.

    Attributes:
        size: Window size (number of slots)
        first: Slot index of the oldest packet
        count: Number of occupied slots
    """

    def __init__(self, size: int):
        self.size = size
        self.slots: List[Optional[WindowSlot]] = [None] * size
        self.first = 0
        self.count = 0

    @property
    def is_full(self) -> bool:
        """Check if window is full."""
        return self.count >= self.size

    @property
    def is_empty(self) -> bool:
        """Check if window is empty."""
        return self.count == 0

    def append(self, packet: Packet):
        """Store a new packet after the newest one."""
        index = (self.first + self.count) % self.size
        self.slots[index] = WindowSlot(packet)
        self.count += 1

    def slot_at(self, offset: int) -> WindowSlot:
        """Slot `offset` positions after the oldest packet."""
        return self.slots[(self.first + offset) % self.size]

    def oldest(self) -> Optional[WindowSlot]:
        """The oldest buffered slot, or None when empty."""
        if self.is_empty:
            return None
        return self.slots[self.first]

    def slide(self) -> int:
        """
        Free every leading acknowledged slot.

        Returns:
            Number of slots freed
        """
        freed = 0
        while self.count > 0 and self.slots[self.first].status is AckStatus.ACKED:
            self.slots[self.first] = None
            self.first = (self.first + 1) % self.size
            self.count -= 1
            freed += 1
        return freed

    def packets(self) -> List[Packet]:
        """Buffered packets, oldest first."""
        return [self.slot_at(i).packet for i in range(self.count)]


class SRSender:
    """
    Selective Repeat ARQ Sender.

    The collaborating emulator exposes a single timer per endpoint, so the
    timer always protects the current oldest unacknowledged packet. It is
    restarted whenever that packet is acknowledged or resent.

    Attributes:
        window_size: Maximum number of outstanding packets
        seq_space: Sequence number space
        timeout: Retransmission timeout
        window: Buffer of in-flight packets
        next_seqnum: Sequence number for the next new packet
    """

    def __init__(
        self,
        window_size: int = WINDOW_SIZE,
        seq_space: int = SEQ_SPACE,
        timeout: float = RTT,
        transmit: Optional[Callable[[Packet], None]] = None,
        start_timer: Optional[Callable[[float], None]] = None,
        stop_timer: Optional[Callable[[], None]] = None,
        logger: Optional[SimulationLogger] = None
    ):
        """
        Initialize SR sender.

        Args:
            window_size: Send window size
            seq_space: Size of the sequence number space (>= 2 * window_size)
            timeout: Retransmission timeout
            transmit: Hands a packet to the channel
            start_timer: Arms the endpoint timer for a duration
            stop_timer: Disarms the endpoint timer
            logger: Logger for protocol events
        """
        self.window_size = window_size
        self.seq_space = SequenceSpace(size=seq_space, window_size=window_size)
        self.timeout = timeout

        # Collaborator callbacks
        self.transmit = transmit
        self.start_timer = start_timer
        self.stop_timer = stop_timer

        self.logger = logger or get_logger()

        self.initialize()

    def initialize(self):
        """Reset sender to initial state."""
        self.window = SendWindow(self.window_size)
        self.next_seqnum = 0
        self.timer_running = False

        # Statistics
        self.packets_sent = 0
        self.window_full = 0
        self.total_acks_received = 0
        self.new_acks = 0
        self.duplicate_acks = 0
        self.corrupted_acks = 0
        self.packets_resent = 0
        self.timeouts = 0

    @property
    def base_seqnum(self) -> int:
        """Sequence number of the oldest outstanding packet."""
        return self.seq_space.advance(self.next_seqnum, -self.window.count)

    @property
    def outstanding(self) -> int:
        """Number of packets in the window."""
        return self.window.count

    def can_send(self) -> bool:
        """Check if sender can accept a new message."""
        return not self.window.is_full

    def submit(self, message: Message) -> bool:
        """
        Accept an application message if the window has room.

        Args:
            message: Message to send

        Returns:
            True if the message was sent, False if the window is full
        """
        if self.window.is_full:
            self.window_full += 1
            self.logger.window_full()
            return False

        packet = Packet.create_data_packet(self.next_seqnum, message)
        self.window.append(packet)

        self.logger.packet_sent(packet.seqnum)
        self._send(packet)
        self.packets_sent += 1

        if self.window.count == 1:
            self._arm_timer()

        self.next_seqnum = self.seq_space.advance(self.next_seqnum)
        return True

    def on_ack_received(self, packet: Packet) -> bool:
        """
        Process a packet arriving from the receiver.

        Args:
            packet: ACK packet

        Returns:
            True if the ACK was new and changed the window
        """
        if packet.is_corrupted:
            self.corrupted_acks += 1
            self.logger.corrupted("ACK")
            return False

        self.total_acks_received += 1
        ack_num = packet.acknum

        if not self.seq_space.in_window(ack_num, self.base_seqnum, self.window.count):
            self.duplicate_acks += 1
            self.logger.ack_received(ack_num, new=False)
            return False

        offset = self.seq_space.distance(ack_num, self.base_seqnum)
        slot = self.window.slot_at(offset)
        if slot.status is AckStatus.ACKED:
            self.duplicate_acks += 1
            self.logger.ack_received(ack_num, new=False)
            return False

        self.new_acks += 1
        self.logger.ack_received(ack_num, new=True)
        slot.status = AckStatus.ACKED

        if offset == 0:
            # The timer was protecting this packet
            self._disarm_timer()
            self.window.slide()
            if not self.window.is_empty:
                self._arm_timer()

        self.logger.window_update(self.base_seqnum, self.next_seqnum, self.window.count)
        return True

    def on_timer_expiry(self) -> Optional[Packet]:
        """
        Resend the oldest unacknowledged packet.

        Returns:
            The retransmitted packet, or None if nothing is outstanding
        """
        self.timer_running = False
        self.timeouts += 1

        oldest = self.window.oldest()
        if oldest is None:
            return None

        packet = oldest.packet
        self.logger.timeout(packet.seqnum)
        self._send(packet)
        self.packets_resent += 1
        self._arm_timer()
        return packet

    def _send(self, packet: Packet):
        if self.transmit:
            self.transmit(packet)

    def _arm_timer(self):
        if self.timer_running:
            self._disarm_timer()
        if self.start_timer:
            self.start_timer(self.timeout)
        self.timer_running = True

    def _disarm_timer(self):
        if self.timer_running and self.stop_timer:
            self.stop_timer()
        self.timer_running = False

    def is_idle(self) -> bool:
        """Check if every sent packet has been acknowledged."""
        return self.window.is_empty

    def get_window_state(self) -> dict:
        """Get current window state."""
        return {
            'base': self.base_seqnum,
            'next_seq': self.next_seqnum,
            'size': self.window_size,
            'outstanding': self.window.count,
            'acked': [
                self.seq_space.advance(self.base_seqnum, i)
                for i in range(self.window.count)
                if self.window.slot_at(i).status is AckStatus.ACKED
            ],
            'timer_running': self.timer_running
        }

    def get_statistics(self) -> dict:
        """Get sender statistics."""
        return {
            'packets_sent': self.packets_sent,
            'window_full': self.window_full,
            'total_acks_received': self.total_acks_received,
            'new_acks': self.new_acks,
            'duplicate_acks': self.duplicate_acks,
            'corrupted_acks': self.corrupted_acks,
            'packets_resent': self.packets_resent,
            'timeouts': self.timeouts
        }
