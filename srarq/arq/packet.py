"""
Packet Structure for Selective Repeat ARQ Protocol

This module defines the packet exchanged between the two endpoints,
the application message it carries, and the checksum used by both
sides to detect corruption.
"""

import struct
from dataclasses import dataclass, replace
from typing import Union

from config import NOT_IN_USE, PAYLOAD_SIZE


def compute_checksum(packet: 'Packet') -> int:
    """
    Compute the checksum of a packet.

    The checksum is the sum of the sequence number, the acknowledgment
    number and every payload byte. The stored checksum field is not part
    of the sum.
    """
    checksum = packet.seqnum + packet.acknum
    for byte in packet.payload:
        checksum += byte
    return checksum


def is_corrupted(packet: 'Packet') -> bool:
    """Check whether the stored checksum disagrees with the contents."""
    return packet.checksum != compute_checksum(packet)


@dataclass(frozen=True)
class Message:
    """
    Application layer message.

    Attributes:
        data: Fixed-size payload (PAYLOAD_SIZE bytes)
    """
    data: bytes

    def __post_init__(self):
        if len(self.data) != PAYLOAD_SIZE:
            raise ValueError(
                f"Message payload must be {PAYLOAD_SIZE} bytes, got {len(self.data)}"
            )

    @classmethod
    def from_data(cls, data: Union[bytes, str]) -> 'Message':
        """
        Build a message from application data, padding short data with zeros.

        Args:
            data: Raw bytes or text (encoded as ASCII)

        Returns:
            Message with a PAYLOAD_SIZE payload
        """
        if isinstance(data, str):
            data = data.encode('ascii')
        if len(data) > PAYLOAD_SIZE:
            raise ValueError(
                f"Message data too large ({len(data)} > {PAYLOAD_SIZE} bytes)"
            )
        return cls(data.ljust(PAYLOAD_SIZE, b'\x00'))


@dataclass(frozen=True)
class Packet:
    """
    Packet exchanged over the simulated channel.

    Wire Layout (32 bytes):
        - Sequence Number: 4 bytes (signed int)
        - ACK Number: 4 bytes (signed int)
        - Checksum: 4 bytes (signed int)
        - Payload: 20 bytes

    Packets are immutable; the channel produces a modified copy
    when it corrupts one.

    Attributes:
        seqnum: Sequence number
        acknum: Acknowledgment number (NOT_IN_USE on data packets)
        checksum: Checksum computed when the packet was built
        payload: Fixed-size payload
    """

    seqnum: int
    acknum: int
    checksum: int
    payload: bytes

    WIRE_FORMAT = f'!iii{PAYLOAD_SIZE}s'
    WIRE_SIZE = struct.calcsize(WIRE_FORMAT)

    def __post_init__(self):
        """Validate packet after initialization."""
        if len(self.payload) != PAYLOAD_SIZE:
            raise ValueError(
                f"Packet payload must be {PAYLOAD_SIZE} bytes, got {len(self.payload)}"
            )

    @classmethod
    def build(cls, seqnum: int, acknum: int, payload: bytes) -> 'Packet':
        """
        Build a packet with a freshly computed checksum.

        Args:
            seqnum: Sequence number
            acknum: Acknowledgment number
            payload: Payload bytes

        Returns:
            Uncorrupted packet
        """
        unsigned = cls(seqnum=seqnum, acknum=acknum, checksum=0, payload=payload)
        return replace(unsigned, checksum=compute_checksum(unsigned))

    @classmethod
    def create_data_packet(cls, seqnum: int, message: Message) -> 'Packet':
        """
        Create a data packet carrying an application message.

        Args:
            seqnum: Sequence number assigned by the sender
            message: Application message

        Returns:
            Data packet
        """
        return cls.build(seqnum, NOT_IN_USE, message.data)

    @classmethod
    def create_ack_packet(cls, seqnum: int, acknum: int) -> 'Packet':
        """
        Create an acknowledgment packet.

        Args:
            seqnum: Alternating (0/1) header sequence number
            acknum: Sequence number being acknowledged

        Returns:
            ACK packet with a payload of ASCII '0' characters
        """
        return cls.build(seqnum, acknum, b'0' * PAYLOAD_SIZE)

    @property
    def is_corrupted(self) -> bool:
        """Check whether the packet was corrupted in transit."""
        return is_corrupted(self)

    def serialize(self) -> bytes:
        """
        Serialize the packet to bytes.

        Returns:
            WIRE_SIZE bytes in network byte order
        """
        return struct.pack(
            self.WIRE_FORMAT,
            self.seqnum,
            self.acknum,
            self.checksum,
            self.payload
        )

    @classmethod
    def deserialize(cls, data: bytes) -> 'Packet':
        """
        Deserialize bytes to a Packet.

        The checksum is taken from the wire as-is; call is_corrupted
        to validate it.

        Args:
            data: Serialized packet bytes

        Returns:
            Packet
        """
        if len(data) != cls.WIRE_SIZE:
            raise ValueError(
                f"Packet must be {cls.WIRE_SIZE} bytes, got {len(data)}"
            )
        seqnum, acknum, checksum, payload = struct.unpack(cls.WIRE_FORMAT, data)
        return cls(seqnum=seqnum, acknum=acknum, checksum=checksum, payload=payload)

    def __repr__(self) -> str:
        return (f"Packet(seq={self.seqnum}, ack={self.acknum}, "
                f"checksum={self.checksum}, payload={self.payload!r})")
