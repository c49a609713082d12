"""
Unit tests for the Selective Repeat ARQ protocol.
"""

import pytest
import random
import sys
import os
from dataclasses import replace

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import NOT_IN_USE, PAYLOAD_SIZE, PACKET_HEADER_SIZE
from srarq.arq.packet import Packet, Message, compute_checksum, is_corrupted
from srarq.arq.seqspace import SequenceSpace
from srarq.arq.sender import SRSender, AckStatus
from srarq.arq.receiver import SRReceiver


class FakeHost:
    """Records the capability calls made by an endpoint."""

    def __init__(self):
        self.sent = []
        self.delivered = []
        self.timer_events = []
        self.timer_armed = False

    def transmit(self, packet):
        self.sent.append(packet)

    def start_timer(self, duration):
        assert not self.timer_armed, "timer armed twice"
        self.timer_armed = True
        self.timer_events.append(('start', duration))

    def stop_timer(self):
        self.timer_armed = False
        self.timer_events.append(('stop',))

    def deliver(self, payload):
        self.delivered.append(payload)

    def expire(self, sender):
        self.timer_armed = False
        return sender.on_timer_expiry()


def msg(i):
    return Message((chr(ord('a') + i % 26) * PAYLOAD_SIZE).encode())


def make_sender(host, window_size=6, seq_space=12):
    return SRSender(
        window_size=window_size,
        seq_space=seq_space,
        timeout=16.0,
        transmit=host.transmit,
        start_timer=host.start_timer,
        stop_timer=host.stop_timer
    )


def make_receiver(host, window_size=6, seq_space=12):
    return SRReceiver(
        window_size=window_size,
        seq_space=seq_space,
        transmit=host.transmit,
        deliver=host.deliver
    )


def ack(ack_num):
    return Packet.create_ack_packet(0, ack_num)


def data(seq_num, index=None):
    return Packet.create_data_packet(seq_num, msg(seq_num if index is None else index))


class TestPacket:
    """Tests for Packet and checksum."""

    def test_data_packet_creation(self):
        """Test creating a data packet."""
        packet = Packet.create_data_packet(3, msg(0))

        assert packet.seqnum == 3
        assert packet.acknum == NOT_IN_USE
        assert packet.payload == b'a' * PAYLOAD_SIZE
        assert not packet.is_corrupted

    def test_checksum_value(self):
        """Test checksum is seqnum + acknum + payload bytes."""
        packet = Packet.create_ack_packet(1, 3)

        assert packet.payload == b'0' * PAYLOAD_SIZE
        assert compute_checksum(packet) == 1 + 3 + ord('0') * PAYLOAD_SIZE
        assert packet.checksum == compute_checksum(packet)

    def test_fresh_packets_not_corrupted(self):
        """Test checksum soundness right after construction."""
        for seq in range(12):
            assert not is_corrupted(data(seq))
            assert not is_corrupted(ack(seq))

    def test_payload_corruption_detected(self):
        """Test that a modified payload is detected."""
        packet = data(0)
        damaged = replace(packet, payload=b'Z' + packet.payload[1:])

        assert is_corrupted(damaged)

    def test_header_corruption_detected(self):
        """Test that modified header fields are detected."""
        packet = data(4)

        assert replace(packet, seqnum=999999).is_corrupted
        assert replace(packet, acknum=999999).is_corrupted

    def test_serialization_deserialization(self):
        """Test packet serialization and deserialization."""
        original = data(7)

        serialized = original.serialize()
        restored = Packet.deserialize(serialized)

        assert len(serialized) == Packet.WIRE_SIZE == PACKET_HEADER_SIZE + PAYLOAD_SIZE
        assert restored == original
        assert not restored.is_corrupted

    def test_deserialize_wrong_length(self):
        """Test that truncated input is rejected."""
        with pytest.raises(ValueError):
            Packet.deserialize(b'\x00' * 10)

    def test_payload_size_enforced(self):
        """Test packet payload must be exactly PAYLOAD_SIZE bytes."""
        with pytest.raises(ValueError):
            Packet.build(0, 0, b'short')

    def test_message_from_data_pads(self):
        """Test short application data is padded."""
        message = Message.from_data("hello")

        assert len(message.data) == PAYLOAD_SIZE
        assert message.data.startswith(b'hello')

    def test_message_too_large(self):
        """Test oversized application data is rejected."""
        with pytest.raises(ValueError):
            Message.from_data(b'x' * (PAYLOAD_SIZE + 1))


class TestSequenceSpace:
    """Tests for modular sequence arithmetic."""

    def test_too_small_space_rejected(self):
        """Test N < 2W is rejected."""
        with pytest.raises(ValueError):
            SequenceSpace(size=10, window_size=6)

    def test_distance_wraps(self):
        """Test distance across the wrap point."""
        space = SequenceSpace(size=12, window_size=6)

        assert space.distance(1, 10) == 3
        assert space.distance(10, 1) == 9
        assert space.distance(5, 5) == 0

    def test_advance_wraps(self):
        """Test advance wraps to zero."""
        space = SequenceSpace(size=12, window_size=6)

        assert space.advance(11) == 0
        assert space.advance(0, -1) == 11

    def test_in_window(self):
        """Test window membership across the wrap point."""
        space = SequenceSpace(size=12, window_size=6)

        assert space.in_window(1, 10, 6)
        assert not space.in_window(4, 10, 6)
        assert not space.in_window(-1, 0, 6)
        assert not space.in_window(0, 0, 0)


class TestSRSender:
    """Tests for Selective Repeat Sender."""

    def test_invalid_sequence_space(self):
        """Test sender refuses a sequence space below 2W."""
        with pytest.raises(ValueError):
            SRSender(window_size=6, seq_space=11)

    def test_submit_first_message(self):
        """Test sending the first packet starts the timer."""
        host = FakeHost()
        sender = make_sender(host)

        assert sender.submit(msg(0))

        assert len(host.sent) == 1
        assert host.sent[0].seqnum == 0
        assert host.sent[0].acknum == NOT_IN_USE
        assert not host.sent[0].is_corrupted
        assert host.timer_events == [('start', 16.0)]
        assert sender.timer_running

    def test_timer_started_once(self):
        """Test later packets do not restart the running timer."""
        host = FakeHost()
        sender = make_sender(host)

        for i in range(3):
            sender.submit(msg(i))

        assert [p.seqnum for p in host.sent] == [0, 1, 2]
        assert host.timer_events == [('start', 16.0)]

    def test_window_full(self):
        """Test submissions are refused when the window is full."""
        host = FakeHost()
        sender = make_sender(host)

        for i in range(6):
            assert sender.submit(msg(i))

        assert not sender.can_send()
        assert not sender.submit(msg(6))
        assert sender.window_full == 1
        assert sender.outstanding == 6
        assert len(host.sent) == 6

    def test_ack_oldest_slides_window(self):
        """Test ACK for the oldest packet slides and restarts the timer."""
        host = FakeHost()
        sender = make_sender(host)
        for i in range(3):
            sender.submit(msg(i))

        assert sender.on_ack_received(ack(0))

        assert sender.base_seqnum == 1
        assert sender.outstanding == 2
        assert host.timer_events == [('start', 16.0), ('stop',), ('start', 16.0)]

    def test_ack_out_of_order(self):
        """Test ACK for a later packet is remembered until the base is acked."""
        host = FakeHost()
        sender = make_sender(host)
        for i in range(3):
            sender.submit(msg(i))

        assert sender.on_ack_received(ack(1))
        assert sender.outstanding == 3
        assert sender.get_window_state()['acked'] == [1]
        assert host.timer_events == [('start', 16.0)]

        assert sender.on_ack_received(ack(0))
        assert sender.base_seqnum == 2
        assert sender.outstanding == 1
        assert sender.window.oldest().status is AckStatus.UNACKED

    def test_last_ack_stops_timer(self):
        """Test the timer is left stopped once the window empties."""
        host = FakeHost()
        sender = make_sender(host)
        sender.submit(msg(0))

        sender.on_ack_received(ack(0))

        assert sender.is_idle()
        assert not sender.timer_running
        assert not host.timer_armed

    def test_duplicate_ack(self):
        """Test the second copy of an ACK changes nothing."""
        host = FakeHost()
        sender = make_sender(host)
        for i in range(3):
            sender.submit(msg(i))

        assert sender.on_ack_received(ack(1))
        before = sender.get_window_state()
        assert not sender.on_ack_received(ack(1))

        assert sender.get_window_state() == before
        assert sender.new_acks == 1
        assert sender.duplicate_acks == 1

    def test_ack_outside_window(self):
        """Test ACK for a sequence number never sent is ignored."""
        host = FakeHost()
        sender = make_sender(host)
        sender.submit(msg(0))
        sender.submit(msg(1))

        assert not sender.on_ack_received(ack(5))
        assert sender.outstanding == 2
        assert sender.duplicate_acks == 1

    def test_ack_on_empty_window(self):
        """Test ACK with nothing outstanding is ignored."""
        host = FakeHost()
        sender = make_sender(host)

        assert not sender.on_ack_received(ack(0))
        assert host.timer_events == []

    def test_corrupted_ack_ignored(self):
        """Test corrupted ACKs are dropped without a state change."""
        host = FakeHost()
        sender = make_sender(host)
        sender.submit(msg(0))

        damaged = replace(ack(0), acknum=999999)

        assert not sender.on_ack_received(damaged)
        assert sender.outstanding == 1
        assert sender.corrupted_acks == 1
        assert sender.total_acks_received == 0

    def test_timeout_resends_oldest_only(self):
        """Test timer expiry resends only the oldest unacked packet."""
        host = FakeHost()
        sender = make_sender(host)
        for i in range(3):
            sender.submit(msg(i))

        resent = host.expire(sender)

        assert resent.seqnum == 0
        assert len(host.sent) == 4
        assert host.sent[-1] == host.sent[0]
        assert sender.packets_resent == 1
        assert host.timer_armed

    def test_timeout_empty_window(self):
        """Test timer expiry with nothing outstanding sends nothing."""
        host = FakeHost()
        sender = make_sender(host)

        assert host.expire(sender) is None
        assert host.sent == []
        assert not sender.timer_running
        assert sender.timeouts == 1

    def test_sequence_numbers_wrap(self):
        """Test sequence numbers cycle through the space."""
        host = FakeHost()
        sender = make_sender(host)

        for i in range(20):
            assert sender.submit(msg(i))
            assert sender.on_ack_received(ack(host.sent[-1].seqnum))

        assert [p.seqnum for p in host.sent] == [i % 12 for i in range(20)]
        assert sender.is_idle()

    def test_window_bound_under_random_events(self):
        """Test outstanding count never exceeds the window size."""
        host = FakeHost()
        sender = make_sender(host)
        rng = random.Random(7)

        for i in range(500):
            choice = rng.random()
            if choice < 0.5:
                sender.submit(msg(i))
            elif choice < 0.9:
                sender.on_ack_received(ack(rng.randrange(12)))
            elif sender.timer_running:
                host.expire(sender)

            assert sender.outstanding <= 6
            oldest = sender.window.oldest()
            assert oldest is None or oldest.status is AckStatus.UNACKED

    def test_initialize(self):
        """Test initialize resets all state."""
        host = FakeHost()
        sender = make_sender(host)
        for i in range(7):
            sender.submit(msg(i))

        sender.initialize()

        assert sender.next_seqnum == 0
        assert sender.outstanding == 0
        assert not sender.timer_running
        assert all(value == 0 for value in sender.get_statistics().values())


class TestSRReceiver:
    """Tests for Selective Repeat Receiver."""

    def test_receive_in_order(self):
        """Test receiving packets in order."""
        host = FakeHost()
        receiver = make_receiver(host)

        for seq in range(3):
            receiver.on_packet_arrival(data(seq))

        assert host.delivered == [msg(i).data for i in range(3)]
        assert [p.acknum for p in host.sent] == [0, 1, 2]
        assert receiver.recv_base == 3

    def test_ack_header(self):
        """Test ACKs carry an alternating seqnum and a valid checksum."""
        host = FakeHost()
        receiver = make_receiver(host)

        for seq in range(3):
            receiver.on_packet_arrival(data(seq))

        assert [p.seqnum for p in host.sent] == [1, 0, 1]
        assert all(not p.is_corrupted for p in host.sent)

    def test_receive_out_of_order(self):
        """Test out-of-order packets are buffered until the gap fills."""
        host = FakeHost()
        receiver = make_receiver(host)

        receiver.on_packet_arrival(data(0))
        receiver.on_packet_arrival(data(1))
        receiver.on_packet_arrival(data(3))
        assert len(host.delivered) == 2
        assert receiver.get_window_state()['buffered'] == [3]

        receiver.on_packet_arrival(data(2))
        assert host.delivered == [msg(i).data for i in range(4)]
        assert receiver.recv_base == 4
        assert receiver.out_of_order_packets == 1

    def test_reverse_order_window(self):
        """Test a full window arriving backwards is delivered at once."""
        host = FakeHost()
        receiver = make_receiver(host)

        for seq in [5, 4, 3, 2, 1]:
            receiver.on_packet_arrival(data(seq))
        assert host.delivered == []

        receiver.on_packet_arrival(data(0))
        assert host.delivered == [msg(i).data for i in range(6)]
        assert receiver.recv_base == 6

    def test_corrupted_packet_no_ack(self):
        """Test corrupted packets get no ACK at all."""
        host = FakeHost()
        receiver = make_receiver(host)
        packet = data(0)

        result = receiver.on_packet_arrival(replace(packet, payload=b'Z' + packet.payload[1:]))

        assert result is None
        assert host.sent == []
        assert host.delivered == []
        assert receiver.corrupted_packets == 1
        assert receiver.recv_base == 0

    def test_duplicate_of_delivered_packet(self):
        """Test a delivered packet is re-acked but not re-delivered."""
        host = FakeHost()
        receiver = make_receiver(host)

        receiver.on_packet_arrival(data(0))
        receiver.on_packet_arrival(data(0))

        assert len(host.delivered) == 1
        assert [p.acknum for p in host.sent] == [0, 0]
        assert receiver.duplicate_packets == 1

    def test_duplicate_of_buffered_packet(self):
        """Test a buffered packet is re-acked but stored once."""
        host = FakeHost()
        receiver = make_receiver(host)

        receiver.on_packet_arrival(data(2))
        receiver.on_packet_arrival(data(2))

        assert host.delivered == []
        assert [p.acknum for p in host.sent] == [2, 2]
        assert receiver.duplicate_packets == 1

    def test_packet_outside_window(self):
        """Test a packet outside the receive window is acked only."""
        host = FakeHost()
        receiver = make_receiver(host)

        receiver.on_packet_arrival(data(7))

        assert host.delivered == []
        assert host.sent[0].acknum == 7
        assert receiver.get_window_state()['buffered'] == []

    def test_sequence_wraparound(self):
        """Test delivery continues after sequence numbers wrap."""
        host = FakeHost()
        receiver = make_receiver(host)

        for i in range(12):
            receiver.on_packet_arrival(data(i))
        receiver.on_packet_arrival(data(0, index=12))

        assert len(host.delivered) == 13
        assert host.delivered[12] == msg(12).data
        assert receiver.recv_base == 1

    def test_initialize(self):
        """Test initialize resets all state."""
        host = FakeHost()
        receiver = make_receiver(host)
        receiver.on_packet_arrival(data(0))
        receiver.on_packet_arrival(data(2))

        receiver.initialize()

        assert receiver.recv_base == 0
        assert receiver.get_window_state()['buffered'] == []
        assert receiver.ack_seqnum == 1


class TestScenarios:
    """End-to-end exchanges between a sender and a receiver."""

    def setup_method(self):
        self.a = FakeHost()
        self.b = FakeHost()
        self.sender = make_sender(self.a)
        self.receiver = make_receiver(self.b)

    def to_receiver(self, packet):
        return self.receiver.on_packet_arrival(packet)

    def to_sender(self, packet):
        return self.sender.on_ack_received(packet)

    def test_full_window_acked_in_order(self):
        """Test six packets acked in order empty the window."""
        for i in range(6):
            self.sender.submit(msg(i))
        assert [p.seqnum for p in self.a.sent] == list(range(6))

        for packet in self.a.sent:
            self.to_sender(self.to_receiver(packet))

        assert self.sender.is_idle()
        assert self.b.delivered == [msg(i).data for i in range(6)]

    def test_lost_ack_resends_single_packet(self):
        """Test a lost ACK leads to one retransmission of that packet only."""
        for i in range(6):
            self.sender.submit(msg(i))
        acks = [self.to_receiver(packet) for packet in self.a.sent]

        for packet in acks:
            if packet.acknum != 2:
                self.to_sender(packet)
        assert self.sender.base_seqnum == 2
        assert self.sender.outstanding == 4

        resent = self.a.expire(self.sender)
        assert resent.seqnum == 2
        assert [p.seqnum for p in self.a.sent] == [0, 1, 2, 3, 4, 5, 2]

        reply = self.to_receiver(resent)
        assert reply.acknum == 2
        assert self.to_sender(reply)
        assert self.sender.is_idle()
        assert len(self.b.delivered) == 6

    def test_out_of_order_arrival(self):
        """Test packet 3 before packet 2 is delivered after 2."""
        for i in range(4):
            self.sender.submit(msg(i))
        p0, p1, p2, p3 = self.a.sent

        self.to_receiver(p0)
        self.to_receiver(p1)
        self.to_receiver(p3)
        assert self.b.delivered == [msg(0).data, msg(1).data]

        self.to_receiver(p2)
        assert self.b.delivered == [msg(i).data for i in range(4)]

    def test_corrupted_packet_recovered_by_timeout(self):
        """Test a corrupted packet is recovered by the retransmission timer."""
        self.sender.submit(msg(0))
        packet = self.a.sent[0]

        assert self.to_receiver(replace(packet, seqnum=999999)) is None
        assert self.b.sent == []

        resent = self.a.expire(self.sender)
        self.to_sender(self.to_receiver(resent))

        assert self.sender.is_idle()
        assert self.b.delivered == [msg(0).data]

    def test_duplicate_ack_after_slide(self):
        """Test an ACK for a slid-past packet leaves the sender unchanged."""
        self.sender.submit(msg(0))
        self.sender.submit(msg(1))
        first_ack = self.to_receiver(self.a.sent[0])
        self.to_sender(first_ack)

        before = self.sender.get_window_state()
        assert not self.to_sender(first_ack)
        assert self.sender.get_window_state() == before

    def test_no_duplicate_delivery_with_repeated_packets(self):
        """Test each payload is delivered once however often it arrives."""
        for i in range(6):
            self.sender.submit(msg(i))

        for _ in range(3):
            for packet in reversed(self.a.sent):
                self.to_receiver(packet)

        assert self.b.delivered == [msg(i).data for i in range(6)]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
