"""
Main Simulator - Event-Driven Network Emulator

This module implements the discrete-event emulator that drives the two
protocol endpoints. It generates application messages at A, carries
packets through the unreliable channel, runs the per-endpoint timers and
collects the delivered data at B.
"""

from typing import Dict, List, Optional, Tuple
from dataclasses import dataclass, field
from functools import partial
from enum import Enum
import heapq
import time

import numpy as np

from config import (
    WINDOW_SIZE, SEQ_SPACE, RTT, PAYLOAD_SIZE, NUM_MESSAGES, LOSS_PROB,
    CORRUPT_PROB, MESSAGE_INTERVAL, TRACE, RNG_SEED_BASE, MAX_SIMULATION_TIME,
    trace_to_log_level
)
from srarq.arq.packet import Message, Packet
from srarq.arq.sender import SRSender
from srarq.arq.receiver import SRReceiver
from srarq.channel.lossy_channel import UnreliableChannel, Direction
from srarq.utils.metrics import MetricsCollector
from srarq.utils.logger import SimulationLogger
from .timer import EndpointTimer


class Endpoint(Enum):
    """The two protocol entities."""
    A = 0   # Sender
    B = 1   # Receiver


class EventType(Enum):
    """Types of simulation events."""
    FROM_LAYER5 = 0       # Application message at A
    FROM_LAYER3 = 1       # Packet arrives at an endpoint
    TIMER_INTERRUPT = 2   # Endpoint timer expires


@dataclass(order=True)
class SimEvent:
    """Simulation event, ordered by time then insertion order."""
    time: float
    order: int
    event_type: EventType = field(compare=False)
    endpoint: Endpoint = field(compare=False)
    data: dict = field(compare=False, default_factory=dict)


@dataclass
class SimulatorConfig:
    """Configuration for the simulator."""
    # Emulator parameters
    num_messages: int = NUM_MESSAGES
    loss_prob: float = LOSS_PROB
    corrupt_prob: float = CORRUPT_PROB
    message_interval: float = MESSAGE_INTERVAL

    # Protocol parameters
    window_size: int = WINDOW_SIZE
    seq_space: int = SEQ_SPACE
    timeout: float = RTT

    # Simulation parameters
    seed: int = RNG_SEED_BASE
    max_time: float = MAX_SIMULATION_TIME
    trace: int = TRACE

    def __post_init__(self):
        if self.num_messages < 0:
            raise ValueError("Number of messages must be non-negative")
        if self.message_interval <= 0:
            raise ValueError("Message interval must be positive")
        if self.timeout <= 0:
            raise ValueError("Timeout must be positive")


class Simulator:
    """
    Main Event-Driven Simulator.

    Provides the capability calls the protocol endpoints rely on
    (transmit, start_timer, stop_timer, deliver_to_application) and
    dispatches events strictly in time order.
    """

    # Failsafe on the number of processed events
    MAX_EVENTS = 10_000_000

    def __init__(self, config: SimulatorConfig):
        """Initialize simulator."""
        self.config = config

        level = trace_to_log_level(config.trace)
        self.logger = SimulationLogger(name="Sim", level=level)
        self.loggers = {
            Endpoint.A: SimulationLogger(name="A", level=level),
            Endpoint.B: SimulationLogger(name="B", level=level),
        }

        # Channel and application-message randomness use separate streams
        self.channel = UnreliableChannel(
            loss_prob=config.loss_prob,
            corrupt_prob=config.corrupt_prob,
            seed=config.seed
        )
        self.rng = np.random.default_rng(config.seed + 1000)

        self.timers = {endpoint: EndpointTimer(endpoint.name) for endpoint in Endpoint}

        self.sender = SRSender(
            window_size=config.window_size,
            seq_space=config.seq_space,
            timeout=config.timeout,
            transmit=partial(self.transmit, Endpoint.A),
            start_timer=partial(self.start_timer, Endpoint.A),
            stop_timer=partial(self.stop_timer, Endpoint.A),
            logger=self.loggers[Endpoint.A]
        )
        self.receiver = SRReceiver(
            window_size=config.window_size,
            seq_space=config.seq_space,
            transmit=partial(self.transmit, Endpoint.B),
            deliver=partial(self.deliver_to_application, Endpoint.B),
            logger=self.loggers[Endpoint.B]
        )

        self.metrics = MetricsCollector()

        # Simulation state
        self.current_time = 0.0
        self.event_queue: List[SimEvent] = []
        self._event_counter = 0

        # Data tracking
        self.accepted: List[Tuple[float, bytes]] = []
        self.delivered: List[bytes] = []

    # ------------------------------------------------------------------
    # Capability calls used by the protocol endpoints
    # ------------------------------------------------------------------

    def transmit(self, endpoint: Endpoint, packet: Packet):
        """Hand a packet to the channel for delivery to the peer."""
        self.metrics.record_packet_to_layer3()

        if endpoint is Endpoint.A:
            direction, peer = Direction.A_TO_B, Endpoint.B
        else:
            direction, peer = Direction.B_TO_A, Endpoint.A

        outcome = self.channel.transmit(packet, direction, self.current_time)
        if outcome is None:
            self.logger.debug(f"Packet from {endpoint.name} lost: {packet}", "CHANNEL")
            return

        arrival_time, delivered = outcome
        if delivered is not packet:
            self.logger.debug(f"Packet from {endpoint.name} corrupted: {delivered}", "CHANNEL")

        self._schedule_event(
            arrival_time,
            EventType.FROM_LAYER3,
            peer,
            {'packet': delivered}
        )

    def start_timer(self, endpoint: Endpoint, duration: float):
        """Arm the endpoint's single timer."""
        timer = self.timers[endpoint]
        if timer.is_running:
            self.metrics.record_invalid_timer_operation()
            self.logger.warning(
                f"Attempt to start timer {endpoint.name} that is already started",
                "TIMER"
            )
            return

        generation = timer.start(self.current_time, duration)
        self.metrics.record_timer_start()
        self._schedule_event(
            timer.get_expiry_time(),
            EventType.TIMER_INTERRUPT,
            endpoint,
            {'generation': generation}
        )

    def stop_timer(self, endpoint: Endpoint):
        """Disarm the endpoint's timer; harmless if already disarmed."""
        timer = self.timers[endpoint]
        if not timer.is_running:
            self.metrics.record_invalid_timer_operation()
            self.logger.warning(f"Unable to stop timer {endpoint.name}, it was not running", "TIMER")
            return

        timer.stop()
        self.metrics.record_timer_stop()

    def deliver_to_application(self, endpoint: Endpoint, payload: bytes):
        """Collect a payload delivered in order at the receiving side."""
        latency = None
        index = len(self.delivered)
        if index < len(self.accepted):
            latency = self.current_time - self.accepted[index][0]

        self.delivered.append(payload)
        self.metrics.record_message_delivered(len(payload), latency)
        self.logger.debug(f"Layer 5 at {endpoint.name} received {payload!r}", "RX")

    # ------------------------------------------------------------------
    # Event handling
    # ------------------------------------------------------------------

    def _schedule_event(self, time: float, event_type: EventType,
                        endpoint: Endpoint, data: dict = None):
        """Schedule an event."""
        event = SimEvent(
            time=time,
            order=self._event_counter,
            event_type=event_type,
            endpoint=endpoint,
            data=data or {}
        )
        self._event_counter += 1
        heapq.heappush(self.event_queue, event)

    def _schedule_next_message(self):
        gap = 2.0 * self.config.message_interval * self.rng.random()
        self._schedule_event(self.current_time + gap, EventType.FROM_LAYER5, Endpoint.A)

    @staticmethod
    def make_message(index: int) -> Message:
        """Message number `index`: one repeated letter, cycling a..z."""
        letter = chr(ord('a') + index % 26)
        return Message((letter * PAYLOAD_SIZE).encode('ascii'))

    def _handle_from_layer5(self):
        message = self.make_message(self.metrics.messages_generated)
        accepted = self.sender.submit(message)
        self.metrics.record_message_generated(accepted)
        if accepted:
            self.accepted.append((self.current_time, message.data))

        if self.metrics.messages_generated < self.config.num_messages:
            self._schedule_next_message()

    def _handle_from_layer3(self, endpoint: Endpoint, packet: Packet):
        self.metrics.record_packet_arrived()
        if endpoint is Endpoint.A:
            self.sender.on_ack_received(packet)
        else:
            self.receiver.on_packet_arrival(packet)

    def _handle_timer_interrupt(self, endpoint: Endpoint, generation: int):
        if not self.timers[endpoint].fire(generation):
            # Timer was stopped or restarted after this event was scheduled
            return
        self.metrics.record_timer_interrupt()
        if endpoint is Endpoint.A:
            self.sender.on_timer_expiry()

    def _dispatch(self, event: SimEvent):
        if event.event_type == EventType.FROM_LAYER5:
            self._handle_from_layer5()
        elif event.event_type == EventType.FROM_LAYER3:
            self._handle_from_layer3(event.endpoint, event.data['packet'])
        elif event.event_type == EventType.TIMER_INTERRUPT:
            self._handle_timer_interrupt(event.endpoint, event.data['generation'])

    def _set_time(self, time: float):
        self.current_time = time
        self.logger.set_sim_time(time)
        for logger in self.loggers.values():
            logger.set_sim_time(time)

    # ------------------------------------------------------------------
    # Running
    # ------------------------------------------------------------------

    def _is_complete(self) -> bool:
        """Check if every generated message was handled and acknowledged."""
        return (self.metrics.messages_generated >= self.config.num_messages and
                self.sender.is_idle() and
                len(self.delivered) >= len(self.accepted))

    def verify(self) -> Dict:
        """
        Compare the delivered payloads with the accepted ones.

        Returns:
            Dictionary with the verification outcome
        """
        expected = [data for _, data in self.accepted]
        prefix = expected[:len(self.delivered)]

        first_mismatch = None
        for index, (want, got) in enumerate(zip(expected, self.delivered)):
            if want != got:
                first_mismatch = index
                break

        return {
            'valid': self.delivered == expected,
            'in_order': first_mismatch is None and self.delivered == prefix,
            'expected_messages': len(expected),
            'delivered_messages': len(self.delivered),
            'extra_deliveries': max(0, len(self.delivered) - len(expected)),
            'first_mismatch': first_mismatch
        }

    def run(self) -> Dict:
        """Run the simulation."""
        self.reset()

        self.metrics.start(0.0)
        sim_start_real = time.time()
        self.logger.simulation_start({
            'messages': self.config.num_messages,
            'loss': self.config.loss_prob,
            'corrupt': self.config.corrupt_prob,
            'interval': self.config.message_interval,
            'window': self.config.window_size,
            'seqspace': self.config.seq_space,
            'seed': self.config.seed
        })

        if self.config.num_messages > 0:
            self._schedule_next_message()

        events = 0
        while self.event_queue and events < self.MAX_EVENTS:
            event = heapq.heappop(self.event_queue)
            if event.time > self.config.max_time:
                self.logger.warning(
                    f"Simulation time limit {self.config.max_time} reached", "SIM"
                )
                break

            self._set_time(event.time)
            self._dispatch(event)
            events += 1

        self.metrics.finish(self.current_time)
        sim_end_real = time.time()

        sender_stats = self.sender.get_statistics()
        summary = {**self.metrics.get_summary(), **sender_stats}
        self.logger.simulation_end(summary)

        return {
            'config': {
                'num_messages': self.config.num_messages,
                'loss_prob': self.config.loss_prob,
                'corrupt_prob': self.config.corrupt_prob,
                'message_interval': self.config.message_interval,
                'window_size': self.config.window_size,
                'seq_space': self.config.seq_space,
                'timeout': self.config.timeout,
                'seed': self.config.seed
            },
            'metrics': self.metrics.get_summary(),
            'sender': sender_stats,
            'receiver': self.receiver.get_statistics(),
            'channel': self.channel.get_statistics(),
            'verification': self.verify(),
            'events': events,
            'real_time': sim_end_real - sim_start_real,
            'simulation_time': self.current_time,
            'complete': self._is_complete()
        }

    def reset(self, seed: Optional[int] = None):
        """Reset simulator, endpoints and channel for a new run."""
        if seed is not None:
            self.config.seed = seed
        self.sender.initialize()
        self.receiver.initialize()
        self.channel.reset(self.config.seed)
        self.rng = np.random.default_rng(self.config.seed + 1000)
        self.timers = {endpoint: EndpointTimer(endpoint.name) for endpoint in Endpoint}
        self.metrics.reset()
        self.current_time = 0.0
        self._set_time(0.0)
        self.event_queue.clear()
        self._event_counter = 0
        self.accepted.clear()
        self.delivered.clear()


if __name__ == "__main__":
    print("=" * 60)
    print("SIMULATOR TEST")
    print("=" * 60)

    config = SimulatorConfig(num_messages=50, loss_prob=0.2, corrupt_prob=0.2, trace=1)
    sim = Simulator(config)
    results = sim.run()

    print(f"\nComplete: {results['complete']}")
    print(f"Valid: {results['verification']['valid']}")
    print(f"Simulation time: {results['simulation_time']:.2f}")
    print(f"Sender: {results['sender']}")
    print(f"Receiver: {results['receiver']}")
