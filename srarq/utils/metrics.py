"""
Metrics Collection and Calculation

This module tracks emulator-level counters for a simulation run:
messages generated and delivered, timer activity and end-to-end
delivery latency.
"""

from typing import List, Optional, Dict
import statistics

from config import PAYLOAD_SIZE


class MetricsCollector:
    """
    Collects and calculates performance metrics for the simulation.

    Attributes:
        start_time: Simulation start time
        end_time: Simulation end time
    """

    def __init__(self):
        """Initialize metrics collector."""
        self.start_time: Optional[float] = None
        self.end_time: Optional[float] = None

        # Application layer
        self.messages_generated = 0
        self.messages_accepted = 0
        self.messages_delivered = 0
        self.bytes_delivered = 0

        # Channel
        self.packets_to_layer3 = 0
        self.packets_arrived = 0

        # Timers
        self.timer_starts = 0
        self.timer_stops = 0
        self.timer_interrupts = 0
        self.invalid_timer_operations = 0

        # Submission-to-delivery latency samples
        self.latency_samples: List[float] = []

    def start(self, time: float):
        """Mark simulation start."""
        self.start_time = time

    def finish(self, time: float):
        """Mark simulation end."""
        self.end_time = time

    def record_message_generated(self, accepted: bool):
        """Record a message handed to the sender."""
        self.messages_generated += 1
        if accepted:
            self.messages_accepted += 1

    def record_message_delivered(self, payload_bytes: int = PAYLOAD_SIZE,
                                 latency: Optional[float] = None):
        """
        Record a payload delivered to the receiving application.

        Args:
            payload_bytes: Delivered payload bytes
            latency: Time since the message was accepted by the sender
        """
        self.messages_delivered += 1
        self.bytes_delivered += payload_bytes
        if latency is not None:
            self.latency_samples.append(latency)

    def record_packet_to_layer3(self):
        """Record a packet handed to the channel."""
        self.packets_to_layer3 += 1

    def record_packet_arrived(self):
        """Record a packet arriving at an endpoint."""
        self.packets_arrived += 1

    def record_timer_start(self):
        self.timer_starts += 1

    def record_timer_stop(self):
        self.timer_stops += 1

    def record_timer_interrupt(self):
        self.timer_interrupts += 1

    def record_invalid_timer_operation(self):
        """Record a start on an armed timer or a stop on an idle one."""
        self.invalid_timer_operations += 1

    def calculate_throughput(self) -> float:
        """
        Delivered messages per unit of simulated time.

        Returns:
            Messages per time unit
        """
        if self.start_time is None or self.end_time is None:
            return 0.0

        total_time = self.end_time - self.start_time
        if total_time <= 0:
            return 0.0

        return self.messages_delivered / total_time

    def calculate_delivery_ratio(self) -> float:
        """Fraction of accepted messages that reached the application."""
        if self.messages_accepted <= 0:
            return 0.0
        return self.messages_delivered / self.messages_accepted

    def get_latency_statistics(self) -> Dict[str, float]:
        """
        Get delivery latency statistics.

        Returns:
            Dictionary with min, max, mean, median, stdev latency
        """
        if not self.latency_samples:
            return {
                'min': 0, 'max': 0, 'mean': 0,
                'median': 0, 'stdev': 0, 'samples': 0
            }

        return {
            'min': min(self.latency_samples),
            'max': max(self.latency_samples),
            'mean': statistics.mean(self.latency_samples),
            'median': statistics.median(self.latency_samples),
            'stdev': statistics.stdev(self.latency_samples) if len(self.latency_samples) > 1 else 0,
            'samples': len(self.latency_samples)
        }

    def get_summary(self) -> Dict:
        """
        Get comprehensive metrics summary.

        Returns:
            Dictionary with all metrics
        """
        total_time = 0
        if self.start_time is not None and self.end_time is not None:
            total_time = self.end_time - self.start_time

        return {
            'total_time': total_time,
            'messages_generated': self.messages_generated,
            'messages_accepted': self.messages_accepted,
            'messages_delivered': self.messages_delivered,
            'bytes_delivered': self.bytes_delivered,
            'throughput': self.calculate_throughput(),
            'delivery_ratio': self.calculate_delivery_ratio(),
            'packets_to_layer3': self.packets_to_layer3,
            'packets_arrived': self.packets_arrived,
            'timer_starts': self.timer_starts,
            'timer_stops': self.timer_stops,
            'timer_interrupts': self.timer_interrupts,
            'invalid_timer_operations': self.invalid_timer_operations,
            'latency': self.get_latency_statistics()
        }

    def to_csv_row(self) -> Dict:
        """
        Get metrics as a flat dictionary suitable for CSV export.

        Returns:
            Dictionary with flattened metrics
        """
        summary = self.get_summary()
        latency = summary.pop('latency')

        flat = {**summary}
        for key, value in latency.items():
            flat[f'latency_{key}'] = value

        return flat

    def reset(self):
        """Reset all metrics."""
        self.start_time = None
        self.end_time = None
        self.messages_generated = 0
        self.messages_accepted = 0
        self.messages_delivered = 0
        self.bytes_delivered = 0
        self.packets_to_layer3 = 0
        self.packets_arrived = 0
        self.timer_starts = 0
        self.timer_stops = 0
        self.timer_interrupts = 0
        self.invalid_timer_operations = 0
        self.latency_samples.clear()
