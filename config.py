"""
Configuration file for the Selective Repeat ARQ Simulator.
Contains the protocol constants and the emulator defaults.
"""

import os

# =============================================================================
# PROTOCOL PARAMETERS
# =============================================================================

# Retransmission timeout (simulated time units)
RTT = 16.0

# Maximum number of buffered unacknowledged packets
WINDOW_SIZE = 6

# Sequence space, must be at least WINDOW_SIZE * 2 for SR
SEQ_SPACE = 12

# Fills header fields that are not being used
NOT_IN_USE = -1

# Fixed application payload (bytes)
PAYLOAD_SIZE = 20

# Packet header: seqnum(4) + acknum(4) + checksum(4)
PACKET_HEADER_SIZE = 12

# =============================================================================
# EMULATOR PARAMETERS
# =============================================================================

# Number of messages generated by the sending application
NUM_MESSAGES = 1000

# Probability that a packet is lost / corrupted in the channel
LOSS_PROB = 0.2
CORRUPT_PROB = 0.2

# Average time between messages from the sending application
MESSAGE_INTERVAL = 10.0

# One-way delay is 1 + 9 * U(0, 1), average five time units
MIN_CHANNEL_DELAY = 1.0
CHANNEL_DELAY_SPREAD = 9.0

# Corruption overwrites (values used by the emulator)
CORRUPT_BYTE = ord('Z')
CORRUPT_HEADER_VALUE = 999999

# Trace level: 0 quiet, 1 protocol events, 2-3 emulator internals
TRACE = 1

# Default RNG seed; sweep runs offset it per grid point and run
RNG_SEED_BASE = 42

# Simulation time limit - failsafe
MAX_SIMULATION_TIME = 1_000_000.0

# =============================================================================
# PARAMETER SWEEP CONFIGURATION
# =============================================================================

LOSS_PROBS = [0.0, 0.1, 0.2, 0.3, 0.4]
CORRUPT_PROBS = [0.0, 0.1, 0.2, 0.3, 0.4]
RUNS_PER_CONFIGURATION = 5
SWEEP_MESSAGES = 200

# =============================================================================
# LOGGING
# =============================================================================

LOG_LEVEL_DEBUG = 0
LOG_LEVEL_INFO = 1
LOG_LEVEL_WARNING = 2
LOG_LEVEL_ERROR = 3

DEFAULT_LOG_LEVEL = LOG_LEVEL_WARNING

# =============================================================================
# OUTPUT PATHS
# =============================================================================

BASE_DIR = os.path.dirname(os.path.abspath(__file__))
DATA_DIR = os.path.join(BASE_DIR, "data")
OUTPUT_DIR = os.path.join(DATA_DIR, "output")
PLOTS_DIR = os.path.join(OUTPUT_DIR, "plots")

RESULTS_CSV = os.path.join(OUTPUT_DIR, "results.csv")

# =============================================================================
# DERIVED PARAMETERS
# =============================================================================

def validate_sequence_space(window_size, seq_space):
    """
    Check that a sequence space can disambiguate new packets from
    retransmissions for the given window size.
    """
    if window_size < 1:
        raise ValueError(f"Window size must be positive, got {window_size}")
    if seq_space < 2 * window_size:
        raise ValueError(
            f"Sequence space {seq_space} too small for window {window_size} "
            f"(need at least {2 * window_size})"
        )


def trace_to_log_level(trace):
    """Map an emulator trace level (0-3) onto a log level."""
    if trace <= 0:
        return LOG_LEVEL_WARNING
    if trace == 1:
        return LOG_LEVEL_INFO
    return LOG_LEVEL_DEBUG


def calculate_average_delay():
    """Average one-way channel delay for an idle channel."""
    return MIN_CHANNEL_DELAY + CHANNEL_DELAY_SPREAD / 2


# Print configuration summary
if __name__ == "__main__":
    print("=" * 60)
    print("SELECTIVE REPEAT ARQ SIMULATOR - CONFIGURATION")
    print("=" * 60)
    print(f"\nProtocol:")
    print(f"  Window Size: {WINDOW_SIZE}")
    print(f"  Sequence Space: {SEQ_SPACE}")
    print(f"  Timeout: {RTT}")
    print(f"  Payload: {PAYLOAD_SIZE} bytes")

    print(f"\nEmulator:")
    print(f"  Messages: {NUM_MESSAGES}")
    print(f"  Loss probability: {LOSS_PROB}")
    print(f"  Corruption probability: {CORRUPT_PROB}")
    print(f"  Message interval: {MESSAGE_INTERVAL}")
    print(f"  Average one-way delay: {calculate_average_delay()}")

    print(f"\nParameter Sweep:")
    print(f"  Loss probabilities: {LOSS_PROBS}")
    print(f"  Corruption probabilities: {CORRUPT_PROBS}")
    print(f"  Runs per config: {RUNS_PER_CONFIGURATION}")
