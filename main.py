#!/usr/bin/env python3
"""
Selective Repeat ARQ Simulator - Main Entry Point

This is the main CLI interface for the SR ARQ emulator.
It provides options for:
- Single simulation runs
- Parameter sweep over loss and corruption probabilities
- Visualization generation

Usage:
    python main.py --single --messages 1000 --loss 0.2 --corrupt 0.2 --trace 1
    python main.py --sweep --runs 5
    python main.py --visualize --csv results.csv
"""

import argparse
import os
import sys
import time

# Ensure project root is in path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from config import (
    NUM_MESSAGES, LOSS_PROB, CORRUPT_PROB, MESSAGE_INTERVAL, TRACE,
    RNG_SEED_BASE, RUNS_PER_CONFIGURATION, SWEEP_MESSAGES, RESULTS_CSV,
    PLOTS_DIR
)


def run_single_simulation(args):
    """Run a single simulation with specified parameters."""
    from simulation.simulator import Simulator, SimulatorConfig

    config = SimulatorConfig(
        num_messages=args.messages if args.messages is not None else NUM_MESSAGES,
        loss_prob=args.loss,
        corrupt_prob=args.corrupt,
        message_interval=args.interval,
        seed=args.seed,
        trace=args.trace
    )

    print("=" * 60)
    print("SELECTIVE REPEAT NETWORK SIMULATOR")
    print("=" * 60)
    print(f"\nConfiguration:")
    print(f"  Messages to simulate: {config.num_messages}")
    print(f"  Loss probability: {config.loss_prob:.6f}")
    print(f"  Corruption probability: {config.corrupt_prob:.6f}")
    print(f"  Average time between messages: {config.message_interval:.6f}")
    print(f"  Window size: {config.window_size}")
    print(f"  Trace: {config.trace}")
    print(f"  Seed: {config.seed}")

    print("\nRunning simulation...")

    sim = Simulator(config)
    start_time = time.time()
    results = sim.run()
    elapsed = time.time() - start_time

    metrics = results['metrics']
    sender = results['sender']
    receiver = results['receiver']

    print("\n" + "=" * 60)
    print("RESULTS")
    print("=" * 60)

    print(f"\nTransfer Status:")
    print(f"  Simulation Time: {results['simulation_time']:.4f}")
    print(f"  Complete: {results['complete']}")
    print(f"  Data Valid: {results['verification']['valid']}")
    print(f"  Real Time: {elapsed:.2f} s")

    print(f"\nSender (A):")
    print(f"  Messages generated: {metrics['messages_generated']}")
    print(f"  Window full (dropped): {sender['window_full']}")
    print(f"  Total ACKs received: {sender['total_acks_received']}")
    print(f"  New ACKs: {sender['new_acks']}")
    print(f"  Packets resent: {sender['packets_resent']}")

    print(f"\nReceiver (B):")
    print(f"  Packets received: {receiver['packets_received']}")
    print(f"  Messages delivered: {metrics['messages_delivered']}")
    print(f"  Out of order: {receiver['out_of_order_packets']}")
    print(f"  Duplicates: {receiver['duplicate_packets']}")

    if metrics['latency']['samples'] > 0:
        print(f"\nDelivery Latency:")
        print(f"  Mean: {metrics['latency']['mean']:.2f}")
        print(f"  Max: {metrics['latency']['max']:.2f}")

    return results


def run_parameter_sweep(args):
    """Run parameter sweep over loss and corruption probabilities."""
    from simulation.runner import BatchRunner

    print("=" * 60)
    print("PARAMETER SWEEP")
    print("=" * 60)

    if args.quick:
        runner = BatchRunner(
            loss_probs=[0.0, 0.2, 0.4],
            corrupt_probs=[0.0, 0.2, 0.4],
            runs_per_config=2,
            num_messages=50,
            output_file=args.output or RESULTS_CSV
        )
    else:
        runner = BatchRunner(
            runs_per_config=args.runs,
            num_messages=args.messages if args.messages is not None else SWEEP_MESSAGES,
            output_file=args.output or RESULTS_CSV
        )

    print(f"\nConfiguration:")
    print(f"  Loss probabilities: {runner.loss_probs}")
    print(f"  Corruption probabilities: {runner.corrupt_probs}")
    print(f"  Runs per config: {runner.runs_per_config}")
    print(f"  Messages per run: {runner.num_messages}")
    print(f"  Total simulations: {runner.total_runs}")

    if args.parallel:
        runner.run_parallel(max_workers=args.workers)
    else:
        runner.run_sequential()

    runner.save_results()

    print("\n" + "=" * 60)
    print("AGGREGATED RESULTS")
    print("=" * 60)
    print(runner.get_aggregated_results().to_string(index=False))

    return runner.results


def generate_visualizations(args):
    """Generate visualization plots."""
    print("=" * 60)
    print("GENERATING VISUALIZATIONS")
    print("=" * 60)

    csv_file = args.csv or RESULTS_CSV

    if not os.path.exists(csv_file):
        print(f"Error: Results file not found: {csv_file}")
        print("Run a parameter sweep first: python main.py --sweep")
        return

    from visualization.retransmission_heatmap import RetransmissionHeatmap
    heatmap = RetransmissionHeatmap(csv_file=csv_file)
    print(f"Loaded {len(heatmap.results)} results from {csv_file}")

    resent_file = heatmap.plot(
        output_file=os.path.join(PLOTS_DIR, 'retransmission_heatmap.png')
    )
    latency_file = heatmap.plot(
        output_file=os.path.join(PLOTS_DIR, 'latency_heatmap.png'),
        metric='latency_mean',
        title="Mean Delivery Latency",
        cmap='magma'
    )

    print(f"  Retransmissions: {resent_file}")
    print(f"  Latency: {latency_file}")


def show_config(args):
    """Display current configuration."""
    import config as cfg

    print("=" * 60)
    print("SIMULATOR CONFIGURATION")
    print("=" * 60)

    print(f"\nProtocol:")
    print(f"  Window Size: {cfg.WINDOW_SIZE}")
    print(f"  Sequence Space: {cfg.SEQ_SPACE}")
    print(f"  Retransmission Timeout: {cfg.RTT}")
    print(f"  Payload: {cfg.PAYLOAD_SIZE} bytes")

    print(f"\nEmulator Defaults:")
    print(f"  Messages: {cfg.NUM_MESSAGES}")
    print(f"  Loss probability: {cfg.LOSS_PROB}")
    print(f"  Corruption probability: {cfg.CORRUPT_PROB}")
    print(f"  Message interval: {cfg.MESSAGE_INTERVAL}")
    print(f"  Average one-way delay: {cfg.calculate_average_delay()}")

    print(f"\nParameter Sweep:")
    print(f"  Loss probabilities: {cfg.LOSS_PROBS}")
    print(f"  Corruption probabilities: {cfg.CORRUPT_PROBS}")
    print(f"  Runs per config: {cfg.RUNS_PER_CONFIGURATION}")


def main():
    parser = argparse.ArgumentParser(
        description="Selective Repeat ARQ Simulator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  Single simulation:
    python main.py --single --messages 1000 --loss 0.2 --corrupt 0.2

  Quick parameter sweep (for testing):
    python main.py --sweep --quick

  Parallel parameter sweep:
    python main.py --sweep --parallel --workers 4

  Generate visualizations:
    python main.py --visualize
        """
    )

    # Mode selection
    mode = parser.add_mutually_exclusive_group(required=True)
    mode.add_argument('--single', action='store_true',
                      help='Run single simulation')
    mode.add_argument('--sweep', action='store_true',
                      help='Run parameter sweep')
    mode.add_argument('--visualize', action='store_true',
                      help='Generate visualizations')
    mode.add_argument('--config', action='store_true',
                      help='Show configuration')

    # Simulation options
    parser.add_argument('--messages', '-n', type=int, default=None,
                        help=f"Number of messages (default: {NUM_MESSAGES}, sweep: {SWEEP_MESSAGES})")
    parser.add_argument('--loss', '-l', type=float, default=LOSS_PROB,
                        help=f'Packet loss probability (default: {LOSS_PROB})')
    parser.add_argument('--corrupt', '-c', type=float, default=CORRUPT_PROB,
                        help=f'Packet corruption probability (default: {CORRUPT_PROB})')
    parser.add_argument('--interval', '-i', type=float, default=MESSAGE_INTERVAL,
                        help=f'Average time between messages (default: {MESSAGE_INTERVAL})')
    parser.add_argument('--seed', '-s', type=int, default=RNG_SEED_BASE,
                        help=f'Random seed (default: {RNG_SEED_BASE})')
    parser.add_argument('--trace', '-t', type=int, default=TRACE, choices=range(4),
                        help=f'Trace level 0-3 (default: {TRACE})')

    # Parameter sweep options
    parser.add_argument('--runs', '-r', type=int,
                        default=RUNS_PER_CONFIGURATION,
                        help=f'Runs per configuration (default: {RUNS_PER_CONFIGURATION})')
    parser.add_argument('--parallel', action='store_true',
                        help='Run simulations in parallel')
    parser.add_argument('--workers', type=int, default=None,
                        help='Number of parallel workers')
    parser.add_argument('--quick', action='store_true',
                        help='Quick sweep with a reduced grid')

    # Output options
    parser.add_argument('--output', '-o', type=str,
                        help='Output file path')
    parser.add_argument('--csv', type=str,
                        help='CSV file for visualization')

    args = parser.parse_args()

    if args.single:
        run_single_simulation(args)
    elif args.sweep:
        run_parameter_sweep(args)
    elif args.visualize:
        generate_visualizations(args)
    elif args.config:
        show_config(args)


if __name__ == "__main__":
    main()
