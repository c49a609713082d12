"""
Batch Runner for Parameter Sweep Simulations

This module runs the emulator over a grid of loss and corruption
probabilities, several runs per grid point, and collects the results
in a pandas DataFrame.
"""

import os
import time
from typing import Optional, Callable, List, Dict
from dataclasses import dataclass
from concurrent.futures import ProcessPoolExecutor, as_completed
import multiprocessing

import pandas as pd
from tqdm import tqdm

from config import (
    LOSS_PROBS, CORRUPT_PROBS, RUNS_PER_CONFIGURATION, SWEEP_MESSAGES,
    RNG_SEED_BASE, RESULTS_CSV
)
from .simulator import Simulator, SimulatorConfig


@dataclass
class RunConfig:
    """Configuration for a single simulation run."""
    loss_prob: float
    corrupt_prob: float
    run_id: int
    seed: int
    num_messages: int


def run_single_simulation(run_config: RunConfig) -> Dict:
    """
    Run a single simulation with given configuration.

    This function is designed to be called in a separate process.

    Args:
        run_config: Configuration for this run

    Returns:
        Flat dictionary with results
    """
    config = SimulatorConfig(
        num_messages=run_config.num_messages,
        loss_prob=run_config.loss_prob,
        corrupt_prob=run_config.corrupt_prob,
        seed=run_config.seed,
        trace=0
    )

    results = Simulator(config).run()
    metrics = results['metrics']
    sender = results['sender']
    delivered = metrics['messages_delivered']

    return {
        'loss_prob': run_config.loss_prob,
        'corrupt_prob': run_config.corrupt_prob,
        'run_id': run_config.run_id,
        'seed': run_config.seed,
        'messages_generated': metrics['messages_generated'],
        'messages_accepted': metrics['messages_accepted'],
        'messages_delivered': delivered,
        'window_full': sender['window_full'],
        'packets_resent': sender['packets_resent'],
        'new_acks': sender['new_acks'],
        'duplicate_acks': sender['duplicate_acks'],
        'resent_per_message': sender['packets_resent'] / delivered if delivered else 0.0,
        'throughput': metrics['throughput'],
        'latency_mean': metrics['latency']['mean'],
        'total_time': results['simulation_time'],
        'data_valid': results['verification']['valid'],
        'complete': results['complete']
    }


class BatchRunner:
    """
    Batch Runner for parameter sweep simulations.

    Executes every (loss, corruption) combination with multiple runs each.

    Attributes:
        loss_probs: Loss probabilities to test
        corrupt_probs: Corruption probabilities to test
        runs_per_config: Number of runs per configuration
        num_messages: Messages generated per run
    """

    def __init__(
        self,
        loss_probs: Optional[List[float]] = None,
        corrupt_probs: Optional[List[float]] = None,
        runs_per_config: int = RUNS_PER_CONFIGURATION,
        num_messages: int = SWEEP_MESSAGES,
        output_file: str = RESULTS_CSV,
        on_progress: Optional[Callable[[int, int, dict], None]] = None
    ):
        """
        Initialize batch runner.

        Args:
            loss_probs: Loss probabilities (default from config)
            corrupt_probs: Corruption probabilities (default from config)
            runs_per_config: Number of runs per grid point
            num_messages: Messages generated per run
            output_file: Path to output CSV file
            on_progress: Callback for progress updates
        """
        self.loss_probs = loss_probs if loss_probs is not None else LOSS_PROBS
        self.corrupt_probs = corrupt_probs if corrupt_probs is not None else CORRUPT_PROBS
        self.runs_per_config = runs_per_config
        self.num_messages = num_messages
        self.output_file = output_file
        self.on_progress = on_progress

        self.results = pd.DataFrame()

        self.total_runs = (len(self.loss_probs) *
                           len(self.corrupt_probs) *
                           self.runs_per_config)
        self.completed_runs = 0
        self.start_time = 0.0

    def _generate_run_configs(self) -> List[RunConfig]:
        """Generate all run configurations."""
        configs = []

        for i, loss_prob in enumerate(self.loss_probs):
            for j, corrupt_prob in enumerate(self.corrupt_probs):
                for run_id in range(self.runs_per_config):
                    # Unique seed for each run
                    seed = RNG_SEED_BASE + i * 1000 + j * 100 + run_id * 10000

                    configs.append(RunConfig(
                        loss_prob=loss_prob,
                        corrupt_prob=corrupt_prob,
                        run_id=run_id,
                        seed=seed,
                        num_messages=self.num_messages
                    ))

        return configs

    def _record(self, rows: List[Dict], row: Dict):
        rows.append(row)
        self.completed_runs += 1
        if self.on_progress:
            self.on_progress(self.completed_runs, self.total_runs, row)

    def run_sequential(self) -> pd.DataFrame:
        """
        Run all simulations sequentially.

        Returns:
            DataFrame with one row per run
        """
        configs = self._generate_run_configs()
        rows: List[Dict] = []
        self.completed_runs = 0
        self.start_time = time.time()

        for config in tqdm(configs, desc="Simulations"):
            self._record(rows, run_single_simulation(config))

        self.results = pd.DataFrame(rows)
        total_time = time.time() - self.start_time
        print(f"Completed {self.total_runs} simulations in {total_time:.1f}s")

        return self.results

    def run_parallel(self, max_workers: Optional[int] = None) -> pd.DataFrame:
        """
        Run simulations in parallel using multiprocessing.

        Args:
            max_workers: Number of parallel workers (default: CPU count)

        Returns:
            DataFrame with one row per run
        """
        if max_workers is None:
            max_workers = multiprocessing.cpu_count()

        configs = self._generate_run_configs()
        rows: List[Dict] = []
        self.completed_runs = 0
        self.start_time = time.time()

        print(f"Running {self.total_runs} simulations with {max_workers} workers...")

        with ProcessPoolExecutor(max_workers=max_workers) as executor:
            futures = [executor.submit(run_single_simulation, c) for c in configs]
            for future in tqdm(as_completed(futures), total=len(futures),
                               desc="Simulations"):
                self._record(rows, future.result())

        self.results = (pd.DataFrame(rows)
                        .sort_values(['loss_prob', 'corrupt_prob', 'run_id'])
                        .reset_index(drop=True))
        total_time = time.time() - self.start_time
        print(f"Completed {self.total_runs} simulations in {total_time:.1f}s")

        return self.results

    def save_results(self, filepath: Optional[str] = None):
        """
        Save results to CSV file.

        Args:
            filepath: Output file path (default: self.output_file)
        """
        filepath = filepath or self.output_file

        if self.results.empty:
            print("No results to save!")
            return

        directory = os.path.dirname(filepath)
        if directory:
            os.makedirs(directory, exist_ok=True)

        self.results.to_csv(filepath, index=False)
        print(f"Results saved to: {filepath}")

    def get_aggregated_results(self) -> pd.DataFrame:
        """
        Get aggregated results by (loss, corruption) pair.

        Returns:
            DataFrame with mean/std statistics per grid point
        """
        if self.results.empty:
            return pd.DataFrame()

        grouped = self.results.groupby(['loss_prob', 'corrupt_prob'])
        aggregated = grouped.agg(
            runs=('run_id', 'count'),
            mean_delivered=('messages_delivered', 'mean'),
            mean_resent=('packets_resent', 'mean'),
            std_resent=('packets_resent', 'std'),
            mean_resent_per_message=('resent_per_message', 'mean'),
            mean_window_full=('window_full', 'mean'),
            mean_latency=('latency_mean', 'mean'),
            all_valid=('data_valid', 'all')
        )
        return aggregated.reset_index()
