"""
Retransmission Heatmap Visualization

This module generates 2D heatmaps of mean retransmissions per delivered
message as a function of loss and corruption probability.
"""

import os
from typing import Optional, Tuple

import numpy as np
import pandas as pd
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
import seaborn as sns

from config import PLOTS_DIR


class RetransmissionHeatmap:
    """
    Generates heatmaps of a sweep metric over (loss, corruption).

    Attributes:
        results: One row per simulation run
        loss_probs: Sorted loss probabilities present in the results
        corrupt_probs: Sorted corruption probabilities present in the results
    """

    def __init__(
        self,
        results: Optional[pd.DataFrame] = None,
        csv_file: Optional[str] = None
    ):
        """
        Initialize heatmap generator.

        Args:
            results: DataFrame of sweep results
            csv_file: Path to CSV file with results
        """
        if results is not None:
            self.results = results
        elif csv_file:
            self.results = pd.read_csv(csv_file)
        else:
            self.results = pd.DataFrame()

        if self.results.empty:
            self.loss_probs = []
            self.corrupt_probs = []
        else:
            self.loss_probs = sorted(self.results['loss_prob'].unique())
            self.corrupt_probs = sorted(self.results['corrupt_prob'].unique())

    def create_matrix(self, metric: str = 'resent_per_message') -> Tuple[np.ndarray, Tuple[int, int]]:
        """
        Create matrix of mean metric values.

        Rows follow loss probability, columns corruption probability.

        Returns:
            Tuple of (matrix, indices of the largest value)
        """
        means = self.results.groupby(['loss_prob', 'corrupt_prob'])[metric].mean()

        matrix = np.zeros((len(self.loss_probs), len(self.corrupt_probs)))
        for i, loss in enumerate(self.loss_probs):
            for j, corrupt in enumerate(self.corrupt_probs):
                if (loss, corrupt) in means.index:
                    matrix[i, j] = means.loc[(loss, corrupt)]

        worst = np.unravel_index(np.argmax(matrix), matrix.shape) if matrix.size else (0, 0)
        return matrix, (int(worst[0]), int(worst[1]))

    def plot(
        self,
        output_file: Optional[str] = None,
        metric: str = 'resent_per_message',
        title: str = "Retransmissions per Delivered Message",
        cmap: str = 'viridis'
    ) -> str:
        """
        Render the heatmap to a file.

        Args:
            output_file: Path of the image (default under PLOTS_DIR)
            metric: Result column to plot
            title: Plot title
            cmap: Matplotlib colormap

        Returns:
            Path of the written image
        """
        if self.results.empty:
            raise ValueError("No results to plot")

        output_file = output_file or os.path.join(PLOTS_DIR, f'{metric}_heatmap.png')
        directory = os.path.dirname(output_file)
        if directory:
            os.makedirs(directory, exist_ok=True)

        matrix, worst = self.create_matrix(metric)

        # Reverse rows so larger loss probabilities are at the top
        matrix_display = np.flipud(matrix)
        loss_display = list(reversed(self.loss_probs))
        worst = (len(self.loss_probs) - 1 - worst[0], worst[1])

        fig, ax = plt.subplots(figsize=(8, 6))
        sns.heatmap(
            matrix_display,
            annot=True,
            fmt='.2f',
            cmap=cmap,
            xticklabels=[f'{p:.2f}' for p in self.corrupt_probs],
            yticklabels=[f'{p:.2f}' for p in loss_display],
            ax=ax,
            cbar_kws={'label': metric.replace('_', ' ')}
        )

        # Highlight worst grid point
        ax.add_patch(plt.Rectangle(
            (worst[1], worst[0]), 1, 1,
            fill=False, edgecolor='red', linewidth=3
        ))

        ax.set_xlabel('Corruption probability', fontsize=12)
        ax.set_ylabel('Loss probability', fontsize=12)
        ax.set_title(title, fontsize=14, fontweight='bold')

        fig.tight_layout()
        fig.savefig(output_file, dpi=150)
        plt.close(fig)

        return output_file
