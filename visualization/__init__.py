"""
Visualization package - Plots of sweep results.

Contains:
- Heatmap of retransmissions over loss and corruption probability
"""

from .retransmission_heatmap import RetransmissionHeatmap
