import logging
import os
from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np

from freqsev_cv import config

logger = logging.getLogger(__name__)

PLOTS_DIR = Path.cwd() / "plots"


def get_plots_dir(plots_dir=None):
    """
    Returns the directory charts are written to, creating it if needed.

    Defaults to ./plots under the current working directory.
    """
    plots_dir = Path(plots_dir) if plots_dir is not None else PLOTS_DIR
    if not plots_dir.exists():
        plots_dir.mkdir(parents=True, exist_ok=True)
        logger.info("Created directory: %s/", plots_dir)
    return plots_dir


def plot_cv_curve(
    score_matrix,
    selected=None,
    selected_1se=None,
    title="Cross-Validated Deviance",
    param_label="Complexity Parameter",
    filename=None,
    return_fig=False,
):
    """
    Plots the mean cross-validated deviance per grid value with +/- 1 standard
    error bars, marking the minimum-deviance and one-standard-error choices.

    Grid values are placed at equal spacing in grid order, so grids holding 0
    (an unpruned tree) plot as cleanly as log-spaced ones.

    Parameters:
    -----------
    score_matrix : grid_search.ScoreMatrix
    selected : float, optional
        Value chosen by the minimum rule
    selected_1se : float, optional
        Value chosen by the one-standard-error rule
    filename : str, optional
        File name to save the chart under; relative names go to the plots dir
    return_fig : bool, default False
        If True, returns the figure without saving or closing it

    Returns:
    --------
    If return_fig=True: matplotlib.figure.Figure object
    Otherwise: pd.DataFrame with the plotted summary
    """
    summary = score_matrix.summary()
    grid = list(summary.index)
    positions = np.arange(len(grid))

    fig, ax = plt.subplots(figsize=(config.PLOT_FIGSIZE_WIDTH, config.PLOT_FIGSIZE_HEIGHT))

    ax.errorbar(
        positions,
        summary["mean"],
        yerr=summary["std_err"],
        color="#1f77b4",
        marker="o",
        linewidth=2.5,
        markersize=7,
        capsize=4,
        label="Mean CV Deviance (+/- 1 SE)",
    )

    if selected is not None:
        ax.axvline(
            x=grid.index(selected),
            color="green",
            linestyle="--",
            linewidth=2,
            label=f"Minimum ({selected:g})",
        )
    if selected_1se is not None:
        ax.axvline(
            x=grid.index(selected_1se),
            color="red",
            linestyle=":",
            linewidth=2,
            label=f"One-SE Rule ({selected_1se:g})",
        )

    ax.set_xticks(positions)
    ax.set_xticklabels([f"{g:g}" for g in grid], rotation=45, ha="right")
    ax.set_xlabel(param_label, fontsize=11)
    ax.set_ylabel("Deviance per Observation", fontsize=11)
    ax.set_title(title, fontsize=13, fontweight="bold")
    ax.grid(axis="y", linestyle="--", alpha=0.5)
    ax.legend(loc="upper right", fontsize=10)

    plt.tight_layout()

    if return_fig:
        return fig

    if filename:
        if not os.path.isabs(filename):
            filename = str(get_plots_dir() / Path(filename).name)
        fig.savefig(filename, dpi=config.PLOT_DPI, bbox_inches="tight")
        logger.info("Saved CV curve to %s", filename)
    plt.close(fig)

    return summary
