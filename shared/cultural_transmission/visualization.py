"""
Plots for replicate trajectories.

Each run is drawn as a thin line and the mean across runs as a thick
line on top, with the y axis fixed to [0, 1].
"""

import numpy as np
import matplotlib.pyplot as plt
from matplotlib.axes import Axes
from typing import Optional

from .parameters import ModelMismatchError
from .replication import TrajectoryResult


plt.rcParams.update({
    'font.size': 10,
    'axes.labelsize': 11,
    'axes.titlesize': 11,
    'xtick.labelsize': 9,
    'ytick.labelsize': 9,
    'legend.fontsize': 9,
    'figure.dpi': 150,
    'savefig.dpi': 300,
    'savefig.bbox': 'tight',
})

COLOR_P = '#ff7f00'   # trait A
COLOR_Q = '#1f78b4'   # trait X


def _default_title(result: TrajectoryResult) -> str:
    params = ", ".join(
        f"{k}={v}" for k, v in result.parameters.items() if k not in ('N', 't_max')
    )
    return f"{result.variant.value} (N={result.parameters.get('N')}; {params})"


def plot_multiple_runs(
    result: TrajectoryResult,
    ax: Optional[Axes] = None,
    title: Optional[str] = None,
    show_ci: bool = False,
) -> Axes:
    """
    Plot every run of trait A in grey and the mean across runs in black.

    Parameters
    ----------
    result : TrajectoryResult
        Single-trajectory result.
    ax : Axes, optional
        Matplotlib axes (creates new if None).
    title : str, optional
        Plot title. Defaults to the variant and its parameters.
    show_ci : bool
        Shade the 95% confidence band of the mean.

    Returns
    -------
    Axes
    """
    if result.is_paired:
        raise ModelMismatchError(
            f"{result.variant.value} has paired trajectories; use plot_multiple_runs_p_q"
        )
    if ax is None:
        fig, ax = plt.subplots(figsize=(8, 4))

    gens = result.generations
    for run in range(result.n_runs):
        ax.plot(gens, result.run_trajectory(run), color='grey', linewidth=0.8, alpha=0.5)
    ax.plot(gens, result.mean_trajectory(), color='black', linewidth=2, label='Mean')
    if show_ci:
        lower, upper = result.confidence_band()
        ax.fill_between(gens, lower, upper, color='black', alpha=0.15, label='95% CI')

    ax.set_ylim(0, 1)
    ax.set_xlim(gens[0], max(gens[-1], gens[0] + 1))
    ax.set_xlabel('Generation')
    ax.set_ylabel('p (proportion of individuals with trait A)')
    ax.set_title(title if title is not None else _default_title(result))
    ax.legend(loc='best', framealpha=0.9)
    return ax


def plot_multiple_runs_p_q(
    result: TrajectoryResult,
    ax: Optional[Axes] = None,
    title: Optional[str] = None,
) -> Axes:
    """Plot p (trait A) and q (trait X) for every run, with their means."""
    if not result.is_paired:
        raise ModelMismatchError(
            f"{result.variant.value} has single trajectories; use plot_multiple_runs"
        )
    if ax is None:
        fig, ax = plt.subplots(figsize=(8, 4))

    gens = result.generations
    for run in range(result.n_runs):
        ax.plot(gens, result.run_trajectory(run, "p"), color=COLOR_P, linewidth=0.8, alpha=0.3)
        ax.plot(gens, result.run_trajectory(run, "q"), color=COLOR_Q, linewidth=0.8, alpha=0.3)
    ax.plot(gens, result.mean_trajectory("p"), color=COLOR_P, linewidth=2,
            label='p (trait A)')
    ax.plot(gens, result.mean_trajectory("q"), color=COLOR_Q, linewidth=2,
            label='q (trait X)')

    ax.set_ylim(0, 1)
    ax.set_xlim(gens[0], max(gens[-1], gens[0] + 1))
    ax.set_xlabel('Generation')
    ax.set_ylabel('Proportion of individuals')
    ax.set_title(title if title is not None else _default_title(result))
    ax.legend(loc='best', framealpha=0.9)
    return ax


def plot_variance_by_generation(
    results: list,
    ax: Optional[Axes] = None,
) -> Axes:
    """Across-run variance of p per generation, one line per result (e.g. per N)."""
    if ax is None:
        fig, ax = plt.subplots(figsize=(6, 4))
    for result in results:
        ax.plot(result.generations, np.var(result.p, axis=1),
                label=f"N={result.parameters.get('N')}")
    ax.set_xlabel('Generation')
    ax.set_ylabel('Variance of p across runs')
    ax.legend(loc='best', framealpha=0.9)
    return ax
