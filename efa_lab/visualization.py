"""
visualization.py - Plots for Exploratory Factor Analysis
========================================================

Seaborn-styled matplotlib figures for each stage of an analysis:
correlation heatmap, scree plot, VSS curves and factor-pair loading
scatters. Every function returns the Figure; saving or showing it is left
to the caller.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Sequence, Union

import matplotlib.pyplot as plt
import numpy as np
import seaborn as sns
from scipy.cluster.hierarchy import leaves_list, linkage
from scipy.spatial.distance import squareform

from .types import CorrelationMatrix, EigenDecomposition, FactorModel, VSSResult


def set_style():
    """Set consistent plotting style."""
    sns.set_style("whitegrid")
    sns.set_context("notebook", font_scale=1.0)
    plt.rcParams['figure.dpi'] = 100
    plt.rcParams['savefig.dpi'] = 300


def cluster_order(corr: CorrelationMatrix) -> np.ndarray:
    """
    Variable order from average-linkage clustering on 1 - r.

    Returns
    -------
    np.ndarray
        Permutation of range(p) placing correlated variables together.
    """
    dist = 1.0 - np.array(corr.matrix)
    np.fill_diagonal(dist, 0.0)
    dist = np.clip(0.5 * (dist + dist.T), 0.0, None)
    return leaves_list(linkage(squareform(dist, checks=False), method="average"))


def plot_correlation_heatmap(
    corr: CorrelationMatrix,
    reorder: bool = True,
    annotate: bool = False,
    title: str = "Correlation Matrix",
):
    """Heatmap of the correlation matrix, optionally clustered."""
    set_style()
    frame = corr.to_frame()
    if reorder:
        order = cluster_order(corr)
        frame = frame.iloc[order, order]

    size = max(6.0, 0.3 * corr.p)
    fig, ax = plt.subplots(figsize=(size, size * 0.85))
    sns.heatmap(
        frame,
        ax=ax,
        vmin=-1.0,
        vmax=1.0,
        center=0.0,
        cmap="RdBu_r",
        square=True,
        annot=annotate,
        fmt=".2f",
        cbar_kws={"shrink": 0.7},
    )
    ax.set_title(title, fontweight='bold', fontsize=14)
    fig.tight_layout()
    return fig


def plot_scree(
    eig: EigenDecomposition,
    kaiser_line: bool = True,
    title: str = "Scree Plot",
):
    """Eigenvalues in descending order against their index."""
    set_style()
    values = eig.eigenvalues
    x = np.arange(1, len(values) + 1)

    fig, ax = plt.subplots(figsize=(8, 5))
    ax.plot(x, values, 'o-', linewidth=2, markersize=6, color='#3498db')
    if kaiser_line:
        ax.axhline(1.0, color='black', linestyle='--', linewidth=1, alpha=0.6,
                   label='Eigenvalue = 1')
        ax.legend()

    ax.set_xlabel('Component', fontsize=12)
    ax.set_ylabel('Eigenvalue', fontsize=12)
    ax.set_title(title, fontweight='bold', fontsize=14)
    ax.set_xticks(x)
    fig.tight_layout()
    return fig


def plot_vss(result: VSSResult, title: str = "Very Simple Structure"):
    """Complexity 1 and 2 fit against the number of factors."""
    set_style()
    x = np.arange(1, result.max_factors + 1)

    fig, ax = plt.subplots(figsize=(8, 5))
    ax.plot(x, result.complexity_1, 'o-', linewidth=2, label='Complexity 1')
    ax.plot(x, result.complexity_2, 's-', linewidth=2, label='Complexity 2')
    ax.set_xlabel('Number of Factors', fontsize=12)
    ax.set_ylabel('Fit', fontsize=12)
    ax.set_ylim(0.0, 1.0)
    ax.set_xticks(x)
    ax.set_title(
        f"{title} ({result.rotation.value}, {result.method.value})",
        fontweight='bold', fontsize=14,
    )
    ax.legend()
    fig.tight_layout()
    return fig


def plot_loadings(
    model: FactorModel,
    factors: Sequence[int] = (0, 1),
    labels: bool = True,
    title: Optional[str] = None,
):
    """
    Scatter of two factors' loadings, one labeled point per variable.

    Parameters
    ----------
    model : FactorModel
    factors : (int, int), default=(0, 1)
        Zero-based factor indices for the x and y axes.
    labels : bool, default=True
        Annotate points with variable names.
    """
    i, j = factors
    if not (0 <= i < model.k and 0 <= j < model.k) or i == j:
        raise ValueError(
            f"factors must be two distinct indices in [0, {model.k}), got {tuple(factors)}"
        )

    set_style()
    L = model.loadings
    fig, ax = plt.subplots(figsize=(7, 7))
    ax.scatter(L[:, i], L[:, j], s=30, color='#2c3e50')
    if labels:
        for name, x, y in zip(model.columns, L[:, i], L[:, j]):
            ax.annotate(name, (x, y), textcoords="offset points", xytext=(3, 3), fontsize=8)

    ax.axhline(0, color='black', linewidth=0.8, alpha=0.5)
    ax.axvline(0, color='black', linewidth=0.8, alpha=0.5)
    lim = max(1.0, float(np.max(np.abs(L[:, [i, j]]))) * 1.1)
    ax.set_xlim(-lim, lim)
    ax.set_ylim(-lim, lim)
    ax.set_xlabel(f'Factor {i + 1}', fontsize=12)
    ax.set_ylabel(f'Factor {j + 1}', fontsize=12)
    ax.set_title(
        title or f"Loadings ({model.rotation.value})", fontweight='bold', fontsize=14
    )
    fig.tight_layout()
    return fig


def save_figure(fig, path: Union[str, Path]) -> Path:
    """Write a figure to disk and close it."""
    path = Path(path)
    fig.savefig(path, bbox_inches='tight')
    plt.close(fig)
    return path
