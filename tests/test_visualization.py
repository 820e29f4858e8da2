"""
test_visualization.py - Smoke Tests for Plotting

Figures are rendered with the Agg backend (see conftest.py) and written to
a temporary directory.
"""

import pytest
import numpy as np
import matplotlib.pyplot as plt

from efa_lab import eigen_decomposition, fit_factor_model, very_simple_structure
from efa_lab.visualization import (
    cluster_order,
    plot_correlation_heatmap,
    plot_loadings,
    plot_scree,
    plot_vss,
    save_figure,
)


@pytest.fixture(autouse=True)
def close_figures():
    yield
    plt.close("all")


class TestClusterOrder:

    def test_groups_correlated_variables(self, two_factor_corr):
        order = list(cluster_order(two_factor_corr))
        assert sorted(order) == list(range(6))
        b_positions = sorted(order.index(i) for i in (3, 4, 5))
        assert b_positions[-1] - b_positions[0] == 2


class TestPlots:

    def test_heatmap(self, two_factor_corr):
        fig = plot_correlation_heatmap(two_factor_corr, annotate=True)
        labels = [t.get_text() for t in fig.axes[0].get_xticklabels()]
        assert set(labels) == set(two_factor_corr.columns)

    def test_scree(self, two_factor_corr):
        fig = plot_scree(eigen_decomposition(two_factor_corr))
        line = fig.axes[0].get_lines()[0]
        assert len(line.get_xdata()) == 6

    def test_vss(self, two_factor_corr):
        fig = plot_vss(very_simple_structure(two_factor_corr, max_factors=2))
        assert len(fig.axes[0].get_lines()) == 2

    def test_loadings(self, two_factor_corr):
        fig = plot_loadings(fit_factor_model(two_factor_corr, 2))
        assert fig.axes[0].get_xlabel() == "Factor 1"

    @pytest.mark.parametrize("factors", [(0, 0), (0, 2)])
    def test_loadings_bad_factors(self, two_factor_corr, factors):
        model = fit_factor_model(two_factor_corr, 2)
        with pytest.raises(ValueError):
            plot_loadings(model, factors=factors)


class TestSaveFigure:

    def test_writes_file(self, two_factor_corr, tmp_path):
        path = save_figure(plot_scree(eigen_decomposition(two_factor_corr)), tmp_path / "scree.png")
        assert path.exists()
        assert path.stat().st_size > 0
