"""
test_cli.py - Tests for the Command Line Interface

Commands are invoked in-process with typer's CliRunner against a
simulated table written to a temporary directory.
"""

import pytest
from typer.testing import CliRunner

from efa_lab import FactorDataSimulator, __version__, fit_factor_model
from efa_lab.cli import app, print_model

runner = CliRunner()


@pytest.fixture
def table(two_factor_data, write_table):
    return str(write_table(two_factor_data))


class TestCommands:

    def test_scree(self, table):
        result = runner.invoke(app, ["scree", table])
        assert result.exit_code == 0
        assert "Eigenvalues" in result.output
        assert "Kaiser criterion" in result.output

    def test_scree_plots(self, table, tmp_path):
        plot, heatmap = tmp_path / "scree.png", tmp_path / "corr.png"
        result = runner.invoke(
            app, ["scree", table, "--plot", str(plot), "--heatmap", str(heatmap)]
        )
        assert result.exit_code == 0
        assert plot.exists()
        assert heatmap.exists()

    def test_vss(self, table):
        result = runner.invoke(app, ["vss", table, "-n", "3", "-r", "varimax", "-m", "ml"])
        assert result.exit_code == 0
        assert "Very Simple Structure" in result.output
        assert "MAP minimum" in result.output

    def test_fit(self, table):
        result = runner.invoke(app, ["fit", table, "-k", "2", "-r", "oblimin"])
        assert result.exit_code == 0
        assert "a_noisy" in result.output
        assert "Factor Correlations" in result.output
        assert "RMSR" in result.output

    def test_fit_plot(self, table, tmp_path):
        plot = tmp_path / "loadings.png"
        result = runner.invoke(app, ["fit", table, "-k", "2", "--plot", str(plot)])
        assert result.exit_code == 0
        assert plot.exists()

    def test_analyze(self, table):
        result = runner.invoke(app, ["analyze", table, "-k", "2", "-n", "3"])
        assert result.exit_code == 0
        assert "Eigenvalues" in result.output
        assert "Very Simple Structure" in result.output
        assert "Loadings" in result.output

    def test_demo(self):
        result = runner.invoke(app, ["demo", "--subjects", "300"])
        assert result.exit_code == 0
        assert "talkative" in result.output

    def test_version(self):
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert __version__ in result.output


class TestErrors:

    def test_too_many_factors(self, table):
        result = runner.invoke(app, ["fit", table, "-k", "6"])
        assert result.exit_code == 1
        assert "ConfigurationError" in result.output

    def test_missing_file(self, tmp_path):
        result = runner.invoke(app, ["scree", str(tmp_path / "missing.txt")])
        assert result.exit_code == 1
        assert "DataAcquisitionError" in result.output

    def test_vss_max_factors_too_large(self, table):
        result = runner.invoke(app, ["vss", table, "-n", "6"])
        assert result.exit_code == 1

    def test_unknown_rotation_rejected(self, table):
        result = runner.invoke(app, ["fit", table, "-k", "2", "-r", "geomin"])
        assert result.exit_code != 0


class TestPrinters:

    def test_model_without_sample_size(self, two_factor_loadings, capsys):
        corr = FactorDataSimulator(two_factor_loadings).population_correlation()
        print_model(fit_factor_model(corr, 2, method="ml"))
        out = capsys.readouterr().out
        assert "RMSR" in out
        assert "n/a" in out
