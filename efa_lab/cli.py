"""
cli.py - Rich Command Line Interface for efa_lab

Runs each stage of an exploratory factor analysis from the terminal.
SOURCE is a URL or a path to a whitespace-delimited table with a header
row; it defaults to the personality dataset.

Usage:
    efa-lab --help
    efa-lab scree ratings.txt --plot scree.png
    efa-lab vss ratings.txt --max-factors 8 --rotation varimax --method ml
    efa-lab fit ratings.txt --factors 5 --rotation oblimin --plot loadings.png
    efa-lab analyze ratings.txt --factors 5
    efa-lab demo
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Optional, TypeVar

import numpy as np
import typer
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .config import DEFAULT_DATASET_URL, DEFAULT_MAX_FACTORS, AnalysisConfig
from .exceptions import ConvergenceError, EFAError
from .types import EigenDecomposition, EstimationMethod, FactorModel, Rotation, VSSResult

# Initialize Typer app and Rich console
app = typer.Typer(
    name="efa-lab",
    help="🧪 efa_lab: Exploratory Factor Analysis from the command line",
    add_completion=False,
    rich_markup_mode="rich",
)
console = Console()

T = TypeVar("T")

SOURCE_HELP = "URL or path of a whitespace-delimited table (header row, one row per subject)"


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================

def guarded(action: Callable[[], T]) -> T:
    """Run an analysis step; report efa_lab errors in red and exit with code 1."""
    try:
        return action()
    except ConvergenceError as e:
        console.print(f"[red]Convergence error:[/red] {e}")
        raise typer.Exit(1)
    except EFAError as e:
        console.print(f"[red]Error ({type(e).__name__}):[/red] {e}")
        raise typer.Exit(1)


def load_source(source: str):
    """Load a dataset with a status spinner."""
    from .io import load_dataset

    with console.status("[bold blue]Loading dataset..."):
        data = guarded(lambda: load_dataset(source))
    console.print(
        f"  Loaded dataset: [cyan]{data.n_obs}[/cyan] subjects × "
        f"[cyan]{data.n_vars}[/cyan] variables"
    )
    return data


def save_plot(fig, path: Path) -> None:
    from .visualization import save_figure

    save_figure(fig, path)
    console.print(f"  🖼  Plot saved to: [bold]{path}[/bold]")


def print_eigenvalues(eig: EigenDecomposition, limit: int = 15) -> None:
    table = Table(title="Eigenvalues", box=box.ROUNDED, title_style="bold cyan")
    table.add_column("#", style="dim", justify="right")
    table.add_column("Eigenvalue", justify="right")
    table.add_column("Explained", justify="right")
    table.add_column("Cumulative", justify="right")

    ratios = eig.explained_variance_ratio
    cumulative = eig.cumulative_variance_ratio
    for i in range(min(limit, len(eig.eigenvalues))):
        style = "bold" if eig.eigenvalues[i] > 1.0 else None
        table.add_row(
            str(i + 1),
            f"{eig.eigenvalues[i]:.3f}",
            f"{ratios[i]:.1%}",
            f"{cumulative[i]:.1%}",
            style=style,
        )

    console.print(table)
    console.print(f"  Kaiser criterion (eigenvalue > 1): [cyan]{eig.kaiser_count}[/cyan] factors")


def print_vss(result: VSSResult) -> None:
    table = Table(
        title=f"Very Simple Structure ({result.rotation.value}, {result.method.value})",
        box=box.ROUNDED,
        title_style="bold cyan",
    )
    for name in ("Factors", "VSS c1", "VSS c2", "MAP", "dof", "χ²", "BIC", "RMSR"):
        table.add_column(name, justify="right")

    for row in result.rows:
        table.add_row(
            str(row.n_factors),
            f"{row.complexity_1:.3f}",
            f"{row.complexity_2:.3f}",
            f"{row.map:.4f}",
            f"{row.dof:g}",
            f"{row.chi_square:.1f}",
            f"{row.bic:.1f}",
            f"{row.rmsr:.3f}",
        )

    console.print(table)
    console.print(
        f"  Complexity 1 peaks at [cyan]{result.best_complexity_1}[/cyan], "
        f"complexity 2 at [cyan]{result.best_complexity_2}[/cyan], "
        f"MAP minimum at [cyan]{result.best_map}[/cyan]"
    )


def print_model(model: FactorModel, cutoff: float = 0.3) -> None:
    """Print loadings (small ones dimmed), communalities and fit statistics."""
    table = Table(
        title=f"Loadings ({model.method.value}, {model.rotation.value})",
        box=box.SIMPLE,
        title_style="bold cyan",
    )
    table.add_column("Variable", style="cyan")
    for j in range(model.k):
        table.add_column(f"F{j + 1}", justify="right")
    table.add_column("h²", justify="right")
    table.add_column("u²", justify="right")

    h2 = model.communalities
    u2 = model.uniquenesses
    for i, name in enumerate(model.columns):
        cells = [
            f"{v:.2f}" if abs(v) >= cutoff else f"[dim]{v:.2f}[/dim]"
            for v in model.loadings[i]
        ]
        table.add_row(name, *cells, f"{h2[i]:.2f}", f"{u2[i]:.2f}")

    table.add_row(
        "[bold]SS loadings[/bold]", *[f"{v:.2f}" for v in model.ss_loadings], "", ""
    )
    console.print(table)

    if model.rotation.is_oblique:
        phi_table = Table(title="Factor Correlations (Φ)", box=box.SIMPLE)
        phi_table.add_column("", style="cyan")
        for j in range(model.k):
            phi_table.add_column(f"F{j + 1}", justify="right")
        for i in range(model.k):
            phi_table.add_row(f"F{i + 1}", *[f"{model.phi[i, j]:.2f}" for j in range(model.k)])
        console.print(phi_table)

    fit = model.fit
    if fit is not None:
        summary = Table.grid(padding=(0, 2))
        summary.add_column(style="dim")
        summary.add_column(style="bold")
        summary.add_row("Iterations", str(fit.iterations))
        chi_square = "n/a" if fit.chi_square is None else f"{fit.chi_square:.2f}"
        summary.add_row("χ² (dof)", f"{chi_square} ({fit.dof:g})")
        summary.add_row("p-value", "n/a" if fit.p_value is None else f"{fit.p_value:.4g}")
        summary.add_row("RMSR", f"{fit.rmsr:.4f}")
        summary.add_row("BIC", "n/a" if fit.bic is None else f"{fit.bic:.2f}")
        if fit.heywood_variables:
            summary.add_row("Heywood", ", ".join(fit.heywood_variables))
        console.print(Panel(summary, title="📊 Fit", border_style="green"))


# =============================================================================
# COMMANDS
# =============================================================================

@app.command()
def scree(
    source: str = typer.Argument(DEFAULT_DATASET_URL, help=SOURCE_HELP),
    plot: Optional[Path] = typer.Option(None, "--plot", "-p", help="Save a scree plot to this file"),
    heatmap: Optional[Path] = typer.Option(None, "--heatmap", help="Save a clustered correlation heatmap"),
):
    """
    Eigenvalues of the correlation matrix.

    Example:
        efa-lab scree ratings.txt --plot scree.png
    """
    from .decomposition import eigen_decomposition
    from .preprocessing import correlation_matrix

    console.print(Panel.fit("📉 [bold]Scree Diagnostics[/bold]", border_style="blue"))
    data = load_source(source)
    corr = guarded(lambda: correlation_matrix(data))
    eig = guarded(lambda: eigen_decomposition(corr))
    print_eigenvalues(eig)

    if plot is not None:
        from .visualization import plot_scree
        save_plot(plot_scree(eig), plot)
    if heatmap is not None:
        from .visualization import plot_correlation_heatmap
        save_plot(plot_correlation_heatmap(corr), heatmap)


@app.command()
def vss(
    source: str = typer.Argument(DEFAULT_DATASET_URL, help=SOURCE_HELP),
    max_factors: int = typer.Option(DEFAULT_MAX_FACTORS, "--max-factors", "-n", help="Largest factor count to evaluate"),
    rotation: Rotation = typer.Option(Rotation.VARIMAX, "--rotation", "-r", help="Rotation"),
    method: EstimationMethod = typer.Option(EstimationMethod.MINRES, "--method", "-m", help="Estimation method"),
    diagonal: bool = typer.Option(False, "--diagonal/--no-diagonal", help="Include the diagonal in the fit index"),
    plot: Optional[Path] = typer.Option(None, "--plot", "-p", help="Save a VSS plot to this file"),
):
    """
    Very Simple Structure diagnostics for 1..max-factors factors.

    Example:
        efa-lab vss ratings.txt --max-factors 8 --rotation varimax --method ml
    """
    from .vss import very_simple_structure

    console.print(Panel.fit("🧭 [bold]Factor Count Selection[/bold]", border_style="blue"))
    data = load_source(source)

    with console.status("[bold blue]Fitting candidate models..."):
        result = guarded(lambda: very_simple_structure(
            data,
            max_factors=max_factors,
            rotation=rotation,
            method=method,
            include_diagonal=diagonal,
        ))
    print_vss(result)

    if plot is not None:
        from .visualization import plot_vss
        save_plot(plot_vss(result), plot)


@app.command()
def fit(
    source: str = typer.Argument(DEFAULT_DATASET_URL, help=SOURCE_HELP),
    factors: int = typer.Option(..., "--factors", "-k", help="Number of factors to extract"),
    rotation: Rotation = typer.Option(Rotation.VARIMAX, "--rotation", "-r", help="Rotation"),
    method: EstimationMethod = typer.Option(EstimationMethod.MINRES, "--method", "-m", help="Estimation method"),
    cutoff: float = typer.Option(0.3, "--cutoff", help="Dim loadings below this magnitude"),
    plot: Optional[Path] = typer.Option(None, "--plot", "-p", help="Save a Factor 1 vs Factor 2 loading plot"),
):
    """
    Fit and rotate an exploratory factor model.

    Example:
        efa-lab fit ratings.txt --factors 5 --rotation oblimin --method ml
    """
    from .extraction import FactorExtractor

    console.print(Panel.fit("🔬 [bold]Factor Extraction[/bold]", border_style="blue"))
    data = load_source(source)

    with console.status(f"[bold blue]Fitting {factors}-factor model..."):
        model = guarded(lambda: FactorExtractor(factors, method=method, rotation=rotation).fit(data))
    console.print("  [green]✓[/green] Model fitted successfully\n")
    print_model(model, cutoff=cutoff)

    if plot is not None:
        if model.k < 2:
            console.print("[yellow]Warning:[/yellow] loading plot needs at least 2 factors")
        else:
            from .visualization import plot_loadings
            save_plot(plot_loadings(model), plot)


@app.command()
def analyze(
    source: str = typer.Argument(DEFAULT_DATASET_URL, help=SOURCE_HELP),
    factors: int = typer.Option(..., "--factors", "-k", help="Number of factors to extract"),
    rotation: Rotation = typer.Option(Rotation.VARIMAX, "--rotation", "-r", help="Rotation"),
    method: EstimationMethod = typer.Option(EstimationMethod.MINRES, "--method", "-m", help="Estimation method"),
    max_factors: int = typer.Option(DEFAULT_MAX_FACTORS, "--max-factors", "-n", help="Largest VSS factor count"),
    diagonal: bool = typer.Option(False, "--diagonal/--no-diagonal", help="Include the diagonal in VSS fit"),
    skip_vss: bool = typer.Option(False, "--skip-vss", help="Skip factor-count selection"),
):
    """
    Run the whole pipeline: scree, VSS and extraction.

    Example:
        efa-lab analyze ratings.txt --factors 5 --rotation oblimin
    """
    from .pipeline import run_analysis

    console.print(Panel.fit("🧪 [bold]Exploratory Factor Analysis[/bold]", border_style="blue"))
    config = guarded(lambda: AnalysisConfig(
        factor_count=factors,
        rotation=rotation,
        estimation_method=method,
        include_diagonal=diagonal,
        max_factors=max_factors,
    ))
    data = load_source(source)

    with console.status("[bold blue]Running analysis..."):
        report = guarded(lambda: run_analysis(data, config, run_vss=not skip_vss))

    print_eigenvalues(report.eigen)
    if report.vss is not None:
        print_vss(report.vss)
    print_model(report.model)


@app.command()
def demo(
    subjects: int = typer.Option(500, "--subjects", "-n", help="Number of simulated subjects"),
    seed: int = typer.Option(42, "--seed", "-s", help="Random seed"),
):
    """
    Analyze a simulated two-factor dataset (no download needed).
    """
    from .pipeline import run_analysis
    from .simulation import FactorDataSimulator

    console.print(Panel.fit("🎲 [bold]Two-Factor Demo[/bold]", border_style="blue"))
    loadings = np.array([
        [0.8, 0.0],
        [0.7, 0.1],
        [0.6, 0.0],
        [0.0, 0.8],
        [0.1, 0.7],
        [0.0, 0.6],
    ])
    simulator = FactorDataSimulator(
        loadings,
        columns=("talkative", "outgoing", "sociable", "careful", "orderly", "thorough"),
        rng=np.random.default_rng(seed),
    )
    data = simulator.simulate(subjects)
    console.print(f"  Simulated [cyan]{data.n_obs}[/cyan] subjects × [cyan]{data.n_vars}[/cyan] variables")

    config = AnalysisConfig(factor_count=2, rotation=Rotation.VARIMAX, max_factors=3)
    report = guarded(lambda: run_analysis(data, config))

    print_eigenvalues(report.eigen)
    print_vss(report.vss)
    print_model(report.model)


@app.command()
def version():
    """Show version information."""
    from . import __version__

    console.print(Panel(
        f"[bold cyan]efa_lab[/bold cyan] v{__version__}\n\n"
        "Exploratory factor analysis: scree, VSS,\n"
        "extraction and rotation.",
        border_style="cyan"
    ))


# =============================================================================
# ENTRY POINT
# =============================================================================

def main():
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
