"""
efa_lab Examples Package
========================

Runnable walkthroughs of an exploratory factor analysis with efa_lab.

Examples
--------
extract_factors : module
    Fit and rotate a factor model on simulated ratings with a known structure.
choose_factor_count : module
    Scree, Very Simple Structure and MAP on simulated ratings.
personality_efa : module
    The full analysis of the personality adjectives dataset (downloads it).

Quick Start
-----------
Run any example directly from the command line:

    $ python examples/extract_factors.py
    $ python examples/choose_factor_count.py
    $ python examples/personality_efa.py

Or import as modules:

    >>> from examples import run_example
    >>> model = run_example("extract_factors")
"""

__all__ = [
    "extract_factors",
    "choose_factor_count",
    "personality_efa",
]


def list_examples():
    """
    List all available examples with descriptions.

    Returns
    -------
    dict
        Dictionary mapping example names to their descriptions.
    """
    return {
        "extract_factors": (
            "Factor extraction on simulated ratings. Compares estimators and "
            "rotations against the generating loadings."
        ),
        "choose_factor_count": (
            "Scree eigenvalues, VSS complexity 1/2 and Velicer's MAP for "
            "choosing the number of factors."
        ),
        "personality_efa": (
            "End-to-end analysis of the personality adjectives dataset: "
            "scree, VSS with maximum likelihood, and an oblimin solution."
        ),
    }


def get_example_info(name):
    """
    Get detailed information about a specific example.

    Parameters
    ----------
    name : str
        Name of the example (without .py extension).

    Returns
    -------
    dict
        Dictionary with keys: 'description', 'features', 'needs_network'
    """
    examples_info = {
        "extract_factors": {
            "description": "Recover a known factor structure",
            "features": [
                "Simulated two-factor ratings",
                "minres, principal axis and maximum likelihood",
                "Orthogonal and oblique rotations",
                "Communalities and fit statistics",
            ],
            "needs_network": False,
        },
        "choose_factor_count": {
            "description": "Decide how many factors to extract",
            "features": [
                "Eigenvalues and the Kaiser criterion",
                "VSS complexity 1 and 2",
                "Velicer's MAP",
            ],
            "needs_network": False,
        },
        "personality_efa": {
            "description": "Analyze real questionnaire data",
            "features": [
                "Dataset download",
                "Clustered correlation heatmap",
                "VSS with maximum likelihood",
                "Oblimin solution with factor correlations",
            ],
            "needs_network": True,
        },
    }

    if name not in examples_info:
        available = ", ".join(examples_info.keys())
        raise ValueError(f"Unknown example '{name}'. Available: {available}")

    return examples_info[name]


def run_example(name, *args, **kwargs):
    """
    Dynamically import and run an example.

    Parameters
    ----------
    name : str
        Name of the example to run (without .py extension).
    *args, **kwargs
        Arguments to pass to the example's main() function.

    Returns
    -------
    result
        Return value from the example's main() function.
    """
    import importlib

    valid_examples = list_examples().keys()
    if name not in valid_examples:
        raise ValueError(
            f"Unknown example '{name}'. Valid examples: {', '.join(valid_examples)}"
        )

    module = importlib.import_module(f"examples.{name}")

    if hasattr(module, "main"):
        return module.main(*args, **kwargs)
    raise AttributeError(f"Example '{name}' does not have a main() function")


def print_examples_menu():
    """Print a formatted menu of all available examples."""
    print("=" * 70)
    print("efa_lab Examples")
    print("=" * 70)
    print("\nAvailable examples:\n")

    for i, (name, desc) in enumerate(list_examples().items(), 1):
        info = get_example_info(name)
        print(f"{i}. {name}")
        print(f"   {desc}")
        print(f"   Needs network: {'yes' if info['needs_network'] else 'no'}")
        print()

    print("Usage:")
    print("  $ python examples/extract_factors.py")
    print("  or")
    print("  >>> from examples import run_example")
    print("  >>> run_example('extract_factors')")


__all__.extend([
    "list_examples",
    "get_example_info",
    "run_example",
    "print_examples_menu",
])
