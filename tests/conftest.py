"""
conftest.py - Pytest Configuration and Shared Fixtures

This file contains fixtures used across all test modules. Fixtures are
organized by category:
- Random number generators (for reproducibility)
- Known factor structures
- Simulated datasets and their correlation matrices
"""

import matplotlib

matplotlib.use("Agg")

import pytest
import numpy as np

from efa_lab import (
    Dataset,
    FactorDataSimulator,
    correlation_matrix,
)


# =============================================================================
# RANDOM NUMBER GENERATORS
# =============================================================================

@pytest.fixture
def rng():
    """
    Provide a seeded random number generator for reproducible tests.

    All tests should use this fixture (or derive from it) to ensure
    reproducibility across runs.
    """
    return np.random.default_rng(seed=42)


@pytest.fixture
def rng_alternate():
    """Alternate RNG with different seed for comparison tests."""
    return np.random.default_rng(seed=12345)


# =============================================================================
# FACTOR STRUCTURES
# =============================================================================

TWO_FACTOR_COLUMNS = ("a1", "a2", "a_noisy", "b1", "b2", "b3")


@pytest.fixture
def two_factor_loadings():
    """
    Six variables, two orthogonal factors.

    Structure:
    - a1, a2 load strongly on factor A
    - a_noisy loads weakly on factor A (communality 0.09, the noisiest)
    - b1, b2, b3 load on factor B
    """
    return np.array([
        [0.90, 0.00],
        [0.85, 0.00],
        [0.30, 0.00],
        [0.00, 0.90],
        [0.00, 0.85],
        [0.00, 0.80],
    ])


@pytest.fixture
def two_factor_data(two_factor_loadings, rng):
    """1000 subjects drawn from the two-factor structure plus unit-variance noise."""
    simulator = FactorDataSimulator(
        two_factor_loadings, columns=TWO_FACTOR_COLUMNS, rng=rng
    )
    return simulator.simulate(n_obs=1000)


@pytest.fixture
def two_factor_corr(two_factor_data):
    return correlation_matrix(two_factor_data)


@pytest.fixture
def correlated_factor_data(rng):
    """
    Eight variables on two factors correlated at 0.5.

    Used to check that oblique rotations recover non-zero factor
    correlations.
    """
    loadings = np.array([
        [0.8, 0.0],
        [0.7, 0.0],
        [0.75, 0.0],
        [0.6, 0.0],
        [0.0, 0.8],
        [0.0, 0.7],
        [0.0, 0.75],
        [0.0, 0.6],
    ])
    phi = np.array([[1.0, 0.5], [0.5, 1.0]])
    simulator = FactorDataSimulator(loadings, phi=phi, rng=rng)
    return simulator.simulate(n_obs=2000)


# =============================================================================
# DEGENERATE DATA
# =============================================================================

@pytest.fixture
def collinear_data(two_factor_data):
    """The two-factor data with a copy of column a1 appended."""
    values = np.column_stack([two_factor_data.values, two_factor_data.values[:, 0]])
    return Dataset(values=values, columns=two_factor_data.columns + ("a1_copy",))


@pytest.fixture
def constant_column_data(rng):
    """A dataset whose third column has zero variance."""
    values = rng.standard_normal((50, 3))
    values[:, 2] = 4.0
    return Dataset(values=values, columns=("x", "y", "flat"))


# =============================================================================
# HELPER FIXTURES
# =============================================================================

@pytest.fixture
def tolerance():
    """Standard numerical tolerance for float comparisons."""
    return {"rtol": 1e-5, "atol": 1e-8}


@pytest.fixture
def write_table(tmp_path):
    """Write a Dataset as a whitespace-delimited table and return its path."""
    def _write(data, name="ratings.txt"):
        path = tmp_path / name
        data.to_frame().to_csv(path, sep=" ", index=False)
        return path
    return _write
