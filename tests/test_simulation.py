"""
test_simulation.py - Tests for Synthetic Factor Data

Tests cover:
- FactorDataSimulator validation
- Population correlation of the generating model
- Sample moments of simulated data
- Reproducibility with seeded generators
"""

import pytest
import numpy as np

from efa_lab import FactorDataSimulator, correlation_matrix, simulate_dataset


class TestValidation:

    def test_non_2d_loadings(self):
        with pytest.raises(ValueError, match="2D"):
            FactorDataSimulator(np.array([0.5, 0.6]))

    def test_phi_shape(self, two_factor_loadings):
        with pytest.raises(ValueError, match="phi shape mismatch"):
            FactorDataSimulator(two_factor_loadings, phi=np.eye(3))

    def test_phi_diagonal(self, two_factor_loadings):
        with pytest.raises(ValueError, match="unit diagonal"):
            FactorDataSimulator(two_factor_loadings, phi=np.eye(2) * 2)

    def test_communality_above_one(self):
        with pytest.raises(ValueError, match="non-negative"):
            FactorDataSimulator(np.array([[0.9, 0.6], [0.5, 0.1]]))

    def test_column_count(self, two_factor_loadings):
        with pytest.raises(ValueError, match="column names"):
            FactorDataSimulator(two_factor_loadings, columns=("a", "b"))

    def test_n_obs(self, two_factor_loadings, rng):
        with pytest.raises(ValueError):
            FactorDataSimulator(two_factor_loadings, rng=rng).simulate(1)


class TestPopulation:

    def test_population_correlation(self, two_factor_loadings):
        corr = FactorDataSimulator(two_factor_loadings).population_correlation()
        L = two_factor_loadings
        expected = L @ L.T
        np.fill_diagonal(expected, 1.0)
        assert np.allclose(corr.matrix, expected)
        assert corr.n_obs is None

    def test_default_column_names(self, two_factor_loadings):
        simulator = FactorDataSimulator(two_factor_loadings)
        assert simulator.columns == ("V1", "V2", "V3", "V4", "V5", "V6")
        assert simulator.p == 6
        assert simulator.k == 2

    def test_correlated_factors(self):
        L = np.array([[0.8, 0.0], [0.0, 0.8], [0.5, 0.0]])
        phi = np.array([[1.0, 0.5], [0.5, 1.0]])
        corr = FactorDataSimulator(L, phi=phi).population_correlation()
        assert corr.matrix[0, 1] == pytest.approx(0.8 * 0.8 * 0.5)


class TestSimulate:

    def test_shape_and_names(self, two_factor_data):
        assert two_factor_data.values.shape == (1000, 6)
        assert two_factor_data.columns == ("a1", "a2", "a_noisy", "b1", "b2", "b3")

    def test_unit_variance(self, two_factor_loadings, rng):
        data = simulate_dataset(two_factor_loadings, n_obs=20000, rng=rng)
        assert np.allclose(data.values.var(axis=0, ddof=1), 1.0, atol=0.05)

    def test_sample_correlation_near_population(self, two_factor_loadings, rng):
        simulator = FactorDataSimulator(two_factor_loadings, rng=rng)
        sample = correlation_matrix(simulator.simulate(20000))
        population = simulator.population_correlation()
        assert np.allclose(sample.matrix, population.matrix, atol=0.03)

    def test_reproducible(self, two_factor_loadings):
        a = simulate_dataset(two_factor_loadings, 50, rng=np.random.default_rng(7))
        b = simulate_dataset(two_factor_loadings, 50, rng=np.random.default_rng(7))
        assert np.array_equal(a.values, b.values)

    def test_different_seeds_differ(self, two_factor_loadings, rng, rng_alternate):
        a = simulate_dataset(two_factor_loadings, 50, rng=rng)
        b = simulate_dataset(two_factor_loadings, 50, rng=rng_alternate)
        assert not np.allclose(a.values, b.values)
