"""
test_decomposition.py - Tests for Spectral Analysis

Tests cover:
- eigen_decomposition: ordering, trace, reconstruction, non-negativity
- Variance shares of a two-factor structure
- Sign convention of eigenvectors
- principal_component_loadings
"""

import pytest
import numpy as np

from efa_lab import (
    ConfigurationError,
    CorrelationMatrix,
    eigen_decomposition,
)
from efa_lab.decomposition import principal_component_loadings


class TestEigenDecomposition:

    def test_descending_and_trace(self, two_factor_corr):
        eig = eigen_decomposition(two_factor_corr)
        assert np.all(np.diff(eig.eigenvalues) <= 0)
        assert np.sum(eig.eigenvalues) == pytest.approx(two_factor_corr.p)

    def test_eigenvalues_non_negative(self, two_factor_corr):
        eig = eigen_decomposition(two_factor_corr)
        assert np.all(eig.eigenvalues >= 0)

    def test_rank_deficient_round_off_clamped(self):
        """A rank-one matrix has exact zeros after clamping, never tiny negatives."""
        corr = CorrelationMatrix(matrix=np.ones((3, 3)), columns=("a", "b", "c"), n_obs=50)
        eig = eigen_decomposition(corr)
        assert eig.eigenvalues[0] == pytest.approx(3.0)
        assert np.all(eig.eigenvalues >= 0)
        assert np.all(eig.eigenvalues[1:] == 0.0)

    def test_reconstruction(self, two_factor_corr, tolerance):
        eig = eigen_decomposition(two_factor_corr)
        V, lam = eig.eigenvectors, eig.eigenvalues
        np.testing.assert_allclose(V @ np.diag(lam) @ V.T, two_factor_corr.matrix, **tolerance)

    def test_orthonormal_vectors(self, two_factor_corr):
        V = eigen_decomposition(two_factor_corr).eigenvectors
        assert np.allclose(V.T @ V, np.eye(6), atol=1e-10)

    def test_sign_convention(self, two_factor_corr):
        V = eigen_decomposition(two_factor_corr).eigenvectors
        pivots = V[np.argmax(np.abs(V), axis=0), np.arange(V.shape[1])]
        assert np.all(pivots > 0)

    def test_two_factor_scree(self, two_factor_corr):
        """Two eigenvalues above 1 for a two-factor structure."""
        eig = eigen_decomposition(two_factor_corr)
        assert eig.kaiser_count == 2

    def test_two_factor_variance_shares(self, two_factor_corr):
        """Each of the two leading eigenvalues carries more variance than any other."""
        ratio = eigen_decomposition(two_factor_corr).explained_variance_ratio
        assert ratio[0] > np.max(ratio[2:])
        assert ratio[1] > np.max(ratio[2:])
        assert np.sum(ratio) == pytest.approx(1.0)

    def test_identity_matrix(self):
        corr = CorrelationMatrix(matrix=np.eye(4), columns=("a", "b", "c", "d"), n_obs=50)
        eig = eigen_decomposition(corr)
        assert np.allclose(eig.eigenvalues, 1.0)


class TestPrincipalComponentLoadings:

    def test_shape_and_variance(self, two_factor_corr):
        eig = eigen_decomposition(two_factor_corr)
        loadings = principal_component_loadings(eig, 2)
        assert loadings.shape == (6, 2)
        assert np.allclose(np.sum(loadings ** 2, axis=0), eig.eigenvalues[:2])

    def test_all_components_reproduce_matrix(self, two_factor_corr):
        eig = eigen_decomposition(two_factor_corr)
        loadings = principal_component_loadings(eig, 6)
        assert np.allclose(loadings @ loadings.T, two_factor_corr.matrix, atol=1e-8)

    @pytest.mark.parametrize("k", [0, 7])
    def test_k_out_of_range(self, two_factor_corr, k):
        eig = eigen_decomposition(two_factor_corr)
        with pytest.raises(ConfigurationError):
            principal_component_loadings(eig, k)
