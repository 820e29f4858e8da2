"""
test_rotation.py - Tests for Factor Rotation

Tests cover:
- Orthogonal rotations recover a rotated simple structure
- Oblique rotations recover factor correlations
- Invariance of the common part L Φ Lᵀ = A Aᵀ
- Sorting / reflection conventions
- Degenerate inputs (single factor, no rotation) and error paths
"""

import pytest
import numpy as np

from efa_lab import ConfigurationError, ConvergenceError, Rotation, rotate
from efa_lab.rotation import oblimin_criterion, quartimax_criterion, varimax_criterion


def _planar_rotation(degrees):
    t = np.deg2rad(degrees)
    return np.array([[np.cos(t), -np.sin(t)], [np.sin(t), np.cos(t)]])


@pytest.fixture
def simple_structure():
    return np.array([
        [0.8, 0.0],
        [0.7, 0.0],
        [0.6, 0.0],
        [0.0, 0.8],
        [0.0, 0.7],
    ])


@pytest.fixture
def rotated_structure(simple_structure):
    """Simple structure hidden by a 30 degree rotation."""
    return simple_structure @ _planar_rotation(30)


@pytest.fixture
def oblique_structure(simple_structure):
    """Unrotated loadings whose simple-structure solution has factor correlation 0.4."""
    phi = np.array([[1.0, 0.4], [0.4, 1.0]])
    return simple_structure @ np.linalg.cholesky(phi) @ _planar_rotation(25)


class TestCriteria:

    def test_varimax_prefers_simple_structure(self, simple_structure, rotated_structure):
        assert varimax_criterion(simple_structure)[0] < varimax_criterion(rotated_structure)[0]

    def test_quartimax_prefers_simple_structure(self, simple_structure, rotated_structure):
        assert quartimax_criterion(simple_structure)[0] < quartimax_criterion(rotated_structure)[0]

    def test_oblimin_zero_at_simple_structure(self, simple_structure):
        value, gradient = oblimin_criterion(simple_structure)
        assert value == pytest.approx(0.0)
        assert np.allclose(gradient, 0.0)


class TestOrthogonalRotation:

    @pytest.mark.parametrize("method", ["varimax", "quartimax"])
    def test_recovers_simple_structure(self, simple_structure, rotated_structure, method):
        result = rotate(rotated_structure, method)
        np.testing.assert_allclose(result.loadings, simple_structure, atol=1e-4)

    @pytest.mark.parametrize("method", ["varimax", "quartimax"])
    def test_rotation_matrix_orthogonal(self, rotated_structure, method):
        result = rotate(rotated_structure, method)
        T = result.rotation_matrix
        assert np.allclose(T.T @ T, np.eye(2), atol=1e-10)
        assert np.allclose(result.phi, np.eye(2))
        assert np.allclose(result.loadings, rotated_structure @ T)

    def test_communalities_preserved(self, rotated_structure):
        result = rotate(rotated_structure, "varimax")
        assert np.allclose(
            np.sum(result.loadings ** 2, axis=1), np.sum(rotated_structure ** 2, axis=1)
        )

    def test_without_kaiser_normalization(self, simple_structure, rotated_structure):
        result = rotate(rotated_structure, "varimax", normalize=False)
        np.testing.assert_allclose(result.loadings, simple_structure, atol=1e-3)

    def test_iterations_reported(self, rotated_structure):
        assert rotate(rotated_structure, "varimax").iterations >= 1


class TestObliqueRotation:

    def test_oblimin_recovers_correlation(self, simple_structure, oblique_structure):
        result = rotate(oblique_structure, "oblimin")
        np.testing.assert_allclose(result.loadings, simple_structure, atol=1e-3)
        assert result.phi[0, 1] == pytest.approx(0.4, abs=1e-3)

    @pytest.mark.parametrize("method", ["oblimin", "promax"])
    def test_common_part_invariant(self, oblique_structure, method):
        result = rotate(oblique_structure, method)
        L, phi = result.loadings, result.phi
        assert np.allclose(L @ phi @ L.T, oblique_structure @ oblique_structure.T, atol=1e-8)

    @pytest.mark.parametrize("method", ["oblimin", "promax"])
    def test_phi_is_correlation_matrix(self, oblique_structure, method):
        phi = rotate(oblique_structure, method).phi
        assert np.allclose(np.diag(phi), 1.0)
        assert np.allclose(phi, phi.T)
        assert np.all(np.linalg.eigvalsh(phi) > 0)

    @pytest.mark.parametrize("method", ["oblimin", "promax"])
    def test_convention(self, oblique_structure, method):
        result = rotate(oblique_structure, method)
        T = result.rotation_matrix
        assert np.allclose(result.loadings, oblique_structure @ np.linalg.inv(T).T)
        assert np.allclose(result.phi, T.T @ T)

    def test_promax_positive_correlation(self, oblique_structure):
        phi = rotate(oblique_structure, "promax").phi
        assert phi[0, 1] > 0.2

    def test_biquartimin(self, oblique_structure):
        result = rotate(oblique_structure, "oblimin", gamma=0.5)
        assert np.allclose(np.diag(result.phi), 1.0)


class TestConventions:

    def test_sorted_by_ss_loadings(self, rotated_structure):
        ss = np.sum(rotate(rotated_structure, "varimax").loadings ** 2, axis=0)
        assert np.all(np.diff(ss) <= 0)

    @pytest.mark.parametrize("method", list(Rotation))
    def test_positive_column_sums(self, rotated_structure, method):
        L = rotate(-rotated_structure, method).loadings
        assert np.all(np.sum(L, axis=0) > 0)

    def test_no_rotation(self, rotated_structure):
        result = rotate(rotated_structure, Rotation.NONE)
        assert result.iterations == 0
        assert np.allclose(np.abs(result.loadings), np.abs(rotated_structure))
        assert np.allclose(result.phi, np.eye(2))

    def test_single_factor(self):
        A = np.array([[-0.7], [-0.6], [-0.5]])
        result = rotate(A, "oblimin")
        assert np.allclose(result.loadings, -A)
        assert np.allclose(result.phi, [[1.0]])
        assert result.iterations == 0


class TestErrors:

    def test_unknown_rotation(self, rotated_structure):
        with pytest.raises(ConfigurationError, match="Unknown rotation"):
            rotate(rotated_structure, "equamax")

    def test_iteration_budget(self, rotated_structure):
        with pytest.raises(ConvergenceError) as info:
            rotate(rotated_structure, "varimax", max_iter=1)
        assert info.value.iterations == 1
