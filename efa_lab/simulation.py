"""
simulation.py - Synthetic Data from a Known Factor Structure

This module draws subject-level ratings from a factor model so that
extraction, rotation and VSS can be checked against ground truth:

    x = L f + e

where f ~ N(0, Φ) are k latent factors and e ~ N(0, diag(u)) is independent
noise. With u = 1 - diag(L Φ Lᵀ), every variable has unit population
variance and the population correlation matrix is L Φ Lᵀ + diag(u).

Randomness always comes from an explicitly passed numpy Generator; re-seed
the generator to reproduce a draw.

Example Usage:
-------------
    >>> import numpy as np
    >>> from efa_lab.simulation import FactorDataSimulator
    >>>
    >>> L = np.array([[0.8, 0.0], [0.7, 0.0], [0.0, 0.8], [0.0, 0.7]])
    >>> simulator = FactorDataSimulator(L, rng=np.random.default_rng(42))
    >>> data = simulator.simulate(n_obs=500)
    >>> data.values.shape
    (500, 4)
"""

from __future__ import annotations

from typing import Optional, Sequence

import numpy as np
from loguru import logger

from .types import CorrelationMatrix, Dataset


class FactorDataSimulator:
    """
    Monte Carlo generator of datasets with a prescribed factor structure.

    Parameters
    ----------
    loadings : np.ndarray
        Population loadings L with shape (p, k).
    phi : np.ndarray, optional
        Factor correlation matrix (k, k). Defaults to identity (orthogonal
        factors).
    uniquenesses : np.ndarray, optional
        Noise variances (p,). Defaults to 1 - diag(L Φ Lᵀ) so that each
        variable has unit variance.
    columns : Sequence[str], optional
        Variable names. Defaults to V1..Vp.
    rng : np.random.Generator, optional
        Source of randomness. If None, creates a new default RNG.

    Raises
    ------
    ValueError
        If shapes are inconsistent, Φ is not a valid correlation matrix, or
        a default uniqueness would be negative (communality > 1).
    """

    def __init__(
        self,
        loadings: np.ndarray,
        phi: Optional[np.ndarray] = None,
        uniquenesses: Optional[np.ndarray] = None,
        columns: Optional[Sequence[str]] = None,
        rng: Optional[np.random.Generator] = None,
    ):
        self.loadings = np.asarray(loadings, dtype=float)
        if self.loadings.ndim != 2:
            raise ValueError(f"loadings must be 2D, got shape {self.loadings.shape}")
        p, k = self.loadings.shape

        self.phi = np.eye(k) if phi is None else np.asarray(phi, dtype=float)
        if self.phi.shape != (k, k):
            raise ValueError(f"phi shape mismatch: expected ({k}, {k}), got {self.phi.shape}")
        if not np.allclose(np.diag(self.phi), 1.0):
            raise ValueError("phi must have a unit diagonal")

        communalities = np.einsum("ij,jk,ik->i", self.loadings, self.phi, self.loadings)
        if uniquenesses is None:
            uniquenesses = 1.0 - communalities
        self.uniquenesses = np.asarray(uniquenesses, dtype=float)
        if self.uniquenesses.shape != (p,):
            raise ValueError(
                f"uniquenesses must have shape ({p},), got {self.uniquenesses.shape}"
            )
        if np.any(self.uniquenesses < 0):
            raise ValueError("uniquenesses must be non-negative (communality > 1?)")

        self.columns = tuple(columns) if columns is not None else tuple(
            f"V{i + 1}" for i in range(p)
        )
        if len(self.columns) != p:
            raise ValueError(f"Expected {p} column names, got {len(self.columns)}")

        self.rng = rng if rng is not None else np.random.default_rng()

        # Cholesky factor of Φ correlates the factor draws (LinAlgError if not PD)
        self._factor_chol = np.linalg.cholesky(self.phi)

    @property
    def p(self) -> int:
        return self.loadings.shape[0]

    @property
    def k(self) -> int:
        return self.loadings.shape[1]

    def population_correlation(self) -> CorrelationMatrix:
        """
        Correlation matrix implied by the generating model.

        Only meaningful when the variables have unit variance (default
        uniquenesses); otherwise the covariance is rescaled to correlations.
        """
        cov = self.loadings @ self.phi @ self.loadings.T + np.diag(self.uniquenesses)
        scale = 1.0 / np.sqrt(np.diag(cov))
        corr = cov * np.outer(scale, scale)
        np.fill_diagonal(corr, 1.0)
        return CorrelationMatrix(matrix=corr, columns=self.columns, n_obs=None)

    def simulate(self, n_obs: int) -> Dataset:
        """
        Draw a dataset of `n_obs` subjects.

        Returns
        -------
        Dataset
            Shape (n_obs, p), named by `columns`.
        """
        if n_obs < 2:
            raise ValueError(f"n_obs must be >= 2, got {n_obs}")

        logger.debug(f"Simulating {n_obs} subjects from a {self.k}-factor model ({self.p} variables)")

        factors = self.rng.standard_normal((n_obs, self.k)) @ self._factor_chol.T
        noise = self.rng.standard_normal((n_obs, self.p)) * np.sqrt(self.uniquenesses)
        values = factors @ self.loadings.T + noise

        return Dataset(values=values, columns=self.columns)


def simulate_dataset(
    loadings: np.ndarray,
    n_obs: int,
    rng: Optional[np.random.Generator] = None,
    phi: Optional[np.ndarray] = None,
    uniquenesses: Optional[np.ndarray] = None,
    columns: Optional[Sequence[str]] = None,
) -> Dataset:
    """
    Convenience wrapper around FactorDataSimulator.

    Examples
    --------
    >>> data = simulate_dataset(L, n_obs=1000, rng=np.random.default_rng(0))
    """
    simulator = FactorDataSimulator(
        loadings, phi=phi, uniquenesses=uniquenesses, columns=columns, rng=rng
    )
    return simulator.simulate(n_obs)
