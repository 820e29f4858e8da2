"""
extraction.py - Exploratory Factor Extraction
=============================================

Fits an exploratory factor model R ≈ L Φ Lᵀ + diag(u) to a correlation
matrix with one of three estimators, then rotates the loadings.

Estimators
----------
- minres (uls): minimize the squared residuals of the reduced correlation
  matrix over the uniquenesses (L-BFGS-B).
- pa: iterated principal axis factoring, starting from squared multiple
  correlations.
- ml: minimize the normal-theory likelihood discrepancy over the
  uniquenesses (L-BFGS-B).

Uses loguru for diagnostics. All failures raise efa_lab exceptions.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Optional, Tuple, Union

import numpy as np
import scipy.linalg
import scipy.optimize
import scipy.stats
from loguru import logger

from .config import (
    DEFAULT_MAX_ITER,
    DEFAULT_TOLERANCE,
    MAX_UNIQUENESS,
    MIN_UNIQUENESS,
    AnalysisConfig,
)
from .exceptions import ConfigurationError, ConvergenceError
from .preprocessing import (
    check_nonsingular,
    correlation_matrix,
    squared_multiple_correlations,
)
from .rotation import rotate
from .types import (
    CorrelationMatrix,
    Dataset,
    EstimationMethod,
    FactorModel,
    FitStatistics,
    Rotation,
)

# L-BFGS-B status code for an exhausted iteration/evaluation budget
_LBFGSB_LIMIT_REACHED = 1


def degrees_of_freedom(p: int, k: int) -> float:
    """Degrees of freedom of a k-factor model for p variables."""
    return ((p - k) ** 2 - (p + k)) / 2.0


# =============================================================================
# HELPER: LOADINGS FROM UNIQUENESSES
# =============================================================================

def _top_eigen(matrix: np.ndarray, k: int) -> Tuple[np.ndarray, np.ndarray]:
    """Largest k eigenpairs of a symmetric matrix, descending."""
    n = matrix.shape[0]
    vals, vecs = scipy.linalg.eigh(matrix, subset_by_index=(n - k, n - 1))
    return vals[::-1], vecs[:, ::-1]


def _uls_loadings(psi: np.ndarray, R: np.ndarray, k: int) -> np.ndarray:
    reduced = R.copy()
    np.fill_diagonal(reduced, 1.0 - psi)
    vals, vecs = _top_eigen(reduced, k)
    return vecs * np.sqrt(np.maximum(vals, 0.0))


def _uls_objective(psi: np.ndarray, R: np.ndarray, k: int) -> float:
    reduced = R.copy()
    np.fill_diagonal(reduced, 1.0 - psi)
    L = _uls_loadings(psi, R, k)
    return float(np.sum((reduced - L @ L.T) ** 2))


def _ml_loadings(psi: np.ndarray, R: np.ndarray, k: int) -> np.ndarray:
    sc = 1.0 / np.sqrt(psi)
    scaled = R * np.outer(sc, sc)
    vals, vecs = _top_eigen(scaled, k)
    vals = np.maximum(vals - 1.0, 0.0)
    return (np.sqrt(psi)[:, None] * vecs) * np.sqrt(vals)


def _ml_objective(psi: np.ndarray, R: np.ndarray, k: int) -> float:
    sc = 1.0 / np.sqrt(psi)
    scaled = R * np.outer(sc, sc)
    vals = scipy.linalg.eigvalsh(scaled)[::-1]
    tail = np.maximum(vals[k:], np.finfo(float).tiny)
    return float(-(np.sum(np.log(tail) - tail) - k + R.shape[0]))


# =============================================================================
# ESTIMATORS
# =============================================================================

def _fit_principal_axis(
    R: np.ndarray, k: int, h2: np.ndarray, tol: float, max_iter: int
) -> Tuple[np.ndarray, int]:
    """Iterated principal axis; returns (loadings, iterations)."""
    reduced = R.copy()
    delta = np.inf
    for iteration in range(1, max_iter + 1):
        np.fill_diagonal(reduced, h2)
        vals, vecs = _top_eigen(reduced, k)
        L = vecs * np.sqrt(np.maximum(vals, 0.0))
        h2_new = np.sum(L ** 2, axis=1)
        delta = float(np.max(np.abs(h2_new - h2)))
        h2 = h2_new
        if delta < tol:
            return L, iteration

    logger.error(f"Principal axis did not converge; last communality change {delta:.3e}")
    raise ConvergenceError("Principal axis factoring did not converge", max_iter, delta)


def _fit_by_optimizer(
    R: np.ndarray,
    k: int,
    h2: np.ndarray,
    method: EstimationMethod,
    tol: float,
    max_iter: int,
) -> Tuple[np.ndarray, int, bool]:
    """Minimize the method's discrepancy over uniquenesses."""
    if method == EstimationMethod.MAXIMUM_LIKELIHOOD:
        objective, loadings_from = _ml_objective, _ml_loadings
    else:
        objective, loadings_from = _uls_objective, _uls_loadings

    p = R.shape[0]
    psi0 = np.clip(1.0 - h2, MIN_UNIQUENESS, MAX_UNIQUENESS)
    result = scipy.optimize.minimize(
        objective,
        psi0,
        args=(R, k),
        method="L-BFGS-B",
        bounds=[(MIN_UNIQUENESS, MAX_UNIQUENESS)] * p,
        options={"maxiter": max_iter, "gtol": tol},
    )

    logger.debug(
        f"L-BFGS-B ({method.value}): status={result.status}, "
        f"nit={result.nit}, fun={result.fun:.6g}"
    )

    if result.status == _LBFGSB_LIMIT_REACHED:
        grad = np.linalg.norm(result.jac) if result.jac is not None else None
        logger.error(f"{method.value} estimation hit its iteration limit: {result.message}")
        raise ConvergenceError(
            f"{method.value} estimation did not converge", int(result.nit), grad
        )

    converged = bool(result.success)
    if not converged:
        logger.warning(f"{method.value} estimation stopped early: {result.message}")

    return loadings_from(result.x, R, k), int(result.nit), converged


def _bound_communalities(A: np.ndarray, columns) -> Tuple[np.ndarray, Tuple[str, ...]]:
    """
    Pull Heywood rows back inside the admissible region.

    A row whose communality exceeds 1 - MIN_UNIQUENESS is rescaled so its
    communality equals that ceiling. Rotation preserves communalities, so
    every uniqueness of the final model is at least MIN_UNIQUENESS.

    Returns
    -------
    (loadings, names of the rescaled variables)
    """
    ceiling = 1.0 - MIN_UNIQUENESS
    h2 = np.sum(A ** 2, axis=1)
    over = h2 > ceiling
    if not np.any(over):
        return A, ()

    heywood = tuple(c for c, flag in zip(columns, over) if flag)
    logger.warning(
        f"Heywood case: communality above {ceiling:g} for {list(heywood)}; rows rescaled"
    )
    A = A.copy()
    A[over] *= np.sqrt(ceiling / h2[over])[:, None]
    return A, heywood


# =============================================================================
# FIT STATISTICS
# =============================================================================

def compute_fit_statistics(
    R: np.ndarray,
    model_R: np.ndarray,
    n_obs: Optional[int],
    k: int,
    iterations: int = 0,
    converged: bool = True,
    heywood_variables: Tuple[str, ...] = (),
) -> FitStatistics:
    """
    Goodness of fit of an implied correlation matrix.

    Parameters
    ----------
    R : np.ndarray
        Observed correlation matrix (p, p).
    model_R : np.ndarray
        Implied correlation L Φ Lᵀ + diag(u).
    n_obs : int or None
        Number of subjects. When None (a population matrix) the
        sample-size dependent statistics chi_square, p_value and bic are None.
    k : int
        Number of factors.
    heywood_variables : tuple of str
        Variables rescaled by the Heywood bound.
    """
    p = R.shape[0]
    off = ~np.eye(p, dtype=bool)
    rmsr = float(np.sqrt(np.mean((R - model_R)[off] ** 2)))

    sign, logdet_model = np.linalg.slogdet(model_R)
    _, logdet_r = np.linalg.slogdet(R)
    if sign <= 0:
        logger.warning("Implied correlation matrix is not positive definite")
        objective = np.inf
    else:
        objective = float(
            np.trace(np.linalg.solve(model_R, R)) - (logdet_r - logdet_model) - p
        )

    dof = degrees_of_freedom(p, k)
    chi_square = p_value = bic = None
    if n_obs is None:
        logger.debug("Sample size unknown; skipping chi-square, p-value and BIC")
    else:
        correction = n_obs - 1 - (2 * p + 5) / 6.0 - 2 * k / 3.0
        chi_square = float(max(correction * objective, 0.0))
        p_value = float(scipy.stats.chi2.sf(chi_square, dof)) if dof > 0 else None
        bic = float(chi_square - dof * np.log(n_obs))

    return FitStatistics(
        objective=objective,
        chi_square=chi_square,
        dof=dof,
        p_value=p_value,
        rmsr=rmsr,
        bic=bic,
        iterations=iterations,
        converged=converged,
        heywood_variables=tuple(heywood_variables),
    )


# =============================================================================
# FACTOR EXTRACTOR
# =============================================================================

class FactorExtractor:
    """
    Exploratory factor analysis with a chosen estimator and rotation.

    Parameters
    ----------
    n_factors : int
        Number of factors k, with 1 <= k < p.
    method : EstimationMethod or str, default='minres'
        'minres' (alias 'uls'), 'pa', or 'ml'.
    rotation : Rotation or str, default='varimax'
        'none', 'varimax', 'quartimax', 'oblimin', or 'promax'.
    tolerance : float, default=1e-6
        Convergence tolerance for estimation and rotation.
    max_iter : int, default=1000
        Iteration budget for estimation and rotation.
    normalize : bool, default=True
        Kaiser-normalize rows while rotating.

    Examples
    --------
    >>> extractor = FactorExtractor(n_factors=2, method="ml", rotation="oblimin")
    >>> model = extractor.fit(data)
    >>> model.loadings_frame().round(2)
    >>> model.phi   # factor correlations
    """

    def __init__(
        self,
        n_factors: int,
        method: Union[EstimationMethod, str] = EstimationMethod.MINRES,
        rotation: Union[Rotation, str, None] = Rotation.VARIMAX,
        tolerance: float = DEFAULT_TOLERANCE,
        max_iter: int = DEFAULT_MAX_ITER,
        normalize: bool = True,
    ):
        if int(n_factors) != n_factors or n_factors < 1:
            raise ConfigurationError(f"n_factors must be an integer >= 1, got {n_factors}")
        if not tolerance > 0 or max_iter < 1:
            raise ConfigurationError(
                f"tolerance must be positive and max_iter >= 1, got {tolerance}, {max_iter}"
            )

        self.n_factors = int(n_factors)
        self.method = EstimationMethod.parse(method)
        self.rotation = Rotation.parse(rotation)
        self.tolerance = tolerance
        self.max_iter = max_iter
        self.normalize = normalize

    @classmethod
    def from_config(cls, config: AnalysisConfig) -> "FactorExtractor":
        return cls(
            n_factors=config.factor_count,
            method=config.estimation_method,
            rotation=config.rotation,
            tolerance=config.tolerance,
            max_iter=config.max_iter,
        )

    def __repr__(self) -> str:
        return (
            f"FactorExtractor(n_factors={self.n_factors}, method='{self.method.value}', "
            f"rotation='{self.rotation.value}')"
        )

    def _check_identified(self, p: int) -> None:
        k = self.n_factors
        if k >= p:
            raise ConfigurationError(
                f"Cannot extract {k} factors from {p} variables: "
                f"n_factors must be < number of variables"
            )
        dof = degrees_of_freedom(p, k)
        if dof < 0:
            logger.warning(
                f"{k} factors for {p} variables leaves negative degrees of freedom ({dof:g})"
            )

    def fit(self, data: Union[Dataset, CorrelationMatrix]) -> FactorModel:
        """
        Fit the factor model.

        Parameters
        ----------
        data : Dataset or CorrelationMatrix
            Raw or standardized data, or a precomputed correlation matrix.

        Returns
        -------
        FactorModel

        Raises
        ------
        ConfigurationError
            If n_factors >= number of variables.
        DataQualityError
            If the correlation matrix is singular or near-singular.
        ConvergenceError
            If estimation or rotation does not converge.
        """
        corr = data if isinstance(data, CorrelationMatrix) else correlation_matrix(data)
        p, k = corr.p, self.n_factors

        self._check_identified(p)
        logger.info(
            f"Fitting {k}-factor model to {p} variables "
            f"(method={self.method.value}, rotation={self.rotation.value})"
        )

        check_nonsingular(corr)
        R = np.array(corr.matrix)
        h2 = squared_multiple_correlations(corr)

        converged = True
        if self.method == EstimationMethod.PRINCIPAL_AXIS:
            A, iterations = _fit_principal_axis(R, k, h2, self.tolerance, self.max_iter)
        else:
            A, iterations, converged = _fit_by_optimizer(
                R, k, h2, self.method, self.tolerance, self.max_iter
            )

        A, heywood = _bound_communalities(A, corr.columns)

        rotated = rotate(
            A,
            self.rotation,
            normalize=self.normalize,
            tol=self.tolerance,
            max_iter=self.max_iter,
        )

        model = FactorModel(
            loadings=rotated.loadings,
            columns=corr.columns,
            method=self.method,
            rotation=self.rotation,
            phi=rotated.phi,
            rotation_matrix=rotated.rotation_matrix,
        )
        fit = compute_fit_statistics(
            R, model.implied_correlation(), corr.n_obs, k, iterations, converged,
            heywood_variables=heywood,
        )
        model = replace(model, fit=fit)

        logger.success(
            f"Factor model fitted in {iterations} iterations. "
            f"RMSR: {fit.rmsr:.4f}, explained variance: {model.proportion_variance.sum():.2%}"
        )
        return model


def fit_factor_model(
    data: Union[Dataset, CorrelationMatrix],
    n_factors: int,
    method: Union[EstimationMethod, str] = EstimationMethod.MINRES,
    rotation: Union[Rotation, str, None] = Rotation.VARIMAX,
    tolerance: float = DEFAULT_TOLERANCE,
    max_iter: int = DEFAULT_MAX_ITER,
    normalize: bool = True,
) -> FactorModel:
    """Functional shortcut for FactorExtractor(...).fit(data)."""
    return FactorExtractor(
        n_factors=n_factors,
        method=method,
        rotation=rotation,
        tolerance=tolerance,
        max_iter=max_iter,
        normalize=normalize,
    ).fit(data)
