"""
vss.py - Choosing the Number of Factors
=======================================

Very Simple Structure (Revelle & Rocklin, 1979): for each candidate number
of factors, fit and rotate a factor model, then ask how well the
correlations are reproduced when every variable keeps only its c largest
loadings (complexity c). A good count is one where the simplified model
still fits well.

Velicer's MAP criterion is reported alongside: the average squared partial
correlation after removing the first n principal components.

Both are diagnostics for human judgment, not a decision rule.
"""

from __future__ import annotations

from typing import List, Union

import numpy as np
from loguru import logger

from .config import DEFAULT_MAX_FACTORS, DEFAULT_MAX_ITER, DEFAULT_TOLERANCE, AnalysisConfig
from .decomposition import eigen_decomposition, principal_component_loadings
from .exceptions import ConfigurationError
from .extraction import FactorExtractor
from .preprocessing import check_nonsingular, correlation_matrix
from .types import (
    CorrelationMatrix,
    Dataset,
    EstimationMethod,
    Rotation,
    VSSResult,
    VSSRow,
)


def _or_nan(value) -> float:
    return float("nan") if value is None else float(value)


def simplify_loadings(loadings: np.ndarray, complexity: int) -> np.ndarray:
    """
    Keep the `complexity` largest-magnitude loadings in each row; zero the rest.
    """
    L = np.asarray(loadings)
    keep = np.argsort(-np.abs(L), axis=1, kind="stable")[:, :complexity]
    rows = np.arange(L.shape[0])[:, None]
    simple = np.zeros_like(L)
    simple[rows, keep] = L[rows, keep]
    return simple


def simple_structure_fit(
    R: np.ndarray,
    simple: np.ndarray,
    phi: np.ndarray,
    include_diagonal: bool = False,
) -> float:
    """
    1 - Σ residual² / Σ R² for the model S Φ Sᵀ.

    With include_diagonal=False the diagonals of R and of the residual are
    left out of both sums.
    """
    residual = R - simple @ phi @ simple.T
    target = R
    if not include_diagonal:
        off = ~np.eye(R.shape[0], dtype=bool)
        residual, target = residual[off], R[off]
    return float(1.0 - np.sum(residual ** 2) / np.sum(target ** 2))


def velicer_map(corr: CorrelationMatrix, max_factors: int) -> np.ndarray:
    """
    Velicer's minimum average partial for 1..max_factors components.

    Returns
    -------
    np.ndarray
        Shape (max_factors,); the minimum marks the suggested count.
    """
    p = corr.p
    R = np.array(corr.matrix)
    eig = eigen_decomposition(corr)
    values = np.empty(max_factors)

    for n in range(1, max_factors + 1):
        A = principal_component_loadings(eig, n)
        partial = R - A @ A.T
        d = np.diag(partial)
        if np.any(d <= 0):
            values[n - 1] = np.nan
            continue
        scale = 1.0 / np.sqrt(d)
        pr = partial * np.outer(scale, scale)
        values[n - 1] = (np.sum(pr ** 2) - p) / (p * (p - 1))

    return values


def very_simple_structure(
    data: Union[Dataset, CorrelationMatrix],
    max_factors: int = DEFAULT_MAX_FACTORS,
    rotation: Union[Rotation, str, None] = Rotation.VARIMAX,
    method: Union[EstimationMethod, str] = EstimationMethod.MINRES,
    include_diagonal: bool = False,
    tolerance: float = DEFAULT_TOLERANCE,
    max_iter: int = DEFAULT_MAX_ITER,
) -> VSSResult:
    """
    Evaluate complexity-1 and complexity-2 fit for 1..max_factors factors.

    Parameters
    ----------
    data : Dataset or CorrelationMatrix
        Raw/standardized data or a precomputed correlation matrix.
    max_factors : int, default=8
        Largest candidate count; must be < number of variables.
    rotation : Rotation or str, default='varimax'
    method : EstimationMethod or str, default='minres'
    include_diagonal : bool, default=False
        Include the correlation diagonal in the fit index.
    tolerance, max_iter
        Passed to FactorExtractor.

    Returns
    -------
    VSSResult

    Raises
    ------
    ConfigurationError
        If max_factors < 1 or max_factors >= number of variables.
    DataQualityError
        If the correlation matrix is singular.
    ConvergenceError
        If any candidate model fails to converge.

    Examples
    --------
    >>> result = very_simple_structure(data, max_factors=8, rotation="varimax",
    ...                                method="ml", include_diagonal=False)
    >>> result.to_frame()
    >>> result.best_complexity_1
    """
    corr = data if isinstance(data, CorrelationMatrix) else correlation_matrix(data)
    rotation = Rotation.parse(rotation)
    method = EstimationMethod.parse(method)
    p = corr.p

    if int(max_factors) != max_factors or max_factors < 1:
        raise ConfigurationError(f"max_factors must be an integer >= 1, got {max_factors}")
    if max_factors >= p:
        raise ConfigurationError(
            f"max_factors={max_factors} must be < number of variables ({p})"
        )

    check_nonsingular(corr)
    logger.info(
        f"VSS over 1..{max_factors} factors "
        f"(rotation={rotation.value}, method={method.value}, diagonal={include_diagonal})"
    )

    R = np.array(corr.matrix)
    map_values = velicer_map(corr, max_factors)
    rows: List[VSSRow] = []

    for n in range(1, max_factors + 1):
        model = FactorExtractor(
            n_factors=n,
            method=method,
            rotation=rotation,
            tolerance=tolerance,
            max_iter=max_iter,
        ).fit(corr)

        fits = [
            simple_structure_fit(
                R, simplify_loadings(model.loadings, c), model.phi, include_diagonal
            )
            for c in (1, 2)
        ]
        rows.append(
            VSSRow(
                n_factors=n,
                complexity_1=fits[0],
                complexity_2=fits[1],
                map=float(map_values[n - 1]),
                dof=model.fit.dof,
                chi_square=_or_nan(model.fit.chi_square),
                bic=_or_nan(model.fit.bic),
                rmsr=model.fit.rmsr,
            )
        )
        logger.debug(f"VSS n={n}: c1={fits[0]:.4f}, c2={fits[1]:.4f}")

    result = VSSResult(
        rows=tuple(rows),
        rotation=rotation,
        method=method,
        include_diagonal=include_diagonal,
    )
    logger.success(
        f"VSS complete. Complexity 1 peaks at {result.best_complexity_1}, "
        f"complexity 2 at {result.best_complexity_2}, MAP minimum at {result.best_map}"
    )
    return result


def vss_from_config(
    data: Union[Dataset, CorrelationMatrix], config: AnalysisConfig
) -> VSSResult:
    """Run very_simple_structure with the options held by an AnalysisConfig."""
    return very_simple_structure(
        data,
        max_factors=config.max_factors,
        rotation=config.rotation,
        method=config.estimation_method,
        include_diagonal=config.include_diagonal,
        tolerance=config.tolerance,
        max_iter=config.max_iter,
    )
