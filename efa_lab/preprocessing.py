"""
preprocessing.py - Standardization and Correlation
==================================================

Turns a raw Dataset into the inputs of factor extraction:
standardized scores, the Pearson correlation matrix, and squared multiple
correlations (initial communality estimates).
"""

from __future__ import annotations

from typing import List, Tuple

import numpy as np
import scipy.linalg
from loguru import logger

from .config import SINGULARITY_THRESHOLD
from .exceptions import DataQualityError
from .types import CorrelationMatrix, Dataset, StandardizedDataset


def _column_stds(data: Dataset) -> np.ndarray:
    """Sample standard deviations; raises on zero-variance columns."""
    stds = np.std(data.values, axis=0, ddof=1)
    flat = [c for c, s in zip(data.columns, stds) if not s > 0]
    if flat:
        logger.error(f"Zero-variance columns: {flat}")
        raise DataQualityError(f"Columns with zero variance cannot be standardized: {flat}")
    return stds


def standardize(data: Dataset) -> StandardizedDataset:
    """
    Center each column and scale it to unit sample standard deviation.

    Parameters
    ----------
    data : Dataset
        Raw ratings.

    Returns
    -------
    StandardizedDataset
        Same shape; each column has mean 0 and std (ddof=1) 1.

    Raises
    ------
    DataQualityError
        If any column has zero variance.
    """
    means = data.values.mean(axis=0)
    stds = _column_stds(data)
    z = (data.values - means) / stds
    logger.debug(f"Standardized {data.n_vars} columns over {data.n_obs} rows")
    return StandardizedDataset(values=z, columns=data.columns, means=means, stds=stds)


def correlation_matrix(data: Dataset) -> CorrelationMatrix:
    """
    Pearson correlation of every pair of variables.

    Accepts raw or standardized data; the result is the same.

    Raises
    ------
    DataQualityError
        If any column has zero variance.
    """
    if isinstance(data, StandardizedDataset):
        z = np.asarray(data.values)
    else:
        z = (data.values - data.values.mean(axis=0)) / _column_stds(data)

    r = (z.T @ z) / (data.n_obs - 1)
    # Symmetrize, then pin the diagonal and range against round-off
    r = 0.5 * (r + r.T)
    np.fill_diagonal(r, 1.0)
    r = np.clip(r, -1.0, 1.0)

    return CorrelationMatrix(matrix=r, columns=data.columns, n_obs=data.n_obs)


def collinear_pairs(corr: CorrelationMatrix, atol: float = 1e-8) -> List[Tuple[str, str]]:
    """Variable pairs whose absolute correlation is 1 within `atol`."""
    p = corr.p
    idx_i, idx_j = np.triu_indices(p, k=1)
    mask = np.abs(corr.matrix[idx_i, idx_j]) >= 1.0 - atol
    return [(corr.columns[i], corr.columns[j]) for i, j in zip(idx_i[mask], idx_j[mask])]


def check_nonsingular(corr: CorrelationMatrix, threshold: float = SINGULARITY_THRESHOLD) -> float:
    """
    Verify the correlation matrix is safely positive definite.

    Returns
    -------
    float
        The smallest eigenvalue.

    Raises
    ------
    DataQualityError
        If the smallest eigenvalue is below `threshold` (perfect or near
        collinearity among variables).
    """
    min_eig = float(scipy.linalg.eigvalsh(corr.matrix, subset_by_index=(0, 0))[0])
    if min_eig < threshold:
        pairs = collinear_pairs(corr)
        hint = f" Collinear pairs: {pairs}." if pairs else ""
        logger.error(f"Singular correlation matrix (min eigenvalue {min_eig:.3e})")
        raise DataQualityError(
            f"Correlation matrix is singular or near-singular "
            f"(smallest eigenvalue {min_eig:.3e} < {threshold:.0e}).{hint}"
        )
    return min_eig


def squared_multiple_correlations(corr: CorrelationMatrix) -> np.ndarray:
    """
    R² of each variable regressed on all the others, 1 - 1/diag(R⁻¹).

    Used as initial communality estimates.

    Raises
    ------
    DataQualityError
        If the correlation matrix cannot be inverted.
    """
    try:
        r_inv = scipy.linalg.inv(corr.matrix)
    except (np.linalg.LinAlgError, ValueError) as e:
        raise DataQualityError(f"Correlation matrix is not invertible: {e}") from e
    smc = 1.0 - 1.0 / np.diag(r_inv)
    return np.clip(smc, 0.0, 1.0)
