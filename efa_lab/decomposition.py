"""
decomposition.py - Spectral Analysis of Correlation Matrices
============================================================

Eigen-decomposition of a correlation matrix for scree diagnostics, plus the
principal-component loadings used by Velicer's MAP criterion.
Uses loguru for diagnostics and the dense symmetric solver (LAPACK) so
eigenvalues are always real.
"""

from __future__ import annotations

from typing import Tuple

import numpy as np
import scipy.linalg
from loguru import logger

from .exceptions import ConfigurationError
from .types import CorrelationMatrix, EigenDecomposition

# Round-off below this magnitude is clamped to zero
_EIGENVALUE_FLOOR = 1e-10


# =============================================================================
# HELPER: LOW-LEVEL SOLVERS
# =============================================================================

def _symmetric_eigh(matrix: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Eigenpairs of a symmetric matrix in descending eigenvalue order.
    """
    if matrix.ndim != 2 or matrix.shape[0] != matrix.shape[1]:
        raise ValueError(f"Matrix must be square, got shape {matrix.shape}")

    vals, vecs = scipy.linalg.eigh(0.5 * (matrix + matrix.T))

    idx = np.argsort(vals)[::-1]
    return vals[idx], vecs[:, idx]


def _normalize_signs(vecs: np.ndarray) -> np.ndarray:
    """Flip each column so its largest-magnitude entry is positive."""
    pivots = vecs[np.argmax(np.abs(vecs), axis=0), np.arange(vecs.shape[1])]
    signs = np.where(pivots < 0, -1.0, 1.0)
    return vecs * signs


# =============================================================================
# MAIN DECOMPOSITION FUNCTIONS
# =============================================================================

def eigen_decomposition(corr: CorrelationMatrix) -> EigenDecomposition:
    """
    Eigenvalues and eigenvectors of a correlation matrix.

    Parameters
    ----------
    corr : CorrelationMatrix
        Symmetric correlation matrix.

    Returns
    -------
    EigenDecomposition
        Eigenvalues sorted descending (summing to p), eigenvectors as
        columns with a sign convention of positive largest entry.
    """
    logger.info(f"Eigen-decomposition of {corr.p}x{corr.p} correlation matrix")
    vals, vecs = _symmetric_eigh(np.asarray(corr.matrix))

    vals = np.where(np.abs(vals) < _EIGENVALUE_FLOOR, 0.0, vals)
    vecs = _normalize_signs(vecs)

    if vals[-1] < 0:
        logger.warning(
            f"Correlation matrix is not positive semi-definite "
            f"(smallest eigenvalue {vals[-1]:.3e})"
        )

    logger.debug(f"Leading eigenvalues: {np.round(vals[:5], 4)}")
    return EigenDecomposition(eigenvalues=vals, eigenvectors=vecs)


def principal_component_loadings(eig: EigenDecomposition, k: int) -> np.ndarray:
    """
    Loadings of the first k principal components, V_k sqrt(Λ_k).

    Returns
    -------
    np.ndarray
        Shape (p, k).
    """
    p = eig.eigenvalues.shape[0]
    if k < 1 or k > p:
        raise ConfigurationError(f"k must be in range [1, {p}], got k={k}")
    vals = np.maximum(eig.eigenvalues[:k], 0.0)
    return eig.eigenvectors[:, :k] * np.sqrt(vals)
