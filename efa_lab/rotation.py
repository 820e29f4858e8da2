"""
rotation.py - Factor Rotation
=============================

Rotates a (p, k) loading matrix toward simple structure.

Orthogonal (varimax, quartimax) and oblique (oblimin) rotations use the
gradient projection algorithm (GPA) of Bernaards & Jennrich (2005). Promax
is varimax followed by a least-squares fit to a powered target.

Conventions
-----------
For a rotation matrix T, rotated loadings are L = A (Tᵀ)⁻¹ and the factor
correlations are Φ = Tᵀ T. For orthogonal T this reduces to L = A T, Φ = I.

Rows are Kaiser-normalized (scaled to unit length) before rotating and
rescaled afterwards. Output factors are ordered by descending sum of squared
loadings and reflected so every column sum is positive.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Tuple

import numpy as np
from loguru import logger

from .config import DEFAULT_MAX_ITER, DEFAULT_TOLERANCE
from .exceptions import ConvergenceError
from .types import Rotation

# A criterion maps loadings to (objective value, gradient w.r.t. loadings)
Criterion = Callable[[np.ndarray], Tuple[float, np.ndarray]]

_LINE_SEARCH_STEPS = 11


@dataclass(frozen=True)
class RotationResult:
    """
    Output of a rotation.

    Parameters
    ----------
    loadings : np.ndarray
        Rotated loadings (p, k).
    rotation_matrix : np.ndarray
        T such that loadings = A (Tᵀ)⁻¹.
    phi : np.ndarray
        Factor correlation matrix Tᵀ T (identity for orthogonal rotations).
    iterations : int
        GPA iterations used (0 when no iterative step ran).
    """
    loadings: np.ndarray
    rotation_matrix: np.ndarray
    phi: np.ndarray
    iterations: int = 0


# =============================================================================
# CRITERIA
# =============================================================================

def varimax_criterion(L: np.ndarray) -> Tuple[float, np.ndarray]:
    """Negative variance of squared loadings within each column."""
    QL = L ** 2 - np.mean(L ** 2, axis=0)
    return -np.sum(QL ** 2) / 4.0, -L * QL


def quartimax_criterion(L: np.ndarray) -> Tuple[float, np.ndarray]:
    return -np.sum(L ** 4) / 4.0, -L ** 3


def oblimin_criterion(L: np.ndarray, gamma: float = 0.0) -> Tuple[float, np.ndarray]:
    """
    Oblimin family; gamma=0 is quartimin, gamma=0.5 biquartimin.
    """
    p, k = L.shape
    N = np.ones((k, k)) - np.eye(k)
    X = (L ** 2) @ N
    if gamma != 0:
        C = np.eye(p) - np.full((p, p), gamma / p)
        X = C @ X
    return np.sum(L ** 2 * X) / 4.0, L * X


# =============================================================================
# GPA SOLVERS
# =============================================================================

def _gpa_orthogonal(
    A: np.ndarray,
    criterion: Criterion,
    tol: float,
    max_iter: int,
) -> Tuple[np.ndarray, int]:
    """Orthogonal GPA. Returns (T, iterations)."""
    k = A.shape[1]
    T = np.eye(k)
    f, Gq = criterion(A @ T)
    G = A.T @ Gq
    alpha = 1.0
    s = np.inf

    for iteration in range(1, max_iter + 1):
        M = T.T @ G
        S = 0.5 * (M + M.T)
        Gp = G - T @ S
        s = np.linalg.norm(Gp)
        if s < tol:
            return T, iteration

        alpha *= 2.0
        for _ in range(_LINE_SEARCH_STEPS):
            U, _, Vt = np.linalg.svd(T - alpha * Gp, full_matrices=False)
            T_new = U @ Vt
            f_new, Gq = criterion(A @ T_new)
            if f_new < f - 0.5 * s ** 2 * alpha:
                break
            alpha /= 2.0

        T, f = T_new, f_new
        G = A.T @ Gq

    raise ConvergenceError("Orthogonal rotation did not converge", max_iter, s)


def _gpa_oblique(
    A: np.ndarray,
    criterion: Criterion,
    tol: float,
    max_iter: int,
) -> Tuple[np.ndarray, int]:
    """Oblique GPA. Returns (T, iterations); T has unit-length columns."""
    k = A.shape[1]
    T = np.eye(k)
    T_inv = np.eye(k)
    L = A @ T_inv.T
    f, Gq = criterion(L)
    G = -(L.T @ Gq @ T_inv).T
    alpha = 1.0
    s = np.inf

    for iteration in range(1, max_iter + 1):
        Gp = G - T @ np.diag(np.sum(T * G, axis=0))
        s = np.linalg.norm(Gp)
        if s < tol:
            return T, iteration

        alpha *= 2.0
        for _ in range(_LINE_SEARCH_STEPS):
            X = T - alpha * Gp
            T_new = X / np.sqrt(np.sum(X ** 2, axis=0))
            T_inv = np.linalg.inv(T_new)
            L = A @ T_inv.T
            f_new, Gq = criterion(L)
            if f_new < f - 0.5 * s ** 2 * alpha:
                break
            alpha /= 2.0

        T, f = T_new, f_new
        G = -(L.T @ Gq @ T_inv).T

    raise ConvergenceError("Oblique rotation did not converge", max_iter, s)


# =============================================================================
# ROTATIONS
# =============================================================================

def _promax(
    A: np.ndarray,
    power: int,
    tol: float,
    max_iter: int,
) -> Tuple[np.ndarray, int]:
    """Promax rotation matrix T (loadings = A (Tᵀ)⁻¹)."""
    T_vmax, iterations = _gpa_orthogonal(A, varimax_criterion, tol, max_iter)
    L = A @ T_vmax
    target = L * np.abs(L) ** (power - 1)

    U, *_ = np.linalg.lstsq(L, target, rcond=None)
    d = np.diag(np.linalg.inv(U.T @ U))
    U = U @ np.diag(np.sqrt(d))

    # Full map from A: loadings = A (T_vmax U)
    full = T_vmax @ U
    return np.linalg.inv(full).T, iterations


def _sort_and_reflect(
    L: np.ndarray, T: np.ndarray, phi: np.ndarray
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Order factors by SS loadings (descending); make column sums positive."""
    order = np.argsort(-np.sum(L ** 2, axis=0), kind="stable")
    L, T = L[:, order], T[:, order]
    phi = phi[np.ix_(order, order)]

    signs = np.where(np.sum(L, axis=0) < 0, -1.0, 1.0)
    L = L * signs
    T = T * signs
    phi = phi * np.outer(signs, signs)
    return L, T, phi


def rotate(
    loadings: np.ndarray,
    rotation="varimax",
    normalize: bool = True,
    gamma: float = 0.0,
    power: int = 4,
    tol: float = DEFAULT_TOLERANCE,
    max_iter: int = DEFAULT_MAX_ITER,
) -> RotationResult:
    """
    Rotate a loading matrix.

    Parameters
    ----------
    loadings : np.ndarray
        Unrotated loadings A with shape (p, k).
    rotation : Rotation or str, default='varimax'
        One of none, varimax, quartimax, oblimin, promax.
    normalize : bool, default=True
        Apply Kaiser row normalization during rotation.
    gamma : float, default=0.0
        Oblimin parameter (0 = quartimin).
    power : int, default=4
        Promax target exponent.
    tol : float, default=1e-6
        Convergence tolerance on the projected gradient norm.
    max_iter : int, default=1000
        GPA iteration budget.

    Returns
    -------
    RotationResult

    Raises
    ------
    ConfigurationError
        If the rotation name is unknown.
    ConvergenceError
        If GPA does not converge within max_iter.

    Examples
    --------
    >>> result = rotate(A, "oblimin")
    >>> result.phi          # factor correlations
    """
    rotation = Rotation.parse(rotation)
    A = np.asarray(loadings, dtype=float)
    p, k = A.shape

    if rotation == Rotation.NONE or k == 1:
        if k == 1 and rotation != Rotation.NONE:
            logger.debug(f"Single factor: skipping {rotation.value} rotation")
        L, T, phi = _sort_and_reflect(A.copy(), np.eye(k), np.eye(k))
        return RotationResult(loadings=L, rotation_matrix=T, phi=phi)

    weights = np.sqrt(np.sum(A ** 2, axis=1)) if normalize else np.ones(p)
    weights = np.where(weights > 0, weights, 1.0)
    A_n = A / weights[:, None]

    logger.debug(f"Rotating {p}x{k} loadings ({rotation.value}, normalize={normalize})")

    if rotation == Rotation.VARIMAX:
        T, iterations = _gpa_orthogonal(A_n, varimax_criterion, tol, max_iter)
    elif rotation == Rotation.QUARTIMAX:
        T, iterations = _gpa_orthogonal(A_n, quartimax_criterion, tol, max_iter)
    elif rotation == Rotation.OBLIMIN:
        T, iterations = _gpa_oblique(
            A_n, lambda L: oblimin_criterion(L, gamma), tol, max_iter
        )
    else:
        T, iterations = _promax(A_n, power, tol, max_iter)

    if rotation.is_oblique:
        L = A @ np.linalg.inv(T).T
        phi = T.T @ T
    else:
        L = A @ T
        phi = np.eye(k)

    L, T, phi = _sort_and_reflect(L, T, phi)
    logger.debug(f"Rotation converged in {iterations} iterations")
    return RotationResult(loadings=L, rotation_matrix=T, phi=phi, iterations=iterations)
