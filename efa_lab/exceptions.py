"""
exceptions.py - Error Taxonomy for efa_lab

Every failure in an analysis run is fatal and surfaced to the caller:

- DataAcquisitionError: the dataset could not be fetched or parsed
- DataQualityError: the data cannot support the analysis (zero variance,
  non-finite cells, singular correlation matrix)
- ConfigurationError: the requested model is not identified or an option
  value is not recognized
- ConvergenceError: an iterative estimator or rotation did not converge
"""

from __future__ import annotations

from typing import Optional


class EFAError(Exception):
    """Base class for all efa_lab errors."""


class DataAcquisitionError(EFAError):
    """Raised when a dataset cannot be downloaded, read, or parsed."""


class DataQualityError(EFAError, ValueError):
    """Raised when the data violates a precondition of the analysis."""


class ConfigurationError(EFAError, ValueError):
    """Raised for unidentified models and unrecognized option values."""


class ConvergenceError(EFAError, ArithmeticError):
    """
    Raised when an iterative procedure exhausts its iteration budget.

    Parameters
    ----------
    message : str
        Human-readable description.
    iterations : int
        Number of iterations performed before giving up.
    residual : float, optional
        Last observed change (or gradient norm) at termination.
    """

    def __init__(self, message: str, iterations: int, residual: Optional[float] = None):
        self.iterations = iterations
        self.residual = residual
        detail = f"{message} (iterations={iterations}"
        if residual is not None:
            detail += f", residual={residual:.3e}"
        super().__init__(detail + ")")
