"""
types.py - Core Data Structures and Type Definitions for efa_lab

This module defines the value objects passed between pipeline stages:
- Dataset / StandardizedDataset: subjects x variables tables
- CorrelationMatrix: Pearson correlations between variables
- EigenDecomposition: spectrum of a correlation matrix (scree diagnostics)
- FactorModel / FitStatistics: a fitted exploratory factor model
- VSSRow / VSSResult: Very Simple Structure diagnostics per factor count

Design Principles:
-----------------
1. Immutability (frozen dataclasses, read-only arrays)
2. Validation at construction time (fail-fast)
3. Derived quantities are properties, never stored twice
4. Numpy-style docstrings throughout

Example Usage:
-------------
    >>> import numpy as np
    >>> from efa_lab.types import Dataset
    >>>
    >>> data = Dataset(values=np.random.randn(100, 4), columns=("a", "b", "c", "d"))
    >>> print(f"{data.n_obs} subjects, {data.n_vars} variables")
    100 subjects, 4 variables
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Optional, Tuple, List

import numpy as np
import pandas as pd

from .exceptions import ConfigurationError, DataQualityError


def _frozen_array(values, dtype=float) -> np.ndarray:
    """Copy `values` into a read-only float array."""
    arr = np.array(values, dtype=dtype, copy=True)
    arr.setflags(write=False)
    return arr


# =============================================================================
# OPTION ENUMS
# =============================================================================

class Rotation(str, Enum):
    """
    Factor rotations.

    NONE leaves the extracted loadings untouched. VARIMAX and QUARTIMAX are
    orthogonal (factors stay uncorrelated). OBLIMIN and PROMAX are oblique
    (factors may correlate; see FactorModel.phi).
    """
    NONE = "none"
    VARIMAX = "varimax"
    QUARTIMAX = "quartimax"
    OBLIMIN = "oblimin"
    PROMAX = "promax"

    @property
    def is_oblique(self) -> bool:
        return self in (Rotation.OBLIMIN, Rotation.PROMAX)

    @classmethod
    def parse(cls, value) -> "Rotation":
        """Coerce a name (or None) into a Rotation."""
        if isinstance(value, cls):
            return value
        if value is None:
            return cls.NONE
        try:
            return cls(str(value).lower())
        except ValueError:
            valid = [r.value for r in cls]
            raise ConfigurationError(
                f"Unknown rotation: '{value}'. Valid rotations are: {valid}"
            ) from None


class EstimationMethod(str, Enum):
    """
    Factor extraction methods.

    MINRES: unweighted least squares on the reduced correlation matrix.
    PRINCIPAL_AXIS: iterated principal axis factoring.
    MAXIMUM_LIKELIHOOD: normal-theory maximum likelihood.
    """
    MINRES = "minres"
    PRINCIPAL_AXIS = "pa"
    MAXIMUM_LIKELIHOOD = "ml"

    @classmethod
    def parse(cls, value) -> "EstimationMethod":
        """Coerce a name or common alias into an EstimationMethod."""
        if isinstance(value, cls):
            return value
        aliases = {
            "uls": cls.MINRES,
            "principal-axis": cls.PRINCIPAL_AXIS,
            "principal_axis": cls.PRINCIPAL_AXIS,
            "maximum-likelihood": cls.MAXIMUM_LIKELIHOOD,
            "maximum_likelihood": cls.MAXIMUM_LIKELIHOOD,
            "mle": cls.MAXIMUM_LIKELIHOOD,
        }
        key = str(value).lower()
        if key in aliases:
            return aliases[key]
        try:
            return cls(key)
        except ValueError:
            valid = [m.value for m in cls] + sorted(aliases)
            raise ConfigurationError(
                f"Unknown estimation method: '{value}'. Valid methods are: {valid}"
            ) from None


# =============================================================================
# DATASETS
# =============================================================================

@dataclass(frozen=True, eq=False)
class Dataset:
    """
    A table of subjects (rows) by named numeric variables (columns).

    Parameters
    ----------
    values : np.ndarray
        Ratings with shape (n_obs, n_vars). Copied and made read-only.
    columns : Sequence[str]
        One unique name per column.

    Raises
    ------
    DataQualityError
        If the table is not 2-D, too small, or contains non-finite cells.
    ValueError
        If the column names do not match the table width.
    """
    values: np.ndarray
    columns: Tuple[str, ...]

    def __post_init__(self):
        object.__setattr__(self, "values", _frozen_array(self.values))
        object.__setattr__(self, "columns", tuple(str(c) for c in self.columns))
        self.validate()

    @property
    def n_obs(self) -> int:
        """Number of subjects (rows)."""
        return self.values.shape[0]

    @property
    def n_vars(self) -> int:
        """Number of variables (columns)."""
        return self.values.shape[1]

    def validate(self) -> None:
        if self.values.ndim != 2:
            raise DataQualityError(f"Dataset must be 2D, got shape {self.values.shape}")

        n, p = self.values.shape
        if n < 2 or p < 2:
            raise DataQualityError(
                f"Dataset needs at least 2 rows and 2 columns, got ({n}, {p})"
            )

        if len(self.columns) != p:
            raise ValueError(
                f"Column names mismatch: {len(self.columns)} names for {p} columns"
            )

        if len(set(self.columns)) != p:
            raise ValueError("Column names must be unique")

        if not np.all(np.isfinite(self.values)):
            bad = [c for c, ok in zip(self.columns, np.isfinite(self.values).all(axis=0)) if not ok]
            raise DataQualityError(f"Non-finite values in columns: {bad}")

    def column(self, name: str) -> np.ndarray:
        """Return the values of one named variable."""
        try:
            return self.values[:, self.columns.index(name)]
        except ValueError:
            raise KeyError(name) from None

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(np.array(self.values), columns=list(self.columns))

    @classmethod
    def from_frame(cls, frame: pd.DataFrame) -> "Dataset":
        """
        Build a Dataset from a DataFrame of numeric columns.

        Raises
        ------
        DataQualityError
            If any column is not numeric.
        """
        non_numeric = [
            c for c in frame.columns if not pd.api.types.is_numeric_dtype(frame[c])
        ]
        if non_numeric:
            raise DataQualityError(f"Non-numeric columns: {non_numeric}")
        return cls(values=frame.to_numpy(dtype=float), columns=tuple(frame.columns))


@dataclass(frozen=True, eq=False)
class StandardizedDataset(Dataset):
    """
    A Dataset whose columns have mean 0 and sample standard deviation 1.

    Parameters
    ----------
    means : np.ndarray
        Column means of the source data, shape (n_vars,).
    stds : np.ndarray
        Column standard deviations (ddof=1) of the source data.
    """
    means: np.ndarray = field(default=None)
    stds: np.ndarray = field(default=None)

    def __post_init__(self):
        super().__post_init__()
        if self.means is None or self.stds is None:
            raise ValueError("StandardizedDataset requires means and stds")
        object.__setattr__(self, "means", _frozen_array(self.means))
        object.__setattr__(self, "stds", _frozen_array(self.stds))
        if self.means.shape != (self.n_vars,) or self.stds.shape != (self.n_vars,):
            raise ValueError(
                f"means/stds must have shape ({self.n_vars},), "
                f"got {self.means.shape} and {self.stds.shape}"
            )


# =============================================================================
# CORRELATION / SPECTRUM
# =============================================================================

@dataclass(frozen=True, eq=False)
class CorrelationMatrix:
    """
    Pearson correlation matrix of p variables.

    Parameters
    ----------
    matrix : np.ndarray
        Symmetric (p, p) matrix with unit diagonal.
    columns : Sequence[str]
        Variable names, in matrix order.
    n_obs : int, optional
        Number of subjects the correlations were computed from. Needed for
        chi-square and BIC fit statistics; None for a population matrix,
        in which case those statistics are reported as None.
    """
    matrix: np.ndarray
    columns: Tuple[str, ...]
    n_obs: Optional[int]

    def __post_init__(self):
        object.__setattr__(self, "matrix", _frozen_array(self.matrix))
        object.__setattr__(self, "columns", tuple(self.columns))
        self.validate()

    @property
    def p(self) -> int:
        return self.matrix.shape[0]

    def validate(self) -> None:
        m = self.matrix
        if m.ndim != 2 or m.shape[0] != m.shape[1]:
            raise ValueError(f"Correlation matrix must be square, got shape {m.shape}")
        if len(self.columns) != m.shape[0]:
            raise ValueError(
                f"Column names mismatch: {len(self.columns)} names for {m.shape[0]} variables"
            )
        if not np.all(np.isfinite(m)):
            raise DataQualityError("Correlation matrix contains non-finite entries")
        if not np.allclose(m, m.T, atol=1e-10):
            raise ValueError("Correlation matrix must be symmetric")
        if not np.allclose(np.diag(m), 1.0, atol=1e-10):
            raise ValueError("Correlation matrix must have a unit diagonal")
        if self.n_obs is not None and self.n_obs < 2:
            raise ValueError(
                f"n_obs must be at least 2 (or None when unknown), got {self.n_obs}"
            )

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(np.array(self.matrix), index=self.columns, columns=self.columns)


@dataclass(frozen=True, eq=False)
class EigenDecomposition:
    """
    Eigenvalues (descending) and eigenvectors of a correlation matrix.

    Parameters
    ----------
    eigenvalues : np.ndarray
        Shape (p,), sorted in descending order.
    eigenvectors : np.ndarray
        Shape (p, p); column j pairs with eigenvalues[j].
    """
    eigenvalues: np.ndarray
    eigenvectors: np.ndarray

    def __post_init__(self):
        object.__setattr__(self, "eigenvalues", _frozen_array(self.eigenvalues))
        object.__setattr__(self, "eigenvectors", _frozen_array(self.eigenvectors))
        p = self.eigenvalues.shape[0]
        if self.eigenvectors.shape != (p, p):
            raise ValueError(
                f"eigenvectors shape mismatch: expected ({p}, {p}), "
                f"got {self.eigenvectors.shape}"
            )
        if np.any(np.diff(self.eigenvalues) > 1e-12):
            raise ValueError("eigenvalues must be sorted in descending order")

    @property
    def explained_variance_ratio(self) -> np.ndarray:
        """Share of total variance carried by each eigenvalue."""
        return self.eigenvalues / np.sum(self.eigenvalues)

    @property
    def cumulative_variance_ratio(self) -> np.ndarray:
        return np.cumsum(self.explained_variance_ratio)

    @property
    def kaiser_count(self) -> int:
        """Number of eigenvalues greater than 1 (Kaiser criterion)."""
        return int(np.sum(self.eigenvalues > 1.0))


# =============================================================================
# FACTOR MODEL
# =============================================================================

@dataclass(frozen=True)
class FitStatistics:
    """
    Goodness-of-fit summary for a fitted factor model.

    Parameters
    ----------
    objective : float
        Maximum-likelihood discrepancy between observed and implied correlation.
    chi_square : float or None
        Bartlett-corrected likelihood-ratio statistic; None when the sample
        size is unknown.
    dof : float
        Degrees of freedom ((p - k)^2 - (p + k)) / 2. May be negative.
    p_value : float or None
        Upper-tail chi-square probability; None when dof <= 0.
    rmsr : float
        Root mean square of off-diagonal residual correlations.
    bic : float or None
        chi_square - dof * ln(n_obs); None when the sample size is unknown.
    iterations : int
        Iterations used by the estimator.
    converged : bool
        Whether the estimator met its tolerance.
    heywood_variables : tuple of str
        Variables whose communality reached 1 and were pulled back to
        1 - MIN_UNIQUENESS.
    """
    objective: float
    chi_square: Optional[float]
    dof: float
    p_value: Optional[float]
    rmsr: float
    bic: Optional[float]
    iterations: int
    converged: bool = True
    heywood_variables: Tuple[str, ...] = ()


@dataclass(frozen=True, eq=False)
class FactorModel:
    """
    A fitted exploratory factor model.

    The model reproduces the correlation matrix as

        R ≈ L Φ Lᵀ + diag(u)

    where L is the (p, k) loading (pattern) matrix, Φ the (k, k) factor
    correlation matrix and u the uniquenesses.

    Parameters
    ----------
    loadings : np.ndarray
        Rotated loadings with shape (p, k).
    columns : Sequence[str]
        Variable names for the loading rows.
    method : EstimationMethod
        How the unrotated loadings were estimated.
    rotation : Rotation
        Rotation applied to the loadings.
    phi : np.ndarray, optional
        Factor correlation matrix (k, k). Defaults to identity.
    rotation_matrix : np.ndarray, optional
        Matrix T mapping unrotated to rotated loadings, L = A (Tᵀ)⁻¹.
        Defaults to identity.
    fit : FitStatistics, optional
        Goodness-of-fit statistics.

    Attributes
    ----------
    communalities : np.ndarray
        diag(L Φ Lᵀ); equals the row sum of squared loadings when Φ = I.
    uniquenesses : np.ndarray
        1 - communalities (derived, never stored).

    Examples
    --------
    >>> model = FactorExtractor(n_factors=2, rotation="varimax").fit(data)
    >>> model.loadings.shape
    (6, 2)
    >>> np.allclose(model.communalities + model.uniquenesses, 1.0)
    True
    """
    loadings: np.ndarray
    columns: Tuple[str, ...]
    method: EstimationMethod
    rotation: Rotation
    phi: Optional[np.ndarray] = None
    rotation_matrix: Optional[np.ndarray] = None
    fit: Optional[FitStatistics] = None

    def __post_init__(self):
        object.__setattr__(self, "loadings", _frozen_array(self.loadings))
        object.__setattr__(self, "columns", tuple(self.columns))
        k = self.loadings.shape[1] if self.loadings.ndim == 2 else 0
        if self.phi is None:
            object.__setattr__(self, "phi", np.eye(k))
        if self.rotation_matrix is None:
            object.__setattr__(self, "rotation_matrix", np.eye(k))
        object.__setattr__(self, "phi", _frozen_array(self.phi))
        object.__setattr__(self, "rotation_matrix", _frozen_array(self.rotation_matrix))
        self.validate()

    @property
    def p(self) -> int:
        """Number of variables."""
        return self.loadings.shape[0]

    @property
    def k(self) -> int:
        """Number of factors."""
        return self.loadings.shape[1]

    def validate(self) -> None:
        if self.loadings.ndim != 2:
            raise ValueError(f"loadings must be 2D, got shape {self.loadings.shape}")

        p, k = self.loadings.shape
        if p == 0 or k == 0:
            raise ValueError(f"loadings must have positive dimensions, got ({p}, {k})")

        if len(self.columns) != p:
            raise ValueError(
                f"Column names mismatch: {len(self.columns)} names for {p} variables"
            )

        if self.phi.shape != (k, k):
            raise ValueError(f"phi shape mismatch: expected ({k}, {k}), got {self.phi.shape}")

        if self.rotation_matrix.shape != (k, k):
            raise ValueError(
                f"rotation_matrix shape mismatch: expected ({k}, {k}), "
                f"got {self.rotation_matrix.shape}"
            )

        if not np.all(np.isfinite(self.loadings)):
            raise DataQualityError("Factor loadings contain non-finite values")

    @property
    def communalities(self) -> np.ndarray:
        return np.einsum("ij,jk,ik->i", self.loadings, self.phi, self.loadings)

    @property
    def uniquenesses(self) -> np.ndarray:
        return 1.0 - self.communalities

    @property
    def ss_loadings(self) -> np.ndarray:
        """Variance accounted for by each factor (column sums of squares)."""
        return np.sum(self.loadings ** 2, axis=0)

    @property
    def proportion_variance(self) -> np.ndarray:
        return self.ss_loadings / self.p

    def implied_correlation(self) -> np.ndarray:
        """
        Correlation matrix implied by the model, L Φ Lᵀ + diag(u).

        The diagonal is exactly 1 by construction.
        """
        common = self.loadings @ self.phi @ self.loadings.T
        return common + np.diag(self.uniquenesses)

    def loadings_frame(self) -> pd.DataFrame:
        """Loadings as a DataFrame indexed by variable name."""
        names = [f"F{j + 1}" for j in range(self.k)]
        return pd.DataFrame(np.array(self.loadings), index=self.columns, columns=names)


# =============================================================================
# VSS
# =============================================================================

def _best_index(values: np.ndarray, arg) -> Optional[int]:
    """1-based position chosen by `arg`, or None when every value is NaN."""
    if np.all(np.isnan(values)):
        return None
    return int(arg(values)) + 1


@dataclass(frozen=True)
class VSSRow:
    """Diagnostics for one candidate factor count."""
    n_factors: int
    complexity_1: float
    complexity_2: float
    map: float
    dof: float
    chi_square: float
    bic: float
    rmsr: float


@dataclass(frozen=True)
class VSSResult:
    """
    Very Simple Structure diagnostics for factor counts 1..max_factors.

    This is a ranked diagnostic for human judgment. The `best_*` properties
    report the count that maximizes (or for MAP minimizes) each criterion.
    They are None when the criterion could not be computed for any count.
    """
    rows: Tuple[VSSRow, ...]
    rotation: Rotation
    method: EstimationMethod
    include_diagonal: bool

    @property
    def max_factors(self) -> int:
        return len(self.rows)

    def _column(self, name: str) -> np.ndarray:
        return np.array([getattr(r, name) for r in self.rows], dtype=float)

    @property
    def complexity_1(self) -> np.ndarray:
        return self._column("complexity_1")

    @property
    def complexity_2(self) -> np.ndarray:
        return self._column("complexity_2")

    @property
    def map(self) -> np.ndarray:
        return self._column("map")

    @property
    def best_complexity_1(self) -> Optional[int]:
        return _best_index(self.complexity_1, np.nanargmax)

    @property
    def best_complexity_2(self) -> Optional[int]:
        return _best_index(self.complexity_2, np.nanargmax)

    @property
    def best_map(self) -> Optional[int]:
        return _best_index(self.map, np.nanargmin)

    def to_frame(self) -> pd.DataFrame:
        records: List[dict] = [asdict(r) for r in self.rows]
        return pd.DataFrame.from_records(records).set_index("n_factors")
