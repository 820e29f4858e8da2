"""
config.py - Analysis Settings and Numerical Constants

The recognized options for factor extraction and factor-count selection are
collected in AnalysisConfig, a frozen dataclass validated on construction.

Example Usage:
-------------
    >>> from efa_lab.config import AnalysisConfig
    >>> config = AnalysisConfig(factor_count=3, rotation="oblimin")
    >>> config.rotation
    <Rotation.OBLIMIN: 'oblimin'>
    >>> AnalysisConfig.from_mapping({"factor_count": 2, "estimation_method": "ml"})
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, Mapping, Optional

from .exceptions import ConfigurationError
from .types import EstimationMethod, Rotation

# =============================================================================
# CONSTANTS
# =============================================================================

DEFAULT_DATASET_URL = "https://quantdev.ssri.psu.edu/sites/qdev/files/personality0.txt"

DEFAULT_TOLERANCE = 1e-6
DEFAULT_MAX_ITER = 1000
DEFAULT_MAX_FACTORS = 8
DEFAULT_TIMEOUT = 30.0

# Smallest eigenvalue below which a correlation matrix is treated as singular
SINGULARITY_THRESHOLD = 1e-8

# Uniqueness bounds for the optimizer-based estimators
MIN_UNIQUENESS = 0.005
MAX_UNIQUENESS = 1.0


@dataclass(frozen=True)
class AnalysisConfig:
    """
    Options shared by FactorExtractor and the VSS factor-count selector.

    Parameters
    ----------
    factor_count : int, default=1
        Number of factors to extract (must be < number of variables; checked
        against the data at fit time).
    rotation : Rotation or str, default="varimax"
    estimation_method : EstimationMethod or str, default="minres"
    include_diagonal : bool, default=False
        Whether VSS fit indices include the diagonal of the correlation matrix.
    max_factors : int, default=8
        Largest candidate count evaluated by VSS.
    tolerance : float, default=1e-6
        Convergence tolerance for estimation and rotation.
    max_iter : int, default=1000
        Iteration budget for estimation and rotation.

    Raises
    ------
    ConfigurationError
        On out-of-range values or unknown option names.
    """
    factor_count: int = 1
    rotation: Rotation = Rotation.VARIMAX
    estimation_method: EstimationMethod = EstimationMethod.MINRES
    include_diagonal: bool = False
    max_factors: int = DEFAULT_MAX_FACTORS
    tolerance: float = DEFAULT_TOLERANCE
    max_iter: int = DEFAULT_MAX_ITER

    def __post_init__(self):
        object.__setattr__(self, "rotation", Rotation.parse(self.rotation))
        object.__setattr__(
            self, "estimation_method", EstimationMethod.parse(self.estimation_method)
        )
        self.validate()

    def validate(self) -> None:
        if int(self.factor_count) != self.factor_count or self.factor_count < 1:
            raise ConfigurationError(
                f"factor_count must be an integer >= 1, got {self.factor_count}"
            )
        if int(self.max_factors) != self.max_factors or self.max_factors < 1:
            raise ConfigurationError(
                f"max_factors must be an integer >= 1, got {self.max_factors}"
            )
        if not self.tolerance > 0:
            raise ConfigurationError(f"tolerance must be positive, got {self.tolerance}")
        if self.max_iter < 1:
            raise ConfigurationError(f"max_iter must be >= 1, got {self.max_iter}")

    @classmethod
    def from_mapping(cls, options: Optional[Mapping[str, Any]] = None) -> "AnalysisConfig":
        """
        Build a config from a plain mapping, rejecting unknown keys.

        Parameters
        ----------
        options : Mapping[str, Any], optional
            Keys matching the dataclass fields. Missing keys take defaults.
        """
        options = dict(options or {})
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(options) - known)
        if unknown:
            raise ConfigurationError(
                f"Unknown configuration options: {unknown}. Valid options are: {sorted(known)}"
            )
        return cls(**options)
