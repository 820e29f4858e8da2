"""
efa_lab - A Python Library for Exploratory Factor Analysis
"""

__version__ = "1.0.0"

# =============================================================================
# CORE TYPES
# =============================================================================
from .types import (
    Dataset,
    StandardizedDataset,
    CorrelationMatrix,
    EigenDecomposition,
    FactorModel,
    FitStatistics,
    VSSRow,
    VSSResult,
    Rotation,
    EstimationMethod,
)

# =============================================================================
# ERRORS AND CONFIGURATION
# =============================================================================
from .exceptions import (
    EFAError,
    DataAcquisitionError,
    DataQualityError,
    ConfigurationError,
    ConvergenceError,
)
from .config import (
    AnalysisConfig,
    DEFAULT_DATASET_URL,
)

# =============================================================================
# PIPELINE STAGES
# =============================================================================
from .io import (
    load_dataset,
    parse_table,
)
from .preprocessing import (
    standardize,
    correlation_matrix,
    squared_multiple_correlations,
)
from .decomposition import (
    eigen_decomposition,
)
from .rotation import (
    rotate,
    RotationResult,
)
from .extraction import (
    FactorExtractor,
    fit_factor_model,
)
from .vss import (
    very_simple_structure,
    velicer_map,
)
from .simulation import (
    FactorDataSimulator,
    simulate_dataset,
)
from .pipeline import (
    AnalysisReport,
    run_analysis,
)

# PUBLIC API
# =============================================================================
__all__ = [
    "__version__",
    "Dataset",
    "StandardizedDataset",
    "CorrelationMatrix",
    "EigenDecomposition",
    "FactorModel",
    "FitStatistics",
    "VSSRow",
    "VSSResult",
    "Rotation",
    "EstimationMethod",
    "EFAError",
    "DataAcquisitionError",
    "DataQualityError",
    "ConfigurationError",
    "ConvergenceError",
    "AnalysisConfig",
    "DEFAULT_DATASET_URL",
    "load_dataset",
    "parse_table",
    "standardize",
    "correlation_matrix",
    "squared_multiple_correlations",
    "eigen_decomposition",
    "rotate",
    "RotationResult",
    "FactorExtractor",
    "fit_factor_model",
    "very_simple_structure",
    "velicer_map",
    "FactorDataSimulator",
    "simulate_dataset",
    "AnalysisReport",
    "run_analysis",
]
