"""
pipeline.py - End-to-End Exploratory Factor Analysis

Chains the stages of a single analysis run:

    load -> standardize -> correlate -> eigen-decompose -> VSS -> extract

Each stage consumes the previous stage's immutable output. A failure at any
stage aborts the run by propagating its exception.

Example Usage:
-------------
    >>> from efa_lab.config import AnalysisConfig
    >>> from efa_lab.pipeline import run_analysis
    >>>
    >>> config = AnalysisConfig(factor_count=5, rotation="oblimin",
    ...                         estimation_method="ml", max_factors=8)
    >>> report = run_analysis("personality0.txt", config)
    >>> report.eigen.eigenvalues[:5]
    >>> report.vss.to_frame()
    >>> report.model.loadings_frame()
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from loguru import logger

from .config import AnalysisConfig
from .decomposition import eigen_decomposition
from .extraction import FactorExtractor
from .io import load_dataset
from .preprocessing import correlation_matrix, standardize
from .types import (
    CorrelationMatrix,
    Dataset,
    EigenDecomposition,
    FactorModel,
    StandardizedDataset,
    VSSResult,
)
from .vss import vss_from_config


@dataclass(frozen=True, eq=False)
class AnalysisReport:
    """
    Every intermediate product of an analysis run.

    `vss` is None when the run skipped factor-count selection.
    """
    config: AnalysisConfig
    data: Dataset
    standardized: StandardizedDataset
    correlation: CorrelationMatrix
    eigen: EigenDecomposition
    vss: Optional[VSSResult]
    model: FactorModel


def run_analysis(
    source: Union[Dataset, str, Path],
    config: Optional[AnalysisConfig] = None,
    run_vss: bool = True,
) -> AnalysisReport:
    """
    Run the full analysis on a dataset or a dataset location.

    Parameters
    ----------
    source : Dataset, str or Path
        An in-memory Dataset, or a URL/path passed to load_dataset.
    config : AnalysisConfig, optional
        Defaults to AnalysisConfig().
    run_vss : bool, default=True
        Whether to run the VSS factor-count diagnostic.

    Returns
    -------
    AnalysisReport

    Raises
    ------
    EFAError
        Any stage failure (see efa_lab.exceptions).
    """
    config = config or AnalysisConfig()
    data = source if isinstance(source, Dataset) else load_dataset(source)

    logger.info(f"Starting analysis: {data.n_obs} subjects, {data.n_vars} variables")

    standardized = standardize(data)
    corr = correlation_matrix(standardized)
    eigen = eigen_decomposition(corr)
    logger.info(f"Kaiser criterion suggests {eigen.kaiser_count} factors")

    vss = vss_from_config(corr, config) if run_vss else None
    model = FactorExtractor.from_config(config).fit(corr)

    logger.success("Analysis complete")
    return AnalysisReport(
        config=config,
        data=data,
        standardized=standardized,
        correlation=corr,
        eigen=eigen,
        vss=vss,
        model=model,
    )
