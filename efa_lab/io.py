"""
io.py - Dataset Acquisition

Loads a whitespace-delimited table (header row of variable names, one row
per subject) from a URL or a local file into a Dataset. A leading row-label
column (a header one field shorter than the data rows) is treated as the
index and dropped.

Loading is a one-shot, fail-fast operation: any network, HTTP, or parse
failure raises DataAcquisitionError. There are no retries.

Example Usage:
-------------
    >>> from efa_lab.io import load_dataset
    >>>
    >>> data = load_dataset()                       # default personality dataset
    >>> data = load_dataset("ratings.txt")          # local file
    >>> data = load_dataset("https://example.org/ratings.txt", timeout=10)
"""

from __future__ import annotations

import io
from pathlib import Path
from typing import Union

import pandas as pd
import requests
from loguru import logger

from .config import DEFAULT_DATASET_URL, DEFAULT_TIMEOUT
from .exceptions import DataAcquisitionError
from .types import Dataset


def _is_url(source: str) -> bool:
    return source.startswith(("http://", "https://"))


def fetch_text(url: str, timeout: float = DEFAULT_TIMEOUT) -> str:
    """
    Download a text resource.

    Raises
    ------
    DataAcquisitionError
        On connection errors, timeouts, or non-2xx responses.
    """
    logger.info(f"Fetching dataset from {url}")
    try:
        response = requests.get(url, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as e:
        logger.error(f"Download failed: {e}")
        raise DataAcquisitionError(f"Could not fetch dataset from {url}: {e}") from e
    return response.text


def parse_table(text: str) -> Dataset:
    """
    Parse whitespace-delimited text with a header row into a Dataset.

    Parameters
    ----------
    text : str
        Table contents. Quoted header names are unquoted.

    Returns
    -------
    Dataset

    Raises
    ------
    DataAcquisitionError
        If the text is empty, malformed, has non-numeric cells, or has
        missing cells.
    """
    try:
        frame = pd.read_csv(io.StringIO(text), sep=r"\s+")
    except (pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        raise DataAcquisitionError(f"Could not parse dataset: {e}") from e

    try:
        frame = frame.apply(pd.to_numeric, errors="raise")
    except (ValueError, TypeError) as e:
        raise DataAcquisitionError(f"Dataset contains non-numeric cells: {e}") from e

    missing = [str(c) for c in frame.columns[frame.isna().any()]]
    if missing:
        raise DataAcquisitionError(
            f"Dataset has missing cells (short rows or NA markers) in columns: {missing}"
        )

    data = Dataset(values=frame.to_numpy(dtype=float), columns=tuple(frame.columns))
    logger.debug(f"Parsed dataset: {data.n_obs} rows x {data.n_vars} columns")
    return data


def load_dataset(
    source: Union[str, Path] = DEFAULT_DATASET_URL,
    timeout: float = DEFAULT_TIMEOUT,
) -> Dataset:
    """
    Load a Dataset from a URL or a local path.

    Parameters
    ----------
    source : str or Path, default=DEFAULT_DATASET_URL
        http(s) URL or path of a whitespace-delimited table.
    timeout : float, default=30.0
        Network timeout in seconds (URLs only).

    Returns
    -------
    Dataset

    Raises
    ------
    DataAcquisitionError
        If the source cannot be read or parsed.
    """
    source_str = str(source)

    if _is_url(source_str):
        text = fetch_text(source_str, timeout=timeout)
    else:
        path = Path(source)
        if not path.exists():
            raise DataAcquisitionError(f"Dataset file not found: {path}")
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise DataAcquisitionError(f"Could not read dataset file {path}: {e}") from e

    data = parse_table(text)
    logger.success(f"Loaded dataset: {data.n_obs} subjects, {data.n_vars} variables")
    return data
