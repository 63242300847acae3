"""
Predictor Sample Table

Tabular boundary of the toolkit: one row per sampled pixel, one column per
raster predictor. Raster reading, cropping and random pixel sampling happen
upstream; this module loads the resulting table and makes sure every
predictor is observed on the same, complete set of rows.
"""

import logging
from pathlib import Path
from typing import Optional, Sequence
import pandas as pd
import numpy as np

from ..exceptions import InvalidArgument

logger = logging.getLogger(__name__)

MIN_SAMPLES = 3


def load_predictor_samples(path: str, variables: Optional[Sequence[str]] = None) -> pd.DataFrame:
    """Read a CSV table of sampled predictor values."""
    sample_path = Path(path)
    if not sample_path.exists():
        raise FileNotFoundError(f"Sample table not found: {sample_path}")

    frame = pd.read_csv(sample_path)
    logger.info(f"Loaded {sample_path.name}: {frame.shape[0]} rows x {frame.shape[1]} columns")

    if variables is not None:
        missing = [v for v in variables if v not in frame.columns]
        if missing:
            raise InvalidArgument(f"Variables not found in {sample_path.name}: {missing}")
        frame = frame[list(variables)]

    return frame


def prepare_predictor_frame(
    frame: pd.DataFrame,
    variables: Optional[Sequence[str]] = None,
    nodata_values: Sequence[float] = (),
    drop_constant: bool = True
) -> pd.DataFrame:
    """
    Clean sampled values into an aligned, complete predictor frame.

    Args:
        frame: Raw sample table
        variables: Columns to keep (default: all numeric columns)
        nodata_values: Raster nodata sentinels to treat as missing
        drop_constant: Drop zero-variance predictors

    Returns:
        Numeric frame without missing values
    """
    if frame.empty:
        raise InvalidArgument("Sample table is empty")

    if variables is not None:
        missing = [v for v in variables if v not in frame.columns]
        if missing:
            raise InvalidArgument(f"Variables not found in sample table: {missing}")
        frame = frame[list(variables)]

    numeric_columns = frame.select_dtypes(include=[np.number]).columns
    if len(numeric_columns) < len(frame.columns):
        dropped = [c for c in frame.columns if c not in numeric_columns]
        logger.warning(f"Dropped {len(dropped)} non-numeric columns: {dropped}")
        frame = frame[numeric_columns]

    frame = frame.astype(float)
    if len(nodata_values):
        frame = frame.replace(list(nodata_values), np.nan)

    initial_rows = len(frame)
    frame = frame.dropna(axis=0, how='any')
    if len(frame) < initial_rows:
        logger.warning(f"Dropped {initial_rows - len(frame)} rows with missing or nodata values")

    if drop_constant and len(frame):
        constant = [c for c in frame.columns if frame[c].nunique() <= 1]
        if constant:
            logger.warning(f"Dropped {len(constant)} constant columns: {constant}")
            frame = frame.drop(columns=constant)

    if frame.shape[1] < 2:
        raise InvalidArgument(f"Need at least 2 usable predictors, got {frame.shape[1]}")
    if len(frame) < MIN_SAMPLES:
        raise InvalidArgument(f"Need at least {MIN_SAMPLES} complete samples, got {len(frame)}")

    logger.info(f"Prepared predictor frame: {frame.shape[0]} samples x {frame.shape[1]} predictors")
    return frame


def subset_predictors(frame: pd.DataFrame, selected: Sequence[str]) -> pd.DataFrame:
    """Keep only the selected predictors, in selection order."""
    missing = [v for v in selected if v not in frame.columns]
    if missing:
        raise InvalidArgument(f"Selected predictors not in frame: {missing}")
    return frame[list(selected)].copy()