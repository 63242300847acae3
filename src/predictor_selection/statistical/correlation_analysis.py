"""
Correlation Analysis for Environmental Predictors

Computes the pairwise correlation matrix over sampled raster predictor values
and reports the predictor pairs whose correlation exceeds a collinearity
threshold (|r| >= 0.7 is the usual cut-off for species distribution models).

Key Features:
- Pearson (default) or Spearman correlation matrix over aligned samples
- High-correlation pair listing with two-sided p-values
- Structural validation of correlation matrices supplied from elsewhere
- Multicollinearity summary per predictor
"""

import logging
from typing import Dict, List, Optional, Any
import pandas as pd
import numpy as np
from datetime import datetime
from scipy import stats

from ..exceptions import InvalidArgument, MalformedMatrix

logger = logging.getLogger(__name__)

SUPPORTED_METHODS = ('pearson', 'spearman')
MATRIX_TOLERANCE = 1e-8


def validate_correlation_matrix(matrix: pd.DataFrame, tolerance: float = MATRIX_TOLERANCE) -> pd.DataFrame:
    """
    Check that a labelled matrix can be read as a correlation matrix.

    The matrix must be square with identical row and column labels, free of
    NaN, symmetric and bounded by [-1, 1] (within ``tolerance``).

    Raises:
        MalformedMatrix: on the first violated condition
    """
    if not isinstance(matrix, pd.DataFrame):
        raise MalformedMatrix(f"Expected a labelled DataFrame, got {type(matrix).__name__}")

    n_rows, n_cols = matrix.shape
    if n_rows != n_cols:
        raise MalformedMatrix(f"Correlation matrix must be square, got {n_rows}x{n_cols}")

    if list(matrix.index) != list(matrix.columns):
        raise MalformedMatrix("Row and column labels of the correlation matrix differ")

    if matrix.columns.duplicated().any():
        duplicates = matrix.columns[matrix.columns.duplicated()].tolist()
        raise MalformedMatrix(f"Duplicate variable identifiers: {duplicates}")

    values = matrix.to_numpy(dtype=float)

    if np.isnan(values).any():
        raise MalformedMatrix("Correlation matrix contains NaN values")

    if np.abs(values).max(initial=0.0) > 1.0 + tolerance:
        raise MalformedMatrix("Correlation matrix contains values outside [-1, 1]")

    if not np.allclose(values, values.T, atol=tolerance, rtol=0.0):
        raise MalformedMatrix("Correlation matrix is not symmetric")

    return matrix


class CorrelationAnalyzer:
    """
    Pairwise correlation analysis over predictor samples.

    One row per sampled pixel, one column per predictor. The resulting matrix
    feeds the least-correlated subset search and the VIF/correlation filters.
    """

    def __init__(
        self,
        correlation_threshold: float = 0.7,
        method: str = 'pearson'
    ):
        """
        Initialize correlation analyzer.

        Args:
            correlation_threshold: |r| at or above which a pair is flagged
            method: Correlation method ('pearson' or 'spearman')
        """
        if method not in SUPPORTED_METHODS:
            raise InvalidArgument(f"Unsupported correlation method: {method}")

        self.correlation_threshold = correlation_threshold
        self.method = method

        # Analysis results
        self.correlation_matrix_ = None
        self.high_correlation_pairs_ = []
        self.processing_stats_ = {}

    def compute_correlation_matrix(self, X: pd.DataFrame) -> pd.DataFrame:
        """Correlation matrix over the columns of X."""
        if X.shape[1] < 2:
            raise InvalidArgument("Need at least 2 variables for correlation analysis")

        logger.info(f"Calculating {self.method} correlation matrix for {X.shape[1]} variables")
        return X.corr(method=self.method)

    def _pair_pvalue(self, x: pd.Series, y: pd.Series) -> float:
        mask = x.notna() & y.notna()
        if mask.sum() < 3:
            return float('nan')

        if self.method == 'pearson':
            result = stats.pearsonr(x[mask], y[mask])
        else:
            result = stats.spearmanr(x[mask], y[mask])
        return float(result[1])

    def find_high_correlation_pairs(
        self,
        X: Optional[pd.DataFrame] = None,
        top_n: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        """
        Find predictor pairs with |r| at or above the threshold.

        Args:
            X: Sample frame; when given, each pair gets a two-sided p-value
            top_n: Return only the strongest ``top_n`` pairs

        Returns:
            Pairs sorted by |r| descending
        """
        if self.correlation_matrix_ is None:
            raise ValueError("Analysis not completed - run analyze_correlations first")

        corr_matrix = self.correlation_matrix_
        names = corr_matrix.columns.tolist()
        values = corr_matrix.to_numpy(dtype=float)

        pairs = []
        for i in range(len(names)):
            for j in range(i + 1, len(names)):
                corr_value = values[i, j]
                if np.isnan(corr_value) or abs(corr_value) < self.correlation_threshold:
                    continue

                pair = {
                    'feature_1': names[i],
                    'feature_2': names[j],
                    'correlation': float(corr_value),
                    'abs_correlation': float(abs(corr_value)),
                }
                if X is not None:
                    pair['p_value'] = self._pair_pvalue(X[names[i]], X[names[j]])
                pairs.append(pair)

        pairs.sort(key=lambda p: p['abs_correlation'], reverse=True)

        if top_n is not None:
            pairs = pairs[:top_n]

        return pairs

    def analyze_correlations(self, X: pd.DataFrame) -> Dict[str, Any]:
        """
        Compute the correlation matrix and flag collinear pairs.

        Args:
            X: Aligned predictor samples (rows with missing values are
               handled pairwise by pandas)

        Returns:
            Analysis results including matrix, flagged pairs and statistics
        """
        if X.empty:
            raise InvalidArgument("Input sample frame is empty")

        start_time = datetime.now()

        self.correlation_matrix_ = self.compute_correlation_matrix(X)
        self.high_correlation_pairs_ = self.find_high_correlation_pairs(X)

        upper = self._upper_triangle_abs()
        elapsed_time = (datetime.now() - start_time).total_seconds()

        self.processing_stats_ = {
            'n_variables': X.shape[1],
            'n_samples': X.shape[0],
            'n_pairs': len(upper),
            'high_correlation_pairs': len(self.high_correlation_pairs_),
            'mean_abs_correlation': float(upper.mean()) if len(upper) else 0.0,
            'max_abs_correlation': float(upper.max()) if len(upper) else 0.0,
            'processing_time_seconds': elapsed_time,
        }

        logger.info(
            f"Correlation analysis: {len(self.high_correlation_pairs_)} of "
            f"{len(upper)} pairs with |r| >= {self.correlation_threshold}"
        )

        return self.get_analysis_results()

    def _upper_triangle_abs(self) -> np.ndarray:
        values = np.abs(self.correlation_matrix_.to_numpy(dtype=float))
        upper = values[np.triu_indices_from(values, k=1)]
        return upper[~np.isnan(upper)]

    def get_analysis_results(self) -> Dict[str, Any]:
        """Get analysis results."""
        return {
            'correlation_matrix': self.correlation_matrix_.copy() if self.correlation_matrix_ is not None else None,
            'high_correlation_pairs': list(self.high_correlation_pairs_),
            'processing_stats': self.processing_stats_.copy(),
            'parameters': {
                'correlation_threshold': self.correlation_threshold,
                'method': self.method,
            }
        }

    def get_multicollinearity_report(self) -> Dict[str, Any]:
        """Summarise how entangled each predictor is with the others."""
        if self.correlation_matrix_ is None:
            raise ValueError("Analysis not completed - run analyze_correlations first")

        upper = self._upper_triangle_abs()

        partner_counts = {name: 0 for name in self.correlation_matrix_.columns}
        for pair in self.high_correlation_pairs_:
            partner_counts[pair['feature_1']] += 1
            partner_counts[pair['feature_2']] += 1

        return {
            'correlation_summary': {
                'mean_correlation': float(upper.mean()) if len(upper) else 0.0,
                'max_correlation': float(upper.max()) if len(upper) else 0.0,
                'high_correlation_count': len(self.high_correlation_pairs_),
            },
            'correlated_partners': dict(
                sorted(partner_counts.items(), key=lambda item: item[1], reverse=True)
            ),
            'uncorrelated_variables': [name for name, count in partner_counts.items() if count == 0],
        }
