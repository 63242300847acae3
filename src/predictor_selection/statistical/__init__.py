"""
Statistical Predictor Selection Module

Multicollinearity diagnostics for environmental predictor sets sampled from
raster layers (e.g. the 19 WorldClim bioclimatic variables).

Key Components:
- Pearson/Spearman correlation matrix with collinear pair detection
- Stepwise VIF filtering (vif_step / vif_cor)
- Exhaustive least-correlated k-subset search
- PCA explained variance and loading-based predictor suggestions
- Engine coordinating all stages for one analysis run
"""

from .correlation_analysis import CorrelationAnalyzer, validate_correlation_matrix
from .vif_filter import VIFStepwiseFilter
from .subset_search import (
    LeastCorrelatedSubsetSelector,
    SelectionResult,
    find_least_correlated_subset,
    max_abs_pairwise_correlation
)
from .pca_analysis import PCAAnalyzer
from .selection_engine import PredictorSelectionEngine

__all__ = [
    'CorrelationAnalyzer',
    'validate_correlation_matrix',
    'VIFStepwiseFilter',
    'LeastCorrelatedSubsetSelector',
    'SelectionResult',
    'find_least_correlated_subset',
    'max_abs_pairwise_correlation',
    'PCAAnalyzer',
    'PredictorSelectionEngine'
]
