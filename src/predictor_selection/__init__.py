"""
Predictor selection for environmental and ecological models.

Screens raster-derived predictors (typically WorldClim bioclimatic variables)
for multicollinearity and recommends a reduced predictor set.
"""

from .config import SelectionConfig, BioclimVariables
from .exceptions import InvalidArgument, MalformedMatrix
from .statistical import (
    PredictorSelectionEngine,
    SelectionResult,
    find_least_correlated_subset
)

__all__ = [
    'SelectionConfig',
    'BioclimVariables',
    'InvalidArgument',
    'MalformedMatrix',
    'PredictorSelectionEngine',
    'SelectionResult',
    'find_least_correlated_subset'
]

__version__ = '1.0.0'
