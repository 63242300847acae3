"""
Principal Component Analysis of Predictor Samples

Scales each predictor to zero mean / unit variance, decomposes the sample
into principal components and uses the loadings to suggest a reduced set of
original predictors: one representative (largest |loading|) per retained
component.
"""

import logging
from typing import Dict, List, Optional, Any
import pandas as pd
import numpy as np
from sklearn.decomposition import PCA
from sklearn.preprocessing import StandardScaler

from ..exceptions import InvalidArgument

logger = logging.getLogger(__name__)


class PCAAnalyzer:
    """PCA-based multicollinearity diagnostics for environmental predictors."""

    def __init__(
        self,
        variance_threshold: float = 0.9,
        n_components: Optional[int] = None
    ):
        """
        Args:
            variance_threshold: Cumulative explained variance the retained
                components must reach
            n_components: Fixed number of components to retain (overrides
                variance_threshold when set)
        """
        if not 0.0 < variance_threshold <= 1.0:
            raise InvalidArgument(f"variance_threshold must be in (0, 1], got {variance_threshold}")

        self.variance_threshold = variance_threshold
        self.n_components = n_components

        self.scaler_ = None
        self.pca_ = None
        self.feature_names_ = []
        self.explained_variance_ratio_ = None
        self.cumulative_variance_ = None
        self.eigenvalues_ = None
        self.loadings_ = None
        self.scores_ = None
        self.is_fitted_ = False

    def fit(self, X: pd.DataFrame) -> 'PCAAnalyzer':
        if X.shape[1] < 2:
            raise InvalidArgument("Need at least 2 variables for PCA")
        if X.shape[0] < 2:
            raise InvalidArgument("Need at least 2 samples for PCA")
        if X.isna().any().any():
            raise InvalidArgument("PCA requires complete rows - drop missing values first")

        logger.info(f"Fitting PCA on {X.shape[0]} samples x {X.shape[1]} variables")

        self.feature_names_ = X.columns.tolist()
        self.scaler_ = StandardScaler()
        X_scaled = self.scaler_.fit_transform(X.to_numpy(dtype=float))

        self.pca_ = PCA()
        scores = self.pca_.fit_transform(X_scaled)

        component_names = [f"PC{i + 1}" for i in range(self.pca_.n_components_)]

        self.explained_variance_ratio_ = self.pca_.explained_variance_ratio_
        self.cumulative_variance_ = np.cumsum(self.explained_variance_ratio_)
        # PCA uses ddof=1 while StandardScaler uses ddof=0; rescale to correlation-matrix eigenvalues
        n_samples = X_scaled.shape[0]
        self.eigenvalues_ = self.pca_.explained_variance_ * (n_samples - 1) / n_samples
        self.loadings_ = pd.DataFrame(
            self.pca_.components_.T,
            index=self.feature_names_,
            columns=component_names
        )
        self.scores_ = pd.DataFrame(scores, index=X.index, columns=component_names)
        self.is_fitted_ = True

        logger.info(
            f"PC1 explains {self.explained_variance_ratio_[0]:.1%}; "
            f"{self.components_for_variance()} components reach {self.variance_threshold:.0%}"
        )
        return self

    def _check_fitted(self) -> None:
        if not self.is_fitted_:
            raise ValueError("PCAAnalyzer not fitted - call fit first")

    def components_for_variance(self, threshold: Optional[float] = None) -> int:
        """Smallest number of components whose cumulative variance reaches threshold."""
        self._check_fitted()
        threshold = self.variance_threshold if threshold is None else threshold
        # guard against 0.9999999 < 1.0 from float summation
        reached = self.cumulative_variance_ >= threshold - 1e-12
        return int(np.argmax(reached)) + 1 if reached.any() else len(self.cumulative_variance_)

    def kaiser_components(self) -> int:
        """Number of components with eigenvalue > 1 (at least one)."""
        self._check_fitted()
        return max(1, int(np.sum(self.eigenvalues_ > 1.0)))

    def retained_components(self) -> int:
        self._check_fitted()
        if self.n_components is not None:
            return min(self.n_components, len(self.feature_names_))
        return self.components_for_variance()

    def suggest_predictors(self, n_components: Optional[int] = None) -> List[str]:
        """
        One original predictor per retained component.

        Components are visited in order; each contributes the not-yet-chosen
        predictor with the largest absolute loading.
        """
        self._check_fitted()
        n_components = self.retained_components() if n_components is None else n_components
        if n_components < 1:
            raise InvalidArgument("n_components must be at least 1")
        n_components = min(n_components, self.loadings_.shape[1])

        suggested = []
        for component in self.loadings_.columns[:n_components]:
            ranked = self.loadings_[component].abs().sort_values(ascending=False, kind='mergesort')
            for feature in ranked.index:
                if feature not in suggested:
                    suggested.append(feature)
                    break

        logger.info(f"PCA suggests {len(suggested)} predictors: {suggested}")
        return suggested

    def top_loadings(self, component: str = 'PC1', top_n: int = 5) -> pd.Series:
        self._check_fitted()
        column = self.loadings_[component]
        order = column.abs().sort_values(ascending=False, kind='mergesort').index[:top_n]
        return column.loc[order]

    def get_variance_table(self) -> pd.DataFrame:
        self._check_fitted()
        return pd.DataFrame({
            'component': self.loadings_.columns,
            'eigenvalue': self.eigenvalues_,
            'explained_variance_ratio': self.explained_variance_ratio_,
            'cumulative_variance': self.cumulative_variance_,
        })

    def get_analysis_results(self) -> Dict[str, Any]:
        self._check_fitted()
        return {
            'explained_variance_ratio': self.explained_variance_ratio_.tolist(),
            'cumulative_variance': self.cumulative_variance_.tolist(),
            'eigenvalues': self.eigenvalues_.tolist(),
            'components_for_variance': self.components_for_variance(),
            'kaiser_components': self.kaiser_components(),
            'retained_components': self.retained_components(),
            'suggested_predictors': self.suggest_predictors(),
            'loadings': self.loadings_.copy(),
            'parameters': {
                'variance_threshold': self.variance_threshold,
                'n_components': self.n_components,
            }
        }
