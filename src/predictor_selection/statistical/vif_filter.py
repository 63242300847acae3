"""
VIF-Based Multicollinearity Filtering

Stepwise elimination of collinear predictors using the Variance Inflation
Factor, following the two procedures commonly used for species distribution
model inputs:

- vif_step: drop the predictor with the largest VIF until every VIF is at or
  below the threshold (VIF > 10 signals strong multicollinearity)
- vif_cor: take the most correlated remaining pair above a correlation
  threshold and drop whichever member has the larger VIF, until no pair
  exceeds the threshold
"""

import logging
import warnings
from typing import Dict, List, Any
import pandas as pd
import numpy as np
from datetime import datetime
from sklearn.preprocessing import StandardScaler
from statsmodels.stats.outliers_influence import variance_inflation_factor

from ..exceptions import InvalidArgument

logger = logging.getLogger(__name__)


class VIFStepwiseFilter:
    """
    Stepwise VIF filtering of predictor samples.

    VIFs are computed on standardized columns, so no intercept column is
    needed: with centred data the uncentred VIF equals the usual one.
    """

    def __init__(
        self,
        vif_threshold: float = 10.0,
        correlation_threshold: float = 0.9
    ):
        """
        Initialize VIF filter.

        Args:
            vif_threshold: Maximum VIF kept by vif_step
            correlation_threshold: Maximum |r| kept by vif_cor
        """
        self.vif_threshold = vif_threshold
        self.correlation_threshold = correlation_threshold

        # Results storage
        self.selected_features_ = []
        self.eliminated_features_ = {}
        self.elimination_steps_ = []
        self.vif_scores_ = {}
        self.processing_stats_ = {}

    @staticmethod
    def _check_input(X: pd.DataFrame) -> None:
        if X.empty:
            raise InvalidArgument("Input sample frame is empty")
        if X.shape[1] < 2:
            raise InvalidArgument("Need at least 2 variables for VIF analysis")
        if X.isna().any().any():
            raise InvalidArgument("VIF analysis requires complete rows - drop missing values first")

    def calculate_vif_scores(self, X: pd.DataFrame) -> Dict[str, float]:
        """
        Calculate Variance Inflation Factors for every column of X.

        VIF_j = 1 / (1 - R_j^2), where R_j^2 comes from regressing column j on
        all other columns. Perfectly collinear columns get ``inf``.
        """
        self._check_input(X)

        feature_names = X.columns.tolist()
        X_scaled = StandardScaler().fit_transform(X.to_numpy(dtype=float))

        vif_scores = {}
        with warnings.catch_warnings():
            # perfect collinearity divides by zero inside statsmodels
            warnings.simplefilter('ignore', RuntimeWarning)
            for i, feature in enumerate(feature_names):
                vif_value = variance_inflation_factor(X_scaled, i)
                if np.isnan(vif_value) or np.isinf(vif_value):
                    vif_value = float('inf')
                vif_scores[feature] = float(vif_value)

        logger.debug(f"VIF scores: {vif_scores}")
        return vif_scores

    def _reset(self) -> None:
        self.selected_features_ = []
        self.eliminated_features_ = {}
        self.elimination_steps_ = []
        self.vif_scores_ = {}

    def vif_step(self, X: pd.DataFrame) -> Dict[str, Any]:
        """
        Remove the highest-VIF predictor until all VIFs <= vif_threshold.

        Ties on the largest VIF drop the earliest column.
        """
        self._check_input(X)
        self._reset()
        start_time = datetime.now()

        logger.info(f"VIF stepwise filtering of {X.shape[1]} variables (threshold={self.vif_threshold})")

        remaining = X.columns.tolist()
        vif_scores = self.calculate_vif_scores(X[remaining])

        while len(remaining) > 2:
            worst_feature = max(remaining, key=lambda f: vif_scores[f])
            worst_vif = vif_scores[worst_feature]
            if worst_vif <= self.vif_threshold:
                break

            remaining.remove(worst_feature)
            self._record_elimination(
                worst_feature,
                worst_vif,
                f"vif_{worst_vif:.2f}_above_{self.vif_threshold}"
            )
            vif_scores = self.calculate_vif_scores(X[remaining])

        # two predictors are never reduced further: their VIF only restates r
        return self._finish(X, remaining, vif_scores, start_time, 'vif_step')

    @staticmethod
    def _most_correlated_pair(X: pd.DataFrame):
        """Positions (i, j) with i < j of the largest off-diagonal |r|, and that |r|."""
        abs_corr = np.array(X.corr().abs(), dtype=float)
        np.fill_diagonal(abs_corr, 0.0)
        i, j = np.unravel_index(np.argmax(abs_corr), abs_corr.shape)
        return min(i, j), max(i, j), float(abs_corr[i, j])

    def vif_cor(self, X: pd.DataFrame) -> Dict[str, Any]:
        """
        Break the most correlated pair above correlation_threshold by dropping
        the member with the larger VIF, until no such pair remains.

        Two predictors are never reduced to one. When the last pair is still
        above the threshold, ``processing_stats['threshold_met']`` is False.
        """
        self._check_input(X)
        self._reset()
        start_time = datetime.now()

        logger.info(
            f"VIF/correlation filtering of {X.shape[1]} variables "
            f"(|r| threshold={self.correlation_threshold})"
        )

        remaining = X.columns.tolist()
        i, j, max_corr = self._most_correlated_pair(X[remaining])

        while len(remaining) > 2 and max_corr > self.correlation_threshold:
            vif_scores = self.calculate_vif_scores(X[remaining])
            first, second = remaining[i], remaining[j]
            dropped = first if vif_scores[first] >= vif_scores[second] else second
            kept = second if dropped == first else first

            remaining.remove(dropped)
            self._record_elimination(
                dropped,
                vif_scores[dropped],
                f"correlated_with_{kept}_r_{max_corr:.3f}_higher_vif_{vif_scores[dropped]:.2f}"
            )
            i, j, max_corr = self._most_correlated_pair(X[remaining])

        if max_corr > self.correlation_threshold:
            logger.warning(
                f"vif_cor stopped at {remaining}: |r| = {max_corr:.3f} is still above "
                f"{self.correlation_threshold}"
            )

        vif_scores = self.calculate_vif_scores(X[remaining])
        self._finish(X, remaining, vif_scores, start_time, 'vif_cor')
        self.processing_stats_['max_abs_correlation'] = max_corr
        self.processing_stats_['threshold_met'] = max_corr <= self.correlation_threshold
        return self.get_results()

    def _record_elimination(self, feature: str, vif_value: float, reason: str) -> None:
        step = len(self.elimination_steps_) + 1
        self.elimination_steps_.append({'step': step, 'feature': feature, 'vif': vif_value})
        self.eliminated_features_[feature] = reason
        logger.info(f"Step {step}: removed {feature} (VIF={vif_value:.2f})")

    def _finish(
        self,
        X: pd.DataFrame,
        remaining: List[str],
        vif_scores: Dict[str, float],
        start_time: datetime,
        procedure: str
    ) -> Dict[str, Any]:
        self.selected_features_ = list(remaining)
        self.vif_scores_ = vif_scores

        elapsed_time = (datetime.now() - start_time).total_seconds()
        self.processing_stats_ = {
            'procedure': procedure,
            'input_features': X.shape[1],
            'selected_features': len(remaining),
            'eliminated_features': len(self.eliminated_features_),
            'max_vif': max(vif_scores.values()) if vif_scores else 0.0,
            'processing_time_seconds': elapsed_time,
        }

        logger.info(f"{procedure}: {X.shape[1]} → {len(remaining)} variables kept")
        return self.get_results()

    def get_results(self) -> Dict[str, Any]:
        return {
            'selected_features': self.selected_features_.copy(),
            'eliminated_features': self.eliminated_features_.copy(),
            'elimination_steps': [dict(step) for step in self.elimination_steps_],
            'vif_scores': self.vif_scores_.copy(),
            'processing_stats': self.processing_stats_.copy(),
            'parameters': {
                'vif_threshold': self.vif_threshold,
                'correlation_threshold': self.correlation_threshold,
            }
        }

    def get_vif_table(self) -> pd.DataFrame:
        """Final VIF scores, highest first."""
        if not self.vif_scores_:
            raise ValueError("Filter not run - call vif_step or vif_cor first")

        table = pd.DataFrame(
            {'feature': list(self.vif_scores_), 'vif': list(self.vif_scores_.values())}
        )
        return table.sort_values('vif', ascending=False).reset_index(drop=True)
