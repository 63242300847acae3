"""
Predictor Selection Engine

Runs one complete multicollinearity analysis over sampled raster predictor
values and recommends a reduced predictor set.

Selection Pipeline:
1. Sample preparation - numeric, aligned, complete rows
2. Correlation analysis - matrix and collinear pairs
3. VIF filtering - stepwise removal of high-VIF predictors
4. Least-correlated subset search - best k predictors by worst pairwise |r|
5. PCA summary - explained variance and loading-based suggestions

The subset found in stage 4 is the engine's selection; stages 3 and 5 are
reported alongside it for manual comparison.
"""

import logging
from typing import Dict, List, Optional, Any
import pandas as pd
from datetime import datetime
from pathlib import Path
import json
import psutil

from ..config import SelectionConfig, BioclimVariables
from ..data.sample_table import prepare_predictor_frame, subset_predictors
from ..exceptions import InvalidArgument
from .correlation_analysis import CorrelationAnalyzer
from .vif_filter import VIFStepwiseFilter
from .subset_search import LeastCorrelatedSubsetSelector
from .pca_analysis import PCAAnalyzer

logger = logging.getLogger(__name__)


class PredictorSelectionEngine:
    """Coordinates correlation, VIF, subset search and PCA for one run."""

    def __init__(self, config: Optional[SelectionConfig] = None):
        self.config = (config or SelectionConfig()).validate()

        self.correlation_analyzer_ = CorrelationAnalyzer(
            correlation_threshold=self.config.correlation_threshold,
            method=self.config.correlation_method
        )
        self.vif_filter_ = VIFStepwiseFilter(
            vif_threshold=self.config.vif_threshold,
            correlation_threshold=self.config.vif_correlation_threshold
        )
        self.subset_selector_ = LeastCorrelatedSubsetSelector(
            validate=self.config.validate_matrix,
            max_combinations=self.config.max_combinations
        )
        self.pca_analyzer_ = PCAAnalyzer(variance_threshold=self.config.pca_variance_threshold)

        # Results storage
        self.input_features_ = []
        self.selected_features_ = []
        self.selection_result_ = None
        self.stage_results_ = {}
        self.final_stats_ = {}
        self.memory_usage_ = {}

        self.is_fitted_ = False

    def _monitor_memory(self, stage: str) -> Dict[str, Any]:
        """Record process memory at a pipeline stage."""
        memory_gb = psutil.Process().memory_info().rss / 1024 / 1024 / 1024

        self.memory_usage_[stage] = {
            'memory_gb': memory_gb,
            'timestamp': datetime.now(),
            'warning': memory_gb > self.config.memory_limit_gb
        }

        if memory_gb > self.config.memory_limit_gb:
            logger.warning(f"Memory usage ({memory_gb:.2f}GB) exceeds limit at {stage}")

        return self.memory_usage_[stage]

    @staticmethod
    def _banner(title: str) -> None:
        logger.info("=" * 50)
        logger.info(title)
        logger.info("=" * 50)

    def fit(self, X: pd.DataFrame) -> 'PredictorSelectionEngine':
        """
        Run the full pipeline on a sample table.

        Args:
            X: Sampled predictor values, one column per predictor

        Returns:
            Self for method chaining
        """
        start_time = datetime.now()
        self._monitor_memory("pipeline_start")
        self.stage_results_ = {}

        # Stage 1
        self._banner("STAGE 1: SAMPLE PREPARATION")
        X_clean = prepare_predictor_frame(
            X,
            variables=self.config.variables,
            nodata_values=self.config.nodata_values
        )
        self.input_features_ = X_clean.columns.tolist()

        sizes = self.config.subset_sizes()
        if max(sizes) > len(self.input_features_):
            raise InvalidArgument(
                f"Subset size {max(sizes)} exceeds the {len(self.input_features_)} usable predictors"
            )

        self.stage_results_['sample_preparation'] = {
            'input_rows': len(X),
            'output_rows': len(X_clean),
            'input_features': X.shape[1],
            'output_features': len(self.input_features_),
        }
        self._monitor_memory("stage1_complete")

        # Stage 2
        self._banner("STAGE 2: CORRELATION ANALYSIS")
        correlation_results = self.correlation_analyzer_.analyze_correlations(X_clean)
        correlation_matrix = correlation_results['correlation_matrix']

        self.stage_results_['correlation_analysis'] = {
            'high_correlation_pairs': correlation_results['high_correlation_pairs'],
            'processing_stats': correlation_results['processing_stats'],
        }
        self._monitor_memory("stage2_complete")

        # Stage 3
        self._banner("STAGE 3: VIF FILTERING")
        if self.config.use_vif_cor:
            vif_results = self.vif_filter_.vif_cor(X_clean)
        else:
            vif_results = self.vif_filter_.vif_step(X_clean)

        self.stage_results_['vif_filtering'] = {
            'selected_features': vif_results['selected_features'],
            'eliminated': vif_results['eliminated_features'],
            'elimination_steps': vif_results['elimination_steps'],
            'vif_scores': vif_results['vif_scores'],
            'processing_stats': vif_results['processing_stats'],
        }
        self._monitor_memory("stage3_complete")

        # Stage 4
        self._banner("STAGE 4: LEAST-CORRELATED SUBSET SEARCH")
        if len(sizes) == 1:
            result = self.subset_selector_.select(correlation_matrix, sizes[0])
        else:
            results = self.subset_selector_.select_for_sizes(correlation_matrix, sizes)
            below = self.subset_selector_.largest_size_within(self.config.correlation_threshold)
            result = below if below is not None else results[min(results)]

        self.selection_result_ = result
        self.selected_features_ = list(result.variables)

        self.stage_results_['subset_search'] = {
            'selected_features': list(result.variables),
            'score': result.score,
            'k': result.k,
            'candidates_evaluated': result.n_candidates_evaluated,
            'scores_by_k': dict(self.subset_selector_.scores_by_k_),
        }
        self._monitor_memory("stage4_complete")

        # Stage 5
        self._banner("STAGE 5: PCA SUMMARY")
        self.pca_analyzer_.fit(X_clean)
        pca_results = self.pca_analyzer_.get_analysis_results()

        self.stage_results_['pca'] = {
            'explained_variance_ratio': pca_results['explained_variance_ratio'],
            'cumulative_variance': pca_results['cumulative_variance'],
            'components_for_variance': pca_results['components_for_variance'],
            'kaiser_components': pca_results['kaiser_components'],
            'suggested_predictors': pca_results['suggested_predictors'],
        }
        self._monitor_memory("stage5_complete")

        elapsed_time = (datetime.now() - start_time).total_seconds()
        self.final_stats_ = {
            'original_feature_count': len(self.input_features_),
            'final_feature_count': len(self.selected_features_),
            'max_abs_correlation': result.score,
            'below_correlation_threshold': result.score < self.config.correlation_threshold,
            'vif_retained_count': len(vif_results['selected_features']),
            'pca_suggested_count': len(pca_results['suggested_predictors']),
            'processing_time_seconds': elapsed_time,
            'memory_peak_gb': max(stats['memory_gb'] for stats in self.memory_usage_.values()),
        }

        self.is_fitted_ = True
        self._monitor_memory("pipeline_complete")

        logger.info("=" * 80)
        logger.info("PREDICTOR SELECTION COMPLETED")
        logger.info(f"Selected {len(self.selected_features_)} of {len(self.input_features_)} predictors, "
                    f"max |r| = {result.score:.3f}")
        for feature in self.selected_features_:
            logger.info(f"  {BioclimVariables.describe(feature)}")
        logger.info("=" * 80)

        if self.config.output_dir:
            self.save_detailed_results(self.config.output_dir)

        return self

    def _check_fitted(self) -> None:
        if not self.is_fitted_:
            raise ValueError("PredictorSelectionEngine not fitted - call fit first")

    def transform(self, X: pd.DataFrame) -> pd.DataFrame:
        """Keep only the selected predictors."""
        self._check_fitted()
        return subset_predictors(X, self.selected_features_)

    def fit_transform(self, X: pd.DataFrame) -> pd.DataFrame:
        return self.fit(X).transform(X)

    def get_selection_summary(self) -> Dict[str, Any]:
        self._check_fitted()
        return {
            'selected_features': self.selected_features_.copy(),
            'score': self.selection_result_.score,
            'input_features': self.input_features_.copy(),
            'stage_results': self.stage_results_.copy(),
            'final_statistics': self.final_stats_.copy(),
            'memory_usage': {stage: dict(stats) for stage, stats in self.memory_usage_.items()},
            'parameters': self.config.to_dict(),
        }

    def save_detailed_results(self, output_dir: str) -> None:
        """Write summary JSON plus correlation, VIF and loading tables."""
        self._check_fitted()

        output_path = Path(output_dir)
        output_path.mkdir(parents=True, exist_ok=True)

        summary = self.get_selection_summary()
        for stats in summary['memory_usage'].values():
            stats['timestamp'] = stats['timestamp'].isoformat()

        with open(output_path / 'selection_results.json', 'w') as f:
            json.dump(summary, f, indent=2, default=str)

        with open(output_path / 'selected_predictors.txt', 'w') as f:
            for feature in self.selected_features_:
                f.write(f"{feature}\n")

        self.correlation_analyzer_.correlation_matrix_.to_csv(output_path / 'correlation_matrix.csv')
        self.vif_filter_.get_vif_table().to_csv(output_path / 'vif_scores.csv', index=False)
        self.pca_analyzer_.loadings_.to_csv(output_path / 'pca_loadings.csv')

        logger.info(f"Detailed results saved to {output_path}")

    def get_report_lines(self) -> List[str]:
        """Plain-text decision summary for printing."""
        self._check_fitted()
        stage = self.stage_results_
        lines = [
            f"Predictors analysed: {len(self.input_features_)}",
            f"Pairs with |r| >= {self.config.correlation_threshold}: "
            f"{len(stage['correlation_analysis']['high_correlation_pairs'])}",
            f"VIF <= {self.config.vif_threshold} keeps: {', '.join(map(str, stage['vif_filtering']['selected_features']))}",
            f"PCA ({stage['pca']['components_for_variance']} components for "
            f"{self.config.pca_variance_threshold:.0%}) suggests: {', '.join(map(str, stage['pca']['suggested_predictors']))}",
        ]
        for k, score in sorted(stage['subset_search']['scores_by_k'].items()):
            lines.append(f"Best max |r| with k={k}: {score:.3f}")
        lines.append(
            f"Selected predictors (k={self.selection_result_.k}, max |r| = "
            f"{self.selection_result_.score:.3f}): {', '.join(map(str, self.selected_features_))}"
        )
        return lines
