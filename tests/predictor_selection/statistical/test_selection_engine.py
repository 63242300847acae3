"""
Integration tests for the Predictor Selection Engine.
"""

import json

import numpy as np
import pytest

from src.predictor_selection.config import SelectionConfig
from src.predictor_selection.exceptions import InvalidArgument
from src.predictor_selection.statistical import PredictorSelectionEngine, find_least_correlated_subset


@pytest.mark.integration
class TestPredictorSelectionEngine:

    def test_initialization(self):
        engine = PredictorSelectionEngine()
        assert engine.config.subset_size == 5
        assert engine.correlation_analyzer_.correlation_threshold == 0.7
        assert engine.vif_filter_.vif_threshold == 10.0
        assert not engine.is_fitted_

        with pytest.raises(InvalidArgument):
            PredictorSelectionEngine(SelectionConfig(subset_size=1))

    def test_fit_selects_least_correlated_subset(self, bioclim_samples):
        engine = PredictorSelectionEngine(SelectionConfig(subset_size=4))
        result = engine.fit(bioclim_samples)

        assert result is engine
        assert engine.is_fitted_

        expected = find_least_correlated_subset(bioclim_samples.corr(), 4)
        assert engine.selected_features_ == list(expected.variables)
        assert engine.selection_result_.score == pytest.approx(expected.score)
        assert engine.final_stats_['below_correlation_threshold']

        for stage in ['sample_preparation', 'correlation_analysis', 'vif_filtering', 'subset_search', 'pca']:
            assert stage in engine.stage_results_

    def test_selection_spans_collinear_groups(self, bioclim_samples):
        engine = PredictorSelectionEngine(SelectionConfig(subset_size=5)).fit(bioclim_samples)

        selected = set(engine.selected_features_)
        assert len(selected & {'bio1', 'bio5', 'bio6'}) <= 1
        assert len(selected & {'bio12', 'bio13'}) <= 1
        assert engine.selection_result_.score < 0.7

    def test_subset_size_range(self, bioclim_samples):
        config = SelectionConfig(subset_size_range=(2, 7), correlation_threshold=0.7)
        engine = PredictorSelectionEngine(config).fit(bioclim_samples)

        scores = engine.stage_results_['subset_search']['scores_by_k']
        assert sorted(scores) == [2, 3, 4, 5, 6, 7]
        ordered = [scores[k] for k in sorted(scores)]
        assert all(a <= b + 1e-12 for a, b in zip(ordered, ordered[1:]))

        # 5 independent directions exist, so k=5 stays below 0.7 and k=6 cannot
        assert engine.selection_result_.k == 5

    def test_variables_and_nodata(self, bioclim_samples):
        raw = bioclim_samples.copy()
        raw.loc[:9, 'bio2'] = -9999.0
        config = SelectionConfig(
            subset_size=2,
            variables=['bio1', 'bio2', 'bio5'],
            nodata_values=[-9999.0]
        )

        engine = PredictorSelectionEngine(config).fit(raw)

        assert engine.input_features_ == ['bio1', 'bio2', 'bio5']
        assert engine.stage_results_['sample_preparation']['output_rows'] == len(raw) - 10
        assert 'bio2' in engine.selected_features_

    def test_vif_cor_stage(self, bioclim_samples):
        config = SelectionConfig(subset_size=3, use_vif_cor=True)
        engine = PredictorSelectionEngine(config).fit(bioclim_samples)

        vif_stage = engine.stage_results_['vif_filtering']
        assert all('correlated_with_' in r for r in vif_stage['eliminated'].values())

    def test_subset_larger_than_predictors(self, bioclim_samples):
        engine = PredictorSelectionEngine(SelectionConfig(subset_size=9))

        with pytest.raises(InvalidArgument, match="exceeds"):
            engine.fit(bioclim_samples)

    def test_transform(self, bioclim_samples):
        engine = PredictorSelectionEngine(SelectionConfig(subset_size=3))

        with pytest.raises(ValueError, match="not fitted"):
            engine.transform(bioclim_samples)

        reduced = engine.fit_transform(bioclim_samples)
        assert reduced.columns.tolist() == engine.selected_features_
        assert len(reduced) == len(bioclim_samples)

    def test_summary_and_report(self, bioclim_samples):
        engine = PredictorSelectionEngine(SelectionConfig(subset_size=3)).fit(bioclim_samples)

        summary = engine.get_selection_summary()
        assert summary['selected_features'] == engine.selected_features_
        assert summary['parameters']['subset_size'] == 3
        assert 'pipeline_complete' in summary['memory_usage']

        lines = engine.get_report_lines()
        assert lines[-1].startswith('Selected predictors (k=3')
        assert any(line.startswith('Best max |r| with k=3') for line in lines)

    def test_save_detailed_results(self, bioclim_samples, tmp_path):
        output_dir = tmp_path / 'selection'
        config = SelectionConfig(subset_size=3, output_dir=str(output_dir))

        engine = PredictorSelectionEngine(config).fit(bioclim_samples)

        for name in ['selection_results.json', 'selected_predictors.txt',
                     'correlation_matrix.csv', 'vif_scores.csv', 'pca_loadings.csv']:
            assert (output_dir / name).exists()

        with open(output_dir / 'selection_results.json') as f:
            saved = json.load(f)
        assert saved['selected_features'] == engine.selected_features_
        assert saved['score'] == pytest.approx(engine.selection_result_.score)

        predictors = (output_dir / 'selected_predictors.txt').read_text().split()
        assert predictors == engine.selected_features_

        # in-memory timestamps stay datetime objects
        assert not isinstance(engine.memory_usage_['pipeline_start']['timestamp'], str)

    def test_constant_predictor_dropped(self, bioclim_samples):
        raw = bioclim_samples.copy()
        raw['flat'] = np.ones(len(raw))

        engine = PredictorSelectionEngine(SelectionConfig(subset_size=3)).fit(raw)
        assert 'flat' not in engine.input_features_

    def test_integer_column_labels(self, bioclim_samples):
        raw = bioclim_samples.copy()
        raw.columns = range(raw.shape[1])

        engine = PredictorSelectionEngine(SelectionConfig(subset_size=3)).fit(raw)

        assert engine.is_fitted_
        assert all(isinstance(feature, (int, np.integer)) for feature in engine.selected_features_)
        assert engine.get_report_lines()[-1].startswith('Selected predictors (k=3')

    def test_vif_cor_reports_threshold(self, bioclim_samples):
        config = SelectionConfig(subset_size=3, use_vif_cor=True)
        engine = PredictorSelectionEngine(config).fit(bioclim_samples)

        assert engine.stage_results_['vif_filtering']['processing_stats']['threshold_met']
