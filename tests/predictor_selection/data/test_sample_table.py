"""
Tests for loading and preparing predictor sample tables.
"""

import numpy as np
import pandas as pd
import pytest

from src.predictor_selection.data.sample_table import (
    load_predictor_samples,
    prepare_predictor_frame,
    subset_predictors
)
from src.predictor_selection.exceptions import InvalidArgument


@pytest.fixture
def sample_csv(tmp_path, bioclim_samples):
    path = tmp_path / 'bioclim_samples.csv'
    bioclim_samples.to_csv(path, index=False)
    return path


class TestLoadPredictorSamples:

    def test_loads_all_columns(self, sample_csv, bioclim_samples):
        frame = load_predictor_samples(str(sample_csv))

        assert frame.columns.tolist() == bioclim_samples.columns.tolist()
        assert len(frame) == len(bioclim_samples)

    def test_variable_subset(self, sample_csv):
        frame = load_predictor_samples(str(sample_csv), variables=['bio12', 'bio1'])
        assert frame.columns.tolist() == ['bio12', 'bio1']

    def test_missing_variable(self, sample_csv):
        with pytest.raises(InvalidArgument, match="bio99"):
            load_predictor_samples(str(sample_csv), variables=['bio1', 'bio99'])

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_predictor_samples(str(tmp_path / 'absent.csv'))


class TestPreparePredictorFrame:

    def test_clean_frame_unchanged(self, bioclim_samples):
        frame = prepare_predictor_frame(bioclim_samples)
        pd.testing.assert_frame_equal(frame, bioclim_samples.astype(float))

    def test_nodata_rows_dropped(self, bioclim_samples):
        raw = bioclim_samples.copy()
        raw.loc[[0, 5, 9], 'bio12'] = -9999.0
        raw.loc[7, 'bio4'] = np.nan

        frame = prepare_predictor_frame(raw, nodata_values=[-9999.0])

        assert len(frame) == len(raw) - 4
        assert not frame.isna().any().any()
        assert (frame['bio12'] != -9999.0).all()

    def test_non_numeric_and_constant_columns_dropped(self, bioclim_samples):
        raw = bioclim_samples.copy()
        raw['biome'] = 'savanna'
        raw['mask'] = 1.0

        frame = prepare_predictor_frame(raw)

        assert 'biome' not in frame.columns
        assert 'mask' not in frame.columns
        assert frame.shape[1] == bioclim_samples.shape[1]

    def test_constant_columns_can_be_kept(self, bioclim_samples):
        raw = bioclim_samples.copy()
        raw['mask'] = 1.0

        frame = prepare_predictor_frame(raw, drop_constant=False)
        assert 'mask' in frame.columns

    def test_variable_selection(self, bioclim_samples):
        frame = prepare_predictor_frame(bioclim_samples, variables=['bio15', 'bio2'])
        assert frame.columns.tolist() == ['bio15', 'bio2']

        with pytest.raises(InvalidArgument, match="not found"):
            prepare_predictor_frame(bioclim_samples, variables=['bio15', 'bio20'])

    def test_too_few_predictors(self, bioclim_samples):
        raw = bioclim_samples[['bio1']].copy()
        raw['mask'] = 0.0

        with pytest.raises(InvalidArgument, match="at least 2 usable predictors"):
            prepare_predictor_frame(raw)

    def test_too_few_samples(self, bioclim_samples):
        with pytest.raises(InvalidArgument, match="complete samples"):
            prepare_predictor_frame(bioclim_samples.head(2))

    def test_empty_table(self):
        with pytest.raises(InvalidArgument, match="empty"):
            prepare_predictor_frame(pd.DataFrame())


class TestSubsetPredictors:

    def test_keeps_selection_order(self, bioclim_samples):
        subset = subset_predictors(bioclim_samples, ['bio15', 'bio1', 'bio4'])

        assert subset.columns.tolist() == ['bio15', 'bio1', 'bio4']
        subset['bio1'] = 0.0
        assert (bioclim_samples['bio1'] != 0.0).any()

    def test_unknown_predictor(self, bioclim_samples):
        with pytest.raises(InvalidArgument):
            subset_predictors(bioclim_samples, ['bio1', 'bio42'])
