from .sample_table import load_predictor_samples, prepare_predictor_frame, subset_predictors

__all__ = ['load_predictor_samples', 'prepare_predictor_frame', 'subset_predictors']
