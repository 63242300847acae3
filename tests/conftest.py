"""
Pytest configuration and fixtures for the predictor selection tests.

The synthetic sample table mimics pixel values drawn from a WorldClim stack:
a temperature group (bio1, bio5, bio6) and a precipitation pair
(bio12, bio13) that are strongly collinear, plus independent predictors.
"""

import logging

import numpy as np
import pandas as pd
import pytest

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "slow: marks tests as slow running"
    )


@pytest.fixture
def bioclim_samples():
    """Sampled predictor values with two collinear groups."""
    rng = np.random.default_rng(42)
    n_samples = 500

    temperature = rng.normal(18.0, 4.0, n_samples)
    precipitation = rng.gamma(4.0, 300.0, n_samples)

    return pd.DataFrame({
        'bio1': temperature,
        'bio2': rng.normal(10.0, 2.0, n_samples),
        'bio4': rng.normal(500.0, 120.0, n_samples),
        'bio5': temperature + 8.0 + rng.normal(0.0, 0.4, n_samples),
        'bio6': temperature - 9.0 + rng.normal(0.0, 0.4, n_samples),
        'bio12': precipitation,
        'bio13': precipitation * 0.15 + rng.normal(0.0, 10.0, n_samples),
        'bio15': rng.uniform(20.0, 90.0, n_samples),
    })


@pytest.fixture
def example_matrix():
    """Four-variable matrix with a unique best 3-subset {A, C, D}."""
    names = ['A', 'B', 'C', 'D']
    values = np.array([
        [1.0, 0.9, 0.2, 0.3],
        [0.9, 1.0, 0.1, 0.8],
        [0.2, 0.1, 1.0, 0.4],
        [0.3, 0.8, 0.4, 1.0],
    ])
    return pd.DataFrame(values, index=names, columns=names)


@pytest.fixture
def random_correlation_matrix():
    """Correlation matrix of 7 random, partly dependent variables."""
    rng = np.random.default_rng(7)
    base = rng.normal(size=(200, 3))
    mixing = rng.normal(size=(3, 7))
    data = base @ mixing + rng.normal(scale=0.8, size=(200, 7))
    frame = pd.DataFrame(data, columns=[f"v{i}" for i in range(7)])
    return frame.corr()
