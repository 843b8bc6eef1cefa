'''
Pytest configuration and fixtures for the apop test suite.

Provides seeded data sets in the layouts the models expect (value tables,
rank tables and probit outcome/regressor matrices) and an isolated
configuration manager per test.
'''

from typing import Tuple

import numpy as np
import pytest

from apop.core.config import reset_config


# ---- Configuration isolation ----

@pytest.fixture(autouse=True)
def default_config(monkeypatch, tmp_path):
    """Run every test against the default configuration."""
    monkeypatch.setenv("APOP_CONFIG_DIR", str(tmp_path))
    reset_config()
    yield
    reset_config()


# ---- Basic Data Generation Fixtures ----

@pytest.fixture
def rng() -> np.random.Generator:
    """Provide a seeded random number generator for reproducible tests."""
    return np.random.default_rng(42)


@pytest.fixture
def exponential_data(rng: np.random.Generator) -> np.ndarray:
    """5000 exponential draws with rate 2 (scale 0.5), one per row."""
    return rng.exponential(scale=0.5, size=(5000, 1))


@pytest.fixture
def gamma_data(rng: np.random.Generator) -> np.ndarray:
    """5000 Gamma draws with shape 3 and scale 2, one per row."""
    return rng.gamma(shape=3.0, scale=2.0, size=(5000, 1))


@pytest.fixture
def rank_data() -> np.ndarray:
    """Rank table: two observation sets, counts falling off with rank."""
    return np.array([
        [120.0, 45.0, 22.0, 13.0, 8.0, 6.0, 4.0, 3.0],
        [95.0, 40.0, 20.0, 11.0, 7.0, 5.0, 3.0, 2.0],
    ])


@pytest.fixture
def probit_data(rng: np.random.Generator) -> Tuple[np.ndarray, np.ndarray]:
    """Outcome/regressor matrix generated from a known probit model.

    Returns:
        Tuple of (data matrix with y in column 0, true coefficients). Under
        the model's convention y = 0 has probability Φ(xβ).
    """
    n = 2000
    beta = np.array([0.5, -1.0])
    regressors = np.column_stack([np.ones(n), rng.standard_normal(n)])
    latent = regressors @ beta + rng.standard_normal(n)
    y = (latent < 0.0).astype(float)
    return np.column_stack([y, regressors]), beta
