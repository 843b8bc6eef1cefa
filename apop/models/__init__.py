# apop/models/__init__.py
"""
apop Likelihood Models

Parametric families that can be estimated by maximum likelihood. Each model
exposes its negated log-likelihood, and where available the negated
gradient, a fused evaluator and a random draw, through the common
:class:`~apop.models.base.Model` interface.

Available models:
- Gamma: two-parameter Gamma distribution
- Exponential: one-parameter exponential distribution
- Yule, Waring, Zipf: rank distributions over rank tables
- Probit: binary-outcome regression
"""

import logging

from .base import Model, rank_table, rank_weights
from .penalty import BoundaryGuard, barrier, keep_away, keep_away_gradient
from .exponential import Exponential
from .gamma import Gamma
from .probit import Probit
from .waring import Waring
from .yule import Yule
from .zipf import Zipf
from .registry import get_model, list_models, register_model

logger = logging.getLogger("apop.models")

for _model_class in (Gamma, Exponential, Yule, Waring, Zipf, Probit):
    register_model(_model_class)

__all__ = [
    'Model',
    'BoundaryGuard',
    'keep_away',
    'keep_away_gradient',
    'barrier',
    'rank_table',
    'rank_weights',

    'Gamma',
    'Exponential',
    'Yule',
    'Waring',
    'Zipf',
    'Probit',

    'register_model',
    'get_model',
    'list_models',
]
