# apop/estimation/__init__.py
"""
apop Estimation

The maximum likelihood driver and model comparison on fitted results.
"""

import logging

from .mle import ConvergenceMonitor, Objective, maximum_likelihood
from .comparison import compare_models, likelihood_vector

logger = logging.getLogger("apop.estimation")

__all__ = [
    'maximum_likelihood',
    'Objective',
    'ConvergenceMonitor',
    'compare_models',
    'likelihood_vector',
]
