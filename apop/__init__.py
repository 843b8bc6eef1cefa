# apop/__init__.py
"""
apop - Maximum Likelihood Estimation for Python

Fits parametric models to data by maximum likelihood. The package provides:
- Likelihood models: Gamma, Exponential, Yule, Waring, Zipf and Probit, with
  analytic gradients where available and a boundary guard that keeps the
  optimizer out of invalid parameter regions
- An estimation driver over SciPy's BFGS, conjugate gradient and Nelder-Mead
  minimizers, with covariance, standard errors and information criteria
- Comparison of non-nested fitted models on the same data
- Small linear algebra and numerical differentiation helpers

This module serves as the main entry point for the apop package.
"""

import logging
from typing import List, Union

from .version import __version__, __title__, __description__, __license__

from . import core
from . import utils
from . import models
from . import estimation

from .core.config import initialize_config
from .estimation import compare_models, likelihood_vector, maximum_likelihood
from .models import get_model, list_models, register_model

logger = logging.getLogger("apop")


def get_version() -> str:
    """
    Return the version of apop.

    Returns:
        str: Version string in format MAJOR.MINOR.PATCH
    """
    return __version__


def set_log_level(level: Union[str, int]) -> None:
    """
    Set the logging level for apop.

    Args:
        level: Logging level, either as string ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')
              or as an integer constant from the logging module
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper())
    logger.setLevel(level)
    logger.info(f"Log level set to {logging.getLevelName(level)}")


def list_available_models() -> List[str]:
    """Names of the models that can be passed to :func:`maximum_likelihood`."""
    return list_models()


# Applies the config file and APOP_* environment overrides and sets up logging
initialize_config()

__all__ = [
    # Subpackages
    'core',
    'models',
    'estimation',
    'utils',

    # Public functions
    'maximum_likelihood',
    'compare_models',
    'likelihood_vector',
    'get_model',
    'register_model',
    'list_available_models',
    'get_version',
    'set_log_level',

    # Version info
    '__version__',
    '__title__',
    '__description__',
    '__license__',
]

logger.debug(f"apop v{__version__} initialized")
