"""
apop Core Module

Foundation shared by the models and the estimation driver: the exception
hierarchy, configuration management, result containers, type definitions
and input validation utilities.
"""

import logging

logger = logging.getLogger("apop.core")

from .exceptions import (
    ApopError,
    ParameterError,
    DimensionError,
    NumericError,
    DataError,
    ModelSpecificationError,
    DomainViolation,
    EstimationFailure,
    StartingPointError,
    ConfigurationError,
    ApopWarning,
    ConvergenceWarning,
    NumericWarning,
)

from .types import (
    EstimationStatus,
    OptimizationAlgorithm,
)

from .results import (
    ModelResult,
    MLEResult,
    ModelComparison,
)

from .config import (
    ConfigManager,
    NumericalConfig,
    LoggingConfig,
    initialize_config,
    get_config,
    set_config,
    reset_config,
    save_config,
    get_config_manager,
    get_numerical_config,
    get_logging_config,
)

from .validation import (
    validate_data_matrix,
    validate_parameter_vector,
    validate_vector,
)

__all__ = [
    # Exceptions
    'ApopError',
    'ParameterError',
    'DimensionError',
    'NumericError',
    'DataError',
    'ModelSpecificationError',
    'DomainViolation',
    'EstimationFailure',
    'StartingPointError',
    'ConfigurationError',
    'ApopWarning',
    'ConvergenceWarning',
    'NumericWarning',

    # Types
    'EstimationStatus',
    'OptimizationAlgorithm',

    # Results
    'ModelResult',
    'MLEResult',
    'ModelComparison',

    # Configuration
    'ConfigManager',
    'NumericalConfig',
    'LoggingConfig',
    'initialize_config',
    'get_config',
    'set_config',
    'reset_config',
    'save_config',
    'get_config_manager',
    'get_numerical_config',
    'get_logging_config',

    # Validation
    'validate_data_matrix',
    'validate_parameter_vector',
    'validate_vector',
]
