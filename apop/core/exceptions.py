'''
Custom exception classes for apop.

This module defines the exception and warning hierarchy used throughout the
package. Every error carries a primary message, optional details, and a
context dictionary that is rendered into the final message so that failures
deep inside an optimizer run can be diagnosed from the traceback alone.

The hierarchy separates errors the caller must handle (dimension mismatches,
bad configuration, invalid starting conditions) from the one condition that
never leaves the model layer: a parameter vector outside a model's valid
domain, which is converted into a penalty value instead of being raised.
'''

from typing import Any, Dict, Optional, Sequence, Tuple, Union
import inspect
from pathlib import Path

import numpy as np


class ApopError(Exception):
    """Base exception class for all apop errors.

    Attributes:
        message: The error message
        details: Additional details about the error
        context: Dictionary containing contextual information about the error
    """

    def __init__(self,
                 message: str,
                 details: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None) -> None:
        """Initialize the ApopError.

        Args:
            message: The primary error message
            details: Additional details about the error
            context: Dictionary containing contextual information about the error
        """
        self.message = message
        self.details = details
        self.context = context or {}

        full_message = message
        if details:
            full_message += f"\n\nDetails: {details}"

        if self.context:
            context_str = "\n".join(f"  {k}: {v}" for k, v in self.context.items())
            full_message += f"\n\nContext:\n{context_str}"

        frame = inspect.currentframe()
        if frame:
            try:
                # Skip subclass constructors and the raise_* helpers
                frame = frame.f_back
                while frame and frame.f_code.co_filename == __file__:
                    frame = frame.f_back
                if frame:
                    caller_info = inspect.getframeinfo(frame, context=0)
                    full_message += f"\n\nLocation: {Path(caller_info.filename).name}:{caller_info.lineno}"
            finally:
                del frame  # Avoid reference cycles

        super().__init__(full_message)


def _truncate(values: Any) -> Any:
    if isinstance(values, np.ndarray) and values.size > 10:
        return f"Array with shape {values.shape}"
    return values


class ParameterError(ApopError):
    """Exception raised for invalid model parameters.

    Used when parameters handed to a random draw or a convenience routine
    violate the family's constraints.

    Attributes:
        param_name: The name of the parameter that caused the error
        param_value: The invalid parameter value
        constraint: Description of the constraint that was violated
    """

    def __init__(self,
                 message: str,
                 param_name: Optional[str] = None,
                 param_value: Optional[Any] = None,
                 constraint: Optional[str] = None,
                 details: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None) -> None:
        self.param_name = param_name
        self.param_value = param_value
        self.constraint = constraint

        context_dict = context or {}
        if param_name:
            context_dict["Parameter"] = param_name
        if param_value is not None:
            context_dict["Value"] = _truncate(param_value)
        if constraint:
            context_dict["Constraint"] = constraint

        super().__init__(message, details, context_dict)


class DimensionError(ApopError):
    """Exception raised when array dimensions are incompatible.

    Raised when a parameter vector does not match a model's parameter count,
    or when two operands cannot be stacked or multiplied. The input is never
    truncated or padded to make it fit.

    Attributes:
        array_name: The name of the array that caused the error
        expected_shape: The expected shape of the array
        actual_shape: The actual shape of the array
    """

    def __init__(self,
                 message: str,
                 array_name: Optional[str] = None,
                 expected_shape: Optional[Union[Tuple[int, ...], str]] = None,
                 actual_shape: Optional[Tuple[int, ...]] = None,
                 details: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None) -> None:
        self.array_name = array_name
        self.expected_shape = expected_shape
        self.actual_shape = actual_shape

        context_dict = context or {}
        if array_name:
            context_dict["Array"] = array_name
        if expected_shape is not None:
            context_dict["Expected Shape"] = expected_shape
        if actual_shape is not None:
            context_dict["Actual Shape"] = actual_shape

        super().__init__(message, details, context_dict)


class NumericError(ApopError):
    """Exception raised when a numerical computation cannot proceed.

    Examples are a singular matrix handed to an inversion or an objective
    that evaluates to a non-finite value outside the penalty mechanism.

    Attributes:
        operation: The operation that caused the error
        values: The values that caused the error
        error_type: The type of numerical error (e.g., "singular", "non-finite")
    """

    def __init__(self,
                 message: str,
                 operation: Optional[str] = None,
                 values: Optional[Any] = None,
                 error_type: Optional[str] = None,
                 details: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None) -> None:
        self.operation = operation
        self.values = values
        self.error_type = error_type

        context_dict = context or {}
        if operation:
            context_dict["Operation"] = operation
        if values is not None:
            context_dict["Values"] = _truncate(values)
        if error_type:
            context_dict["Error Type"] = error_type

        super().__init__(message, details, context_dict)


class DataError(ApopError):
    """Exception raised for unusable input data.

    Attributes:
        data_name: The name of the data that caused the error
        issue: Description of the issue with the data
        index: The index or location where the issue was detected
    """

    def __init__(self,
                 message: str,
                 data_name: Optional[str] = None,
                 issue: Optional[str] = None,
                 index: Optional[Union[int, Tuple[int, ...], str]] = None,
                 details: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None) -> None:
        self.data_name = data_name
        self.issue = issue
        self.index = index

        context_dict = context or {}
        if data_name:
            context_dict["Data"] = data_name
        if issue:
            context_dict["Issue"] = issue
        if index is not None:
            context_dict["Index"] = index

        super().__init__(message, details, context_dict)


class ModelSpecificationError(ApopError):
    """Exception raised when a model cannot be resolved or is malformed.

    Attributes:
        model_type: The model name that was requested
        valid_options: The registered model names
    """

    def __init__(self,
                 message: str,
                 model_type: Optional[str] = None,
                 valid_options: Optional[Sequence[str]] = None,
                 details: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None) -> None:
        self.model_type = model_type
        self.valid_options = list(valid_options) if valid_options is not None else None

        context_dict = context or {}
        if model_type:
            context_dict["Model"] = model_type
        if self.valid_options is not None:
            context_dict["Valid Options"] = ", ".join(self.valid_options)

        super().__init__(message, details, context_dict)


class DomainViolation(ApopError):
    """Report of a model's domain check when parameters leave the valid region.

    Returned by :meth:`Model.domain_violation` rather than raised, and never
    seen by callers of the public API. The model layer answers it with a
    penalty value anchored at ``rescue_point``.

    Attributes:
        model_name: The model whose domain was violated
        distance: Distance of the parameters from the boundary (positive)
        rescue_point: Nearby parameter vector just inside the domain
        violated: Indices of the parameters that are out of bounds
        limits: Lower bound of each violated parameter, in the same order
    """

    def __init__(self,
                 model_name: str,
                 distance: float,
                 rescue_point: Tuple[float, ...],
                 violated: Tuple[int, ...],
                 limits: Tuple[float, ...] = ()) -> None:
        self.model_name = model_name
        self.distance = distance
        self.rescue_point = rescue_point
        self.violated = violated
        self.limits = limits
        # Skips the location lookup of ApopError; this is raised on hot paths.
        Exception.__init__(
            self,
            f"{model_name}: parameters {distance:.6g} outside the valid domain"
        )
        self.message = str(self)
        self.details = None
        self.context = {"Rescue Point": rescue_point, "Violated": violated}


class EstimationFailure(ApopError):
    """Exception raised when an estimation cannot be started.

    The driver raises this for invalid starting conditions, e.g. a starting
    point whose objective is not finite or that sits in the penalty region
    with no usable descent direction. Failures that occur during the
    optimization itself are reported through the result status instead.

    Attributes:
        model_name: The model being estimated
        starting_point: The starting point that was rejected
        issue: Description of the problem
    """

    def __init__(self,
                 message: str,
                 model_name: Optional[str] = None,
                 starting_point: Optional[Any] = None,
                 issue: Optional[str] = None,
                 details: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None) -> None:
        self.model_name = model_name
        self.starting_point = starting_point
        self.issue = issue

        context_dict = context or {}
        if model_name:
            context_dict["Model"] = model_name
        if starting_point is not None:
            context_dict["Starting Point"] = _truncate(starting_point)
        if issue:
            context_dict["Issue"] = issue

        super().__init__(message, details, context_dict)


class StartingPointError(DimensionError, EstimationFailure):
    """Exception raised when a starting point has the wrong length.

    It is both a :class:`DimensionError` (the vector does not match the
    model's parameter count) and an :class:`EstimationFailure` (the
    estimation cannot be started), so either can be caught.
    """

    def __init__(self,
                 message: str,
                 model_name: Optional[str] = None,
                 starting_point: Optional[Any] = None,
                 expected_shape: Optional[Union[Tuple[int, ...], str]] = None,
                 actual_shape: Optional[Tuple[int, ...]] = None,
                 details: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None) -> None:
        self.array_name = "starting_point"
        self.expected_shape = expected_shape
        self.actual_shape = actual_shape
        self.model_name = model_name
        self.starting_point = starting_point
        self.issue = "wrong length"

        context_dict = context or {}
        if model_name:
            context_dict["Model"] = model_name
        if starting_point is not None:
            context_dict["Starting Point"] = _truncate(starting_point)
        if expected_shape is not None:
            context_dict["Expected Shape"] = expected_shape
        if actual_shape is not None:
            context_dict["Actual Shape"] = actual_shape

        ApopError.__init__(self, message, details, context_dict)


class ConfigurationError(ApopError):
    """Exception raised for invalid settings or invalid convenience-call inputs.

    Covers unknown configuration options, values that cannot be coerced, and
    inputs to convenience routines that make the request meaningless (for
    example inverting a non-square matrix or measuring the distance between
    vectors of different lengths).

    Attributes:
        config_file: The configuration file path
        setting: The setting that caused the error
        value: The invalid setting value
        issue: Description of the issue with the configuration
    """

    def __init__(self,
                 message: str,
                 config_file: Optional[Union[str, Path]] = None,
                 setting: Optional[str] = None,
                 value: Optional[Any] = None,
                 issue: Optional[str] = None,
                 details: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None) -> None:
        self.config_file = config_file
        self.setting = setting
        self.value = value
        self.issue = issue

        context_dict = context or {}
        if config_file:
            context_dict["Config File"] = str(config_file)
        if setting:
            context_dict["Setting"] = setting
        if value is not None:
            context_dict["Value"] = _truncate(value)
        if issue:
            context_dict["Issue"] = issue

        super().__init__(message, details, context_dict)


class ApopWarning(Warning):
    """Base warning class for all apop warnings.

    Attributes:
        message: The warning message
        details: Additional details about the warning
        context: Dictionary containing contextual information about the warning
    """

    def __init__(self,
                 message: str,
                 details: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None) -> None:
        self.message = message
        self.details = details
        self.context = context or {}

        full_message = message
        if details:
            full_message += f"\n\nDetails: {details}"

        if self.context:
            context_str = "\n".join(f"  {k}: {v}" for k, v in self.context.items())
            full_message += f"\n\nContext:\n{context_str}"

        super().__init__(full_message)


class ConvergenceWarning(ApopWarning):
    """Warning issued when an optimizer stops at its iteration limit.

    Attributes:
        iterations: The number of iterations performed
        tolerance: The convergence tolerance that was used
        final_value: The objective value at the last iterate
    """

    def __init__(self,
                 message: str,
                 iterations: Optional[int] = None,
                 tolerance: Optional[float] = None,
                 final_value: Optional[float] = None,
                 details: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None) -> None:
        self.iterations = iterations
        self.tolerance = tolerance
        self.final_value = final_value

        context_dict = context or {}
        if iterations is not None:
            context_dict["Iterations"] = iterations
        if tolerance is not None:
            context_dict["Tolerance"] = tolerance
        if final_value is not None:
            context_dict["Final Value"] = final_value

        super().__init__(message, details, context_dict)


class NumericWarning(ApopWarning):
    """Warning for numerical issues that do not stop the computation.

    Attributes:
        operation: The operation where the issue was detected
        issue: Description of the numerical issue
        value: The value that may cause numerical issues
    """

    def __init__(self,
                 message: str,
                 operation: Optional[str] = None,
                 issue: Optional[str] = None,
                 value: Optional[Any] = None,
                 details: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None) -> None:
        self.operation = operation
        self.issue = issue
        self.value = value

        context_dict = context or {}
        if operation:
            context_dict["Operation"] = operation
        if issue:
            context_dict["Issue"] = issue
        if value is not None:
            context_dict["Value"] = _truncate(value)

        super().__init__(message, details, context_dict)


def raise_parameter_error(message: str,
                          param_name: Optional[str] = None,
                          param_value: Optional[Any] = None,
                          constraint: Optional[str] = None,
                          details: Optional[str] = None,
                          context: Optional[Dict[str, Any]] = None) -> None:
    """Raise a ParameterError with consistent formatting.

    Raises:
        ParameterError: The formatted parameter error
    """
    raise ParameterError(message, param_name, param_value, constraint, details, context)


def raise_dimension_error(message: str,
                          array_name: Optional[str] = None,
                          expected_shape: Optional[Union[Tuple[int, ...], str]] = None,
                          actual_shape: Optional[Tuple[int, ...]] = None,
                          details: Optional[str] = None,
                          context: Optional[Dict[str, Any]] = None) -> None:
    """Raise a DimensionError with consistent formatting.

    Args:
        message: The primary error message
        array_name: The name of the array that caused the error
        expected_shape: The expected shape of the array
        actual_shape: The actual shape of the array
        details: Additional details about the error
        context: Dictionary containing contextual information about the error

    Raises:
        DimensionError: The formatted dimension error
    """
    raise DimensionError(message, array_name, expected_shape, actual_shape, details, context)


def raise_numeric_error(message: str,
                        operation: Optional[str] = None,
                        values: Optional[Any] = None,
                        error_type: Optional[str] = None,
                        details: Optional[str] = None,
                        context: Optional[Dict[str, Any]] = None) -> None:
    """Raise a NumericError with consistent formatting.

    Raises:
        NumericError: The formatted numeric error
    """
    raise NumericError(message, operation, values, error_type, details, context)


def warn_convergence(message: str,
                     iterations: Optional[int] = None,
                     tolerance: Optional[float] = None,
                     final_value: Optional[float] = None,
                     details: Optional[str] = None,
                     context: Optional[Dict[str, Any]] = None) -> None:
    """Issue a ConvergenceWarning with consistent formatting.

    Args:
        message: The primary warning message
        iterations: The number of iterations performed
        tolerance: The convergence tolerance that was used
        final_value: The objective value at the last iterate
        details: Additional details about the warning
        context: Dictionary containing contextual information about the warning
    """
    import warnings
    warnings.warn(
        ConvergenceWarning(message, iterations, tolerance, final_value, details, context),
        stacklevel=3
    )


def warn_numeric(message: str,
                 operation: Optional[str] = None,
                 issue: Optional[str] = None,
                 value: Optional[Any] = None,
                 details: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None) -> None:
    """Issue a NumericWarning with consistent formatting."""
    import warnings
    warnings.warn(
        NumericWarning(message, operation, issue, value, details, context),
        stacklevel=3
    )
