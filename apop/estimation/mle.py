'''
Maximum likelihood estimation driver.

:func:`maximum_likelihood` minimizes a model's negated log-likelihood with
:func:`scipy.optimize.minimize` and packages the optimum, its inference
statistics and the optimizer's termination state into an
:class:`~apop.core.results.MLEResult`.

Every call builds its own :class:`Objective` (evaluation counters, the
boundary guard's rescue memo and the cached fused evaluation) and its own
:class:`ConvergenceMonitor`, so estimations running side by side never share
mutable state.
'''

import logging
from typing import Any, Dict, Optional, Tuple, Union

import numpy as np
from scipy import optimize, stats

from apop.core.config import get_numerical_config
from apop.core.exceptions import (
    ConfigurationError, DimensionError, EstimationFailure, NumericError, StartingPointError,
    warn_convergence, warn_numeric
)
from apop.core.results import MLEResult
from apop.core.types import (
    DataLike, EstimationStatus, OptimizationAlgorithm, ParameterVector
)
from apop.core.validation import validate_data_matrix, validate_parameter_vector
from apop.models.base import Model
from apop.models.penalty import BoundaryGuard
from apop.models.registry import get_model
from apop.utils.differentiation import hessian_2sided
from apop.utils.linear_algebra import det_and_inv

logger = logging.getLogger("apop.estimation.mle")

# scipy status codes for gradient methods
_GRADIENT_MAXITER = 1
_GRADIENT_PRECISION_LOSS = 2


class Objective:
    """
    Negated log-likelihood of one model on one data set.

    Owns the boundary guard of the estimation session and counts
    evaluations. Gradient methods call :meth:`value_and_gradient`; the last
    fused evaluation is cached, so a value or gradient request at the same
    point does not recompute it.

    Attributes:
        model: The model being estimated
        data: The validated data matrix
        guard: Rescue memo for out-of-domain evaluations
        function_evaluations: Number of objective values computed
        gradient_evaluations: Number of gradients computed
    """

    def __init__(self, model: Model, data: np.ndarray) -> None:
        self.model = model
        self.data = data
        self.guard = BoundaryGuard(model, data)
        self.function_evaluations = 0
        self.gradient_evaluations = 0
        self._last_point: Optional[bytes] = None
        self._last_result: Optional[Tuple[float, np.ndarray]] = None

    def value(self, beta: np.ndarray) -> float:
        cached = self._cached(beta)
        if cached is not None:
            return cached[0]
        self.function_evaluations += 1
        return self.model.log_likelihood(beta, self.data, self.guard)

    def gradient(self, beta: np.ndarray) -> np.ndarray:
        cached = self._cached(beta)
        if cached is not None:
            return cached[1].copy()
        return self.value_and_gradient(beta)[1]

    def value_and_gradient(self, beta: np.ndarray) -> Tuple[float, np.ndarray]:
        cached = self._cached(beta)
        if cached is not None:
            return cached[0], cached[1].copy()
        self.function_evaluations += 1
        self.gradient_evaluations += 1
        value, grad = self.model.fused_value_and_gradient(beta, self.data, self.guard)
        self._last_point = np.asarray(beta, dtype=np.float64).tobytes()
        self._last_result = (value, grad)
        logger.debug(f"{self.model.name}: f({beta}) = {value:.10g}")
        return value, grad.copy()

    def _cached(self, beta: np.ndarray) -> Optional[Tuple[float, np.ndarray]]:
        if self._last_point is None:
            return None
        if np.asarray(beta, dtype=np.float64).tobytes() != self._last_point:
            return None
        return self._last_result


class ConvergenceMonitor:
    """
    Stops the optimizer once the objective has settled.

    Used as a scipy ``callback(intermediate_result)``. After each iteration
    the change in objective is compared with
    ``tolerance * max(1, |f_k|, |f_{k-1}|)``; once that holds for ``streak``
    consecutive iterations the monitor raises ``StopIteration``. Iterations
    that leave the best point where it was (a simplex contracting around its
    best vertex) neither count toward nor break the streak.

    Attributes:
        tolerance: Relative tolerance on the objective change
        streak: Consecutive small changes required to stop
        iterations: Iterations observed so far
        stopped: Whether the monitor ended the optimization
        satisfied: Whether any single iteration met the tolerance
    """

    def __init__(self, tolerance: float, streak: int, model_name: str = "",
                 verbose: bool = False) -> None:
        self.tolerance = tolerance
        self.streak = streak
        self.model_name = model_name
        self.iterations = 0
        self.stopped = False
        self.satisfied = False
        self.last_point: Optional[np.ndarray] = None
        self.last_value: Optional[float] = None
        self._run = 0
        self._level = logging.INFO if verbose else logging.DEBUG

    def __call__(self, intermediate_result: optimize.OptimizeResult) -> None:
        value = float(intermediate_result.fun)
        self.iterations += 1
        logger.log(self._level, f"{self.model_name} iteration {self.iterations}: "
                                f"f = {value:.10g}, x = {intermediate_result.x}")

        point = np.array(intermediate_result.x, dtype=np.float64)
        previous = self.last_value
        if self.last_point is not None and np.array_equal(point, self.last_point):
            return
        self.last_point = point
        self.last_value = value
        if previous is None:
            return

        scale = max(1.0, abs(value), abs(previous))
        if abs(value - previous) <= self.tolerance * scale:
            self.satisfied = True
            self._run += 1
        else:
            self._run = 0

        if self._run >= self.streak:
            self.stopped = True
            raise StopIteration


def _resolve_method(model: Model, method: Optional[Union[str, OptimizationAlgorithm]],
                    config: Any) -> OptimizationAlgorithm:
    if method is None:
        method = config.optimization_method if model.has_gradient else config.derivative_free_method
    try:
        algorithm = OptimizationAlgorithm.from_name(method)
    except ValueError as e:
        raise ConfigurationError(
            f"Unknown optimization method: {method}",
            setting="method",
            value=method,
            issue=str(e)
        ) from e

    if algorithm.uses_gradient and not model.has_gradient:
        raise ConfigurationError(
            f"{algorithm.value} needs a gradient, which {model.name} does not provide",
            setting="method",
            value=algorithm.value,
            issue="use nelder-mead for models without a gradient"
        )
    return algorithm


def _solver_options(algorithm: OptimizationAlgorithm, x0: np.ndarray,
                    step_size: float, max_iterations: int) -> Dict[str, Any]:
    options: Dict[str, Any] = {"maxiter": max_iterations}
    n = x0.shape[0]
    if algorithm is OptimizationAlgorithm.NELDER_MEAD:
        options["initial_simplex"] = np.vstack([x0, x0 + step_size * np.eye(n)])
    elif algorithm is OptimizationAlgorithm.BFGS:
        options["hess_inv0"] = step_size * np.eye(n)
    return options


def _preflight(objective: Objective, x0: np.ndarray, algorithm: OptimizationAlgorithm) -> None:
    model = objective.model
    if not np.all(np.isfinite(x0)):
        raise EstimationFailure(
            "Starting point contains NaN or infinite values",
            model_name=model.name,
            starting_point=x0,
            issue="non-finite starting point"
        )

    start_value = objective.value(x0)
    if not np.isfinite(start_value):
        raise EstimationFailure(
            "Objective is not finite at the starting point",
            model_name=model.name,
            starting_point=x0,
            issue=f"objective = {start_value}"
        )

    if algorithm.uses_gradient and model.domain_violation(x0) is not None:
        grad = objective.gradient(x0)
        if not np.all(np.isfinite(grad)) or not np.any(grad):
            raise EstimationFailure(
                "Starting point is outside the valid domain and the penalty "
                "gradient gives no direction back",
                model_name=model.name,
                starting_point=x0,
                issue=f"gradient = {grad}"
            )


def _termination_status(algorithm: OptimizationAlgorithm, result: optimize.OptimizeResult,
                        monitor: ConvergenceMonitor) -> EstimationStatus:
    if monitor.stopped or result.success:
        return EstimationStatus.CONVERGED
    if algorithm is OptimizationAlgorithm.NELDER_MEAD:
        # 1: function evaluation limit, 2: iteration limit
        if result.status in (1, 2):
            return EstimationStatus.ITERATION_LIMIT
        return EstimationStatus.FAILURE
    if result.status == _GRADIENT_MAXITER:
        return EstimationStatus.ITERATION_LIMIT
    if result.status == _GRADIENT_PRECISION_LOSS and monitor.satisfied:
        return EstimationStatus.CONVERGED
    return EstimationStatus.FAILURE


def _inference(result: MLEResult, objective: Objective, epsilon: float) -> None:
    """Fill covariance, standard errors, t-stats and p-values in place."""
    x = result.parameters
    steps = epsilon * np.maximum(np.abs(x), 1.0)
    try:
        hessian = hessian_2sided(objective.value, x, epsilon=steps)
        _, covariance = det_and_inv(hessian, calc_det=False, calc_inv=True)
    except NumericError as e:
        logger.warning(f"{result.model_name}: covariance unavailable: {e.message}")
        warn_numeric(
            "Hessian at the optimum could not be inverted; inference statistics omitted",
            operation="covariance",
            issue="singular Hessian"
        )
        return

    variances = np.diag(covariance)
    if not np.all(variances > 0.0):
        logger.warning(f"{result.model_name}: Hessian at the optimum is not positive definite")
        warn_numeric(
            "Covariance has non-positive variances; inference statistics omitted",
            operation="covariance",
            issue="Hessian not positive definite",
            value=variances
        )
        return

    result.covariance_matrix = covariance
    result.std_errors = np.sqrt(variances)
    result.t_stats = x / result.std_errors
    result.p_values = 2.0 * stats.norm.sf(np.abs(result.t_stats))


def maximum_likelihood(data: DataLike,
                       model: Union[str, Model],
                       starting_point: Optional[ParameterVector] = None,
                       step_size: Optional[float] = None,
                       tolerance: Optional[float] = None,
                       method: Optional[Union[str, OptimizationAlgorithm]] = None,
                       max_iterations: Optional[int] = None,
                       convergence_streak: Optional[int] = None,
                       compute_covariance: bool = True,
                       verbose: bool = False) -> MLEResult:
    """
    Estimate a model's parameters by maximum likelihood.

    Args:
        data: Data matrix (array-like or pandas object) in the model's layout
        model: Model instance or registered model name
        starting_point: Initial parameter vector; zeros when omitted
        step_size: Size of the first trial step (simplex edge, or scale of the
            initial inverse Hessian for BFGS); config default when omitted
        tolerance: Relative tolerance on the objective change
        method: ``"bfgs"``, ``"cg"`` or ``"nelder-mead"``; when omitted, BFGS
            for models with a gradient and Nelder-Mead otherwise
        max_iterations: Iteration cap
        convergence_streak: Consecutive small changes required to stop
        compute_covariance: Whether to compute the covariance and statistics
        verbose: Log per-iteration progress at INFO instead of DEBUG

    Returns:
        MLEResult: Estimate and diagnostics. Numerical breakdown during the
        optimization, or a final point outside the valid domain, is reported
        as a FAILURE status with no log-likelihood, not raised.

    Raises:
        ModelSpecificationError: If ``model`` names no registered model
        DataError: If the data is empty or not finite
        StartingPointError: If the starting point has the wrong length; it is
            both a DimensionError and an EstimationFailure
        ConfigurationError: If the method is unknown or needs a missing gradient
        EstimationFailure: If the starting conditions are unusable

    Examples:
        >>> import numpy as np
        >>> from apop.estimation import maximum_likelihood
        >>> rng = np.random.default_rng(0)
        >>> data = rng.exponential(scale=0.5, size=(1000, 1))
        >>> result = maximum_likelihood(data, "exponential", starting_point=[1.0])
        >>> abs(result.parameters[0] - 0.5) < 0.05
        True
    """
    config = get_numerical_config()
    model = get_model(model)
    matrix = model.validate_data(validate_data_matrix(data))
    n_params = model.parameter_count(matrix)

    if starting_point is None:
        x0 = np.zeros(n_params)
    else:
        try:
            x0 = validate_parameter_vector(starting_point, n_params, "starting_point").copy()
        except DimensionError as e:
            raise StartingPointError(
                f"Starting point for {model.name} needs {n_params} parameters",
                model_name=model.name,
                starting_point=np.asarray(starting_point),
                expected_shape=e.expected_shape,
                actual_shape=e.actual_shape
            ) from e

    step_size = config.step_size if step_size is None else step_size
    tolerance = config.tolerance if tolerance is None else tolerance
    max_iterations = config.max_iterations if max_iterations is None else max_iterations
    streak = config.convergence_streak if convergence_streak is None else convergence_streak
    if step_size <= 0 or tolerance <= 0 or max_iterations < 1 or streak < 1:
        raise ConfigurationError(
            "step_size and tolerance must be positive; max_iterations and "
            "convergence_streak at least 1",
            setting="estimation",
            value=(step_size, tolerance, max_iterations, streak)
        )

    algorithm = _resolve_method(model, method, config)
    level = logging.INFO if verbose else logging.DEBUG
    logger.log(level, f"Estimating {model.name} with {algorithm.value} "
                      f"from {x0} ({matrix.shape[0]} observations)")

    objective = Objective(model, matrix)
    _preflight(objective, x0, algorithm)
    monitor = ConvergenceMonitor(tolerance, streak, model.name, verbose)

    if algorithm.uses_gradient:
        fun, jac = objective.value_and_gradient, True
    else:
        fun, jac = objective.value, None

    try:
        opt = optimize.minimize(
            fun,
            x0,
            method=algorithm.value,
            jac=jac,
            callback=monitor,
            options=_solver_options(algorithm, x0, step_size, max_iterations)
        )
    except NumericError as e:
        logger.warning(f"{model.name}: numerical failure during optimization: {e.message}")
        return MLEResult(
            model_name=model.name,
            parameters=monitor.last_point,
            status=EstimationStatus.FAILURE,
            method=algorithm.value,
            iterations=monitor.iterations,
            function_evaluations=objective.function_evaluations,
            gradient_evaluations=objective.gradient_evaluations,
            n_observations=matrix.shape[0],
            parameter_names=model.parameter_names(matrix),
            optimization_message=e.message
        )

    status = _termination_status(algorithm, opt, monitor)
    parameters = np.array(opt.x, dtype=np.float64)
    minimum = float(opt.fun)
    if not (np.all(np.isfinite(parameters)) and np.isfinite(minimum)):
        status = EstimationStatus.FAILURE
    elif model.domain_violation(parameters) is not None:
        # The reported minimum is a barrier value, not a likelihood
        logger.warning(f"{model.name}: optimizer stopped outside the valid domain at {parameters}")
        status = EstimationStatus.FAILURE
        minimum = np.nan

    result = MLEResult(
        model_name=model.name,
        parameters=parameters,
        log_likelihood=-minimum if np.isfinite(minimum) else None,
        status=status,
        method=algorithm.value,
        iterations=int(getattr(opt, "nit", monitor.iterations)),
        function_evaluations=objective.function_evaluations,
        gradient_evaluations=objective.gradient_evaluations,
        n_observations=matrix.shape[0],
        parameter_names=model.parameter_names(matrix),
        optimization_message=str(opt.message)
    )

    if status is EstimationStatus.ITERATION_LIMIT:
        warn_convergence(
            f"{model.name} estimation stopped at the iteration limit",
            iterations=result.iterations,
            tolerance=tolerance,
            final_value=minimum
        )

    if result.log_likelihood is not None:
        k = len(parameters)
        result.aic = 2.0 * k - 2.0 * result.log_likelihood
        result.bic = k * np.log(matrix.shape[0]) - 2.0 * result.log_likelihood

    if compute_covariance and status is not EstimationStatus.FAILURE:
        _inference(result, objective, config.finite_difference_step)

    logger.info(f"{model.name}: {status.value} after {result.iterations} iterations, "
                f"log-likelihood {result.log_likelihood}")
    return result
