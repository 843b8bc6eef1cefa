'''
Result containers for apop.

Estimates and model comparisons are returned as dataclasses that carry the
numbers, the termination state and enough metadata to print a readable
report or export the parameter table to a pandas DataFrame.
'''

import json
from dataclasses import dataclass, field, asdict
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import numpy as np
import pandas as pd

from .types import EstimationStatus


def _jsonable(value: Any) -> Any:
    if isinstance(value, np.ndarray):
        return value.tolist()
    if isinstance(value, (np.floating, np.integer)):
        return value.item()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


def _cell(value: float, width: int = 12) -> str:
    return f"{value:<{width}.6f}" if np.isfinite(value) else f"{'N/A':<{width}}"


def _stars(p_value: float) -> str:
    if not np.isfinite(p_value):
        return ""
    for cutoff, mark in ((0.01, " ***"), (0.05, " **"), (0.1, " *")):
        if p_value < cutoff:
            return mark
    return ""


@dataclass
class ModelResult:
    """Fields shared by every result.

    Attributes:
        model_name: Name of the model (or model pair) the result describes
        creation_time: When the result was produced
        metadata: Free-form extra information
    """

    model_name: str
    creation_time: datetime = field(default_factory=datetime.now)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.metadata = dict(self.metadata)

    def to_dict(self) -> Dict[str, Any]:
        """JSON-compatible dictionary of all fields."""
        return {key: _jsonable(value) for key, value in asdict(self).items()}

    def to_json(self, path: Optional[Union[str, Path]] = None, **kwargs: Any) -> Optional[str]:
        """Serialize the result to JSON.

        Args:
            path: File to write; when None the JSON text is returned instead
            **kwargs: Passed on to ``json.dump``/``json.dumps``
        """
        payload = self.to_dict()
        if path is None:
            return json.dumps(payload, **kwargs)
        with open(path, 'w') as f:
            json.dump(payload, f, **kwargs)
        return None

    def _header(self) -> str:
        title = f"Model: {self.model_name}"
        lines = [title, "=" * len(title), "",
                 f"Created: {self.creation_time:%Y-%m-%d %H:%M:%S}", ""]
        if self.metadata:
            lines.append("Metadata:")
            lines.extend(f"  {key}: {value}" for key, value in self.metadata.items())
            lines.append("")
        return "\n".join(lines) + "\n"

    def summary(self) -> str:
        return self._header()

    def __str__(self) -> str:
        return self.summary()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(model_name='{self.model_name}')"


@dataclass
class MLEResult(ModelResult):
    """Outcome of a maximum-likelihood estimation.

    ``log_likelihood`` is reported in its natural (positive-sense) form, i.e.
    the negation of the minimized objective. The inference fields are filled
    from the inverse of the numerical Hessian at the optimum and stay ``None``
    when the estimation failed or the Hessian could not be inverted.

    Attributes:
        parameters: Parameter vector at the optimum
        log_likelihood: Log-likelihood at the optimum
        status: Termination state of the optimizer
        method: Optimization algorithm that produced the estimate
        iterations: Number of optimizer iterations
        function_evaluations: Number of objective evaluations
        gradient_evaluations: Number of gradient evaluations
        n_observations: Number of data rows used
        parameter_names: Names of the parameters, in vector order
        optimization_message: Message from the optimizer
        covariance_matrix: Estimated covariance of the parameters
        std_errors: Standard errors of the parameters
        t_stats: t-statistics of the parameters
        p_values: Two-sided p-values of the parameters
        aic: Akaike Information Criterion
        bic: Bayesian Information Criterion
    """

    parameters: Optional[np.ndarray] = None
    log_likelihood: Optional[float] = None
    status: EstimationStatus = EstimationStatus.FAILURE
    method: Optional[str] = None
    iterations: int = 0
    function_evaluations: int = 0
    gradient_evaluations: int = 0
    n_observations: int = 0
    parameter_names: List[str] = field(default_factory=list)
    optimization_message: Optional[str] = None
    covariance_matrix: Optional[np.ndarray] = None
    std_errors: Optional[np.ndarray] = None
    t_stats: Optional[np.ndarray] = None
    p_values: Optional[np.ndarray] = None
    aic: Optional[float] = None
    bic: Optional[float] = None

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.parameters is not None:
            self.parameters = np.array(self.parameters, dtype=np.float64)
            if not self.parameter_names:
                self.parameter_names = [f"beta[{i}]" for i in range(len(self.parameters))]

    @property
    def convergence(self) -> bool:
        return self.status is EstimationStatus.CONVERGED

    @property
    def failed(self) -> bool:
        return self.status is EstimationStatus.FAILURE

    @property
    def n_params(self) -> int:
        return 0 if self.parameters is None else len(self.parameters)

    def _inference_column(self, values: Optional[np.ndarray]) -> np.ndarray:
        if values is None:
            return np.full(self.n_params, np.nan)
        return np.asarray(values, dtype=np.float64)

    def summary(self) -> str:
        """Text report: termination, fit statistics and the parameter table."""
        lines = [f"Status: {self.status.value}"]
        if self.method:
            lines.append(f"Method: {self.method}")
        lines.append(f"Iterations: {self.iterations}")
        lines.append(f"Function evaluations: {self.function_evaluations}")
        if self.gradient_evaluations:
            lines.append(f"Gradient evaluations: {self.gradient_evaluations}")
        if self.optimization_message:
            lines.append(f"Optimizer message: {self.optimization_message}")
        lines.append("")

        for label, value in (("Log-Likelihood", self.log_likelihood),
                             ("AIC", self.aic), ("BIC", self.bic)):
            if value is not None:
                lines.append(f"{label}: {value:.6f}")
        if self.n_observations:
            lines.append(f"Observations: {self.n_observations}")
        lines.append("")

        if self.parameters is not None:
            rule = "-" * 80
            lines += ["Parameter Estimates:", rule,
                      f"{'Parameter':<20} {'Estimate':<12} {'Std. Error':<12} "
                      f"{'t-Stat':<12} {'p-Value':<12}",
                      rule]
            columns = zip(self.parameter_names, self.parameters,
                          self._inference_column(self.std_errors),
                          self._inference_column(self.t_stats),
                          self._inference_column(self.p_values))
            for name, estimate, std_err, t_stat, p_value in columns:
                lines.append(f"{name:<20} {_cell(estimate)} {_cell(std_err)} "
                             f"{_cell(t_stat)} {_cell(p_value)}{_stars(p_value)}".rstrip())
            lines += [rule, "Significance codes: *** 0.01, ** 0.05, * 0.1", ""]

        return self._header() + "\n".join(lines) + "\n"

    def to_dataframe(self) -> pd.DataFrame:
        """Parameter table indexed by parameter name.

        Raises:
            ValueError: If the result carries no parameters
        """
        if self.parameters is None:
            raise ValueError("Parameters are not available")

        table = {"Estimate": self.parameters}
        for column, values in (("Std. Error", self.std_errors),
                               ("t-Stat", self.t_stats),
                               ("p-Value", self.p_values)):
            if values is not None:
                table[column] = values
        return pd.DataFrame(table, index=pd.Index(list(self.parameter_names), name="Parameter"))

    def compare(self, other: 'MLEResult') -> Dict[str, Any]:
        """Differences in fit statistics against another estimate.

        Information criteria prefer the smaller value. Use
        :func:`apop.estimation.compare_models` for a test based on the
        per-observation likelihoods.

        Raises:
            TypeError: If other is not an MLEResult
        """
        if not isinstance(other, MLEResult):
            raise TypeError(f"other must be an MLEResult, got {type(other)}")

        comparison: Dict[str, Any] = {
            "model_names": (self.model_name, other.model_name),
            "n_params_diff": self.n_params - other.n_params,
        }
        if self.log_likelihood is not None and other.log_likelihood is not None:
            comparison["log_likelihood_diff"] = self.log_likelihood - other.log_likelihood
        for criterion in ("aic", "bic"):
            mine, theirs = getattr(self, criterion), getattr(other, criterion)
            if mine is None or theirs is None:
                continue
            comparison[f"{criterion}_diff"] = mine - theirs
            comparison[f"preferred_by_{criterion}"] = (
                self.model_name if mine < theirs else other.model_name
            )
        return comparison


@dataclass
class ModelComparison(ModelResult):
    """Paired comparison of two fitted models on the same data.

    The statistic is built from the per-observation difference in
    log-likelihood between the two models (Vuong, 1989).

    Attributes:
        first_model: Name of the first model
        second_model: Name of the second model
        mean_difference: Mean per-observation log-likelihood difference
        t_statistic: Paired t statistic of the differences
        confidence: Confidence that the preferred model fits better
        preferred: Name of the model favored by the mean difference
        n_observations: Number of paired observations
    """

    first_model: str = ""
    second_model: str = ""
    mean_difference: float = 0.0
    t_statistic: float = 0.0
    confidence: float = 0.5
    preferred: str = ""
    n_observations: int = 0

    def summary(self) -> str:
        body = [
            f"Comparison: {self.first_model} vs {self.second_model}",
            f"Observations: {self.n_observations}",
            f"Mean log-likelihood difference: {self.mean_difference:.6f}",
            f"t statistic: {self.t_statistic:.6f}",
            f"Preferred: {self.preferred} (confidence {self.confidence:.4f})",
        ]
        return self._header() + "\n".join(body) + "\n"
