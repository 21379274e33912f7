from __future__ import annotations

import logging
from enum import IntEnum
from typing import TYPE_CHECKING, Any, Dict, List, NamedTuple

import numpy as np

from lmcurve.error import FitValidationError
from lmcurve.model import parameter_count

from ._align import align
from ._data import as_dataset
from ._options import as_options
from ._residual import error_calculation, predict
from ._step import step

if TYPE_CHECKING:
    from lmcurve.typing import Model
    from ._data import Dataset
    from ._options import FitOptions

__all__ = [
    "levenberg_marquardt",
    "fit",
    "FitStatus",
    "FitResult",
]

logger = logging.getLogger(__name__)

FLOAT_MAX = np.finfo(float).max


class FitStatus(IntEnum):
    """State of a Levenberg-Marquardt curve fit."""

    RUNNING = 0
    CONVERGED = 1  # Error at or below the tolerance
    MAX_ITERATIONS_REACHED = 2
    DIVERGED = 3  # Error became NaN

    @property
    def message(self) -> str:
        """Get descriptive message for this status code."""
        messages = {
            FitStatus.RUNNING: "Fit in progress",
            FitStatus.CONVERGED: "The residual norm is at most error_tolerance",
            FitStatus.MAX_ITERATIONS_REACHED: "Number of iterations has reached max_iterations",
            FitStatus.DIVERGED: "The residual norm is NaN; the model diverged or the "
            "damped system could not be solved",
        }
        return messages.get(self, "Unknown status")

    @property
    def success(self) -> bool:
        """Check if this status indicates successful convergence."""
        return self is FitStatus.CONVERGED


class FitProgress:
    """Handle progress reporting for curve fits."""

    def __init__(self, nprint=0):
        self.nprint = nprint
        self.prev_error = None
        self.header_printed = False

    def report(self, iteration, error, params):
        if self.nprint <= 0:
            return

        if iteration % self.nprint == 0:
            if not self.header_printed:
                self._print_header()
                self.header_printed = True

            if self.prev_error is not None:
                reduction = self.prev_error - error
            else:
                reduction = None

            self._print_iteration(iteration, error, reduction, params)

        self.prev_error = error

    def _print_header(self):
        print(f"{'Iteration':^10} {'Error':^15} {'Error reduction':^16} {'Parameters'}")

    def _print_iteration(self, iteration, error, reduction, params):
        error_str = f"{error:.4e}"
        red_str = f"{reduction:.2e}" if reduction is not None else ""
        params_str = np.array2string(np.asarray(params), precision=6, separator=", ")
        print(f"{iteration:^10} {error_str:^15} {red_str:^16} {params_str}")


class FitResult(NamedTuple):
    """Result of a Levenberg-Marquardt curve fit.

    Attributes
    ----------
    parameter_values : ndarray
        Final parameter vector. All NaN entries are possible when the fit
        diverged.
    parameter_error : float
        Residual norm at ``parameter_values`` (NaN if the fit diverged)
    iterations : int
        Number of completed iterations
    status : FitStatus
        Terminal state of the fit
    success : bool
        Whether the error tolerance was reached
    message : str
        Description of the terminal state
    history : List[Dict[str, Any]]
        One record per completed iteration with keys ``iter``, ``error`` and
        ``x``
    """

    parameter_values: np.ndarray
    parameter_error: float
    iterations: int
    status: FitStatus
    success: bool
    message: str
    history: List[Dict[str, Any]]


def _initial_parameters(model: Model, options: FitOptions) -> np.ndarray:
    if options.initial_values is not None:
        return np.array(options.initial_values, dtype=float)

    n = parameter_count(model)
    if n is None:
        for bound in (options.min_values, options.max_values):
            if bound is not None:
                n = len(bound)
                break
    if n is None:
        raise FitValidationError(
            "initialValues must be given when the model does not declare n_params"
        )
    return np.ones(n)


def _bounds(options: FitOptions, n: int) -> tuple[np.ndarray, np.ndarray]:
    lower = options.min_values
    upper = options.max_values
    lower = np.full(n, -FLOAT_MAX) if lower is None else np.array(lower, dtype=float)
    upper = np.full(n, FLOAT_MAX) if upper is None else np.array(upper, dtype=float)
    for name, bound in (("minValues", lower), ("maxValues", upper)):
        if bound.size != n:
            raise FitValidationError(
                f"{name} must have one entry per parameter "
                f"(got {bound.size}, expected {n})"
            )
    return lower, upper


def _check_parameters(model: Model, params: np.ndarray) -> None:
    if params.size == 0:
        raise FitValidationError("The parameter vector must not be empty")
    n = parameter_count(model)
    if n is not None and n != params.size:
        raise FitValidationError(
            f"initialValues has {params.size} entries but the model "
            f"declares {n} parameters"
        )


def levenberg_marquardt(
    data: Dataset | Any,
    model: Model,
    options: FitOptions | Dict[str, Any] | None = None,
    **kwargs,
) -> FitResult:
    """
    Fit a parameterized model to data with the Levenberg-Marquardt method.

    Each iteration solves the damped normal equations
    ``(J.T @ J + damping * I) delta = J.T @ r`` with a forward-difference
    Jacobian ``J`` and residuals ``r = y - f(x)``, clamps the updated
    parameters to the bounds and re-evaluates the residual norm. The damping
    is fixed for the whole fit.

    Parameters
    ----------
    data : Dataset, mapping or object
        Samples with ``x`` and ``y`` entries of equal length (at least 2).
    model : callable
        ``model(params) -> (x -> y)``. If it has an ``n_params`` attribute,
        that is the size of the default initial guess.
    options : FitOptions or dict, optional
        Fit options, see :py:class:`FitOptions`. ``damping`` is required.
    **kwargs : dict
        Individual options, overriding those in ``options``.

    Returns
    -------
    result : FitResult
        Final parameters, residual norm, number of iterations and terminal
        status. Reaching the iteration cap or diverging (NaN error) are not
        errors; check ``result.status``. On divergence the NaN-producing
        parameters and error are returned as-is.

    Raises
    ------
    FitValidationError
        If the data or options are invalid. Nothing else is raised by the
        fitting procedure itself.

    Examples
    --------
    >>> from lmcurve import curve_model, fit
    >>> @curve_model
    ... def line(x, a, b):
    ...     return a * x + b
    >>> result = fit(
    ...     {"x": [0, 1, 2, 3], "y": [1, 3, 5, 7]},
    ...     line,
    ...     damping=0.01,
    ...     initial_values=[0, 0],
    ...     error_tolerance=1e-6,
    ... )
    >>> np.round(result.parameter_values, 6)
    array([2., 1.])
    """
    options = as_options(options, **kwargs)
    data = as_dataset(data)

    if not callable(model):
        raise FitValidationError("The model must be callable")

    params = _initial_parameters(model, options)
    _check_parameters(model, params)
    lower, upper = _bounds(options, params.size)

    progress = FitProgress(options.nprint)
    history = []

    data_min, data_max = data.y_min, data.y_max

    error = error_calculation(data, params, model)

    status = FitStatus.RUNNING
    if np.isnan(error):
        status = FitStatus.DIVERGED
    elif error <= options.error_tolerance:
        status = FitStatus.CONVERGED

    iteration = 0
    while status == FitStatus.RUNNING:
        if iteration >= options.max_iterations:
            status = FitStatus.MAX_ITERATIONS_REACHED
            break

        fitted_model = model
        if options.align_to_data:
            fitted_model = align(
                model, data_min, data_max, predict(model, params, data.x)
            )

        params = step(
            data,
            params,
            options.damping,
            options.gradient_difference,
            fitted_model,
        )
        params = np.minimum(np.maximum(lower, params), upper)

        error = error_calculation(data, params, fitted_model)
        if np.isnan(error):
            status = FitStatus.DIVERGED
            break

        history.append({"iter": iteration, "error": error, "x": params.copy()})
        progress.report(iteration, error, params)
        if options.on_iteration is not None:
            view = params.copy()
            view.flags.writeable = False
            options.on_iteration(error, view)

        iteration += 1
        if error <= options.error_tolerance:
            status = FitStatus.CONVERGED

    logger.debug(
        "Levenberg-Marquardt fit finished after %d iterations: %s (error=%g)",
        iteration,
        status.name,
        error,
    )
    if options.nprint > 0:
        print(status.message)

    return FitResult(
        parameter_values=params,
        parameter_error=error,
        iterations=iteration,
        status=status,
        success=status.success,
        message=status.message,
        history=history,
    )


fit = levenberg_marquardt
