from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Annotated, Any, Optional

import numpy as np
from pydantic import BeforeValidator, Field, ValidationError, model_validator
from pydantic.alias_generators import to_camel

from lmcurve.error import FitValidationError
from lmcurve.struct import Config
from lmcurve.typing import IterationCallback

__all__ = ["FitOptions", "as_options"]


def _as_list(value: Any) -> Any:
    # Accept sequences and 1-D arrays, reject scalars, strings, sets, etc.
    if value is None:
        return value
    if isinstance(value, np.ndarray):
        if value.ndim != 1:
            raise ValueError(f"must be one-dimensional, got shape {value.shape}")
        return value.tolist()
    if isinstance(value, (str, bytes)) or not isinstance(value, Sequence):
        raise ValueError(f"must be an array, got {type(value).__name__}")
    return list(value)


ParameterList = Annotated[list[float], BeforeValidator(_as_list)]


class FitOptions(Config):
    """
    Options controlling a Levenberg-Marquardt curve fit.

    Options may be given by their snake_case name or by the camelCase alias
    (``gradientDifference``, ``minValues``, ...).

    Attributes
    ----------
    damping : float
        Levenberg-Marquardt damping parameter. Required, must be positive.
    gradient_difference : float
        Step used for the forward-difference Jacobian. Default 0.1.
    min_values, max_values : list of float, optional
        Element-wise parameter bounds. Default to the extremes of the float
        range.
    initial_values : list of float, optional
        Starting parameters. Defaults to ones, sized by the model's
        ``n_params``.
    max_iterations : int
        Iteration cap. Default 100.
    error_tolerance : float
        Convergence threshold on the residual norm. Default 0.01.
    align_to_data : bool
        Rescale the model output onto the data range before each iteration.
    on_iteration : callable, optional
        ``on_iteration(error, parameters)`` called after each completed
        iteration. ``parameters`` is a read-only copy.
    nprint : int
        Print a progress row every ``nprint`` iterations. 0 disables printing.
    """

    damping: float = Field(gt=0)
    gradient_difference: float = Field(default=0.1, gt=0)
    min_values: Optional[ParameterList] = None
    max_values: Optional[ParameterList] = None
    initial_values: Optional[ParameterList] = None
    max_iterations: int = Field(default=100, ge=0)
    error_tolerance: float = Field(default=1e-2, ge=0)
    align_to_data: bool = False
    on_iteration: Optional[IterationCallback] = None
    nprint: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def _check_bounds(self) -> "FitOptions":
        lower, upper = self.min_values, self.max_values
        if lower is not None and upper is not None:
            if len(lower) != len(upper):
                raise ValueError(
                    "minValues and maxValues must be the same size "
                    f"(got {len(lower)} and {len(upper)})"
                )
            bad = [i for i, (lo, hi) in enumerate(zip(lower, upper)) if lo > hi]
            if bad:
                raise ValueError(
                    f"minValues must not exceed maxValues (indices {bad})"
                )
        return self


def _field_names(options: Mapping[str, Any]) -> dict[str, Any]:
    # Map camelCase aliases to field names so both spellings merge by field.
    # Unknown keys pass through and are rejected by validation.
    names = {
        field.alias or to_camel(name): name
        for name, field in FitOptions.model_fields.items()
    }
    return {names.get(key, key): value for key, value in options.items()}


def as_options(options=None, **kwargs) -> FitOptions:
    """
    Build validated :py:class:`FitOptions` for a single fit.

    ``options`` may be a ``FitOptions`` instance or a mapping; keyword
    arguments override its entries, whichever spelling (snake_case or
    camelCase) either side uses. Validation failures are raised as
    :py:class:`~lmcurve.error.FitValidationError`.
    """
    if isinstance(options, FitOptions):
        if not kwargs:
            return options
        options = options.model_dump(exclude_unset=True)
    elif options is None:
        options = {}
    elif isinstance(options, Mapping):
        options = dict(options)
    else:
        raise FitValidationError(
            f"options must be a mapping or FitOptions, got {type(options).__name__}"
        )

    options = {**_field_names(options), **_field_names(kwargs)}
    if options.get("damping") is None:
        raise FitValidationError("The damping option must be a positive number")

    try:
        return FitOptions(**options)
    except ValidationError as e:
        raise FitValidationError(str(e)) from e
