from __future__ import annotations

from collections.abc import Mapping, Sequence

import numpy as np

from lmcurve import struct
from lmcurve.error import FitValidationError

__all__ = ["Dataset", "as_dataset"]


def _as_samples(values, name: str) -> np.ndarray:
    if values is None:
        raise FitValidationError("The data parameter must have x and y elements")
    if isinstance(values, (str, bytes)) or not isinstance(
        values, (Sequence, np.ndarray)
    ):
        raise FitValidationError(
            f"The data element {name!r} must be a sequence of numbers, "
            f"got {type(values).__name__}"
        )
    try:
        arr = np.asarray(values, dtype=float)
    except (TypeError, ValueError) as e:
        raise FitValidationError(
            f"The data element {name!r} must contain only numbers"
        ) from e
    if arr.ndim != 1:
        raise FitValidationError(
            f"The data element {name!r} must be one-dimensional, "
            f"got shape {arr.shape}"
        )
    if arr.size < 2:
        raise FitValidationError(
            "The data parameter elements must be an array with at least 2 points"
        )
    return arr


@struct.frozen
class Dataset:
    """Observed samples of a scalar function of one variable.

    Attributes:
        x: Independent variable samples.
        y: Observed dependent variable samples, same length as ``x``.
    """

    x: np.ndarray
    y: np.ndarray

    def __post_init__(self):
        x = _as_samples(self.x, "x")
        y = _as_samples(self.y, "y")
        if x.size != y.size:
            raise FitValidationError(
                "The data parameter elements must have the same size "
                f"(got {x.size} x values and {y.size} y values)"
            )
        # Read-only copies so the samples cannot change during a fit
        x, y = x.copy(), y.copy()
        x.flags.writeable = False
        y.flags.writeable = False
        object.__setattr__(self, "x", x)
        object.__setattr__(self, "y", y)

    @property
    def size(self) -> int:
        return self.x.size

    @property
    def y_min(self) -> float:
        return float(np.min(self.y))

    @property
    def y_max(self) -> float:
        return float(np.max(self.y))


def as_dataset(data) -> Dataset:
    """Build a :py:class:`Dataset` from a mapping or an object with ``x``/``y``.

    Accepted inputs are an existing ``Dataset``, a mapping with keys ``"x"``
    and ``"y"`` (e.g. ``{"x": [...], "y": [...]}``), or any object exposing
    ``x`` and ``y`` attributes.
    """
    if isinstance(data, Dataset):
        return data
    if data is None:
        raise FitValidationError("The data parameter is required")
    if isinstance(data, Mapping):
        x, y = data.get("x"), data.get("y")
    else:
        x, y = getattr(data, "x", None), getattr(data, "y", None)
    if x is None or y is None:
        raise FitValidationError("The data parameter must have x and y elements")
    return Dataset(x, y)
