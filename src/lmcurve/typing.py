from typing import Any, Callable, TypeAlias

from numpy.typing import ArrayLike, NDArray

# A fitted curve maps a single sample of the independent variable to a
# prediction of the dependent variable.
Curve: TypeAlias = Callable[[float], float]

# A model builds a curve from a parameter vector.
Model: TypeAlias = Callable[[NDArray], Curve]

# Per-iteration observer receiving (error, parameters)
IterationCallback: TypeAlias = Callable[[float, NDArray], Any]

__all__ = [
    "ArrayLike",
    "NDArray",
    "Curve",
    "Model",
    "IterationCallback",
]
