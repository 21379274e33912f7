from . import error, struct
from .error import FitValidationError
from .model import CurveModel, ParameterizedModel, curve_model
from .optimize import (
    Dataset,
    FitOptions,
    FitResult,
    FitStatus,
    fit,
    levenberg_marquardt,
)

__version__ = "0.1.0"

__all__ = [
    "error",
    "struct",
    "optimize",
    "fit",
    "levenberg_marquardt",
    "FitResult",
    "FitStatus",
    "FitOptions",
    "FitValidationError",
    "Dataset",
    "curve_model",
    "CurveModel",
    "ParameterizedModel",
]
