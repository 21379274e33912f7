"""Exceptions raised by lmcurve"""

__all__ = ["FitValidationError"]


class FitValidationError(ValueError):
    """Invalid data, model, or options passed to a fit.

    Raised before any iteration is performed. Numerical failures during the
    iteration (NaN error, singular systems) are reported in the fit result
    instead of being raised.
    """
