# ruff: noqa: N802, N803, N806

import math

import numpy as np
import pytest
from scipy.optimize import curve_fit

from lmcurve import curve_model
from lmcurve.optimize import FitOptions, FitResult, FitStatus, fit, levenberg_marquardt


@curve_model
def line(x, a, b):
    return a * x + b


@curve_model
def decay(x, a, k):
    return a * np.exp(-k * x)


LINE_DATA = {"x": [0.0, 1.0, 2.0, 3.0], "y": [1.0, 3.0, 5.0, 7.0]}


class TestLM:
    """Test suite for the Levenberg-Marquardt curve fit."""

    def test_line(self):
        """Fit an exact line starting from the origin."""
        result = fit(
            LINE_DATA,
            line,
            damping=0.01,
            gradient_difference=0.01,
            initial_values=[0, 0],
            error_tolerance=1e-6,
            max_iterations=50,
        )

        assert isinstance(result, FitResult)
        assert result.success, f"Fit failed: {result.message}"
        assert result.status == FitStatus.CONVERGED
        assert np.allclose(result.parameter_values, [2.0, 1.0], atol=1e-5), (
            f"Solution {result.parameter_values} not close to expected [2.0, 1.0]"
        )
        assert result.parameter_error < 1e-6
        assert 0 < result.iterations < 10

    def test_alias(self):
        assert fit is levenberg_marquardt

    def test_start_at_solution(self):
        """Starting from an exact fit converges without iterating."""
        for damping in [1e-6, 1.0, 1e6]:
            result = fit(LINE_DATA, line, damping=damping, initial_values=[2, 1])
            assert result.status == FitStatus.CONVERGED
            assert result.iterations == 0
            assert result.history == []
            assert np.isclose(result.parameter_error, 0.0)
            assert np.array_equal(result.parameter_values, [2.0, 1.0])

    def test_default_initial_values(self):
        # Ones of length n_params
        seen = []
        result = fit(
            LINE_DATA,
            line,
            damping=0.01,
            max_iterations=1,
            on_iteration=lambda error, params: seen.append(params),
        )
        assert result.iterations == 1
        assert len(seen[0]) == 2

        # Starting point is (1, 1): error sqrt(0 + 1 + 4 + 9)
        result = fit(LINE_DATA, line, damping=0.01, max_iterations=0)
        assert np.array_equal(result.parameter_values, [1.0, 1.0])
        assert np.isclose(result.parameter_error, np.sqrt(14.0))

    def test_decay_matches_scipy(self):
        """Compare against scipy.optimize.curve_fit on a noise-free decay."""
        x = np.linspace(0, 4, 20)
        y = 3.0 * np.exp(-0.5 * x)

        result = fit(
            {"x": x, "y": y},
            decay,
            damping=1e-3,
            gradient_difference=1e-7,
            initial_values=[2.5, 0.6],
            error_tolerance=1e-8,
        )
        popt, _ = curve_fit(lambda x, a, k: a * np.exp(-k * x), x, y, p0=[2.5, 0.6])

        assert result.success, f"Fit failed: {result.message}"
        assert np.allclose(result.parameter_values, [3.0, 0.5], atol=1e-6)
        assert np.allclose(result.parameter_values, popt, atol=1e-6)

    def test_max_iterations(self):
        # Heavy damping makes the steps too small to converge
        result = fit(
            LINE_DATA,
            line,
            damping=1e6,
            initial_values=[0, 0],
            max_iterations=7,
        )
        assert result.status == FitStatus.MAX_ITERATIONS_REACHED
        assert not result.success
        assert result.iterations == 7
        assert len(result.history) == 7
        assert result.parameter_error > 0.01

    def test_zero_max_iterations(self):
        result = fit(LINE_DATA, line, damping=0.01, initial_values=[0, 0], max_iterations=0)
        assert result.status == FitStatus.MAX_ITERATIONS_REACHED
        assert result.iterations == 0
        assert np.array_equal(result.parameter_values, [0.0, 0.0])

    @pytest.mark.parametrize("max_iterations", [1, 3, 10, 25])
    def test_iterations_never_exceed_maximum(self, max_iterations):
        result = fit(
            LINE_DATA,
            line,
            damping=10.0,
            initial_values=[-3, 4],
            max_iterations=max_iterations,
            error_tolerance=1e-12,
        )
        assert result.iterations <= max_iterations

    def test_bounds(self):
        """Parameters are clamped into [min_values, max_values] every iteration."""
        result = fit(
            LINE_DATA,
            line,
            damping=0.01,
            initial_values=[0, 0],
            min_values=[-1.0, -1.0],
            max_values=[1.5, 10.0],
            max_iterations=10,
        )
        lower, upper = np.array([-1.0, -1.0]), np.array([1.5, 10.0])

        assert np.all(result.parameter_values >= lower)
        assert np.all(result.parameter_values <= upper)
        for record in result.history:
            assert np.all(record["x"] >= lower)
            assert np.all(record["x"] <= upper)

        # The slope is held at its upper bound
        assert np.isclose(result.parameter_values[0], 1.5)
        assert result.status == FitStatus.MAX_ITERATIONS_REACHED

    def test_bounds_hold_solution(self):
        # Bounds that contain the solution do not prevent convergence
        result = fit(
            LINE_DATA,
            line,
            damping=0.01,
            initial_values=[0, 0],
            min_values=[0.0, 0.0],
            max_values=[5.0, 5.0],
            error_tolerance=1e-6,
        )
        assert result.success
        assert np.allclose(result.parameter_values, [2.0, 1.0], atol=1e-5)

    def test_stops_at_tolerance(self):
        """The loop stops at the first iteration whose error meets the tolerance."""
        errors = []
        tol = 1e-3
        result = fit(
            LINE_DATA,
            line,
            damping=1.0,
            initial_values=[0, 0],
            error_tolerance=tol,
            on_iteration=lambda error, params: errors.append(error),
        )
        assert result.success
        assert len(errors) == result.iterations
        assert errors[-1] <= tol
        assert all(e > tol for e in errors[:-1])
        assert result.parameter_error == errors[-1]

    def test_error_decreases_on_linear_problem(self):
        errors = []
        fit(
            LINE_DATA,
            line,
            damping=0.5,
            initial_values=[0, 0],
            error_tolerance=1e-6,
            on_iteration=lambda error, params: errors.append(error),
        )
        assert all(e2 < e1 for e1, e2 in zip(errors, errors[1:]))

    def test_divergence_returns_nan_state(self):
        """A NaN error stops the fit and is returned as-is."""

        def model(params):
            if params[0] >= 1.5:
                return lambda x: np.nan
            return lambda x: params[0] * x

        data = {"x": [1.0, 2.0, 3.0], "y": [2.0, 4.0, 6.0]}
        result = fit(data, model, damping=0.01, initial_values=[1.0])

        assert result.status == FitStatus.DIVERGED
        assert not result.success
        assert np.isnan(result.parameter_error)
        assert result.iterations == 0
        assert result.history == []
        # The NaN-producing parameters are not replaced by the last good ones
        assert result.parameter_values[0] > 1.5

    def test_divergence_after_iterations(self):
        calls = []

        def model(params):
            return lambda x: params[0] * x

        def observer(error, params):
            calls.append(error)

        # Finite for two iterations, then NaN
        def failing(params):
            if len(calls) >= 2:
                return lambda x: np.nan
            return model(params)

        data = {"x": [1.0, 2.0, 3.0], "y": [2.0, 4.0, 6.0]}
        result = fit(
            data,
            failing,
            damping=100.0,
            initial_values=[1.0],
            error_tolerance=1e-12,
            on_iteration=observer,
        )
        assert result.status == FitStatus.DIVERGED
        assert result.iterations == 2
        assert len(result.history) == 2
        assert np.all(np.isnan(result.parameter_values))

    def test_nan_initial_error(self):
        def model(params):
            return lambda x: np.nan

        result = fit(LINE_DATA, model, damping=0.01, initial_values=[1.0])
        assert result.status == FitStatus.DIVERGED
        assert result.iterations == 0
        assert np.array_equal(result.parameter_values, [1.0])

    def test_overflow_in_model_diverges(self):
        # math.exp raises OverflowError instead of returning inf
        @curve_model
        def grow(x, k):
            return math.exp(k * x * 100)

        data = {"x": [1.0, 2.0, 3.0], "y": [1.0, 2.0, 3.0]}
        result = fit(data, grow, damping=0.01, initial_values=[3.0])
        assert result.status == FitStatus.DIVERGED
        assert result.iterations == 0
        assert np.isnan(result.parameter_error)

    def test_overflow_after_step_diverges(self):
        # A large step pushes the exponent out of range on the first iteration
        @curve_model
        def grow(x, k):
            return math.exp(k * x)

        data = {"x": [1.0, 2.0, 3.0], "y": [0.0, 0.0, 1e300]}
        result = fit(data, grow, damping=1e-6, initial_values=[1.0])
        assert result.status == FitStatus.DIVERGED
        assert result.iterations == 0
        assert result.history == []

    def test_observer_gets_read_only_copy(self):
        seen = []

        def observer(error, params):
            seen.append(params)
            with pytest.raises(ValueError):
                params[0] = 100.0

        result = fit(
            LINE_DATA,
            line,
            damping=0.01,
            initial_values=[0, 0],
            error_tolerance=1e-6,
            on_iteration=observer,
        )
        assert len(seen) == result.iterations
        assert np.allclose(seen[-1], result.parameter_values)
        assert seen[-1] is not result.parameter_values

    def test_options_forms(self):
        """Options may be passed as FitOptions, a dict, camelCase keys or kwargs."""
        expected = fit(
            LINE_DATA, line, damping=0.1, gradient_difference=0.01,
            initial_values=[0, 0], max_iterations=3,
        )

        options = FitOptions(
            damping=0.1, gradient_difference=0.01, initial_values=[0, 0], max_iterations=3
        )
        camel = {
            "damping": 0.1,
            "gradientDifference": 0.01,
            "initialValues": [0, 0],
            "maxIterations": 3,
        }
        for result in [
            fit(LINE_DATA, line, options),
            fit(LINE_DATA, line, camel),
            fit(LINE_DATA, line, {"damping": 5.0, "max_iterations": 3},
                damping=0.1, gradient_difference=0.01, initial_values=[0, 0]),
        ]:
            assert result.iterations == expected.iterations
            assert np.allclose(result.parameter_values, expected.parameter_values)

    def test_plain_callable_model(self):
        def model(params):
            a, b = params
            return lambda x: a * x + b

        result = fit(
            LINE_DATA, model, damping=0.01, initial_values=np.zeros(2), error_tolerance=1e-6
        )
        assert result.success
        assert np.allclose(result.parameter_values, [2.0, 1.0], atol=1e-5)

    def test_parameter_count_from_bounds(self):
        def model(params):
            a, b = params
            return lambda x: a * x + b

        result = fit(
            LINE_DATA, model, damping=0.01, min_values=[-10, -10], max_values=[10, 10],
            max_iterations=0,
        )
        assert np.array_equal(result.parameter_values, [1.0, 1.0])

    def test_does_not_modify_inputs(self):
        x = np.array([0.0, 1.0, 2.0, 3.0])
        y = np.array([1.0, 3.0, 5.0, 7.0])
        initial = [0.0, 0.0]
        fit({"x": x, "y": y}, line, damping=0.01, initial_values=initial)
        assert np.array_equal(x, [0, 1, 2, 3])
        assert np.array_equal(y, [1, 3, 5, 7])
        assert initial == [0.0, 0.0]

    def test_independent_fits(self):
        # Each fit uses its own options and parameter vector
        r1 = fit(LINE_DATA, line, damping=0.01, initial_values=[0, 0], max_iterations=2)
        r2 = fit(LINE_DATA, line, damping=0.01, initial_values=[0, 0], max_iterations=2)
        assert r1.parameter_values is not r2.parameter_values
        assert np.array_equal(r1.parameter_values, r2.parameter_values)

    def test_progress_output(self, capsys):
        fit(
            LINE_DATA,
            line,
            damping=0.01,
            initial_values=[0, 0],
            error_tolerance=1e-6,
            nprint=1,
        )
        out = capsys.readouterr().out
        assert "Iteration" in out
        assert FitStatus.CONVERGED.message in out

    def test_no_output_by_default(self, capsys):
        fit(LINE_DATA, line, damping=0.01, initial_values=[0, 0])
        assert capsys.readouterr().out == ""


class TestFitStatus:
    def test_success(self):
        assert FitStatus.CONVERGED.success
        assert not FitStatus.MAX_ITERATIONS_REACHED.success
        assert not FitStatus.DIVERGED.success
        assert not FitStatus.RUNNING.success

    def test_messages(self):
        for status in FitStatus:
            assert status.message != "Unknown status"
        assert "error_tolerance" in FitStatus.CONVERGED.message
        assert "max_iterations" in FitStatus.MAX_ITERATIONS_REACHED.message
