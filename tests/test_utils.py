"""
Tests for the numeric kernel, diagnostics, exceptions and logging helpers.
"""

from unittest.mock import Mock

import numpy as np
import pytest

from agriforecast.utils.exceptions import (
    ConfigurationError,
    ForecastingError,
    InsufficientDataError,
    InvalidFeatureError,
    NotFittedError,
    PredictionError,
    classify_error,
    create_error_response,
    log_exception,
)
from agriforecast.utils.helpers import day_offset_date, ensure_datetime, safe_divide
from agriforecast.utils.logger import (
    LogFormat,
    LoggerMixin,
    configure_logging,
    get_logger,
    get_model_logger,
    timed_operation,
)
from agriforecast.utils.metrics import MathKernel, evaluate_predictions
from agriforecast.utils.time_series import autocorrelation, decompose, detect_anomalies


class TestMathKernel:

    def test_error_metrics(self):
        predicted = [1.0, 2.0, 3.0]
        actual = [1.0, 2.0, 5.0]

        assert MathKernel.mse(predicted, actual) == pytest.approx(4.0 / 3)
        assert MathKernel.mae(predicted, actual) == pytest.approx(2.0 / 3)
        assert MathKernel.rmse(predicted, actual) == pytest.approx(np.sqrt(4.0 / 3))

    def test_length_mismatch(self):
        with pytest.raises(ValueError):
            MathKernel.mse([1.0, 2.0], [1.0])

    def test_correlation(self):
        assert MathKernel.correlation([1, 2, 3], [2, 4, 6]) == pytest.approx(1.0)
        assert MathKernel.correlation([1, 2, 3], [3, 2, 1]) == pytest.approx(-1.0)
        assert MathKernel.correlation([1, 1, 1], [1, 2, 3]) == 0.0

    def test_r_squared(self):
        assert MathKernel.r_squared([1, 2, 3], [1, 2, 3]) == pytest.approx(1.0)
        assert MathKernel.r_squared([2, 2, 2], [1, 2, 3]) == pytest.approx(0.0)
        assert MathKernel.r_squared([1, 2, 3], [5, 5, 5]) == 1.0

    def test_activations(self):
        np.testing.assert_array_equal(MathKernel.relu(np.array([-1.0, 0.0, 2.0])), [0.0, 0.0, 2.0])
        np.testing.assert_array_equal(MathKernel.relu_derivative(np.array([-1.0, 0.0, 2.0])), [0.0, 0.0, 1.0])
        assert MathKernel.sigmoid(0.0) == pytest.approx(0.5)
        assert MathKernel.softmax([1.0, 1.0]).tolist() == pytest.approx([0.5, 0.5])

    def test_linear_trend(self):
        assert MathKernel.linear_trend([4, 5, 6, 7, 8, 9, 10]) == pytest.approx(6 / 7)
        assert MathKernel.linear_trend([5.0]) == 0.0

    def test_clamp(self):
        assert MathKernel.clamp(1.2, 0.5, 0.99) == 0.99
        assert MathKernel.clamp(0.1, 0.5, 0.99) == 0.5

    def test_evaluate_predictions(self):
        evaluation = evaluate_predictions([3, 2, 1], [1, 2, 3])

        assert evaluation.correlation == pytest.approx(-1.0)
        assert evaluation.accuracy == 0.0
        assert evaluation.samples == 3
        assert set(evaluation.to_dict()) >= {'mse', 'mae', 'rmse', 'r_squared'}


class TestTimeSeriesDiagnostics:

    def test_decompose_reconstructs(self):
        days = np.arange(48)
        values = 0.5 * days + 3 * np.sin(2 * np.pi * days / 12)

        parts = decompose(values, season_length=12)

        assert parts.trend.shape == values.shape
        np.testing.assert_allclose(parts.trend + parts.seasonal + parts.residual, values)

    def test_decompose_empty(self):
        assert decompose([]).trend.size == 0

    def test_autocorrelation(self):
        values = np.sin(np.arange(50) / 3.0)
        acf = autocorrelation(values, max_lag=5)

        assert len(acf) == 6
        assert acf[0] == pytest.approx(1.0)
        assert autocorrelation([2.0] * 10, max_lag=3) == [0.0] * 4

    def test_detect_anomalies(self):
        values = [10.0] * 20 + [50.0] + [10.0] * 20
        assert detect_anomalies(values, threshold=2.0) == [20]
        assert detect_anomalies([5.0] * 10) == []


class TestHelpers:

    def test_safe_divide(self):
        assert safe_divide(1.0, 0.0) == 0.0
        assert safe_divide(1.0, 4.0) == 0.25

    def test_day_offset_date(self):
        start = ensure_datetime("2024-12-30")
        assert day_offset_date(start, 3).isoformat() == "2025-01-02"
        assert day_offset_date(None, 3) is None

    def test_ensure_datetime_rejects_unknown(self):
        with pytest.raises(ValueError):
            ensure_datetime(12345)


class TestExceptions:

    def test_insufficient_data(self):
        error = InsufficientDataError(required=14, actual=0)

        assert error.required == 14
        assert error.actual == 0
        assert error.to_dict()['error_code'] == "INSUFFICIENT_DATA"
        assert "required 14" in str(error)

    def test_original_exception_recorded(self):
        cause = ValueError("inner")
        error = PredictionError("outer", predictor="ar", original_exception=cause)

        assert error.details['original_type'] == "ValueError"
        assert error.details['predictor'] == "ar"

    def test_hierarchy(self):
        for error in (NotFittedError(), InvalidFeatureError("x"), ConfigurationError("x")):
            assert isinstance(error, ForecastingError)

    @pytest.mark.parametrize("error, kind", [
        (NotFittedError(), "not_fitted"),
        (InsufficientDataError(5, 1), "insufficient_data"),
        (InvalidFeatureError("x"), "invalid_feature"),
        (FloatingPointError("x"), "numerical_instability"),
        (ZeroDivisionError(), "numerical_instability"),
        (ConfigurationError("x"), "configuration_error"),
        (KeyError("x"), "unexpected"),
    ])
    def test_classify_error(self, error, kind):
        assert classify_error(error) == kind

    def test_error_response(self):
        response = create_error_response(NotFittedError(component="nn"))

        assert response['success'] is False
        assert response['error']['code'] == "NOT_FITTED"
        assert response['error']['details'] == {'component': 'nn'}

    def test_log_exception(self):
        logger = Mock()
        log_exception(logger, InvalidFeatureError("bad", indices=[2]), {'predictor': 'nn'})

        _, kwargs = logger.error.call_args
        assert kwargs['error_code'] == "INVALID_FEATURE"
        assert kwargs['predictor'] == "nn"


class TestLogging:

    def test_configure_and_get_logger(self, tmp_path):
        log_file = tmp_path / "logs" / "agriforecast.log"
        configure_logging(format_type=LogFormat.TEXT, log_file=log_file, force=True)

        get_logger("tests").info("hello", value=1)

        assert log_file.exists()

    def test_model_logger_binds_context(self):
        logger = get_model_logger("weather", "autoregressive", "train")
        logger.info("bound")

    def test_logger_mixin(self):
        class Component(LoggerMixin):
            pass

        component = Component()
        component.set_log_context(domain="soil")
        first = component.logger
        component.set_log_context(stage="train")

        assert component.logger is not first
        assert component._log_context == {'domain': 'soil', 'stage': 'train'}

    def test_timed_operation(self):
        @timed_operation("double")
        def double(x):
            return 2 * x

        @timed_operation()
        def explode():
            raise RuntimeError("boom")

        assert double(4) == 8
        with pytest.raises(RuntimeError):
            explode()
