import math

import pytest

from annual_forecasting.evaluation.metrics import Metrics
from annual_forecasting.forecasting.carry_forward import (
    CarryForwardPolicy,
    default_policy,
    hold_last,
    linear_extrapolation,
    use_prediction,
)
from annual_forecasting.forecasting.forecaster import forecast
from annual_forecasting.models.config import default_config
from annual_forecasting.training.session import Metadata
from annual_forecasting.utils.errors import (
    ConfigurationError,
    ModelUnavailableError,
)


def make_metadata(features=("emigrants", "population", "unemployment")):
    window = (
        {"year": 2019, "emigrants": 110.0, "population": 100.0, "unemployment": 5.0},
        {"year": 2020, "emigrants": 120.0, "population": 102.0, "unemployment": 6.0},
        {"year": 2021, "emigrants": 130.0, "population": 106.0, "unemployment": 4.0},
    )
    return Metadata(
        model_family=default_config("lstm", 3).family,
        lookback=3,
        features=tuple(features),
        target="emigrants",
        year_key="year",
        mins={"emigrants": 100.0, "population": 100.0, "unemployment": 4.0},
        maxs={"emigrants": 200.0, "population": 110.0, "unemployment": 6.0},
        last_year=2021,
        last_window=window,
        metrics=Metrics(mae=1.0, rmse=1.0, mape=1.0, r2=0.9, accuracy=99.0),
        trained_at="2024-01-01T00:00:00+00:00",
        preparation={"issue_count": 0, "discarded_count": 0, "total_rows": 3},
        hyperparameters=default_config("lstm", 3),
    )


class RecordingPredictor(object):
    """Returns a fixed normalized value and records every input window."""

    def __init__(self, value=0.5):
        self.value = value
        self.windows = []

    def __call__(self, model, X):
        self.windows.append(X.copy())
        return [self.value]


def test_forecast_rows_are_ordered_and_flagged():
    predictor = RecordingPredictor(0.5)
    rows = forecast(object(), make_metadata(), 4, predictor)
    assert [r["year"] for r in rows] == [2022, 2023, 2024, 2025]
    assert all(r["is_forecast"] is True for r in rows)
    # 0.5 on a 100..200 scale
    assert all(r["emigrants"] == 150 for r in rows)
    assert isinstance(rows[0]["emigrants"], int)


def test_carry_forward_policy_is_applied():
    predictor = RecordingPredictor(0.5)
    rows = forecast(object(), make_metadata(), 2, predictor)
    # Population grows by (106 - 100) / 2 = 3 per year
    assert rows[0]["population"] == 109.0
    # Next window is 102, 106, 109: rate 3.5
    assert rows[1]["population"] == 112.5
    assert "unemployment" not in rows[0]
    second = predictor.windows[1][0]
    assert second.shape == (3, 3)
    # Last row of the second window: predicted target, held unemployment
    assert second[-1, 0] == pytest.approx(0.5)
    assert second[-1, 1] == pytest.approx(0.9)
    assert second[-1, 2] == pytest.approx(0.0)


def test_seed_window_is_normalized_with_training_extremes():
    predictor = RecordingPredictor()
    forecast(object(), make_metadata(), 1, predictor)
    first = predictor.windows[0]
    assert first.shape == (1, 3, 3)
    assert first[0, :, 0].tolist() == pytest.approx([0.1, 0.2, 0.3])


def test_decimals_and_custom_policy():
    policy = CarryForwardPolicy(
        strategies={"emigrants": use_prediction},
        default=hold_last,
        reported=frozenset({"unemployment"}),
    )
    rows = forecast(
        object(),
        make_metadata(),
        1,
        RecordingPredictor(0.123456),
        policy=policy,
        decimals=2,
    )
    assert rows[0]["emigrants"] == 112.35
    assert rows[0]["unemployment"] == 4.0
    assert "population" not in rows[0]


def test_default_policy_without_population():
    policy = default_policy("emigrants", ["emigrants", "gdp"])
    assert policy.reported == frozenset()
    window = [{"gdp": 1.0}, {"gdp": 3.0}]
    assert policy.next_value("gdp", window, 9.0) == 3.0
    assert policy.next_value("emigrants", window, 9.0) == 9.0


def test_linear_extrapolation_edge_cases():
    assert linear_extrapolation("p", [{"p": 5.0}], 0.0) == 5.0
    assert linear_extrapolation("p", [{"p": None}, {"p": 4.0}], 0.0) == 8.0


def test_forecast_requires_model_and_metadata():
    with pytest.raises(ModelUnavailableError):
        forecast(None, make_metadata(), 1, RecordingPredictor())
    with pytest.raises(ModelUnavailableError):
        forecast(object(), None, 1, RecordingPredictor())


def test_forecast_rejects_non_positive_horizon():
    with pytest.raises(ConfigurationError):
        forecast(object(), make_metadata(), 0, RecordingPredictor())


def test_forecast_values_are_finite_for_extreme_predictions():
    rows = forecast(object(), make_metadata(), 3, RecordingPredictor(1.7))
    assert all(math.isfinite(r["emigrants"]) for r in rows)
    assert rows[0]["emigrants"] == 270
