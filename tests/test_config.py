import pytest

from annual_forecasting.config.env import fetch_var, fetch_verbosity
from annual_forecasting.data.schemas import ModelFamilyName
from annual_forecasting.models.config import ModelConfig, default_config
from annual_forecasting.models.families import FAMILIES, get_family
from annual_forecasting.utils.errors import ConfigurationError


@pytest.mark.parametrize(
    "tag, expected",
    [
        ("lstm", ModelFamilyName.SEQUENCE_MEMORY),
        ("MLP", ModelFamilyName.FEED_FORWARD),
        ("sequence-memory", ModelFamilyName.SEQUENCE_MEMORY),
        ("feed-forward", ModelFamilyName.FEED_FORWARD),
    ],
)
def test_family_tags_and_aliases(tag, expected):
    assert ModelFamilyName.parse(tag) is expected
    assert get_family(tag) is FAMILIES[expected]


def test_unknown_family():
    with pytest.raises(ConfigurationError, match="Unknown model family"):
        get_family("gru")


def test_default_configs():
    lstm = default_config("lstm", 4).validate()
    assert lstm.layer_units == (60, 60)
    assert lstm.dropout == 0.1
    mlp = default_config("mlp", 4).validate()
    assert mlp.layer_units == (64, 32)
    assert mlp.activation == "relu"


@pytest.mark.parametrize(
    "changes",
    [
        {"lookback": 0},
        {"lookback": 21},
        {"epochs": 0},
        {"layer_units": ()},
        {"dropout": 1.0},
        {"learning_rate": 0.0},
        {"validation_split": 1.0},
        {"activation": "softmax"},
    ],
)
def test_invalid_model_configs(changes):
    config = default_config("mlp", 3).with_updates(**changes)
    with pytest.raises(ConfigurationError):
        config.validate()


def test_model_config_round_trip():
    config = default_config("lstm", 5).with_updates(id="x", label="X")
    assert ModelConfig.from_dict(config.to_dict()) == config


def test_fetch_var(monkeypatch):
    monkeypatch.setenv("FORECAST_TEST_VAR", "  value ")
    assert fetch_var("FORECAST_TEST_VAR") == "value"
    monkeypatch.delenv("FORECAST_TEST_VAR")
    assert fetch_var("FORECAST_TEST_VAR", "fallback") == "fallback"
    with pytest.raises(RuntimeError, match="not set"):
        fetch_var("FORECAST_TEST_VAR")
    monkeypatch.setenv("FORECAST_TEST_VAR", "   ")
    with pytest.raises(RuntimeError, match="empty"):
        fetch_var("FORECAST_TEST_VAR")


def test_fetch_verbosity(monkeypatch):
    monkeypatch.setenv("FORECAST_TEST_VERBOSITY", "2")
    assert fetch_verbosity("FORECAST_TEST_VERBOSITY") == 2
    monkeypatch.setenv("FORECAST_TEST_VERBOSITY", "7")
    with pytest.raises(RuntimeError):
        fetch_verbosity("FORECAST_TEST_VERBOSITY")
