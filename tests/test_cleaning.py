import math
from decimal import Decimal

import pytest

from annual_forecasting.data.schemas import IssueType, PreparationOptions
from annual_forecasting.preprocessing.cleaning import clean, to_number
from annual_forecasting.utils.errors import ConfigurationError


def _options(**overrides):
    params = dict(
        year_key="year",
        target="emigrants",
        features=("emigrants", "population"),
    )
    params.update(overrides)
    return PreparationOptions(**params)


def test_clean_coerces_numeric_strings(emigrant_options):
    rows = [{"year": "2018", "emigrants": " 1,200 "}]
    result = clean(rows, emigrant_options)
    assert result.rows == [{"year": 2018, "emigrants": 1200.0}]
    assert result.issues == []
    assert result.discarded_count == 0


def test_clean_enumerates_every_issue_in_a_row():
    rows = [{"year": 2018, "emigrants": "abc", "population": -5}]
    result = clean(rows, _options())
    kinds = [(i.field, i.type) for i in result.issues]
    assert kinds == [
        ("emigrants", IssueType.NON_NUMERIC),
        ("population", IssueType.NEGATIVE_DISALLOWED),
    ]
    assert result.rows == []
    assert result.discarded_count == 1


def test_missing_values_are_reported_as_missing():
    rows = [
        {"year": 2018, "emigrants": None, "population": ""},
        {"year": 2019, "emigrants": float("nan"), "population": 3},
        {"year": 2020},
    ]
    result = clean(rows, _options())
    assert all(
        i.type is IssueType.MISSING
        for i in result.issues
    )
    assert len(result.issues) == 5


def test_drop_invalid_conserves_row_count():
    rows = [
        {"year": 2018, "emigrants": 10, "population": 1},
        {"year": 2019, "emigrants": "x", "population": 1},
        {"year": None, "emigrants": 12, "population": 1},
        {"year": 2021, "emigrants": 13, "population": -1},
        {"year": 2022, "emigrants": 14, "population": 2},
    ]
    result = clean(rows, _options())
    assert len(result.rows) + result.discarded_count == len(rows)
    assert [r["year"] for r in result.rows] == [2018, 2022]


def test_repair_mode_uses_feature_defaults():
    options = _options(
        drop_invalid=False,
        feature_defaults={"population": 42},
    )
    rows = [{"year": 2018, "emigrants": "n/a", "population": None}]
    result = clean(rows, options)
    assert result.discarded_count == 0
    assert result.rows[0]["emigrants"] == 0.0
    assert result.rows[0]["population"] == 42.0
    assert len(result.issues) == 2


@pytest.mark.parametrize("drop_invalid", [True, False])
def test_row_without_year_is_always_discarded(drop_invalid):
    options = _options(drop_invalid=drop_invalid)
    rows = [
        {"emigrants": 10, "population": 1},
        {"year": 2019, "emigrants": 11, "population": 1},
    ]
    result = clean(rows, options)
    assert [r["year"] for r in result.rows] == [2019]
    assert result.discarded_count == 1
    assert result.issues[0].field == "year"
    assert result.issues[0].row_index == 0


def test_allow_negative_accepts_listed_fields():
    options = _options(allow_negative=("population",))
    rows = [{"year": 2018, "emigrants": 10, "population": -3}]
    result = clean(rows, options)
    assert result.rows[0]["population"] == -3.0
    assert result.issues == []


def test_target_outside_features_is_required():
    options = PreparationOptions(
        year_key="year", target="emigrants", features=("population",)
    )
    result = clean([{"year": 2018, "population": 5}], options)
    assert result.rows == []
    assert result.issues[0].field == "emigrants"


def test_to_number_rejects_booleans_and_infinity():
    assert to_number(True) is None
    assert to_number("inf") is None
    assert to_number(3) == 3.0
    assert math.isclose(to_number("2.5"), 2.5)


def test_options_reject_bad_feature_lists():
    with pytest.raises(ConfigurationError):
        _options(features=())
    with pytest.raises(ConfigurationError):
        _options(features=("emigrants", "emigrants"))
    with pytest.raises(ConfigurationError):
        _options(features=("year", "emigrants"))


def test_features_left_out_of_required_fields_are_still_validated():
    options = _options(required_fields=("year", "emigrants"))
    assert options.effective_required_fields == (
        "year", "emigrants", "population",
    )
    rows = [
        {"year": 2018, "emigrants": 10, "population": "1,000"},
        {"year": 2019, "emigrants": 11, "population": None},
    ]
    result = clean(rows, options)
    assert result.rows == [{"year": 2018, "emigrants": 10.0, "population": 1000.0}]
    assert [(i.row_index, i.field, i.type) for i in result.issues] == [
        (1, "population", IssueType.MISSING),
    ]


def test_decimal_cells_are_numeric():
    rows = [
        {"year": Decimal("2018"), "emigrants": Decimal("1200.50"),
         "population": Decimal("3")},
        {"year": 2019, "emigrants": Decimal("NaN"), "population": 4},
    ]
    result = clean(rows, _options())
    assert result.rows == [
        {"year": 2018, "emigrants": 1200.5, "population": 3.0},
    ]
    assert isinstance(result.rows[0]["year"], int)
    assert result.issues[0].type is IssueType.MISSING
