import pytest

from annual_forecasting.data.schemas import PreparationOptions
from annual_forecasting.preprocessing.normalization import normalize
from annual_forecasting.preprocessing.preparation import prepare_training_data
from annual_forecasting.preprocessing.sequences import (
    build_sequences,
    sort_by_year,
)
from annual_forecasting.utils.errors import (
    ConfigurationError,
    InsufficientDataError,
)


def test_sort_by_year_is_stable():
    rows = [
        {"year": 2020, "tag": "a"},
        {"year": 2019, "tag": "b"},
        {"year": 2020, "tag": "c"},
    ]
    ordered = sort_by_year(rows, "year")
    assert [r["tag"] for r in ordered] == ["b", "a", "c"]


@pytest.mark.parametrize("n, k", [(4, 3), (10, 3), (12, 1), (6, 5)])
def test_sequence_count(n, k):
    rows = [{"year": 2000 + i, "v": float(i), "w": 1.0} for i in range(n)]
    seqs = build_sequences(rows, k, ["v", "w"], "v")
    assert len(seqs) == n - k
    assert seqs.X.shape == (n - k, k, 2)
    assert seqs.y.shape == (n - k,)
    # Window i predicts row i + k
    assert seqs.y[0] == float(k)
    assert seqs.X[0, :, 0].tolist() == [float(j) for j in range(k)]


def test_too_few_rows_raises():
    rows = [{"year": 2000 + i, "v": 1.0} for i in range(3)]
    with pytest.raises(InsufficientDataError, match="Not enough rows"):
        build_sequences(rows, 3, ["v"], "v")


def test_emigrant_scenario_builds_one_pair(emigrant_rows):
    scaled = normalize(sort_by_year(emigrant_rows, "year"), ["emigrants"])
    seqs = build_sequences(scaled.normalized, 3, ["emigrants"], "emigrants")
    assert len(seqs) == 1
    assert seqs.X[0, :, 0].tolist() == pytest.approx([0.0, 1 / 3, 2 / 3])
    assert seqs.y[0] == pytest.approx(1.0)


def test_prepare_training_data_reports_discards(emigrant_options):
    rows = [
        {"year": 2021, "emigrants": 130},
        {"year": 2018, "emigrants": 100},
        {"emigrants": 90},
        {"year": 2019, "emigrants": "bad"},
        {"year": 2020, "emigrants": 120},
        {"year": 2017, "emigrants": 95},
    ]
    prepared = prepare_training_data(rows, emigrant_options, 2)
    assert prepared.summary.total_rows == 6
    assert prepared.summary.discarded_count == 2
    assert prepared.summary.issue_count == 2
    assert [r["year"] for r in prepared.rows] == [2017, 2018, 2020, 2021]
    assert prepared.window_years == [2020, 2021]
    assert len(prepared.sequences) == 2


def test_prepare_training_data_with_no_survivors(emigrant_options):
    rows = [{"year": None, "emigrants": 1}, {"year": 2019, "emigrants": -1}]
    with pytest.raises(InsufficientDataError, match="No rows survived"):
        prepare_training_data(rows, emigrant_options, 1)


def test_prepare_training_data_rejects_non_positive_lookback(
        emigrant_rows, emigrant_options):
    with pytest.raises(ConfigurationError):
        prepare_training_data(emigrant_rows, emigrant_options, 0)


def test_target_outside_features_is_scaled_too():
    options = PreparationOptions(
        year_key="year", target="emigrants", features=("population",)
    )
    rows = [
        {"year": 2000 + i, "population": 10.0 + i, "emigrants": 5.0 * i}
        for i in range(5)
    ]
    prepared = prepare_training_data(rows, options, 2)
    assert prepared.state.maxs["emigrants"] == 20.0
    assert prepared.sequences.X.shape == (3, 2, 1)
    assert prepared.sequences.y.tolist() == pytest.approx([0.5, 0.75, 1.0])


def test_narrow_required_fields_still_yield_numeric_windows():
    options = PreparationOptions(
        year_key="year",
        target="emigrants",
        features=("emigrants", "population"),
        required_fields=("year", "emigrants"),
    )
    rows = [
        {"year": 2018, "emigrants": 100, "population": "1,000"},
        {"year": 2019, "emigrants": 110, "population": "1,100"},
        {"year": 2020, "emigrants": 120, "population": None},
        {"year": 2021, "emigrants": 130, "population": "1,300"},
    ]
    prepared = prepare_training_data(rows, options, 2)
    assert prepared.summary.discarded_count == 1
    assert prepared.state.maxs["population"] == 1300.0
    assert prepared.sequences.X.shape == (1, 2, 2)
