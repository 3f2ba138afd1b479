import polars as pl
import pytest

from annual_forecasting.data.loaders import load_rows
from annual_forecasting.preprocessing.aggregation import aggregate_by_year
from annual_forecasting.preprocessing.cleaning import clean


def test_load_rows_from_csv(tmp_path, emigrant_options):
    path = tmp_path / "emigrants.csv"
    path.write_text(
        "year,emigrants\n2018,100\n2019,\n2020,abc\n2021,130\n",
        encoding="utf-8",
    )
    rows = load_rows(path)
    assert rows[0] == {"year": "2018", "emigrants": "100"}
    assert rows[1]["emigrants"] is None
    result = clean(rows, emigrant_options)
    assert [r["year"] for r in result.rows] == [2018, 2021]
    assert result.discarded_count == 2


def test_load_rows_from_parquet(tmp_path):
    path = tmp_path / "emigrants.parquet"
    pl.DataFrame({"year": [2018, 2019], "emigrants": [1.5, 2.5]}).write_parquet(path)
    rows = load_rows(path, columns=["emigrants"])
    assert rows == [{"emigrants": 1.5}, {"emigrants": 2.5}]


def test_load_rows_rejects_unknown_extension(tmp_path):
    path = tmp_path / "emigrants.txt"
    path.write_text("year\n2018\n", encoding="utf-8")
    with pytest.raises(ValueError, match="Unsupported"):
        load_rows(path)


def test_load_rows_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_rows(tmp_path / "absent.csv")


def test_aggregate_by_year_sums_numeric_columns():
    rows = [
        {"id": 1, "Year": 2019, "male": 10, "female": "5", "region": "north"},
        {"id": 2, "Year": 2018, "male": 3, "female": 4, "region": "south"},
        {"id": 3, "Year": 2019, "male": 1, "female": None, "region": "south"},
    ]
    totals = aggregate_by_year(rows)
    assert totals == [
        {"Year": 2018, "male": 3.0, "female": 4.0},
        {"Year": 2019, "male": 11.0, "female": 5.0},
    ]


def test_aggregate_by_year_requires_year_column():
    with pytest.raises(KeyError):
        aggregate_by_year([{"period": 1, "value": 2}])
    assert aggregate_by_year([]) == []
