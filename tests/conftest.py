import pytest

from annual_forecasting.data.schemas import PreparationOptions


@pytest.fixture
def emigrant_rows():
    return [
        {"year": 2018, "emigrants": 100},
        {"year": 2019, "emigrants": 110},
        {"year": 2020, "emigrants": 120},
        {"year": 2021, "emigrants": 130},
    ]


@pytest.fixture
def emigrant_options():
    return PreparationOptions(
        year_key="year",
        target="emigrants",
        features=("emigrants",),
    )


@pytest.fixture
def yearly_rows():
    # Twelve years with a growing population and a noise-free target
    return [
        {
            "year": 2010 + i,
            "emigrants": 1000 + 50 * i,
            "population": 90.0 + 1.5 * i,
            "unemployment": 7.0 - 0.1 * i,
        }
        for i in range(12)
    ]
