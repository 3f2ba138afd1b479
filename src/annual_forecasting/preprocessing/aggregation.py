# stdlib
from typing import Dict, Iterable, List, Optional
# projectlib
from annual_forecasting.preprocessing.cleaning import to_number
from annual_forecasting.utils.typing import RawRows, Row

def find_year_key(columns: Iterable[str]) -> Optional[str]:
    """Return the first column named ``year`` in any letter case."""
    for column in columns:
        if column.lower() == "year":
            return column
    return None

def aggregate_by_year(
        raw_rows: RawRows,
        year_key: Optional[str] = None,
        *,
        exclude: Iterable[str] = ("id",),
    ) -> List[Row]:
    """
    Collapse rows sharing a year into one row of column sums.

    Only numeric cells contribute; text, blanks and booleans are
    ignored. Useful when a dataset holds several records per year (one
    per region or category, say) and the forecast should run on totals.

    Parameters
    ----------
    raw_rows : RawRows
        Raw records.
    year_key : Optional[str], default None
        Year column. If None, the first column called ``year``
        (case-insensitive) is used.
    exclude : Iterable[str], default ("id",)
        Columns never summed.

    Returns
    -------
    List[Row]
        One row per year, in ascending year order.

    Raises
    ------
    KeyError
        If no year column is given and none can be found.
    """
    if not raw_rows:
        return []
    if year_key is None:
        year_key = find_year_key(raw_rows[0].keys())
        if year_key is None:
            raise KeyError('No "year" column found in data.')
    skipped = {year_key, *exclude}
    groups: Dict[object, Row] = {}
    for raw in raw_rows:
        year = raw.get(year_key)
        if year is None:
            continue
        group = groups.setdefault(year, {year_key: year})
        for column, value in raw.items():
            if column in skipped:
                continue
            number = to_number(value)
            if isinstance(number, float):
                group[column] = group.get(column, 0.0) + number

    return sorted(groups.values(), key=lambda row: row[year_key])
