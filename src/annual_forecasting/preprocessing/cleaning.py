# stdlib
import math
from decimal import Decimal
from numbers import Real
from typing import Any, List, Optional, Tuple, Union
# projectlib
from annual_forecasting.data.schemas import (
    CleaningResult,
    Issue,
    IssueType,
    PreparationOptions,
)
from annual_forecasting.utils.typing import RawRows, Row

_MISSING = object()

def to_number(value: Any) -> Union[float, object, None]:
    """
    Coerce a raw cell to a finite float.

    Returns
    -------
    float | _MISSING | None
        The parsed number, the ``_MISSING`` sentinel for absent or blank
        cells, or None when the cell is present but not numeric.

    Notes
    -----
    ``Decimal`` cells (Parquet decimal columns) are accepted like floats.
    Booleans are rejected even though ``bool`` subclasses ``int``, and
    NaN/inf are treated as non-numeric except that a float NaN (the way
    tabular readers encode empty cells) counts as missing.
    """
    if value is None:
        return _MISSING
    if isinstance(value, bool):
        return None
    if isinstance(value, (Real, Decimal)):
        try:
            number = float(value)
        except ValueError:
            # Signalling NaN decimals refuse conversion
            return None
        if math.isnan(number):
            return _MISSING
        return number if math.isfinite(number) else None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return _MISSING
        try:
            number = float(text.replace(",", ""))
        except ValueError:
            return None
        return number if math.isfinite(number) else None
    return None

def _check_field(
        value: Any,
        field: str,
        options: PreparationOptions,
    ) -> Tuple[Optional[float], Optional[IssueType]]:
    """Validate one field, returning the number or the issue found."""
    number = to_number(value)
    if number is _MISSING:
        return None, IssueType.MISSING
    if number is None:
        return None, IssueType.NON_NUMERIC
    assert isinstance(number, float)
    if number < 0 and field not in options.allow_negative:
        return None, IssueType.NEGATIVE_DISALLOWED
    return number, None

def _as_year(value: float) -> Union[int, float]:
    return int(value) if value.is_integer() else value

def clean(raw_rows: RawRows, options: PreparationOptions) -> CleaningResult:
    """
    Validate and repair raw rows.

    Every field in the options' required fields is checked on every
    row and every problem is recorded, not just the first one per row.
    With ``drop_invalid`` a row with any issue is discarded; otherwise
    invalid fields are replaced with their configured default. The year
    key is never defaulted: a row without a valid year is always
    discarded.

    Parameters
    ----------
    raw_rows : RawRows
        Ordered raw records.
    options : PreparationOptions
        Field roles and repair policy.

    Returns
    -------
    CleaningResult
        Surviving rows (required fields coerced to numbers), the ordered
        issue log and the number of discarded rows. ``discarded_count +
        len(rows) == len(raw_rows)`` always holds.
    """
    fields = options.effective_required_fields
    rows: List[Row] = []
    issues: List[Issue] = []
    discarded = 0
    for index, raw in enumerate(raw_rows):
        cleaned: Row = dict(raw)
        row_issues: List[Issue] = []
        year_invalid = False
        for name in fields:
            number, issue = _check_field(
                raw.get(name, None), name, options
            )
            if issue is not None:
                row_issues.append(Issue(index, name, issue))
                if name == options.year_key:
                    year_invalid = True
                else:
                    cleaned[name] = options.default_for(name)
            elif name == options.year_key:
                assert number is not None
                cleaned[name] = _as_year(number)
            else:
                cleaned[name] = number
        issues.extend(row_issues)
        # Drop if the year is unusable or the policy rejects any issue
        if year_invalid or (options.drop_invalid and row_issues):
            discarded += 1
            continue
        rows.append(cleaned)

    return CleaningResult(rows=rows, issues=issues, discarded_count=discarded)
