# stdlib
from dataclasses import dataclass
from typing import Dict, List, Optional
# projectlib
from annual_forecasting.data.schemas import Issue, PreparationOptions
from annual_forecasting.preprocessing.cleaning import clean
from annual_forecasting.preprocessing.normalization import (
    NormalizationState,
    normalize,
)
from annual_forecasting.preprocessing.sequences import (
    SequenceSet,
    build_sequences,
    sort_by_year,
)
from annual_forecasting.utils.errors import (
    ConfigurationError,
    InsufficientDataError,
)
from annual_forecasting.utils.logging import Logger
from annual_forecasting.utils.typing import RawRows, Row

@dataclass(frozen=True)
class PreparationSummary(object):
    """Row accounting reported with every training result."""
    total_rows: int
    cleaned_rows: int
    discarded_count: int
    issues: List[Issue]

    @property
    def issue_count(self) -> int:
        return len(self.issues)

    def to_dict(self) -> Dict[str, int]:
        return {
            "issue_count": self.issue_count,
            "discarded_count": self.discarded_count,
            "total_rows": self.total_rows,
        }

@dataclass(frozen=True)
class PreparedData(object):
    """Everything derived from raw rows for one lookback."""
    options: PreparationOptions
    lookback: int
    rows: List[Row]
    normalized: List[Row]
    state: NormalizationState
    sequences: SequenceSet
    summary: PreparationSummary

    @property
    def window_years(self) -> List[object]:
        """Year of the row each training pair predicts, in order."""
        key = self.options.year_key
        return [row[key] for row in self.rows[self.lookback:]]

def prepare_training_data(
        raw_rows: RawRows,
        options: PreparationOptions,
        lookback: int,
        *,
        logger: Optional[Logger] = None,
    ) -> PreparedData:
    """
    Clean, sort, normalize and window raw rows.

    Parameters
    ----------
    raw_rows : RawRows
        Ordered raw records.
    options : PreparationOptions
        Field roles and repair policy.
    lookback : int
        Window length.
    logger : Optional[Logger], default None
        Receives the issue and discard counts.

    Returns
    -------
    PreparedData
        Sorted cleaned rows, their normalized copies, the shared scale,
        the training pairs and the row accounting.

    Raises
    ------
    ConfigurationError
        If ``lookback`` is not positive.
    InsufficientDataError
        If no row survives cleaning or too few remain for one window.
    """
    if lookback < 1:
        raise ConfigurationError(
            f"lookback must be a positive integer, got {lookback}."
        )
    result = clean(raw_rows, options)
    summary = PreparationSummary(
        total_rows=len(raw_rows),
        cleaned_rows=len(result.rows),
        discarded_count=result.discarded_count,
        issues=result.issues,
    )
    if logger is not None:
        logger(
            f"Cleaned {summary.total_rows} rows: kept "
            f"{summary.cleaned_rows}, discarded {summary.discarded_count}, "
            f"{summary.issue_count} issue(s).",
            1,
        )
        if summary.discarded_count:
            logger.warn(
                f"{summary.discarded_count} of {summary.total_rows} rows "
                "were discarded during cleaning."
            )
    if not result.rows:
        raise InsufficientDataError(
            f"No rows survived cleaning ({summary.discarded_count} "
            f"discarded, {summary.issue_count} issue(s))."
        )
    rows = sort_by_year(result.rows, options.year_key)
    scaled = normalize(rows, options.value_fields)
    sequences = build_sequences(
        scaled.normalized, lookback, options.features, options.target
    )

    return PreparedData(
        options=options,
        lookback=lookback,
        rows=rows,
        normalized=scaled.normalized,
        state=scaled.state,
        sequences=sequences,
        summary=summary,
    )
