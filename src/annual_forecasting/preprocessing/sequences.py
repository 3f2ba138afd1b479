# stdlib
from dataclasses import dataclass
from typing import List, Sequence
# thirdpartylib
import numpy as np
# projectlib
from annual_forecasting.utils.errors import InsufficientDataError
from annual_forecasting.utils.typing import FloatArray, Row

@dataclass(frozen=True)
class SequenceSet(object):
    """
    Sliding-window training pairs.

    ``X`` has shape ``(n_pairs, lookback, n_features)`` and ``y`` has
    shape ``(n_pairs,)``; pair ``i`` predicts row ``i + lookback``.
    """
    X: FloatArray
    y: FloatArray

    def __len__(self) -> int:
        return int(self.y.shape[0])

def sort_by_year(rows: Sequence[Row], year_key: str) -> List[Row]:
    """Return rows in ascending year order, stable on equal years."""
    return sorted(rows, key=lambda row: row[year_key])

def build_sequences(
        normalized_rows: Sequence[Row],
        lookback: int,
        features: Sequence[str],
        target: str,
    ) -> SequenceSet:
    """
    Slide a ``lookback``-row window over year-sorted, normalized rows.

    Parameters
    ----------
    normalized_rows : Sequence[Row]
        Rows already sorted by year and scaled to ``[0, 1]``.
    lookback : int
        Window length.
    features : Sequence[str]
        Columns forming each window vector, in order.
    target : str
        Column predicted from each window.

    Returns
    -------
    SequenceSet
        Exactly ``len(normalized_rows) - lookback`` pairs.

    Raises
    ------
    InsufficientDataError
        If there are not more rows than ``lookback``.
    """
    n = len(normalized_rows)
    if n <= lookback:
        raise InsufficientDataError(
            f"Not enough rows to train: {n} row(s) for a lookback of "
            f"{lookback}; at least {lookback + 1} are required."
        )
    matrix = np.array(
        [[float(row[f]) for f in features] for row in normalized_rows],
        dtype=np.float64,
    )
    targets = np.array(
        [float(row[target]) for row in normalized_rows],
        dtype=np.float64,
    )
    # Window i covers rows i..i+lookback-1 and predicts row i+lookback
    X = np.stack([matrix[i:i + lookback] for i in range(n - lookback)])
    y = targets[lookback:].copy()

    return SequenceSet(X=X, y=y)
