# stdlib
from dataclasses import dataclass
from typing import Dict, List, Mapping, Sequence
# thirdpartylib
import numpy as np
from sklearn.preprocessing import MinMaxScaler
# projectlib
from annual_forecasting.utils.typing import FloatArray, Row

@dataclass(frozen=True)
class NormalizationState(object):
    """Per-feature minima and maxima shared by every window of a run."""
    mins: Mapping[str, float]
    maxs: Mapping[str, float]

@dataclass(frozen=True)
class NormalizationResult(object):
    normalized: List[Row]
    mins: Dict[str, float]
    maxs: Dict[str, float]

    @property
    def state(self) -> NormalizationState:
        return NormalizationState(mins=dict(self.mins), maxs=dict(self.maxs))

def scaler_from_extremes(
        mins: Mapping[str, float],
        maxs: Mapping[str, float],
        features: Sequence[str],
    ) -> MinMaxScaler:
    """
    A ``MinMaxScaler`` equivalent to one fitted on data spanning
    ``[mins[f], maxs[f]]`` for every feature.
    """
    bounds = np.array(
        [[mins[f] for f in features], [maxs[f] for f in features]],
        dtype=np.float64,
    )
    return MinMaxScaler().fit(bounds)

def scale_matrix(scaler: MinMaxScaler, matrix: FloatArray) -> FloatArray:
    """
    Transform ``matrix`` with a fitted scaler.

    Columns whose fitted range is degenerate map every value to 0, not
    only the value seen during fitting.
    """
    scaled = scaler.transform(matrix)
    return np.where(scaler.data_range_ == 0, 0.0, scaled)

def denormalize(value: float, lo: float, hi: float) -> float:
    """
    Map a scaled value back onto ``[lo, hi]``.

    Inverse of the scaling done by :func:`normalize` when
    ``lo < hi``; values outside ``[0, 1]`` extrapolate linearly.
    """
    return value * (hi - lo) + lo

def normalize(rows: Sequence[Row], features: Sequence[str]) -> NormalizationResult:
    """
    Min-max scale ``features`` of every row to ``[0, 1]``.

    A single ``MinMaxScaler`` is fitted over all rows so that every
    window built afterwards shares one scale. Constant columns scale to
    0. Columns not listed in ``features`` are copied through unchanged.

    Parameters
    ----------
    rows : Sequence[Row]
        Cleaned rows with numeric values for every feature.
    features : Sequence[str]
        Columns to scale. Include the target so predictions can be
        mapped back.

    Returns
    -------
    NormalizationResult
        Scaled copies of the rows together with the per-feature
        extremes.

    Raises
    ------
    ValueError
        If ``rows`` is empty.
    """
    if not rows:
        raise ValueError("Cannot normalize an empty set of rows.")
    # Stack the requested columns into a (rows, features) matrix
    matrix: FloatArray = np.array(
        [[float(row[f]) for f in features] for row in rows],
        dtype=np.float64,
    )
    scaler = MinMaxScaler()
    scaled = scale_matrix(scaler.fit(matrix), matrix)
    normalized: List[Row] = []
    for row, values in zip(rows, scaled):
        out = dict(row)
        out.update(
            {f: float(v) for f, v in zip(features, values)}
        )
        normalized.append(out)
    mins = {f: float(v) for f, v in zip(features, scaler.data_min_)}
    maxs = {f: float(v) for f, v in zip(features, scaler.data_max_)}

    return NormalizationResult(normalized=normalized, mins=mins, maxs=maxs)
