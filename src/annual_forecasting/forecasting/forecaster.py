# stdlib
from typing import Any, List, Optional, Union
# thirdpartylib
import numpy as np
from sklearn.preprocessing import MinMaxScaler
# projectlib
from annual_forecasting.config.constants import EXTRAPOLATED_DECIMALS
from annual_forecasting.forecasting.carry_forward import (
    CarryForwardPolicy,
    default_policy,
    window_value,
)
from annual_forecasting.preprocessing.normalization import (
    denormalize,
    scale_matrix,
    scaler_from_extremes,
)
from annual_forecasting.training.session import Metadata
from annual_forecasting.utils.errors import (
    ConfigurationError,
    ModelUnavailableError,
)
from annual_forecasting.utils.typing import PredictFn, Row

def _round(value: float, decimals: int) -> Union[int, float]:
    return int(round(value)) if decimals == 0 else round(value, decimals)

def _scale_window(
        window: List[Row],
        metadata: Metadata,
        scaler: MinMaxScaler,
    ) -> np.ndarray:
    """Normalize a window with the training-time scaler."""
    raw = np.array(
        [[window_value(row, f) for f in metadata.features] for row in window],
        dtype=np.float64,
    )
    return scale_matrix(scaler, raw)

def forecast(
        model: Any,
        metadata: Optional[Metadata],
        horizon_years: int,
        predict_fn: PredictFn,
        *,
        policy: Optional[CarryForwardPolicy] = None,
        decimals: int = 0,
    ) -> List[Row]:
    """
    Forecast ``horizon_years`` years autoregressively.

    Starting from ``metadata.last_window``, each step normalizes the
    window, predicts the next normalized target, maps it back to the
    target's scale, emits a forecast row and slides the window forward
    by one row derived through ``policy``. The unrounded prediction is
    carried into the next window; only the emitted row is rounded.

    Parameters
    ----------
    model : Any
        Trained model handle understood by ``predict_fn``.
    metadata : Optional[Metadata]
        Metadata produced alongside ``model``.
    horizon_years : int
        Number of future years.
    predict_fn : PredictFn
        ``predict_fn(model, X)`` with ``X`` of shape
        ``(1, lookback, n_features)``, returning one value.
    policy : Optional[CarryForwardPolicy], default None
        Carry-forward rules; :func:`default_policy` if None.
    decimals : int, default 0
        Rounding of the emitted target value (0 gives an integer).

    Returns
    -------
    List[Row]
        ``horizon_years`` rows ``{year_key, target, "is_forecast": True,
        ...reported features}`` with years ``last_year + 1`` onwards.

    Raises
    ------
    ModelUnavailableError
        If there is no model or metadata, or the seed window is
        incomplete.
    ConfigurationError
        If ``horizon_years`` is less than 1.
    """
    if model is None or metadata is None:
        raise ModelUnavailableError(
            "No trained model available; train or load a model first."
        )
    if horizon_years < 1:
        raise ConfigurationError(
            f"horizon_years must be at least 1, got {horizon_years}."
        )
    if len(metadata.last_window) != metadata.lookback:
        raise ModelUnavailableError(
            f"Metadata holds {len(metadata.last_window)} seed row(s) but "
            f"the model expects {metadata.lookback}."
        )
    if policy is None:
        policy = default_policy(metadata.target, metadata.features)
    target = metadata.target
    year_key = metadata.year_key
    lo, hi = metadata.mins[target], metadata.maxs[target]
    scaler = scaler_from_extremes(
        metadata.mins, metadata.maxs, metadata.features
    )
    window: List[Row] = [dict(row) for row in metadata.last_window]
    year = metadata.last_year
    rows: List[Row] = []
    for _ in range(horizon_years):
        X = _scale_window(window, metadata, scaler)[np.newaxis, ...]
        normalized = float(predict_fn(model, X)[0])
        prediction = denormalize(normalized, lo, hi)
        year = year + 1
        # Derive the next window row from the current window
        next_row: Row = {year_key: year}
        for feature in metadata.features:
            next_row[feature] = policy.next_value(feature, window, prediction)
        next_row[target] = prediction
        emitted: Row = {
            year_key: year,
            target: _round(prediction, decimals),
            "is_forecast": True,
        }
        for feature in metadata.features:
            if feature in policy.reported and feature != target:
                emitted[feature] = round(
                    next_row[feature], EXTRAPOLATED_DECIMALS
                )
        rows.append(emitted)
        window = [*window[1:], next_row]

    return rows
