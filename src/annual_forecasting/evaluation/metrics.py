# stdlib
from dataclasses import asdict, dataclass
from typing import Dict, Mapping
# thirdpartylib
import numpy as np
from sklearn.metrics import mean_absolute_error, root_mean_squared_error
# projectlib
from annual_forecasting.config.constants import METRIC_DECIMALS
from annual_forecasting.utils.typing import ArrayLike1D

@dataclass(frozen=True)
class Metrics(object):
    """Fit quality on denormalized values."""
    mae: float
    rmse: float
    mape: float
    r2: float
    accuracy: float

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, float]) -> "Metrics":
        return cls(
            mae=float(data["mae"]),
            rmse=float(data["rmse"]),
            mape=float(data["mape"]),
            r2=float(data["r2"]),
            accuracy=float(data["accuracy"]),
        )

def nonzero_mape(y_true: ArrayLike1D, y_pred: ArrayLike1D) -> float:
    """
    Mean Absolute Percentage Error over rows with a non-zero actual.

    Rows whose actual value is exactly zero are excluded from the
    average instead of being clamped, so a zero actual neither inflates
    the error nor counts as a perfect prediction.

    Parameters
    ----------
    y_true : array-like
        Ground truth values.
    y_pred : array-like
        Predicted values.

    Returns
    -------
    float
        MAPE expressed as a percentage; 0.0 if every actual is zero.
    """
    y_true = np.asarray(y_true, dtype=np.float64)
    y_pred = np.asarray(y_pred, dtype=np.float64)
    mask = y_true != 0
    if not mask.any():
        return 0.0
    return float(
        np.mean(np.abs((y_true[mask] - y_pred[mask]) / y_true[mask])) * 100.0
    )

def strict_r2(y_true: ArrayLike1D, y_pred: ArrayLike1D) -> float:
    """
    Coefficient of determination, ``1 - SS_res / SS_tot``.

    When the actual values have zero variance R² is undefined; a
    perfect fit then scores 1.0 and anything else 0.0 so that the
    value stays finite for display and ranking.
    """
    y_true = np.asarray(y_true, dtype=np.float64)
    y_pred = np.asarray(y_pred, dtype=np.float64)
    ss_res = float(np.sum((y_true - y_pred) ** 2))
    ss_tot = float(np.sum((y_true - y_true.mean()) ** 2))
    if ss_tot == 0:
        return 1.0 if ss_res == 0 else 0.0

    return 1.0 - ss_res / ss_tot

def compute_metrics(
        actual: ArrayLike1D,
        predicted: ArrayLike1D,
        *,
        decimals: int = METRIC_DECIMALS,
    ) -> Metrics:
    """
    Compute MAE, RMSE, MAPE, R² and accuracy.

    Inputs must already be on the original scale; metrics on
    normalized values are meaningless for display and comparison.

    Parameters
    ----------
    actual : array-like
        Observed values.
    predicted : array-like
        Model predictions aligned with ``actual``.
    decimals : int, default 4
        Rounding applied to every metric.

    Returns
    -------
    Metrics
        ``accuracy`` is ``max(0, 100 - mape)``.

    Raises
    ------
    ValueError
        If the inputs are empty or differ in length.
    """
    y_true = np.asarray(actual, dtype=np.float64).ravel()
    y_pred = np.asarray(predicted, dtype=np.float64).ravel()
    if y_true.size == 0:
        raise ValueError("Cannot compute metrics on empty inputs.")
    if y_true.shape != y_pred.shape:
        raise ValueError(
            f"Length mismatch: {y_true.size} actual vs "
            f"{y_pred.size} predicted values."
        )
    mae = float(mean_absolute_error(y_true, y_pred))
    rmse = float(root_mean_squared_error(y_true, y_pred))
    mape = nonzero_mape(y_true, y_pred)
    r2 = strict_r2(y_true, y_pred)
    accuracy = max(0.0, 100.0 - mape)

    return Metrics(
        mae=round(mae, decimals),
        rmse=round(rmse, decimals),
        mape=round(mape, decimals),
        r2=round(r2, decimals),
        accuracy=round(accuracy, decimals),
    )
