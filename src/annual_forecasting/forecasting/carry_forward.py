# stdlib
import math
from dataclasses import dataclass, field
from typing import Callable, FrozenSet, Iterable, Mapping, Sequence
# projectlib
from annual_forecasting.config.constants import CUMULATIVE_FEATURES
from annual_forecasting.utils.typing import Row

# (feature, current window, predicted target) -> next window value
type CarryStrategy = Callable[[str, Sequence[Row], float], float]

def window_value(row: Row, feature: str) -> float:
    """Numeric value of ``feature`` in a window row, 0 if absent."""
    value = row.get(feature)
    if value is None:
        return 0.0
    number = float(value)
    return number if math.isfinite(number) else 0.0

def use_prediction(feature: str, window: Sequence[Row], prediction: float) -> float:
    return prediction

def hold_last(feature: str, window: Sequence[Row], prediction: float) -> float:
    return window_value(window[-1], feature) if window else 0.0

def linear_extrapolation(
        feature: str,
        window: Sequence[Row],
        prediction: float,
    ) -> float:
    """
    Continue the constant rate between the first and last window rows.

    ``rate = (last - first) / (len(window) - 1)`` and the next value is
    ``last + rate``; a single-row window has rate 0.
    """
    if not window:
        return 0.0
    first = window_value(window[0], feature)
    last = window_value(window[-1], feature)
    rate = (last - first) / (len(window) - 1) if len(window) > 1 else 0.0
    return last + rate

@dataclass(frozen=True)
class CarryForwardPolicy(object):
    """
    Per-feature rules deriving the next window row during a forecast.

    Parameters
    ----------
    strategies : Mapping[str, CarryStrategy]
        Explicit strategy per feature.
    default : CarryStrategy, default hold_last
        Used for features without an explicit strategy.
    reported : FrozenSet[str], default frozenset()
        Features whose derived value is also written on each forecast
        row.
    """
    strategies: Mapping[str, CarryStrategy]
    default: CarryStrategy = hold_last
    reported: FrozenSet[str] = field(default_factory=frozenset)

    def next_value(
            self,
            feature: str,
            window: Sequence[Row],
            prediction: float,
        ) -> float:
        strategy = self.strategies.get(feature, self.default)
        return strategy(feature, window, prediction)

def default_policy(
        target: str,
        features: Iterable[str],
        cumulative: Iterable[str] = CUMULATIVE_FEATURES,
    ) -> CarryForwardPolicy:
    """
    Standard policy: the target (and any feature equal to it) takes the
    prediction, cumulative features are linearly extrapolated and every
    other feature holds its last value.
    """
    cumulative = set(cumulative)
    strategies: dict[str, CarryStrategy] = {target: use_prediction}
    reported: set[str] = set()
    for feature in features:
        if feature == target:
            continue
        if feature in cumulative:
            strategies[feature] = linear_extrapolation
            reported.add(feature)
    return CarryForwardPolicy(
        strategies=strategies,
        default=hold_last,
        reported=frozenset(reported),
    )
