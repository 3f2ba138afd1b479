# stdlib
import json
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Tuple
# projectlib
from annual_forecasting.data.schemas import ModelFamilyName, PreparationOptions
from annual_forecasting.evaluation.metrics import Metrics, compute_metrics
from annual_forecasting.models.config import ModelConfig
from annual_forecasting.models.families import ModelFamily, get_family
from annual_forecasting.preprocessing.normalization import denormalize
from annual_forecasting.preprocessing.preparation import (
    PreparationSummary,
    prepare_training_data,
)
from annual_forecasting.training.orchestrator import (
    CancellationToken,
    EpochCallback,
    TrainingHistory,
    TrainingOrchestrator,
)
from annual_forecasting.utils.logging import Logger
from annual_forecasting.utils.typing import RawRows, Row

@dataclass(frozen=True)
class Metadata(object):
    """
    Everything needed to reuse a trained model, stored beside it.

    Created once per successful training and never modified; a new
    training produces new metadata. ``last_window`` holds the last
    ``lookback`` cleaned, year-sorted rows and seeds the forecaster.
    """
    model_family: ModelFamilyName
    lookback: int
    features: Tuple[str, ...]
    target: str
    year_key: str
    mins: Mapping[str, float]
    maxs: Mapping[str, float]
    last_year: Any
    last_window: Tuple[Row, ...]
    metrics: Metrics
    trained_at: str
    preparation: Mapping[str, int]
    hyperparameters: ModelConfig
    training_history: Tuple[Dict[str, float], ...] = ()
    historical_series: Tuple[Dict[str, Any], ...] = ()
    fitted_series: Tuple[Dict[str, Any], ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "model_family": self.model_family.value,
            "lookback": self.lookback,
            "features": list(self.features),
            "target": self.target,
            "year_key": self.year_key,
            "mins": dict(self.mins),
            "maxs": dict(self.maxs),
            "last_year": self.last_year,
            "last_window": [dict(row) for row in self.last_window],
            "metrics": self.metrics.to_dict(),
            "trained_at": self.trained_at,
            "preparation": dict(self.preparation),
            "hyperparameters": self.hyperparameters.to_dict(),
            "training_history": [dict(e) for e in self.training_history],
            "historical_series": [dict(p) for p in self.historical_series],
            "fitted_series": [dict(p) for p in self.fitted_series],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Metadata":
        return cls(
            model_family=ModelFamilyName.parse(data["model_family"]),
            lookback=int(data["lookback"]),
            features=tuple(data["features"]),
            target=data["target"],
            year_key=data["year_key"],
            mins={k: float(v) for k, v in data["mins"].items()},
            maxs={k: float(v) for k, v in data["maxs"].items()},
            last_year=data["last_year"],
            last_window=tuple(dict(row) for row in data["last_window"]),
            metrics=Metrics.from_dict(data["metrics"]),
            trained_at=data["trained_at"],
            preparation={
                k: int(v) for k, v in data["preparation"].items()
            },
            hyperparameters=ModelConfig.from_dict(data["hyperparameters"]),
            training_history=tuple(data.get("training_history", ())),
            historical_series=tuple(data.get("historical_series", ())),
            fitted_series=tuple(data.get("fitted_series", ())),
        )

    def to_json(self, indent: Optional[int] = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_json(cls, document: str) -> "Metadata":
        return cls.from_dict(json.loads(document))

@dataclass(frozen=True)
class TrainingSession(object):
    """Result of one training run, returned by value."""
    model: Any
    metadata: Metadata
    metrics: Metrics
    training_history: TrainingHistory
    historical_series: List[Dict[str, Any]]
    fitted_series: List[Dict[str, Any]]
    preparation: PreparationSummary

def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")

def run_training(
        raw_rows: RawRows,
        options: PreparationOptions,
        config: ModelConfig,
        *,
        on_epoch: Optional[EpochCallback] = None,
        cancel_token: Optional[CancellationToken] = None,
        logger: Optional[Logger] = None,
        family: Optional[ModelFamily] = None,
    ) -> TrainingSession:
    """
    Prepare data, train one model and evaluate its fit.

    The fitted series is predicted over every window in chronological
    order, independently of how the orchestrator split windows for
    validation, and both series are mapped back to the target's
    original scale before metrics are computed.

    Parameters
    ----------
    raw_rows : RawRows
        Ordered raw records.
    options : PreparationOptions
        Field roles and repair policy.
    config : ModelConfig
        Hyperparameters; validated before any work is done.
    on_epoch : Optional[EpochCallback], default None
        Called synchronously after every epoch.
    cancel_token : Optional[CancellationToken], default None
        Checked at each epoch boundary.
    logger : Optional[Logger], default None
        Parent logger; component loggers are derived from it.
    family : Optional[ModelFamily], default None
        Overrides the registry lookup by ``config.family``.

    Returns
    -------
    TrainingSession
        Trained model, immutable metadata, metrics, history, series and
        row accounting.

    Raises
    ------
    ConfigurationError
        If ``config`` is invalid.
    InsufficientDataError
        If too few rows survive cleaning.
    TrainingCancelledError
        If ``cancel_token`` is set during training.
    """
    config.validate()
    family = family if family is not None else get_family(config.family)
    log = logger.child("session") if logger is not None else None
    prepared = prepare_training_data(
        raw_rows,
        options,
        config.lookback,
        logger=logger.child("preparation") if logger is not None else None,
    )
    sequences = prepared.sequences
    model = family.build(config.lookback, len(options.features), config)
    orchestrator = TrainingOrchestrator(
        family,
        config=config,
        cancel_token=cancel_token,
        logger=logger.child("orchestrator") if logger is not None else None,
    )
    history = orchestrator.train(
        model,
        sequences.X,
        sequences.y,
        on_epoch,
        epochs=config.epochs,
        validation_split=config.validation_split,
    )
    # Map fitted values back to the target's scale
    target = options.target
    lo, hi = prepared.state.mins[target], prepared.state.maxs[target]
    predictions = family.predict(model, sequences.X)
    fitted = [denormalize(p, lo, hi) for p in predictions]
    actual = [float(row[target]) for row in prepared.rows[config.lookback:]]
    metrics = compute_metrics(actual, fitted)
    year_key = options.year_key
    historical_series = [
        {"year": row[year_key], "value": float(row[target])}
        for row in prepared.rows
    ]
    fitted_series = [
        {"year": year, "actual": a, "fitted": f, "error": f - a}
        for year, a, f in zip(prepared.window_years, actual, fitted)
    ]
    # Seed window keeps only the columns the forecaster reads
    keep = (year_key, *options.value_fields)
    last_window = tuple(
        {k: row[k] for k in keep}
        for row in prepared.rows[-config.lookback:]
    )
    metadata = Metadata(
        model_family=family.name,
        lookback=config.lookback,
        features=options.features,
        target=target,
        year_key=year_key,
        mins=dict(prepared.state.mins),
        maxs=dict(prepared.state.maxs),
        last_year=prepared.rows[-1][year_key],
        last_window=last_window,
        metrics=metrics,
        trained_at=utc_timestamp(),
        preparation=prepared.summary.to_dict(),
        hyperparameters=config,
        training_history=tuple(history.to_list()),
        historical_series=tuple(historical_series),
        fitted_series=tuple(fitted_series),
    )
    if log is not None:
        log(
            f"Trained {family.name.value} (lookback {config.lookback}): "
            f"MAE {metrics.mae}, RMSE {metrics.rmse}, MAPE {metrics.mape}%, "
            f"R2 {metrics.r2}, accuracy {metrics.accuracy}%; "
            f"{prepared.summary.issue_count} issue(s), "
            f"{prepared.summary.discarded_count} of "
            f"{prepared.summary.total_rows} rows discarded.",
            1,
        )

    return TrainingSession(
        model=model,
        metadata=metadata,
        metrics=metrics,
        training_history=history,
        historical_series=historical_series,
        fitted_series=fitted_series,
        preparation=prepared.summary,
    )
