# stdlib
from dataclasses import dataclass, field
from typing import (
    Any,
    Callable,
    Dict,
    Iterable,
    Iterator,
    List,
    Optional,
    Union,
)
# thirdpartylib
import pandas as pd
# projectlib
from annual_forecasting.config.constants import (
    DEFAULT_LOOKBACK,
    TUNING_MAX_LOOKBACK,
    TUNING_MIN_LOOKBACK,
)
from annual_forecasting.data.schemas import ModelFamilyName, PreparationOptions
from annual_forecasting.evaluation.metrics import Metrics
from annual_forecasting.models.config import ModelConfig
from annual_forecasting.training.orchestrator import (
    CancellationToken,
    EpochCallback,
)
from annual_forecasting.training.session import (
    TrainingSession,
    run_training,
)
from annual_forecasting.utils.errors import (
    ConfigurationError,
    ForecastingError,
    TrainingCancelledError,
)
from annual_forecasting.utils.logging import Logger
from annual_forecasting.utils.typing import RawRows

type TrainFn = Callable[..., TrainingSession]

def clamp_lookback(value: Optional[Union[int, float, str]]) -> int:
    """
    Clamp a requested lookback to the tuning range (2 to 10).

    Unparseable or missing values fall back to the default of 3.
    """
    try:
        parsed = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return DEFAULT_LOOKBACK
    return min(TUNING_MAX_LOOKBACK, max(TUNING_MIN_LOOKBACK, parsed))

def build_grid(
        family: Union[str, ModelFamilyName],
        lookback: int,
    ) -> List[ModelConfig]:
    """
    Three fixed candidates around a base lookback.

    Candidates vary depth, width, dropout, learning rate and epochs; the
    second widens the window by one year (clamped to the tuning range).
    """
    family = ModelFamilyName.parse(family)
    base = clamp_lookback(lookback)
    wider = clamp_lookback(base + 1)
    if family is ModelFamilyName.FEED_FORWARD:
        return [
            ModelConfig(
                family=family, id="mlp-grid-1", label="Fast learner",
                lookback=base, layer_units=(48, 24), dropout=0.15,
                activation="relu", learning_rate=0.0015, epochs=60,
                validation_split=0.2,
            ),
            ModelConfig(
                family=family, id="mlp-grid-2", label="Balanced depth",
                lookback=wider, layer_units=(72, 36), dropout=0.2,
                activation="relu", learning_rate=0.001, epochs=80,
                validation_split=0.2,
            ),
            ModelConfig(
                family=family, id="mlp-grid-3", label="Regularised",
                lookback=base, layer_units=(96, 48, 24), dropout=0.25,
                activation="tanh", learning_rate=0.0008, epochs=90,
                validation_split=0.25,
            ),
        ]
    return [
        ModelConfig(
            family=family, id="lstm-grid-1", label="Short memory",
            lookback=base, layer_units=(64, 32), dropout=0.1,
            activation="tanh", learning_rate=0.0012, epochs=70,
            validation_split=0.2,
        ),
        ModelConfig(
            family=family, id="lstm-grid-2", label="Deep sequence",
            lookback=wider, layer_units=(96, 64), dropout=0.15,
            activation="tanh", learning_rate=0.0008, epochs=90,
            validation_split=0.25,
        ),
        ModelConfig(
            family=family, id="lstm-grid-3", label="Regularised memory",
            lookback=base, layer_units=(80, 40), dropout=0.2,
            activation="tanh", learning_rate=0.0006, epochs=100,
            validation_split=0.2,
        ),
    ]

@dataclass(frozen=True)
class TrainingRun(object):
    """Outcome of one tuning candidate."""
    id: str
    config: ModelConfig
    metrics: Metrics
    trained_at: str

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "label": self.config.label,
            "family": self.config.family.value,
            "lookback": self.config.lookback,
            "layer_units": "-".join(str(u) for u in self.config.layer_units),
            "dropout": self.config.dropout,
            "learning_rate": self.config.learning_rate,
            "epochs": self.config.epochs,
            **self.metrics.to_dict(),
            "trained_at": self.trained_at,
        }

class RunRegistry(object):
    """
    Append-only store of training runs, keyed by id, in insertion order.

    Runs cannot be replaced or removed once added.
    """

    def __init__(self) -> None:
        self._runs: Dict[str, TrainingRun] = {}

    def add(self, run: TrainingRun) -> None:
        if run.id in self._runs:
            raise ConfigurationError(f"Duplicate run id '{run.id}'.")
        self._runs[run.id] = run

    def __getitem__(self, run_id: str) -> TrainingRun:
        return self._runs[run_id]

    def __contains__(self, run_id: object) -> bool:
        return run_id in self._runs

    def __iter__(self) -> Iterator[TrainingRun]:
        return iter(list(self._runs.values()))

    def __len__(self) -> int:
        return len(self._runs)

    def as_dict(self) -> Dict[str, TrainingRun]:
        return dict(self._runs)

def select_best(runs: Iterable[TrainingRun]) -> Optional[str]:
    """
    Id of the best run, or None when there are no runs.

    Strictly higher accuracy wins; on an exact accuracy tie the lower
    MAE wins; remaining ties keep the run seen first.
    """
    best: Optional[TrainingRun] = None
    for run in runs:
        if best is None:
            best = run
            continue
        if run.metrics.accuracy > best.metrics.accuracy:
            best = run
        elif (
            run.metrics.accuracy == best.metrics.accuracy
            and run.metrics.mae < best.metrics.mae
        ):
            best = run
    return best.id if best is not None else None

@dataclass
class GridResult(object):
    """Runs that completed, the winner and the candidates that failed."""
    runs: RunRegistry
    best_run_id: Optional[str]
    failures: Dict[str, str] = field(default_factory=dict)
    sessions: Dict[str, TrainingSession] = field(default_factory=dict)

    @property
    def best_session(self) -> Optional[TrainingSession]:
        if self.best_run_id is None:
            return None
        return self.sessions.get(self.best_run_id)

def run_grid(
        raw_rows: RawRows,
        grid: List[ModelConfig],
        options: PreparationOptions,
        *,
        on_epoch: Optional[EpochCallback] = None,
        cancel_token: Optional[CancellationToken] = None,
        logger: Optional[Logger] = None,
        train_fn: TrainFn = run_training,
    ) -> GridResult:
    """
    Train and evaluate every candidate independently.

    Each candidate repeats cleaning, normalization and windowing with its
    own lookback; nothing is shared between candidates. A candidate
    that fails with a pipeline error is logged, recorded in
    ``failures`` and skipped. Cancellation stops the whole grid.

    Parameters
    ----------
    raw_rows : RawRows
        Ordered raw records.
    grid : List[ModelConfig]
        Candidates, typically from :func:`build_grid`.
    options : PreparationOptions
        Field roles and repair policy shared by every candidate.
    on_epoch : Optional[EpochCallback], default None
        Progress callback; payloads carry the candidate's config.
    cancel_token : Optional[CancellationToken], default None
        Checked at every epoch boundary of every candidate.
    logger : Optional[Logger], default None
        Parent logger.
    train_fn : TrainFn, default run_training
        Trains one candidate and returns its session.

    Returns
    -------
    GridResult
        Completed runs in grid order and the id of the best one.

    Raises
    ------
    TrainingCancelledError
        If cancellation is requested.
    ConfigurationError
        If two candidates share an id.
    """
    log = logger.child("tuner") if logger is not None else None
    registry = RunRegistry()
    failures: Dict[str, str] = {}
    sessions: Dict[str, TrainingSession] = {}
    for position, config in enumerate(grid, start=1):
        run_id = config.id or f"{config.family.short_name}-run-{position}"
        if run_id in registry or run_id in failures:
            raise ConfigurationError(f"Duplicate run id '{run_id}'.")
        if log is not None:
            log(
                f"Candidate {position}/{len(grid)} '{run_id}' "
                f"({config.label or 'unlabelled'}): lookback "
                f"{config.lookback}, units {list(config.layer_units)}.",
                1,
            )
        try:
            session = train_fn(
                raw_rows,
                options,
                config,
                on_epoch=on_epoch,
                cancel_token=cancel_token,
                logger=logger,
            )
        except TrainingCancelledError:
            raise
        except ForecastingError as exc:
            failures[run_id] = str(exc)
            if log is not None:
                log.warn(f"Candidate '{run_id}' failed: {exc}")
            continue
        registry.add(
            TrainingRun(
                id=run_id,
                config=config,
                metrics=session.metrics,
                trained_at=session.metadata.trained_at,
            )
        )
        sessions[run_id] = session
    best = select_best(list(registry))
    if log is not None:
        log(
            f"Grid finished: {len(registry)} run(s), {len(failures)} "
            f"failure(s), best run: {best}.",
            1,
        )

    return GridResult(
        runs=registry,
        best_run_id=best,
        failures=failures,
        sessions=sessions,
    )

def runs_frame(result: GridResult) -> pd.DataFrame:
    """Tabulate completed runs, marking the best one."""
    records = [run.to_record() for run in result.runs]
    frame = pd.DataFrame(records)
    if not frame.empty:
        frame["best"] = frame["id"] == result.best_run_id
    return frame
