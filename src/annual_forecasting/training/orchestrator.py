# stdlib
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Optional
# thirdpartylib
import numpy as np
# projectlib
from annual_forecasting.config.constants import (
    DEFAULT_EPOCHS,
    DEFAULT_SEED,
    DEFAULT_VALIDATION_SPLIT,
    MAX_BATCH_SIZE,
)
from annual_forecasting.models.config import ModelConfig
from annual_forecasting.models.families import ModelFamily
from annual_forecasting.utils.errors import (
    ConfigurationError,
    InsufficientDataError,
    TrainingCancelledError,
)
from annual_forecasting.utils.logging import Logger
from annual_forecasting.utils.typing import FloatArray

@dataclass(frozen=True)
class EpochLog(object):
    """Normalized per-epoch record; ``epoch`` is 1-based."""
    epoch: int
    loss: float
    mae: float
    val_loss: Optional[float] = None
    val_mae: Optional[float] = None

    def to_dict(self) -> Dict[str, float]:
        out: Dict[str, float] = {
            "epoch": self.epoch,
            "loss": self.loss,
            "mae": self.mae,
        }
        if self.val_loss is not None:
            out["val_loss"] = self.val_loss
        if self.val_mae is not None:
            out["val_mae"] = self.val_mae
        return out

@dataclass(frozen=True)
class EpochProgress(object):
    """Payload handed to the progress callback after every epoch."""
    epoch: int
    total_epochs: int
    logs: EpochLog
    config: Optional[ModelConfig] = None

type EpochCallback = Callable[[EpochProgress], None]

@dataclass
class TrainingHistory(object):
    """Every epoch log of one run, in order, with no gaps."""
    epochs: List[EpochLog] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.epochs)

    @property
    def final(self) -> Optional[EpochLog]:
        return self.epochs[-1] if self.epochs else None

    def to_list(self) -> List[Dict[str, float]]:
        return [log.to_dict() for log in self.epochs]

class CancellationToken(object):
    """
    Cooperative cancellation flag checked at each epoch boundary.

    A batch in progress always completes; the run stops before the
    next epoch begins.
    """

    def __init__(self) -> None:
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled

def batch_size_for(n_windows: int, limit: int = MAX_BATCH_SIZE) -> int:
    """Batch size bounded by ``limit`` and the number of windows."""
    return max(1, min(limit, n_windows))

def _optional_float(raw: Dict[str, float], key: str) -> Optional[float]:
    value = raw.get(key)
    return None if value is None else float(value)

class TrainingOrchestrator(object):
    """
    Drive a model through its epoch loop.

    The gradient step itself belongs to the family's ``train_epoch``;
    the orchestrator owns batch sizing, the validation split, epoch
    numbering, log normalization, progress reporting and cancellation.

    Parameters
    ----------
    family : ModelFamily
        Capability used to train the model.
    config : Optional[ModelConfig], default None
        Attached to every progress payload and used for the split seed.
    cancel_token : Optional[CancellationToken], default None
        Checked before each epoch.
    logger : Optional[Logger], default None
        Receives one line per epoch at verbosity 2.
    """

    def __init__(
            self,
            family: ModelFamily,
            *,
            config: Optional[ModelConfig] = None,
            cancel_token: Optional[CancellationToken] = None,
            logger: Optional[Logger] = None,
        ) -> None:
        self.family = family
        self.config = config
        self.cancel_token = cancel_token
        self.log = logger

    def iter_epochs(
            self,
            model: Any,
            X: FloatArray,
            y: FloatArray,
            epochs: int = DEFAULT_EPOCHS,
            validation_split: float = DEFAULT_VALIDATION_SPLIT,
        ) -> Iterator[EpochLog]:
        """
        Train lazily, yielding one :class:`EpochLog` per epoch.

        The generator is finite (``epochs`` items) and cannot be
        restarted; creating a new one continues training the same
        model from its current weights.

        Raises
        ------
        ConfigurationError
            If ``epochs`` or ``validation_split`` are out of range.
        InsufficientDataError
            If there are no training windows.
        TrainingCancelledError
            When the cancellation token is set at an epoch boundary.
        """
        if epochs < 1:
            raise ConfigurationError(f"epochs must be positive, got {epochs}.")
        if not 0 <= validation_split < 1:
            raise ConfigurationError(
                f"validation_split must be in [0, 1), got {validation_split}."
            )
        X = np.asarray(X, dtype=np.float64)
        y = np.asarray(y, dtype=np.float64)
        n = len(y)
        if n == 0:
            raise InsufficientDataError("No training windows to fit.")
        seed = self.config.seed if self.config is not None else DEFAULT_SEED
        train_idx, val_idx = self.family.split_policy(n, validation_split, seed)
        X_train, y_train = X[train_idx], y[train_idx]
        X_val = X[val_idx] if len(val_idx) else None
        y_val = y[val_idx] if len(val_idx) else None
        batch_size = batch_size_for(len(train_idx))
        if self.log is not None:
            self.log(
                f"Training {self.family.name.value} for {epochs} epochs on "
                f"{len(train_idx)} window(s), {len(val_idx)} held out, "
                f"batch size {batch_size}.",
                1,
            )
        for index in range(epochs):
            if self.cancel_token is not None and self.cancel_token.cancelled:
                raise TrainingCancelledError(index)
            raw = self.family.train_epoch(
                model, X_train, y_train, X_val, y_val, batch_size
            )
            entry = EpochLog(
                epoch=index + 1,
                loss=float(raw["loss"]),
                mae=float(raw["mae"]),
                val_loss=_optional_float(raw, "val_loss"),
                val_mae=_optional_float(raw, "val_mae"),
            )
            if self.log is not None:
                self.log(
                    f"Epoch {entry.epoch}/{epochs} - loss: {entry.loss:.6f}"
                    f" - mae: {entry.mae:.6f}",
                    2,
                )
            yield entry

    def train(
            self,
            model: Any,
            X: FloatArray,
            y: FloatArray,
            on_epoch: Optional[EpochCallback] = None,
            epochs: int = DEFAULT_EPOCHS,
            validation_split: float = DEFAULT_VALIDATION_SPLIT,
        ) -> TrainingHistory:
        """
        Train to completion, reporting every epoch through ``on_epoch``.

        Returns
        -------
        TrainingHistory
            All epoch logs in order.
        """
        history = TrainingHistory()
        for entry in self.iter_epochs(model, X, y, epochs, validation_split):
            history.epochs.append(entry)
            if on_epoch is not None:
                on_epoch(
                    EpochProgress(
                        epoch=entry.epoch,
                        total_epochs=epochs,
                        logs=entry,
                        config=self.config,
                    )
                )
        return history
