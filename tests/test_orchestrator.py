import numpy as np
import pytest

from annual_forecasting.data.schemas import ModelFamilyName
from annual_forecasting.models.families import ModelFamily
from annual_forecasting.training.orchestrator import (
    CancellationToken,
    TrainingOrchestrator,
    batch_size_for,
)
from annual_forecasting.training.splits import (
    contiguous_split,
    shuffled_split,
    validation_size,
)
from annual_forecasting.utils.errors import (
    ConfigurationError,
    TrainingCancelledError,
)


class FakeModel(object):
    def __init__(self):
        self.calls = []


def fake_train_epoch(model, X_train, y_train, X_val, y_val, batch_size):
    model.calls.append(
        {
            "n_train": len(y_train),
            "n_val": 0 if y_val is None else len(y_val),
            "batch_size": batch_size,
        }
    )
    step = len(model.calls)
    log = {"loss": 1.0 / step, "mae": 0.5 / step}
    if y_val is not None:
        log["val_loss"] = 2.0 / step
        log["val_mae"] = 1.0 / step
    return log


def make_family(split_policy=contiguous_split):
    return ModelFamily(
        name=ModelFamilyName.SEQUENCE_MEMORY,
        build=lambda lookback, n_features, config: FakeModel(),
        train_epoch=fake_train_epoch,
        predict=lambda model, X: [0.0] * len(X),
        split_policy=split_policy,
    )


def _data(n):
    X = np.arange(n * 3, dtype=np.float64).reshape(n, 3, 1)
    y = np.arange(n, dtype=np.float64)
    return X, y


def test_every_epoch_is_reported_in_order():
    model = FakeModel()
    progress = []
    X, y = _data(10)
    history = TrainingOrchestrator(make_family()).train(
        model, X, y, progress.append, epochs=7, validation_split=0.2
    )
    assert [p.epoch for p in progress] == list(range(1, 8))
    assert all(p.total_epochs == 7 for p in progress)
    assert [e.epoch for e in history.epochs] == list(range(1, 8))
    assert history.final.loss == pytest.approx(1 / 7)
    assert history.epochs[0].val_loss == 2.0


def test_split_and_batch_size_are_passed_to_family():
    model = FakeModel()
    X, y = _data(50)
    TrainingOrchestrator(make_family()).train(
        model, X, y, epochs=1, validation_split=0.2
    )
    assert model.calls == [{"n_train": 40, "n_val": 10, "batch_size": 32}]


def test_single_window_trains_without_validation():
    model = FakeModel()
    X, y = _data(1)
    history = TrainingOrchestrator(make_family()).train(
        model, X, y, epochs=2, validation_split=0.2
    )
    assert model.calls[0] == {"n_train": 1, "n_val": 0, "batch_size": 1}
    assert history.epochs[0].val_loss is None
    assert "val_loss" not in history.to_list()[0]


def test_iter_epochs_is_lazy():
    model = FakeModel()
    X, y = _data(5)
    epochs = TrainingOrchestrator(make_family()).iter_epochs(
        model, X, y, epochs=3, validation_split=0.0
    )
    assert model.calls == []
    first = next(epochs)
    assert first.epoch == 1
    assert len(model.calls) == 1
    assert [e.epoch for e in epochs] == [2, 3]


def test_cancellation_stops_at_epoch_boundary():
    model = FakeModel()
    token = CancellationToken()
    X, y = _data(5)

    def on_epoch(progress):
        if progress.epoch == 2:
            token.cancel()

    orchestrator = TrainingOrchestrator(make_family(), cancel_token=token)
    with pytest.raises(TrainingCancelledError) as info:
        orchestrator.train(model, X, y, on_epoch, epochs=10)
    assert info.value.completed_epochs == 2
    assert len(model.calls) == 2


@pytest.mark.parametrize("epochs, split", [(0, 0.2), (5, 1.0), (5, -0.1)])
def test_invalid_loop_settings(epochs, split):
    X, y = _data(5)
    with pytest.raises(ConfigurationError):
        TrainingOrchestrator(make_family()).train(
            FakeModel(), X, y, epochs=epochs, validation_split=split
        )


def test_batch_size_bounds():
    assert batch_size_for(1) == 1
    assert batch_size_for(20) == 20
    assert batch_size_for(500) == 32


def test_split_policies():
    assert validation_size(10, 0.25) == 2
    assert validation_size(1, 0.5) == 0
    train, val = contiguous_split(10, 0.2)
    assert train.tolist() == list(range(8))
    assert val.tolist() == [8, 9]
    train, val = shuffled_split(10, 0.3, seed=3)
    assert len(val) == 3
    assert sorted(train.tolist() + val.tolist()) == list(range(10))
    assert train.tolist() == sorted(train.tolist())
    again, _ = shuffled_split(10, 0.3, seed=3)
    assert again.tolist() == train.tolist()
