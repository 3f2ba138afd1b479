# stdlib
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Union
# thirdpartylib
import numpy as np
import torch
import torch.nn as nn
from torch.utils.data import DataLoader, TensorDataset
# projectlib
from annual_forecasting.data.schemas import ModelFamilyName
from annual_forecasting.models.config import ModelConfig
from annual_forecasting.models.forecasting import LSTMRegressor, MLPRegressor
from annual_forecasting.training.splits import (
    SplitPolicy,
    contiguous_split,
    shuffled_split,
)
from annual_forecasting.utils.typing import FloatArray

type RawLog = Dict[str, float]

@dataclass
class CompiledModel(object):
    """
    A torch module bundled with everything needed to keep training it.

    The orchestrator, forecaster and persistence gateway treat this as
    an opaque handle and only ever pass it back to its family.
    """
    module: nn.Module
    optimizer: torch.optim.Optimizer
    loss_fn: nn.Module
    generator: torch.Generator
    config: ModelConfig
    feature_count: int

def _to_tensor(values: FloatArray) -> torch.Tensor:
    return torch.tensor(np.asarray(values), dtype=torch.float32)

def _compile(
        module: nn.Module,
        config: ModelConfig,
        feature_count: int,
    ) -> CompiledModel:
    optimizer = torch.optim.Adam(module.parameters(), lr=config.learning_rate)
    generator = torch.Generator().manual_seed(config.seed)
    return CompiledModel(
        module=module,
        optimizer=optimizer,
        loss_fn=nn.MSELoss(),
        generator=generator,
        config=config,
        feature_count=feature_count,
    )

def build_sequence_memory(
        lookback: int,
        feature_count: int,
        config: ModelConfig,
    ) -> CompiledModel:
    """Stacked LSTM layers followed by a one-unit dense output."""
    torch.manual_seed(config.seed)
    module = LSTMRegressor(
        input_size=feature_count,
        layer_units=config.layer_units,
        dropout=config.dropout,
    )
    return _compile(module, config, feature_count)

def build_feed_forward(
        lookback: int,
        feature_count: int,
        config: ModelConfig,
    ) -> CompiledModel:
    """Dense layers over the flattened window."""
    torch.manual_seed(config.seed)
    module = MLPRegressor(
        lookback=lookback,
        input_size=feature_count,
        layer_units=config.layer_units,
        dropout=config.dropout,
        activation=config.activation,
    )
    return _compile(module, config, feature_count)

def train_epoch(
        model: CompiledModel,
        X_train: FloatArray,
        y_train: FloatArray,
        X_val: Optional[FloatArray],
        y_val: Optional[FloatArray],
        batch_size: int,
    ) -> RawLog:
    """
    Run one pass of mini-batch gradient descent.

    Returns
    -------
    RawLog
        Mean batch ``loss`` (MSE) and ``mae`` over the training windows,
        plus ``val_loss`` and ``val_mae`` when validation windows are
        given.
    """
    module = model.module
    loader = DataLoader(
        TensorDataset(_to_tensor(X_train), _to_tensor(y_train).unsqueeze(1)),
        batch_size=batch_size,
        shuffle=True,
        generator=model.generator,
    )
    module.train()
    total_loss = 0.0
    total_abs = 0.0
    seen = 0
    for xb, yb in loader:
        model.optimizer.zero_grad()
        pred = module(xb)
        loss = model.loss_fn(pred, yb)
        loss.backward()
        model.optimizer.step()  # pyright: ignore[reportUnknownMemberType]
        # Weight batch means by batch size to average over windows
        count = xb.shape[0]
        total_loss += float(loss.item()) * count
        total_abs += float((pred.detach() - yb).abs().sum().item())
        seen += count
    log: RawLog = {"loss": total_loss / seen, "mae": total_abs / seen}
    if X_val is not None and y_val is not None and len(y_val) > 0:
        module.eval()
        with torch.no_grad():
            xv = _to_tensor(X_val)
            yv = _to_tensor(y_val).unsqueeze(1)
            pred = module(xv)
            log["val_loss"] = float(model.loss_fn(pred, yv).item())
            log["val_mae"] = float((pred - yv).abs().mean().item())
    return log

def predict(model: CompiledModel, X: FloatArray) -> List[float]:
    """Predict one normalized value per window, in input order."""
    module = model.module
    module.eval()
    with torch.no_grad():
        out = module(_to_tensor(X))
    return [float(v) for v in out.reshape(-1).tolist()]

@dataclass(frozen=True)
class ModelFamily(object):
    """
    Build/train/predict capability of one model family.

    Families are plain strategy objects selected by tag, so the
    orchestrator, tuner and forecaster never branch on the family.
    """
    name: ModelFamilyName
    build: Callable[[int, int, ModelConfig], Any]
    train_epoch: Callable[..., RawLog]
    predict: Callable[[Any, FloatArray], List[float]]
    split_policy: SplitPolicy

FAMILIES: Dict[ModelFamilyName, ModelFamily] = {
    ModelFamilyName.SEQUENCE_MEMORY: ModelFamily(
        name=ModelFamilyName.SEQUENCE_MEMORY,
        build=build_sequence_memory,
        train_epoch=train_epoch,
        predict=predict,
        split_policy=contiguous_split,
    ),
    ModelFamilyName.FEED_FORWARD: ModelFamily(
        name=ModelFamilyName.FEED_FORWARD,
        build=build_feed_forward,
        train_epoch=train_epoch,
        predict=predict,
        split_policy=shuffled_split,
    ),
}

def get_family(tag: Union[str, ModelFamilyName]) -> ModelFamily:
    """
    Look up a family by tag or alias.

    Raises
    ------
    ConfigurationError
        If the tag names no registered family.
    """
    return FAMILIES[ModelFamilyName.parse(tag)]
