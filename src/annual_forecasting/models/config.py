# stdlib
from dataclasses import dataclass, replace
from typing import Any, Dict, Mapping, Optional, Tuple, Union, get_args
# projectlib
from annual_forecasting.config.constants import (
    DEFAULT_SEED,
    DEFAULT_VALIDATION_SPLIT,
    MAX_LOOKBACK,
    MIN_LOOKBACK,
)
from annual_forecasting.data.schemas import ModelFamilyName
from annual_forecasting.utils.errors import ConfigurationError
from annual_forecasting.utils.typing import Activation

ACTIVATIONS: Tuple[str, ...] = get_args(Activation.__value__)

@dataclass(frozen=True)
class ModelConfig(object):
    """
    Immutable hyperparameters for one training run.

    Parameters
    ----------
    family : ModelFamilyName
        Model family; tags and the ``lstm``/``mlp`` aliases are accepted
        and resolved on construction.
    lookback : int
        Window length in years.
    layer_units : Tuple[int, ...]
        Hidden sizes: stacked LSTM layers for the sequence-memory
        family, dense layers for the feed-forward family.
    dropout : float
        Dropout rate applied after each hidden layer.
    activation : Activation
        Hidden activation of the feed-forward family. The recurrent
        layers always use their built-in gates.
    learning_rate : float
        Adam step size.
    epochs : int
        Number of passes over the training windows.
    validation_split : float
        Fraction of windows held out for validation diagnostics.
    id : Optional[str]
        Identifier used by the run registry.
    label : Optional[str]
        Human-readable description of the candidate.
    seed : int
        Seed for weight initialization, shuffling and dropout.
    """
    family: ModelFamilyName
    lookback: int
    layer_units: Tuple[int, ...]
    dropout: float
    activation: Activation = "relu"
    learning_rate: float = 0.001
    epochs: int = 80
    validation_split: float = DEFAULT_VALIDATION_SPLIT
    id: Optional[str] = None
    label: Optional[str] = None
    seed: int = DEFAULT_SEED

    def __post_init__(self) -> None:
        object.__setattr__(self, "family", ModelFamilyName.parse(self.family))
        object.__setattr__(
            self, "layer_units", tuple(int(u) for u in self.layer_units)
        )

    def validate(self) -> "ModelConfig":
        """
        Check every knob, returning ``self`` for chaining.

        Raises
        ------
        ConfigurationError
            If any value is outside its accepted range.
        """
        if not MIN_LOOKBACK <= self.lookback <= MAX_LOOKBACK:
            raise ConfigurationError(
                f"lookback must be between {MIN_LOOKBACK} and "
                f"{MAX_LOOKBACK}, got {self.lookback}."
            )
        if self.epochs < 1:
            raise ConfigurationError(
                f"epochs must be positive, got {self.epochs}."
            )
        if not self.layer_units or any(u < 1 for u in self.layer_units):
            raise ConfigurationError(
                f"layer_units must be positive sizes, got "
                f"{list(self.layer_units)}."
            )
        if not 0 <= self.dropout < 1:
            raise ConfigurationError(
                f"dropout must be in [0, 1), got {self.dropout}."
            )
        if self.learning_rate <= 0:
            raise ConfigurationError(
                f"learning_rate must be positive, got {self.learning_rate}."
            )
        if not 0 <= self.validation_split < 1:
            raise ConfigurationError(
                "validation_split must be in [0, 1), got "
                f"{self.validation_split}."
            )
        if self.activation not in ACTIVATIONS:
            raise ConfigurationError(
                f"Unknown activation {self.activation!r}; expected one of "
                f"{', '.join(ACTIVATIONS)}."
            )
        return self

    def with_updates(self, **changes: Any) -> "ModelConfig":
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "family": self.family.value,
            "lookback": self.lookback,
            "layer_units": list(self.layer_units),
            "dropout": self.dropout,
            "activation": self.activation,
            "learning_rate": self.learning_rate,
            "epochs": self.epochs,
            "validation_split": self.validation_split,
            "id": self.id,
            "label": self.label,
            "seed": self.seed,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ModelConfig":
        return cls(
            family=data["family"],
            lookback=int(data["lookback"]),
            layer_units=tuple(data["layer_units"]),
            dropout=float(data["dropout"]),
            activation=data.get("activation", "relu"),
            learning_rate=float(data.get("learning_rate", 0.001)),
            epochs=int(data.get("epochs", 80)),
            validation_split=float(
                data.get("validation_split", DEFAULT_VALIDATION_SPLIT)
            ),
            id=data.get("id"),
            label=data.get("label"),
            seed=int(data.get("seed", DEFAULT_SEED)),
        )

def default_config(
        family: Union[str, ModelFamilyName],
        lookback: int,
    ) -> ModelConfig:
    """Baseline hyperparameters for a family at the given lookback."""
    family = ModelFamilyName.parse(family)
    if family is ModelFamilyName.SEQUENCE_MEMORY:
        return ModelConfig(
            family=family,
            lookback=lookback,
            layer_units=(60, 60),
            dropout=0.1,
            activation="tanh",
            learning_rate=0.001,
            epochs=80,
            validation_split=0.2,
            id="lstm-default",
            label="Default",
        )
    return ModelConfig(
        family=family,
        lookback=lookback,
        layer_units=(64, 32),
        dropout=0.2,
        activation="relu",
        learning_rate=0.001,
        epochs=80,
        validation_split=0.2,
        id="mlp-default",
        label="Default",
    )
