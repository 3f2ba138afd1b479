# stdlib
from typing import Sequence
# thirdpartylib
from torch import Tensor
from torch.nn import (
    Dropout,
    Identity,
    LSTM,
    Linear,
    Module,
    ModuleList,
    ReLU,
    Sequential,
    Sigmoid,
    Tanh,
)


class LSTMRegressor(Module):
    """
    Stacked LSTM regressor for sequence-to-one prediction tasks.

    Each recurrent layer may have its own hidden size, so the layers are
    kept as separate ``LSTM`` modules rather than one multi-layer LSTM.
    Dropout is applied to the output sequence of every layer. The final
    time step's hidden state of the last layer is projected to a single
    scalar.

    Parameters
    ----------
    input_size : int
        Number of input features per time step.
    layer_units : Sequence[int]
        Hidden size of each stacked LSTM layer, input side first.
    dropout : float, default 0.0
        Dropout rate applied after each LSTM layer.
    """
    def __init__(
            self,
            input_size: int,
            layer_units: Sequence[int],
            dropout: float = 0.0,
        ) -> None:
        super().__init__()  # pyright: ignore[reportUnknownMemberType]
        # Recurrent layers that process the input sequence in turn
        sizes = [input_size, *layer_units]
        self.lstms = ModuleList(
            LSTM(input_size=i, hidden_size=o, batch_first=True)
            for i, o in zip(sizes[:-1], sizes[1:])
        )
        self.dropout = Dropout(dropout)
        # Linear projection from final hidden state to scalar output
        self.fc = Linear(sizes[-1], 1)

    def forward(self, x: Tensor) -> Tensor:
        """
        Forward pass of the LSTM regressor.

        Parameters
        ----------
        x : torch.Tensor
            Input tensor of shape
            ``(batch_size, sequence_length, input_size)``.

        Returns
        -------
        torch.Tensor
            Output tensor of shape ``(batch_size, 1)``.
        """
        out = x
        for lstm in self.lstms:
            out, _ = lstm(out)
            out = self.dropout(out)
        # Extract hidden state from the final time step
        last = out[:, -1, :]
        return self.fc(last)


_ACTIVATION_LAYERS = {
    "relu": ReLU,
    "tanh": Tanh,
    "sigmoid": Sigmoid,
    "linear": Identity,
}


class MLPRegressor(Module):
    """
    Feed-forward regressor over a flattened window.

    The ``(lookback, input_size)`` window is flattened to a single
    vector, passed through dense hidden layers (activation followed by
    dropout) and projected to a scalar.

    Parameters
    ----------
    lookback : int
        Window length.
    input_size : int
        Number of input features per time step.
    layer_units : Sequence[int]
        Size of each hidden dense layer.
    dropout : float, default 0.0
        Dropout rate applied after each hidden layer.
    activation : str, default "relu"
        One of ``relu``, ``tanh``, ``sigmoid`` or ``linear``.
    """
    def __init__(
            self,
            lookback: int,
            input_size: int,
            layer_units: Sequence[int],
            dropout: float = 0.0,
            activation: str = "relu",
        ) -> None:
        super().__init__()  # pyright: ignore[reportUnknownMemberType]
        layers: list[Module] = []
        width = lookback * input_size
        for units in layer_units:
            layers += [
                Linear(width, units),
                _ACTIVATION_LAYERS[activation](),
                Dropout(dropout),
            ]
            width = units
        layers.append(Linear(width, 1))
        self.net = Sequential(*layers)

    def forward(self, x: Tensor) -> Tensor:
        """Map ``(batch, lookback, input_size)`` to ``(batch, 1)``."""
        return self.net(x.flatten(start_dim=1))
