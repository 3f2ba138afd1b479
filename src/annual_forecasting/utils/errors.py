class ForecastingError(Exception):
    """Base class for fatal pipeline errors."""


class ConfigurationError(ForecastingError, ValueError):
    """
    Raised when options or a model configuration cannot be honoured.

    Examples are an unknown model family, a non-positive lookback or
    epoch count, an empty or duplicated feature list, or a non-positive
    forecast horizon.
    """


class InsufficientDataError(ForecastingError):
    """Raised when too few rows survive cleaning to build a window."""


class ModelUnavailableError(ForecastingError, RuntimeError):
    """Raised when a forecast is requested without model and metadata."""


class TrainingCancelledError(ForecastingError):
    """Raised at an epoch boundary after cancellation was requested."""

    def __init__(self, completed_epochs: int) -> None:
        super().__init__(
            f"Training cancelled after {completed_epochs} completed epoch(s)."
        )
        self.completed_epochs = completed_epochs
