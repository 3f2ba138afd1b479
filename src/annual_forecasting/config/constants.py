# Training defaults shared by both model families
DEFAULT_EPOCHS = 100
DEFAULT_VALIDATION_SPLIT = 0.2
MAX_BATCH_SIZE = 32
DEFAULT_SEED = 42
# Window bounds accepted by model configurations
MIN_LOOKBACK = 1
MAX_LOOKBACK = 20
# Window bounds used when generating tuning candidates
TUNING_MIN_LOOKBACK = 2
TUNING_MAX_LOOKBACK = 10
DEFAULT_LOOKBACK = 3
# Display precision
METRIC_DECIMALS = 4
EXTRAPOLATED_DECIMALS = 2
# Features grown by linear extrapolation while forecasting
CUMULATIVE_FEATURES = ("population",)
