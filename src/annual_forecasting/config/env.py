# stdlib
import os
from pathlib import Path
from typing import Optional, cast
# thirdpartylib
from dotenv import load_dotenv
# projectlib
from annual_forecasting.utils.typing import Verbosity

def fetch_var(name: str, default: Optional[str] = None) -> str:
    """
    Fetch an environment variable, falling back to ``default``.

    Raises
    ------
    RuntimeError
        If the variable is unset or empty and no default is given.
    """
    value = os.environ.get(name, "").strip()
    if value:
        return value
    if default is not None:
        return default
    if name in os.environ:
        raise RuntimeError(f"Environment variable '{name}' is empty.")
    raise RuntimeError(
        f"Environment variable '{name}' is not set. "
        "Create a .env file or define the variable."
    )

def fetch_verbosity(name: str, default: Verbosity = 1) -> Verbosity:
    """Fetch a verbosity level (0, 1 or 2) from the environment."""
    raw = fetch_var(name, str(default))
    try:
        level = int(raw)
    except ValueError as e:
        raise RuntimeError(
            f"Environment variable '{name}' must be 0, 1 or 2, got {raw!r}."
        ) from e
    if level not in (0, 1, 2):
        raise RuntimeError(
            f"Environment variable '{name}' must be 0, 1 or 2, got {level}."
        )
    return cast(Verbosity, level)


# Load env variables
load_dotenv()

MODEL_STORE_DIR = Path(
    fetch_var("FORECAST_MODEL_DIR", str(Path.cwd() / "models"))
)
LOG_DIR = Path(fetch_var("FORECAST_LOG_DIR", str(Path.cwd())))
VERBOSITY = fetch_verbosity("FORECAST_VERBOSITY", 1)
