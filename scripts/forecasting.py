# stdlib
import argparse
from pathlib import Path
from typing import List, Literal, Optional, Sequence
# thirdpartylib
import pandas as pd
# projectlib
from annual_forecasting.config.env import LOG_DIR, MODEL_STORE_DIR, VERBOSITY
from annual_forecasting.data.loaders import load_rows
from annual_forecasting.data.schemas import ModelFamilyName, PreparationOptions
from annual_forecasting.forecasting.forecaster import forecast
from annual_forecasting.models.config import default_config
from annual_forecasting.models.families import get_family
from annual_forecasting.models.io import ModelStore
from annual_forecasting.preprocessing.aggregation import aggregate_by_year
from annual_forecasting.training.orchestrator import EpochProgress
from annual_forecasting.training.session import TrainingSession, run_training
from annual_forecasting.tuning.grid import (
    build_grid,
    clamp_lookback,
    run_grid,
    runs_frame,
)
from annual_forecasting.utils.logging import Logger
from annual_forecasting.utils.paths import validate_address
from annual_forecasting.utils.typing import Address, Verbosity

MAX_HORIZON = 10

def progress_printer(log: Logger, every: int = 10):
    """Build an epoch callback that logs every ``every``-th epoch."""
    def on_epoch(progress: EpochProgress) -> None:
        if progress.epoch % every and progress.epoch != progress.total_epochs:
            return
        run = progress.config.id if progress.config is not None else "run"
        log(
            f"[{run}] epoch {progress.epoch}/{progress.total_epochs} "
            f"loss {progress.logs.loss:.6f} mae {progress.logs.mae:.6f}",
            1,
        )
    return on_epoch

def forecast_pipeline(
        data: Address,
        output_dir: Address,
        *,
        target: str,
        features: Sequence[str],
        year_key: str = "year",
        family: Literal["lstm", "mlp"] = "lstm",
        lookback: int = 3,
        horizon: int = 5,
        tune: bool = False,
        aggregate: bool = False,
        model_dir: Optional[Address] = None,
        verbosity: Verbosity = 1,
        write_log: bool = False,
    ) -> None:
    """
    Train (or tune), persist and forecast a yearly series end to end.

    Reads the dataset, optionally sums rows sharing a year, trains the
    default configuration of ``family`` or runs its tuning grid and
    keeps the best run, saves the model to the family's slot and writes
    the forecast, fitted series, training history and metrics tables to
    ``output_dir``.

    Parameters
    ----------
    data : Address
        CSV or Parquet file with one row per year (or several, with
        ``aggregate``).
    output_dir : Address
        Directory receiving CSV summaries and the log file.
    target : str
        Column to forecast.
    features : Sequence[str]
        Input columns; may include ``target``.
    year_key : str, default "year"
        Year column.
    family : {"lstm", "mlp"}, default "lstm"
        Model family.
    lookback : int, default 3
        Window length in years.
    horizon : int, default 5
        Number of years to forecast, clamped to 1..10.
    tune : bool, default False
        Run the three-candidate grid instead of a single default run.
    aggregate : bool, default False
        Sum numeric columns of rows sharing a year before training.
    model_dir : Optional[Address], default None
        Model store directory; ``FORECAST_MODEL_DIR`` if None.
    verbosity : Verbosity, default 1
        Logging verbosity level.
    write_log : bool, default False
        If ``True``, write log output to disk instead of stdout.
    """
    output_dir = validate_address(output_dir, mkdir=True)
    log = Logger(
        verbose=verbosity,
        log_dir=output_dir,
        write_log=write_log,
        name="pipeline",
    )
    family_name = ModelFamilyName.parse(family)
    rows = load_rows(data)
    log(f"Read {len(rows)} rows from {data}.", 1)
    if aggregate:
        rows = aggregate_by_year(rows, year_key)
        log(f"Aggregated to {len(rows)} yearly rows.", 1)
    options = PreparationOptions(
        year_key=year_key,
        target=target,
        features=tuple(features),
    )
    on_epoch = progress_printer(log)
    session: Optional[TrainingSession]
    if tune:
        grid = build_grid(family_name, lookback)
        result = run_grid(rows, grid, options, on_epoch=on_epoch, logger=log)
        runs_frame(result).to_csv(output_dir / "tuning_runs.csv", index=False)
        session = result.best_session
        if session is None:
            log.warn("Every tuning candidate failed; nothing to forecast.")
            return
        log(f"Best run: {result.best_run_id}.", 1)
    else:
        config = default_config(family_name, lookback)
        session = run_training(
            rows, options, config, on_epoch=on_epoch, logger=log
        )
    store = ModelStore(
        model_dir if model_dir is not None else MODEL_STORE_DIR,
        family_name,
        logger=log.child("store"),
    )
    store.save(session.model, session.metadata)
    # Forecast and persist summaries
    horizon = min(MAX_HORIZON, max(1, horizon))
    predicted = forecast(
        session.model,
        session.metadata,
        horizon,
        get_family(family_name).predict,
    )
    pd.DataFrame(predicted).to_csv(output_dir / "forecast.csv", index=False)
    pd.DataFrame(session.fitted_series).to_csv(
        output_dir / "fitted_series.csv", index=False
    )
    pd.DataFrame(session.training_history.to_list()).to_csv(
        output_dir / "training_history.csv", index=False
    )
    summary: List[dict] = [
        {
            "model": family_name.short_name,
            **session.metrics.to_dict(),
            **session.preparation.to_dict(),
        }
    ]
    pd.DataFrame(summary).to_csv(
        output_dir / "metrics_summary.csv", index=False
    )
    log("Completed Metrics Summary:", 1)
    metrics_str = ", ".join(
        f"{k}: {v:.4f}" for k, v in session.metrics.to_dict().items()
    )
    log(f"[{family_name.short_name}] {metrics_str}", 1)
    for row in predicted:
        log(f"{row[year_key]}: {row[target]}", 1)
    log(f"Artifacts saved in: {output_dir}", 1)

def parse_args() -> argparse.Namespace:
    """Parse input arguments for Forecasting."""
    parser = argparse.ArgumentParser(
        description="Run yearly Forecasting pipeline",
    )
    parser.add_argument("data", type=Path, help="CSV or Parquet dataset.")
    parser.add_argument(
        "--target",
        type=str,
        required=True,
        help="Column to forecast.",
    )
    parser.add_argument(
        "--features",
        type=str,
        nargs="+",
        default=None,
        help="Input columns; defaults to the target alone.",
    )
    parser.add_argument(
        "--year_key",
        type=str,
        default="year",
        help="Name of the year column.",
    )
    parser.add_argument(
        "--family",
        type=str,
        default="lstm",
        choices=("lstm", "mlp"),
        help="Model family to train.",
    )
    parser.add_argument(
        "--lookback",
        type=int,
        default=3,
        help="Window length in years (clamped to 2..10).",
    )
    parser.add_argument(
        "--horizon",
        type=int,
        default=5,
        help="Years to forecast (clamped to 1..10).",
    )
    parser.add_argument(
        "--tune",
        action="store_true",
        help="Run the hyperparameter grid and keep the best run.",
    )
    parser.add_argument(
        "--aggregate",
        action="store_true",
        help="Sum numeric columns of rows that share a year.",
    )
    parser.add_argument(
        "--verbosity",
        type=int,
        default=VERBOSITY,
        choices=(0, 1, 2),
        help=(
            "Verbosity level: "
            "0 = silent, "
            "1 = info, "
            "2 = debug"
        ),
    )
    parser.add_argument(
        "--write_log",
        action="store_true",
        help="Whether to store message/info outputs to a log file.",
    )

    return parser.parse_args()

def main() -> None:
    """
    Entry point for running the forecasting pipeline from the command
    line.

    Outputs are written under ``FORECAST_LOG_DIR/outputs/forecasting``
    and the trained model under ``FORECAST_MODEL_DIR``.
    """
    # Define directory for model and data outputs
    output_dir = LOG_DIR / "outputs" / "forecasting"
    # Parse input arguments
    args = parse_args()
    # Train, forecast and summarise the selected family
    forecast_pipeline(
        data=args.data,
        output_dir=output_dir,
        target=args.target,
        features=args.features or [args.target],
        year_key=args.year_key,
        family=args.family,
        lookback=clamp_lookback(args.lookback),
        horizon=args.horizon,
        tune=args.tune,
        aggregate=args.aggregate,
        verbosity=args.verbosity,
        write_log=args.write_log,
    )

if __name__ == "__main__":
    main()
