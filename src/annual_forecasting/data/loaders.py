# stdlib
from typing import List, Optional, Sequence
# thirdpartylib
import polars as pl
# projectlib
from annual_forecasting.utils.paths import validate_address
from annual_forecasting.utils.typing import Address, Row

SUPPORTED_EXTENSIONS = (".csv", ".parquet")

def read_frame(
        source: Address,
        columns: Optional[Sequence[str]] = None,
    ) -> pl.DataFrame:
    """
    Read a CSV or Parquet file into a polars DataFrame.

    CSV cells are read as text so that validation, not the reader,
    decides what counts as numeric.

    Raises
    ------
    FileNotFoundError
        If ``source`` does not exist.
    ValueError
        If the file extension is not supported.
    """
    path = validate_address(source)
    suffix = path.suffix.lower()
    if suffix == ".csv":
        lf = pl.scan_csv(path, infer_schema=False)
    elif suffix == ".parquet":
        lf = pl.scan_parquet(path)
    else:
        raise ValueError(
            f"Unsupported file type '{path.suffix}'; expected one of "
            f"{', '.join(SUPPORTED_EXTENSIONS)}."
        )
    if columns is not None:
        lf = lf.select(list(columns))
    return lf.collect()

def load_rows(
        source: Address,
        columns: Optional[Sequence[str]] = None,
    ) -> List[Row]:
    """Read a dataset file as an ordered list of raw row mappings."""
    return read_frame(source, columns).to_dicts()
