# stdlib
from typing import (
    Any,
    Callable,
    Dict,
    Literal,
    Mapping,
    Sequence,
    Union,
)
from pathlib import Path
# thirdpartylib
import numpy as np
from numpy.typing import NDArray

# Verbosity for classes, functions, methods, etc.
type Verbosity = Literal[0, 1, 2]
# Mode for opening documents
type ReadMode = Literal["r"]
type WriteMode = Literal["w", "x"]
type OpenMode = Literal[ReadMode, WriteMode]
# Type alias for file/folder paths
type Address = Union[str, Path]
# A raw or cleaned record: column name -> value
type Row = Dict[str, Any]
type RawRows = Sequence[Mapping[str, Any]]
# Numeric arrays
type FloatArray = NDArray[np.float64]
type ArrayLike1D = Union[Sequence[float], FloatArray]
# Hidden activations of the feed-forward family
type Activation = Literal["relu", "tanh", "sigmoid", "linear"]
# Batched prediction: (model, X) -> one value per window
type PredictFn = Callable[[Any, FloatArray], Sequence[float]]
