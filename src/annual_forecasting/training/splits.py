# stdlib
import math
from typing import Callable, Tuple
# thirdpartylib
import numpy as np
from numpy.typing import NDArray

type IndexArray = NDArray[np.int64]
# (n_windows, validation_split, seed) -> (train indices, validation indices)
type SplitPolicy = Callable[[int, float, int], Tuple[IndexArray, IndexArray]]

def validation_size(n: int, validation_split: float) -> int:
    """
    Number of windows held out, ``floor(n * validation_split)``.

    At least one window is always left for training.
    """
    if n <= 1:
        return 0
    return min(math.floor(n * validation_split), n - 1)

def contiguous_split(
        n: int,
        validation_split: float,
        seed: int = 0,
    ) -> Tuple[IndexArray, IndexArray]:
    """Hold out the most recent windows; ``seed`` is unused."""
    n_val = validation_size(n, validation_split)
    indices = np.arange(n, dtype=np.int64)
    return indices[:n - n_val], indices[n - n_val:]

def shuffled_split(
        n: int,
        validation_split: float,
        seed: int = 0,
    ) -> Tuple[IndexArray, IndexArray]:
    """
    Hold out a seeded random subset of windows.

    Both index arrays are returned in ascending order so chronological
    order is preserved within each part.
    """
    n_val = validation_size(n, validation_split)
    order = np.random.default_rng(seed).permutation(n).astype(np.int64)
    return np.sort(order[n_val:]), np.sort(order[:n_val])
