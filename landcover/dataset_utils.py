"""Train/test partitioning of labeled feature tables."""

from typing import Optional, Tuple

import numpy as np
import pandas as pd

from landcover.cste import GeneralConfig, SamplingConfig, SplitConfig
from landcover.errors import InvalidInput
from landcover.logger import get_logger

log = get_logger("dataset_utils")


def add_random_column(
    table: pd.DataFrame,
    seed: Optional[int] = GeneralConfig.RANDOM_SEED,
    column: str = SplitConfig.RANDOM_COLUMN,
) -> pd.DataFrame:
    """
    Return a copy of `table` with a uniform [0, 1) random key per row.

    Args:
        table: Feature table
        seed: Random seed (same seed + same row order = same keys)
        column: Name of the key column

    Returns:
        New DataFrame with the extra column
    """
    rng = np.random.default_rng(seed)
    out = table.copy()
    out[column] = rng.random(len(out))
    return out


def split_train_test(
    table: pd.DataFrame,
    threshold: float = SplitConfig.TRAIN_FRACTION,
    seed: Optional[int] = GeneralConfig.RANDOM_SEED,
    column: str = SplitConfig.RANDOM_COLUMN,
    require_non_empty: bool = False,
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """
    Split a feature table into disjoint train and test subsets.

    Rows whose random key is < `threshold` go to train, the others to test.
    An existing `column` is reused, otherwise keys are drawn with `seed`.

    Args:
        table: Feature table
        threshold: Split threshold in [0, 1] (expected train fraction)
        seed: Random seed used when the key column must be created
        column: Random key column name
        require_non_empty: Raise instead of warning when a side is empty

    Returns:
        Tuple of (train, test) DataFrames, both carrying the key column

    Raises:
        InvalidInput: If threshold is outside [0, 1], or a partition is empty
                      while `require_non_empty` is set
    """
    if not 0.0 <= threshold <= 1.0:
        raise InvalidInput(f"Split threshold must be in [0, 1], got {threshold}")

    keyed = table if column in table.columns else add_random_column(table, seed, column)

    #! Strict '<' for train and '>=' for test: disjoint and exhaustive
    in_train = keyed[column] < threshold
    train = keyed[in_train].copy()
    test = keyed[~in_train].copy()

    log.info(f"Train samples: {len(train)}, Test samples: {len(test)} (threshold={threshold})")

    for name, part in (("train", train), ("test", test)):
        if len(part) == 0:
            msg = f"Empty {name} partition (threshold={threshold}, rows={len(keyed)})"
            if require_non_empty:
                raise InvalidInput(msg)
            log.warning(msg)

    return train, test


def describe_split(
    train: pd.DataFrame,
    test: pd.DataFrame,
    label_field: str = SamplingConfig.LABEL_FIELD,
) -> pd.DataFrame:
    """Per-class row counts of both partitions (columns: train, test, total)."""
    counts = pd.DataFrame({
        "train": train[label_field].value_counts(),
        "test": test[label_field].value_counts(),
    }).fillna(0).astype(int)
    counts["total"] = counts["train"] + counts["test"]
    return counts.sort_index()
