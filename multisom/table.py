"""
In-memory row-major table of named float64 columns
"""

from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from .errors import ConfigurationError, ShapeError


class Table:
    """Dataset with one row per record; NaN marks a missing value.

    Values live in a single C-contiguous ``(rows, columns)`` array, so
    ``data`` is a flat row-major view addressed as ``row * columns + col``.
    """

    def __init__(
        self,
        columns: Iterable[str],
        rows: int = 0,
        data: Optional[Sequence[float]] = None,
    ):
        """
        Create a table

        Args:
            columns: Ordered column names
            rows: Number of zero-filled rows (ignored if data is given)
            data: Flat row-major values or a 2D array; length must be a
                multiple of the number of columns
        """
        self._columns: List[str] = list(columns)
        if not self._columns:
            raise ConfigurationError("table must have at least one column")

        n_cols = len(self._columns)
        if data is None:
            if rows < 0:
                raise ShapeError(f"row count must not be negative, got {rows}")
            self._values = np.zeros((rows, n_cols), dtype=np.float64)
            return

        values = np.array(data, dtype=np.float64)
        if values.ndim == 2 and values.shape[1] != n_cols:
            raise ShapeError(
                f"data has {values.shape[1]} columns, expected {n_cols}"
            )
        if values.size % n_cols != 0:
            raise ShapeError(
                f"data length {values.size} is not a multiple of "
                f"columns length {n_cols}"
            )
        self._values = np.ascontiguousarray(values.reshape(-1, n_cols))

    @classmethod
    def from_dataframe(
        cls, frame: pd.DataFrame, columns: Optional[Sequence[str]] = None
    ) -> "Table":
        """Select ``columns`` (default: all numeric) from a DataFrame"""
        if columns is None:
            columns = list(frame.select_dtypes(include=[np.number]).columns)
        missing = [c for c in columns if c not in frame.columns]
        if missing:
            raise ConfigurationError(f"columns not found in data: {missing}")
        values = frame[list(columns)].apply(pd.to_numeric, errors="coerce")
        return cls(columns, data=values.to_numpy(dtype=np.float64))

    def to_dataframe(self) -> pd.DataFrame:
        return pd.DataFrame(self._values.copy(), columns=list(self._columns))

    @property
    def column_names(self) -> List[str]:
        return list(self._columns)

    @property
    def columns(self) -> int:
        return len(self._columns)

    @property
    def rows(self) -> int:
        return self._values.shape[0]

    @property
    def values(self) -> np.ndarray:
        """The ``(rows, columns)`` array, shared with the table"""
        return self._values

    @property
    def data(self) -> np.ndarray:
        """Flat row-major view of all values"""
        return self._values.reshape(-1)

    def column_index(self, name: str) -> int:
        """Index of the named column, or -1 if it does not exist"""
        try:
            return self._columns.index(name)
        except ValueError:
            return -1

    def _check(self, row: int, col: int) -> None:
        if not 0 <= row < self.rows:
            raise IndexError(f"row {row} out of range for {self.rows} rows")
        if not 0 <= col < self.columns:
            raise IndexError(f"column {col} out of range for {self.columns} columns")

    def get(self, row: int, col: int) -> float:
        self._check(row, col)
        return float(self._values[row, col])

    def set(self, row: int, col: int, value: float) -> None:
        self._check(row, col)
        self._values[row, col] = value

    def row(self, row: int) -> np.ndarray:
        """View of one row"""
        if not 0 <= row < self.rows:
            raise IndexError(f"row {row} out of range for {self.rows} rows")
        return self._values[row]

    def column(self, col: int) -> np.ndarray:
        """View of one column"""
        if not 0 <= col < self.columns:
            raise IndexError(f"column {col} out of range for {self.columns} columns")
        return self._values[:, col]

    def mean_std_dev(self, col: int) -> Tuple[float, float]:
        """Mean and population standard deviation, ignoring missing values"""
        observed = self._observed(col)
        if observed.size == 0:
            return float("nan"), float("nan")
        return float(observed.mean()), float(observed.std())

    def range(self, col: int) -> Tuple[float, float]:
        """Minimum and maximum, ignoring missing values"""
        observed = self._observed(col)
        if observed.size == 0:
            return float("inf"), float("-inf")
        return float(observed.min()), float(observed.max())

    def _observed(self, col: int) -> np.ndarray:
        values = self.column(col)
        return values[~np.isnan(values)]

    def normalize_column(self, col: int, normalizer) -> None:
        self._values[:, col] = normalizer.normalize(self.column(col))

    def denormalize_column(self, col: int, normalizer) -> None:
        self._values[:, col] = normalizer.denormalize(self.column(col))

    def missing_rows(self) -> np.ndarray:
        """Boolean mask of rows with at least one missing value"""
        return np.isnan(self._values).any(axis=1)

    def copy(self) -> "Table":
        return Table(self._columns, data=self._values)

    def __repr__(self) -> str:
        return f"Table(columns={self._columns!r}, rows={self.rows})"
