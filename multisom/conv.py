"""
Conversion between class labels and one-hot tables
"""

from typing import Any, Dict, Hashable, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from .table import Table


def _is_missing(label: Any, no_data: Optional[Hashable]) -> bool:
    if no_data is not None and label == no_data:
        return True
    return bool(np.ndim(label) == 0 and pd.isna(label))


def classes_to_indices(
    labels: Sequence[Hashable], no_data: Optional[Hashable] = None
) -> Tuple[List[str], np.ndarray]:
    """
    Map labels to class indices in order of first appearance

    Missing labels (``no_data`` or NaN) get index -1.

    Returns:
        (class names, index per label)
    """
    classes: List[str] = []
    lookup: Dict[Hashable, int] = {}
    indices = np.empty(len(labels), dtype=np.int64)
    for i, label in enumerate(labels):
        if _is_missing(label, no_data):
            indices[i] = -1
            continue
        if label not in lookup:
            lookup[label] = len(classes)
            classes.append(str(label))
        indices[i] = lookup[label]
    return classes, indices


def classes_to_table(
    labels: Sequence[Hashable],
    columns: Optional[Sequence[str]] = None,
    no_data: Optional[Hashable] = None,
) -> Table:
    """
    One-hot encode class labels

    Args:
        labels: One label per row
        columns: Classes to encode, in column order; defaults to the
            classes in order of first appearance
        no_data: Label marking a missing class

    Returns:
        Table with one column per class. Rows with a missing label, or a
        label not among ``columns``, are all NaN.
    """
    if columns is None:
        columns, indices = classes_to_indices(labels, no_data)
    else:
        columns = list(columns)
        position = {name: i for i, name in enumerate(columns)}
        indices = np.array(
            [
                -1 if _is_missing(label, no_data) else position.get(str(label), -1)
                for label in labels
            ],
            dtype=np.int64,
        )

    table = Table(columns, rows=len(labels))
    values = table.values
    known = indices >= 0
    values[~known] = np.nan
    values[np.flatnonzero(known), indices[known]] = 1.0
    return table


def table_to_classes(table: Table) -> Tuple[List[str], np.ndarray]:
    """
    Class per row as the index of its largest value

    Ties resolve to the first column; all-NaN rows give -1.

    Returns:
        (column names, class index per row)
    """
    values = table.values
    empty = np.isnan(values).all(axis=1)
    filled = np.where(np.isnan(values), -np.inf, values)
    classes = np.argmax(filled, axis=1).astype(np.int64)
    classes[empty] = -1
    return table.column_names, classes
