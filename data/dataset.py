"""
Dataset Data Structure

This module defines the in-memory tabular dataset that is passed by reference
through every stage of the model-selection pipeline.
"""

from dataclasses import dataclass
from typing import Optional, List, Sequence, Tuple, Union
import numpy as np
import pandas as pd
import warnings

from .exceptions import InvalidDatasetError


NUMERIC = 'numeric'
NOMINAL = 'nominal'


@dataclass(frozen=True)
class Attribute:
    """
    Metadata for one column of a dataset.

    Attributes:
        name: Column name
        kind: 'numeric' or 'nominal'
        values: Declared value domain for nominal attributes (empty for numeric)
    """
    name: str
    kind: str = NUMERIC
    values: Tuple[str, ...] = ()

    def is_nominal(self) -> bool:
        return self.kind == NOMINAL


class Dataset:
    """
    Tabular dataset with a designated label column.

    Holds:
    - Feature matrix, shape (n_rows, n_features), stored as floats
    - Label vector, shape (n_rows,)
    - Attribute metadata, fixed at construction

    The arrays are read-only. Filters never modify a Dataset in place; they
    build a new one through with_features() or subset().

    Attributes:
        name (str): Dataset name (usually the source file stem)
        label_index (int): Position of the label among all attributes
    """

    def __init__(
        self,
        X: Union[np.ndarray, Sequence[Sequence[float]]],
        y: Union[np.ndarray, Sequence],
        feature_names: Optional[List[str]] = None,
        label_name: str = 'class',
        attributes: Optional[List[Attribute]] = None,
        label_attribute: Optional[Attribute] = None,
        label_index: Optional[int] = None,
        name: str = 'dataset'
    ):
        """
        Initialize a dataset.

        Args:
            X: Feature matrix (n_rows, n_features)
            y: Label vector (n_rows,)
            feature_names: Feature names (defaults to feature_0, feature_1, ...)
            label_name: Name of the label column
            attributes: Feature metadata (defaults to all numeric)
            label_attribute: Label metadata (defaults to nominal over observed labels)
            label_index: Position of the label among all attributes (default: last)
            name: Dataset name

        Raises:
            InvalidDatasetError: If shapes or metadata are inconsistent
        """
        X = np.array(X, dtype=float)
        y = np.array(y)

        if X.ndim == 1 and X.size == 0:
            X = X.reshape(0, len(feature_names) if feature_names else 0)
        if X.ndim != 2:
            raise InvalidDatasetError(f"{name}: feature matrix must be 2-D, got shape {X.shape}")
        if y.ndim != 1:
            raise InvalidDatasetError(f"{name}: label vector must be 1-D, got shape {y.shape}")
        if len(X) != len(y):
            raise InvalidDatasetError(
                f"{name}: {len(X)} feature rows but {len(y)} labels"
            )

        n_features = X.shape[1]
        if feature_names is None:
            feature_names = [f'feature_{i}' for i in range(n_features)]
        if len(feature_names) != n_features:
            raise InvalidDatasetError(
                f"{name}: {len(feature_names)} feature names for {n_features} columns"
            )
        if attributes is None:
            attributes = [Attribute(str(n)) for n in feature_names]
        if len(attributes) != n_features:
            raise InvalidDatasetError(
                f"{name}: {len(attributes)} attribute descriptions for {n_features} columns"
            )

        if label_index is None:
            label_index = n_features
        if not 0 <= label_index <= n_features:
            raise InvalidDatasetError(
                f"{name}: label index {label_index} out of range for {n_features + 1} attributes"
            )

        if label_attribute is None:
            observed = tuple(str(v) for v in pd.unique(y))
            label_attribute = Attribute(str(label_name), NOMINAL, observed)

        X.setflags(write=False)
        y.setflags(write=False)

        self._X = X
        self._y = y
        self._feature_names = [str(n) for n in feature_names]
        self._attributes = list(attributes)
        self._label_attribute = label_attribute
        self.label_name = str(label_name)
        self.label_index = int(label_index)
        self.name = str(name)

    @classmethod
    def from_frame(
        cls,
        df: pd.DataFrame,
        label_column: Optional[Union[str, int]] = None,
        name: str = 'dataset',
        label_values: Optional[Sequence[str]] = None
    ) -> 'Dataset':
        """
        Build a dataset from a DataFrame.

        Non-numeric feature columns are encoded as integer codes and
        recorded as nominal attributes. Rows with a missing label are
        dropped (with a warning).

        Args:
            df: Source frame, one column per attribute
            label_column: Label column name or position (default: last column)
            name: Dataset name
            label_values: Declared label domain, in order

        Returns:
            Dataset
        """
        if df.shape[1] < 1:
            raise InvalidDatasetError(f"{name}: no columns found")

        columns = list(df.columns)
        if label_column is None:
            label_pos = len(columns) - 1
        elif isinstance(label_column, int) and label_column not in columns:
            label_pos = label_column if label_column >= 0 else len(columns) + label_column
            if not 0 <= label_pos < len(columns):
                raise InvalidDatasetError(f"{name}: label index {label_column} out of range")
        else:
            if label_column not in columns:
                raise InvalidDatasetError(f"{name}: label column '{label_column}' not found")
            label_pos = columns.index(label_column)

        label_col = columns[label_pos]
        missing_label = df[label_col].isna()
        if missing_label.any():
            warnings.warn(f"{name}: dropping {int(missing_label.sum())} rows with missing label")
            df = df.loc[~missing_label]

        feature_cols = [c for c in columns if c != label_col]
        attributes = []
        matrix = []
        for col in feature_cols:
            series = df[col]
            if pd.api.types.is_numeric_dtype(series) and not pd.api.types.is_bool_dtype(series):
                attributes.append(Attribute(str(col)))
                matrix.append(series.to_numpy(dtype=float))
            else:
                categorical = pd.Categorical(series)
                codes = categorical.codes.astype(float)
                codes[codes < 0] = np.nan
                attributes.append(Attribute(
                    str(col), NOMINAL, tuple(str(v) for v in categorical.categories)
                ))
                matrix.append(codes)

        X = np.column_stack(matrix) if matrix else np.empty((len(df), 0))
        y = df[label_col].to_numpy()

        if label_values is None:
            label_values = tuple(str(v) for v in pd.unique(y))
        label_attribute = Attribute(str(label_col), NOMINAL, tuple(label_values))

        return cls(
            X, y,
            feature_names=[str(c) for c in feature_cols],
            label_name=str(label_col),
            attributes=attributes,
            label_attribute=label_attribute,
            label_index=label_pos,
            name=name
        )

    @property
    def X(self) -> np.ndarray:
        return self._X

    @property
    def y(self) -> np.ndarray:
        return self._y

    @property
    def feature_names(self) -> List[str]:
        return list(self._feature_names)

    @property
    def attributes(self) -> List[Attribute]:
        return list(self._attributes)

    @property
    def label_attribute(self) -> Attribute:
        return self._label_attribute

    @property
    def n_rows(self) -> int:
        return self._X.shape[0]

    @property
    def n_features(self) -> int:
        return self._X.shape[1]

    @property
    def n_attributes(self) -> int:
        """Number of attributes including the label."""
        return self.n_features + 1

    @property
    def classes(self) -> np.ndarray:
        """Distinct label values in order of first appearance."""
        return pd.unique(self._y)

    def class_counts(self) -> pd.Series:
        """Number of rows per label value."""
        return pd.Series(self._y).value_counts(sort=False)

    def is_empty(self) -> bool:
        return self.n_rows == 0

    def subset(self, indices: Union[np.ndarray, Sequence[int]]) -> 'Dataset':
        """Return a new dataset holding only the given rows."""
        indices = np.asarray(indices, dtype=int)
        return Dataset(
            self._X[indices], self._y[indices],
            feature_names=self._feature_names,
            label_name=self.label_name,
            attributes=self._attributes,
            label_attribute=self._label_attribute,
            label_index=self.label_index,
            name=self.name
        )

    def with_features(
        self,
        X: np.ndarray,
        feature_names: List[str],
        attributes: Optional[List[Attribute]] = None,
        name: Optional[str] = None
    ) -> 'Dataset':
        """
        Return a new dataset with replaced features and the same labels.

        The label is placed last, as filters do not preserve column positions.
        """
        return Dataset(
            X, self._y,
            feature_names=feature_names,
            label_name=self.label_name,
            attributes=attributes,
            label_attribute=self._label_attribute,
            name=name or self.name
        )

    def to_frame(self) -> pd.DataFrame:
        """Features and label as a DataFrame, label in its original position."""
        df = pd.DataFrame(self._X, columns=self._feature_names)
        df.insert(self.label_index, self.label_name, self._y)
        return df

    def __len__(self) -> int:
        return self.n_rows

    def __repr__(self) -> str:
        return (f"Dataset(name='{self.name}', rows={self.n_rows}, "
                f"features={self.n_features}, label='{self.label_name}')")
