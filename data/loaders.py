"""
Data Loaders

This module provides dataset loaders for different file formats.
All loaders implement the DataLoader interface and set the label column
(last column unless configured otherwise).
"""

from abc import ABC, abstractmethod
from typing import Optional, List, Union
from pathlib import Path
import numpy as np
import pandas as pd
from scipy.io import arff

from .dataset import Dataset
from .exceptions import ParseError, InvalidDatasetError


class DataLoader(ABC):
    """
    Abstract base class for dataset loaders.

    All loaders must implement load() to read a file and return a
    Dataset with its label column set.
    """

    pattern = "*"

    def __init__(self, label_column: Optional[Union[str, int]] = None):
        """
        Args:
            label_column: Label column name or position (None = last column)
        """
        self.label_column = label_column

    @abstractmethod
    def load(self, filepath: Union[str, Path]) -> Dataset:
        """
        Load a dataset from file.

        Args:
            filepath: Path to the file

        Returns:
            Dataset object

        Raises:
            FileNotFoundError: If file doesn't exist
            ParseError: If file format is invalid
        """
        pass

    def load_batch(self, directory: Union[str, Path], pattern: Optional[str] = None) -> List[Dataset]:
        """
        Load every matching file from a directory, sorted by name.

        Args:
            directory: Directory containing dataset files
            pattern: Glob pattern (defaults to the loader's own suffix)

        Returns:
            List of Dataset objects
        """
        directory = Path(directory)
        if not directory.is_dir():
            raise FileNotFoundError(f"Directory not found: {directory}")
        return [self.load(p) for p in sorted(directory.glob(pattern or self.pattern))]

    @staticmethod
    def _check_exists(filepath: Path) -> None:
        if not filepath.exists():
            raise FileNotFoundError(f"File not found: {filepath}")


class ARFFDataLoader(DataLoader):
    """
    Loader for Weka ARFF files.

    Numeric attributes are kept as floats; nominal feature attributes are
    encoded as integer codes in declaration order. The label keeps its
    declared nominal domain.
    """

    pattern = "*.arff"

    def load(self, filepath: Union[str, Path]) -> Dataset:
        """Load dataset from an ARFF file."""
        filepath = Path(filepath)
        self._check_exists(filepath)

        try:
            records, meta = arff.loadarff(str(filepath))
        except (arff.ArffError, ValueError, NotImplementedError, UnicodeDecodeError) as e:
            raise ParseError(f"Could not parse {filepath.name}: {e}") from e

        df = pd.DataFrame(records)
        label_values = None
        nominal_domains = {}
        for attr_name in meta.names():
            attr_type, values = meta[attr_name]
            if attr_type == 'nominal':
                nominal_domains[attr_name] = list(values)
                df[attr_name] = df[attr_name].map(self._decode)

        label_column = self.label_column
        if label_column is None:
            label_column = meta.names()[-1]
        elif isinstance(label_column, int):
            label_column = meta.names()[label_column]

        for attr_name, values in nominal_domains.items():
            if attr_name == label_column:
                label_values = values
            else:
                # Keep the declared order for the integer codes
                df[attr_name] = pd.Categorical(df[attr_name], categories=values)

        if label_column not in nominal_domains:
            raise InvalidDatasetError(
                f"{filepath.name}: label attribute '{label_column}' must be nominal"
            )

        return Dataset.from_frame(
            df, label_column=label_column, name=filepath.stem, label_values=label_values
        )

    @staticmethod
    def _decode(value):
        if isinstance(value, bytes):
            value = value.decode('utf-8')
        return np.nan if value == '?' else value


class CSVDataLoader(DataLoader):
    """
    Loader for delimited text files with a header row.

    Attributes:
        label_column: Label column name or position (None = last column)
        sep: Field delimiter
    """

    pattern = "*.csv"

    def __init__(self, label_column: Optional[Union[str, int]] = None, sep: str = ','):
        super().__init__(label_column)
        self.sep = sep

    def load(self, filepath: Union[str, Path]) -> Dataset:
        """Load dataset from a CSV file."""
        filepath = Path(filepath)
        self._check_exists(filepath)

        try:
            df = pd.read_csv(filepath, sep=self.sep, na_values=['?'])
        except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
            raise ParseError(f"Could not parse {filepath.name}: {e}") from e

        if df.shape[1] < 2:
            raise ParseError(
                f"{filepath.name}: expected at least one feature and one label column, "
                f"found {df.shape[1]} column(s)"
            )

        return Dataset.from_frame(df, label_column=self.label_column, name=filepath.stem)


_LOADERS = {
    '.arff': ARFFDataLoader,
    '.csv': CSVDataLoader,
}


def load_dataset(filepath: Union[str, Path], label_column: Optional[Union[str, int]] = None) -> Dataset:
    """
    Load a dataset, choosing the loader from the file suffix.

    Args:
        filepath: Path to an .arff or .csv file
        label_column: Label column name or position (None = last column)

    Returns:
        Dataset
    """
    filepath = Path(filepath)
    loader_cls = _LOADERS.get(filepath.suffix.lower())
    if loader_cls is None:
        raise ParseError(
            f"Unsupported file type '{filepath.suffix}'. Supported: {sorted(_LOADERS)}"
        )
    return loader_cls(label_column=label_column).load(filepath)
