"""
Processing strategies applied to a test/train pair before and after the
pointwise selection. Includes missing value imputation, feature scaling,
logarithmic transformation and attribute removal.

Every strategy returns new datasets and keeps the rows of both sets intact.
"""

from abc import ABC, abstractmethod
from typing import Iterable, List, Tuple

import numpy as np
import pandas as pd
from sklearn.impute import SimpleImputer
from sklearn.preprocessing import StandardScaler

from .dataset import Dataset


class ProcessingStrategy(ABC):
    """Transforms the features of a test/train pair."""

    @abstractmethod
    def apply(self, test_data: Dataset, train_data: Dataset) -> Tuple[Dataset, Dataset]:
        """
        Process the data.

        Args:
            test_data: Data of the target version
            train_data: Data used for training

        Returns:
            (test_data, train_data) after processing
        """
        raise NotImplementedError

    def __repr__(self) -> str:
        return self.__class__.__name__


def _replace_features(dataset: Dataset, values: np.ndarray) -> Dataset:
    features = pd.DataFrame(values, columns=dataset.feature_names)
    return dataset.with_features(features)


def _transform(transformer, dataset: Dataset) -> Dataset:
    """Apply a fitted scikit-learn transformer; empty datasets pass through."""
    if dataset.num_instances == 0:
        return dataset
    return _replace_features(dataset, transformer.transform(dataset.X))


class MedianImputation(ProcessingStrategy):
    """
    Replaces missing values with the median of the training data.
    Features that are missing everywhere in the training data become 0 in
    both sets, including the values the test data does have.
    """

    @staticmethod
    def _zero_columns(dataset: Dataset, columns: List[str]) -> Dataset:
        features = dataset.features.copy()
        features[columns] = 0.0
        return dataset.with_features(features)

    def apply(self, test_data: Dataset, train_data: Dataset) -> Tuple[Dataset, Dataset]:
        if train_data.num_instances == 0:
            return test_data, train_data

        missing = train_data.features.isna().all()
        empty = list(missing.index[missing.to_numpy()])
        if empty:
            test_data = self._zero_columns(test_data, empty)
            train_data = self._zero_columns(train_data, empty)

        imputer = SimpleImputer(strategy='median')
        imputer.fit(train_data.X)

        return _transform(imputer, test_data), _transform(imputer, train_data)


class ZScoreNormalization(ProcessingStrategy):
    """
    Standard scaling (z-score normalization) of both data sets.

    The scaler is fit on the training data by default. With
    ``reference='test'`` it is fit on the test data instead, which
    normalizes both sets with the statistics of the target project.
    """

    def __init__(self, reference: str = 'train'):
        if reference not in ('train', 'test'):
            raise ValueError(f"reference must be 'train' or 'test', got {reference!r}")
        self.reference = reference

    def apply(self, test_data: Dataset, train_data: Dataset) -> Tuple[Dataset, Dataset]:
        fit_data = train_data if self.reference == 'train' else test_data
        if fit_data.num_instances == 0:
            return test_data, train_data

        scaler = StandardScaler()
        scaler.fit(fit_data.X)

        return _transform(scaler, test_data), _transform(scaler, train_data)

    def __repr__(self) -> str:
        return f"ZScoreNormalization(reference={self.reference!r})"


class LogarithmTransform(ProcessingStrategy):
    """Applies sign(x) * log(1 + |x|) to every feature of both sets."""

    @staticmethod
    def _transform(dataset: Dataset) -> Dataset:
        values = dataset.X
        return _replace_features(dataset, np.sign(values) * np.log1p(np.abs(values)))

    def apply(self, test_data: Dataset, train_data: Dataset) -> Tuple[Dataset, Dataset]:
        return self._transform(test_data), self._transform(train_data)


class AttributeRemoval(ProcessingStrategy):
    """Removes the named attributes from both sets."""

    def __init__(self, names: Iterable[str]):
        self.names = list(names)

    def apply(self, test_data: Dataset, train_data: Dataset) -> Tuple[Dataset, Dataset]:
        return (test_data.with_features(test_data.features.drop(columns=self.names, errors='ignore')),
                train_data.with_features(train_data.features.drop(columns=self.names, errors='ignore')))

    def __repr__(self) -> str:
        return f"AttributeRemoval({self.names!r})"
