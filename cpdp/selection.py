"""
Pointwise data selection strategies.
Each strategy decides, row by row, which training instances are used and
returns a new training dataset. The size of the result is not fixed: filters
shrink the training data, oversampling grows it.
"""

from abc import ABC, abstractmethod
from typing import Optional

import numpy as np
from sklearn.neighbors import NearestNeighbors

from .config import NN_FILTER_K, RANDOM_SEED, SMOTE_K_NEIGHBORS
from .dataset import Dataset


class PointWiseSelectionStrategy(ABC):
    """Selects the training instances for one target version."""

    @abstractmethod
    def apply(self, test_data: Dataset, train_data: Dataset) -> Dataset:
        """
        Select the training data.

        Args:
            test_data: Data of the target version
            train_data: Candidate training data

        Returns:
            The selected training data
        """
        raise NotImplementedError

    def __repr__(self) -> str:
        return self.__class__.__name__


class SMOTESelection(PointWiseSelectionStrategy):
    """
    Synthetic Minority Over-sampling Technique (SMOTE).

    Creates synthetic samples for the minority class by interpolating
    between existing minority samples and their nearest neighbors until
    both classes have the same size.
    """

    def __init__(self,
                 k_neighbors: int = SMOTE_K_NEIGHBORS,
                 random_state: Optional[int] = RANDOM_SEED):
        """
        Args:
            k_neighbors: Number of nearest neighbors to use for synthesis
            random_state: Random seed for reproducibility
        """
        self.k_neighbors = k_neighbors
        self.random_state = random_state

    def apply(self, test_data: Dataset, train_data: Dataset) -> Dataset:
        X = train_data.X
        y = train_data.y

        classes, counts = np.unique(y, return_counts=True)
        if len(classes) < 2:
            return train_data.copy()

        minority_class = classes[np.argmin(counts)]
        n_synthetic = counts.max() - counts.min()
        X_minority = X[y == minority_class]

        # Need at least one neighbor besides the sample itself
        k = min(self.k_neighbors, len(X_minority) - 1)
        if n_synthetic <= 0 or k < 1:
            return train_data.copy()

        rng = np.random.RandomState(self.random_state)

        nn = NearestNeighbors(n_neighbors=k + 1)  # +1 because sample is its own neighbor
        nn.fit(X_minority)
        _, neighbor_indices = nn.kneighbors(X_minority)

        samples = rng.randint(0, len(X_minority), size=n_synthetic)
        neighbors = neighbor_indices[samples, rng.randint(1, k + 1, size=n_synthetic)]
        alphas = rng.random_sample((n_synthetic, 1))

        X_synthetic = X_minority[samples] + alphas * (X_minority[neighbors] - X_minority[samples])
        y_synthetic = np.full(n_synthetic, minority_class)

        return Dataset.from_arrays(
            train_data.name,
            np.vstack([X, X_synthetic]),
            np.concatenate([y, y_synthetic]),
            train_data.feature_names,
        )

    def __repr__(self) -> str:
        return f"SMOTESelection(k_neighbors={self.k_neighbors})"


class NearestNeighborFilter(PointWiseSelectionStrategy):
    """
    Relevancy filter that keeps, for every test instance, its k nearest
    training instances. The result is the union of all selected instances in
    their original order.
    """

    def __init__(self, k: int = NN_FILTER_K):
        self.k = k

    def apply(self, test_data: Dataset, train_data: Dataset) -> Dataset:
        if train_data.num_instances == 0 or test_data.num_instances == 0:
            return train_data.take([])

        k = min(self.k, train_data.num_instances)
        nn = NearestNeighbors(n_neighbors=k)
        nn.fit(train_data.X)
        _, indices = nn.kneighbors(test_data.X)

        return train_data.take(np.unique(indices))

    def __repr__(self) -> str:
        return f"NearestNeighborFilter(k={self.k})"


class RandomUndersampling(PointWiseSelectionStrategy):
    """Randomly removes majority class instances until the classes are balanced."""

    def __init__(self, random_state: Optional[int] = RANDOM_SEED):
        self.random_state = random_state

    def apply(self, test_data: Dataset, train_data: Dataset) -> Dataset:
        y = train_data.y
        classes, counts = np.unique(y, return_counts=True)
        if len(classes) < 2:
            return train_data.copy()

        rng = np.random.RandomState(self.random_state)
        n_keep = counts.min()

        selected = []
        for label in classes:
            positions = np.flatnonzero(y == label)
            if len(positions) > n_keep:
                positions = rng.choice(positions, size=n_keep, replace=False)
            selected.append(positions)

        return train_data.take(np.sort(np.concatenate(selected)))
