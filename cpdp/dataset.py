"""
Value types for labeled defect datasets and the software versions owning them.

A Dataset is never modified in place: processing and selection strategies
build new Dataset values from existing ones.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np
import pandas as pd

LABEL_NAME = 'bug'


@dataclass(frozen=True, eq=False)
class Dataset:
    """
    Numeric feature table plus a binary defect label per row.

    Attributes:
        name: Human-readable identifier (project or file name)
        features: Feature table, one named numeric column per attribute
        labels: Defect label per row, values 0 (clean) or 1 (defective)
        efforts: Optional inspection effort per row (e.g. lines of code)
    """
    name: str
    features: pd.DataFrame
    labels: pd.Series
    efforts: Optional[pd.Series] = None

    def __post_init__(self):
        features = self.features.reset_index(drop=True)
        labels = pd.Series(np.asarray(self.labels, dtype=np.int64), name=LABEL_NAME)
        if len(features) != len(labels):
            raise ValueError(
                f"Dataset {self.name}: {len(features)} feature rows "
                f"but {len(labels)} labels"
            )
        if not labels.isin([0, 1]).all():
            raise ValueError(f"Dataset {self.name}: labels must be 0 or 1")

        efforts = self.efforts
        if efforts is not None:
            efforts = pd.Series(np.asarray(efforts, dtype=np.float64), name='effort')
            if len(efforts) != len(labels):
                raise ValueError(
                    f"Dataset {self.name}: {len(efforts)} efforts "
                    f"but {len(labels)} labels"
                )

        # frozen dataclass, so normalized values are set through object
        object.__setattr__(self, 'features', features)
        object.__setattr__(self, 'labels', labels)
        object.__setattr__(self, 'efforts', efforts)

    @classmethod
    def from_arrays(cls,
                    name: str,
                    X: np.ndarray,
                    y: np.ndarray,
                    feature_names: Sequence[str],
                    efforts: Optional[np.ndarray] = None) -> 'Dataset':
        """Build a dataset from a feature matrix and a label vector."""
        X = np.asarray(X, dtype=np.float64).reshape(len(y), len(feature_names))
        features = pd.DataFrame(X, columns=list(feature_names))
        return cls(name, features, pd.Series(y), efforts)

    @property
    def num_instances(self) -> int:
        return len(self.labels)

    @property
    def feature_names(self) -> List[str]:
        return list(self.features.columns)

    @property
    def n_defective(self) -> int:
        return int(self.labels.sum())

    @property
    def X(self) -> np.ndarray:
        return self.features.to_numpy(dtype=np.float64)

    @property
    def y(self) -> np.ndarray:
        return self.labels.to_numpy(dtype=np.int64)

    def copy(self) -> 'Dataset':
        """Return an independent duplicate of this dataset."""
        efforts = None if self.efforts is None else self.efforts.copy()
        return Dataset(self.name, self.features.copy(), self.labels.copy(), efforts)

    def rename(self, name: str) -> 'Dataset':
        return Dataset(name, self.features, self.labels, self.efforts)

    def with_features(self, features: pd.DataFrame) -> 'Dataset':
        """Return a dataset with the same rows but a replaced feature table."""
        return Dataset(self.name, features, self.labels, self.efforts)

    def take(self, positions: Sequence[int]) -> 'Dataset':
        """Return the rows at the given positions, in the given order."""
        positions = np.asarray(positions, dtype=np.int64)
        efforts = None if self.efforts is None else self.efforts.iloc[positions]
        return Dataset(
            self.name,
            self.features.iloc[positions],
            self.labels.iloc[positions],
            efforts,
        )

    def equals(self, other: 'Dataset') -> bool:
        """True when both datasets hold identical features and labels."""
        return (
            self.feature_names == other.feature_names
            and self.features.equals(other.features)
            and self.labels.equals(other.labels)
        )

    def __repr__(self) -> str:
        return (f"Dataset(name={self.name!r}, instances={self.num_instances}, "
                f"features={len(self.feature_names)}, defective={self.n_defective})")


@dataclass(frozen=True, eq=False)
class SoftwareVersion:
    """One snapshot of a software project with its labeled instances."""
    project: str
    version: str
    instances: Dataset

    def __repr__(self) -> str:
        return f"SoftwareVersion(project={self.project!r}, version={self.version!r})"
