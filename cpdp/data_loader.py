"""
Data loaders for software defect datasets.
Handles parsing of CSV and ARFF files into labeled Datasets and the discovery
of project versions stored in a folder hierarchy.
"""

import os
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

import arff
import numpy as np
import pandas as pd

from .config import DATA_DIR, DEFECTIVE_LABELS, EFFORT_ATTRIBUTES
from .dataset import Dataset, SoftwareVersion
from .log_setup import get_logger

logger = get_logger(__name__)


def _effort_column(feature_names: List[str]) -> Optional[str]:
    """Return the first feature that holds the inspection effort, if any."""
    for name in EFFORT_ATTRIBUTES:
        if name in feature_names:
            return name
    return None


class SingleVersionLoader(ABC):
    """Reads the instances of exactly one software version from a file."""

    @abstractmethod
    def load(self, filepath: str) -> Dataset:
        """Parse the file and return its labeled instances."""
        raise NotImplementedError

    @abstractmethod
    def filename_filter(self, filename: str) -> bool:
        """Whether this loader can read the given file."""
        raise NotImplementedError


class CSVDataLoader(SingleVersionLoader):
    """
    Loader for comma separated metric files.

    The first line is the header. The first two columns identify the
    instance and are dropped, the last column is the defect label and all
    columns in between are numeric features. A label is clean only if it
    reads exactly "0"; every other value marks the instance as defective.
    """

    def load(self, filepath: str) -> Dataset:
        # keep every field as text so that labels like "yes" are not coerced
        frame = pd.read_csv(filepath, dtype=str, keep_default_na=False)

        # more fields than header columns turn the leading fields into an index
        if len(frame) and not isinstance(frame.index, pd.RangeIndex):
            raise ValueError(f"{filepath}: rows have more fields than the header")

        incomplete = np.flatnonzero(frame.isna().any(axis=1).to_numpy())
        if len(incomplete):
            raise ValueError(
                f"{filepath}: row {incomplete[0] + 1} has fewer fields than the header"
            )

        frame.columns = [str(name).strip() for name in frame.columns]
        for column in frame.columns:
            frame[column] = frame[column].str.strip()

        features = frame.iloc[:, 2:-1].astype(np.float64)
        labels = (frame.iloc[:, -1] != '0').astype(np.int64)

        efforts = None
        effort_name = _effort_column(list(features.columns))
        if effort_name is not None:
            efforts = features[effort_name].to_numpy()

        return Dataset(os.path.basename(filepath), features, labels, efforts)

    def filename_filter(self, filename: str) -> bool:
        return filename.endswith('.csv')


class ARFFDataLoader(SingleVersionLoader):
    """
    Loader for ARFF files (e.g. the NASA MDP and PROMISE datasets).

    All attributes except the last are features; the last attribute is the
    class, mapped to 1 for any of the configured defective labels.
    """

    def load(self, filepath: str) -> Dataset:
        with open(filepath, 'r') as f:
            dataset = arff.load(f)

        data = dataset['data']
        attributes = dataset['attributes']

        # Get feature names (all except the last 'class' attribute)
        feature_names = [attr[0] for attr in attributes[:-1]]

        n_samples = len(data)
        n_features = len(feature_names)

        X = np.zeros((n_samples, n_features), dtype=np.float64)
        y = np.zeros(n_samples, dtype=np.int64)

        for i, row in enumerate(data):
            for j in range(n_features):
                val = row[j]
                X[i, j] = np.nan if val is None else float(val)

            label = row[-1]
            # Handle different label formats: {false,true}, {N,Y} or counts
            if isinstance(label, str):
                y[i] = 1 if label.strip().lower() in DEFECTIVE_LABELS else 0
            else:
                y[i] = 1 if label else 0

        efforts = None
        effort_name = _effort_column(feature_names)
        if effort_name is not None:
            efforts = X[:, feature_names.index(effort_name)]

        return Dataset.from_arrays(os.path.basename(filepath), X, y,
                                   feature_names, efforts)

    def filename_filter(self, filename: str) -> bool:
        return filename.endswith('.arff')


class VersionLoader(ABC):
    """Produces the software versions an experiment runs on."""

    @abstractmethod
    def load(self) -> List[SoftwareVersion]:
        raise NotImplementedError


class FolderLoader(VersionLoader):
    """
    Loads all versions found below a folder.

    Expected layout is ``<path>/<project>/<version file>``. Files lying
    directly in ``path`` are versions of a project named after the file.
    Projects and files are visited in sorted order.
    """

    def __init__(self, path: str, single_loader: SingleVersionLoader):
        """
        Args:
            path: Root folder of the data
            single_loader: Loader used for every accepted file
        """
        self.path = path
        self.single_loader = single_loader

    def load(self) -> List[SoftwareVersion]:
        if not os.path.isdir(self.path):
            raise FileNotFoundError(f"Data folder not found: {self.path}")

        versions = []
        for entry in sorted(os.listdir(self.path)):
            entry_path = os.path.join(self.path, entry)

            if os.path.isdir(entry_path):
                for filename in sorted(os.listdir(entry_path)):
                    filepath = os.path.join(entry_path, filename)
                    if os.path.isfile(filepath) and self.single_loader.filename_filter(filename):
                        versions.append(self._load_version(entry, filepath))
            elif self.single_loader.filename_filter(entry):
                project = os.path.splitext(entry)[0]
                versions.append(self._load_version(project, entry_path))

        logger.info("Loaded %d versions from %s", len(versions), self.path)
        return versions

    def _load_version(self, project: str, filepath: str) -> SoftwareVersion:
        instances = self.single_loader.load(filepath)
        version = os.path.splitext(os.path.basename(filepath))[0]
        logger.debug("Loaded %s/%s: %d instances", project, version,
                     instances.num_instances)
        return SoftwareVersion(project=project, version=version, instances=instances)


class CSVFolderLoader(FolderLoader):
    """Folder loader for CSV metric files."""

    def __init__(self, path: str = DATA_DIR):
        super().__init__(path, CSVDataLoader())


class ARFFFolderLoader(FolderLoader):
    """Folder loader for ARFF files."""

    def __init__(self, path: str = DATA_DIR):
        super().__init__(path, ARFFDataLoader())


def get_dataset_info(dataset: Dataset) -> Dict:
    """
    Get summary statistics for a dataset.

    Args:
        dataset: Dataset to describe

    Returns:
        Dictionary with dataset statistics
    """
    n_samples = dataset.num_instances
    n_defective = dataset.n_defective
    defect_rate = n_defective / n_samples * 100 if n_samples else 0.0

    return {
        'name': dataset.name,
        'n_samples': n_samples,
        'n_features': len(dataset.feature_names),
        'n_defective': n_defective,
        'n_clean': n_samples - n_defective,
        'defect_rate': defect_rate,
        'n_missing': int(dataset.features.isna().to_numpy().sum()),
        'feature_names': dataset.feature_names,
    }


def log_dataset_summary(versions: List[SoftwareVersion]):
    """Log a summary table of all loaded versions."""
    logger.info("%-24s %10s %10s %10s %10s %10s",
                'Version', 'Samples', 'Features', 'Defective', 'Clean', 'Defect %')
    for version in versions:
        info = get_dataset_info(version.instances)
        logger.info("%-24s %10d %10d %10d %10d %9.2f%%",
                    f"{version.project}/{version.version}",
                    info['n_samples'], info['n_features'],
                    info['n_defective'], info['n_clean'], info['defect_rate'])
