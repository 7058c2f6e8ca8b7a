"""
CPDP - Cross-Project Defect Prediction Experiments
==================================================

Loads labeled software versions, applies configurable processing and data
selection, trains classifiers per version and evaluates them, writing the
results to CSV files and, optionally, to a SQL database.
"""

from .config import ExperimentConfiguration

from .dataset import Dataset, SoftwareVersion

from .data_loader import (
    CSVDataLoader,
    ARFFDataLoader,
    FolderLoader,
    CSVFolderLoader,
    ARFFFolderLoader,
)

from .processing import (
    ProcessingStrategy,
    MedianImputation,
    ZScoreNormalization,
    LogarithmTransform,
    AttributeRemoval,
)

from .selection import (
    PointWiseSelectionStrategy,
    SMOTESelection,
    NearestNeighborFilter,
    RandomUndersampling,
)

from .training import Trainer, SklearnTrainer, create_trainer

from .evaluation import ExperimentResult, Evaluator, TestSetEvaluation, compute_metrics

from .result_storage import ResultStorage, SQLResultStorage

from .execution import ExecutionStrategy, ClassifierCreationExperiment

__version__ = "0.1.0"

__all__ = [
    # Config
    "ExperimentConfiguration",
    # Data
    "Dataset",
    "SoftwareVersion",
    "CSVDataLoader",
    "ARFFDataLoader",
    "FolderLoader",
    "CSVFolderLoader",
    "ARFFFolderLoader",
    # Processing
    "ProcessingStrategy",
    "MedianImputation",
    "ZScoreNormalization",
    "LogarithmTransform",
    "AttributeRemoval",
    # Selection
    "PointWiseSelectionStrategy",
    "SMOTESelection",
    "NearestNeighborFilter",
    "RandomUndersampling",
    # Training
    "Trainer",
    "SklearnTrainer",
    "create_trainer",
    # Evaluation
    "ExperimentResult",
    "Evaluator",
    "TestSetEvaluation",
    "compute_metrics",
    # Storage
    "ResultStorage",
    "SQLResultStorage",
    # Execution
    "ExecutionStrategy",
    "ClassifierCreationExperiment",
]
