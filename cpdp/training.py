"""
Trainers fit a classifier on the training data of one version.
Includes a wrapper for any scikit-learn compatible estimator and a factory
for the classifiers used in the experiments (XGBoost, Random Forest,
Logistic Regression, Naive Bayes, PCA + MLP, Autoencoder + XGBoost).
"""

from abc import ABC, abstractmethod
from typing import Callable, Dict, Optional

import numpy as np
import xgboost as xgb
from sklearn.base import clone
from sklearn.decomposition import PCA
from sklearn.dummy import DummyClassifier
from sklearn.ensemble import RandomForestClassifier
from sklearn.linear_model import LogisticRegression
from sklearn.naive_bayes import GaussianNB
from sklearn.neural_network import MLPClassifier
from sklearn.pipeline import make_pipeline

from .autoencoder import AutoencoderXGBoostClassifier
from .config import (
    RANDOM_SEED,
    PCA_N_COMPONENTS,
    MLP_HIDDEN_LAYERS,
    MLP_ACTIVATION,
    MLP_SOLVER,
    MLP_ALPHA,
    MLP_LEARNING_RATE_INIT,
    MLP_MAX_ITER,
    XGB_N_ESTIMATORS,
    XGB_MAX_DEPTH,
    XGB_LEARNING_RATE,
    XGB_SUBSAMPLE,
    XGB_COLSAMPLE_BYTREE,
    XGB_OBJECTIVE,
    XGB_EVAL_METRIC,
    RF_N_ESTIMATORS,
    RF_MAX_DEPTH,
)
from .dataset import Dataset
from .log_setup import get_logger

logger = get_logger(__name__)


class Trainer(ABC):
    """
    A named unit that fits a classifier on training data.

    The same trainer instance is refit for every version of an experiment.
    """

    def __init__(self, name: str):
        self.name = name

    @abstractmethod
    def apply(self, train_data: Dataset):
        """Fit the classifier on the training data."""
        raise NotImplementedError

    @abstractmethod
    def predict(self, dataset: Dataset) -> np.ndarray:
        """Predicted labels (0/1) for every row of the dataset."""
        raise NotImplementedError

    @abstractmethod
    def predict_proba(self, dataset: Dataset) -> np.ndarray:
        """Predicted defect probability for every row of the dataset."""
        raise NotImplementedError

    def get_classifier(self):
        """Return the fitted model so that it can be serialized."""
        raise NotImplementedError(f"Trainer {self.name} does not expose its classifier")

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.name!r})"


class SklearnTrainer(Trainer):
    """
    Trainer for any scikit-learn compatible estimator.

    The estimator is cloned before every fit so that no state leaks from
    one version to the next. Training data with a single class cannot be
    learned by most classifiers; in that case a constant classifier that
    always predicts this class is used instead.
    """

    def __init__(self, name: str, estimator):
        super().__init__(name)
        self.estimator = estimator
        self.classifier_ = None

    def apply(self, train_data: Dataset):
        if len(np.unique(train_data.y)) < 2:
            logger.warning("%s: training data %s has fewer than two classes, "
                           "using a constant classifier", self.name, train_data.name)
            classifier = DummyClassifier(strategy='most_frequent')
            if train_data.num_instances == 0:
                # nothing to learn from: predict clean
                classifier.fit(np.zeros((1, len(train_data.feature_names))), [0])
            else:
                classifier.fit(train_data.X, train_data.y)
        else:
            classifier = clone(self.estimator)
            classifier.fit(train_data.X, train_data.y)
        self.classifier_ = classifier

    def _check_fitted(self):
        if self.classifier_ is None:
            raise RuntimeError(f"Trainer {self.name} must be applied before prediction")

    def predict(self, dataset: Dataset) -> np.ndarray:
        self._check_fitted()
        if dataset.num_instances == 0:
            return np.zeros(0, dtype=np.int64)
        return np.asarray(self.classifier_.predict(dataset.X)).astype(np.int64)

    def predict_proba(self, dataset: Dataset) -> np.ndarray:
        self._check_fitted()
        if dataset.num_instances == 0:
            return np.zeros(0, dtype=np.float64)

        proba = self.classifier_.predict_proba(dataset.X)
        classes = list(self.classifier_.classes_)
        if 1 not in classes:
            return np.zeros(dataset.num_instances, dtype=np.float64)
        return proba[:, classes.index(1)]

    def get_classifier(self):
        self._check_fitted()
        return self.classifier_


def _xgboost(random_state: int):
    return xgb.XGBClassifier(
        n_estimators=XGB_N_ESTIMATORS,
        max_depth=XGB_MAX_DEPTH,
        learning_rate=XGB_LEARNING_RATE,
        subsample=XGB_SUBSAMPLE,
        colsample_bytree=XGB_COLSAMPLE_BYTREE,
        objective=XGB_OBJECTIVE,
        eval_metric=XGB_EVAL_METRIC,
        random_state=random_state,
        verbosity=0
    )


def _pca_mlp(random_state: int):
    return make_pipeline(
        PCA(n_components=PCA_N_COMPONENTS, random_state=random_state),
        MLPClassifier(
            hidden_layer_sizes=MLP_HIDDEN_LAYERS,
            activation=MLP_ACTIVATION,
            solver=MLP_SOLVER,
            alpha=MLP_ALPHA,
            learning_rate_init=MLP_LEARNING_RATE_INIT,
            max_iter=MLP_MAX_ITER,
            random_state=random_state
        ),
    )


TRAINER_FACTORIES: Dict[str, Callable[[int], object]] = {
    'xgboost': _xgboost,
    'random_forest': lambda random_state: RandomForestClassifier(
        n_estimators=RF_N_ESTIMATORS, max_depth=RF_MAX_DEPTH, random_state=random_state),
    'logistic_regression': lambda random_state: LogisticRegression(
        max_iter=1000, random_state=random_state),
    'naive_bayes': lambda random_state: GaussianNB(),
    'pca_mlp': _pca_mlp,
    'autoencoder_xgboost': lambda random_state: AutoencoderXGBoostClassifier(
        random_state=random_state),
}


def create_trainer(kind: str,
                   name: Optional[str] = None,
                   random_state: int = RANDOM_SEED) -> SklearnTrainer:
    """
    Factory function to create a trainer for one of the known classifiers.

    Args:
        kind: One of the keys of TRAINER_FACTORIES
        name: Trainer name used in results and file names (default: kind)
        random_state: Random seed for reproducibility

    Returns:
        Configured SklearnTrainer instance
    """
    if kind not in TRAINER_FACTORIES:
        raise ValueError(
            f"Unknown trainer {kind!r}, expected one of {sorted(TRAINER_FACTORIES)}"
        )
    return SklearnTrainer(name or kind, TRAINER_FACTORIES[kind](random_state))
