"""
Evaluation metrics and result reporting for Software Defect Prediction.
Includes the confusion matrix based metrics, AUC, effort-aware metrics
(AUCEC, NofB20, NofI80, ...), the normalized expected cost of
misclassification and the evaluator that writes results to CSV and to a
result storage.
"""

import os
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from typing import Dict, List, Optional

import numpy as np
import pandas as pd
from sklearn.metrics import (
    confusion_matrix,
    f1_score,
    matthews_corrcoef,
    precision_score,
    recall_score,
    roc_auc_score,
)

from .config import (
    DEFECT_TARGET,
    EFFORT_BUDGET,
    EXPERIMENT_NAME,
    METRICS,
    NECM_COST_RATIOS,
)
from .dataset import Dataset
from .log_setup import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ExperimentResult:
    """Evaluation of one classifier on the test data of one version."""
    configuration_name: str
    product_name: str
    classifier: str
    size_test_data: int
    size_training_data: int
    error: float
    recall: float
    precision: float
    fscore: float
    gscore: float
    mcc: float
    auc: float
    balance: float
    aucec: float
    nofb20: float
    relb20: float
    nofi80: float
    reli80: float
    rele80: float
    necm15: float
    necm20: float
    necm25: float
    tpr: float
    tnr: float
    fpr: float
    fnr: float
    tp: float
    fn: float
    tn: float
    fp: float

    def to_record(self) -> Dict:
        """Result as a row keyed by the column names of the results table."""
        values = asdict(self)
        return {column: values[attribute] for attribute, column in RESULT_COLUMNS.items()}


# ExperimentResult attribute -> column name in result files and tables
RESULT_COLUMNS = {
    'configuration_name': 'configurationName',
    'product_name': 'productName',
    'classifier': 'classifier',
    'size_test_data': 'testsize',
    'size_training_data': 'trainsize',
    **{metric: metric for metric in METRICS},
}


def _ratio(numerator: float, denominator: float) -> float:
    return float(numerator) / denominator if denominator else 0.0


def compute_confusion_matrix(y_true: np.ndarray,
                             y_pred: np.ndarray) -> Dict[str, int]:
    """
    Compute confusion matrix values.

    Args:
        y_true: True labels
        y_pred: Predicted labels

    Returns:
        Dictionary with tp, tn, fp, fn counts
    """
    if len(y_true) == 0:
        return {'tp': 0, 'tn': 0, 'fp': 0, 'fn': 0}

    tn, fp, fn, tp = confusion_matrix(y_true, y_pred, labels=[0, 1]).ravel()
    return {'tp': int(tp), 'tn': int(tn), 'fp': int(fp), 'fn': int(fn)}


def compute_effort_metrics(y_true: np.ndarray,
                           scores: np.ndarray,
                           efforts: Optional[np.ndarray] = None) -> Dict[str, float]:
    """
    Compute the effort-aware metrics.

    Instances are inspected in order of decreasing defect score; ties are
    inspected with the smaller effort first.

    Args:
        y_true: True labels
        scores: Predicted defect probability (or label) per instance
        efforts: Inspection effort per instance; each instance costs 1 if None

    Returns:
        Dictionary with aucec, nofb20, relb20, nofi80, reli80 and rele80
    """
    metrics = dict.fromkeys(['aucec', 'nofb20', 'relb20', 'nofi80', 'reli80', 'rele80'], 0.0)

    y_true = np.asarray(y_true, dtype=np.float64)
    n = len(y_true)
    if efforts is None:
        efforts = np.ones(n)
    efforts = np.nan_to_num(np.asarray(efforts, dtype=np.float64), nan=0.0)
    if efforts.sum() <= 0:
        efforts = np.ones(n)

    total_bugs = y_true.sum()
    if n == 0 or total_bugs == 0:
        return metrics

    order = np.lexsort((efforts, -np.asarray(scores, dtype=np.float64)))
    bugs = y_true[order]
    effort_share = np.cumsum(efforts[order]) / efforts.sum()
    bug_share = np.cumsum(bugs) / total_bugs

    # Area under the cost-effectiveness curve, starting in (0, 0)
    x = np.concatenate([[0.0], effort_share])
    y = np.concatenate([[0.0], bug_share])
    metrics['aucec'] = float(np.sum(np.diff(x) * (y[1:] + y[:-1]) / 2))

    nofb = bugs[effort_share <= EFFORT_BUDGET + 1e-12].sum()
    metrics['nofb20'] = float(nofb)
    metrics['relb20'] = float(nofb / total_bugs)

    first = int(np.argmax(bug_share >= DEFECT_TARGET - 1e-12))
    metrics['nofi80'] = float(first + 1)
    metrics['reli80'] = (first + 1) / n
    metrics['rele80'] = float(effort_share[first])

    return metrics


def compute_metrics(y_true: np.ndarray,
                    y_pred: np.ndarray,
                    y_pred_proba: Optional[np.ndarray] = None,
                    efforts: Optional[np.ndarray] = None) -> Dict[str, float]:
    """
    Compute all classification metrics of an ExperimentResult.

    Ratios with a zero denominator are reported as 0; AUC is NaN when no
    scores are given or the test data holds only one class.

    Args:
        y_true: True labels
        y_pred: Predicted labels
        y_pred_proba: Predicted defect probability per instance
        efforts: Inspection effort per instance

    Returns:
        Dictionary of metric names to values
    """
    y_true = np.asarray(y_true, dtype=np.int64)
    y_pred = np.asarray(y_pred, dtype=np.int64)
    n = len(y_true)

    counts = compute_confusion_matrix(y_true, y_pred)
    tp, tn, fp, fn = counts['tp'], counts['tn'], counts['fp'], counts['fn']

    metrics = {name: float(value) for name, value in counts.items()}

    if n > 0:
        metrics['recall'] = recall_score(y_true, y_pred, zero_division=0)
        metrics['precision'] = precision_score(y_true, y_pred, zero_division=0)
        metrics['fscore'] = f1_score(y_true, y_pred, zero_division=0)
        metrics['mcc'] = matthews_corrcoef(y_true, y_pred)
    else:
        metrics.update(recall=0.0, precision=0.0, fscore=0.0, mcc=0.0)

    metrics['error'] = _ratio(fp + fn, n)
    metrics['tpr'] = _ratio(tp, tp + fn)
    metrics['tnr'] = _ratio(tn, tn + fp)
    metrics['fpr'] = _ratio(fp, fp + tn)
    metrics['fnr'] = _ratio(fn, fn + tp)

    recall, fpr = metrics['recall'], metrics['fpr']
    metrics['gscore'] = _ratio(2 * recall * (1 - fpr), recall + (1 - fpr))
    metrics['balance'] = 1 - np.sqrt((fpr ** 2 + (1 - recall) ** 2) / 2)

    # AUC-ROC (requires probability scores and both classes)
    if y_pred_proba is not None and len(np.unique(y_true)) > 1:
        metrics['auc'] = roc_auc_score(y_true, y_pred_proba)
    else:
        metrics['auc'] = np.nan

    for name, cost_ratio in NECM_COST_RATIOS.items():
        metrics[name] = _ratio(fp + cost_ratio * fn, n)

    scores = y_pred_proba if y_pred_proba is not None else y_pred
    metrics.update(compute_effort_metrics(y_true, scores, efforts))

    return {name: float(metrics[name]) for name in METRICS}


def evaluate_trainer(trainer,
                     test_data: Dataset,
                     train_data: Dataset,
                     configuration_name: str) -> ExperimentResult:
    """
    Score a fitted trainer on the test data.

    Args:
        trainer: Fitted trainer
        test_data: Data of the target version
        train_data: Data the trainer was fitted on
        configuration_name: Name of the experiment configuration

    Returns:
        ExperimentResult of the trainer on this version
    """
    y_pred = trainer.predict(test_data)
    y_proba = trainer.predict_proba(test_data)
    efforts = None if test_data.efforts is None else test_data.efforts.to_numpy()

    metrics = compute_metrics(test_data.y, y_pred, y_proba, efforts)

    return ExperimentResult(
        configuration_name=configuration_name,
        product_name=test_data.name,
        classifier=trainer.name,
        size_test_data=test_data.num_instances,
        size_training_data=train_data.num_instances,
        **metrics
    )


class Evaluator(ABC):
    """Scores fitted trainers on the test data and records the results."""

    def set_parameter(self, parameters: str):
        """Configure the evaluator, e.g. with the path of its output file."""

    @abstractmethod
    def apply(self,
              test_data: Dataset,
              train_data: Dataset,
              trainers: List,
              write_header: bool):
        """
        Evaluate all trainers on the test data.

        Args:
            test_data: Data of the target version
            train_data: Data the trainers were fitted on
            trainers: Fitted trainers
            write_header: Whether the output starts anew with a header
        """
        raise NotImplementedError

    def __repr__(self) -> str:
        return self.__class__.__name__


class TestSetEvaluation(Evaluator):
    """
    Evaluates every trainer on the test data and appends one row per trainer
    to a CSV file. Results are also added to the result storage if one is
    configured.
    """

    __test__ = False  # not a pytest test class

    def __init__(self, result_storage=None):
        self.result_storage = result_storage
        self.output_path: Optional[str] = None
        self.configuration_name = EXPERIMENT_NAME

    def set_parameter(self, parameters: str):
        self.output_path = parameters
        self.configuration_name = os.path.splitext(os.path.basename(parameters))[0]

    def apply(self,
              test_data: Dataset,
              train_data: Dataset,
              trainers: List,
              write_header: bool) -> List[ExperimentResult]:
        results = [
            evaluate_trainer(trainer, test_data, train_data, self.configuration_name)
            for trainer in trainers
        ]

        if self.output_path is None:
            logger.warning("%r has no output file, results of %s are not written",
                           self, test_data.name)
        else:
            rows = pd.DataFrame([result.to_record() for result in results],
                                columns=list(RESULT_COLUMNS.values()))
            rows.to_csv(self.output_path,
                        mode='w' if write_header else 'a',
                        header=write_header,
                        index=False)

        if self.result_storage is not None:
            for result in results:
                self.result_storage.add_result(result)

        for result in results:
            logger.info("%s / %s: fscore=%.4f auc=%.4f mcc=%.4f",
                        result.product_name, result.classifier,
                        result.fscore, result.auc, result.mcc)
        return results
