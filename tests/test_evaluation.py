#!/usr/bin/env python3
"""
Unit tests for the evaluation metrics and the test set evaluator.

Usage:
    python -m pytest tests/test_evaluation.py -v
"""

import math
import sys
from pathlib import Path

import numpy as np
import pandas as pd
import pytest

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))


class ConstantTrainer:
    """Trainer stand-in predicting fixed labels and scores"""

    def __init__(self, name, labels, scores):
        self.name = name
        self.labels = np.asarray(labels)
        self.scores = np.asarray(scores, dtype=float)

    def predict(self, dataset):
        return self.labels

    def predict_proba(self, dataset):
        return self.scores


class RecordingStorage:
    def __init__(self):
        self.results = []

    def add_result(self, result):
        self.results.append(result)


def make_test_data():
    from cpdp.dataset import Dataset

    return Dataset.from_arrays("ant", [[1], [2], [3], [4]], [1, 0, 1, 0], ["loc"],
                               efforts=[10, 10, 10, 70])


# =============================================================================
# CONFUSION MATRIX METRICS
# =============================================================================

def test_confusion_matrix_metrics():
    """Confusion matrix based metrics on a known example"""
    from cpdp.evaluation import compute_metrics

    m = compute_metrics([1, 1, 0, 0, 1], [1, 0, 0, 1, 1])

    assert (m['tp'], m['fn'], m['tn'], m['fp']) == (2.0, 1.0, 1.0, 1.0)
    assert m['error'] == pytest.approx(0.4)
    assert m['recall'] == pytest.approx(2 / 3)
    assert m['precision'] == pytest.approx(2 / 3)
    assert m['fscore'] == pytest.approx(2 / 3)
    assert m['tpr'] == pytest.approx(2 / 3)
    assert m['tnr'] == pytest.approx(0.5)
    assert m['fpr'] == pytest.approx(0.5)
    assert m['fnr'] == pytest.approx(1 / 3)
    assert m['gscore'] == pytest.approx(4 / 7)
    assert m['balance'] == pytest.approx(1 - math.sqrt((0.25 + 1 / 9) / 2))
    assert m['mcc'] == pytest.approx(1 / 6)
    assert m['necm15'] == pytest.approx(0.5)
    assert m['necm20'] == pytest.approx(0.6)
    assert m['necm25'] == pytest.approx(0.7)


def test_metrics_order_and_types():
    """Metrics come back as floats in the result column order"""
    from cpdp.config import METRICS
    from cpdp.evaluation import compute_metrics

    m = compute_metrics([0, 1], [0, 1], [0.2, 0.9])

    assert list(m) == METRICS
    assert all(isinstance(v, float) for v in m.values())
    assert m['auc'] == pytest.approx(1.0)


def test_auc_undefined_for_single_class():
    """AUC is NaN when the test data has a single class"""
    from cpdp.evaluation import compute_metrics

    m = compute_metrics([1, 1, 1], [1, 0, 1], [0.9, 0.2, 0.8])

    assert math.isnan(m['auc'])
    assert m['tnr'] == 0.0
    assert m['fpr'] == 0.0


def test_metrics_empty_data():
    """Empty test data yields zero counts and ratios"""
    from cpdp.evaluation import compute_metrics

    m = compute_metrics([], [], [])

    assert m['tp'] == m['fp'] == m['tn'] == m['fn'] == 0.0
    assert m['error'] == 0.0
    assert m['fscore'] == 0.0
    assert m['aucec'] == 0.0
    assert math.isnan(m['auc'])


# =============================================================================
# EFFORT-AWARE METRICS
# =============================================================================

def test_effort_metrics_known_example():
    """Effort-aware metrics follow the inspection order of the scores"""
    from cpdp.evaluation import compute_effort_metrics

    m = compute_effort_metrics(np.array([1, 0, 1, 0]),
                               np.array([0.9, 0.8, 0.7, 0.1]),
                               np.array([10, 10, 10, 70]))

    assert m['aucec'] == pytest.approx(0.85)
    assert m['nofb20'] == pytest.approx(1.0)
    assert m['relb20'] == pytest.approx(0.5)
    assert m['nofi80'] == pytest.approx(3.0)
    assert m['reli80'] == pytest.approx(0.75)
    assert m['rele80'] == pytest.approx(0.3)


def test_effort_metrics_ties_prefer_small_effort():
    """Instances with equal scores are inspected with the smaller effort first"""
    from cpdp.evaluation import compute_effort_metrics

    m = compute_effort_metrics(np.array([0, 1]),
                               np.array([0.5, 0.5]),
                               np.array([80, 20]))

    assert m['nofb20'] == pytest.approx(1.0)
    assert m['rele80'] == pytest.approx(0.2)


def test_effort_metrics_without_bugs():
    """Without defective instances every effort metric is 0"""
    from cpdp.evaluation import compute_effort_metrics

    m = compute_effort_metrics(np.array([0, 0]), np.array([0.3, 0.1]))

    assert all(v == 0.0 for v in m.values())


# =============================================================================
# TEST SET EVALUATION
# =============================================================================

def test_evaluate_trainer_result():
    """evaluate_trainer fills the identifying fields of the result"""
    from cpdp.evaluation import evaluate_trainer

    test = make_test_data()
    train = test.take([0, 1])
    trainer = ConstantTrainer("xgb", [1, 1, 1, 0], [0.9, 0.8, 0.7, 0.1])

    result = evaluate_trainer(trainer, test, train, "exp")

    assert result.configuration_name == "exp"
    assert result.product_name == "ant"
    assert result.classifier == "xgb"
    assert result.size_test_data == 4
    assert result.size_training_data == 2
    assert result.aucec == pytest.approx(0.85)
    assert result.tp == 2.0


def test_result_record_columns():
    """Result records use the column names of result files and tables"""
    from cpdp.config import METRICS
    from cpdp.evaluation import evaluate_trainer

    test = make_test_data()
    result = evaluate_trainer(ConstantTrainer("nb", [0, 0, 0, 0], [0.1] * 4), test, test, "exp")
    record = result.to_record()

    assert list(record) == ["configurationName", "productName", "classifier",
                            "testsize", "trainsize"] + METRICS
    assert record["productName"] == "ant"


def test_test_set_evaluation_writes_header_once(tmp_path):
    """The CSV header is written only when asked to, rows are appended"""
    from cpdp.evaluation import TestSetEvaluation

    output = tmp_path / "my-experiment.csv"
    storage = RecordingStorage()
    evaluator = TestSetEvaluation(result_storage=storage)
    evaluator.set_parameter(str(output))

    test = make_test_data()
    trainers = [ConstantTrainer("a", [1, 0, 1, 0], [0.9, 0.1, 0.8, 0.2]),
                ConstantTrainer("b", [0, 0, 0, 0], [0.1] * 4)]

    evaluator.apply(test, test, trainers, True)
    evaluator.apply(test, test, trainers, False)

    lines = output.read_text().splitlines()
    assert len(lines) == 5
    assert lines[0].startswith("configurationName,productName,classifier,testsize,trainsize,error")
    assert sum(line.startswith("configurationName") for line in lines) == 1

    frame = pd.read_csv(output)
    assert frame["classifier"].tolist() == ["a", "b", "a", "b"]
    assert set(frame["configurationName"]) == {"my-experiment"}
    assert frame.loc[0, "fscore"] == pytest.approx(1.0)
    assert len(storage.results) == 4


def test_test_set_evaluation_restarts_file(tmp_path):
    """Writing a header starts the file anew"""
    from cpdp.evaluation import TestSetEvaluation

    output = tmp_path / "exp.csv"
    output.write_text("stale content\n")
    evaluator = TestSetEvaluation()
    evaluator.set_parameter(str(output))

    test = make_test_data()
    evaluator.apply(test, test, [ConstantTrainer("a", [1, 0, 1, 0], [0.9] * 4)], True)

    assert "stale" not in output.read_text()
    assert len(pd.read_csv(output)) == 1


def test_test_set_evaluation_without_output(caplog):
    """Without an output file the results are still returned"""
    from cpdp.evaluation import TestSetEvaluation

    test = make_test_data()
    with caplog.at_level("WARNING", logger="cpdp"):
        results = TestSetEvaluation().apply(
            test, test, [ConstantTrainer("a", [1, 0, 1, 0], [0.9] * 4)], True)

    assert len(results) == 1
    assert results[0].configuration_name == "cpdp-experiment"
    assert "no output file" in caplog.text
