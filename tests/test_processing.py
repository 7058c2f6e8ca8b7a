#!/usr/bin/env python3
"""
Unit tests for the processing and pointwise selection strategies.

Usage:
    python -m pytest tests/test_processing.py -v
"""

import sys
from pathlib import Path

import numpy as np
import pytest

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))


def make_dataset(X, y, names=None, name="p"):
    from cpdp.dataset import Dataset

    X = np.asarray(X, dtype=float)
    names = names or [f"f{i}" for i in range(X.shape[1])]
    return Dataset.from_arrays(name, X, y, names)


# =============================================================================
# PROCESSING TESTS
# =============================================================================

def test_median_imputation_uses_training_median():
    """Missing values are replaced by the training median, empty columns by 0"""
    from cpdp.processing import MedianImputation

    train = make_dataset([[1, np.nan], [3, np.nan], [np.nan, np.nan]], [0, 1, 0])
    test = make_dataset([[np.nan, np.nan], [5, 7]], [1, 0])

    new_test, new_train = MedianImputation().apply(test, train)

    assert new_train.X.tolist() == [[1, 0], [3, 0], [2, 0]]
    assert new_test.X.tolist() == [[2, 0], [5, 0]]
    assert new_test.feature_names == test.feature_names
    # inputs are left untouched
    assert np.isnan(test.X[0, 0])
    assert np.isnan(train.X[2, 0])


def test_median_imputation_zeroes_columns_empty_in_training():
    """A feature without any training value is 0 in both sets"""
    from cpdp.processing import MedianImputation

    train = make_dataset([[1, np.nan], [2, np.nan]], [0, 1], names=["a", "b"])
    test = make_dataset([[3, 7], [4, np.nan]], [1, 0], names=["a", "b"])

    new_test, new_train = MedianImputation().apply(test, train)

    assert new_test.X.tolist() == [[3, 0], [4, 0]]
    assert new_train.X.tolist() == [[1, 0], [2, 0]]
    assert new_test.feature_names == ["a", "b"]
    assert test.X[0, 1] == 7


def test_zscore_normalization_train_reference():
    """Both sets are scaled with the training mean and deviation"""
    from cpdp.processing import ZScoreNormalization

    train = make_dataset([[0], [2]], [0, 1])
    test = make_dataset([[4]], [1])

    new_test, new_train = ZScoreNormalization().apply(test, train)

    assert new_train.X.ravel().tolist() == [-1.0, 1.0]
    assert new_test.X.ravel().tolist() == [3.0]
    assert new_test.y.tolist() == [1]


def test_zscore_normalization_test_reference():
    """With reference='test' the test statistics are used"""
    from cpdp.processing import ZScoreNormalization

    train = make_dataset([[4]], [1])
    test = make_dataset([[0], [2]], [0, 1])

    new_test, new_train = ZScoreNormalization(reference='test').apply(test, train)

    assert new_test.X.ravel().tolist() == [-1.0, 1.0]
    assert new_train.X.ravel().tolist() == [3.0]


def test_zscore_invalid_reference():
    """Unknown reference sets are rejected"""
    from cpdp.processing import ZScoreNormalization

    with pytest.raises(ValueError):
        ZScoreNormalization(reference='both')


def test_logarithm_transform():
    """Features become sign(x) * log(1 + |x|)"""
    from cpdp.processing import LogarithmTransform

    e = np.expm1(1.0)
    data = make_dataset([[0.0], [e], [-e]], [0, 1, 0])

    new_test, new_train = LogarithmTransform().apply(data, data)

    assert np.allclose(new_test.X.ravel(), [0.0, 1.0, -1.0])
    assert np.allclose(new_train.X.ravel(), [0.0, 1.0, -1.0])


def test_attribute_removal():
    """Named attributes are dropped, unknown names are ignored"""
    from cpdp.processing import AttributeRemoval

    data = make_dataset([[1, 2, 3]], [1], names=["a", "b", "c"])

    new_test, new_train = AttributeRemoval(["b", "missing"]).apply(data, data)

    assert new_test.feature_names == ["a", "c"]
    assert new_train.X.tolist() == [[1, 3]]
    assert data.feature_names == ["a", "b", "c"]


def test_processing_empty_data():
    """Processing an empty dataset keeps it empty"""
    from cpdp.processing import MedianImputation, ZScoreNormalization

    empty = make_dataset(np.zeros((0, 2)), [])
    train = make_dataset([[1, 2], [3, 4]], [0, 1])

    for processor in (MedianImputation(), ZScoreNormalization()):
        new_test, new_train = processor.apply(empty, train)
        assert new_test.num_instances == 0
        assert new_train.num_instances == 2


# =============================================================================
# SELECTION TESTS
# =============================================================================

def test_smote_balances_classes():
    """SMOTE adds synthetic minority rows until both classes are equal"""
    from cpdp.selection import SMOTESelection

    rng = np.random.RandomState(0)
    X = rng.rand(9, 2)
    y = [0, 0, 0, 0, 0, 0, 1, 1, 1]
    train = make_dataset(X, y)

    result = SMOTESelection(k_neighbors=2, random_state=1).apply(train, train)

    assert result.num_instances == 12
    assert result.n_defective == 6
    assert np.allclose(result.X[:9], X)

    # synthetic rows lie between minority samples
    minority = X[6:]
    synthetic = result.X[9:]
    assert (synthetic >= minority.min(axis=0) - 1e-9).all()
    assert (synthetic <= minority.max(axis=0) + 1e-9).all()


def test_smote_is_reproducible():
    """The same random state produces the same synthetic data"""
    from cpdp.selection import SMOTESelection

    X = np.arange(20, dtype=float).reshape(10, 2)
    train = make_dataset(X, [0] * 7 + [1] * 3)

    first = SMOTESelection(k_neighbors=2, random_state=5).apply(train, train)
    second = SMOTESelection(k_neighbors=2, random_state=5).apply(train, train)

    assert first.equals(second)


def test_smote_single_class():
    """With only one class the training data is returned unchanged"""
    from cpdp.selection import SMOTESelection

    train = make_dataset([[1], [2]], [0, 0])

    result = SMOTESelection().apply(train, train)

    assert result.equals(train)


def test_nearest_neighbor_filter():
    """Only the k nearest training rows of each test row are kept"""
    from cpdp.selection import NearestNeighborFilter

    train = make_dataset([[0], [1], [10], [11]], [0, 1, 0, 1])
    test = make_dataset([[0.1]], [1])

    result = NearestNeighborFilter(k=2).apply(test, train)

    assert result.X.ravel().tolist() == [0.0, 1.0]
    assert result.y.tolist() == [0, 1]


def test_nearest_neighbor_filter_union():
    """Rows selected by several test rows appear once, in original order"""
    from cpdp.selection import NearestNeighborFilter

    train = make_dataset([[0], [1], [10], [11]], [0, 1, 0, 1])
    test = make_dataset([[10.9], [0.2], [0.4]], [1, 0, 0])

    result = NearestNeighborFilter(k=1).apply(test, train)

    assert result.X.ravel().tolist() == [0.0, 11.0]


def test_nearest_neighbor_filter_empty_test():
    """An empty test set selects nothing"""
    from cpdp.selection import NearestNeighborFilter

    train = make_dataset([[0], [1]], [0, 1])
    test = make_dataset(np.zeros((0, 1)), [])

    result = NearestNeighborFilter().apply(test, train)

    assert result.num_instances == 0
    assert result.feature_names == train.feature_names


def test_random_undersampling():
    """Majority rows are removed until both classes have the same size"""
    from cpdp.selection import RandomUndersampling

    X = np.arange(8, dtype=float).reshape(8, 1)
    train = make_dataset(X, [0, 0, 1, 0, 0, 1, 0, 0])

    result = RandomUndersampling(random_state=0).apply(train, train)

    assert result.num_instances == 4
    assert result.n_defective == 2
    values = result.X.ravel().tolist()
    assert values == sorted(values)
    assert set(values) <= set(X.ravel().tolist())
    assert {2.0, 5.0} <= set(values)
