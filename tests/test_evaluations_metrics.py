# tests/test_evaluations_metrics.py
import json
import math

import numpy as np
import pytest

from landcover.errors import InvalidInput
from landcover.evaluations_metrics import (
    ConfusionMatrix,
    build_confusion_matrix,
    ordered_labels,
    print_evaluation_summary,
    save_evaluation_report,
)


def test_two_class_example():
    cm = build_confusion_matrix(["A", "B", "A", "B"], ["A", "A", "B", "B"])
    assert cm.labels == ("A", "B")
    assert cm.matrix.tolist() == [[1, 1], [1, 1]]
    assert cm.counts()[("A", "B")] == 1
    assert cm.overall_accuracy() == 0.5
    assert cm.producers_accuracy()["A"] == 0.5
    assert cm.consumers_accuracy()["A"] == 0.5
    assert cm.kappa() == pytest.approx(0.0)


def test_rows_are_actual_columns_are_predicted():
    actual = [1, 1, 1, 2, 2, 3]
    predicted = [1, 1, 2, 2, 2, 1]
    cm = build_confusion_matrix(predicted, actual)
    assert cm.labels == (1, 2, 3)
    assert cm.matrix.tolist() == [[2, 1, 0], [0, 2, 0], [1, 0, 0]]
    assert cm.total == len(actual)
    assert cm.overall_accuracy() == pytest.approx(4 / 6)
    pa = cm.producers_accuracy()
    ca = cm.consumers_accuracy()
    assert pa[1] == pytest.approx(2 / 3)
    assert pa[2] == 1.0
    assert pa[3] == 0.0
    assert ca[1] == pytest.approx(2 / 3)
    assert ca[2] == pytest.approx(2 / 3)
    assert math.isnan(ca[3])


def test_perfect_agreement():
    labels = ["urban", "forest", "agriculture", "forest"]
    cm = build_confusion_matrix(labels, labels)
    assert cm.overall_accuracy() == 1.0
    assert all(v == 1.0 for v in cm.producers_accuracy().values())
    assert all(v == 1.0 for v in cm.consumers_accuracy().values())
    assert cm.kappa() == pytest.approx(1.0)
    assert np.array_equal(np.diag(cm.matrix), [1, 2, 1])


def test_absent_class_gives_nan():
    cm = build_confusion_matrix(["A", "B"], ["A", "B"], labels=["A", "B", "C"])
    assert cm.matrix.shape == (3, 3)
    assert math.isnan(cm.producers_accuracy()["C"])
    assert math.isnan(cm.consumers_accuracy()["C"])
    assert cm.overall_accuracy() == 1.0


def test_empty_input():
    cm = build_confusion_matrix([], [], labels=[1, 2])
    assert cm.total == 0
    assert cm.matrix.tolist() == [[0, 0], [0, 0]]
    assert math.isnan(cm.overall_accuracy())
    assert math.isnan(cm.kappa())


def test_invalid_inputs():
    with pytest.raises(InvalidInput):
        build_confusion_matrix(["A", "B"], ["A"])
    with pytest.raises(InvalidInput):
        build_confusion_matrix(["A", "Z"], ["A", "B"], labels=["A", "B"])
    with pytest.raises(InvalidInput):
        ConfusionMatrix(labels=("A", "B"), matrix=np.zeros((3, 3)))


def test_matrix_is_read_only():
    cm = build_confusion_matrix([1, 2], [1, 2])
    with pytest.raises(ValueError):
        cm.matrix[0, 0] = 10


def test_ordered_labels():
    assert ordered_labels([3, 1], np.array([2, 1])) == (1, 2, 3)
    # not comparable: first appearance order
    assert ordered_labels(["b", 1], ["a"]) == ("b", 1, "a")


def test_save_evaluation_report(tmp_path):
    cm = build_confusion_matrix(["A", "B"], ["A", "B"], labels=["A", "B", "C"])
    path = save_evaluation_report(cm.to_report(), str(tmp_path), "RandomForest")
    assert path == tmp_path / "RandomForest_evaluation.json"

    with open(path) as f:
        saved = json.load(f)
    assert saved["overallAccuracy"] == 1.0
    assert saved["producersAccuracy"] == {"A": 1.0, "B": 1.0, "C": None}
    assert saved["consumersAccuracy"]["C"] is None
    assert len(saved["confusionMatrix"]) == 9
    assert {"actual": "A", "predicted": "A", "count": 1} in saved["confusionMatrix"]


def test_print_evaluation_summary_handles_nan():
    cm = build_confusion_matrix([1], [1], labels=[1, 2])
    print_evaluation_summary(cm)
    print_evaluation_summary(cm, class_names={1: "urban"})
