"""Accuracy assessment of a classification against held-out samples."""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Hashable, Optional, Sequence, Tuple

import numpy as np
from sklearn.metrics import confusion_matrix

from landcover.cste import ClassInfo, ResultPath
from landcover.errors import InvalidInput
from landcover.logger import get_logger

log = get_logger("metrics")


def _to_builtin(value: Any) -> Any:
    return value.item() if isinstance(value, np.generic) else value


def ordered_labels(*sequences: Sequence[Hashable]) -> Tuple[Hashable, ...]:
    """Union of labels, sorted when comparable, else in order of first appearance."""
    seen = {}
    for seq in sequences:
        for label in seq:
            seen.setdefault(_to_builtin(label), None)
    labels = list(seen)
    try:
        return tuple(sorted(labels))
    except TypeError:
        return tuple(labels)


def _ratio(num: float, denom: float) -> float:
    #! Undefined ratios (no sample for the class) are NaN, not errors
    return float(num) / float(denom) if denom > 0 else float("nan")


@dataclass(frozen=True, eq=False)
class ConfusionMatrix:
    """
    Square count matrix indexed by class label.

    matrix[i, j] counts samples whose actual class is labels[i] and whose
    predicted class is labels[j].
    """
    labels: Tuple[Hashable, ...]
    matrix: np.ndarray

    def __post_init__(self):
        k = len(self.labels)
        if self.matrix.shape != (k, k):
            raise InvalidInput(f"Matrix shape {self.matrix.shape} does not match {k} labels")
        frozen = np.array(self.matrix, dtype=np.int64, copy=True)
        frozen.flags.writeable = False
        object.__setattr__(self, "matrix", frozen)

    @property
    def total(self) -> int:
        return int(self.matrix.sum())

    def counts(self) -> Dict[Tuple[Hashable, Hashable], int]:
        """Map (actual, predicted) -> count, for every cell of the matrix."""
        return {
            (actual, predicted): int(self.matrix[i, j])
            for i, actual in enumerate(self.labels)
            for j, predicted in enumerate(self.labels)
        }

    def overall_accuracy(self) -> float:
        """Trace / total."""
        return _ratio(np.trace(self.matrix), self.total)

    def producers_accuracy(self) -> Dict[Hashable, float]:
        """Per-class recall: diagonal / row sum (actual class perspective)."""
        rows = self.matrix.sum(axis=1)
        return {
            label: _ratio(self.matrix[i, i], rows[i]) for i, label in enumerate(self.labels)
        }

    def consumers_accuracy(self) -> Dict[Hashable, float]:
        """Per-class precision: diagonal / column sum (predicted class perspective)."""
        cols = self.matrix.sum(axis=0)
        return {
            label: _ratio(self.matrix[j, j], cols[j]) for j, label in enumerate(self.labels)
        }

    def kappa(self) -> float:
        """
        Cohen's kappa coefficient.

        kappa = (po - pe) / (1 - pe), with po the overall accuracy and pe the
        agreement expected by chance from row and column marginals.
        """
        n = self.total
        if n == 0:
            return float("nan")
        po = np.trace(self.matrix) / n
        pe = float((self.matrix.sum(axis=1) * self.matrix.sum(axis=0)).sum()) / (n * n)
        return _ratio(po - pe, 1.0 - pe) if pe < 1.0 else float("nan")

    def to_report(self) -> Dict[str, Any]:
        """Structured accuracy report handed to reporting layers."""
        return {
            "confusionMatrix": self.counts(),
            "overallAccuracy": self.overall_accuracy(),
            "producersAccuracy": self.producers_accuracy(),
            "consumersAccuracy": self.consumers_accuracy(),
            "kappa": self.kappa(),
        }


def build_confusion_matrix(
    predicted: Sequence[Hashable],
    actual: Sequence[Hashable],
    labels: Optional[Sequence[Hashable]] = None,
) -> ConfusionMatrix:
    """
    Build a confusion matrix from index-aligned predicted and actual labels.

    Args:
        predicted: Predicted class per sample
        actual: Actual class per sample
        labels: Label order (defaults to the union of both sequences)

    Returns:
        ConfusionMatrix (rows = actual, columns = predicted)

    Raises:
        InvalidInput: If sequences have different lengths
    """
    predicted = [_to_builtin(p) for p in predicted]
    actual = [_to_builtin(a) for a in actual]
    if len(predicted) != len(actual):
        raise InvalidInput(
            f"Predicted ({len(predicted)}) and actual ({len(actual)}) lengths differ"
        )

    labels = ordered_labels(actual, predicted) if labels is None else tuple(labels)
    if not actual:
        return ConfusionMatrix(labels=labels, matrix=np.zeros((len(labels), len(labels)), dtype=np.int64))

    #! Map labels to indices so mixed / unsortable labels work with sklearn
    index = {label: i for i, label in enumerate(labels)}
    unknown = {l for l in actual + predicted if l not in index}
    if unknown:
        raise InvalidInput(f"Labels {sorted(map(str, unknown))} not in label list")

    cm = confusion_matrix(
        [index[a] for a in actual],
        [index[p] for p in predicted],
        labels=list(range(len(labels))),
    )
    return ConfusionMatrix(labels=labels, matrix=cm)


def save_evaluation_report(
    report: Dict[str, Any],
    save_dir: str = ResultPath.REPORT_PATH,
    model_name: str = "RandomForest",
) -> Path:
    """
    Save an accuracy report to JSON.

    The (actual, predicted) keys of the confusion matrix are written as a list
    of {"actual", "predicted", "count"} records. Undefined ratios are written
    as null.

    Args:
        report: Output of ConfusionMatrix.to_report()
        save_dir: Directory to save report
        model_name: Name of the model

    Returns:
        Path of the written file
    """
    save_path = Path(save_dir)
    save_path.mkdir(parents=True, exist_ok=True)

    report_path = save_path / f'{model_name}_evaluation.json'

    def _clean(value):
        value = _to_builtin(value)
        if isinstance(value, float) and np.isnan(value):
            return None
        return value

    #! JSON has no tuple keys nor NaN
    serializable = {
        "confusionMatrix": [
            {"actual": a, "predicted": p, "count": c}
            for (a, p), c in report["confusionMatrix"].items()
        ],
        "overallAccuracy": _clean(report["overallAccuracy"]),
        "producersAccuracy": {str(k): _clean(v) for k, v in report["producersAccuracy"].items()},
        "consumersAccuracy": {str(k): _clean(v) for k, v in report["consumersAccuracy"].items()},
    }
    if "kappa" in report:
        serializable["kappa"] = _clean(report["kappa"])

    with open(report_path, 'w') as f:
        json.dump(serializable, f, indent=2)

    log.info(f"Saved evaluation report to {report_path}")
    return report_path


def print_evaluation_summary(
    cm: ConfusionMatrix,
    class_names: Optional[Dict[Hashable, str]] = None,
) -> None:
    """
    Log a formatted evaluation summary.

    Args:
        cm: Confusion matrix to summarize
        class_names: Display name per label (defaults to ClassInfo.CLASS_NAMES)
    """
    class_names = ClassInfo.CLASS_NAMES if class_names is None else class_names
    producers = cm.producers_accuracy()
    consumers = cm.consumers_accuracy()

    log.info("=" * 50)
    log.info("EVALUATION SUMMARY")
    log.info("=" * 50)

    #! Overall metrics
    log.info(f"Test samples:     {cm.total}")
    log.info(f"Overall accuracy: {cm.overall_accuracy():.4f}")
    log.info(f"Kappa:            {cm.kappa():.4f}")

    #! Per-class metrics
    log.info("Per-class metrics:")
    for label in cm.labels:
        name = class_names.get(label)
        log.info(f"  Class {label} ({name}):" if name else f"  Class {label}:")
        log.info(f"    Producer's accuracy: {producers[label]:.4f}")
        log.info(f"    Consumer's accuracy: {consumers[label]:.4f}")

    #! Confusion matrix
    log.info(f"Confusion matrix (rows=actual, cols=predicted, labels={list(cm.labels)}):")
    log.info(f"{cm.matrix}")

    log.info("=" * 50)
