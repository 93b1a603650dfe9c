"""Scoring predicted relations against gold relations.

This module handles:
- Counting correct / predicted / gold relations per label
- Micro and macro precision, recall, F1 and accuracy
- Per-relation reports and the confusion matrix (table and heatmap)
"""

import logging
import threading
from collections import Counter, defaultdict
from pathlib import Path
from typing import Dict, Iterable, Optional, TextIO, Tuple, Union

import matplotlib.pyplot as plt
import pandas as pd
import seaborn as sns

from .schema import NO_RELATION

logger = logging.getLogger(__name__)

NR = "NR"


def _f1(precision: float, recall: float) -> float:
    if precision == 0.0 and recall == 0.0:
        return 0.0
    return 2.0 * precision * recall / (precision + recall)


class Accuracy:
    """Accumulates prediction/gold pairs; safe to update from several threads.

    The no-relation sentinel is never counted: a correct "no relation"
    prediction contributes nothing, and a missed or spurious relation shows
    up in the confusion matrix against ``"NR"``.
    """

    def __init__(self):
        self.correct_count: Counter = Counter()
        self.predicted_count: Counter = Counter()
        self.gold_count: Counter = Counter()
        self.total_count: Counter = Counter()
        # (predicted, gold) -> count
        self.confusion: Dict[Tuple[str, str], int] = defaultdict(int)
        self._lock = threading.Lock()

    def predict(self, predicted: Iterable[str], gold: Iterable[str]) -> None:
        """Register one example's predicted and gold relation sets."""
        predicted = set(predicted) - {NO_RELATION}
        gold = set(gold) - {NO_RELATION}

        with self._lock:
            for relation in predicted:
                if relation in gold:
                    self.correct_count[relation] += 1
                self.predicted_count[relation] += 1
            for relation in gold:
                self.gold_count[relation] += 1
            for relation in predicted | gold:
                self.total_count[relation] += 1

            if len(predicted) == 1 and len(gold) == 1:
                self.confusion[(next(iter(predicted)), next(iter(gold)))] += 1
            elif len(predicted) == 1 and not gold:
                self.confusion[(next(iter(predicted)), NR)] += 1
            elif not predicted and len(gold) == 1:
                self.confusion[(NR, next(iter(gold)))] += 1

    # Per-label metrics

    def precision(self, relation: str) -> float:
        if self.predicted_count[relation] == 0:
            return 1.0
        return self.correct_count[relation] / self.predicted_count[relation]

    def recall(self, relation: str) -> float:
        if self.gold_count[relation] == 0:
            return 0.0
        return self.correct_count[relation] / self.gold_count[relation]

    def f1(self, relation: str) -> float:
        return _f1(self.precision(relation), self.recall(relation))

    def accuracy(self, relation: str) -> float:
        if self.total_count[relation] == 0:
            return 0.0
        return self.correct_count[relation] / self.total_count[relation]

    # Micro averages

    def precision_micro(self) -> float:
        predicted = sum(self.predicted_count.values())
        if predicted == 0:
            return 1.0
        return sum(self.correct_count.values()) / predicted

    def recall_micro(self) -> float:
        gold = sum(self.gold_count.values())
        if gold == 0:
            return 0.0
        return sum(self.correct_count.values()) / gold

    def f1_micro(self) -> float:
        return _f1(self.precision_micro(), self.recall_micro())

    def accuracy_micro(self) -> float:
        total = sum(self.total_count.values())
        if total == 0:
            return 0.0
        return sum(self.correct_count.values()) / total

    # Macro averages over every label seen

    def _macro(self, metric, empty: float) -> float:
        labels = [label for label, count in self.total_count.items() if count > 0]
        if not labels:
            return empty
        return sum(metric(label) for label in labels) / len(labels)

    def precision_macro(self) -> float:
        return self._macro(self.precision, 1.0)

    def recall_macro(self) -> float:
        return self._macro(self.recall, 0.0)

    def f1_macro(self) -> float:
        return self._macro(self.f1, 0.0)

    def accuracy_macro(self) -> float:
        return self._macro(self.accuracy, 0.0)

    # Reports

    def per_relation_stats(self) -> pd.DataFrame:
        """One row per gold relation, sorted by ascending precision."""
        rows = [
            {
                "relation": relation,
                "predicted": self.predicted_count[relation],
                "gold": self.gold_count[relation],
                "precision": self.precision(relation),
                "recall": self.recall(relation),
                "f1": self.f1(relation),
            }
            for relation in self.gold_count
        ]
        columns = ["relation", "predicted", "gold", "precision", "recall", "f1"]
        frame = pd.DataFrame(rows, columns=columns)
        return frame.sort_values("precision", kind="stable").reset_index(drop=True)

    def dump_per_relation_stats(self, out: Optional[TextIO] = None) -> None:
        lines = ["Per-relation Accuracy"]
        for row in self.per_relation_stats().itertuples(index=False):
            lines.append(
                f"[{row.relation}]  pred/gold: {row.predicted}/{row.gold}  "
                f"P: {row.precision:.2%}  R: {row.recall:.2%}  F1: {row.f1:.2%}"
            )
        print("\n".join(lines), file=out)

    def confusion_frame(self) -> pd.DataFrame:
        """Confusion counts with gold labels as rows, predictions as columns."""
        labels = sorted({label for pair in self.confusion for label in pair})
        frame = pd.DataFrame(0, index=labels, columns=labels, dtype=int)
        for (predicted, gold), count in self.confusion.items():
            frame.loc[gold, predicted] = count
        frame.index.name = "gold"
        frame.columns.name = "predicted"
        return frame

    def plot_confusion_matrix(
        self, output_file: Union[str, Path], title: str = "Confusion Matrix"
    ) -> None:
        """Save the confusion matrix as a heatmap image."""
        frame = self.confusion_frame()
        if frame.empty:
            logger.warning("Confusion matrix is empty; not writing %s", output_file)
            return
        size = max(6, len(frame) // 2)

        plt.figure(figsize=(size + 2, size))
        sns.heatmap(frame, annot=True, fmt="d", cmap="Blues")
        plt.title(title)
        plt.ylabel("Gold Label")
        plt.xlabel("Predicted Label")
        plt.xticks(rotation=45, ha="right")
        plt.tight_layout()
        plt.savefig(output_file)
        plt.close()
        logger.info("Saved confusion matrix plot to %s", output_file)

    def __str__(self) -> str:
        return "\n".join([
            "",
            f"ACCURACY  (micro average): {self.accuracy_micro():.3%}",
            f"PRECISION (micro average): {self.precision_micro():.3%}",
            f"RECALL    (micro average): {self.recall_micro():.3%}",
            f"F1        (micro average): {self.f1_micro():.3%}",
            "",
            f"ACCURACY  (macro average): {self.accuracy_macro():.3%}",
            f"PRECISION (macro average): {self.precision_macro():.3%}",
            f"RECALL    (macro average): {self.recall_macro():.3%}",
            f"F1        (macro average): {self.f1_macro():.3%}",
            "",
        ])
