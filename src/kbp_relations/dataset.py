"""Reading labeled examples and turning them into a training dataset.

The input format is a CoNLL-style TSV file. Records are separated by blank
lines; the first line of a record is the gold relation label, every other
line is ``token<TAB>role<TAB>ner`` with role ``SUBJECT``, ``OBJECT`` or
``-``. Lines starting with ``#`` are comments; ``\\#`` escapes a literal
``#`` token.
"""

import logging
import threading
import time
from collections import Counter
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Optional, Sequence, Tuple, Union

import numpy as np
from scipy.sparse import csr_matrix
from tqdm import tqdm

from .featurizer import FeaturizerInput, features
from .schema import NO_RELATION, EntityType
from .sentence import Sentence, TokenSpan

logger = logging.getLogger(__name__)

Example = Tuple[FeaturizerInput, str]

ROLE_SUBJECT = "SUBJECT"
ROLE_OBJECT = "OBJECT"
ROLE_NONE = "-"


class DatasetFormatError(ValueError):
    """Raised when a dataset file cannot be parsed."""

    def __init__(self, message: str, path: Optional[Union[str, Path]] = None, line_no: Optional[int] = None):
        location = ""
        if path is not None:
            location = f"{path}:{line_no}: " if line_no is not None else f"{path}: "
        super().__init__(f"{location}{message}")
        self.path = path
        self.line_no = line_no


class _RecordBuilder:
    """Accumulates the lines of one record."""

    def __init__(self, label: str, line_no: int):
        self.label = label
        self.line_no = line_no
        self.words: List[str] = []
        self.ner_tags: List[str] = []
        self.subject: Optional[Tuple[int, int]] = None
        self.object: Optional[Tuple[int, int]] = None
        self.subject_type: Optional[EntityType] = None
        self.object_type: Optional[EntityType] = None

    @staticmethod
    def _extend(span: Optional[Tuple[int, int]], i: int) -> Tuple[int, int]:
        if span is None:
            return i, i + 1
        return min(span[0], i), max(span[1], i + 1)

    def add_token(self, word: str, role: str, ner: str, path, line_no: int) -> None:
        i = len(self.words)
        if role == ROLE_SUBJECT:
            self.subject = self._extend(self.subject, i)
            self.subject_type = _entity_type(ner, path, line_no)
        elif role == ROLE_OBJECT:
            self.object = self._extend(self.object, i)
            self.object_type = _entity_type(ner, path, line_no)
        elif role != ROLE_NONE:
            raise DatasetFormatError(f"Unknown role marker {role!r}", path, line_no)
        self.words.append(word)
        self.ner_tags.append(ner)

    def build(self, path) -> Example:
        if self.subject is None or self.object is None:
            missing = ROLE_SUBJECT if self.subject is None else ROLE_OBJECT
            raise DatasetFormatError(
                f"Record has no {missing} token", path, self.line_no
            )
        inp = FeaturizerInput(
            subject_span=TokenSpan(*self.subject),
            object_span=TokenSpan(*self.object),
            subject_type=self.subject_type,
            object_type=self.object_type,
            sentence=Sentence(self.words, ner_tags=self.ner_tags),
        )
        return inp, self.label


def _entity_type(ner: str, path, line_no: int) -> EntityType:
    entity_type = EntityType.__members__.get(ner.strip().upper())
    if entity_type is None:
        raise DatasetFormatError(f"Unknown NER tag {ner!r}", path, line_no)
    return entity_type


def read_dataset(path: Union[str, Path]) -> List[Example]:
    """Read labeled mention pairs from a CoNLL-style TSV file.

    Parameters
    ----------
    path : Union[str, Path]
        Dataset file (UTF-8)

    Returns
    -------
    List[Example]
        (FeaturizerInput, gold label) pairs. Sentences are not parsed yet.

    Raises
    ------
    DatasetFormatError
        On a line with the wrong number of fields, an unknown role marker,
        an unknown NER tag on a mention, or a record without a subject or
        object.
    """
    examples: List[Example] = []
    record: Optional[_RecordBuilder] = None

    with open(path, "r", encoding="utf-8") as f:
        for line_no, line in enumerate(f, start=1):
            line = line.rstrip("\r\n")
            if line.startswith("#"):
                continue
            line = line.replace("\\#", "#")

            if not line.strip():
                if record is not None:
                    examples.append(record.build(path))
                    record = None
                continue

            fields = line.split("\t")
            if record is None:
                if len(fields) != 1:
                    raise DatasetFormatError(
                        f"Expected a relation label, got {len(fields)} fields", path, line_no
                    )
                record = _RecordBuilder(fields[0].strip(), line_no)
            elif len(fields) == 3:
                record.add_token(fields[0], fields[1], fields[2], path, line_no)
            else:
                raise DatasetFormatError(
                    f"Expected 3 tab-separated fields, got {len(fields)}", path, line_no
                )

    if record is not None:
        examples.append(record.build(path))

    logger.info("Read %d examples from %s", len(examples), path)
    logger.info(
        "%d are %s", sum(1 for _, label in examples if label == NO_RELATION), NO_RELATION
    )
    return examples


@dataclass
class FeatureVocab:
    """Vocabulary for mapping features to indices.

    Attributes
    ----------
    feature_to_idx : Dict[str, int]
        Feature string to index mapping
    idx_to_feature : Dict[int, str]
        Index to feature string mapping
    """

    feature_to_idx: Dict[str, int] = field(default_factory=dict)
    idx_to_feature: Dict[int, str] = field(default_factory=dict)

    def add(self, feature: str) -> int:
        """Add feature to vocabulary and return its index."""
        if feature not in self.feature_to_idx:
            idx = len(self.feature_to_idx)
            self.feature_to_idx[feature] = idx
            self.idx_to_feature[idx] = feature
        return self.feature_to_idx[feature]

    def get(self, feature: str) -> Optional[int]:
        """Get index for feature, or None if not found."""
        return self.feature_to_idx.get(feature)

    def __len__(self) -> int:
        return len(self.feature_to_idx)

    def __contains__(self, feature: str) -> bool:
        return feature in self.feature_to_idx


@dataclass
class FeatureMatrix:
    """Feature matrix with vocabulary and label mapping.

    Attributes
    ----------
    X : csr_matrix
        Sparse feature matrix (n_samples x n_features)
    y : np.ndarray
        Label index array (n_samples,)
    vocab : FeatureVocab
        Feature vocabulary
    label_to_idx : Dict[str, int]
        Label to index mapping
    idx_to_label : Dict[int, str]
        Index to label mapping
    example_ids : List[int]
        Dataset keys of the rows
    """

    X: csr_matrix
    y: np.ndarray
    vocab: FeatureVocab
    label_to_idx: Dict[str, int]
    idx_to_label: Dict[int, str]
    example_ids: List[int]

    @property
    def labels(self) -> List[str]:
        return [self.idx_to_label[i] for i in range(len(self.idx_to_label))]


def vectorize(feature_dicts: Sequence[Counter], vocab: FeatureVocab) -> csr_matrix:
    """Project feature counters onto ``vocab``; unknown features are dropped."""
    rows, cols, data = [], [], []
    for row_idx, feats in enumerate(feature_dicts):
        for feat, val in feats.items():
            col_idx = vocab.get(feat)
            if col_idx is not None:
                rows.append(row_idx)
                cols.append(col_idx)
                data.append(val)
    return csr_matrix(
        (data, (rows, cols)),
        shape=(len(feature_dicts), len(vocab)),
        dtype=np.float64,
    )


class RelationDataset:
    """Labeled feature vectors, safe to fill from several threads.

    Each entry carries a key (by default its insertion number). Iteration
    and matrix construction order entries by key, so a dataset filled
    concurrently with explicit keys has the same order every run.
    """

    def __init__(self):
        self._entries: List[Tuple[int, Counter, str]] = []
        self._lock = threading.Lock()
        self._next_key = 0

    def add(self, feats: Counter, label: str, key: Optional[int] = None) -> None:
        with self._lock:
            if key is None:
                key = self._next_key
            self._next_key = max(self._next_key, key + 1)
            self._entries.append((key, feats, label))

    def _sorted(self) -> List[Tuple[int, Counter, str]]:
        with self._lock:
            return sorted(self._entries, key=lambda entry: entry[0])

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[Tuple[Counter, str]]:
        for _, feats, label in self._sorted():
            yield feats, label

    @property
    def labels(self) -> List[str]:
        return [label for _, _, label in self._sorted()]

    def label_set(self) -> List[str]:
        return sorted({label for _, _, label in self._entries})

    def feature_counts(self) -> Counter:
        """Number of examples each feature occurs in."""
        counts: Counter = Counter()
        for _, feats, _ in self._entries:
            counts.update(feats.keys())
        return counts

    def apply_feature_count_threshold(self, threshold: int) -> int:
        """Drop features seen in fewer than ``threshold`` examples.

        Returns
        -------
        int
            Number of distinct features removed
        """
        if threshold <= 1:
            return 0
        counts = self.feature_counts()
        rare = {feat for feat, count in counts.items() if count < threshold}
        if not rare:
            return 0
        with self._lock:
            self._entries = [
                (key, Counter({f: v for f, v in feats.items() if f not in rare}), label)
                for key, feats, label in self._entries
            ]
        return len(rare)

    def to_matrix(self) -> FeatureMatrix:
        """Build the sparse design matrix in key order."""
        entries = self._sorted()

        vocab = FeatureVocab()
        for _, feats, _ in entries:
            for feat in feats:
                vocab.add(feat)

        label_to_idx = {label: i for i, label in enumerate(self.label_set())}
        idx_to_label = {i: label for label, i in label_to_idx.items()}

        X = vectorize([feats for _, feats, _ in entries], vocab)
        y = np.array([label_to_idx[label] for _, _, label in entries], dtype=np.int64)

        return FeatureMatrix(
            X=X,
            y=y,
            vocab=vocab,
            label_to_idx=label_to_idx,
            idx_to_label=idx_to_label,
            example_ids=[key for key, _, _ in entries],
        )

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._next_key = 0


def featurize_examples(
    examples: Sequence[Example],
    num_workers: int = 4,
    featurizer: Callable[[FeaturizerInput], Counter] = features,
    dataset: Optional[RelationDataset] = None,
    show_progress: bool = True,
) -> RelationDataset:
    """Featurize labeled examples in parallel into a ``RelationDataset``.

    Each example is keyed by its position in ``examples``; the resulting
    order does not depend on which worker finishes first.
    """
    dataset = dataset if dataset is not None else RelationDataset()
    begin = time.time()

    def _featurize(key: int, example: Example) -> None:
        inp, label = example
        dataset.add(featurizer(inp), label, key=key)

    with tqdm(total=len(examples), desc="Featurizing", unit="example", disable=not show_progress) as pbar:
        with ThreadPoolExecutor(max_workers=max(1, num_workers)) as executor:
            futures = [
                executor.submit(_featurize, key, example)
                for key, example in enumerate(examples)
            ]
            for done, future in enumerate(as_completed(futures), start=1):
                future.result()
                pbar.update(1)
                if done % 1000 == 0:
                    logger.info(
                        "[%.1fs] Featurized %d / %d examples",
                        time.time() - begin, done, len(examples),
                    )

    return dataset
