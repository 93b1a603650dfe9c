"""Tests for dataset reading and the featurized training set."""

import threading
from collections import Counter

import numpy as np
import pytest

from kbp_relations.dataset import (
    DatasetFormatError,
    FeatureVocab,
    RelationDataset,
    featurize_examples,
    read_dataset,
    vectorize,
)
from kbp_relations.schema import NO_RELATION, EntityType
from kbp_relations.sentence import TokenSpan


@pytest.fixture
def write_dataset(tmp_path):
    def _write(text: str, name: str = "data.conll"):
        path = tmp_path / name
        path.write_text(text, encoding="utf-8")
        return path
    return _write


class TestReadDataset:
    """Tests for read_dataset."""

    def test_single_record(self, write_dataset, obama_record):
        """Should parse spans, types and the label of one record."""
        examples = read_dataset(write_dataset(obama_record + "\n"))
        assert len(examples) == 1
        inp, label = examples[0]
        assert label == "per:title"
        assert inp.subject_span == TokenSpan(0, 2)
        assert inp.object_span == TokenSpan(3, 4)
        assert inp.subject_type is EntityType.PERSON
        assert inp.object_type is EntityType.TITLE
        assert inp.sentence.words == ["Barack", "Obama", "is", "President"]
        assert inp.sentence.ner_tags == ["PERSON", "PERSON", "O", "TITLE"]
        assert not inp.sentence.is_annotated

    def test_final_record_without_blank_line(self, write_dataset, obama_record):
        assert len(read_dataset(write_dataset(obama_record))) == 1

    def test_multiple_records_and_blank_lines(self, write_dataset, obama_record):
        second = (
            f"{NO_RELATION}\n"
            "Paris\tOBJECT\tcity\n"
            "loves\t-\tO\n"
            "Obama\tSUBJECT\tperson\n"
        )
        text = "\n\n" + obama_record + "\n\n\n" + second + "\n"
        examples = read_dataset(write_dataset(text))
        assert [label for _, label in examples] == ["per:title", NO_RELATION]
        inp, _ = examples[1]
        assert inp.subject_span == TokenSpan(2, 3)
        assert inp.object_span == TokenSpan(0, 1)
        assert inp.object_type is EntityType.CITY

    def test_comments_and_escapes(self, write_dataset):
        text = (
            "# a comment line\n"
            "per:title\n"
            "Obama\tSUBJECT\tPERSON\n"
            "\\#\t-\tO\n"
            "# another comment\n"
            "President\tOBJECT\tTITLE\n"
        )
        (inp, _), = read_dataset(write_dataset(text))
        assert inp.sentence.words == ["Obama", "#", "President"]
        assert inp.object_span == TokenSpan(2, 3)

    def test_logs_counts(self, write_dataset, obama_record, caplog):
        with caplog.at_level("INFO", logger="kbp_relations.dataset"):
            read_dataset(write_dataset(obama_record))
        assert "Read 1 examples" in caplog.text
        assert f"0 are {NO_RELATION}" in caplog.text

    @pytest.mark.parametrize(
        "text,message",
        [
            ("per:title\nObama\tSUBJECT\n", "3 tab-separated fields"),
            ("per:title\tx\nObama\tSUBJECT\tPERSON\n", "relation label"),
            ("per:title\nObama\tSUBJ\tPERSON\n", "role marker"),
            ("per:title\nObama\tSUBJECT\tHUMAN\nX\tOBJECT\tTITLE\n", "NER tag"),
            ("per:title\nObama\tSUBJECT\tPERSON\nis\t-\tO\n", "no OBJECT"),
            ("per:title\nis\t-\tO\nX\tOBJECT\tTITLE\n\n", "no SUBJECT"),
        ],
    )
    def test_fatal_errors(self, write_dataset, text, message):
        """Should abort the load on malformed input."""
        with pytest.raises(DatasetFormatError, match=message):
            read_dataset(write_dataset(text))

    def test_error_reports_line(self, write_dataset, obama_record):
        path = write_dataset(obama_record + "\nper:age\nBob\tWHO\tPERSON\n")
        with pytest.raises(DatasetFormatError) as excinfo:
            read_dataset(path)
        assert excinfo.value.line_no == 8
        assert isinstance(excinfo.value, ValueError)


class TestFeatureVocab:
    """Tests for FeatureVocab and vectorize."""

    def test_add_and_get(self):
        vocab = FeatureVocab()
        assert vocab.add("a") == 0
        assert vocab.add("b") == 1
        assert vocab.add("a") == 0
        assert vocab.get("b") == 1
        assert vocab.get("c") is None
        assert len(vocab) == 2
        assert "a" in vocab

    def test_vectorize_drops_unknown(self):
        vocab = FeatureVocab()
        vocab.add("a")
        vocab.add("b")
        X = vectorize([Counter({"a": 2, "z": 1}), Counter({"b": 1})], vocab)
        assert X.shape == (2, 2)
        assert X.toarray().tolist() == [[2.0, 0.0], [0.0, 1.0]]


class TestRelationDataset:
    """Tests for RelationDataset."""

    @pytest.fixture
    def dataset(self):
        dataset = RelationDataset()
        dataset.add(Counter({"common": 1, "rare": 1}), "per:title")
        dataset.add(Counter({"common": 1, "other": 2}), NO_RELATION)
        dataset.add(Counter({"common": 1, "other": 1}), "per:title")
        return dataset

    def test_feature_counts_are_example_counts(self, dataset):
        counts = dataset.feature_counts()
        assert counts["common"] == 3
        assert counts["other"] == 2
        assert counts["rare"] == 1

    def test_threshold(self, dataset):
        """Should drop features seen in fewer examples than the threshold."""
        assert dataset.apply_feature_count_threshold(2) == 1
        assert "rare" not in dataset.feature_counts()
        assert dataset.apply_feature_count_threshold(0) == 0
        assert len(dataset) == 3

    def test_to_matrix(self, dataset):
        matrix = dataset.to_matrix()
        assert matrix.X.shape == (3, 3)
        assert matrix.labels == sorted(["per:title", NO_RELATION])
        assert [matrix.idx_to_label[i] for i in matrix.y] == [
            "per:title", NO_RELATION, "per:title",
        ]
        assert matrix.X[1, matrix.vocab.get("other")] == 2.0
        assert matrix.example_ids == [0, 1, 2]

    def test_keyed_order(self):
        """Should order entries by key, not by insertion."""
        dataset = RelationDataset()
        dataset.add(Counter({"c": 1}), "c", key=2)
        dataset.add(Counter({"a": 1}), "a", key=0)
        dataset.add(Counter({"b": 1}), "b", key=1)
        assert dataset.labels == ["a", "b", "c"]
        assert [label for _, label in dataset] == ["a", "b", "c"]

    def test_concurrent_add(self):
        dataset = RelationDataset()

        def worker(offset):
            for i in range(200):
                dataset.add(Counter({"f": 1}), "x", key=offset * 200 + i)

        threads = [threading.Thread(target=worker, args=(k,)) for k in range(5)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(dataset) == 1000
        assert dataset.to_matrix().example_ids == list(range(1000))


class TestFeaturizeExamples:
    """Tests for parallel featurization."""

    def test_order_independent_of_workers(self, write_dataset, obama_record):
        examples = read_dataset(write_dataset((obama_record + "\n") * 3))
        examples = [(inp, f"label{i}") for i, (inp, _) in enumerate(examples)]

        def featurizer(inp):
            return Counter({inp.subject_text: 1})

        serial = featurize_examples(examples, num_workers=1, featurizer=featurizer, show_progress=False)
        parallel = featurize_examples(examples, num_workers=4, featurizer=featurizer, show_progress=False)
        assert serial.labels == parallel.labels == ["label0", "label1", "label2"]
        np.testing.assert_array_equal(
            serial.to_matrix().X.toarray(), parallel.to_matrix().X.toarray()
        )

    def test_featurizer_errors_propagate(self, write_dataset, obama_record):
        examples = read_dataset(write_dataset(obama_record))
        # Sentences straight from the reader are not parsed yet
        with pytest.raises(RuntimeError):
            featurize_examples(examples, num_workers=2, show_progress=False)
