"""Tests for the command-line entry point."""

from pathlib import Path

import pytest

from kbp_relations import main as cli
from kbp_relations.extractor import RelationExtractor
from kbp_relations.schema import NO_RELATION
from kbp_relations.sentence import Sentence


class FlatParser:
    """Attaches a flat parse (every token depends on the first one)."""

    def __init__(self, model_name):
        self.model_name = model_name

    def annotate_batch(self, sentences, batch_size=64):
        for sentence in sentences:
            n = len(sentence)
            parsed = Sentence.from_annotations(
                words=sentence.words,
                lemmas=[w.lower() for w in sentence.words],
                tags=["NNP"] * n,
                heads=[0] * n,
                deps=["ROOT"] + ["dep"] * (n - 1),
            )
            sentence.attach(parsed.doc)
        return list(sentences)


RECORDS = [
    "per:title\nBarack\tSUBJECT\tPERSON\nObama\tSUBJECT\tPERSON\nis\t-\tO\nPresident\tOBJECT\tTITLE\n",
    "per:title\nAngela\tSUBJECT\tPERSON\nMerkel\tSUBJECT\tPERSON\nis\t-\tO\nChancellor\tOBJECT\tTITLE\n",
    f"{NO_RELATION}\nObama\tSUBJECT\tPERSON\nvisited\t-\tO\nParis\tOBJECT\tCITY\n",
    f"{NO_RELATION}\nMerkel\tSUBJECT\tPERSON\nmet\t-\tO\nMacron\tOBJECT\tPERSON\n",
]


class TestArgs:
    """Tests for argument parsing and config layering."""

    def test_flags_override_defaults(self):
        cfg = cli.build_config(cli.parse_args(["--sigma", "2.5", "--minimizer", "qn", "-w", "2"]))
        assert cfg.sigma == 2.5
        assert cfg.minimizer == "qn"
        assert cfg.num_workers == 2
        assert cfg.train_file == Path("train.conll")

    def test_flags_override_config_file(self, tmp_path):
        path = tmp_path / "cfg.yaml"
        path.write_text("sigma: 0.5\nseed: 7\n")
        cfg = cli.build_config(cli.parse_args(["--config", str(path), "--seed", "9"]))
        assert cfg.sigma == 0.5
        assert cfg.seed == 9

    def test_bad_minimizer(self):
        with pytest.raises(SystemExit):
            cli.parse_args(["--minimizer", "adam"])


class TestRun:
    """End-to-end run with a stand-in parser."""

    def test_train_save_evaluate(self, tmp_path, monkeypatch):
        monkeypatch.setattr(cli, "SentenceAnnotator", FlatParser)
        data = "\n".join(RECORDS)
        (tmp_path / "train.conll").write_text(data, encoding="utf-8")
        (tmp_path / "test.conll").write_text(data, encoding="utf-8")

        cli.main([
            "--train", str(tmp_path / "train.conll"),
            "--test", str(tmp_path / "test.conll"),
            "--model", str(tmp_path / "model.ser"),
            "--minimizer", "qn",
            "--workers", "2",
            "--confusion-plot", str(tmp_path / "confusion.png"),
        ])

        extractor = RelationExtractor.load(tmp_path / "model.ser")
        assert sorted(extractor.model.labels) == sorted(["per:title", NO_RELATION])
        assert (tmp_path / "confusion.png").exists()
