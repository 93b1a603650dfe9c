"""Configuration for training and evaluating the KBP relation extractor."""

from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml


# Data and model paths
TRAIN_FILE = Path("train.conll")
TEST_FILE = Path("test.conll")
MODEL_FILE = Path("model.ser")

# Training
MINIMIZER = "l1"
FEATURE_THRESHOLD = 0
SIGMA = 1.0
SEED = 42
MAX_ITER = 1000
L1_SOLVER = "saga"

# spaCy configuration
SPACY_MODEL = "en_core_web_sm"

# Featurization / evaluation worker threads
NUM_WORKERS = 4


@dataclass
class TrainingConfig:
    """Settings for one training + evaluation run.

    Attributes
    ----------
    train_file : Path
        Training dataset (CoNLL-style TSV)
    test_file : Path
        Held-out dataset
    model_file : Path
        Where the trained extractor is pickled
    minimizer : str
        One of ``qn``, ``sgd``, ``hybrid``, ``l1``
    feature_threshold : int
        Minimum number of training examples a feature must occur in
    sigma : float
        Regularisation strength (larger is weaker)
    seed : int
        Random seed for shuffling and SGD
    max_iter : int
        Optimiser iteration cap
    l1_solver : str
        sklearn solver for the l1 minimizer
    spacy_model : str
        spaCy pipeline used to parse sentences
    num_workers : int
        Worker threads for featurization and evaluation
    confusion_plot : Optional[Path]
        If set, the test confusion heatmap is saved here
    """

    train_file: Path = TRAIN_FILE
    test_file: Path = TEST_FILE
    model_file: Path = MODEL_FILE
    minimizer: str = MINIMIZER
    feature_threshold: int = FEATURE_THRESHOLD
    sigma: float = SIGMA
    seed: int = SEED
    max_iter: int = MAX_ITER
    l1_solver: str = L1_SOLVER
    spacy_model: str = SPACY_MODEL
    num_workers: int = NUM_WORKERS
    confusion_plot: Optional[Path] = None

    def __post_init__(self):
        for name in ("train_file", "test_file", "model_file", "confusion_plot"):
            value = getattr(self, name)
            if value is not None and not isinstance(value, Path):
                setattr(self, name, Path(value))

    def update(self, **overrides: Any) -> "TrainingConfig":
        """Return a copy with every non-None override applied."""
        _check_keys(overrides)
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})


def _check_keys(mapping: Dict[str, Any]) -> None:
    known = {f.name for f in fields(TrainingConfig)}
    unknown = sorted(set(mapping) - known)
    if unknown:
        raise ValueError(f"Unknown config keys: {', '.join(unknown)}")


def load_config(path: Union[str, Path], base: Optional[TrainingConfig] = None) -> TrainingConfig:
    """Overlay the settings in a YAML file on ``base`` (or the defaults).

    Raises
    ------
    ValueError
        If the file is not a mapping or names an unknown setting
    """
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping of settings")
    _check_keys(data)
    return replace(base or TrainingConfig(), **data)
