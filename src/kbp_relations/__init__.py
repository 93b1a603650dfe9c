"""Statistical relation extraction for the TAC-KBP slot-filling schema.

This package classifies the relation between a subject and an object
mention in a sentence as one of the KBP relations (or ``no_relation``).

The pipeline:
1. Read labeled mention pairs and parse their sentences with spaCy
2. Turn each pair into sparse indicator features
3. Train a multinomial logistic regression classifier
4. Decode scores into the best relation that type-checks against the object
5. Score predictions with micro/macro precision, recall and F1
"""

__version__ = "1.0.0"

from .schema import (
    NO_RELATION,
    Cardinality,
    EntityType,
    RelationType,
    RelationTypeLookup,
    lookup_entity_type,
    lookup_relation_type,
    plausibly_has_relation,
    relation_types_for,
)
from .sentence import Sentence, SentenceAnnotator, TokenSpan
from .featurizer import FeaturizerInput, features
from .decoder import decode
from .dataset import (
    DatasetFormatError,
    FeatureMatrix,
    FeatureVocab,
    RelationDataset,
    featurize_examples,
    read_dataset,
)
from .evaluator import Accuracy
from .trainer import LinearRelationModel, MinimizerType, train_multinomial_classifier
from .extractor import RelationExtractor
from .config import TrainingConfig, load_config

__all__ = [
    # Schema
    "NO_RELATION",
    "Cardinality",
    "EntityType",
    "RelationType",
    "RelationTypeLookup",
    "lookup_entity_type",
    "lookup_relation_type",
    "plausibly_has_relation",
    "relation_types_for",
    # Sentences
    "Sentence",
    "SentenceAnnotator",
    "TokenSpan",
    # Features & decoding
    "FeaturizerInput",
    "features",
    "decode",
    # Data
    "DatasetFormatError",
    "FeatureMatrix",
    "FeatureVocab",
    "RelationDataset",
    "featurize_examples",
    "read_dataset",
    # Training & evaluation
    "Accuracy",
    "LinearRelationModel",
    "MinimizerType",
    "train_multinomial_classifier",
    "RelationExtractor",
    # Configuration
    "TrainingConfig",
    "load_config",
]
