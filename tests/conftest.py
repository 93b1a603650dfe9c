"""Shared fixtures: small hand-parsed sentences, so no spaCy model is needed."""

import matplotlib

matplotlib.use("Agg")

import pytest

from kbp_relations.featurizer import FeaturizerInput
from kbp_relations.schema import EntityType
from kbp_relations.sentence import Sentence, TokenSpan


def obama_sentence() -> Sentence:
    # Barack Obama is President
    return Sentence.from_annotations(
        words=["Barack", "Obama", "is", "President"],
        lemmas=["Barack", "Obama", "be", "President"],
        tags=["NNP", "NNP", "VBZ", "NNP"],
        heads=[1, 2, 2, 2],
        deps=["compound", "nsubj", "ROOT", "attr"],
        ner_tags=["PERSON", "PERSON", "O", "TITLE"],
    )


@pytest.fixture
def obama() -> Sentence:
    return obama_sentence()


@pytest.fixture
def obama_input(obama) -> FeaturizerInput:
    return FeaturizerInput(
        subject_span=TokenSpan(0, 2),
        object_span=TokenSpan(3, 4),
        subject_type=EntityType.PERSON,
        object_type=EntityType.TITLE,
        sentence=obama,
    )


@pytest.fixture
def cook_input() -> FeaturizerInput:
    # Tim Cook , chief executive of Apple
    sentence = Sentence.from_annotations(
        words=["Tim", "Cook", ",", "chief", "executive", "of", "Apple"],
        lemmas=["Tim", "Cook", ",", "chief", "executive", "of", "Apple"],
        tags=["NNP", "NNP", ",", "JJ", "NN", "IN", "NNP"],
        heads=[1, 1, 1, 4, 1, 4, 5],
        deps=["compound", "ROOT", "punct", "amod", "appos", "prep", "pobj"],
        ner_tags=["PERSON", "PERSON", "O", "TITLE", "TITLE", "O", "ORGANIZATION"],
    )
    return FeaturizerInput(
        subject_span=TokenSpan(0, 2),
        object_span=TokenSpan(6, 7),
        subject_type=EntityType.PERSON,
        object_type=EntityType.ORGANIZATION,
        sentence=sentence,
    )


def age_input(age_text: str) -> FeaturizerInput:
    # Obama , <age>
    sentence = Sentence.from_annotations(
        words=["Obama", ",", age_text],
        lemmas=["Obama", ",", age_text],
        tags=["NNP", ",", "CD"],
        heads=[0, 0, 0],
        deps=["ROOT", "punct", "amod"],
        ner_tags=["PERSON", "O", "NUMBER"],
    )
    return FeaturizerInput(
        subject_span=TokenSpan(0, 1),
        object_span=TokenSpan(2, 3),
        subject_type=EntityType.PERSON,
        object_type=EntityType.NUMBER,
        sentence=sentence,
    )


OBAMA_RECORD = (
    "per:title\n"
    "Barack\tSUBJECT\tPERSON\n"
    "Obama\tSUBJECT\tPERSON\n"
    "is\t-\tO\n"
    "President\tOBJECT\tTITLE\n"
)


@pytest.fixture
def obama_record() -> str:
    return OBAMA_RECORD


@pytest.fixture
def make_age_input():
    return age_input
