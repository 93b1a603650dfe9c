"""Feature templates for a subject/object mention pair.

Every feature name is ``template + SEPARATOR + value``. ``SEPARATOR`` is
U+2135 (ALEF SYMBOL) and spaces in values are replaced by ``SPACE_PLACEHOLDER``
U+02D1 (MODIFIER LETTER HALF TRIANGULAR COLON). Neither character occurs in
English token text; any stray separator inside a value is replaced by the
placeholder too, so ``name.split(SEPARATOR, 1)[0]`` always recovers the
template. This makes post-hoc feature selection by template possible.

Feature groups:
- dense: type signature and relative order of the mentions
- surface: lemmas of the sentence and of the gap between the mentions,
  punctuation, interceding NER tags, left/right context
- dependency: heads of both spans and the dependency path between them
- relation specific: numeric object heuristics, and title / top employee
  triggers for PERSON-ORGANIZATION pairs
"""

from collections import Counter
from dataclasses import dataclass
from typing import Callable, FrozenSet, List, Optional

from .numbers import word_to_number
from .schema import EntityType
from .sentence import Sentence, TokenSpan

SEPARATOR = "ℵ"
SPACE_PLACEHOLDER = "ˑ"

SENTENCE_START = "_^_"
SENTENCE_END = "_$_"

#: Words suggesting a top employee / founder role.
TOP_EMPLOYEE_TRIGGERS: FrozenSet[str] = frozenset({
    "executive", "chairman", "president", "chief", "head", "general", "ceo",
    "officer", "founder", "found", "leader", "vice", "king", "prince",
    "manager", "host", "minister", "adviser", "boss", "chair", "ambassador",
    "shareholder", "star", "governor", "investor", "representative", "dean",
    "commissioner", "deputy", "commander", "scientist", "midfielder",
    "speaker", "researcher", "editor", "chancellor", "fellow", "leadership",
    "diplomat", "attorney", "associate", "striker", "pilot", "captain",
    "banker", "mayer", "premier", "producer", "architect", "designer",
    "major", "advisor", "presidency", "senator", "specialist", "faculty",
    "monitor", "chairwoman", "mayor", "columnist", "mediator", "prosecutor",
    "entrepreneur", "creator", "superstar", "commentator", "principal",
    "operative", "businessman", "peacekeeper", "investigator", "coordinator",
    "knight", "lawmaker", "justice", "publisher", "playmaker", "moderator",
    "negotiator",
})

TRIGGER_WINDOW_BEFORE = 5


@dataclass(frozen=True)
class FeaturizerInput:
    """One candidate (subject, object) mention pair within a sentence.

    Attributes
    ----------
    subject_span : TokenSpan
        Tokens of the subject mention
    object_span : TokenSpan
        Tokens of the object mention
    subject_type : EntityType
        Entity type of the subject
    object_type : EntityType
        Entity type of the object
    sentence : Sentence
        The sentence both mentions occur in
    """

    subject_span: TokenSpan
    object_span: TokenSpan
    subject_type: EntityType
    object_type: EntityType
    sentence: Sentence

    @property
    def subject_text(self) -> str:
        return " ".join(self.sentence.words[self.subject_span.start:self.subject_span.end])

    @property
    def object_text(self) -> str:
        return " ".join(self.sentence.words[self.object_span.start:self.object_span.end])

    @property
    def subject_before_object(self) -> bool:
        return self.subject_span.is_before(self.object_span)

    def __repr__(self) -> str:
        return (
            f"FeaturizerInput(subject={self.subject_text!r} {self.subject_span} "
            f"{self.subject_type}, object={self.object_text!r} {self.object_span} "
            f"{self.object_type})"
        )


def indicator(features: Counter, template: str, value: str) -> None:
    """Increment the feature ``template`` x ``value``."""
    value = value.replace(SEPARATOR, SPACE_PLACEHOLDER).replace(" ", SPACE_PLACEHOLDER)
    features[template + SEPARATOR + value] += 1


def feature_template(feature_name: str) -> str:
    """Template part of a feature name built by :func:`indicator`."""
    return feature_name.split(SEPARATOR, 1)[0]


def span_between_mentions(
    inp: FeaturizerInput, selector: Callable[[Sentence, int], str]
) -> List[str]:
    """Apply ``selector`` to each token strictly between the two mentions.

    The gap runs from the end of whichever mention comes first to the start
    of the other one. Overlapping or adjacent mentions give an empty list.
    """
    subj, obj = inp.subject_span, inp.object_span
    if subj.overlaps(obj):
        return []
    begin, end = subj.end, obj.start
    if begin > end:
        begin, end = obj.end, subj.start
    return [selector(inp.sentence, i) for i in range(begin, end)]


def with_mentions_positioned(inp: FeaturizerInput, feature: str) -> str:
    """Frame a span feature with subject/object placeholders in text order.

    "x is the son of y" and "y is the son of x" share the gap "be the son
    of"; the framing tells them apart.
    """
    if inp.subject_before_object:
        return f"__SUBJ__ {feature} __OBJ__"
    return f"__OBJ__ {feature} __SUBJ__"


def dense_features(inp: FeaturizerInput, feats: Counter) -> None:
    indicator(feats, "type_signature", f"{inp.subject_type},{inp.object_type}")
    indicator(feats, "subj_before_obj", "y" if inp.subject_before_object else "n")


def _distance_bucket(size: int) -> str:
    if size == 0:
        return "0"
    if size <= 3:
        return "<=3"
    if size <= 5:
        return "<=5"
    if size <= 10:
        return "<=10"
    if size <= 15:
        return "<=15"
    return ">10"


def surface_features(inp: FeaturizerInput, feats: Counter) -> None:
    sentence = inp.sentence
    lemma_span = span_between_mentions(inp, Sentence.lemma)
    ner_span = span_between_mentions(inp, Sentence.ner_tag)
    pos_span = span_between_mentions(inp, Sentence.pos_tag)
    lemmas = sentence.lemmas

    # Unigrams of the whole sentence
    for lemma in lemmas:
        indicator(feats, "sentence_unigram", lemma)

    # Lemma n-grams of the gap
    last_lemma = SENTENCE_START
    for lemma in lemma_span:
        indicator(feats, "lemma_bigram", with_mentions_positioned(inp, f"{last_lemma} {lemma}"))
        indicator(feats, "lemma_unigram", with_mentions_positioned(inp, lemma))
        last_lemma = lemma
    indicator(feats, "lemma_bigram", with_mentions_positioned(inp, f"{last_lemma} {SENTENCE_END}"))

    # NER + lemma bigrams at entity boundaries followed/preceded by a preposition
    for i in range(len(lemma_span) - 1):
        if ner_span[i] != "O" and ner_span[i + 1] == "O" and pos_span[i + 1] == "IN":
            indicator(
                feats, "ner/lemma_bigram",
                with_mentions_positioned(inp, f"{ner_span[i]} {lemma_span[i + 1]}"),
            )
        if ner_span[i + 1] != "O" and ner_span[i] == "O" and pos_span[i] == "IN":
            indicator(
                feats, "ner/lemma_bigram",
                with_mentions_positioned(inp, f"{lemma_span[i]} {ner_span[i + 1]}"),
            )

    indicator(feats, "distance_between_entities_bucket", _distance_bucket(len(lemma_span)))

    # Punctuation
    num_commas = 0
    num_quotes = 0
    paren_parity = 0
    for lemma in lemma_span:
        if lemma == ",":
            num_commas += 1
        if lemma in ('"', "``", "''"):
            num_quotes += 1
        if lemma in ("(", "-LRB-"):
            paren_parity += 1
        if lemma in (")", "-RRB-"):
            paren_parity -= 1
    indicator(feats, "comma_parity", "even" if num_commas % 2 == 0 else "odd")
    indicator(feats, "quote_parity", "even" if num_quotes % 2 == 0 else "odd")
    indicator(feats, "paren_parity", str(paren_parity))

    # Is the gap broken by another entity
    interceding = sorted({ner for ner in ner_span if ner != "O"})
    if interceding:
        indicator(feats, "has_interceding_ner", "t")
    for ner in interceding:
        indicator(feats, "interceding_ner", ner)

    # Left and right context
    subj, obj = inp.subject_span, inp.object_span
    n = len(sentence)
    indicator(feats, "subj_left", "^" if subj.start == 0 else lemmas[subj.start - 1])
    indicator(feats, "subj_right", "$" if subj.end == n else lemmas[subj.end])
    indicator(feats, "obj_left", "^" if obj.start == 0 else lemmas[obj.start - 1])
    indicator(feats, "obj_right", "$" if obj.end == n else lemmas[obj.end])

    # Skip-word pattern: X <subj> Y <obj>
    if len(lemma_span) == 1 and inp.subject_before_object:
        left = "^" if subj.start == 0 else lemmas[subj.start - 1]
        indicator(feats, "X<subj>Y<obj>", f"{left}_{lemma_span[0]}")


def _is_edge(element: str) -> bool:
    return element.startswith("-") or element.startswith("<-")


def drop_appos_edges(path: List[str]) -> List[str]:
    """Splice appositive edges, and the node they hang off, out of a path.

    Only paths longer than three elements are touched. ``-appos->`` takes
    the node before it with it, ``<-appos-`` the node after it; the two
    endpoints of the path are always kept.
    """
    if len(path) <= 3:
        return list(path)
    last = len(path) - 1
    drop = set()
    for i in range(1, last):
        if path[i] == "-appos->":
            drop.add(i)
            if i - 1 > 0:
                drop.add(i - 1)
        elif path[i] == "<-appos-":
            drop.add(i)
            if i + 1 < last:
                drop.add(i + 1)
    return [element for i, element in enumerate(path) if i not in drop]


def _path_bucket(size: int) -> str:
    # paths shorter than 3 (no path at all) fall through to <=5
    if size == 3:
        return "<=3"
    if size <= 5:
        return "<=5"
    if size <= 7:
        return "<=7"
    if size <= 9:
        return "<=9"
    if size <= 13:
        return "<=13"
    if size <= 17:
        return "<=17"
    return ">17"


def dependency_features(inp: FeaturizerInput, feats: Counter) -> None:
    sentence = inp.sentence
    subject_head = sentence.head_of_span(inp.subject_span)
    object_head = sentence.head_of_span(inp.object_span)

    indicator(feats, "subject_head", sentence.lemma(subject_head))
    indicator(feats, "object_head", sentence.lemma(object_head))

    path = drop_appos_edges(sentence.dependency_path_between(subject_head, object_head))

    indicator(feats, "parse_distance_between_entities_bucket", _path_bucket(len(path)))

    if 2 < len(path) <= 7:
        interior = "".join(path[1:-1])
        indicator(
            feats, "deppath_w/tag",
            sentence.pos_tag(subject_head) + interior + sentence.pos_tag(object_head),
        )
        indicator(feats, "deppath_w/ner", f"{inp.subject_type}{interior}{inp.object_type}")

    for node in path:
        if not _is_edge(node):
            indicator(feats, "deppath_word", node)
    for i in range(len(path) - 1):
        indicator(feats, "deppath_edge", path[i] + path[i + 1])
    for i in range(len(path) - 2):
        indicator(feats, "deppath_chunk", path[i] + path[i + 1] + path[i + 2])


def number_bucket(value: int) -> str:
    """Age-style bucket of an integer object value; first match wins."""
    if value < 0:
        return "<0"
    if value == 0:
        return "0"
    if value == 1:
        return "1"
    if value < 5:
        return "<5"
    if value < 18:
        return "<18"
    if value < 25:
        return "<25"
    if value < 50:
        return "<50"
    if value < 80:
        return "<80"
    if value < 125:
        return "<125"
    return ">=125"


def _number_features(inp: FeaturizerInput, feats: Counter) -> None:
    text = inp.object_text
    number: Optional[float] = None
    try:
        number = word_to_number(text)
    except ValueError:
        number = None

    if number is None:
        indicator(feats, "obj_parsed_as_num", "f")
    else:
        indicator(feats, "obj_parsed_as_num", "t")
        if isinstance(number, int):
            indicator(feats, "obj_isint", "t")
            indicator(feats, "obj_number_bucket", number_bucket(number))
        else:
            indicator(feats, "obj_isint", "f")
        spelled_out = text.replace(",", "").lower() != str(number).lower()
        indicator(feats, "obj_spelledout_num", "t" if spelled_out else "f")

    indicator(feats, "obj_num_has_dash", "t" if "-" in text else "f")
    indicator(feats, "obj_num_is_one", "t" if text.lower() == "one" else "f")


def _employment_features(inp: FeaturizerInput, feats: Counter) -> None:
    sentence = inp.sentence
    relation_span = TokenSpan.union(inp.subject_span, inp.object_span)
    windows = (
        ("before", range(max(0, relation_span.start - TRIGGER_WINDOW_BEFORE), relation_span.start)),
        ("after", range(relation_span.end, len(sentence))),
        ("inside", range(relation_span.start, relation_span.end)),
    )
    for position, indices in windows:
        for i in indices:
            if sentence.ner_tag(i) == "TITLE":
                indicator(feats, f"title_{position}", "t")
            if sentence.word(i).lower() in TOP_EMPLOYEE_TRIGGERS:
                indicator(feats, f"top_employee_trigger_{position}", "t")


_EMPLOYMENT_PAIRS = {
    (EntityType.PERSON, EntityType.ORGANIZATION),
    (EntityType.ORGANIZATION, EntityType.PERSON),
}


def relation_specific_features(inp: FeaturizerInput, feats: Counter) -> None:
    if inp.object_type == EntityType.NUMBER:
        _number_features(inp, feats)
    if (inp.subject_type, inp.object_type) in _EMPLOYMENT_PAIRS:
        _employment_features(inp, feats)


def features(inp: FeaturizerInput) -> Counter:
    """Featurize a mention pair.

    Parameters
    ----------
    inp : FeaturizerInput
        The mention pair; its sentence must be parsed

    Returns
    -------
    Counter
        Feature name to count. Empty if the spans overlap or either span
        is empty.
    """
    if (
        inp.subject_span.overlaps(inp.object_span)
        or inp.subject_span.size == 0
        or inp.object_span.size == 0
    ):
        return Counter()

    feats: Counter = Counter()
    dense_features(inp, feats)
    surface_features(inp, feats)
    dependency_features(inp, feats)
    relation_specific_features(inp, feats)
    return feats
