"""Sentence representation backed by spaCy.

A ``Sentence`` holds the tokens of one sentence together with per-token NER
tags, and a spaCy ``Doc`` carrying lemmas, fine-grained POS tags and the
dependency parse. The ``Doc`` is built either from pre-computed annotations
(``Sentence.from_annotations``) or by running a spaCy pipeline over the
pre-tokenised words (``SentenceAnnotator``).
"""

import warnings
from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence

import spacy
from spacy.tokens import Doc, Token
from spacy.vocab import Vocab


@dataclass(frozen=True)
class TokenSpan:
    """Half-open token range ``[start, end)``.

    Attributes
    ----------
    start : int
        First token index
    end : int
        One past the last token index
    """

    start: int
    end: int

    @property
    def size(self) -> int:
        return max(0, self.end - self.start)

    def is_before(self, other: "TokenSpan") -> bool:
        """True if this span ends at or before ``other`` starts."""
        return self.end <= other.start

    def overlaps(self, other: "TokenSpan") -> bool:
        return self.start < other.end and other.start < self.end

    def __iter__(self) -> Iterator[int]:
        return iter(range(self.start, self.end))

    def __len__(self) -> int:
        return self.size

    @staticmethod
    def union(a: "TokenSpan", b: "TokenSpan") -> "TokenSpan":
        """Smallest span covering both ``a`` and ``b``."""
        return TokenSpan(min(a.start, b.start), max(a.end, b.end))

    def __str__(self) -> str:
        return f"[{self.start}, {self.end})"


_BLANK_VOCAB: Optional[Vocab] = None


def _blank_vocab() -> Vocab:
    global _BLANK_VOCAB
    if _BLANK_VOCAB is None:
        _BLANK_VOCAB = spacy.blank("en").vocab
    return _BLANK_VOCAB


def _lemma(token: Token) -> str:
    return token.lemma_ or token.text


class Sentence:
    """Tokens, NER tags, and (once annotated) a spaCy parse of one sentence.

    Parameters
    ----------
    words : Sequence[str]
        Token texts
    ner_tags : Optional[Sequence[str]]
        Per-token NER tags, ``"O"`` for none. If omitted they are read from
        the entity annotation of ``doc``.
    doc : Optional[Doc]
        A parsed spaCy Doc over exactly ``words``
    """

    def __init__(
        self,
        words: Sequence[str],
        ner_tags: Optional[Sequence[str]] = None,
        doc: Optional[Doc] = None,
    ):
        self.words: List[str] = list(words)
        if ner_tags is not None and len(ner_tags) != len(self.words):
            raise ValueError(
                f"Got {len(ner_tags)} NER tags for {len(self.words)} tokens"
            )
        self._ner_tags = [tag.upper() for tag in ner_tags] if ner_tags is not None else None
        self.doc: Optional[Doc] = None
        if doc is not None:
            self.attach(doc)

    @classmethod
    def from_annotations(
        cls,
        words: Sequence[str],
        lemmas: Sequence[str],
        tags: Sequence[str],
        heads: Sequence[int],
        deps: Sequence[str],
        ner_tags: Optional[Sequence[str]] = None,
    ) -> "Sentence":
        """Build a sentence from pre-computed annotations.

        ``heads`` are absolute token indices; the root points at itself.
        No spaCy model is needed.
        """
        doc = Doc(
            _blank_vocab(),
            words=list(words),
            spaces=[i < len(words) - 1 for i in range(len(words))],
            lemmas=list(lemmas),
            tags=list(tags),
            heads=list(heads),
            deps=list(deps),
        )
        return cls(words, ner_tags=ner_tags, doc=doc)

    def attach(self, doc: Doc) -> None:
        """Attach a parsed Doc over this sentence's tokens."""
        if len(doc) != len(self.words):
            raise ValueError(
                f"Doc has {len(doc)} tokens but the sentence has {len(self.words)}"
            )
        self.doc = doc

    @property
    def is_annotated(self) -> bool:
        return self.doc is not None

    def _require_doc(self) -> Doc:
        if self.doc is None:
            raise RuntimeError(
                "Sentence has no parse; annotate it with SentenceAnnotator "
                "or build it with Sentence.from_annotations()"
            )
        return self.doc

    def __len__(self) -> int:
        return len(self.words)

    @property
    def lemmas(self) -> List[str]:
        return [_lemma(t) for t in self._require_doc()]

    @property
    def ner_tags(self) -> List[str]:
        if self._ner_tags is not None:
            return list(self._ner_tags)
        return [t.ent_type_ or "O" for t in self._require_doc()]

    def word(self, i: int) -> str:
        return self.words[i]

    def lemma(self, i: int) -> str:
        return _lemma(self._require_doc()[i])

    def pos_tag(self, i: int) -> str:
        return self._require_doc()[i].tag_

    def ner_tag(self, i: int) -> str:
        if self._ner_tags is not None:
            return self._ner_tags[i]
        return self._require_doc()[i].ent_type_ or "O"

    def head_of_span(self, span: TokenSpan) -> int:
        """Index of the syntactic head of ``span`` (spaCy's ``Span.root``)."""
        doc = self._require_doc()
        return doc[span.start:span.end].root.i

    def dependency_path_between(self, start: int, end: int) -> List[str]:
        """Shortest labeled dependency path between two tokens.

        The path alternates node lemmas and edges. An edge walked from a
        dependent up to its head reads ``<-dep-``; from a head down to a
        dependent it reads ``-dep->``. Both endpoints are lemmas.

        Returns
        -------
        List[str]
            e.g. ``["Obama", "<-nsubj-", "be", "-attr->", "President"]``,
            or an empty list if the tokens are not connected
        """
        doc = self._require_doc()
        source, target = doc[start], doc[end]

        # Ancestors of source, nearest first
        source_chain = [source] + list(source.ancestors)
        positions = {tok.i: k for k, tok in enumerate(source_chain)}

        # Walk up from target until we hit the source chain (the LCA)
        down_nodes = []
        node = target
        while node.i not in positions:
            down_nodes.append(node)
            if node.head.i == node.i:
                return []
            node = node.head
        lca = node

        path = []
        for tok in source_chain[:positions[lca.i]]:
            path.append(_lemma(tok))
            path.append(f"<-{tok.dep_}-")
        path.append(_lemma(lca))
        for tok in reversed(down_nodes):
            path.append(f"-{tok.dep_}->")
            path.append(_lemma(tok))
        return path

    def __repr__(self) -> str:
        return f"Sentence({' '.join(self.words)!r})"


class SentenceAnnotator:
    """Annotate pre-tokenised sentences with a spaCy pipeline.

    Token boundaries and the sentence's own NER tags are kept; the pipeline
    contributes lemmas, POS tags and the dependency parse.

    Parameters
    ----------
    model_name : str
        spaCy model to load
    """

    def __init__(self, model_name: str = "en_core_web_sm"):
        try:
            self.nlp = spacy.load(model_name)
        except OSError:
            warnings.warn(
                f"Model {model_name} not found. Run: python -m spacy download {model_name}"
            )
            raise

    def _to_doc(self, sentence: Sentence) -> Doc:
        words = sentence.words
        return Doc(
            self.nlp.vocab,
            words=words,
            spaces=[i < len(words) - 1 for i in range(len(words))],
        )

    def annotate(self, sentence: Sentence) -> Sentence:
        """Parse a single sentence in place and return it."""
        sentence.attach(self.nlp(self._to_doc(sentence)))
        return sentence

    def annotate_batch(
        self, sentences: Sequence[Sentence], batch_size: int = 64
    ) -> List[Sentence]:
        """Parse many sentences with ``nlp.pipe``; skips already parsed ones."""
        pending = [s for s in sentences if not s.is_annotated]
        docs = (self._to_doc(s) for s in pending)
        for doc, sentence in zip(self.nlp.pipe(docs, batch_size=batch_size), pending):
            sentence.attach(doc)
        return list(sentences)
