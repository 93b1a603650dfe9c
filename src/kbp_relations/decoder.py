"""Type-constrained decoding of classifier scores into a single relation."""

import logging
from typing import Dict, Mapping, Tuple

import numpy as np

from .schema import NO_RELATION, EntityType, RelationTypeLookup, RELATION_LOOKUP

logger = logging.getLogger(__name__)


def softmax(scores: Mapping[str, float]) -> Dict[str, float]:
    """Exponentiate and normalize a label -> score mapping."""
    if not scores:
        return {}
    labels = list(scores)
    values = np.array([scores[label] for label in labels], dtype=np.float64)
    finite = np.isfinite(values)
    shift = values[finite].max() if finite.any() else 0.0
    exp = np.exp(np.where(finite, values - shift, -np.inf))
    total = exp.sum()
    if total <= 0.0:
        exp = np.full(len(labels), 1.0)
        total = float(len(labels))
    return {label: float(p) for label, p in zip(labels, exp / total)}


def _normalize(probabilities: Dict[str, float]) -> Dict[str, float]:
    total = sum(probabilities.values())
    if total <= 0.0:
        uniform = 1.0 / len(probabilities)
        return {label: uniform for label in probabilities}
    return {label: p / total for label, p in probabilities.items()}


def is_type_consistent(
    label: str, object_type: EntityType, lookup: RelationTypeLookup = RELATION_LOOKUP
) -> bool:
    """Whether ``label`` may hold for an object of ``object_type``.

    The no-relation sentinel is always consistent; unknown labels never are.
    """
    if label == NO_RELATION:
        return True
    relation = lookup(label)
    if relation is None:
        logger.debug("Unknown relation label %r treated as type-inconsistent", label)
        return False
    return relation.accepts_object(object_type)


def decode(
    scores: Mapping[str, float],
    object_type: EntityType,
    lookup: RelationTypeLookup = RELATION_LOOKUP,
) -> Tuple[str, float]:
    """Pick the most probable relation that type-checks against the object.

    Scores are softmax-normalized. The arg-max label is accepted if it is
    the no-relation sentinel or if ``object_type`` is one of its permitted
    object types; otherwise it is removed, the rest renormalized, and the
    next best tried. The sentinel is always a candidate (with zero mass if
    the classifier did not score it), so this always terminates.

    Parameters
    ----------
    scores : Mapping[str, float]
        Unnormalized per-label scores
    object_type : EntityType
        Entity type of the object mention
    lookup : RelationTypeLookup
        Relation name resolver

    Returns
    -------
    Tuple[str, float]
        Accepted label and its probability among the remaining candidates
    """
    remaining = softmax(scores)
    remaining.setdefault(NO_RELATION, 0.0)

    while True:
        best = max(remaining, key=remaining.get)
        if is_type_consistent(best, object_type, lookup):
            return best, remaining[best]
        del remaining[best]
        remaining = _normalize(remaining)
