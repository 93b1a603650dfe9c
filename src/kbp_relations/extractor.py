"""The deployed relation extractor: featurizer + linear model + decoder."""

import logging
import os
import pickle
import tempfile
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Optional, Sequence, Tuple, Union

from tqdm import tqdm

from .dataset import Example
from .decoder import decode
from .evaluator import Accuracy
from .featurizer import FeaturizerInput, features
from .schema import RELATION_LOOKUP, RelationTypeLookup
from .trainer import LinearRelationModel

logger = logging.getLogger(__name__)


class RelationExtractor:
    """Classify the relation between a subject and an object mention.

    Parameters
    ----------
    model : LinearRelationModel
        Trained weights
    lookup : Optional[RelationTypeLookup]
        Relation name resolver used for type checking; defaults to the
        shared process-wide lookup
    """

    def __init__(self, model: LinearRelationModel, lookup: Optional[RelationTypeLookup] = None):
        self.model = model
        self._lookup = lookup

    @property
    def lookup(self) -> RelationTypeLookup:
        return self._lookup if self._lookup is not None else RELATION_LOOKUP

    def classify(self, inp: FeaturizerInput) -> Tuple[str, float]:
        """Most probable relation consistent with the object's entity type.

        Returns
        -------
        Tuple[str, float]
            Relation label (possibly ``no_relation``) and its probability
        """
        scores = self.model.scores(features(inp))
        return decode(scores, inp.object_type, self.lookup)

    def evaluate(
        self,
        examples: Sequence[Example],
        num_workers: int = 4,
        type_constrained: bool = True,
        show_progress: bool = True,
    ) -> Accuracy:
        """Score the extractor on labeled examples.

        With ``type_constrained=False`` the raw arg-max of the model is used
        instead of the type-checked decision.
        """
        accuracy = Accuracy()

        def _predict(example: Example) -> None:
            inp, gold = example
            if type_constrained:
                predicted, _ = self.classify(inp)
            else:
                predicted = self.model.class_of(features(inp))
            accuracy.predict({predicted}, {gold})

        with tqdm(total=len(examples), desc="Evaluating", unit="example", disable=not show_progress) as pbar:
            with ThreadPoolExecutor(max_workers=max(1, num_workers)) as executor:
                futures = [executor.submit(_predict, example) for example in examples]
                for future in as_completed(futures):
                    future.result()
                    pbar.update(1)

        return accuracy

    def __getstate__(self):
        # The shared lookup holds a lock and is rebuilt on load
        state = self.__dict__.copy()
        state["_lookup"] = None
        return state

    def save(self, path: Union[str, Path]) -> None:
        """Pickle the extractor to ``path``, replacing it atomically."""
        path = Path(path)
        directory = path.parent if str(path.parent) else Path(".")
        directory.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(dir=directory, prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as f:
                pickle.dump(self, f, protocol=pickle.HIGHEST_PROTOCOL)
            os.replace(tmp_name, path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.remove(tmp_name)
            raise
        logger.info("Saved model to %s", path)

    @classmethod
    def load(cls, path: Union[str, Path]) -> "RelationExtractor":
        """Load an extractor written by ``save``."""
        with open(path, "rb") as f:
            extractor = pickle.load(f)
        if not isinstance(extractor, cls):
            raise TypeError(f"{path} does not contain a {cls.__name__}")
        logger.info("Loaded model from %s", path)
        return extractor
