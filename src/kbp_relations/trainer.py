"""Training a multinomial logistic regression relation classifier.

Features are indicator counts keyed by string; the fitted classifier is
reduced to a ``LinearRelationModel`` (labels, vocabulary, weight matrix)
so that scoring a new example does not depend on the estimator class used
for training.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Mapping, Union

import numpy as np
from sklearn.linear_model import LogisticRegression, SGDClassifier
from sklearn.utils import shuffle

from .dataset import FeatureMatrix, FeatureVocab, RelationDataset, vectorize
from .evaluator import Accuracy

logger = logging.getLogger(__name__)

L1_SOLVERS = ("saga", "liblinear")
HYBRID_SGD_EPOCHS = 5


class MinimizerType(Enum):
    """Optimisation strategy for fitting the classifier."""

    QN = "qn"
    SGD = "sgd"
    HYBRID = "hybrid"
    L1 = "l1"

    @classmethod
    def from_name(cls, name: Union[str, "MinimizerType"]) -> "MinimizerType":
        if isinstance(name, cls):
            return name
        try:
            return cls(str(name).strip().lower())
        except ValueError:
            choices = ", ".join(m.value for m in cls)
            raise ValueError(f"Unknown minimizer {name!r}; expected one of: {choices}") from None


@dataclass
class LinearRelationModel:
    """Weights of a trained linear classifier over string features.

    Attributes
    ----------
    labels : List[str]
        Relation labels, one per row of ``coef``
    vocab : FeatureVocab
        Feature vocabulary, one entry per column of ``coef``
    coef : np.ndarray
        Weight matrix (n_labels x n_features)
    intercept : np.ndarray
        Bias per label (n_labels,)
    """

    labels: List[str]
    vocab: FeatureVocab
    coef: np.ndarray
    intercept: np.ndarray

    @classmethod
    def from_estimator(cls, estimator, matrix: FeatureMatrix) -> "LinearRelationModel":
        labels = [matrix.idx_to_label[int(c)] for c in estimator.classes_]
        coef = np.asarray(estimator.coef_, dtype=np.float64)
        intercept = np.asarray(estimator.intercept_, dtype=np.float64)
        if len(labels) == 2 and coef.shape[0] == 1:
            # Binary estimators only store weights for the positive class
            coef = np.vstack([np.zeros_like(coef), coef])
            intercept = np.array([0.0, intercept[0]])
        return cls(labels=labels, vocab=matrix.vocab, coef=coef, intercept=intercept)

    def scores(self, feats: Mapping[str, float]) -> Dict[str, float]:
        """Unnormalized score of every label; unseen features are ignored."""
        x = vectorize([feats], self.vocab)
        raw = np.asarray(x @ self.coef.T).ravel() + self.intercept
        return {label: float(s) for label, s in zip(self.labels, raw)}

    def class_of(self, feats: Mapping[str, float]) -> str:
        """Highest scoring label, without any type constraint."""
        scores = self.scores(feats)
        return max(scores, key=scores.get)


def _qn_estimator(sigma: float, seed: int, max_iter: int, n_samples: int, **_) -> LogisticRegression:
    return LogisticRegression(
        solver="lbfgs",
        C=sigma ** 2,
        max_iter=max_iter,
        random_state=seed,
    )


def _sgd_estimator(sigma: float, seed: int, max_iter: int, n_samples: int, **_) -> SGDClassifier:
    return SGDClassifier(
        loss="log_loss",
        alpha=1.0 / (sigma ** 2 * max(1, n_samples)),
        max_iter=max_iter,
        random_state=seed,
    )


def _l1_estimator(
    sigma: float, seed: int, max_iter: int, n_samples: int, l1_solver: str = "saga", **_
) -> LogisticRegression:
    if l1_solver not in L1_SOLVERS:
        raise ValueError(f"Solver {l1_solver!r} does not support an l1 penalty")
    return LogisticRegression(
        penalty="l1",
        solver=l1_solver,
        C=1.0 / sigma,
        max_iter=max_iter,
        random_state=seed,
    )


def create_estimator(
    minimizer: MinimizerType,
    sigma: float = 1.0,
    seed: int = 42,
    max_iter: int = 1000,
    n_samples: int = 1,
    l1_solver: str = "saga",
):
    """Create the estimator for ``minimizer``.

    HYBRID returns the warm-startable quasi-Newton estimator that finishes
    the fit; the SGD stage is run by ``fit_estimator``. If an l1 estimator
    cannot be built the quasi-Newton one is returned instead.
    """
    kwargs = dict(sigma=sigma, seed=seed, max_iter=max_iter, n_samples=n_samples)
    if minimizer is MinimizerType.QN:
        return _qn_estimator(**kwargs)
    if minimizer is MinimizerType.SGD:
        return _sgd_estimator(**kwargs)
    if minimizer is MinimizerType.HYBRID:
        estimator = _qn_estimator(**kwargs)
        estimator.set_params(warm_start=True)
        return estimator
    try:
        return _l1_estimator(l1_solver=l1_solver, **kwargs)
    except ValueError as e:
        logger.error("Could not create l1 minimizer! Reverting to l2. (%s)", e)
        return _qn_estimator(**kwargs)


def fit_estimator(
    minimizer: MinimizerType,
    X,
    y: np.ndarray,
    sigma: float = 1.0,
    seed: int = 42,
    max_iter: int = 1000,
    l1_solver: str = "saga",
    sgd_epochs: int = HYBRID_SGD_EPOCHS,
):
    """Fit the estimator for ``minimizer`` on (X, y) and return it."""
    n_samples = X.shape[0]
    estimator = create_estimator(
        minimizer, sigma=sigma, seed=seed, max_iter=max_iter,
        n_samples=n_samples, l1_solver=l1_solver,
    )
    if minimizer is MinimizerType.HYBRID:
        sgd = _sgd_estimator(sigma=sigma, seed=seed, max_iter=sgd_epochs, n_samples=n_samples)
        sgd.set_params(tol=None)
        sgd.fit(X, y)
        logger.info("SGD stage done after %d epochs; continuing with quasi-Newton", sgd_epochs)
        estimator.coef_ = sgd.coef_.copy()
        estimator.intercept_ = sgd.intercept_.copy()
    estimator.fit(X, y)
    return estimator


def training_accuracy(model: LinearRelationModel, dataset: RelationDataset) -> Accuracy:
    """Re-score every training example with ``model``."""
    accuracy = Accuracy()
    for feats, label in dataset:
        accuracy.predict({model.class_of(feats)}, {label})
    return accuracy


def train_multinomial_classifier(
    dataset: RelationDataset,
    feature_threshold: int = 0,
    sigma: float = 1.0,
    minimizer: Union[str, MinimizerType] = MinimizerType.L1,
    seed: int = 42,
    max_iter: int = 1000,
    l1_solver: str = "saga",
) -> LinearRelationModel:
    """Train a multinomial classifier on a featurized dataset.

    Parameters
    ----------
    dataset : RelationDataset
        Featurized training examples
    feature_threshold : int
        Features occurring in fewer examples than this are dropped
    sigma : float
        Regularisation strength (larger is weaker)
    minimizer : Union[str, MinimizerType]
        Optimisation strategy
    seed : int
        Seed for shuffling and stochastic optimisers
    max_iter : int
        Iteration cap for the optimiser
    l1_solver : str
        sklearn solver used for the L1 strategy

    Returns
    -------
    LinearRelationModel
        The trained weights
    """
    minimizer = MinimizerType.from_name(minimizer)

    logger.info("Applying feature threshold (%d)...", feature_threshold)
    removed = dataset.apply_feature_count_threshold(feature_threshold)
    logger.info("Removed %d rare features", removed)

    matrix = dataset.to_matrix()
    logger.info(
        "Training set: %d examples, %d features, %d labels",
        matrix.X.shape[0], matrix.X.shape[1], len(matrix.label_to_idx),
    )

    logger.info("Randomizing dataset...")
    X, y = shuffle(matrix.X, matrix.y, random_state=seed)

    if len(matrix.label_to_idx) < 2:
        logger.warning(
            "Only %d distinct label(s) in the training data; using a constant model",
            len(matrix.label_to_idx),
        )
        n_labels = len(matrix.label_to_idx)
        model = LinearRelationModel(
            labels=matrix.labels,
            vocab=matrix.vocab,
            coef=np.zeros((n_labels, len(matrix.vocab))),
            intercept=np.zeros(n_labels),
        )
    else:
        logger.info("Creating factory (%s minimizer, sigma=%s)...", minimizer.value, sigma)
        logger.info("BEGIN training")
        estimator = fit_estimator(
            minimizer, X, y, sigma=sigma, seed=seed,
            max_iter=max_iter, l1_solver=l1_solver,
        )
        logger.info("END training")
        model = LinearRelationModel.from_estimator(estimator, matrix)

    accuracy = training_accuracy(model, dataset)
    logger.info("Training accuracy:\n%s", accuracy)
    return model
