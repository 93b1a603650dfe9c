"""Train a KBP relation extractor and evaluate it on held-out data.

Usage:
    kbp-relations --train train.conll --test test.conll --model model.ser
    kbp-relations --config configs/kbp_train.yaml --minimizer qn
"""

import argparse
import logging
from typing import List, Optional

from .config import TrainingConfig, load_config
from .dataset import Example, featurize_examples, read_dataset
from .extractor import RelationExtractor
from .sentence import SentenceAnnotator
from .trainer import MinimizerType, train_multinomial_classifier

logger = logging.getLogger(__name__)


def annotate_examples(examples: List[Example], annotator: SentenceAnnotator) -> None:
    """Parse the sentence of every example in place."""
    annotator.annotate_batch([inp.sentence for inp, _ in examples])


def run(config: TrainingConfig) -> RelationExtractor:
    """Read, featurize, train, save and evaluate.

    Args:
        config: Run settings.

    Returns:
        The trained extractor.
    """
    minimizer = MinimizerType.from_name(config.minimizer)

    logger.info("Loading training data from %s", config.train_file)
    train_examples = read_dataset(config.train_file)
    logger.info("Loading test data from %s", config.test_file)
    test_examples = read_dataset(config.test_file)

    logger.info("Parsing sentences with %s", config.spacy_model)
    annotator = SentenceAnnotator(config.spacy_model)
    annotate_examples(train_examples, annotator)
    annotate_examples(test_examples, annotator)

    logger.info("Creating dataset")
    dataset = featurize_examples(train_examples, num_workers=config.num_workers)
    train_examples.clear()

    logger.info("Training classifier:")
    model = train_multinomial_classifier(
        dataset,
        feature_threshold=config.feature_threshold,
        sigma=config.sigma,
        minimizer=minimizer,
        seed=config.seed,
        max_iter=config.max_iter,
        l1_solver=config.l1_solver,
    )
    dataset.clear()

    extractor = RelationExtractor(model)
    extractor.save(config.model_file)

    logger.info("Test accuracy")
    accuracy = extractor.evaluate(test_examples, num_workers=config.num_workers)
    logger.info("%s", accuracy)
    accuracy.dump_per_relation_stats()
    if config.confusion_plot is not None:
        accuracy.plot_confusion_matrix(config.confusion_plot)

    return extractor


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Train a KBP slot-filling relation classifier"
    )
    parser.add_argument(
        "--config", "-c",
        type=str,
        default=None,
        help="YAML file with training settings",
    )
    parser.add_argument("--train", type=str, default=None, help="Training CoNLL file")
    parser.add_argument("--test", type=str, default=None, help="Test CoNLL file")
    parser.add_argument(
        "--model", "-m",
        type=str,
        default=None,
        help="Where to write the trained model",
    )
    parser.add_argument(
        "--minimizer",
        type=str,
        choices=[m.value for m in MinimizerType],
        default=None,
        help="Optimisation strategy",
    )
    parser.add_argument(
        "--feature-threshold",
        type=int,
        default=None,
        help="Drop features seen in fewer training examples than this",
    )
    parser.add_argument("--sigma", type=float, default=None, help="Regularisation strength")
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    parser.add_argument("--spacy-model", type=str, default=None, help="spaCy model name")
    parser.add_argument(
        "--workers", "-w",
        type=int,
        default=None,
        help="Worker threads for featurization and evaluation",
    )
    parser.add_argument(
        "--confusion-plot",
        type=str,
        default=None,
        help="Save the test confusion matrix heatmap to this file",
    )
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> TrainingConfig:
    """Defaults, then the YAML file, then command-line flags."""
    config = load_config(args.config) if args.config else TrainingConfig()
    return config.update(
        train_file=args.train,
        test_file=args.test,
        model_file=args.model,
        minimizer=args.minimizer,
        feature_threshold=args.feature_threshold,
        sigma=args.sigma,
        seed=args.seed,
        spacy_model=args.spacy_model,
        num_workers=args.workers,
        confusion_plot=args.confusion_plot,
    )


def main(argv: Optional[List[str]] = None):
    """CLI entry point."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    run(build_config(parse_args(argv)))


if __name__ == "__main__":
    main()
