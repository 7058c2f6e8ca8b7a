"""
Execution strategies run a complete experiment described by an
ExperimentConfiguration.

The ClassifierCreationExperiment performs the following steps:

- load the versions of all configured loaders
- create the results directory if it does not exist
- for each version:
    - use the version's data as test data, and a copy of it as training data
    - apply the preprocessors, the pointwise selectors and the postprocessors
    - train every trainer on the training data and optionally save the
      fitted classifier in the results directory
    - run every evaluator; the CSV header is only written on the very first
      evaluation of the experiment

Each experiment is an independent unit of work, so that separate
experiments can be executed side by side.
"""

import os
import pickle
from abc import ABC, abstractmethod
from typing import List

from .config import ExperimentConfiguration
from .data_loader import log_dataset_summary
from .dataset import Dataset, SoftwareVersion
from .log_setup import get_logger

logger = get_logger(__name__)


class ExecutionStrategy(ABC):
    """Runs one experiment."""

    def __init__(self, config: ExperimentConfiguration):
        self.config = config

    @abstractmethod
    def run(self):
        raise NotImplementedError


class ClassifierCreationExperiment(ExecutionStrategy):
    """
    Trains the configured classifiers on every version and evaluates them on
    the same version. Used to create (and save) classifiers per project.
    """

    def __init__(self, config: ExperimentConfiguration):
        super().__init__(config)
        self.write_header = True
        self._configured_evaluators = set()

    def _trace(self, version_count: int, n_versions: int, project: str, message: str):
        logger.debug("[%s] [%02d/%02d] %s: %s", self.config.experiment_name,
                     version_count, n_versions, project, message)

    def load_versions(self) -> List[SoftwareVersion]:
        versions = []
        for loader in self.config.loaders:
            versions.extend(loader.load())
        return versions

    def save_classifier(self, trainer, project: str):
        """Pickle the fitted classifier of a trainer to the results directory."""
        path = os.path.join(self.config.results_path, f"{trainer.name}-{project}")
        try:
            # a classifier that fails to pickle must not leave a partial file
            payload = pickle.dumps(trainer.get_classifier())
            with open(path, 'wb') as f:
                f.write(payload)
            logger.debug("Saved classifier %s", path)
        except Exception:
            logger.exception("Could not save classifier of %s for %s", trainer.name, project)

    def run(self):
        config = self.config
        self.write_header = True
        self._configured_evaluators = set()
        versions = self.load_versions()
        log_dataset_summary(versions)

        os.makedirs(config.results_path, exist_ok=True)

        n_versions = len(versions)
        for version_count, version in enumerate(versions, start=1):
            project = version.project

            # At first: train data == test data
            test_data = version.instances.rename(project)
            train_data = test_data.copy()

            for processor in config.pre_processors:
                self._trace(version_count, n_versions, project,
                            f"applying preprocessor {processor!r}")
                test_data, train_data = processor.apply(test_data, train_data)

            for selector in config.pointwise_selectors:
                self._trace(version_count, n_versions, project,
                            f"applying pointwise selection {selector!r}")
                train_data = selector.apply(test_data, train_data)

            for processor in config.post_processors:
                self._trace(version_count, n_versions, project,
                            f"applying setwise postprocessor {processor!r}")
                test_data, train_data = processor.apply(test_data, train_data)

            self._log_class_balance(train_data, test_data)

            trainers = []
            for trainer in config.trainers:
                self._trace(version_count, n_versions, project, f"training {trainer.name}")
                trainer.apply(train_data)
                trainers.append(trainer)

                if config.save_classifier:
                    self.save_classifier(trainer, project)

            for evaluator in config.evaluators:
                self._trace(version_count, n_versions, project,
                            f"applying evaluator {evaluator!r}")
                self._evaluate(evaluator, test_data, train_data, trainers)

            logger.info("[%s] [%02d/%02d] %s: finished", config.experiment_name,
                        version_count, n_versions, project)

    def _evaluate(self, evaluator, test_data: Dataset, train_data: Dataset, trainers: List):
        if id(evaluator) not in self._configured_evaluators:
            evaluator.set_parameter(os.path.join(self.config.results_path,
                                                 f"{self.config.experiment_name}.csv"))
            self._configured_evaluators.add(id(evaluator))

        evaluator.apply(test_data, train_data, trainers, self.write_header)
        self.write_header = False

    @staticmethod
    def _log_class_balance(train_data: Dataset, test_data: Dataset):
        for label, dataset in (('Traindata', train_data), ('Testdata', test_data)):
            logger.debug("%s Bug: %d", label, dataset.n_defective)
            logger.debug("%s Non Bug: %d", label, dataset.num_instances - dataset.n_defective)
