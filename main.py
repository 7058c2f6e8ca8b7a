"""
Main experiment runner for Cross-Project Defect Prediction.

Trains the selected classifiers on every software version found in the data
folder, evaluates them and writes the results to <results-dir>/<name>.csv.

Usage:
    python main.py --data-dir datasets [--format csv] [--trainers xgboost random_forest]
                   [--preprocessors impute zscore] [--selectors smote]
                   [--save-classifier] [--store-results --db-url sqlite:///results.db]
"""

import argparse
import warnings
from typing import Dict, List

from cpdp.config import (
    DATA_DIR, RESULTS_DIR, EXPERIMENT_NAME, RANDOM_SEED, ExperimentConfiguration
)
from cpdp.data_loader import ARFFFolderLoader, CSVFolderLoader
from cpdp.evaluation import TestSetEvaluation
from cpdp.execution import ClassifierCreationExperiment
from cpdp.log_setup import configure_logging
from cpdp.processing import LogarithmTransform, MedianImputation, ZScoreNormalization
from cpdp.result_storage import SQLResultStorage
from cpdp.selection import NearestNeighborFilter, RandomUndersampling, SMOTESelection
from cpdp.training import TRAINER_FACTORIES, create_trainer

# Suppress warnings for cleaner output
warnings.filterwarnings('ignore')

LOADERS = {
    'csv': CSVFolderLoader,
    'arff': ARFFFolderLoader,
}

PROCESSORS = {
    'impute': MedianImputation,
    'zscore': ZScoreNormalization,
    'zscore-test': lambda: ZScoreNormalization(reference='test'),
    'log': LogarithmTransform,
}

SELECTORS = {
    'smote': lambda: SMOTESelection(random_state=RANDOM_SEED),
    'nnfilter': NearestNeighborFilter,
    'undersample': lambda: RandomUndersampling(random_state=RANDOM_SEED),
}


def build_strategies(names: List[str], registry: Dict) -> List:
    """Instantiate the named strategies in the given order."""
    return [registry[name]() for name in names]


def build_configuration(args: argparse.Namespace) -> ExperimentConfiguration:
    """
    Assemble the experiment configuration from the command line arguments.

    Args:
        args: Parsed command line arguments

    Returns:
        ExperimentConfiguration for the ClassifierCreationExperiment
    """
    storage = None
    if args.store_results:
        storage = SQLResultStorage(url=args.db_url, parameter_file=args.db_config)

    return ExperimentConfiguration(
        experiment_name=args.name,
        results_path=args.results_dir,
        loaders=[LOADERS[args.format](args.data_dir)],
        pre_processors=build_strategies(args.preprocessors, PROCESSORS),
        pointwise_selectors=build_strategies(args.selectors, SELECTORS),
        post_processors=build_strategies(args.postprocessors, PROCESSORS),
        trainers=[create_trainer(kind, random_state=RANDOM_SEED) for kind in args.trainers],
        evaluators=[TestSetEvaluation(result_storage=storage)],
        save_classifier=args.save_classifier,
    )


def run_experiment(config: ExperimentConfiguration):
    """Print the experiment header and run the experiment."""
    print("="*70)
    print(f"CPDP EXPERIMENT: {config.experiment_name}")
    print("="*70)
    print(f"Preprocessors:  {', '.join(map(repr, config.pre_processors)) or '-'}")
    print(f"Selectors:      {', '.join(map(repr, config.pointwise_selectors)) or '-'}")
    print(f"Postprocessors: {', '.join(map(repr, config.post_processors)) or '-'}")
    print(f"Trainers:       {', '.join(t.name for t in config.trainers) or '-'}")
    print(f"Results:        {config.results_path}")
    print("="*70)

    experiment = ClassifierCreationExperiment(config)
    experiment.run()


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Run Cross-Project Defect Prediction experiments"
    )
    parser.add_argument(
        '--data-dir', default=DATA_DIR,
        help=f"Folder with one sub-folder per project (default: {DATA_DIR})"
    )
    parser.add_argument(
        '--format', choices=sorted(LOADERS), default='csv',
        help="File format of the versions (default: csv)"
    )
    parser.add_argument(
        '--results-dir', default=RESULTS_DIR,
        help=f"Folder for result files and saved classifiers (default: {RESULTS_DIR})"
    )
    parser.add_argument(
        '--name', default=EXPERIMENT_NAME,
        help=f"Experiment name, used for the result file (default: {EXPERIMENT_NAME})"
    )
    parser.add_argument(
        '--preprocessors', nargs='*', choices=sorted(PROCESSORS), default=[],
        help="Processing applied before the data selection"
    )
    parser.add_argument(
        '--selectors', nargs='*', choices=sorted(SELECTORS), default=[],
        help="Pointwise data selection strategies"
    )
    parser.add_argument(
        '--postprocessors', nargs='*', choices=sorted(PROCESSORS), default=[],
        help="Processing applied after the data selection"
    )
    parser.add_argument(
        '--trainers', nargs='+', choices=sorted(TRAINER_FACTORIES), default=['xgboost'],
        help="Classifiers to train (default: xgboost)"
    )
    parser.add_argument(
        '--save-classifier', action='store_true',
        help="Save every fitted classifier in the results folder"
    )
    parser.add_argument(
        '--store-results', action='store_true',
        help="Also store the results in a SQL database"
    )
    parser.add_argument(
        '--db-url',
        help="SQLAlchemy URL of the result database (default: read --db-config)"
    )
    parser.add_argument(
        '--db-config',
        help="Properties file with the database settings (default: mysql.cred)"
    )
    parser.add_argument(
        '--verbose', action='store_true',
        help="Print detailed progress"
    )
    parser.add_argument(
        '--quiet', action='store_true',
        help="Minimal output"
    )

    args = parser.parse_args()

    if args.verbose:
        configure_logging('DEBUG')
    elif args.quiet:
        configure_logging('WARNING')

    config = build_configuration(args)
    run_experiment(config)

    print("\n" + "="*70)
    print("EXPERIMENT COMPLETED SUCCESSFULLY")
    print("="*70)


if __name__ == "__main__":
    main()
