"""
Configuration file for the Cross-Project Defect Prediction experiment runner.
Contains default paths, hyperparameters, database settings and the
experiment configuration record consumed by the execution strategies.
"""

import os
from dataclasses import dataclass, field
from typing import List

# =============================================================================
# Random Seed for Reproducibility
# =============================================================================
RANDOM_SEED = 42

# =============================================================================
# Dataset Configuration
# =============================================================================
DATA_DIR = os.path.join(os.path.dirname(os.path.dirname(__file__)), 'datasets')
RESULTS_DIR = os.path.join(os.path.dirname(os.path.dirname(__file__)), 'results')
EXPERIMENT_NAME = 'cpdp-experiment'

# Attributes that hold the inspection effort of an instance (lines of code)
EFFORT_ATTRIBUTES = [
    'loc', 'LOC', 'CountLineCode', 'LOC_EXECUTABLE',
    'numberOfLinesOfCode', 'ck_oo_numberOfLinesOfCode',
]

# Label values of ARFF files that mark an instance as defective
DEFECTIVE_LABELS = ['true', 'y', 'yes', '1', 'defective', 'buggy']

# =============================================================================
# Pointwise Selection Configuration
# =============================================================================
SMOTE_K_NEIGHBORS = 5
NN_FILTER_K = 10

# =============================================================================
# PCA + MLP Trainer Configuration
# =============================================================================
PCA_N_COMPONENTS = 0.95  # Retain 95% of variance
MLP_HIDDEN_LAYERS = (100, 50)
MLP_ACTIVATION = 'relu'
MLP_SOLVER = 'adam'
MLP_ALPHA = 0.001
MLP_LEARNING_RATE_INIT = 0.001
MLP_MAX_ITER = 200

# =============================================================================
# Autoencoder Configuration
# =============================================================================
AE_ENCODER_LAYERS = [64, 32]
AE_LATENT_DIM = 10
AE_DECODER_LAYERS = [32, 64]
AE_OPTIMIZER_LR = 0.001
AE_EPOCHS = 100
AE_BATCH_SIZE = 32
AE_VALIDATION_SPLIT = 0.1
AE_EARLY_STOPPING_PATIENCE = 10

# =============================================================================
# XGBoost Configuration
# =============================================================================
XGB_N_ESTIMATORS = 100
XGB_MAX_DEPTH = 6
XGB_LEARNING_RATE = 0.1
XGB_SUBSAMPLE = 0.8
XGB_COLSAMPLE_BYTREE = 0.8
XGB_OBJECTIVE = 'binary:logistic'
XGB_EVAL_METRIC = 'logloss'

# =============================================================================
# Random Forest Configuration
# =============================================================================
RF_N_ESTIMATORS = 100
RF_MAX_DEPTH = None

# =============================================================================
# Evaluation Metrics
# =============================================================================
METRICS = [
    'error', 'recall', 'precision', 'fscore', 'gscore', 'mcc', 'auc',
    'balance', 'aucec', 'nofb20', 'relb20', 'nofi80', 'reli80', 'rele80',
    'necm15', 'necm20', 'necm25', 'tpr', 'tnr', 'fpr', 'fnr',
    'tp', 'fn', 'tn', 'fp',
]

# Cost ratios of the normalized expected cost of misclassification
NECM_COST_RATIOS = {'necm15': 1.5, 'necm20': 2.0, 'necm25': 2.5}

EFFORT_BUDGET = 0.20     # effort share inspected for nofb20/relb20
DEFECT_TARGET = 0.80     # defect share to be found for nofi80/reli80/rele80

# =============================================================================
# Result Database
# =============================================================================
DB_PARAMETER_FILE = os.environ.get('CPDP_DB_CONFIG', 'mysql.cred')
DB_HOST = 'localhost'
DB_PORT = '3306'
DB_NAME = 'crosspare'
DB_USER = 'crosspare'
DB_PASS = 'crosspare'
DB_RESULTS_TABLE = 'results'
DB_CREATE_TABLE = False

# =============================================================================
# Logging
# =============================================================================
LOG_LEVEL = os.environ.get('CPDP_LOG_LEVEL', 'INFO')


@dataclass
class ExperimentConfiguration:
    """
    Everything an execution strategy needs to run one experiment.

    All strategy lists are applied in the order given.
    """
    experiment_name: str = EXPERIMENT_NAME
    results_path: str = RESULTS_DIR
    loaders: List = field(default_factory=list)
    pre_processors: List = field(default_factory=list)
    pointwise_selectors: List = field(default_factory=list)
    post_processors: List = field(default_factory=list)
    trainers: List = field(default_factory=list)
    evaluators: List = field(default_factory=list)
    save_classifier: bool = False
