"""
Autoencoder implementation using PyTorch for dimensionality reduction and the
autoencoder + XGBoost classifier built on top of it.
"""

import copy
from typing import Optional, Tuple

import numpy as np
import torch
import torch.nn as nn
import xgboost as xgb
from sklearn.base import BaseEstimator, ClassifierMixin
from torch.utils.data import DataLoader, TensorDataset

from .config import (
    RANDOM_SEED,
    AE_ENCODER_LAYERS,
    AE_LATENT_DIM,
    AE_DECODER_LAYERS,
    AE_OPTIMIZER_LR,
    AE_EPOCHS,
    AE_BATCH_SIZE,
    AE_VALIDATION_SPLIT,
    AE_EARLY_STOPPING_PATIENCE,
    XGB_N_ESTIMATORS,
    XGB_MAX_DEPTH,
    XGB_LEARNING_RATE,
    XGB_SUBSAMPLE,
    XGB_COLSAMPLE_BYTREE,
    XGB_OBJECTIVE,
    XGB_EVAL_METRIC,
)
from .log_setup import get_logger

logger = get_logger(__name__)


def set_seed(seed: int):
    """Set random seeds for reproducibility."""
    np.random.seed(seed)
    torch.manual_seed(seed)
    if torch.cuda.is_available():
        torch.cuda.manual_seed_all(seed)


class AutoencoderModel(nn.Module):
    """
    PyTorch Autoencoder model.

    Encoder: Input → 64 (ReLU) → 32 (ReLU) → latent (ReLU)
    Decoder: latent → 32 (ReLU) → 64 (ReLU) → Output (Linear)
    """

    def __init__(self,
                 input_dim: int,
                 encoder_layers: list = AE_ENCODER_LAYERS,
                 latent_dim: int = AE_LATENT_DIM,
                 decoder_layers: list = AE_DECODER_LAYERS):
        super().__init__()

        self.input_dim = input_dim
        self.latent_dim = latent_dim

        encoder_modules = []
        prev_dim = input_dim
        for hidden_dim in encoder_layers:
            encoder_modules.append(nn.Linear(prev_dim, hidden_dim))
            encoder_modules.append(nn.ReLU())
            prev_dim = hidden_dim
        encoder_modules.append(nn.Linear(prev_dim, latent_dim))
        encoder_modules.append(nn.ReLU())
        self.encoder = nn.Sequential(*encoder_modules)

        decoder_modules = []
        prev_dim = latent_dim
        for hidden_dim in decoder_layers:
            decoder_modules.append(nn.Linear(prev_dim, hidden_dim))
            decoder_modules.append(nn.ReLU())
            prev_dim = hidden_dim
        decoder_modules.append(nn.Linear(prev_dim, input_dim))
        self.decoder = nn.Sequential(*decoder_modules)

    def forward(self, x: torch.Tensor) -> Tuple[torch.Tensor, torch.Tensor]:
        """
        Forward pass through the autoencoder.

        Returns:
            (reconstruction, latent): Tuple of reconstructed input and latent representation
        """
        z = self.encoder(x)
        return self.decoder(z), z


class Autoencoder:
    """
    Wrapper class for autoencoder training and inference.
    Provides a scikit-learn-like interface.
    """

    def __init__(self,
                 latent_dim: int = AE_LATENT_DIM,
                 encoder_layers: list = None,
                 decoder_layers: list = None,
                 learning_rate: float = AE_OPTIMIZER_LR,
                 epochs: int = AE_EPOCHS,
                 batch_size: int = AE_BATCH_SIZE,
                 validation_split: float = AE_VALIDATION_SPLIT,
                 early_stopping_patience: int = AE_EARLY_STOPPING_PATIENCE,
                 random_state: int = RANDOM_SEED):
        """
        Args:
            latent_dim: Size of latent representation
            encoder_layers: Hidden layer sizes for encoder
            decoder_layers: Hidden layer sizes for decoder
            learning_rate: Learning rate for Adam optimizer
            epochs: Maximum training epochs
            batch_size: Batch size for training
            validation_split: Fraction of data for validation
            early_stopping_patience: Epochs to wait before early stopping
            random_state: Random seed
        """
        self.latent_dim = latent_dim
        self.encoder_layers = encoder_layers or AE_ENCODER_LAYERS
        self.decoder_layers = decoder_layers or AE_DECODER_LAYERS
        self.learning_rate = learning_rate
        self.epochs = epochs
        self.batch_size = batch_size
        self.validation_split = validation_split
        self.early_stopping_patience = early_stopping_patience
        self.random_state = random_state

        self.model: Optional[AutoencoderModel] = None
        self.device = torch.device('cuda' if torch.cuda.is_available() else 'cpu')
        self._is_fitted = False

    def _epoch_loss(self, loader: DataLoader, criterion, optimizer=None) -> float:
        total_loss = 0.0
        n_samples = 0
        for batch_x, _ in loader:
            batch_x = batch_x.to(self.device)
            if optimizer is not None:
                optimizer.zero_grad()
            reconstruction, _ = self.model(batch_x)
            loss = criterion(reconstruction, batch_x)
            if optimizer is not None:
                loss.backward()
                optimizer.step()
            total_loss += loss.item() * len(batch_x)
            n_samples += len(batch_x)
        return total_loss / max(n_samples, 1)

    def fit(self, X: np.ndarray) -> 'Autoencoder':
        """
        Train the autoencoder on input data.

        Args:
            X: Training data of shape (n_samples, n_features)

        Returns:
            self
        """
        set_seed(self.random_state)

        self.model = AutoencoderModel(
            input_dim=X.shape[1],
            encoder_layers=self.encoder_layers,
            latent_dim=self.latent_dim,
            decoder_layers=self.decoder_layers
        ).to(self.device)

        n_samples = len(X)
        n_val = int(n_samples * self.validation_split)
        indices = np.random.permutation(n_samples)
        X_train = X[indices[n_val:]]
        X_val = X[indices[:n_val]]

        train_tensor = torch.FloatTensor(X_train)
        train_loader = DataLoader(TensorDataset(train_tensor, train_tensor),
                                  batch_size=self.batch_size, shuffle=True)
        val_loader = None
        if n_val > 0:
            val_tensor = torch.FloatTensor(X_val)
            val_loader = DataLoader(TensorDataset(val_tensor, val_tensor),
                                    batch_size=self.batch_size, shuffle=False)

        criterion = nn.MSELoss()
        optimizer = torch.optim.Adam(self.model.parameters(), lr=self.learning_rate)

        best_val_loss = float('inf')
        patience_counter = 0
        best_model_state = None

        for epoch in range(self.epochs):
            self.model.train()
            train_loss = self._epoch_loss(train_loader, criterion, optimizer)

            self.model.eval()
            if val_loader is not None:
                with torch.no_grad():
                    val_loss = self._epoch_loss(val_loader, criterion)
            else:
                # too few samples for a validation split
                val_loss = train_loss

            if (epoch + 1) % 10 == 0:
                logger.debug("Epoch %d/%d - Train Loss: %.6f, Val Loss: %.6f",
                             epoch + 1, self.epochs, train_loss, val_loss)

            if val_loss < best_val_loss:
                best_val_loss = val_loss
                patience_counter = 0
                best_model_state = copy.deepcopy(self.model.state_dict())
            else:
                patience_counter += 1
                if patience_counter >= self.early_stopping_patience:
                    logger.debug("Early stopping at epoch %d", epoch + 1)
                    break

        if best_model_state is not None:
            self.model.load_state_dict(best_model_state)

        self._is_fitted = True
        return self

    def transform(self, X: np.ndarray) -> np.ndarray:
        """
        Transform input to latent representation.

        Args:
            X: Input data of shape (n_samples, n_features)

        Returns:
            Latent representations of shape (n_samples, latent_dim)
        """
        if not self._is_fitted:
            raise RuntimeError("Autoencoder must be fitted before transform")

        self.model.eval()
        with torch.no_grad():
            X_tensor = torch.FloatTensor(X).to(self.device)
            _, latent = self.model(X_tensor)
            return latent.cpu().numpy()

    def fit_transform(self, X: np.ndarray) -> np.ndarray:
        self.fit(X)
        return self.transform(X)

    def get_reconstruction_error(self, X: np.ndarray) -> float:
        """Mean squared reconstruction error of X."""
        if not self._is_fitted:
            raise RuntimeError("Autoencoder must be fitted before reconstruction")

        self.model.eval()
        with torch.no_grad():
            X_tensor = torch.FloatTensor(X).to(self.device)
            reconstruction, _ = self.model(X_tensor)
        return float(np.mean((X - reconstruction.cpu().numpy()) ** 2))


class AutoencoderXGBoostClassifier(ClassifierMixin, BaseEstimator):
    """
    Autoencoder + XGBoost classifier.

    1. Autoencoder for non-linear dimensionality reduction
    2. XGBoost for classification on the latent features

    Follows the scikit-learn estimator API so that it can be cloned and
    wrapped by a SklearnTrainer like any other classifier.
    """

    def __init__(self,
                 latent_dim: int = AE_LATENT_DIM,
                 epochs: int = AE_EPOCHS,
                 batch_size: int = AE_BATCH_SIZE,
                 learning_rate: float = AE_OPTIMIZER_LR,
                 n_estimators: int = XGB_N_ESTIMATORS,
                 max_depth: int = XGB_MAX_DEPTH,
                 random_state: int = RANDOM_SEED):
        self.latent_dim = latent_dim
        self.epochs = epochs
        self.batch_size = batch_size
        self.learning_rate = learning_rate
        self.n_estimators = n_estimators
        self.max_depth = max_depth
        self.random_state = random_state

    def fit(self, X: np.ndarray, y: np.ndarray) -> 'AutoencoderXGBoostClassifier':
        """
        Fit the autoencoder, then XGBoost on the encoded features.

        Args:
            X: Training features
            y: Training labels (0/1)

        Returns:
            self
        """
        X = np.asarray(X, dtype=np.float64)
        y = np.asarray(y)
        self.classes_ = np.unique(y)

        self.autoencoder_ = Autoencoder(
            latent_dim=self.latent_dim,
            learning_rate=self.learning_rate,
            epochs=self.epochs,
            batch_size=self.batch_size,
            random_state=self.random_state,
        )
        X_encoded = self.autoencoder_.fit_transform(X)
        logger.debug("Autoencoder: %d -> %d dimensions, reconstruction error %.6f",
                     X.shape[1], X_encoded.shape[1],
                     self.autoencoder_.get_reconstruction_error(X))

        self.xgb_classifier_ = xgb.XGBClassifier(
            n_estimators=self.n_estimators,
            max_depth=self.max_depth,
            learning_rate=XGB_LEARNING_RATE,
            subsample=XGB_SUBSAMPLE,
            colsample_bytree=XGB_COLSAMPLE_BYTREE,
            objective=XGB_OBJECTIVE,
            eval_metric=XGB_EVAL_METRIC,
            random_state=self.random_state,
            verbosity=0
        )
        self.xgb_classifier_.fit(X_encoded, y)
        return self

    def _encode(self, X: np.ndarray) -> np.ndarray:
        if not hasattr(self, 'xgb_classifier_'):
            raise RuntimeError("Classifier must be fitted before prediction")
        return self.autoencoder_.transform(np.asarray(X, dtype=np.float64))

    def predict(self, X: np.ndarray) -> np.ndarray:
        X_encoded = self._encode(X)
        return self.xgb_classifier_.predict(X_encoded)

    def predict_proba(self, X: np.ndarray) -> np.ndarray:
        X_encoded = self._encode(X)
        return self.xgb_classifier_.predict_proba(X_encoded)
