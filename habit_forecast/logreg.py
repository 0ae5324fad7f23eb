from __future__ import annotations

"""
Minimal logistic regression with batch gradient descent.
Features are expected to be pre-normalized by the feature encoder.
"""

import logging

import numpy as np

logger = logging.getLogger(__name__)


class LogisticRegressionGD:
    """
    Logistic regression trained with full-batch gradient descent from zero weights.
    An unfitted model scores every sample 0.5 (zero weights, zero bias).
    """

    def __init__(self, lr: float = 0.01, max_iter: int = 1000, log_every: int = 0):
        self.lr = lr
        self.max_iter = max_iter
        self.log_every = log_every
        self.coef_: np.ndarray | None = None
        self.intercept_: float = 0.0
        self.n_iter_: int = 0

    @staticmethod
    def _sigmoid(z: np.ndarray) -> np.ndarray:
        z = np.clip(z, -500, 500)
        return 1.0 / (1.0 + np.exp(-z))

    @property
    def is_fitted(self) -> bool:
        return self.coef_ is not None

    def fit(self, X, y):
        """Train the model; an empty training set leaves it unfitted."""
        X_arr = np.asarray(X, dtype=float)
        y_arr = np.asarray(y, dtype=float)
        if len(X_arr) != len(y_arr):
            raise ValueError(f"X has {len(X_arr)} rows but y has {len(y_arr)} labels")
        if len(X_arr) == 0:
            return self
        if X_arr.ndim != 2:
            raise ValueError("X must be a 2D feature matrix")

        n_samples = len(y_arr)
        weights = np.zeros(X_arr.shape[1])
        bias = 0.0

        for step in range(1, self.max_iter + 1):
            preds = self._sigmoid(X_arr @ weights + bias)
            error = preds - y_arr
            weights = weights - self.lr * (X_arr.T @ error) / n_samples
            bias -= self.lr * float(error.sum()) / n_samples

            if self.log_every and step % self.log_every == 0:
                loss = -np.mean(
                    y_arr * np.log(preds + 1e-12) + (1 - y_arr) * np.log(1 - preds + 1e-12)
                )
                logger.debug("[GD] step=%d, loss=%.4f", step, loss)

        self.coef_, self.intercept_, self.n_iter_ = weights, bias, self.max_iter
        return self

    def predict_proba(self, X):
        """P(y=1) for a single feature vector (float) or each row of a matrix (array)."""
        X_arr = np.asarray(X, dtype=float)
        if self.coef_ is None:
            return 0.5 if X_arr.ndim == 1 else np.full(len(X_arr), 0.5)
        if X_arr.shape[-1] != len(self.coef_):
            raise ValueError(f"Expected {len(self.coef_)} features, got {X_arr.shape[-1]}")

        probs = self._sigmoid(X_arr @ self.coef_ + self.intercept_)
        return float(probs) if X_arr.ndim == 1 else probs

    def predict(self, X, threshold: float = 0.5):
        """Binary predictions; a probability must exceed the threshold to count as 1."""
        return (np.asarray(self.predict_proba(X)) > threshold).astype(int)
