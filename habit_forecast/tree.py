from __future__ import annotations

"""
Small CART-style decision tree grown on Gini impurity. Leaves store the mean
label of their samples, so predictions are probabilities rather than classes.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

logger = logging.getLogger(__name__)


def gini_impurity(labels) -> float:
    """1 - sum(p_k^2); 0.0 for an empty set."""
    y = np.asarray(labels)
    if y.size == 0:
        return 0.0
    _, counts = np.unique(y, return_counts=True)
    proportions = counts / y.size
    return float(1.0 - np.sum(proportions**2))


@dataclass(frozen=True)
class TreeNode:
    prediction: float = 0.5
    feature_index: Optional[int] = None
    threshold: Optional[float] = None
    left: Optional["TreeNode"] = None
    right: Optional["TreeNode"] = None

    @property
    def is_leaf(self) -> bool:
        return self.feature_index is None


class DecisionTreeGini:
    """
    Binary tree that splits on ``x[feature] <= threshold``.

    Growth stops at ``max_depth``, below ``min_samples_split`` samples, on a
    pure node, or when no split lowers the weighted Gini impurity.
    """

    def __init__(self, max_depth: int = 5, min_samples_split: int = 2):
        self.max_depth = max_depth
        self.min_samples_split = min_samples_split
        self.root_: TreeNode | None = None
        self.n_leaves_: int = 0

    @property
    def is_fitted(self) -> bool:
        return self.root_ is not None

    def _best_split(self, X: np.ndarray, y: np.ndarray):
        """
        Scan features in order and, within each, midpoints between consecutive
        distinct values. The first split with the lowest weighted impurity wins.
        """
        n_samples, n_features = X.shape
        best = None
        best_gini = np.inf
        total_pos = y.sum()

        for feature_index in range(n_features):
            order = np.argsort(X[:, feature_index], kind="stable")
            values, labels = X[order, feature_index], y[order]
            # last index of each run of equal values
            cuts = np.nonzero(np.diff(values))[0]
            if cuts.size == 0:
                continue

            n_left = cuts + 1.0
            n_right = n_samples - n_left
            p_left = np.cumsum(labels)[cuts] / n_left
            p_right = (total_pos - p_left * n_left) / n_right
            gini_left = 1.0 - p_left**2 - (1.0 - p_left) ** 2
            gini_right = 1.0 - p_right**2 - (1.0 - p_right) ** 2
            weighted = (n_left * gini_left + n_right * gini_right) / n_samples

            i = int(np.argmin(weighted))
            if weighted[i] < best_gini:
                best_gini = float(weighted[i])
                lower, upper = values[cuts[i]], values[cuts[i] + 1]
                threshold = (lower + upper) / 2
                # adjacent floats can round the midpoint up to the upper value
                if not threshold < upper:
                    threshold = lower
                best = (feature_index, float(threshold))

        return best, best_gini

    def _grow(self, X: np.ndarray, y: np.ndarray, depth: int) -> TreeNode:
        leaf = TreeNode(prediction=float(y.mean()))
        if depth >= self.max_depth or len(y) < self.min_samples_split or len(np.unique(y)) == 1:
            self.n_leaves_ += 1
            return leaf

        split, split_gini = self._best_split(X, y)
        if split is None or split_gini >= gini_impurity(y) - 1e-12:
            self.n_leaves_ += 1
            return leaf

        feature_index, threshold = split
        mask = X[:, feature_index] <= threshold
        return TreeNode(
            prediction=leaf.prediction,
            feature_index=feature_index,
            threshold=threshold,
            left=self._grow(X[mask], y[mask], depth + 1),
            right=self._grow(X[~mask], y[~mask], depth + 1),
        )

    def fit(self, X, y):
        """Grow the tree on 0/1 labels; an empty training set leaves it unfitted."""
        X_arr = np.asarray(X, dtype=float)
        y_arr = np.asarray(y, dtype=float)
        if len(X_arr) != len(y_arr):
            raise ValueError(f"X has {len(X_arr)} rows but y has {len(y_arr)} labels")
        if len(X_arr) == 0:
            return self
        if X_arr.ndim != 2:
            raise ValueError("X must be a 2D feature matrix")

        self.n_leaves_ = 0
        root = self._grow(X_arr, y_arr, depth=0)
        self.root_ = root
        logger.debug("Grew tree with %d leaves on %d samples", self.n_leaves_, len(y_arr))
        return self

    def _predict_row(self, x: np.ndarray) -> float:
        node = self.root_
        while not node.is_leaf:
            node = node.left if x[node.feature_index] <= node.threshold else node.right
        return node.prediction

    def predict_proba(self, X):
        """Leaf value for a single vector (float) or each row of a matrix (array); 0.5 when unfitted."""
        X_arr = np.asarray(X, dtype=float)
        if X_arr.ndim == 1:
            return 0.5 if self.root_ is None else self._predict_row(X_arr)
        if self.root_ is None:
            return np.full(len(X_arr), 0.5)
        return np.array([self._predict_row(row) for row in X_arr])

    def predict(self, X, threshold: float = 0.5):
        return (np.asarray(self.predict_proba(X)) > threshold).astype(int)
