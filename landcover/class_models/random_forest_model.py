"""Random Forest classifier for land-cover feature tables and rasters."""

import numpy as np
import pandas as pd
from typing import Any, Dict, Optional, Sequence, Tuple, Union
from pathlib import Path
import pickle
from sklearn.ensemble import RandomForestClassifier
from tqdm import tqdm

from landcover.class_models.base_model import BaseClassifier
from landcover.cste import ClassifierConfig, GeneralConfig
from landcover.errors import InvalidInput
from landcover.logger import get_logger
from landcover.raster import Raster

log = get_logger("random_forest")


def _to_builtin(value: Any) -> Any:
    """Convert numpy scalars to plain Python values (JSON friendly)."""
    return value.item() if isinstance(value, np.generic) else value


class RandomForestClassifierModel(BaseClassifier):
    """
    Bagged ensemble of decision trees.

    Each tree is grown on a bootstrap resample of the training rows using the
    configured input bands; nodes are split on the feature/threshold that
    minimizes Gini impurity. Predictions are a hard majority vote across trees,
    ties going to the first class in `classes` order.

    With a fixed `random_state` training is fully reproducible. With
    `random_state=None` two trainings on the same rows only agree
    statistically, since every tree sees a different bootstrap sample.
    """

    def __init__(
        self,
        tree_count: int = ClassifierConfig.TREE_COUNT,
        max_depth: Optional[int] = ClassifierConfig.MAX_DEPTH,
        n_jobs: int = ClassifierConfig.N_JOBS,
        random_state: Optional[int] = GeneralConfig.RANDOM_SEED,
        unclassified: int = ClassifierConfig.UNCLASSIFIED,
        output_band: str = ClassifierConfig.OUTPUT_BAND,
    ):
        """
        Initialize Random Forest model.

        Args:
            tree_count: Number of trees in the forest
            max_depth: Maximum depth of trees (None = grow until pure)
            n_jobs: Number of parallel jobs for tree training (-1 = all cores)
            random_state: Random seed for bootstrap resampling and feature draws
            unclassified: Pixel value written where an input band is no-data
            output_band: Band name of the classified raster
        """
        super().__init__('RandomForest')

        if tree_count < 1:
            raise InvalidInput(f"tree_count must be >= 1, got {tree_count}")

        self.tree_count = tree_count
        self.max_depth = max_depth
        self.n_jobs = n_jobs
        self.random_state = random_state
        self.unclassified = unclassified
        self.output_band = output_band

        #! Store configuration
        self.config = {
            'tree_count': tree_count,
            'max_depth': max_depth,
            'n_jobs': n_jobs,
            'random_state': random_state,
            'unclassified': unclassified,
            'output_band': output_band,
        }

        log.info(f"Initialized Random Forest: trees={tree_count}, depth={max_depth}")

    @property
    def classes(self) -> Tuple[Any, ...]:
        """Class labels known to the trained model, in vote order."""
        self._check_trained()
        return tuple(_to_builtin(c) for c in self.model.classes_)

    def train(
        self,
        rows: pd.DataFrame,
        label_field: str,
        input_bands: Sequence[str],
    ) -> Dict[str, Any]:
        """
        Train the forest on a labeled feature table.

        Args:
            rows: Training feature table
            label_field: Column holding the class label
            input_bands: Band columns used as features, in order

        Returns:
            Training metrics dictionary

        Raises:
            InvalidInput: Already trained model, empty rows, missing/null labels,
                          missing band columns, or no-data values among the features
        """
        if self.is_trained:
            raise InvalidInput(f"{self.model_name} is already trained, build a new model to retrain")
        input_bands = list(input_bands)
        self._validate_training_rows(rows, label_field, input_bands)

        X_train = rows[input_bands].to_numpy(dtype=np.float64)
        y_train = rows[label_field].to_numpy()
        if np.isnan(X_train).any():
            raise InvalidInput("Training rows contain no-data values")

        log.info(f"Training Random Forest on {len(X_train)} rows, bands={input_bands}")

        #! Fitted once, read-only afterwards
        model = RandomForestClassifier(
            n_estimators=self.tree_count,
            max_depth=self.max_depth,
            n_jobs=self.n_jobs,
            random_state=self.random_state,
            bootstrap=True,
        )
        model.fit(X_train, y_train)

        self.model = model
        self.label_field = label_field
        self.input_bands = input_bands
        self.config.update({
            'label_field': label_field,
            'input_bands': input_bands,
            'classes': list(self.classes),
        })

        #! Training accuracy with the same voting rule as predict
        train_acc = float(np.mean(self._vote(X_train) == y_train))
        log.info(f"Training accuracy: {train_acc:.4f}")

        feature_importance = self.explain()
        log.info(f"Feature importance: {feature_importance}")

        metrics = {
            'train_accuracy': train_acc,
            'feature_importance': feature_importance,
            'n_samples_used': len(X_train),
            'classes': list(self.classes),
        }

        return metrics

    def _vote_indices(self, X: np.ndarray) -> np.ndarray:
        """Hard majority vote of every tree, returned as indices into classes_."""
        n_classes = len(self.model.classes_)
        #! Trees of a fitted forest predict class indices, not labels
        votes = np.stack([tree.predict(X) for tree in self.model.estimators_]).astype(np.intp)
        counts = np.zeros((n_classes, X.shape[0]), dtype=np.intp)
        for c in range(n_classes):
            counts[c] = (votes == c).sum(axis=0)
        return counts.argmax(axis=0)

    def _vote(self, X: np.ndarray) -> np.ndarray:
        """Hard majority vote of every tree, returned as class labels."""
        return self.model.classes_[self._vote_indices(X)]

    def predict(self, data: Union[pd.DataFrame, Raster], chunk_size: int = 262144) -> Union[np.ndarray, Raster]:
        """
        Classify a feature table or a whole raster.

        Args:
            data: Feature table (one label per row is returned) or raster
                  (a single-band classified raster is returned)
            chunk_size: Number of pixels classified per batch for rasters

        Returns:
            np.ndarray of labels, or classified Raster
        """
        self._check_trained()
        if isinstance(data, Raster):
            return self.predict_raster(data, chunk_size=chunk_size)
        return self.predict_table(data)

    def predict_table(self, rows: pd.DataFrame) -> np.ndarray:
        """Return one predicted label per row of `rows`."""
        self._check_trained()
        missing = [b for b in self.input_bands if b not in rows.columns]
        if missing:
            raise InvalidInput(f"Input bands {missing} not found in rows")
        if len(rows) == 0:
            return np.array([], dtype=self.model.classes_.dtype)

        X = rows[self.input_bands].to_numpy(dtype=np.float64)
        if np.isnan(X).any():
            raise InvalidInput("Rows to classify contain no-data values")
        return self._vote(X)

    def classify_table(self, rows: pd.DataFrame, output_column: Optional[str] = None) -> pd.DataFrame:
        """Return a copy of `rows` with a column holding the predicted label."""
        out = rows.copy()
        out[output_column or self.output_band] = self.predict_table(rows)
        return out

    def _label_codes(self) -> np.ndarray:
        """Pixel value written for each class: the label itself if numeric, else its index."""
        classes = self.model.classes_
        if np.issubdtype(classes.dtype, np.number) and not np.issubdtype(classes.dtype, np.bool_):
            if self.unclassified in classes:
                log.warning(f"Class label {self.unclassified} collides with the unclassified value")
            return classes.astype(np.float64)
        return np.arange(len(classes), dtype=np.float64)

    def predict_raster(self, raster: Raster, chunk_size: int = 262144) -> Raster:
        """
        Classify every pixel of a raster independently.

        Args:
            raster: Raster holding at least the model's input bands
            chunk_size: Number of pixels classified per batch

        Returns:
            Single-band raster (`output_band`) sharing the input grid. Pixels
            with no-data in any input band hold `unclassified`, which is also
            the output no-data value. properties["class_labels"] maps pixel
            values to class labels.
        """
        self._check_trained()
        raster.require_bands(self.input_bands)

        valid = raster.valid_mask(self.input_bands)
        X = raster.stack(self.input_bands)[valid]          # (N, C)
        codes = self._label_codes()

        out = np.full(raster.shape, float(self.unclassified), dtype=np.float64)
        predicted = np.empty(len(X), dtype=np.float64)

        for start in tqdm(range(0, len(X), chunk_size), desc="Classifying pixels", disable=len(X) <= chunk_size):
            winners = self._vote_indices(X[start:start + chunk_size])
            predicted[start:start + chunk_size] = codes[winners]
        out[valid] = predicted

        log.info(f"Classified {int(valid.sum())}/{valid.size} pixels")

        class_labels = {
            _to_builtin(code): _to_builtin(label)
            for code, label in zip(codes, self.model.classes_)
        }
        return Raster(
            {self.output_band: out},
            raster.grid,
            nodata=float(self.unclassified),
            properties={"class_labels": class_labels},
        )

    def explain(self) -> Dict[str, float]:
        """Impurity-based importance of each input band."""
        self._check_trained()
        return {
            band: float(imp)
            for band, imp in zip(self.input_bands, self.model.feature_importances_)
        }

    def save(self, save_dir: str) -> None:
        """
        Save model and configuration.

        Args:
            save_dir: Directory to save model artifacts
        """
        self._check_trained()
        save_path = Path(save_dir)
        save_path.mkdir(parents=True, exist_ok=True)

        #! Save model with pickle
        model_path = save_path / 'random_forest.pkl'
        with open(model_path, 'wb') as f:
            pickle.dump(self.model, f)
        log.info(f"Saved model to {model_path}")

        #! Save configuration
        self._save_config(save_dir)

    def load(self, save_dir: str) -> None:
        """
        Load model and configuration.

        Args:
            save_dir: Directory containing model artifacts
        """
        #! Load configuration
        self.config = self._load_config(save_dir)
        self.tree_count = self.config['tree_count']
        self.max_depth = self.config['max_depth']
        self.n_jobs = self.config['n_jobs']
        self.random_state = self.config['random_state']
        self.unclassified = self.config['unclassified']
        self.output_band = self.config['output_band']
        self.label_field = self.config['label_field']
        self.input_bands = list(self.config['input_bands'])

        #! Load model
        model_path = Path(save_dir) / 'random_forest.pkl'
        with open(model_path, 'rb') as f:
            self.model = pickle.load(f)
        log.info(f"Loaded model from {model_path}")
