"""Abstract base class for all land-cover classifiers."""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Sequence, Union
import json
from pathlib import Path

import numpy as np
import pandas as pd

from landcover.errors import InvalidInput
from landcover.logger import get_logger
from landcover.raster import Raster

log = get_logger("model_base")


class BaseClassifier(ABC):
    """Abstract base class for classifiers trained on labeled feature tables."""

    def __init__(self, model_name: str):
        """
        Initialize base model.

        Args:
            model_name: Name identifier for the model
        """
        self.model_name = model_name
        self.model = None
        self.label_field = None
        self.input_bands: List[str] = []
        self.config = {}

    @property
    def is_trained(self) -> bool:
        return self.model is not None

    @property
    def classes(self) -> tuple:
        """Class labels seen during training."""
        return tuple(self.config.get('classes', ()))

    @abstractmethod
    def train(
        self,
        rows: pd.DataFrame,
        label_field: str,
        input_bands: Sequence[str],
    ) -> Dict[str, Any]:
        """
        Train the model.

        Args:
            rows: Training feature table
            label_field: Column holding the class label
            input_bands: Band columns used as features, in order

        Returns:
            Dictionary with training metrics
        """
        pass

    @abstractmethod
    def predict(self, data: Union[pd.DataFrame, Raster]) -> Union[np.ndarray, Raster]:
        """
        Make predictions.

        Args:
            data: Feature table or raster holding the input bands

        Returns:
            One label per row for a table, a classified raster for a raster
        """
        pass

    @abstractmethod
    def save(self, save_dir: str) -> None:
        """
        Save model and configuration.

        Args:
            save_dir: Directory to save model artifacts
        """
        pass

    @abstractmethod
    def load(self, save_dir: str) -> None:
        """
        Load model and configuration.

        Args:
            save_dir: Directory containing model artifacts
        """
        pass

    def _check_trained(self) -> None:
        if not self.is_trained:
            raise InvalidInput(f"{self.model_name} must be trained before predicting")

    def _validate_training_rows(
        self,
        rows: pd.DataFrame,
        label_field: str,
        input_bands: Sequence[str],
    ) -> None:
        """Raise InvalidInput if `rows` cannot be used for training."""
        if rows is None or len(rows) == 0:
            raise InvalidInput("Cannot train on an empty training set")
        if not input_bands:
            raise InvalidInput("At least one input band is required")
        if label_field not in rows.columns:
            raise InvalidInput(f"Label field '{label_field}' not found in training rows")
        if rows[label_field].isna().any():
            raise InvalidInput(f"Some training rows have no value for '{label_field}'")
        missing = [b for b in input_bands if b not in rows.columns]
        if missing:
            raise InvalidInput(f"Input bands {missing} not found in training rows")

    def _save_config(self, save_dir: str) -> None:
        """
        Save model configuration to JSON.

        Args:
            save_dir: Directory to save configuration
        """
        save_path = Path(save_dir)
        save_path.mkdir(parents=True, exist_ok=True)

        config_path = save_path / 'config.json'
        with open(config_path, 'w') as f:
            json.dump(self.config, f, indent=2)

        log.info(f"Saved config to {config_path}")

    def _load_config(self, save_dir: str) -> Dict[str, Any]:
        """
        Load model configuration from JSON.

        Args:
            save_dir: Directory containing configuration

        Returns:
            Configuration dictionary
        """
        config_path = Path(save_dir) / 'config.json'
        with open(config_path, 'r') as f:
            config = json.load(f)

        log.info(f"Loaded config from {config_path}")
        return config
