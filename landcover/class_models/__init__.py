"""
Classifier implementations.

Every model derives from BaseClassifier and exposes train / predict / save / load.

# ! TO ADD A NEW MODEL
# 1. create a file in this module implementing a BaseClassifier subclass
# 2. import it here and add it to __all__
"""

from .base_model import BaseClassifier
from .random_forest_model import RandomForestClassifierModel


__all__ = [
    'BaseClassifier',
    'RandomForestClassifierModel',
]
