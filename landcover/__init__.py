"""
landcover: Supervised Land-Cover Classification from Multispectral Imagery
=========================================================================

Corrects raw sensor data to physical units, extracts labeled training
samples from known land-cover regions, trains an ensemble decision-tree
classifier, classifies a whole scene and assesses accuracy on held-out
samples.

Modules:
---------
- raster.py               : In-memory multi-band raster (GridSpec, Raster).
- radiometric.py          : Per-band scale/offset correction (Landsat 9 C2 L2 defaults).
- composite.py            : Scene filtering, clipping and per-pixel median composite.
- sampling.py             : Labeled geometry sampling into a feature table.
- dataset_utils.py        : Reproducible random train/test split.
- class_models/           : Classifier interface and Random Forest implementation.
- evaluations_metrics.py  : Confusion matrix, overall/producer's/consumer's accuracy, kappa.
- pipeline.py             : End-to-end orchestration.
- io_utils.py             : GeoTIFF and GeoJSON input/output.
"""

from .errors import InvalidInput
from .raster import GridSpec, Raster
from .geometry import LabeledGeometry
from .radiometric import BandScale, apply_scale_factors, scale_collection
from .composite import clip, filter_scenes, median_composite
from .sampling import RejectedGeometry, SampleResult, sample_regions
from .dataset_utils import add_random_column, describe_split, split_train_test
from .class_models import BaseClassifier, RandomForestClassifierModel
from .evaluations_metrics import ConfusionMatrix, build_confusion_matrix
from .pipeline import ClassificationPipeline, PipelineConfig, PipelineResult, run_classification

__version__ = "0.1.0"

__all__ = [
    'InvalidInput',
    'GridSpec',
    'Raster',
    'LabeledGeometry',
    'BandScale',
    'apply_scale_factors',
    'scale_collection',
    'clip',
    'filter_scenes',
    'median_composite',
    'RejectedGeometry',
    'SampleResult',
    'sample_regions',
    'add_random_column',
    'describe_split',
    'split_train_test',
    'BaseClassifier',
    'RandomForestClassifierModel',
    'ConfusionMatrix',
    'build_confusion_matrix',
    'ClassificationPipeline',
    'PipelineConfig',
    'PipelineResult',
    'run_classification',
]
