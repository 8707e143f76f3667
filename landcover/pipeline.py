"""End-to-end supervised land-cover classification pipeline."""

import time
from dataclasses import dataclass, field
from functools import partial
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence

import pandas as pd

from landcover.class_models import BaseClassifier, RandomForestClassifierModel
from landcover.composite import filter_scenes, median_composite
from landcover.cste import (
    ClassifierConfig,
    GeneralConfig,
    LandsatConfig,
    SamplingConfig,
    SplitConfig,
)
from landcover.dataset_utils import describe_split, split_train_test
from landcover.evaluations_metrics import (
    ConfusionMatrix,
    build_confusion_matrix,
    ordered_labels,
    print_evaluation_summary,
    save_evaluation_report,
)
from landcover.geometry import LabeledGeometry
from landcover.io_utils import clear_folder_if_exists, write_raster
from landcover.logger import get_logger
from landcover.radiometric import scale_collection
from landcover.raster import Raster
from landcover.sampling import SampleResult, sample_regions

log = get_logger("pipeline")


@dataclass(frozen=True)
class PipelineConfig:
    """Explicit configuration of every pipeline stage."""
    bands: Sequence[str] = tuple(LandsatConfig.CLASSIFICATION_BANDS)
    label_field: str = SamplingConfig.LABEL_FIELD
    scale_factors: Dict[str, tuple] = field(default_factory=lambda: dict(LandsatConfig.SCALE_FACTORS))
    # No-data marker given to raw scenes that carry none (None keeps them as-is)
    raw_nodata: Optional[float] = LandsatConfig.NODATA
    # None disables cloud cover filtering
    max_cloud_cover: Optional[float] = None
    cloud_cover_property: str = LandsatConfig.CLOUD_COVER_PROPERTY
    reducer: str = SamplingConfig.REDUCER
    train_fraction: float = SplitConfig.TRAIN_FRACTION
    random_column: str = SplitConfig.RANDOM_COLUMN
    tree_count: int = ClassifierConfig.TREE_COUNT
    seed: Optional[int] = GeneralConfig.RANDOM_SEED
    num_workers: int = 1


@dataclass
class PipelineResult:
    """Every intermediate product of a pipeline run."""
    composite: Raster
    samples: SampleResult
    train: pd.DataFrame
    test: pd.DataFrame
    model: BaseClassifier
    training_metrics: Dict[str, Any]
    classified: Raster
    confusion_matrix: ConfusionMatrix
    report: Dict[str, Any]
    timings: Dict[str, float] = field(default_factory=dict)


class ClassificationPipeline:
    """
    Supervised classification pipeline.

    raw scenes -> scale factors -> median composite -> sample regions ->
    train/test split -> train classifier -> classify raster + assess accuracy.
    """

    def __init__(
        self,
        config: PipelineConfig = PipelineConfig(),
        model_factory: Optional[Callable[[], BaseClassifier]] = None,
    ):
        """
        Initialize pipeline.

        Args:
            config: Stage configuration
            model_factory: Builds the untrained classifier of each run (defaults
                           to a Random Forest built from config)
        """
        self.config = config
        self.model_factory = model_factory or partial(
            RandomForestClassifierModel,
            tree_count=config.tree_count,
            random_state=config.seed,
        )
        log.info(f"Initialized pipeline ({len(config.bands)} bands, {config.tree_count} trees)")

    def prepare_composite(self, scenes: Sequence[Raster]) -> Raster:
        """Filter, scale and reduce a raw scene collection to a single raster."""
        cfg = self.config
        if cfg.max_cloud_cover is not None:
            scenes = filter_scenes(scenes, cfg.max_cloud_cover, cfg.cloud_cover_property)
        if cfg.raw_nodata is not None:
            scenes = [
                s if s.nodata is not None else s.with_bands({}, nodata=cfg.raw_nodata)
                for s in scenes
            ]
        scaled = scale_collection(scenes, cfg.scale_factors, num_workers=cfg.num_workers)
        return median_composite(scaled)

    def run(
        self,
        scenes: Sequence[Raster],
        geometries: Sequence[LabeledGeometry],
        output_dir: Optional[str] = None,
    ) -> PipelineResult:
        """
        Run the complete pipeline.

        Args:
            scenes: Raw scenes (digital numbers), same grid, caller-filtered
            geometries: Labeled training geometries
            output_dir: If given, model, report and classified raster are saved there

        Returns:
            PipelineResult with every intermediate product
        """
        cfg = self.config
        timings: Dict[str, float] = {}

        log.info("=" * 50)
        log.info(f"LAND-COVER CLASSIFICATION ({len(scenes)} scenes, {len(geometries)} geometries)")
        log.info("=" * 50)

        #! 1. Radiometric correction + composite
        start = time.time()
        composite = self.prepare_composite(scenes)
        timings["composite"] = time.time() - start

        #! 2. Training samples
        start = time.time()
        samples = sample_regions(
            composite, cfg.bands, geometries,
            label_field=cfg.label_field, reducer=cfg.reducer,
        )
        timings["sampling"] = time.time() - start

        #! 3. Train / test split
        train, test = split_train_test(
            samples.table, cfg.train_fraction, seed=cfg.seed, column=cfg.random_column,
        )
        log.info(f"Split per class:\n{describe_split(train, test, cfg.label_field)}")

        #! 4. Training (fails on an empty train set)
        start = time.time()
        #! Fresh untrained model for every run
        model = self.model_factory()
        training_metrics = model.train(train, cfg.label_field, cfg.bands)
        timings["training"] = time.time() - start

        #! 5. Classified map
        start = time.time()
        classified = model.predict(composite.select(cfg.bands))
        timings["classification"] = time.time() - start

        #! 6. Accuracy assessment on the held-out rows
        predicted = model.predict(test)
        actual = test[cfg.label_field].tolist()
        #! Every trained class gets a row and a column, even if absent from test
        labels = ordered_labels(model.classes, actual, predicted)
        cm = build_confusion_matrix(predicted, actual, labels=labels)
        report = cm.to_report()
        print_evaluation_summary(cm)

        result = PipelineResult(
            composite=composite,
            samples=samples,
            train=train,
            test=test,
            model=model,
            training_metrics=training_metrics,
            classified=classified,
            confusion_matrix=cm,
            report=report,
            timings=timings,
        )

        if output_dir is not None:
            self.save_outputs(result, output_dir)

        return result

    def save_outputs(self, result: PipelineResult, output_dir: str) -> List[Path]:
        """Save model, accuracy report and classified raster into `output_dir`."""
        out = Path(output_dir)
        clear_folder_if_exists(str(out))
        out.mkdir(parents=True, exist_ok=True)

        log.info(f"Saving outputs to {out}...")
        result.model.save(str(out / "model"))
        report_path = save_evaluation_report(result.report, str(out), result.model.model_name)
        raster_path = out / "classified.tif"
        write_raster(result.classified, str(raster_path))
        return [out / "model", report_path, raster_path]


def run_classification(
    scenes: Sequence[Raster],
    geometries: Sequence[LabeledGeometry],
    config: PipelineConfig = PipelineConfig(),
    output_dir: Optional[str] = None,
) -> PipelineResult:
    """Run the pipeline with a default Random Forest built from `config`."""
    return ClassificationPipeline(config).run(scenes, geometries, output_dir=output_dir)
