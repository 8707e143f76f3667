# tests/test_pipeline.py
import json

import numpy as np
import pytest

from landcover.cste import LandsatConfig
from landcover.errors import InvalidInput
from landcover.geometry import LabeledGeometry
from landcover.pipeline import ClassificationPipeline, PipelineConfig, run_classification
from landcover.raster import Raster


@pytest.fixture
def scenes(make_scene):
    return [make_scene(seed=s) for s in range(3)]


def test_end_to_end_three_classes(scenes, training_points):
    result = run_classification(scenes, training_points, PipelineConfig())

    # Composite in physical units, on the input grid
    assert result.composite.grid == scenes[0].grid
    assert result.composite.band("SR_B1")[:, :10].mean() == pytest.approx(0.10, abs=0.002)

    # Sample table
    table = result.samples.table
    assert len(table) == 30
    assert list(table.columns) == list(LandsatConfig.CLASSIFICATION_BANDS) + ["Class"]
    assert result.samples.rejected == ()

    # Split
    assert len(result.train) + len(result.test) == 30
    assert set(result.train.index).isdisjoint(result.test.index)
    assert 15 <= len(result.train) <= 29

    # Classified map
    classified = result.classified.band("classification")
    assert result.classified.grid == result.composite.grid
    assert set(np.unique(classified)) <= {1.0, 2.0, 3.0}
    assert (classified[:, :10] == 1.0).mean() > 0.95
    assert (classified[:, 10:20] == 2.0).mean() > 0.95
    assert (classified[:, 20:] == 3.0).mean() > 0.95

    # Accuracy
    cm = result.confusion_matrix
    assert cm.labels == (1, 2, 3)
    assert cm.matrix.shape == (3, 3)
    assert cm.total == len(result.test)
    assert cm.overall_accuracy() >= 0.9
    assert set(result.report) >= {
        "confusionMatrix", "overallAccuracy", "producersAccuracy", "consumersAccuracy",
    }
    assert set(result.training_metrics["feature_importance"]) == set(LandsatConfig.CLASSIFICATION_BANDS)


def test_same_seed_same_result(scenes, training_points):
    a = run_classification(scenes, training_points, PipelineConfig(seed=11))
    b = run_classification(scenes, training_points, PipelineConfig(seed=11))
    assert list(a.train.index) == list(b.train.index)
    assert a.classified.equals(b.classified)
    assert np.array_equal(a.confusion_matrix.matrix, b.confusion_matrix.matrix)


def test_cloud_cover_filter(make_scene, training_points):
    cloudy = [make_scene(seed=0, cloud_cover=50.0), make_scene(seed=1, cloud_cover=3.0)]
    pipeline = ClassificationPipeline(PipelineConfig(max_cloud_cover=10.0))
    composite = pipeline.prepare_composite(cloudy)
    expected = pipeline.prepare_composite([cloudy[1]])
    assert composite.equals(expected)

    with pytest.raises(InvalidInput):
        pipeline.run([cloudy[0]], training_points)


def test_empty_training_set_fails(scenes, training_points):
    config = PipelineConfig(train_fraction=0.0)
    with pytest.raises(InvalidInput):
        run_classification(scenes, training_points, config)


def test_outputs_are_saved(tmp_path, scenes, training_points):
    out = tmp_path / "run"
    result = run_classification(scenes, training_points, output_dir=str(out))

    assert (out / "model" / "random_forest.pkl").exists()
    assert (out / "classified.tif").exists()
    with open(out / "RandomForest_evaluation.json") as f:
        report = json.load(f)
    assert report["overallAccuracy"] == pytest.approx(result.confusion_matrix.overall_accuracy())


def test_runs_do_not_share_a_model(scenes, training_points):
    pipeline = ClassificationPipeline(PipelineConfig())
    first = pipeline.run(scenes, training_points)

    shifted = [
        LabeledGeometry(g.geometry, {"Class": g.label("Class") + 10}, g.geometry_id)
        for g in training_points
    ]
    second = pipeline.run(scenes, shifted)

    assert first.model is not second.model
    assert first.model.classes == (1, 2, 3)
    assert second.model.classes == (11, 12, 13)
    assert set(np.unique(first.classified.band("classification"))) <= {1.0, 2.0, 3.0}


def test_raw_scenes_without_nodata_get_default_fill(scenes):
    bands = {name: scenes[0].band(name).copy() for name in scenes[0].band_names}
    bands["SR_B1"][0, 0] = 0.0
    bare = Raster(bands, scenes[0].grid)

    composite = ClassificationPipeline(PipelineConfig()).prepare_composite([bare])
    assert np.isnan(composite.band("SR_B1")[0, 0])
    assert not composite.valid_mask()[0, 0]

    kept = ClassificationPipeline(PipelineConfig(raw_nodata=None)).prepare_composite([bare])
    assert kept.band("SR_B1")[0, 0] == pytest.approx(-0.2)
