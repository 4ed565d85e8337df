import json
from unittest.mock import MagicMock

import numpy as np
import pytest
from rasterio.transform import from_origin

import main_workflow
from config.land_cover_config import GEE_CONFIG
from scripts.gee import kolkata_gee_processor, training_polygons
from scripts.local.area_stats import aggregate_areas
from scripts.local.report import build_accuracy_report


class FakeProcessor:
    instances = []

    def __init__(self, config=None, initialize=True):
        self.config = {**GEE_CONFIG, **(config or {})}
        self.build_map = MagicMock()
        self.export_classified_map = MagicMock()
        FakeProcessor.instances.append(self)

    def run(self, training_fc):
        return {
            'composite': 'composite',
            'classified': 'classified',
            'accuracy': build_accuracy_report([[4, 0, 0, 0], [0, 3, 1, 0], [0, 0, 5, 0], [0, 0, 0, 2]], 14 / 15, 0.9),
            'areas': aggregate_areas([(0, 120e6), (1, 300e6), (2, 350e6), (3, 30e6)]),
        }


@pytest.fixture
def fake_gee(monkeypatch):
    FakeProcessor.instances = []
    monkeypatch.setattr(kolkata_gee_processor, 'KolkataEEProcessor', FakeProcessor)
    monkeypatch.setattr(training_polygons, 'to_feature_collection', MagicMock(return_value='fc'))
    return FakeProcessor


def test_summary(capsys):
    assert main_workflow.main(['--summary']) == 0
    out = capsys.readouterr().out
    assert "PROJECT SUMMARY" in out
    assert "builtup" in out


def test_no_inputs_prints_summary(capsys):
    assert main_workflow.main([]) == 0
    assert "PROJECT SUMMARY" in capsys.readouterr().out


def test_stats_raster(tmp_path, write_label_raster):
    labels = np.zeros((10, 10), dtype=np.uint8)
    labels[:4] = 2
    raster = write_label_raster(labels)
    results = tmp_path / "results"

    assert main_workflow.main(['--stats-raster', str(raster), '--results-dir', str(results)]) == 0

    csv_files = list(results.glob("class_areas_*.csv"))
    assert len(csv_files) == 1
    assert "builtup" in csv_files[0].read_text()
    assert not list(results.glob("confusion_matrix_*.csv"))


def test_missing_stats_raster_fails(tmp_path, capsys):
    code = main_workflow.main(['--stats-raster', str(tmp_path / "missing.tif"), '--results-dir', str(tmp_path)])
    assert code == 1
    assert "not found" in capsys.readouterr().out


def test_invalid_parameters_fail_the_run(tmp_path, training_gdf, capsys):
    path = tmp_path / "training.geojson"
    training_gdf.to_file(path, driver="GeoJSON")
    code = main_workflow.main(['--training', str(path), '--start', '2024-05-01', '--end', '2024-01-01',
                               '--results-dir', str(tmp_path)])
    assert code == 1
    assert "Workflow failed" in capsys.readouterr().out


def test_gee_workflow(tmp_path, training_gdf, fake_gee, capsys):
    path = tmp_path / "training.geojson"
    training_gdf.to_file(path, driver="GeoJSON")
    results = tmp_path / "results"

    code = main_workflow.main([
        '--training', str(path), '--results-dir', str(results),
        '--cloud', '20', '--export', '--map-html', str(tmp_path / "map.html"),
    ])

    assert code == 0
    out = capsys.readouterr().out
    assert "Overall Accuracy: 0.9333" in out
    assert "Workflow complete" in out

    processor = fake_gee.instances[0]
    assert processor.config['cloud_filter'] == 20.0
    processor.export_classified_map.assert_called_once_with('classified')
    processor.build_map.assert_called_once()

    metadata = json.loads(next(results.glob("run_metadata_*.json")).read_text())
    assert metadata['run']['polygon_counts'] == {'0': 2, '1': 2, '2': 2, '3': 2}
    assert metadata['areas_sq_km'] == {'0': 120.0, '1': 300.0, '2': 350.0, '3': 30.0}
    assert list(results.glob("confusion_matrix_*.png"))


def test_stats_raster_excludes_nodata_pixels(tmp_path, write_label_raster, capsys):
    labels = np.full((10, 10), 2, dtype=np.uint8)
    labels[:5] = 255
    raster = write_label_raster(labels)
    results = tmp_path / "results"

    assert main_workflow.main(['--stats-raster', str(raster), '--results-dir', str(results)]) == 0

    metadata = json.loads(next(results.glob("run_metadata_*.json")).read_text())
    assert metadata['areas_sq_km'] == {'2': 0.005}
    assert "water" not in capsys.readouterr().out.split("AREA STATISTICS")[1]


def test_stats_raster_custom_nodata(tmp_path, write_label_raster):
    labels = np.full((10, 10), 1, dtype=np.uint8)
    labels[:3] = 0
    raster = write_label_raster(labels)
    results = tmp_path / "results"

    code = main_workflow.main(['--stats-raster', str(raster), '--results-dir', str(results), '--nodata', '0'])

    assert code == 0
    metadata = json.loads(next(results.glob("run_metadata_*.json")).read_text())
    assert metadata['areas_sq_km'] == {'1': 0.007}


def test_stats_raster_bound_uses_raster_extent(tmp_path, write_label_raster, capsys):
    labels = np.full((10, 10), 1, dtype=np.uint8)
    raster = write_label_raster(labels, crs="EPSG:4326", transform=from_origin(10.0, 1.0, 0.1, 0.1))

    assert main_workflow.main(['--stats-raster', str(raster), '--results-dir', str(tmp_path)]) == 0
    assert "exceeds AOI area" not in capsys.readouterr().out
