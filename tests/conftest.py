import os
from unittest.mock import MagicMock

import geopandas as gpd
import numpy as np
import pytest
import rasterio
from rasterio.transform import from_origin
from shapely.geometry import box


def pytest_configure():
    os.environ.setdefault("MPLBACKEND", "Agg")


@pytest.fixture
def fake_ee(monkeypatch):
    """Replace the ee module seen by the GEE scripts; nothing reaches Earth Engine."""
    from scripts.gee import kolkata_gee_processor, training_polygons

    ee = MagicMock(name="ee")
    monkeypatch.setattr(kolkata_gee_processor, "ee", ee)
    monkeypatch.setattr(training_polygons, "ee", ee)
    return ee


@pytest.fixture
def training_gdf():
    """Two polygons per class around central Kolkata."""
    rows = []
    for class_id in range(4):
        for k in range(2):
            x0 = 88.30 + class_id * 0.02 + k * 0.005
            rows.append({"class": class_id, "geometry": box(x0, 22.55, x0 + 0.004, 22.554)})
    return gpd.GeoDataFrame(rows, crs="EPSG:4326")


@pytest.fixture
def write_label_raster(tmp_path):
    """Write a single-band uint8 GeoTIFF and return its path."""
    def _write(labels, crs="EPSG:32645", transform=None, nodata=None, name="classified.tif"):
        labels = np.asarray(labels, dtype=np.uint8)
        path = tmp_path / name
        with rasterio.open(
            path, "w", driver="GTiff",
            height=labels.shape[0], width=labels.shape[1], count=1, dtype="uint8",
            crs=crs, transform=transform or from_origin(600000.0, 2500000.0, 10.0, 10.0),
            nodata=nodata,
        ) as dst:
            dst.write(labels, 1)
        return path
    return _write
