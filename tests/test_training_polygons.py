import pytest
from shapely.geometry import Polygon

from scripts.gee.training_polygons import (
    load_training_polygons, to_feature_collection, validate_training_polygons,
)

LAYERS = ['water', 'vegetation', 'builtup', 'barren']


def test_validate_counts_per_class(training_gdf):
    assert validate_training_polygons(training_gdf) == {0: 2, 1: 2, 2: 2, 3: 2}


def test_missing_class_is_rejected(training_gdf):
    with pytest.raises(ValueError, match="barren"):
        validate_training_polygons(training_gdf[training_gdf['class'] != 3])


def test_unknown_class_is_rejected(training_gdf):
    training_gdf.loc[0, 'class'] = 7
    with pytest.raises(ValueError, match="Unknown training classes"):
        validate_training_polygons(training_gdf)


def test_empty_geometry_is_rejected(training_gdf):
    training_gdf.loc[0, 'geometry'] = Polygon()
    with pytest.raises(ValueError, match="empty geometry"):
        validate_training_polygons(training_gdf)


def test_load_single_file(tmp_path, training_gdf):
    path = tmp_path / "training.geojson"
    training_gdf.to_file(path, driver="GeoJSON")

    gdf = load_training_polygons(path)

    assert list(gdf.columns) == ['class', 'geometry']
    assert sorted(gdf['class'].unique()) == [0, 1, 2, 3]
    assert gdf.crs.to_epsg() == 4326


def test_load_single_file_requires_class_column(tmp_path, training_gdf):
    path = tmp_path / "training.geojson"
    training_gdf.rename(columns={'class': 'label'}).to_file(path, driver="GeoJSON")
    with pytest.raises(ValueError, match="no 'class' column"):
        load_training_polygons(path)


def test_load_layer_directory(tmp_path, training_gdf):
    for class_id, layer in enumerate(LAYERS):
        subset = training_gdf[training_gdf['class'] == class_id].drop(columns='class')
        subset.to_file(tmp_path / f"{layer}.geojson", driver="GeoJSON")
    training_gdf.iloc[:1].to_file(tmp_path / "roads.geojson", driver="GeoJSON")
    (tmp_path / "notes.txt").write_text("drawn in QGIS")

    gdf = load_training_polygons(tmp_path)

    assert len(gdf) == 8
    assert validate_training_polygons(gdf) == {0: 2, 1: 2, 2: 2, 3: 2}


def test_load_layer_directory_reprojects(tmp_path, training_gdf):
    training_gdf.to_crs(epsg=32645).to_file(tmp_path / "water.geojson", driver="GeoJSON")
    gdf = load_training_polygons(tmp_path)
    assert gdf.crs.to_epsg() == 4326
    assert set(gdf['class']) == {0}


def test_to_feature_collection(fake_ee, training_gdf):
    fc = to_feature_collection(training_gdf)

    assert fc is fake_ee.FeatureCollection.return_value
    assert fake_ee.Geometry.call_count == 8
    properties = [c.args[1] for c in fake_ee.Feature.call_args_list]
    assert properties == [{'class': c} for c in [0, 0, 1, 1, 2, 2, 3, 3]]
    first_geometry = fake_ee.Geometry.call_args_list[0].args[0]
    assert first_geometry['type'] == 'Polygon'
