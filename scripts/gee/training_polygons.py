"""
Training polygon handling for the Kolkata land cover classification.

Training polygons are drawn by the user (for example in QGIS or the Earth
Engine code editor) and saved either as a single vector file with a 'class'
column, or as a directory with one file per class layer:
water, vegetation, builtup, barren.
"""

from pathlib import Path

import ee
import geopandas as gpd
import pandas as pd

from config.land_cover_config import CLASS_IDS, LAND_COVER_CLASSES, LAYER_TO_CLASS, ML_CONFIG

VECTOR_SUFFIXES = ('.geojson', '.json', '.shp', '.gpkg')
CLASS_PROPERTY = ML_CONFIG['class_property']


def _read_layer_directory(directory):
    """Read one vector file per class layer and tag it with the class id."""
    frames = []
    for path in sorted(directory.iterdir()):
        if path.suffix.lower() not in VECTOR_SUFFIXES:
            continue
        layer = path.stem.lower()
        if layer not in LAYER_TO_CLASS:
            print(f"⚠️  Skipping {path.name}: not a class layer ({', '.join(LAYER_TO_CLASS)})")
            continue
        gdf = gpd.read_file(path)
        gdf[CLASS_PROPERTY] = LAYER_TO_CLASS[layer]
        frames.append(gdf.to_crs(epsg=4326) if gdf.crs is not None else gdf.set_crs(epsg=4326))

    if not frames:
        return gpd.GeoDataFrame({CLASS_PROPERTY: []}, geometry=[], crs='EPSG:4326')
    return gpd.GeoDataFrame(pd.concat(frames, ignore_index=True), crs='EPSG:4326')


def load_training_polygons(training_path):
    """
    Load training polygons from a vector file or a directory of class layers.

    Returns:
        GeoDataFrame in EPSG:4326 with an integer 'class' column
    """
    training_path = Path(training_path)
    print(f"📊 Loading training polygons from {training_path}")

    if training_path.is_dir():
        gdf = _read_layer_directory(training_path)
    else:
        gdf = gpd.read_file(training_path)
        if CLASS_PROPERTY not in gdf.columns:
            raise ValueError(f"Training file {training_path} has no '{CLASS_PROPERTY}' column")
        gdf = gdf.to_crs(epsg=4326) if gdf.crs is not None else gdf.set_crs(epsg=4326)

    gdf = gdf[[CLASS_PROPERTY, 'geometry']].copy()
    gdf[CLASS_PROPERTY] = gdf[CLASS_PROPERTY].astype(int)
    print(f"✅ Loaded {len(gdf)} training polygons")
    return gdf


def validate_training_polygons(gdf):
    """
    Check that every class has at least one usable polygon.

    Raises:
        ValueError: on unknown class values, empty geometries, or a missing class
    """
    unknown = sorted(set(gdf[CLASS_PROPERTY].unique()) - set(CLASS_IDS))
    if unknown:
        raise ValueError(f"Unknown training classes: {unknown}")

    empty = gdf.geometry.isna() | gdf.geometry.is_empty
    if empty.any():
        raise ValueError(f"{int(empty.sum())} training polygons have empty geometry")

    counts = gdf[CLASS_PROPERTY].value_counts().to_dict()
    missing = [LAND_COVER_CLASSES[class_id]['name'] for class_id in CLASS_IDS if counts.get(class_id, 0) == 0]
    if missing:
        raise ValueError(f"No training polygons for class(es): {', '.join(missing)}")

    for class_id in CLASS_IDS:
        print(f"   {class_id}. {LAND_COVER_CLASSES[class_id]['name']:12} {counts[class_id]} polygons")
    return counts


def to_feature_collection(gdf):
    """Convert validated training polygons to an Earth Engine FeatureCollection."""
    features = []
    for class_id, shape in zip(gdf[CLASS_PROPERTY], gdf.geometry):
        geometry = ee.Geometry(shape.__geo_interface__)
        features.append(ee.Feature(geometry, {CLASS_PROPERTY: int(class_id)}))
    return ee.FeatureCollection(features)
