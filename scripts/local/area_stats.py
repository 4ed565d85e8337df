"""
Per-class area aggregation for classified land cover pixels.

Every function here returns a read-only mapping of class id to area in
square kilometers. Classes without contributing pixels are absent from the
mapping rather than present with 0.0. Partial results computed over
independent pixel shards combine with merge_area_records.
"""

import math
import numbers
from types import MappingProxyType

import numpy as np
import rasterio
from rasterio.warp import transform_bounds

from config.land_cover_config import CLASS_IDS

SQ_M_PER_SQ_KM = 1_000_000.0
EARTH_RADIUS_M = 6371008.8


def _check_label(label, index):
    if isinstance(label, (bool, np.bool_)):
        raise ValueError(f"Pixel {index}: class label must be an integer, got {label!r}")
    if isinstance(label, numbers.Integral):
        value = int(label)
    elif isinstance(label, numbers.Real) and float(label).is_integer():
        value = int(label)
    else:
        raise ValueError(f"Pixel {index}: class label must be an integer, got {label!r}")
    if value not in CLASS_IDS:
        raise ValueError(f"Pixel {index}: unknown class label {value} (expected one of {list(CLASS_IDS)})")
    return value


def _check_area(area, index):
    if isinstance(area, (bool, np.bool_)) or not isinstance(area, numbers.Real):
        raise ValueError(f"Pixel {index}: pixel area must be a number, got {area!r}")
    value = float(area)
    if not math.isfinite(value) or value < 0:
        raise ValueError(f"Pixel {index}: invalid pixel area {area!r} m²")
    return value


def aggregate_areas(pixels):
    """
    Sum pixel areas per class label and convert to square kilometers.

    Args:
        pixels: Iterable of (class_label, pixel_area_m2) pairs. Only pixels
            that passed the cloud mask may appear here.

    Returns:
        Read-only mapping class_label -> area_sq_km

    Raises:
        ValueError: on a label outside the class enumeration or a negative
            or non-finite area. The whole batch is rejected.
    """
    totals_m2 = {}
    for index, (label, area) in enumerate(pixels):
        label = _check_label(label, index)
        area = _check_area(area, index)
        totals_m2[label] = totals_m2.get(label, 0.0) + area

    return MappingProxyType({
        label: totals_m2[label] / SQ_M_PER_SQ_KM for label in sorted(totals_m2)
    })


def merge_area_records(*records):
    """Combine partial per-shard area records by elementwise addition."""
    merged = {}
    for record in records:
        for label, area_sq_km in record.items():
            merged[label] = merged.get(label, 0.0) + area_sq_km
    return MappingProxyType({label: merged[label] for label in sorted(merged)})


def sorted_area_items(record):
    """Area record items in ascending class order for display."""
    return sorted(record.items())


def aggregate_label_raster(labels, pixel_area, nodata=None):
    """
    Aggregate a classified label array.

    Args:
        labels: 2D label array; masked elements of a numpy masked array are excluded
        pixel_area: Scalar area in m² or an array broadcastable to labels
        nodata: Optional label value marking excluded pixels

    Returns:
        Read-only mapping class_label -> area_sq_km
    """
    labels = np.ma.asanyarray(labels)
    data = np.ma.getdata(labels)
    valid = ~np.ma.getmaskarray(labels)
    if nodata is not None:
        valid &= data != nodata

    areas = np.broadcast_to(np.asarray(pixel_area, dtype=np.float64), data.shape)
    label_values = data[valid]
    area_values = areas[valid]

    present = np.unique(label_values)
    unknown = np.setdiff1d(present, CLASS_IDS)
    if unknown.size:
        raise ValueError(f"Unknown class labels in raster: {unknown.tolist()}")
    if area_values.size and (not np.all(np.isfinite(area_values)) or np.any(area_values < 0)):
        raise ValueError("Pixel areas must be finite and non-negative")

    totals = {}
    for label in present:
        totals[int(label)] = float(area_values[label_values == label].sum()) / SQ_M_PER_SQ_KM
    return MappingProxyType(totals)


def _window_pixel_area(src, window):
    """Pixel area in m² for a raster window: scalar when projected, per row when geographic."""
    if src.crs is not None and src.crs.is_geographic:
        transform = src.window_transform(window)
        height, width = int(window.height), int(window.width)
        top = transform.f + np.arange(height) * transform.e
        bottom = top + transform.e
        row_area = (EARTH_RADIUS_M ** 2 * math.radians(abs(transform.a))
                    * np.abs(np.sin(np.radians(top)) - np.sin(np.radians(bottom))))
        return np.repeat(row_area[:, np.newaxis], width, axis=1)
    res_x, res_y = src.res
    return abs(res_x * res_y)


def aggregate_areas_from_geotiff(raster_path, nodata=None):
    """
    Aggregate class areas from an exported classification GeoTIFF.

    The raster is read block by block; each block is aggregated as an
    independent shard and the partial records are merged.
    """
    print(f"📊 Aggregating class areas from {raster_path}")

    records = []
    with rasterio.open(raster_path) as src:
        for _, window in src.block_windows(1):
            labels = src.read(1, window=window, masked=True)
            pixel_area = _window_pixel_area(src, window)
            records.append(aggregate_label_raster(labels, pixel_area, nodata=nodata))

    return merge_area_records(*records)


def raster_bounds_lonlat(raster_path):
    """[west, south, east, north] of a raster in decimal degrees."""
    with rasterio.open(raster_path) as src:
        if src.crs is None or src.crs.is_geographic:
            return list(src.bounds)
        return list(transform_bounds(src.crs, 'EPSG:4326', *src.bounds))


def area_pairs_from_groups(groups, group_name='class', value_name='sum'):
    """Turn Earth Engine grouped-sum reducer output into (label, area_m2) pairs."""
    for group in groups:
        yield group[group_name], group[value_name]


def nominal_aoi_area_sq_km(bounds):
    """Spherical area of a [west, south, east, north] rectangle in km²."""
    west, south, east, north = bounds
    area_m2 = (EARTH_RADIUS_M ** 2 * math.radians(east - west)
               * (math.sin(math.radians(north)) - math.sin(math.radians(south))))
    return abs(area_m2) / SQ_M_PER_SQ_KM
