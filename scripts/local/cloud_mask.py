"""
Sentinel-2 QA60 cloud masking for already-materialized pixel values.
Mirrors the Earth Engine masking applied in the GEE processor so that the
same predicate can be checked locally on downloaded QA and reflectance data.
"""

import numpy as np

from config.land_cover_config import QA_CONFIG

CLOUD_BIT_MASK = 1 << QA_CONFIG['cloud_bit']
CIRRUS_BIT_MASK = 1 << QA_CONFIG['cirrus_bit']
REFLECTANCE_SCALE = QA_CONFIG['reflectance_scale']

# Excluded pixel marker; zero is a valid reflectance
NO_DATA = None


def evaluate_mask(quality_bit_field):
    """Return True if neither the opaque cloud nor the cirrus bit is set."""
    cloud_bit = quality_bit_field & CLOUD_BIT_MASK
    cirrus_bit = quality_bit_field & CIRRUS_BIT_MASK
    return cloud_bit == 0 and cirrus_bit == 0


def apply_mask_and_normalize(reflectance, mask):
    """
    Normalize a single pixel's band values to reflectance fractions.

    Args:
        reflectance: Ordered mapping of band name to raw scaled integer value
        mask: Result of evaluate_mask for the same pixel

    Returns:
        New mapping with every band divided by the reflectance scale,
        or NO_DATA when the pixel is masked out
    """
    if not mask:
        return NO_DATA
    return {band: value / REFLECTANCE_SCALE for band, value in reflectance.items()}


def evaluate_mask_array(qa):
    """Vectorized evaluate_mask over a QA60 array."""
    qa = np.asarray(qa).astype(np.int64, copy=False)
    return ((qa & CLOUD_BIT_MASK) == 0) & ((qa & CIRRUS_BIT_MASK) == 0)


def apply_mask_and_normalize_array(bands, mask):
    """
    Vectorized apply_mask_and_normalize.

    Args:
        bands: (n_bands, ...) array of raw reflectance values
        mask: Boolean array matching the trailing dimensions of bands

    Returns:
        float64 array of normalized reflectance with excluded pixels set to NaN
    """
    bands = np.asarray(bands)
    mask = np.asarray(mask, dtype=bool)
    if bands.shape[1:] != mask.shape:
        raise ValueError(f"Mask shape {mask.shape} does not match band shape {bands.shape[1:]}")

    normalized = bands.astype(np.float64) / REFLECTANCE_SCALE
    normalized[:, ~mask] = np.nan
    return normalized
