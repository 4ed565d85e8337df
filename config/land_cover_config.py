"""
Land Cover Classification Configuration for Kolkata
Defines the land cover classes, Earth Engine parameters and output settings
used by the classification workflow.
"""

# Land cover class definitions
LAND_COVER_CLASSES = {
    0: {
        'name': 'water',
        'description': 'Rivers, lakes, wetlands and ponds',
        'color': '#0000FF',  # Blue
        'layer': 'water'
    },
    1: {
        'name': 'vegetation',
        'description': 'Trees, crops, grassland and parks',
        'color': '#008000',  # Green
        'layer': 'vegetation'
    },
    2: {
        'name': 'builtup',
        'description': 'Buildings, roads and other impervious surfaces',
        'color': '#808080',  # Gray
        'layer': 'builtup'
    },
    3: {
        'name': 'barren',
        'description': 'Bare soil, sand and exposed land',
        'color': '#A52A2A',  # Brown
        'layer': 'barren'
    }
}

CLASS_IDS = tuple(sorted(LAND_COVER_CLASSES))
CLASS_PALETTE = [LAND_COVER_CLASSES[class_id]['color'] for class_id in CLASS_IDS]
LAYER_TO_CLASS = {info['layer']: class_id for class_id, info in LAND_COVER_CLASSES.items()}

# Google Earth Engine configuration
GEE_CONFIG = {
    'project_id': None,  # Set to your GEE project id or export EE_PROJECT
    'aoi_bounds': [88.20, 22.45, 88.50, 22.70],  # [west, south, east, north]
    'map_zoom': 11,
    'collection': 'COPERNICUS/S2_SR_HARMONIZED',
    'date_range': {
        'start': '2024-01-01',
        'end': '2024-03-31'
    },
    'cloud_filter': 10.0,  # Maximum CLOUDY_PIXEL_PERCENTAGE
    'scale': 10  # meters per pixel
}

# Sentinel-2 QA60 bit layout and reflectance scaling
QA_CONFIG = {
    'band': 'QA60',
    'cloud_bit': 10,
    'cirrus_bit': 11,
    'reflectance_scale': 10000.0
}

# Machine Learning configuration
ML_CONFIG = {
    'features': ['B2', 'B3', 'B4', 'B8', 'NDVI', 'NDWI'],
    'indices': {
        'NDVI': ('B8', 'B4'),
        'NDWI': ('B3', 'B8')
    },
    'class_property': 'class',
    'random_forest': {
        'numberOfTrees': 100
    },
    'train_split': 0.7,
    'seed': 0
}

# Visualization configuration
VIS_CONFIG = {
    'true_color': {
        'bands': ['B4', 'B3', 'B2'],
        'min': 0.0,
        'max': 0.3
    },
    'classification': {
        'min': min(CLASS_IDS),
        'max': max(CLASS_IDS),
        'palette': CLASS_PALETTE
    }
}

# Export configuration
EXPORT_CONFIG = {
    'description': 'Kolkata_LULC_Map_2024',
    'folder': 'GEE_Exports',
    'scale': GEE_CONFIG['scale'],
    'max_pixels': 1e13,
    'file_format': 'GeoTIFF',
    'nodata': 255  # Written for masked pixels; 0 is the water label
}

# Local output configuration
OUTPUT_CONFIG = {
    'results_dir': 'data/results',
    'area_decimals': 3,
    'plot_dpi': 300
}
