"""
Google Earth Engine script for Kolkata land cover classification
This script handles satellite data acquisition, cloud masking, feature
extraction, Random Forest training and classification, accuracy assessment
and per-class area calculation.
"""

import os
from datetime import date

import ee
import geemap

from config.land_cover_config import (
    CLASS_IDS, EXPORT_CONFIG, GEE_CONFIG, LAND_COVER_CLASSES, ML_CONFIG, QA_CONFIG, VIS_CONFIG
)
from scripts.local.area_stats import aggregate_areas, area_pairs_from_groups
from scripts.local.cloud_mask import CIRRUS_BIT_MASK, CLOUD_BIT_MASK, REFLECTANCE_SCALE
from scripts.local.report import build_accuracy_report


def validate_run_parameters(aoi_bounds, start_date, end_date, cloud_filter):
    """
    Validate the area of interest, date range and cloud threshold.

    Raises:
        ValueError: if any parameter is outside its valid range
    """
    if len(aoi_bounds) != 4:
        raise ValueError(f"AOI must be [west, south, east, north], got {aoi_bounds}")
    west, south, east, north = aoi_bounds
    if not (-180 <= west < east <= 180):
        raise ValueError(f"Invalid AOI longitudes: west={west}, east={east}")
    if not (-90 <= south < north <= 90):
        raise ValueError(f"Invalid AOI latitudes: south={south}, north={north}")
    if date.fromisoformat(end_date) < date.fromisoformat(start_date):
        raise ValueError(f"End date {end_date} is before start date {start_date}")
    if not (0 <= float(cloud_filter) <= 100):
        raise ValueError(f"Cloud filter must be a percentage, got {cloud_filter}")


class KolkataEEProcessor:
    def __init__(self, config=None, initialize=True):
        """Initialize the Earth Engine processor."""
        self.config = {**GEE_CONFIG, **(config or {})}
        self.config['date_range'] = {**GEE_CONFIG['date_range'], **self.config['date_range']}
        validate_run_parameters(
            self.config['aoi_bounds'],
            self.config['date_range']['start'],
            self.config['date_range']['end'],
            self.config['cloud_filter']
        )
        if initialize:
            self.initialize_ee()
        self.aoi = self.create_aoi()

    def initialize_ee(self):
        """Initialize Google Earth Engine."""
        project = self.config.get('project_id') or os.environ.get('EE_PROJECT')
        try:
            ee.Initialize(project=project)
            print("✅ Google Earth Engine initialized successfully")
        except Exception as e:
            print(f"❌ Error initializing Earth Engine: {e}")
            print("Please authenticate with: earthengine authenticate")
            raise

    def create_aoi(self):
        """Create the rectangular area of interest."""
        return ee.Geometry.Rectangle(list(self.config['aoi_bounds']))

    def mask_s2_clouds(self, image):
        """Mask opaque and cirrus clouds using the QA60 band and scale to reflectance."""
        qa = image.select(QA_CONFIG['band'])
        mask = qa.bitwiseAnd(CLOUD_BIT_MASK).eq(0).And(qa.bitwiseAnd(CIRRUS_BIT_MASK).eq(0))
        return image.updateMask(mask).divide(REFLECTANCE_SCALE)

    def load_sentinel2_composite(self, start_date=None, end_date=None):
        """Load, cloud mask and median-composite Sentinel-2 imagery over the AOI."""
        start_date = start_date or self.config['date_range']['start']
        end_date = end_date or self.config['date_range']['end']

        print(f"📡 Loading Sentinel-2 data from {start_date} to {end_date}")

        collection = (ee.ImageCollection(self.config['collection'])
                      .filterBounds(self.aoi)
                      .filterDate(start_date, end_date)
                      .filter(ee.Filter.lt('CLOUDY_PIXEL_PERCENTAGE', self.config['cloud_filter'])))

        image_count = collection.size().getInfo()
        if image_count == 0:
            raise RuntimeError(
                f"No Sentinel-2 images between {start_date} and {end_date} "
                f"with less than {self.config['cloud_filter']}% cloud cover"
            )
        print(f"🛰️  Found {image_count} images")

        return collection.map(self.mask_s2_clouds).median().clip(self.aoi)

    def add_spectral_indices(self, image):
        """Add NDVI and NDWI bands."""
        indices = [
            image.normalizedDifference([top, bottom]).rename(name)
            for name, (top, bottom) in ML_CONFIG['indices'].items()
        ]
        return image.addBands(indices)

    def sample_training_data(self, image, training_fc):
        """Sample feature bands at the training polygon locations."""
        print("🔍 Sampling training data")
        return image.select(ML_CONFIG['features']).sampleRegions(
            collection=training_fc,
            properties=[ML_CONFIG['class_property']],
            scale=self.config['scale']
        )

    def split_training_data(self, samples):
        """Split samples into training and testing sets with a random column."""
        with_random = samples.randomColumn('random', ML_CONFIG['seed'])
        split = ML_CONFIG['train_split']
        training_set = with_random.filter(ee.Filter.lt('random', split))
        testing_set = with_random.filter(ee.Filter.gte('random', split))
        return training_set, testing_set

    def train_classifier(self, training_set):
        """Train a Random Forest classifier."""
        trees = ML_CONFIG['random_forest']['numberOfTrees']
        print(f"🤖 Training Random Forest classifier ({trees} trees)")
        return ee.Classifier.smileRandomForest(**ML_CONFIG['random_forest']).train(
            features=training_set,
            classProperty=ML_CONFIG['class_property'],
            inputProperties=ML_CONFIG['features']
        )

    def classify(self, image, classifier):
        """Apply the trained classifier to the feature image."""
        return image.select(ML_CONFIG['features']).classify(classifier)

    def assess_accuracy(self, testing_set, classifier):
        """Build the accuracy report from the held-out samples."""
        print("🎯 Assessing accuracy")
        error_matrix = testing_set.classify(classifier).errorMatrix(
            ML_CONFIG['class_property'], 'classification'
        )
        return build_accuracy_report(
            error_matrix.getInfo(),
            error_matrix.accuracy().getInfo(),
            error_matrix.kappa().getInfo()
        )

    def compute_class_areas(self, classified):
        """Sum pixel areas per class over the AOI and aggregate them to km²."""
        print("📐 Computing class areas")
        area_image = ee.Image.pixelArea().addBands(classified)
        result = area_image.reduceRegion(
            reducer=ee.Reducer.sum().group(groupField=1, groupName='class'),
            geometry=self.aoi,
            scale=self.config['scale'],
            maxPixels=EXPORT_CONFIG['max_pixels']
        ).getInfo()
        groups = result.get('groups', [])
        return aggregate_areas(area_pairs_from_groups(groups))

    def build_map(self, composite, classified, html_path=None):
        """Build an interactive map with the true color and classified layers."""
        m = geemap.Map()
        m.centerObject(self.aoi, self.config['map_zoom'])
        m.addLayer(composite, VIS_CONFIG['true_color'], 'Sentinel-2 True Color')
        m.addLayer(classified, VIS_CONFIG['classification'], 'Kolkata LULC Map')
        m.add_legend(
            title='Land Cover',
            legend_dict={LAND_COVER_CLASSES[c]['name']: LAND_COVER_CLASSES[c]['color'] for c in CLASS_IDS}
        )
        if html_path:
            m.to_html(filename=str(html_path))
            print(f"🗺️  Map saved: {html_path}")
        return m

    def export_classified_map(self, classified, description=None):
        """Export the classified map to Google Drive."""
        description = description or EXPORT_CONFIG['description']
        print(f"📤 Exporting classified map: {description}")

        nodata = EXPORT_CONFIG['nodata']
        task = ee.batch.Export.image.toDrive(
            image=classified.unmask(nodata).toByte(),
            description=description,
            folder=EXPORT_CONFIG['folder'],
            fileNamePrefix=description,
            region=self.aoi,
            scale=EXPORT_CONFIG['scale'],
            maxPixels=EXPORT_CONFIG['max_pixels'],
            fileFormat=EXPORT_CONFIG['file_format'],
            formatOptions={'noData': nodata}
        )
        task.start()

        print(f"✅ Export task started for {description}")
        return task

    def run(self, training_fc):
        """Run composite, training, classification, accuracy and area steps."""
        composite = self.add_spectral_indices(self.load_sentinel2_composite())
        samples = self.sample_training_data(composite, training_fc)
        training_set, testing_set = self.split_training_data(samples)
        classifier = self.train_classifier(training_set)
        classified = self.classify(composite, classifier)

        return {
            'composite': composite,
            'classified': classified,
            'accuracy': self.assess_accuracy(testing_set, classifier),
            'areas': self.compute_class_areas(classified)
        }
