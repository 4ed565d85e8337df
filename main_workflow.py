"""
Main workflow script for Kolkata Land Use Land Cover Classification
This script orchestrates the entire classification workflow.
"""

import argparse
import sys
from datetime import datetime
from pathlib import Path

from config.land_cover_config import EXPORT_CONFIG, GEE_CONFIG, LAND_COVER_CLASSES, OUTPUT_CONFIG
from scripts.local.area_stats import aggregate_areas_from_geotiff, raster_bounds_lonlat
from scripts.local.report import (
    build_area_table, check_area_bound, create_confusion_matrix_plot, print_report, save_report
)

PROJECT_ROOT = Path(__file__).parent


def run_gee_processing(args, results_dir):
    """Run Google Earth Engine classification and reporting."""
    print("\n" + "=" * 60)
    print("📡 STEP 1: Google Earth Engine Processing")
    print("=" * 60)

    from scripts.gee.kolkata_gee_processor import KolkataEEProcessor
    from scripts.gee.training_polygons import (
        load_training_polygons, to_feature_collection, validate_training_polygons
    )

    config = {
        'aoi_bounds': args.aoi,
        'date_range': {'start': args.start, 'end': args.end},
        'cloud_filter': args.cloud
    }
    if args.project:
        config['project_id'] = args.project

    polygons = load_training_polygons(args.training)
    validate_training_polygons(polygons)

    processor = KolkataEEProcessor(config)
    results = processor.run(to_feature_collection(polygons))

    print("\n" + "=" * 60)
    print("📋 STEP 2: Reporting")
    print("=" * 60)

    area_table = build_area_table(results['areas'])
    print_report(results['accuracy'], area_table)
    check_area_bound(results['areas'], processor.config['aoi_bounds'])

    run_info = {
        'aoi_bounds': processor.config['aoi_bounds'],
        'date_range': processor.config['date_range'],
        'cloud_filter': processor.config['cloud_filter'],
        'collection': processor.config['collection'],
        'training_polygons': str(args.training),
        'polygon_counts': {int(k): int(v) for k, v in polygons['class'].value_counts().items()}
    }
    save_report(results_dir, results['accuracy'], area_table, run_info)
    create_confusion_matrix_plot(results['accuracy'], results_dir)

    if args.map_html:
        processor.build_map(results['composite'], results['classified'], html_path=args.map_html)

    if args.export:
        processor.export_classified_map(results['classified'])
        print("📥 Check Google Drive for the exported map")

    print("✅ Google Earth Engine processing complete")
    return True


def run_raster_statistics(raster_path, results_dir, nodata=EXPORT_CONFIG['nodata']):
    """Compute class areas locally from an exported classification GeoTIFF."""
    print("\n" + "=" * 60)
    print("🗺️  Local Raster Statistics")
    print("=" * 60)

    raster_path = Path(raster_path)
    if not raster_path.exists():
        print(f"❌ Classified raster not found: {raster_path}")
        return False

    areas = aggregate_areas_from_geotiff(raster_path, nodata=nodata)
    area_table = build_area_table(areas)
    print_report(None, area_table)
    check_area_bound(areas, raster_bounds_lonlat(raster_path))
    save_report(results_dir, None, area_table, {'raster': str(raster_path), 'nodata': nodata})
    return True


def create_project_summary():
    """Print a summary of the project."""
    print("\n" + "=" * 60)
    print("📋 PROJECT SUMMARY")
    print("=" * 60)

    west, south, east, north = GEE_CONFIG['aoi_bounds']
    project_info = f"""
🌍 Kolkata Land Use Land Cover Classification
=============================================

📅 Date: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}

🎯 Objective:
   • Classify land cover over Kolkata ({west}, {south}) - ({east}, {north})
   • Sentinel-2 median composite, cloud masked with the QA60 band
   • Random Forest on B2, B3, B4, B8, NDVI and NDWI

📊 Land Cover Classes:
"""
    for class_id, class_info in LAND_COVER_CLASSES.items():
        project_info += f"   {class_id}. {class_info['name']:12} {class_info['color']}  {class_info['description']}\n"

    project_info += """
🛠️  Workflow:
   1. Draw training polygons: water, vegetation, builtup, barren
   2. Run: python main_workflow.py --training data/training
   3. Review accuracy and class areas in data/results/
   4. Optional: --export to send the map to Google Drive,
      --stats-raster to recompute areas from the exported GeoTIFF
"""
    print(project_info)


def build_parser():
    parser = argparse.ArgumentParser(description="Kolkata Land Use Land Cover Classification Workflow")
    parser.add_argument("--training", type=str, help="Training polygons file or directory of class layers")
    parser.add_argument("--aoi", type=float, nargs=4, metavar=("WEST", "SOUTH", "EAST", "NORTH"),
                        default=GEE_CONFIG['aoi_bounds'], help="Area of interest in decimal degrees")
    parser.add_argument("--start", type=str, default=GEE_CONFIG['date_range']['start'], help="Start date (YYYY-MM-DD)")
    parser.add_argument("--end", type=str, default=GEE_CONFIG['date_range']['end'], help="End date (YYYY-MM-DD)")
    parser.add_argument("--cloud", type=float, default=GEE_CONFIG['cloud_filter'], help="Maximum cloudy pixel percentage")
    parser.add_argument("--project", type=str, help="Earth Engine cloud project id")
    parser.add_argument("--export", action="store_true", help="Export the classified map to Google Drive")
    parser.add_argument("--map-html", type=str, help="Save an interactive map to this HTML file")
    parser.add_argument("--results-dir", type=str, default=str(PROJECT_ROOT / OUTPUT_CONFIG['results_dir']),
                        help="Directory for report files")
    parser.add_argument("--stats-raster", type=str, help="Compute class areas from an exported classification GeoTIFF")
    parser.add_argument("--nodata", type=int, default=EXPORT_CONFIG['nodata'],
                        help="Label value of excluded pixels in --stats-raster")
    parser.add_argument("--summary", action="store_true", help="Print project summary only")
    return parser


def main(argv=None):
    """Main workflow execution."""
    args = build_parser().parse_args(argv)

    print("🚀 Kolkata Land Use Land Cover Classification Workflow")
    print("=" * 50)

    if args.summary or not (args.training or args.stats_raster):
        create_project_summary()
        return 0

    results_dir = Path(args.results_dir)
    try:
        if args.stats_raster:
            success = run_raster_statistics(args.stats_raster, results_dir, args.nodata)
        else:
            success = run_gee_processing(args, results_dir)
    except Exception as e:
        print(f"❌ Workflow failed: {e}")
        return 1

    if not success:
        return 1
    print("\n🎉 Workflow complete!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
