"""
Accuracy and area reporting for the Kolkata land cover classification.
Turns the classifier's error matrix and the per-class area record into
tables, console output and files in the results directory.
"""

import json
import math
from datetime import datetime
from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns

from config.land_cover_config import CLASS_IDS, LAND_COVER_CLASSES, OUTPUT_CONFIG
from scripts.local.area_stats import nominal_aoi_area_sq_km, sorted_area_items

AREA_COLUMNS = ['class_id', 'class_name', 'area_sq_km', 'percentage']


def _pad_matrix(matrix, size):
    """Earth Engine sizes the error matrix by the largest label seen; pad to all classes."""
    padded = np.zeros((size, size), dtype=np.int64)
    if len(matrix) == 0:
        return padded
    matrix = np.asarray(matrix, dtype=np.int64)
    rows, cols = min(matrix.shape[0], size), min(matrix.shape[1], size)
    padded[:rows, :cols] = matrix[:rows, :cols]
    return padded


def _json_safe(value):
    """Replace NaN with None so the metadata stays strict JSON."""
    if isinstance(value, dict):
        return {key: _json_safe(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_safe(item) for item in value]
    if isinstance(value, float) and math.isnan(value):
        return None
    return value


def build_accuracy_report(matrix, overall_accuracy, kappa, class_ids=CLASS_IDS):
    """
    Assemble the accuracy report from an error matrix.

    Args:
        matrix: Error matrix rows (actual class) by columns (predicted class)
        overall_accuracy: Overall accuracy reported by the classifier backend
        kappa: Kappa coefficient reported by the classifier backend
        class_ids: Class ids indexing the matrix rows and columns

    Returns:
        Dictionary with the padded matrix and per-class accuracies
    """
    cm = _pad_matrix(matrix, len(class_ids))
    diagonal = np.diag(cm).astype(float)
    actual_totals = cm.sum(axis=1)
    predicted_totals = cm.sum(axis=0)

    with np.errstate(divide='ignore', invalid='ignore'):
        producers = np.where(actual_totals > 0, diagonal / actual_totals, np.nan)
        consumers = np.where(predicted_totals > 0, diagonal / predicted_totals, np.nan)

    return {
        'class_ids': list(class_ids),
        'confusion_matrix': cm.tolist(),
        'overall_accuracy': float(overall_accuracy),
        'kappa': float(kappa),
        'producers_accuracy': dict(zip(class_ids, producers.tolist())),
        'consumers_accuracy': dict(zip(class_ids, consumers.tolist())),
        'test_samples': int(cm.sum())
    }


def confusion_matrix_frame(accuracy_report, classes=LAND_COVER_CLASSES):
    """Confusion matrix as a DataFrame labelled with class names."""
    names = [classes[class_id]['name'] for class_id in accuracy_report['class_ids']]
    frame = pd.DataFrame(accuracy_report['confusion_matrix'], index=names, columns=names)
    frame.index.name = 'actual'
    frame.columns.name = 'predicted'
    return frame


def build_area_table(area_record, classes=LAND_COVER_CLASSES, decimals=OUTPUT_CONFIG['area_decimals']):
    """Area record as a DataFrame sorted by class id."""
    rows = []
    total = sum(area_record.values())
    for class_id, area_sq_km in sorted_area_items(area_record):
        rows.append({
            'class_id': int(class_id),
            'class_name': classes[class_id]['name'],
            'area_sq_km': round(area_sq_km, decimals),
            'percentage': round(area_sq_km / total * 100, 2) if total > 0 else 0.0
        })
    return pd.DataFrame(rows, columns=AREA_COLUMNS)


def check_area_bound(area_record, aoi_bounds):
    """Warn when the classified area exceeds the nominal AOI rectangle."""
    classified = sum(area_record.values())
    nominal = nominal_aoi_area_sq_km(aoi_bounds)
    # Small tolerance for pixels straddling the AOI edge
    if classified > nominal * 1.01:
        print(f"⚠️  Classified area {classified:.2f} km² exceeds AOI area {nominal:.2f} km²")
        return False
    return True


def print_report(accuracy_report, area_table, classes=LAND_COVER_CLASSES):
    """Print accuracy metrics and area statistics to the console."""
    print("\n" + "-" * 40)
    print("🎯 ACCURACY ASSESSMENT")
    if accuracy_report is not None:
        print("Confusion Matrix:")
        print(confusion_matrix_frame(accuracy_report, classes).to_string())
        print(f"Overall Accuracy: {accuracy_report['overall_accuracy']:.4f}")
        print(f"Kappa Coefficient: {accuracy_report['kappa']:.4f}")
    else:
        print("   (not available)")
    print("-" * 40)

    print("📈 AREA STATISTICS (sq. km)")
    if area_table.empty:
        print("   No classified pixels")
    else:
        print(area_table.to_string(index=False))
    print("-" * 40)


def save_report(results_dir, accuracy_report, area_table, run_info=None):
    """
    Save the report files with a shared timestamp.

    Returns:
        Dictionary of written file paths
    """
    results_dir = Path(results_dir)
    results_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')

    paths = {'areas': results_dir / f"class_areas_{timestamp}.csv"}
    area_table.to_csv(paths['areas'], index=False)

    if accuracy_report is not None:
        paths['confusion_matrix'] = results_dir / f"confusion_matrix_{timestamp}.csv"
        confusion_matrix_frame(accuracy_report).to_csv(paths['confusion_matrix'])

    metadata = {
        'timestamp': timestamp,
        'run': run_info or {},
        'accuracy': accuracy_report,
        'areas_sq_km': {str(row.class_id): row.area_sq_km for row in area_table.itertuples()}
    }
    paths['metadata'] = results_dir / f"run_metadata_{timestamp}.json"
    with open(paths['metadata'], 'w') as f:
        json.dump(_json_safe(metadata), f, indent=2, default=str, allow_nan=False)

    for name, path in paths.items():
        print(f"💾 Saved {name}: {path}")
    return paths


def create_confusion_matrix_plot(accuracy_report, results_dir, classes=LAND_COVER_CLASSES):
    """Create and save a confusion matrix heatmap."""
    frame = confusion_matrix_frame(accuracy_report, classes)

    plt.figure(figsize=(8, 6))
    sns.heatmap(frame, annot=True, fmt='d', cmap='Blues')
    plt.title(f"Confusion Matrix - OA {accuracy_report['overall_accuracy']:.3f}, "
              f"Kappa {accuracy_report['kappa']:.3f}")
    plt.xlabel('Predicted Class')
    plt.ylabel('True Class')

    results_dir = Path(results_dir)
    results_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
    plot_path = results_dir / f"confusion_matrix_{timestamp}.png"
    plt.savefig(plot_path, dpi=OUTPUT_CONFIG['plot_dpi'], bbox_inches='tight')
    plt.close()

    print(f"📊 Confusion matrix saved: {plot_path}")
    return plot_path
