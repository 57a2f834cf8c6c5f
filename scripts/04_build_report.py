#!/usr/bin/env python3
"""
Script 04: Build the HTML report.

This script:
1. Loads the saved analysis workspace and enrichment results
2. Collects the saved figures
3. Writes a standalone HTML report with interactive tables

Usage:
    python scripts/04_build_report.py --experiment css [--output-dir OUTPUT_DIR]
"""

import os
import sys
import glob
import pickle
import argparse

# Add repository root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from blanac.enrichment import enrichment_to_frames
from blanac.report import build_report, build_analysis_sections
from blanac.utils import load_results, experiment_output_dir, package_versions
from blanac.config import (
    RESULTS_DIR, EXPERIMENTS, ENRICHMENT_PICKLE, get_experiment_by_name,
)


def collect_figures(figures_dir):
    """Map figure names to PNG paths."""
    return {
        os.path.splitext(os.path.basename(path))[0]: path
        for path in sorted(glob.glob(os.path.join(figures_dir, '*.png')))
    }


def load_enrichment(exp_dir):
    """Load flattened enrichment tables, or None if enrichment was not run."""
    path = os.path.join(exp_dir, ENRICHMENT_PICKLE)
    if not os.path.exists(path):
        print(f"  No enrichment results at {path}, skipping section")
        return None
    with open(path, 'rb') as f:
        return enrichment_to_frames(pickle.load(f))


def main():
    parser = argparse.ArgumentParser(description='Build HTML report')
    parser.add_argument(
        '--experiment',
        type=str,
        required=True,
        choices=[e['name'] for e in EXPERIMENTS],
        help='Experiment: css or glut'
    )
    parser.add_argument(
        '--output-dir',
        type=str,
        default=RESULTS_DIR,
        help='Root output directory containing analysis results'
    )
    args = parser.parse_args()

    experiment = get_experiment_by_name(args.experiment)
    exp_dir = experiment_output_dir(args.output_dir, experiment['name'])

    print("=" * 60)
    print(f"Building report: {experiment['name'].upper()}")
    print("=" * 60)

    artifacts = load_results(exp_dir)
    figures = collect_figures(os.path.join(exp_dir, 'figures'))
    enrichment = load_enrichment(exp_dir)

    sections = build_analysis_sections(
        experiment, artifacts, figures,
        enrichment=enrichment,
        versions=package_versions(),
    )
    build_report(
        experiment, sections,
        os.path.join(exp_dir, f"{experiment['name']}_report.html"),
    )

    print("\nReport complete!")


if __name__ == '__main__':
    main()
