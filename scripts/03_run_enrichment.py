#!/usr/bin/env python3
"""
Script 03: Run pathway enrichment analysis.

This script:
1. Loads the saved differential expression results
2. Submits up, down and all significant genes to Enrichr and g:Profiler
3. Saves enrichment tables and bar charts

Usage:
    python scripts/03_run_enrichment.py --experiment css [--output-dir OUTPUT_DIR]

Note: Requires network access to the Enrichr and g:Profiler web services.
"""

import os
import sys
import argparse

# Add repository root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from blanac.enrichment import (
    run_enrichment_for_dge, summarize_enrichment, enrichment_to_frames,
)
from blanac.visualization import plot_enrichment_bar, save_figure
from blanac.utils import load_results, store_enrichment, experiment_output_dir
from blanac.config import (
    RESULTS_DIR, EXPERIMENTS, ENRICHMENT_PICKLE, get_experiment_by_name,
)


def save_enrichment_figures(results, figures_dir, top_n=15):
    """Bar charts of top terms per gene list and service."""
    paths = {}
    for list_name, services in results.items():
        for service, df in services.items():
            if df is None or len(df) == 0:
                continue
            if service == 'enrichr':
                fig = plot_enrichment_bar(df, f'Enrichr: {list_name}', top_n=top_n)
            else:
                fig = plot_enrichment_bar(df, f'g:Profiler: {list_name}', top_n=top_n,
                                          term_col='name', pval_col='p_value')
            name = f'enrichment_{service}_{list_name}'
            paths[name] = save_figure(fig, os.path.join(figures_dir, f'{name}.png'))
    return paths


def main():
    parser = argparse.ArgumentParser(description='Run pathway enrichment')
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
    print(f"Pathway Enrichment: {experiment['name'].upper()}")
    print("=" * 60)

    print("\n[1/2] Loading differential expression results...")
    artifacts = load_results(exp_dir)
    print(f"  Significant genes: {len(artifacts['sig_genes'])} "
          f"({len(artifacts['upregulated'])} up, "
          f"{len(artifacts['downregulated'])} down)")

    if len(artifacts['sig_genes']) == 0:
        print("  No significant genes, exiting.")
        return

    print("\n[2/2] Running enrichment analysis...")
    results = run_enrichment_for_dge(
        artifacts,
        symbols=artifacts['symbols'],
        background=list(artifacts['expressed'].index),
    )

    summarize_enrichment(results)
    store_enrichment(enrichment_to_frames(results), results, exp_dir,
                     ENRICHMENT_PICKLE)
    save_enrichment_figures(results, os.path.join(exp_dir, 'figures'))

    print("\n" + "=" * 60)
    print("Enrichment analysis complete!")
    print("=" * 60)


if __name__ == '__main__':
    main()
