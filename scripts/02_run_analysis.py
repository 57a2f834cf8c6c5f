#!/usr/bin/env python3
"""
Script 02: Run the expression analysis.

This script:
1. Loads and aligns counts, TPM and metadata
2. Filters to expressed genes with a two-component Gaussian mixture
3. Runs DESeq2 (treatment vs reference) and a blind VST
4. Runs QC: library sizes, PCA on HVGs, sample correlation, outliers
5. Saves figures, CSV tables and the pickled analysis workspace

Usage:
    python scripts/02_run_analysis.py --experiment css [--data-dir DATA_DIR]
"""

import os
import sys
import argparse

# Add repository root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from blanac.data_loading import load_experiment
from blanac.pipeline import run_analysis, save_analysis_figures
from blanac.utils import store_results, experiment_output_dir
from blanac.config import (
    SEED, ALPHA, L2FC, N_HVG, N_PCS, LOWCOUNT, GMM_POSTERIOR_THRESH,
    DATA_DIR, RESULTS_DIR, EXPERIMENTS, get_experiment_by_name,
)


def main():
    parser = argparse.ArgumentParser(description='Run expression analysis')
    parser.add_argument(
        '--experiment',
        type=str,
        required=True,
        choices=[e['name'] for e in EXPERIMENTS],
        help='Experiment: css or glut'
    )
    parser.add_argument('--data-dir', type=str, default=DATA_DIR,
                        help='Directory containing input files')
    parser.add_argument('--output-dir', type=str, default=RESULTS_DIR,
                        help='Root output directory')
    parser.add_argument('--alpha', type=float, default=ALPHA,
                        help='Adjusted p-value threshold')
    parser.add_argument('--l2fc', type=float, default=L2FC,
                        help='Absolute log2 fold change threshold')
    parser.add_argument('--n-hvg', type=int, default=N_HVG,
                        help='Highly variable genes used for PCA')
    parser.add_argument('--n-pcs', type=int, default=N_PCS,
                        help='Principal components to compute')
    parser.add_argument('--lowcount', type=float, nargs=2, default=LOWCOUNT,
                        metavar=('COUNT', 'PROPORTION'),
                        help='Low-count pre-filter (0 0 disables)')
    parser.add_argument('--posterior', type=float, default=GMM_POSTERIOR_THRESH,
                        help='Mixture posterior cutoff for expressed genes')
    parser.add_argument('--seed', type=int, default=SEED,
                        help='Random seed')
    parser.add_argument('--n-cpus', type=int, default=None,
                        help='CPUs for DESeq2 (default: all)')
    args = parser.parse_args()

    experiment = get_experiment_by_name(args.experiment)

    print("=" * 60)
    print(f"Expression analysis: {experiment['name'].upper()}")
    print(f"  {experiment['description']}")
    print("=" * 60)

    inputs = load_experiment(experiment, args.data_dir)

    artifacts = run_analysis(
        experiment,
        inputs,
        alpha=args.alpha,
        l2fc=args.l2fc,
        n_hvg=args.n_hvg,
        n_pcs=args.n_pcs,
        lowcount=tuple(args.lowcount),
        posterior_thresh=args.posterior,
        seed=args.seed,
        n_cpus=args.n_cpus,
    )

    exp_dir = experiment_output_dir(args.output_dir, experiment['name'])
    save_analysis_figures(artifacts, os.path.join(exp_dir, 'figures'))
    store_results(artifacts, exp_dir)

    print("\n" + "=" * 60)
    print("Analysis complete!")
    print("=" * 60)


if __name__ == '__main__':
    main()
