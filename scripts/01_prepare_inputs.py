#!/usr/bin/env python3
"""
Script 01: Validate and align input data.

This script:
1. Loads the count matrix, TPM matrix and sample metadata
2. Aligns samples across the three inputs
3. Checks that both comparison groups are present
4. Writes the aligned inputs for inspection

Usage:
    python scripts/01_prepare_inputs.py --experiment css [--data-dir DATA_DIR]
"""

import os
import sys
import argparse

# Add repository root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from blanac.data_loading import load_experiment
from blanac.utils import ensure_dir, experiment_output_dir
from blanac.config import DATA_DIR, RESULTS_DIR, EXPERIMENTS, get_experiment_by_name


def prepare_experiment(experiment, data_dir, output_dir):
    """
    Load, align and validate one experiment's inputs.

    Args:
        experiment (dict): Experiment configuration
        data_dir (str): Directory holding the input files
        output_dir (str): Root results directory

    Returns:
        dict: Aligned inputs
    """
    print(f"\n{'='*60}")
    print(f"Preparing inputs: {experiment['name'].upper()}")
    print(f"{'='*60}")

    inputs = load_experiment(experiment, data_dir)

    groups = set(inputs['metadata'][experiment['condition_col']])
    missing = {experiment['reference'], experiment['treatment']} - groups
    if missing:
        raise ValueError(
            f"Groups {sorted(missing)} missing from metadata column "
            f"'{experiment['condition_col']}' (found {sorted(groups)})"
        )

    inputs_dir = ensure_dir(os.path.join(
        experiment_output_dir(output_dir, experiment['name']), 'inputs'
    ))
    counts = inputs['counts'].copy()
    counts.insert(0, 'gene_name', inputs['symbols'])
    counts.to_csv(os.path.join(inputs_dir, 'counts_aligned.csv'))
    inputs['tpm'].to_csv(os.path.join(inputs_dir, 'tpm_aligned.csv'))
    inputs['metadata'].to_csv(os.path.join(inputs_dir, 'metadata_aligned.csv'))

    print(f"\n  Aligned inputs saved to: {inputs_dir}")
    return inputs


def main():
    parser = argparse.ArgumentParser(description='Validate and align input data')
    parser.add_argument(
        '--experiment',
        type=str,
        required=True,
        choices=[e['name'] for e in EXPERIMENTS],
        help='Experiment: css or glut'
    )
    parser.add_argument(
        '--data-dir',
        type=str,
        default=DATA_DIR,
        help='Directory containing count/TPM matrices and metadata'
    )
    parser.add_argument(
        '--output-dir',
        type=str,
        default=RESULTS_DIR,
        help='Root output directory'
    )
    args = parser.parse_args()

    prepare_experiment(
        get_experiment_by_name(args.experiment),
        data_dir=args.data_dir,
        output_dir=args.output_dir,
    )

    print("\nInput preparation complete!")


if __name__ == '__main__':
    main()
