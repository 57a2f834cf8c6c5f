#!/usr/bin/env python3
"""
Main orchestration script - runs the complete analysis pipeline.

This script coordinates all pipeline steps:
1. Validate and align inputs
2. Expression analysis (filter, DESeq2, VST, QC)
3. Enrichment analysis (optional, needs network access)
4. HTML report

Usage:
    # Run one experiment
    python scripts/run_all.py --experiment css

    # Run both experiments
    python scripts/run_all.py --run-all

    # Skip the enrichment web queries
    python scripts/run_all.py --experiment glut --skip-enrichment
"""

import os
import sys
import argparse
import subprocess
from datetime import datetime

# Add repository root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from blanac.config import EXPERIMENTS, RESULTS_DIR, DATA_DIR, print_config


def run_step(script_name, args_list, step_name):
    """Run a pipeline step as a subprocess."""
    print(f"\n{'='*60}")
    print(f"STEP: {step_name}")
    print(f"{'='*60}")

    script_path = os.path.join(os.path.dirname(__file__), script_name)
    cmd = [sys.executable, script_path] + args_list

    print(f"Running: {' '.join(cmd)}\n")

    result = subprocess.run(cmd, capture_output=False)

    if result.returncode != 0:
        print(f"  Warning: {step_name} returned non-zero exit code")
        return False

    return True


def run_single_experiment(experiment, data_dir=DATA_DIR, output_dir=RESULTS_DIR,
                          skip_enrichment=False):
    """Run the complete pipeline for a single experiment."""
    name = experiment.upper()
    common = ['--experiment', experiment, '--output-dir', output_dir]

    if not run_step('01_prepare_inputs.py', common + ['--data-dir', data_dir],
                    f'Prepare inputs {name}'):
        return False

    if not run_step('02_run_analysis.py', common + ['--data-dir', data_dir],
                    f'Expression analysis {name}'):
        return False

    success = True
    if not skip_enrichment:
        # Enrichment failures still leave a usable report
        success = run_step('03_run_enrichment.py', common,
                           f'Enrichment {name}')

    return run_step('04_build_report.py', common, f'Report {name}') and success


def run_all_experiments(data_dir=DATA_DIR, output_dir=RESULTS_DIR,
                        skip_enrichment=False):
    """Run the pipeline for every configured experiment."""
    start_time = datetime.now()

    print("\n" + "=" * 60)
    print("RUNNING ALL EXPERIMENTS")
    print("=" * 60)
    print(f"\nStart time: {start_time}")
    print(f"Experiments: {[e['name'] for e in EXPERIMENTS]}")

    completed = 0
    failed = []

    for experiment in EXPERIMENTS:
        name = experiment['name']
        print(f"\n{'#'*60}")
        print(f"# Experiment {completed + len(failed) + 1}/{len(EXPERIMENTS)}: {name.upper()}")
        print(f"{'#'*60}")

        if run_single_experiment(name, data_dir, output_dir, skip_enrichment):
            completed += 1
        else:
            failed.append(name)

    end_time = datetime.now()

    print("\n" + "=" * 60)
    print("ALL EXPERIMENTS COMPLETE")
    print("=" * 60)
    print(f"End time: {end_time}")
    print(f"Duration: {end_time - start_time}")
    print(f"Completed: {completed}/{len(EXPERIMENTS)}")

    if failed:
        print("\nFailed experiments:")
        for name in failed:
            print(f"  - {name}")

    return not failed


def main():
    parser = argparse.ArgumentParser(
        description='BLAa-NAc RNA-seq Analysis Pipeline',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run one experiment
  python scripts/run_all.py --experiment css

  # Run both experiments
  python scripts/run_all.py --run-all

  # Show configuration
  python scripts/run_all.py --show-config
        """
    )

    parser.add_argument(
        '--experiment',
        type=str,
        choices=[e['name'] for e in EXPERIMENTS],
        help='Experiment to run'
    )
    parser.add_argument(
        '--run-all',
        action='store_true',
        help='Run all experiments'
    )
    parser.add_argument(
        '--data-dir',
        type=str,
        default=DATA_DIR,
        help='Directory containing input files'
    )
    parser.add_argument(
        '--output-dir',
        type=str,
        default=RESULTS_DIR,
        help='Root output directory'
    )
    parser.add_argument(
        '--skip-enrichment',
        action='store_true',
        help='Skip enrichment analysis step'
    )
    parser.add_argument(
        '--show-config',
        action='store_true',
        help='Show current configuration and exit'
    )

    args = parser.parse_args()

    if args.show_config:
        print_config()
        return

    if not args.run_all and not args.experiment:
        parser.error("Either --experiment or --run-all must be specified")

    print("\n" + "=" * 60)
    print("BLAa-NAc RNA-seq Analysis Pipeline")
    print("=" * 60)
    print_config()

    if args.run_all:
        ok = run_all_experiments(args.data_dir, args.output_dir, args.skip_enrichment)
    else:
        ok = run_single_experiment(args.experiment, args.data_dir, args.output_dir,
                                   args.skip_enrichment)

    print("\nPipeline complete!" if ok else "\nPipeline finished with errors.")
    sys.exit(0 if ok else 1)


if __name__ == '__main__':
    main()
