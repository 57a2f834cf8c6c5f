"""
Utility functions for the RNA-seq analysis pipeline.

This module provides general-purpose utilities including:
- Results storage and loading (CSV tables + pickled workspace)
- Output directory handling
- Package versions for the report
"""

import os
import pickle
from importlib import metadata as importlib_metadata

import pandas as pd

from .config import ANALYSIS_PICKLE


REPORT_PACKAGES = [
    'numpy', 'pandas', 'scipy', 'scikit-learn', 'matplotlib', 'seaborn',
    'pydeseq2', 'gseapy', 'gprofiler-official',
]


def ensure_dir(path):
    """Create a directory if needed and return it."""
    os.makedirs(path, exist_ok=True)
    return path


def experiment_output_dir(output_dir, experiment_name):
    """Directory holding all artifacts for one experiment."""
    return os.path.join(output_dir, experiment_name)


def store_results(artifacts, loc):
    """
    Save analysis results to disk.

    Tables are written as CSV for inspection; the whole artifact
    dictionary is pickled so later steps can reload it.

    Args:
        artifacts (dict): Analysis artifacts (see scripts/02_run_analysis.py)
        loc (str): Output directory path
    """
    ensure_dir(loc)

    tables = {
        'expressed_genes.csv': artifacts.get('expressed'),
        'vst.csv': artifacts.get('vst'),
        'pca_scores.csv': artifacts.get('pca_scores'),
        'pca_explained.csv': artifacts.get('pca_explained'),
        'library_sizes.csv': artifacts.get('library_sizes'),
        'outliers.csv': artifacts.get('outliers'),
        'dge_all.csv': artifacts.get('all_results'),
        'dge_sig.csv': artifacts.get('sig'),
    }

    sig = artifacts.get('sig')
    if sig is not None:
        tables['dge_up.csv'] = sig[sig.log2FoldChange > 0]
        tables['dge_down.csv'] = sig[sig.log2FoldChange < 0]

    for filename, table in tables.items():
        if table is None:
            continue
        table.to_csv(os.path.join(loc, filename))

    # pydeseq2 objects are not stored
    to_pickle = {k: v for k, v in artifacts.items() if k != 'dds'}
    with open(os.path.join(loc, ANALYSIS_PICKLE), 'wb') as f:
        pickle.dump(to_pickle, f)

    print(f"Results saved to {loc}")


def load_results(loc, filename=ANALYSIS_PICKLE):
    """
    Load previously saved analysis results.

    Args:
        loc (str): Directory containing saved results
        filename (str): Pickle file name

    Returns:
        dict: Stored artifacts
    """
    path = os.path.join(loc, filename)
    if not os.path.exists(path):
        raise FileNotFoundError(
            f"Analysis results not found: {path}\n"
            f"Run 02_run_analysis.py first."
        )

    with open(path, 'rb') as f:
        return pickle.load(f)


def store_enrichment(frames, results, loc, filename):
    """Write per-service enrichment CSVs and pickle the raw results."""
    ensure_dir(loc)
    for service, df in frames.items():
        df.to_csv(os.path.join(loc, f'enrichment_{service}.csv'), index=False)

    with open(os.path.join(loc, filename), 'wb') as f:
        pickle.dump(results, f)

    print(f"Enrichment results saved to {loc}")


def package_versions(packages=None):
    """Installed versions of the analysis dependencies."""
    versions = {}
    for name in packages or REPORT_PACKAGES:
        try:
            versions[name] = importlib_metadata.version(name)
        except importlib_metadata.PackageNotFoundError:
            versions[name] = 'not installed'
    return versions


def versions_table(versions):
    """Package versions as a two-column DataFrame."""
    return pd.DataFrame(
        {'package': list(versions), 'version': list(versions.values())}
    )
