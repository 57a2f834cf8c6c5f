"""
Data loading utilities for the BLAa-NAc RNA-seq datasets.

This module reads the precomputed count and TPM matrices and the
sample metadata for an experiment, and aligns all three on a common,
sorted set of samples.
"""

import os
import pandas as pd


SYMBOL_COLUMNS = ('gene_name', 'symbol', 'gene_symbol', 'external_gene_name')


def _read_table(path):
    """Read a CSV or TSV file, choosing the separator from the extension."""
    sep = '\t' if path.endswith(('.tsv', '.txt', '.tsv.gz', '.txt.gz')) else ','
    return pd.read_csv(path, sep=sep, header=0)


def read_expression_matrix(path):
    """
    Read a count or TPM matrix.

    The first column holds gene IDs. An optional symbol column
    ('gene_name', 'symbol', ...) is split off; every other column is
    treated as a sample.

    Args:
        path (str): Path to CSV/TSV matrix (genes x samples)

    Returns:
        tuple: (matrix, symbols)
            - matrix: numeric DataFrame (genes x samples) indexed by gene ID
            - symbols: Series mapping gene ID -> symbol
    """
    df = _read_table(path)
    gene_col = df.columns[0]
    df = df.set_index(gene_col)
    df.index = df.index.astype(str)
    df.index.name = 'gene_id'

    symbol_cols = [c for c in df.columns if c in SYMBOL_COLUMNS]
    if symbol_cols:
        symbols = df[symbol_cols[0]].fillna(pd.Series(df.index, index=df.index))
        symbols = symbols.astype(str)
        df = df.drop(columns=symbol_cols)
    else:
        symbols = pd.Series(df.index, index=df.index)
    symbols.name = 'gene_name'

    df = df.apply(pd.to_numeric, errors='coerce')
    df.columns = df.columns.astype(str)
    return df, symbols


def read_sample_metadata(path, condition_col):
    """
    Read sample metadata.

    Args:
        path (str): Path to CSV/TSV metadata with a 'sample' column
        condition_col (str): Column holding the experimental group

    Returns:
        pd.DataFrame: Metadata indexed by sample name
    """
    df = _read_table(path)
    if 'sample' not in df.columns:
        raise ValueError(f"Metadata {path} has no 'sample' column")
    if condition_col not in df.columns:
        raise ValueError(f"Metadata {path} has no '{condition_col}' column")

    df['sample'] = df['sample'].astype(str)
    missing = df.loc[df[condition_col].isna(), 'sample'].tolist()
    if missing:
        print(f"  Dropping {len(missing)} samples with no {condition_col}: {missing}")
        df = df[df[condition_col].notna()].copy()
    df[condition_col] = df[condition_col].astype(str)
    return df.set_index('sample')


def align_samples(counts, tpm, metadata):
    """
    Restrict counts, TPM and metadata to their shared samples.

    Samples are sorted by name so that column order in the matrices
    matches row order in the metadata.

    Args:
        counts (pd.DataFrame): Count matrix (genes x samples)
        tpm (pd.DataFrame): TPM matrix (genes x samples)
        metadata (pd.DataFrame): Metadata indexed by sample

    Returns:
        tuple: (counts, tpm, metadata) aligned
    """
    common = set(counts.columns) & set(tpm.columns) & set(metadata.index)
    if not common:
        raise ValueError("No samples shared between counts, TPM and metadata")

    for name, samples in (('counts', counts.columns), ('TPM', tpm.columns),
                          ('metadata', metadata.index)):
        dropped = sorted(set(samples) - common)
        if dropped:
            print(f"  Dropping {len(dropped)} samples only in {name}: {dropped}")

    samples = sorted(common)
    genes = counts.index.intersection(tpm.index)
    for name, index in (('counts', counts.index), ('TPM', tpm.index)):
        n_dropped = len(index.difference(genes))
        if n_dropped:
            print(f"  Dropping {n_dropped} genes only in {name}")

    counts = counts.loc[genes, samples]
    tpm = tpm.loc[genes, samples]
    metadata = metadata.loc[samples]

    # Critical alignment check
    assert list(counts.columns) == list(metadata.index), \
        "FATAL: Sample names in counts and metadata do not match!"
    assert list(tpm.columns) == list(metadata.index), \
        "FATAL: Sample names in TPM and metadata do not match!"

    return counts, tpm, metadata


def load_experiment(experiment, data_dir):
    """
    Load and align all inputs for one experiment.

    Args:
        experiment (dict): Experiment configuration from config.EXPERIMENTS
        data_dir (str): Directory holding the input files

    Returns:
        dict: 'counts', 'tpm', 'metadata', 'symbols'
    """
    print(f"Loading {experiment['name'].upper()} data from: {data_dir}")

    counts, symbols = read_expression_matrix(
        os.path.join(data_dir, experiment['counts_file'])
    )
    tpm, tpm_symbols = read_expression_matrix(
        os.path.join(data_dir, experiment['tpm_file'])
    )
    metadata = read_sample_metadata(
        os.path.join(data_dir, experiment['metadata_file']),
        experiment['condition_col'],
    )

    counts, tpm, metadata = align_samples(counts, tpm, metadata)
    symbols = symbols.combine_first(tpm_symbols).loc[counts.index]

    groups = metadata[experiment['condition_col']].value_counts().to_dict()
    print(f"  [{experiment['name'].upper()}] counts shape (genes x samples): {counts.shape}")
    print(f"  [{experiment['name'].upper()}] Metadata shape: {metadata.shape}")
    print(f"  [{experiment['name'].upper()}] Groups: {groups}")

    return {
        'counts': counts,
        'tpm': tpm,
        'metadata': metadata,
        'symbols': symbols,
    }
