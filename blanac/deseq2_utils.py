"""
DESeq2 utilities for differential gene expression analysis.

This module provides wrapper functions for pydeseq2 to run the
negative-binomial test between experimental groups, compute the
variance-stabilizing transform and filter genes based on
significance thresholds.
"""

import numpy as np
import pandas as pd
from pydeseq2.dds import DeseqDataSet
from pydeseq2.default_inference import DefaultInference
from pydeseq2.ds import DeseqStats

from .config import ALPHA, L2FC


def prepare_counts(counts):
    """
    Convert a count matrix to the samples x genes integer layout pydeseq2 expects.

    Args:
        counts (pd.DataFrame): Count matrix (genes x samples)

    Returns:
        pd.DataFrame: Integer counts (samples x genes)
    """
    counts_t = counts.T.apply(pd.to_numeric, errors='coerce')
    counts_t = counts_t.fillna(0).clip(lower=0).round().astype(int)
    counts_t.index.name = None
    counts_t.columns.name = None
    return counts_t


def build_deseq_dataset(counts, metadata, design, condition_col, reference,
                        treatment=None, n_cpus=None):
    """
    Build a DESeq2 dataset for a two-group comparison.

    Args:
        counts (pd.DataFrame): Count matrix (genes x samples)
        metadata (pd.DataFrame): Sample metadata indexed by sample
        design (str): Design formula (e.g. '~condition')
        condition_col (str): Metadata column holding the group
        reference (str): Reference level of the group
        treatment (str): Treatment level, checked before the dataset is built
        n_cpus (int): Number of CPUs for inference (None for all)

    Returns:
        DeseqDataSet: Unfitted DESeq2 dataset
    """
    if condition_col not in metadata.columns:
        raise ValueError(f"Metadata has no '{condition_col}' column")
    levels = set(metadata[condition_col].astype(str))
    if reference not in levels:
        raise ValueError(
            f"Reference level '{reference}' not found in {condition_col}: {sorted(levels)}"
        )
    if treatment is not None and treatment not in levels:
        raise ValueError(
            f"Level '{treatment}' not found in {condition_col}: {sorted(levels)}"
        )

    counts_t = prepare_counts(counts)
    meta = metadata.loc[counts_t.index].copy()
    meta[condition_col] = meta[condition_col].astype(str)

    # Reference level first so it becomes the intercept
    others = sorted(levels - {reference})
    meta[condition_col] = pd.Categorical(
        meta[condition_col], categories=[reference] + others
    )

    inference = DefaultInference(n_cpus=n_cpus)
    dds = DeseqDataSet(
        counts=counts_t,
        metadata=meta,
        design=design,
        refit_cooks=True,
        inference=inference,
    )
    return dds


def run_deseq2(counts, metadata, design, condition_col, reference, treatment=None,
               n_cpus=None):
    """
    Run DESeq2 differential expression analysis.

    Fits size factors, dispersions and log fold changes.

    Args:
        counts (pd.DataFrame): Count matrix (genes x samples)
        metadata (pd.DataFrame): Sample metadata indexed by sample
        design (str): Design formula
        condition_col (str): Metadata column holding the group
        reference (str): Reference level of the group
        treatment (str): Treatment level
        n_cpus (int): Number of CPUs for inference

    Returns:
        DeseqDataSet: Fitted DESeq2 dataset object
    """
    dds = build_deseq_dataset(counts, metadata, design, condition_col,
                              reference, treatment=treatment, n_cpus=n_cpus)
    dds.deseq2()
    return dds


def run_vst(dds):
    """
    Variance-stabilizing transform, blind to the experimental design.

    Args:
        dds (DeseqDataSet): DESeq2 dataset

    Returns:
        pd.DataFrame: VST values (samples x genes)
    """
    dds.vst(use_design=False)
    return pd.DataFrame(
        np.asarray(dds.layers['vst_counts']),
        index=dds.obs_names,
        columns=dds.var_names,
    )


def get_results(dds, condition_col, treatment, reference, alpha=ALPHA):
    """
    Extract differential expression results from DESeq2.

    Positive log2FoldChange means higher expression in the treatment group.

    Args:
        dds (DeseqDataSet): Fitted DESeq2 dataset
        condition_col (str): Metadata column holding the group
        treatment (str): Treatment level
        reference (str): Reference level
        alpha (float): Significance level for independent filtering

    Returns:
        pd.DataFrame: Results with baseMean, log2FoldChange, lfcSE, stat,
                      pvalue, padj columns
    """
    levels = set(dds.obs[condition_col].astype(str))
    for level in (treatment, reference):
        if level not in levels:
            raise ValueError(
                f"Level '{level}' not found in {condition_col}: {sorted(levels)}"
            )

    stats_results = DeseqStats(
        dds,
        contrast=[condition_col, treatment, reference],
        alpha=alpha,
        inference=dds.inference,
    )
    stats_results.summary()
    return stats_results.results_df


def get_sig_genes(res, pval=ALPHA, l2fc=L2FC):
    """
    Filter for significantly differentially expressed genes.

    Args:
        res (pd.DataFrame): DESeq2 results
        pval (float): Adjusted p-value threshold
        l2fc (float): Log2 fold change threshold (absolute value)

    Returns:
        pd.DataFrame: Significant genes sorted by padj
    """
    sigs = res[(res.padj < pval) & (abs(res.log2FoldChange) > l2fc)]
    return sigs.sort_values('padj')


def get_dge_ranked_genes(res):
    """
    Rank genes by differential expression statistic.

    Args:
        res (pd.DataFrame): DESeq2 results

    Returns:
        pd.DataFrame: Genes ranked by test statistic (descending)
    """
    return res[['stat']].dropna().sort_values('stat', ascending=False)


def annotate_results(res, symbols):
    """Add a gene_name column to DESeq2 results."""
    res = res.copy()
    res.insert(0, 'gene_name', symbols.reindex(res.index).fillna(
        pd.Series(res.index, index=res.index)))
    return res


def run_full_dgea(counts, metadata, experiment, symbols=None, alpha=ALPHA,
                  l2fc=L2FC, n_cpus=None):
    """
    Run complete differential expression analysis workflow.

    Args:
        counts (pd.DataFrame): Count matrix (genes x samples)
        metadata (pd.DataFrame): Sample metadata indexed by sample
        experiment (dict): Experiment configuration
        symbols (pd.Series): Optional gene ID -> symbol mapping
        alpha (float): Significance threshold
        l2fc (float): Log2 fold change threshold
        n_cpus (int): Number of CPUs for inference

    Returns:
        dict: Results containing:
            - 'dds': Fitted DESeq2 dataset
            - 'vst': VST matrix (samples x genes)
            - 'all_results': Full DESeq2 results
            - 'sig': Significant results
            - 'sig_genes': Significant gene IDs
            - 'upregulated': Genes higher in treatment
            - 'downregulated': Genes lower in treatment
            - 'ranking': Ranked gene list
    """
    condition_col = experiment['condition_col']
    print(f"  Running DESeq2: {experiment['design']}, "
          f"{experiment['treatment']} vs {experiment['reference']}")

    dds = run_deseq2(counts, metadata, experiment['design'], condition_col,
                     experiment['reference'], treatment=experiment['treatment'],
                     n_cpus=n_cpus)
    res = get_results(dds, condition_col, experiment['treatment'],
                      experiment['reference'], alpha=alpha)
    if symbols is not None:
        res = annotate_results(res, symbols)

    sig = get_sig_genes(res, pval=alpha, l2fc=l2fc)
    ranking = get_dge_ranked_genes(res)

    # Separate up/down regulated
    upregulated = sig[sig.log2FoldChange > 0].index.tolist()
    downregulated = sig[sig.log2FoldChange < 0].index.tolist()

    print(f"  Found {len(sig)} significant genes "
          f"({len(upregulated)} up, {len(downregulated)} down) at padj < {alpha}")

    vst = run_vst(dds)

    return {
        'dds': dds,
        'vst': vst,
        'all_results': res,
        'sig': sig,
        'sig_genes': sig.index.tolist(),
        'upregulated': upregulated,
        'downregulated': downregulated,
        'ranking': ranking,
    }
