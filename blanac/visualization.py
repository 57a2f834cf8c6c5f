"""
Visualization utilities for gene expression analysis.

This module provides plotting functions for:
- The expressed-gene mixture fit
- QC (library sizes, PCA, scree, sample correlation)
- Differential expression (volcano, MA, top-gene heatmap)
- Enrichment bar charts

Every function returns the matplotlib Figure; use save_figure() to write it.
"""

import os
import numpy as np
import pandas as pd
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
import seaborn as sns
import scipy.stats as stats

from .config import PLOT_DPI


def _sample_colors(metadata, samples, condition_col, colors):
    groups = metadata.loc[samples, condition_col].astype(str)
    palette = dict(colors or {})
    extra = [g for g in sorted(groups.unique()) if g not in palette]
    for g, c in zip(extra, sns.color_palette('tab10', len(extra))):
        palette[g] = c
    return groups, palette


def plot_expression_mixture(fit, bins=60):
    """
    Histogram of gene log expression with the fitted mixture components.

    Args:
        fit (dict): Output of preprocessing.fit_expression_mixture
        bins (int): Number of histogram bins

    Returns:
        matplotlib.figure.Figure
    """
    gmm = fit['model']
    x = fit['log_expr'].to_numpy()
    grid = np.linspace(x.min(), x.max(), 500)

    fig, ax = plt.subplots(figsize=(8, 5))
    ax.hist(x, bins=bins, density=True, color='lightgrey', edgecolor='white')

    weights = gmm.weights_
    means = gmm.means_.ravel()
    sds = np.sqrt(gmm.covariances_.reshape(len(means), -1)[:, 0])
    for k, (w, m, s) in enumerate(zip(weights, means, sds)):
        color = 'red' if k == fit['high_component'] else 'navy'
        ax.plot(grid, w * stats.norm.pdf(grid, m, s), color=color, lw=2,
                label=f'component {k + 1} (mean={m:.2f})')

    if not np.isnan(fit['threshold']):
        ax.axvline(fit['threshold'], color='black', ls='--',
                   label=f"threshold = {fit['threshold']:.2f}")

    ax.set_xlabel('log2(mean TPM + 1)', fontsize=12)
    ax.set_ylabel('density', fontsize=12)
    ax.set_title(f"Expressed genes: {len(fit['expressed'])}", fontsize=14)
    ax.legend(fontsize=9)
    fig.tight_layout()
    return fig


def plot_library_sizes(summary, metadata, condition_col, colors=None):
    """Bar charts of total counts and detected genes per sample."""
    groups, palette = _sample_colors(metadata, summary.index, condition_col, colors)
    bar_colors = [palette[g] for g in groups]

    fig, axs = plt.subplots(1, 2, figsize=(12, 5))
    axs[0].bar(summary.index, summary['total_counts'] / 1e6, color=bar_colors)
    axs[0].set_ylabel('total counts (millions)', fontsize=12)
    axs[1].bar(summary.index, summary['detected_genes'], color=bar_colors)
    axs[1].set_ylabel('detected genes', fontsize=12)

    for ax in axs:
        ax.tick_params(axis='x', rotation=90, labelsize=8)

    handles = [plt.Rectangle((0, 0), 1, 1, color=palette[g]) for g in palette]
    axs[1].legend(handles, list(palette), fontsize=10)
    fig.tight_layout()
    return fig


def plot_pca(scores, explained, metadata, condition_col, colors=None,
             pcs=(1, 2), label_samples=False):
    """
    PCA scatter plot colored by experimental group.

    Args:
        scores (pd.DataFrame): PCA scores (samples x PCs)
        explained (pd.Series): Explained variance ratio per PC
        metadata (pd.DataFrame): Sample metadata indexed by sample
        condition_col (str): Metadata column holding the group
        colors (dict): Group -> color
        pcs (tuple): 1-based PCs to plot
        label_samples (bool): Annotate points with sample names

    Returns:
        matplotlib.figure.Figure
    """
    pc_x, pc_y = f'PC{pcs[0]}', f'PC{pcs[1]}'
    groups, palette = _sample_colors(metadata, scores.index, condition_col, colors)

    fig, ax = plt.subplots(figsize=(8, 6))
    for group, color in palette.items():
        mask = (groups == group).to_numpy()
        if not mask.any():
            continue
        ax.scatter(scores.loc[mask, pc_x], scores.loc[mask, pc_y],
                   color=color, alpha=0.8, lw=2, label=group)

    if label_samples:
        for sample in scores.index:
            ax.annotate(sample, (scores.loc[sample, pc_x], scores.loc[sample, pc_y]),
                        fontsize=8)

    ax.legend(loc='best', shadow=False, scatterpoints=1, fontsize=12)
    ax.set_xlabel(f'{pc_x} ({100 * explained[pc_x]:.1f}%)', fontsize=14)
    ax.set_ylabel(f'{pc_y} ({100 * explained[pc_y]:.1f}%)', fontsize=14)
    fig.tight_layout()
    return fig


def plot_scree(explained):
    """Explained variance per principal component."""
    fig, ax = plt.subplots(figsize=(7, 4))
    ax.bar(explained.index, 100 * explained.values, color='steelblue')
    ax.plot(explained.index, 100 * explained.cumsum().values, color='black',
            marker='o', label='cumulative')
    ax.set_ylabel('% variance explained', fontsize=12)
    ax.legend()
    fig.tight_layout()
    return fig


def plot_sample_correlation(corr, metadata, condition_col, colors=None):
    """
    Clustered heatmap of sample-sample correlations.

    Returns:
        matplotlib.figure.Figure: The clustermap figure
    """
    groups, palette = _sample_colors(metadata, corr.index, condition_col, colors)
    row_colors = groups.map(palette)

    grid = sns.clustermap(corr, cmap='viridis', row_colors=row_colors,
                          col_colors=row_colors, figsize=(9, 9),
                          xticklabels=True, yticklabels=True)
    return grid.figure


def plot_volcano(res, alpha, l2fc=0, symbols=None, n_labels=10):
    """
    Volcano plot of DESeq2 results.

    Args:
        res (pd.DataFrame): DESeq2 results
        alpha (float): Adjusted p-value threshold
        l2fc (float): Log2 fold change threshold
        symbols (pd.Series): Optional gene ID -> symbol mapping for labels
        n_labels (int): Number of top genes to annotate

    Returns:
        matplotlib.figure.Figure
    """
    df = res.dropna(subset=['pvalue']).copy()
    df['neglog10p'] = -np.log10(df['pvalue'].clip(lower=1e-300))
    sig = (df['padj'] < alpha) & (df['log2FoldChange'].abs() > l2fc)
    up = sig & (df['log2FoldChange'] > 0)
    down = sig & (df['log2FoldChange'] < 0)

    fig, ax = plt.subplots(figsize=(8, 7))
    ax.scatter(df.loc[~sig, 'log2FoldChange'], df.loc[~sig, 'neglog10p'],
               color='lightgrey', s=8, alpha=0.6, label='n.s.')
    ax.scatter(df.loc[up, 'log2FoldChange'], df.loc[up, 'neglog10p'],
               color='red', s=10, label=f'up ({int(up.sum())})')
    ax.scatter(df.loc[down, 'log2FoldChange'], df.loc[down, 'neglog10p'],
               color='navy', s=10, label=f'down ({int(down.sum())})')

    top = df[sig].sort_values('padj').head(n_labels)
    for gene, row in top.iterrows():
        name = symbols.get(gene, gene) if symbols is not None else gene
        ax.annotate(name, (row['log2FoldChange'], row['neglog10p']), fontsize=8)

    ax.set_xlabel('log2 fold change', fontsize=14)
    ax.set_ylabel('-log10 p-value', fontsize=14)
    ax.legend(fontsize=10)
    fig.tight_layout()
    return fig


def plot_ma(res, alpha):
    """MA plot: log2 fold change against mean normalized count."""
    df = res.dropna(subset=['log2FoldChange']).copy()
    sig = (df['padj'] < alpha).fillna(False)

    fig, ax = plt.subplots(figsize=(8, 6))
    ax.scatter(np.log10(df.loc[~sig, 'baseMean'] + 1), df.loc[~sig, 'log2FoldChange'],
               color='lightgrey', s=8, alpha=0.6)
    ax.scatter(np.log10(df.loc[sig, 'baseMean'] + 1), df.loc[sig, 'log2FoldChange'],
               color='red', s=10, label=f'padj < {alpha}')
    ax.axhline(0, color='black', lw=1)
    ax.set_xlabel('log10(baseMean + 1)', fontsize=14)
    ax.set_ylabel('log2 fold change', fontsize=14)
    ax.legend(fontsize=10)
    fig.tight_layout()
    return fig


def plot_top_genes_heatmap(vst, genes, metadata, condition_col, symbols=None,
                           colors=None, cmap='RdBu_r'):
    """
    Heatmap of z-scored VST values for selected genes.

    Args:
        vst (pd.DataFrame): VST matrix (samples x genes)
        genes (list): Gene IDs to plot
        metadata (pd.DataFrame): Sample metadata indexed by sample
        condition_col (str): Metadata column holding the group
        symbols (pd.Series): Optional gene ID -> symbol mapping
        colors (dict): Group -> color
        cmap (str): Colormap name

    Returns:
        matplotlib.figure.Figure
    """
    genes = [g for g in genes if g in vst.columns]
    groups, palette = _sample_colors(metadata, vst.index, condition_col, colors)
    order = groups.sort_values(kind='stable').index

    X = vst.loc[order, genes]
    sd = X.std(axis=0).replace(0, 1)
    Z = ((X - X.mean(axis=0)) / sd).T
    if symbols is not None:
        Z.index = [symbols.get(g, g) for g in Z.index]

    height = max(4, 0.25 * len(genes))
    fig, ax = plt.subplots(figsize=(10, height))
    sns.heatmap(Z, cmap=cmap, center=0, xticklabels=True, yticklabels=True, ax=ax)
    for tick, sample in zip(ax.get_xticklabels(), order):
        tick.set_color(palette[groups[sample]])
    ax.set_xlabel('Samples', fontsize=12)
    ax.set_ylabel('Genes', fontsize=12)
    fig.tight_layout()
    return fig


def plot_enrichment_bar(df, title, top_n=15, term_col='Term',
                        pval_col='Adjusted P-value'):
    """Horizontal bar chart of the most significant enrichment terms."""
    top = df.sort_values(pval_col).head(top_n).iloc[::-1]
    fig, ax = plt.subplots(figsize=(9, max(3, 0.35 * len(top))))
    ax.barh([str(t)[:60] for t in top[term_col]],
            -np.log10(top[pval_col].clip(lower=1e-300)), color='steelblue')
    ax.set_xlabel('-log10 adjusted p-value', fontsize=12)
    ax.set_title(title, fontsize=13)
    fig.tight_layout()
    return fig


def save_figure(fig, path, dpi=PLOT_DPI):
    """Save a figure to disk and close it."""
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    fig.savefig(path, dpi=dpi, bbox_inches='tight')
    plt.close(fig)
    return path
