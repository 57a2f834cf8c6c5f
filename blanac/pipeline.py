"""
End-to-end analysis of one experiment.

Runs the steps in order: expressed-gene filter, DESeq2 and VST,
QC/PCA, then figures. The artifact dictionary returned by
run_analysis() is what utils.store_results() writes to disk and what
the enrichment and report steps read back.
"""

import os
import pandas as pd

from .config import SEED, ALPHA, L2FC, N_HVG, N_PCS, LOWCOUNT, GMM_POSTERIOR_THRESH
from .preprocessing import run_filter_data
from .deseq2_utils import run_full_dgea
from .qc import (
    library_size_summary, run_pca, sample_correlation,
    flag_outlier_samples, pc_condition_association,
)
from . import visualization as viz


def run_analysis(experiment, inputs, alpha=ALPHA, l2fc=L2FC, n_hvg=N_HVG,
                 n_pcs=N_PCS, lowcount=LOWCOUNT,
                 posterior_thresh=GMM_POSTERIOR_THRESH, seed=SEED, n_cpus=None):
    """
    Run filtering, differential expression and QC for one experiment.

    Args:
        experiment (dict): Experiment configuration
        inputs (dict): Output of data_loading.load_experiment
        alpha (float): Adjusted p-value threshold
        l2fc (float): Absolute log2 fold change threshold
        n_hvg (int): Highly variable genes used for PCA
        n_pcs (int): Principal components to compute
        lowcount (tuple): Low-count pre-filter
        posterior_thresh (float): Mixture posterior cutoff
        seed (int): Random seed
        n_cpus (int): CPUs for pydeseq2

    Returns:
        dict: Analysis artifacts
    """
    counts = inputs['counts']
    tpm = inputs['tpm']
    metadata = inputs['metadata']
    symbols = inputs['symbols']
    condition_col = experiment['condition_col']

    print("\n[1/3] Filtering to expressed genes...")
    counts_f, tpm_f, fit = run_filter_data(
        counts, tpm, lowcount=lowcount,
        posterior_thresh=posterior_thresh, seed=seed,
    )

    expressed = pd.DataFrame({
        'gene_name': symbols.reindex(counts_f.index),
        'mean_tpm': tpm_f.mean(axis=1),
        'log2_mean_tpm': fit['log_expr'].reindex(counts_f.index),
        'posterior': fit['posterior'].reindex(counts_f.index),
    })

    print("\n[2/3] Running differential expression...")
    dge = run_full_dgea(counts_f, metadata, experiment, symbols=symbols,
                        alpha=alpha, l2fc=l2fc, n_cpus=n_cpus)

    print("\n[3/3] Running QC...")
    vst = dge['vst']
    library_sizes = library_size_summary(counts)
    pca = run_pca(vst, n_hvg=n_hvg, n_components=n_pcs, seed=seed)
    outliers = flag_outlier_samples(pca['scores'])
    n_flagged = int(outliers['outlier'].sum())
    if n_flagged:
        print(f"  Warning: {n_flagged} samples flagged as PCA outliers: "
              f"{list(outliers.index[outliers['outlier']])}")

    return {
        'experiment': experiment,
        'params': {
            'alpha': alpha,
            'l2fc': l2fc,
            'n_hvg': n_hvg,
            'n_pcs': n_pcs,
            'lowcount': lowcount,
            'posterior_thresh': posterior_thresh,
            'seed': seed,
        },
        'metadata': metadata,
        'symbols': symbols,
        'n_genes_input': counts.shape[0],
        'counts_filtered': counts_f,
        'expressed': expressed,
        'gmm': fit,
        'gmm_threshold': fit['threshold'],
        'vst': vst,
        'hvgs': pca['hvgs'],
        'pca_scores': pca['scores'],
        'pca_explained': pca['explained'],
        'pca_loadings': pca['loadings'],
        'library_sizes': library_sizes,
        'sample_correlation': sample_correlation(vst),
        'outliers': outliers,
        'pc_association': pc_condition_association(pca['scores'], metadata,
                                                   condition_col),
        'dds': dge['dds'],
        'all_results': dge['all_results'],
        'sig': dge['sig'],
        'sig_genes': dge['sig_genes'],
        'upregulated': dge['upregulated'],
        'downregulated': dge['downregulated'],
        'ranking': dge['ranking'],
    }


def save_analysis_figures(artifacts, figures_dir, n_top_genes=50):
    """
    Draw and save the standard QC and DGE figures.

    Args:
        artifacts (dict): Output of run_analysis (or utils.load_results)
        figures_dir (str): Output directory for PNG files
        n_top_genes (int): Genes in the top-gene heatmap

    Returns:
        dict: Figure name -> PNG path
    """
    experiment = artifacts['experiment']
    condition_col = experiment['condition_col']
    colors = experiment['group_colors']
    metadata = artifacts['metadata']
    symbols = artifacts['symbols']
    alpha = artifacts['params']['alpha']

    figures = {
        'expression_mixture': viz.plot_expression_mixture(artifacts['gmm']),
        'library_sizes': viz.plot_library_sizes(
            artifacts['library_sizes'], metadata, condition_col, colors),
        'scree': viz.plot_scree(artifacts['pca_explained']),
        'sample_correlation': viz.plot_sample_correlation(
            artifacts['sample_correlation'], metadata, condition_col, colors),
        'volcano': viz.plot_volcano(
            artifacts['all_results'], alpha, artifacts['params']['l2fc'], symbols),
        'ma': viz.plot_ma(artifacts['all_results'], alpha),
    }

    if artifacts['pca_scores'].shape[1] >= 2:
        figures['pca'] = viz.plot_pca(
            artifacts['pca_scores'], artifacts['pca_explained'], metadata,
            condition_col, colors, label_samples=True)

    top_genes = artifacts['sig_genes'][:n_top_genes]
    if top_genes:
        figures['top_genes_heatmap'] = viz.plot_top_genes_heatmap(
            artifacts['vst'], top_genes, metadata, condition_col, symbols, colors)

    paths = {}
    for name, fig in figures.items():
        paths[name] = viz.save_figure(fig, os.path.join(figures_dir, f'{name}.png'))
    print(f"  Saved {len(paths)} figures to: {figures_dir}")
    return paths
