"""
Quality-control diagnostics for RNA-seq samples.

This module provides:
- Library size and detected-gene summaries
- PCA on highly variable VST genes
- Sample-sample correlation and PCA-based outlier flags
- Association of principal components with the experimental group
"""

import numpy as np
import pandas as pd
from sklearn.decomposition import PCA
import scipy.stats as stats

from .config import SEED, N_HVG, N_PCS, OUTLIER_Z
from .preprocessing import select_hvgs


def library_size_summary(counts, top_n=50):
    """
    Summarize per-sample library composition.

    Args:
        counts (pd.DataFrame): Count matrix (genes x samples)
        top_n (int): Number of most abundant genes for the top-gene fraction

    Returns:
        pd.DataFrame: Per sample 'total_counts', 'detected_genes',
                      'top{n}_fraction'
    """
    totals = counts.sum(axis=0)
    detected = (counts > 0).sum(axis=0)

    top_fracs = {}
    for sample in counts.columns:
        top = counts[sample].nlargest(top_n).sum()
        top_fracs[sample] = top / totals[sample] if totals[sample] > 0 else np.nan

    return pd.DataFrame({
        'total_counts': totals,
        'detected_genes': detected,
        f'top{top_n}_fraction': pd.Series(top_fracs),
    })


def run_pca(vst, n_hvg=N_HVG, n_components=N_PCS, seed=SEED):
    """
    Run PCA on the most variable genes of a VST matrix.

    Data are centred but not scaled.

    Args:
        vst (pd.DataFrame): VST matrix (samples x genes)
        n_hvg (int): Number of highly variable genes to use
        n_components (int): Number of principal components
        seed (int): Random seed

    Returns:
        dict: 'scores' (samples x PCs), 'explained' (Series of variance
              ratios), 'loadings' (genes x PCs), 'hvgs' (gene list)
    """
    hvgs = select_hvgs(vst, n_hvg)
    X = vst[hvgs].to_numpy()

    n_components = min(n_components, X.shape[0], X.shape[1])
    pca = PCA(n_components=n_components, random_state=seed)
    X_r = pca.fit_transform(X)

    pc_names = [f'PC{i + 1}' for i in range(n_components)]
    print(f"  PCA on {len(hvgs)} HVGs, explained variance ratio: "
          f"{np.round(pca.explained_variance_ratio_[:3], 3)}")

    return {
        'scores': pd.DataFrame(X_r, index=vst.index, columns=pc_names),
        'explained': pd.Series(pca.explained_variance_ratio_, index=pc_names),
        'loadings': pd.DataFrame(pca.components_.T, index=hvgs, columns=pc_names),
        'hvgs': hvgs,
    }


def sample_correlation(vst):
    """Pearson correlation between samples of a VST matrix (samples x genes)."""
    return vst.T.corr(method='pearson')


def flag_outlier_samples(scores, z_thresh=OUTLIER_Z):
    """
    Flag samples far from the PC1/PC2 centroid.

    Args:
        scores (pd.DataFrame): PCA scores (samples x PCs)
        z_thresh (float): |z| threshold on the centroid distance

    Returns:
        pd.DataFrame: 'distance', 'z' and boolean 'outlier' per sample
    """
    pcs = scores.iloc[:, :2]
    dist = np.sqrt(((pcs - pcs.mean()) ** 2).sum(axis=1))
    sd = dist.std(ddof=1)
    z = (dist - dist.mean()) / sd if sd > 0 else dist * 0.0

    return pd.DataFrame({
        'distance': dist,
        'z': z,
        'outlier': z.abs() > z_thresh,
    })


def pc_condition_association(scores, metadata, condition_col):
    """
    Test each principal component for association with the group.

    Uses a Kruskal-Wallis test of PC scores across group levels.

    Args:
        scores (pd.DataFrame): PCA scores (samples x PCs)
        metadata (pd.DataFrame): Sample metadata indexed by sample
        condition_col (str): Metadata column holding the group

    Returns:
        pd.DataFrame: 'statistic' and 'pvalue' per PC
    """
    groups = metadata.loc[scores.index, condition_col].astype(str)
    rows = {}

    for pc in scores.columns:
        values = [scores.loc[groups == level, pc].to_numpy()
                  for level in sorted(groups.unique())]
        values = [v for v in values if len(v) > 0]
        if len(values) < 2:
            rows[pc] = {'statistic': np.nan, 'pvalue': np.nan}
            continue
        try:
            result = stats.kruskal(*values)
            rows[pc] = {'statistic': result.statistic, 'pvalue': result.pvalue}
        except ValueError:
            # All values identical
            rows[pc] = {'statistic': np.nan, 'pvalue': np.nan}

    return pd.DataFrame.from_dict(rows, orient='index')
