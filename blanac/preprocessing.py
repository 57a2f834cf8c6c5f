"""
Preprocessing utilities for gene expression data.

This module provides functions for:
- Gene filtering (NaN, low-count)
- Expressed-gene selection with a two-component Gaussian mixture
- Highly variable gene selection
"""

import numpy as np
import pandas as pd
from sklearn.mixture import GaussianMixture
import warnings
warnings.filterwarnings('ignore')

from .config import (
    SEED, GMM_N_COMPONENTS, GMM_PSEUDOCOUNT, GMM_POSTERIOR_THRESH,
)


def drop_nans(df):
    """
    Remove genes with NaN values from dataframe.

    Args:
        df (pd.DataFrame): Input dataframe (genes x samples)

    Returns:
        pd.DataFrame: Dataframe with NaN rows removed
    """
    return df.dropna(inplace=False)


def filterGenesByPercentLowCount(df, n=0, p=0):
    """
    Filter genes with low counts across a percentage of samples.

    Removes genes that have counts < n in more than p% of samples.

    Args:
        df (pd.DataFrame): Count matrix (genes x samples)
        n (int): Count threshold (genes with counts < n are considered low)
        p (float): Proportion of samples threshold (0-1)

    Returns:
        pd.DataFrame: Filtered dataframe
    """
    if n == 0 or p == 0:
        return df

    low_count_mask = (df < n).sum(axis='columns') <= int(p * len(df.columns))
    return df[low_count_mask]


def fit_expression_mixture(tpm, n_components=GMM_N_COMPONENTS, seed=SEED,
                           posterior_thresh=GMM_POSTERIOR_THRESH):
    """
    Fit a Gaussian mixture to gene-level log expression.

    Each gene is summarized by log2(mean TPM + 1). The component with the
    highest mean is taken as the "expressed" population. The lowest
    log expression whose posterior for it reaches posterior_thresh is the
    threshold, and every gene at or above it is called expressed.
    Genes with zero mean TPM are left out of the fit and are never
    expressed.

    Args:
        tpm (pd.DataFrame): TPM matrix (genes x samples)
        n_components (int): Number of mixture components
        seed (int): Random seed
        posterior_thresh (float): Posterior cutoff for the expressed component

    Returns:
        dict: Mixture fit with keys
            - 'model': fitted GaussianMixture
            - 'log_expr': pd.Series of log2(mean TPM + 1) for fitted genes
            - 'posterior': pd.Series, posterior of the expressed component
            - 'expressed': list of expressed gene IDs
            - 'threshold': lowest log_expr among expressed genes
            - 'high_component': index of the expressed component
    """
    mean_tpm = tpm.mean(axis=1)
    nonzero = mean_tpm[mean_tpm > 0]
    if len(nonzero) < n_components:
        raise ValueError(
            f"Need at least {n_components} expressed genes to fit the "
            f"mixture, got {len(nonzero)}"
        )

    log_expr = np.log2(nonzero + GMM_PSEUDOCOUNT)
    X = log_expr.to_numpy().reshape(-1, 1)

    gmm = GaussianMixture(n_components=n_components, random_state=seed)
    gmm.fit(X)

    means = gmm.means_.ravel()
    high = int(np.argmax(means))

    if np.allclose(means, means[high]):
        # Components collapsed onto one population
        posterior = pd.Series(1.0, index=log_expr.index)
    else:
        posterior = pd.Series(gmm.predict_proba(X)[:, high], index=log_expr.index)

    # The posterior falls again in the far tail when the low component is
    # wider, so the cut is one-sided from the lowest passing gene.
    passing = log_expr[posterior >= posterior_thresh]
    if len(passing):
        threshold = float(passing.min())
        expressed = log_expr[log_expr >= threshold].index
    else:
        threshold = np.nan
        expressed = log_expr.index[:0]

    print(f"  GMM means (log2 TPM): {np.round(np.sort(means), 3)}")
    print(f"  Expressed genes: {len(expressed)} / {len(tpm)} "
          f"(threshold log2(TPM+1) >= {threshold:.3f})")

    return {
        'model': gmm,
        'log_expr': log_expr,
        'posterior': posterior,
        'expressed': list(expressed),
        'threshold': threshold,
        'high_component': high,
    }


def filter_expressed_genes(counts, tpm, posterior_thresh=GMM_POSTERIOR_THRESH,
                           seed=SEED):
    """
    Keep only genes called expressed by the mixture model.

    Args:
        counts (pd.DataFrame): Count matrix (genes x samples)
        tpm (pd.DataFrame): TPM matrix (genes x samples)
        posterior_thresh (float): Posterior cutoff for the expressed component
        seed (int): Random seed

    Returns:
        tuple: (counts, tpm, fit)
    """
    genes = counts.index.intersection(tpm.index)
    fit = fit_expression_mixture(tpm.loc[genes], seed=seed,
                                 posterior_thresh=posterior_thresh)
    expressed = [g for g in fit['expressed'] if g in counts.index]
    return counts.loc[expressed], tpm.loc[expressed], fit


def select_hvgs(vst, n):
    """
    Select the most variable genes.

    Args:
        vst (pd.DataFrame): VST matrix (samples x genes)
        n (int): Number of genes to keep

    Returns:
        list: Gene IDs ordered by decreasing variance
    """
    variances = vst.var(axis=0).sort_values(ascending=False)
    if n >= len(variances):
        return list(variances.index)
    return list(variances.index[:n])


def run_filter_data(counts, tpm, lowcount=(0, 0),
                    posterior_thresh=GMM_POSTERIOR_THRESH, seed=SEED):
    """
    Execute the complete gene filtering pipeline.

    Pipeline order:
    1. Drop NaN values
    2. Filter low-count genes
    3. Keep genes in the expressed mixture component

    Args:
        counts (pd.DataFrame): Count matrix (genes x samples)
        tpm (pd.DataFrame): TPM matrix (genes x samples)
        lowcount (tuple): (count_threshold, proportion_threshold)
        posterior_thresh (float): Posterior cutoff for the expressed component
        seed (int): Random seed

    Returns:
        tuple: (counts, tpm, fit)
    """
    print(f"  counts shape before filtering: {counts.shape}")

    counts = drop_nans(counts)
    tpm = tpm.loc[tpm.index.intersection(counts.index)].fillna(0)
    print(f"  counts shape after filter NaNs: {counts.shape}")

    counts = filterGenesByPercentLowCount(counts, n=lowcount[0], p=lowcount[1])
    tpm = tpm.loc[tpm.index.intersection(counts.index)]
    print(f"  counts shape after filter lowcount={lowcount}: {counts.shape}")

    counts, tpm, fit = filter_expressed_genes(
        counts, tpm, posterior_thresh=posterior_thresh, seed=seed
    )
    print(f"  counts shape after filter non-expressed: {counts.shape}")

    if counts.shape[0] == 0:
        raise ValueError("No genes remaining after filtering!")

    return counts, tpm, fit
