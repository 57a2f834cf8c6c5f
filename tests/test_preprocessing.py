import numpy as np
import pandas as pd
import pytest

from blanac.preprocessing import (
    drop_nans, filterGenesByPercentLowCount, fit_expression_mixture,
    filter_expressed_genes, select_hvgs, run_filter_data,
)


def test_drop_nans():
    df = pd.DataFrame({'a': [1, np.nan, 3], 'b': [1, 2, 3]}, index=['g1', 'g2', 'g3'])
    assert list(drop_nans(df).index) == ['g1', 'g3']


def test_low_count_filter():
    df = pd.DataFrame({
        's1': [0, 50, 0],
        's2': [0, 60, 20],
        's3': [1, 70, 30],
        's4': [0, 80, 0],
    }, index=['g1', 'g2', 'g3'])

    kept = filterGenesByPercentLowCount(df, n=10, p=0.5)

    assert list(kept.index) == ['g2', 'g3']
    assert filterGenesByPercentLowCount(df, n=0, p=0.5).equals(df)


def test_mixture_separates_expressed_genes(simulated, low_genes):
    fit = fit_expression_mixture(simulated['tpm'])

    expressed = set(fit['expressed'])
    high_genes = set(simulated['tpm'].index[:200])

    assert len(expressed & high_genes) >= 190
    assert len(expressed & set(low_genes)) < 5
    assert fit['threshold'] == pytest.approx(fit['log_expr'][list(expressed)].min())
    assert fit['posterior'].between(0, 1).all()


def test_mixture_excludes_all_zero_genes():
    rng = np.random.default_rng(1)
    tpm = pd.DataFrame(
        np.vstack([rng.lognormal(6, 1, (50, 4)), rng.uniform(0, 2, (50, 4)),
                   np.zeros((5, 4))]),
        index=[f'g{i}' for i in range(105)],
    )

    fit = fit_expression_mixture(tpm)

    zeros = {f'g{i}' for i in range(100, 105)}
    assert not zeros & set(fit['expressed'])
    assert not zeros & set(fit['log_expr'].index)


def test_mixture_needs_enough_genes():
    tpm = pd.DataFrame({'s1': [5.0, 0.0], 's2': [3.0, 0.0]}, index=['g1', 'g2'])
    with pytest.raises(ValueError):
        fit_expression_mixture(tpm)


def test_filter_expressed_genes_subsets_both_matrices(simulated):
    counts, tpm, fit = filter_expressed_genes(simulated['counts'], simulated['tpm'])

    assert list(counts.index) == list(tpm.index)
    assert set(counts.index) == set(fit['expressed'])


def test_select_hvgs():
    vst = pd.DataFrame({
        'flat': [5.0, 5.0, 5.0, 5.0],
        'wide': [0.0, 10.0, 0.0, 10.0],
        'mid': [4.0, 6.0, 4.0, 6.0],
    })
    assert select_hvgs(vst, 2) == ['wide', 'mid']
    assert set(select_hvgs(vst, 10)) == {'flat', 'wide', 'mid'}


def test_run_filter_data(simulated):
    counts, tpm, fit = run_filter_data(simulated['counts'], simulated['tpm'])
    assert 190 <= counts.shape[0] <= 205
    assert counts.shape[1] == simulated['counts'].shape[1]


def test_mixture_keeps_genes_above_high_component():
    # Broad low component, narrow high component, a few very high genes
    rng = np.random.default_rng(7)
    log_expr = np.concatenate([
        rng.normal(2, 2, 3000).clip(min=0.1),
        rng.normal(7, 0.5, 3000),
        [11.0, 12.0, 13.0],
    ])
    genes = [f'g{i}' for i in range(len(log_expr))]
    tpm = pd.DataFrame(np.repeat((2 ** log_expr - 1)[:, None], 4, axis=1),
                       index=genes, columns=['s1', 's2', 's3', 's4'])

    fit = fit_expression_mixture(tpm)

    expressed = set(fit['expressed'])
    assert set(genes[-3:]) <= expressed
    above = fit['log_expr'][fit['log_expr'] >= fit['threshold']].index
    assert set(above) == expressed


def test_mixture_degenerate_keeps_all():
    tpm = pd.DataFrame(10.0, index=[f'g{i}' for i in range(50)],
                       columns=['s1', 's2', 's3', 's4'])

    fit = fit_expression_mixture(tpm)

    assert len(fit['expressed']) == 50
    assert fit['threshold'] == pytest.approx(np.log2(11.0))
