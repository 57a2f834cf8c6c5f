import numpy as np
import pandas as pd
import pytest

from blanac.deseq2_utils import (
    prepare_counts, build_deseq_dataset, get_sig_genes, get_dge_ranked_genes,
    annotate_results, run_full_dgea,
)


def test_prepare_counts_transposes_and_coerces():
    counts = pd.DataFrame({'s1': [1.6, np.nan], 's2': [-2.0, 7.0]}, index=['g1', 'g2'])

    prepared = prepare_counts(counts)

    assert list(prepared.index) == ['s1', 's2']
    assert list(prepared.columns) == ['g1', 'g2']
    assert prepared.loc['s1', 'g1'] == 2
    assert prepared.loc['s1', 'g2'] == 0
    assert prepared.loc['s2', 'g1'] == 0
    assert prepared.dtypes.apply(lambda d: np.issubdtype(d, np.integer)).all()


def test_build_dataset_rejects_unknown_reference(simulated):
    with pytest.raises(ValueError, match='Reference level'):
        build_deseq_dataset(simulated['counts'], simulated['metadata'],
                            '~condition', 'condition', 'sham')


def test_build_dataset_rejects_missing_column(simulated):
    with pytest.raises(ValueError, match='genotype'):
        build_deseq_dataset(simulated['counts'], simulated['metadata'],
                            '~genotype', 'genotype', 'wt')


def test_get_sig_genes_thresholds():
    res = pd.DataFrame({
        'log2FoldChange': [2.0, -1.5, 0.2, 3.0],
        'padj': [0.001, 0.01, 0.002, np.nan],
    }, index=['a', 'b', 'c', 'd'])

    assert list(get_sig_genes(res, pval=0.05, l2fc=0).index) == ['a', 'c', 'b']
    assert list(get_sig_genes(res, pval=0.05, l2fc=1).index) == ['a', 'b']


def test_ranked_genes_drop_nan():
    res = pd.DataFrame({'stat': [1.0, np.nan, 5.0, -3.0]}, index=['a', 'b', 'c', 'd'])
    assert list(get_dge_ranked_genes(res).index) == ['c', 'a', 'd']


def test_annotate_results_falls_back_to_id():
    res = pd.DataFrame({'padj': [0.1, 0.2]}, index=['g1', 'g2'])
    out = annotate_results(res, pd.Series({'g1': 'Fos'}))
    assert list(out['gene_name']) == ['Fos', 'g2']


def test_full_dgea_recovers_induced_genes(analysis, de_genes):
    up = set(analysis['upregulated'])

    assert len(up & set(de_genes)) >= 18
    assert not set(analysis['downregulated']) & set(de_genes)
    assert (analysis['all_results'].loc[de_genes, 'log2FoldChange'] > 1).mean() > 0.9


def test_full_dgea_results_layout(analysis):
    res = analysis['all_results']

    for col in ('gene_name', 'baseMean', 'log2FoldChange', 'lfcSE', 'stat',
                'pvalue', 'padj'):
        assert col in res.columns
    assert (analysis['sig']['padj'] < 0.05).all()
    assert analysis['sig']['padj'].is_monotonic_increasing


def test_vst_layout(analysis):
    vst = analysis['vst']

    assert list(vst.index) == list(analysis['metadata'].index)
    assert set(vst.columns) == set(analysis['counts_filtered'].index)
    assert np.isfinite(vst.to_numpy()).all()


def test_build_dataset_rejects_unknown_treatment(simulated):
    with pytest.raises(ValueError, match="Level 'sham'"):
        build_deseq_dataset(simulated['counts'], simulated['metadata'],
                            '~condition', 'condition', 'control', treatment='sham')


def test_get_results_rejects_unknown_treatment(simulated, experiment):
    experiment = dict(experiment, treatment='sham')
    with pytest.raises(ValueError, match='sham'):
        run_full_dgea(simulated['counts'], simulated['metadata'], experiment, n_cpus=1)
