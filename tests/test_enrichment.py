import pandas as pd
import pytest

from blanac import enrichment
from blanac.enrichment import (
    run_enrichr, run_gprofiler, dge_gene_lists, run_enrichment_for_dge,
    enrichment_to_frames,
)


class FakeEnrichr:
    def __init__(self, library, genes):
        self.results = pd.DataFrame({
            'Term': [f'{library} term'],
            'Adjusted P-value': [0.001],
            'Genes': [';'.join(genes)],
        })


class FakeGProfiler:
    calls = []

    def __init__(self, return_dataframe=True):
        assert return_dataframe

    def profile(self, **kwargs):
        FakeGProfiler.calls.append(kwargs)
        return pd.DataFrame({
            'source': ['GO:BP'],
            'name': ['synaptic signaling'],
            'p_value': [0.01],
        })


@pytest.fixture
def fake_services(monkeypatch):
    enrichr_calls = []

    def fake_enrichr(gene_list, gene_sets, organism, background, outdir):
        enrichr_calls.append({'genes': gene_list, 'library': gene_sets[0],
                              'background': background})
        return FakeEnrichr(gene_sets[0], gene_list)

    FakeGProfiler.calls = []
    monkeypatch.setattr(enrichment.gp, 'enrichr', fake_enrichr)
    monkeypatch.setattr(enrichment, 'GProfiler', FakeGProfiler)
    return enrichr_calls


def test_run_enrichr_concatenates_libraries(fake_services):
    res = run_enrichr(['Fos', 'Arc', 'Egr1', 'Fos'], libraries=['LibA', 'LibB'])

    assert list(res['Gene_set']) == ['LibA', 'LibB']
    assert fake_services[0]['genes'] == ['Arc', 'Egr1', 'Fos']


def test_run_enrichr_skips_short_lists(fake_services):
    assert run_enrichr(['Fos', 'Arc'], libraries=['LibA']).empty
    assert fake_services == []


def test_run_enrichr_survives_failed_library(monkeypatch):
    def flaky(gene_list, gene_sets, organism, background, outdir):
        if gene_sets[0] == 'Bad':
            raise ConnectionError('service unavailable')
        return FakeEnrichr(gene_sets[0], gene_list)

    monkeypatch.setattr(enrichment.gp, 'enrichr', flaky)

    res = run_enrichr(['Fos', 'Arc', 'Egr1'], libraries=['Bad', 'Good'])

    assert list(res['Gene_set']) == ['Good']


def test_run_gprofiler_uses_custom_background(fake_services):
    res = run_gprofiler(['Fos', 'Arc', 'Egr1'], background=['Fos', 'Arc', 'Egr1', 'Actb'])

    call = FakeGProfiler.calls[-1]
    assert call['domain_scope'] == 'custom'
    assert call['background'] == ['Actb', 'Arc', 'Egr1', 'Fos']
    assert call['organism'] == 'mmusculus'
    assert res.loc[0, 'name'] == 'synaptic signaling'


def test_run_gprofiler_failure_returns_empty(monkeypatch):
    class Broken:
        def __init__(self, return_dataframe=True):
            pass

        def profile(self, **kwargs):
            raise ConnectionError('timeout')

    monkeypatch.setattr(enrichment, 'GProfiler', Broken)
    assert run_gprofiler(['Fos', 'Arc', 'Egr1']).empty


def test_dge_gene_lists_maps_symbols():
    dge = {'upregulated': ['g1'], 'downregulated': ['g2'], 'sig_genes': ['g1', 'g2']}
    lists = dge_gene_lists(dge, pd.Series({'g1': 'Fos'}))

    assert lists == {'up': ['Fos'], 'down': ['g2'], 'all': ['Fos', 'g2']}


def test_run_enrichment_for_dge_and_flatten(fake_services):
    dge = {
        'upregulated': ['g1', 'g2', 'g3'],
        'downregulated': ['g4'],
        'sig_genes': ['g1', 'g2', 'g3', 'g4'],
    }
    symbols = pd.Series({f'g{i}': f'Gene{i}' for i in range(1, 10)})

    results = run_enrichment_for_dge(dge, symbols, background=list(symbols.index),
                                     libraries=['LibA'])

    assert set(results) == {'up', 'down', 'all'}
    assert results['down']['enrichr'].empty
    assert FakeGProfiler.calls[0]['background'][0] == 'Gene1'

    frames = enrichment_to_frames(results)
    assert set(frames['enrichr']['list']) == {'up', 'all'}
    assert set(frames['gprofiler']['list']) == {'up', 'all'}
