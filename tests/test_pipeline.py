import os

import pytest

from blanac.config import get_experiment_by_name, EXPERIMENTS
from blanac.pipeline import save_analysis_figures
from blanac.utils import store_results, load_results, package_versions


def test_get_experiment_by_name():
    assert get_experiment_by_name('glut')['treatment'] == 'TeLC'
    assert {e['name'] for e in EXPERIMENTS} == {'css', 'glut'}
    with pytest.raises(ValueError):
        get_experiment_by_name('unknown')


def test_analysis_artifacts(analysis):
    for key in ('expressed', 'vst', 'pca_scores', 'library_sizes', 'all_results',
                'sig', 'upregulated', 'downregulated', 'outliers', 'pc_association'):
        assert key in analysis

    assert analysis['n_genes_input'] == 300
    assert set(analysis['expressed'].index) == set(analysis['counts_filtered'].index)
    assert analysis['params']['alpha'] == 0.05


def test_store_and_load_results(analysis, tmp_path):
    store_results(analysis, str(tmp_path))

    for name in ('expressed_genes.csv', 'vst.csv', 'pca_scores.csv', 'dge_all.csv',
                 'dge_sig.csv', 'dge_up.csv', 'dge_down.csv', 'analysis.pkl'):
        assert os.path.exists(tmp_path / name)

    loaded = load_results(str(tmp_path))
    assert 'dds' not in loaded
    assert loaded['sig_genes'] == analysis['sig_genes']


def test_load_results_missing(tmp_path):
    with pytest.raises(FileNotFoundError, match='02_run_analysis'):
        load_results(str(tmp_path))


def test_save_analysis_figures(analysis, tmp_path):
    paths = save_analysis_figures(analysis, str(tmp_path / 'figures'), n_top_genes=10)

    for name in ('expression_mixture', 'library_sizes', 'pca', 'scree',
                 'sample_correlation', 'volcano', 'ma', 'top_genes_heatmap'):
        assert os.path.exists(paths[name])


def test_package_versions_reports_missing():
    versions = package_versions(['pandas', 'surely-not-a-real-package'])
    assert versions['surely-not-a-real-package'] == 'not installed'
    assert versions['pandas'] != 'not installed'
