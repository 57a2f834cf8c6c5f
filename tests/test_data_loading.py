import pandas as pd
import pytest

from blanac.data_loading import (
    read_expression_matrix, read_sample_metadata, align_samples, load_experiment,
)


def test_read_expression_matrix_splits_symbols(data_dir, experiment, simulated):
    counts, symbols = read_expression_matrix(str(data_dir / experiment['counts_file']))

    assert list(counts.columns) == list(simulated['counts'].columns)
    assert 'gene_name' not in counts.columns
    assert counts.index.name == 'gene_id'
    assert symbols['ENSMUSG00000000000'] == 'Gene0'


def test_read_expression_matrix_without_symbols_uses_ids(data_dir, experiment):
    tpm, symbols = read_expression_matrix(str(data_dir / experiment['tpm_file']))

    assert (symbols.index == symbols.values).all()
    assert tpm.shape == (300, 8)


def test_read_expression_matrix_tsv(tmp_path):
    path = tmp_path / 'counts.tsv'
    path.write_text('gene\tgene_name\ts1\ts2\ng1\tActb\t10\t20\ng2\t\t0\t5\n')

    counts, symbols = read_expression_matrix(str(path))

    assert counts.loc['g1', 's2'] == 20
    assert symbols['g1'] == 'Actb'
    # Missing symbols fall back to the gene ID
    assert symbols['g2'] == 'g2'


def test_read_sample_metadata_requires_columns(tmp_path):
    path = tmp_path / 'meta.csv'
    pd.DataFrame({'sample': ['a'], 'group': ['x']}).to_csv(path, index=False)

    with pytest.raises(ValueError, match='condition'):
        read_sample_metadata(str(path), 'condition')

    pd.DataFrame({'name': ['a'], 'condition': ['x']}).to_csv(path, index=False)
    with pytest.raises(ValueError, match='sample'):
        read_sample_metadata(str(path), 'condition')


def test_align_samples_keeps_shared_sorted(simulated):
    counts = simulated['counts'].drop(columns=['css4'])
    tpm = simulated['tpm'].drop(columns=['ctl1'])
    metadata = simulated['metadata'].iloc[::-1]

    counts_a, tpm_a, meta_a = align_samples(counts, tpm, metadata)

    expected = sorted(set(simulated['counts'].columns) - {'css4', 'ctl1'})
    assert list(counts_a.columns) == expected
    assert list(tpm_a.columns) == expected
    assert list(meta_a.index) == expected


def test_align_samples_no_overlap(simulated):
    tpm = simulated['tpm'].rename(columns=lambda s: s + '_x')
    with pytest.raises(ValueError, match='No samples shared'):
        align_samples(simulated['counts'], tpm, simulated['metadata'])


def test_load_experiment(data_dir, experiment):
    inputs = load_experiment(experiment, str(data_dir))

    assert set(inputs) == {'counts', 'tpm', 'metadata', 'symbols'}
    assert list(inputs['counts'].columns) == list(inputs['metadata'].index)
    assert inputs['symbols'].index.equals(inputs['counts'].index)
    assert set(inputs['metadata']['condition']) == {'control', 'CSS'}


def test_read_sample_metadata_drops_missing_condition(tmp_path, capsys):
    path = tmp_path / 'meta.csv'
    path.write_text('sample,condition\nctl1,control\nctl2,\ncss1,CSS\n')

    metadata = read_sample_metadata(str(path), 'condition')

    assert list(metadata.index) == ['ctl1', 'css1']
    assert set(metadata['condition']) == {'control', 'CSS'}
    assert "Dropping 1 samples with no condition: ['ctl2']" in capsys.readouterr().out


def test_align_samples_reports_unshared_genes(simulated, capsys):
    counts = simulated['counts'].iloc[:-3]
    tpm = simulated['tpm'].iloc[2:]

    counts_a, tpm_a, _ = align_samples(counts, tpm, simulated['metadata'])

    out = capsys.readouterr().out
    assert 'Dropping 2 genes only in counts' in out
    assert 'Dropping 3 genes only in TPM' in out
    assert list(counts_a.index) == list(tpm_a.index)
    assert counts_a.shape[0] == simulated['counts'].shape[0] - 5
