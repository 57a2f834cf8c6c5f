import numpy as np
import pandas as pd
import pytest

from blanac.config import EXPERIMENT_CSS


N_HIGH = 200
N_LOW = 100
N_DE = 20
N_PER_GROUP = 4


def _simulate(seed=0):
    rng = np.random.default_rng(seed)
    samples = [f'ctl{i}' for i in range(1, N_PER_GROUP + 1)] + \
              [f'css{i}' for i in range(1, N_PER_GROUP + 1)]
    genes = [f'ENSMUSG{i:011d}' for i in range(N_HIGH + N_LOW)]

    base = np.concatenate([
        rng.lognormal(mean=6.0, sigma=0.8, size=N_HIGH),
        rng.uniform(0.05, 0.5, size=N_LOW),
    ])
    size_factors = rng.uniform(0.8, 1.2, size=len(samples))

    mu = np.outer(base, size_factors)
    # First N_DE genes are 4x higher in CSS
    mu[:N_DE, N_PER_GROUP:] *= 4.0

    dispersion = 0.05
    n = 1.0 / dispersion
    p = n / (n + mu)
    counts = rng.negative_binomial(n, p)

    counts = pd.DataFrame(counts, index=genes, columns=samples)
    counts.index.name = 'gene_id'
    tpm = counts / counts.sum(axis=0) * 1e6

    metadata = pd.DataFrame({
        'condition': ['control'] * N_PER_GROUP + ['CSS'] * N_PER_GROUP,
        'batch': ['a', 'b'] * N_PER_GROUP,
    }, index=pd.Index(samples, name='sample'))

    symbols = pd.Series([f'Gene{i}' for i in range(len(genes))], index=genes,
                        name='gene_name')
    return counts, tpm, metadata, symbols


@pytest.fixture(scope='session')
def simulated():
    counts, tpm, metadata, symbols = _simulate()
    return {
        'counts': counts,
        'tpm': tpm,
        'metadata': metadata,
        'symbols': symbols,
    }


@pytest.fixture(scope='session')
def de_genes(simulated):
    return list(simulated['counts'].index[:N_DE])


@pytest.fixture(scope='session')
def low_genes(simulated):
    return list(simulated['counts'].index[N_HIGH:])


@pytest.fixture
def experiment():
    return dict(EXPERIMENT_CSS)


@pytest.fixture
def data_dir(tmp_path, simulated, experiment):
    """Input files laid out as the pipeline expects them."""
    counts = simulated['counts'].copy()
    counts.insert(0, 'gene_name', simulated['symbols'])
    counts.to_csv(tmp_path / experiment['counts_file'])

    simulated['tpm'].to_csv(tmp_path / experiment['tpm_file'])
    simulated['metadata'].reset_index().to_csv(
        tmp_path / experiment['metadata_file'], index=False
    )
    return tmp_path


@pytest.fixture(scope='session')
def analysis(simulated):
    """Full analysis run on the simulated data, shared across tests."""
    from blanac.pipeline import run_analysis

    return run_analysis(dict(EXPERIMENT_CSS), simulated, n_hvg=100, n_pcs=5,
                        n_cpus=1)
