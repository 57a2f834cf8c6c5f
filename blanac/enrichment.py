"""
Pathway enrichment of differentially expressed genes.

Gene lists are submitted to two web services:
- Enrichr, through gseapy
- g:Profiler, through gprofiler-official, against the expressed-gene
  background

A failed request is reported and yields an empty result so that the
rest of the analysis still runs.
"""

import pandas as pd
import gseapy as gp
from gprofiler import GProfiler

from .config import (
    ENRICHR_LIBRARIES, ENRICHR_ORGANISM, GPROFILER_ORGANISM,
    GPROFILER_SOURCES, ENRICHMENT_ALPHA, MIN_GENES_ENRICHMENT,
)


GENE_LISTS = ('up', 'down', 'all')
SERVICES = ('enrichr', 'gprofiler')


def run_enrichr(gene_list, libraries=None, organism=ENRICHR_ORGANISM,
                background=None):
    """
    Run over-representation analysis with Enrichr.

    Args:
        gene_list (list): Gene symbols
        libraries (list): Enrichr library names
        organism (str): Enrichr organism
        background (list): Optional background gene symbols

    Returns:
        pd.DataFrame: Concatenated results with a 'Gene_set' column
    """
    libraries = ENRICHR_LIBRARIES if libraries is None else libraries
    gene_list = sorted(set(gene_list))

    if len(gene_list) < MIN_GENES_ENRICHMENT:
        print(f"  Warning: Only {len(gene_list)} genes, skipping Enrichr")
        return pd.DataFrame()

    frames = []
    for library in libraries:
        print(f"  Running Enrichr {library}...")
        try:
            enr = gp.enrichr(
                gene_list=gene_list,
                gene_sets=[library],
                organism=organism,
                background=background,
                outdir=None,
            )
        except Exception as e:
            print(f"    Enrichr {library} failed: {e}")
            continue

        res = enr.results
        if res is None or len(res) == 0:
            continue
        res = res.copy()
        res['Gene_set'] = library
        frames.append(res)

    if not frames:
        return pd.DataFrame()
    return pd.concat(frames, ignore_index=True)


def run_gprofiler(gene_list, background=None, organism=GPROFILER_ORGANISM,
                  sources=None, threshold=ENRICHMENT_ALPHA):
    """
    Run over-representation analysis with g:Profiler.

    Args:
        gene_list (list): Gene symbols
        background (list): Background gene symbols (the expressed genes)
        organism (str): g:Profiler organism ID
        sources (list): Annotation sources
        threshold (float): Significance threshold (g:SCS corrected)

    Returns:
        pd.DataFrame: g:Profiler results
    """
    sources = GPROFILER_SOURCES if sources is None else sources
    gene_list = sorted(set(gene_list))

    if len(gene_list) < MIN_GENES_ENRICHMENT:
        print(f"  Warning: Only {len(gene_list)} genes, skipping g:Profiler")
        return pd.DataFrame()

    print(f"  Running g:Profiler {sources}...")
    kwargs = {
        'organism': organism,
        'query': gene_list,
        'sources': sources,
        'user_threshold': threshold,
        'significance_threshold_method': 'g_SCS',
        'no_evidences': False,
    }
    if background:
        kwargs['background'] = sorted(set(background))
        kwargs['domain_scope'] = 'custom'

    try:
        gprof = GProfiler(return_dataframe=True)
        res = gprof.profile(**kwargs)
    except Exception as e:
        print(f"    g:Profiler failed: {e}")
        return pd.DataFrame()

    if res is None:
        return pd.DataFrame()
    return res


def dge_gene_lists(dge, symbols=None):
    """
    Split significant genes into up, down and all lists of symbols.

    Args:
        dge (dict): Output of deseq2_utils.run_full_dgea (or the saved
                    artifact with the same keys)
        symbols (pd.Series): Optional gene ID -> symbol mapping

    Returns:
        dict: 'up', 'down', 'all' -> list of symbols
    """
    def to_symbols(genes):
        if symbols is None:
            return list(genes)
        return [symbols.get(g, g) for g in genes]

    return {
        'up': to_symbols(dge['upregulated']),
        'down': to_symbols(dge['downregulated']),
        'all': to_symbols(dge['sig_genes']),
    }


def run_enrichment_for_dge(dge, symbols=None, background=None,
                           libraries=None, sources=None):
    """
    Query both services for the up, down and all significant gene lists.

    Args:
        dge (dict): Differential expression results
        symbols (pd.Series): Gene ID -> symbol mapping
        background (list): Expressed gene IDs, the g:Profiler background
        libraries (list): Enrichr libraries
        sources (list): g:Profiler sources

    Returns:
        dict: {list_name: {'enrichr': pd.DataFrame, 'gprofiler': pd.DataFrame}}
    """
    gene_lists = dge_gene_lists(dge, symbols)
    if background is not None and symbols is not None:
        background = [symbols.get(g, g) for g in background]

    results = {}
    for name in GENE_LISTS:
        genes = gene_lists[name]
        print(f"\n  Gene list '{name}': {len(genes)} genes")
        results[name] = {
            'enrichr': run_enrichr(genes, libraries=libraries),
            'gprofiler': run_gprofiler(genes, background=background, sources=sources),
        }
    return results


def summarize_enrichment(results, top_n=10):
    """Print top enriched terms per gene list and service."""
    for list_name, services in results.items():
        for service, df in services.items():
            if df is None or len(df) == 0:
                continue

            print(f"\n  Top {top_n} {service} terms ({list_name}):")

            if 'Adjusted P-value' in df.columns:
                df_sorted = df.sort_values('Adjusted P-value').head(top_n)
                for _, row in df_sorted.iterrows():
                    term = str(row.get('Term', 'Unknown'))[:50]
                    print(f"    {term}: p={row['Adjusted P-value']:.2e}")
            elif 'p_value' in df.columns:
                df_sorted = df.sort_values('p_value').head(top_n)
                for _, row in df_sorted.iterrows():
                    term = f"{row.get('source', '')} {row.get('name', 'Unknown')}"[:50]
                    print(f"    {term}: p={row['p_value']:.2e}")


def enrichment_to_frames(results):
    """
    Flatten enrichment results into one table per service.

    Returns:
        dict: service -> pd.DataFrame with a 'list' column
    """
    frames = {}
    for service in SERVICES:
        parts = []
        for list_name, services in results.items():
            df = services.get(service)
            if df is None or len(df) == 0:
                continue
            df = df.copy()
            df.insert(0, 'list', list_name)
            parts.append(df)
        frames[service] = pd.concat(parts, ignore_index=True) if parts else pd.DataFrame()
    return frames
