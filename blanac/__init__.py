"""
BLAa-NAc RNA-seq Analysis Pipeline

This package provides tools for analyzing transcriptomic effects of chronic
social stress and of glutamate-release inhibition in BLAa->NAc projection
neurons.

Modules:
    - data_loading: Load and align count/TPM matrices and metadata
    - preprocessing: Gene filtering and mixture-model expressed-gene calls
    - deseq2_utils: Differential expression analysis and VST
    - qc: PCA and sample quality control
    - enrichment: Enrichr and g:Profiler queries
    - visualization: Plotting
    - report: HTML report assembly
    - utils: Result export and loading
    - config: Configuration settings
"""

from .data_loading import (
    read_expression_matrix,
    read_sample_metadata,
    align_samples,
    load_experiment,
)

from .preprocessing import (
    drop_nans,
    filterGenesByPercentLowCount,
    fit_expression_mixture,
    filter_expressed_genes,
    select_hvgs,
    run_filter_data,
)

from .deseq2_utils import (
    build_deseq_dataset,
    run_deseq2,
    run_vst,
    get_results,
    get_sig_genes,
    get_dge_ranked_genes,
    annotate_results,
    run_full_dgea,
)

from .qc import (
    library_size_summary,
    run_pca,
    sample_correlation,
    flag_outlier_samples,
    pc_condition_association,
)

from .enrichment import (
    run_enrichr,
    run_gprofiler,
    run_enrichment_for_dge,
    summarize_enrichment,
    enrichment_to_frames,
)

from .report import (
    build_report,
    build_analysis_sections,
    df_to_interactive_table,
)

from .utils import (
    store_results,
    load_results,
    experiment_output_dir,
    package_versions,
)

from .config import (
    SEED,
    ALPHA,
    L2FC,
    N_HVG,
    N_PCS,
    LOWCOUNT,
    GMM_POSTERIOR_THRESH,
    EXPERIMENTS,
    DATA_DIR,
    RESULTS_DIR,
    get_experiment_by_name,
    print_config,
)

__version__ = '1.0.0'
