"""
Configuration settings for the BLAa-NAc RNA-seq analysis pipeline.

This module centralizes thresholds and experiment definitions so that
both reports (chronic social stress and glutamate-release inhibition)
are run with the same, reproducible settings.
"""

# =============================================================================
# RANDOM SEED
# =============================================================================
# Random state for the mixture model and PCA
SEED = 42

# =============================================================================
# EXPRESSED-GENE FILTER
# =============================================================================
# Two-component Gaussian mixture fitted on log2(mean TPM + pseudocount)
GMM_N_COMPONENTS = 2
GMM_PSEUDOCOUNT = 1

# Minimum posterior probability for the high-expression component
GMM_POSTERIOR_THRESH = 0.5

# Optional low count pre-filter: (count_threshold, proportion_threshold)
# (0, 0) disables it; the mixture model alone defines expressed genes
LOWCOUNT = (0, 0)

# =============================================================================
# QC / PCA
# =============================================================================
# Number of highly variable genes (by VST variance) used for PCA
N_HVG = 500

# Number of principal components to compute
N_PCS = 10

# |z| of the distance to the PC1/PC2 centroid above which a sample is flagged
OUTLIER_Z = 3.0

# =============================================================================
# DIFFERENTIAL EXPRESSION
# =============================================================================
# Adjusted p-value threshold
ALPHA = 0.05

# Absolute log2 fold change threshold (0 = padj only)
L2FC = 0

# =============================================================================
# ENRICHMENT
# =============================================================================
ENRICHR_LIBRARIES = [
    'GO_Biological_Process_2023',
    'GO_Molecular_Function_2023',
    'GO_Cellular_Component_2023',
    'KEGG_2019_Mouse',
    'WikiPathways_2019_Mouse',
]
ENRICHR_ORGANISM = 'mouse'

GPROFILER_ORGANISM = 'mmusculus'
GPROFILER_SOURCES = ['GO:BP', 'GO:MF', 'GO:CC', 'KEGG', 'REAC']

# Enrichment significance threshold (adjusted p-value)
ENRICHMENT_ALPHA = 0.05

# Gene lists shorter than this are not submitted
MIN_GENES_ENRICHMENT = 3

# =============================================================================
# EXPERIMENT CONFIGURATIONS
# =============================================================================
EXPERIMENT_CSS = {
    'name': 'css',
    'description': 'Chronic social stress vs control in BLAa-NAc neurons',
    'counts_file': 'css_counts.csv',
    'tpm_file': 'css_tpm.csv',
    'metadata_file': 'css_metadata.csv',
    'condition_col': 'condition',
    'reference': 'control',
    'treatment': 'CSS',
    'design': '~condition',
    'group_colors': {'control': 'navy', 'CSS': 'red'},
}

EXPERIMENT_GLUT = {
    'name': 'glut',
    'description': ('Glutamate-release inhibition (TeLC) vs control '
                    'fluorophore in BLAa-NAc neurons'),
    'counts_file': 'glut_counts.csv',
    'tpm_file': 'glut_tpm.csv',
    'metadata_file': 'glut_metadata.csv',
    'condition_col': 'condition',
    'reference': 'GFP',
    'treatment': 'TeLC',
    'design': '~condition',
    'group_colors': {'GFP': 'grey', 'TeLC': 'darkorange'},
}

EXPERIMENTS = [EXPERIMENT_CSS, EXPERIMENT_GLUT]

# =============================================================================
# FILE PATHS
# =============================================================================
# Input directory holding count/TPM matrices and metadata
DATA_DIR = 'data'

# Output directory for results
RESULTS_DIR = 'results'

# Serialized analysis workspace written by 02_run_analysis.py
ANALYSIS_PICKLE = 'analysis.pkl'
ENRICHMENT_PICKLE = 'enrichment.pkl'

# =============================================================================
# VISUALIZATION
# =============================================================================
# Plot DPI for saved figures
PLOT_DPI = 300

# Rows shown per interactive table in the HTML report
REPORT_MAX_ROWS = 2000


def get_experiment_by_name(name):
    """
    Get experiment configuration by name.

    Args:
        name (str): Experiment name ('css' or 'glut')

    Returns:
        dict: Experiment configuration
    """
    for exp in EXPERIMENTS:
        if exp['name'] == name:
            return exp
    raise ValueError(f"Unknown experiment: {name}")


def print_config():
    """Print current configuration settings."""
    print("=" * 60)
    print("CURRENT CONFIGURATION")
    print("=" * 60)
    print(f"Seed: {SEED}")
    print(f"GMM components: {GMM_N_COMPONENTS}")
    print(f"GMM posterior threshold: {GMM_POSTERIOR_THRESH}")
    print(f"Low count filter: {LOWCOUNT}")
    print(f"HVGs for PCA: {N_HVG}")
    print(f"PCs: {N_PCS}")
    print(f"DESeq2 alpha: {ALPHA}")
    print(f"log2FC threshold: {L2FC}")
    print(f"Enrichr libraries: {ENRICHR_LIBRARIES}")
    print(f"g:Profiler sources: {GPROFILER_SOURCES}")
    print(f"Experiments: {[e['name'] for e in EXPERIMENTS]}")
    print("=" * 60)
