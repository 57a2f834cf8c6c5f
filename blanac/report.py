"""
HTML report assembly.

A report is a single standalone HTML file: figures are inlined as
base64 PNGs and tables are rendered with DataFrame.to_html and made
sortable/searchable in the browser with DataTables.
"""

import base64
import html
import io
import os
from datetime import datetime

import numpy as np
import pandas as pd

from .config import REPORT_MAX_ROWS
from .utils import versions_table


DATATABLES_CSS = 'https://cdn.datatables.net/1.13.8/css/jquery.dataTables.min.css'
JQUERY_JS = 'https://code.jquery.com/jquery-3.7.1.min.js'
DATATABLES_JS = 'https://cdn.datatables.net/1.13.8/js/jquery.dataTables.min.js'

PAGE_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<title>{title}</title>
<link rel="stylesheet" href="{css}">
<style>
body {{ font-family: Helvetica, Arial, sans-serif; margin: 2em auto; max-width: 1200px; }}
h1 {{ border-bottom: 2px solid #333; }}
h2 {{ margin-top: 2em; border-bottom: 1px solid #ccc; }}
figure {{ margin: 1em 0; }}
figure img {{ max-width: 100%; }}
figcaption {{ font-size: 0.9em; color: #555; }}
table.display {{ font-size: 0.85em; }}
nav ul {{ columns: 2; }}
</style>
</head>
<body>
<h1>{title}</h1>
<p>{subtitle}</p>
<nav><ul>
{toc}
</ul></nav>
{body}
<script src="{jquery}"></script>
<script src="{datatables}"></script>
<script>
$(document).ready(function() {{
  $('table.display').DataTable({{pageLength: 25, order: []}});
}});
</script>
</body>
</html>
"""


def figure_to_base64(fig):
    """Encode a matplotlib Figure as base64 PNG."""
    buf = io.BytesIO()
    fig.savefig(buf, format='png', dpi=100, bbox_inches='tight')
    return base64.b64encode(buf.getvalue()).decode('ascii')


def image_file_to_base64(path):
    """Encode a PNG file as base64."""
    with open(path, 'rb') as f:
        return base64.b64encode(f.read()).decode('ascii')


def _format_value(x):
    if isinstance(x, (float, np.floating)):
        if np.isnan(x):
            return 'NA'
        return f'{x:.4g}'
    return x


def df_to_interactive_table(df, table_id, max_rows=REPORT_MAX_ROWS):
    """
    Render a DataFrame as an HTML table picked up by DataTables.

    Args:
        df (pd.DataFrame): Table to render
        table_id (str): HTML id for the table
        max_rows (int): Maximum number of rows rendered

    Returns:
        str: HTML fragment
    """
    if df is None or len(df) == 0:
        return '<p><em>No rows.</em></p>'

    note = ''
    if len(df) > max_rows:
        note = (f'<p><em>Showing first {max_rows} of {len(df)} rows; '
                f'see the CSV export for the full table.</em></p>')
        df = df.head(max_rows)

    formatted = df.apply(lambda col: col.map(_format_value))
    table = formatted.to_html(
        table_id=table_id,
        classes=['display', 'compact'],
        border=0,
        escape=True,
    )
    return note + table


def _slug(text):
    return ''.join(c if c.isalnum() else '-' for c in text.lower()).strip('-')


def _render_section(section, index):
    anchor = _slug(section['title']) or f'section-{index}'
    parts = [f'<h2 id="{anchor}">{html.escape(section["title"])}</h2>']

    for paragraph in section.get('text', []):
        parts.append(f'<p>{html.escape(paragraph)}</p>')

    for caption, image in section.get('figures', []):
        if isinstance(image, str):
            if not os.path.exists(image):
                continue
            encoded = image_file_to_base64(image)
        else:
            encoded = figure_to_base64(image)
        parts.append(
            f'<figure><img src="data:image/png;base64,{encoded}">'
            f'<figcaption>{html.escape(caption)}</figcaption></figure>'
        )

    for t, (caption, df) in enumerate(section.get('tables', [])):
        parts.append(f'<h3>{html.escape(caption)}</h3>')
        parts.append(df_to_interactive_table(df, f'{anchor}-table-{t}'))

    return anchor, '\n'.join(parts)


def build_report(experiment, sections, output_path):
    """
    Write a standalone HTML report.

    Args:
        experiment (dict): Experiment configuration
        sections (list): Dicts with 'title' and optional 'text' (list of
                         paragraphs), 'figures' (list of (caption, Figure
                         or PNG path)) and 'tables' (list of (caption, df))
        output_path (str): Destination HTML file

    Returns:
        str: output_path
    """
    toc = []
    body = []
    for i, section in enumerate(sections):
        anchor, rendered = _render_section(section, i)
        toc.append(f'<li><a href="#{anchor}">{html.escape(section["title"])}</a></li>')
        body.append(rendered)

    page = PAGE_TEMPLATE.format(
        title=html.escape(f"{experiment['name'].upper()}: {experiment['description']}"),
        subtitle=f"Generated {datetime.now():%Y-%m-%d %H:%M}",
        css=DATATABLES_CSS,
        jquery=JQUERY_JS,
        datatables=DATATABLES_JS,
        toc='\n'.join(toc),
        body='\n'.join(body),
    )

    directory = os.path.dirname(output_path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(output_path, 'w', encoding='utf-8') as f:
        f.write(page)

    print(f"  Report written to: {output_path}")
    return output_path


def build_analysis_sections(experiment, artifacts, figures, enrichment=None,
                            versions=None):
    """
    Standard report sections for one experiment.

    Args:
        experiment (dict): Experiment configuration
        artifacts (dict): Output of utils.load_results
        figures (dict): Figure name -> PNG path
        enrichment (dict): service -> flattened enrichment DataFrame
        versions (dict): Package versions

    Returns:
        list: Section dicts for build_report
    """
    params = artifacts.get('params', {})
    metadata = artifacts['metadata']
    condition_col = experiment['condition_col']
    groups = metadata[condition_col].value_counts()
    sig = artifacts['sig']
    n_up = int((sig.log2FoldChange > 0).sum())
    n_down = int((sig.log2FoldChange < 0).sum())

    def figs(*names):
        return [(caption, figures[name]) for name, caption in names if name in figures]

    sections = [
        {
            'title': 'Overview',
            'text': [
                experiment['description'] + '.',
                f"Comparison: {experiment['treatment']} vs {experiment['reference']} "
                f"(design {experiment['design']}). Groups: "
                + ', '.join(f'{g} n={n}' for g, n in groups.items()) + '.',
            ],
            'tables': [
                ('Samples', metadata),
                ('Parameters', pd.DataFrame(
                    {'value': [str(v) for v in params.values()]},
                    index=list(params),
                )),
            ],
        },
        {
            'title': 'Expressed-gene filter',
            'text': [
                f"{artifacts['n_genes_input']} genes in the input matrix; "
                f"{len(artifacts['expressed'])} genes were assigned to the "
                f"high-expression component of a two-component Gaussian mixture "
                f"on log2(mean TPM + 1) (threshold "
                f"{artifacts['gmm_threshold']:.2f}).",
            ],
            'figures': figs(('expression_mixture', 'Mixture fit of gene log expression')),
            'tables': [('Expressed genes', artifacts['expressed'])],
        },
        {
            'title': 'Quality control',
            'text': [
                f"PCA on the {len(artifacts['hvgs'])} most variable genes "
                f"after a blind variance-stabilizing transform.",
            ],
            'figures': figs(
                ('library_sizes', 'Library size and detected genes per sample'),
                ('pca', 'PC1 vs PC2'),
                ('scree', 'Variance explained per PC'),
                ('sample_correlation', 'Sample-sample correlation (VST)'),
            ),
            'tables': [
                ('Library sizes', artifacts['library_sizes']),
                ('PC association with group (Kruskal-Wallis)', artifacts['pc_association']),
                ('PCA outlier screen', artifacts['outliers']),
            ],
        },
        {
            'title': 'Differential expression',
            'text': [
                f"{len(sig)} genes at padj < {params.get('alpha')} "
                f"({n_up} up, {n_down} down in {experiment['treatment']}).",
            ],
            'figures': figs(
                ('volcano', 'Volcano plot'),
                ('ma', 'MA plot'),
                ('top_genes_heatmap', 'Top differentially expressed genes (z-scored VST)'),
            ),
            'tables': [('Significant genes', sig)],
        },
    ]

    if enrichment is not None:
        tables = []
        for service, df in enrichment.items():
            tables.append((f'{service} results', df))
        enrichment_figs = [(name.replace('_', ' '), path)
                           for name, path in sorted(figures.items())
                           if name.startswith('enrichment_')]
        sections.append({
            'title': 'Enrichment',
            'text': ['Over-representation of significant genes (up, down, all) '
                     'in Enrichr and g:Profiler, with expressed genes as background '
                     'for g:Profiler.'],
            'figures': enrichment_figs,
            'tables': tables,
        })

    if versions is not None:
        sections.append({
            'title': 'Session info',
            'tables': [('Package versions', versions_table(versions))],
        })

    return sections
