import json
import os
from collections import Counter
from datetime import datetime
from typing import Any, Dict

import networkx as nx

from src.graph_construction.assembler import TransactionGraph
from src.graph_construction.categories import Category, is_hidden
from src.utils.logging import get_logger

logger = get_logger(__name__)


def summarize_graph(graph: TransactionGraph) -> Dict[str, Any]:
    """
    Compute statistics about a built graph.

    Args:
        graph: Assembled TransactionGraph

    Returns:
        Dictionary with node, edge and connectivity statistics
    """
    nodes_per_category = Counter(node.category.value for node in graph.nodes)
    direct_per_direction = Counter(edge.direction.value for edge in graph.direct_edges)
    connector_edges = graph.connector_edges

    g = graph.to_networkx()

    summary = {
        'generated_at': datetime.now().isoformat(),
        'nodes': {
            'n_nodes': len(graph.nodes),
            'per_category': {
                c.value: nodes_per_category.get(c.value, 0)
                for c in Category if not is_hidden(c)
            },
            'without_stats': sum(1 for node in graph.nodes if node.stats is None),
        },
        'edges': {
            'n_edges': len(graph.edges),
            'n_direct': len(graph.direct_edges),
            'direct_per_direction': dict(sorted(direct_per_direction.items())),
            'n_connector': len(connector_edges),
            'connector_evidence': sum(len(edge.connector_ids) for edge in connector_edges),
            'n_bridges': len({b for edge in connector_edges for b in edge.connector_ids}),
        },
        'connectivity': {
            'n_components': nx.number_connected_components(g) if len(g) > 0 else 0,
            'n_isolated': nx.number_of_isolates(g),
            'density': nx.density(g) if len(g) > 1 else 0.0,
        },
    }
    return summary


def write_summary(summary: Dict[str, Any], json_file: str):
    """Save a summary as JSON and as a Markdown report with the same basename."""
    directory = os.path.dirname(json_file)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(json_file, 'w') as f:
        json.dump(summary, f, indent=2)

    markdown_file = os.path.splitext(json_file)[0] + '.md'
    _write_markdown_report(summary, markdown_file)

    logger.info(f"Graph summary saved to:")
    logger.info(f"  JSON: {json_file}")
    logger.info(f"  Markdown: {markdown_file}")


def _write_markdown_report(summary: Dict[str, Any], output_file: str):
    """Write a human-readable markdown report."""
    nodes = summary['nodes']
    edges = summary['edges']
    connectivity = summary['connectivity']

    lines = [
        "# Graph Summary",
        "",
        f"**Generated:** {summary['generated_at']}",
        "",
        "## Nodes",
        "",
        f"- **Total:** {nodes['n_nodes']:,}",
        f"- **Without transfers:** {nodes['without_stats']:,}",
        "",
        "| Category | Nodes |",
        "|----------|-------|",
    ]
    for category, count in nodes['per_category'].items():
        lines.append(f"| {category} | {count:,} |")

    lines.extend([
        "",
        "## Edges",
        "",
        f"- **Total:** {edges['n_edges']:,}",
        f"- **Direct:** {edges['n_direct']:,}",
    ])
    for direction, count in edges['direct_per_direction'].items():
        lines.append(f"  - {direction}: {count:,}")
    lines.extend([
        f"- **Connector:** {edges['n_connector']:,} "
        f"({edges['connector_evidence']:,} bridge links over {edges['n_bridges']:,} bridges)",
        "",
        "## Connectivity",
        "",
        f"- **Components:** {connectivity['n_components']:,}",
        f"- **Isolated nodes:** {connectivity['n_isolated']:,}",
        f"- **Density:** {connectivity['density']:.4f}",
        "",
    ])

    with open(output_file, 'w') as f:
        f.write('\n'.join(lines))
