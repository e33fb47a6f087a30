"""
Graph assembly: the final, JSON-serializable node and edge collections.
"""
import json
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

import networkx as nx

from src.graph_construction.connectors import ConnectorResult
from src.graph_construction.direct_edges import DirectEdgeResult
from src.graph_construction.errors import DataIntegrityError
from src.graph_construction.models import GraphEdge, GraphNode, Transaction
from src.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class TransactionGraph:
    nodes: Tuple[GraphNode, ...] = ()
    edges: Tuple[GraphEdge, ...] = ()
    # Node id -> DeFi protocol transfers touching it; None when not requested
    hidden_transactions: Optional[Mapping[str, Tuple[Transaction, ...]]] = field(default=None, compare=False)

    @property
    def direct_edges(self) -> Tuple[GraphEdge, ...]:
        return tuple(edge for edge in self.edges if not edge.is_connector)

    @property
    def connector_edges(self) -> Tuple[GraphEdge, ...]:
        return tuple(edge for edge in self.edges if edge.is_connector)

    def node(self, node_id: str) -> GraphNode:
        for node in self.nodes:
            if node.id == node_id:
                return node
        raise KeyError(node_id)

    def edge(self, a: str, b: str) -> Optional[GraphEdge]:
        for edge in self.edges:
            if {edge.source, edge.target} == {a, b}:
                return edge
        return None

    def to_dict(self) -> Dict[str, Any]:
        nodes = []
        for node in self.nodes:
            data = node.to_dict()
            if self.hidden_transactions is not None:
                data['hidden_transactions'] = [
                    tx.to_dict() for tx in self.hidden_transactions.get(node.id, ())
                ]
            nodes.append(data)
        return {
            'nodes': nodes,
            'edges': [edge.to_dict() for edge in self.edges],
        }

    def to_json(self, path: str, indent: int = 2):
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=indent)
        logger.info(f"Graph saved to: {path}")

    def to_networkx(self) -> nx.Graph:
        """Undirected networkx view with node and edge attributes."""
        g = nx.Graph()
        for node in self.nodes:
            stats = node.stats.to_dict() if node.stats is not None else {}
            g.add_node(node.id, label=node.label, category=node.category.value, **stats)
        for edge in self.edges:
            g.add_edge(
                edge.source,
                edge.target,
                direction=edge.direction.value,
                connector_ids=list(edge.connector_ids) if edge.connector_ids is not None else None,
                oriented_from=edge.source,
            )
        return g


def assemble_graph(
    nodes: Iterable[GraphNode],
    direct: DirectEdgeResult,
    connectors: ConnectorResult,
    include_hidden_transactions: bool = False,
) -> TransactionGraph:
    """
    Combine projected nodes, direct edges and connector edges.

    Direct edges come first in observation order, then connector edges by pair.

    Raises:
        DataIntegrityError: If a node id or an unordered pair appears twice
    """
    nodes = tuple(nodes)
    node_ids = set()
    for node in nodes:
        if node.id in node_ids:
            raise DataIntegrityError(f"Duplicate node '{node.id}'")
        node_ids.add(node.id)

    edges = []
    pairs = set()
    for edge in (*direct.edges.values(), *connectors.edges.values()):
        if edge.pair in pairs:
            raise DataIntegrityError(f"Duplicate edge for pair {edge.pair}")
        pairs.add(edge.pair)
        edges.append(edge)

    hidden = None
    if include_hidden_transactions:
        hidden = {node.id: direct.hidden.get(node.id, ()) for node in nodes}

    graph = TransactionGraph(nodes=nodes, edges=tuple(edges), hidden_transactions=hidden)
    logger.info(
        f"Assembled graph: {len(graph.nodes)} nodes, "
        f"{len(direct.edges)} direct and {len(connectors.edges)} connector edges"
    )
    return graph
