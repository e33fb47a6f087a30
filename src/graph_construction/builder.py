"""
Graph construction pipeline.

resolver -> node projection -> direct edges -> connectors -> assembly.
The whole build is a pure function of the input records and the config.
"""
import multiprocessing as mp
from dataclasses import dataclass
from typing import Dict, Iterable, List, Sequence, Tuple

import numpy as np

from src.graph_construction.assembler import TransactionGraph, assemble_graph
from src.graph_construction.connectors import (
    Evidence,
    fold_hidden_evidence,
    fold_untracked_evidence,
    merge_evidence,
    synthesize_connectors,
)
from src.graph_construction.direct_edges import (
    DirectEdgeResult,
    fold_direct_edges,
    log_direct_result,
    merge_direct_results,
)
from src.graph_construction.models import AccountRecord
from src.graph_construction.nodes import project_nodes
from src.graph_construction.resolver import IdentityResolver
from src.utils.config import DEFAULT_GRAPH_CONFIG
from src.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class GraphConfig:
    dust_threshold: int = DEFAULT_GRAPH_CONFIG['dust_threshold']
    subunits_per_token: int = DEFAULT_GRAPH_CONFIG['subunits_per_token']
    date_format: str = DEFAULT_GRAPH_CONFIG['date_format']
    include_hidden_transactions: bool = DEFAULT_GRAPH_CONFIG['include_hidden_transactions']
    n_workers: int = DEFAULT_GRAPH_CONFIG['n_workers']

    @classmethod
    def from_dict(cls, config: Dict) -> 'GraphConfig':
        """
        Build a validated config from the `graph` section of a config file.

        Unknown keys are ignored.

        Raises:
            ValueError: If a value is out of range
        """
        values = DEFAULT_GRAPH_CONFIG.copy()
        values.update({k: v for k, v in (config or {}).items() if k in DEFAULT_GRAPH_CONFIG})

        if int(values['dust_threshold']) < 0:
            raise ValueError(f"dust_threshold must be non-negative, got {values['dust_threshold']}")
        if int(values['subunits_per_token']) <= 0:
            raise ValueError(f"subunits_per_token must be positive, got {values['subunits_per_token']}")
        if values['n_workers'] is None or int(values['n_workers']) < 1:
            raise ValueError(f"n_workers must be at least 1, got {values['n_workers']}")

        return cls(
            dust_threshold=int(values['dust_threshold']),
            subunits_per_token=int(values['subunits_per_token']),
            date_format=str(values['date_format']),
            include_hidden_transactions=bool(values['include_hidden_transactions']),
            n_workers=int(values['n_workers']),
        )


def _fold_partition(
    records: List[AccountRecord],
    resolver: IdentityResolver,
    dust_threshold: int,
) -> Tuple[DirectEdgeResult, Evidence]:
    return (
        fold_direct_edges(records, resolver, dust_threshold),
        fold_untracked_evidence(records, resolver, dust_threshold),
    )


def _partition(records: Sequence[AccountRecord], n_parts: int) -> List[List[AccountRecord]]:
    """Split records into contiguous, order-preserving partitions."""
    splits = np.array_split(np.arange(len(records)), n_parts)
    return [[records[i] for i in split] for split in splits if len(split) > 0]


class GraphBuilder:
    """Builds a TransactionGraph from account records.

    Example:
        builder = GraphBuilder({'dust_threshold': 10_000_000})
        graph = builder(records)
    """

    def __init__(self, config=None):
        if isinstance(config, GraphConfig):
            self.config = config
        else:
            self.config = GraphConfig.from_dict(config or {})

    def __call__(self, records: Iterable[AccountRecord]) -> TransactionGraph:
        records = list(records)
        logger.info(f"Building graph from {len(records)} account records")

        resolver = IdentityResolver(records)

        nodes = project_nodes(
            records,
            subunits_per_token=self.config.subunits_per_token,
            date_format=self.config.date_format,
        )

        direct, untracked = self._fold(records, resolver)
        log_direct_result(direct)

        evidence = merge_evidence([
            untracked,
            fold_hidden_evidence(direct.hidden, resolver, self.config.dust_threshold),
        ])
        connectors = synthesize_connectors(evidence, direct, resolver)

        return assemble_graph(
            nodes,
            direct,
            connectors,
            include_hidden_transactions=self.config.include_hidden_transactions,
        )

    def _fold(self, records: List[AccountRecord], resolver: IdentityResolver) -> Tuple[DirectEdgeResult, Evidence]:
        n_workers = min(self.config.n_workers, max(len(records), 1))
        if n_workers == 1:
            return _fold_partition(records, resolver, self.config.dust_threshold)

        partitions = _partition(records, n_workers)
        logger.info(f"Folding {len(partitions)} record partitions on {n_workers} workers")
        with mp.Pool(n_workers) as p:
            results = p.starmap(
                _fold_partition,
                [(partition, resolver, self.config.dust_threshold) for partition in partitions],
            )

        direct = merge_direct_results([result[0] for result in results])
        untracked = merge_evidence([result[1] for result in results])
        return direct, untracked


def build_graph(records: Iterable[AccountRecord], config=None) -> TransactionGraph:
    """Build a graph with a one-off GraphBuilder."""
    return GraphBuilder(config)(records)
