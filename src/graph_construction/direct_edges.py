"""
Direct edges between main accounts.

One pass over every Transfer of every record, DeFi protocol records included.
Per transfer:

1. Resolve both endpoints; untracked endpoints and self transfers are skipped.
2. A transfer touching a hidden-category account (DeFi protocol) yields no edge;
   it goes into the hidden bucket of each visible main it touches, to be used
   as bridge evidence by the connector pass.
3. Excluded category pairs (Exchange/Exchange, Foundation/Foundation) are skipped.
4. Dust transfers involving a spam suspect are skipped.
5. The edge for the unordered pair is created or updated. A new edge takes the
   record owner as its source when the owner is an endpoint, so its direction
   is Send if the owner sent the transfer and Receive otherwise. Later transfers
   are read relative to that source and join into Both once both ways are seen.

The fold over records is associative: partial results over contiguous record
partitions merge back into exactly the single-pass result.
"""
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Iterable, Mapping, Sequence, Tuple

from src.graph_construction.categories import is_dust, is_excluded_pair, is_hidden
from src.graph_construction.models import AccountRecord, Direction, GraphEdge, Transaction, pair_key
from src.graph_construction.resolver import IdentityResolver
from src.utils.logging import get_logger

logger = get_logger(__name__)

PairKey = Tuple[str, str]


def _add_hidden(bucket: Dict[tuple, Transaction], tx: Transaction):
    # Transfers listed by both endpoints share a tx_id; transfers without one are never merged
    key = ('id', tx.tx_id) if tx.tx_id is not None else ('pos', len(bucket))
    bucket.setdefault(key, tx)


@dataclass(frozen=True)
class DirectEdgeResult:
    # Insertion ordered: first observation of each pair first
    edges: Mapping[PairKey, GraphEdge] = field(default_factory=dict)
    # Visible main id -> transfers between it and a DeFi protocol
    hidden: Mapping[str, Tuple[Transaction, ...]] = field(default_factory=dict)
    # Soft omissions by reason
    skipped: Counter = field(default_factory=Counter)

    def has_edge(self, a: str, b: str) -> bool:
        return pair_key(a, b) in self.edges


def fold_direct_edges(
    records: Iterable[AccountRecord],
    resolver: IdentityResolver,
    dust_threshold: int,
) -> DirectEdgeResult:
    """
    Build direct edges and the hidden bucket from the given records' transfers.

    Args:
        records: Records whose transaction lists are scanned
        resolver: Identity resolver over the full record set
        dust_threshold: Spam suspect transfers below this amount are dropped

    Returns:
        DirectEdgeResult for these records
    """
    edges: Dict[PairKey, GraphEdge] = {}
    hidden: Dict[str, Dict[tuple, Transaction]] = {}
    skipped = Counter()

    for record in records:
        owner = record.account_id
        for tx in record.transactions:
            if not tx.is_transfer:
                skipped['not_transfer'] += 1
                continue

            from_main = resolver.resolve(tx.from_id)
            to_main = resolver.resolve(tx.to_id)
            if from_main is None or to_main is None:
                skipped['untracked'] += 1
                continue
            if from_main == to_main:
                skipped['self_transfer'] += 1
                continue

            from_category = resolver.category(from_main)
            to_category = resolver.category(to_main)

            if is_hidden(from_category) or is_hidden(to_category):
                for main, category in ((from_main, from_category), (to_main, to_category)):
                    if not is_hidden(category):
                        _add_hidden(hidden.setdefault(main, {}), tx)
                continue

            if is_excluded_pair(from_category, to_category):
                skipped['excluded_pair'] += 1
                continue
            if is_dust(from_category, to_category, tx.amount, dust_threshold):
                skipped['dust'] += 1
                continue

            key = pair_key(from_main, to_main)
            edge = edges.get(key)
            if edge is None:
                source = owner if owner in key else from_main
                target = to_main if source == from_main else from_main
                direction = Direction.SEND if from_main == source else Direction.RECEIVE
                edges[key] = GraphEdge(source=source, target=target, direction=direction)
            else:
                edges[key] = edge.observe(from_main)

    return DirectEdgeResult(
        edges=edges,
        hidden={main: tuple(txs.values()) for main, txs in hidden.items()},
        skipped=skipped,
    )


def merge_direct_results(results: Sequence[DirectEdgeResult]) -> DirectEdgeResult:
    """
    Merge partial results computed over consecutive record partitions.

    Edges keep the orientation of the earliest partition that saw the pair and
    join directions; hidden buckets concatenate, dropping repeated tx_ids.
    """
    edges: Dict[PairKey, GraphEdge] = {}
    hidden: Dict[str, Dict[tuple, Transaction]] = {}
    skipped = Counter()

    for result in results:
        for key, edge in result.edges.items():
            existing = edges.get(key)
            if existing is None:
                edges[key] = edge
            else:
                other = edge.oriented_from(existing.source)
                edges[key] = GraphEdge(
                    source=existing.source,
                    target=existing.target,
                    direction=existing.direction.join(other.direction),
                )
        for main, txs in result.hidden.items():
            bucket = hidden.setdefault(main, {})
            for tx in txs:
                _add_hidden(bucket, tx)
        skipped.update(result.skipped)

    return DirectEdgeResult(
        edges=edges,
        hidden={main: tuple(txs.values()) for main, txs in hidden.items()},
        skipped=skipped,
    )


def build_direct_edges(
    records: Iterable[AccountRecord],
    resolver: IdentityResolver,
    dust_threshold: int = 10_000_000,
) -> DirectEdgeResult:
    """Single-partition direct edge pass with a log line of what was kept and dropped."""
    result = fold_direct_edges(records, resolver, dust_threshold)
    log_direct_result(result)
    return result


def log_direct_result(result: DirectEdgeResult):
    n_hidden = sum(len(txs) for txs in result.hidden.values())
    logger.info(f"Built {len(result.edges)} direct edges, {n_hidden} hidden DeFi transfers")
    if result.skipped:
        logger.debug(f"Skipped transactions: {dict(result.skipped)}")
