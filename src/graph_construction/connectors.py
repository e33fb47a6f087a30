"""
Connector synthesis: main accounts linked only through a shared bridge.

A bridge is either an untracked id (no record, no alias) or a DeFi protocol
account. Two folds build the evidence map bridge -> set of main ids:

- transfers between exactly one visible main and an untracked id;
- the hidden bucket of the direct pass (transfers with a DeFi protocol).

The category-pair and dust filters apply per transfer before any evidence is
recorded. Then, for every bridge seen with two or more mains, each sorted pair
of those mains gets the bridge appended to its connector edge, unless the pair
is an excluded category pair or already has a direct edge. In the latter case
the bridge is dropped; direct edges are never annotated or altered here.
"""
from dataclasses import dataclass, field
from itertools import combinations
from typing import Dict, FrozenSet, Iterable, Mapping, Sequence, Set, Tuple

from src.graph_construction.categories import is_dust, is_excluded_pair, is_hidden
from src.graph_construction.direct_edges import DirectEdgeResult, PairKey
from src.graph_construction.models import AccountRecord, Direction, GraphEdge, Transaction
from src.graph_construction.resolver import IdentityResolver
from src.utils.logging import get_logger

logger = get_logger(__name__)

Evidence = Mapping[str, FrozenSet[str]]


@dataclass(frozen=True)
class ConnectorResult:
    # Sorted by pair key
    edges: Mapping[PairKey, GraphEdge] = field(default_factory=dict)
    evidence: Evidence = field(default_factory=dict)
    # Pairs dropped because a direct edge already links them
    suppressed: int = 0


def fold_untracked_evidence(
    records: Iterable[AccountRecord],
    resolver: IdentityResolver,
    dust_threshold: int,
) -> Evidence:
    """Collect bridge evidence from transfers between one visible main and an untracked id."""
    evidence: Dict[str, Set[str]] = {}

    for record in records:
        for tx in record.transactions:
            if not tx.is_transfer:
                continue
            from_main = resolver.resolve(tx.from_id)
            to_main = resolver.resolve(tx.to_id)

            if from_main is not None and to_main is None:
                main, bridge = from_main, tx.to_id
            elif from_main is None and to_main is not None:
                main, bridge = to_main, tx.from_id
            else:
                continue
            if bridge is None:
                continue

            category = resolver.category(main)
            if is_hidden(category):
                continue
            if is_dust(category, None, tx.amount, dust_threshold):
                continue
            evidence.setdefault(bridge, set()).add(main)

    return {bridge: frozenset(mains) for bridge, mains in evidence.items()}


def fold_hidden_evidence(
    hidden: Mapping[str, Tuple[Transaction, ...]],
    resolver: IdentityResolver,
    dust_threshold: int,
) -> Evidence:
    """Collect bridge evidence from the direct pass's hidden bucket, bridges being DeFi protocol mains."""
    evidence: Dict[str, Set[str]] = {}

    for main, txs in hidden.items():
        category = resolver.category(main)
        for tx in txs:
            from_main = resolver.resolve(tx.from_id)
            to_main = resolver.resolve(tx.to_id)
            bridge = to_main if from_main == main else from_main
            bridge_category = resolver.category(bridge)

            if is_excluded_pair(category, bridge_category):
                continue
            if is_dust(category, bridge_category, tx.amount, dust_threshold):
                continue
            evidence.setdefault(bridge, set()).add(main)

    return {bridge: frozenset(mains) for bridge, mains in evidence.items()}


def merge_evidence(parts: Sequence[Evidence]) -> Evidence:
    """Union evidence maps; union is associative so partition order does not matter."""
    merged: Dict[str, Set[str]] = {}
    for part in parts:
        for bridge, mains in part.items():
            merged.setdefault(bridge, set()).update(mains)
    return {bridge: frozenset(mains) for bridge, mains in merged.items()}


def synthesize_connectors(
    evidence: Evidence,
    direct: DirectEdgeResult,
    resolver: IdentityResolver,
) -> ConnectorResult:
    """
    Turn bridge evidence into connector edges.

    Args:
        evidence: Bridge id -> main ids that transacted with it
        direct: Output of the direct edge pass
        resolver: Identity resolver over the full record set

    Returns:
        ConnectorResult with connector edges keyed by sorted pair
    """
    connectors: Dict[PairKey, GraphEdge] = {}
    suppressed = 0

    for bridge in sorted(evidence):
        mains = sorted(evidence[bridge])
        if len(mains) < 2:
            continue
        for a, b in combinations(mains, 2):
            if is_excluded_pair(resolver.category(a), resolver.category(b)):
                continue
            key = (a, b)
            if key in direct.edges:
                suppressed += 1
                continue
            edge = connectors.get(key)
            if edge is None:
                edge = GraphEdge(source=a, target=b, direction=Direction.SEND, connector_ids=())
            connectors[key] = edge.with_connector(bridge)

    connectors = {key: connectors[key] for key in sorted(connectors)}

    logger.info(f"Synthesized {len(connectors)} connector edges from {len(evidence)} bridges")
    if suppressed:
        logger.debug(f"Dropped {suppressed} bridge observations on pairs with a direct edge")

    return ConnectorResult(edges=connectors, evidence=evidence, suppressed=suppressed)


def build_connectors(
    records: Iterable[AccountRecord],
    resolver: IdentityResolver,
    direct: DirectEdgeResult,
    dust_threshold: int = 10_000_000,
) -> ConnectorResult:
    """Single-partition connector pass."""
    evidence = merge_evidence([
        fold_untracked_evidence(records, resolver, dust_threshold),
        fold_hidden_evidence(direct.hidden, resolver, dust_threshold),
    ])
    return synthesize_connectors(evidence, direct, resolver)
