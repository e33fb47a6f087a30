"""
Value types flowing through graph construction.

Input: AccountRecord, Transaction. Output: GraphNode, GraphEdge.
All of them are frozen; later stages build new values instead of editing
earlier ones. Accounts refer to each other only by id.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple

from src.graph_construction.categories import Category


class OperationKind(str, Enum):
    TRANSFER = 'Transfer'
    MINT = 'Mint'
    BURN = 'Burn'
    APPROVE = 'Approve'


class Direction(str, Enum):
    """Money flow on an edge, relative to the edge's source."""
    SEND = 'Send'
    RECEIVE = 'Receive'
    BOTH = 'Both'

    def join(self, other: 'Direction') -> 'Direction':
        # Send ⊔ Receive = Both, Both ⊔ x = Both
        return self if self == other else Direction.BOTH

    def reversed(self) -> 'Direction':
        if self == Direction.SEND:
            return Direction.RECEIVE
        if self == Direction.RECEIVE:
            return Direction.SEND
        return self


@dataclass(frozen=True)
class Transaction:
    operation_kind: OperationKind
    from_id: Optional[str]
    to_id: Optional[str]
    amount: int
    timestamp: int
    tx_id: Optional[int] = None

    @property
    def is_transfer(self) -> bool:
        return self.operation_kind == OperationKind.TRANSFER

    def to_dict(self) -> Dict[str, Any]:
        return {
            'op_type': self.operation_kind.value,
            'from': self.from_id,
            'to': self.to_id,
            'amount': self.amount,
            'timestamp': self.timestamp,
            'id': self.tx_id,
        }


@dataclass(frozen=True)
class AccountRecord:
    account_id: str
    display_name: str
    category: Category
    alias_ids: FrozenSet[str] = frozenset()
    transactions: Tuple[Transaction, ...] = ()
    # Last known balance per id (main and aliases), in subunits
    balances: Mapping[str, int] = field(default_factory=dict, compare=False)

    def transfers(self):
        return [tx for tx in self.transactions if tx.is_transfer]


@dataclass(frozen=True)
class NodeStats:
    tx_count: int
    average_amount: float
    start_date: str
    end_date: str
    balance: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        stats = {
            'tx_count': self.tx_count,
            'average_amount': self.average_amount,
            'start_date': self.start_date,
            'end_date': self.end_date,
        }
        if self.balance is not None:
            stats['balance'] = self.balance
        return stats


@dataclass(frozen=True)
class GraphNode:
    id: str
    label: str
    category: Category
    stats: Optional[NodeStats] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'label': self.label,
            'category': self.category.value,
            'stats': self.stats.to_dict() if self.stats is not None else {},
        }


@dataclass(frozen=True)
class GraphEdge:
    source: str
    target: str
    direction: Direction = Direction.SEND
    connector_ids: Optional[Tuple[str, ...]] = None

    @property
    def pair(self) -> Tuple[str, str]:
        return pair_key(self.source, self.target)

    @property
    def is_connector(self) -> bool:
        return self.connector_ids is not None

    def observe(self, from_main: str) -> 'GraphEdge':
        """Return the edge after a transfer sent by from_main along it."""
        observed = Direction.SEND if from_main == self.source else Direction.RECEIVE
        return replace(self, direction=self.direction.join(observed))

    def oriented_from(self, source: str) -> 'GraphEdge':
        """Return the same relationship with `source` as the edge source."""
        if source == self.source:
            return self
        return replace(self, source=self.target, target=self.source, direction=self.direction.reversed())

    def with_connector(self, bridge_id: str) -> 'GraphEdge':
        connectors = self.connector_ids or ()
        if bridge_id in connectors:
            return self
        return replace(self, connector_ids=connectors + (bridge_id,))

    def to_dict(self) -> Dict[str, Any]:
        edge = {
            'source': self.source,
            'target': self.target,
            'direction': self.direction.value,
        }
        if self.connector_ids is not None:
            edge['connector_ids'] = list(self.connector_ids)
        return edge


def pair_key(a: str, b: str) -> Tuple[str, str]:
    """Unordered pair of main ids as a lexicographically sorted tuple."""
    return (a, b) if a <= b else (b, a)
