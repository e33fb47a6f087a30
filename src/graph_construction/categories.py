"""
Account categories and the category rules used during graph construction.

Categories form a closed set. Each one has a canonical name (used in the graph
output) and the short name used by the ledger collector when it writes the
per-category JSON collections (account_transactions_<short name>.json).

Rules:
- Hidden categories never become visible nodes but still act as bridges.
- Excluded pairs never produce an edge, direct or through a connector.
- Dust categories drop transfers below the dust threshold.
"""
from enum import Enum
from typing import FrozenSet, Optional

from src.graph_construction.errors import UnknownCategoryError


class Category(str, Enum):
    EXCHANGE = 'Exchange'
    DEFI_PROTOCOL = 'DeFiProtocol'
    FOUNDATION = 'Foundation'
    IDENTIFIED = 'Identified'
    NODE_PROVIDER = 'NodeProvider'
    SPAM_SUSPECT = 'SpamSuspect'
    NETWORK_PARTICIPANT = 'NetworkParticipant'
    PARTICIPANT_OF_NETWORK_PARTICIPANT = 'ParticipantOfNetworkParticipant'
    GENERAL_SUSPECT = 'GeneralSuspect'

    @property
    def short_name(self) -> str:
        return COLLECTOR_NAMES[self]

    @classmethod
    def parse(cls, value) -> 'Category':
        """
        Resolve a category from its canonical or collector name.

        Matching is case-insensitive. Unknown values are rejected rather than
        defaulted.

        Raises:
            UnknownCategoryError: If the value names no known category
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            category = _LOOKUP.get(value.strip().lower())
            if category is not None:
                return category
        raise UnknownCategoryError(value)


# Names the ledger collector uses for its `ty` field and file names
COLLECTOR_NAMES = {
    Category.EXCHANGE: 'Cex',
    Category.DEFI_PROTOCOL: 'Defi',
    Category.FOUNDATION: 'Foundation',
    Category.IDENTIFIED: 'Identified',
    Category.NODE_PROVIDER: 'NodeProvider',
    Category.SPAM_SUSPECT: 'Spammer',
    Category.NETWORK_PARTICIPANT: 'Sns',
    Category.PARTICIPANT_OF_NETWORK_PARTICIPANT: 'SnsParticipant',
    Category.GENERAL_SUSPECT: 'Suspect',
}

_LOOKUP = {
    **{c.value.lower(): c for c in Category},
    **{name.lower(): c for c, name in COLLECTOR_NAMES.items()},
}

HIDDEN_CATEGORIES: FrozenSet[Category] = frozenset({Category.DEFI_PROTOCOL})

DUST_CATEGORIES: FrozenSet[Category] = frozenset({Category.SPAM_SUSPECT})

# Same-category pairs whose relationships are never materialized
EXCLUDED_PAIRS: FrozenSet[FrozenSet[Category]] = frozenset({
    frozenset({Category.EXCHANGE}),
    frozenset({Category.FOUNDATION}),
})


def is_hidden(category: Category) -> bool:
    """Check if accounts of this category are kept out of the visible node set."""
    return category in HIDDEN_CATEGORIES


def is_excluded_pair(a: Optional[Category], b: Optional[Category]) -> bool:
    """
    Check if a relationship between two categories is denied.

    Untracked endpoints (None) never form an excluded pair.
    """
    if a is None or b is None:
        return False
    return frozenset({a, b}) in EXCLUDED_PAIRS


def is_dust(a: Optional[Category], b: Optional[Category], amount: int, threshold: int) -> bool:
    """Check if a transfer is dust: a dust-category endpoint and an amount below threshold."""
    if amount >= threshold:
        return False
    return a in DUST_CATEGORIES or b in DUST_CATEGORIES
