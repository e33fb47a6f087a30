"""
Node projection: one visible GraphNode per main account outside the hidden
categories, with transfer statistics aggregated per account.
"""
from typing import Dict, Iterable, List, Tuple

import pandas as pd

from src.graph_construction.categories import is_hidden
from src.graph_construction.models import AccountRecord, GraphNode, NodeStats
from src.utils.logging import get_logger

logger = get_logger(__name__)


def _transfers_frame(records: Iterable[AccountRecord]) -> pd.DataFrame:
    """Flatten every record's transfers into one frame keyed by owning account."""
    rows = [
        (record.account_id, tx.amount, tx.timestamp)
        for record in records
        for tx in record.transactions
        if tx.is_transfer
    ]
    df = pd.DataFrame(rows, columns=['account', 'amount', 'timestamp'])
    return df.astype({'amount': 'int64', 'timestamp': 'int64'})


def _format_timestamp(timestamp_ns: int, date_format: str) -> str:
    return pd.to_datetime(int(timestamp_ns), unit='ns', utc=True).strftime(date_format)


def compute_account_stats(
    records: Iterable[AccountRecord],
    subunits_per_token: int = 100_000_000,
    date_format: str = '%d/%m/%Y, %H:%M:%S',
) -> Dict[str, NodeStats]:
    """
    Aggregate transfer statistics per account.

    Args:
        records: Accounts to aggregate
        subunits_per_token: Ledger subunits in one display unit
        date_format: strftime format for first/last transfer times (UTC)

    Returns:
        Mapping of account id to NodeStats. Accounts without transfers are absent.
    """
    records = list(records)
    df = _transfers_frame(records)
    if df.empty:
        return {}

    df = df.sort_values(['account', 'timestamp'], kind='stable')
    agg = df.groupby('account', sort=False).agg(
        tx_count=('amount', 'size'),
        total=('amount', 'sum'),
        first=('timestamp', 'first'),
        last=('timestamp', 'last'),
    )

    balances = {record.account_id: record.balances for record in records}

    stats = {}
    for account, row in agg.iterrows():
        tx_count = int(row['tx_count'])
        account_balances = balances.get(account) or {}
        balance = (
            sum(account_balances.values()) / subunits_per_token
            if account_balances else None
        )
        stats[account] = NodeStats(
            tx_count=tx_count,
            average_amount=float(row['total']) / tx_count / subunits_per_token,
            start_date=_format_timestamp(row['first'], date_format),
            end_date=_format_timestamp(row['last'], date_format),
            balance=balance,
        )
    return stats


def project_nodes(
    records: Iterable[AccountRecord],
    subunits_per_token: int = 100_000_000,
    date_format: str = '%d/%m/%Y, %H:%M:%S',
) -> Tuple[GraphNode, ...]:
    """
    Build the visible node set.

    Hidden-category accounts (DeFi protocols) are left out here; they stay in
    the resolver and the transaction corpus and act as bridges later on.

    Returns:
        Nodes in input record order.
    """
    visible: List[AccountRecord] = [r for r in records if not is_hidden(r.category)]
    stats = compute_account_stats(visible, subunits_per_token, date_format)

    nodes = tuple(
        GraphNode(
            id=record.account_id,
            label=record.display_name,
            category=record.category,
            stats=stats.get(record.account_id),
        )
        for record in visible
    )

    without_stats = sum(1 for node in nodes if node.stats is None)
    logger.info(f"Projected {len(nodes)} nodes ({without_stats} without transfers)")
    return nodes
