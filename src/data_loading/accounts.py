"""
Loading account collections written by the ledger collector.

The collector writes one JSON array per category,
account_transactions_<category>.json, each entry shaped like:

    {
        "name": "Binance",
        "ty": "Cex",
        "principal": null,
        "account": ["609d3e1e...", 1250000000],
        "extra_accounts": [["d3e13d47...", 0], ...],
        "transactions": [
            {"op_type": "Transfer", "from": "...", "to": "...",
             "id": 1234, "timestamp": 1700000000000000000, "amount": 500000000}
        ],
        "oldest_tx_id": 17
    }

`account` and `extra_accounts` entries may also be plain id strings.
"""
import json
import os
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from tqdm import tqdm

from src.graph_construction.categories import Category
from src.graph_construction.errors import DataIntegrityError
from src.graph_construction.models import AccountRecord, OperationKind, Transaction
from src.utils.logging import get_logger

logger = get_logger(__name__)

FILE_TEMPLATE = 'account_transactions_{}.json'


def category_file_key(category: Category) -> str:
    """Lowercase collector name used in file names, e.g. 'cex' or 'snsparticipant'."""
    return category.short_name.lower()


def _split_account_entry(entry) -> Tuple[Optional[str], Optional[int]]:
    """Return (id, balance) from either an id string or an [id, balance] pair."""
    if entry is None:
        return None, None
    if isinstance(entry, str):
        return entry, None
    if isinstance(entry, (list, tuple)) and len(entry) >= 1:
        balance = entry[1] if len(entry) > 1 else None
        return entry[0], int(balance) if balance is not None else None
    raise DataIntegrityError(f"Malformed account entry: {entry!r}")


def parse_transaction(obj: Dict) -> Transaction:
    """
    Parse one collector transaction.

    Raises:
        DataIntegrityError: On a missing or unknown operation kind, or a negative amount
    """
    op_type = obj.get('op_type')
    if op_type is None:
        raise DataIntegrityError(f"Transaction {obj.get('id')} has no op_type")
    try:
        kind = OperationKind(op_type)
    except ValueError:
        raise DataIntegrityError(f"Unknown operation kind: {op_type!r}") from None

    amount = int(obj.get('amount', 0) or 0)
    if amount < 0:
        raise DataIntegrityError(f"Negative amount in transaction {obj.get('id')}: {amount}")

    return Transaction(
        operation_kind=kind,
        from_id=obj.get('from') or None,
        to_id=obj.get('to') or None,
        amount=amount,
        timestamp=int(obj.get('timestamp', 0) or 0),
        tx_id=obj.get('id'),
    )


def parse_account_record(obj: Dict) -> AccountRecord:
    """
    Parse one collector account entry into an AccountRecord.

    The main id is `account`; `extra_accounts` and a distinct `principal`
    become aliases.

    Raises:
        DataIntegrityError: If the entry has no account id
        UnknownCategoryError: If `ty` is not a known category
    """
    name = obj.get('name', '')
    category = Category.parse(obj.get('ty'))

    account_id, balance = _split_account_entry(obj.get('account'))
    if not account_id:
        raise DataIntegrityError(f"Account entry '{name}' has no account id")

    balances = {}
    if balance is not None:
        balances[account_id] = balance

    aliases = set()
    for entry in obj.get('extra_accounts') or []:
        alias, alias_balance = _split_account_entry(entry)
        if alias and alias != account_id:
            aliases.add(alias)
            if alias_balance is not None:
                balances[alias] = alias_balance

    principal = obj.get('principal')
    if principal and principal != account_id:
        aliases.add(principal)

    transactions = tuple(parse_transaction(tx) for tx in obj.get('transactions') or [])

    return AccountRecord(
        account_id=account_id,
        display_name=name or account_id[:5],
        category=category,
        alias_ids=frozenset(aliases),
        transactions=transactions,
        balances=balances,
    )


def load_category_file(path: str) -> List[Dict]:
    """Read one collector JSON array."""
    with open(path, 'r') as f:
        data = json.load(f)
    if not isinstance(data, list):
        raise DataIntegrityError(f"Expected a JSON array of accounts in {path}")
    return data


def load_accounts(directory: str, categories: Optional[Iterable] = None) -> List[AccountRecord]:
    """
    Load and concatenate the per-category collections found in a directory.

    Args:
        directory: Directory holding account_transactions_<category>.json files
        categories: Categories to load (names or Category values). Defaults to all.

    Returns:
        Records in category order, then file order
    """
    directory = Path(directory)
    if categories is None:
        categories = list(Category)
    else:
        categories = [Category.parse(c) for c in categories]

    records = []
    for category in tqdm(categories, desc='loading categories', leave=False):
        path = directory / FILE_TEMPLATE.format(category_file_key(category))
        if not os.path.exists(path):
            logger.warning(f"No collection for category {category.value}: {path}")
            continue

        entries = load_category_file(str(path))
        parsed = [parse_account_record(entry) for entry in entries]
        mismatched = [r.display_name for r in parsed if r.category != category]
        if mismatched:
            logger.warning(f"{len(mismatched)} accounts in {path.name} are labeled with another category")
        records.extend(parsed)
        logger.info(f"Loaded {len(parsed)} {category.value} accounts from {path.name}")

    return records
