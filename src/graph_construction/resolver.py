"""
Identity resolution: every known account id, alias included, maps to the id of
the AccountRecord that owns it.
"""
from types import MappingProxyType
from typing import Dict, Iterable, Mapping, Optional

from src.graph_construction.categories import Category
from src.graph_construction.errors import AliasCollisionError
from src.graph_construction.models import AccountRecord
from src.utils.logging import get_logger

logger = get_logger(__name__)


class IdentityResolver:
    """Maps account ids to their main identity.

    Ids that are neither a record's own id nor one of its aliases are external
    and resolve to None. An id claimed by two records raises AliasCollisionError;
    there is no tie-break.
    """

    def __init__(self, records: Iterable[AccountRecord]):
        records = list(records)
        mains: Dict[str, str] = {}
        by_main: Dict[str, AccountRecord] = {}

        for record in records:
            self._claim(mains, record.account_id, record.account_id)
            by_main[record.account_id] = record

        for record in records:
            for alias in sorted(record.alias_ids):
                if alias == record.account_id:
                    continue
                self._claim(mains, alias, record.account_id)

        # Plain dicts so the resolver can be pickled into worker processes
        self._mains = mains
        self._records = by_main

        logger.info(f"Resolved {len(mains)} account ids onto {len(by_main)} main accounts")

    @staticmethod
    def _claim(mains: Dict[str, str], account_id: str, main_id: str):
        existing = mains.get(account_id)
        if existing is not None and existing != main_id:
            raise AliasCollisionError(account_id, existing, main_id)
        if existing == main_id and account_id == main_id:
            # Same record id listed twice
            raise AliasCollisionError(account_id, existing, main_id)
        mains[account_id] = main_id

    def resolve(self, account_id: Optional[str]) -> Optional[str]:
        if account_id is None:
            return None
        return self._mains.get(account_id)

    def record(self, main_id: str) -> AccountRecord:
        return self._records[main_id]

    def category(self, main_id: Optional[str]) -> Optional[Category]:
        if main_id is None:
            return None
        record = self._records.get(main_id)
        return record.category if record is not None else None

    @property
    def records(self) -> Mapping[str, AccountRecord]:
        return MappingProxyType(self._records)

    def __contains__(self, account_id) -> bool:
        return account_id in self._mains

    def __len__(self) -> int:
        return len(self._mains)
