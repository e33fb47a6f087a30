"""
Exchange cycle detection on account transfer lists.

An exchange cycle is a withdrawal from an exchange into an account followed,
after a holding period of about six weeks, by a deposit from that account back
into an exchange. Exchange ids are the ids (main and aliases) of the Exchange
records in the loaded collections.
"""
import json
import os
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple

from src.graph_construction.categories import Category
from src.graph_construction.models import AccountRecord, Transaction
from src.utils.logging import get_logger

logger = get_logger(__name__)

NANOS_PER_DAY = 24 * 60 * 60 * 1_000_000_000


class PatternType(str, Enum):
    EXCHANGE_CYCLE = 'ExchangeCycle'


@dataclass(frozen=True)
class ExchangeTransfer:
    exchange_name: str
    exchange_account: str
    amount: int
    timestamp: int
    is_withdrawal: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            'exchange_name': self.exchange_name,
            'exchange_account': self.exchange_account,
            'amount': self.amount,
            'timestamp': self.timestamp,
            'is_withdrawal': self.is_withdrawal,
        }


@dataclass(frozen=True)
class HoldingPeriod:
    start_timestamp: int
    end_timestamp: int
    duration_days: float
    amount_held: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            'start_timestamp': self.start_timestamp,
            'end_timestamp': self.end_timestamp,
            'duration_days': self.duration_days,
            'amount_held': self.amount_held,
        }


@dataclass(frozen=True)
class SuspiciousPattern:
    account: str
    pattern_type: PatternType
    withdrawals: Tuple[ExchangeTransfer, ...]
    deposits: Tuple[ExchangeTransfer, ...]
    holding_periods: Tuple[HoldingPeriod, ...]

    @property
    def total_amount(self) -> int:
        return sum(period.amount_held for period in self.holding_periods)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'account': self.account,
            'pattern_type': self.pattern_type.value,
            'withdrawals': [w.to_dict() for w in self.withdrawals],
            'deposits': [d.to_dict() for d in self.deposits],
            'total_amount': self.total_amount,
            'holding_periods': [p.to_dict() for p in self.holding_periods],
        }


def exchange_lookup(records: Iterable[AccountRecord]) -> Dict[str, str]:
    """Map every id of every Exchange record to the exchange's display name."""
    lookup = {}
    for record in records:
        if record.category != Category.EXCHANGE:
            continue
        for account_id in (record.account_id, *sorted(record.alias_ids)):
            lookup[account_id] = record.display_name
    return lookup


class PatternDetector:
    """Finds exchange cycles in the transfer lists of non-exchange accounts.

    A withdrawal matches the earliest unmatched deposit made between
    holding_period_days - tolerance_days and holding_period_days + tolerance_days
    after it, bounds included. Each deposit closes at most one holding period.

    Example:
        detector = PatternDetector(records)
        patterns = detector.detect_patterns(records)
    """

    def __init__(self, records: Iterable[AccountRecord], holding_period_days: float = 42, tolerance_days: float = 7):
        if holding_period_days <= 0:
            raise ValueError(f"holding_period_days must be positive, got {holding_period_days}")
        if tolerance_days < 0 or tolerance_days > holding_period_days:
            raise ValueError(f"tolerance_days must be in [0, holding_period_days], got {tolerance_days}")

        self.exchanges = exchange_lookup(records)
        self.min_holding = int((holding_period_days - tolerance_days) * NANOS_PER_DAY)
        self.max_holding = int((holding_period_days + tolerance_days) * NANOS_PER_DAY)

    def _exchange_transfers(
        self,
        account_ids,
        transactions: Iterable[Transaction],
    ) -> Tuple[List[ExchangeTransfer], List[ExchangeTransfer]]:
        withdrawals, deposits = [], []
        for tx in transactions:
            if not tx.is_transfer:
                continue
            if tx.to_id in account_ids and tx.from_id in self.exchanges:
                withdrawals.append(ExchangeTransfer(
                    exchange_name=self.exchanges[tx.from_id],
                    exchange_account=tx.from_id,
                    amount=tx.amount,
                    timestamp=tx.timestamp,
                    is_withdrawal=True,
                ))
            if tx.from_id in account_ids and tx.to_id in self.exchanges:
                deposits.append(ExchangeTransfer(
                    exchange_name=self.exchanges[tx.to_id],
                    exchange_account=tx.to_id,
                    amount=tx.amount,
                    timestamp=tx.timestamp,
                    is_withdrawal=False,
                ))
        withdrawals.sort(key=lambda w: w.timestamp)
        deposits.sort(key=lambda d: d.timestamp)
        return withdrawals, deposits

    def detect_exchange_cycle(self, record: AccountRecord) -> Optional[SuspiciousPattern]:
        """
        Match the record's exchange withdrawals with later exchange deposits.

        Args:
            record: Account whose own transfer list is scanned; transfers from
                or to any of its aliases count for the account

        Returns:
            SuspiciousPattern with the matched holding periods, or None
        """
        account_ids = {record.account_id, *record.alias_ids}
        withdrawals, deposits = self._exchange_transfers(account_ids, record.transactions)

        holding_periods = []
        matched = set()
        for withdrawal in withdrawals:
            for idx, deposit in enumerate(deposits):
                if idx in matched:
                    continue
                held = max(deposit.timestamp - withdrawal.timestamp, 0)
                if self.min_holding <= held <= self.max_holding:
                    holding_periods.append(HoldingPeriod(
                        start_timestamp=withdrawal.timestamp,
                        end_timestamp=deposit.timestamp,
                        duration_days=held / NANOS_PER_DAY,
                        amount_held=min(withdrawal.amount, deposit.amount),
                    ))
                    matched.add(idx)
                    break

        if not holding_periods:
            return None

        return SuspiciousPattern(
            account=record.account_id,
            pattern_type=PatternType.EXCHANGE_CYCLE,
            withdrawals=tuple(withdrawals),
            deposits=tuple(deposits),
            holding_periods=tuple(holding_periods),
        )

    def detect_patterns(self, records: Iterable[AccountRecord]) -> List[SuspiciousPattern]:
        """Run every detector over the non-exchange records, in input order."""
        patterns = []
        n_scanned = 0
        for record in records:
            if record.category == Category.EXCHANGE:
                continue
            n_scanned += 1
            pattern = self.detect_exchange_cycle(record)
            if pattern is not None:
                patterns.append(pattern)

        logger.info(f"Found {len(patterns)} exchange cycles in {n_scanned} accounts "
                    f"({len(self.exchanges)} exchange ids)")
        return patterns


def detect_patterns(records: Iterable[AccountRecord], holding_period_days: float = 42, tolerance_days: float = 7) -> List[SuspiciousPattern]:
    """Detect patterns with a one-off PatternDetector."""
    records = list(records)
    return PatternDetector(records, holding_period_days, tolerance_days).detect_patterns(records)


def write_patterns(patterns: Iterable[SuspiciousPattern], json_file: str):
    directory = os.path.dirname(json_file)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(json_file, 'w') as f:
        json.dump([pattern.to_dict() for pattern in patterns], f, indent=2)
    logger.info(f"Patterns saved to: {json_file}")
