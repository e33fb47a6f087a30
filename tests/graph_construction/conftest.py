"""
Shared pytest fixtures for graph construction tests
"""
import pytest

from src.graph_construction.categories import Category
from src.graph_construction.models import AccountRecord, OperationKind, Transaction


# 2023-11-14 22:13:20 UTC
BASE_TIMESTAMP = 1_700_000_000_000_000_000
ONE_TOKEN = 100_000_000


@pytest.fixture
def transfer():
    """Factory for Transfer transactions"""
    counter = {'id': 0}

    def _transfer(from_id, to_id, amount=5 * ONE_TOKEN, timestamp=None, kind=OperationKind.TRANSFER):
        counter['id'] += 1
        if timestamp is None:
            timestamp = BASE_TIMESTAMP + counter['id'] * 1_000_000_000
        return Transaction(
            operation_kind=kind,
            from_id=from_id,
            to_id=to_id,
            amount=amount,
            timestamp=timestamp,
            tx_id=counter['id'],
        )
    return _transfer


@pytest.fixture
def record():
    """Factory for AccountRecords"""
    def _record(account_id, category=Category.IDENTIFIED, transactions=(), aliases=(), name=None, balances=None):
        return AccountRecord(
            account_id=account_id,
            display_name=name or f"Account {account_id}",
            category=category,
            alias_ids=frozenset(aliases),
            transactions=tuple(transactions),
            balances=balances or {},
        )
    return _record


@pytest.fixture
def mixed_records(record, transfer):
    """
    A small network:
    - A, B Identified; A and B transfer both ways
    - C Exchange, D Exchange; C -> D is an excluded pair
    - S SpamSuspect; S -> A is dust, S -> B is above threshold
    - Z DeFiProtocol; A -> Z and Z -> E (E Identified) make a connector A-E
    - ext1 untracked; B -> ext1 and C -> ext1 make a connector B-C
    - A has alias a2; a2 -> B counts as A -> B
    """
    a_to_b = transfer('A', 'B')
    b_to_a = transfer('B', 'A')
    a2_to_b = transfer('a2', 'B')
    c_to_d = transfer('C', 'D')
    s_to_a = transfer('S', 'A', amount=ONE_TOKEN // 100)
    s_to_b = transfer('S', 'B', amount=ONE_TOKEN)
    a_to_z = transfer('A', 'Z')
    z_to_e = transfer('Z', 'E')
    b_to_ext = transfer('B', 'ext1')
    c_to_ext = transfer('C', 'ext1')

    return [
        record('A', Category.IDENTIFIED, [a_to_b, b_to_a, a2_to_b, s_to_a, a_to_z], aliases=['a2']),
        record('B', Category.IDENTIFIED, [a_to_b, b_to_a, s_to_b, b_to_ext]),
        record('C', Category.EXCHANGE, [c_to_d, c_to_ext]),
        record('D', Category.EXCHANGE, [c_to_d]),
        record('S', Category.SPAM_SUSPECT, [s_to_a, s_to_b]),
        record('Z', Category.DEFI_PROTOCOL, [a_to_z, z_to_e]),
        record('E', Category.IDENTIFIED, [z_to_e]),
    ]
